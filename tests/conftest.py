"""
Test configuration and fixtures for the template studio.

Templates are built in memory, persistence defaults to MemoryPersistence and
every preview runtime gets a ManualScheduler so transition timing is observed
without sleeping.
"""

import os
import sys

import pytest

# Ensure repo root is on sys.path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from studio.core import StudioCfg
from studio.graphics.manager import TemplateManager
from studio.graphics.persistence import MemoryPersistence
from studio.graphics.scheduler import ManualScheduler
from studio.graphics.template_model import GraphicTemplate

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def lower_third():
    return GraphicTemplate.create_from_preset("lowerThird", "lower-third-demo", "Lower Third Demo")


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def persistence():
    return MemoryPersistence()


@pytest.fixture
def manager(persistence):
    return TemplateManager(persistence=persistence, cfg=StudioCfg())


@pytest.fixture
def operator_config(tmp_path, monkeypatch):
    """Operator config pointing storage at tmp_path, with a known admin token"""
    from fastapi_app.config import OperatorConfig

    monkeypatch.setenv("ADMIN_TOKEN", ADMIN_TOKEN)
    path = tmp_path / "operator.yaml"
    path.write_text(
        "storage:\n"
        f"  db_path: \"{(tmp_path / 'templates.db').as_posix()}\"\n"
        f"  export_dir: \"{(tmp_path / 'exports').as_posix()}\"\n",
        encoding="utf-8",
    )
    return OperatorConfig(str(path))


@pytest.fixture
def client(operator_config):
    from fastapi.testclient import TestClient

    from fastapi_app import create_app

    app = create_app(config=operator_config)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
