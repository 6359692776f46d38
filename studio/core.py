import json
import logging
import logging.handlers
import os
import sys
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

BASE = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# ---------------- Logging ----------------


def get_logger(name="studio", log_file=None):
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(os.getenv("STUDIO_LOG_LEVEL", "INFO").upper())
    fmt = logging.Formatter(
        '{"ts":"%(asctime)s","level":"%(levelname)s","step":"%(name)s","msg":"%(message)s"}'
    )
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)
    logger.addHandler(sh)
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=5)
        fh.setFormatter(fmt)
        logger.addHandler(fh)
    return logger


log = get_logger("studio", os.getenv("STUDIO_LOG_FILE"))

# ---------------- Config Models ----------------


class ManifestDefaultsCfg(BaseModel):
    version: str = "1.0.0"
    author_name: str = "OGraf Editor"
    author_email: str = ""
    main: str = "template.mjs"
    supports_real_time: bool = True
    supports_non_real_time: bool = False


class StudioCfg(BaseModel):
    manifest: ManifestDefaultsCfg = Field(default_factory=ManifestDefaultsCfg)
    # AnimationSettings fields (either spelling) applied to newly created templates
    animation: Dict[str, Any] = Field(default_factory=dict)


def load_yaml(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def config_path() -> Optional[str]:
    """Resolve the studio config file: $STUDIO_CONFIG, conf/studio.yaml, then the example."""
    override = os.getenv("STUDIO_CONFIG")
    if override:
        return override
    for name in ("studio.yaml", "studio.example.yaml"):
        path = os.path.join(BASE, "conf", name)
        if os.path.exists(path):
            return path
    return None


def load_config(path: Optional[str] = None) -> StudioCfg:
    path = path or config_path()
    if not path or not os.path.exists(path):
        log.warning(f"Studio config not found ({path}), using defaults")
        return StudioCfg()
    raw = load_yaml(path)
    try:
        cfg = StudioCfg(**raw)
    except ValidationError as e:
        log.error(f"Config validation failed: {e}")
        raise
    return cfg


# ---------------- Env ----------------


def load_env() -> dict:
    load_dotenv(os.path.join(BASE, ".env"))
    env = {k: v for k, v in os.environ.items()}
    return env


def dump_json(data, indent: Optional[int] = 2) -> str:
    """Serialize exchange documents the same way everywhere (insertion order, UTF-8)."""
    return json.dumps(data, indent=indent, ensure_ascii=False)
