import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studio.core import load_config, load_env
from studio.graphics.manager import TemplateManager
from studio.graphics.persistence import PersistenceService
from studio.graphics.sandbox import RenderSandbox
from studio.graphics.scheduler import AsyncioScheduler

from .config import OperatorConfig
from .db import Database
from .models import HealthResponse
from .routes import router
from .security import get_cors_config

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[OperatorConfig] = None,
    persistence: Optional[PersistenceService] = None,
) -> FastAPI:
    """Build the studio API. Storage is opened in the lifespan, not at import."""
    load_env()
    config = config or OperatorConfig()

    logging.basicConfig(
        level=getattr(logging, str(config.get("server.log_level", "INFO")).upper()),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info("[api] Starting OGraf Template Studio")
        store = persistence or Database(config.get("storage.db_path", "data/templates.db"))
        app.state.manager = TemplateManager(persistence=store, cfg=load_config())
        app.state.sandbox = RenderSandbox(scheduler=AsyncioScheduler())
        logger.info(
            f"[api] Server configured for {config.get('server.host')}:{config.get('server.port')}"
        )

        yield

        logger.info("[api] Shutting down OGraf Template Studio")
        for template_id in app.state.sandbox.mounted():
            app.state.sandbox.unmount(template_id)

    app = FastAPI(
        title="OGraf Template Studio",
        description="Template editing, artifact generation and preview for OGraf broadcast graphics",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config

    cors_config = get_cors_config(config)
    if cors_config["allow_origins"] or cors_config["allow_methods"] or cors_config["allow_headers"]:
        app.add_middleware(CORSMiddleware, **cors_config)
        logger.info("[api] CORS enabled with configuration")
    else:
        logger.info("[api] CORS disabled (default security)")

    app.include_router(router, prefix="/api/v1")

    @app.get("/healthz", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint (no authentication required)"""
        manager = getattr(app.state, "manager", None)
        return HealthResponse(templates=len(manager) if manager is not None else 0)

    return app


app = create_app()
