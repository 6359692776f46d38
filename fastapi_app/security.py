import logging
import os
from typing import Any, Dict

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import OperatorConfig

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer()

FALLBACK_TOKEN = "default-admin-token-change-me"


def get_admin_token(config: OperatorConfig) -> str:
    """Get admin token from the configured environment variable, then the config default"""
    env_name = config.get("security.admin_token_env", "ADMIN_TOKEN")
    token = os.getenv(env_name)
    if not token:
        token = config.get("security.default_token")
        if not token:
            logger.warning("[security] No admin token configured, using fallback")
            token = FALLBACK_TOKEN
    return token


async def get_current_operator(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    """Validate Bearer token and return operator identifier"""
    admin_token = get_admin_token(request.app.state.config)

    if credentials.credentials != admin_token:
        token_preview = (
            credentials.credentials[:8] + "..."
            if len(credentials.credentials) > 8
            else "[SHORT]"
        )
        logger.warning(f"[security] Invalid token attempt: {token_preview}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return "admin"


def get_cors_config(config: OperatorConfig) -> Dict[str, Any]:
    """CORS settings; everything empty unless explicitly enabled"""
    if not config.get("security.cors.enabled", False):
        return {
            "allow_origins": [],
            "allow_credentials": False,
            "allow_methods": [],
            "allow_headers": [],
        }
    return {
        "allow_origins": config.get("security.cors.allow_origins", []),
        "allow_credentials": config.get("security.cors.allow_credentials", False),
        "allow_methods": config.get("security.cors.allow_methods", []),
        "allow_headers": config.get("security.cors.allow_headers", []),
    }
