import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml

from studio.graphics.sdk import ConflictPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "conf/operator.yaml"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class OperatorConfig:
    """Configuration for the template studio service"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.getenv("OPERATOR_CONFIG", DEFAULT_CONFIG_PATH)
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from operator.yaml, layered over the defaults"""
        defaults = self._get_default_config()
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, "r", encoding="utf-8") as f:
                    config = yaml.safe_load(f) or {}
                    logger.info(f"[config] Loaded operator config from {self.config_path}")
                    return _deep_merge(defaults, config)
            else:
                logger.warning(
                    f"[config] Operator config not found at {self.config_path}, using defaults"
                )
                return defaults
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"[config] Failed to load operator config: {e}, using defaults")
            return defaults

    def _get_default_config(self) -> Dict[str, Any]:
        """Return default configuration"""
        return {
            "server": {
                "host": "127.0.0.1",
                "port": 8010,
                "log_level": "info",
            },
            "security": {
                "admin_token_env": "ADMIN_TOKEN",
                "default_token": "default-admin-token-change-me",
                "cors": {
                    "enabled": False,
                    "allow_origins": [],
                    "allow_credentials": False,
                    "allow_methods": [],
                    "allow_headers": [],
                },
            },
            "storage": {
                "db_path": "data/templates.db",
                "export_dir": "exports",
            },
            "import": {
                "default_policy": "replace",
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key path (e.g., 'server.port')"""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    @property
    def import_policy(self) -> ConflictPolicy:
        """Conflict policy for imports that do not name one; bad values fall back to replace"""
        value = self.get("import.default_policy", ConflictPolicy.REPLACE.value)
        try:
            return ConflictPolicy(value)
        except ValueError:
            logger.warning(f"[config] Unknown import.default_policy {value!r}, using replace")
            return ConflictPolicy.REPLACE

    def export_dir(self, template_id: str) -> str:
        """Directory the OGraf file set of `template_id` is written to"""
        return os.path.join(self.get("storage.export_dir", "exports"), template_id)

    def reload(self):
        """Reload configuration from file"""
        self.config = self._load_config()
        logger.info("[config] Operator config reloaded")

    def get_sanitized_config(self) -> Dict[str, Any]:
        """Get configuration without sensitive information"""
        config_copy = copy.deepcopy(self.config)
        security = config_copy.get("security", {})
        if "default_token" in security:
            security["default_token"] = "[REDACTED]"
        return config_copy
