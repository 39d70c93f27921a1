"""Environment and file-based configuration.

Resolution order for directory settings:
1. Environment variables (ENX_*)
2. config/directory.yaml (path overridable with ENX_CONFIG_PATH)
3. Built-in defaults

Supabase credentials are read from the environment only.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[4] / "config" / "directory.yaml"

_TRUTHY = {"1", "true", "yes", "on"}


class DirectorySettings(BaseModel):
    """Runtime settings for the admin directory."""

    admin_email: Optional[str] = Field(
        default=None,
        description="Designated administrator email (bootstrap superuser)",
    )
    admin_user_id: Optional[str] = Field(
        default=None,
        description="Designated administrator identity id (alternative to email)",
    )
    admin_tier_override: bool = Field(
        default=False,
        description="Also force the designated admin's tier to enterprise",
    )
    default_page_size: int = Field(default=10, ge=1)
    profiles_table: str = Field(default="profiles", min_length=1)
    list_users_per_page: int = Field(
        default=1000,
        ge=1,
        description="Page size used when walking the identity store",
    )


def get_enx_env() -> str:
    """Get environment name (lowercase), defaulting to "local"."""
    return os.getenv("ENX_ENV", "local").lower()


def is_production_env() -> bool:
    """Whether the service runs in production."""
    return get_enx_env() in {"prod", "production"}


def json_logs_enabled() -> bool:
    """JSON logging is on unless ENX_JSON_LOGS=false."""
    return os.getenv("ENX_JSON_LOGS", "true").lower() != "false"


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def _load_yaml_settings(path: Path) -> dict[str, Any]:
    """Read the optional settings file.

    A missing file yields an empty mapping. A malformed file is logged and
    ignored so that environment variables still apply.
    """
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(
            f"Failed to load {path}: {e}. Ignoring settings file.",
            extra={"event": "config.file_load_error", "path": str(path)},
        )
        return {}

    if not isinstance(data, dict):
        logger.error(
            f"Settings file {path} must contain a mapping. Ignoring settings file.",
            extra={"event": "config.file_invalid", "path": str(path)},
        )
        return {}

    return data.get("directory", data)


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    admin_email = os.getenv("ENX_ADMIN_EMAIL")
    if admin_email:
        overrides["admin_email"] = admin_email.strip()

    admin_user_id = os.getenv("ENX_ADMIN_USER_ID")
    if admin_user_id:
        overrides["admin_user_id"] = admin_user_id.strip()

    tier_override = os.getenv("ENX_ADMIN_TIER_OVERRIDE")
    if tier_override:
        overrides["admin_tier_override"] = tier_override.lower() in _TRUTHY

    for env_name, field in (
        ("ENX_DEFAULT_PAGE_SIZE", "default_page_size"),
        ("ENX_LIST_USERS_PER_PAGE", "list_users_per_page"),
    ):
        raw = os.getenv(env_name)
        if raw:
            overrides[field] = int(raw)

    table = os.getenv("ENX_PROFILES_TABLE")
    if table:
        overrides["profiles_table"] = table

    return overrides


def load_directory_settings(config_path: Optional[Path] = None) -> DirectorySettings:
    """Build settings from file and environment.

    Args:
        config_path: Settings file to read (default: ENX_CONFIG_PATH or
            config/directory.yaml at the repository root)

    Returns:
        DirectorySettings

    Raises:
        ValueError: If a numeric ENX_* variable is not an integer
        pydantic.ValidationError: If the merged values are invalid
    """
    if config_path is None:
        env_path = os.getenv("ENX_CONFIG_PATH")
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    values = _load_yaml_settings(config_path)
    values.update(_env_overrides())

    settings = DirectorySettings(**values)

    if not settings.admin_email and not settings.admin_user_id:
        logger.warning(
            "No designated administrator configured; only profile admins can sign in",
            extra={"event": "config.no_designated_admin"},
        )

    return settings


@lru_cache(maxsize=1)
def get_directory_settings() -> DirectorySettings:
    """Process-wide settings (FastAPI dependency; override in tests)."""
    return load_directory_settings()
