"""Public interface for entity_spider configuration settings."""

from .config import (
    DEFAULT_CREATION_COLUMN,
    DEFAULT_IDENTITY_COLUMN,
    ENV_VAR_NAME,
    PROJECT_ROOT,
    Settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "PROJECT_ROOT",
    "ENV_VAR_NAME",
    "DEFAULT_IDENTITY_COLUMN",
    "DEFAULT_CREATION_COLUMN",
]
