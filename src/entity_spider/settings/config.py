"""Configuration loader for entity_spider using Pydantic settings."""

from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

ENV_VAR_NAME = "ENTITY_SPIDER_ENV"
DEFAULT_ENV = "local"
PROJECT_ROOT = Path(__file__).resolve().parents[3]
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "settings.default.toml"
LOCAL_CONFIG_FILE = CONFIG_DIR / "settings.local.toml"
SETTINGS_FILE_ENV_VAR = "ENTITY_SPIDER_SETTINGS_FILE"

DEFAULT_IDENTITY_COLUMN = "__id"
DEFAULT_CREATION_COLUMN = "cdate"


def _resolve_env(explicit_env: str | None = None) -> str:
    """Return the active environment name.

    Args:
        explicit_env: Environment value supplied directly by the caller.

    Returns:
        A stripped environment name, falling back to ``DEFAULT_ENV``.
    """

    env = explicit_env or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV
    return env.strip()


def _env_file_candidates(env: str) -> list[Path]:
    """List candidate ``.env`` files used during settings resolution."""

    return [
        PROJECT_ROOT / ".env",
        PROJECT_ROOT / f".env.{env}",
        PROJECT_ROOT / ".env.local",
    ]


def _resolve_config_path(raw_path: str | None) -> Path | None:
    """Return an absolute config path from user input."""

    if not raw_path:
        return None
    candidate = Path(raw_path).expanduser()
    if not candidate.is_absolute():
        candidate = (PROJECT_ROOT / candidate).resolve()
    return candidate


def _config_file_priority(include_missing: bool = False) -> tuple[Path, ...]:
    """Return config files in descending precedence order."""

    ordered: list[Path] = []
    env_override = _resolve_config_path(os.getenv(SETTINGS_FILE_ENV_VAR))
    if env_override:
        ordered.append(env_override)
    ordered.append(LOCAL_CONFIG_FILE)
    ordered.append(DEFAULT_CONFIG_FILE)
    if include_missing:
        return tuple(ordered)
    return tuple(path for path in ordered if path.exists())


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Pydantic settings source that loads values from a TOML file."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path) -> None:
        super().__init__(settings_cls)
        self.path = path
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            self._data = {}
            return self._data
        try:
            with self.path.open("rb") as handle:
                self._data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:  # pragma: no cover - invalid files surface immediately
            raise ValueError(f"Invalid TOML syntax in {self.path}") from exc
        return self._data

    def __call__(self) -> dict[str, Any]:  # pragma: no cover - trivial wrapper
        return self._load()

    def get_field_value(self, field_name: str, field):  # pragma: no cover - passthrough helper
        data = self._load()
        return data.get(field_name), field_name in data


class RuntimeSettings(BaseSettings):
    """Process-level runtime controls."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "RUNTIME__LOG_LEVEL"),
    )


class StorageSettings(BaseSettings):
    """Data source used by the default entity pipeline."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    provider_name: str = Field(
        default="System.Data.SQLite",
        validation_alias=AliasChoices("STORAGE_PROVIDER_NAME", "STORAGE__PROVIDER_NAME"),
    )
    connection_string: str | None = Field(
        default=None,
        validation_alias=AliasChoices("STORAGE_CONNECTION_STRING", "STORAGE__CONNECTION_STRING"),
    )
    sqlite_path: Path = Field(
        default=PROJECT_ROOT / "data" / "entity_spider.db",
        validation_alias=AliasChoices("STORAGE_SQLITE_PATH", "STORAGE__SQLITE_PATH"),
    )
    firestore_collection_prefix: str = Field(
        default="",
        validation_alias=AliasChoices("STORAGE_FIRESTORE_PREFIX", "STORAGE__FIRESTORE__COLLECTION_PREFIX"),
    )


class SchemaSettings(BaseSettings):
    """Reserved names and key bounds applied while compiling entity schemas."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    identity_column: str = Field(
        default=DEFAULT_IDENTITY_COLUMN,
        validation_alias=AliasChoices("SCHEMA_IDENTITY_COLUMN", "SCHEMA__IDENTITY_COLUMN"),
    )
    reserved_columns: list[str] = Field(
        default_factory=lambda: [DEFAULT_CREATION_COLUMN, DEFAULT_IDENTITY_COLUMN],
        validation_alias=AliasChoices("SCHEMA_RESERVED_COLUMNS", "SCHEMA__RESERVED_COLUMNS"),
    )
    max_key_length: int = Field(
        default=256,
        validation_alias=AliasChoices("SCHEMA_MAX_KEY_LENGTH", "SCHEMA__MAX_KEY_LENGTH"),
    )

    @field_validator("reserved_columns", mode="before")
    @classmethod
    def _split_reserved_columns(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        try:
            candidate = json.loads(value)
        except json.JSONDecodeError:
            candidate = None
        if isinstance(candidate, list):
            return [str(item).strip() for item in candidate if str(item).strip()]
        return [chunk.strip() for chunk in value.split(",") if chunk.strip()]


class ObservabilitySettings(BaseSettings):
    """Logging and metrics configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    structured_logging: bool = Field(
        default=True,
        validation_alias=AliasChoices("OBS_STRUCTURED_LOGGING", "OBSERVABILITY__STRUCTURED_LOGGING"),
    )
    statsd_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OBS_STATSD_HOST", "OBSERVABILITY__STATSD_HOST"),
    )
    statsd_port: int = Field(
        default=8125,
        validation_alias=AliasChoices("OBS_STATSD_PORT", "OBSERVABILITY__STATSD_PORT"),
    )
    statsd_prefix: str = Field(
        default="entity_spider",
        validation_alias=AliasChoices("OBS_STATSD_PREFIX", "OBSERVABILITY__STATSD_PREFIX"),
    )
    service_name: str = Field(
        default="entity-spider",
        validation_alias=AliasChoices("OBS_SERVICE_NAME", "OBSERVABILITY__SERVICE_NAME"),
    )


class Settings(BaseSettings):
    """Top-level configuration model with nested sections for each subsystem."""

    env: str = Field(
        default_factory=lambda: _resolve_env(),
        validation_alias=AliasChoices("ENV", "ENVIRONMENT", "RUNTIME__ENV"),
    )
    project_root: Path = Field(default=PROJECT_ROOT)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    schema_rules: SchemaSettings = Field(default_factory=SchemaSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    env_files: tuple[Path, ...] = Field(default_factory=tuple, exclude=True)
    config_files: tuple[Path, ...] = Field(default_factory=tuple, exclude=True)

    model_config = SettingsConfigDict(
        env_prefix="ENTITY_SPIDER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Extend settings sources with TOML-based config files."""

        config_sources = [TomlConfigSettingsSource(settings_cls, path) for path in _config_file_priority()]
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            *config_sources,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize relative paths once the model is initialised."""

        if not self.storage.sqlite_path.is_absolute():
            storage_update = {"sqlite_path": (self.project_root / self.storage.sqlite_path).resolve()}
            object.__setattr__(self, "storage", self.storage.model_copy(update=storage_update))
        return self

    @model_validator(mode="after")
    def _apply_environment_overrides(self) -> "Settings":
        """Force environment-specific defaults after basic resolution."""

        if self.env.lower() == "local":
            observability_update = {"structured_logging": False}
            object.__setattr__(self, "observability", self.observability.model_copy(update=observability_update))
        return self

    @property
    def log_level(self) -> str:
        """str: Effective logging level for the running process."""

        return self.runtime.log_level

    @property
    def provider_name(self) -> str:
        """str: Provider identifier used to select the default pipeline."""

        return self.storage.provider_name

    @property
    def identity_column(self) -> str:
        """str: Reserved identity column used when no primary key is declared."""

        return self.schema_rules.identity_column

    @property
    def reserved_columns(self) -> frozenset[str]:
        """frozenset[str]: Lower-cased reserved default property names."""

        names = {name.lower() for name in self.schema_rules.reserved_columns}
        names.add(self.schema_rules.identity_column.lower())
        return frozenset(names)

    @property
    def is_local(self) -> bool:
        """bool: True when the active environment is ``local``."""

        return self.env.lower() == "local"


def _load_settings(env: str | None = None) -> Settings:
    """Load settings with optional environment override.

    Args:
        env: Environment name supplied programmatically.

    Returns:
        Fully parsed :class:`Settings` instance with env files applied.
    """

    resolved_env = _resolve_env(env)
    candidate_files = [path for path in _env_file_candidates(resolved_env) if path.exists()]
    config_files = _config_file_priority()
    return Settings(
        _env_file=[str(path) for path in candidate_files],
        _env_file_encoding="utf-8",
        env=resolved_env,
        env_files=tuple(candidate_files),
        config_files=config_files,
    )


@lru_cache(maxsize=1)
def get_settings(env: str | None = None) -> Settings:
    """Return cached settings for the requested environment."""

    return _load_settings(env)


def reload_settings(env: str | None = None) -> Settings:
    """Clear the cached settings and reload from disk."""

    get_settings.cache_clear()
    return get_settings(env)


__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "PROJECT_ROOT",
    "ENV_VAR_NAME",
    "DEFAULT_IDENTITY_COLUMN",
    "DEFAULT_CREATION_COLUMN",
]
