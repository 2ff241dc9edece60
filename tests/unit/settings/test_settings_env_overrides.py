"""Unit tests covering environment variable overrides for settings."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

from entity_spider.settings.config import PROJECT_ROOT, reload_settings


def _clear_env(monkeypatch: object, *names: str) -> None:
    """Remove env vars for every alias and prefixed variant."""

    for name in names:
        monkeypatch.delenv(name, raising=False)
        if name.startswith("ENTITY_SPIDER_"):
            monkeypatch.delenv(name.removeprefix("ENTITY_SPIDER_"), raising=False)
        else:
            monkeypatch.delenv(f"ENTITY_SPIDER_{name}", raising=False)


def test_storage_provider_env_override(monkeypatch: object) -> None:
    """Ensure storage.provider_name and connection_string follow environment overrides."""

    _clear_env(
        monkeypatch,
        "ENTITY_SPIDER_STORAGE__PROVIDER_NAME",
        "STORAGE_PROVIDER_NAME",
        "ENTITY_SPIDER_STORAGE__CONNECTION_STRING",
        "STORAGE_CONNECTION_STRING",
    )

    default_settings = reload_settings(env="dev")
    assert default_settings.provider_name == "System.Data.SQLite"
    assert default_settings.storage.connection_string is None

    monkeypatch.setenv("ENTITY_SPIDER_STORAGE__PROVIDER_NAME", "Npgsql")
    monkeypatch.setenv("ENTITY_SPIDER_STORAGE__CONNECTION_STRING", "Host=pg;Database=crawl")
    overridden = reload_settings(env="dev")
    assert overridden.provider_name == "Npgsql"
    assert overridden.storage.connection_string == "Host=pg;Database=crawl"


def test_schema_rules_env_overrides(monkeypatch: object) -> None:
    """Verify identity column, reserved names and key bound honor env overrides."""

    _clear_env(
        monkeypatch,
        "ENTITY_SPIDER_SCHEMA_RULES__IDENTITY_COLUMN",
        "SCHEMA_IDENTITY_COLUMN",
        "ENTITY_SPIDER_SCHEMA_RULES__RESERVED_COLUMNS",
        "SCHEMA_RESERVED_COLUMNS",
        "ENTITY_SPIDER_SCHEMA_RULES__MAX_KEY_LENGTH",
        "SCHEMA_MAX_KEY_LENGTH",
    )

    default_settings = reload_settings(env="dev")
    assert default_settings.identity_column == "__id"
    assert default_settings.reserved_columns == frozenset({"cdate", "__id"})
    assert default_settings.schema_rules.max_key_length == 256

    monkeypatch.setenv("ENTITY_SPIDER_SCHEMA_RULES__IDENTITY_COLUMN", "row_id")
    monkeypatch.setenv("ENTITY_SPIDER_SCHEMA_RULES__RESERVED_COLUMNS", json.dumps(["CDate", "Crawled_At"]))
    monkeypatch.setenv("ENTITY_SPIDER_SCHEMA_RULES__MAX_KEY_LENGTH", "191")

    overridden = reload_settings(env="dev")
    assert overridden.identity_column == "row_id"
    assert overridden.reserved_columns == frozenset({"cdate", "crawled_at", "row_id"})
    assert overridden.schema_rules.max_key_length == 191


def test_reserved_columns_accept_comma_separated_string(monkeypatch: object, tmp_path: Path) -> None:
    """Config files may list reserved columns as one comma-separated string."""

    _clear_env(monkeypatch, "ENTITY_SPIDER_SCHEMA_RULES__RESERVED_COLUMNS", "SCHEMA_RESERVED_COLUMNS")
    config_path = tmp_path / "settings.toml"
    config_path.write_text('[schema_rules]\nreserved_columns = "cdate, __id ,updated_at"\n')
    monkeypatch.setenv("ENTITY_SPIDER_SETTINGS_FILE", str(config_path))

    settings = reload_settings(env="dev")
    assert settings.schema_rules.reserved_columns == ["cdate", "__id", "updated_at"]


def test_observability_statsd_env_overrides(monkeypatch: object) -> None:
    """Verify StatsD-related observability settings honor env overrides."""

    _clear_env(
        monkeypatch,
        "ENTITY_SPIDER_OBSERVABILITY__STATSD_HOST",
        "OBS_STATSD_HOST",
        "ENTITY_SPIDER_OBSERVABILITY__STATSD_PORT",
        "OBS_STATSD_PORT",
        "ENTITY_SPIDER_OBSERVABILITY__STATSD_PREFIX",
        "OBS_STATSD_PREFIX",
    )

    default_settings = reload_settings(env="dev")
    assert default_settings.observability.statsd_host is None
    assert default_settings.observability.statsd_port == 8125
    assert default_settings.observability.statsd_prefix == "entity_spider"

    monkeypatch.setenv("ENTITY_SPIDER_OBSERVABILITY__STATSD_HOST", "127.0.0.1")
    monkeypatch.setenv("ENTITY_SPIDER_OBSERVABILITY__STATSD_PORT", "18125")
    monkeypatch.setenv("ENTITY_SPIDER_OBSERVABILITY__STATSD_PREFIX", "crawl")

    overridden = reload_settings(env="dev")
    assert overridden.observability.statsd_host == "127.0.0.1"
    assert overridden.observability.statsd_port == 18125
    assert overridden.observability.statsd_prefix == "crawl"


def test_local_env_disables_structured_logging() -> None:
    """Local runs log plain text regardless of the configured default."""

    assert reload_settings(env="local").observability.structured_logging is False
    assert reload_settings(env="dev").observability.structured_logging is True


def test_relative_sqlite_path_is_resolved(monkeypatch: object) -> None:
    """Relative SQLite paths are anchored at the project root."""

    monkeypatch.setenv("ENTITY_SPIDER_STORAGE__SQLITE_PATH", "data/custom.db")

    settings = reload_settings(env="dev")
    assert settings.storage.sqlite_path == (PROJECT_ROOT / "data" / "custom.db").resolve()


def test_settings_file_env_var(monkeypatch: object, tmp_path: Path) -> None:
    """A TOML file named by ENTITY_SPIDER_SETTINGS_FILE feeds the settings sources."""

    _clear_env(monkeypatch, "ENTITY_SPIDER_STORAGE__PROVIDER_NAME", "STORAGE_PROVIDER_NAME")
    config_path = tmp_path / "settings.toml"
    config_path.write_text(
        textwrap.dedent(
            """
            [storage]
            provider_name = "MySql.Data.MySqlClient"
            connection_string = "Server=db;Database=crawl"
            """
        ).strip()
    )
    monkeypatch.setenv("ENTITY_SPIDER_SETTINGS_FILE", str(config_path))

    settings = reload_settings(env="dev")
    assert settings.provider_name == "MySql.Data.MySqlClient"
    assert settings.storage.connection_string == "Server=db;Database=crawl"
    assert settings.config_files[0] == config_path
