"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from entity_spider.observability import reset_observability_cache
from entity_spider.settings import get_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Point every test at a throwaway SQLite file and a fresh settings cache."""

    monkeypatch.setenv("ENTITY_SPIDER_ENV", "test")
    monkeypatch.setenv("ENTITY_SPIDER_STORAGE__SQLITE_PATH", str(tmp_path / "entity_spider.db"))
    get_settings.cache_clear()
    reset_observability_cache()
    yield
    get_settings.cache_clear()
    reset_observability_cache()
