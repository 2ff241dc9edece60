"""Choose the storage pipeline matching a configured provider identifier.

Provider identifiers form a closed enumeration. Each kind maps to a factory
returning a ready-to-use :class:`EntityPipeline`; identifiers outside the
enumeration resolve to :class:`NullPipeline` rather than failing, which is
how "no storage configured" is expressed.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Callable, Mapping

from entity_spider.observability import get_observability
from entity_spider.pipeline.base import EntityPipeline, NullPipeline
from entity_spider.pipeline.firestore import FirestoreEntityPipeline
from entity_spider.pipeline.sql import (
    MySqlEntityPipeline,
    PostgreSqlEntityPipeline,
    SqliteEntityPipeline,
    SqlServerEntityPipeline,
)
from entity_spider.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    """Known data-source provider identifiers."""

    POSTGRESQL = "Npgsql"
    MYSQL = "MySql.Data.MySqlClient"
    SQLSERVER = "System.Data.SqlClient"
    SQLITE = "System.Data.SQLite"
    FIRESTORE = "Firestore"

    @classmethod
    def parse(cls, value: str | None) -> "ProviderKind | None":
        """Return the kind named by ``value`` (case-insensitive) or ``None``."""

        normalized = (value or "").strip().lower()
        for kind in cls:
            if kind.value.lower() == normalized:
                return kind
        return None


PipelineFactory = Callable[[str | None, Settings], EntityPipeline]


def _build_firestore(connection_string: str | None, settings: Settings) -> EntityPipeline:
    return FirestoreEntityPipeline(
        connection_string or "",
        collection_prefix=settings.storage.firestore_collection_prefix,
        identity_column=settings.schema_rules.identity_column,
    )


PIPELINE_FACTORIES: Mapping[ProviderKind, PipelineFactory] = MappingProxyType(
    {
        ProviderKind.POSTGRESQL: lambda conn, settings: PostgreSqlEntityPipeline(conn, settings=settings),
        ProviderKind.MYSQL: lambda conn, settings: MySqlEntityPipeline(conn, settings=settings),
        ProviderKind.SQLSERVER: lambda conn, settings: SqlServerEntityPipeline(conn, settings=settings),
        ProviderKind.SQLITE: lambda conn, settings: SqliteEntityPipeline(conn, settings=settings),
        ProviderKind.FIRESTORE: _build_firestore,
    }
)


def build_entity_pipeline(
    provider_name: str | None = None,
    connection_string: str | None = None,
    *,
    settings: Settings | None = None,
) -> EntityPipeline:
    """Return the pipeline implementation for ``provider_name``.

    Args:
        provider_name: Provider identifier. Defaults to ``storage.provider_name``.
        connection_string: Data-source connection string. Defaults to
            ``storage.connection_string``; required by the Firestore pipeline.
        settings: Settings override.

    Returns:
        The matching pipeline, or :class:`NullPipeline` for unknown identifiers.

    Raises:
        PipelineError: The Firestore provider was selected without a usable connection string.
    """

    resolved = settings or get_settings()
    name = provider_name if provider_name is not None else resolved.storage.provider_name
    connection = connection_string if connection_string is not None else resolved.storage.connection_string
    observability = get_observability(component="pipeline", settings=resolved)

    kind = ProviderKind.parse(name)
    if kind is None:
        LOGGER.info("No pipeline registered for provider '%s'; using NullPipeline", name)
        pipeline: EntityPipeline = NullPipeline()
    else:
        pipeline = PIPELINE_FACTORIES[kind](connection, resolved)

    observability.emit_event("pipeline.selected", provider=name, pipeline=type(pipeline).__name__)
    observability.increment("pipeline.selected", tags={"pipeline": type(pipeline).__name__})
    return pipeline


__all__ = ["PIPELINE_FACTORIES", "PipelineFactory", "ProviderKind", "build_entity_pipeline"]
