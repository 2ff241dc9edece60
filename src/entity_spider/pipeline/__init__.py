"""Storage pipelines that receive validated entities and persist their records."""

from entity_spider.pipeline.base import EntityPipeline, NullPipeline, Record, prepare_row
from entity_spider.pipeline.firestore import FirestoreEntityPipeline
from entity_spider.pipeline.selector import PIPELINE_FACTORIES, ProviderKind, build_entity_pipeline
from entity_spider.pipeline.sql import (
    MySqlEntityPipeline,
    PostgreSqlEntityPipeline,
    SqlEntityPipeline,
    SqliteEntityPipeline,
    SqlServerEntityPipeline,
)

__all__ = [
    "EntityPipeline",
    "FirestoreEntityPipeline",
    "MySqlEntityPipeline",
    "NullPipeline",
    "PIPELINE_FACTORIES",
    "PostgreSqlEntityPipeline",
    "ProviderKind",
    "Record",
    "SqlEntityPipeline",
    "SqliteEntityPipeline",
    "SqlServerEntityPipeline",
    "build_entity_pipeline",
    "prepare_row",
]
