"""Storage pipeline capability shared by every concrete backend."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Dict, Mapping, Sequence

from entity_spider.errors import PipelineError
from entity_spider.model import EntityDefine

LOGGER = logging.getLogger(__name__)

Record = Mapping[str, Any]


class EntityPipeline(ABC):
    """Accepts validated entities at setup and persists their records afterwards."""

    def __init__(self) -> None:
        self._entities: Dict[str, EntityDefine] = {}

    @property
    def entities(self) -> Mapping[str, EntityDefine]:
        """Mapping[str, EntityDefine]: Registered entities keyed by name."""

        return MappingProxyType(self._entities)

    def add_entity(self, entity: EntityDefine) -> None:
        """Register ``entity`` so its records can be persisted later."""

        self._entities[entity.name] = entity
        self._on_entity_added(entity)

    def _on_entity_added(self, entity: EntityDefine) -> None:
        """Hook for backends that prepare tables or collections."""

    @abstractmethod
    def process(self, entity_name: str, records: Sequence[Record]) -> int:
        """Persist ``records`` of a registered entity and return how many were written."""

    def close(self) -> None:
        """Release connections held by the pipeline."""

    def _require_entity(self, entity_name: str) -> EntityDefine:
        entity = self._entities.get(entity_name)
        if entity is None:
            raise PipelineError(f"Entity '{entity_name}' is not registered with {type(self).__name__}")
        return entity


def prepare_row(entity: EntityDefine, record: Record) -> Dict[str, Any]:
    """Project ``record`` onto the storable columns of ``entity``.

    Raises:
        PipelineError: A ``not_null`` column has no value.
    """

    row: Dict[str, Any] = {}
    for column in entity.storable_columns:
        value = record.get(column.name)
        if value is None and column.not_null:
            raise PipelineError(f"Column '{column.name}' of {entity.name} must not be null")
        row[column.name] = value
    return row


class NullPipeline(EntityPipeline):
    """Pipeline used when no storage provider is configured; persists nothing."""

    def process(self, entity_name: str, records: Sequence[Record]) -> int:
        LOGGER.debug("NullPipeline dropped %d record(s) for %s", len(records), entity_name)
        return 0


__all__ = ["EntityPipeline", "NullPipeline", "Record", "prepare_row"]
