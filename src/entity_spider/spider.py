"""Entity registration and setup lifecycle for a spider.

Entities are compiled and validated when they are added; they are handed to
the storage pipelines when :meth:`EntitySpider.initialize` runs. After that
point the spider is running and its schema set is frozen.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, List, Sequence, Tuple

from entity_spider.errors import LifecycleError, NotAnEntityError, SchemaError, SpiderError
from entity_spider.model import EntityDefine
from entity_spider.observability import get_observability
from entity_spider.pipeline import EntityPipeline, build_entity_pipeline
from entity_spider.schema import ColumnBuilder, EntityDeclaration, ValidationRules, build_entity_define
from entity_spider.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)

SKIP_ARGUMENT = "skip"


class SpiderStatus(str, Enum):
    INIT = "init"
    RUNNING = "running"
    CLOSED = "closed"


class EntitySpider:
    """Own the entity definitions and storage pipelines of one spider."""

    def __init__(
        self,
        name: str,
        *,
        settings: Settings | None = None,
        reserved_names: Sequence[str] | None = None,
    ) -> None:
        self.name = name
        self.settings = settings or get_settings()
        reserved = reserved_names if reserved_names is not None else self.settings.reserved_columns
        self._column_builder = ColumnBuilder(reserved)
        self._rules = ValidationRules.from_settings(self.settings)
        self._entities: List[EntityDefine] = []
        self._pipelines: List[EntityPipeline] = []
        self._default_pipeline: EntityPipeline | None = None
        self._status = SpiderStatus.INIT
        self._observability = get_observability(component="spider", settings=self.settings)

    @property
    def status(self) -> SpiderStatus:
        return self._status

    @property
    def entities(self) -> Tuple[EntityDefine, ...]:
        return tuple(self._entities)

    @property
    def pipelines(self) -> Tuple[EntityPipeline, ...]:
        """Explicitly added pipelines, or the configured default pipeline."""

        if self._pipelines:
            return tuple(self._pipelines)
        return (self.default_pipeline,)

    @property
    def default_pipeline(self) -> EntityPipeline:
        """Pipeline selected from ``storage.provider_name``; chosen once per spider."""

        if self._default_pipeline is None:
            self._default_pipeline = build_entity_pipeline(settings=self.settings)
        return self._default_pipeline

    def _check_if_running(self) -> None:
        if self._status != SpiderStatus.INIT:
            raise LifecycleError(f"Spider {self.name} is {self._status.value}; setup can no longer change")

    def add_pipeline(self, pipeline: EntityPipeline) -> "EntitySpider":
        self._check_if_running()
        self._pipelines.append(pipeline)
        return self

    def add_entity_type(
        self,
        declaration: EntityDeclaration,
        *,
        data_handler: Any = None,
        table_name: str | None = None,
    ) -> EntityDefine:
        """Compile ``declaration`` and register the resulting entity.

        Args:
            declaration: Entity declaration to compile.
            data_handler: Optional post-extraction transform stored on the entity.
            table_name: Overrides the declared table name when the entity is persisted.

        Returns:
            The validated :class:`EntityDefine`.

        Raises:
            LifecycleError: The spider has already started.
            NotAnEntityError: ``declaration`` is not an :class:`EntityDeclaration`.
            SchemaError: The declaration fails validation.
        """

        self._check_if_running()
        if not isinstance(declaration, EntityDeclaration):
            raise NotAnEntityError(f"Type: {type(declaration).__name__} is not an entity declaration")

        try:
            entity = build_entity_define(declaration, column_builder=self._column_builder, rules=self._rules)
        except SchemaError as exc:
            self._observability.emit_event(
                "entity.rejected", level=logging.WARNING, spider=self.name, entity=declaration.name, error=str(exc)
            )
            raise

        if table_name and entity.table_info is not None:
            entity = replace(entity, table_info=replace(entity.table_info, name=table_name))
        if data_handler is not None:
            entity = replace(entity, data_handler=data_handler)

        self._entities.append(entity)
        self._observability.emit_event(
            "entity.registered",
            spider=self.name,
            entity=entity.name,
            columns=[column.name for column in entity.columns],
            table=entity.table_info.name if entity.table_info else None,
        )
        self._observability.increment("entity.registered")
        return entity

    def initialize(self, *arguments: str) -> None:
        """Register every entity with every pipeline and start the spider.

        Passing ``"skip"`` starts the spider without touching the pipelines.
        """

        self._check_if_running()
        if SKIP_ARGUMENT not in arguments:
            if not self._entities:
                raise SpiderError(f"Count of entity is zero for spider {self.name}")
            for pipeline in self.pipelines:
                for entity in self._entities:
                    pipeline.add_entity(entity)
                    self._observability.emit_event(
                        "pipeline.entity_added",
                        spider=self.name,
                        entity=entity.name,
                        pipeline=type(pipeline).__name__,
                    )
        self._status = SpiderStatus.RUNNING
        LOGGER.info("Spider %s initialized with %d entit(ies)", self.name, len(self._entities))

    def close(self) -> None:
        if self._status == SpiderStatus.CLOSED:
            return
        opened = list(self._pipelines)
        if self._default_pipeline is not None:
            opened.append(self._default_pipeline)
        for pipeline in opened:
            pipeline.close()
        self._status = SpiderStatus.CLOSED


__all__ = ["EntitySpider", "SpiderStatus", "SKIP_ARGUMENT"]
