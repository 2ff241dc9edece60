"""Tests for entity registration and the spider setup lifecycle."""

from __future__ import annotations

from typing import List, Sequence

import pytest

from entity_spider.errors import LifecycleError, NotAnEntityError, ReservedNameError, SpiderError
from entity_spider.model import EntityDefine, PropertyDefine, TableInfo
from entity_spider.pipeline import EntityPipeline, SqliteEntityPipeline
from entity_spider.schema import EntityDeclaration
from entity_spider.spider import EntitySpider, SpiderStatus


class _RecordingPipeline(EntityPipeline):
    def __init__(self) -> None:
        super().__init__()
        self.added: List[EntityDefine] = []
        self.closed = False

    def _on_entity_added(self, entity: EntityDefine) -> None:
        self.added.append(entity)

    def process(self, entity_name: str, records: Sequence) -> int:
        return len(records)

    def close(self) -> None:
        self.closed = True


def _product() -> EntityDeclaration:
    return (
        EntityDeclaration("shop.Product", table=TableInfo(name="products", primary="Sku"))
        .field("Sku", str, PropertyDefine(length=32))
        .field("Name", str, PropertyDefine(length=128))
    )


def test_add_entity_type_registers_validated_entity():
    spider = EntitySpider("shop")

    entity = spider.add_entity_type(_product())

    assert spider.entities == (entity,)
    assert entity.column("Sku").not_null is True
    assert spider.status is SpiderStatus.INIT


def test_add_entity_type_rejects_non_declarations():
    spider = EntitySpider("shop")

    with pytest.raises(NotAnEntityError):
        spider.add_entity_type(object())


def test_schema_errors_propagate_and_nothing_is_registered():
    spider = EntitySpider("shop")
    declaration = _product().field("cdate", str, PropertyDefine(length=10))

    with pytest.raises(ReservedNameError):
        spider.add_entity_type(declaration)

    assert spider.entities == ()


def test_injected_reserved_names_replace_defaults():
    spider = EntitySpider("shop", reserved_names=["crawled_at"])

    entity = spider.add_entity_type(_product().field("cdate", str, PropertyDefine(length=10)))

    assert entity.column("cdate") is not None
    with pytest.raises(ReservedNameError):
        spider.add_entity_type(
            EntityDeclaration("shop.Log").field("crawled_at", str, PropertyDefine(length=10))
        )


def test_table_name_and_data_handler_overrides():
    def handler(record):
        return record

    spider = EntitySpider("shop")

    entity = spider.add_entity_type(_product(), data_handler=handler, table_name="products_2026")

    assert entity.table_info.name == "products_2026"
    assert entity.table_info.primary == "Sku"
    assert entity.data_handler is handler


def test_initialize_hands_entities_to_every_pipeline():
    first, second = _RecordingPipeline(), _RecordingPipeline()
    spider = EntitySpider("shop").add_pipeline(first).add_pipeline(second)
    entity = spider.add_entity_type(_product())

    spider.initialize()

    assert spider.status is SpiderStatus.RUNNING
    assert first.added == [entity]
    assert second.added == [entity]
    assert spider.pipelines == (first, second)


def test_initialize_without_entities_fails():
    spider = EntitySpider("shop").add_pipeline(_RecordingPipeline())

    with pytest.raises(SpiderError) as excinfo:
        spider.initialize()

    assert "Count of entity is zero" in str(excinfo.value)
    assert spider.status is SpiderStatus.INIT


def test_skip_argument_bypasses_pipeline_registration():
    pipeline = _RecordingPipeline()
    spider = EntitySpider("shop").add_pipeline(pipeline)

    spider.initialize("skip")

    assert spider.status is SpiderStatus.RUNNING
    assert pipeline.added == []


def test_setup_is_frozen_after_initialize():
    spider = EntitySpider("shop").add_pipeline(_RecordingPipeline())
    spider.add_entity_type(_product())
    spider.initialize()

    with pytest.raises(LifecycleError):
        spider.add_entity_type(_product())
    with pytest.raises(LifecycleError):
        spider.add_pipeline(_RecordingPipeline())
    with pytest.raises(LifecycleError):
        spider.initialize()


def test_default_pipeline_follows_settings():
    spider = EntitySpider("shop")
    spider.add_entity_type(_product())

    spider.initialize()

    (pipeline,) = spider.pipelines
    assert isinstance(pipeline, SqliteEntityPipeline)
    assert set(pipeline.tables) == {"shop.Product"}
    assert pipeline.process("shop.Product", [{"Sku": "a-1", "Name": "Lamp"}]) == 1
    spider.close()


def test_close_releases_pipelines_once():
    pipeline = _RecordingPipeline()
    spider = EntitySpider("shop").add_pipeline(pipeline)
    spider.add_entity_type(_product())
    spider.initialize()

    spider.close()
    spider.close()

    assert pipeline.closed is True
    assert spider.status is SpiderStatus.CLOSED
