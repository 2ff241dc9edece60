"""entity_spider: compile declarative crawl entities into storage-ready schemas.

An entity declaration names the fields to extract from a page together with
their selectors, formatters and storage constraints. This package turns those
declarations into validated :class:`~entity_spider.model.EntityDefine`
instances and hands them to the storage pipelines that persist crawl results.
"""

from entity_spider.errors import SchemaError, SpiderError
from entity_spider.model import EntityDefine, PropertyDefine, TableInfo
from entity_spider.schema import EntityDeclaration, build_entity_define
from entity_spider.spider import EntitySpider

__all__ = [
    "EntityDeclaration",
    "EntityDefine",
    "EntitySpider",
    "PropertyDefine",
    "SchemaError",
    "SpiderError",
    "TableInfo",
    "build_entity_define",
]
