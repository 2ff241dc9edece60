"""Schema data model for entity_spider.

The descriptors in :mod:`entity_spider.model.selectors` are what callers
declare; the types in :mod:`entity_spider.model.entity` are what the schema
compiler produces and what storage pipelines consume.
"""

from entity_spider.model.entity import Column, DataTypeNames, EntityDefine, TableInfo, TableNamePostfix
from entity_spider.model.selectors import (
    BaseSelector,
    EntitySelector,
    Formatter,
    LinkToNext,
    PropertyDefine,
    PropertyOption,
    SelectorType,
    SharedValueSelector,
    TargetUrlsSelector,
)

__all__ = [
    "BaseSelector",
    "Column",
    "DataTypeNames",
    "EntityDefine",
    "EntitySelector",
    "Formatter",
    "LinkToNext",
    "PropertyDefine",
    "PropertyOption",
    "SelectorType",
    "SharedValueSelector",
    "TableInfo",
    "TableNamePostfix",
    "TargetUrlsSelector",
]
