"""Compiled schema types shared by the extraction engine and storage pipelines.

An :class:`EntityDefine` is produced once per entity during spider setup and
is read-only afterwards. Every container on it is a tuple or a read-only
mapping so the same instance can be handed to several pipelines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from entity_spider.model.selectors import (
    BaseSelector,
    Formatter,
    LinkToNext,
    PropertyOption,
    SharedValueSelector,
    TargetUrlsSelector,
)


class DataTypeNames:
    """Semantic type tags assigned to columns."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    DATE = "date"
    BYTES = "bytes"


class TableNamePostfix(str, Enum):
    """Suffix policy applied to the physical table name."""

    NONE = "none"
    TODAY = "today"
    MONDAY = "monday"
    MONTH = "month"


@dataclass(frozen=True, slots=True)
class TableInfo:
    """Persistence metadata for an entity.

    Declared by the caller in free form and rewritten by the validator into a
    canonical form: ``primary`` and every index/unique group become
    comma-joined, whitespace-free, de-duplicated column lists.

    Attributes:
        name: Target table or collection name.
        primary: Composite primary key. Defaults to the identity column.
        update_columns: Columns eligible for upsert-style updates.
        indexs: Composite index groups.
        uniques: Composite unique groups.
        database: Optional database/schema qualifier.
        postfix: Suffix policy for the physical table name.
    """

    name: str
    primary: str | None = None
    update_columns: Tuple[str, ...] = ()
    indexs: Tuple[str, ...] = ()
    uniques: Tuple[str, ...] = ()
    database: str | None = None
    postfix: TableNamePostfix = TableNamePostfix.NONE

    @property
    def primary_columns(self) -> Tuple[str, ...]:
        """Tuple[str, ...]: Members of the primary key."""

        if not self.primary:
            return ()
        return tuple(item for item in self.primary.split(",") if item)

    def calculate_table_name(self, at: datetime | None = None) -> str:
        """Return the physical table name with the postfix policy applied."""

        moment = at or datetime.now()
        if self.postfix == TableNamePostfix.TODAY:
            return f"{self.name}_{moment:%Y_%m_%d}"
        if self.postfix == TableNamePostfix.MONDAY:
            monday = moment - timedelta(days=moment.weekday())
            return f"{self.name}_{monday:%Y_%m_%d}"
        if self.postfix == TableNamePostfix.MONTH:
            return f"{self.name}_{moment:%Y_%m}_01"
        return self.name


@dataclass(frozen=True, slots=True)
class Column:
    """One storable or extractable field of an entity."""

    name: str
    data_type: str
    multi: bool = False
    option: PropertyOption = PropertyOption.NONE
    selector: BaseSelector | None = None
    formatters: Tuple[Formatter, ...] = ()
    not_null: bool = False
    ignore_store: bool = False
    length: int = 0

    @property
    def is_string(self) -> bool:
        return self.data_type == DataTypeNames.STRING


def _freeze_links(links: Mapping[str, LinkToNext] | None) -> Mapping[str, LinkToNext]:
    return MappingProxyType(dict(links or {}))


@dataclass(frozen=True, slots=True)
class EntityDefine:
    """Compiled schema for one entity type.

    Attributes:
        name: Fully-qualified identifier of the declared entity.
        columns: Columns in declaration order.
        multi: True when an entity selector is declared.
        take: Optional cap on matches per document.
        selector: Selector locating candidate matches.
        target_urls_selectors: Selectors used to discover follow-up URLs.
        link_to_nexts: Follow-link directives keyed by column name.
        shared_values: Values propagated from the parent extraction context.
        table_info: Persistence metadata, absent for extraction-only entities.
        data_handler: Optional post-extraction transform, opaque here.
    """

    name: str
    columns: Tuple[Column, ...] = ()
    multi: bool = False
    take: int | None = None
    selector: BaseSelector | None = None
    target_urls_selectors: Tuple[TargetUrlsSelector, ...] = ()
    link_to_nexts: Mapping[str, LinkToNext] = field(default_factory=lambda: MappingProxyType({}))
    shared_values: Tuple[SharedValueSelector, ...] = ()
    table_info: Optional[TableInfo] = None
    data_handler: Any = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.link_to_nexts, MappingProxyType):
            object.__setattr__(self, "link_to_nexts", _freeze_links(self.link_to_nexts))

    @property
    def storable_columns(self) -> Tuple[Column, ...]:
        """Tuple[Column, ...]: Columns that are persisted by pipelines."""

        return tuple(column for column in self.columns if not column.ignore_store)

    def column(self, name: str) -> Column | None:
        """Return the column called ``name`` or ``None``."""

        for candidate in self.columns:
            if candidate.name == name:
                return candidate
        return None


__all__ = ["DataTypeNames", "TableNamePostfix", "TableInfo", "Column", "EntityDefine"]
