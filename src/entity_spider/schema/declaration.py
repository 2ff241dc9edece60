"""Explicit entity declarations consumed by the schema compiler.

Entities are described with a builder rather than discovered from class
attributes::

    product = (
        EntityDeclaration("shop.Product")
        .with_table(TableInfo(name="products", primary="sku", uniques=("name",)))
        .with_selector(EntitySelector(expression="//div[@class='item']"))
        .field("sku", str, PropertyDefine(expression="./@data-sku", length=32))
        .field("name", str, PropertyDefine(expression=".//h2", length=128))
        .field("price", float, PropertyDefine(expression=".//span[@class='price']"))
        .field("tags", list[str], PropertyDefine(expression=".//li"))
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Tuple

from entity_spider.errors import SchemaError
from entity_spider.model import (
    EntitySelector,
    Formatter,
    LinkToNext,
    PropertyDefine,
    SharedValueSelector,
    TableInfo,
    TargetUrlsSelector,
)


@dataclass(frozen=True, slots=True)
class FieldDeclaration:
    """A declared field and its annotations.

    Attributes:
        name: Field name, becomes the column name.
        annotation: Declared Python type (``str``, ``int``, ``list[str]`` ...)
            or a semantic type tag string.
        define: Extraction/storage metadata. Fields without it never become columns.
        formatters: Formatters applied in order during extraction.
        link_to_next: Marks the extracted value as a URL to follow.
    """

    name: str
    annotation: Any
    define: Optional[PropertyDefine] = None
    formatters: Tuple[Formatter, ...] = ()
    link_to_next: Optional[LinkToNext] = None


class EntityDeclaration:
    """Declarative description of one entity type."""

    def __init__(
        self,
        name: str,
        *,
        table: TableInfo | None = None,
        selector: EntitySelector | None = None,
        target_urls: Iterable[TargetUrlsSelector] = (),
        shared_values: Iterable[SharedValueSelector] = (),
    ) -> None:
        if not name or not name.strip():
            raise SchemaError("EntityDeclaration requires a non-empty name")
        self.name = name.strip()
        self.table = table
        self.selector = selector
        self.target_urls: list[TargetUrlsSelector] = list(target_urls)
        self.shared_values: list[SharedValueSelector] = list(shared_values)
        self._fields: list[FieldDeclaration] = []

    @property
    def fields(self) -> Tuple[FieldDeclaration, ...]:
        return tuple(self._fields)

    def field(
        self,
        name: str,
        annotation: Any,
        define: PropertyDefine | None = None,
        *,
        formatters: Sequence[Formatter] = (),
        link_to_next: LinkToNext | None = None,
    ) -> "EntityDeclaration":
        """Declare a field and return the declaration for chaining."""

        if not name:
            raise SchemaError("Field name must be a non-empty string", entity=self.name)
        if any(existing.name == name for existing in self._fields):
            raise SchemaError(f"Field '{name}' is already declared", entity=self.name)
        self._fields.append(
            FieldDeclaration(
                name=name,
                annotation=annotation,
                define=define,
                formatters=tuple(formatters),
                link_to_next=link_to_next,
            )
        )
        return self

    def with_table(self, table: TableInfo) -> "EntityDeclaration":
        self.table = table
        return self

    def with_selector(self, selector: EntitySelector) -> "EntityDeclaration":
        self.selector = selector
        return self

    def add_target_urls(self, selector: TargetUrlsSelector) -> "EntityDeclaration":
        self.target_urls.append(selector)
        return self

    def add_shared_value(self, shared_value: SharedValueSelector) -> "EntityDeclaration":
        self.shared_values.append(shared_value)
        return self

    def __repr__(self) -> str:
        return f"EntityDeclaration(name={self.name!r}, fields={[f.name for f in self._fields]!r})"


__all__ = ["EntityDeclaration", "FieldDeclaration"]
