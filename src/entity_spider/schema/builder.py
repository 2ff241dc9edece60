"""Compile entity declarations into :class:`EntityDefine` instances."""

from __future__ import annotations

import collections.abc
import logging
import types
import typing
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple

from entity_spider.errors import InvalidLengthError, ReservedNameError
from entity_spider.model import BaseSelector, Column, DataTypeNames, EntityDefine, LinkToNext, TableInfo
from entity_spider.schema.declaration import EntityDeclaration, FieldDeclaration
from entity_spider.schema.validator import ValidationRules, validate_entity_define
from entity_spider.settings import DEFAULT_CREATION_COLUMN, DEFAULT_IDENTITY_COLUMN, Settings

LOGGER = logging.getLogger(__name__)

DEFAULT_RESERVED_NAMES = frozenset({DEFAULT_CREATION_COLUMN, DEFAULT_IDENTITY_COLUMN})

_SCALAR_TAGS: Dict[Any, str] = {
    str: DataTypeNames.STRING,
    int: DataTypeNames.INT,
    float: DataTypeNames.FLOAT,
    bool: DataTypeNames.BOOL,
    Decimal: DataTypeNames.DECIMAL,
    datetime: DataTypeNames.DATETIME,
    date: DataTypeNames.DATE,
    bytes: DataTypeNames.BYTES,
}

_SCALAR_NAMES: Dict[str, str] = {scalar.__name__.lower(): tag for scalar, tag in _SCALAR_TAGS.items()}

_LIST_LIKE = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.Iterable,
)


def resolve_field_type(annotation: Any) -> Tuple[str, bool]:
    """Return ``(data_type, multi)`` for a declared field type.

    ``Optional[X]`` resolves like ``X``; list-like containers resolve to their
    element type with ``multi`` set. Strings naming a scalar type (``"str"``,
    ``"int"`` ...) resolve like the type itself; other strings are used as tags.
    """

    if isinstance(annotation, str):
        name = annotation.strip().lower()
        return _SCALAR_NAMES.get(name, name), False

    origin = typing.get_origin(annotation)
    if origin in (typing.Union, types.UnionType):
        members = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(members) == 1:
            return resolve_field_type(members[0])
        return "object", False

    if annotation in _LIST_LIKE:
        return "object", True
    if origin in _LIST_LIKE:
        args = [arg for arg in typing.get_args(annotation) if arg is not Ellipsis]
        element_type = resolve_field_type(args[0])[0] if args else "object"
        return element_type, True

    if annotation in _SCALAR_TAGS:
        return _SCALAR_TAGS[annotation], False
    return getattr(annotation, "__name__", str(annotation)).lower(), False


def _dedupe_groups(groups: Iterable[str]) -> Tuple[str, ...]:
    """Drop duplicate index/unique groups compared without whitespace."""

    deduped: list[str] = []
    for group in groups:
        compact = "".join((group or "").split())
        if compact not in deduped:
            deduped.append(compact)
    return tuple(deduped)


class ColumnBuilder:
    """Turn declared fields into columns, rejecting reserved names."""

    def __init__(self, reserved_names: Iterable[str] = DEFAULT_RESERVED_NAMES) -> None:
        self.reserved_names = frozenset(name.lower() for name in reserved_names)

    def check_reserved_names(self, declaration: EntityDeclaration) -> None:
        """Raise :class:`ReservedNameError` naming every offending field."""

        offending = [item.name for item in declaration.fields if item.name.lower() in self.reserved_names]
        if offending:
            raise ReservedNameError(offending, entity=declaration.name)

    def build_column(self, item: FieldDeclaration, *, entity_name: str | None = None) -> Optional[Column]:
        """Return the column for ``item`` or ``None`` if it carries no metadata."""

        define = item.define
        if define is None:
            return None

        data_type, multi = resolve_field_type(item.annotation)
        if data_type != DataTypeNames.STRING and define.length > 0:
            raise InvalidLengthError(
                f"Only string property can set length: '{item.name}' is {data_type}",
                entity=entity_name,
            )

        return Column(
            name=item.name,
            data_type=data_type,
            multi=multi,
            option=define.option,
            selector=BaseSelector(expression=define.expression, type=define.type, argument=define.argument),
            formatters=item.formatters,
            not_null=define.not_null,
            ignore_store=define.ignore_store,
            length=define.length,
        )

    def build_columns(self, declaration: EntityDeclaration) -> Tuple[Tuple[Column, ...], Dict[str, LinkToNext]]:
        """Build every column of ``declaration`` plus its follow-link directives."""

        self.check_reserved_names(declaration)
        columns: list[Column] = []
        links: Dict[str, LinkToNext] = {}
        for item in declaration.fields:
            column = self.build_column(item, entity_name=declaration.name)
            if column is None:
                continue
            if item.link_to_next is not None:
                links[column.name] = replace(item.link_to_next, property_name=column.name)
            columns.append(column)
        return tuple(columns), links


def read_declaration(
    declaration: EntityDeclaration,
    *,
    column_builder: ColumnBuilder | None = None,
) -> EntityDefine:
    """Produce an unvalidated :class:`EntityDefine` skeleton from ``declaration``."""

    builder = column_builder or ColumnBuilder()
    columns, links = builder.build_columns(declaration)

    table: TableInfo | None = declaration.table
    if table is not None:
        table = replace(table, indexs=_dedupe_groups(table.indexs), uniques=_dedupe_groups(table.uniques))

    selector = declaration.selector
    return EntityDefine(
        name=declaration.name,
        columns=columns,
        multi=selector is not None,
        take=selector.take if selector is not None else None,
        selector=BaseSelector(expression=selector.expression, type=selector.type) if selector is not None else None,
        target_urls_selectors=tuple(declaration.target_urls),
        link_to_nexts=links,
        shared_values=tuple(declaration.shared_values),
        table_info=table,
    )


def build_entity_define(
    declaration: EntityDeclaration,
    *,
    settings: Settings | None = None,
    column_builder: ColumnBuilder | None = None,
    rules: ValidationRules | None = None,
) -> EntityDefine:
    """Read, build and validate ``declaration`` in one step.

    Args:
        declaration: Entity declaration to compile.
        settings: Source of reserved names and validation rules when the
            explicit collaborators are not supplied.
        column_builder: Column builder carrying the reserved-name set.
        rules: Validation rules for the table schema validator.

    Returns:
        The validated, immutable :class:`EntityDefine`.
    """

    if column_builder is None:
        reserved = settings.reserved_columns if settings is not None else DEFAULT_RESERVED_NAMES
        column_builder = ColumnBuilder(reserved)
    if rules is None:
        rules = ValidationRules.from_settings(settings) if settings is not None else ValidationRules()

    skeleton = read_declaration(declaration, column_builder=column_builder)
    return validate_entity_define(skeleton, rules)


__all__ = [
    "ColumnBuilder",
    "DEFAULT_RESERVED_NAMES",
    "build_entity_define",
    "read_declaration",
    "resolve_field_type",
]
