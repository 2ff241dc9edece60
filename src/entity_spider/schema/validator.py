"""Table schema validation for compiled entities.

:func:`validate_entity_define` is a pure function: it either returns a new,
normalized :class:`EntityDefine` or raises a :class:`SchemaError` subclass.
The input instance is never modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Sequence, Tuple, Type

from entity_spider.errors import (
    EmptySchemaError,
    InvalidIndexError,
    InvalidPrimaryError,
    InvalidUniqueError,
    InvalidUpdateColumnsError,
    SchemaError,
)
from entity_spider.model import Column, EntityDefine, TableInfo
from entity_spider.settings import DEFAULT_IDENTITY_COLUMN, Settings

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationRules:
    """Constants the validator checks against."""

    identity_column: str = DEFAULT_IDENTITY_COLUMN
    max_key_length: int = 256

    @classmethod
    def from_settings(cls, settings: Settings) -> "ValidationRules":
        return cls(
            identity_column=settings.schema_rules.identity_column,
            max_key_length=settings.schema_rules.max_key_length,
        )


def split_column_group(raw: str | None) -> Tuple[str, ...]:
    """Split a comma-separated column group into trimmed, unique names.

    Empty items are dropped and first-occurrence order is kept, so
    ``"a, a ,b"`` yields ``("a", "b")``.
    """

    items: list[str] = []
    for chunk in (raw or "").split(","):
        name = chunk.strip()
        if name and name not in items:
            items.append(name)
    return tuple(items)


def validate_entity_define(entity: EntityDefine, rules: ValidationRules | None = None) -> EntityDefine:
    """Validate and normalize the table metadata of ``entity``.

    Args:
        entity: Entity produced by the column builder.
        rules: Identity column and key length bound. Defaults apply when ``None``.

    Returns:
        A new :class:`EntityDefine` whose ``table_info`` is canonical and whose
        primary-key columns are marked ``not_null``. Entities without table
        metadata are returned unchanged.

    Raises:
        EmptySchemaError: No column is storable.
        InvalidPrimaryError: A primary column is missing or violates the length bound.
        InvalidUpdateColumnsError: An update column is missing, or none remain after
            removing the primary key.
        InvalidIndexError: An index group is invalid.
        InvalidUniqueError: A unique group is invalid.
    """

    resolved_rules = rules or ValidationRules()
    columns: Dict[str, Column] = {column.name: column for column in entity.storable_columns}
    if not columns:
        raise EmptySchemaError("Columns is necessary", entity=entity.name)

    table = entity.table_info
    if table is None:
        return entity

    primary_columns = _resolve_primary(entity.name, table, columns, resolved_rules)
    primary = ",".join(primary_columns)
    update_columns = _resolve_update_columns(entity.name, table.update_columns, primary_columns, columns)
    indexs = _normalize_groups(
        entity.name, table.indexs, primary, columns, resolved_rules, InvalidIndexError, "index"
    )
    uniques = _normalize_groups(
        entity.name, table.uniques, primary, columns, resolved_rules, InvalidUniqueError, "unique"
    )

    normalized_columns = tuple(
        replace(column, not_null=True)
        if column.name in primary_columns and not column.ignore_store and not column.not_null
        else column
        for column in entity.columns
    )
    normalized_table = replace(
        table,
        primary=primary,
        update_columns=update_columns,
        indexs=indexs,
        uniques=uniques,
    )
    LOGGER.debug(
        "Validated table %s for %s: primary=%s indexs=%s uniques=%s",
        normalized_table.name,
        entity.name,
        primary,
        indexs,
        uniques,
    )
    return replace(entity, columns=normalized_columns, table_info=normalized_table)


def _check_key_length(
    entity_name: str,
    column: Column,
    rules: ValidationRules,
    error_cls: Type[SchemaError],
    role: str,
) -> None:
    if column.is_string and (column.length <= 0 or column.length > rules.max_key_length):
        raise error_cls(
            f"Column length of {role} should be between 1 and {rules.max_key_length}: "
            f"'{column.name}' has length {column.length}",
            entity=entity_name,
        )


def _resolve_primary(
    entity_name: str,
    table: TableInfo,
    columns: Dict[str, Column],
    rules: ValidationRules,
) -> Tuple[str, ...]:
    items = split_column_group(table.primary)
    if not items or items == (rules.identity_column,):
        return (rules.identity_column,)

    for item in items:
        column = columns.get(item)
        if column is None:
            raise InvalidPrimaryError(
                f"Column '{item}' set as primary is not a property of your entity",
                entity=entity_name,
            )
        _check_key_length(entity_name, column, rules, InvalidPrimaryError, "primary")
    return items


def _resolve_update_columns(
    entity_name: str,
    declared: Sequence[str],
    primary_columns: Tuple[str, ...],
    columns: Dict[str, Column],
) -> Tuple[str, ...]:
    if not declared:
        return ()

    names: list[str] = []
    for raw in declared:
        name = (raw or "").strip()
        if name not in columns:
            raise InvalidUpdateColumnsError(
                f"Column '{name}' set as update is not a property of your entity",
                entity=entity_name,
            )
        if name not in names:
            names.append(name)

    remaining = tuple(name for name in names if name not in primary_columns)
    if not remaining:
        raise InvalidUpdateColumnsError("There is no column need update", entity=entity_name)
    return remaining


def _normalize_groups(
    entity_name: str,
    groups: Sequence[str],
    primary: str,
    columns: Dict[str, Column],
    rules: ValidationRules,
    error_cls: Type[SchemaError],
    role: str,
) -> Tuple[str, ...]:
    normalized: list[str] = []
    for group in groups:
        items = split_column_group(group)
        if not items:
            raise error_cls(f"{role.capitalize()} should contain at least one column", entity=entity_name)
        if len(items) == 1 and items[0] == primary:
            raise error_cls(f"Primary is no need to create another {role}", entity=entity_name)
        for item in items:
            column = columns.get(item)
            if column is None:
                raise error_cls(
                    f"Column '{item}' set as {role} is not a property of your entity",
                    entity=entity_name,
                )
            _check_key_length(entity_name, column, rules, error_cls, role)
        canonical = ",".join(items)
        if canonical not in normalized:
            normalized.append(canonical)
    return tuple(normalized)


__all__ = ["ValidationRules", "split_column_group", "validate_entity_define"]
