"""Entity schema derivation and validation."""

from entity_spider.schema.builder import (
    DEFAULT_RESERVED_NAMES,
    ColumnBuilder,
    build_entity_define,
    read_declaration,
    resolve_field_type,
)
from entity_spider.schema.declaration import EntityDeclaration, FieldDeclaration
from entity_spider.schema.validator import ValidationRules, split_column_group, validate_entity_define

__all__ = [
    "DEFAULT_RESERVED_NAMES",
    "ColumnBuilder",
    "EntityDeclaration",
    "FieldDeclaration",
    "ValidationRules",
    "build_entity_define",
    "read_declaration",
    "resolve_field_type",
    "split_column_group",
    "validate_entity_define",
]
