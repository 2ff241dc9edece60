"""Declarative descriptors attached to entities and their fields.

These values are supplied by whoever declares an entity. They are carried into
the compiled :class:`~entity_spider.model.entity.EntityDefine` verbatim; the
expressions inside them are evaluated by the extraction engine, never here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple


class SelectorType(str, Enum):
    """Evaluation mode of a selector expression."""

    XPATH = "xpath"
    CSS = "css"
    REGEX = "regex"
    JSONPATH = "jsonpath"
    ENVIRONMENT = "environment"


class PropertyOption(str, Enum):
    """How the extraction engine should reduce a matched node to a value."""

    NONE = "none"
    PLAIN_TEXT = "plain_text"
    COUNT = "count"


@dataclass(frozen=True, slots=True)
class BaseSelector:
    """Expression plus evaluation mode used to locate data in a document."""

    expression: str | None = None
    type: SelectorType = SelectorType.XPATH
    argument: str | None = None


@dataclass(frozen=True, slots=True)
class EntitySelector:
    """Marks an entity as yielding zero-or-more matches per document.

    Attributes:
        expression: Selector expression locating each candidate match.
        type: Evaluation mode of ``expression``.
        take: Optional cap on the number of matches kept per document.
    """

    expression: str
    type: SelectorType = SelectorType.XPATH
    take: int | None = None


@dataclass(frozen=True, slots=True)
class TargetUrlsSelector:
    """Region of a document where follow-up URLs are discovered."""

    expression: str | None = None
    type: SelectorType = SelectorType.XPATH
    patterns: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SharedValueSelector:
    """Named value read from the parent context and shared with the entity."""

    name: str
    expression: str
    type: SelectorType = SelectorType.XPATH


@dataclass(frozen=True, slots=True)
class PropertyDefine:
    """Extraction and storage metadata for a single field.

    Attributes:
        expression: Selector expression extracting the raw value.
        type: Evaluation mode of ``expression``.
        argument: Extra argument passed to the selector (regex group, attribute name).
        not_null: Whether persisted rows must carry a value.
        ignore_store: Keep the value in memory but never persist it.
        length: Maximum length; only meaningful for string fields.
        option: Reduction applied to the matched node.
    """

    expression: str | None = None
    type: SelectorType = SelectorType.XPATH
    argument: str | None = None
    not_null: bool = False
    ignore_store: bool = False
    length: int = 0
    option: PropertyOption = PropertyOption.NONE


@dataclass(frozen=True, slots=True)
class LinkToNext:
    """Marks a field's extracted value as a URL to crawl next."""

    property_name: str | None = None
    extras: Tuple[str, ...] = ()


Formatter = Any
"""Formatters are opaque here; only their declaration order matters."""


__all__ = [
    "SelectorType",
    "PropertyOption",
    "BaseSelector",
    "EntitySelector",
    "TargetUrlsSelector",
    "SharedValueSelector",
    "PropertyDefine",
    "LinkToNext",
    "Formatter",
]
