"""Exception hierarchy for entity registration and storage pipelines."""

from __future__ import annotations

from typing import Sequence


class SpiderError(RuntimeError):
    """Base class for every error raised by entity_spider."""


class SchemaError(SpiderError):
    """Raised when an entity declaration cannot be compiled into a valid schema."""

    def __init__(self, message: str, *, entity: str | None = None) -> None:
        self.entity = entity
        if entity:
            message = f"{message} (entity: {entity})"
        super().__init__(message)


class ReservedNameError(SchemaError):
    """A declared field reuses a reserved default property name."""

    def __init__(self, names: Sequence[str], *, entity: str | None = None) -> None:
        self.names = tuple(names)
        joined = ", ".join(self.names)
        super().__init__(f"{joined} is not available because it's a default property", entity=entity)


class InvalidLengthError(SchemaError):
    """A non-string column declares a positive length."""


class EmptySchemaError(SchemaError):
    """An entity has no storable columns."""


class InvalidPrimaryError(SchemaError):
    """The primary key references a missing column or violates the key length bound."""


class InvalidUpdateColumnsError(SchemaError):
    """Update columns reference missing columns or resolve to an empty set."""


class InvalidIndexError(SchemaError):
    """An index group is degenerate, references a missing column or violates the key length bound."""


class InvalidUniqueError(SchemaError):
    """A unique group is degenerate, references a missing column or violates the key length bound."""


class NotAnEntityError(SpiderError):
    """Raised when a registered object is not an entity declaration."""


class LifecycleError(SpiderError):
    """Raised when setup operations run after the spider has started."""


class PipelineError(SpiderError):
    """Raised when a storage pipeline cannot persist records."""


__all__ = [
    "SpiderError",
    "SchemaError",
    "ReservedNameError",
    "InvalidLengthError",
    "EmptySchemaError",
    "InvalidPrimaryError",
    "InvalidUpdateColumnsError",
    "InvalidIndexError",
    "InvalidUniqueError",
    "NotAnEntityError",
    "LifecycleError",
    "PipelineError",
]
