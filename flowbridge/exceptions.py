"""Exception types raised inside the conversion engine.

Only the orchestrator turns these into log entries. Everything below it
raises normally and lets the per-entity or top-level guard decide.
"""

from typing import Any


class ConversionError(Exception):
    """Base class for conversion engine errors."""


class StructuralValidationError(ConversionError):
    """Input workflow does not match its platform schema."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        detail = ", ".join(self.errors) if self.errors else "Unknown error"
        super().__init__(f"Invalid workflow format - {detail}")


class MappingNotFoundError(ConversionError):
    """No mapping definition exists for an entity type."""

    def __init__(self, entity_type: str, direction: Any):
        self.entity_type = entity_type
        self.direction = direction
        super().__init__(f"No mapping found for type '{entity_type}' ({direction})")


class ExpressionSyntaxError(ConversionError):
    """Expression content is outside the supported grammar subset."""

    def __init__(self, content: str, reason: str = ""):
        self.content = content
        self.reason = reason
        message = f"Unsupported expression syntax: {content!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MappingRefreshError(ConversionError):
    """Remote mapping document could not be fetched or parsed."""
