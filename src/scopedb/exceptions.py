"""Custom exceptions for scopedb.

Every error carries a message plus a context dict so callers (and the CLI's
JSON mode) can render it without parsing strings.
"""

from __future__ import annotations

from typing import Any


class ScopeDBError(Exception):
    """Base exception for all scopedb errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class SchemaError(ScopeDBError):
    """An entity declaration or shop association is inconsistent."""

    pass


class EntityNotFoundError(ScopeDBError):
    """Entity type is not registered."""

    def __init__(self, entity_name: str, available_entities: list[str] | None = None) -> None:
        available = available_entities or []
        if available:
            message = (
                f"Entity '{entity_name}' is not registered. "
                f"Registered entities: {', '.join(available)}"
            )
        else:
            message = f"Entity '{entity_name}' is not registered. No entities registered yet."

        super().__init__(message, {"entity_name": entity_name, "available_entities": available})
        self.entity_name = entity_name
        self.available_entities = available


class FieldNotFoundError(ScopeDBError):
    """Field does not exist on entity."""

    def __init__(
        self, field_name: str, entity_name: str, available_fields: list[str] | None = None
    ) -> None:
        available = available_fields or []
        if available:
            message = (
                f"Field '{field_name}' not found on '{entity_name}'. "
                f"Available fields: {', '.join(available)}"
            )
        else:
            message = f"Field '{field_name}' not found on '{entity_name}'. No fields defined."

        super().__init__(
            message,
            {
                "field_name": field_name,
                "entity_name": entity_name,
                "available_fields": available,
            },
        )
        self.field_name = field_name
        self.entity_name = entity_name
        self.available_fields = available


class ValidationError(ScopeDBError):
    """One or more field values failed validation.

    Raised before any statement reaches the store.
    """

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message, {"field_errors": field_errors or {}})
        self.field_errors = field_errors or {}


class StateError(ScopeDBError):
    """Operation is not valid for the instance's lifecycle state."""

    def __init__(self, operation: str, entity_name: str, reason: str) -> None:
        message = f"Cannot {operation} '{entity_name}': {reason}"
        super().__init__(
            message, {"operation": operation, "entity_name": entity_name, "reason": reason}
        )
        self.operation = operation
        self.entity_name = entity_name


class RecordNotFoundError(ScopeDBError):
    """No row exists for the requested identity and context."""

    def __init__(
        self,
        record_id: int,
        entity_name: str,
        language_id: int | None = None,
        shop_id: int | None = None,
    ) -> None:
        message = f"Record '{record_id}' not found in '{entity_name}'"
        if shop_id is not None:
            message += f" for shop {shop_id}"
        super().__init__(
            message + ".",
            {
                "record_id": record_id,
                "entity_name": entity_name,
                "language_id": language_id,
                "shop_id": shop_id,
            },
        )
        self.record_id = record_id
        self.entity_name = entity_name
        self.language_id = language_id
        self.shop_id = shop_id


class PersistenceError(ScopeDBError):
    """The backing store rejected or failed a statement."""

    pass


class ConnectionError(PersistenceError):
    """Failed to connect to the database."""

    pass
