from __future__ import annotations

from typing import Any


class SharedDatabaseError(Exception):
    """Base class for every error raised by the data-access layer."""


class ConfigurationError(SharedDatabaseError):
    """Raised when the database endpoint or credential is missing."""


class UnknownBrandError(SharedDatabaseError):
    def __init__(self, brand_id: Any) -> None:
        self.brand_id = brand_id
        super().__init__(f"Unknown brand '{brand_id}'")


class DatabaseOperationError(SharedDatabaseError):
    """A store failure wrapped with the name of the attempted operation."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.store_message = message
        super().__init__(f"Failed to {operation}: {message}")


class ConstraintViolationError(DatabaseOperationError):
    """The store rejected a write on a unique, foreign-key or not-null constraint."""


class RecordNotFoundError(SharedDatabaseError):
    def __init__(self, resource: str, record_id: Any) -> None:
        self.resource = resource
        self.record_id = record_id
        super().__init__(f"{resource} '{record_id}' not found")


class InvalidTransitionError(SharedDatabaseError):
    def __init__(self, entity: str, current: str, target: str) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Invalid {entity} transition: {current} -> {target}")
