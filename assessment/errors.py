"""Error taxonomy shared by the identity and group directories."""
from __future__ import annotations

from typing import Optional


class IdentityError(Exception):
    """Base class for failures raised inside the identity core."""


class ValidationError(IdentityError):
    """Raised when an argument has the wrong shape, e.g. a malformed identifier."""


class NotFoundError(IdentityError):
    """Raised when a lookup matches zero records, or more than one."""


class DuplicateError(IdentityError):
    """Raised when creating a record would violate a uniqueness constraint."""

    def __init__(self, value: str, message: Optional[str] = None) -> None:
        self.value = value
        super().__init__(message or f"Duplicate value: '{value}' already exists.")


class PermissionDeniedError(IdentityError):
    """Raised for updates outside the field whitelist or without a logged-in identity."""


class StorageError(IdentityError):
    """Raised for any persistence failure that has no more specific meaning."""


class UniqueConstraintViolation(StorageError):
    """Signalled by the document store when an insert collides with a unique index."""

    def __init__(self, collection: str, field: str, value: object) -> None:
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"Unique constraint failed: {collection}.{field} = {value!r}")


__all__ = [
    "DuplicateError",
    "IdentityError",
    "NotFoundError",
    "PermissionDeniedError",
    "StorageError",
    "UniqueConstraintViolation",
    "ValidationError",
]
