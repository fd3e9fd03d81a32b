"""Storage services package."""

from moneygrowth.services.storage.interface import (
    AuditStorageInterface,
    ImportValidationError,
    NotFoundError,
    StateStorageInterface,
    StorageError,
)
from moneygrowth.services.storage.local_json import (
    InMemoryAuditStorage,
    InMemoryStateStorage,
    JsonFileStateStorage,
    JsonLinesAuditStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "StateStorageInterface",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "JsonLinesAuditStorage",
    # Exceptions
    "ImportValidationError",
    "NotFoundError",
    "StorageError",
]
