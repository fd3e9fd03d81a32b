"""Services package."""

from moneygrowth.services.storage import (
    AuditStorageInterface,
    ImportValidationError,
    InMemoryAuditStorage,
    InMemoryStateStorage,
    JsonFileStateStorage,
    JsonLinesAuditStorage,
    NotFoundError,
    StateStorageInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ImportValidationError",
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "JsonLinesAuditStorage",
    "NotFoundError",
    "StateStorageInterface",
    "StorageError",
]
