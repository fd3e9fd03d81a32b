"""
Abstract Storage Interface

DESIGN DECISION: The application state is ONE document. Storage only
knows how to read and write that document (and append audit events);
all record-level logic lives in the store. This allows us to:
1. Keep the state in a local JSON file (the default)
2. Use in-memory storage for testing
3. Move the document elsewhere later without touching business logic
"""

from abc import ABC, abstractmethod
from typing import Optional

from moneygrowth.models.audit import AuditEvent
from moneygrowth.models.finance import AppState


class StateStorageInterface(ABC):
    """
    Abstract interface for persisting the application state.
    """

    @abstractmethod
    async def load_state(self) -> Optional[AppState]:
        """
        Read the stored state.

        Returns:
            The stored state, or None if nothing has been saved yet

        Raises:
            StorageError: If the stored document cannot be read or validated
        """
        pass

    @abstractmethod
    async def save_state(self, state: AppState) -> bool:
        """
        Overwrite the stored state.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """Remove the stored state. Returns True if something was removed."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event.

        Returns:
            True if appended successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events, newest first.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Raised when a requested record doesn't exist."""
    pass


class ImportValidationError(StorageError):
    """
    Raised when an imported backup is not valid JSON or not a valid state.

    The message is meant to be shown to the user as-is.
    """
    pass
