"""
Local JSON Storage Implementation

The state is kept in a single JSON document, keyed by the configured
state key (default "finanzen-app-state-v3"), the same way a browser
keeps it in local storage. Audit events go to a JSON-lines file.

In-memory variants are provided for tests and for running without a disk.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from moneygrowth.config import get_settings
from moneygrowth.models.audit import AuditEvent
from moneygrowth.models.finance import AppState
from moneygrowth.services.storage.interface import (
    AuditStorageInterface,
    StateStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class JsonFileStateStorage(StateStorageInterface):
    """
    File-backed state storage.

    The file holds {state_key: state}. Other keys in the document are
    preserved on write.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        state_key: Optional[str] = None,
    ):
        if path is None or state_key is None:
            settings = get_settings().storage
            path = path or settings.state_file
            state_key = state_key or settings.state_key
        self._path = Path(path)
        self._state_key = state_key

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                document = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read state file {self._path}: {e}") from e
        if not isinstance(document, dict):
            raise StorageError(f"State file {self._path} is not a JSON object")
        return document

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
    )
    def _write_document(self, document: dict) -> None:
        """Write atomically: temp file in the same directory, then rename."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=".state-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def load_state(self) -> Optional[AppState]:
        document = self._read_document()
        raw = document.get(self._state_key)
        if raw is None:
            return None
        try:
            return AppState.model_validate(raw)
        except ValidationError as e:
            raise StorageError(
                f"Stored state under '{self._state_key}' is invalid: "
                f"{e.error_count()} validation error(s)"
            ) from e

    async def save_state(self, state: AppState) -> bool:
        try:
            document = self._read_document()
        except StorageError:
            # Unreadable document is replaced rather than blocking every save
            logger.warning("state_document_replaced", path=str(self._path))
            document = {}
        document[self._state_key] = state.to_json_dict()
        try:
            self._write_document(document)
        except OSError as e:
            raise StorageError(f"Failed to save state: {e}") from e
        return True

    async def clear(self) -> bool:
        document = self._read_document()
        if self._state_key not in document:
            return False
        del document[self._state_key]
        try:
            self._write_document(document)
        except OSError as e:
            raise StorageError(f"Failed to clear state: {e}") from e
        return True


class InMemoryStateStorage(StateStorageInterface):
    """Keeps the serialized state in memory. Used by tests."""

    def __init__(self, initial: Optional[dict] = None):
        self._document: Optional[dict] = initial
        self.save_count = 0

    async def load_state(self) -> Optional[AppState]:
        if self._document is None:
            return None
        try:
            return AppState.model_validate(self._document)
        except ValidationError as e:
            raise StorageError(f"Stored state is invalid: {e.error_count()} error(s)") from e

    async def save_state(self, state: AppState) -> bool:
        self._document = state.to_json_dict()
        self.save_count += 1
        return True

    async def clear(self) -> bool:
        existed = self._document is not None
        self._document = None
        return existed


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only audit trail, one JSON object per line.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as fh:
                fh.write(event.to_json_line() + "\n")
            return True
        except OSError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_write_failed", error=str(e), path=str(self._path))
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}") from e

        events = []
        for line in lines:
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValidationError:
                logger.warning("audit_line_skipped", path=str(self._path))
                continue

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit storage for tests."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
