"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of imports, exports and assistant-made changes
2. Debugging capability for AI fallbacks
3. A history the user can inspect

The audit logger:
- Is async to match the storage interface
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from moneygrowth.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from moneygrowth.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output to stderr at the given level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("moneygrowth.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Newest events from storage (empty without storage)."""
        if not self._storage:
            return []
        return await self._storage.get_recent_events(limit=limit)

    async def log_state_loaded(
        self,
        users: int,
        transactions: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.state_loaded(
            users=users,
            transactions=transactions,
            correlation_id=correlation_id,
        ))

    async def log_state_load_failed(
        self,
        error: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.state_load_failed(
            error=error,
            correlation_id=correlation_id,
        ))

    async def log_state_saved(self, correlation_id: Optional[UUID] = None) -> None:
        await self.log(AuditEventBuilder.state_saved(correlation_id=correlation_id))

    async def log_state_reset(self, correlation_id: Optional[UUID] = None) -> None:
        await self.log(AuditEventBuilder.state_reset(correlation_id=correlation_id))

    async def log_state_imported(
        self,
        users: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a backup import that overwrote the state."""
        await self.log(AuditEventBuilder.state_imported(
            users=users,
            correlation_id=correlation_id,
        ))

    async def log_import_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.import_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_export(
        self,
        event_type: AuditEventType,
        file_name: str,
        size: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a download (backup, CSV or report)."""
        await self.log(AuditEventBuilder.exported(
            event_type=event_type,
            file_name=file_name,
            size=size,
            correlation_id=correlation_id,
        ))

    async def log_ai_completed(
        self,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.ai_request_completed(
            operation=operation,
            correlation_id=correlation_id,
        ))

    async def log_ai_failed(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.ai_request_failed(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_assistant_transaction(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: float,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction created by the chat assistant."""
        await self.log(AuditEventBuilder.assistant_transaction_added(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_budgets_suggested(
        self,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budgets_suggested(
            count=count,
            correlation_id=correlation_id,
        ))

    async def log_achievement_unlocked(
        self,
        achievement_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.achievement_unlocked(
            achievement_id=achievement_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., an import).
    Pass it through all subsequent operations.
    """
    return uuid4()
