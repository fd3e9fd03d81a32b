"""
Audit Models for MoneyGrowth

Every significant action (persistence, imports, exports, AI calls,
assistant-made changes) produces an AuditEvent. This gives:
1. Traceability of what changed the user's data
2. Debugging information when an AI call or an import fails
3. A history the user can inspect from the Settings page

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""

    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_SAVED = "state_saved"
    STATE_RESET = "state_reset"
    STATE_LOAD_FAILED = "state_load_failed"

    # Backup exchange
    STATE_IMPORTED = "state_imported"
    IMPORT_REJECTED = "import_rejected"
    STATE_EXPORTED = "state_exported"
    CSV_EXPORTED = "csv_exported"
    REPORT_EXPORTED = "report_exported"

    # AI
    AI_REQUEST_COMPLETED = "ai_request_completed"
    AI_REQUEST_FAILED = "ai_request_failed"
    ASSISTANT_TRANSACTION_ADDED = "assistant_transaction_added"
    BUDGETS_SUGGESTED = "budgets_suggested"

    # Gamification
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about? ("state", "credit", "transaction"...)
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events of one user action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """One line of the JSON-lines audit file."""
        return json.dumps(self.to_log_dict(), ensure_ascii=False, default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.state_imported(users=2, correlation_id=cid)
        await audit_logger.log(event)
    """

    @staticmethod
    def state_loaded(
        users: int,
        transactions: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            entity_type="state",
            correlation_id=correlation_id,
            description=f"State loaded: {users} user(s), {transactions} transaction(s)",
            details={"users": users, "transactions": transactions},
        )

    @staticmethod
    def state_load_failed(
        error: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="state",
            correlation_id=correlation_id,
            description="Stored state could not be read, starting fresh",
            error_message=error,
        )

    @staticmethod
    def state_saved(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="state",
            correlation_id=correlation_id,
            description="State saved",
        )

    @staticmethod
    def state_reset(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            correlation_id=correlation_id,
            description="All data was erased by the user",
            is_user_action=True,
        )

    @staticmethod
    def state_imported(
        users: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_IMPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            correlation_id=correlation_id,
            description=f"Backup imported with {users} user(s); previous state overwritten",
            details={"users": users},
            is_user_action=True,
        )

    @staticmethod
    def import_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            correlation_id=correlation_id,
            description="Backup import rejected",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def exported(
        event_type: AuditEventType,
        file_name: str,
        size: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        """Any download: full backup, accounting CSV or monthly report."""
        return AuditEvent(
            event_type=event_type,
            entity_type="export",
            entity_id=file_name,
            correlation_id=correlation_id,
            description=f"Exported {file_name}",
            details={"size": size},
            is_user_action=True,
        )

    @staticmethod
    def ai_request_completed(
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_REQUEST_COMPLETED,
            entity_type="ai",
            entity_id=operation,
            correlation_id=correlation_id,
            description=f"AI operation '{operation}' completed",
        )

    @staticmethod
    def ai_request_failed(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_REQUEST_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="ai",
            entity_id=operation,
            correlation_id=correlation_id,
            description=f"AI operation '{operation}' fell back",
            error_message=error_message,
        )

    @staticmethod
    def assistant_transaction_added(
        transaction_id: str,
        transaction_type: str,
        amount: float,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Assistant added {transaction_type} of {amount:.2f} in '{category}'",
            details={"type": transaction_type, "amount": amount, "category": category},
        )

    @staticmethod
    def budgets_suggested(
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGETS_SUGGESTED,
            entity_type="budget",
            correlation_id=correlation_id,
            description=f"{count} AI-suggested budget(s) created",
            details={"count": count},
            is_user_action=True,
        )

    @staticmethod
    def achievement_unlocked(
        achievement_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACHIEVEMENT_UNLOCKED,
            entity_type="achievement",
            entity_id=achievement_id,
            correlation_id=correlation_id,
            description=f"Achievement unlocked: {achievement_id}",
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="service",
            entity_id=service,
            correlation_id=correlation_id,
            description=f"External service error: {service}",
            error_message=error_message,
        )
