"""
Audit Models for the Expense Tracker

Each change to stored expenses, each rejected input and each storage
failure produces one AuditEvent, which the audit logger writes as a
structured log line.

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """What happened."""
    # Changes to stored expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    BULK_IMPORT_COMPLETED = "bulk_import_completed"

    # Rejected input
    VALIDATION_FAILED = "validation_failed"

    # Reporting
    SUMMARY_GENERATED = "summary_generated"

    # Backend failures
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Log level the event is written at."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """One audited action, with enough context to trace it later."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC time the event was recorded"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # The expense, batch or report period the event concerns
    entity_type: Optional[str] = Field(
        default=None,
        description="'expense', 'batch' or 'report'"
    )
    entity_id: Optional[str] = None

    # Shared by all events raised during one user action
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Flatten to JSON-friendly values for structlog."""
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
        }


class AuditEventBuilder:
    """
    One factory per AuditEventType, so every event of a type carries the
    same details keys.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, category, amount, correlation_id)
        event = AuditEventBuilder.bulk_import_completed(inserted, defaulted, batch_date, correlation_id)
    """

    @staticmethod
    def expense_added(
        expense_id: str,
        category: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense added: {category} - {amount}",
            details={
                "category": category,
                "amount": amount,
            },
        )

    @staticmethod
    def expense_updated(
        expense_id: str,
        category: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense updated: {category} - {amount}",
            details={
                "category": category,
                "amount": amount,
            },
        )

    @staticmethod
    def expense_deleted(
        expense_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense deleted: {expense_id}",
        )

    @staticmethod
    def bulk_import_completed(
        inserted_count: int,
        defaulted_count: int,
        batch_date: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BULK_IMPORT_COMPLETED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"Bulk import stored {inserted_count} expenses",
            details={
                "inserted_count": inserted_count,
                "defaulted_category_count": defaulted_count,
                "batch_date": batch_date,
            },
        )

    @staticmethod
    def validation_failed(
        field: str,
        message: str,
        row: Optional[int],
        correlation_id: UUID
    ) -> AuditEvent:
        details: dict[str, Any] = {"field": field}
        if row is not None:
            details["row"] = row
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Validation failed on field '{field}'",
            error_message=message,
            details=details,
        )

    @staticmethod
    def summary_generated(
        period: str,
        record_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_GENERATED,
            severity=AuditSeverity.DEBUG,
            entity_type="report",
            entity_id=period,
            correlation_id=correlation_id,
            description=f"Summary for {period} over {record_count} expenses",
            details={
                "record_count": record_count,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
