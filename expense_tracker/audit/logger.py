"""
Audit Logger

DESIGN DECISION: Every change to stored expenses is logged.
This provides:
1. Traceability of adds, edits, deletes and bulk imports
2. Debugging capability when input is rejected

The audit logger:
- Is async so flows can await it alongside storage calls
- Swallows its own failures: a broken log sink never fails an expense write
- Tags every event of one user action with the same correlation id
"""

import logging
import sys
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


logger = structlog.get_logger(__name__)

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """
    Configure stdlib logging and structlog for JSON output.

    Safe to call more than once; only the first call takes effect.
    """
    global _configured
    if _configured:
        return

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
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
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


class AuditLogger:
    """
    Writes audit events through structlog and remembers the most recent ones.

    Each event is one log line at the level matching its severity.
    """

    def __init__(
        self,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        history_size: int = 200,
    ):
        """
        Initialize audit logger.

        Args:
            logger: structlog logger to write to
            history_size: How many recent events to keep in memory
        """
        self._logger = logger or structlog.get_logger("expense_tracker.audit")
        self._events: deque[AuditEvent] = deque(maxlen=history_size)

    @property
    def events(self) -> list[AuditEvent]:
        """Recent events logged by this instance, oldest first."""
        return list(self._events)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written, False if logging failed.
        Never raises into the caller.
        """
        self._events.append(event)
        log_dict = event.to_log_dict()
        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
                event_type=event.event_type.value,
            )
            return False
        return True

    async def log_expense_added(
        self,
        expense_id: str,
        category: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        """Log a single expense being stored."""
        await self.log(AuditEventBuilder.expense_added(
            expense_id=expense_id,
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        expense_id: str,
        category: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        """Log an expense edit."""
        await self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_bulk_import(
        self,
        inserted_count: int,
        defaulted_count: int,
        batch_date: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.bulk_import_completed(
            inserted_count=inserted_count,
            defaulted_count=defaulted_count,
            batch_date=batch_date,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        field: str,
        message: str,
        row: Optional[int],
        correlation_id: UUID,
    ) -> None:
        """Log rejected input."""
        await self.log(AuditEventBuilder.validation_failed(
            field=field,
            message=message,
            row=row,
            correlation_id=correlation_id,
        ))

    async def log_summary_generated(
        self,
        period: str,
        record_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.summary_generated(
            period=period,
            record_count=record_count,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed storage call."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    New id shared by every audit event of one user action.

    Flows create one when the caller does not pass one in.
    """
    return uuid4()
