"""
Main Orchestrator for the Expense Tracker

Wires the normalizer, storage, aggregator and audit logger into the
end-to-end flows for:
1. Expenses (raw input → normalize → store), single or bulk
2. Reports (period → list from storage → aggregate → dashboard figures)

DESIGN DECISION: The boundaries between components are enforced here:
- Nothing reaches storage without passing the normalizer
- Aggregation only ever sees records handed to it; it never queries storage
- Every change is audited

This is the "glue" the web layer calls; none of the core components know
about each other's collaborators.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from expense_tracker.aggregation import ExpenseAggregator
from expense_tracker.audit import AuditLogger, configure_logging, create_correlation_id
from expense_tracker.config import get_settings
from expense_tracker.models.expense import (
    BulkImportResult,
    ExpenseCategory,
    ExpenseRecord,
    ExpenseSummary,
    ReportPeriod,
)
from expense_tracker.reports import DashboardView, build_dashboard
from expense_tracker.services.csv_import import parse_csv_rows
from expense_tracker.services.storage import (
    ExpenseStorageInterface,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryExpenseStorage,
    StorageError,
)
from expense_tracker.validation import ExpenseNormalizer, ExpenseValidationError


logger = structlog.get_logger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ExpenseFlow:
    """
    Orchestrates adding, editing, deleting and bulk-importing expenses.

    Validation errors and storage errors are audited, then re-raised
    for the UI to show.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        normalizer: Optional[ExpenseNormalizer] = None,
        audit_logger: Optional[AuditLogger] = None,
        max_bulk_rows: Optional[int] = None,
    ):
        self._storage = storage
        self._normalizer = normalizer or ExpenseNormalizer()
        self._audit_logger = audit_logger
        self._max_bulk_rows = max_bulk_rows

    @property
    def normalizer(self) -> ExpenseNormalizer:
        return self._normalizer

    async def _rejected(self, error: ExpenseValidationError, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                field=error.field,
                message=error.message,
                row=error.row,
                correlation_id=correlation_id,
            )

    async def _storage_failed(self, operation: str, error: StorageError, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def add_expense(
        self,
        raw: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseRecord:
        """
        Normalize and store one expense (strict category check).

        Returns:
            The stored record, with its id

        Raises:
            ExpenseValidationError: If the input is rejected
            StorageError: If the write fails
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            record = self._normalizer.normalize(raw)
        except ExpenseValidationError as e:
            await self._rejected(e, correlation_id)
            raise

        try:
            expense_id = await self._storage.insert_expense(record)
        except StorageError as e:
            await self._storage_failed("insert_expense", e, correlation_id)
            raise

        stored = record.model_copy(update={"id": expense_id})
        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                expense_id=expense_id,
                category=stored.category.value,
                amount=str(stored.amount),
                correlation_id=correlation_id,
            )
        return stored

    async def update_expense(
        self,
        expense_id: str,
        raw: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseRecord:
        """
        Replace every field of an existing expense.

        Raises:
            ExpenseValidationError: If the input is rejected
            NotFoundError: If no expense has this id
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            record = self._normalizer.normalize_update(raw)
        except ExpenseValidationError as e:
            await self._rejected(e, correlation_id)
            raise

        try:
            await self._storage.update_expense(expense_id, record)
        except StorageError as e:
            await self._storage_failed("update_expense", e, correlation_id)
            raise

        updated = record.model_copy(update={"id": expense_id})
        if self._audit_logger:
            await self._audit_logger.log_expense_updated(
                expense_id=expense_id,
                category=updated.category.value,
                amount=str(updated.amount),
                correlation_id=correlation_id,
            )
        return updated

    async def delete_expense(
        self,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete an expense.

        Raises:
            NotFoundError: If no expense has this id
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            await self._storage.delete_expense(expense_id)
        except StorageError as e:
            await self._storage_failed("delete_expense", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                correlation_id=correlation_id,
            )

    def prepare_bulk_import(
        self,
        rows: Iterable[Mapping[str, Any]],
        batch_date: Any = None,
    ) -> list[ExpenseRecord]:
        """
        Normalize a batch without storing it, e.g. for a review table.

        Raises:
            ExpenseValidationError: On the first bad row
        """
        return self._normalizer.normalize_bulk(
            rows,
            batch_date=batch_date,
            max_rows=self._max_bulk_rows,
        )

    async def bulk_import(
        self,
        rows: Iterable[Mapping[str, Any]],
        batch_date: Any = None,
        correlation_id: Optional[UUID] = None,
    ) -> BulkImportResult:
        """
        Normalize and store a batch of rows sharing one date.

        Rows with a blank category are filed under the default category.
        Nothing is stored unless every row is valid.

        Raises:
            ExpenseValidationError: On the first bad row
            StorageError: If the batch write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        rows = list(rows)

        try:
            records = self.prepare_bulk_import(rows, batch_date)
        except ExpenseValidationError as e:
            await self._rejected(e, correlation_id)
            raise

        defaulted = sum(
            1 for row in rows
            if isinstance(row, Mapping) and _is_blank(row.get("category"))
        )

        try:
            inserted = await self._storage.insert_expenses(records)
        except StorageError as e:
            await self._storage_failed("insert_expenses", e, correlation_id)
            raise

        stamp = records[0].date
        if self._audit_logger:
            await self._audit_logger.log_bulk_import(
                inserted_count=inserted,
                defaulted_count=defaulted,
                batch_date=stamp.isoformat(),
                correlation_id=correlation_id,
            )
        logger.info("bulk_import_stored", inserted=inserted, defaulted=defaulted)

        return BulkImportResult(
            inserted_count=inserted,
            defaulted_category_count=defaulted,
            batch_date=stamp,
            records=records,
        )

    async def import_csv(
        self,
        csv_source: Union[str, bytes],
        batch_date: Any = None,
        correlation_id: Optional[UUID] = None,
    ) -> BulkImportResult:
        """
        Parse CSV text and bulk-import its rows.

        Raises:
            CSVImportError: If the CSV has no usable header
            ExpenseValidationError: On the first bad row
        """
        rows = self.read_csv(csv_source)
        return await self.bulk_import(rows, batch_date, correlation_id)

    def read_csv(self, csv_source: Union[str, bytes]) -> list[dict[str, str]]:
        """Parse CSV text or uploaded bytes, decoding bytes with CSV_ENCODING."""
        return parse_csv_rows(csv_source, encoding=get_settings().app.csv_encoding)

    async def list_expenses(
        self,
        period: Optional[ReportPeriod] = None,
        category: Optional[ExpenseCategory] = None,
    ) -> list[ExpenseRecord]:
        """List stored expenses, newest first, optionally for one month."""
        if period is None:
            return await self._storage.list_expenses(category=category)
        return await self._storage.list_expenses(
            period_start=period.start,
            period_end=period.end,
            category=category,
        )


class ReportFlow:
    """
    Orchestrates the reporting flow.

    Flow:
    1. Period → fetch the records in it from storage
    2. Records → ExpenseAggregator
    3. Summary → dashboard figures for display
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        aggregator: Optional[ExpenseAggregator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._aggregator = aggregator or ExpenseAggregator()
        self._audit_logger = audit_logger

    async def _summarize_range(
        self,
        label: str,
        start: datetime,
        end: datetime,
        correlation_id: Optional[UUID],
    ) -> ExpenseSummary:
        correlation_id = correlation_id or create_correlation_id()
        records = await self._storage.list_expenses(period_start=start, period_end=end)
        summary = self._aggregator.summarize(records)

        if self._audit_logger:
            await self._audit_logger.log_summary_generated(
                period=label,
                record_count=summary.record_count,
                correlation_id=correlation_id,
            )
        return summary

    async def monthly_summary(
        self,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseSummary:
        """
        Summarize one calendar month.

        Raises:
            pydantic.ValidationError: If year/month are out of range
        """
        period = ReportPeriod(year=year, month=month)
        return await self._summarize_range(period.key, period.start, period.end, correlation_id)

    async def yearly_summary(
        self,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseSummary:
        """Summarize a calendar year; monthly_totals has one entry per active month."""
        first = ReportPeriod(year=year, month=1)
        start = first.start
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
        return await self._summarize_range(str(year), start, end, correlation_id)

    async def monthly_dashboard(
        self,
        year: int,
        month: int,
        correlation_id: Optional[UUID] = None,
    ) -> DashboardView:
        summary = await self.monthly_summary(year, month, correlation_id)
        return build_dashboard(summary)


def create_app_components(
    use_storage: bool = True,
) -> tuple[ExpenseFlow, ReportFlow, Optional[GoogleSheetsClient]]:
    """
    Build the flows the UI needs, sharing one storage and one audit logger.

    Args:
        use_storage: Try Google Sheets first; fall back to memory on failure.
                    Set to False to keep everything in memory.

    Returns:
        (expense_flow, report_flow, sheets_client)
    """
    app_settings = get_settings().app
    configure_logging(app_settings.log_level)

    sheets_client = None
    storage: ExpenseStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsExpenseStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = InMemoryExpenseStorage()
    else:
        storage = InMemoryExpenseStorage()

    audit_logger = AuditLogger()

    expense_flow = ExpenseFlow(
        storage=storage,
        audit_logger=audit_logger,
        max_bulk_rows=app_settings.max_bulk_rows,
    )
    report_flow = ReportFlow(
        storage=storage,
        audit_logger=audit_logger,
    )

    return expense_flow, report_flow, sheets_client
