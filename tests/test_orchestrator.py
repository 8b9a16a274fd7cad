"""
Integration tests for the expense and report flows.

All flows run against in-memory storage.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from expense_tracker.audit import AuditLogger
from expense_tracker.config import get_settings
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import ExpenseCategory, ReportPeriod
from expense_tracker.orchestrator import ExpenseFlow, ReportFlow, create_app_components
from expense_tracker.services.csv_import import CSVImportError
from expense_tracker.services.storage import InMemoryExpenseStorage, NotFoundError, StorageError
from expense_tracker.validation import ExpenseValidationError


class FailingStorage(InMemoryExpenseStorage):
    async def insert_expense(self, record):
        raise StorageError("sheet unavailable")


@pytest.fixture
def storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def expense_flow(storage, audit_logger):
    return ExpenseFlow(storage=storage, audit_logger=audit_logger, max_bulk_rows=5)


@pytest.fixture
def report_flow(storage, audit_logger):
    return ReportFlow(storage=storage, audit_logger=audit_logger)


def event_types(audit_logger):
    return [event.event_type for event in audit_logger.events]


class TestExpenseFlow:
    """Tests for adding, editing and deleting expenses."""

    def test_add_expense(self, expense_flow, storage, audit_logger):
        """Test a valid expense is stored and audited."""
        record = asyncio.run(expense_flow.add_expense({
            "description": "Rent",
            "amount": "150",
            "category": "Rent",
            "date": "2024-01-01",
        }))
        assert record.id is not None
        assert len(storage) == 1
        assert event_types(audit_logger) == [AuditEventType.EXPENSE_ADDED]
        assert audit_logger.events[0].entity_id == record.id

    def test_invalid_expense_not_stored(self, expense_flow, storage, audit_logger):
        """Test rejected input stores nothing and is audited."""
        with pytest.raises(ExpenseValidationError):
            asyncio.run(expense_flow.add_expense({"amount": "10", "category": "Groceries"}))
        assert len(storage) == 0
        assert event_types(audit_logger) == [AuditEventType.VALIDATION_FAILED]

    def test_storage_failure_audited(self, audit_logger):
        """Test storage errors are audited then re-raised."""
        flow = ExpenseFlow(storage=FailingStorage(), audit_logger=audit_logger)
        with pytest.raises(StorageError):
            asyncio.run(flow.add_expense({"amount": "10", "category": "Rent"}))
        assert event_types(audit_logger) == [AuditEventType.STORAGE_ERROR]

    def test_update_expense(self, expense_flow, storage):
        """Test an edit replaces every field."""
        added = asyncio.run(expense_flow.add_expense({"amount": "10", "category": "Rent", "date": "2024-01-01"}))
        updated = asyncio.run(expense_flow.update_expense(added.id, {
            "amount": "12",
            "category": "House",
            "date": "2024-01-02",
        }))
        stored = asyncio.run(storage.get_expense_by_id(added.id))
        assert updated.id == added.id
        assert stored.amount == Decimal("12")
        assert stored.category == ExpenseCategory.HOUSE

    def test_update_without_date_rejected(self, expense_flow):
        """Test edits must carry a date."""
        added = asyncio.run(expense_flow.add_expense({"amount": "10", "category": "Rent"}))
        with pytest.raises(ExpenseValidationError):
            asyncio.run(expense_flow.update_expense(added.id, {"amount": "12", "category": "Rent"}))

    def test_update_unknown_id(self, expense_flow, audit_logger):
        """Test updating a missing expense raises NotFoundError."""
        with pytest.raises(NotFoundError):
            asyncio.run(expense_flow.update_expense("missing", {
                "amount": "1",
                "category": "Rent",
                "date": "2024-01-01",
            }))
        assert event_types(audit_logger) == [AuditEventType.STORAGE_ERROR]

    def test_delete_expense(self, expense_flow, storage, audit_logger):
        """Test delete removes the expense and is audited."""
        added = asyncio.run(expense_flow.add_expense({"amount": "10", "category": "Rent"}))
        asyncio.run(expense_flow.delete_expense(added.id))
        assert len(storage) == 0
        assert event_types(audit_logger)[-1] == AuditEventType.EXPENSE_DELETED

    def test_delete_unknown_id(self, expense_flow):
        """Test deleting a missing expense raises NotFoundError."""
        with pytest.raises(NotFoundError):
            asyncio.run(expense_flow.delete_expense("missing"))

    def test_list_expenses_for_period(self, expense_flow):
        """Test listing scoped to one month."""
        for day in ("2024-01-05", "2024-01-20", "2024-02-01"):
            asyncio.run(expense_flow.add_expense({"amount": "1", "category": "Rent", "date": day}))
        january = asyncio.run(expense_flow.list_expenses(ReportPeriod(year=2024, month=1)))
        assert [r.date.day for r in january] == [20, 5]
        assert len(asyncio.run(expense_flow.list_expenses())) == 3


class TestBulkImport:
    """Tests for the bulk import flow."""

    def test_bulk_import(self, expense_flow, storage, audit_logger):
        """Test a batch is stored with one date and defaulted categories."""
        result = asyncio.run(expense_flow.bulk_import(
            [
                {"description": "Tea", "amount": "10"},
                {"description": "Cake", "amount": "40", "category": "Dessert"},
                {"description": "Bus", "amount": "15", "category": " "},
            ],
            batch_date="2024-04-02",
        ))
        assert result.inserted_count == 3
        assert result.defaulted_category_count == 2
        assert result.batch_date == datetime(2024, 4, 2, tzinfo=timezone.utc)
        assert [r.category for r in result.records] == [
            ExpenseCategory.OTHER,
            ExpenseCategory.DESSERT,
            ExpenseCategory.OTHER,
        ]
        assert len(storage) == 3
        assert event_types(audit_logger) == [AuditEventType.BULK_IMPORT_COMPLETED]

    def test_bad_row_stores_nothing(self, expense_flow, storage):
        """Test one bad row rejects the whole batch."""
        with pytest.raises(ExpenseValidationError) as exc_info:
            asyncio.run(expense_flow.bulk_import([{"amount": "1"}, {"amount": "-1"}]))
        assert exc_info.value.row == 1
        assert len(storage) == 0

    def test_row_limit(self, expense_flow):
        """Test the configured row limit applies."""
        with pytest.raises(ExpenseValidationError):
            asyncio.run(expense_flow.bulk_import([{"amount": "1"}] * 6))

    def test_prepare_does_not_store(self, expense_flow, storage):
        """Test a preview normalizes without storing."""
        records = expense_flow.prepare_bulk_import([{"amount": "1"}], "2024-01-01")
        assert len(records) == 1
        assert len(storage) == 0

    def test_import_csv(self, expense_flow, storage):
        """Test CSV text goes through the bulk path."""
        result = asyncio.run(expense_flow.import_csv(
            "Description,Amount,Category\nLunch,120,Basic Food\nSnack,30,\n\n",
            batch_date="2024-05-05",
        ))
        assert result.inserted_count == 2
        assert result.defaulted_category_count == 1
        assert len(storage) == 2

    def test_reviewed_unknown_category_rejected(self, expense_flow, storage):
        """Test a CSV category kept as-is through review still fails on its row."""
        rows = expense_flow.read_csv("description,amount,category\nCake,40,Dessert\nTea,10,Groceries\n")
        registry = expense_flow.normalizer.registry
        for row in rows:
            options = registry.bulk_choices(row["category"])
            row["category"] = options[options.index(row["category"])]
        with pytest.raises(ExpenseValidationError) as exc_info:
            asyncio.run(expense_flow.bulk_import(rows, "2024-05-05"))
        assert exc_info.value.field == "category"
        assert exc_info.value.row == 1
        assert len(storage) == 0

    def test_read_csv_uses_configured_encoding(self, expense_flow, monkeypatch, tmp_path):
        """Test uploaded bytes are decoded with CSV_ENCODING."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CSV_ENCODING", "cp1252")
        get_settings.cache_clear()
        try:
            rows = expense_flow.read_csv("description,amount\nCafé crème,4\n".encode("cp1252"))
        finally:
            get_settings.cache_clear()
        assert rows == [{"description": "Café crème", "amount": "4"}]

    def test_read_csv_rejects_wrong_encoding(self, expense_flow, monkeypatch, tmp_path):
        """Test bytes that do not match CSV_ENCODING are reported, not garbled."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CSV_ENCODING", "utf-8")
        get_settings.cache_clear()
        try:
            with pytest.raises(CSVImportError):
                expense_flow.read_csv("description,amount\nCafé,4\n".encode("cp1252"))
        finally:
            get_settings.cache_clear()

    def test_import_csv_without_header(self, expense_flow):
        """Test CSV without an amount column is rejected."""
        with pytest.raises(CSVImportError):
            asyncio.run(expense_flow.import_csv("description\nTea\n"))


class TestReportFlow:
    """Tests for monthly and yearly reports."""

    def seed(self, expense_flow):
        for raw in (
            {"amount": "100", "category": "Rent", "date": "2024-01-01"},
            {"amount": "50", "category": "Rent", "saving": "20", "date": "2024-01-31T23:59:59"},
            {"amount": "30", "category": "Other", "date": "2024-01-15"},
            {"amount": "200", "category": "House", "date": "2024-02-01"},
            {"amount": "999", "category": "House", "date": "2023-12-31"},
        ):
            asyncio.run(expense_flow.add_expense(raw))

    def test_monthly_summary(self, expense_flow, report_flow, audit_logger):
        """Test the month includes its last day and excludes the next month."""
        self.seed(expense_flow)
        summary = asyncio.run(report_flow.monthly_summary(2024, 1))
        assert summary.record_count == 3
        assert summary.total_amount == Decimal("180")
        assert summary.total_saved == Decimal("20")
        assert summary.category_totals == {
            ExpenseCategory.RENT: Decimal("150"),
            ExpenseCategory.OTHER: Decimal("30"),
        }
        assert summary.monthly_totals == {"2024-01": Decimal("180")}
        assert event_types(audit_logger)[-1] == AuditEventType.SUMMARY_GENERATED

    def test_yearly_summary(self, expense_flow, report_flow):
        """Test a year summary has one entry per active month."""
        self.seed(expense_flow)
        summary = asyncio.run(report_flow.yearly_summary(2024))
        assert summary.monthly_totals == {
            "2024-01": Decimal("180"),
            "2024-02": Decimal("200"),
        }

    def test_offset_date_counted_in_its_own_month(self, expense_flow, report_flow):
        """Test a date with an offset near a month boundary stays in its month."""
        record = asyncio.run(expense_flow.add_expense({
            "amount": "100",
            "category": "Rent",
            "date": "2024-02-01T02:00:00+05:30",
        }))
        january = asyncio.run(report_flow.monthly_summary(2024, 1))
        february = asyncio.run(report_flow.monthly_summary(2024, 2))
        assert record.period_key == "2024-02"
        assert january.is_empty
        assert february.total_amount == Decimal("100")
        assert february.monthly_totals == {"2024-02": Decimal("100")}

    def test_empty_month(self, report_flow):
        """Test a month without records gives zero totals."""
        summary = asyncio.run(report_flow.monthly_summary(2024, 3))
        assert summary.is_empty
        assert summary.total_amount == Decimal("0")

    def test_monthly_dashboard(self, expense_flow, report_flow):
        """Test dashboard figures for a month."""
        self.seed(expense_flow)
        view = asyncio.run(report_flow.monthly_dashboard(2024, 1))
        assert view.total_amount == Decimal("180.00")
        assert view.net_savings == Decimal("-160.00")
        assert [row.category for row in view.category_rows] == ["Rent", "Other"]

    def test_invalid_month(self, report_flow):
        """Test out-of-range months are rejected."""
        with pytest.raises(ValueError):
            asyncio.run(report_flow.monthly_summary(2024, 13))


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_in_memory_components(self):
        """Test components can be built without Google Sheets."""
        expense_flow, report_flow, sheets_client = create_app_components(use_storage=False)
        assert sheets_client is None
        record = asyncio.run(expense_flow.add_expense({"amount": "5", "category": "Dessert", "date": "2024-07-01"}))
        summary = asyncio.run(report_flow.monthly_summary(2024, 7))
        assert summary.category_totals == {ExpenseCategory.DESSERT: Decimal("5")}
        assert record.id is not None
