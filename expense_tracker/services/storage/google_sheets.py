"""
Google Sheets Expense Storage

One worksheet holds every expense, one row per record, with the id in
column A. The sheet stays readable (and fixable) by hand, so rows are
read back leniently: a row that no longer parses is skipped with a
warning instead of failing the whole listing.

TRADEOFFS:
- Every lookup reads the full sheet; fine for one person's expenses
- No transactions: a batch goes out as a single append_rows call
- Filtering and ordering happen in Python after the read
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.config import get_settings
from expense_tracker.models.expense import ExpenseCategory, ExpenseRecord
from expense_tracker.services.storage.interface import (
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    matches_filters,
    newest_first,
)


logger = structlog.get_logger(__name__)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "updated_at",
    "description",
    "category",
    "amount",
    "saving",
    "date",
]

_LAST_COLUMN = chr(ord("A") + len(EXPENSE_COLUMNS) - 1)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class GoogleSheetsClient:
    """
    Lazily authorized gspread client bound to the configured spreadsheet.

    Connection attempts are retried; worksheet lookups are not.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authorize with the service account key file (once per client)."""
        if self._client is None:
            key_file = self._settings.credentials_path
            try:
                credentials = Credentials.from_service_account_file(key_file, scopes=SCOPES)
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(f"Service account key file not found: {key_file}")
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Open the spreadsheet named by GOOGLE_SHEETS_SPREADSHEET_ID."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.expenses_sheet_name)
        except gspread.WorksheetNotFound:
            # First run: create it with the header row
            sheet = spreadsheet.add_worksheet(
                title=self._settings.expenses_sheet_name,
                rows=1000,
                cols=len(EXPENSE_COLUMNS),
            )
            sheet.append_row(EXPENSE_COLUMNS)
        return sheet


def expense_to_row(expense_id: str, record: ExpenseRecord) -> list:
    """Convert an ExpenseRecord to a spreadsheet row."""
    return [
        expense_id,
        datetime.now(timezone.utc).isoformat(),
        record.description,
        record.category.value,
        str(record.amount),
        str(record.saving),
        record.date.isoformat(),
    ]


def row_to_expense(row: list) -> ExpenseRecord:
    """Convert a spreadsheet row to an ExpenseRecord."""
    # Handle missing columns gracefully
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default

    return ExpenseRecord(
        id=safe_get(0),
        description=safe_get(2),
        category=ExpenseCategory(safe_get(3)),
        amount=Decimal(safe_get(4, "0")),
        saving=Decimal(safe_get(5, "0")),
        date=_aware(datetime.fromisoformat(safe_get(6))),
    )


def _aware(value: datetime) -> datetime:
    # Hand-edited cells may lack an offset
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    Expenses are stored as rows in a worksheet with one expense per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, expense_id: str) -> Optional[int]:
        """1-based sheet row index of an expense, or None."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if row and row[0] == expense_id:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def insert_expense(self, record: ExpenseRecord) -> str:
        """Append one expense to Google Sheets."""
        if record.id is not None:
            raise DuplicateError(f"Expense already has an id: {record.id}")
        try:
            sheet = self._client.get_expenses_sheet()
            expense_id = uuid4().hex
            sheet.append_row(expense_to_row(expense_id, record), value_input_option="RAW")
            return expense_id
        except StorageConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def insert_expenses(self, records: list[ExpenseRecord]) -> int:
        """Append a batch of expenses with a single API call."""
        if any(record.id is not None for record in records):
            raise DuplicateError("Bulk insert only accepts records without an id")
        if not records:
            return 0
        try:
            sheet = self._client.get_expenses_sheet()
            rows = [expense_to_row(uuid4().hex, record) for record in records]
            sheet.append_rows(rows, value_input_option="RAW")
            logger.info("expenses_appended", count=len(rows))
            return len(rows)
        except StorageConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expenses: {e}")

    async def get_expense_by_id(self, expense_id: str) -> Optional[ExpenseRecord]:
        """Retrieve an expense by its ID."""
        try:
            sheet = self._client.get_expenses_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == expense_id:
                    return row_to_expense(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    async def update_expense(self, expense_id: str, record: ExpenseRecord) -> bool:
        """Replace an existing expense row."""
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row(sheet, expense_id)
            if idx is None:
                raise NotFoundError(f"Expense not found: {expense_id}")
            sheet.update(
                range_name=f"A{idx}:{_LAST_COLUMN}{idx}",
                values=[expense_to_row(expense_id, record)],
                value_input_option="RAW",
            )
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

    async def delete_expense(self, expense_id: str) -> bool:
        """Delete an expense by ID."""
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row(sheet, expense_id)
            if idx is None:
                raise NotFoundError(f"Expense not found: {expense_id}")
            sheet.delete_rows(idx)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    async def list_expenses(
        self,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
        category: Optional[ExpenseCategory] = None,
    ) -> list[ExpenseRecord]:
        """List expenses with optional filters, newest first."""
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        expenses = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue

            try:
                record = row_to_expense(row)
            except (ValueError, ArithmeticError) as e:
                logger.warning("malformed_expense_row", expense_id=row[0], error=str(e))
                continue

            if matches_filters(record, period_start, period_end, category):
                expenses.append(record)

        return newest_first(expenses)
