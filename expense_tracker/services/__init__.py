"""Services package."""

from expense_tracker.services.csv_import import CSVImportError, parse_csv_rows
from expense_tracker.services.storage import (
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryExpenseStorage,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # CSV import
    "CSVImportError",
    "parse_csv_rows",
    # Storage services
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "InMemoryExpenseStorage",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
]
