"""
Storage Services Package

Provides the abstract interface and concrete implementations for expense storage.
Google Sheets is the persistent backend; the in-memory backend serves tests
and unconfigured installs.
"""

from expense_tracker.services.storage.interface import (
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from expense_tracker.services.storage.memory import InMemoryExpenseStorage
from expense_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
)

__all__ = [
    # Interfaces
    "ExpenseStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "InMemoryExpenseStorage",
]
