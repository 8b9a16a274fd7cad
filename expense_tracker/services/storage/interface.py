"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep normalization and aggregation free of any live connection

The interface is intentionally simple - we're not building a full ORM.
Just the operations the expense flows need.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from expense_tracker.models.expense import ExpenseCategory, ExpenseRecord


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Google Sheets, MongoDB, etc.)
    must implement these methods. Storage owns identifiers and
    any concurrency control.
    """

    @abstractmethod
    async def insert_expense(self, record: ExpenseRecord) -> str:
        """
        Store a new expense.

        Args:
            record: A canonical record without an id

        Returns:
            The id assigned to the stored record

        Raises:
            DuplicateError: If the record already carries a stored id
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def insert_expenses(self, records: list[ExpenseRecord]) -> int:
        """
        Store a batch of new expenses in one go.

        Returns:
            Number of records inserted
        """
        pass

    @abstractmethod
    async def get_expense_by_id(self, expense_id: str) -> Optional[ExpenseRecord]:
        """
        Retrieve an expense by its ID.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_expense(self, expense_id: str, record: ExpenseRecord) -> bool:
        """
        Replace the stored fields of an existing expense.

        Args:
            expense_id: Id of the expense to replace
            record: New field values; its own id is ignored

        Returns:
            True if updated successfully

        Raises:
            NotFoundError: If the expense doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: str) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if deleted successfully

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
        category: Optional[ExpenseCategory] = None,
    ) -> list[ExpenseRecord]:
        """
        List expenses, newest first.

        Args:
            period_start: Include expenses dated on or after this wall-clock time
            period_end: Include expenses dated strictly before this wall-clock time
            category: Only this category

        Returns:
            List of matching records
        """
        pass


def matches_filters(
    record: ExpenseRecord,
    period_start: Optional[datetime] = None,
    period_end: Optional[datetime] = None,
    category: Optional[ExpenseCategory] = None,
) -> bool:
    """
    Shared filter semantics for implementations that filter in Python.

    Period bounds are compared against the record's own wall-clock date,
    the same date its period key is taken from, so a record is always
    listed in the month its key names.
    """
    when = wall_clock(record.date)
    if period_start and when < wall_clock(period_start):
        return False
    if period_end and when >= wall_clock(period_end):
        return False
    if category and record.category != category:
        return False
    return True


def wall_clock(value: datetime) -> datetime:
    """Local date and time as written, with any offset dropped."""
    return value.replace(tzinfo=None)


def newest_first(records: list[ExpenseRecord]) -> list[ExpenseRecord]:
    return sorted(records, key=lambda r: (wall_clock(r.date), r.id or ""), reverse=True)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
