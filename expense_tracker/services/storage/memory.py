"""
In-Memory Storage Implementation

Used by tests and by the UI when no Google Sheets credentials are
configured. Data lives for the lifetime of the process only.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

import structlog

from expense_tracker.models.expense import ExpenseCategory, ExpenseRecord
from expense_tracker.services.storage.interface import (
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    matches_filters,
    newest_first,
)


logger = structlog.get_logger(__name__)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Dictionary-backed expense storage keyed by id."""

    def __init__(self, records: Optional[list[ExpenseRecord]] = None):
        self._records: dict[str, ExpenseRecord] = {}
        for record in records or []:
            self._store(record)

    def __len__(self) -> int:
        return len(self._records)

    def _store(self, record: ExpenseRecord) -> str:
        if record.id is not None and record.id in self._records:
            raise DuplicateError(f"Expense already stored: {record.id}")
        expense_id = record.id or uuid4().hex
        self._records[expense_id] = record.model_copy(update={"id": expense_id})
        return expense_id

    async def insert_expense(self, record: ExpenseRecord) -> str:
        expense_id = self._store(record)
        logger.debug("expense_inserted", expense_id=expense_id)
        return expense_id

    async def insert_expenses(self, records: list[ExpenseRecord]) -> int:
        for record in records:
            if record.id is not None and record.id in self._records:
                raise DuplicateError(f"Expense already stored: {record.id}")
        for record in records:
            self._store(record)
        logger.debug("expenses_inserted", count=len(records))
        return len(records)

    async def get_expense_by_id(self, expense_id: str) -> Optional[ExpenseRecord]:
        return self._records.get(expense_id)

    async def update_expense(self, expense_id: str, record: ExpenseRecord) -> bool:
        if expense_id not in self._records:
            raise NotFoundError(f"Expense not found: {expense_id}")
        self._records[expense_id] = record.model_copy(update={"id": expense_id})
        return True

    async def delete_expense(self, expense_id: str) -> bool:
        if self._records.pop(expense_id, None) is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        return True

    async def list_expenses(
        self,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
        category: Optional[ExpenseCategory] = None,
    ) -> list[ExpenseRecord]:
        matching = [
            record for record in self._records.values()
            if matches_filters(record, period_start, period_end, category)
        ]
        return newest_first(matching)
