"""Validation package."""

from expense_tracker.validation.normalizer import (
    ExpenseNormalizer,
    ExpenseValidationError,
    parse_amount,
    parse_date,
)

__all__ = [
    "ExpenseNormalizer",
    "ExpenseValidationError",
    "parse_amount",
    "parse_date",
]
