"""Tests for expense aggregation."""

import random
from datetime import datetime, timezone
from decimal import Decimal

from expense_tracker.aggregation import ExpenseAggregator, summarize
from expense_tracker.models.expense import ExpenseCategory, ExpenseRecord


def make_record(amount, category=ExpenseCategory.OTHER, saving="0", when=(2024, 1, 10)):
    return ExpenseRecord(
        amount=Decimal(amount),
        category=category,
        saving=Decimal(saving),
        date=datetime(*when, tzinfo=timezone.utc),
    )


class TestExpenseAggregator:
    """Tests for ExpenseAggregator.summarize."""

    def test_category_totals(self):
        """Test amounts are grouped per category."""
        records = [
            make_record("100", ExpenseCategory.RENT),
            make_record("50", ExpenseCategory.RENT),
            make_record("30", ExpenseCategory.OTHER),
        ]
        summary = summarize(records)
        assert summary.category_totals == {
            ExpenseCategory.RENT: Decimal("150"),
            ExpenseCategory.OTHER: Decimal("30"),
        }
        assert summary.total_amount == Decimal("180")
        assert summary.record_count == 3

    def test_monthly_totals(self):
        """Test amounts are grouped per year-month."""
        records = [
            make_record("60", when=(2024, 1, 5)),
            make_record("40", when=(2024, 1, 31)),
            make_record("200", when=(2024, 2, 1)),
        ]
        assert summarize(records).monthly_totals == {
            "2024-01": Decimal("100"),
            "2024-02": Decimal("200"),
        }

    def test_savings_total(self):
        """Test savings are summed separately from amounts."""
        records = [make_record("10", saving="5"), make_record("20", saving="2.5")]
        summary = summarize(records)
        assert summary.total_saved == Decimal("7.5")
        assert summary.total_amount == Decimal("30")

    def test_empty_input(self):
        """Test no records gives zero totals and empty mappings."""
        summary = summarize([])
        assert summary.is_empty
        assert summary.total_amount == Decimal("0")
        assert summary.total_saved == Decimal("0")
        assert summary.category_totals == {}
        assert summary.monthly_totals == {}

    def test_absent_categories_not_reported(self):
        """Test categories without records are left out."""
        summary = summarize([make_record("5", ExpenseCategory.DESSERT)])
        assert ExpenseCategory.RENT not in summary.category_totals

    def test_category_totals_add_up(self):
        """Test per-category and per-month totals both sum to the overall total."""
        records = [
            make_record("0.10", ExpenseCategory.DESSERT, when=(2024, 1, 1)),
            make_record("0.20", ExpenseCategory.HOUSE, when=(2024, 2, 1)),
            make_record("0.30", ExpenseCategory.DESSERT, when=(2024, 3, 1)),
        ]
        summary = summarize(records)
        assert sum(summary.category_totals.values()) == summary.total_amount
        assert sum(summary.monthly_totals.values()) == summary.total_amount
        assert summary.total_amount == Decimal("0.60")

    def test_order_independent(self):
        """Test shuffling the input does not change the result."""
        records = [
            make_record(str(n * 1.1), list(ExpenseCategory)[n % 13], when=(2024, n % 12 + 1, 1))
            for n in range(40)
        ]
        shuffled = list(records)
        random.Random(7).shuffle(shuffled)
        assert summarize(records) == summarize(shuffled)

    def test_accepts_generator(self):
        """Test a one-shot iterable is consumed in a single pass."""
        summary = ExpenseAggregator().summarize(make_record(str(n)) for n in range(1, 4))
        assert summary.total_amount == Decimal("6")
        assert summary.record_count == 3
