"""
Expense Aggregation Engine

DESIGN DECISION: Aggregation is a pure function from a collection of
canonical records to an ExpenseSummary. It:
- Makes a single pass over the records
- Never touches storage, the UI or the records themselves
- Never fails; an empty collection gives zero totals and empty mappings

Scoping (which month, which year) is the caller's job: it fetches the
records it wants summarized and hands them over.

Sums are kept as Decimal, so the result does not depend on input order.
Rounding for display happens in the reports layer.
"""

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from expense_tracker.models.expense import ExpenseCategory, ExpenseRecord, ExpenseSummary

class ExpenseAggregator:
    """
    Reduces expense records to totals.

    Records are assumed to be canonical (produced by the normalizer), so
    categories are not re-validated here.
    """

    def summarize(self, records: Iterable[ExpenseRecord]) -> ExpenseSummary:
        """
        Compute all totals in one pass.

        Returns:
            ExpenseSummary with total amount, total saved, per-category
            and per-month amounts
        """
        count = 0
        total_amount = Decimal("0")
        total_saved = Decimal("0")
        by_category: dict[ExpenseCategory, Decimal] = defaultdict(Decimal)
        by_month: dict[str, Decimal] = defaultdict(Decimal)

        for record in records:
            count += 1
            total_amount += record.amount
            total_saved += record.saving
            by_category[record.category] += record.amount
            by_month[record.period_key] += record.amount

        return ExpenseSummary(
            record_count=count,
            total_amount=total_amount,
            total_saved=total_saved,
            category_totals=dict(by_category),
            monthly_totals=dict(by_month),
        )

def summarize(records: Iterable[ExpenseRecord]) -> ExpenseSummary:
    """Module-level shortcut for ExpenseAggregator().summarize()."""
    return ExpenseAggregator().summarize(records)
