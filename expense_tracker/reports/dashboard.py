"""
Dashboard Figures

Turns an ExpenseSummary into the numbers the UI shows: rounded totals,
net savings, category rows in registry order and month series sorted
by period. This is the only place where values are rounded.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel, Field

from expense_tracker.categories import CategoryRegistry, get_registry
from expense_tracker.models.expense import ExpenseSummary


CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, halves away from zero."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal, symbol: str = "$") -> str:
    """Format for display, e.g. $1,234.50 or -$20.00."""
    rounded = round_money(value)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"


def net_savings(summary: ExpenseSummary) -> Decimal:
    """Total saved minus total spent."""
    return summary.total_saved - summary.total_amount


class CategoryRow(BaseModel):
    """One line of the category breakdown."""

    category: str
    amount: Decimal
    share_percent: Decimal = Field(
        ...,
        description="Share of total spend, 0-100"
    )


class DashboardView(BaseModel):
    """Display-ready figures for one summary."""

    record_count: int
    total_amount: Decimal
    total_saved: Decimal
    net_savings: Decimal
    category_rows: list[CategoryRow] = Field(default_factory=list)
    month_labels: list[str] = Field(default_factory=list)
    month_values: list[Decimal] = Field(default_factory=list)

    def chart_data(self) -> dict[str, dict[str, float]]:
        """Series shaped for st.bar_chart (label -> value)."""
        return {
            "by_month": {
                label: float(value)
                for label, value in zip(self.month_labels, self.month_values)
            },
            "by_category": {
                row.category: float(row.amount) for row in self.category_rows
            },
        }


def build_dashboard(
    summary: ExpenseSummary,
    registry: Optional[CategoryRegistry] = None,
) -> DashboardView:
    """Build display figures from an aggregated summary."""
    registry = registry or get_registry()

    rows = []
    for category in registry:
        amount = summary.category_totals.get(category)
        if amount is None:
            continue
        if summary.total_amount > 0:
            share = round_money(amount * 100 / summary.total_amount)
        else:
            share = Decimal("0.00")
        rows.append(CategoryRow(
            category=category.value,
            amount=round_money(amount),
            share_percent=share,
        ))

    labels = sorted(summary.monthly_totals)

    return DashboardView(
        record_count=summary.record_count,
        total_amount=round_money(summary.total_amount),
        total_saved=round_money(summary.total_saved),
        net_savings=round_money(net_savings(summary)),
        category_rows=rows,
        month_labels=labels,
        month_values=[round_money(summary.monthly_totals[label]) for label in labels],
    )
