"""Reports package."""

from expense_tracker.reports.dashboard import (
    CategoryRow,
    DashboardView,
    build_dashboard,
    format_money,
    net_savings,
    round_money,
)

__all__ = [
    "CategoryRow",
    "DashboardView",
    "build_dashboard",
    "format_money",
    "net_savings",
    "round_money",
]
