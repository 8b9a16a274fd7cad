"""Aggregation package."""

from expense_tracker.aggregation.aggregator import ExpenseAggregator, summarize

__all__ = ["ExpenseAggregator", "summarize"]
