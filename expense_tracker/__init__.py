"""
Expense Tracker - Source Package

A personal expense tracker: record what was spent and saved, in which
category and when, then see monthly totals and category breakdowns.

DESIGN PRINCIPLES:
1. Nothing is stored that has not passed the normalizer
2. Fail early, fail visibly; name the offending field
3. No silent corrections (bulk category fallback is the one exception)
4. Aggregation is pure and never touches storage
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
