"""Category registry package."""

from expense_tracker.categories.registry import (
    DEFAULT_REGISTRY,
    CategoryRegistry,
    UnknownCategoryError,
    get_registry,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "CategoryRegistry",
    "UnknownCategoryError",
    "get_registry",
]
