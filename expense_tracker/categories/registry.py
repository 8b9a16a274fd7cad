"""
Category Registry

DESIGN DECISION: The set of valid categories is a fixed, ordered, immutable
value. Validation asks the registry, not the UI:
- Membership is an exact string match against the category names
- The default (fallback) category is the last entry
- Order only drives how selection controls are populated

The registry is only relaxed in one place: bulk imports may fall back to the
default category when a row leaves the category blank. Single adds and edits
never do.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from expense_tracker.models.expense import ExpenseCategory


class UnknownCategoryError(ValueError):
    """A string that is not one of the registered category names."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid category: {value!r}")


@dataclass(frozen=True)
class CategoryRegistry:
    """
    Immutable ordered list of expense categories.

    Any registry must contain at least one category; the last one is the
    default used by bulk imports.
    """

    categories: tuple[ExpenseCategory, ...]

    def __post_init__(self):
        if not self.categories:
            raise ValueError("A category registry needs at least one category")
        if len(set(self.categories)) != len(self.categories):
            raise ValueError("Category registry entries must be unique")

    @classmethod
    def from_enum(cls) -> "CategoryRegistry":
        """Build the registry in ExpenseCategory declaration order."""
        return cls(categories=tuple(ExpenseCategory))

    def __iter__(self) -> Iterator[ExpenseCategory]:
        return iter(self.categories)

    def __len__(self) -> int:
        return len(self.categories)

    def __contains__(self, value: object) -> bool:
        return self.is_valid(value)

    @property
    def default(self) -> ExpenseCategory:
        """The fallback category for bulk imports."""
        return self.categories[-1]

    def names(self) -> list[str]:
        """Category names in display order, for selection controls."""
        return [category.value for category in self.categories]

    def is_valid(self, value: object) -> bool:
        """Is this exactly one of the registered category names?"""
        return self.lookup(value) is not None

    def lookup(self, value: object) -> Optional[ExpenseCategory]:
        """Return the matching category, or None if there is no exact match."""
        if isinstance(value, ExpenseCategory):
            return value if value in self.categories else None
        if not isinstance(value, str):
            return None
        for category in self.categories:
            if category.value == value:
                return category
        return None

    def resolve(self, value: object) -> ExpenseCategory:
        """
        Return the matching category.

        Raises:
            UnknownCategoryError: If the value is not a registered name
        """
        category = self.lookup(value)
        if category is None:
            raise UnknownCategoryError(value)
        return category

    def resolve_or_default(self, value: object) -> ExpenseCategory:
        """
        Bulk-import variant of resolve().

        A missing or blank value falls back to the default category.
        Anything else must still be a registered name.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return self.default
        return self.resolve(value)

    def bulk_choices(self, current: Optional[str]) -> list[str]:
        """
        Options for a bulk row's category control.

        "" (use the default) comes first, then every registered name. A
        non-blank value that is not registered is appended unchanged, so
        keeping it selected still fails normalization for that row instead
        of silently becoming the default.
        """
        choices = [""] + self.names()
        if current and current.strip() and current not in choices:
            choices.append(current)
        return choices


DEFAULT_REGISTRY = CategoryRegistry.from_enum()


def get_registry() -> CategoryRegistry:
    """Get the application's category registry."""
    return DEFAULT_REGISTRY
