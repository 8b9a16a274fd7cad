"""
Expense Record Normalizer

Turns loosely-typed input (form fields, parsed CSV cells) into canonical
ExpenseRecord objects.

Two entry paths exist and they are deliberately NOT identical:

SINGLE PATH (add / edit):
- Category must exactly match a registered name
- A caller-supplied ISO date is kept as given; a missing one means "now"

BULK PATH (CSV import):
- A blank category falls back to the registry default ("Other")
- Every row is stamped with one batch date chosen by the caller,
  whatever date the row itself carries

IMPORTANT: Normalization NEVER guesses amounts, savings or dates.
The first offending field fails the whole record (or the whole batch).
The category fallback on the bulk path is the only substitution made.
"""

import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from expense_tracker.categories import CategoryRegistry, UnknownCategoryError, get_registry
from expense_tracker.models.expense import ExpenseCategory, ExpenseRecord


MAX_DESCRIPTION_LENGTH = 500


class ExpenseValidationError(ValueError):
    """
    Raw input could not be turned into a canonical record.

    Attributes:
        field: Name of the offending field ('amount', 'category', ...)
        message: Human-readable reason
        value: The rejected input value
        row: Zero-based row index on the bulk path, None otherwise
    """

    def __init__(
        self,
        field: str,
        message: str,
        value: Any = None,
        row: Optional[int] = None,
    ):
        self.field = field
        self.message = message
        self.value = value
        self.row = row
        super().__init__(self._format())

    def _format(self) -> str:
        prefix = f"Row {self.row}: " if self.row is not None else ""
        return f"{prefix}{self.field}: {self.message}"

    def at_row(self, row: int) -> "ExpenseValidationError":
        """Copy of this error tagged with a bulk row index."""
        return ExpenseValidationError(self.field, self.message, self.value, row)

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "message": self.message,
            "value": None if self.value is None else str(self.value),
            "row": self.row,
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_amount(field: str, value: Any, required: bool = True) -> Decimal:
    """
    Coerce a monetary value to a non-negative Decimal.

    A blank optional value becomes 0. Floats go through str() so that
    0.1 stays 0.1 rather than its binary expansion.
    """
    if _is_blank(value):
        if required:
            raise ExpenseValidationError(field, "is required", value)
        return Decimal("0")

    if isinstance(value, bool):
        raise ExpenseValidationError(field, "must be a number", value)

    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, int):
            amount = Decimal(value)
        elif isinstance(value, float):
            if not math.isfinite(value):
                raise ExpenseValidationError(field, "must be a finite number", value)
            amount = Decimal(str(value))
        elif isinstance(value, str):
            amount = Decimal(value.strip())
        else:
            raise ExpenseValidationError(field, "must be a number", value)
    except InvalidOperation:
        raise ExpenseValidationError(field, "must be a number", value)

    if not amount.is_finite():
        raise ExpenseValidationError(field, "must be a finite number", value)
    if amount < 0:
        raise ExpenseValidationError(field, "must not be negative", value)
    return amount


def parse_date(value: Any, default: Callable[[], datetime] = _utc_now) -> datetime:
    """
    Coerce a date input to a timezone-aware datetime.

    Naive values are read as UTC wall-clock time without shifting them,
    so the calendar day the caller gave is the calendar day stored.
    An explicit offset is kept exactly as given.
    """
    if _is_blank(value):
        return default()

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ExpenseValidationError("date", "must be an ISO date", value)
    else:
        raise ExpenseValidationError("date", "must be an ISO date", value)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_description(value: Any) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    if len(text) > MAX_DESCRIPTION_LENGTH:
        raise ExpenseValidationError(
            "description",
            f"must be at most {MAX_DESCRIPTION_LENGTH} characters",
            value,
        )
    return text


class ExpenseNormalizer:
    """
    Validates raw expense input against the category registry.

    Stateless apart from its collaborators: every call depends only on
    its arguments, so one instance can be shared freely.
    """

    def __init__(
        self,
        registry: Optional[CategoryRegistry] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize normalizer.

        Args:
            registry: Category registry to validate against.
                      Defaults to the application registry.
            clock: Source of "now" for records without a date.
        """
        self._registry = registry or get_registry()
        self._clock = clock

    @property
    def registry(self) -> CategoryRegistry:
        return self._registry

    def normalize(self, raw: Mapping[str, Any]) -> ExpenseRecord:
        """
        Single-record path (add expense).

        Raises:
            ExpenseValidationError: On the first offending field
        """
        self._check_mapping(raw)
        category = self._strict_category(raw.get("category"))
        return self._build(raw, category, parse_date(raw.get("date"), self._clock))

    def normalize_update(self, raw: Mapping[str, Any]) -> ExpenseRecord:
        """
        Single-record path for edits.

        An edit replaces every field, so the date must be supplied;
        it is not silently reset to now.
        """
        self._check_mapping(raw)
        if _is_blank(raw.get("date")):
            raise ExpenseValidationError("date", "is required when updating", raw.get("date"))
        return self.normalize(raw)

    def normalize_bulk_row(
        self,
        raw: Mapping[str, Any],
        batch_date: datetime,
    ) -> ExpenseRecord:
        """
        Bulk path for one row.

        The row's own date is ignored; batch_date is stamped instead.
        A blank category becomes the registry default.
        """
        self._check_mapping(raw)
        try:
            category = self._registry.resolve_or_default(raw.get("category"))
        except UnknownCategoryError as e:
            raise ExpenseValidationError("category", "is not a valid category", e.value)
        return self._build(raw, category, batch_date)

    def normalize_bulk(
        self,
        rows: Iterable[Mapping[str, Any]],
        batch_date: Any = None,
        max_rows: Optional[int] = None,
    ) -> list[ExpenseRecord]:
        """
        Bulk path for a whole batch.

        Args:
            rows: Raw rows in input order
            batch_date: One date shared by every row; blank means now
            max_rows: Optional upper bound on the batch size

        Returns:
            Canonical records in the same order as the input rows

        Raises:
            ExpenseValidationError: For an empty or oversized batch, or on the
                                    first bad row (with its index in .row)
        """
        stamp = parse_date(batch_date, self._clock)

        records = []
        for index, raw in enumerate(rows):
            if max_rows is not None and index >= max_rows:
                raise ExpenseValidationError(
                    "rows", f"a bulk import may contain at most {max_rows} rows"
                )
            try:
                records.append(self.normalize_bulk_row(raw, stamp))
            except ExpenseValidationError as e:
                raise e.at_row(index)

        if not records:
            raise ExpenseValidationError("rows", "a bulk import needs at least one row")
        return records

    def _check_mapping(self, raw: Any) -> None:
        if not isinstance(raw, Mapping):
            raise ExpenseValidationError("record", "must be a mapping of field names to values", raw)

    def _strict_category(self, value: Any) -> ExpenseCategory:
        try:
            return self._registry.resolve(value)
        except UnknownCategoryError:
            raise ExpenseValidationError("category", "is not a valid category", value)

    def _build(self, raw: Mapping[str, Any], category: ExpenseCategory, when: datetime) -> ExpenseRecord:
        return ExpenseRecord(
            description=parse_description(raw.get("description")),
            amount=parse_amount("amount", raw.get("amount")),
            category=category,
            saving=parse_amount("saving", raw.get("saving"), required=False),
            date=when,
        )
