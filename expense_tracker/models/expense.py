"""
Core Data Models for the Expense Tracker

These models define the schemas for expense data flowing through the system.
They are designed to:
1. Hold only canonical, already-normalized values
2. Be serializable for storage and logging
3. Keep aggregation results separate from the records they came from

DESIGN DECISION: Coercion of loosely-typed input (form fields, CSV cells)
happens in the normalizer, not here. By the time an ExpenseRecord exists,
every field is already the right type.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    Order matters for display only: selection controls list them in
    declaration order. OTHER is last and doubles as the bulk-import default.
    """
    NECESSARY_TRAVEL = "Necessary Travel"
    FRIENDS_TRAVEL = "Friends Travel"
    OTHER_TRAVEL = "Other Travel"
    BASIC_FOOD = "Basic Food"
    ZOMATO_FOOD = "Zomato Food"
    HOTEL_FOOD = "Hotel Food"
    DESSERT = "Dessert"
    RENT = "Rent"
    HOUSE = "House"
    TFG = "TFG"
    INVEST = "Invest"
    SAVINGS = "Savings"
    OTHER = "Other"


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    A canonical expense record.

    CRITICAL: Only records produced by the normalizer are persisted
    or aggregated. The id stays None until storage assigns one.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(
        default=None,
        description="Identifier assigned by storage"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Free text, may be empty"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount spent"
    )
    category: ExpenseCategory = Field(
        ...,
        description="Expense category"
    )
    saving: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Amount set aside as savings alongside this expense"
    )
    date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the expense happened"
    )

    @property
    def period_key(self) -> str:
        """Year-month bucket of this record, e.g. '2024-01'."""
        return self.date.strftime("%Y-%m")

    def to_dict(self) -> dict:
        """Convert to a plain dictionary for display and logging."""
        return {
            "id": self.id,
            "description": self.description,
            "amount": float(self.amount),
            "category": self.category.value,
            "saving": float(self.saving),
            "date": self.date.isoformat(),
        }


# =============================================================================
# AGGREGATION MODELS
# =============================================================================

class ExpenseSummary(BaseModel):
    """
    Totals derived from a collection of expense records.

    Only categories and months that actually occur are present in the
    mappings. Nothing is rounded here; that is left to the presentation side.
    """

    record_count: int = Field(
        default=0,
        ge=0,
        description="Number of records aggregated"
    )
    total_amount: Decimal = Field(
        default=Decimal("0"),
        description="Sum of all amounts"
    )
    total_saved: Decimal = Field(
        default=Decimal("0"),
        description="Sum of all savings"
    )
    category_totals: dict[ExpenseCategory, Decimal] = Field(
        default_factory=dict,
        description="Amount per category present in the input"
    )
    monthly_totals: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Amount per 'YYYY-MM' period present in the input"
    )

    @property
    def is_empty(self) -> bool:
        return self.record_count == 0


class ReportPeriod(BaseModel):
    """A calendar month to report on."""

    year: int = Field(..., ge=1970, le=9998)
    month: int = Field(..., ge=1, le=12)

    @property
    def start(self) -> datetime:
        """First instant of the month (inclusive)."""
        return datetime(self.year, self.month, 1, tzinfo=timezone.utc)

    @property
    def end(self) -> datetime:
        """First instant of the following month (exclusive)."""
        if self.month == 12:
            return datetime(self.year + 1, 1, 1, tzinfo=timezone.utc)
        return datetime(self.year, self.month + 1, 1, tzinfo=timezone.utc)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class BulkImportResult(BaseModel):
    """Outcome of a stored bulk import."""

    inserted_count: int = Field(..., ge=0)
    defaulted_category_count: int = Field(
        default=0,
        ge=0,
        description="Rows that fell back to the default category"
    )
    batch_date: datetime = Field(
        ...,
        description="Date stamped on every row of the batch"
    )
    records: list[ExpenseRecord] = Field(default_factory=list)
