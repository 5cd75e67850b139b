"""
Core Data Models for the Finance Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Normalize loosely-typed client input (string amounts, date strings)
2. Provide clear validation error messages
3. Be serializable for storage and for the JSON API

DESIGN DECISION: Timestamps are always UTC-aware once they pass through
these models. Naive values (from clients or read back from MongoDB) are
taken as UTC so that records from both stores sort against each other.
"""

from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Supported transaction categories.

    Income is the only category that marks a transaction as income.
    """
    HOUSING = "Housing"
    FOOD_AND_DINING = "Food & Dining"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    UTILITIES = "Utilities"
    INCOME = "Income"
    OTHER = "Other"


INCOME_CATEGORY = Category.INCOME


def reject_boolean_amount(value: Any) -> Any:
    """Amounts arrive as numbers or numeric strings; JSON booleans are not amounts."""
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    return value


def coerce_timestamp(value: Any) -> datetime:
    """
    Coerce a date-like value to a UTC-aware datetime.

    Accepts ISO-8601 strings (date-only or date-time, with or without an
    offset), date and datetime objects.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise ValueError("Please enter a valid date") from e
    else:
        raise ValueError("Please enter a valid date")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class InsertTransaction(BaseModel):
    """
    Validated payload for creating a transaction.

    `isIncome` is accepted for compatibility with existing clients but is
    always recomputed from the category.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    description: str = Field(
        ...,
        min_length=1,
        description="What the money was spent on or received for"
    )
    amount: float = Field(
        ...,
        ge=0.01,
        allow_inf_nan=False,
        description="Positive amount; direction comes from isIncome"
    )
    date: datetime = Field(
        ...,
        description="When the transaction happened (UTC)"
    )
    category: Category
    notes: Optional[str] = None
    is_income: bool = Field(default=False, alias="isIncome")

    @field_validator('amount', mode='before')
    @classmethod
    def check_amount_type(cls, v: Any) -> Any:
        return reject_boolean_amount(v)

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, v: Any) -> datetime:
        return coerce_timestamp(v)

    @model_validator(mode='after')
    def derive_is_income(self) -> "InsertTransaction":
        self.is_income = self.category == INCOME_CATEGORY
        return self

    def to_document(self) -> dict[str, Any]:
        """Field mapping used for storage (camelCase, like the API)."""
        document = self.model_dump(by_alias=True)
        document["category"] = self.category.value
        return document


class Transaction(InsertTransaction):
    """A stored transaction with its integer identifier."""

    id: int = Field(..., description="Integer id, immutable once assigned")


class TransactionUpdate(BaseModel):
    """
    Validated partial payload for updating a transaction.

    Only fields the client actually sent are applied. Required fields of
    a transaction cannot be cleared with an explicit null.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    description: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = Field(default=None, ge=0.01, allow_inf_nan=False)
    date: Optional[datetime] = None
    category: Optional[Category] = None
    notes: Optional[str] = None
    is_income: Optional[bool] = Field(default=None, alias="isIncome")

    @field_validator('description', 'amount', 'category', mode='before')
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def check_amount_type(cls, v: Any) -> Any:
        return reject_boolean_amount(v)

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, v: Any) -> datetime:
        return coerce_timestamp(v)

    def changes(self) -> dict[str, Any]:
        """
        Fields to merge onto the stored record, keyed like storage documents.

        isIncome follows the category when one is supplied and is otherwise
        left untouched.
        """
        changes = self.model_dump(exclude_unset=True, by_alias=True)
        changes.pop("isIncome", None)
        if self.category is not None:
            changes["category"] = self.category.value
            changes["isIncome"] = self.category == INCOME_CATEGORY
        return changes

    @property
    def is_empty(self) -> bool:
        return not self.changes()
