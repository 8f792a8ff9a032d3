"""
Core Finance Models for FinanceTracker

Relational schema as read and written through the remote backend:

    Category (income | expense)
        └── TransactionType
                └── Transaction ── Person
    Bill ── Person

DESIGN DECISION: A Transaction never stores whether it is income or
expense. The direction is always derived through Type -> Category, so
re-classifying a category re-classifies every transaction under it.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finance_tracker.models.auth import utcnow


def new_id() -> str:
    return str(uuid4())


# =============================================================================
# CLASSIFICATION
# =============================================================================

class CategoryDirection(str, Enum):
    """Which way money flows for every type under a category."""
    INCOME = "income"
    EXPENSE = "expense"


class Category(BaseModel):
    """Top level of the classification, carries the direction."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    direction: CategoryDirection


class TransactionType(BaseModel):
    """
    A selectable option on the add income / add expense forms.

    `category` is only populated when the row was read with a join.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    category_id: str
    category: Optional[Category] = None

    @property
    def direction(self) -> Optional[CategoryDirection]:
        return self.category.direction if self.category else None


# =============================================================================
# PEOPLE AND MONEY
# =============================================================================

class Person(BaseModel):
    """
    Application-level profile, one per identity, keyed by email.

    The store enforces email uniqueness; creation goes through an upsert.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    email: str = Field(..., min_length=3, max_length=320)
    name: Optional[str] = Field(default=None, max_length=200)
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class Transaction(BaseModel):
    """One income or expense entry."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="ignore",
        populate_by_name=True,
    )

    id: str = Field(default_factory=new_id)
    person_id: str
    type_id: str
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Always positive; the sign comes from the category"
    )
    transaction_date: date = Field(..., alias="date")
    description: Optional[str] = Field(default=None, max_length=1000)
    bill_id: Optional[str] = Field(
        default=None,
        description="Schema slot for a receipt; nothing links it yet"
    )
    created_at: datetime = Field(default_factory=utcnow)

    # Joined through types -> categories on read
    transaction_type: Optional[TransactionType] = Field(default=None, alias="type")

    @property
    def direction(self) -> Optional[CategoryDirection]:
        if self.transaction_type is None:
            return None
        return self.transaction_type.direction

    @property
    def category_name(self) -> Optional[str]:
        tx_type = self.transaction_type
        if tx_type is None or tx_type.category is None:
            return None
        return tx_type.category.name

    @property
    def signed_amount(self) -> Decimal:
        """Positive for income, negative for expenses, zero if unknown."""
        if self.direction == CategoryDirection.INCOME:
            return self.amount
        if self.direction == CategoryDirection.EXPENSE:
            return -self.amount
        return Decimal("0")

    def to_row(self) -> dict:
        """Columns written on insert (joined data excluded)."""
        return {
            "id": self.id,
            "person_id": self.person_id,
            "type_id": self.type_id,
            "amount": str(self.amount),
            "date": self.transaction_date.isoformat(),
            "description": self.description,
            "bill_id": self.bill_id,
            "created_at": self.created_at.isoformat(),
        }


class Bill(BaseModel):
    """A stored receipt file belonging to a Person."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    person_id: str
    name: str = Field(..., min_length=1, max_length=255)
    path: str = Field(..., min_length=1, description="Object path inside the bucket")
    mime_type: str
    extension: str
    size_bytes: int = Field(default=0, ge=0)
    uploaded_at: datetime = Field(default_factory=utcnow)

    @field_validator("extension")
    @classmethod
    def normalize_extension(cls, v: str) -> str:
        return v.lower().lstrip(".")

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "person_id": self.person_id,
            "name": self.name,
            "path": self.path,
            "mime_type": self.mime_type,
            "extension": self.extension,
            "size_bytes": self.size_bytes,
            "uploaded_at": self.uploaded_at.isoformat(),
        }
