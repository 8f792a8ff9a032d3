"""
Dashboard Overview

Totals are computed client-side from the person's transactions; the
backend only filters by person.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.config import get_settings
from finance_tracker.models.auth import Identity
from finance_tracker.models.finance import CategoryDirection, Transaction
from finance_tracker.services.backend import FinanceStorageInterface


ZERO = Decimal("0.00")


class DashboardSummary(BaseModel):
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_balance: Decimal = ZERO
    this_month_net: Decimal = ZERO
    transaction_count: int = 0
    recent_transactions: list[Transaction] = Field(default_factory=list)


def summarize(
    transactions: list[Transaction],
    today: date,
    recent_limit: int = 5,
) -> DashboardSummary:
    """Pure aggregation over already-joined transactions."""
    income = sum(
        (t.amount for t in transactions if t.direction == CategoryDirection.INCOME),
        ZERO,
    )
    expenses = sum(
        (t.amount for t in transactions if t.direction == CategoryDirection.EXPENSE),
        ZERO,
    )
    this_month = sum(
        (
            t.signed_amount for t in transactions
            if (t.transaction_date.year, t.transaction_date.month) == (today.year, today.month)
        ),
        ZERO,
    )
    recent = sorted(
        transactions,
        key=lambda t: (t.transaction_date, t.created_at),
        reverse=True,
    )[:recent_limit]

    return DashboardSummary(
        total_income=income,
        total_expenses=expenses,
        net_balance=income - expenses,
        this_month_net=this_month,
        transaction_count=len(transactions),
        recent_transactions=recent,
    )


class DashboardService:
    """Reads what the dashboard home page shows."""

    def __init__(self, storage: FinanceStorageInterface, recent_limit: Optional[int] = None):
        self._storage = storage
        if recent_limit is None:
            recent_limit = get_settings().app.recent_transactions_limit
        self._recent_limit = recent_limit

    async def summary(self, identity: Identity, today: Optional[date] = None) -> DashboardSummary:
        # Reading never creates a Person; a new user simply has no data yet
        person = await self._storage.get_person_by_email(identity.email)
        if person is None:
            return DashboardSummary()
        transactions = await self._storage.list_transactions(person.id)
        return summarize(transactions, today or date.today(), self._recent_limit)
