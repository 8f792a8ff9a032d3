"""
Reports & Analytics

Builds the three chart datasets for a trailing window of whole months:
monthly income vs expenses, expenses by category, income by source.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.auth import Identity
from finance_tracker.pages.frames import (
    month_labels,
    monthly_totals,
    totals_by,
    transactions_frame,
)
from finance_tracker.pages.transactions import FormValidationError
from finance_tracker.services.backend import FinanceStorageInterface


TIME_RANGES = {
    "1month": 1,
    "3months": 3,
    "6months": 6,
    "1year": 12,
}
DEFAULT_TIME_RANGE = "6months"


class MonthlyPoint(BaseModel):
    month: str
    income: float = 0.0
    expenses: float = 0.0
    net: float = 0.0


class NamedTotal(BaseModel):
    name: str
    value: float


class ReportData(BaseModel):
    time_range: str
    date_from: date
    date_to: date
    monthly: list[MonthlyPoint] = Field(default_factory=list)
    expenses_by_category: list[NamedTotal] = Field(default_factory=list)
    income_by_source: list[NamedTotal] = Field(default_factory=list)

    @property
    def total_income(self) -> float:
        return round(sum(p.income for p in self.monthly), 2)

    @property
    def total_expenses(self) -> float:
        return round(sum(p.expenses for p in self.monthly), 2)

    @property
    def net(self) -> float:
        return round(self.total_income - self.total_expenses, 2)

    @property
    def is_empty(self) -> bool:
        return not self.expenses_by_category and not self.income_by_source


def window_start(time_range: str, today: date) -> date:
    """First day of the oldest month in the window (the current month counts)."""
    if time_range not in TIME_RANGES:
        raise FormValidationError(f"Unknown time range: {time_range}")
    months_back = TIME_RANGES[time_range] - 1
    year, month = today.year, today.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    return date(year, month, 1)


class ReportsService:
    """Reads and aggregates the data behind the reports page."""

    def __init__(self, storage: FinanceStorageInterface):
        self._storage = storage

    async def build(
        self,
        identity: Identity,
        time_range: str = DEFAULT_TIME_RANGE,
        today: Optional[date] = None,
    ) -> ReportData:
        """
        Raises:
            FormValidationError: If time_range is not one of TIME_RANGES
        """
        today = today or date.today()
        date_from = window_start(time_range, today)
        report = ReportData(time_range=time_range, date_from=date_from, date_to=today)

        person = await self._storage.get_person_by_email(identity.email)
        transactions = []
        if person is not None:
            transactions = await self._storage.list_transactions(
                person.id, date_from=date_from, date_to=today
            )

        df = transactions_frame(transactions)
        monthly = monthly_totals(df, month_labels(date_from, today))
        report.monthly = [MonthlyPoint(**row) for row in monthly.to_dict(orient="records")]
        report.expenses_by_category = [
            NamedTotal(**row) for row in totals_by(df, "expense").to_dict(orient="records")
        ]
        report.income_by_source = [
            NamedTotal(**row) for row in totals_by(df, "income").to_dict(orient="records")
        ]
        return report
