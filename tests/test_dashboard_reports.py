"""Tests for the dashboard overview and the reports aggregation."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.models import Identity
from finance_tracker.pages import DashboardService, FormValidationError, ReportsService
from finance_tracker.pages.reports import window_start


JUNE_15 = date(2024, 6, 15)


class TestDashboardService:
    def test_totals(self, storage, identity, seeded):
        summary = asyncio.run(DashboardService(storage).summary(identity, today=JUNE_15))

        assert summary.total_income == Decimal("11200.00")
        assert summary.total_expenses == Decimal("284.80")
        assert summary.net_balance == Decimal("10915.20")
        assert summary.this_month_net == Decimal("5960.20")
        assert summary.transaction_count == 6

    def test_recent_transactions_newest_first(self, storage, identity, seeded):
        summary = asyncio.run(DashboardService(storage).summary(identity, today=JUNE_15))

        dates = [t.transaction_date for t in summary.recent_transactions]
        assert len(dates) == 5
        assert dates == sorted(dates, reverse=True)
        assert dates[0] == date(2024, 6, 9)

    def test_recent_limit_is_configurable(self, storage, identity, seeded):
        summary = asyncio.run(DashboardService(storage, recent_limit=2).summary(identity))
        assert len(summary.recent_transactions) == 2

    def test_zero_recent_limit_is_respected(self, storage, identity, seeded):
        summary = asyncio.run(DashboardService(storage, recent_limit=0).summary(identity))
        assert summary.recent_transactions == []
        assert summary.transaction_count == 6

    def test_new_user_has_empty_overview_and_no_person(self, storage):
        summary = asyncio.run(
            DashboardService(storage).summary(Identity(id="u9", email="new@example.com"))
        )
        assert summary.net_balance == Decimal("0")
        assert summary.recent_transactions == []
        assert storage.persons == []


class TestWindowStart:
    @pytest.mark.parametrize("time_range,expected", [
        ("1month", date(2024, 6, 1)),
        ("3months", date(2024, 4, 1)),
        ("6months", date(2024, 1, 1)),
        ("1year", date(2023, 7, 1)),
    ])
    def test_ranges(self, time_range, expected):
        assert window_start(time_range, JUNE_15) == expected

    def test_wraps_year(self):
        assert window_start("1year", date(2024, 1, 10)) == date(2023, 2, 1)

    def test_unknown_range(self):
        with pytest.raises(FormValidationError):
            window_start("2weeks", JUNE_15)


class TestReportsService:
    def test_three_month_report(self, storage, identity, seeded):
        report = asyncio.run(ReportsService(storage).build(identity, "3months", today=JUNE_15))

        assert [p.month for p in report.monthly] == ["2024-04", "2024-05", "2024-06"]
        april, may, june = report.monthly
        assert (april.income, april.expenses) == (0.0, 0.0)
        assert may.income == pytest.approx(5000.0)
        assert may.expenses == pytest.approx(45.0)
        assert june.income == pytest.approx(6200.0)
        assert june.expenses == pytest.approx(239.8)
        assert june.net == pytest.approx(5960.2)

        assert [t.name for t in report.expenses_by_category] == [
            "Food & Dining", "Utilities", "Transportation",
        ]
        assert [(t.name, t.value) for t in report.income_by_source] == [
            ("Salary", pytest.approx(10000.0)),
            ("Freelance", pytest.approx(1200.0)),
        ]
        assert report.total_income == pytest.approx(11200.0)
        assert report.net == pytest.approx(10915.2)

    def test_one_month_window_excludes_older_rows(self, storage, identity, seeded):
        report = asyncio.run(ReportsService(storage).build(identity, "1month", today=JUNE_15))
        assert [p.month for p in report.monthly] == ["2024-06"]
        assert "Transportation" not in {t.name for t in report.expenses_by_category}

    def test_one_year_has_twelve_months(self, storage, identity, seeded):
        report = asyncio.run(ReportsService(storage).build(identity, "1year", today=JUNE_15))
        assert len(report.monthly) == 12
        assert report.date_from == date(2023, 7, 1)

    def test_empty_report(self, storage):
        report = asyncio.run(ReportsService(storage).build(
            Identity(id="u9", email="new@example.com"), "6months", today=JUNE_15
        ))
        assert report.is_empty
        assert len(report.monthly) == 6
        assert report.total_expenses == 0
