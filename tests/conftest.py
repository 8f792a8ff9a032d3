"""Shared fixtures. No test touches the network or the real home directory."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.models import CategoryDirection, Identity, Transaction
from finance_tracker.services.backend import InMemoryFileStorage, InMemoryFinanceStorage


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point every setting at a temp dir and drop cached settings."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AUTH_MODE", "local")
    monkeypatch.setenv("AUTH_LOCAL_SESSION_FILE", str(tmp_path / "local_storage.json"))
    monkeypatch.setenv("REDIRECT_DELAY_SECONDS", "0")
    for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "AUTH_PRIVILEGE_FALLBACK"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def audit_events():
    return []


@pytest.fixture
def audit_logger(audit_events):
    return AuditLogger(sink=audit_events.append)


@pytest.fixture
def storage():
    return InMemoryFinanceStorage()


@pytest.fixture
def file_storage():
    return InMemoryFileStorage()


@pytest.fixture
def identity():
    return Identity(id="user-1", email="alice@example.com")


def make_transaction(person_id, direction, name, amount, on):
    """Build a transaction against one of the seeded default types."""
    type_id = f"type-{direction.value}-{name.lower().replace(' & ', '-').replace(' ', '-')}"
    return Transaction(
        person_id=person_id,
        type_id=type_id,
        amount=Decimal(amount),
        transaction_date=on,
        description=f"{name} {on.isoformat()}",
    )


@pytest.fixture
def seeded(storage, identity):
    """A person with a handful of income and expense rows."""
    async def seed():
        person = await storage.ensure_person(identity.email)
        rows = [
            (CategoryDirection.INCOME, "Salary", "5000.00", date(2024, 5, 1)),
            (CategoryDirection.INCOME, "Freelance", "1200.00", date(2024, 6, 3)),
            (CategoryDirection.EXPENSE, "Food & Dining", "150.50", date(2024, 6, 5)),
            (CategoryDirection.EXPENSE, "Utilities", "89.30", date(2024, 6, 9)),
            (CategoryDirection.EXPENSE, "Transportation", "45.00", date(2024, 5, 20)),
            (CategoryDirection.INCOME, "Salary", "5000.00", date(2024, 6, 1)),
        ]
        for direction, name, amount, on in rows:
            await storage.add_transaction(
                make_transaction(person.id, direction, name, amount, on)
            )
        return person

    return asyncio.run(seed())
