"""
In-Memory Backend Implementation

Used by the offline demo mode and by the test suite. Follows the same
contracts as the Supabase implementation, including the unique email
constraint on persons.
"""

from datetime import date
from typing import Optional

from finance_tracker.models.auth import PrivilegeSet
from finance_tracker.models.finance import (
    Bill,
    Category,
    CategoryDirection,
    Person,
    Transaction,
    TransactionType,
)
from finance_tracker.services.backend.interface import (
    DuplicateError,
    FileStorageInterface,
    FinanceStorageInterface,
)


DEFAULT_EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Transportation",
    "Utilities",
    "Healthcare",
    "Entertainment",
    "Shopping",
    "Education",
    "Housing",
    "Insurance",
    "Other",
]

DEFAULT_INCOME_SOURCES = [
    "Salary",
    "Freelance",
    "Business",
    "Investment",
    "Rental",
    "Gift",
    "Refund",
    "Bonus",
    "Commission",
    "Other",
]


def default_classification() -> tuple[list[Category], list[TransactionType]]:
    """One category per default name, each with a single same-named type."""
    categories = []
    types = []
    for direction, names in (
        (CategoryDirection.EXPENSE, DEFAULT_EXPENSE_CATEGORIES),
        (CategoryDirection.INCOME, DEFAULT_INCOME_SOURCES),
    ):
        for name in names:
            category = Category(
                id=f"{direction.value}-{name.lower().replace(' & ', '-').replace(' ', '-')}",
                name=name,
                direction=direction,
            )
            categories.append(category)
            types.append(TransactionType(
                id=f"type-{category.id}",
                name=name,
                category_id=category.id,
            ))
    return categories, types


class InMemoryFinanceStorage(FinanceStorageInterface):
    """Dict-backed finance schema."""

    def __init__(
        self,
        categories: Optional[list[Category]] = None,
        types: Optional[list[TransactionType]] = None,
        privileges: Optional[dict[str, PrivilegeSet]] = None,
        seed_defaults: bool = True,
    ):
        if seed_defaults and categories is None and types is None:
            categories, types = default_classification()
        self._categories: dict[str, Category] = {c.id: c for c in categories or []}
        self._types: dict[str, TransactionType] = {t.id: t for t in types or []}
        self._privileges: dict[str, PrivilegeSet] = dict(privileges or {})
        self._persons: dict[str, Person] = {}
        self._transactions: dict[str, Transaction] = {}
        self._bills: dict[str, Bill] = {}

    @property
    def persons(self) -> list[Person]:
        return list(self._persons.values())

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions.values())

    @property
    def bills(self) -> list[Bill]:
        return list(self._bills.values())

    def set_privileges(self, user_id: str, privileges: PrivilegeSet) -> None:
        self._privileges[user_id] = privileges

    def _joined_type(self, type_id: str) -> Optional[TransactionType]:
        tx_type = self._types.get(type_id)
        if tx_type is None:
            return None
        return tx_type.model_copy(update={"category": self._categories.get(tx_type.category_id)})

    async def get_person_by_email(self, email: str) -> Optional[Person]:
        email = email.lower()
        for person in self._persons.values():
            if person.email == email:
                return person
        return None

    async def ensure_person(self, email: str, name: Optional[str] = None) -> Person:
        # No await between lookup and insert: atomic on the event loop
        existing = await self.get_person_by_email(email)
        if existing is not None:
            return existing
        person = Person(email=email, name=name)
        self._persons[person.id] = person
        return person

    async def list_categories(
        self,
        direction: Optional[CategoryDirection] = None,
    ) -> list[Category]:
        categories = [
            c for c in self._categories.values()
            if direction is None or c.direction == direction
        ]
        return sorted(categories, key=lambda c: c.name)

    async def list_types(
        self,
        direction: Optional[CategoryDirection] = None,
    ) -> list[TransactionType]:
        joined = [self._joined_type(type_id) for type_id in self._types]
        return sorted(
            (t for t in joined if direction is None or t.direction == direction),
            key=lambda t: t.name,
        )

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id in self._transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}", status_code=409)
        stored = transaction.model_copy(update={"transaction_type": None})
        self._transactions[stored.id] = stored
        return stored.model_copy(update={"transaction_type": self._joined_type(stored.type_id)})

    async def list_transactions(
        self,
        person_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        rows = []
        for tx in self._transactions.values():
            if tx.person_id != person_id:
                continue
            if date_from and tx.transaction_date < date_from:
                continue
            if date_to and tx.transaction_date > date_to:
                continue
            rows.append(tx.model_copy(update={"transaction_type": self._joined_type(tx.type_id)}))
        rows.sort(key=lambda t: (t.transaction_date, t.created_at), reverse=True)
        return rows

    async def save_bill(self, bill: Bill) -> Bill:
        if bill.id in self._bills:
            raise DuplicateError(f"Bill already exists: {bill.id}", status_code=409)
        self._bills[bill.id] = bill
        return bill

    async def list_bills(self, person_id: str) -> list[Bill]:
        bills = [b for b in self._bills.values() if b.person_id == person_id]
        return sorted(bills, key=lambda b: b.uploaded_at, reverse=True)

    async def get_privileges(self, user_id: str) -> Optional[PrivilegeSet]:
        return self._privileges.get(user_id)


class InMemoryFileStorage(FileStorageInterface):
    """Dict-backed object storage keyed by (bucket, path)."""

    def __init__(self):
        self._objects: dict[tuple[str, str], tuple[bytes, str]] = {}

    @property
    def objects(self) -> dict[tuple[str, str], tuple[bytes, str]]:
        return dict(self._objects)

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        mime_type: str,
    ) -> str:
        key = (bucket, path)
        if key in self._objects:
            raise DuplicateError(f"The resource already exists: {bucket}/{path}", status_code=409)
        self._objects[key] = (content, mime_type)
        return f"{bucket}/{path}"
