"""
Add Income / Add Expense Flow

One flow class serves both forms; the direction decides which types are
offered and which messages are shown.

Flow:
1. Validate the form locally (no network on failure)
2. Ensure the Person row for the identity (upsert, one row per email)
3. Insert one Transaction
4. Report success; the page moves to the dashboard after a short delay

DESIGN DECISION: Nothing is retried. If the insert fails after the
Person was created, the Person stays; it is needed on the next attempt
anyway.
"""

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from pydantic import BaseModel, Field

from finance_tracker.audit import AuditLogger, create_correlation_id, get_logger
from finance_tracker.auth.guard import DASHBOARD_PATH
from finance_tracker.config import get_settings
from finance_tracker.models.auth import Identity
from finance_tracker.models.finance import (
    CategoryDirection,
    Person,
    Transaction,
    TransactionType,
)
from finance_tracker.services.backend import FinanceStorageInterface, TransportError


logger = get_logger(__name__)

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"
INVALID_AMOUNT_MESSAGE = "Please enter a valid amount greater than zero"
INVALID_DATE_MESSAGE = "Please enter a valid date"
UNKNOWN_TYPE_MESSAGE = "Please choose one of the listed options"

_LABELS = {
    CategoryDirection.EXPENSE: "expense",
    CategoryDirection.INCOME: "income",
}
_NOUNS = {
    CategoryDirection.EXPENSE: "expenses",
    CategoryDirection.INCOME: "income",
}


class FormValidationError(Exception):
    """A form field is missing or malformed. Raised before any network call."""
    pass


class TransactionForm(BaseModel):
    """Raw form input, exactly as typed by the user."""

    amount: Optional[str] = None
    type_id: Optional[str] = None
    transaction_date: Optional[Union[date, str]] = Field(default_factory=date.today)
    description: Optional[str] = None


class SubmitResult(BaseModel):
    """Outcome of a submit, ready for the page to render."""

    success: bool
    error: Optional[str] = None
    transaction: Optional[Transaction] = None
    redirect_to: Optional[str] = None
    redirect_after_seconds: float = 0.0


class ValidatedEntry(BaseModel):
    amount: Decimal
    type_id: str
    transaction_date: date
    description: Optional[str] = None


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_form(form: TransactionForm) -> ValidatedEntry:
    """
    Raises:
        FormValidationError: With the message to show inline
    """
    if _blank(form.amount) or _blank(form.type_id) or _blank(form.transaction_date):
        raise FormValidationError(REQUIRED_FIELDS_MESSAGE)

    try:
        amount = Decimal(form.amount.strip())
        if not amount.is_finite() or amount <= 0:
            raise FormValidationError(INVALID_AMOUNT_MESSAGE)
        # Raises InvalidOperation past the 28-digit context precision
        amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise FormValidationError(INVALID_AMOUNT_MESSAGE)
    if amount <= 0:
        raise FormValidationError(INVALID_AMOUNT_MESSAGE)

    tx_date = form.transaction_date
    if isinstance(tx_date, str):
        try:
            tx_date = date.fromisoformat(tx_date.strip())
        except ValueError:
            raise FormValidationError(INVALID_DATE_MESSAGE)

    description = form.description.strip() if form.description else None
    return ValidatedEntry(
        amount=amount,
        type_id=form.type_id.strip(),
        transaction_date=tx_date,
        description=description or None,
    )


class TransactionEntryFlow:
    """
    Backs the add income and add expense pages.

    Usage:
        flow = TransactionEntryFlow(storage, CategoryDirection.EXPENSE)
        options = await flow.load_type_options()
        result = await flow.submit(context.identity, form)
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        direction: CategoryDirection,
        audit_logger: Optional[AuditLogger] = None,
        redirect_after_seconds: Optional[float] = None,
    ):
        self._storage = storage
        self._direction = CategoryDirection(direction)
        self._audit = audit_logger or AuditLogger()
        if redirect_after_seconds is None:
            redirect_after_seconds = get_settings().app.redirect_delay_seconds
        self._redirect_after = redirect_after_seconds
        self._type_options: Optional[list[TransactionType]] = None

    @property
    def direction(self) -> CategoryDirection:
        return self._direction

    @property
    def not_logged_in_message(self) -> str:
        return f"You must be logged in to add {_NOUNS[self._direction]}"

    @property
    def failure_message(self) -> str:
        return f"Failed to add {_LABELS[self._direction]}"

    async def ensure_person(self, identity: Identity) -> Person:
        person = await self._storage.ensure_person(identity.email, identity.display_name)
        self._audit.log_person_ensured(person_id=person.id, email=person.email)
        return person

    async def load_type_options(self) -> list[TransactionType]:
        """Types whose category matches this flow's direction."""
        self._type_options = await self._storage.list_types(self._direction)
        return self._type_options

    async def submit(
        self,
        identity: Optional[Identity],
        form: TransactionForm,
    ) -> SubmitResult:
        """Validate, store and report. Never raises for expected failures."""
        if identity is None:
            return SubmitResult(success=False, error=self.not_logged_in_message)

        try:
            entry = validate_form(form)
            self._check_type(entry.type_id)
        except FormValidationError as e:
            return SubmitResult(success=False, error=str(e))

        correlation_id = create_correlation_id()
        try:
            person = await self.ensure_person(identity)
            transaction = await self._storage.add_transaction(Transaction(
                person_id=person.id,
                type_id=entry.type_id,
                amount=entry.amount,
                transaction_date=entry.transaction_date,
                description=entry.description,
            ))
        except TransportError as e:
            logger.error(
                "transaction_submit_failed",
                direction=self._direction.value,
                error=e.message,
                status_code=e.status_code,
            )
            self._audit.log_transaction_failed(
                direction=self._direction.value,
                error_message=e.message,
                correlation_id=correlation_id,
            )
            return SubmitResult(success=False, error=self.failure_message)

        self._audit.log_transaction_added(
            transaction_id=transaction.id,
            direction=self._direction.value,
            amount=str(transaction.amount),
            correlation_id=correlation_id,
        )
        return SubmitResult(
            success=True,
            transaction=transaction,
            redirect_to=DASHBOARD_PATH,
            redirect_after_seconds=self._redirect_after,
        )

    def _check_type(self, type_id: str) -> None:
        # Only enforceable once the options were loaded
        if self._type_options is None:
            return
        if type_id not in {t.id for t in self._type_options}:
            raise FormValidationError(UNKNOWN_TYPE_MESSAGE)
