"""
Abstract Remote Service Interface

DESIGN DECISION: The hosted backend (row storage, auth tokens, blob
storage) is reached only through these interfaces. This allows us to:
1. Talk to Supabase in production
2. Use in-memory storage for the offline demo and for tests
3. Keep page logic decoupled from HTTP details

The interface is intentionally small - just the reads and writes the
pages actually issue.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from finance_tracker.models.auth import PrivilegeSet, Session
from finance_tracker.models.finance import (
    Bill,
    Category,
    CategoryDirection,
    Person,
    Transaction,
    TransactionType,
)


class FinanceStorageInterface(ABC):
    """
    Abstract interface for the relational finance schema.

    Any backend (Supabase, in-memory, ...) must implement these methods.
    """

    @abstractmethod
    async def get_person_by_email(self, email: str) -> Optional[Person]:
        """
        Look up a profile by exact email match.

        Returns:
            The person if found, None otherwise
        """
        pass

    @abstractmethod
    async def ensure_person(self, email: str, name: Optional[str] = None) -> Person:
        """
        Return the profile for an email, creating it if absent.

        Must be idempotent under concurrency: the store's uniqueness
        constraint on email decides, never a client-side read-then-write.

        Raises:
            TransportError: If the remote call fails
        """
        pass

    @abstractmethod
    async def list_categories(
        self,
        direction: Optional[CategoryDirection] = None,
    ) -> list[Category]:
        """List categories, optionally only one direction."""
        pass

    @abstractmethod
    async def list_types(
        self,
        direction: Optional[CategoryDirection] = None,
    ) -> list[TransactionType]:
        """
        List transaction types joined to their category.

        Args:
            direction: Keep only types whose category has this direction
        """
        pass

    @abstractmethod
    async def add_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert one transaction row.

        Raises:
            DuplicateError: If the id already exists
            TransportError: If the insert fails
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        person_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        List a person's transactions, joined through type -> category.

        Returns:
            Transactions newest first
        """
        pass

    @abstractmethod
    async def save_bill(self, bill: Bill) -> Bill:
        """Insert one bill reference row."""
        pass

    @abstractmethod
    async def list_bills(self, person_id: str) -> list[Bill]:
        """List a person's bills, newest first."""
        pass

    @abstractmethod
    async def get_privileges(self, user_id: str) -> Optional[PrivilegeSet]:
        """
        Read the privilege record for an identity.

        Returns:
            The record, or None when no record exists

        Raises:
            TransportError: If the lookup itself fails
        """
        pass


class FileStorageInterface(ABC):
    """Abstract interface for hosted object storage."""

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        mime_type: str,
    ) -> str:
        """
        Put one object.

        Returns:
            The stored object key

        Raises:
            DuplicateError: If an object already exists at path
            TransportError: If the upload fails
        """
        pass


class AuthServiceInterface(ABC):
    """Abstract interface for the remote auth token service."""

    @abstractmethod
    async def get_session(self) -> Optional[Session]:
        """Return the session the service currently holds, if any."""
        pass

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """
        Exchange credentials for a session.

        Raises:
            AuthenticationError: If the credentials are rejected
        """
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        """
        Register a new account.

        Returns:
            A session, or None when the service requires email confirmation
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """Revoke the current session. Must not fail when there is none."""
        pass


class AuthenticationError(Exception):
    """Credentials were rejected or an auth call was refused."""
    pass


class TransportError(Exception):
    """Base exception for remote calls."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(TransportError):
    """Entity or endpoint not found."""
    pass


class DuplicateError(TransportError):
    """Attempted to insert a duplicate entity."""
    pass


class ServiceUnavailableError(TransportError):
    """Could not reach the remote backend."""
    pass
