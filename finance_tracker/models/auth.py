"""
Authentication and Authorization Models

Identity and Session are owned by the remote auth service; the client
only holds a cached copy for the lifetime of a session.

DESIGN DECISION: Session objects are frozen. A sign-in or sign-out
replaces the session wholesale, nothing ever mutates one in place.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Identity(BaseModel):
    """The signed-in user as reported by the auth service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque user identifier"
    )
    email: str = Field(
        ...,
        description="Email the user signed in with"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the identity was issued"
    )
    aud: str = "authenticated"
    role: str = "authenticated"

    @property
    def display_name(self) -> str:
        """Local part of the email, used for greetings."""
        return self.email.split("@")[0]


class Session(BaseModel):
    """Access/refresh token pair for one identity."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str
    refresh_token: str
    expires_in: int = Field(default=3600, ge=0)
    expires_at: Optional[float] = Field(
        default=None,
        description="Expiry as a unix timestamp"
    )
    token_type: str = "bearer"
    user: Identity


class PrivilegeKey(str, Enum):
    """Named permissions a user can hold."""
    ADD_EXPENSE = "can_add_expense"
    ADD_INCOME = "can_add_income"
    VIEW_REPORTS = "can_view_reports"
    UPLOAD_BILLS = "can_upload_bills"
    DOWNLOAD_REPORTS = "can_download_reports"


class PrivilegeSet(BaseModel):
    """
    Five independent permissions for one identity.

    Stored in the `user_privileges` table keyed by user_id.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    can_add_expense: bool = False
    can_add_income: bool = False
    can_view_reports: bool = False
    can_upload_bills: bool = False
    can_download_reports: bool = False

    def allows(self, key: PrivilegeKey) -> bool:
        return getattr(self, PrivilegeKey(key).value) is True


class PrivilegeFallbackPolicy(str, Enum):
    """
    What an identity gets when no privilege record can be read.

    FAIL_OPEN grants everything, FAIL_CLOSED grants nothing.
    """
    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


ALL_PRIVILEGES_GRANTED = PrivilegeSet(
    can_add_expense=True,
    can_add_income=True,
    can_view_reports=True,
    can_upload_bills=True,
    can_download_reports=True,
)

NO_PRIVILEGES_GRANTED = PrivilegeSet()

# Navigation shows every entry until a record says otherwise.
DEFAULT_PRIVILEGE_POLICY = PrivilegeFallbackPolicy.FAIL_OPEN


def fallback_privileges(policy: PrivilegeFallbackPolicy) -> PrivilegeSet:
    """Privileges substituted for a missing or unreadable record."""
    if PrivilegeFallbackPolicy(policy) == PrivilegeFallbackPolicy.FAIL_OPEN:
        return ALL_PRIVILEGES_GRANTED
    return NO_PRIVILEGES_GRANTED
