"""
Supabase Backend Implementation

DESIGN DECISION: We talk to Supabase over its plain REST surfaces with
`requests` rather than through an SDK:
- PostgREST (/rest/v1) for row reads, inserts and upserts
- GoTrue (/auth/v1) for password sign-in, sign-up and logout
- Storage (/storage/v1) for bill files

TRADEOFFS:
- We hand-build filter query strings (eq., gte., lte.)
- Joins use PostgREST resource embedding in the select parameter
- Aggregation happens client-side in the page services

Nothing is retried automatically except idempotent reads, and only when
SUPABASE_READ_ATTEMPTS is raised above 1.
"""

import time
from datetime import date
from typing import Any, Optional

import requests
from pydantic import ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.audit import get_logger
from finance_tracker.config import SupabaseSettings, get_settings
from finance_tracker.models.auth import Identity, PrivilegeSet, Session
from finance_tracker.models.finance import (
    Bill,
    Category,
    CategoryDirection,
    Person,
    Transaction,
    TransactionType,
)
from finance_tracker.services.backend.interface import (
    AuthenticationError,
    AuthServiceInterface,
    DuplicateError,
    FileStorageInterface,
    FinanceStorageInterface,
    NotFoundError,
    ServiceUnavailableError,
    TransportError,
)


logger = get_logger(__name__)

# Table names in the public schema
PERSONS_TABLE = "persons"
CATEGORIES_TABLE = "categories"
TYPES_TABLE = "types"
TRANSACTIONS_TABLE = "transactions"
BILLS_TABLE = "bills"
PRIVILEGES_TABLE = "user_privileges"

TYPE_WITH_CATEGORY = "id,name,category_id,category:categories(id,name,direction)"
TRANSACTION_WITH_TYPE = f"*,type:types({TYPE_WITH_CATEGORY})"


def _error_message(response: requests.Response) -> str:
    """Best-effort human-readable message from an error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class SupabaseClient:
    """
    Low-level Supabase REST client.

    Owns the HTTP session, the API key headers and the current access
    token. Maps HTTP failures onto the TransportError hierarchy.
    """

    def __init__(
        self,
        settings: Optional[SupabaseSettings] = None,
        http: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().supabase
        self._http = http or requests.Session()
        self._access_token: Optional[str] = None

        if self._settings.is_placeholder:
            logger.warning(
                "supabase_placeholder_config",
                url=self._settings.url,
                detail="SUPABASE_URL / SUPABASE_ANON_KEY unset, remote calls will fail",
            )

    @property
    def settings(self) -> SupabaseSettings:
        return self._settings

    def set_access_token(self, token: Optional[str]) -> None:
        """Authorize subsequent calls as a user (None = anonymous)."""
        self._access_token = token

    def _headers(self, extra: Optional[dict] = None) -> dict:
        headers = {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {self._access_token or self._settings.anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        json: Any = None,
        data: Optional[bytes] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        """
        Issue one HTTP call and return the decoded JSON body (or None).

        Raises:
            ServiceUnavailableError: Connection failure or timeout
            DuplicateError: HTTP 409
            NotFoundError: HTTP 404
            TransportError: Any other HTTP error
        """
        url = f"{self._settings.url}{path}"
        try:
            response = self._http.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                headers=self._headers(headers),
                timeout=self._settings.timeout_seconds,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise ServiceUnavailableError(f"Could not reach Supabase: {e}")
        except requests.RequestException as e:
            raise TransportError(f"Request to Supabase failed: {e}")

        if response.status_code >= 400:
            message = _error_message(response)
            if response.status_code == 409:
                raise DuplicateError(message, status_code=409)
            if response.status_code == 404:
                raise NotFoundError(message, status_code=404)
            raise TransportError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def read(self, path: str, *, params: Any = None, headers: Optional[dict] = None) -> Any:
        """GET with the configured retry policy for idempotent reads."""
        result = None
        for attempt in Retrying(
            stop=stop_after_attempt(self._settings.read_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(ServiceUnavailableError),
            reraise=True,
        ):
            with attempt:
                result = self.request("GET", path, params=params, headers=headers)
        return result

    # ------------------------------------------------------------------
    # PostgREST helpers
    # ------------------------------------------------------------------

    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[list[tuple[str, str]]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        params: list[tuple[str, str]] = [("select", columns)]
        params.extend(filters or [])
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))
        rows = self.read(f"/rest/v1/{table}", params=params)
        return rows or []

    def insert(self, table: str, row: dict) -> dict:
        rows = self.request(
            "POST",
            f"/rest/v1/{table}",
            json=row,
            headers={"Prefer": "return=representation"},
        )
        return rows[0] if rows else row

    def upsert_ignore(self, table: str, row: dict, on_conflict: str) -> list[dict]:
        """Insert unless the conflict column already matches; never updates."""
        return self.request(
            "POST",
            f"/rest/v1/{table}",
            params={"on_conflict": on_conflict},
            json=row,
            headers={"Prefer": "resolution=ignore-duplicates,return=representation"},
        ) or []


class SupabaseFinanceStorage(FinanceStorageInterface):
    """
    Supabase implementation of the finance schema.

    Rows map one-to-one onto the pydantic models; joins are embedded.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def get_person_by_email(self, email: str) -> Optional[Person]:
        rows = self._client.select(
            PERSONS_TABLE,
            filters=[("email", f"eq.{email.lower()}")],
            limit=1,
        )
        return Person(**rows[0]) if rows else None

    async def ensure_person(self, email: str, name: Optional[str] = None) -> Person:
        candidate = Person(email=email, name=name)
        rows = self._client.upsert_ignore(
            PERSONS_TABLE,
            {
                "id": candidate.id,
                "email": candidate.email,
                "name": candidate.name,
                "created_at": candidate.created_at.isoformat(),
            },
            on_conflict="email",
        )
        if rows:
            return Person(**rows[0])

        # Conflict ignored: someone else created it first
        existing = await self.get_person_by_email(candidate.email)
        if existing is None:
            raise TransportError(f"Profile for {email} was neither created nor found")
        return existing

    async def list_categories(
        self,
        direction: Optional[CategoryDirection] = None,
    ) -> list[Category]:
        filters = []
        if direction is not None:
            filters.append(("direction", f"eq.{CategoryDirection(direction).value}"))
        rows = self._client.select(CATEGORIES_TABLE, filters=filters, order="name.asc")
        return [Category(**row) for row in rows]

    async def list_types(
        self,
        direction: Optional[CategoryDirection] = None,
    ) -> list[TransactionType]:
        columns = TYPE_WITH_CATEGORY
        filters = []
        if direction is not None:
            # !inner drops types whose embedded category fails the filter
            columns = "id,name,category_id,category:categories!inner(id,name,direction)"
            filters.append(("category.direction", f"eq.{CategoryDirection(direction).value}"))
        rows = self._client.select(TYPES_TABLE, columns=columns, filters=filters, order="name.asc")
        return [TransactionType(**row) for row in rows]

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        row = self._client.insert(TRANSACTIONS_TABLE, transaction.to_row())
        stored = Transaction(**row)
        if transaction.transaction_type is not None:
            stored = stored.model_copy(update={"transaction_type": transaction.transaction_type})
        return stored

    async def list_transactions(
        self,
        person_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        filters = [("person_id", f"eq.{person_id}")]
        if date_from is not None:
            filters.append(("date", f"gte.{date_from.isoformat()}"))
        if date_to is not None:
            filters.append(("date", f"lte.{date_to.isoformat()}"))
        rows = self._client.select(
            TRANSACTIONS_TABLE,
            columns=TRANSACTION_WITH_TYPE,
            filters=filters,
            order="date.desc,created_at.desc",
        )
        return [Transaction(**row) for row in rows]

    async def save_bill(self, bill: Bill) -> Bill:
        row = self._client.insert(BILLS_TABLE, bill.to_row())
        return Bill(**row)

    async def list_bills(self, person_id: str) -> list[Bill]:
        rows = self._client.select(
            BILLS_TABLE,
            filters=[("person_id", f"eq.{person_id}")],
            order="uploaded_at.desc",
        )
        return [Bill(**row) for row in rows]

    async def get_privileges(self, user_id: str) -> Optional[PrivilegeSet]:
        rows = self._client.select(
            PRIVILEGES_TABLE,
            filters=[("user_id", f"eq.{user_id}")],
            limit=1,
        )
        return PrivilegeSet(**rows[0]) if rows else None


class SupabaseFileStorage(FileStorageInterface):
    """Supabase Storage implementation (one PUT per object)."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        mime_type: str,
    ) -> str:
        try:
            body = self._client.request(
                "POST",
                f"/storage/v1/object/{bucket}/{path}",
                data=content,
                headers={"Content-Type": mime_type, "x-upsert": "false"},
            )
        except DuplicateError:
            raise
        except TransportError as e:
            # Storage reports conflicts as 400 with a "Duplicate" error body
            if "already exists" in e.message.lower() or "duplicate" in e.message.lower():
                raise DuplicateError(e.message, status_code=e.status_code)
            raise
        if isinstance(body, dict) and body.get("Key"):
            return body["Key"]
        return f"{bucket}/{path}"


def session_from_payload(payload: dict) -> Session:
    """
    Build a Session from a GoTrue token response.

    Raises:
        AuthenticationError: If the response carries no usable user
    """
    user = payload.get("user")
    if not isinstance(user, dict):
        raise AuthenticationError("Auth response did not include a user")
    try:
        identity = Identity(**user)
    except ValidationError as e:
        raise AuthenticationError(f"Auth response included an invalid user: {e.error_count()} errors")
    expires_in = int(payload.get("expires_in") or 3600)
    return Session(
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token", ""),
        expires_in=expires_in,
        expires_at=payload.get("expires_at") or time.time() + expires_in,
        token_type=payload.get("token_type", "bearer"),
        user=identity,
    )


class SupabaseAuthService(AuthServiceInterface):
    """
    GoTrue password auth.

    Holds the adopted session and keeps the shared client's access
    token in sync with it, so row reads run as the signed-in user.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()
        self._session: Optional[Session] = None

    def _adopt(self, session: Optional[Session]) -> Optional[Session]:
        self._session = session
        self._client.set_access_token(session.access_token if session else None)
        return session

    def _auth_call(self, path: str, payload: dict, params: Optional[dict] = None) -> dict:
        try:
            body = self._client.request("POST", path, params=params, json=payload)
        except ServiceUnavailableError:
            raise
        except TransportError as e:
            raise AuthenticationError(e.message)
        return body or {}

    async def get_session(self) -> Optional[Session]:
        session = self._session
        if session is None:
            return None
        if session.expires_at is None or session.expires_at > time.time():
            return session
        try:
            body = self._auth_call(
                "/auth/v1/token",
                {"refresh_token": session.refresh_token},
                params={"grant_type": "refresh_token"},
            )
            return self._adopt(session_from_payload(body))
        except (AuthenticationError, TransportError, KeyError) as e:
            logger.warning("supabase_refresh_failed", error=str(e))
            return self._adopt(None)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        body = self._auth_call(
            "/auth/v1/token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        if "access_token" not in body:
            raise AuthenticationError("Sign in failed")
        return self._adopt(session_from_payload(body))

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        body = self._auth_call("/auth/v1/signup", {"email": email, "password": password})
        if "access_token" in body:
            return self._adopt(session_from_payload(body))
        # Email confirmation pending: account exists, no session yet
        return None

    async def sign_out(self) -> None:
        if self._session is None:
            return
        try:
            self._client.request("POST", "/auth/v1/logout")
        except TransportError as e:
            # Token is dropped locally either way
            logger.warning("supabase_logout_failed", error=str(e))
        finally:
            self._adopt(None)
