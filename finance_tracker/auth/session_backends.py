"""
Session Backends

DESIGN DECISION: The choice between the real auth service and the
offline demo is made once, when the backend is constructed. The auth
context never branches on the mode itself.

- RemoteSessionBackend delegates every call to the auth service.
- LocalSessionBackend accepts one fixed credential pair and persists a
  mock session under a single local storage key.
"""

import json
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from finance_tracker.audit import get_logger
from finance_tracker.config import AuthSettings, get_settings
from finance_tracker.models.auth import Identity, Session
from finance_tracker.services.backend import AuthenticationError, AuthServiceInterface


logger = get_logger(__name__)

TEST_EMAIL = "test@example.com"
TEST_PASSWORD = "password123"
MOCK_USER_ID = "test-user-id-12345"
MOCK_SESSION_SECONDS = 3600

INVALID_TEST_CREDENTIALS_MESSAGE = (
    f"Invalid test credentials. Use {TEST_EMAIL} / {TEST_PASSWORD}"
)


class SessionBackend(ABC):
    """Where sessions come from."""

    mode: str = "abstract"

    @abstractmethod
    async def restore(self) -> Optional[Session]:
        """Return a previously established session, if any."""
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Session:
        """
        Raises:
            AuthenticationError: If the credentials are rejected
        """
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        """Returns None when the account still needs confirming."""
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """Idempotent."""
        pass


class RemoteSessionBackend(SessionBackend):
    """Delegates to the hosted auth service."""

    mode = "remote"

    def __init__(self, auth_service: AuthServiceInterface):
        self._auth = auth_service

    async def restore(self) -> Optional[Session]:
        return await self._auth.get_session()

    async def sign_in(self, email: str, password: str) -> Session:
        return await self._auth.sign_in_with_password(email, password)

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        return await self._auth.sign_up(email, password)

    async def sign_out(self) -> None:
        await self._auth.sign_out()


class LocalStorage:
    """
    A tiny key/value file standing in for browser local storage.

    Values are strings, the file is a JSON object.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("local_storage_unreadable", path=str(self._path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


def create_mock_identity() -> Identity:
    return Identity(id=MOCK_USER_ID, email=TEST_EMAIL)


def create_mock_session() -> Session:
    return Session(
        access_token="mock-access-token",
        refresh_token="mock-refresh-token",
        expires_in=MOCK_SESSION_SECONDS,
        expires_at=time.time() + MOCK_SESSION_SECONDS,
        token_type="bearer",
        user=create_mock_identity(),
    )


class LocalSessionBackend(SessionBackend):
    """
    Offline/demo auth.

    Not a security feature: sign-up accepts anything and always yields
    the same mock identity.
    """

    mode = "local"

    def __init__(self, storage: LocalStorage, storage_key: str = "test_auth"):
        self._storage = storage
        self._key = storage_key

    def _persist(self, session: Session) -> None:
        record = {
            "user": session.user.model_dump(mode="json"),
            "session": session.model_dump(mode="json"),
        }
        self._storage.set_item(self._key, json.dumps(record))

    async def restore(self) -> Optional[Session]:
        raw = self._storage.get_item(self._key)
        if raw is None:
            return None
        try:
            record = json.loads(raw)
            return Session(**record["session"])
        except (ValueError, KeyError, TypeError) as e:
            logger.error("local_session_corrupt", key=self._key, error=str(e))
            self._storage.remove_item(self._key)
            return None

    async def sign_in(self, email: str, password: str) -> Session:
        if email != TEST_EMAIL or password != TEST_PASSWORD:
            raise AuthenticationError(INVALID_TEST_CREDENTIALS_MESSAGE)
        session = create_mock_session()
        self._persist(session)
        return session

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        session = create_mock_session()
        self._persist(session)
        return session

    async def sign_out(self) -> None:
        self._storage.remove_item(self._key)


def create_session_backend(
    settings: Optional[AuthSettings] = None,
    auth_service: Optional[AuthServiceInterface] = None,
) -> SessionBackend:
    """
    Pick the session backend for the configured mode.

    Args:
        settings: Auth settings (defaults to the environment)
        auth_service: Required for remote mode
    """
    settings = settings or get_settings().auth
    if settings.mode == "remote":
        if auth_service is None:
            raise ValueError("Remote auth mode needs an auth service")
        return RemoteSessionBackend(auth_service)
    return LocalSessionBackend(
        LocalStorage(settings.local_session_path),
        storage_key=settings.local_session_key,
    )
