"""Services package."""

from finance_tracker.services.backend import (
    AuthenticationError,
    AuthServiceInterface,
    DuplicateError,
    FileStorageInterface,
    FinanceStorageInterface,
    InMemoryFileStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    ServiceUnavailableError,
    SupabaseAuthService,
    SupabaseClient,
    SupabaseFileStorage,
    SupabaseFinanceStorage,
    TransportError,
)

__all__ = [
    "AuthenticationError",
    "AuthServiceInterface",
    "DuplicateError",
    "FileStorageInterface",
    "FinanceStorageInterface",
    "InMemoryFileStorage",
    "InMemoryFinanceStorage",
    "NotFoundError",
    "ServiceUnavailableError",
    "SupabaseAuthService",
    "SupabaseClient",
    "SupabaseFileStorage",
    "SupabaseFinanceStorage",
    "TransportError",
]
