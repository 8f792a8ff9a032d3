"""
Remote Backend Package

Provides abstract interfaces and concrete implementations for the hosted
data/auth/storage service. Supabase is the production backend; the
in-memory implementation serves the offline demo and the tests.
"""

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
from finance_tracker.services.backend.memory import (
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_SOURCES,
    InMemoryFileStorage,
    InMemoryFinanceStorage,
)
from finance_tracker.services.backend.supabase import (
    SupabaseAuthService,
    SupabaseClient,
    SupabaseFileStorage,
    SupabaseFinanceStorage,
)

__all__ = [
    # Interfaces
    "AuthServiceInterface",
    "FileStorageInterface",
    "FinanceStorageInterface",
    # Exceptions
    "AuthenticationError",
    "DuplicateError",
    "NotFoundError",
    "ServiceUnavailableError",
    "TransportError",
    # In-memory implementation
    "DEFAULT_EXPENSE_CATEGORIES",
    "DEFAULT_INCOME_SOURCES",
    "InMemoryFileStorage",
    "InMemoryFinanceStorage",
    # Supabase implementation
    "SupabaseAuthService",
    "SupabaseClient",
    "SupabaseFileStorage",
    "SupabaseFinanceStorage",
]
