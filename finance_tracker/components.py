"""
Application Wiring

Builds one set of components for one user session. The backend choice
(remote Supabase or the offline in-memory demo) is made here, once, from
AUTH_MODE; nothing downstream branches on it.
"""

from typing import Optional

from finance_tracker.audit import AuditLogger, get_logger
from finance_tracker.auth import (
    AuthContext,
    PrivilegeResolver,
    RemoteSessionBackend,
    create_session_backend,
)
from finance_tracker.config import Settings, get_settings
from finance_tracker.models.finance import CategoryDirection
from finance_tracker.pages import (
    BillUploadFlow,
    DashboardService,
    DownloadService,
    ReportsService,
    TransactionEntryFlow,
)
from finance_tracker.services.backend import (
    FileStorageInterface,
    FinanceStorageInterface,
    InMemoryFileStorage,
    InMemoryFinanceStorage,
    SupabaseAuthService,
    SupabaseClient,
    SupabaseFileStorage,
    SupabaseFinanceStorage,
)


logger = get_logger(__name__)


class AppComponents:
    """Everything the pages need, sharing one storage and one audit logger."""

    def __init__(
        self,
        context: AuthContext,
        storage: FinanceStorageInterface,
        file_storage: FileStorageInterface,
        audit_logger: AuditLogger,
    ):
        self.context = context
        self.storage = storage
        self.file_storage = file_storage
        self.audit_logger = audit_logger

        self.add_expense = TransactionEntryFlow(storage, CategoryDirection.EXPENSE, audit_logger)
        self.add_income = TransactionEntryFlow(storage, CategoryDirection.INCOME, audit_logger)
        self.dashboard = DashboardService(storage)
        self.reports = ReportsService(storage)
        self.downloads = DownloadService(storage, audit_logger)
        self.bills = BillUploadFlow(file_storage, storage, audit_logger)


def create_app_components(
    settings: Optional[Settings] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Application settings (defaults to the environment)
        audit_logger: Shared audit logger (defaults to a local-only one)
    """
    settings = settings or get_settings()
    audit_logger = audit_logger or AuditLogger()

    if settings.auth.mode == "remote":
        client = SupabaseClient(settings.supabase)
        storage = SupabaseFinanceStorage(client)
        file_storage = SupabaseFileStorage(client)
        backend = RemoteSessionBackend(SupabaseAuthService(client))
    else:
        logger.info("local_mode", detail="using in-memory data and the test account")
        storage = InMemoryFinanceStorage()
        file_storage = InMemoryFileStorage()
        backend = create_session_backend(settings.auth)

    resolver = PrivilegeResolver(
        storage=storage,
        policy=settings.auth.privilege_fallback,
        audit_logger=audit_logger,
    )
    context = AuthContext(backend, resolver, audit_logger)
    return AppComponents(context, storage, file_storage, audit_logger)
