"""Data access behind each dashboard page."""

from finance_tracker.pages.bills import (
    BillFileStatus,
    BillUploadFlow,
    PendingBill,
    UPLOAD_FAILED_MESSAGE,
)
from finance_tracker.pages.dashboard import DashboardService, DashboardSummary, summarize
from finance_tracker.pages.downloads import (
    REPORT_TYPES,
    DownloadService,
    ExportFile,
    ExportFormat,
    ReportDefinition,
    default_date_range,
)
from finance_tracker.pages.reports import (
    DEFAULT_TIME_RANGE,
    TIME_RANGES,
    MonthlyPoint,
    NamedTotal,
    ReportData,
    ReportsService,
)
from finance_tracker.pages.transactions import (
    REQUIRED_FIELDS_MESSAGE,
    FormValidationError,
    SubmitResult,
    TransactionEntryFlow,
    TransactionForm,
    validate_form,
)

__all__ = [
    "BillFileStatus",
    "BillUploadFlow",
    "PendingBill",
    "UPLOAD_FAILED_MESSAGE",
    "DashboardService",
    "DashboardSummary",
    "summarize",
    "REPORT_TYPES",
    "DownloadService",
    "ExportFile",
    "ExportFormat",
    "ReportDefinition",
    "default_date_range",
    "DEFAULT_TIME_RANGE",
    "TIME_RANGES",
    "MonthlyPoint",
    "NamedTotal",
    "ReportData",
    "ReportsService",
    "REQUIRED_FIELDS_MESSAGE",
    "FormValidationError",
    "SubmitResult",
    "TransactionEntryFlow",
    "TransactionForm",
    "validate_form",
]
