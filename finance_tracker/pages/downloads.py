"""
Download Reports

Generates report files for a date range.

    income    CSV, PDF, Excel
    expenses  CSV, PDF, Excel
    monthly   PDF, Excel
    tax       PDF, CSV

DESIGN DECISION: Every report is first built as a DataFrame. The format
only decides how that one table is rendered, so a CSV and a PDF of the
same report always agree.
"""

from datetime import date
from enum import Enum
from io import BytesIO
from typing import Optional

import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.figure import Figure
from pydantic import BaseModel, ConfigDict

from finance_tracker.audit import AuditLogger
from finance_tracker.models.auth import Identity
from finance_tracker.pages.frames import (
    month_labels,
    monthly_totals,
    totals_by,
    transactions_frame,
)
from finance_tracker.pages.transactions import FormValidationError
from finance_tracker.services.backend import FinanceStorageInterface


PDF_ROWS_PER_PAGE = 28


class ExportFormat(str, Enum):
    CSV = "CSV"
    PDF = "PDF"
    EXCEL = "Excel"

    @classmethod
    def _missing_(cls, value):
        # Accept "csv", "pdf", "excel" and "xlsx" as well
        if isinstance(value, str):
            for member in cls:
                if value.lower() in (member.value.lower(), member.extension):
                    return member
        return None

    @property
    def extension(self) -> str:
        return {"CSV": "csv", "PDF": "pdf", "Excel": "xlsx"}[self.value]

    @property
    def mime_type(self) -> str:
        return {
            "CSV": "text/csv",
            "PDF": "application/pdf",
            "Excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        }[self.value]


class ReportDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    formats: tuple[ExportFormat, ...]


REPORT_TYPES: dict[str, ReportDefinition] = {
    "income": ReportDefinition(
        id="income",
        title="Income Report",
        description="Detailed income breakdown by source and date",
        formats=(ExportFormat.CSV, ExportFormat.PDF, ExportFormat.EXCEL),
    ),
    "expenses": ReportDefinition(
        id="expenses",
        title="Expense Report",
        description="Complete expense analysis by category",
        formats=(ExportFormat.CSV, ExportFormat.PDF, ExportFormat.EXCEL),
    ),
    "monthly": ReportDefinition(
        id="monthly",
        title="Monthly Summary",
        description="Month-by-month financial overview",
        formats=(ExportFormat.PDF, ExportFormat.EXCEL),
    ),
    "tax": ReportDefinition(
        id="tax",
        title="Tax Report",
        description="Tax-ready financial statement",
        formats=(ExportFormat.PDF, ExportFormat.CSV),
    ),
}


class ExportFile(BaseModel):
    """A generated file, ready for a download button."""
    model_config = ConfigDict(frozen=True)

    filename: str
    mime_type: str
    content: bytes
    row_count: int = 0


def default_date_range(today: Optional[date] = None) -> tuple[date, date]:
    """January 1st of this year through today."""
    today = today or date.today()
    return date(today.year, 1, 1), today


# =============================================================================
# TABLES
# =============================================================================

def _direction_table(df: pd.DataFrame, direction: str, category_label: str) -> pd.DataFrame:
    subset = df[df["direction"] == direction]
    table = subset[["date", "category", "type", "description", "amount"]].copy()
    table["date"] = table["date"].astype(str)
    return table.rename(columns={
        "date": "Date",
        "category": category_label,
        "type": "Type",
        "description": "Description",
        "amount": "Amount",
    }).reset_index(drop=True)


def _monthly_table(df: pd.DataFrame, date_from: date, date_to: date) -> pd.DataFrame:
    table = monthly_totals(df, month_labels(date_from, date_to))
    return table.rename(columns={
        "month": "Month",
        "income": "Income",
        "expenses": "Expenses",
        "net": "Net",
    })


def _tax_table(df: pd.DataFrame) -> pd.DataFrame:
    income = totals_by(df, "income")
    expenses = totals_by(df, "expense")
    rows = [("Income", r["name"], r["value"]) for r in income.to_dict(orient="records")]
    rows += [("Expenses", r["name"], r["value"]) for r in expenses.to_dict(orient="records")]

    total_income = round(float(income["value"].sum()) if not income.empty else 0.0, 2)
    total_expenses = round(float(expenses["value"].sum()) if not expenses.empty else 0.0, 2)
    rows += [
        ("Summary", "Total income", total_income),
        ("Summary", "Total expenses", total_expenses),
        ("Summary", "Net income", round(total_income - total_expenses, 2)),
    ]
    return pd.DataFrame(rows, columns=["Section", "Category", "Amount"])


def build_table(report_id: str, df: pd.DataFrame, date_from: date, date_to: date) -> pd.DataFrame:
    if report_id == "income":
        return _direction_table(df, "income", "Source")
    if report_id == "expenses":
        return _direction_table(df, "expense", "Category")
    if report_id == "monthly":
        return _monthly_table(df, date_from, date_to)
    if report_id == "tax":
        return _tax_table(df)
    raise FormValidationError(f"Unknown report: {report_id}")


# =============================================================================
# RENDERERS
# =============================================================================

def render_csv(table: pd.DataFrame) -> bytes:
    return table.to_csv(index=False).encode("utf-8")


def render_excel(table: pd.DataFrame, sheet_name: str) -> bytes:
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        # Excel caps sheet names at 31 characters
        table.to_excel(writer, sheet_name=sheet_name[:31], index=False)
    return buffer.getvalue()


def _table_page(title: str, subtitle: str, table: pd.DataFrame) -> Figure:
    fig = Figure(figsize=(8.27, 11.69))
    ax = fig.add_subplot(111)
    ax.axis("off")
    ax.set_title(f"{title}\n{subtitle}", fontsize=12, loc="left")
    if table.empty:
        ax.text(0.0, 0.9, "No transactions in this period", fontsize=10)
        return fig
    cells = [[_format_cell(v) for v in row] for row in table.itertuples(index=False)]
    grid = ax.table(cellText=cells, colLabels=list(table.columns), loc="upper center")
    grid.auto_set_font_size(False)
    grid.set_fontsize(8)
    grid.scale(1, 1.3)
    return fig


def _format_cell(value) -> str:
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


def _monthly_chart(table: pd.DataFrame) -> Figure:
    fig = Figure(figsize=(11.69, 8.27))
    ax = fig.add_subplot(111)
    positions = range(len(table))
    width = 0.4
    ax.bar([p - width / 2 for p in positions], table["Income"], width, label="Income", color="#10B981")
    ax.bar([p + width / 2 for p in positions], table["Expenses"], width, label="Expenses", color="#EF4444")
    ax.set_xticks(list(positions))
    ax.set_xticklabels(table["Month"], rotation=45, ha="right")
    ax.set_ylabel("Amount")
    ax.set_title("Income vs Expenses")
    ax.legend()
    fig.tight_layout()
    return fig


def render_pdf(title: str, subtitle: str, table: pd.DataFrame, chart: bool = False) -> bytes:
    buffer = BytesIO()
    with PdfPages(buffer) as pdf:
        if table.empty:
            pdf.savefig(_table_page(title, subtitle, table))
        for start in range(0, len(table), PDF_ROWS_PER_PAGE):
            page = table.iloc[start:start + PDF_ROWS_PER_PAGE]
            pdf.savefig(_table_page(title, subtitle, page))
        if chart and not table.empty:
            pdf.savefig(_monthly_chart(table))
        info = pdf.infodict()
        info["Title"] = title
    return buffer.getvalue()


# =============================================================================
# SERVICE
# =============================================================================

class DownloadService:
    """
    Usage:
        service = DownloadService(storage)
        export = await service.generate(identity, "income", "CSV", date_from, date_to)
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()

    @staticmethod
    def check(report_id: str, fmt: str) -> tuple[ReportDefinition, ExportFormat]:
        """
        Raises:
            FormValidationError: For an unknown report or a format it does not offer
        """
        definition = REPORT_TYPES.get(report_id)
        if definition is None:
            raise FormValidationError(f"Unknown report: {report_id}")
        try:
            export_format = ExportFormat(fmt)
        except ValueError:
            raise FormValidationError(f"Unknown format: {fmt}")
        if export_format not in definition.formats:
            raise FormValidationError(
                f"{definition.title} is not available as {export_format.value}"
            )
        return definition, export_format

    async def generate(
        self,
        identity: Identity,
        report_id: str,
        fmt: str,
        date_from: date,
        date_to: date,
    ) -> ExportFile:
        definition, export_format = self.check(report_id, fmt)
        if date_from > date_to:
            raise FormValidationError("The start date must be on or before the end date")

        person = await self._storage.get_person_by_email(identity.email)
        transactions = []
        if person is not None:
            transactions = await self._storage.list_transactions(
                person.id, date_from=date_from, date_to=date_to
            )

        table = build_table(report_id, transactions_frame(transactions), date_from, date_to)
        subtitle = f"{date_from.isoformat()} to {date_to.isoformat()}"

        if export_format is ExportFormat.CSV:
            content = render_csv(table)
        elif export_format is ExportFormat.EXCEL:
            content = render_excel(table, definition.title)
        else:
            content = render_pdf(
                definition.title,
                subtitle,
                table,
                chart=report_id == "monthly",
            )

        self._audit.log_export_generated(
            report_id=report_id,
            fmt=export_format.value,
            row_count=len(table),
            user_id=identity.id,
        )
        return ExportFile(
            filename=f"{report_id}_report_{date_from.isoformat()}_{date_to.isoformat()}.{export_format.extension}",
            mime_type=export_format.mime_type,
            content=content,
            row_count=len(table),
        )
