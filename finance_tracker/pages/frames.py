"""Tabular views of transactions shared by reports and exports."""

import pandas as pd

from finance_tracker.models.finance import Transaction


TRANSACTION_COLUMNS = [
    "date",
    "year_month",
    "direction",
    "category",
    "type",
    "description",
    "amount",
]


def transactions_frame(transactions: list[Transaction]) -> pd.DataFrame:
    """One row per transaction, unknown classification marked 'Uncategorized'."""
    rows = [
        {
            "date": t.transaction_date,
            "year_month": t.transaction_date.strftime("%Y-%m"),
            "direction": t.direction.value if t.direction else "unknown",
            "category": t.category_name or "Uncategorized",
            "type": t.transaction_type.name if t.transaction_type else "Uncategorized",
            "description": t.description or "",
            "amount": float(t.amount),
        }
        for t in transactions
    ]
    df = pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)
    if not df.empty:
        df = df.sort_values("date").reset_index(drop=True)
    return df


def month_labels(date_from, date_to) -> list[str]:
    """Every YYYY-MM between the two dates, inclusive."""
    periods = pd.period_range(start=date_from, end=date_to, freq="M")
    return [str(p) for p in periods]


def monthly_totals(df: pd.DataFrame, months: list[str]) -> pd.DataFrame:
    """Income, expenses and net per month, zero-filled for quiet months."""
    known = df[df["direction"].isin(["income", "expense"])]
    if known.empty:
        table = pd.DataFrame(0.0, index=months, columns=["income", "expense"])
    else:
        table = (
            known.pivot_table(
                index="year_month",
                columns="direction",
                values="amount",
                aggfunc="sum",
                fill_value=0.0,
            )
            .reindex(index=months, columns=["income", "expense"], fill_value=0.0)
            .fillna(0.0)
        )
    table = table.rename(columns={"expense": "expenses"})
    table["net"] = table["income"] - table["expenses"]
    table.index.name = "month"
    table.columns.name = None
    return table.reset_index().round(2)


def totals_by(df: pd.DataFrame, direction: str, column: str = "category") -> pd.DataFrame:
    """Sum of amounts per value of `column`, largest first."""
    subset = df[df["direction"] == direction]
    if subset.empty:
        return pd.DataFrame(columns=["name", "value"])
    grouped = subset.groupby(column)["amount"].sum().round(2).sort_values(ascending=False)
    return grouped.rename_axis("name").reset_index(name="value")
