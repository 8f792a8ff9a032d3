"""
Streamlit Frontend for FinanceTracker

DESIGN PRINCIPLES:
1. One AuthContext per browser session, kept in st.session_state
2. Every dashboard page passes through the RouteGuard first
3. The sidebar only shows what the user's privileges allow
4. Errors are shown inline on the page that caused them

Routing is a plain path string in st.session_state; navigate() changes it
and re-runs the script.
"""

import asyncio
import time
from datetime import date

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from finance_tracker.audit import configure_logging
from finance_tracker.auth import (
    AuthState,
    DASHBOARD_PATH,
    LOGIN_PATH,
    NAV_ENTRIES,
    ROUTES,
    TEST_EMAIL,
    TEST_PASSWORD,
    GuardState,
    RouteGuard,
    landing_path,
    visible_entries,
)
from finance_tracker.components import AppComponents, create_app_components
from finance_tracker.config import get_settings, validate_all_settings
from finance_tracker.pages import (
    DEFAULT_TIME_RANGE,
    REPORT_TYPES,
    TIME_RANGES,
    BillFileStatus,
    FormValidationError,
    PendingBill,
    TransactionEntryFlow,
    TransactionForm,
    default_date_range,
)
from finance_tracker.services.backend import AuthenticationError, TransportError


st.set_page_config(
    page_title="FinanceTracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .income { color: #16a34a; font-weight: bold; }
    .expense { color: #dc2626; font-weight: bold; }
</style>
""", unsafe_allow_html=True)


TIME_RANGE_LABELS = {
    "1month": "1 Month",
    "3months": "3 Months",
    "6months": "6 Months",
    "1year": "1 Year",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_components() -> AppComponents:
    """Per-session components; the auth context must not be shared."""
    if "components" not in st.session_state:
        st.session_state.components = create_app_components()
    return st.session_state.components


def get_guard() -> RouteGuard:
    if "guard" not in st.session_state:
        components = get_components()
        st.session_state.guard = RouteGuard(
            on_redirect=lambda path: st.session_state.update(path=path),
            audit_logger=components.audit_logger,
        )
    return st.session_state.guard


def navigate(path: str):
    st.session_state.path = path
    st.rerun()


def money(value) -> str:
    return f"${float(value):,.2f}"


def main():
    """Main application entry point."""
    configure_logging(get_settings().app.debug_mode)
    components = get_components()
    context = components.context

    if context.state is AuthState.UNINITIALIZED:
        run_async(context.initialize())

    path = st.session_state.get("path", "/")

    if path == "/":
        target = landing_path(context)
        if target is None:
            st.info("Loading...")
            return
        navigate(target)

    if path == LOGIN_PATH:
        if context.is_authenticated:
            navigate(DASHBOARD_PATH)
        render_login_page(components)
        return

    state = get_guard().evaluate(context, path)
    if state is GuardState.CHECKING:
        st.info("Loading...")
        return
    if state is GuardState.UNAUTHORIZED:
        if st.session_state.get("path") != path:
            st.rerun()
        return

    render_sidebar(components, path)

    entry = next((e for e in NAV_ENTRIES if e.path == path), None)
    privileges = context.privileges
    if entry and entry.privilege and privileges and not privileges.allows(entry.privilege):
        st.warning("You do not have access to this page.")
        return

    if path == ROUTES["dashboard"]:
        render_dashboard_page(components)
    elif path == ROUTES["add_expense"]:
        render_transaction_page(components.add_expense, "Add Expense", "Track your spending")
    elif path == ROUTES["add_income"]:
        render_transaction_page(components.add_income, "Add Income", "Record your earnings")
    elif path == ROUTES["reports"]:
        render_reports_page(components)
    elif path == ROUTES["bills"]:
        render_bills_page(components)
    elif path == ROUTES["downloads"]:
        render_downloads_page(components)
    else:
        st.error("Page not found")


def render_sidebar(components: AppComponents, current_path: str):
    context = components.context
    st.sidebar.title("💰 FinanceTracker")
    if context.identity:
        st.sidebar.caption(context.identity.email)
    st.sidebar.markdown("---")

    for item in visible_entries(current_path, context.privileges):
        if st.sidebar.button(
            f"{item.icon} {item.label}",
            key=f"nav-{item.path}",
            type="primary" if item.active else "secondary",
        ):
            navigate(item.path)

    st.sidebar.markdown("---")
    if st.sidebar.button("🚪 Sign Out", key="sign-out"):
        run_async(context.sign_out())
        st.session_state.pop("pending_bills", None)
        st.session_state.pop("exports", None)
        st.rerun()

    if context.mode == "local":
        st.sidebar.info("Local demo mode: data lives in this browser session only.")


def render_login_page(components: AppComponents):
    context = components.context
    st.title("💰 FinanceTracker")
    st.markdown("Sign in to manage your income, expenses and bills.")

    if context.mode == "local":
        st.info(f"Demo account: **{TEST_EMAIL}** / **{TEST_PASSWORD}**")
    else:
        status = validate_all_settings()
        if status.get("supabase_placeholder"):
            st.warning("Supabase is not configured; sign-in will fail.")

    sign_in_tab, sign_up_tab = st.tabs(["Sign In", "Sign Up"])

    with sign_in_tab:
        with st.form("sign-in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign In")
        if submitted:
            try:
                run_async(context.sign_in(email, password))
            except AuthenticationError as e:
                st.error(str(e))
            except TransportError:
                st.error("Could not reach the sign-in service. Please try again.")
            else:
                navigate(DASHBOARD_PATH)

    with sign_up_tab:
        with st.form("sign-up"):
            email = st.text_input("Email", key="sign-up-email")
            password = st.text_input("Password", type="password", key="sign-up-password")
            submitted = st.form_submit_button("Create Account")
        if submitted:
            try:
                session = run_async(context.sign_up(email, password))
            except AuthenticationError as e:
                st.error(str(e))
            except TransportError:
                st.error("Could not reach the sign-up service. Please try again.")
            else:
                if session is None:
                    st.success("Check your email to confirm your account, then sign in.")
                else:
                    navigate(DASHBOARD_PATH)


def render_dashboard_page(components: AppComponents):
    context = components.context
    privileges = context.privileges
    st.title(f"Welcome back, {context.identity.display_name}!")
    st.markdown("Here's your financial overview for today")

    try:
        summary = run_async(components.dashboard.summary(context.identity))
    except TransportError:
        st.error("Could not load your overview. Please try again.")
        return

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Income", money(summary.total_income))
    col2.metric("Total Expenses", money(summary.total_expenses))
    col3.metric("Net Balance", money(summary.net_balance))
    col4.metric("This Month", money(summary.this_month_net))

    action1, action2, _ = st.columns([1, 1, 2])
    if privileges and privileges.can_add_expense and action1.button("➖ Add Expense"):
        navigate(ROUTES["add_expense"])
    if privileges and privileges.can_add_income and action2.button("➕ Add Income"):
        navigate(ROUTES["add_income"])

    st.markdown("### Recent Transactions")
    if not summary.recent_transactions:
        st.info("No transactions yet. Add your first income or expense to get started.")
        return

    for tx in summary.recent_transactions:
        is_income = tx.direction and tx.direction.value == "income"
        sign = "+" if is_income else "-"
        css = "income" if is_income else "expense"
        label = tx.description or (tx.transaction_type.name if tx.transaction_type else "")
        st.markdown(
            f"**{label}** · {tx.category_name or 'Uncategorized'} · {tx.transaction_date.isoformat()}"
            f" <span class='{css}'>{sign}{money(tx.amount)}</span>",
            unsafe_allow_html=True,
        )


def render_transaction_page(flow: TransactionEntryFlow, title: str, subtitle: str):
    context = get_components().context
    st.title(title)
    st.markdown(subtitle)

    try:
        options = run_async(flow.load_type_options())
    except TransportError:
        st.error("Could not load the options for this form. Please try again.")
        return

    with st.form(f"entry-{flow.direction.value}"):
        amount = st.text_input("Amount *", placeholder="0.00")
        type_option = st.selectbox(
            "Category *" if flow.direction.value == "expense" else "Source *",
            options=[None] + options,
            format_func=lambda t: "Select..." if t is None else t.name,
        )
        tx_date = st.date_input("Date *", value=date.today())
        description = st.text_area("Description")
        submitted = st.form_submit_button(title)

    if not submitted:
        return

    result = run_async(flow.submit(
        context.identity,
        TransactionForm(
            amount=amount,
            type_id=type_option.id if type_option else None,
            transaction_date=tx_date,
            description=description,
        ),
    ))
    if not result.success:
        st.error(result.error)
        return

    st.success(f"{title.replace('Add ', '')} added successfully! Redirecting...")
    time.sleep(result.redirect_after_seconds)
    navigate(result.redirect_to)


def render_reports_page(components: AppComponents):
    context = components.context
    st.title("📊 Reports & Analytics")

    time_range = st.radio(
        "Time range",
        options=list(TIME_RANGES),
        index=list(TIME_RANGES).index(DEFAULT_TIME_RANGE),
        format_func=lambda key: TIME_RANGE_LABELS[key],
        horizontal=True,
    )

    try:
        report = run_async(components.reports.build(context.identity, time_range))
    except TransportError:
        st.error("Could not load your reports. Please try again.")
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(report.total_income))
    col2.metric("Expenses", money(report.total_expenses))
    col3.metric("Net", money(report.net))

    monthly = pd.DataFrame([p.model_dump() for p in report.monthly])
    fig = go.Figure()
    fig.add_bar(x=monthly["month"], y=monthly["income"], name="Income", marker_color="#10B981")
    fig.add_bar(x=monthly["month"], y=monthly["expenses"], name="Expenses", marker_color="#EF4444")
    fig.update_layout(barmode="group", title="Income vs Expenses")
    st.plotly_chart(fig, use_container_width=True)

    if report.is_empty:
        st.info("No transactions in this period.")
        return

    left, right = st.columns(2)
    with left:
        if report.expenses_by_category:
            data = pd.DataFrame([t.model_dump() for t in report.expenses_by_category])
            st.plotly_chart(
                px.pie(data, names="name", values="value", title="Expenses by Category", hole=0.4),
                use_container_width=True,
            )
    with right:
        if report.income_by_source:
            data = pd.DataFrame([t.model_dump() for t in report.income_by_source])
            st.plotly_chart(
                px.pie(data, names="name", values="value", title="Income by Source", hole=0.4),
                use_container_width=True,
            )


def render_bills_page(components: AppComponents):
    context = components.context
    flow = components.bills
    st.title("🧾 Upload Bills")
    formats = ", ".join(ext.upper() for ext in flow.accepted_extensions)
    st.markdown(f"Supported formats: {formats} (max {get_settings().app.max_bill_size_mb}MB per file)")

    pending: list[PendingBill] = st.session_state.setdefault("pending_bills", [])

    picked = st.file_uploader(
        "Drag & drop files here",
        type=flow.accepted_extensions,
        accept_multiple_files=True,
        key=f"bill-picker-{len(pending)}",
    )
    if picked:
        pending.extend(PendingBill(filename=f.name, content=f.getvalue()) for f in picked)
        st.rerun()

    if pending:
        upload_col, clear_col = st.columns(2)
        all_done = all(f.status == BillFileStatus.UPLOADED for f in pending)
        if upload_col.button("Upload All", disabled=all_done):
            with st.spinner("Uploading..."):
                st.session_state.pending_bills = run_async(
                    flow.upload_all(context.identity, pending)
                )
            st.rerun()
        if clear_col.button("Clear All"):
            st.session_state.pending_bills = []
            st.rerun()

        for file in pending:
            size_kb = file.size_bytes / 1024
            if file.status == BillFileStatus.UPLOADED:
                st.success(f"✅ {file.filename} ({size_kb:.1f} KB)")
            elif file.status == BillFileStatus.ERROR:
                st.error(f"❌ {file.filename}: {file.error}")
            else:
                st.write(f"📄 {file.filename} ({size_kb:.1f} KB)")

    st.markdown("### Your Bills")
    try:
        bills = run_async(flow.list_bills(context.identity))
    except TransportError:
        st.error("Could not load your bills.")
        return
    if not bills:
        st.info("Bills you upload will appear here.")
        return
    st.dataframe(
        pd.DataFrame([
            {"Name": b.name, "Type": b.extension.upper(), "Size (KB)": round(b.size_bytes / 1024, 1),
             "Uploaded": b.uploaded_at.strftime("%Y-%m-%d %H:%M")}
            for b in bills
        ]),
        use_container_width=True,
        hide_index=True,
    )


def render_downloads_page(components: AppComponents):
    context = components.context
    st.title("⬇️ Download Reports")

    default_from, default_to = default_date_range()
    col1, col2 = st.columns(2)
    date_from = col1.date_input("From", value=default_from)
    date_to = col2.date_input("To", value=default_to)

    exports = st.session_state.setdefault("exports", {})

    for report in REPORT_TYPES.values():
        st.markdown(f"### {report.title}")
        st.caption(report.description)
        columns = st.columns(len(report.formats))
        for column, fmt in zip(columns, report.formats):
            key = f"{report.id}-{fmt.value}"
            if column.button(f"Generate {fmt.value}", key=f"gen-{key}"):
                try:
                    exports[key] = run_async(components.downloads.generate(
                        context.identity, report.id, fmt.value, date_from, date_to
                    ))
                except FormValidationError as e:
                    st.error(str(e))
                except TransportError:
                    st.error("Failed to generate report")
            export = exports.get(key)
            if export is not None:
                column.download_button(
                    f"Download {fmt.value}",
                    data=export.content,
                    file_name=export.filename,
                    mime=export.mime_type,
                    key=f"dl-{key}",
                )


if __name__ == "__main__":
    main()
