"""
Streamlit Frontend for the Expense Tracker

DESIGN PRINCIPLES:
1. Quick entry: one form, amount and category up front
2. Clear error messages naming the field that was rejected
3. Bulk imports are reviewed before anything is saved
4. All numbers shown are rounded by the reports layer, never here
"""

import asyncio
from datetime import date

import streamlit as st

from expense_tracker.categories import get_registry
from expense_tracker.models.expense import ExpenseRecord, ReportPeriod
from expense_tracker.orchestrator import ExpenseFlow, ReportFlow, create_app_components
from expense_tracker.reports import format_money
from expense_tracker.services.csv_import import CSVImportError
from expense_tracker.services.storage import NotFoundError, StorageError
from expense_tracker.validation import ExpenseValidationError


st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def show_validation_error(error: ExpenseValidationError) -> None:
    where = f" (row {error.row + 1})" if error.row is not None else ""
    st.error(f"❌ {error.field.capitalize()}{where}: {error.message}")


def main():
    """Main application entry point."""
    expense_flow, report_flow, sheets_client = get_components()

    st.sidebar.title("💸 Expense Tracker")
    if sheets_client is None:
        st.sidebar.warning("Google Sheets not configured: expenses are kept in memory only.")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ Add Expense", "📥 Bulk Add", "📋 Expenses", "📊 Analysis", "⚙️ Settings"],
        index=0,
    )

    if page == "➕ Add Expense":
        render_add_page(expense_flow)
    elif page == "📥 Bulk Add":
        render_bulk_page(expense_flow)
    elif page == "📋 Expenses":
        render_expenses_page(expense_flow)
    elif page == "📊 Analysis":
        render_analysis_page(report_flow)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_add_page(expense_flow: ExpenseFlow):
    """Render the single expense form."""
    st.title("➕ Add Expense")
    registry = get_registry()

    with st.form("add_expense", clear_on_submit=True):
        amount = st.number_input("Amount *", min_value=0.0, step=10.0, format="%.2f")
        category = st.selectbox("Category *", options=registry.names())
        saving = st.number_input("Saving", min_value=0.0, step=10.0, format="%.2f")
        description = st.text_input("Description")
        use_today = st.checkbox("Use current time", value=True)
        picked = st.date_input("Date", value=date.today(), disabled=use_today)
        submitted = st.form_submit_button("Add Expense", type="primary")

    if submitted:
        raw = {
            "description": description,
            "amount": str(amount),
            "category": category,
            "saving": str(saving),
            "date": None if use_today else picked.isoformat(),
        }
        try:
            record = run_async(expense_flow.add_expense(raw))
            st.success(f"✅ Expense added: {record.category.value} - {format_money(record.amount)}")
        except ExpenseValidationError as e:
            show_validation_error(e)
        except StorageError as e:
            st.error(f"❌ Failed to add expense: {e}")


def render_bulk_page(expense_flow: ExpenseFlow):
    """Render the CSV bulk import page."""
    st.title("📥 Bulk Add Expenses")
    st.markdown(
        "Upload a CSV or paste it below. Columns: `description`, `amount`, "
        "and optionally `saving` and `category`. Every row gets the date you pick; "
        f"rows without a category are filed under **{get_registry().default.value}**."
    )

    uploaded = st.file_uploader("CSV file", type=["csv"])
    pasted = st.text_area("Or paste CSV content", height=160)
    batch_date = st.date_input("Date for all rows", value=date.today())

    if st.button("🔍 Preview"):
        source = uploaded.getvalue() if uploaded else pasted
        try:
            rows = expense_flow.read_csv(source)
            st.session_state.bulk_rows = rows
        except CSVImportError as e:
            st.error(f"❌ {e}")
            st.session_state.bulk_rows = None

    rows = st.session_state.get("bulk_rows")
    if not rows:
        return

    registry = get_registry()

    def label(name: str) -> str:
        if not name:
            return f"({registry.default.value})"
        return name if registry.is_valid(name) else f"⚠️ {name} (unknown)"

    st.subheader(f"Extracted Expenses ({len(rows)})")
    for index, row in enumerate(rows):
        cols = st.columns([4, 2, 2, 3])
        cols[0].write(row.get("description", ""))
        cols[1].write(row.get("amount", ""))
        cols[2].write(row.get("saving", "") or "0")
        current = row.get("category", "")
        options = registry.bulk_choices(current)
        row["category"] = cols[3].selectbox(
            "Category",
            options=options,
            index=options.index(current) if current in options else 0,
            key=f"bulk_category_{index}",
            label_visibility="collapsed",
            format_func=label,
        )

    if st.button("💾 Save Expenses", type="primary"):
        try:
            result = run_async(expense_flow.bulk_import(rows, batch_date.isoformat()))
            st.success(
                f"✅ Saved {result.inserted_count} expenses "
                f"({result.defaulted_category_count} filed under {registry.default.value})"
            )
            st.session_state.bulk_rows = None
        except ExpenseValidationError as e:
            show_validation_error(e)
        except StorageError as e:
            st.error(f"❌ Failed to bulk add expenses: {e}")


def render_expenses_page(expense_flow: ExpenseFlow):
    """Render the month's expense list with edit and delete."""
    st.title("📋 Expenses")
    today = date.today()
    col1, col2 = st.columns(2)
    year = col1.number_input("Year", min_value=1970, max_value=9998, value=today.year, step=1)
    month = col2.selectbox("Month", options=list(range(1, 13)), index=today.month - 1)

    period = ReportPeriod(year=int(year), month=int(month))
    expenses = run_async(expense_flow.list_expenses(period))

    if not expenses:
        st.info("No expenses recorded for this month.")
        return

    st.dataframe([expense.to_dict() for expense in expenses], use_container_width=True)

    for expense in expenses:
        with st.expander(f"{expense.date:%d %b} · {expense.category.value} · {format_money(expense.amount)}"):
            render_edit_form(expense_flow, expense)


def render_edit_form(expense_flow: ExpenseFlow, expense: ExpenseRecord):
    registry = get_registry()
    names = registry.names()
    with st.form(f"edit_{expense.id}"):
        amount = st.number_input("Amount", min_value=0.0, value=float(expense.amount), format="%.2f")
        category = st.selectbox("Category", options=names, index=names.index(expense.category.value))
        saving = st.number_input("Saving", min_value=0.0, value=float(expense.saving), format="%.2f")
        description = st.text_input("Description", value=expense.description)
        when = st.date_input("Date", value=expense.date.date())
        col1, col2 = st.columns(2)
        save = col1.form_submit_button("Save changes")
        delete = col2.form_submit_button("Delete")

    try:
        if save:
            run_async(expense_flow.update_expense(expense.id, {
                "description": description,
                "amount": str(amount),
                "category": category,
                "saving": str(saving),
                "date": when.isoformat(),
            }))
            st.success("✅ Expense updated")
            st.rerun()
        elif delete:
            run_async(expense_flow.delete_expense(expense.id))
            st.success("🗑️ Expense deleted")
            st.rerun()
    except ExpenseValidationError as e:
        show_validation_error(e)
    except NotFoundError:
        st.error("❌ Expense not found. It may have been deleted already.")
    except StorageError as e:
        st.error(f"❌ {e}")


def render_analysis_page(report_flow: ReportFlow):
    """Render monthly totals and the category breakdown."""
    st.title("📊 Expense Analysis")
    today = date.today()
    col1, col2 = st.columns(2)
    year = col1.number_input("Year", min_value=1970, max_value=9998, value=today.year, step=1)
    month = col2.selectbox(
        "Month",
        options=list(range(1, 13)),
        index=today.month - 1,
        format_func=lambda m: date(2000, m, 1).strftime("%B"),
    )

    view = run_async(report_flow.monthly_dashboard(int(year), int(month)))

    c1, c2, c3 = st.columns(3)
    c1.metric("Total Expenses", format_money(view.total_amount))
    c2.metric("Total Savings", format_money(view.total_saved))
    c3.metric("Net Savings", format_money(view.net_savings))

    if view.record_count == 0:
        st.info("No expenses recorded for this month.")
        return

    charts = view.chart_data()
    st.subheader("By Category")
    st.bar_chart(charts["by_category"])
    st.table([
        {"Category": row.category, "Amount": format_money(row.amount), "Share": f"{row.share_percent}%"}
        for row in view.category_rows
    ])

    yearly = run_async(report_flow.yearly_summary(int(year)))
    if yearly.monthly_totals:
        st.subheader(f"Monthly Totals {int(year)}")
        st.bar_chart({key: float(yearly.monthly_totals[key]) for key in sorted(yearly.monthly_totals)})


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from expense_tracker.config import get_settings, validate_all_settings

    status = validate_all_settings()

    for name, key in [("Google Sheets (Storage)", "google_sheets"), ("Application", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if status.get("app"):
        app_settings = get_settings().app
        st.caption(
            f"Environment: {app_settings.app_environment} · "
            f"Log level: {app_settings.log_level} · "
            f"Bulk limit: {app_settings.max_bulk_rows} rows"
        )
        if app_settings.debug_mode:
            st.json(app_settings.model_dump())

    st.markdown("---")
    st.markdown("### Categories")
    st.write(", ".join(get_registry().names()))
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
