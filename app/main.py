"""
Streamlit Frontend for LedgerLite

One page:
- a form for new income/expense entries, with an AI category suggestion
- a live table of the entries for the selected date
- income, expense and balance totals

All rules live in LedgerFormController; this file only reads widgets,
calls the controller and draws what it holds.
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from ledgerlite.audit import configure_logging
from ledgerlite.config import get_settings, validate_all_settings
from ledgerlite.models.entry import EntryType
from ledgerlite.orchestrator import AppComponents, LedgerFormController, create_app_components
from ledgerlite.validation import INCOMPLETE_ENTRY_MESSAGE, IncompleteEntryError


st.set_page_config(
    page_title="LedgerLite",
    page_icon="📒",
    layout="wide",
)

st.markdown("""
<style>
    .income { color: #22c55e; font-weight: 600; }
    .expense { color: #ef4444; font-weight: 600; }
</style>
""", unsafe_allow_html=True)


# Widget keys that make up the entry form
FORM_KEYS = ("form_date", "form_description", "form_category", "form_amount")


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Process-wide store handle, agent and audit logger (cached)."""
    configure_logging(get_settings().app.log_level)
    return create_app_components()


def get_controller() -> LedgerFormController:
    """One controller per browser session."""
    if "controller" not in st.session_state:
        st.session_state.controller = get_components().create_controller()
    return st.session_state.controller


def format_amount(amount: Decimal) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{amount:,.2f}"


def main():
    """Main application entry point."""
    controller = get_controller()

    st.title("📒 LedgerLite")

    # Cleared here, before the widgets exist, after a successful submit
    if st.session_state.pop("reset_form", False):
        for key in FORM_KEYS:
            st.session_state.pop(key, None)
    if "pending_category" in st.session_state:
        st.session_state.form_category = st.session_state.pop("pending_category")

    col_form, col_table = st.columns(2)

    with col_form:
        render_entry_form(controller)

    with col_table:
        render_ledger(controller)

    st.markdown("---")
    render_settings_status()


def render_entry_form(controller: LedgerFormController):
    """Form for a new entry, with the category suggestion next to the category field."""
    st.subheader("Add New Entry")
    st.caption("Enter income or expense details")

    controller.date = st.date_input("Date", value=None, key="form_date")

    description = st.text_input("Description", key="form_description")
    if description != controller.description:
        with st.spinner("Suggesting a category..."):
            run_async(controller.update_description(description))

    cat_col, hint_col = st.columns([3, 1])
    with cat_col:
        controller.category = st.text_input("Category", key="form_category")
    with hint_col:
        if controller.category_suggestion:
            st.caption("Suggestion")
            if controller.has_usable_suggestion:
                if st.button(controller.category_suggestion, key="accept_suggestion"):
                    controller.accept_suggestion()
                    st.session_state.pending_category = controller.category
                    st.rerun()
            else:
                st.error(controller.category_suggestion)

    controller.amount = st.text_input("Amount", key="form_amount", placeholder="0.00")

    controller.entry_type = st.radio(
        "Type",
        options=list(EntryType),
        index=list(EntryType).index(controller.entry_type),
        format_func=lambda t: t.value.title(),
        horizontal=True,
        key="form_type",
    )

    if st.button("Add Entry", type="primary"):
        try:
            entry = run_async(controller.submit())
        except IncompleteEntryError as e:
            st.warning(INCOMPLETE_ENTRY_MESSAGE)
            for issue in e.result.issues:
                st.caption(f"• {issue.message}")
            return

        if entry is None:
            # Store failures are logged by the controller; the form keeps its values
            return

        st.session_state.reset_form = True
        controller.refresh()
        st.rerun()


def render_ledger(controller: LedgerFormController):
    """Date picker plus the live table and totals."""
    st.subheader("Ledger")

    selected = st.date_input("Show entries for", value=date.today(), key="view_date")
    controller.select_date(selected)

    interval = get_settings().app.live_poll_interval_seconds

    @st.fragment(run_every=interval)
    def live_table():
        entries = controller.entries
        if not entries:
            st.info("No entries for this date yet.")
        for entry in entries:
            cols = st.columns([2, 3, 2, 2, 1])
            cols[0].write(entry.date_key)
            cols[1].write(entry.description)
            cols[2].write(entry.category)
            css = "income" if entry.is_income else "expense"
            sign = "+" if entry.is_income else "-"
            cols[3].markdown(
                f'<span class="{css}">{sign}{format_amount(entry.amount)}</span>',
                unsafe_allow_html=True,
            )
            if cols[4].button("🗑️", key=f"delete_{entry.id}", help="Delete entry"):
                if run_async(controller.delete(entry.id)):
                    controller.refresh()
                st.rerun()

        totals = controller.totals
        t1, t2, t3 = st.columns(3)
        t1.metric("Total Income", format_amount(totals.income))
        t2.metric("Total Expenses", format_amount(totals.expense))
        t3.metric("Balance", format_amount(totals.balance))

    live_table()


def render_settings_status():
    """Connection status for the external services."""
    with st.expander("⚙️ Connection Status"):
        status = validate_all_settings()
        services = [
            ("Google Sheets (Storage)", "google_sheets"),
            ("Gemini (AI)", "gemini"),
        ]
        for name, key in services:
            if status.get(key, False):
                st.success(f"✅ {name} - Configured")
            else:
                error = status.get(f"{key}_error", "Not configured")
                st.error(f"❌ {name} - {error}")

        audit_storage = get_components().audit_logger.storage
        if audit_storage is not None:
            st.markdown("**Recent activity**")
            try:
                events = run_async(audit_storage.get_recent_events(limit=10))
            except Exception as e:
                st.caption(f"Activity log unavailable: {e}")
                events = []
            for event in events:
                st.caption(f"{event.timestamp:%Y-%m-%d %H:%M} · {event.description}")


if __name__ == "__main__":
    main()
