"""
Streamlit Frontend for Roommate Ledger

The screen roommates use to keep track of shared spending.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every change is saved immediately
3. Clear error messages in simple language
4. Nothing is marked as settled without an explicit click

Pages:
- Roommates & Expenses: roster slots and the add-expense form
- Summary: totals and per-person shares, all time or per month
- Settle Up: pending payments with a "Mark as settled" button each
- History: expenses and recorded settlements
- Settings: configuration status
"""

import asyncio
from datetime import date

import streamlit as st

from roommate_ledger.audit import create_correlation_id
from roommate_ledger.config import get_settings
from roommate_ledger.orchestrator import (
    InvalidExpenseError,
    LedgerSession,
    create_app_components,
)
from roommate_ledger.queries import available_months, filter_by_month, format_currency


st.set_page_config(
    page_title="Roommate Ledger",
    page_icon="🏠",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .debtor { color: #dc3545; font-weight: 600; }
    .creditor { color: #28a745; font-weight: 600; }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_session() -> LedgerSession:
    """Open the ledger session once per server process."""
    return run_async(create_app_components())


def money(amount) -> str:
    return format_currency(amount, get_settings().ledger.currency_symbol)


def main():
    """Main application entry point."""
    session = get_session()

    st.sidebar.title("🏠 Roommate Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["👥 Roommates & Expenses", "📊 Summary", "🤝 Settle Up", "📜 History", "⚙️ Settings"],
        index=0,
    )

    if page == "👥 Roommates & Expenses":
        render_entry_page(session)
    elif page == "📊 Summary":
        render_summary_page(session)
    elif page == "🤝 Settle Up":
        render_settle_page(session)
    elif page == "📜 History":
        render_history_page(session)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_entry_page(session: LedgerSession):
    """Roster slots and the add-expense form."""
    st.title("👥 Roommates & Expenses")

    st.subheader("Current Roommates")
    for slot, name in enumerate(session.roster):
        new_name = st.text_input(
            f"Roommate {slot + 1}",
            value=name,
            key=f"roommate_{slot}",
            placeholder=f"Roommate {slot + 1}",
        )
        if new_name != name:
            run_async(session.update_roommate(slot, new_name))
            st.rerun()

    if st.button("➕ Add New Roommate"):
        run_async(session.add_roommate())
        st.rerun()

    st.markdown("---")
    st.subheader("Add New Expense")

    if not session.active_roster:
        st.info("Add at least one roommate to start recording expenses.")
        return

    with st.form("add_expense", clear_on_submit=True):
        description = st.text_input("Description")
        amount = st.number_input(
            f"Amount ({get_settings().ledger.currency_symbol})",
            min_value=0.0,
            step=1.0,
            format="%.2f",
        )
        paid_by = st.selectbox("Who paid?", [""] + session.active_roster)
        submitted = st.form_submit_button("➕ Add Expense", type="primary")

    if submitted:
        try:
            expense = run_async(session.add_expense(
                description=description,
                amount=str(amount) if amount else None,
                paid_by=paid_by,
                correlation_id=create_correlation_id(),
            ))
            st.success(f"Added {expense.description}: {money(expense.amount)}")
        except InvalidExpenseError as e:
            st.error(str(e))
        except ValueError as e:
            st.error(f"Could not add expense: {e}")


def render_summary_page(session: LedgerSession):
    """Totals and per-person shares."""
    st.title("📊 Expense Summary")

    months = available_months(session.expenses)
    options = ["All time"] + [date(y, m, 1).strftime("%B %Y") for y, m in months]
    choice = st.selectbox("Period", options)

    if choice == "All time":
        summary = session.summary()
    else:
        year, month = months[options.index(choice) - 1]
        summary = session.summary(year, month)

    st.subheader("Total Expenses")
    st.markdown(f'<p class="big-number">{money(summary.total)}</p>', unsafe_allow_html=True)
    st.caption(f"{summary.expense_count} expenses · {summary.period_label}")

    st.subheader("Per Person Share")
    for name, share in summary.shares.items():
        left, right = st.columns([3, 1])
        left.write(name)
        right.write(f"**{money(share)}**")


def render_settle_page(session: LedgerSession):
    """Pending settlements with a mark-as-settled action each."""
    st.title("🤝 Settlements")

    balances = session.balances()
    if balances:
        with st.expander("Balances"):
            for name, balance in balances.items():
                st.write(f"{name}: {money(balance)}")

    settlements = session.pending_settlements()
    if not settlements:
        st.success("No settlements needed - all expenses are settled!")
        return

    for index, instruction in enumerate(settlements):
        left, middle, right = st.columns([3, 1, 1])
        left.markdown(
            f'<span class="debtor">{instruction.debtor}</span> needs to pay '
            f'<span class="creditor">{instruction.creditor}</span>',
            unsafe_allow_html=True,
        )
        middle.write(f"**{money(instruction.amount)}**")
        if right.button("✅ Mark as settled", key=f"settle_{index}"):
            run_async(session.mark_settled(instruction, correlation_id=create_correlation_id()))
            st.rerun()


def render_history_page(session: LedgerSession):
    """Expense and settlement history, filterable by month."""
    st.title("📜 History")

    expenses = session.expenses
    months = available_months(expenses)
    options = ["All time"] + [date(y, m, 1).strftime("%B %Y") for y, m in months]
    choice = st.selectbox("Month", options)
    if choice != "All time":
        year, month = months[options.index(choice) - 1]
        expenses = filter_by_month(expenses, year, month)

    st.subheader("Expenses")
    if not expenses:
        st.info("No expenses recorded yet.")
    for expense in reversed(expenses):
        left, middle, right = st.columns([3, 1, 1])
        left.write(
            f"**{expense.description}** · paid by {expense.paid_by} · "
            f"{expense.created_at:%d %b %Y}"
        )
        middle.write(money(expense.amount or 0))
        if right.button("🗑️ Delete", key=f"delete_{expense.id}"):
            run_async(session.delete_expense(expense.id, correlation_id=create_correlation_id()))
            st.rerun()

    st.subheader("Recorded Settlements")
    if not session.settlements:
        st.info("No settlements recorded yet.")
    for record in reversed(session.settlements):
        st.write(
            f"{record.timestamp:%d %b %Y %H:%M} · {record.debtor} paid "
            f"{record.creditor} {money(record.amount)}"
        )


def render_settings_page():
    """Configuration status."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    from roommate_ledger.config import validate_all_settings

    status = validate_all_settings()

    sections = [
        ("Ledger", "ledger"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application", "app"),
    ]

    for name, key in sections:
        if key not in status:
            continue
        if status[key]:
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    settings = get_settings()
    st.markdown("---")
    st.markdown("### Current Values")
    st.write(f"Storage backend: `{settings.ledger.storage_backend}`")
    st.write(f"Currency symbol: {settings.ledger.currency_symbol}")
    st.write(f"Settlement tolerance: {settings.ledger.settlement_tolerance}")
    if settings.app.debug_mode:
        st.write(f"Environment: `{settings.app.app_environment}`")
        st.json(session_state_counts(get_session()))
    st.markdown(
        "To change these, set `LEDGER_*` (and `GOOGLE_SHEETS_*` for the "
        "Google Sheets backend) in the environment or a `.env` file."
    )


def session_state_counts(session: LedgerSession) -> dict:
    return {
        "roster_slots": len(session.roster),
        "expenses": len(session.expenses),
        "settlements": len(session.settlements),
    }


if __name__ == "__main__":
    main()
