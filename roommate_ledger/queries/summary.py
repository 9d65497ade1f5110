"""
Expense History and Summaries

Read-only views over the expense list for the summary screen:
totals, per-person shares, month filtering and currency formatting.

Nothing here feeds back into balances or settlements.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from roommate_ledger.models.ledger import Expense, LedgerSummary
from roommate_ledger.settlement.balances import active_roster
from roommate_ledger.validation.validator import check_expense


def total_expenses(expenses: Sequence[Expense]) -> Decimal:
    """Sum of every expense amount; entries without an amount count as zero."""
    return sum((e.amount for e in expenses if e.amount is not None), Decimal(0))


def per_person_share(
    expenses: Sequence[Expense],
    roster: Sequence[Optional[str]],
) -> dict[str, Decimal]:
    """
    How much of the spending each roommate is responsible for.

    Uses the same split policy as the balance engine: each expense is
    shared by the first participant_count active roster names.
    """
    members = active_roster(roster)
    shares = {name: Decimal(0) for name in members}

    for expense in expenses:
        if not check_expense(expense, len(members)).is_valid:
            continue
        share = expense.amount / expense.participant_count
        for name in members[:expense.participant_count]:
            shares[name] += share

    return shares


def filter_by_month(
    expenses: Sequence[Expense],
    year: int,
    month: int,
) -> list[Expense]:
    """Expenses recorded in the given calendar month, in original order."""
    return [
        e for e in expenses
        if e.created_at.year == year and e.created_at.month == month
    ]


def available_months(expenses: Sequence[Expense]) -> list[tuple[int, int]]:
    """Distinct (year, month) pairs with at least one expense, newest first."""
    months = {(e.created_at.year, e.created_at.month) for e in expenses}
    return sorted(months, reverse=True)


def summarize(
    expenses: Sequence[Expense],
    roster: Sequence[Optional[str]],
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> LedgerSummary:
    """
    Build the summary for all expenses, or for one month.

    year and month must be given together.
    """
    if (year is None) != (month is None):
        raise ValueError("year and month must be given together")

    selected = list(expenses)
    if year is not None:
        selected = filter_by_month(selected, year, month)

    return LedgerSummary(
        year=year,
        month=month,
        expense_count=len(selected),
        total=total_expenses(selected),
        shares=per_person_share(selected, roster),
    )


def format_currency(amount, symbol: str = "₹") -> str:
    """
    Format an amount for display, e.g. ₹1,234.50 or -₹12.00.
    """
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"
