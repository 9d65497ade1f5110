"""
Balance Engine

Reduces the expense list and the recorded settlements into one net
balance per roommate. Positive means the roommate is owed money,
negative means they owe.

The result always sums to zero: each expense credits the payer with
the full amount and debits shares summing to the same amount, and each
recorded settlement moves one amount between two entries.

SHARP EDGE: shares go to the first participant_count names of the
CURRENT roster. Reordering the roster changes who bears past expenses.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence

import structlog

from roommate_ledger.models.ledger import Expense, SettlementRecord
from roommate_ledger.validation.validator import check_expense, duplicate_names


logger = structlog.get_logger(__name__)


def active_roster(roster: Iterable[Optional[str]]) -> list[str]:
    """Drop blank roster slots, keeping roster order."""
    return [name for name in roster if name]


def apply_transfer(
    balances: dict[str, Decimal],
    debtor: str,
    creditor: str,
    amount: Decimal,
) -> None:
    """
    Move amount from the creditor's balance to the debtor's, in place.

    Names missing from the mapping get a zero entry first.
    """
    balances[debtor] = balances.get(debtor, Decimal(0)) + amount
    balances[creditor] = balances.get(creditor, Decimal(0)) - amount


def compute_balances(
    expenses: Sequence[Expense],
    roster: Sequence[Optional[str]],
    settlement_history: Iterable[SettlementRecord] = (),
) -> dict[str, Decimal]:
    """
    Compute every roommate's net balance.

    Args:
        expenses: Expenses in the order they were recorded
        roster: Roster slots in display order, blanks allowed
        settlement_history: Settlements already marked as paid

    Returns:
        Mapping of roommate name to balance, in roster order.
        Empty when there are no roommates or no expenses.
    """
    members = active_roster(roster)
    if not members or not expenses:
        return {}

    # Duplicate names share a single balance entry; see DESIGN.md
    duplicates = duplicate_names(members)
    if duplicates:
        logger.warning("duplicate_roster_names", names=duplicates)

    balances = {name: Decimal(0) for name in members}

    for expense in expenses:
        check = check_expense(expense, len(members))
        if not check.is_valid:
            logger.warning(
                "malformed_expense_skipped",
                expense_id=str(expense.id),
                reason=check.reason.value,
            )
            continue

        amount = Decimal(expense.amount)
        share = amount / expense.participant_count

        # Payer may have left the roster; they still get the credit
        balances[expense.paid_by] = balances.get(expense.paid_by, Decimal(0)) + amount
        for name in members[:expense.participant_count]:
            balances[name] -= share

    for record in settlement_history:
        apply_transfer(balances, record.debtor, record.creditor, Decimal(record.amount))

    return balances
