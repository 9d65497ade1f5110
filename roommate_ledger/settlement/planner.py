"""
Settlement Planner

Turns a balance mapping into an ordered list of payments that brings
every balance to within EPSILON of zero.

Greedy: each round pairs the largest creditor with the largest debtor
and transfers the smaller of the two amounts, which zeroes at least one
of them. That bounds the plan at len(balances) - 1 payments. It is not
guaranteed to use the fewest possible payments.

Ties go to whichever name comes first in the mapping's iteration
order (roster order for balances from compute_balances).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

from roommate_ledger.models.ledger import SettlementInstruction


EPSILON = Decimal("0.01")
CENT = Decimal("0.01")


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_amount(amount: Decimal) -> Decimal:
    """Round to whole cents, halves away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def plan_settlements(
    balances: Mapping[str, Any],
    epsilon: Any = EPSILON,
) -> list[SettlementInstruction]:
    """
    Plan the payments that settle all balances.

    The input mapping is copied, never modified. Amounts are rounded
    only on the emitted instructions; the working balances keep full
    precision between rounds.
    """
    working = {name: _as_decimal(balance) for name, balance in balances.items()}
    epsilon = _as_decimal(epsilon)

    instructions: list[SettlementInstruction] = []

    while True:
        max_creditor = None
        max_debtor = None
        max_credit = epsilon
        max_debt = epsilon

        for name, balance in working.items():
            if balance > max_credit:
                max_credit = balance
                max_creditor = name
            if balance < -max_debt:
                max_debt = -balance
                max_debtor = name

        if max_creditor is None or max_debtor is None:
            break

        transfer = min(max_credit, max_debt)
        if transfer <= epsilon:
            break

        instructions.append(SettlementInstruction(
            debtor=max_debtor,
            creditor=max_creditor,
            amount=round_amount(transfer),
        ))

        working[max_creditor] -= transfer
        working[max_debtor] += transfer

    return instructions


def apply_settlements(
    balances: Mapping[str, Any],
    instructions: list[SettlementInstruction],
) -> dict[str, Decimal]:
    """
    Return a copy of balances with every instruction paid.

    Useful for previewing what is left after a plan is carried out.
    """
    result = {name: _as_decimal(balance) for name, balance in balances.items()}
    for instruction in instructions:
        result[instruction.creditor] = result.get(instruction.creditor, Decimal(0)) - instruction.amount
        result[instruction.debtor] = result.get(instruction.debtor, Decimal(0)) + instruction.amount
    return result
