"""Balance computation and settlement planning."""

from roommate_ledger.settlement.balances import (
    active_roster,
    apply_transfer,
    compute_balances,
)
from roommate_ledger.settlement.planner import (
    EPSILON,
    apply_settlements,
    plan_settlements,
    round_amount,
)

__all__ = [
    "EPSILON",
    "active_roster",
    "apply_settlements",
    "apply_transfer",
    "compute_balances",
    "plan_settlements",
    "round_amount",
]
