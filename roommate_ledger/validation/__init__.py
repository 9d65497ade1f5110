"""Validation package."""

from roommate_ledger.validation.validator import (
    ExpenseValidator,
    check_expense,
    duplicate_names,
)

__all__ = ["ExpenseValidator", "check_expense", "duplicate_names"]
