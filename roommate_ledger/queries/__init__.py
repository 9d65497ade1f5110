"""Expense history and summary queries."""

from roommate_ledger.queries.summary import (
    available_months,
    filter_by_month,
    format_currency,
    per_person_share,
    summarize,
    total_expenses,
)

__all__ = [
    "available_months",
    "filter_by_month",
    "format_currency",
    "per_person_share",
    "summarize",
    "total_expenses",
]
