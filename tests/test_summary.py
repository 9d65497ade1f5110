"""
Tests for expense summaries and currency formatting.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from roommate_ledger.models.ledger import Expense
from roommate_ledger.queries import (
    available_months,
    filter_by_month,
    format_currency,
    per_person_share,
    summarize,
    total_expenses,
)


def make_expense(amount, count, when, paid_by="A"):
    return Expense(
        description="Shared",
        amount=Decimal(amount),
        paid_by=paid_by,
        participant_count=count,
        created_at=when,
    )


@pytest.fixture
def expenses():
    return [
        make_expense("300", 3, datetime(2024, 11, 5)),
        make_expense("90", 2, datetime(2024, 12, 1)),
        make_expense("60", 3, datetime(2024, 12, 20), paid_by="B"),
    ]


class TestTotals:
    """Tests for totals and shares."""

    def test_total_expenses(self, expenses):
        """Test the total is the sum of amounts."""
        assert total_expenses(expenses) == Decimal("450")

    def test_total_skips_missing_amounts(self):
        """Test entries without an amount count as zero."""
        assert total_expenses([Expense(paid_by="A", participant_count=1)]) == Decimal(0)

    def test_per_person_share(self, expenses):
        """Test shares follow the first-k roster split."""
        shares = per_person_share(expenses, ["A", "", "B", "C"])
        assert shares == {
            "A": Decimal("165"),
            "B": Decimal("165"),
            "C": Decimal("120"),
        }

    def test_per_person_share_skips_malformed(self):
        """Test expenses the balances skip are left out of shares too."""
        shares = per_person_share(
            [Expense(amount=Decimal("100"), paid_by="A", participant_count=5)],
            ["A", "B"],
        )
        assert shares == {"A": Decimal(0), "B": Decimal(0)}


class TestMonths:
    """Tests for month filtering."""

    def test_filter_by_month(self, expenses):
        """Test only the given month is kept, in order."""
        december = filter_by_month(expenses, 2024, 12)
        assert [e.amount for e in december] == [Decimal("90"), Decimal("60")]

    def test_available_months(self, expenses):
        """Test months are listed newest first without repeats."""
        assert available_months(expenses) == [(2024, 12), (2024, 11)]

    def test_summarize_month(self, expenses):
        """Test a monthly summary."""
        summary = summarize(expenses, ["A", "B", "C"], year=2024, month=12)
        assert summary.expense_count == 2
        assert summary.total == Decimal("150")
        assert summary.shares["C"] == Decimal("20")
        assert summary.period_label == "December 2024"

    def test_summarize_all_time(self, expenses):
        """Test the default summary covers everything."""
        summary = summarize(expenses, ["A", "B", "C"])
        assert summary.expense_count == 3
        assert summary.total == Decimal("450")

    def test_summarize_requires_year_and_month(self, expenses):
        """Test year without month is rejected."""
        with pytest.raises(ValueError):
            summarize(expenses, ["A"], year=2024)


class TestFormatCurrency:
    """Tests for format_currency."""

    def test_thousands_separator(self):
        assert format_currency(Decimal("1234.5")) == "₹1,234.50"

    def test_negative(self):
        assert format_currency(Decimal("-12")) == "-₹12.00"

    def test_rounds_half_up(self):
        assert format_currency(Decimal("0.125")) == "₹0.13"

    def test_custom_symbol(self):
        assert format_currency(5, symbol="$") == "$5.00"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
