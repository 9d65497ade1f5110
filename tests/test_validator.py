"""
Tests for expense checks and form validation.
"""

from decimal import Decimal

import pytest

from roommate_ledger.models.ledger import Expense, ExpenseCheckStatus, MalformedReason
from roommate_ledger.validation import ExpenseValidator, check_expense, duplicate_names


ROSTER = ["Asha", "Ravi", "Meera"]


class TestCheckExpense:
    """Tests for the balance engine's expense check."""

    def test_valid_expense(self):
        """Test a complete expense passes."""
        expense = Expense(amount=Decimal("30"), paid_by="Asha", participant_count=3)
        check = check_expense(expense, 3)
        assert check.status == ExpenseCheckStatus.VALID
        assert check.reason is None
        assert check.expense_id == expense.id

    @pytest.mark.parametrize(
        "fields, reason",
        [
            ({"amount": Decimal("30"), "participant_count": 2}, MalformedReason.MISSING_PAYER),
            ({"paid_by": "Asha", "participant_count": 2}, MalformedReason.MISSING_AMOUNT),
            (
                {"amount": Decimal("0"), "paid_by": "Asha", "participant_count": 2},
                MalformedReason.NON_POSITIVE_AMOUNT,
            ),
            (
                {"amount": Decimal("30"), "paid_by": "Asha"},
                MalformedReason.MISSING_PARTICIPANT_COUNT,
            ),
            (
                {"amount": Decimal("30"), "paid_by": "Asha", "participant_count": 4},
                MalformedReason.PARTICIPANT_COUNT_EXCEEDS_ROSTER,
            ),
        ],
    )
    def test_malformed_reasons(self, fields, reason):
        """Test each kind of malformed expense is tagged with its reason."""
        check = check_expense(Expense(**fields), 3)
        assert check.status == ExpenseCheckStatus.MALFORMED
        assert check.reason == reason
        assert check.is_valid is False


class TestDuplicateNames:
    """Tests for duplicate roster detection."""

    def test_finds_duplicates(self):
        """Test names listed twice are reported once."""
        assert duplicate_names(["A", "B", "A", "", ""]) == ["A"]

    def test_blanks_are_not_duplicates(self):
        """Test repeated blank slots are fine."""
        assert duplicate_names(["", "A", ""]) == []


class TestExpenseValidator:
    """Tests for the two-stage form validator."""

    @pytest.fixture
    def validator(self):
        return ExpenseValidator()

    def test_valid_expense(self, validator):
        """Test a complete expense from a roommate passes both stages."""
        expense = Expense(
            description="Groceries",
            amount=Decimal("300"),
            paid_by="Asha",
            participant_count=3,
        )
        result = validator.validate(expense, ROSTER)
        assert result.is_valid is True
        assert result.schema_valid is True
        assert result.semantic_valid is True
        assert result.issues == []
        assert result.subject_id == expense.id

    def test_missing_fields(self, validator):
        """Test description, amount and payer are required."""
        result = validator.validate(Expense(participant_count=3), ROSTER)
        assert result.schema_valid is False
        assert result.semantic_valid is False
        fields = {issue.field for issue in result.issues}
        assert fields == {"description", "amount", "paid_by"}

    def test_non_positive_amount(self, validator):
        """Test zero and negative amounts are rejected."""
        expense = Expense(description="Refund", amount=Decimal("-5"), paid_by="Asha", participant_count=1)
        result = validator.validate(expense, ROSTER)
        assert result.has_errors
        assert result.issues[0].issue_type == "invalid_value"

    def test_payer_not_on_roster(self, validator):
        """Test the payer must be a current roommate."""
        expense = Expense(description="Rent", amount=Decimal("100"), paid_by="Zoe", participant_count=2)
        result = validator.validate(expense, ROSTER)
        assert result.schema_valid is True
        assert result.semantic_valid is False
        assert result.issues[0].issue_type == "unknown_roommate"

    def test_count_exceeds_roster(self, validator):
        """Test more sharers than roommates is rejected."""
        expense = Expense(description="Rent", amount=Decimal("100"), paid_by="Asha", participant_count=5)
        result = validator.validate(expense, ["Asha", "", "Ravi"])
        assert result.is_valid is False
        assert any(i.field == "participant_count" for i in result.issues)

    def test_empty_roster(self, validator):
        """Test expenses need at least one roommate."""
        expense = Expense(description="Rent", amount=Decimal("100"), paid_by="Asha", participant_count=1)
        result = validator.validate(expense, [""])
        assert result.is_valid is False
        assert result.issues[0].issue_type == "empty"

    def test_large_amount_is_warning(self, validator):
        """Test a huge amount is flagged but still accepted."""
        expense = Expense(
            description="Deposit",
            amount=Decimal("5000000"),
            paid_by="Asha",
            participant_count=3,
        )
        result = validator.validate(expense, ROSTER)
        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_duplicate_roster_is_warning(self, validator):
        """Test duplicate names warn without rejecting."""
        expense = Expense(description="Milk", amount=Decimal("60"), paid_by="Asha", participant_count=2)
        result = validator.validate(expense, ["Asha", "Asha", "Ravi"])
        assert result.is_valid is True
        assert result.issues[0].issue_type == "duplicate_name"

    def test_user_friendly_summary(self, validator):
        """Test the summary lists errors for the user."""
        result = validator.validate(Expense(participant_count=3), ROSTER)
        summary = validator.get_user_friendly_summary(result)
        assert "Please fix" in summary
        assert "Amount is required" in summary

    def test_user_friendly_summary_valid(self, validator):
        """Test a clean result gets a short confirmation."""
        expense = Expense(description="Milk", amount=Decimal("60"), paid_by="Asha", participant_count=2)
        summary = validator.get_user_friendly_summary(validator.validate(expense, ROSTER))
        assert summary.startswith("✅")

    def test_long_description(self, validator):
        """Test form descriptions longer than 200 characters are rejected."""
        expense = Expense(
            description="x" * 201,
            amount=Decimal("60"),
            paid_by="Asha",
            participant_count=2,
        )
        result = validator.validate(expense, ROSTER)
        assert result.schema_valid is False
        assert result.issues[0].issue_type == "too_long"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
