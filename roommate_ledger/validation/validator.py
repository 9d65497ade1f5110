"""
Expense Validation

Two different jobs live here:

BALANCE CHECK (check_expense):
- Used by the balance engine on every stored expense
- Never raises, returns a tagged ExpenseCheck
- Malformed expenses are skipped, the computation carries on

FORM VALIDATION (ExpenseValidator):
- Used when a user adds or edits an expense
- STAGE 1 - SCHEMA: required fields present, amount positive
- STAGE 2 - SEMANTIC: payer is on the roster, participant count
  fits the roster, amount is not absurd

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

from collections import Counter
from decimal import Decimal
from typing import Optional

from roommate_ledger.config import get_settings
from roommate_ledger.models.ledger import (
    Expense,
    ExpenseCheck,
    ExpenseCheckStatus,
    MalformedReason,
    ValidationIssue,
    ValidationResult,
)


# Form input only; stored expenses of any length still load
MAX_DESCRIPTION_LENGTH = 200


def check_expense(expense: Expense, roster_size: int) -> ExpenseCheck:
    """
    Decide whether an expense can enter the balance computation.

    roster_size is the number of active (non-blank) roster names.
    """
    reason: Optional[MalformedReason] = None

    if not expense.paid_by:
        reason = MalformedReason.MISSING_PAYER
    elif expense.amount is None or expense.amount.is_nan():
        reason = MalformedReason.MISSING_AMOUNT
    elif expense.amount <= 0:
        reason = MalformedReason.NON_POSITIVE_AMOUNT
    elif not expense.participant_count or expense.participant_count < 0:
        reason = MalformedReason.MISSING_PARTICIPANT_COUNT
    elif expense.participant_count > roster_size:
        reason = MalformedReason.PARTICIPANT_COUNT_EXCEEDS_ROSTER

    if reason is None:
        return ExpenseCheck(expense_id=expense.id, status=ExpenseCheckStatus.VALID)
    return ExpenseCheck(
        expense_id=expense.id,
        status=ExpenseCheckStatus.MALFORMED,
        reason=reason,
    )


def duplicate_names(roster: list[str]) -> list[str]:
    """Active roster names that appear more than once."""
    counts = Counter(name for name in roster if name)
    return [name for name, count in counts.items() if count > 1]


class ExpenseValidator:
    """
    Validates expenses entered by the user through a two-stage pipeline.

    Stage 1: Schema validation
    Stage 2: Semantic validation (needs the current roster)
    """

    def __init__(self):
        self._settings = get_settings().ledger

    def _validate_schema(
        self,
        expense: Expense,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not expense.description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                suggested_fix="Say what the money was spent on",
            ))
        elif len(expense.description) > MAX_DESCRIPTION_LENGTH:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
                severity="error",
            ))

        if expense.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif expense.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

        if not expense.paid_by:
            issues.append(ValidationIssue(
                field="paid_by",
                issue_type="missing",
                message="Select who paid",
                severity="error",
            ))

        if expense.participant_count is not None and expense.participant_count <= 0:
            issues.append(ValidationIssue(
                field="participant_count",
                issue_type="invalid_value",
                message="At least one roommate must share the expense",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        expense: Expense,
        roster: list[str],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        active = [name for name in roster if name]

        if not active:
            issues.append(ValidationIssue(
                field="roster",
                issue_type="empty",
                message="Add at least one roommate before adding expenses",
                severity="error",
            ))
        elif expense.paid_by not in active:
            issues.append(ValidationIssue(
                field="paid_by",
                issue_type="unknown_roommate",
                message=f"{expense.paid_by} is not on the roster",
                severity="error",
                suggested_fix="Pick one of the current roommates",
            ))

        if expense.participant_count and expense.participant_count > len(active):
            issues.append(ValidationIssue(
                field="participant_count",
                issue_type="invalid_value",
                message=(
                    f"Expense is shared by {expense.participant_count} people "
                    f"but the roster has {len(active)}"
                ),
                severity="error",
            ))

        max_amount = Decimal(str(self._settings.max_expense_amount))
        if expense.amount and expense.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount (₹{expense.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        for name in duplicate_names(roster):
            issues.append(ValidationIssue(
                field="roster",
                issue_type="duplicate_name",
                message=f"{name} appears more than once on the roster",
                severity="warning",
                suggested_fix="Give each roommate a distinct name",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(
        self,
        expense: Expense,
        roster: list[str],
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Stage 2 only runs when stage 1 passes.
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(expense)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(expense, roster)
            all_issues.extend(semantic_issues)

        warnings = [
            issue.message for issue in all_issues if issue.severity == "warning"
        ]

        return ValidationResult(
            subject_id=expense.id,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a short summary of validation results for the UI."""
        if result.is_valid and not result.warnings:
            return "✅ Expense looks good."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines).strip()
