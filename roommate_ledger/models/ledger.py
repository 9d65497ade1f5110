"""
Core Data Models for Roommate Ledger

These models define the schemas for everything the ledger stores
or derives:
1. Expenses and the roommate roster (entered by the user)
2. Settlement instructions (derived, never stored)
3. Settlement records (stored, offset future balances)

DESIGN DECISION: Expense payload fields are optional on the model.
Stored data may contain half-filled entries, and the balance engine
skips those instead of refusing to load the whole ledger.
Form input goes through ExpenseValidator before it is accepted.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SettlementStatus(str, Enum):
    """
    Status of a recorded settlement.

    Only settled transfers are ever recorded; pending ones are
    recomputed from balances on every query.
    """
    SETTLED = "settled"


class ExpenseCheckStatus(str, Enum):
    """Outcome of checking one expense before it enters the balances."""
    VALID = "valid"
    MALFORMED = "malformed"


class MalformedReason(str, Enum):
    """Why an expense was left out of the balance computation."""
    MISSING_PAYER = "missing_payer"
    MISSING_AMOUNT = "missing_amount"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    MISSING_PARTICIPANT_COUNT = "missing_participant_count"
    PARTICIPANT_COUNT_EXCEEDS_ROSTER = "participant_count_exceeds_roster"


# =============================================================================
# CORE LEDGER MODELS
# =============================================================================

class Expense(BaseModel):
    """
    A shared expense paid by one roommate.

    SPLIT POLICY: an expense with participant_count = k is split evenly
    across the FIRST k names of the current roster (blank slots removed),
    not across the people who actually shared it. Reordering or renaming
    roster slots therefore moves the shares of past expenses too.

    Serialized field names match the stored format (paidBy,
    numberOfMembers, timestamp); either name is accepted on input.
    """
    model_config = ConfigDict(populate_by_name=True)

    # Identity, used for replace-by-id edits and deletes
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    description: str = Field(
        default="",
        description="What the money was spent on"
    )
    amount: Optional[Decimal] = Field(
        default=None,
        description="Total amount paid"
    )
    paid_by: Optional[str] = Field(
        default=None,
        alias="paidBy",
        description="Roommate who paid"
    )
    participant_count: Optional[int] = Field(
        default=None,
        alias="numberOfMembers",
        description="Number of roster members (from the top) sharing the cost"
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        alias="timestamp",
        description="When the expense was recorded"
    )

    @field_validator('amount', 'paid_by', 'participant_count', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        """Form inputs arrive as empty strings when left blank."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def share(self) -> Optional[Decimal]:
        """Per-person share, if the expense is complete enough to split."""
        if not self.amount or not self.participant_count:
            return None
        return self.amount / self.participant_count


class SettlementInstruction(BaseModel):
    """
    A proposed one-way payment from a debtor to a creditor.

    Derived from balances on every query; never stored as-is.
    Amount is rounded to 2 decimal places when emitted.
    """
    model_config = ConfigDict(populate_by_name=True)

    debtor: str = Field(
        ...,
        min_length=1,
        alias="from",
        description="Roommate who pays"
    )
    creditor: str = Field(
        ...,
        min_length=1,
        alias="to",
        description="Roommate who receives"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount to transfer"
    )


class SettlementRecord(SettlementInstruction):
    """
    A settlement the roommates have marked as paid.

    Recorded settlements permanently offset computed balances:
    the debtor gets the amount back, the creditor gives it up.
    """

    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the settlement was marked as paid"
    )
    status: SettlementStatus = Field(
        default=SettlementStatus.SETTLED,
        description="Settlement status"
    )

    @classmethod
    def from_instruction(
        cls,
        instruction: SettlementInstruction,
        timestamp: Optional[datetime] = None,
    ) -> "SettlementRecord":
        return cls(
            debtor=instruction.debtor,
            creditor=instruction.creditor,
            amount=instruction.amount,
            timestamp=timestamp or datetime.now(),
        )


class LedgerState(BaseModel):
    """
    Everything a ledger session owns: the three persisted collections.

    Defaults match a brand new ledger: one blank roster slot,
    no expenses, no settlements.
    """

    roster: list[str] = Field(
        default_factory=lambda: [""],
        description="Ordered roster slots, possibly blank"
    )
    expenses: list[Expense] = Field(default_factory=list)
    settlements: list[SettlementRecord] = Field(default_factory=list)

    @field_validator('roster', mode='before')
    @classmethod
    def none_slots_to_blank(cls, v):
        if isinstance(v, list):
            return ["" if name is None else name for name in v]
        return v

    @property
    def active_roster(self) -> list[str]:
        """Roster with blank slots removed, in roster order."""
        return [name for name in self.roster if name]


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ExpenseCheck(BaseModel):
    """
    Tagged result of checking one expense for the balance engine.

    MALFORMED expenses are skipped, never raised.
    """

    expense_id: UUID
    status: ExpenseCheckStatus
    reason: Optional[MalformedReason] = None

    @property
    def is_valid(self) -> bool:
        return self.status == ExpenseCheckStatus.VALID


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation of user input.

    Stage 1: Schema validation (required fields, positive values)
    Stage 2: Semantic validation (roster membership, sanity checks)
    """

    subject_id: Optional[UUID] = Field(
        default=None,
        description="ID of the expense being validated, if any"
    )
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)

    # Warnings don't block but should be shown
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


# =============================================================================
# SUMMARY MODELS
# =============================================================================

class LedgerSummary(BaseModel):
    """
    Totals for a set of expenses, optionally limited to one month.

    shares follows the same first-k-of-roster split policy as balances.
    """

    year: Optional[int] = Field(default=None, ge=1970)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    expense_count: int = Field(ge=0)
    total: Decimal
    shares: dict[str, Decimal] = Field(default_factory=dict)

    @property
    def period_label(self) -> str:
        if self.year is None or self.month is None:
            return "All time"
        return datetime(self.year, self.month, 1).strftime("%B %Y")
