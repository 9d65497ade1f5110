"""
Main Orchestrator for Roommate Ledger

This module ties together all the components and defines the
flows the UI drives:
1. Roster edits (add a slot, rename a slot)
2. Expense edits (add, replace by id, delete)
3. Settling up (pending settlements, mark as settled)

DESIGN DECISION: All ledger state lives in one LedgerSession that the
caller creates and holds. Nothing is kept in module globals.
- Balances and settlement plans are recomputed from the session's
  state on every call, never cached or stored
- Every mutation is saved to storage before the call returns
- Every mutation is audited
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from roommate_ledger.audit import AuditLogger, create_correlation_id
from roommate_ledger.config import get_settings
from roommate_ledger.models.ledger import (
    Expense,
    LedgerState,
    LedgerSummary,
    SettlementInstruction,
    SettlementRecord,
    ValidationIssue,
    ValidationResult,
)
from roommate_ledger.queries import summarize
from roommate_ledger.services.storage import (
    EXPENSES,
    ROOMMATES,
    SETTLEMENTS,
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from roommate_ledger.settlement import compute_balances, plan_settlements
from roommate_ledger.validation import ExpenseValidator, check_expense


logger = structlog.get_logger(__name__)


class InvalidExpenseError(ValueError):
    """An expense entered by the user failed validation."""

    def __init__(self, result: ValidationResult, message: str):
        super().__init__(message)
        self.result = result


class LedgerSession:
    """
    One household's ledger: roster, expenses and settlement history.

    Flow for settling up:
    1. pending_settlements() -> instructions computed from current state
    2. Roommates pay each other outside the app
    3. mark_settled(instruction) -> recorded, saved, audited
    4. Next pending_settlements() reflects the recorded payment
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        state: Optional[LedgerState] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[ExpenseValidator] = None,
        tolerance: Optional[Decimal] = None,
    ):
        self._storage = storage
        self._state = state if state is not None else LedgerState()
        self._audit_logger = audit_logger
        self._validator = validator or ExpenseValidator()
        if tolerance is None:
            tolerance = Decimal(str(get_settings().ledger.settlement_tolerance))
        self._tolerance = tolerance

    @classmethod
    async def open(
        cls,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
        **kwargs,
    ) -> "LedgerSession":
        """
        Load the three collections from storage and start a session.

        Collections never saved before come back with their defaults.
        """
        state = LedgerState(
            roster=await storage.load_roster(),
            expenses=await storage.load_expenses(),
            settlements=await storage.load_settlements(),
        )

        if audit_logger:
            await audit_logger.log_ledger_loaded(
                roster_size=len(state.roster),
                expense_count=len(state.expenses),
                settlement_count=len(state.settlements),
                correlation_id=correlation_id,
            )
            # Stored expenses the balance engine will leave out
            roster_size = len(state.active_roster)
            for expense in state.expenses:
                check = check_expense(expense, roster_size)
                if not check.is_valid:
                    await audit_logger.log_malformed_expense(
                        expense.id, check.reason.value, correlation_id
                    )

        return cls(storage, state=state, audit_logger=audit_logger, **kwargs)

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def state(self) -> LedgerState:
        """A copy of the current state; edits go through the session."""
        return self._state.model_copy(deep=True)

    @property
    def roster(self) -> list[str]:
        return list(self._state.roster)

    @property
    def active_roster(self) -> list[str]:
        return self._state.active_roster

    @property
    def expenses(self) -> list[Expense]:
        return list(self._state.expenses)

    @property
    def settlements(self) -> list[SettlementRecord]:
        return list(self._state.settlements)

    @property
    def tolerance(self) -> Decimal:
        return self._tolerance

    def balances(self) -> dict[str, Decimal]:
        """Net balance per roommate, recorded settlements included."""
        return compute_balances(
            self._state.expenses,
            self._state.roster,
            self._state.settlements,
        )

    def pending_settlements(self) -> list[SettlementInstruction]:
        """Payments still needed to settle every balance."""
        return plan_settlements(self.balances(), epsilon=self._tolerance)

    def summary(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> LedgerSummary:
        """Totals and per-person shares, for all time or one month."""
        return summarize(self._state.expenses, self._state.roster, year, month)

    def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        for expense in self._state.expenses:
            if expense.id == expense_id:
                return expense
        return None

    # -------------------------------------------------------------------------
    # Roster
    # -------------------------------------------------------------------------

    async def add_roommate(
        self,
        name: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Append a roster slot (blank by default).

        Returns the new slot's index.
        """
        self._state.roster.append(name)
        slot = len(self._state.roster) - 1

        await self._persist(ROOMMATES, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_roommate_added(slot, correlation_id)

        return slot

    async def update_roommate(
        self,
        slot: int,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Rename a roster slot.

        Expenses keep the payer name they were recorded with; a renamed
        payer shows up in balances under the old name.
        """
        if not 0 <= slot < len(self._state.roster):
            raise NotFoundError(f"Roster slot not found: {slot}")

        old_name = self._state.roster[slot]
        self._state.roster[slot] = name

        await self._persist(ROOMMATES, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_roommate_updated(slot, old_name, name, correlation_id)

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def _reject(
        self,
        result: ValidationResult,
        correlation_id: Optional[UUID],
    ) -> None:
        """Audit a rejected expense and raise InvalidExpenseError."""
        if self._audit_logger:
            issues = [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
            ]
            await self._audit_logger.log_expense_rejected(issues, correlation_id)
        raise InvalidExpenseError(
            result,
            self._validator.get_user_friendly_summary(result),
        )

    async def _check_or_raise(
        self,
        expense: Expense,
        correlation_id: Optional[UUID],
    ) -> ValidationResult:
        result = self._validator.validate(expense, self._state.roster)
        if result.has_errors:
            await self._reject(result, correlation_id)
        return result

    async def add_expense(
        self,
        description: str,
        amount: Any,
        paid_by: str,
        participant_count: Optional[int] = None,
        created_at: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record a new expense.

        participant_count defaults to the current number of active
        roommates, i.e. everyone on the roster shares it.

        Raises:
            InvalidExpenseError: If the input fails validation
        """
        correlation_id = correlation_id or create_correlation_id()

        if participant_count is None:
            participant_count = len(self._state.active_roster)

        try:
            expense = Expense(
                description=description,
                amount=amount,
                paid_by=paid_by,
                participant_count=participant_count,
                created_at=created_at or datetime.now(),
            )
        except ValidationError as e:
            # Input that does not even parse, e.g. amount="abc"
            issues = [
                ValidationIssue(
                    field=str(error["loc"][0]) if error["loc"] else "expense",
                    issue_type="invalid_value",
                    message=error["msg"],
                    severity="error",
                )
                for error in e.errors()
            ]
            await self._reject(
                ValidationResult(
                    schema_valid=False,
                    semantic_valid=False,
                    is_valid=False,
                    issues=issues,
                ),
                correlation_id,
            )
        await self._check_or_raise(expense, correlation_id)

        self._state.expenses.append(expense)
        await self._persist(EXPENSES, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                expense_id=expense.id,
                description=expense.description,
                amount=str(expense.amount),
                paid_by=expense.paid_by,
                correlation_id=correlation_id,
            )

        return expense

    async def update_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Replace the stored expense with the same id.

        Raises:
            NotFoundError: If no expense has this id
            InvalidExpenseError: If the new version fails validation
        """
        correlation_id = correlation_id or create_correlation_id()

        for index, existing in enumerate(self._state.expenses):
            if existing.id == expense.id:
                break
        else:
            raise NotFoundError(f"Expense not found: {expense.id}")

        await self._check_or_raise(expense, correlation_id)

        before = existing.model_dump(mode="json")
        after = expense.model_dump(mode="json")
        changes = {
            key: {"old": before[key], "new": after[key]}
            for key in after
            if before.get(key) != after[key]
        }

        self._state.expenses[index] = expense
        await self._persist(EXPENSES, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_updated(expense.id, changes, correlation_id)

        return expense

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete an expense by id.

        Balances are simply recomputed from what remains.
        Returns False if no expense has this id.
        """
        expense = self.get_expense(expense_id)
        if expense is None:
            return False

        self._state.expenses = [e for e in self._state.expenses if e.id != expense_id]
        await self._persist(EXPENSES, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id, expense.description, correlation_id
            )

        return True

    # -------------------------------------------------------------------------
    # Settlements
    # -------------------------------------------------------------------------

    async def mark_settled(
        self,
        instruction: SettlementInstruction,
        correlation_id: Optional[UUID] = None,
    ) -> SettlementRecord:
        """
        Record that a settlement instruction has been paid.

        The record is stamped with the current time and offsets every
        later balance computation.
        """
        record = SettlementRecord.from_instruction(instruction)

        self._state.settlements.append(record)
        await self._persist(SETTLEMENTS, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_settlement_recorded(
                debtor=record.debtor,
                creditor=record.creditor,
                amount=str(record.amount),
                correlation_id=correlation_id,
            )

        return record

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def _persist(
        self,
        collection: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Save one collection; failures are audited and re-raised."""
        try:
            if collection == EXPENSES:
                await self._storage.save_expenses(self._state.expenses)
            elif collection == ROOMMATES:
                await self._storage.save_roster(self._state.roster)
            elif collection == SETTLEMENTS:
                await self._storage.save_settlements(self._state.settlements)
            else:
                raise ValueError(f"Unknown collection: {collection}")
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(collection, str(e), correlation_id)
            raise


def create_storage(
    backend: Optional[str] = None,
) -> tuple[LedgerStorageInterface, Optional[AuditStorageInterface]]:
    """
    Build the ledger and audit storage for a backend name.

    Args:
        backend: "memory", "json" or "google_sheets".
                 Defaults to the configured LEDGER_STORAGE_BACKEND.

    Returns:
        (ledger_storage, audit_storage). Audit storage is None for the
        json backend, which only logs audit events locally.
    """
    backend = backend or get_settings().ledger.storage_backend

    if backend == "memory":
        return InMemoryLedgerStorage(), InMemoryAuditStorage()
    if backend == "json":
        return JsonFileLedgerStorage(), None
    if backend == "google_sheets":
        client = GoogleSheetsClient()
        return GoogleSheetsLedgerStorage(client), GoogleSheetsAuditStorage(client)
    raise ValueError(f"Unknown storage backend: {backend}")


async def create_app_components(
    backend: Optional[str] = None,
) -> LedgerSession:
    """
    Factory function to open the ledger session for the app.

    Falls back to local JSON storage if the configured backend
    cannot be reached.
    """
    try:
        storage, audit_storage = create_storage(backend)
        audit_logger = AuditLogger(audit_storage)
        return await LedgerSession.open(storage, audit_logger=audit_logger)
    except (StorageError, ValueError) as e:
        # Storage not configured - continue with local files
        logger.warning("storage_unavailable", backend=backend, error=str(e))
        audit_logger = AuditLogger()  # Local-only logging
        await audit_logger.log_error(
            error_type="storage_unavailable",
            error_message=str(e),
            details={"backend": backend or get_settings().ledger.storage_backend},
        )
        return await LedgerSession.open(JsonFileLedgerStorage(), audit_logger=audit_logger)
