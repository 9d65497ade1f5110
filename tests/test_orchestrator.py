"""
Integration tests for LedgerSession flows.

Uses in-memory storage for both the ledger and the audit log.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from roommate_ledger.audit import AuditLogger
from roommate_ledger.models.audit import AuditEventType
from roommate_ledger.models.ledger import Expense, SettlementStatus
from roommate_ledger.orchestrator import (
    InvalidExpenseError,
    LedgerSession,
    create_app_components,
    create_storage,
)
from roommate_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    NotFoundError,
    StorageError,
)


class FailingLedgerStorage(InMemoryLedgerStorage):
    """In-memory storage whose expense saves always fail."""

    async def save_expenses(self, expenses):
        raise StorageError("disk full")


def open_session(storage, audit_storage):
    return asyncio.run(
        LedgerSession.open(storage, audit_logger=AuditLogger(audit_storage))
    )


def event_types(audit_storage):
    events = asyncio.run(audit_storage.get_recent_events())
    return [e.event_type for e in events]


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def storage():
    return InMemoryLedgerStorage(roster=["A", "B", "C"])


@pytest.fixture
def session(storage, audit_storage):
    return open_session(storage, audit_storage)


class TestOpenSession:
    """Tests for loading a session from storage."""

    def test_fresh_storage_defaults(self, audit_storage):
        """Test a never-saved ledger opens empty with one blank slot."""
        session = open_session(InMemoryLedgerStorage(), audit_storage)
        assert session.roster == [""]
        assert session.active_roster == []
        assert session.expenses == []
        assert session.settlements == []
        assert session.balances() == {}
        assert session.pending_settlements() == []
        assert AuditEventType.LEDGER_LOADED in event_types(audit_storage)

    def test_malformed_stored_expense_is_audited(self, audit_storage):
        """Test stored expenses the balances will skip are reported on open."""
        storage = InMemoryLedgerStorage(
            roster=["A", "B"],
            expenses=[Expense(description="Half filled", paid_by="A", participant_count=2)],
        )
        session = open_session(storage, audit_storage)
        assert session.balances() == {"A": Decimal(0), "B": Decimal(0)}
        assert AuditEventType.MALFORMED_EXPENSE_SKIPPED in event_types(audit_storage)

    def test_state_is_a_copy(self, session):
        """Test editing the returned state does not touch the session."""
        state = session.state
        state.roster.append("D")
        assert session.roster == ["A", "B", "C"]


class TestSettleFlow:
    """Tests for the expense -> plan -> mark settled flow."""

    def test_full_flow(self, session, storage, audit_storage):
        """Test recording a settlement offsets later plans."""
        asyncio.run(session.add_expense("Groceries", "300", "A"))

        assert session.balances() == {
            "A": Decimal("200"),
            "B": Decimal("-100"),
            "C": Decimal("-100"),
        }
        plan = session.pending_settlements()
        assert [(i.debtor, i.creditor, i.amount) for i in plan] == [
            ("B", "A", Decimal("100.00")),
            ("C", "A", Decimal("100.00")),
        ]

        record = asyncio.run(session.mark_settled(plan[0]))
        assert record.status == SettlementStatus.SETTLED
        assert isinstance(record.timestamp, datetime)

        assert session.balances()["B"] == Decimal("0")
        remaining = session.pending_settlements()
        assert [(i.debtor, i.creditor, i.amount) for i in remaining] == [
            ("C", "A", Decimal("100.00")),
        ]

        assert len(asyncio.run(storage.load_settlements())) == 1
        assert AuditEventType.SETTLEMENT_RECORDED in event_types(audit_storage)

    def test_settling_everything(self, session):
        """Test no payments remain once every instruction is recorded."""
        asyncio.run(session.add_expense("Rent", "900", "B"))
        for instruction in session.pending_settlements():
            asyncio.run(session.mark_settled(instruction))
        assert session.pending_settlements() == []


class TestExpenses:
    """Tests for adding, editing and deleting expenses."""

    def test_add_expense_defaults(self, session, storage):
        """Test participant count defaults to the active roster size."""
        expense = asyncio.run(session.add_expense("Milk", Decimal("60"), "A"))
        assert expense.participant_count == 3
        assert asyncio.run(storage.load_expenses()) == [expense]

    def test_add_expense_explicit_count(self, session):
        """Test an explicit count splits across the roster prefix."""
        asyncio.run(session.add_expense("Taxi", "100", "C", participant_count=2))
        assert session.balances() == {
            "A": Decimal("-50"),
            "B": Decimal("-50"),
            "C": Decimal("100"),
        }

    def test_invalid_expense_rejected(self, session, storage, audit_storage):
        """Test invalid input raises and nothing is saved."""
        with pytest.raises(InvalidExpenseError) as exc_info:
            asyncio.run(session.add_expense("", "", "A"))

        assert exc_info.value.result.has_errors
        assert session.expenses == []
        assert storage.save_count == 0
        assert AuditEventType.EXPENSE_REJECTED in event_types(audit_storage)

    def test_unknown_payer_rejected(self, session):
        """Test the payer must be on the roster."""
        with pytest.raises(InvalidExpenseError):
            asyncio.run(session.add_expense("Rent", "100", "Zoe"))

    def test_unparseable_amount_rejected(self, session, storage, audit_storage):
        """Test an amount that is not a number is rejected and audited."""
        with pytest.raises(InvalidExpenseError) as exc_info:
            asyncio.run(session.add_expense("Rent", "abc", "A"))

        issues = exc_info.value.result.issues
        assert [issue.field for issue in issues] == ["amount"]
        assert session.expenses == []
        assert storage.save_count == 0
        assert AuditEventType.EXPENSE_REJECTED in event_types(audit_storage)

    def test_update_expense(self, session, audit_storage):
        """Test replacing an expense by id recomputes balances."""
        expense = asyncio.run(session.add_expense("Groceries", "300", "A"))
        edited = expense.model_copy(update={"amount": Decimal("600")})

        asyncio.run(session.update_expense(edited))

        assert session.get_expense(expense.id).amount == Decimal("600")
        assert session.balances()["A"] == Decimal("400")
        assert AuditEventType.EXPENSE_UPDATED in event_types(audit_storage)

    def test_update_unknown_expense(self, session):
        """Test updating a missing id raises NotFoundError."""
        stray = Expense(description="Ghost", amount=Decimal("1"), paid_by="A", participant_count=1)
        with pytest.raises(NotFoundError):
            asyncio.run(session.update_expense(stray))

    def test_delete_expense(self, session, storage, audit_storage):
        """Test deleting an expense removes its effect."""
        expense = asyncio.run(session.add_expense("Groceries", "300", "A"))
        asyncio.run(session.add_expense("Milk", "30", "B"))

        assert asyncio.run(session.delete_expense(expense.id)) is True

        assert session.balances() == {
            "A": Decimal("-10"),
            "B": Decimal("20"),
            "C": Decimal("-10"),
        }
        assert len(asyncio.run(storage.load_expenses())) == 1
        assert AuditEventType.EXPENSE_DELETED in event_types(audit_storage)

    def test_delete_unknown_expense(self, session):
        """Test deleting a missing id returns False."""
        assert asyncio.run(session.delete_expense(uuid4())) is False

    def test_save_failure_is_audited(self, audit_storage):
        """Test storage errors are audited and re-raised."""
        session = open_session(FailingLedgerStorage(roster=["A", "B"]), audit_storage)
        with pytest.raises(StorageError):
            asyncio.run(session.add_expense("Rent", "100", "A"))
        assert AuditEventType.SAVE_FAILED in event_types(audit_storage)


class TestRoster:
    """Tests for roster edits."""

    def test_add_roommate(self, session, storage):
        """Test a blank slot is appended and saved."""
        slot = asyncio.run(session.add_roommate())
        assert slot == 3
        assert session.roster == ["A", "B", "C", ""]
        assert session.active_roster == ["A", "B", "C"]
        assert asyncio.run(storage.load_roster()) == ["A", "B", "C", ""]

    def test_update_roommate(self, session, audit_storage):
        """Test renaming a slot."""
        slot = asyncio.run(session.add_roommate())
        asyncio.run(session.update_roommate(slot, "D"))
        assert session.active_roster == ["A", "B", "C", "D"]
        assert AuditEventType.ROOMMATE_UPDATED in event_types(audit_storage)

    def test_update_missing_slot(self, session):
        """Test renaming a slot that does not exist."""
        with pytest.raises(NotFoundError):
            asyncio.run(session.update_roommate(10, "Z"))

    def test_rename_keeps_old_payer(self, session):
        """Test expenses keep the payer name they were recorded with."""
        asyncio.run(session.add_expense("Rent", "300", "A"))
        asyncio.run(session.update_roommate(0, "Asha"))
        balances = session.balances()
        assert balances["A"] == Decimal("300")
        assert balances["Asha"] == Decimal("-100")
        assert sum(balances.values()) == 0


class TestSummary:
    """Tests for the session summary."""

    def test_summary(self, session):
        """Test totals and shares over the session's expenses."""
        asyncio.run(session.add_expense("Rent", "300", "A", created_at=datetime(2024, 12, 1)))
        asyncio.run(session.add_expense("Milk", "30", "B", created_at=datetime(2024, 11, 1)))

        overall = session.summary()
        assert overall.total == Decimal("330")
        assert overall.shares["C"] == Decimal("110")

        december = session.summary(2024, 12)
        assert december.expense_count == 1
        assert december.total == Decimal("300")


class TestFactories:
    """Tests for storage selection."""

    def test_memory_backend(self):
        """Test the memory backend pairs ledger and audit storage."""
        ledger_storage, audit_storage = create_storage("memory")
        assert isinstance(ledger_storage, InMemoryLedgerStorage)
        assert isinstance(audit_storage, InMemoryAuditStorage)

    def test_json_backend(self):
        """Test the json backend has no audit storage."""
        ledger_storage, audit_storage = create_storage("json")
        assert isinstance(ledger_storage, JsonFileLedgerStorage)
        assert audit_storage is None

    def test_unknown_backend(self):
        """Test unknown backend names are rejected."""
        with pytest.raises(ValueError):
            create_storage("floppy")

    def test_create_app_components(self):
        """Test the app factory opens a session."""
        session = asyncio.run(create_app_components("memory"))
        assert isinstance(session, LedgerSession)
        assert session.roster == [""]

    def test_create_app_components_falls_back_to_json(self, tmp_path, monkeypatch):
        """Test an unusable backend falls back to local JSON files."""
        monkeypatch.setenv("LEDGER_DATA_DIR", str(tmp_path))
        session = asyncio.run(create_app_components("floppy"))
        assert session.roster == [""]

        asyncio.run(session.add_roommate("A"))
        assert (tmp_path / "roommates.json").exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
