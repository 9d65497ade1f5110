"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger in local JSON files or in Google Sheets
2. Use in-memory storage for testing
3. Keep the settlement logic decoupled from storage

The ledger is three independent collections (expenses, roommates,
settlements). Each is loaded whole at session start and saved whole
after every change - there is no partial update.
"""

from abc import ABC, abstractmethod

from roommate_ledger.models.audit import AuditEvent
from roommate_ledger.models.ledger import Expense, SettlementRecord


# Collection names, shared by every backend
EXPENSES = "expenses"
ROOMMATES = "roommates"
SETTLEMENTS = "settlements"


def default_roster() -> list[str]:
    """Roster for a ledger that has never been saved: one blank slot."""
    return [""]


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Loads return the documented defaults when nothing has been
    saved yet: no expenses, a single blank roster slot, no settlements.
    """

    @abstractmethod
    async def load_expenses(self) -> list[Expense]:
        """
        Load all expenses in the order they were recorded.

        Returns:
            List of expenses (empty if none saved)

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save_expenses(self, expenses: list[Expense]) -> bool:
        """
        Replace the stored expenses with this list.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def load_roster(self) -> list[str]:
        """
        Load the roster slots in display order.

        Returns:
            Roster slots, blanks included ([""] if none saved)
        """
        pass

    @abstractmethod
    async def save_roster(self, roster: list[str]) -> bool:
        """Replace the stored roster with this list."""
        pass

    @abstractmethod
    async def load_settlements(self) -> list[SettlementRecord]:
        """
        Load recorded settlements in the order they were marked as paid.

        Returns:
            List of settlement records (empty if none saved)
        """
        pass

    @abstractmethod
    async def save_settlements(self, settlements: list[SettlementRecord]) -> bool:
        """Replace the stored settlement history with this list."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
