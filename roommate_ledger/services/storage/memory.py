"""
In-Memory Storage

Keeps the ledger and audit log in process memory.
Used by tests and by sessions that should not outlive the process.

Everything is copied on the way in and out, so callers can never
mutate stored state behind the storage's back.
"""

from typing import Optional

from roommate_ledger.models.audit import AuditEvent
from roommate_ledger.models.ledger import Expense, SettlementRecord
from roommate_ledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    default_roster,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger storage backed by plain lists."""

    def __init__(
        self,
        expenses: Optional[list[Expense]] = None,
        roster: Optional[list[str]] = None,
        settlements: Optional[list[SettlementRecord]] = None,
    ):
        self._expenses = [e.model_copy(deep=True) for e in expenses or []]
        self._roster = list(roster) if roster is not None else default_roster()
        self._settlements = [s.model_copy(deep=True) for s in settlements or []]
        self.save_count = 0

    async def load_expenses(self) -> list[Expense]:
        return [e.model_copy(deep=True) for e in self._expenses]

    async def save_expenses(self, expenses: list[Expense]) -> bool:
        self._expenses = [e.model_copy(deep=True) for e in expenses]
        self.save_count += 1
        return True

    async def load_roster(self) -> list[str]:
        return list(self._roster)

    async def save_roster(self, roster: list[str]) -> bool:
        self._roster = list(roster)
        self.save_count += 1
        return True

    async def load_settlements(self) -> list[SettlementRecord]:
        return [s.model_copy(deep=True) for s in self._settlements]

    async def save_settlements(self, settlements: list[SettlementRecord]) -> bool:
        self._settlements = [s.model_copy(deep=True) for s in settlements]
        self.save_count += 1
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
