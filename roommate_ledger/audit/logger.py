"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Complete traceability of who changed what
2. Debugging capability when balances look wrong
3. Roommates can see the history of the ledger

The audit logger:
- Is async to match the storage layer
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from roommate_ledger.models.audit import AuditEvent, AuditEventBuilder
from roommate_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_roommate_added(
        self,
        slot: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.roommate_added(slot, correlation_id))

    async def log_roommate_updated(
        self,
        slot: int,
        old_name: str,
        new_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.roommate_updated(slot, old_name, new_name, correlation_id)
        )

    async def log_expense_added(
        self,
        expense_id: UUID,
        description: str,
        amount: str,
        paid_by: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new expense."""
        event = AuditEventBuilder.expense_added(
            expense_id=expense_id,
            description=description,
            amount=amount,
            paid_by=paid_by,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_updated(
        self,
        expense_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(expense_id, changes, correlation_id))

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(expense_id, description, correlation_id))

    async def log_expense_rejected(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an expense the user entered that failed validation."""
        await self.log(AuditEventBuilder.expense_rejected(issues, correlation_id))

    async def log_malformed_expense(
        self,
        expense_id: UUID,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.malformed_expense_skipped(expense_id, reason, correlation_id)
        )

    async def log_settlement_recorded(
        self,
        debtor: str,
        creditor: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a settlement marked as paid."""
        event = AuditEventBuilder.settlement_recorded(
            debtor=debtor,
            creditor=creditor,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ledger_loaded(
        self,
        roster_size: int,
        expense_count: int,
        settlement_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.ledger_loaded(
            roster_size=roster_size,
            expense_count=expense_count,
            settlement_count=settlement_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_save_failed(
        self,
        collection: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(collection, error_message, correlation_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
