"""
Audit Models for Roommate Ledger

Every change to the ledger is logged for audit purposes.
This provides:
1. A history of who added, edited or removed what
2. Debugging information when balances look wrong
3. Ability to reconstruct how a settlement came about

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Roster
    ROOMMATE_ADDED = "roommate_added"
    ROOMMATE_UPDATED = "roommate_updated"

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_REJECTED = "expense_rejected"
    MALFORMED_EXPENSE_SKIPPED = "malformed_expense_skipped"

    # Settlements
    SETTLEMENT_RECORDED = "settlement_recorded"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'roommate', 'settlement')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one user action)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, "Rent", "1500", "Asha", correlation_id)
        event = AuditEventBuilder.settlement_recorded("Ravi", "Asha", "100.00", correlation_id)
    """

    @staticmethod
    def roommate_added(
        slot: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROOMMATE_ADDED,
            entity_type="roommate",
            correlation_id=correlation_id,
            description=f"Roster slot {slot + 1} added",
            details={"slot": slot},
            is_user_action=True,
        )

    @staticmethod
    def roommate_updated(
        slot: int,
        old_name: str,
        new_name: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROOMMATE_UPDATED,
            entity_type="roommate",
            correlation_id=correlation_id,
            description=f"Roster slot {slot + 1} renamed",
            details={
                "slot": slot,
                "old_name": old_name,
                "new_name": new_name,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_added(
        expense_id: UUID,
        description: str,
        amount: str,
        paid_by: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense added: {description} - ₹{amount} paid by {paid_by}",
            details={
                "description": description,
                "amount": amount,
                "paid_by": paid_by,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        expense_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense updated ({len(changes)} fields changed)",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        description: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense deleted: {description}",
            details={"description": description},
            is_user_action=True,
        )

    @staticmethod
    def expense_rejected(
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Expense rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def malformed_expense_skipped(
        expense_id: UUID,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MALFORMED_EXPENSE_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense left out of balances: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def settlement_recorded(
        debtor: str,
        creditor: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            entity_type="settlement",
            correlation_id=correlation_id,
            description=f"Settlement recorded: {debtor} paid {creditor} ₹{amount}",
            details={
                "from": debtor,
                "to": creditor,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def ledger_loaded(
        roster_size: int,
        expense_count: int,
        settlement_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            correlation_id=correlation_id,
            description=(
                f"Ledger loaded: {roster_size} roster slots, "
                f"{expense_count} expenses, {settlement_count} settlements"
            ),
            details={
                "roster_size": roster_size,
                "expense_count": expense_count,
                "settlement_count": settlement_count,
            },
        )

    @staticmethod
    def save_failed(
        collection: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Failed to save {collection}",
            error_message=error_message,
            details={"collection": collection},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
