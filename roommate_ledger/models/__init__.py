"""
Data Models Package

This package contains all Pydantic models used in Roommate Ledger.
All data flowing through the system must conform to these schemas.
"""

from roommate_ledger.models.ledger import (
    Expense,
    ExpenseCheck,
    ExpenseCheckStatus,
    LedgerState,
    LedgerSummary,
    MalformedReason,
    SettlementInstruction,
    SettlementRecord,
    SettlementStatus,
    ValidationIssue,
    ValidationResult,
)
from roommate_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Expense",
    "ExpenseCheck",
    "ExpenseCheckStatus",
    "LedgerState",
    "LedgerSummary",
    "MalformedReason",
    "SettlementInstruction",
    "SettlementRecord",
    "SettlementStatus",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
