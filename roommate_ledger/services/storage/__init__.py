"""
Storage Services Package

Provides abstract interfaces and concrete implementations for ledger storage.
Local JSON files are the default backend; Google Sheets and in-memory
storage implement the same interface.
"""

from roommate_ledger.services.storage.interface import (
    EXPENSES,
    ROOMMATES,
    SETTLEMENTS,
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
    default_roster,
)
from roommate_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from roommate_ledger.services.storage.json_file import JsonFileLedgerStorage
from roommate_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Collections
    "EXPENSES",
    "ROOMMATES",
    "SETTLEMENTS",
    "default_roster",
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "JsonFileLedgerStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
