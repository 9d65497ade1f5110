"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. All roommates can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a household ledger is tiny)
- No transactions (each collection is rewritten whole on save)
- Limited query capabilities (we filter in Python)

Each collection gets its own worksheet with a header row.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from roommate_ledger.config import get_settings
from roommate_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from roommate_ledger.models.ledger import Expense, SettlementRecord, SettlementStatus
from roommate_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    StorageError,
    default_roster,
)


EXPENSE_COLUMNS = [
    "id",
    "description",
    "amount",
    "paid_by",
    "participant_count",
    "created_at",
]

ROOMMATE_COLUMNS = [
    "slot",
    "name",
]

SETTLEMENT_COLUMNS = [
    "from",
    "to",
    "amount",
    "timestamp",
    "status",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

logger = structlog.get_logger(__name__)


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet by title, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.expenses_sheet_name, EXPENSE_COLUMNS)

    def get_roommates_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.roommates_sheet_name, ROOMMATE_COLUMNS, rows=100)

    def get_settlements_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.settlements_sheet_name, SETTLEMENT_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


def _replace_rows(sheet: gspread.Worksheet, header: list[str], rows: list[list]) -> None:
    """
    Overwrite a worksheet with a header plus the given rows.

    New values are written before old rows past the end are cleared, so
    a failed write leaves the previous contents in place.
    """
    values = [header] + rows
    sheet.update(values=values, range_name="A1", value_input_option="RAW")
    first_stale_row = len(values) + 1
    if first_stale_row <= sheet.row_count:
        sheet.batch_clear([f"{first_stale_row}:{sheet.row_count}"])


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One row per expense / roommate slot / settlement.
    Saves rewrite the whole worksheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _expense_to_row(self, expense: Expense) -> list:
        return [
            str(expense.id),
            expense.description,
            str(expense.amount) if expense.amount is not None else "",
            expense.paid_by or "",
            str(expense.participant_count) if expense.participant_count is not None else "",
            expense.created_at.isoformat(),
        ]

    def _row_to_expense(self, row: list) -> Expense:
        amount = _safe_get(row, 2)
        count = _safe_get(row, 4)
        created_at = _safe_get(row, 5)
        return Expense(
            id=UUID(_safe_get(row, 0)),
            description=_safe_get(row, 1),
            amount=Decimal(amount) if amount else None,
            paid_by=_safe_get(row, 3) or None,
            participant_count=int(count) if count else None,
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(),
        )

    def _settlement_to_row(self, record: SettlementRecord) -> list:
        return [
            record.debtor,
            record.creditor,
            str(record.amount),
            record.timestamp.isoformat(),
            record.status.value,
        ]

    def _row_to_settlement(self, row: list) -> SettlementRecord:
        return SettlementRecord(
            debtor=_safe_get(row, 0),
            creditor=_safe_get(row, 1),
            amount=Decimal(_safe_get(row, 2)),
            timestamp=datetime.fromisoformat(_safe_get(row, 3)),
            status=SettlementStatus(_safe_get(row, 4, SettlementStatus.SETTLED.value)),
        )

    async def load_expenses(self) -> list[Expense]:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to load expenses: {e}")

        expenses = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                expenses.append(self._row_to_expense(row))
            except Exception as e:
                logger.warning("stored_entry_skipped", collection="expenses", error=str(e))
        return expenses

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_expenses(self, expenses: list[Expense]) -> bool:
        try:
            sheet = self._client.get_expenses_sheet()
            _replace_rows(sheet, EXPENSE_COLUMNS, [self._expense_to_row(e) for e in expenses])
            return True
        except Exception as e:
            raise StorageError(f"Failed to save expenses: {e}")

    async def load_roster(self) -> list[str]:
        try:
            sheet = self._client.get_roommates_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to load roommates: {e}")

        if not all_rows:
            return default_roster()
        # Slot column keeps trailing blank slots from being trimmed
        return [_safe_get(row, 1) for row in all_rows]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_roster(self, roster: list[str]) -> bool:
        try:
            sheet = self._client.get_roommates_sheet()
            _replace_rows(
                sheet,
                ROOMMATE_COLUMNS,
                [[str(slot), name] for slot, name in enumerate(roster)],
            )
            return True
        except Exception as e:
            raise StorageError(f"Failed to save roommates: {e}")

    async def load_settlements(self) -> list[SettlementRecord]:
        try:
            sheet = self._client.get_settlements_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to load settlements: {e}")

        settlements = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                settlements.append(self._row_to_settlement(row))
            except Exception as e:
                logger.warning("stored_entry_skipped", collection="settlements", error=str(e))
        return settlements

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_settlements(self, settlements: list[SettlementRecord]) -> bool:
        try:
            sheet = self._client.get_settlements_sheet()
            _replace_rows(
                sheet,
                SETTLEMENT_COLUMNS,
                [self._settlement_to_row(s) for s in settlements],
            )
            return True
        except Exception as e:
            raise StorageError(f"Failed to save settlements: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=UUID(_safe_get(row, 5)) if _safe_get(row, 5) else None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
