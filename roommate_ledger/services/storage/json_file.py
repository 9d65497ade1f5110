"""
Local JSON File Storage

One JSON file per collection inside a data directory:

    <data_dir>/expenses.json
    <data_dir>/roommates.json
    <data_dir>/settlements.json

This is the default backend: no accounts or credentials needed,
and the files are easy to inspect or back up by hand.

Files are written to a temporary sibling first and then renamed over
the original, so a crash mid-write never leaves half a file behind.
"""

import json
from pathlib import Path
from typing import Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from roommate_ledger.config import get_settings
from roommate_ledger.models.ledger import Expense, SettlementRecord
from roommate_ledger.services.storage.interface import (
    EXPENSES,
    ROOMMATES,
    SETTLEMENTS,
    LedgerStorageInterface,
    StorageError,
    default_roster,
)


ModelT = TypeVar("ModelT", bound=BaseModel)

logger = structlog.get_logger(__name__)


class JsonFileLedgerStorage(LedgerStorageInterface):
    """Ledger storage backed by JSON files on local disk."""

    def __init__(self, data_dir: Optional[Path] = None):
        self._data_dir = Path(data_dir) if data_dir else get_settings().ledger.data_path

    def _path(self, collection: str) -> Path:
        return self._data_dir / f"{collection}.json"

    def _read(self, collection: str) -> Optional[list]:
        """Read a collection's raw JSON list, or None if never saved."""
        path = self._path(collection)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}")
        if not isinstance(data, list):
            raise StorageError(f"Expected a list in {path}, got {type(data).__name__}")
        return data

    def _write(self, collection: str, data: list) -> bool:
        path = self._path(collection)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to save {collection}: {e}")
        return True

    def _parse_models(self, collection: str, raw: list, model: Type[ModelT]) -> list[ModelT]:
        items = []
        for index, item in enumerate(raw):
            try:
                items.append(model.model_validate(item))
            except ValidationError as e:
                # Skip malformed entries
                logger.warning(
                    "stored_entry_skipped",
                    collection=collection,
                    index=index,
                    error=str(e),
                )
        return items

    async def load_expenses(self) -> list[Expense]:
        raw = self._read(EXPENSES)
        if raw is None:
            return []
        return self._parse_models(EXPENSES, raw, Expense)

    async def save_expenses(self, expenses: list[Expense]) -> bool:
        return self._write(
            EXPENSES,
            [e.model_dump(mode="json", by_alias=True) for e in expenses],
        )

    async def load_roster(self) -> list[str]:
        raw = self._read(ROOMMATES)
        if raw is None:
            return default_roster()
        return ["" if name is None else str(name) for name in raw]

    async def save_roster(self, roster: list[str]) -> bool:
        return self._write(ROOMMATES, list(roster))

    async def load_settlements(self) -> list[SettlementRecord]:
        raw = self._read(SETTLEMENTS)
        if raw is None:
            return []
        return self._parse_models(SETTLEMENTS, raw, SettlementRecord)

    async def save_settlements(self, settlements: list[SettlementRecord]) -> bool:
        return self._write(
            SETTLEMENTS,
            [s.model_dump(mode="json", by_alias=True) for s in settlements],
        )
