import json
import logging
import os
import sqlite3
from contextlib import closing
from typing import Any, Dict, Optional


class StoreError(Exception):
    """Base class for entity store failures."""


class StorageError(StoreError):
    """A durable slot could not be read or written."""


class SlotStorage:
    """
    Key-value persistence where each named slot holds one JSON document.

    Subclasses implement the raw text access; serialization lives here so
    every backend stores exactly the same payload.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def read(self, slot: str) -> Optional[str]:
        raise NotImplementedError

    def write(self, slot: str, payload: str) -> None:
        raise NotImplementedError

    def remove(self, slot: str) -> None:
        raise NotImplementedError

    def load(self, slot: str) -> Any:
        """Return the decoded slot value, or None when the slot was never written."""
        payload = self.read(slot)
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except ValueError as e:
            self.logger.error(f"Slot '{slot}' holds malformed JSON: {str(e)}")
            raise StorageError(f"Slot '{slot}' is corrupted") from e

    def save(self, slot: str, value: Any) -> None:
        self.write(slot, json.dumps(value))


class MemorySlotStorage(SlotStorage):
    """Non-durable slots, used by tests and the 'memory' backend."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self.slots = dict(initial or {})

    def read(self, slot):
        return self.slots.get(slot)

    def write(self, slot, payload):
        self.slots[slot] = payload

    def remove(self, slot):
        self.slots.pop(slot, None)


class JsonFileSlotStorage(SlotStorage):
    """One <slot>.json file per slot inside a data folder."""

    def __init__(self, data_folder: str):
        super().__init__()
        self.data_folder = data_folder
        os.makedirs(data_folder, exist_ok=True)

    def _path(self, slot):
        return os.path.join(self.data_folder, f"{slot}.json")

    def read(self, slot):
        path = self._path(slot)
        if not os.path.exists(path):
            return None
        try:
            with open(path, encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            self.logger.error(f"Error reading slot file {path}: {str(e)}")
            raise StorageError(f"Cannot read slot '{slot}'") from e

    def write(self, slot, payload):
        path = self._path(slot)
        tmp_path = path + '.tmp'
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                f.write(payload)
            # Readers never see a half-written collection
            os.replace(tmp_path, path)
        except OSError as e:
            self.logger.error(f"Error writing slot file {path}: {str(e)}")
            raise StorageError(f"Cannot write slot '{slot}'") from e

    def remove(self, slot):
        path = self._path(slot)
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as e:
            self.logger.error(f"Error removing slot file {path}: {str(e)}")
            raise StorageError(f"Cannot remove slot '{slot}'") from e


class SqliteSlotStorage(SlotStorage):
    """Slots kept as rows of a single sqlite table."""

    def __init__(self, database: str):
        super().__init__()
        self.database = database
        self.init_db()

    def _connect(self):
        return closing(sqlite3.connect(self.database))

    def init_db(self):
        """Initialize the database with the slots table"""
        self._execute("""
            CREATE TABLE IF NOT EXISTS slots (
                name TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    def _execute(self, query, args=()):
        try:
            with self._connect() as db:
                db.execute(query, args)
                db.commit()
        except sqlite3.Error as e:
            self.logger.error(f"Database error: {str(e)}")
            raise StorageError(str(e)) from e

    def read(self, slot):
        try:
            with self._connect() as db:
                row = db.execute("SELECT value FROM slots WHERE name = ?", (slot,)).fetchone()
        except sqlite3.Error as e:
            self.logger.error(f"Database error reading slot '{slot}': {str(e)}")
            raise StorageError(str(e)) from e
        return row[0] if row else None

    def write(self, slot, payload):
        self._execute(
            """INSERT INTO slots (name, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(name) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP""",
            (slot, payload)
        )

    def remove(self, slot):
        self._execute("DELETE FROM slots WHERE name = ?", (slot,))


def open_storage(backend: str, data_folder: str) -> SlotStorage:
    """Build the slot storage named by the STORAGE_BACKEND setting."""
    if backend == 'memory':
        return MemorySlotStorage()
    if backend == 'sqlite':
        os.makedirs(data_folder, exist_ok=True)
        return SqliteSlotStorage(os.path.join(data_folder, 'school.db'))
    if backend == 'json':
        return JsonFileSlotStorage(data_folder)
    raise ValueError(f"Unknown storage backend: {backend}")
