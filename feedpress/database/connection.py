"""
FeedPress Key-Value Store
=========================

Persistence collaborator for the configuration aggregate and the
processed-item ledger. The core only ever calls ``get(key)`` and
``set(key, value)`` with JSON-compatible values; there is no transaction
spanning a read-modify-write, so concurrent writers are last-write-wins.
"""

import json
import sqlite3
import threading
import logging
import copy
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..utils.exceptions import StorageError, ErrorCode

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal get/set store used by the repositories."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None when absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-compatible value under ``key``."""

    def close(self) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store; values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def keys(self) -> List[str]:
        return list(self._data)


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite-backed store holding one JSON document per key."""

    def __init__(self, db_path: str = "data/feedpress.db"):
        """Open (and create if needed) the store.

        Args:
            db_path: Path to SQLite database file, or ``:memory:``
        """
        self.db_path = db_path
        self.lock = threading.Lock()

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(
                db_path,
                check_same_thread=False,
                timeout=30.0,
            )
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA synchronous = NORMAL")
            self._create_schema()
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to open store at {db_path}: {e}",
                error_code=ErrorCode.STORAGE_CONNECTION,
            ) from e

    def _create_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()
        logger.debug(f"Key-value store ready at {self.db_path}")

    def get(self, key: str) -> Optional[Any]:
        try:
            with self.lock:
                row = self._conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to read key {key}: {e}", key=key, error_code=ErrorCode.STORAGE_READ
            ) from e

        if row is None:
            return None

        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StorageError(
                f"Stored value for {key} is not valid JSON: {e}",
                key=key,
                error_code=ErrorCode.STORAGE_CORRUPTION,
            ) from e

    def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(
                f"Value for {key} is not JSON serializable: {e}", key=key
            ) from e

        try:
            with self.lock:
                self._conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, payload, datetime.now(timezone.utc).isoformat()),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write key {key}: {e}", key=key) from e

    def keys(self) -> List[str]:
        with self.lock:
            rows = self._conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def close(self) -> None:
        with self.lock:
            self._conn.close()
