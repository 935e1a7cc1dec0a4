#!/usr/bin/env python3
"""
VisitPrint Local Storage
========================

Persistent key/value map for one origin, backed by SQLite.

Survives across sessions and processes. Besides acting as a visitor ID
storage mechanism it exposes get_item/set_item/remove_item so other
components (e.g. the ETag cache) can keep small values next to the ID.

Author: Team VisitPrint
"""

import sqlite3
from pathlib import Path
from typing import Optional

from loguru import logger

from .storage_mechanism import StorageMechanism, VISITOR_ID_KEY


class LocalStorage(StorageMechanism):
    """Visitor ID in a SQLite-backed local store."""

    TABLE = "local_storage"

    def __init__(self, db_path: str, origin: str = "default", key: str = VISITOR_ID_KEY):
        """
        Initialize local storage.

        Args:
            db_path: Path to SQLite database
            origin: Namespace for keys, one per site
            key: Key the visitor ID is stored under
        """
        super().__init__('localStorage')
        self.db_path = str(db_path)
        self.origin = origin
        self.key = key

    def _connect(self) -> sqlite3.Connection:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.TABLE} (
                origin TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (origin, key)
            )
        """)
        return conn

    def get_item(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"SELECT value FROM {self.TABLE} WHERE origin = ? AND key = ?",
                (self.origin, key)
            )
            row = cursor.fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def set_item(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                f"INSERT OR REPLACE INTO {self.TABLE} (origin, key, value) VALUES (?, ?, ?)",
                (self.origin, key, value)
            )
            conn.commit()
        finally:
            conn.close()

    def remove_item(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                f"DELETE FROM {self.TABLE} WHERE origin = ? AND key = ?",
                (self.origin, key)
            )
            conn.commit()
        finally:
            conn.close()

    def _read(self) -> Optional[str]:
        return self.get_item(self.key)

    def _write(self, visitor_id: str) -> bool:
        self.set_item(self.key, visitor_id)
        return True

    def _is_available(self) -> bool:
        # Probe write, same as a storage-enabled check in the browser
        test_key = "__fp_test__"
        try:
            self.set_item(test_key, "1")
            self.remove_item(test_key)
            return True
        except sqlite3.Error as e:
            logger.warning(f"Local storage unavailable at {self.db_path}: {e}")
            return False
