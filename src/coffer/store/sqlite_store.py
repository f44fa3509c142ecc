from __future__ import annotations

import logging
import os
import sqlite3
from typing import Dict, Optional

from .base import KeyValueStore


DDL = """
CREATE TABLE IF NOT EXISTS kv (
  key TEXT PRIMARY KEY,
  value INTEGER NOT NULL
);
"""

log = logging.getLogger("coffer.store")


class SQLiteStore(KeyValueStore):
    def __init__(self, path: str = "data/coffer.sqlite"):
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.path = path
        self._staged: Dict[str, int] = {}
        with sqlite3.connect(self.path) as con:
            con.execute(DDL)

    def get_int(self, key: str) -> Optional[int]:
        if key in self._staged:
            return self._staged[key]
        with sqlite3.connect(self.path) as con:
            row = con.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return None if row is None else int(row[0])

    def set_int(self, key: str, value: int) -> None:
        self._staged[key] = int(value)

    def has_key(self, key: str) -> bool:
        return self.get_int(key) is not None

    def flush(self) -> None:
        if not self._staged:
            return
        # One transaction per flush; the context manager commits or rolls back
        with sqlite3.connect(self.path) as con:
            con.executemany(
                "INSERT INTO kv(key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                list(self._staged.items()),
            )
        log.debug(f"flushed {len(self._staged)} keys to {self.path}")
        self._staged.clear()
