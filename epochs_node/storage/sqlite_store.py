#!/usr/bin/env python3
"""
SQLiteEpochStore — SQLite backend for epoch records.
----------------------------------------------------
- One row per identifier, the record encoded as canonical JSON.
- Used when config.persistence.driver == "sqlite".
- autocommit=False defers the commit to flush(), which the executor calls
  once per block so a block's transitions commit together.
"""

import json
import os
import sqlite3
from typing import List, Optional

from ..epochs_runtime.codec import record_from_dict, record_to_dict
from ..epochs_runtime.types import EpochRecord


class SQLiteEpochStore:
    def __init__(self, db_path: str, *, autocommit: bool = True):
        self.db_path = db_path
        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.autocommit = bool(autocommit)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    # -----------------------------------------------------
    # Core schema
    # -----------------------------------------------------
    def _init_schema(self):
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS epoch_info (
                identifier TEXT PRIMARY KEY,
                record TEXT NOT NULL
            );
            """
        )
        self.conn.commit()

    def _maybe_commit(self):
        if self.autocommit:
            self.conn.commit()

    # -----------------------------------------------------
    # Keyed map
    # -----------------------------------------------------
    def get(self, identifier: str) -> Optional[EpochRecord]:
        cur = self.conn.execute("SELECT record FROM epoch_info WHERE identifier=?", (identifier,))
        row = cur.fetchone()
        return record_from_dict(json.loads(row["record"])) if row else None

    def set(self, identifier: str, rec: EpochRecord) -> None:
        payload = json.dumps(record_to_dict(rec), sort_keys=True, separators=(",", ":"))
        self.conn.execute(
            "INSERT INTO epoch_info (identifier, record) VALUES (?, ?) "
            "ON CONFLICT(identifier) DO UPDATE SET record=excluded.record",
            (identifier, payload),
        )
        self._maybe_commit()

    def delete(self, identifier: str) -> None:
        self.conn.execute("DELETE FROM epoch_info WHERE identifier=?", (identifier,))
        self._maybe_commit()

    def list_all(self) -> List[EpochRecord]:
        cur = self.conn.execute("SELECT record FROM epoch_info ORDER BY identifier ASC")
        return [record_from_dict(json.loads(row["record"])) for row in cur.fetchall()]

    # -----------------------------------------------------
    # Maintenance
    # -----------------------------------------------------
    def flush(self) -> None:
        self.conn.commit()

    def close(self):
        self.conn.commit()
        self.conn.close()
