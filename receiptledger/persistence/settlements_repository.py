"""Settlement repository handling header and row CRUD operations."""
from __future__ import annotations

import itertools
import json
import logging
import sqlite3
import threading
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from receiptledger.infrastructure.logger import DatabaseOperation
from receiptledger.persistence.migrations import BREAKDOWN_COLUMNS, SCALAR_COLUMNS

_HEADER_COLUMNS = (
    ("customer_id", "customer_name", "occurred_at", "special_category")
    + SCALAR_COLUMNS
    + ("ref_open", "ref_close", "ref_jod")
    + BREAKDOWN_COLUMNS
)

_id_counter = itertools.count()
_id_lock = threading.Lock()


def new_record_id() -> str:
    """Return a time-ordered identifier; later ids sort lexicographically after earlier ones."""
    with _id_lock:
        sequence = next(_id_counter) & 0xFFFFFF
    return f"{time.time_ns():016x}{sequence:06x}"


class SettlementsRepository:
    """Encapsulate settlement header/row persistence logic."""

    def __init__(self, db_manager: Any) -> None:
        self._db = db_manager
        self._logger = getattr(db_manager, "logger", logging.getLogger(__name__))
        self.last_error: Optional[str] = None

    @property
    def _conn(self):
        return getattr(self._db, "conn", None)

    @property
    def _lock(self):
        return getattr(self._db, "lock", None) or threading.RLock()

    def save_settlement(
        self,
        record_id: Optional[str],
        header: Mapping[str, Any],
        rows: Iterable[Mapping[str, Any]],
    ) -> Optional[str]:
        """Insert a new settlement or fully replace an existing one.

        Returns the record id, or None on failure (see ``last_error``).
        """
        conn = self._conn
        if not conn:
            self._set_last_error("Cannot save settlement: no active database connection is available.")
            return None

        now = datetime.now().isoformat(timespec="seconds")

        with self._lock:
            cursor = conn.cursor()
            try:
                self._set_last_error(None)
                row_list = [dict(row) for row in rows or []]
                values = [self._header_value(header, column) for column in _HEADER_COLUMNS]
                with DatabaseOperation(f"save settlement {record_id or '(new)'}", self._logger):
                    conn.execute("BEGIN TRANSACTION")
                    exists = False
                    if record_id:
                        cursor.execute("SELECT 1 FROM settlements WHERE record_id = ?", (record_id,))
                        exists = cursor.fetchone() is not None
                    if exists:
                        assignments = ", ".join(f"{column} = ?" for column in _HEADER_COLUMNS)
                        cursor.execute(
                            f"UPDATE settlements SET {assignments}, updated_at = ? WHERE record_id = ?",
                            (*values, now, record_id),
                        )
                        cursor.execute("DELETE FROM settlement_rows WHERE record_id = ?", (record_id,))
                    else:
                        record_id = record_id or new_record_id()
                        columns = ", ".join(("record_id",) + _HEADER_COLUMNS + ("created_at", "updated_at"))
                        placeholders = ", ".join("?" for _ in range(len(_HEADER_COLUMNS) + 3))
                        cursor.execute(
                            f"INSERT INTO settlements ({columns}) VALUES ({placeholders})",
                            (record_id, *values, now, now),
                        )
                    cursor.executemany(
                        "INSERT INTO settlement_rows (record_id, position, row_json) VALUES (?, ?, ?)",
                        [
                            (record_id, position, json.dumps(row, ensure_ascii=False))
                            for position, row in enumerate(row_list)
                        ],
                    )
                    conn.commit()
                return record_id
            except (sqlite3.Error, TypeError, ValueError) as exc:
                conn.rollback()
                self._set_last_error(f"Failed to save settlement: {exc}")
                return None

    def get_settlement(self, record_id: str) -> Optional[Dict[str, Any]]:
        conn = self._conn
        if not conn:
            self._logger.error("Cannot get settlement %s: No active database connection", record_id)
            return None
        with self._lock:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT * FROM settlements WHERE record_id = ?", (record_id,))
                header = cursor.fetchone()
                if not header:
                    return None
                return {"header": dict(header), "rows": self._load_rows(cursor, record_id)}
            except sqlite3.Error as exc:
                self._logger.error("DB Error getting settlement %s: %s", record_id, exc, exc_info=True)
                return None

    def get_settlements(self, customer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return every settlement (optionally for one customer), newest first."""
        conn = self._conn
        if not conn:
            return []
        query = "SELECT * FROM settlements"
        params: List[Any] = []
        if customer_id is not None:
            query += " WHERE customer_id = ?"
            params.append(customer_id)
        query += " ORDER BY occurred_at DESC, record_id DESC"
        with self._lock:
            cursor = conn.cursor()
            try:
                cursor.execute(query, params)
                headers = cursor.fetchall()
                return [
                    {"header": dict(header), "rows": self._load_rows(cursor, header["record_id"])}
                    for header in headers
                ]
            except sqlite3.Error as exc:
                self._logger.error("DB Error getting settlements: %s", exc, exc_info=True)
                return []

    def delete_settlement(self, record_id: str) -> bool:
        conn = self._conn
        if not conn:
            self._set_last_error("Cannot delete settlement: no active database connection is available.")
            return False
        with self._lock:
            cursor = conn.cursor()
            try:
                conn.execute("BEGIN TRANSACTION")
                cursor.execute("DELETE FROM settlement_rows WHERE record_id = ?", (record_id,))
                cursor.execute("DELETE FROM settlements WHERE record_id = ?", (record_id,))
                deleted = cursor.rowcount > 0
                conn.commit()
                if deleted:
                    self._logger.info("Deleted settlement %s", record_id)
                return deleted
            except sqlite3.Error as exc:
                conn.rollback()
                self._logger.error("DB Error deleting settlement %s: %s", record_id, exc, exc_info=True)
                self._set_last_error(str(exc))
                return False

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _load_rows(self, cursor, record_id: str) -> List[Dict[str, Any]]:
        cursor.execute(
            "SELECT row_json FROM settlement_rows WHERE record_id = ? ORDER BY position",
            (record_id,),
        )
        rows: List[Dict[str, Any]] = []
        for stored in cursor.fetchall():
            try:
                rows.append(json.loads(stored["row_json"]))
            except (TypeError, ValueError) as exc:
                self._logger.warning("Skipping unreadable row for settlement %s: %s", record_id, exc)
        return rows

    @staticmethod
    def _header_value(header: Mapping[str, Any], column: str) -> Any:
        value = header.get(column)
        if column == "use_rate_adjustment":
            return 1 if value else 0
        if column in ("customer_id", "customer_name", "occurred_at", "special_category",
                      "ref_open", "ref_close", "ref_jod"):
            return "" if value is None else str(value)
        return float(value or 0.0)

    def _set_last_error(self, message: Optional[str]) -> None:
        self.last_error = message
        if message:
            self._logger.error(message)
