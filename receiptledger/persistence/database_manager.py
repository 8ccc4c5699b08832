#!/usr/bin/env python
import logging
import os
import sqlite3
import threading
from datetime import datetime

from receiptledger.exceptions import DatabaseConnectionError
from receiptledger.persistence import migrations as persistence_migrations
from receiptledger.persistence.settlements_repository import SettlementsRepository


class DatabaseManager:
    """
    Owns the SQLite connection backing the settlement history and hands out
    the repository that performs the actual CRUD work.
    """

    def __init__(self, db_path):
        """
        Open (or create) the database at ``db_path`` and make sure the schema
        is current. ``":memory:"`` is accepted for throwaway databases.
        """
        self.logger = logging.getLogger(__name__)
        self.logger.info(f"Initializing DatabaseManager for {db_path}")

        self.db_path = db_path
        self.conn = None
        self.cursor = None
        # Batch submissions may arrive from worker threads; writes are serialized.
        self.lock = threading.RLock()
        self._settlements_repo = None

        directory = os.path.dirname(db_path) if db_path != ":memory:" else ""
        if directory:
            os.makedirs(directory, exist_ok=True)

        try:
            self._connect()
            self.setup_database()
        except Exception as e:
            self.logger.critical(f"Failed to initialize DatabaseManager: {str(e)}", exc_info=True)
            self.close()
            raise

    @property
    def settlements_repo(self):
        """Lazy-load the SettlementsRepository instance."""
        if self._settlements_repo is None:
            self._settlements_repo = SettlementsRepository(self)
        return self._settlements_repo

    def _connect(self):
        try:
            self.conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                isolation_level=None,
            )
        except sqlite3.Error as exc:
            raise DatabaseConnectionError(f"Could not open database {self.db_path}: {exc}") from exc
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self.cursor = self.conn.cursor()
        self.logger.debug(f"Connected to database at {self.db_path}")

    def setup_database(self):
        """Create tables and apply migrations."""
        persistence_migrations.run_schema_setup(self)

    def _table_exists(self, table_name):
        self.cursor.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table_name,)
        )
        return self.cursor.fetchone() is not None

    def _column_exists(self, table_name, column_name):
        if not self._table_exists(table_name):
            return False
        self.cursor.execute(f"PRAGMA table_info({table_name})")
        return any(row["name"] == column_name for row in self.cursor.fetchall())

    def _check_schema_version(self):
        if not self._table_exists("schema_version"):
            self.cursor.execute(
                """
                CREATE TABLE schema_version (
                    id INTEGER PRIMARY KEY,
                    version INTEGER NOT NULL,
                    applied_date TEXT NOT NULL
                )
                """
            )
            self.cursor.execute(
                "INSERT INTO schema_version (version, applied_date) VALUES (?, ?)",
                (0, datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
            )
            return 0
        self.cursor.execute("SELECT MAX(version) FROM schema_version")
        row = self.cursor.fetchone()
        return row[0] if row and row[0] is not None else 0

    def _update_schema_version(self, new_version):
        self.cursor.execute(
            "INSERT INTO schema_version (version, applied_date) VALUES (?, ?)",
            (new_version, datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
        )
        self.logger.info(f"Schema version updated to {new_version}")
        return True

    def close(self):
        """Close the connection; safe to call more than once."""
        if self.conn is not None:
            try:
                self.conn.close()
                self.logger.info("Database connection closed")
            except sqlite3.Error as exc:
                self.logger.warning(f"Error closing database: {exc}")
        self.conn = None
        self.cursor = None
