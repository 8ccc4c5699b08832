"""Database schema setup and migration helpers."""
from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from receiptledger.exceptions import DatabaseMigrationError

if TYPE_CHECKING:  # pragma: no cover
    from receiptledger.persistence.database_manager import DatabaseManager

SCHEMA_VERSION = 2

# Breakdown columns persisted with every settlement so history reads never recompute.
BREAKDOWN_COLUMNS = (
    "field_a_total",
    "field_b_total",
    "field_c_total",
    "pair_a_total",
    "pair_b_total",
    "pair_c_total",
    "gross_income",
    "payout_total",
    "deduction_amount",
    "net_after_deduction",
    "balance_before_carry",
    "total_due",
    "pre_adjustment_total",
    "adjustment",
    "closing_balance",
    "advance_net",
)

SCALAR_COLUMNS = (
    "deduction_rate_percent",
    "opening_pending_balance",
    "opening_advance",
    "cutting_fee",
    "deposit_amount",
    "manual_adjustment",
    "use_rate_adjustment",
    "adjustment_rate_percent",
)


def run_schema_setup(db: "DatabaseManager") -> None:
    """Ensure database schema and indexes exist, applying migrations as needed."""
    conn = getattr(db, "conn", None)
    cursor = getattr(db, "cursor", None)
    logger = getattr(db, "logger", logging.getLogger(__name__))

    if not conn or not cursor:
        logger.warning("Database setup skipped: No active connection.")
        return

    logger.info("Starting database setup check...")
    try:
        current_version = db._check_schema_version()
        logger.info("Current database schema version: %s", current_version)

        conn.execute("BEGIN TRANSACTION")

        _ensure_core_tables(db)
        _apply_versioned_migrations(db, current_version)

        conn.commit()
        logger.info("Database schema setup/update complete.")

        _ensure_indexes(db)
    except sqlite3.Error as exc:
        logger.critical("FATAL Database setup error: %s", exc, exc_info=True)
        conn.rollback()
        raise DatabaseMigrationError(str(exc)) from exc


def _ensure_core_tables(db: "DatabaseManager") -> None:
    cursor = db.cursor
    scalar_sql = ",\n            ".join(
        f"{name} INTEGER DEFAULT 0" if name == "use_rate_adjustment" else f"{name} REAL DEFAULT 0"
        for name in SCALAR_COLUMNS
    )
    breakdown_sql = ",\n            ".join(f"{name} REAL DEFAULT 0" for name in BREAKDOWN_COLUMNS)
    cursor.execute(
        f"""
        CREATE TABLE IF NOT EXISTS settlements (
            record_id TEXT PRIMARY KEY,
            customer_id TEXT NOT NULL,
            customer_name TEXT DEFAULT '',
            occurred_at TEXT NOT NULL,
            special_category TEXT DEFAULT 'jackpot',
            {scalar_sql},
            ref_open TEXT DEFAULT '',
            ref_close TEXT DEFAULT '',
            ref_jod TEXT DEFAULT '',
            {breakdown_sql},
            created_at TEXT,
            updated_at TEXT
        )
        """
    )
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS settlement_rows (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            record_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            row_json TEXT NOT NULL,
            FOREIGN KEY (record_id) REFERENCES settlements (record_id) ON DELETE CASCADE
        )
        """
    )


def _apply_versioned_migrations(db: "DatabaseManager", current_version: int) -> None:
    logger = getattr(db, "logger", logging.getLogger(__name__))
    if current_version < 1:
        db._update_schema_version(1)
        current_version = 1
    if current_version < 2:
        # v2 added the customer display name to settlement headers.
        if not db._column_exists("settlements", "customer_name"):
            logger.info("Adding customer_name column to settlements")
            db.cursor.execute("ALTER TABLE settlements ADD COLUMN customer_name TEXT DEFAULT ''")
        _add_missing_header_columns(db)
        db._update_schema_version(2)


def _add_missing_header_columns(db: "DatabaseManager") -> None:
    definitions = [("special_category", "TEXT DEFAULT 'jackpot'")]
    definitions += [
        (name, "INTEGER DEFAULT 0" if name == "use_rate_adjustment" else "REAL DEFAULT 0")
        for name in SCALAR_COLUMNS
    ]
    definitions += [(name, "TEXT DEFAULT ''") for name in ("ref_open", "ref_close", "ref_jod")]
    definitions += [(name, "REAL DEFAULT 0") for name in BREAKDOWN_COLUMNS]
    definitions += [("created_at", "TEXT"), ("updated_at", "TEXT")]
    for name, definition in definitions:
        if not db._column_exists("settlements", name):
            db.cursor.execute(f"ALTER TABLE settlements ADD COLUMN {name} {definition}")


def _ensure_indexes(db: "DatabaseManager") -> None:
    cursor = db.cursor
    logger = getattr(db, "logger", logging.getLogger(__name__))
    try:
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_settlements_customer_date "
            "ON settlements(customer_id, occurred_at)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_settlements_date ON settlements(occurred_at)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_settlement_rows_record ON settlement_rows(record_id, position)"
        )
        db.conn.commit()
    except sqlite3.Error as exc:
        logger.warning("Failed to create indexes: %s", exc)
