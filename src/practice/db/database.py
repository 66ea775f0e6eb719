"""SQLite database connection and schema management.

Provides connection management and schema initialization for the
level store and the content cache.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/practice.db")

# Seconds a connection waits on a locked database before giving up
BUSY_TIMEOUT_SECONDS = 5.0

# Path used when callers do not pass one explicitly
_db_path: Path | None = None


def init_db(db_path: Path | None = None) -> Path:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to db/practice.db

    Returns:
        The path that was initialized.
    """
    global _db_path
    _db_path = db_path or DEFAULT_DB_PATH

    # Ensure directory exists
    _db_path.parent.mkdir(parents=True, exist_ok=True)

    # executescript manages its own transaction, so no get_db() here
    conn = sqlite3.connect(_db_path, timeout=BUSY_TIMEOUT_SECONDS)
    try:
        conn.execute("PRAGMA journal_mode = WAL")
        _create_schema(conn)
    finally:
        conn.close()

    logger.info("database.initialized", path=str(_db_path))
    return _db_path


@contextmanager
def get_db(
    db_path: Path | None = None,
    immediate: bool = False,
) -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    The whole block runs in one transaction, committed on exit and rolled
    back on error. With immediate=True the write lock is taken up front,
    so a read-modify-write inside the block cannot interleave with another
    writer.

    Args:
        db_path: Database file. Defaults to the path given to init_db.
        immediate: Open the transaction with BEGIN IMMEDIATE.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM content_items").fetchall()
    """
    path = db_path or _db_path or DEFAULT_DB_PATH

    # Ensure directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path, timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield conn
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
    finally:
        conn.close()


def is_lock_error(error: sqlite3.Error) -> bool:
    """Whether an sqlite error is lock contention rather than a real failure."""
    message = str(error).lower()
    return isinstance(error, sqlite3.OperationalError) and (
        "locked" in message or "busy" in message
    )


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- One row per (user, skill area, exercise type); band_level is
        -- derived from numeric_level on every write.
        CREATE TABLE IF NOT EXISTS user_skill_levels (
            user_id TEXT NOT NULL,
            skill_area TEXT NOT NULL,
            exercise_type TEXT NOT NULL,
            numeric_level REAL NOT NULL DEFAULT 2.0
                CHECK(numeric_level >= 1.0 AND numeric_level <= 6.0),
            band_level TEXT NOT NULL DEFAULT 'A2'
                CHECK(band_level IN ('A1', 'A2', 'B1', 'B2', 'C1', 'C2')),
            attempts_at_band INTEGER NOT NULL DEFAULT 0,
            correct_streak INTEGER NOT NULL DEFAULT 0,
            failure_streak INTEGER NOT NULL DEFAULT 0,
            version INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (user_id, skill_area, exercise_type)
        );

        -- Shared cache of generated content; rows are retired, never deleted
        CREATE TABLE IF NOT EXISTS content_items (
            id TEXT PRIMARY KEY,
            skill_area TEXT NOT NULL,
            exercise_type TEXT NOT NULL,
            band_level TEXT NOT NULL
                CHECK(band_level IN ('A1', 'A2', 'B1', 'B2', 'C1', 'C2')),
            schema_id TEXT NOT NULL,
            payload TEXT NOT NULL,
            times_used INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1 CHECK(is_active IN (0, 1)),
            created_at TEXT NOT NULL,
            gen_provider TEXT,
            gen_model TEXT,
            gen_generated_at TEXT,
            gen_topics TEXT NOT NULL DEFAULT '[]',
            gen_latency_ms INTEGER NOT NULL DEFAULT 0
        );

        -- At most one row per (user, item): a user never sees an item twice
        CREATE TABLE IF NOT EXISTS usage_records (
            user_id TEXT NOT NULL,
            content_item_id TEXT NOT NULL REFERENCES content_items(id),
            used_at TEXT NOT NULL,
            score REAL CHECK(score IS NULL OR (score >= 0 AND score <= 100)),
            PRIMARY KEY (user_id, content_item_id)
        );

        CREATE INDEX IF NOT EXISTS idx_content_lookup
            ON content_items(skill_area, exercise_type, band_level, is_active, times_used);
        CREATE INDEX IF NOT EXISTS idx_usage_item ON usage_records(content_item_id);
        CREATE INDEX IF NOT EXISTS idx_usage_user_time ON usage_records(user_id, used_at);
        """
    )
