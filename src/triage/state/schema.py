"""SQLite schema for progress sessions and classified emails.

Provides ``open_database`` plus one DDL function per table.  Every DDL
function is idempotent (``CREATE ... IF NOT EXISTS``) and commits.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path


def open_database(db_path: Path | str) -> sqlite3.Connection:
    """Open the triage database and create all tables.

    Uses WAL journal mode so progress readers never block the orchestrator's
    writes, and ``check_same_thread=False`` so readiness checks can query the
    connection from a worker thread.

    Args:
        db_path: Filesystem path, or ``":memory:"`` for tests.

    Returns:
        An open ``sqlite3.Connection`` with the schema in place.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.execute("PRAGMA journal_mode=WAL")
    init_progress_table(conn)
    init_classified_email_table(conn)
    return conn


def close_database(conn: sqlite3.Connection) -> None:
    """Close the database connection."""
    conn.close()


def init_progress_table(conn: sqlite3.Connection) -> None:
    """Create the progress_sessions table if it does not already exist.

    One row per batch run, keyed by the session id.  Indexes on ``user_id``
    and ``status`` serve per-user lookups and the expired-session purge.

    Args:
        conn: An open sqlite3.Connection.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS progress_sessions (
            session_id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            status TEXT NOT NULL,
            total_emails INTEGER NOT NULL,
            processed_emails INTEGER NOT NULL DEFAULT 0,
            successful_emails INTEGER NOT NULL DEFAULT 0,
            failed_emails INTEGER NOT NULL DEFAULT 0,
            current_index INTEGER NOT NULL DEFAULT 0,
            current_email_subject TEXT,
            started_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            completed_at TEXT,
            error_message TEXT,
            estimated_time_remaining_ms INTEGER,
            average_processing_time_ms INTEGER,
            metadata_json TEXT NOT NULL DEFAULT '{}'
        )
    """)

    conn.execute("CREATE INDEX IF NOT EXISTS idx_progress_user ON progress_sessions (user_id)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_progress_status ON progress_sessions (status)")

    conn.commit()


def init_classified_email_table(conn: sqlite3.Connection) -> None:
    """Create the classified_emails table if it does not already exist.

    Rows are keyed by ``(user_id, email_id)`` and carry the classification
    as JSON alongside the priority score computed at write time.

    Args:
        conn: An open sqlite3.Connection.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS classified_emails (
            user_id TEXT NOT NULL,
            email_id TEXT NOT NULL,
            thread_id TEXT NOT NULL,
            subject TEXT,
            sender_email TEXT NOT NULL,
            sender_name TEXT,
            received_at TEXT NOT NULL,
            classification_json TEXT NOT NULL,
            priority_score REAL NOT NULL,
            is_high_priority INTEGER NOT NULL,
            processed_at TEXT NOT NULL,
            PRIMARY KEY (user_id, email_id)
        )
    """)

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_classified_priority "
        "ON classified_emails (user_id, priority_score)"
    )

    conn.commit()
