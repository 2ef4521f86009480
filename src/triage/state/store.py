"""Keyed progress session stores.

Each store holds at most one ``ProgressSession`` snapshot per session id and
supports a single writer (the owning orchestrator run) with any number of
readers.  ``InMemoryProgressStore`` backs tests and single-process
deployments; ``SqliteProgressStore`` survives restarts of the reading side.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import Any, Protocol

from triage.domain.errors import StoreError
from triage.domain.models import ProgressSession
from triage.domain.types import SessionStatus
from triage.state_machine.transitions import TERMINAL_STATES


class ProgressStore(Protocol):
    """Upsert-by-key storage for progress session snapshots."""

    def save(self, session: ProgressSession) -> None: ...

    def get(self, session_id: str) -> ProgressSession | None: ...

    def delete(self, session_id: str) -> None: ...

    def purge_terminal(self, older_than: datetime) -> int: ...


class InMemoryProgressStore:
    """Dict-backed store.  Snapshots are immutable, so readers share them safely."""

    def __init__(self) -> None:
        self._sessions: dict[str, ProgressSession] = {}

    def save(self, session: ProgressSession) -> None:
        """Insert or replace the snapshot for ``session.session_id``."""
        self._sessions[session.session_id] = session

    def get(self, session_id: str) -> ProgressSession | None:
        """Return the latest snapshot, or ``None`` if unknown."""
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> None:
        """Forget a session.  Unknown ids are ignored."""
        self._sessions.pop(session_id, None)

    def purge_terminal(self, older_than: datetime) -> int:
        """Drop terminal sessions last updated before *older_than*.

        Returns:
            The number of sessions removed.
        """
        expired = [
            sid
            for sid, session in self._sessions.items()
            if session.status in TERMINAL_STATES and session.updated_at < older_than
        ]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class SqliteProgressStore:
    """Persist progress session snapshots in SQLite.

    Mirrors the other SQLite stores: accepts an open ``sqlite3.Connection``,
    uses parameterized queries exclusively, and commits after every write.
    ``sqlite3.Error`` is re-raised as ``StoreError``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize with an open database connection.

        Args:
            conn: An open sqlite3.Connection whose database already has the
                  ``progress_sessions`` table (see ``init_progress_table``).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def save(self, session: ProgressSession) -> None:
        """Insert or replace a session snapshot.

        Uses ``INSERT OR REPLACE`` with a ``COALESCE`` subquery so the
        first-written ``started_at`` is preserved across updates.

        Args:
            session: The snapshot to persist.

        Raises:
            StoreError: If the write fails.
        """
        try:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO progress_sessions (
                    session_id, user_id, status, total_emails, processed_emails,
                    successful_emails, failed_emails, current_index,
                    current_email_subject, started_at, updated_at, completed_at,
                    error_message, estimated_time_remaining_ms,
                    average_processing_time_ms, metadata_json
                ) VALUES (
                    ?, ?, ?, ?, ?, ?, ?, ?, ?,
                    COALESCE(
                        (SELECT started_at FROM progress_sessions WHERE session_id = ?),
                        ?
                    ),
                    ?, ?, ?, ?, ?, ?
                )
                """,
                (
                    session.session_id,
                    session.user_id,
                    session.status.value,
                    session.total_emails,
                    session.processed_emails,
                    session.successful_emails,
                    session.failed_emails,
                    session.current_index,
                    session.current_email_subject,
                    session.session_id,  # for the COALESCE subquery
                    session.started_at.isoformat(),
                    session.updated_at.isoformat(),
                    session.completed_at.isoformat() if session.completed_at else None,
                    session.error_message,
                    session.estimated_time_remaining_ms,
                    session.average_processing_time_ms,
                    json.dumps(session.metadata),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to save session {session.session_id}: {exc}") from exc

    def delete(self, session_id: str) -> None:
        """Delete a session row by id.

        Args:
            session_id: The session identifier to remove.
        """
        try:
            self._conn.execute(
                "DELETE FROM progress_sessions WHERE session_id = ?",
                (session_id,),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete session {session_id}: {exc}") from exc

    def purge_terminal(self, older_than: datetime) -> int:
        """Delete terminal sessions last updated before *older_than*.

        Returns:
            The number of rows removed.
        """
        terminal_values = [s.value for s in TERMINAL_STATES]
        placeholders = ", ".join("?" for _ in terminal_values)
        try:
            cursor = self._conn.execute(
                f"DELETE FROM progress_sessions "
                f"WHERE status IN ({placeholders}) AND updated_at < ?",
                [*terminal_values, older_than.isoformat()],
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to purge sessions: {exc}") from exc
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get(self, session_id: str) -> ProgressSession | None:
        """Load a session snapshot by id.

        Returns:
            The ``ProgressSession``, or ``None`` if no row exists.
        """
        # Temporarily set row_factory for dict-style access
        prev_factory = self._conn.row_factory
        self._conn.row_factory = sqlite3.Row
        try:
            row = self._conn.execute(
                "SELECT * FROM progress_sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to load session {session_id}: {exc}") from exc
        finally:
            self._conn.row_factory = prev_factory

        if row is None:
            return None
        return _row_to_session(dict(row))


def _row_to_session(row: dict[str, Any]) -> ProgressSession:
    return ProgressSession(
        session_id=row["session_id"],
        user_id=row["user_id"],
        status=SessionStatus(row["status"]),
        total_emails=row["total_emails"],
        processed_emails=row["processed_emails"],
        successful_emails=row["successful_emails"],
        failed_emails=row["failed_emails"],
        current_index=row["current_index"],
        current_email_subject=row["current_email_subject"],
        started_at=datetime.fromisoformat(row["started_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        completed_at=(
            datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None
        ),
        error_message=row["error_message"],
        estimated_time_remaining_ms=row["estimated_time_remaining_ms"],
        average_processing_time_ms=row["average_processing_time_ms"],
        metadata=json.loads(row["metadata_json"]),
    )
