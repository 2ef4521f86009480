"""Tests for the progress session stores.

SQLite tests use an in-memory database for isolation and speed.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from triage.domain.errors import StoreError
from triage.domain.models import ProgressSession
from triage.domain.types import SessionStatus
from triage.state.schema import init_progress_table, open_database
from triage.state.store import InMemoryProgressStore, ProgressStore, SqliteProgressStore

T0 = datetime(2025, 1, 15, 11, 0, tzinfo=UTC)


def _session(
    session_id: str = "sess-1",
    *,
    status: SessionStatus = SessionStatus.PENDING,
    updated_at: datetime = T0,
    **overrides: object,
) -> ProgressSession:
    fields: dict[str, object] = {
        "session_id": session_id,
        "user_id": "user-1",
        "status": status,
        "total_emails": 3,
        "started_at": T0,
        "updated_at": updated_at,
    }
    fields.update(overrides)
    return ProgressSession(**fields)  # type: ignore[arg-type]


@pytest.fixture
def conn() -> sqlite3.Connection:
    """In-memory SQLite connection with the progress table initialized."""
    connection = sqlite3.connect(":memory:")
    init_progress_table(connection)
    return connection


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, conn: sqlite3.Connection) -> ProgressStore:
    """Each test runs against both store implementations."""
    if request.param == "memory":
        return InMemoryProgressStore()
    return SqliteProgressStore(conn)


# ---------------------------------------------------------------------------
# Shared behavior
# ---------------------------------------------------------------------------


class TestProgressStore:
    """Behavior common to every progress store."""

    def test_get_unknown_returns_none(self, store: ProgressStore) -> None:
        assert store.get("missing") is None

    def test_save_and_get(self, store: ProgressStore) -> None:
        session = _session(metadata={"concurrency": 1, "retries": 0})
        store.save(session)
        assert store.get("sess-1") == session

    def test_save_replaces_snapshot(self, store: ProgressStore) -> None:
        store.save(_session())
        updated = _session(
            status=SessionStatus.RUNNING,
            processed_emails=2,
            successful_emails=1,
            failed_emails=1,
            current_index=2,
            current_email_subject="Hello",
            estimated_time_remaining_ms=500,
            average_processing_time_ms=500,
            updated_at=T0 + timedelta(seconds=2),
        )
        store.save(updated)
        assert store.get("sess-1") == updated

    def test_terminal_fields_round_trip(self, store: ProgressStore) -> None:
        failed = _session(
            status=SessionStatus.FAILED,
            completed_at=T0 + timedelta(seconds=5),
            error_message="database unavailable",
        )
        store.save(failed)
        loaded = store.get("sess-1")
        assert loaded is not None
        assert loaded.completed_at == T0 + timedelta(seconds=5)
        assert loaded.error_message == "database unavailable"

    def test_delete(self, store: ProgressStore) -> None:
        store.save(_session())
        store.delete("sess-1")
        store.delete("sess-1")
        assert store.get("sess-1") is None

    def test_purge_terminal(self, store: ProgressStore) -> None:
        cutoff = T0 + timedelta(hours=1)
        store.save(_session("old-done", status=SessionStatus.COMPLETED))
        store.save(_session("old-failed", status=SessionStatus.FAILED))
        store.save(_session("old-running", status=SessionStatus.RUNNING))
        store.save(
            _session(
                "new-done",
                status=SessionStatus.COMPLETED,
                updated_at=cutoff + timedelta(minutes=1),
            )
        )

        assert store.purge_terminal(cutoff) == 2
        assert store.get("old-done") is None
        assert store.get("old-failed") is None
        assert store.get("old-running") is not None
        assert store.get("new-done") is not None


# ---------------------------------------------------------------------------
# SQLite specifics
# ---------------------------------------------------------------------------


class TestSqliteProgressStore:
    """SQLite-only behavior."""

    def test_started_at_is_preserved(self, conn: sqlite3.Connection) -> None:
        store = SqliteProgressStore(conn)
        store.save(_session())
        store.save(
            _session(
                status=SessionStatus.RUNNING,
                started_at=T0 + timedelta(minutes=5),
                updated_at=T0 + timedelta(minutes=5),
            )
        )
        loaded = store.get("sess-1")
        assert loaded is not None
        assert loaded.started_at == T0

    def test_survives_reconnect(self, tmp_path: Path) -> None:
        db_path = tmp_path / "triage.db"
        first = open_database(db_path)
        SqliteProgressStore(first).save(_session())
        first.close()

        second = open_database(db_path)
        try:
            assert SqliteProgressStore(second).get("sess-1") == _session()
        finally:
            second.close()

    def test_errors_become_store_errors(self) -> None:
        store = SqliteProgressStore(sqlite3.connect(":memory:"))
        with pytest.raises(StoreError, match="Failed to save session sess-1"):
            store.save(_session())
        with pytest.raises(StoreError, match="Failed to load session"):
            store.get("sess-1")
