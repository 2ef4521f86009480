"""Persistent storage for classified, pre-scored emails.

Records are upserted by ``(user_id, email_id)`` so reclassifying an email
replaces its earlier result.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

from triage.domain.errors import StoreError
from triage.domain.models import Classification, ClassifiedEmail


class ClassifiedEmailStore(Protocol):
    """Upsert-by-key storage for classified emails."""

    def upsert(self, record: ClassifiedEmail) -> None: ...

    def get(self, user_id: str, email_id: str) -> ClassifiedEmail | None: ...

    def classifications_for(
        self, user_id: str, email_ids: Iterable[str]
    ) -> dict[str, Classification]: ...


class InMemoryClassifiedEmailStore:
    """Dict-backed classified email store."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], ClassifiedEmail] = {}

    def upsert(self, record: ClassifiedEmail) -> None:
        """Insert or replace *record*."""
        self._records[(record.user_id, record.email_id)] = record

    def get(self, user_id: str, email_id: str) -> ClassifiedEmail | None:
        """Return the stored record, or ``None``."""
        return self._records.get((user_id, email_id))

    def classifications_for(
        self, user_id: str, email_ids: Iterable[str]
    ) -> dict[str, Classification]:
        """Return stored classifications for *email_ids*, keyed by email id."""
        found: dict[str, Classification] = {}
        for email_id in email_ids:
            record = self._records.get((user_id, email_id))
            if record is not None:
                found[email_id] = record.classification
        return found

    def list_for_user(self, user_id: str) -> list[ClassifiedEmail]:
        """Return every record for *user_id*, highest priority first."""
        records = [r for (uid, _), r in self._records.items() if uid == user_id]
        return sorted(records, key=lambda r: r.priority_score, reverse=True)


class SqliteClassifiedEmailStore:
    """Persist classified emails in the ``classified_emails`` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def upsert(self, record: ClassifiedEmail) -> None:
        """Insert or replace *record*.

        Raises:
            StoreError: If the write fails.
        """
        try:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO classified_emails (
                    user_id, email_id, thread_id, subject, sender_email,
                    sender_name, received_at, classification_json,
                    priority_score, is_high_priority, processed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.user_id,
                    record.email_id,
                    record.thread_id,
                    record.subject,
                    record.sender_email,
                    record.sender_name,
                    record.received_at.isoformat(),
                    record.classification.model_dump_json(),
                    record.priority_score,
                    int(record.is_high_priority),
                    record.processed_at.isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            msg = f"Failed to store classification for {record.email_id}: {exc}"
            raise StoreError(msg) from exc

    def _select(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        prev_factory = self._conn.row_factory
        self._conn.row_factory = sqlite3.Row
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read classified emails: {exc}") from exc
        finally:
            self._conn.row_factory = prev_factory
        return [dict(row) for row in rows]

    def get(self, user_id: str, email_id: str) -> ClassifiedEmail | None:
        """Return the stored record, or ``None``."""
        rows = self._select(
            "SELECT * FROM classified_emails WHERE user_id = ? AND email_id = ?",
            [user_id, email_id],
        )
        return _row_to_record(rows[0]) if rows else None

    def classifications_for(
        self, user_id: str, email_ids: Iterable[str]
    ) -> dict[str, Classification]:
        """Return stored classifications for *email_ids*, keyed by email id."""
        ids = list(email_ids)
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        rows = self._select(
            f"SELECT email_id, classification_json FROM classified_emails "
            f"WHERE user_id = ? AND email_id IN ({placeholders})",
            [user_id, *ids],
        )
        return {
            row["email_id"]: Classification.model_validate_json(row["classification_json"])
            for row in rows
        }

    def list_for_user(self, user_id: str) -> list[ClassifiedEmail]:
        """Return every record for *user_id*, highest priority first."""
        rows = self._select(
            "SELECT * FROM classified_emails WHERE user_id = ? ORDER BY priority_score DESC",
            [user_id],
        )
        return [_row_to_record(row) for row in rows]


def _row_to_record(row: dict[str, Any]) -> ClassifiedEmail:
    return ClassifiedEmail(
        user_id=row["user_id"],
        email_id=row["email_id"],
        thread_id=row["thread_id"],
        subject=row["subject"],
        sender_email=row["sender_email"],
        sender_name=row["sender_name"],
        received_at=datetime.fromisoformat(row["received_at"]),
        classification=Classification.model_validate_json(row["classification_json"]),
        priority_score=row["priority_score"],
        is_high_priority=bool(row["is_high_priority"]),
        processed_at=datetime.fromisoformat(row["processed_at"]),
    )
