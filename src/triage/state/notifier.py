"""Change notifications for progress sessions.

Push subscribers receive a wake-up whenever a session they watch changes;
they then re-read the session from the store, which stays the single source
of truth.  Each subscriber queue holds at most one pending wake-up, so a slow
reader coalesces bursts instead of buffering every update.
"""

from __future__ import annotations

import asyncio

import structlog

logger = structlog.get_logger()


class ProgressNotifier:
    """Fan-out of "session changed" signals to per-session subscriber queues.

    Must be used from a single event loop.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[asyncio.Queue[str]]] = {}

    def subscribe(self, session_id: str) -> asyncio.Queue[str]:
        """Register a new subscriber for *session_id* and return its queue."""
        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=1)
        self._subscribers.setdefault(session_id, set()).add(queue)
        return queue

    def unsubscribe(self, session_id: str, queue: asyncio.Queue[str]) -> None:
        """Remove a subscriber; the session entry is dropped with its last queue."""
        subscribers = self._subscribers.get(session_id)
        if subscribers is None:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[session_id]

    def notify(self, session_id: str) -> None:
        """Wake every subscriber of *session_id*.  Never blocks."""
        for queue in list(self._subscribers.get(session_id, ())):
            try:
                queue.put_nowait(session_id)
            except asyncio.QueueFull:
                # A wake-up is already pending for this subscriber.
                continue

    def subscriber_count(self, session_id: str) -> int:
        """Return how many subscribers watch *session_id*."""
        return len(self._subscribers.get(session_id, ()))
