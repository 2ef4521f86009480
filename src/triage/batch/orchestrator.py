"""Batch classification orchestrator.

``BatchOrchestrator.submit`` validates a batch, stores a ``pending`` progress
session, and hands the work to a detached ``asyncio`` task.  The task walks
the emails in order (optionally in concurrent groups), classifies each one
under a hard per-item timeout, scores and persists the successes, and
publishes a fresh session snapshot after every change.

Only the run's own coroutine writes its session; classification calls may
run concurrently inside a group but their outcomes are applied one at a time
in submission order.  Readers go through ``get_progress`` and never block the
writer.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

import structlog

from triage.domain.errors import (
    BatchValidationError,
    ClassificationDisabledError,
    ClassificationError,
    SessionNotFoundError,
)
from triage.domain.models import (
    BatchSubmission,
    Classification,
    ClassifiedEmail,
    Email,
    ProgressSession,
    UserPreferences,
)
from triage.domain.types import ClassificationErrorKind
from triage.llm.models import ClassificationContext, ClassificationResult
from triage.observability.metrics import (
    BATCHES_IN_FLIGHT,
    CLASSIFICATION_SECONDS,
    EMAILS_CLASSIFIED,
)
from triage.resilience.retry import retrying_classify
from triage.scoring.priority import score_priority
from triage.state.classified import ClassifiedEmailStore
from triage.state.notifier import ProgressNotifier
from triage.state.store import ProgressStore
from triage.state_machine import SessionEvent, SessionStateMachine

logger = structlog.get_logger()

DEFAULT_MAX_BATCH_SIZE = 50
DEFAULT_INTER_ITEM_DELAY_MS = 200
DEFAULT_ITEM_TIMEOUT_SECONDS = 30.0
_RECENT_CONTEXT_SIZE = 5


class Classifier(Protocol):
    """Anything that can classify one email."""

    async def classify(
        self, email: Email, context: ClassificationContext | None = None
    ) -> ClassificationResult: ...


@dataclass(frozen=True)
class _ItemOutcome:
    email: Email
    classification: Classification | None
    elapsed_ms: int


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BatchOrchestrator:
    """Run batch classifications and track their progress.

    Args:
        classifier: The classification client.
        progress_store: Keyed store for progress session snapshots.
        classified_store: Store that receives each classified, scored email.
        notifier: Optional change notifier woken after every session write.
        max_batch_size: Largest accepted batch.
        inter_item_delay_ms: Pause between items (or groups) in a run.
        item_timeout_seconds: Hard ceiling on one classification attempt.
        retries: Extra attempts for transient classification failures.
        concurrency: Emails classified concurrently within one group.
        background_tasks: Set that keeps detached runs referenced until done.
        clock: Source of "now", injectable for tests.
    """

    def __init__(
        self,
        classifier: Classifier,
        progress_store: ProgressStore,
        classified_store: ClassifiedEmailStore,
        notifier: ProgressNotifier | None = None,
        *,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        inter_item_delay_ms: int = DEFAULT_INTER_ITEM_DELAY_MS,
        item_timeout_seconds: float = DEFAULT_ITEM_TIMEOUT_SECONDS,
        retries: int = 0,
        concurrency: int = 1,
        background_tasks: set[asyncio.Task[Any]] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._classifier = classifier
        self._progress_store = progress_store
        self._classified_store = classified_store
        self._notifier = notifier
        self._max_batch_size = max_batch_size
        self._inter_item_delay = inter_item_delay_ms / 1000
        self._item_timeout = item_timeout_seconds
        self._retries = retries
        self._concurrency = concurrency
        self._background_tasks = background_tasks if background_tasks is not None else set()
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate_batch(self, emails: Sequence[Email]) -> None:
        """Reject batches that must never produce a session.

        Raises:
            BatchValidationError: If *emails* is empty or larger than
                ``max_batch_size``.
        """
        if not emails:
            raise BatchValidationError("Batch must contain at least one email")
        if len(emails) > self._max_batch_size:
            raise BatchValidationError(
                f"Batch of {len(emails)} emails exceeds the maximum of {self._max_batch_size}"
            )

    async def submit(
        self,
        user_id: str,
        emails: Sequence[Email],
        preferences: UserPreferences,
        *,
        context: ClassificationContext | None = None,
    ) -> BatchSubmission:
        """Accept a batch and start classifying it in the background.

        Returns as soon as the ``pending`` session is stored.  The detached
        run owns the session from then on.

        Args:
            user_id: Owner of the batch.
            emails: Emails to classify, processed in this order.
            preferences: The user's preferences, used for prompts and scoring.
            context: Optional prompt context; its preferences are replaced by
                *preferences*.

        Returns:
            The new session id and the batch size.

        Raises:
            BatchValidationError: If the batch is empty or too large.
            ClassificationDisabledError: If *preferences* turn classification off.
        """
        self.validate_batch(emails)
        if not preferences.email_classification_enabled:
            raise ClassificationDisabledError(
                "Email classification is disabled in user preferences"
            )
        batch = tuple(emails)
        now = self._clock()
        session = ProgressSession(
            session_id=str(uuid.uuid4()),
            user_id=user_id,
            total_emails=len(batch),
            started_at=now,
            updated_at=now,
            metadata={
                "concurrency": self._concurrency,
                "retries": self._retries,
                "item_timeout_seconds": self._item_timeout,
                "inter_item_delay_ms": int(self._inter_item_delay * 1000),
            },
        )
        self._save(session)

        base_context = (context or ClassificationContext()).model_copy(
            update={"preferences": preferences}
        )
        task = asyncio.create_task(self.run(session, batch, preferences, base_context))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

        logger.info(
            "Batch classification submitted",
            session_id=session.session_id,
            user_id=user_id,
            total_emails=len(batch),
        )
        return BatchSubmission(session_id=session.session_id, total_emails=len(batch))

    def get_progress(self, session_id: str) -> ProgressSession:
        """Return the latest snapshot for *session_id*.

        Raises:
            SessionNotFoundError: If the session is unknown or has expired.
        """
        session = self._progress_store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def purge_expired(self, ttl_seconds: float) -> int:
        """Forget terminal sessions last updated more than *ttl_seconds* ago.

        Returns:
            The number of sessions removed.
        """
        cutoff = self._clock() - timedelta(seconds=ttl_seconds)
        removed = self._progress_store.purge_terminal(cutoff)
        if removed:
            logger.info("Expired progress sessions purged", removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Background run
    # ------------------------------------------------------------------

    async def run(
        self,
        session: ProgressSession,
        emails: Sequence[Email],
        preferences: UserPreferences,
        context: ClassificationContext,
    ) -> ProgressSession:
        """Drive *session* from ``pending`` to a terminal status.

        This is the run's error boundary: per-email failures are counted and
        anything else marks the session ``failed``.  Never raises.

        Returns:
            The final session snapshot.
        """
        log = logger.bind(session_id=session.session_id, user_id=session.user_id)
        machine = SessionStateMachine()
        BATCHES_IN_FLIGHT.inc()
        try:
            machine.trigger(SessionEvent.START)
            session = self._publish(session, status=machine.state)
            log.info("Batch classification started", total_emails=session.total_emails)

            session = await self._process(session, emails, preferences, context, log)

            machine.trigger(SessionEvent.COMPLETE)
            session = self._publish(
                session,
                status=machine.state,
                current_email_subject=None,
                completed_at=self._clock(),
                estimated_time_remaining_ms=0,
            )
            log.info(
                "Batch classification completed",
                successful=session.successful_emails,
                failed=session.failed_emails,
            )
        except Exception as exc:
            log.exception("Batch classification failed")
            session = self._record_failure(session, machine, exc, log)
        finally:
            BATCHES_IN_FLIGHT.dec()
        return session

    async def _process(
        self,
        session: ProgressSession,
        emails: Sequence[Email],
        preferences: UserPreferences,
        context: ClassificationContext,
        log: Any,
    ) -> ProgressSession:
        total = len(emails)
        elapsed_total = 0
        recent: deque[Classification] = deque(
            context.recent_classifications, maxlen=_RECENT_CONTEXT_SIZE
        )

        for group_start in range(0, total, self._concurrency):
            group = emails[group_start : group_start + self._concurrency]
            average = session.average_processing_time_ms
            session = self._publish(
                session,
                current_index=group_start,
                current_email_subject=group[0].subject,
                estimated_time_remaining_ms=(
                    average * (total - group_start) if average is not None else None
                ),
            )

            item_context = context.model_copy(update={"recent_classifications": tuple(recent)})
            outcomes = await asyncio.gather(
                *(self._classify_one(email, item_context, log) for email in group)
            )

            for offset, outcome in enumerate(outcomes):
                successful = session.successful_emails
                failed = session.failed_emails
                if outcome.classification is not None:
                    self._persist(
                        session.user_id, outcome.email, outcome.classification, preferences
                    )
                    recent.appendleft(outcome.classification)
                    successful += 1
                else:
                    failed += 1

                elapsed_total += outcome.elapsed_ms
                processed = successful + failed
                average = round(elapsed_total / processed)
                session = self._publish(
                    session,
                    current_index=group_start + offset,
                    current_email_subject=outcome.email.subject,
                    successful_emails=successful,
                    failed_emails=failed,
                    processed_emails=processed,
                    average_processing_time_ms=average,
                    estimated_time_remaining_ms=average * (total - processed),
                )

            if group_start + self._concurrency < total and self._inter_item_delay > 0:
                await asyncio.sleep(self._inter_item_delay)

        return session

    async def _classify_one(
        self,
        email: Email,
        context: ClassificationContext,
        log: Any,
    ) -> _ItemOutcome:
        """Classify one email with timeout and retries.  Never raises."""

        async def attempt() -> ClassificationResult:
            try:
                async with asyncio.timeout(self._item_timeout):
                    return await self._classifier.classify(email, context)
            except TimeoutError as exc:
                raise ClassificationError(
                    ClassificationErrorKind.TIMEOUT,
                    f"Classification exceeded {self._item_timeout}s",
                    latency_ms=int(self._item_timeout * 1000),
                ) from exc

        started = time.perf_counter()
        classification: Classification | None = None
        outcome = "success"
        try:
            result = await retrying_classify(attempt, self._retries)
            classification = result.classification
        except ClassificationError as exc:
            outcome = exc.kind.value
            log.warning(
                "Email classification failed",
                email_id=email.id,
                kind=exc.kind,
                status=exc.status,
                error=str(exc),
            )
        except Exception:
            outcome = ClassificationErrorKind.INTEGRATION_ERROR.value
            log.exception("Unexpected error classifying email", email_id=email.id)

        elapsed = time.perf_counter() - started
        CLASSIFICATION_SECONDS.observe(elapsed)
        EMAILS_CLASSIFIED.labels(outcome=outcome).inc()
        return _ItemOutcome(
            email=email, classification=classification, elapsed_ms=int(elapsed * 1000)
        )

    def _persist(
        self,
        user_id: str,
        email: Email,
        classification: Classification,
        preferences: UserPreferences,
    ) -> None:
        now = self._clock()
        score = score_priority(email, classification, preferences, now=now)
        self._classified_store.upsert(
            ClassifiedEmail.from_email(user_id, email, classification, score, now)
        )

    def _record_failure(
        self,
        session: ProgressSession,
        machine: SessionStateMachine,
        exc: Exception,
        log: Any,
    ) -> ProgressSession:
        if not machine.can_trigger(SessionEvent.FAIL):
            return session
        machine.trigger(SessionEvent.FAIL)
        try:
            return self._publish(
                session,
                status=machine.state,
                error_message=str(exc) or type(exc).__name__,
                completed_at=self._clock(),
            )
        except Exception:
            log.exception("Could not record batch failure")
            return session

    # ------------------------------------------------------------------
    # Session writes
    # ------------------------------------------------------------------

    def _publish(self, session: ProgressSession, **changes: Any) -> ProgressSession:
        """Validate, store, and announce the next snapshot of *session*."""
        updated = ProgressSession.model_validate(
            {**session.model_dump(), **changes, "updated_at": self._clock()}
        )
        self._save(updated)
        return updated

    def _save(self, session: ProgressSession) -> None:
        self._progress_store.save(session)
        if self._notifier is not None:
            self._notifier.notify(session.session_id)
