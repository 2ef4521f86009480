"""HTTP routes for batch classification, priority ranking, and meeting detection.

A thin adapter over the Python API: request bodies are validated by pydantic,
domain errors are mapped to status codes, and services come from
``app.state.services`` as built by ``initialize_services``.  The caller's
identity arrives in the ``X-User-ID`` header; authentication happens in
front of this service.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Header, HTTPException, Request, status
from pydantic import AwareDatetime, BaseModel, Field
from starlette.responses import StreamingResponse

from triage.batch.orchestrator import BatchOrchestrator
from triage.domain.errors import (
    BatchValidationError,
    ClassificationDisabledError,
    SessionNotFoundError,
)
from triage.domain.models import (
    Classification,
    Email,
    MeetingDetection,
    PriorityScore,
    ProgressSession,
    TimeSlotSuggestion,
    UserPreferences,
)
from triage.calendar.suggester import suggest_time_slots
from triage.llm.models import ClassificationContext
from triage.meetings.detector import MeetingContent, detect_meeting
from triage.meetings.insights import (
    MeetingDetectionResult,
    MeetingInsights,
    MeetingSummary,
    build_event_suggestion,
    generate_meeting_insights,
    summarize_meetings,
)
from triage.scoring.insights import (
    PriorityFilter,
    PriorityInsights,
    ScoredEmail,
    SortKey,
    filter_emails,
    rank_emails,
    sort_emails,
    summarize_priorities,
)
from triage.scoring.priority import score_priority
from triage.state.notifier import ProgressNotifier

logger = structlog.get_logger()

router = APIRouter(prefix="/api")

DEFAULT_KEEPALIVE_SECONDS = 15.0

UserId = Annotated[str, Header(alias="X-User-ID", min_length=1)]


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class BatchClassifyRequest(BaseModel):
    """Body of ``POST /api/classify/batch``."""

    emails: list[Email]
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    recent_classifications: list[Classification] = Field(default_factory=list)


class BatchAccepted(BaseModel):
    """Response of ``POST /api/classify/batch``."""

    session_id: str
    total_emails: int
    progress_endpoint: str


class ScoreRequest(BaseModel):
    """Body of ``POST /api/priority/score``."""

    email: Email
    classification: Classification | None = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    now: AwareDatetime | None = None


class RankRequest(BaseModel):
    """Body of ``POST /api/priority/rank``.

    Classifications are looked up in the classified email store for the
    calling user; emails without one are ranked as unclassified.
    """

    emails: list[Email]
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    filter: PriorityFilter | None = None
    sort_by: SortKey = SortKey.PRIORITY_SCORE
    limit: int | None = Field(default=None, ge=1)
    now: AwareDatetime | None = None


class RankResponse(BaseModel):
    """Response of ``POST /api/priority/rank``."""

    emails: list[ScoredEmail]
    total: int
    insights: PriorityInsights


class DetectMeetingsRequest(BaseModel):
    """Body of ``POST /api/meetings/detect``."""

    emails: list[Email]
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    user_email: str | None = None
    suggest_slots: bool = False
    now: AwareDatetime | None = None


class DetectMeetingsResponse(BaseModel):
    """Response of ``POST /api/meetings/detect``."""

    results: list[MeetingDetectionResult]
    summary: MeetingSummary
    insights: MeetingInsights


class SuggestSlotsRequest(BaseModel):
    """Body of ``POST /api/meetings/suggest-slots``."""

    detection: MeetingDetection
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    now: AwareDatetime | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _services(request: Request) -> dict[str, Any]:
    services: dict[str, Any] = request.app.state.services
    return services


def _orchestrator(request: Request) -> BatchOrchestrator:
    orchestrator: BatchOrchestrator | None = _services(request).get("orchestrator")
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Email classification is not configured",
        )
    return orchestrator


def _owned_progress(
    orchestrator: BatchOrchestrator, session_id: str, user_id: str
) -> ProgressSession:
    try:
        session = orchestrator.get_progress(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if session.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Progress session '{session_id}' not found",
        )
    return session


def _sse(event: str, data: str) -> str:
    return f"event: {event}\ndata: {data}\n\n"


async def progress_event_stream(
    orchestrator: BatchOrchestrator,
    notifier: ProgressNotifier | None,
    session_id: str,
    *,
    keepalive_seconds: float = DEFAULT_KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Yield server-sent events for one progress session.

    Every emitted ``progress`` event is a fresh ``get_progress`` read.  A
    change notification (or, without a notifier, the keep-alive interval)
    triggers the next read; unchanged snapshots are not re-sent.  The stream
    ends after a terminal snapshot or when the session disappears.
    """
    queue = notifier.subscribe(session_id) if notifier is not None else None
    try:
        yield ": connected\n\n"
        last_sent: ProgressSession | None = None
        while True:
            try:
                session = orchestrator.get_progress(session_id)
            except SessionNotFoundError as exc:
                yield _sse("error", json.dumps({"detail": str(exc)}))
                return
            if session != last_sent:
                last_sent = session
                yield _sse("progress", session.model_dump_json())
            if session.is_terminal:
                return

            if queue is None:
                await asyncio.sleep(keepalive_seconds)
                yield ": keep-alive\n\n"
                continue
            try:
                await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
            except TimeoutError:
                yield ": keep-alive\n\n"
    finally:
        if queue is not None and notifier is not None:
            notifier.unsubscribe(session_id, queue)


# ---------------------------------------------------------------------------
# Batch classification
# ---------------------------------------------------------------------------


@router.post(
    "/classify/batch",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=BatchAccepted,
)
async def submit_batch(
    body: BatchClassifyRequest, request: Request, user_id: UserId
) -> BatchAccepted:
    """Start classifying a batch of emails in the background."""
    orchestrator = _orchestrator(request)
    context = ClassificationContext(
        preferences=body.preferences,
        recent_classifications=tuple(body.recent_classifications),
    )
    try:
        submission = await orchestrator.submit(
            user_id, body.emails, body.preferences, context=context
        )
    except BatchValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ClassificationDisabledError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    return BatchAccepted(
        session_id=submission.session_id,
        total_emails=submission.total_emails,
        progress_endpoint=f"/api/classify/progress/{submission.session_id}",
    )


@router.get("/classify/progress/{session_id}", response_model=ProgressSession)
async def get_progress(
    session_id: str, request: Request, user_id: UserId
) -> ProgressSession:
    """Return the latest progress snapshot of a batch session."""
    return _owned_progress(_orchestrator(request), session_id, user_id)


@router.get("/classify/progress/{session_id}/events")
async def progress_events(
    session_id: str, request: Request, user_id: UserId
) -> StreamingResponse:
    """Stream progress snapshots of a batch session as server-sent events."""
    orchestrator = _orchestrator(request)
    _owned_progress(orchestrator, session_id, user_id)
    services = _services(request)
    stream = progress_event_stream(
        orchestrator,
        services.get("notifier"),
        session_id,
        keepalive_seconds=services.get("sse_keepalive_seconds", DEFAULT_KEEPALIVE_SECONDS),
    )
    return StreamingResponse(
        stream,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


# ---------------------------------------------------------------------------
# Priority
# ---------------------------------------------------------------------------


@router.post("/priority/score", response_model=PriorityScore)
async def score_email(body: ScoreRequest) -> PriorityScore:
    """Score a single email, with or without a classification."""
    return score_priority(body.email, body.classification, body.preferences, now=body.now)


@router.post("/priority/rank", response_model=RankResponse)
async def rank_mailbox(body: RankRequest, request: Request, user_id: UserId) -> RankResponse:
    """Rank emails using stored classifications, then filter, sort, and summarize."""
    now = body.now or datetime.now(tz=UTC)
    classified_store = _services(request).get("classified_store")
    classifications: dict[str, Classification] = {}
    if classified_store is not None:
        classifications = classified_store.classifications_for(
            user_id, [e.id for e in body.emails]
        )

    scored = rank_emails(body.emails, classifications, body.preferences, now=now)
    if body.filter is not None:
        scored = filter_emails(scored, body.filter)
    scored = sort_emails(scored, body.sort_by)
    insights = summarize_priorities(scored, now=now)
    if body.limit is not None:
        scored = scored[: body.limit]
    return RankResponse(emails=scored, total=len(scored), insights=insights)


# ---------------------------------------------------------------------------
# Meetings
# ---------------------------------------------------------------------------


@router.post("/meetings/detect", response_model=DetectMeetingsResponse)
async def detect_meetings(body: DetectMeetingsRequest, request: Request) -> DetectMeetingsResponse:
    """Detect meeting requests and draft events, optionally with time slots."""
    now = body.now or datetime.now(tz=UTC)
    calendar = _services(request).get("calendar")
    with_slots = body.suggest_slots and calendar is not None

    results: list[MeetingDetectionResult] = []
    for email in body.emails:
        detection = detect_meeting(MeetingContent.from_email(email), now=now)
        if not detection.has_meeting_request:
            results.append(MeetingDetectionResult(email_id=email.id, detection=detection))
            continue

        suggestion = build_event_suggestion(email, detection, user_email=body.user_email, now=now)
        if with_slots:
            slots = await asyncio.to_thread(
                suggest_time_slots,
                detection,
                calendar,
                body.preferences.working_hours,
                now=now,
            )
            suggestion = suggestion.model_copy(update={"suggested_times": tuple(slots)})
        results.append(
            MeetingDetectionResult(
                email_id=email.id, detection=detection, suggested_event=suggestion
            )
        )

    logger.info(
        "Meeting detection completed",
        total_emails=len(results),
        meeting_requests=sum(1 for r in results if r.detection.has_meeting_request),
    )
    return DetectMeetingsResponse(
        results=results,
        summary=summarize_meetings(results, suggested_time_slots=with_slots),
        insights=generate_meeting_insights(results),
    )


@router.post("/meetings/suggest-slots", response_model=list[TimeSlotSuggestion])
async def suggest_slots(
    body: SuggestSlotsRequest, request: Request
) -> list[TimeSlotSuggestion]:
    """Suggest meeting times for a detection against the user's calendar."""
    calendar = _services(request).get("calendar")
    if calendar is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Calendar integration is not configured",
        )
    return await asyncio.to_thread(
        suggest_time_slots,
        body.detection,
        calendar,
        body.preferences.working_hours,
        now=body.now,
    )
