"""Event suggestions and aggregate insights for detected meeting requests."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from triage.domain.models import Email, MeetingDetection, TimeSlotSuggestion
from triage.domain.types import MeetingPriority, MeetingType
from triage.meetings.priority import determine_meeting_priority

BATCHING_THRESHOLD = 3


class EventSuggestion(BaseModel):
    """A calendar event drafted from a meeting request."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    duration_minutes: int
    attendees: tuple[str, ...] = ()
    priority: MeetingPriority
    suggested_times: tuple[TimeSlotSuggestion, ...] = ()


class MeetingDetectionResult(BaseModel):
    """Detection outcome for one email, with a drafted event when positive."""

    model_config = ConfigDict(frozen=True)

    email_id: str
    detection: MeetingDetection
    suggested_event: EventSuggestion | None = None


class MeetingSummary(BaseModel):
    """Counts across a set of meeting detections."""

    model_config = ConfigDict(frozen=True)

    total_emails: int
    meeting_requests_found: int
    high_priority_meetings: int
    meeting_type_breakdown: dict[str, int] = Field(default_factory=dict)
    suggested_time_slots: bool = False


class MeetingInsights(BaseModel):
    """Recommendations and patterns across a set of meeting detections."""

    model_config = ConfigDict(frozen=True)

    recommendations: tuple[str, ...] = ()
    urgent_meetings: int = 0
    common_meeting_types: dict[str, int] = Field(default_factory=dict)
    average_suggested_duration: float = 0.0
    follow_up_count: int = 0


def build_event_suggestion(
    email: Email,
    detection: MeetingDetection,
    *,
    user_email: str | None = None,
    now: datetime | None = None,
) -> EventSuggestion:
    """Draft a calendar event for a positive detection.

    Attendees are the sender plus every recipient, minus the current user.

    Args:
        email: The email carrying the request.
        detection: Its positive detection.
        user_email: The mailbox owner's address, excluded from attendees.
        now: Reference time for the priority bucket.

    Returns:
        An ``EventSuggestion`` without suggested times.
    """
    description = (
        f"Meeting request from: {email.sender.display}\n\n"
        f"Original email subject: {email.subject or '(no subject)'}\n\n"
        f"Email snippet: {email.snippet}"
    )

    excluded = (user_email or "").lower()
    attendees: list[str] = []
    for address in (email.sender, *email.recipients):
        candidate = address.email
        if candidate.lower() == excluded or candidate in attendees:
            continue
        attendees.append(candidate)

    return EventSuggestion(
        title=detection.suggested_title or "Meeting",
        description=description,
        duration_minutes=detection.suggested_duration or 30,
        attendees=tuple(attendees),
        priority=determine_meeting_priority(email, detection, now=now),
    )


def _type_breakdown(results: Sequence[MeetingDetectionResult]) -> dict[str, int]:
    counts = Counter(
        str(r.detection.meeting_type or MeetingType.OTHER)
        for r in results
        if r.detection.has_meeting_request
    )
    return dict(counts)


def summarize_meetings(
    results: Sequence[MeetingDetectionResult],
    *,
    suggested_time_slots: bool = False,
) -> MeetingSummary:
    """Count requests, high-priority requests, and types across *results*."""
    requests = [r for r in results if r.detection.has_meeting_request]
    high = sum(
        1
        for r in requests
        if r.suggested_event is not None and r.suggested_event.priority is MeetingPriority.HIGH
    )
    return MeetingSummary(
        total_emails=len(results),
        meeting_requests_found=len(requests),
        high_priority_meetings=high,
        meeting_type_breakdown=_type_breakdown(results),
        suggested_time_slots=suggested_time_slots,
    )


def generate_meeting_insights(results: Sequence[MeetingDetectionResult]) -> MeetingInsights:
    """Build recommendations and patterns across *results*."""
    requests = [r for r in results if r.detection.has_meeting_request]
    recommendations: list[str] = []

    urgent = sum(
        1
        for r in requests
        if r.suggested_event is not None and r.suggested_event.priority is MeetingPriority.HIGH
    )
    if urgent:
        noun = "request requires" if urgent == 1 else "requests require"
        recommendations.append(f"{urgent} high-priority meeting {noun} prompt response")

    if len(requests) > BATCHING_THRESHOLD:
        recommendations.append("Consider batching meeting scheduling to save time")

    interviews = sum(1 for r in requests if r.detection.meeting_type is MeetingType.INTERVIEW)
    if interviews:
        noun = "interview" if interviews == 1 else "interviews"
        recommendations.append(f"{interviews} {noun} detected - ensure adequate preparation time")

    if any(len(r.detection.detected_dates) > 1 for r in requests):
        recommendations.append(
            "Some emails contain multiple dates - clarification may be needed"
        )

    durations = [r.detection.suggested_duration or 30 for r in requests]
    average = sum(durations) / len(durations) if durations else 0.0

    return MeetingInsights(
        recommendations=tuple(recommendations),
        urgent_meetings=urgent,
        common_meeting_types=_type_breakdown(results),
        average_suggested_duration=round(average, 1),
        follow_up_count=sum(1 for r in requests if r.detection.is_follow_up),
    )
