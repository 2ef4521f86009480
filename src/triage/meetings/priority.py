"""Priority bucket for a detected meeting request."""

from __future__ import annotations

import re
from datetime import UTC, datetime

from triage.domain.models import Email, MeetingDetection
from triage.domain.types import IMPORTANT_LABEL, MeetingPriority, MeetingType
from triage.scoring.priority import is_recent

HIGH_THRESHOLD = 6
MEDIUM_THRESHOLD = 3

TYPE_POINTS: dict[MeetingType, int] = {
    MeetingType.INTERVIEW: 3,
    MeetingType.DEMO: 2,
    MeetingType.PRESENTATION: 2,
}

_URGENT_PATTERN = re.compile(r"\burgent\b|\basap\b")
_IMPORTANT_PATTERN = re.compile(r"\bimportant\b|\bdeadline\b")


def meeting_priority_points(
    email: Email,
    detection: MeetingDetection,
    *,
    now: datetime | None = None,
) -> int:
    """Return the raw weighted score behind ``determine_meeting_priority``."""
    if now is None:
        now = datetime.now(tz=UTC)

    points = 0
    if email.is_important:
        points += 2
    if IMPORTANT_LABEL in email.labels:
        points += 2

    if detection.meeting_type is not None:
        points += TYPE_POINTS.get(detection.meeting_type, 0)

    content = f"{email.subject or ''} {email.snippet} {email.body_text or ''}".lower()
    if _URGENT_PATTERN.search(content):
        points += 3
    if _IMPORTANT_PATTERN.search(content):
        points += 2

    if is_recent(email, now):
        points += 1

    if detection.detected_dates:
        days_until = (min(detection.detected_dates) - now.date()).days
        if days_until <= 3:
            points += 2
        elif days_until <= 7:
            points += 1

    return points


def determine_meeting_priority(
    email: Email,
    detection: MeetingDetection,
    *,
    now: datetime | None = None,
) -> MeetingPriority:
    """Bucket a meeting request as high (>= 6 points), medium (>= 3), or low.

    Args:
        email: The email carrying the request.
        detection: Its positive meeting detection.
        now: Reference time for recency and date proximity.

    Returns:
        The ``MeetingPriority`` bucket.
    """
    points = meeting_priority_points(email, detection, now=now)
    if points >= HIGH_THRESHOLD:
        return MeetingPriority.HIGH
    if points >= MEDIUM_THRESHOLD:
        return MeetingPriority.MEDIUM
    return MeetingPriority.LOW
