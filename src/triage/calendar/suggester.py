"""Rank free calendar slots as candidate times for a detected meeting.

Slots come from a ``CalendarAvailability`` collaborator; each one starts at
a base confidence that is nudged by time-of-day, weekday, date-match, and
proximity rules, then clamped to ``[0, 1]``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import structlog

from triage.calendar.availability import DEFAULT_BUFFER_MINUTES, CalendarAvailability
from triage.domain.models import MeetingDetection, TimeSlot, TimeSlotSuggestion, WorkingHours
from triage.meetings.detector import DEFAULT_DURATION_MINUTES

logger = structlog.get_logger()

SEARCH_WINDOW = timedelta(days=14)
MAX_SUGGESTIONS = 5

BASE_CONFIDENCE = 0.5
# Start hours, inclusive
PRIME_HOURS = (10, 16)
PRIME_BONUS = 0.3
MONDAY_MORNING_CUTOFF_HOUR = 11
MONDAY_MORNING_PENALTY = 0.2
FRIDAY_AFTERNOON_CUTOFF_HOUR = 15
FRIDAY_AFTERNOON_PENALTY = 0.2
DATE_MATCH_BONUS = 0.4
NEAR_TERM_WINDOW = timedelta(days=3)
NEAR_TERM_BONUS = 0.1

_MONDAY = 0
_FRIDAY = 4


def score_slot(
    slot: TimeSlot,
    detection: MeetingDetection,
    working_hours: WorkingHours,
    now: datetime,
) -> float:
    """Return the clamped confidence for one free slot.

    Clock times and dates are read in the working-hours timezone.
    """
    local = slot.start.astimezone(working_hours.tzinfo)
    hour = local.hour
    confidence = BASE_CONFIDENCE

    if PRIME_HOURS[0] <= hour <= PRIME_HOURS[1]:
        confidence += PRIME_BONUS
    if local.weekday() == _MONDAY and hour < MONDAY_MORNING_CUTOFF_HOUR:
        confidence -= MONDAY_MORNING_PENALTY
    if local.weekday() == _FRIDAY and hour > FRIDAY_AFTERNOON_CUTOFF_HOUR:
        confidence -= FRIDAY_AFTERNOON_PENALTY
    if local.date() in detection.detected_dates:
        confidence += DATE_MATCH_BONUS
    if slot.start - now <= NEAR_TERM_WINDOW:
        confidence += NEAR_TERM_BONUS

    return round(max(0.0, min(1.0, confidence)), 4)


def suggest_time_slots(
    detection: MeetingDetection,
    availability: CalendarAvailability,
    working_hours: WorkingHours,
    *,
    now: datetime | None = None,
    window: timedelta = SEARCH_WINDOW,
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
    limit: int = MAX_SUGGESTIONS,
) -> list[TimeSlotSuggestion]:
    """Suggest up to *limit* meeting times, most confident first.

    Args:
        detection: The meeting detection; its duration sizes the slots.
        availability: Calendar free/busy collaborator.
        working_hours: The user's working hours.
        now: Search window start.  Defaults to the current UTC time.
        window: Search window length.
        buffer_minutes: Clearance required around existing events.
        limit: Maximum number of suggestions.

    Returns:
        ``TimeSlotSuggestion`` values sorted by descending confidence, ties
        broken by earliest start.  Empty when the calendar has no room or
        cannot be queried.
    """
    if now is None:
        now = datetime.now(tz=UTC)
    duration = detection.suggested_duration or DEFAULT_DURATION_MINUTES

    try:
        slots = availability.find_available_slots(
            now,
            now + window,
            duration,
            working_hours,
            buffer_minutes,
        )
    except Exception:
        logger.warning("Availability query failed, returning no slots", exc_info=True)
        return []

    scored = [
        TimeSlotSuggestion(
            start=slot.start,
            end=slot.end,
            confidence=score_slot(slot, detection, working_hours, now),
        )
        for slot in slots
    ]
    scored.sort(key=lambda s: s.start)
    scored.sort(key=lambda s: s.confidence, reverse=True)
    logger.debug("Time slots suggested", candidates=len(scored), returned=min(limit, len(scored)))
    return scored[:limit]
