"""Calendar availability, Google Calendar access, and slot suggestion."""

from triage.calendar.availability import (
    CalendarAvailability,
    StaticAvailability,
    busy_intervals,
    find_free_slots,
)
from triage.calendar.client import GoogleCalendarClient
from triage.calendar.suggester import score_slot, suggest_time_slots

__all__ = [
    "CalendarAvailability",
    "GoogleCalendarClient",
    "StaticAvailability",
    "busy_intervals",
    "find_free_slots",
    "score_slot",
    "suggest_time_slots",
]
