"""Free-slot search over a busy calendar.

``find_free_slots`` is the pure core: it walks each working day of a window
in fixed steps and keeps every slot that stays clear of busy intervals
widened by a buffer.  ``CalendarAvailability`` is the collaborator the slot
suggester queries; ``StaticAvailability`` satisfies it from an in-memory
event list.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, time, timedelta
from typing import Protocol

from triage.domain.models import CalendarEvent, TimeSlot, WorkingHours
from triage.domain.types import EventStatus
from triage.scoring.hours import weekday_index

DEFAULT_BUFFER_MINUTES = 15
SLOT_STEP_MINUTES = 15


class CalendarAvailability(Protocol):
    """Anything that can answer a free-slot query for a time window."""

    def find_available_slots(
        self,
        start: datetime,
        end: datetime,
        duration_minutes: int,
        working_hours: WorkingHours,
        buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
    ) -> list[TimeSlot]: ...


def busy_intervals(events: Iterable[CalendarEvent]) -> list[TimeSlot]:
    """Return the intervals of confirmed events; tentative and cancelled ones do not block."""
    return [
        TimeSlot(start=e.start, end=e.end)
        for e in events
        if e.status is EventStatus.CONFIRMED and e.start < e.end
    ]


def find_free_slots(
    busy: Sequence[TimeSlot],
    start: datetime,
    end: datetime,
    duration_minutes: int,
    working_hours: WorkingHours,
    *,
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> list[TimeSlot]:
    """Enumerate free slots of *duration_minutes* inside working hours.

    Slots start on the working-day start time and advance in
    *step_minutes* increments; a slot must end by the working-day end.  A
    slot is rejected when it overlaps any busy interval extended by
    *buffer_minutes* on both sides, or when it falls outside
    ``[start, end]``.

    Args:
        busy: Busy intervals (timezone-aware).
        start: Window start.
        end: Window end.
        duration_minutes: Required slot length.
        working_hours: Days and clock range to search, in their timezone.
        buffer_minutes: Clearance required around busy intervals.
        step_minutes: Spacing between candidate slot starts.

    Returns:
        Free ``TimeSlot`` values in chronological order.
    """
    if duration_minutes <= 0 or start >= end:
        return []

    tz = working_hours.tzinfo
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    buffer = timedelta(minutes=buffer_minutes)
    blocked = [(b.start - buffer, b.end + buffer) for b in busy]

    day_open = time(working_hours.start_minutes // 60, working_hours.start_minutes % 60)
    day_close = time(working_hours.end_minutes // 60, working_hours.end_minutes % 60)

    slots: list[TimeSlot] = []
    day = start.astimezone(tz).date()
    last_day = end.astimezone(tz).date()
    while day <= last_day:
        day_start = datetime.combine(day, day_open, tzinfo=tz)
        day_end = datetime.combine(day, day_close, tzinfo=tz)
        if weekday_index(day_start) in working_hours.days:
            cursor = day_start
            while cursor + duration <= day_end:
                slot_end = cursor + duration
                inside_window = cursor >= start and slot_end <= end
                if inside_window and not any(
                    cursor < b_end and slot_end > b_start for b_start, b_end in blocked
                ):
                    slots.append(TimeSlot(start=cursor, end=slot_end))
                cursor += step
        day += timedelta(days=1)
    return slots


class StaticAvailability:
    """Availability backed by a fixed list of calendar events."""

    def __init__(self, events: Iterable[CalendarEvent]) -> None:
        self._events = list(events)

    def find_available_slots(
        self,
        start: datetime,
        end: datetime,
        duration_minutes: int,
        working_hours: WorkingHours,
        buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
    ) -> list[TimeSlot]:
        """Search the stored events for free slots."""
        return find_free_slots(
            busy_intervals(self._events),
            start,
            end,
            duration_minutes,
            working_hours,
            buffer_minutes=buffer_minutes,
        )
