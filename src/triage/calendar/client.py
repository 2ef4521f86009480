"""Google Calendar API client wrapper for reading and creating events.

Provides the ``GoogleCalendarClient`` class that covers the calendar
operations the triage pipeline needs: listing events in a window, creating
an event, and answering free-slot queries for the slot suggester.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo

import structlog

from triage.calendar.availability import (
    DEFAULT_BUFFER_MINUTES,
    busy_intervals,
    find_free_slots,
)
from triage.domain.models import CalendarEvent, TimeSlot, WorkingHours
from triage.domain.types import EventStatus

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 250


def _parse_event_time(value: dict[str, Any], tz: ZoneInfo) -> tuple[datetime, bool]:
    """Return the instant for an event boundary and whether it is all-day."""
    if value.get("dateTime"):
        return datetime.fromisoformat(value["dateTime"]), False
    day = date.fromisoformat(value["date"])
    return datetime.combine(day, time(0, 0), tzinfo=tz), True


def parse_event(item: dict[str, Any], tz: ZoneInfo) -> CalendarEvent:
    """Convert a Calendar API event resource into a ``CalendarEvent``.

    Args:
        item: One entry of ``events.list`` or the body returned by ``events.insert``.
        tz: Timezone applied to all-day dates.

    Returns:
        The parsed event.
    """
    start, is_all_day = _parse_event_time(item.get("start", {}), tz)
    end, _ = _parse_event_time(item.get("end", {}), tz)
    try:
        status = EventStatus(item.get("status", EventStatus.CONFIRMED))
    except ValueError:
        status = EventStatus.CONFIRMED
    return CalendarEvent(
        id=item.get("id", ""),
        summary=item.get("summary") or "(No title)",
        description=item.get("description"),
        location=item.get("location"),
        start=start,
        end=end,
        attendees=tuple(a["email"] for a in item.get("attendees", []) if a.get("email")),
        status=status,
        is_all_day=is_all_day,
    )


class GoogleCalendarClient:
    """Wrapper around the Google Calendar API service.

    All methods operate through the provided service resource (obtained via
    ``get_calendar_service``) and are synchronous; call them through
    ``asyncio.to_thread`` from async code.

    Args:
        service: An authenticated Calendar API v3 service resource.
        calendar_id: Calendar to read and write.  Defaults to ``"primary"``.
        timezone: IANA timezone for all-day events and created events.
    """

    def __init__(self, service: Any, calendar_id: str = "primary", timezone: str = "UTC") -> None:
        self._service = service
        self._calendar_id = calendar_id
        self._timezone = timezone
        self._tz = ZoneInfo(timezone)

    def list_events(
        self,
        time_min: datetime,
        time_max: datetime,
        *,
        query: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[CalendarEvent]:
        """Return every event overlapping ``[time_min, time_max)``.

        Recurring events are expanded into single instances and ordered by
        start time.  Pages are followed until exhausted.

        Args:
            time_min: Window start (timezone-aware).
            time_max: Window end (timezone-aware).
            query: Optional free-text filter.
            page_size: Events requested per page.

        Returns:
            Parsed ``CalendarEvent`` values.
        """
        events: list[CalendarEvent] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {
                "calendarId": self._calendar_id,
                "timeMin": time_min.astimezone(UTC).isoformat(),
                "timeMax": time_max.astimezone(UTC).isoformat(),
                "maxResults": page_size,
                "singleEvents": True,
                "orderBy": "startTime",
            }
            if query:
                params["q"] = query
            if page_token:
                params["pageToken"] = page_token

            response: dict[str, Any] = self._service.events().list(**params).execute()
            for item in response.get("items", []):
                events.append(parse_event(item, self._tz))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        logger.debug("Calendar events listed", count=len(events), calendar_id=self._calendar_id)
        return events

    def create_event(
        self,
        title: str,
        start: datetime,
        end: datetime,
        *,
        description: str | None = None,
        location: str | None = None,
        attendees: list[str] | None = None,
    ) -> CalendarEvent:
        """Create an event and return it as stored by the provider.

        Args:
            title: Event summary.
            start: Event start (timezone-aware).
            end: Event end (timezone-aware).
            description: Optional body text.
            location: Optional location.
            attendees: Optional attendee email addresses.

        Returns:
            The created ``CalendarEvent``.
        """
        body: dict[str, Any] = {
            "summary": title,
            "start": {"dateTime": start.isoformat(), "timeZone": self._timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": self._timezone},
        }
        if description:
            body["description"] = description
        if location:
            body["location"] = location
        if attendees:
            body["attendees"] = [{"email": address} for address in attendees]

        created: dict[str, Any] = (
            self._service.events().insert(calendarId=self._calendar_id, body=body).execute()
        )
        logger.info("Calendar event created", event_id=created.get("id"), title=title)
        return parse_event(created, self._tz)

    def find_available_slots(
        self,
        start: datetime,
        end: datetime,
        duration_minutes: int,
        working_hours: WorkingHours,
        buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
    ) -> list[TimeSlot]:
        """Return free slots between *start* and *end*; only confirmed events block time."""
        events = self.list_events(start, end)
        return find_free_slots(
            busy_intervals(events),
            start,
            end,
            duration_minutes,
            working_hours,
            buffer_minutes=buffer_minutes,
        )
