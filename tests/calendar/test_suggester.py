"""Tests for ranking free slots as meeting time suggestions."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest

from triage.calendar.availability import StaticAvailability
from triage.calendar.suggester import score_slot, suggest_time_slots
from triage.domain.models import CalendarEvent, MeetingDetection, TimeSlot, WorkingHours

# Wednesday 08:00 UTC
NOW = datetime(2025, 1, 15, 8, 0, tzinfo=UTC)


def _detection(duration: int = 30, dates: tuple[date, ...] = ()) -> MeetingDetection:
    return MeetingDetection(
        has_meeting_request=True,
        suggested_title="Sync",
        suggested_duration=duration,
        detected_dates=dates,
    )


def _slot(start: datetime, minutes: int = 30) -> TimeSlot:
    return TimeSlot(start=start, end=start + timedelta(minutes=minutes))


class _FixedAvailability:
    def __init__(self, slots: list[TimeSlot]) -> None:
        self.slots = slots
        self.calls: list[tuple[datetime, datetime, int]] = []

    def find_available_slots(
        self,
        start: datetime,
        end: datetime,
        duration_minutes: int,
        working_hours: WorkingHours,
        buffer_minutes: int = 15,
    ) -> list[TimeSlot]:
        self.calls.append((start, end, duration_minutes))
        return self.slots


class _BrokenAvailability:
    def find_available_slots(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        raise ConnectionError("calendar unreachable")


# ---------------------------------------------------------------------------
# score_slot
# ---------------------------------------------------------------------------


class TestScoreSlot:
    """Confidence adjustments for a single slot."""

    @pytest.mark.parametrize(
        ("start", "expected"),
        [
            (datetime(2025, 1, 15, 10, 0, tzinfo=UTC), 0.9),
            (datetime(2025, 1, 15, 16, 0, tzinfo=UTC), 0.9),
            (datetime(2025, 1, 15, 9, 0, tzinfo=UTC), 0.6),
            (datetime(2025, 1, 20, 9, 0, tzinfo=UTC), 0.3),
            (datetime(2025, 1, 17, 15, 30, tzinfo=UTC), 0.9),
            (datetime(2025, 1, 24, 16, 0, tzinfo=UTC), 0.6),
            (datetime(2025, 1, 22, 16, 30, tzinfo=UTC), 0.8),
            (datetime(2025, 1, 24, 11, 0, tzinfo=UTC), 0.8),
        ],
        ids=[
            "prime-near-term",
            "prime-window-end-inclusive",
            "early-near-term",
            "monday-morning",
            "friday-15h-no-penalty",
            "friday-afternoon",
            "prime-hour-16-late-minutes",
            "prime-far-out",
        ],
    )
    def test_adjustments(self, start: datetime, expected: float) -> None:
        confidence = score_slot(_slot(start), _detection(), WorkingHours(), NOW)
        assert confidence == pytest.approx(expected)

    def test_date_match_is_clamped(self) -> None:
        start = datetime(2025, 1, 15, 10, 0, tzinfo=UTC)
        detection = _detection(dates=(date(2025, 1, 15),))
        assert score_slot(_slot(start), detection, WorkingHours(), NOW) == 1.0

    def test_reads_clock_in_working_hours_timezone(self) -> None:
        # 15:00 UTC is 10:00 in New York: inside the prime window there.
        start = datetime(2025, 1, 15, 15, 0, tzinfo=UTC)
        hours = WorkingHours(timezone="America/New_York")
        assert score_slot(_slot(start), _detection(), hours, NOW) == pytest.approx(0.9)


# ---------------------------------------------------------------------------
# suggest_time_slots
# ---------------------------------------------------------------------------


class TestSuggestTimeSlots:
    """Ranking, limiting, and failure handling."""

    def test_fully_busy_calendar(self) -> None:
        busy = [
            CalendarEvent(
                start=NOW - timedelta(days=1),
                end=NOW + timedelta(days=30),
                summary="Sabbatical",
            )
        ]
        result = suggest_time_slots(
            _detection(), StaticAvailability(busy), WorkingHours(), now=NOW
        )
        assert result == []

    def test_availability_failure_returns_empty(self) -> None:
        result = suggest_time_slots(
            _detection(), _BrokenAvailability(), WorkingHours(), now=NOW
        )
        assert result == []

    def test_sorted_by_confidence_then_start(self) -> None:
        slots = [
            _slot(datetime(2025, 1, 20, 9, 0, tzinfo=UTC)),
            _slot(datetime(2025, 1, 15, 11, 0, tzinfo=UTC)),
            _slot(datetime(2025, 1, 15, 10, 0, tzinfo=UTC)),
            _slot(datetime(2025, 1, 15, 9, 0, tzinfo=UTC)),
        ]
        result = suggest_time_slots(
            _detection(), _FixedAvailability(slots), WorkingHours(), now=NOW
        )
        assert [s.start.hour for s in result] == [10, 11, 9, 9]
        assert [s.confidence for s in result] == pytest.approx([0.9, 0.9, 0.6, 0.3])

    def test_limit(self) -> None:
        first = datetime(2025, 1, 15, 10, 0, tzinfo=UTC)
        slots = [_slot(first + timedelta(minutes=15 * i)) for i in range(8)]
        result = suggest_time_slots(
            _detection(), _FixedAvailability(slots), WorkingHours(), now=NOW, limit=3
        )
        assert len(result) == 3

    def test_queries_search_window_with_detected_duration(self) -> None:
        availability = _FixedAvailability([])
        suggest_time_slots(_detection(duration=45), availability, WorkingHours(), now=NOW)
        assert availability.calls == [(NOW, NOW + timedelta(days=14), 45)]

    def test_default_duration_when_missing(self) -> None:
        availability = _FixedAvailability([])
        detection = MeetingDetection(has_meeting_request=True)
        suggest_time_slots(detection, availability, WorkingHours(), now=NOW)
        assert availability.calls[0][2] == 30

    def test_detected_date_ranks_first(self) -> None:
        detection = _detection(duration=60, dates=(date(2025, 1, 22),))
        result = suggest_time_slots(detection, StaticAvailability([]), WorkingHours(), now=NOW)

        assert len(result) == 5
        assert all(s.start.date() == date(2025, 1, 22) for s in result)
        assert result[0].start == datetime(2025, 1, 22, 10, 0, tzinfo=UTC)
        assert result[0].confidence == 1.0
        assert all(s.end - s.start == timedelta(minutes=60) for s in result)
