"""Tests for heuristic meeting request detection."""

from datetime import UTC, date, datetime

import pytest

from triage.domain.models import EmailAddress, MeetingDetection
from triage.domain.types import MeetingType
from triage.meetings.detector import (
    MeetingContent,
    detect_meeting,
    extract_dates,
    extract_duration,
    extract_times,
    normalize_text,
    suggest_title,
)

# Wednesday
NOW = datetime(2025, 1, 15, 11, 0, tzinfo=UTC)
TODAY = NOW.date()
SENDER = EmailAddress(email="bob@example.com", name="Bob")


def _content(body: str | None = None, subject: str | None = None, html: str | None = None):
    return MeetingContent(subject=subject, body_text=body, body_html=html, sender=SENDER)


# ---------------------------------------------------------------------------
# detect_meeting
# ---------------------------------------------------------------------------


class TestDetectMeeting:
    """End-to-end detection over subject and body."""

    def test_simple_meeting_request(self) -> None:
        result = detect_meeting(
            _content("Can we meet Tuesday at 2pm to discuss the proposal?"), now=NOW
        )

        assert result.has_meeting_request is True
        assert "2pm" in result.detected_times
        assert result.detected_dates == (date(2025, 1, 21),)
        assert result.meeting_type is MeetingType.MEETING
        assert result.suggested_duration == 30
        assert result.is_follow_up is False

    def test_non_meeting_email(self) -> None:
        result = detect_meeting(_content("Please find attached the quarterly report"), now=NOW)

        assert result == MeetingDetection.none()
        assert result.suggested_title is None
        assert result.suggested_duration is None
        assert result.detected_dates == ()
        assert result.detected_times == ()
        assert result.meeting_type is None

    def test_empty_email_is_negative(self) -> None:
        assert detect_meeting(_content(), now=NOW).has_meeting_request is False

    def test_html_body_is_stripped(self) -> None:
        html = "<p>Could we <b>schedule</b> a call tomorrow?</p>"
        result = detect_meeting(_content(html=html), now=NOW)
        assert result.has_meeting_request is True
        assert result.meeting_type is MeetingType.CALL
        assert result.detected_dates == (date(2025, 1, 16),)

    def test_subject_alone_can_trigger(self) -> None:
        result = detect_meeting(_content("See below.", subject="Interview invitation"), now=NOW)
        assert result.has_meeting_request is True
        assert result.meeting_type is MeetingType.INTERVIEW
        assert result.suggested_duration == 60
        assert result.suggested_title == "Interview - Interview invitation"

    def test_reply_subject_marks_follow_up(self) -> None:
        result = detect_meeting(
            _content("Does Thursday work for you?", subject="Re: Project sync"), now=NOW
        )
        assert result.is_follow_up is True
        assert result.suggested_title == "Project sync"

    def test_follow_up_phrase(self) -> None:
        result = detect_meeting(
            _content("Following up on our call, can we meet again next week?"), now=NOW
        )
        assert result.is_follow_up is True

    def test_quick_call_is_short(self) -> None:
        result = detect_meeting(_content("Got time for a quick call today?"), now=NOW)
        assert result.meeting_type is MeetingType.CALL
        assert result.suggested_duration == 15

    def test_explicit_duration_wins(self) -> None:
        result = detect_meeting(_content("Let's set up a 90 minute demo on Friday"), now=NOW)
        assert result.meeting_type is MeetingType.DEMO
        assert result.suggested_duration == 90

    @pytest.mark.parametrize(
        "body",
        [
            "Attached are the meeting notes from yesterday.",
            "Thanks for the call earlier, the recording is in the shared drive.",
            "Interview feedback for the backend candidate is below.",
            "The demo video is linked in the release notes.",
        ],
        ids=["meeting-notes", "call-recap", "interview-feedback", "demo-link"],
    )
    def test_topic_without_scheduling_cue_is_negative(self, body: str) -> None:
        assert detect_meeting(_content(body), now=NOW) == MeetingDetection.none()

    @pytest.mark.parametrize(
        "body",
        [
            "Are you available for a meeting on Friday?",
            "Let's grab a call this week",
            "Can you hop on zoom after lunch?",
            "I'll send a calendar invite for the sync",
            "Please arrange a meeting with the vendor",
        ],
        ids=["availability", "lets-grab", "hop-on", "calendar-invite", "arrange"],
    )
    def test_topic_with_scheduling_cue_is_positive(self, body: str) -> None:
        assert detect_meeting(_content(body), now=NOW).has_meeting_request is True

    def test_invitation_only_is_other(self) -> None:
        result = detect_meeting(
            _content("Save the date for the company party", subject="Party"), now=NOW
        )
        assert result.has_meeting_request is True
        assert result.meeting_type is MeetingType.OTHER
        assert result.suggested_title == "Party"


# ---------------------------------------------------------------------------
# Meeting types and titles
# ---------------------------------------------------------------------------


class TestMeetingType:
    """Type precedence: interview, demo, call, presentation, then meeting."""

    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ("Can we schedule your interview and a call?", MeetingType.INTERVIEW),
            ("Let's book a time for a product demo call", MeetingType.DEMO),
            ("Let's hop on a call to review the presentation", MeetingType.CALL),
            ("Can we meet so I can present the roadmap?", MeetingType.PRESENTATION),
            ("Can we meet next week?", MeetingType.MEETING),
        ],
        ids=["interview", "demo", "call", "presentation", "meeting"],
    )
    def test_precedence(self, body: str, expected: MeetingType) -> None:
        assert detect_meeting(_content(body), now=NOW).meeting_type is expected


class TestSuggestTitle:
    """Titles strip reply prefixes and carry the meeting type."""

    @pytest.mark.parametrize(
        ("subject", "meeting_type", "expected"),
        [
            ("Re: Fwd: Budget review", MeetingType.MEETING, "Budget review"),
            ("Platform walkthrough", MeetingType.DEMO, "Demo - Platform walkthrough"),
            (None, MeetingType.MEETING, "Meeting"),
            ("", MeetingType.CALL, "Call"),
            ("RE:", MeetingType.OTHER, "Meeting"),
        ],
        ids=["reply-prefixes", "typed", "no-subject", "empty-typed", "prefix-only"],
    )
    def test_titles(
        self, subject: str | None, meeting_type: MeetingType, expected: str
    ) -> None:
        assert suggest_title(subject, meeting_type) == expected


# ---------------------------------------------------------------------------
# Extraction helpers
# ---------------------------------------------------------------------------


class TestExtractDates:
    """Date extraction relative to a fixed Wednesday."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("tomorrow", [date(2025, 1, 16)]),
            ("day after tomorrow", [date(2025, 1, 17)]),
            ("on friday", [date(2025, 1, 17)]),
            ("this wednesday", [date(2025, 1, 15)]),
            ("wednesday", [date(2025, 1, 22)]),
            ("next monday", [date(2025, 1, 20)]),
            ("next tuesday", [date(2025, 1, 21)]),
            ("in 3 days", [date(2025, 1, 18)]),
            ("march 3rd", [date(2025, 3, 3)]),
            ("3rd of march, 2026", [date(2026, 3, 3)]),
            ("2025-02-10", [date(2025, 2, 10)]),
            ("1/10", [date(2026, 1, 10)]),
            ("2024-12-01", []),
            ("2/30", []),
        ],
        ids=[
            "tomorrow",
            "day-after-tomorrow",
            "on-weekday",
            "this-weekday-today",
            "bare-weekday-today-means-next",
            "next-monday",
            "next-tuesday",
            "in-n-days",
            "month-day",
            "day-of-month-year",
            "iso",
            "past-month-day-rolls-forward",
            "explicit-past-dropped",
            "impossible-dropped",
        ],
    )
    def test_extraction(self, text: str, expected: list[date]) -> None:
        assert extract_dates(text, TODAY) == expected

    def test_order_of_appearance_without_duplicates(self) -> None:
        text = "friday or monday, or maybe jan 17"
        assert extract_dates(text, TODAY) == [date(2025, 1, 17), date(2025, 1, 20)]


class TestExtractTimes:
    """Clock times are normalized and kept in order."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("at 2pm", ["2pm"]),
            ("at 2 p.m.", ["2pm"]),
            ("10:30am or 14:00", ["10:30am", "14:00"]),
            ("sometime in the afternoon", ["afternoon"]),
            ("good morning team", []),
            ("around noon or 3pm", ["noon", "3pm"]),
            ("room 13pm", []),
        ],
        ids=["pm", "dotted", "mixed", "period", "greeting", "noon", "invalid-hour"],
    )
    def test_extraction(self, text: str, expected: list[str]) -> None:
        assert extract_times(text) == expected


class TestExtractDuration:
    """Explicit durations in minutes or hours."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("a 45 minute call", 45),
            ("about 1 hour", 60),
            ("1.5 hours should do", 90),
            ("an hour", 60),
            ("half an hour", 30),
            ("reply in 10 minutes", None),
            ("2 mins", None),
            ("no duration here", None),
        ],
        ids=["minutes", "hour", "fractional", "word", "half-hour", "in-n", "too-short", "none"],
    )
    def test_extraction(self, text: str, expected: int | None) -> None:
        assert extract_duration(text) == expected


class TestNormalizeText:
    """Scanned text combines subject and the best available body."""

    def test_prefers_plain_text_body(self) -> None:
        text = normalize_text(_content("Plain  BODY", subject="Hi", html="<p>html</p>"))
        assert text == "hi plain body"

    def test_falls_back_to_html(self) -> None:
        assert normalize_text(_content(html="<p>Tom &amp; Jerry</p>")) == "tom & jerry"
