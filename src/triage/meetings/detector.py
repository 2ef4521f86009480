"""Text-heuristic meeting request detection.

Scans an email for scheduling intent: a meeting topic together with a
scheduling cue, or an event invitation on its own.  When present, extracts a
title, candidate dates, clock times, meeting type, follow-up markers, and a
duration.  Regex and string matching only -- no LLM calls.  The detector is
total: any input produces a ``MeetingDetection``.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, timedelta
from html import unescape

from pydantic import BaseModel, ConfigDict

from triage.domain.models import Email, EmailAddress, MeetingDetection
from triage.domain.types import MeetingType

DEFAULT_DURATION_MINUTES = 30
QUICK_DURATION_MINUTES = 15
MIN_EXPLICIT_DURATION = 5
MAX_EXPLICIT_DURATION = 8 * 60

TYPE_DURATIONS: dict[MeetingType, int] = {
    MeetingType.INTERVIEW: 60,
    MeetingType.DEMO: 45,
    MeetingType.PRESENTATION: 45,
}

_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_REPLY_PREFIX_PATTERN = re.compile(r"^\s*(?:(?:re|fwd?|fw)\s*:\s*)+", re.IGNORECASE)

# What the email is about.  A topic alone never makes a meeting request.
_TOPIC_FAMILIES: dict[str, re.Pattern[str]] = {
    "meet": re.compile(r"\bmeet(?:s|ing|ings|up)?\b|\bget together\b"),
    "call": re.compile(r"\bcalls?\b|\bphone\b|\bdial[\s-]in\b"),
    "sync": re.compile(
        r"\bsync(?:[\s-]?up)?\b|\bcatch[\s-]?up\b|\bstand[\s-]?up\b|\bchat\b|\bdiscussion\b"
    ),
    "conference": re.compile(
        r"\b(?:zoom|google meet|hangouts?|skype|webex|ms teams|microsoft teams|conference)\b"
    ),
    "interview": re.compile(r"\binterview(?:s|ing)?\b"),
    "demo": re.compile(r"\bdemo(?:s|nstration)?\b|\bwalk[\s-]?through\b|\bproduct tour\b"),
    "presentation": re.compile(r"\bpresent(?:s|ation|ations|ing)?\b|\bbrainstorm\b"),
}

# Scheduling cues.  A topic needs at least one of these to count as intent.
_CUE_FAMILIES: dict[str, re.Pattern[str]] = {
    "schedule": re.compile(
        r"\b(?:re)?schedul(?:e|ed|es|ing)\b|\bbook (?:a|some) time\b|\bset up a time\b"
        r"|\barrang(?:e|ing)\b|\b(?:on|to) (?:your|my|our|the) calendars?\b"
    ),
    "availability": re.compile(
        r"\bavailability\b"
        r"|\b(?:are you|you are|you're|would you be|will you be|i am|i'm|we are|we're)"
        r"\s+(?:\w+\s+)?(?:available|free)\b"
        r"|\bwhen (?:can|could|are|would) (?:we|you)\b"
        r"|\bdoes [\w\s:]{1,30} work for you\b"
        r"|\b(?:do you have|you have|got|find) (?:some )?(?:free )?time\b"
    ),
    "proposal": re.compile(
        r"\b(?:can|could|shall|should) we (?:meet|chat|talk|speak|connect|sync|jump|hop|set up)\b"
        r"|\blet'?s (?:meet|chat|talk|speak|connect|sync|grab|hop|jump|set up|book|schedule"
        r"|find|have)\b"
        r"|\b(?:hop|jump) on\b"
        r"|\bwould you (?:like|be open|be up) to (?:meet|chat|talk|connect)\b"
    ),
    "invitation": re.compile(r"\binvit(?:e|es|ed|ation|ations)\b"),
}

# Cues that are scheduled events in their own right, even with no topic.
_EVENT_INVITE_PATTERN = re.compile(
    r"\b(?:calendar|meeting|event) invit(?:e|ation)\b|\brsvp\b|\bsave the date\b"
)

# Type vocabulary, highest precedence first.
_TYPE_PATTERNS: list[tuple[MeetingType, re.Pattern[str]]] = [
    (MeetingType.INTERVIEW, re.compile(r"\binterview")),
    (
        MeetingType.DEMO,
        re.compile(r"\bdemo(?:s|nstration)?\b|\bwalk[\s-]?through\b|\bproduct tour\b"),
    ),
    (MeetingType.CALL, re.compile(r"\bcalls?\b|\bphone\b|\bdial[\s-]in\b")),
    (
        MeetingType.PRESENTATION,
        re.compile(r"\bpresent(?:s|ation|ations|ing)?\b|\bpitch\b|\bwebinar\b"),
    ),
]

_QUICK_PATTERN = re.compile(r"\b(?:quick|brief|short)\b")

_FOLLOW_UP_PATTERN = re.compile(
    r"\bfollow(?:ing)?[\s-]?up\b"
    r"|\bcheck(?:ing)?[\s-]in\b"
    r"|\bcircl(?:e|ing) back\b"
    r"|\bas discussed\b"
    r"|\bwrote:"
)

_MINUTES_PATTERN = re.compile(r"(?<!\bin )\b(\d{1,3})[\s-]*(?:min(?:ute)?s?)\b")
_HOURS_PATTERN = re.compile(
    r"(?<!\bin )\b(\d{1,2}(?:\.\d+)?|an|one|two)[\s-]*(?:hours?|hrs?)\b"
)
_HALF_HOUR_PATTERN = re.compile(r"\bhalf[\s-](?:an[\s-])?hour\b")
_WORD_NUMBERS = {"an": 1.0, "one": 1.0, "two": 2.0}

# -- Dates -------------------------------------------------------------------

_MONTHS: dict[str, int] = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_MONTH_NAME = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_ISO_DATE_PATTERN = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
_MONTH_DAY_PATTERN = re.compile(
    rf"\b{_MONTH_NAME}\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?:,?\s+(\d{{4}})\b)?"
)
_DAY_MONTH_PATTERN = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?{_MONTH_NAME}\b(?:,?\s+(\d{{4}})\b)?"
)
_SLASH_DATE_PATTERN = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?\b")
_DASH_DATE_PATTERN = re.compile(r"\b(\d{1,2})-(\d{1,2})-(\d{4}|\d{2})\b")
_WEEKDAY_PATTERN = re.compile(
    r"\b(?:(next|this|on)\s+)?(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b"
)
_RELATIVE_PATTERN = re.compile(
    r"\b(day after tomorrow|tomorrow|today|tonight|next week|end of (?:the )?week"
    r"|in (\d{1,2}) days?)\b"
)

# -- Times -------------------------------------------------------------------

_CLOCK_TIME_PATTERN = re.compile(r"\b(\d{1,2})(?::([0-5]\d))?\s*([ap])\.?m\b\.?")
_24H_TIME_PATTERN = re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)\b(?!\s*[ap]\.?m\b)")
_PERIOD_PATTERN = re.compile(r"(?<!good )\b(noon|midday|morning|afternoon|evening|end of day)\b")


class MeetingContent(BaseModel):
    """The parts of an email the detector reads."""

    model_config = ConfigDict(frozen=True)

    subject: str | None = None
    body_text: str | None = None
    body_html: str | None = None
    sender: EmailAddress

    @classmethod
    def from_email(cls, email: Email) -> MeetingContent:
        """Project an ``Email`` onto the detector's input."""
        return cls(
            subject=email.subject,
            body_text=email.body_text or email.snippet or None,
            body_html=email.body_html,
            sender=email.sender,
        )


def strip_html(html: str) -> str:
    """Remove tags and decode entities from an HTML body."""
    return unescape(_TAG_PATTERN.sub(" ", html))


def normalize_text(content: MeetingContent) -> str:
    """Return the lower-cased, whitespace-collapsed text the detector scans.

    The subject is always included; the body is the plain-text part when
    present, otherwise the HTML part with tags stripped.
    """
    if content.body_text:
        body = content.body_text
    elif content.body_html:
        body = strip_html(content.body_html)
    else:
        body = ""
    combined = f"{content.subject or ''} {body}"
    return _WHITESPACE_PATTERN.sub(" ", combined).strip().lower()


def matched_topics(text: str) -> set[str]:
    """Return the names of every meeting topic family present in *text*."""
    return {name for name, pattern in _TOPIC_FAMILIES.items() if pattern.search(text)}


def matched_cues(text: str) -> set[str]:
    """Return the names of every scheduling cue family present in *text*."""
    return {name for name, pattern in _CUE_FAMILIES.items() if pattern.search(text)}


def has_scheduling_intent(text: str, topics: set[str]) -> bool:
    """Return True when *text* asks to put something on the calendar.

    A meeting topic counts only alongside a scheduling cue.  Event invitations
    ("save the date", "rsvp", "calendar invite") count on their own.
    """
    if _EVENT_INVITE_PATTERN.search(text):
        return True
    return bool(topics) and bool(matched_cues(text))


def classify_meeting_type(text: str, topics: set[str]) -> MeetingType:
    """Pick the meeting type by vocabulary precedence.

    Interview beats demo beats call beats presentation.  A request with no
    meeting topic at all (a bare event invitation) is ``other``; everything
    else is a plain meeting.
    """
    for meeting_type, pattern in _TYPE_PATTERNS:
        if pattern.search(text):
            return meeting_type
    if not topics:
        return MeetingType.OTHER
    return MeetingType.MEETING


def suggest_title(subject: str | None, meeting_type: MeetingType) -> str:
    """Derive an event title from the subject, prefixed by the meeting type."""
    base = _REPLY_PREFIX_PATTERN.sub("", subject).strip() if subject else ""
    plain = meeting_type in (MeetingType.MEETING, MeetingType.OTHER)
    if not base:
        return "Meeting" if plain else meeting_type.value.capitalize()
    if plain:
        return base
    return f"{meeting_type.value.capitalize()} - {base}"


def extract_duration(text: str) -> int | None:
    """Return an explicitly mentioned duration in minutes, if any."""
    if _HALF_HOUR_PATTERN.search(text):
        return 30

    candidates: list[tuple[int, int]] = []
    for match in _MINUTES_PATTERN.finditer(text):
        candidates.append((match.start(), int(match.group(1))))
    for match in _HOURS_PATTERN.finditer(text):
        raw = match.group(1)
        hours = _WORD_NUMBERS.get(raw)
        if hours is None:
            hours = float(raw)
        candidates.append((match.start(), round(hours * 60)))

    for _, minutes in sorted(candidates):
        if MIN_EXPLICIT_DURATION <= minutes <= MAX_EXPLICIT_DURATION:
            return minutes
    return None


def _resolve_year(month: int, day: int, year: str | None, today: date) -> date | None:
    if year is not None:
        full_year = int(year)
        if full_year < 100:
            full_year += 2000
        try:
            return date(full_year, month, day)
        except ValueError:
            return None
    try:
        candidate = date(today.year, month, day)
    except ValueError:
        return None
    if candidate < today:
        try:
            candidate = date(today.year + 1, month, day)
        except ValueError:
            return None
    return candidate


def _weekday_date(qualifier: str | None, name: str, today: date) -> date:
    target = _WEEKDAYS.index(name)
    if qualifier == "next":
        next_monday = today + timedelta(days=7 - today.weekday())
        return next_monday + timedelta(days=target)
    days_ahead = (target - today.weekday()) % 7
    if days_ahead == 0 and qualifier != "this":
        days_ahead = 7
    return today + timedelta(days=days_ahead)


def _relative_date(phrase: str, count: str | None, today: date) -> date:
    if phrase in ("today", "tonight"):
        return today
    if phrase == "tomorrow":
        return today + timedelta(days=1)
    if phrase == "day after tomorrow":
        return today + timedelta(days=2)
    if phrase == "next week":
        return today + timedelta(days=7 - today.weekday())
    if phrase.startswith("end of"):
        return today + timedelta(days=(4 - today.weekday()) % 7)
    return today + timedelta(days=int(count or 0))


def extract_dates(text: str, today: date) -> list[date]:
    """Extract calendar dates mentioned in *text*, in order of appearance.

    Handles explicit dates (ISO, month names, numeric month/day), weekday
    names, and relative phrases.  Dates before *today* and impossible dates
    are dropped; duplicates keep their first position.
    """
    found: list[tuple[int, int, date]] = []

    def _claim(start: int, end: int, value: date | None) -> None:
        if value is None:
            return
        if any(start < e and s < end for s, e, _ in found):
            return
        found.append((start, end, value))

    for m in _ISO_DATE_PATTERN.finditer(text):
        try:
            value = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            value = None
        _claim(m.start(), m.end(), value)
    for m in _MONTH_DAY_PATTERN.finditer(text):
        month = _MONTHS[m.group(1)[:3]]
        _claim(m.start(), m.end(), _resolve_year(month, int(m.group(2)), m.group(3), today))
    for m in _DAY_MONTH_PATTERN.finditer(text):
        month = _MONTHS[m.group(2)[:3]]
        _claim(m.start(), m.end(), _resolve_year(month, int(m.group(1)), m.group(3), today))
    for pattern in (_SLASH_DATE_PATTERN, _DASH_DATE_PATTERN):
        for m in pattern.finditer(text):
            value = _resolve_year(int(m.group(1)), int(m.group(2)), m.group(3), today)
            _claim(m.start(), m.end(), value)
    for m in _WEEKDAY_PATTERN.finditer(text):
        _claim(m.start(), m.end(), _weekday_date(m.group(1), m.group(2), today))
    for m in _RELATIVE_PATTERN.finditer(text):
        _claim(m.start(), m.end(), _relative_date(m.group(1), m.group(2), today))

    dates: list[date] = []
    for _, _, value in sorted(found, key=lambda item: item[0]):
        if value >= today and value not in dates:
            dates.append(value)
    return dates


def extract_times(text: str) -> list[str]:
    """Extract clock-time phrases from *text*, normalized and in order.

    ``2 PM`` and ``2 p.m.`` both come back as ``2pm``; 24-hour times such as
    ``14:30`` and day periods such as ``afternoon`` are kept verbatim.
    """
    found: list[tuple[int, int, str]] = []

    def _claim(start: int, end: int, value: str) -> None:
        if any(start < e and s < end for s, e, _ in found):
            return
        found.append((start, end, value))

    for m in _CLOCK_TIME_PATTERN.finditer(text):
        hour = int(m.group(1))
        if not 1 <= hour <= 12:
            continue
        minutes = f":{m.group(2)}" if m.group(2) else ""
        _claim(m.start(), m.end(), f"{hour}{minutes}{m.group(3)}m")
    for m in _24H_TIME_PATTERN.finditer(text):
        _claim(m.start(), m.end(), f"{int(m.group(1)):02d}:{m.group(2)}")
    for m in _PERIOD_PATTERN.finditer(text):
        _claim(m.start(), m.end(), m.group(1))

    times: list[str] = []
    for _, _, value in sorted(found, key=lambda item: item[0]):
        if value not in times:
            times.append(value)
    return times


def is_follow_up(content: MeetingContent, text: str) -> bool:
    """Return True when the email continues an earlier conversation."""
    if content.subject and _REPLY_PREFIX_PATTERN.match(content.subject):
        return True
    return _FOLLOW_UP_PATTERN.search(text) is not None


def detect_meeting(content: MeetingContent, *, now: datetime | None = None) -> MeetingDetection:
    """Detect whether *content* asks to schedule a meeting.

    Args:
        content: Subject, bodies, and sender of the email.
        now: Reference time for resolving weekday and relative dates.
            Defaults to the current UTC time.

    Returns:
        A positive ``MeetingDetection`` with every extracted detail, or the
        negative detection with all optional fields empty.
    """
    text = normalize_text(content)
    topics = matched_topics(text)
    if not has_scheduling_intent(text, topics):
        return MeetingDetection.none()

    if now is None:
        now = datetime.now(tz=UTC)

    meeting_type = classify_meeting_type(text, topics)
    duration = extract_duration(text)
    if duration is None:
        duration = TYPE_DURATIONS.get(meeting_type)
    if duration is None:
        quick = _QUICK_PATTERN.search(text) is not None
        duration = QUICK_DURATION_MINUTES if quick else DEFAULT_DURATION_MINUTES

    return MeetingDetection(
        has_meeting_request=True,
        suggested_title=suggest_title(content.subject, meeting_type),
        suggested_duration=duration,
        detected_dates=tuple(extract_dates(text, now.date())),
        detected_times=tuple(extract_times(text)),
        is_follow_up=is_follow_up(content, text),
        meeting_type=meeting_type,
    )
