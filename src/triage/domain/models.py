"""Pydantic v2 models for domain data structures in the triage pipeline."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    AliasChoices,
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from triage.domain.types import EmailCategory, EventStatus, MeetingType, SessionStatus

_HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


class EmailAddress(BaseModel):
    """A mailbox address with an optional display name."""

    model_config = ConfigDict(frozen=True)

    email: str
    name: str | None = None

    @property
    def display(self) -> str:
        """Return the display name when present, otherwise the bare address."""
        return self.name or self.email


class Email(BaseModel):
    """An email fetched from the mail provider.

    Owned by the caller; nothing in the pipeline mutates it.  ``date`` must be
    timezone-aware so recency checks never mix naive and aware datetimes.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    thread_id: str
    subject: str | None = None
    sender: EmailAddress
    recipients: tuple[EmailAddress, ...] = ()
    date: AwareDatetime
    snippet: str = ""
    body_text: str | None = None
    body_html: str | None = None
    is_read: bool = False
    is_important: bool = False
    labels: frozenset[str] = frozenset()


class Classification(BaseModel):
    """Urgency, importance, and category judgment for one email.

    Bounds are enforced, never clamped: an out-of-range urgency or confidence
    makes the whole classification invalid.
    """

    model_config = ConfigDict(frozen=True)

    urgency: int = Field(ge=1, le=5, strict=True, description="1 (no rush) to 5 (immediate)")
    importance: int = Field(ge=1, le=5, strict=True, description="1 (trivial) to 5 (critical)")
    action_required: bool = Field(
        strict=True,
        validation_alias=AliasChoices("action_required", "actionRequired"),
    )
    category: EmailCategory
    confidence: float = Field(ge=0.0, le=1.0, strict=True)
    reasoning: str | None = None


class WorkingHours(BaseModel):
    """The user's working window: a clock range on a set of weekdays.

    Weekday indices run 0-6 with 0 meaning Sunday.  ``start`` and ``end`` are
    ``HH:MM`` strings interpreted in ``timezone``.
    """

    model_config = ConfigDict(frozen=True)

    start: str = Field(default="09:00", pattern=_HHMM_PATTERN)
    end: str = Field(default="17:00", pattern=_HHMM_PATTERN)
    days: frozenset[int] = frozenset({1, 2, 3, 4, 5})
    timezone: str = "UTC"

    @field_validator("days")
    @classmethod
    def days_must_be_weekday_indices(cls, v: frozenset[int]) -> frozenset[int]:
        """Ensure every weekday index is within 0-6."""
        invalid = sorted(d for d in v if not 0 <= d <= 6)
        if invalid:
            raise ValueError(f"weekday indices must be within 0-6, got {invalid}")
        return v

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        """Ensure the timezone name resolves in the IANA database."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {v}") from exc
        return v

    @model_validator(mode="after")
    def start_must_precede_end(self) -> WorkingHours:
        """Ensure the working window is non-empty."""
        if _minutes(self.start) >= _minutes(self.end):
            raise ValueError(f"start ({self.start}) must be before end ({self.end})")
        return self

    @property
    def start_minutes(self) -> int:
        """Minutes after midnight at which the working day starts."""
        return _minutes(self.start)

    @property
    def end_minutes(self) -> int:
        """Minutes after midnight at which the working day ends."""
        return _minutes(self.end)

    @property
    def tzinfo(self) -> ZoneInfo:
        """Return the ``ZoneInfo`` for ``timezone``."""
        return ZoneInfo(self.timezone)


class NotificationSettings(BaseModel):
    """Which kinds of notification the user wants surfaced."""

    model_config = ConfigDict(frozen=True)

    urgent_emails: bool = True
    upcoming_events: bool = True
    missed_opportunities: bool = False


class UserPreferences(BaseModel):
    """Per-user configuration consumed by the scorer and the working-hours checks.

    Loaded once per pipeline invocation and treated as read-only context.
    """

    model_config = ConfigDict(frozen=True)

    priority_categories: frozenset[EmailCategory] = frozenset(
        {EmailCategory.WORK, EmailCategory.FINANCIAL}
    )
    working_hours: WorkingHours = Field(default_factory=WorkingHours)
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)
    email_classification_enabled: bool = True


class ProgressSession(BaseModel):
    """Progress record for one batch classification run.

    Snapshots are immutable; the orchestrator publishes a new, re-validated
    snapshot for every change.  ``processed_emails`` always
    equals ``successful_emails + failed_emails``.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    user_id: str
    status: SessionStatus = SessionStatus.PENDING
    total_emails: int = Field(ge=0)
    processed_emails: int = Field(default=0, ge=0)
    successful_emails: int = Field(default=0, ge=0)
    failed_emails: int = Field(default=0, ge=0)
    current_index: int = Field(default=0, ge=0)
    current_email_subject: str | None = None
    started_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
    error_message: str | None = None
    estimated_time_remaining_ms: int | None = None
    average_processing_time_ms: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def counters_must_balance(self) -> ProgressSession:
        """Ensure the outcome counters add up and never exceed the batch size."""
        if self.successful_emails + self.failed_emails != self.processed_emails:
            raise ValueError(
                f"successful ({self.successful_emails}) + failed ({self.failed_emails}) "
                f"must equal processed ({self.processed_emails})"
            )
        if self.processed_emails > self.total_emails:
            raise ValueError(
                f"processed ({self.processed_emails}) exceeds total ({self.total_emails})"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        """Return True once the session can no longer change."""
        return self.status in {
            SessionStatus.COMPLETED,
            SessionStatus.FAILED,
            SessionStatus.CANCELLED,
        }

    @property
    def progress_percent(self) -> int:
        """Whole-number completion percentage."""
        if self.total_emails == 0:
            return 0
        return round(self.processed_emails / self.total_emails * 100)


class PriorityScore(BaseModel):
    """A 0-10 priority ranking attached to an email at read time."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=10.0)
    is_high_priority: bool


class MeetingDetection(BaseModel):
    """Heuristic judgment of whether an email asks to schedule something.

    A negative detection carries no optional fields.
    """

    model_config = ConfigDict(frozen=True)

    has_meeting_request: bool
    suggested_title: str | None = None
    suggested_duration: int | None = Field(default=None, gt=0, description="Minutes")
    detected_dates: tuple[date, ...] = ()
    detected_times: tuple[str, ...] = ()
    is_follow_up: bool = False
    meeting_type: MeetingType | None = None

    @classmethod
    def none(cls) -> MeetingDetection:
        """Return the negative detection."""
        return cls(has_meeting_request=False)


class TimeSlot(BaseModel):
    """A free interval on the user's calendar."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def start_must_precede_end(self) -> TimeSlot:
        """Ensure the slot has positive length."""
        if self.start >= self.end:
            raise ValueError("slot start must be before slot end")
        return self


class TimeSlotSuggestion(BaseModel):
    """A candidate meeting time with a confidence score."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    confidence: float = Field(ge=0.0, le=1.0)


class CalendarEvent(BaseModel):
    """An event on the user's calendar."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    summary: str = ""
    description: str | None = None
    location: str | None = None
    start: datetime
    end: datetime
    attendees: tuple[str, ...] = ()
    status: EventStatus = EventStatus.CONFIRMED
    is_all_day: bool = False


class ClassifiedEmail(BaseModel):
    """A successfully classified email as persisted, pre-scored at write time."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email_id: str
    thread_id: str
    subject: str | None = None
    sender_email: str
    sender_name: str | None = None
    received_at: datetime
    classification: Classification
    priority_score: float = Field(ge=0.0, le=10.0)
    is_high_priority: bool
    processed_at: datetime

    @classmethod
    def from_email(
        cls,
        user_id: str,
        email: Email,
        classification: Classification,
        score: PriorityScore,
        processed_at: datetime,
    ) -> ClassifiedEmail:
        """Build the persisted record for *email*."""
        return cls(
            user_id=user_id,
            email_id=email.id,
            thread_id=email.thread_id,
            subject=email.subject,
            sender_email=email.sender.email,
            sender_name=email.sender.name,
            received_at=email.date,
            classification=classification,
            priority_score=score.score,
            is_high_priority=score.is_high_priority,
            processed_at=processed_at,
        )


class BatchSubmission(BaseModel):
    """Handle returned to the caller of a batch submission."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    total_emails: int
