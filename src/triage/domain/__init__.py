"""Domain types, models, and errors for the triage pipeline."""

from triage.domain.errors import (
    BatchValidationError,
    ClassificationDisabledError,
    ClassificationError,
    InvalidTransitionError,
    SessionNotFoundError,
    StoreError,
    TriageError,
)
from triage.domain.models import (
    BatchSubmission,
    CalendarEvent,
    Classification,
    ClassifiedEmail,
    Email,
    EmailAddress,
    MeetingDetection,
    NotificationSettings,
    PriorityScore,
    ProgressSession,
    TimeSlot,
    TimeSlotSuggestion,
    UserPreferences,
    WorkingHours,
)
from triage.domain.types import (
    IMPORTANT_LABEL,
    STARRED_LABEL,
    ClassificationErrorKind,
    EmailCategory,
    EventStatus,
    MeetingPriority,
    MeetingType,
    SessionStatus,
)

__all__ = [
    "IMPORTANT_LABEL",
    "STARRED_LABEL",
    "BatchSubmission",
    "BatchValidationError",
    "CalendarEvent",
    "Classification",
    "ClassificationDisabledError",
    "ClassificationError",
    "ClassificationErrorKind",
    "ClassifiedEmail",
    "Email",
    "EmailAddress",
    "EmailCategory",
    "EventStatus",
    "InvalidTransitionError",
    "MeetingDetection",
    "MeetingPriority",
    "MeetingType",
    "NotificationSettings",
    "PriorityScore",
    "ProgressSession",
    "SessionNotFoundError",
    "SessionStatus",
    "StoreError",
    "TimeSlot",
    "TimeSlotSuggestion",
    "TriageError",
    "UserPreferences",
    "WorkingHours",
]
