"""Domain enumerations for the triage pipeline."""

from enum import StrEnum


class EmailCategory(StrEnum):
    """Categories an email can be classified into."""

    WORK = "work"
    PERSONAL = "personal"
    FINANCIAL = "financial"
    OPPORTUNITY = "opportunity"
    NEWSLETTER = "newsletter"
    SPAM = "spam"
    OTHER = "other"


class SessionStatus(StrEnum):
    """Lifecycle states of a batch classification progress session."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class MeetingType(StrEnum):
    """Kinds of meeting a scheduling request can describe."""

    INTERVIEW = "interview"
    DEMO = "demo"
    MEETING = "meeting"
    CALL = "call"
    PRESENTATION = "presentation"
    OTHER = "other"


class MeetingPriority(StrEnum):
    """Coarse priority bucket for a detected meeting request."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ClassificationErrorKind(StrEnum):
    """Failure modes of a single classification call."""

    NO_CONTENT = "no_content"
    API_ERROR = "api_error"
    PARSE_ERROR = "parse_error"
    INTEGRATION_ERROR = "integration_error"
    TIMEOUT = "timeout"


class EventStatus(StrEnum):
    """Calendar event confirmation status as reported by the provider."""

    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    CANCELLED = "cancelled"


# Gmail system labels that carry ranking signal.
IMPORTANT_LABEL = "IMPORTANT"
STARRED_LABEL = "STARRED"
UNREAD_LABEL = "UNREAD"
