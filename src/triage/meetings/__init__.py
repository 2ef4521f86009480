"""Meeting request detection, prioritization, and insights."""

from triage.meetings.detector import MeetingContent, detect_meeting
from triage.meetings.insights import (
    EventSuggestion,
    MeetingDetectionResult,
    MeetingInsights,
    MeetingSummary,
    build_event_suggestion,
    generate_meeting_insights,
    summarize_meetings,
)
from triage.meetings.priority import determine_meeting_priority

__all__ = [
    "EventSuggestion",
    "MeetingContent",
    "MeetingDetectionResult",
    "MeetingInsights",
    "MeetingSummary",
    "build_event_suggestion",
    "detect_meeting",
    "determine_meeting_priority",
    "generate_meeting_insights",
    "summarize_meetings",
]
