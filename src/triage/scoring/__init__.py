"""Priority scoring, ranking, and mailbox insights."""

from triage.scoring.hours import is_within_working_hours, weekday_index
from triage.scoring.insights import (
    PriorityFilter,
    PriorityInsights,
    ScoredEmail,
    SortKey,
    filter_emails,
    rank_emails,
    sort_emails,
    summarize_priorities,
)
from triage.scoring.priority import HIGH_PRIORITY_THRESHOLD, compute_score, score_priority

__all__ = [
    "HIGH_PRIORITY_THRESHOLD",
    "PriorityFilter",
    "PriorityInsights",
    "ScoredEmail",
    "SortKey",
    "compute_score",
    "filter_emails",
    "is_within_working_hours",
    "rank_emails",
    "score_priority",
    "sort_emails",
    "summarize_priorities",
    "weekday_index",
]
