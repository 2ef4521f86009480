"""Additive priority scoring for classified and unclassified emails.

Mailbox signals and classification fields each contribute fixed points; the
sum is clamped to ``[MIN_SCORE, MAX_SCORE]``.  The scorer is pure: the only
ambient input is the evaluation time, which callers may pin via ``now``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from triage.domain.models import Classification, Email, PriorityScore, UserPreferences
from triage.domain.types import IMPORTANT_LABEL, STARRED_LABEL, EmailCategory
from triage.scoring.hours import is_within_working_hours

MIN_SCORE = 0.0
MAX_SCORE = 10.0

# Scores at or above this are surfaced as high priority.  Not user-configurable.
HIGH_PRIORITY_THRESHOLD = 7.0

# Mailbox signals
IMPORTANT_FLAG_POINTS = 2.0
IMPORTANT_LABEL_POINTS = 2.0
STARRED_LABEL_POINTS = 1.0

# Classification signals
URGENCY_WEIGHT = 1.5
IMPORTANCE_WEIGHT = 1.0
ACTION_REQUIRED_POINTS = 3.0
PRIORITY_CATEGORY_POINTS = 2.0
RECENT_URGENT_POINTS = 2.0
RECENT_URGENT_MIN_URGENCY = 4
RECENT_WINDOW = timedelta(hours=24)
OPPORTUNITY_POINTS = 3.0
WORK_IN_HOURS_POINTS = 1.5

# Unclassified emails sit mid-table instead of sinking to the bottom.
UNCLASSIFIED_POINTS = 3.0


def _clamp(value: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def is_recent(email: Email, now: datetime) -> bool:
    """Return True if *email* was received less than 24 hours before *now*."""
    return now - email.date < RECENT_WINDOW


def compute_score(
    email: Email,
    classification: Classification | None,
    preferences: UserPreferences,
    *,
    now: datetime | None = None,
) -> float:
    """Compute the clamped 0-10 priority score for an email.

    Args:
        email: The email being ranked.
        classification: Its classification, or ``None`` if not yet classified.
        preferences: The user's priority categories and working hours.
        now: Evaluation time.  Defaults to the current UTC time.

    Returns:
        The score, clamped to ``[0, 10]``.
    """
    if now is None:
        now = datetime.now(tz=UTC)

    total = 0.0

    if email.is_important:
        total += IMPORTANT_FLAG_POINTS
    if IMPORTANT_LABEL in email.labels:
        total += IMPORTANT_LABEL_POINTS
    if STARRED_LABEL in email.labels:
        total += STARRED_LABEL_POINTS

    if classification is None:
        return _clamp(total + UNCLASSIFIED_POINTS)

    total += classification.urgency * URGENCY_WEIGHT
    total += classification.importance * IMPORTANCE_WEIGHT

    if classification.action_required:
        total += ACTION_REQUIRED_POINTS

    if classification.category in preferences.priority_categories:
        total += PRIORITY_CATEGORY_POINTS

    if classification.urgency >= RECENT_URGENT_MIN_URGENCY and is_recent(email, now):
        total += RECENT_URGENT_POINTS

    if classification.category is EmailCategory.OPPORTUNITY:
        total += OPPORTUNITY_POINTS

    if classification.category is EmailCategory.WORK and is_within_working_hours(
        preferences.working_hours, now
    ):
        total += WORK_IN_HOURS_POINTS

    return _clamp(total)


def score_priority(
    email: Email,
    classification: Classification | None,
    preferences: UserPreferences,
    *,
    now: datetime | None = None,
) -> PriorityScore:
    """Score an email and flag it as high priority when it reaches the threshold.

    Args:
        email: The email being ranked.
        classification: Its classification, or ``None``.
        preferences: The user's preferences.
        now: Evaluation time.  Defaults to the current UTC time.

    Returns:
        A ``PriorityScore`` with ``is_high_priority`` set when the score is
        at least ``HIGH_PRIORITY_THRESHOLD``.
    """
    score = compute_score(email, classification, preferences, now=now)
    return PriorityScore(score=score, is_high_priority=score >= HIGH_PRIORITY_THRESHOLD)
