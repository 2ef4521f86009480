"""Ranking, filtering, and summary insights over a scored mailbox.

Builds on ``score_priority`` to turn a list of emails plus whatever
classifications are already stored into a sorted, filterable view and a
short list of human-readable recommendations.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from triage.domain.models import Classification, Email, UserPreferences
from triage.domain.types import EmailCategory
from triage.scoring.priority import score_priority

URGENT_MIN_URGENCY = 4
OVERDUE_AFTER = timedelta(hours=24)
FOCUS_BLOCK_THRESHOLD = 5
WORK_LOAD_RATIO = 3
UNCLASSIFIED_BACKLOG_THRESHOLD = 10
UNCLASSIFIED_KEY = "unclassified"


class SortKey(StrEnum):
    """Fields a ranked mailbox can be ordered by."""

    DATE = "date"
    URGENCY = "urgency"
    IMPORTANCE = "importance"
    PRIORITY_SCORE = "priority_score"


class ScoredEmail(BaseModel):
    """An email paired with its stored classification and computed score."""

    model_config = ConfigDict(frozen=True)

    email: Email
    classification: Classification | None = None
    priority_score: float
    is_high_priority: bool

    @computed_field  # type: ignore[prop-decorator]
    @property
    def needs_classification(self) -> bool:
        """Return True if no classification is stored for this email yet."""
        return self.classification is None


class PriorityFilter(BaseModel):
    """Optional constraints applied to a ranked mailbox.

    Every unset field is ignored.  ``include_unclassified`` lets emails
    without a classification pass the classification-based constraints.
    """

    model_config = ConfigDict(frozen=True)

    min_urgency: int | None = Field(default=None, ge=1, le=5)
    min_importance: int | None = Field(default=None, ge=1, le=5)
    category: EmailCategory | None = None
    action_required: bool | None = None
    include_unclassified: bool = True


class PriorityInsights(BaseModel):
    """Summary counts and recommendations for a ranked mailbox."""

    model_config = ConfigDict(frozen=True)

    summary: str
    recommendations: tuple[str, ...] = ()
    urgent_count: int = 0
    overdue_action_items: int = 0
    high_priority_count: int = 0
    action_required_count: int = 0
    unclassified_count: int = 0
    category_breakdown: dict[str, int] = Field(default_factory=dict)


def rank_emails(
    emails: Iterable[Email],
    classifications: Mapping[str, Classification],
    preferences: UserPreferences,
    *,
    now: datetime | None = None,
) -> list[ScoredEmail]:
    """Score every email and return them ordered by descending priority.

    Args:
        emails: Emails to rank.
        classifications: Stored classifications keyed by email id.
        preferences: The user's preferences.
        now: Evaluation time shared by every score.

    Returns:
        ``ScoredEmail`` entries, highest score first.
    """
    if now is None:
        now = datetime.now(tz=UTC)

    scored: list[ScoredEmail] = []
    for email in emails:
        classification = classifications.get(email.id)
        result = score_priority(email, classification, preferences, now=now)
        scored.append(
            ScoredEmail(
                email=email,
                classification=classification,
                priority_score=result.score,
                is_high_priority=result.is_high_priority,
            )
        )
    return sort_emails(scored, SortKey.PRIORITY_SCORE)


def _passes(item: ScoredEmail, criteria: PriorityFilter) -> bool:
    c = item.classification
    if c is None:
        has_constraint = (
            criteria.min_urgency is not None
            or criteria.min_importance is not None
            or criteria.category is not None
            or criteria.action_required is not None
        )
        return criteria.include_unclassified or not has_constraint

    if criteria.min_urgency is not None and c.urgency < criteria.min_urgency:
        return False
    if criteria.min_importance is not None and c.importance < criteria.min_importance:
        return False
    if criteria.category is not None and c.category is not criteria.category:
        return False
    if criteria.action_required is not None and c.action_required != criteria.action_required:
        return False
    return True


def filter_emails(scored: Iterable[ScoredEmail], criteria: PriorityFilter) -> list[ScoredEmail]:
    """Return the entries of *scored* that satisfy *criteria*, order preserved."""
    return [item for item in scored if _passes(item, criteria)]


def sort_emails(
    scored: Iterable[ScoredEmail],
    key: SortKey = SortKey.PRIORITY_SCORE,
    *,
    descending: bool = True,
) -> list[ScoredEmail]:
    """Sort ranked entries; unclassified emails count as 0 for urgency and importance."""
    if key is SortKey.DATE:
        return sorted(scored, key=lambda s: s.email.date, reverse=descending)
    if key is SortKey.URGENCY:
        return sorted(
            scored,
            key=lambda s: s.classification.urgency if s.classification else 0,
            reverse=descending,
        )
    if key is SortKey.IMPORTANCE:
        return sorted(
            scored,
            key=lambda s: s.classification.importance if s.classification else 0,
            reverse=descending,
        )
    return sorted(scored, key=lambda s: s.priority_score, reverse=descending)


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def summarize_priorities(
    scored: list[ScoredEmail],
    *,
    now: datetime | None = None,
) -> PriorityInsights:
    """Build counts and recommendations for a ranked mailbox.

    Args:
        scored: Ranked (and possibly filtered) entries.
        now: Reference time for the overdue check.

    Returns:
        A ``PriorityInsights`` summary.
    """
    if now is None:
        now = datetime.now(tz=UTC)

    classified = [s for s in scored if s.classification is not None]
    urgent = [s for s in classified if s.classification.urgency >= URGENT_MIN_URGENCY]
    actionable = [s for s in classified if s.classification.action_required]
    high_priority = [s for s in scored if s.is_high_priority]
    unclassified_count = len(scored) - len(classified)
    overdue = sum(1 for s in actionable if now - s.email.date > OVERDUE_AFTER)

    breakdown = Counter(
        str(s.classification.category) if s.classification else UNCLASSIFIED_KEY for s in scored
    )
    work = breakdown.get(EmailCategory.WORK.value, 0)
    personal = breakdown.get(EmailCategory.PERSONAL.value, 0)

    recommendations: list[str] = []
    if urgent:
        recommendations.append(
            f"You have {len(urgent)} urgent {_plural(len(urgent), 'email', 'emails')} "
            "requiring immediate attention"
        )
    if overdue:
        recommendations.append(
            f"{overdue} action {_plural(overdue, 'item is', 'items are')} "
            "overdue (>24 hours old)"
        )
    if len(high_priority) > FOCUS_BLOCK_THRESHOLD:
        recommendations.append(
            f"Consider processing {len(high_priority)} high-priority emails in focused time blocks"
        )
    if work > personal * WORK_LOAD_RATIO:
        recommendations.append(
            "Heavy work email load - consider setting boundaries or delegation"
        )
    if unclassified_count > UNCLASSIFIED_BACKLOG_THRESHOLD:
        recommendations.append(
            f"{unclassified_count} emails need AI classification for better prioritization"
        )

    summary = f"{len(scored)} emails processed"
    if high_priority:
        summary += f", {len(high_priority)} high-priority"
    if actionable:
        summary += f", {len(actionable)} requiring action"

    return PriorityInsights(
        summary=summary,
        recommendations=tuple(recommendations),
        urgent_count=len(urgent),
        overdue_action_items=overdue,
        high_priority_count=len(high_priority),
        action_required_count=len(actionable),
        unclassified_count=unclassified_count,
        category_breakdown=dict(breakdown),
    )
