"""Shared pytest fixtures for the triage test suite."""

from datetime import UTC, datetime

import pytest

from triage.domain.models import (
    Classification,
    Email,
    EmailAddress,
    UserPreferences,
    WorkingHours,
)
from triage.domain.types import EmailCategory

# Wednesday 2025-01-15, 11:00 UTC: inside default working hours.
FIXED_NOW = datetime(2025, 1, 15, 11, 0, tzinfo=UTC)


def make_email(
    email_id: str = "msg-1",
    *,
    subject: str | None = "Quarterly planning",
    body_text: str | None = "Let's review the plan for next quarter.",
    received: datetime | None = None,
    **overrides: object,
) -> Email:
    """Build an ``Email`` with sensible defaults; keyword overrides win."""
    fields: dict[str, object] = {
        "id": email_id,
        "thread_id": f"thread-{email_id}",
        "subject": subject,
        "sender": EmailAddress(email="alice@example.com", name="Alice Smith"),
        "recipients": (EmailAddress(email="me@example.com", name="Me"),),
        "date": received or datetime(2025, 1, 15, 9, 30, tzinfo=UTC),
        "snippet": (body_text or "")[:60],
        "body_text": body_text,
    }
    fields.update(overrides)
    return Email(**fields)  # type: ignore[arg-type]


@pytest.fixture
def anyio_backend() -> str:
    """Run ``@pytest.mark.anyio`` tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def fixed_now() -> datetime:
    """A Wednesday late morning in UTC."""
    return FIXED_NOW


@pytest.fixture
def sample_email() -> Email:
    """A representative work email received earlier on ``fixed_now``'s day."""
    return make_email()


@pytest.fixture
def sample_classification() -> Classification:
    """A representative urgent work classification."""
    return Classification(
        urgency=5,
        importance=4,
        action_required=True,
        category=EmailCategory.WORK,
        confidence=0.9,
        reasoning="Direct request with a same-day deadline",
    )


@pytest.fixture
def sample_preferences() -> UserPreferences:
    """Default preferences: work and financial are priority categories, 09:00-17:00 Mon-Fri."""
    return UserPreferences(
        priority_categories=frozenset({EmailCategory.WORK, EmailCategory.FINANCIAL}),
        working_hours=WorkingHours(start="09:00", end="17:00", days=frozenset({1, 2, 3, 4, 5})),
    )


@pytest.fixture
def email_factory():  # type: ignore[no-untyped-def]
    """Factory fixture wrapping ``make_email`` for tests that need several emails."""
    return make_email
