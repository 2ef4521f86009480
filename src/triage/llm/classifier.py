"""Email classification via the Anthropic Messages API.

``EmailClassifier`` is the pipeline's classification client: it renders the
prompt for one email, calls the model under a shared concurrency ceiling,
validates the JSON answer, and maps every SDK failure onto a
``ClassificationError`` so callers handle a single exception type.
"""

from __future__ import annotations

import asyncio
import time

import anthropic
import structlog
from anthropic import AsyncAnthropic

from triage.domain.errors import ClassificationError
from triage.domain.models import Email, EmailAddress, UserPreferences
from triage.domain.types import UNREAD_LABEL, ClassificationErrorKind
from triage.llm.client import CLASSIFICATION_MODEL, DEFAULT_MAX_TOKENS
from triage.llm.models import ClassificationContext, ClassificationResult
from triage.llm.prompts import (
    CLASSIFICATION_SYSTEM_PROMPT,
    CLASSIFICATION_USER_PROMPT,
    RECENT_CLASSIFICATIONS_SECTION,
)
from triage.llm.validation import parse_classification_response
from triage.meetings.detector import strip_html

logger = structlog.get_logger()

_WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
_MAX_RECIPIENTS = 3
_MAX_BODY_CHARS = 2000
_MAX_RECENT = 5


def _format_address(address: EmailAddress) -> str:
    return f"{address.name} ({address.email})" if address.name else address.email


def has_content(email: Email) -> bool:
    """Return True when the email carries any text worth classifying."""
    candidates = (email.subject, email.snippet, email.body_text)
    if any(c and c.strip() for c in candidates):
        return True
    return bool(email.body_html and strip_html(email.body_html).strip())


def build_system_prompt(context: ClassificationContext) -> str:
    """Render the system prompt for *context*."""
    preferences: UserPreferences = context.preferences
    hours = preferences.working_hours
    recent = ""
    if context.recent_classifications:
        entries = "\n".join(
            f"- Category: {c.category}, Urgency: {c.urgency}, "
            f"Importance: {c.importance}, Action: {str(c.action_required).lower()}"
            for c in context.recent_classifications[:_MAX_RECENT]
        )
        recent = RECENT_CLASSIFICATIONS_SECTION.format(entries=entries)
    return CLASSIFICATION_SYSTEM_PROMPT.format(
        priority_categories=", ".join(sorted(preferences.priority_categories)) or "none",
        working_hours_start=hours.start,
        working_hours_end=hours.end,
        timezone=hours.timezone,
        working_days=", ".join(_WEEKDAY_NAMES[d] for d in sorted(hours.days)),
        recent_classifications=recent,
    )


def build_user_prompt(email: Email) -> str:
    """Render the user prompt describing *email*.

    Only the first three recipients are listed, the body is truncated to
    2000 characters, and provider-internal labels are dropped.
    """
    recipients = ", ".join(_format_address(r) for r in email.recipients[:_MAX_RECIPIENTS])
    extra = len(email.recipients) - _MAX_RECIPIENTS
    if extra > 0:
        recipients += f" (and {extra} others)"

    full_text = ""
    body = email.body_text
    if body and body != email.snippet and len(body) > len(email.snippet):
        ellipsis = "..." if len(body) > _MAX_BODY_CHARS else ""
        full_text = f"\n\nFULL TEXT:\n{body[:_MAX_BODY_CHARS]}{ellipsis}"

    relevant_labels = sorted(
        label
        for label in email.labels
        if not label.startswith("Label_") and label != UNREAD_LABEL
    )
    labels = f"\n\nLABELS: {', '.join(relevant_labels)}" if relevant_labels else ""

    status = "Read" if email.is_read else "Unread"
    if email.is_important:
        status += ", Important"

    return CLASSIFICATION_USER_PROMPT.format(
        sender=_format_address(email.sender),
        recipients=recipients or "(none)",
        date=email.date.isoformat(),
        subject=email.subject or "(no subject)",
        snippet=email.snippet,
        full_text=full_text,
        labels=labels,
        status=status,
    )


class EmailClassifier:
    """Classify single emails with Claude.

    All calls made through one instance share an ``asyncio.Semaphore`` so the
    number of in-flight requests never exceeds *concurrency*, no matter how
    many batches are running.

    Args:
        client: An ``AsyncAnthropic`` instance (or compatible mock).
        model: The Anthropic model ID to use.
        max_tokens: Response token ceiling.
        concurrency: Maximum number of concurrent model calls.
    """

    def __init__(
        self,
        client: AsyncAnthropic,
        *,
        model: str = CLASSIFICATION_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        concurrency: int = 1,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens
        self._semaphore = asyncio.Semaphore(concurrency)

    @property
    def model(self) -> str:
        return self._model

    async def classify(
        self,
        email: Email,
        context: ClassificationContext | None = None,
    ) -> ClassificationResult:
        """Classify one email.

        Args:
            email: The email to classify.
            context: Preferences and recent classifications for the prompt.
                Defaults to an empty context with default preferences.

        Returns:
            A ``ClassificationResult`` with the validated classification.

        Raises:
            ClassificationError: ``no_content`` for an empty email,
                ``timeout`` when the SDK times out, ``api_error`` for
                provider or connection failures, ``integration_error`` for
                any other SDK error, ``parse_error`` for a malformed answer.
        """
        if not has_content(email):
            raise ClassificationError(
                ClassificationErrorKind.NO_CONTENT, f"Email {email.id} has no content"
            )
        context = context or ClassificationContext()

        started = time.perf_counter()
        async with self._semaphore:
            try:
                response = await self._client.messages.create(
                    model=self._model,
                    max_tokens=self._max_tokens,
                    system=build_system_prompt(context),
                    messages=[{"role": "user", "content": build_user_prompt(email)}],
                )
            except anthropic.APITimeoutError as exc:
                raise ClassificationError(
                    ClassificationErrorKind.TIMEOUT,
                    "Classification request timed out",
                    latency_ms=_elapsed_ms(started),
                ) from exc
            except anthropic.APIStatusError as exc:
                raise ClassificationError(
                    ClassificationErrorKind.API_ERROR,
                    f"Anthropic API returned {exc.status_code}: {exc.message}",
                    status=exc.status_code,
                    latency_ms=_elapsed_ms(started),
                ) from exc
            except anthropic.APIConnectionError as exc:
                raise ClassificationError(
                    ClassificationErrorKind.API_ERROR,
                    f"Could not reach Anthropic API: {exc}",
                    latency_ms=_elapsed_ms(started),
                ) from exc
            except anthropic.APIError as exc:
                raise ClassificationError(
                    ClassificationErrorKind.INTEGRATION_ERROR,
                    f"Anthropic integration failure: {exc}",
                    latency_ms=_elapsed_ms(started),
                ) from exc

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        try:
            classification, suggestions, breakdown = parse_classification_response(text)
        except ClassificationError as exc:
            exc.latency_ms = _elapsed_ms(started)
            raise

        tokens_used = response.usage.input_tokens + response.usage.output_tokens
        elapsed = _elapsed_ms(started)
        logger.debug(
            "Email classified",
            email_id=email.id,
            category=classification.category,
            urgency=classification.urgency,
            processing_time_ms=elapsed,
            tokens_used=tokens_used,
        )
        return ClassificationResult(
            classification=classification,
            suggestions=suggestions,
            confidence_breakdown=breakdown,
            processing_time_ms=elapsed,
            tokens_used=tokens_used,
            model=self._model,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
