"""Bounded retry of classification calls with tenacity.

Retries are a configuration knob (``classification_retries``, default 0).
Only transient failures are retried: timeouts, rate limits, server errors,
and connection errors.  The original exception is re-raised once attempts
are exhausted so the caller counts the email as failed.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from triage.domain.errors import ClassificationError

logger = structlog.get_logger()

T = TypeVar("T")


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ClassificationError) and exc.is_retryable


def _before_sleep_log(retry_state: RetryCallState) -> None:
    """Log a warning before each retry attempt.

    Args:
        retry_state: Tenacity retry state with attempt info and exception.
    """
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying classification",
        attempt=retry_state.attempt_number,
        kind=getattr(exception, "kind", None),
        wait=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def build_retrying(
    retries: int,
    *,
    initial_wait: float = 1.0,
    max_wait: float = 10.0,
) -> AsyncRetrying:
    """Create the tenacity controller used for one classification.

    Args:
        retries: Extra attempts after the first; 0 disables retrying.
        initial_wait: First backoff interval in seconds.
        max_wait: Backoff ceiling in seconds.

    Returns:
        An ``AsyncRetrying`` configured with exponential backoff and jitter,
        a warning log before each retry, and ``reraise=True``.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential_jitter(initial=initial_wait, max=max_wait, jitter=1),
        retry=retry_if_exception(_is_retryable),
        before_sleep=_before_sleep_log,
        reraise=True,
    )


async def retrying_classify(
    fn: Callable[[], Awaitable[T]],
    retries: int,
    *,
    initial_wait: float = 1.0,
    max_wait: float = 10.0,
) -> T:
    """Await *fn* with up to *retries* retries on transient classification errors.

    Args:
        fn: Zero-argument coroutine factory performing one attempt.
        retries: Extra attempts after the first.
        initial_wait: First backoff interval in seconds.
        max_wait: Backoff ceiling in seconds.

    Returns:
        The result of the first successful attempt.

    Raises:
        ClassificationError: The last failure when every attempt fails or
            the failure is not retryable.
    """
    retrying = build_retrying(retries, initial_wait=initial_wait, max_wait=max_wait)
    return await retrying(fn)
