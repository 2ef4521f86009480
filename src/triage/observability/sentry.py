"""Sentry error reporting bridged from structlog.

``init_sentry(dsn)`` starts the SDK, or does nothing for an empty DSN, and
``get_sentry_processor()`` returns the structlog processor that forwards
ERROR-level events (including failed batch runs) to Sentry.
"""

from __future__ import annotations

import logging

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor


def init_sentry(dsn: str, *, environment: str = "development") -> None:
    """Initialize the Sentry SDK for *dsn*.

    Args:
        dsn: Sentry DSN string.  Empty string disables Sentry.
        environment: Environment tag attached to every event.
    """
    if not dsn:
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        integrations=[
            # structlog-sentry does the capturing; stdlib logging must not.
            LoggingIntegration(event_level=None, level=None),
        ],
    )


def get_sentry_processor() -> structlog.types.Processor:
    """Return a structlog processor that forwards ERROR events to Sentry.

    Place it after ``add_log_level`` and before the renderer.
    """
    return SentryProcessor(event_level=logging.ERROR)
