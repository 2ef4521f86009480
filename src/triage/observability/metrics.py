"""Prometheus metrics instrumentation for the triage service.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus the pipeline metrics.
- ``BATCHES_IN_FLIGHT``: Gauge tracking batch runs that have not yet finished.
- ``EMAILS_CLASSIFIED``: Counter of per-email outcomes (``success`` or an error kind).
- ``CLASSIFICATION_SECONDS``: Histogram of per-email classification latency.

Pipeline metrics are updated by the orchestrator as work happens.
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

BATCHES_IN_FLIGHT: Gauge = Gauge(
    "triage_batches_in_flight",
    "Number of batch classification runs currently executing",
)

EMAILS_CLASSIFIED: Counter = Counter(
    "triage_emails_classified_total",
    "Emails processed by batch runs, by outcome",
    ["outcome"],
)

CLASSIFICATION_SECONDS: Histogram = Histogram(
    "triage_classification_seconds",
    "Wall-clock time spent classifying a single email, retries included",
    buckets=(0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Health, readiness, and metrics endpoints are excluded from
    instrumentation; so is the long-lived progress event stream.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=[
            "/health",
            "/ready",
            "/metrics",
            "/api/classify/progress/{session_id}/events",
        ],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
