"""Tests for Prometheus metrics endpoint and pipeline metrics."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from triage.observability.metrics import (
    BATCHES_IN_FLIGHT,
    CLASSIFICATION_SECONDS,
    EMAILS_CLASSIFIED,
    setup_metrics,
)


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Reset gauge values between tests.

    Prometheus collectors are registered globally, so values are reset rather
    than collectors re-created.  Counters cannot be reset; tests compare
    relative increments.
    """
    BATCHES_IN_FLIGHT.set(0)
    yield
    BATCHES_IN_FLIGHT.set(0)


@pytest.fixture()
def metrics_app() -> FastAPI:
    """Create a minimal FastAPI app with Prometheus instrumentation."""
    app = FastAPI()

    @app.get("/hello")
    async def hello():
        return {"msg": "hello"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready():
        return {"status": "ready"}

    setup_metrics(app)
    return app


@pytest.fixture()
def metrics_client(metrics_app: FastAPI) -> TestClient:
    """TestClient for the metrics-enabled app."""
    return TestClient(metrics_app)


def _metric_value(text: str, sample: str) -> float:
    """Extract the numeric value of one sample line from Prometheus text output."""
    for line in text.splitlines():
        name, _, value = line.rpartition(" ")
        if name == sample:
            return float(value)
    raise ValueError(f"Sample {sample} not found in output")


def test_metrics_endpoint_returns_prometheus_format(metrics_client: TestClient) -> None:
    """GET /metrics returns 200 with HTTP and pipeline metrics."""
    metrics_client.get("/hello")
    resp = metrics_client.get("/metrics")
    assert resp.status_code == 200
    body = resp.text
    assert "http_request" in body
    assert "triage_batches_in_flight" in body
    assert "triage_classification_seconds" in body


def test_excluded_handlers_not_in_metrics(metrics_client: TestClient) -> None:
    """/health and /ready do not appear as handler labels."""
    metrics_client.get("/health")
    metrics_client.get("/ready")
    body = metrics_client.get("/metrics").text
    lines = [
        line
        for line in body.splitlines()
        if "http_request_duration" in line and 'handler="' in line
    ]
    for line in lines:
        assert '/health"' not in line, f"/health found in metrics: {line}"
        assert '/ready"' not in line, f"/ready found in metrics: {line}"


def test_batches_in_flight_gauge(metrics_client: TestClient) -> None:
    """BATCHES_IN_FLIGHT is reflected in /metrics output."""
    BATCHES_IN_FLIGHT.inc()
    BATCHES_IN_FLIGHT.inc()
    assert _metric_value(metrics_client.get("/metrics").text, "triage_batches_in_flight") == 2.0

    BATCHES_IN_FLIGHT.dec()
    assert _metric_value(metrics_client.get("/metrics").text, "triage_batches_in_flight") == 1.0


def test_emails_classified_counter_by_outcome(metrics_client: TestClient) -> None:
    """EMAILS_CLASSIFIED increments are tracked per outcome label."""
    sample = 'triage_emails_classified_total{outcome="parse_error"}'
    EMAILS_CLASSIFIED.labels(outcome="parse_error").inc()
    initial = _metric_value(metrics_client.get("/metrics").text, sample)

    EMAILS_CLASSIFIED.labels(outcome="parse_error").inc()
    assert _metric_value(metrics_client.get("/metrics").text, sample) == initial + 1.0


def test_classification_histogram_observes(metrics_client: TestClient) -> None:
    """CLASSIFICATION_SECONDS observations show up in the count sample."""
    sample = "triage_classification_seconds_count"
    before = _metric_value(metrics_client.get("/metrics").text, sample)
    CLASSIFICATION_SECONDS.observe(0.3)
    assert _metric_value(metrics_client.get("/metrics").text, sample) == before + 1.0
