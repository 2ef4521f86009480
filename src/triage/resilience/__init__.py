"""Retry policy for classification calls."""

from triage.resilience.retry import build_retrying, retrying_classify

__all__ = ["build_retrying", "retrying_classify"]
