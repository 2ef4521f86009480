"""Batch classification with progress tracking."""

from triage.batch.orchestrator import BatchOrchestrator, Classifier

__all__ = ["BatchOrchestrator", "Classifier"]
