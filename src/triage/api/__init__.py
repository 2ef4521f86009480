"""HTTP API for the triage pipeline."""

from triage.api.routes import router

__all__ = ["router"]
