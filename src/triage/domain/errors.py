"""Domain-specific exception classes for the triage pipeline."""

from __future__ import annotations

from triage.domain.types import ClassificationErrorKind, SessionStatus


class TriageError(Exception):
    """Base class for all domain errors in the triage pipeline."""


class InvalidTransitionError(TriageError):
    """Raised when an invalid session state transition is attempted.

    Attributes:
        current_state: The state the machine was in when the transition was attempted.
        event: The event that was rejected.
    """

    def __init__(self, current_state: SessionStatus, event: str) -> None:
        self.current_state = current_state
        self.event = event
        super().__init__(
            f"Cannot apply event '{event}' in state '{current_state}'"
        )


class BatchValidationError(TriageError):
    """Raised when a batch is rejected before any session is created."""


class ClassificationDisabledError(TriageError):
    """Raised when a user has turned email classification off in their preferences."""


class SessionNotFoundError(TriageError):
    """Raised when a progress session does not exist or has expired.

    Attributes:
        session_id: The identifier that was looked up.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Progress session '{session_id}' not found")


class StoreError(TriageError):
    """Raised when a backing store cannot be read or written."""


class ClassificationError(TriageError):
    """Raised when a single email cannot be classified.

    Attributes:
        kind: The failure mode.
        status: HTTP status reported by the provider, if any.
        latency_ms: Time spent before the failure, if measured.
    """

    def __init__(
        self,
        kind: ClassificationErrorKind,
        message: str,
        *,
        status: int | None = None,
        latency_ms: int | None = None,
    ) -> None:
        self.kind = kind
        self.status = status
        self.latency_ms = latency_ms
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Return True for transient failures worth another attempt."""
        if self.kind is ClassificationErrorKind.TIMEOUT:
            return True
        if self.kind is ClassificationErrorKind.API_ERROR:
            return self.status is None or self.status == 429 or self.status >= 500
        return False
