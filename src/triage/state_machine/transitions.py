"""Transition map defining all valid (state, event) -> state mappings."""

from enum import StrEnum

from triage.domain.types import SessionStatus


class SessionEvent(StrEnum):
    """Events that can trigger progress session state transitions."""

    START = "start"
    COMPLETE = "complete"
    FAIL = "fail"
    CANCEL = "cancel"


# All valid (current_state, event_string) -> next_state mappings.
# Any pair not in this dict is an invalid transition.
TRANSITIONS: dict[tuple[SessionStatus, str], SessionStatus] = {
    # From PENDING
    (SessionStatus.PENDING, SessionEvent.START): SessionStatus.RUNNING,
    (SessionStatus.PENDING, SessionEvent.FAIL): SessionStatus.FAILED,
    (SessionStatus.PENDING, SessionEvent.CANCEL): SessionStatus.CANCELLED,
    # From RUNNING
    (SessionStatus.RUNNING, SessionEvent.COMPLETE): SessionStatus.COMPLETED,
    (SessionStatus.RUNNING, SessionEvent.FAIL): SessionStatus.FAILED,
    (SessionStatus.RUNNING, SessionEvent.CANCEL): SessionStatus.CANCELLED,
}

# States that reject all events -- no outgoing transitions allowed.
TERMINAL_STATES: frozenset[SessionStatus] = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.CANCELLED}
)
