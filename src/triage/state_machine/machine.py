"""SessionStateMachine class with trigger and can_trigger."""

from __future__ import annotations

from triage.domain.errors import InvalidTransitionError
from triage.domain.types import SessionStatus
from triage.state_machine.transitions import TERMINAL_STATES, TRANSITIONS


class SessionStateMachine:
    """Finite state machine governing a progress session's lifecycle.

    Tracks the current status and validates transitions against the
    transition map.

    Usage::

        sm = SessionStateMachine()
        sm.trigger("start")      # -> RUNNING
        sm.trigger("complete")   # -> COMPLETED (terminal)
    """

    def __init__(self, initial_state: SessionStatus = SessionStatus.PENDING) -> None:
        self._state: SessionStatus = initial_state

    @property
    def state(self) -> SessionStatus:
        """Return the current session status."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Return True if the machine is in a terminal state."""
        return self._state in TERMINAL_STATES

    def can_trigger(self, event: str) -> bool:
        """Return True if *event* would be accepted from the current state."""
        return not self.is_terminal and (self._state, event) in TRANSITIONS

    def trigger(self, event: str) -> SessionStatus:
        """Apply an event to the current state and transition.

        Args:
            event: The event string (e.g. ``"start"``).

        Returns:
            The new state after the transition.

        Raises:
            InvalidTransitionError: If the transition is not allowed from
                the current state, or if the machine is in a terminal state.
        """
        if self.is_terminal:
            raise InvalidTransitionError(self._state, event)

        key = (self._state, event)
        if key not in TRANSITIONS:
            raise InvalidTransitionError(self._state, event)

        self._state = TRANSITIONS[key]
        return self._state
