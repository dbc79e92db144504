"""State definitions for the entry gate."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

INVALID_ID_MESSAGE = "Invalid ID. Please try again."


def lockout_message(seconds: int) -> str:
    return f"Please wait {seconds} seconds..."


class GateState(Enum):
    """States of the entry gate."""

    IDLE = auto()
    SUBMITTING = auto()

    # Outcomes of a submission
    ACCEPTED = auto()
    LOCKED = auto()
    ADMIN_REDIRECT = auto()
    REJECTED = auto()

    def is_terminal(self) -> bool:
        """The gate is done once it has sent the user elsewhere."""
        return self in (GateState.ACCEPTED, GateState.ADMIN_REDIRECT)

    def accepts_input(self) -> bool:
        """Whether the identifier field is editable."""
        return self in (GateState.IDLE, GateState.REJECTED)


TRANSITIONS: dict[GateState, set[GateState]] = {
    GateState.IDLE: {GateState.SUBMITTING},
    GateState.SUBMITTING: {
        GateState.ACCEPTED,
        GateState.LOCKED,
        GateState.ADMIN_REDIRECT,
        GateState.REJECTED,
    },
    GateState.REJECTED: {GateState.SUBMITTING},  # Retry straight away
    GateState.LOCKED: {GateState.IDLE},  # Only when the countdown runs out
    GateState.ACCEPTED: set(),
    GateState.ADMIN_REDIRECT: set(),
}


class TransitionError(Exception):
    """Invalid state transition."""

    def __init__(self, from_state: GateState, to_state: GateState) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid transition: {from_state.name} -> {to_state.name}"
        )


class GateEvent(Enum):
    """Notifications published by the gate."""

    OUTCOME = auto()  # A submission resolved
    TICK = auto()  # Lockout countdown decremented
    UNLOCKED = auto()  # Countdown reached zero
    UNMOUNTED = auto()


@dataclass(frozen=True)
class GateSnapshot:
    """Point-in-time view of a gate, for rendering."""

    state: GateState
    attempted_id: str
    lock_remaining_seconds: int
    message: str
    input_enabled: bool
    can_submit: bool

    @property
    def locked(self) -> bool:
        return self.state == GateState.LOCKED

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON responses."""
        return {
            "state": self.state.name,
            "attempted_id": self.attempted_id,
            "locked": self.locked,
            "lock_remaining_seconds": self.lock_remaining_seconds,
            "message": self.message,
            "input_enabled": self.input_enabled,
            "can_submit": self.can_submit,
        }
