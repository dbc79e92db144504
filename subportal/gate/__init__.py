"""Entry gate state machine.

    IDLE -> SUBMITTING -> ACCEPTED        (master pass, exact case)
                       -> ADMIN_REDIRECT  (admin trigger, any case)
                       -> REJECTED        (anything else; retry allowed)
                       -> LOCKED          (lock trigger, any case)
    LOCKED -> IDLE once the one-second countdown reaches zero
"""

from subportal.gate.machine import AccessGate
from subportal.gate.registry import GateRegistry, new_gate_key
from subportal.gate.states import (
    INVALID_ID_MESSAGE,
    TRANSITIONS,
    GateEvent,
    GateSnapshot,
    GateState,
    TransitionError,
    lockout_message,
)

__all__ = [
    "AccessGate",
    "GateRegistry",
    "new_gate_key",
    "GateState",
    "GateEvent",
    "GateSnapshot",
    "TransitionError",
    "TRANSITIONS",
    "INVALID_ID_MESSAGE",
    "lockout_message",
]
