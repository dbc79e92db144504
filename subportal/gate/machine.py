"""Entry gate state machine.

The gate is a UX flow, not a security control: it compares the typed
identifier against fixed literals. The master pass is matched exactly;
the lock and admin triggers ignore case.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from subportal.config.settings import GateConfig
from subportal.gate.states import (
    INVALID_ID_MESSAGE,
    TRANSITIONS,
    GateEvent,
    GateSnapshot,
    GateState,
    TransitionError,
    lockout_message,
)
from subportal.utils.logging import get_logger
from subportal.utils.scheduling import ScheduledTask, Scheduler

logger = get_logger("gate.machine")

GateListener = Callable[[GateEvent, "AccessGate"], None]

TICK_SECONDS = 1.0


class AccessGate:
    """
    Gate deciding whether a visitor proceeds, is locked out, or is sent to
    the admin login.

    One instance lives for one mount of the entry screen. All waiting goes
    through the scheduler; the single pending handle is cancelled by
    unmount(), after which late callbacks do nothing.
    """

    def __init__(self, config: GateConfig, scheduler: Scheduler) -> None:
        """
        Initialize the gate in IDLE.

        Args:
            config: Trigger literals and timings
            scheduler: Timer source
        """
        self.config = config
        self.scheduler = scheduler

        self.state = GateState.IDLE
        self.attempted_id = ""
        self.lock_remaining_seconds = 0
        self.message = ""

        self._pending: Optional[ScheduledTask] = None
        self._mounted = True
        self._listeners: list[GateListener] = []

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def locked(self) -> bool:
        return self.state == GateState.LOCKED

    @property
    def input_enabled(self) -> bool:
        return self._mounted and self.state.accepts_input()

    def can_submit(self, raw: Optional[str] = None) -> bool:
        """Whether the submit control is enabled for raw (or the last typed id)."""
        identifier = self.attempted_id if raw is None else raw
        return self.input_enabled and bool(identifier)

    def subscribe(self, listener: GateListener) -> Callable[[], None]:
        """
        Register a listener for gate events.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: GateEvent) -> None:
        for listener in list(self._listeners):
            listener(event, self)

    def _transition(self, new_state: GateState) -> None:
        if new_state not in TRANSITIONS.get(self.state, set()):
            raise TransitionError(self.state, new_state)

        old_state = self.state
        self.state = new_state
        logger.debug(
            "gate_transition",
            from_state=old_state.name,
            to_state=new_state.name,
        )

    def submit_identifier(self, raw: str) -> bool:
        """
        Start evaluating an identifier.

        The decision is made after the configured login latency. Empty
        input, a running lockout or a submission already in flight make this
        a no-op.

        Args:
            raw: Identifier exactly as typed

        Returns:
            True if a submission was started
        """
        if not self._mounted:
            return False

        if self.input_enabled:
            self.attempted_id = raw

        if not self.can_submit(raw):
            logger.debug(
                "gate_submit_ignored",
                state=self.state.name,
                empty=not raw,
            )
            return False

        self._transition(GateState.SUBMITTING)
        self.message = ""
        self._pending = self.scheduler.call_later(
            self.config.login_latency, self._resolve, raw
        )
        return True

    def _classify(self, raw: str) -> GateState:
        if raw == self.config.master_pass:
            return GateState.ACCEPTED
        lowered = raw.lower()
        if lowered == self.config.lock_trigger.lower():
            return GateState.LOCKED
        if lowered == self.config.admin_trigger.lower():
            return GateState.ADMIN_REDIRECT
        return GateState.REJECTED

    def _resolve(self, raw: str) -> None:
        self._pending = None
        if not self._mounted:
            return

        outcome = self._classify(raw)
        self._transition(outcome)

        if outcome == GateState.LOCKED:
            self.lock_remaining_seconds = self.config.lockout_seconds
            self.message = lockout_message(self.config.lockout_seconds)
            self._pending = self.scheduler.call_later(TICK_SECONDS, self._tick)
        elif outcome == GateState.REJECTED:
            self.message = INVALID_ID_MESSAGE

        logger.info("gate_outcome", outcome=outcome.name)
        self._emit(GateEvent.OUTCOME)

    def _tick(self) -> None:
        self._pending = None
        if not self._mounted or self.state != GateState.LOCKED:
            return

        self.lock_remaining_seconds -= 1

        if self.lock_remaining_seconds > 0:
            self._pending = self.scheduler.call_later(TICK_SECONDS, self._tick)
            self._emit(GateEvent.TICK)
            return

        self.lock_remaining_seconds = 0
        self.message = ""
        self._transition(GateState.IDLE)
        logger.info("gate_unlocked")
        self._emit(GateEvent.UNLOCKED)

    def unmount(self) -> None:
        """Tear down: cancel the pending timer and ignore late callbacks."""
        if not self._mounted:
            return

        self._mounted = False
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

        logger.debug("gate_unmounted", state=self.state.name)
        self._emit(GateEvent.UNMOUNTED)
        self._listeners.clear()

    def snapshot(self) -> GateSnapshot:
        return GateSnapshot(
            state=self.state,
            attempted_id=self.attempted_id,
            lock_remaining_seconds=self.lock_remaining_seconds,
            message=self.message,
            input_enabled=self.input_enabled,
            can_submit=self.can_submit(),
        )

    async def submit_and_wait(self, raw: str) -> Optional[GateState]:
        """
        Submit and wait on the running loop for the outcome.

        Returns:
            The outcome state, or None if the submit was ignored or the gate
            was unmounted first
        """
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def on_event(event: GateEvent, gate: "AccessGate") -> None:
            if future.done():
                return
            if event == GateEvent.OUTCOME:
                future.set_result(gate.state)
            elif event == GateEvent.UNMOUNTED:
                future.set_result(None)

        unsubscribe = self.subscribe(on_event)
        try:
            if not self.submit_identifier(raw):
                return None
            return await future
        finally:
            unsubscribe()
