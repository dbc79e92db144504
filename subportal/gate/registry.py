"""Per-browser gate instances for the web app."""

from __future__ import annotations

import secrets
from collections import OrderedDict
from typing import Optional

from subportal.config.settings import GateConfig
from subportal.gate.machine import AccessGate
from subportal.gate.states import GateEvent, GateState
from subportal.utils.logging import get_logger
from subportal.utils.scheduling import Scheduler

logger = get_logger("gate.registry")


def new_gate_key() -> str:
    return secrets.token_urlsafe(16)


class GateRegistry:
    """
    Tracks the mounted gate of each browser and who has been admitted.

    Mounting a gate for a key unmounts the previous one and withdraws any
    earlier admission, so the upload form is only reachable straight after
    an accepted identifier.

    Both maps hold at most ``config.max_tracked_browsers`` keys. When a new
    key would exceed that, the least recently used one is dropped; an
    evicted browser simply gets a fresh gate on its next visit.
    """

    def __init__(self, config: GateConfig, scheduler: Scheduler) -> None:
        self.config = config
        self.scheduler = scheduler
        self.capacity = max(1, config.max_tracked_browsers)
        self._gates: OrderedDict[str, AccessGate] = OrderedDict()
        self._admitted: OrderedDict[str, None] = OrderedDict()

    def __len__(self) -> int:
        return len(self._gates)

    @property
    def admitted_count(self) -> int:
        return len(self._admitted)

    def mount(self, key: str) -> AccessGate:
        """Create a fresh gate for key."""
        self.unmount(key)
        self._admitted.pop(key, None)

        gate = AccessGate(self.config, self.scheduler)
        gate.subscribe(self._make_listener(key))
        self._gates[key] = gate
        self._evict_gates()
        logger.debug("gate_mounted", gates=len(self._gates))
        return gate

    def _evict_gates(self) -> None:
        while len(self._gates) > self.capacity:
            _, oldest = self._gates.popitem(last=False)
            oldest.unmount()
            logger.info("gate_evicted", gates=len(self._gates))

    def _admit(self, key: str) -> None:
        self._admitted[key] = None
        self._admitted.move_to_end(key)
        while len(self._admitted) > self.capacity:
            self._admitted.popitem(last=False)
            logger.info("admission_evicted", admitted=len(self._admitted))

    def _make_listener(self, key: str):
        def on_event(event: GateEvent, gate: AccessGate) -> None:
            if event == GateEvent.OUTCOME and gate.state == GateState.ACCEPTED:
                self._admit(key)

        return on_event

    def get(self, key: Optional[str]) -> Optional[AccessGate]:
        if not key:
            return None
        return self._gates.get(key)

    def get_or_mount(self, key: str) -> AccessGate:
        gate = self._gates.get(key)
        if gate is None or not gate.mounted:
            return self.mount(key)
        self._gates.move_to_end(key)
        return gate

    def unmount(self, key: Optional[str]) -> None:
        """Tear down the gate for key, if any. Admission is kept."""
        if not key:
            return
        gate = self._gates.pop(key, None)
        if gate is not None:
            gate.unmount()

    def is_admitted(self, key: Optional[str]) -> bool:
        return bool(key) and key in self._admitted

    def revoke(self, key: Optional[str]) -> None:
        if key:
            self._admitted.pop(key, None)

    def shutdown(self) -> None:
        """Unmount every gate."""
        for key in list(self._gates):
            self.unmount(key)
        self._admitted.clear()
