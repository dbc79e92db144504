"""Tests for the entry gate state machine and registry."""

import asyncio

import pytest

from subportal.config.settings import GateConfig
from subportal.gate import (
    INVALID_ID_MESSAGE,
    TRANSITIONS,
    AccessGate,
    GateEvent,
    GateRegistry,
    GateState,
)
from subportal.utils.scheduling import AsyncioScheduler


@pytest.fixture
def gate(scheduler):
    return AccessGate(GateConfig(), scheduler)


def resolve(gate, scheduler, raw):
    assert gate.submit_identifier(raw)
    scheduler.advance(1.0)
    return gate.state


# =============================================================================
# Classification
# =============================================================================


class TestClassification:
    def test_master_pass_accepted(self, gate, scheduler):
        assert resolve(gate, scheduler, "RW0.01") == GateState.ACCEPTED
        assert gate.message == ""

    def test_master_pass_is_case_sensitive(self, gate, scheduler):
        assert resolve(gate, scheduler, "rw0.01") == GateState.REJECTED
        assert gate.message == INVALID_ID_MESSAGE

    @pytest.mark.parametrize("raw", ["cover", "COVER", "Cover"])
    def test_lock_trigger_ignores_case(self, gate, scheduler, raw):
        assert resolve(gate, scheduler, raw) == GateState.LOCKED

    @pytest.mark.parametrize("raw", ["admin", "ADMIN", "Admin"])
    def test_admin_trigger_ignores_case(self, gate, scheduler, raw):
        assert resolve(gate, scheduler, raw) == GateState.ADMIN_REDIRECT

    def test_whitespace_is_not_trimmed(self, gate, scheduler):
        assert resolve(gate, scheduler, " RW0.01") == GateState.REJECTED

    def test_unknown_id_rejected(self, gate, scheduler):
        assert resolve(gate, scheduler, "nope") == GateState.REJECTED
        assert gate.message == "Invalid ID. Please try again."


# =============================================================================
# Submission lifecycle
# =============================================================================


class TestSubmission:
    def test_decision_waits_for_latency(self, gate, scheduler):
        assert gate.submit_identifier("RW0.01")
        assert gate.state == GateState.SUBMITTING
        assert not gate.input_enabled
        assert not gate.can_submit()

        scheduler.advance(0.5)
        assert gate.state == GateState.SUBMITTING

        scheduler.advance(0.5)
        assert gate.state == GateState.ACCEPTED

    def test_empty_input_is_noop(self, gate, scheduler):
        assert not gate.submit_identifier("")
        assert gate.state == GateState.IDLE
        assert scheduler.pending == 0

    def test_second_submit_while_in_flight_ignored(self, gate, scheduler):
        assert gate.submit_identifier("nope")
        assert not gate.submit_identifier("RW0.01")
        assert scheduler.pending == 1

        scheduler.advance(1.0)
        assert gate.state == GateState.REJECTED

    def test_retry_after_rejection(self, gate, scheduler):
        resolve(gate, scheduler, "nope")
        assert gate.input_enabled
        assert gate.can_submit()

        assert resolve(gate, scheduler, "RW0.01") == GateState.ACCEPTED

    def test_outcome_event_emitted(self, gate, scheduler):
        events = []
        gate.subscribe(lambda event, g: events.append((event, g.state)))

        resolve(gate, scheduler, "admin")

        assert events == [(GateEvent.OUTCOME, GateState.ADMIN_REDIRECT)]

    def test_unsubscribe(self, gate, scheduler):
        events = []
        unsubscribe = gate.subscribe(lambda event, g: events.append(event))
        unsubscribe()

        resolve(gate, scheduler, "nope")

        assert events == []


# =============================================================================
# Lockout countdown
# =============================================================================


class TestLockout:
    def test_lockout_counts_down_then_unlocks(self, gate, scheduler):
        resolve(gate, scheduler, "cover")

        assert gate.locked
        assert gate.lock_remaining_seconds == 15
        assert gate.message == "Please wait 15 seconds..."
        assert not gate.input_enabled

        scheduler.advance(14.0)
        assert gate.locked
        assert gate.lock_remaining_seconds == 1

        scheduler.advance(1.0)
        assert gate.state == GateState.IDLE
        assert gate.lock_remaining_seconds == 0
        assert gate.message == ""
        assert gate.input_enabled

    def test_submit_during_lockout_ignored(self, gate, scheduler):
        resolve(gate, scheduler, "cover")

        assert not gate.submit_identifier("RW0.01")
        assert gate.locked
        assert gate.attempted_id == "cover"

    def test_tick_events(self, gate, scheduler):
        events = []
        gate.subscribe(lambda event, g: events.append(event))

        resolve(gate, scheduler, "cover")
        scheduler.advance(15.0)

        assert events.count(GateEvent.TICK) == 14
        assert events[0] == GateEvent.OUTCOME
        assert events[-1] == GateEvent.UNLOCKED

    def test_configured_lockout_length(self, scheduler):
        gate = AccessGate(GateConfig(lockout_seconds=3), scheduler)
        resolve(gate, scheduler, "cover")

        assert gate.message == "Please wait 3 seconds..."
        scheduler.advance(3.0)
        assert gate.state == GateState.IDLE


# =============================================================================
# Unmount
# =============================================================================


class TestUnmount:
    def test_unmount_during_lockout_stops_countdown(self, gate, scheduler):
        resolve(gate, scheduler, "cover")
        scheduler.advance(5.0)

        gate.unmount()
        scheduler.advance(30.0)

        assert gate.lock_remaining_seconds == 10
        assert gate.locked
        assert scheduler.pending == 0

    def test_unmount_during_submission_drops_outcome(self, gate, scheduler):
        events = []
        gate.subscribe(lambda event, g: events.append(event))
        gate.submit_identifier("RW0.01")

        gate.unmount()
        scheduler.advance(5.0)

        assert gate.state == GateState.SUBMITTING
        assert events == [GateEvent.UNMOUNTED]

    def test_unmounted_gate_ignores_input(self, gate, scheduler):
        gate.unmount()
        assert not gate.submit_identifier("RW0.01")
        assert not gate.input_enabled


class TestTransitions:
    def test_outcomes_only_reachable_from_submitting(self):
        for outcome in (
            GateState.ACCEPTED,
            GateState.LOCKED,
            GateState.ADMIN_REDIRECT,
            GateState.REJECTED,
        ):
            sources = [state for state, targets in TRANSITIONS.items() if outcome in targets]
            assert sources == [GateState.SUBMITTING]

    def test_terminal_states(self):
        assert GateState.ACCEPTED.is_terminal()
        assert GateState.ADMIN_REDIRECT.is_terminal()
        assert not GateState.LOCKED.is_terminal()
        assert TRANSITIONS[GateState.ACCEPTED] == set()


class TestSubmitAndWait:
    def test_returns_outcome(self):
        async def run():
            gate = AccessGate(GateConfig(login_latency=0.0), AsyncioScheduler())
            try:
                return await gate.submit_and_wait("RW0.01")
            finally:
                gate.unmount()

        assert asyncio.run(run()) == GateState.ACCEPTED

    def test_ignored_submit_returns_none(self):
        async def run():
            gate = AccessGate(GateConfig(login_latency=0.0), AsyncioScheduler())
            try:
                return await gate.submit_and_wait("")
            finally:
                gate.unmount()

        assert asyncio.run(run()) is None


# =============================================================================
# Registry
# =============================================================================


class TestGateRegistry:
    def test_accepted_gate_admits_key(self, scheduler):
        registry = GateRegistry(GateConfig(), scheduler)
        gate = registry.mount("browser-1")

        resolve(gate, scheduler, "RW0.01")

        assert registry.is_admitted("browser-1")
        assert not registry.is_admitted("browser-2")

    def test_rejected_gate_does_not_admit(self, scheduler):
        registry = GateRegistry(GateConfig(), scheduler)
        gate = registry.mount("browser-1")

        resolve(gate, scheduler, "nope")

        assert not registry.is_admitted("browser-1")

    def test_remount_revokes_admission_and_unmounts_old_gate(self, scheduler):
        registry = GateRegistry(GateConfig(), scheduler)
        first = registry.mount("browser-1")
        resolve(first, scheduler, "RW0.01")

        second = registry.mount("browser-1")

        assert not first.mounted
        assert second.state == GateState.IDLE
        assert not registry.is_admitted("browser-1")

    def test_remount_clears_lockout(self, scheduler):
        registry = GateRegistry(GateConfig(), scheduler)
        resolve(registry.mount("browser-1"), scheduler, "cover")

        gate = registry.mount("browser-1")

        assert not gate.locked
        assert scheduler.pending == 0

    def test_get_or_mount_reuses_live_gate(self, scheduler):
        registry = GateRegistry(GateConfig(), scheduler)
        gate = registry.mount("browser-1")

        assert registry.get_or_mount("browser-1") is gate
        assert len(registry) == 1

    def test_unmount_keeps_admission(self, scheduler):
        registry = GateRegistry(GateConfig(), scheduler)
        resolve(registry.mount("browser-1"), scheduler, "RW0.01")

        registry.unmount("browser-1")

        assert registry.get("browser-1") is None
        assert registry.is_admitted("browser-1")

    def test_shutdown(self, scheduler):
        registry = GateRegistry(GateConfig(), scheduler)
        resolve(registry.mount("a"), scheduler, "cover")
        registry.mount("b")

        registry.shutdown()

        assert len(registry) == 0
        assert scheduler.pending == 0

    def test_gate_count_is_capped(self, scheduler):
        registry = GateRegistry(GateConfig(max_tracked_browsers=10), scheduler)
        gates = [registry.mount(f"browser-{i}") for i in range(500)]

        assert len(registry) == 10
        assert registry.get("browser-0") is None
        assert not gates[0].mounted
        assert registry.get("browser-499") is gates[-1]
        assert all(gate.mounted for gate in gates[-10:])

    def test_eviction_cancels_lockout_timer(self, scheduler):
        registry = GateRegistry(GateConfig(max_tracked_browsers=1), scheduler)
        resolve(registry.mount("a"), scheduler, "cover")
        assert scheduler.pending == 1

        registry.mount("b")

        assert registry.get("a") is None
        assert scheduler.pending == 0

    def test_recently_used_gate_survives_eviction(self, scheduler):
        registry = GateRegistry(GateConfig(max_tracked_browsers=2), scheduler)
        first = registry.mount("a")
        registry.mount("b")

        registry.get_or_mount("a")
        registry.mount("c")

        assert registry.get("a") is first
        assert registry.get("b") is None

    def test_admissions_are_capped(self, scheduler):
        registry = GateRegistry(GateConfig(max_tracked_browsers=3), scheduler)
        for i in range(5):
            resolve(registry.mount(f"browser-{i}"), scheduler, "RW0.01")

        assert registry.admitted_count == 3
        assert not registry.is_admitted("browser-0")
        assert not registry.is_admitted("browser-1")
        assert registry.is_admitted("browser-4")
