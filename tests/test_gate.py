"""
Cooldown Gate Tests
===================

Time is injected explicitly, so no test sleeps.
"""

import threading

import pytest

from stampede_watch.agent.gate import CooldownGate
from stampede_watch.models.state import DensityTier, GateState


class TestCooldownGate:
    """Tests for the debounce state machine."""

    def test_first_critical_emits_alert(self):
        """Verify an IDLE gate grants a critical sample."""
        gate = CooldownGate(cooldown_seconds=10.0)

        event = gate.offer(DensityTier.CRITICAL, 4, now=0.0, occurred_at=1714564800.0)

        assert event is not None
        assert event.severity is DensityTier.CRITICAL
        assert event.people_count == 4
        assert event.message == "Critical stampede risk! 4 people detected."
        assert event.occurred_at == 1714564800.0
        assert gate.state(now=0.0) is GateState.COOLDOWN
        assert gate.last_alert_at == 0.0

    def test_sustained_critical_sends_once_per_window(self):
        """Verify counts of 4 every 0.5s for 25s send at t=0, 10 and 20."""
        gate = CooldownGate(cooldown_seconds=10.0)

        sent_at = []
        for i in range(50):
            now = i * 0.5
            if gate.offer(DensityTier.CRITICAL, 4, now=now) is not None:
                sent_at.append(now)

        assert sent_at == [0.0, 10.0, 20.0]

    def test_dip_during_cooldown_does_not_reset(self):
        """Verify a drop to quiet inside the window does not re-arm the gate."""
        gate = CooldownGate(cooldown_seconds=10.0)

        assert gate.offer(DensityTier.CRITICAL, 5, now=0.0) is not None
        assert gate.offer(DensityTier.QUIET, 0, now=2.0) is None
        assert gate.offer(DensityTier.CRITICAL, 5, now=4.0) is None
        assert gate.offer(DensityTier.CRITICAL, 5, now=10.0) is not None

    def test_non_critical_never_touches_state(self):
        """Verify quiet and warning samples leave an idle gate idle."""
        gate = CooldownGate(cooldown_seconds=10.0)

        assert gate.offer(DensityTier.WARNING, 2, now=0.0) is None
        assert gate.offer(DensityTier.QUIET, 0, now=1.0) is None
        assert gate.last_alert_at is None
        assert gate.state(now=1.0) is GateState.IDLE

    def test_remaining(self):
        """Verify the remaining cooldown counts down to zero."""
        gate = CooldownGate(cooldown_seconds=10.0)
        assert gate.remaining(now=0.0) == 0.0

        gate.offer(DensityTier.CRITICAL, 3, now=100.0)
        assert gate.remaining(now=103.0) == pytest.approx(7.0)
        assert gate.remaining(now=115.0) == 0.0

    def test_reset_returns_to_idle(self):
        """Verify reset clears the last alert time mid-cooldown."""
        gate = CooldownGate(cooldown_seconds=10.0)
        gate.offer(DensityTier.CRITICAL, 3, now=0.0)

        gate.reset()

        assert gate.last_alert_at is None
        assert gate.state(now=1.0) is GateState.IDLE
        assert gate.offer(DensityTier.CRITICAL, 3, now=1.0) is not None

    def test_uses_injected_clock(self, clock):
        """Verify the gate reads the injected clock when now is omitted."""
        gate = CooldownGate(cooldown_seconds=10.0, clock=clock)

        assert gate.offer(DensityTier.CRITICAL, 3) is not None
        clock.advance(9.0)
        assert gate.offer(DensityTier.CRITICAL, 3) is None
        clock.advance(1.0)
        assert gate.offer(DensityTier.CRITICAL, 3) is not None

    def test_metrics_count_suppressed_samples(self):
        """Verify granted and suppressed samples are counted."""
        gate = CooldownGate(cooldown_seconds=10.0, clock=lambda: 0.0)
        gate.offer(DensityTier.CRITICAL, 3, now=0.0)
        gate.offer(DensityTier.CRITICAL, 3, now=1.0)
        gate.offer(DensityTier.CRITICAL, 3, now=2.0)

        metrics = gate.get_metrics()
        assert metrics["alerts_emitted"] == 1
        assert metrics["suppressed"] == 2

    def test_rejects_non_positive_cooldown(self):
        """Verify the cooldown must be positive."""
        with pytest.raises(ValueError):
            CooldownGate(cooldown_seconds=0)

    def test_concurrent_offers_grant_one_alert(self):
        """Verify simultaneous critical samples from many threads send once."""
        gate = CooldownGate(cooldown_seconds=10.0)
        n = 16
        barrier = threading.Barrier(n)
        events = []

        def _offer(i):
            barrier.wait()
            events.append(gate.offer(DensityTier.CRITICAL, 5, now=100.0 + i * 0.01))

        threads = [threading.Thread(target=_offer, args=(i,)) for i in range(n)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5.0)

        granted = [e for e in events if e is not None]
        assert len(events) == n
        assert len(granted) == 1
        assert gate.get_metrics()["alerts_emitted"] == 1
        assert gate.get_metrics()["suppressed"] == n - 1
