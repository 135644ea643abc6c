"""
Debounce / Cooldown Gate
========================

Converts the noisy frame-by-frame tier signal into rate-limited alerts.

States:
    IDLE      - no alert in the last cooldown window
    COOLDOWN  - an alert was dispatched less than cooldown_seconds ago

Transitions:
    IDLE + CRITICAL      -> emit one AlertEvent, last_alert_at = now, COOLDOWN
    COOLDOWN + any tier  -> nothing (repeated CRITICAL samples are swallowed)
    COOLDOWN -> IDLE     -> once now - last_alert_at >= cooldown_seconds
    reset()              -> IDLE, last_alert_at cleared

The gate state is a pure function of CooldownState.last_alert_at and the
monotonic clock, evaluated synchronously on every offer. There is no timer
callback and no second "locked" flag.

A failed delivery does not give the slot back: the cooldown started when
the alert was granted, whatever happened to the HTTP call afterwards.
"""

import logging
import threading
import time
from typing import Callable, Optional

from stampede_watch.models.alert import AlertEvent
from stampede_watch.models.state import CooldownState, DensityTier, GateState


logger = logging.getLogger(__name__)


ALERT_MESSAGE_TEMPLATE = "Critical stampede risk! {count} people detected."


class CooldownGate:
    """
    Debounce gate owning the CooldownState.

    Attributes:
        cooldown_seconds: Minimum interval between two alerts
        clock: Monotonic time source (seconds)

    Example:
        gate = CooldownGate(cooldown_seconds=10.0)
        event = gate.offer(DensityTier.CRITICAL, count=4, now=0.0)   # AlertEvent
        gate.offer(DensityTier.CRITICAL, count=5, now=3.0)           # None
        gate.offer(DensityTier.CRITICAL, count=5, now=10.0)          # AlertEvent
    """

    def __init__(
        self,
        cooldown_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        message_template: str = ALERT_MESSAGE_TEMPLATE,
    ) -> None:
        if cooldown_seconds <= 0:
            raise ValueError("cooldown_seconds must be positive")

        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self.message_template = message_template

        self._cooldown = CooldownState()
        self._lock = threading.Lock()
        self._alerts_emitted: int = 0
        self._suppressed: int = 0

        logger.info(f"CooldownGate initialized: cooldown={cooldown_seconds}s")

    def offer(
        self,
        tier: DensityTier,
        count: int,
        now: Optional[float] = None,
        occurred_at: Optional[float] = None,
    ) -> Optional[AlertEvent]:
        """
        Present one sample to the gate.

        Args:
            tier: Tier of the sample
            count: Person count of the sample
            now: Monotonic time of the sample (defaults to clock())
            occurred_at: Wall-clock time for the AlertEvent (defaults to time.time())

        Returns:
            AlertEvent if this sample was granted a dispatch, else None
        """
        if tier is not DensityTier.CRITICAL:
            return None

        if now is None:
            now = self.clock()

        with self._lock:
            if self._cooldown.is_locked(now, self.cooldown_seconds):
                self._suppressed += 1
                logger.debug(
                    f"Critical sample suppressed (count={count}, "
                    f"remaining={self._cooldown.remaining(now, self.cooldown_seconds):.1f}s)"
                )
                return None

            self._cooldown.last_alert_at = now
            self._alerts_emitted += 1

        event = AlertEvent(
            severity=DensityTier.CRITICAL,
            people_count=count,
            message=self.message_template.format(count=count),
            occurred_at=occurred_at if occurred_at is not None else time.time(),
        )
        logger.warning(
            f"ALERT GRANTED: {count} people, cooldown armed for {self.cooldown_seconds}s"
        )
        return event

    def state(self, now: Optional[float] = None) -> GateState:
        """Current gate state."""
        if now is None:
            now = self.clock()
        if self._cooldown.is_locked(now, self.cooldown_seconds):
            return GateState.COOLDOWN
        return GateState.IDLE

    def remaining(self, now: Optional[float] = None) -> float:
        """Seconds until the next alert may be granted."""
        if now is None:
            now = self.clock()
        return self._cooldown.remaining(now, self.cooldown_seconds)

    def reset(self) -> None:
        """Return to IDLE and forget the last alert."""
        with self._lock:
            self._cooldown = CooldownState()
        logger.info("CooldownGate reset")

    @property
    def last_alert_at(self) -> Optional[float]:
        return self._cooldown.last_alert_at

    def get_metrics(self) -> dict:
        """Get gate metrics for observability."""
        return {
            "state": self.state().value,
            "alerts_emitted": self._alerts_emitted,
            "suppressed": self._suppressed,
            "cooldown_remaining": round(self.remaining(), 1),
        }
