"""
Alert Status Machine
====================

Operator-visible status as a closed set of states with explicit transitions.

States (mutually exclusive):
    idle, warning, alerting, sent, error, no-webcam

Transition Rules:
    on_tier(QUIET)     -> idle      (unless a sticky status is displayed)
    on_tier(WARNING)   -> warning   (unless a sticky status is displayed)
    on_tier(CRITICAL)  -> warning   (a critical sample the gate held back)
    on_alert()         -> alerting  (sticky until the dispatch resolves)
    on_sent()          -> sent      (sticky, reverts to idle after display_seconds)
    on_error()         -> error     (sticky, reverts to idle after display_seconds)
    on_no_webcam()     -> no-webcam (cleared by the next tier update)
    reset()            -> idle

Auto-revert is evaluated lazily from the time the status was entered, so no
timer callback can race with a newer status.
"""

import logging
import time
from typing import Callable, Optional

from stampede_watch.models.state import AlertStatus, DensityTier


logger = logging.getLogger(__name__)


_STICKY = (AlertStatus.ALERTING, AlertStatus.SENT, AlertStatus.ERROR)
_TIMED = (AlertStatus.SENT, AlertStatus.ERROR)


class AlertStatusMachine:
    """
    Owner of the monitor's AlertStatus.

    Attributes:
        display_seconds: How long 'sent' and 'error' stay visible
        clock: Monotonic time source
    """

    def __init__(
        self,
        display_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.display_seconds = display_seconds
        self.clock = clock

        self._status: AlertStatus = AlertStatus.IDLE
        self._entered_at: float = clock()
        self._last_error: Optional[str] = None

    def current(self, now: Optional[float] = None) -> AlertStatus:
        """Status after applying any due auto-revert."""
        if now is None:
            now = self.clock()
        if self._status in _TIMED and now - self._entered_at >= self.display_seconds:
            self._enter(AlertStatus.IDLE, now)
        return self._status

    @property
    def last_error(self) -> Optional[str]:
        """Detail of the most recent error status."""
        return self._last_error

    def on_tier(self, tier: DensityTier, now: Optional[float] = None) -> AlertStatus:
        if now is None:
            now = self.clock()
        status = self.current(now)

        if status in _STICKY:
            return status

        target = AlertStatus.IDLE if tier is DensityTier.QUIET else AlertStatus.WARNING
        if target is not status:
            self._enter(target, now)
        return self._status

    def on_alert(self, now: Optional[float] = None) -> AlertStatus:
        self._enter(AlertStatus.ALERTING, now)
        return self._status

    def on_sent(self, now: Optional[float] = None) -> AlertStatus:
        self._enter(AlertStatus.SENT, now)
        return self._status

    def on_error(self, detail: str = "", now: Optional[float] = None) -> AlertStatus:
        self._last_error = detail or None
        self._enter(AlertStatus.ERROR, now)
        return self._status

    def on_no_webcam(self, now: Optional[float] = None) -> AlertStatus:
        if now is None:
            now = self.clock()
        if self.current(now) not in _STICKY:
            self._enter(AlertStatus.NO_WEBCAM, now)
        return self._status

    def reset(self) -> None:
        self._last_error = None
        self._enter(AlertStatus.IDLE, None)

    def _enter(self, status: AlertStatus, now: Optional[float]) -> None:
        if now is None:
            now = self.clock()
        if status is not self._status:
            logger.debug(f"Status: {self._status.value} -> {status.value}")
        self._status = status
        self._entered_at = now
