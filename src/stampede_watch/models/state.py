"""
Monitor State Models
====================

Discrete states used by the detection-to-alert pipeline.

Core Concepts:
    - DensityTier: quiet / warning / critical, derived from a person count
    - GateState: IDLE / COOLDOWN of the debounce gate
    - AlertStatus: the closed set of operator-visible status values
    - CooldownState: the single source of truth for "are we in cooldown"

CooldownState stores only the time of the last dispatched alert. Whether the
gate is locked is always computed from that timestamp and the current clock,
never tracked as a second flag.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DensityTier(str, Enum):
    """
    Crowd density tier, ordered by severity.

    Attributes:
        QUIET: Below the warning threshold
        WARNING: At or above warning, below critical
        CRITICAL: At or above the critical threshold
    """

    QUIET = "quiet"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        """Numeric rank: quiet < warning < critical."""
        return _TIER_SEVERITY[self]


_TIER_SEVERITY = {
    DensityTier.QUIET: 0,
    DensityTier.WARNING: 1,
    DensityTier.CRITICAL: 2,
}


class GateState(str, Enum):
    """States of the debounce/cooldown gate."""

    IDLE = "IDLE"
    COOLDOWN = "COOLDOWN"


class AlertStatus(str, Enum):
    """
    Operator-visible monitor status. Values are mutually exclusive.

    Attributes:
        IDLE: Monitoring, nothing to report
        WARNING: High density
        ALERTING: Critical crossing, alert being dispatched
        SENT: Relay acknowledged the alert (auto-reverts)
        ERROR: Dispatch or detector failure (auto-reverts)
        NO_WEBCAM: Video source not producing frames
    """

    IDLE = "idle"
    WARNING = "warning"
    ALERTING = "alerting"
    SENT = "sent"
    ERROR = "error"
    NO_WEBCAM = "no-webcam"


class CooldownState(BaseModel):
    """
    Mutable state owned by the debounce gate.

    Attributes:
        last_alert_at: Monotonic time of the last dispatched alert,
            None initially and after monitoring is disabled
    """

    model_config = ConfigDict(validate_assignment=True)

    last_alert_at: Optional[float] = Field(
        default=None,
        description="Monotonic timestamp of the most recent dispatched alert",
    )

    def is_locked(self, now: float, window: float) -> bool:
        """True while fewer than `window` seconds have passed since the last alert."""
        if self.last_alert_at is None:
            return False
        return (now - self.last_alert_at) < window

    def remaining(self, now: float, window: float) -> float:
        """Seconds until the gate re-opens (0.0 when idle)."""
        if self.last_alert_at is None:
            return 0.0
        return max(0.0, window - (now - self.last_alert_at))
