"""
Data Models
===========

Models shared by the monitor, the relay and the SOS workflow.

Models:
    Detection:
        - Detection: One detector hit (label, score, bbox)
        - DetectionSample: Person count of one frame

    State:
        - DensityTier: quiet / warning / critical
        - GateState: IDLE / COOLDOWN
        - AlertStatus: Operator-visible status
        - CooldownState: Last-alert timestamp owned by the gate

    Alert:
        - AlertEvent: Alert granted by the gate
        - ActivityRecord: Recent-activity entry
        - AlertRequest / AlertResponse / ErrorResponse: Relay wire contract

    SOS:
        - SOSReport, Location, AdminReview, ReportStatus
"""

from stampede_watch.models.detection import Detection, DetectionSample
from stampede_watch.models.state import AlertStatus, CooldownState, DensityTier, GateState
from stampede_watch.models.alert import (
    ActivityRecord,
    AlertEvent,
    AlertRequest,
    AlertResponse,
    ErrorResponse,
)
from stampede_watch.models.sos import AdminReview, Location, ReportStatus, SOSReport

__all__ = [
    # Detection
    "Detection",
    "DetectionSample",
    # State
    "DensityTier",
    "GateState",
    "AlertStatus",
    "CooldownState",
    # Alert
    "AlertEvent",
    "ActivityRecord",
    "AlertRequest",
    "AlertResponse",
    "ErrorResponse",
    # SOS
    "SOSReport",
    "Location",
    "AdminReview",
    "ReportStatus",
]
