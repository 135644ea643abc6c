"""
Alert Models
============

Value objects for the alert path and the relay wire contract.

Wire Contract (monitor -> relay):
    POST /api/alert/stampede
    {
        "message": "Critical stampede risk! 4 people detected.",
        "crowdDensity": 4,
        "timestamp": "2024-05-01T12:00:00.000Z"
    }

Responses:
    200 {"success": true,  "message": "WhatsApp alert sent!"}
    400 {"success": false, "error": "Missing required fields: ..."}
    500 {"success": false, "error": "...", "details": "..."}
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from stampede_watch.models.state import DensityTier


@dataclass(frozen=True, slots=True)
class AlertEvent:
    """
    Alert granted by the debounce gate, handed to the dispatcher.

    Attributes:
        severity: Always CRITICAL (only the critical tier alerts)
        people_count: Person count of the sample that crossed the threshold
        message: Free-text description embedded in the outbound message
        occurred_at: Wall-clock UNIX timestamp of the crossing
    """

    severity: DensityTier
    people_count: int
    message: str
    occurred_at: float


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """One entry of the recent-activity log."""

    timestamp: float
    count: int


class AlertRequest(BaseModel):
    """
    Body of an alert dispatch request.

    Field names follow the wire contract (camelCase crowdDensity).
    """

    message: str = Field(..., min_length=1, description="Free-text alert description")
    crowdDensity: int = Field(..., ge=0, description="Detected people count")
    timestamp: str = Field(..., description="ISO-8601 time of the crossing")

    @field_validator("timestamp")
    @classmethod
    def _check_iso8601(cls, value: str) -> str:
        parse_iso8601(value)
        return value


class AlertResponse(BaseModel):
    """Successful relay response."""

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Failed relay response."""

    success: bool = False
    error: str
    details: Optional[str] = None


def parse_iso8601(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z' for UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)
