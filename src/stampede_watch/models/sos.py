"""
SOS Report Models
=================

Typed view of the incident reports stored in the document store.

Store Document Shape (written by the mobile client):
    {
        "userId": "user_123",
        "message": "People pushing near gate 4",
        "location": {"latitude": 28.70, "longitude": 77.10, "accuracy": 5.0},
        "videoUrl": "https://.../sos_user_123.mp4",
        "createdAt": <timestamp>,
        "status": "pending",                 # added by the client or defaulted
        "adminReview": {...}                 # added by the review workflow
    }

Documents are parsed once, at the store boundary, by
SOSReport.from_document(). Missing required fields raise ValidationError;
optional fields default deterministically.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import pydantic
from pydantic import BaseModel, Field

from stampede_watch.errors import ValidationError


class ReportStatus(str, Enum):
    """Review state of an SOS report. APPROVED and REJECTED are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ReportStatus.PENDING


class Location(BaseModel):
    """Where the reporter was when the SOS was sent."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    accuracy: Optional[float] = Field(default=None, ge=0.0)


class AdminReview(BaseModel):
    """Operator decision recorded on a report."""

    decision: ReportStatus
    admin_notes: str = ""
    reviewed_at: Optional[datetime] = None


class SOSReport(BaseModel):
    """
    An externally submitted incident record awaiting review.

    Attributes:
        id: Document id in the store
        reporter_ref: Submitting user id
        video_ref: URL of the uploaded video
        message: Reporter's free-text description
        location: Reporter position
        submitted_at: When the report was created
        status: pending / approved / rejected
        admin_review: Operator decision, once reviewed
        triage: Stored AI triage analysis, if any
    """

    id: str
    reporter_ref: str
    video_ref: Optional[str] = None
    message: str = ""
    location: Location
    submitted_at: Optional[datetime] = None
    status: ReportStatus = ReportStatus.PENDING
    admin_review: Optional[AdminReview] = None
    triage: Optional[Dict[str, Any]] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "SOSReport":
        """
        Parse a raw store document.

        Raises:
            ValidationError: If a required field is missing or malformed
        """
        missing = [key for key in ("userId", "location") if data.get(key) in (None, "")]
        if missing:
            raise ValidationError(
                f"SOS report {doc_id} is missing required fields: {', '.join(missing)}"
            )

        review = data.get("adminReview")
        try:
            return cls(
                id=doc_id,
                reporter_ref=str(data["userId"]),
                video_ref=data.get("videoUrl"),
                message=data.get("message") or "",
                location=Location.model_validate(data["location"]),
                submitted_at=_as_datetime(data.get("createdAt")),
                status=ReportStatus(data.get("status") or ReportStatus.PENDING.value),
                admin_review=(
                    AdminReview(
                        decision=ReportStatus(review["decision"]),
                        admin_notes=review.get("adminNotes") or "",
                        reviewed_at=_as_datetime(review.get("reviewedAt")),
                    )
                    if isinstance(review, Mapping) and review.get("decision")
                    else None
                ),
                triage=data.get("geminiAnalysis"),
            )
        except (pydantic.ValidationError, ValueError, TypeError) as e:
            raise ValidationError(f"SOS report {doc_id} is malformed: {e}") from e


def _as_datetime(value: Any) -> Optional[datetime]:
    """Normalize store timestamps (datetime, epoch seconds, ISO text) to aware datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        return _as_datetime(datetime.fromisoformat(text))
    raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")
