"""
Detection Models
================

Data models passed from the detector adapter to the classifier.

These are ephemeral: produced once per sampled frame, consumed immediately
by the classifier and the activity log, never persisted.
"""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True, slots=True)
class Detection:
    """
    One object found by the detector in a frame.

    Attributes:
        label: Class label reported by the model (e.g. "person")
        score: Confidence in [0, 1]
        bbox: (x, y, width, height) in pixels
    """

    label: str
    score: float
    bbox: Tuple[float, float, float, float]


@dataclass(frozen=True, slots=True)
class DetectionSample:
    """
    Person count derived from a single frame.

    Attributes:
        count: Number of person-class detections
        captured_at: Wall-clock UNIX timestamp of the frame
        detections: The person detections behind the count (for drawing)
    """

    count: int
    captured_at: float
    detections: Tuple[Detection, ...] = field(default=())

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.count < 0:
            raise ValueError("count must be non-negative")

    def __repr__(self) -> str:
        return f"DetectionSample(count={self.count}, t={self.captured_at:.2f})"
