"""
Detector Engine
===============

Black-box abstraction over the pretrained object detector.

This module provides the Detector protocol, the person-count filter, and a
deterministic MockDetector for tests and camera-less demos.

Design Rules:
    - Detectors take a Frame and return every object they found
    - Filtering down to the person class happens here, not in the model
    - The pipeline consumes a scalar count, never detector internals
"""

import logging
from typing import Iterable, List, Optional, Protocol, Sequence

from stampede_watch.models.detection import Detection
from stampede_watch.stream.frame import Frame


logger = logging.getLogger(__name__)


class Detector(Protocol):
    """
    Protocol for detector backends.

    Implementations:
        - MockDetector (tests, demos)
        - YoloDetector (ultralytics, production)
    """

    async def detect(self, frame: Frame) -> List[Detection]:
        """
        Run the model on a frame.

        Raises:
            DetectionUnavailable: If the model is not ready
        """
        ...


def person_detections(
    detections: Iterable[Detection],
    label: str = "person",
    min_score: float = 0.0,
) -> List[Detection]:
    """Keep only detections of the person class at or above min_score."""
    return [d for d in detections if d.label == label and d.score >= min_score]


def count_people(
    detections: Iterable[Detection],
    label: str = "person",
    min_score: float = 0.0,
) -> int:
    """Number of person-class detections."""
    return len(person_detections(detections, label=label, min_score=min_score))


class MockDetector:
    """
    Deterministic detector that replays a script of person counts.

    Frame n yields counts[n % len(counts)] person boxes laid out in a row,
    plus one non-person object so the class filter is exercised.

    Attributes:
        counts: People counts returned in rotation
    """

    def __init__(self, counts: Optional[Sequence[int]] = None) -> None:
        counts = list(counts) if counts is not None else [0, 1, 2, 3]
        if not counts:
            raise ValueError("counts must not be empty")
        if any(c < 0 for c in counts):
            raise ValueError("counts must be non-negative")

        self.counts = counts
        self._calls: int = 0

        logger.info(f"MockDetector initialized: counts={counts}")

    async def detect(self, frame: Frame) -> List[Detection]:
        people = self.counts[self._calls % len(self.counts)]
        self._calls += 1

        height, width = frame.shape
        box_w = max(1.0, width / max(people, 1) / 2)
        box_h = max(1.0, height / 2)

        detections = [
            Detection(
                label="person",
                score=0.9,
                bbox=(i * box_w * 2, height / 4, box_w, box_h),
            )
            for i in range(people)
        ]
        detections.append(Detection(label="chair", score=0.8, bbox=(0.0, 0.0, 10.0, 10.0)))
        return detections

    @property
    def call_count(self) -> int:
        """Frames processed."""
        return self._calls
