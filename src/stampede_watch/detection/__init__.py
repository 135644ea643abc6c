"""
Detection Module
================

Detector adapter: frame in, person count out.

Components:
    - Detector: Protocol for detector backends
    - MockDetector: Deterministic scripted counts
    - YoloDetector: ultralytics YOLO (production)
    - count_people / person_detections: person-class filter
    - create_detector: Backend factory driven by settings

Design Philosophy:
    The model is a pluggable black box. The pipeline reasons over the
    person count, NOT over detector internals.
"""

import logging

from stampede_watch.config import DetectorConfig
from stampede_watch.detection.engine import (
    Detector,
    MockDetector,
    count_people,
    person_detections,
)
from stampede_watch.detection.yolo_engine import YoloDetector


logger = logging.getLogger(__name__)


def create_detector(config: DetectorConfig) -> Detector:
    """
    Create detector based on config.

    Fails fast if the yolo backend is requested but unavailable.
    """
    backend = config.backend

    if backend == "mock":
        logger.info("Using MockDetector")
        return MockDetector(counts=config.mock.fixed_counts)

    elif backend == "yolo":
        logger.info(f"Using YoloDetector: model={config.model_path}")
        return YoloDetector(
            model_path=config.model_path,
            confidence_threshold=config.confidence_threshold,
        )

    else:
        raise ValueError(f"Unknown detector backend: {backend}")


__all__ = [
    "Detector",
    "MockDetector",
    "YoloDetector",
    "count_people",
    "person_detections",
    "create_detector",
]
