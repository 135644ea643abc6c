"""
Visualization Module
====================

Draw person detections onto frames for the local preview window.

PURELY DESCRIPTIVE. Nothing here influences classification or alerting.
"""

import logging
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from stampede_watch.models.detection import Detection
from stampede_watch.models.state import AlertStatus


logger = logging.getLogger(__name__)


BOX_COLOR = (0, 0, 255)  # BGR red

STATUS_COLORS = {
    AlertStatus.IDLE: (200, 200, 200),
    AlertStatus.WARNING: (0, 200, 255),
    AlertStatus.ALERTING: (0, 0, 255),
    AlertStatus.SENT: (0, 200, 0),
    AlertStatus.ERROR: (0, 0, 160),
    AlertStatus.NO_WEBCAM: (128, 128, 128),
}

STATUS_LABELS = {
    AlertStatus.IDLE: "Monitoring",
    AlertStatus.WARNING: "High Density",
    AlertStatus.ALERTING: "CRITICAL ALERT!",
    AlertStatus.SENT: "Alert Sent!",
    AlertStatus.ERROR: "Error!",
    AlertStatus.NO_WEBCAM: "No Webcam",
}


def draw_detections(
    image: np.ndarray,
    detections: Iterable[Detection],
    color: Tuple[int, int, int] = BOX_COLOR,
) -> np.ndarray:
    """
    Draw labelled boxes on a copy of the image.

    Label format: "Person (87%)".
    """
    canvas = image.copy()
    for det in detections:
        x, y, w, h = (int(round(v)) for v in det.bbox)
        cv2.rectangle(canvas, (x, y), (x + w, y + h), color, 2)
        label = f"{det.label.capitalize()} ({round(det.score * 100)}%)"
        cv2.putText(
            canvas, label, (x, y - 5 if y > 10 else 10),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, cv2.LINE_AA,
        )
    return canvas


def draw_status(
    image: np.ndarray,
    people: int,
    status: AlertStatus,
    cooldown_remaining: Optional[float] = None,
) -> np.ndarray:
    """Draw the people count and status banner in place; returns the image."""
    color = STATUS_COLORS[status]
    cv2.putText(
        image, f"People Detected: {people}", (10, 25),
        cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2, cv2.LINE_AA,
    )
    cv2.putText(
        image, STATUS_LABELS[status], (10, 55),
        cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2, cv2.LINE_AA,
    )
    if cooldown_remaining:
        cv2.putText(
            image, f"Alert cooldown: {cooldown_remaining:.0f}s", (10, 85),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, (200, 200, 200), 1, cv2.LINE_AA,
        )
    return image
