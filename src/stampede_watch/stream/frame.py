"""
Frame Data Model
================

Internal frame representation for the sampling loop.

Design Rules:
    - This is the ONLY frame format passed to the detector
    - Image is a decoded BGR array, never re-encoded
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class Frame:
    """
    One frame pulled from the video source.

    Attributes:
        frame_id: Monotonically increasing counter from the source
        timestamp: UNIX timestamp when the frame was read
        image: BGR image as np.ndarray (H, W, 3), dtype=uint8
    """

    frame_id: int
    timestamp: float
    image: np.ndarray

    @property
    def shape(self) -> tuple:
        """(height, width) of the image."""
        return tuple(self.image.shape[:2])

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the full image."""
        return (
            f"Frame(frame_id={self.frame_id}, "
            f"timestamp={self.timestamp:.3f}, "
            f"shape={self.shape})"
        )
