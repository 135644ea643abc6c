"""
Frame Sources
=============

Video sources polled by the monitoring loop.

This module provides:
    - FrameSource: Protocol for anything that yields frames
    - CameraSource: OpenCV capture device (webcam index, file or URL)
    - ScriptedSource: Pre-built frames, for tests and demos

Design Rules:
    - A source that cannot produce a frame raises DetectionUnavailable
    - Sources never sleep; pacing belongs to the monitor loop
    - This is the ONLY place in the codebase that talks to cv2.VideoCapture
"""

import logging
import time
from typing import Iterable, List, Optional, Protocol, Union

import cv2
import numpy as np

from stampede_watch.errors import DetectionUnavailable
from stampede_watch.stream.frame import Frame


logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Protocol for video sources."""

    def read(self) -> Frame:
        """
        Return the next frame.

        Raises:
            DetectionUnavailable: If no frame can be produced right now
        """
        ...

    def close(self) -> None:
        """Release the underlying device."""
        ...


def parse_source(source: Union[str, int]) -> Union[str, int]:
    """Device indices arrive from config/env as strings; turn '0' into 0."""
    if isinstance(source, int):
        return source
    text = source.strip()
    return int(text) if text.isdigit() else text


class CameraSource:
    """
    OpenCV capture wrapper.

    The device is opened lazily on the first read so that constructing the
    monitor never blocks on hardware. A failed open or read raises
    DetectionUnavailable; the next read retries the open.

    Attributes:
        source: Device index or stream URL / file path
        frame_width: Requested capture width (optional)
        frame_height: Requested capture height (optional)
    """

    def __init__(
        self,
        source: Union[str, int] = 0,
        frame_width: Optional[int] = None,
        frame_height: Optional[int] = None,
    ) -> None:
        self.source = parse_source(source)
        self.frame_width = frame_width
        self.frame_height = frame_height

        self._capture: Optional[cv2.VideoCapture] = None
        self._frame_counter: int = 0
        self._read_failures: int = 0

    def _open(self) -> cv2.VideoCapture:
        capture = cv2.VideoCapture(self.source)
        if not capture.isOpened():
            capture.release()
            raise DetectionUnavailable(f"Cannot open video source: {self.source!r}")

        if self.frame_width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
        if self.frame_height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)

        logger.info(f"Video source opened: {self.source!r}")
        return capture

    def read(self) -> Frame:
        if self._capture is None:
            self._capture = self._open()

        ok, image = self._capture.read()
        if not ok or image is None:
            self._read_failures += 1
            # Drop the handle so the next read reopens the device
            self._capture.release()
            self._capture = None
            raise DetectionUnavailable(
                f"Video source {self.source!r} returned no frame "
                f"(failures: {self._read_failures})"
            )

        frame = Frame(
            frame_id=self._frame_counter,
            timestamp=time.time(),
            image=image,
        )
        self._frame_counter += 1
        return frame

    def close(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Video source released: {self.source!r}")

    @property
    def frame_count(self) -> int:
        """Frames successfully read."""
        return self._frame_counter


class ScriptedSource:
    """
    Replays a fixed list of images, then reports the source as unavailable.

    With loop=True the list repeats forever.
    """

    def __init__(
        self,
        images: Optional[Iterable[np.ndarray]] = None,
        count: int = 1,
        loop: bool = False,
    ) -> None:
        if images is None:
            images = [np.zeros((480, 640, 3), dtype=np.uint8) for _ in range(count)]
        self._images: List[np.ndarray] = list(images)
        self.loop = loop
        self._index = 0
        self.closed = False

    def read(self) -> Frame:
        if self.closed or not self._images:
            raise DetectionUnavailable("Scripted source has no frames")
        if self._index >= len(self._images) and not self.loop:
            raise DetectionUnavailable("Scripted source exhausted")

        image = self._images[self._index % len(self._images)]
        frame = Frame(frame_id=self._index, timestamp=time.time(), image=image)
        self._index += 1
        return frame

    def close(self) -> None:
        self.closed = True
