"""
Stream Module
=============

Frame sampling for the monitoring loop.

    - Frame: Typed frame data model (internal representation)
    - FrameSource: Protocol implemented by every video source
    - CameraSource: OpenCV webcam / file / URL capture
    - ScriptedSource: Replay of pre-built frames

Example:
    from stampede_watch.stream import CameraSource

    source = CameraSource(source="0")
    frame = source.read()   # raises DetectionUnavailable if the camera is off
"""

from stampede_watch.stream.frame import Frame
from stampede_watch.stream.source import CameraSource, FrameSource, ScriptedSource, parse_source


__all__ = [
    "Frame",
    "FrameSource",
    "CameraSource",
    "ScriptedSource",
    "parse_source",
]
