"""
Observability Module
====================

Activity history and preview drawing for the monitor.

    - ActivityLog: Change-triggered recent-count history
    - draw_detections / draw_status: Preview overlays

DESIGN RULES:
    - Does NOT import agent logic
    - Does NOT influence decisions
"""

from stampede_watch.observability.activity import ActivityLog
from stampede_watch.observability.visualization import (
    STATUS_LABELS,
    draw_detections,
    draw_status,
)


__all__ = [
    "ActivityLog",
    "STATUS_LABELS",
    "draw_detections",
    "draw_status",
]
