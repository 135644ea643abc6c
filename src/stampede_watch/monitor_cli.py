"""
Monitor Command Line
====================

Run the crowd monitor against a camera until interrupted.

Usage:
    stampede-monitor
    stampede-monitor --source 1 --show
    stampede-monitor --config config.yaml --duration 120

Press 'q' in the preview window (or Ctrl+C) to stop.
"""

import argparse
import asyncio
import logging
import sys
import time
from typing import Optional

import cv2

from stampede_watch.config import load_config, setup_logging
from stampede_watch.errors import DetectionUnavailable
from stampede_watch.monitor import CrowdMonitor, create_monitor
from stampede_watch.observability import draw_detections, draw_status


logger = logging.getLogger(__name__)


WINDOW_NAME = "StampedeWatch"


def _show_preview(monitor: CrowdMonitor) -> bool:
    """Draw the latest frame; returns False when the user asked to quit."""
    frame = monitor.last_frame
    if frame is not None:
        snap = monitor.snapshot()
        canvas = draw_detections(frame.image, monitor.last_detections)
        draw_status(canvas, snap.detected_people, snap.status, snap.cooldown_remaining)
        cv2.imshow(WINDOW_NAME, canvas)
    return (cv2.waitKey(1) & 0xFF) != ord("q")


async def run_monitor(
    monitor: CrowdMonitor,
    duration: Optional[float] = None,
    show: bool = False,
    report_interval: float = 10.0,
) -> dict:
    """
    Run a monitoring session.

    Args:
        monitor: Configured monitor
        duration: Stop after this many seconds (None = until interrupted)
        show: Display an OpenCV preview window
        report_interval: Seconds between progress log lines

    Returns:
        Final metrics dict
    """
    start_time = time.time()
    last_report = start_time

    monitor.enable()
    try:
        while True:
            elapsed = time.time() - start_time
            if duration is not None and elapsed >= duration:
                logger.info(f"Duration ({duration:.0f}s) reached")
                break

            if show and not _show_preview(monitor):
                logger.info("Preview closed by user")
                break

            if time.time() - last_report >= report_interval:
                snap = monitor.snapshot()
                logger.info(
                    f"people={snap.detected_people} tier={snap.tier.value} "
                    f"status={snap.status.value} "
                    f"cooldown={snap.cooldown_remaining:.1f}s"
                )
                last_report = time.time()

            await asyncio.sleep(0.05)
    finally:
        await monitor.close()
        if show:
            cv2.destroyAllWindows()

    metrics = monitor.get_metrics()
    logger.info(
        f"Session finished: frames={metrics['frames_processed']}, "
        f"alerts={metrics['gate']['alerts_emitted']}, "
        f"delivered={metrics['dispatch']['sent']}, "
        f"failed={metrics['dispatch']['failed']}"
    )
    return metrics


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Watch a camera for crowd build-up and dispatch stampede alerts"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config.yaml (default: search common locations)",
    )
    parser.add_argument(
        "--source",
        type=str,
        default=None,
        help="Camera index or stream URL (overrides camera.source)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted)",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Show a preview window with person boxes",
    )

    args = parser.parse_args()

    settings = load_config(args.config)
    if args.source is not None:
        settings.camera.source = args.source
    setup_logging(settings)

    try:
        monitor = create_monitor(settings)
    except (ImportError, ValueError, DetectionUnavailable) as e:
        logger.error(f"Cannot start monitor: {e}")
        sys.exit(1)

    try:
        asyncio.run(run_monitor(monitor, duration=args.duration, show=args.show))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    sys.exit(0)


if __name__ == "__main__":
    main()
