"""
Crowd Monitor
=============

Cooperative sampling loop that ties the monitor-side stages together.

Per iteration:
    1. Read a frame from the video source in a worker thread
    2. Run the detector and count person-class detections
    3. Record the count in the activity log (only when it changed)
    4. Run the detection graph (classify -> cooldown gate)
    5. Update the alert status
    6. If the gate granted an alert, dispatch it in the background

The loop never waits on the relay. A dispatch result that arrives after the
operator disabled monitoring belongs to a finished session and is ignored.

Error Handling:
    - DetectionUnavailable (no camera, model not loaded) -> 'no-webcam'
    - Any other per-frame failure                         -> 'error'
    In both cases the loop keeps running.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Set, Tuple

from stampede_watch.agent.gate import CooldownGate
from stampede_watch.agent.graph import DetectionGraph, GraphResult
from stampede_watch.agent.status import AlertStatusMachine
from stampede_watch.config import Settings
from stampede_watch.detection import Detector, create_detector, person_detections
from stampede_watch.dispatch import AlertDispatcher, DispatchResult
from stampede_watch.errors import DetectionUnavailable
from stampede_watch.models.alert import ActivityRecord, AlertEvent
from stampede_watch.models.detection import Detection, DetectionSample
from stampede_watch.models.state import AlertStatus, DensityTier
from stampede_watch.observability.activity import ActivityLog
from stampede_watch.signals.classifier import DensityClassifier
from stampede_watch.stream import CameraSource, Frame, FrameSource


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MonitorSnapshot:
    """
    Point-in-time view of the monitor for display.

    Attributes:
        monitoring: True while the sampling loop is enabled
        detected_people: Person count of the latest frame
        tier: Tier of the latest frame
        status: Current alert status (auto-revert applied)
        cooldown_remaining: Seconds until another alert may be granted
        activity: Recent count changes, newest first
        last_error: Detail of the latest error status, if any
    """

    monitoring: bool
    detected_people: int
    tier: DensityTier
    status: AlertStatus
    cooldown_remaining: float
    activity: Tuple[ActivityRecord, ...]
    last_error: Optional[str] = None


class CrowdMonitor:
    """
    Owner of the monitoring session.

    Example:
        monitor = create_monitor(settings)
        monitor.enable()
        ...
        print(monitor.snapshot().status)
        await monitor.disable()
    """

    def __init__(
        self,
        source: FrameSource,
        detector: Detector,
        graph: DetectionGraph,
        dispatcher: AlertDispatcher,
        status: Optional[AlertStatusMachine] = None,
        activity: Optional[ActivityLog] = None,
        person_label: str = "person",
        min_score: float = 0.0,
        idle_sleep_seconds: float = 0.03,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.source = source
        self.detector = detector
        self.graph = graph
        self.dispatcher = dispatcher
        self.clock = clock or graph.clock
        self.status = status or AlertStatusMachine(clock=self.clock)
        self.activity = activity or ActivityLog()
        self.person_label = person_label
        self.min_score = min_score
        self.idle_sleep_seconds = idle_sleep_seconds

        self._monitoring: bool = False
        self._generation: int = 0
        self._task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

        self._detected_people: int = 0
        self._tier: DensityTier = DensityTier.QUIET
        self._last_frame: Optional[Frame] = None
        self._last_detections: Tuple[Detection, ...] = ()

        self._frames_processed: int = 0
        self._frame_errors: int = 0
        self._ignored_results: int = 0

    # -------------------------------------------------------------------------
    # Session control
    # -------------------------------------------------------------------------

    def enable(self) -> asyncio.Task:
        """
        Start the sampling loop on the running event loop.

        Enabling an already-enabled monitor returns the existing task.
        """
        if self._monitoring and self._task is not None:
            return self._task

        self._monitoring = True
        self._task = asyncio.create_task(self._run(), name="crowd_monitor")
        logger.info(f"Monitoring enabled (session {self._generation})")
        return self._task

    async def disable(self) -> None:
        """
        Stop the loop and return to a clean idle state.

        Cancels the sampling task, resets the gate, the status and the
        people count, and starts a new session generation so that
        dispatches still in flight cannot change the status afterwards.
        """
        self._monitoring = False
        self._generation += 1

        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.graph.reset()
        self.status.reset()
        self._detected_people = 0
        self._tier = DensityTier.QUIET
        self._last_detections = ()

        logger.info("Monitoring disabled")

    async def close(self) -> None:
        """Disable, wait for in-flight dispatches, release the source."""
        if self._monitoring:
            await self.disable()
        await self.wait_for_dispatches()
        self.source.close()

    async def wait_for_dispatches(self) -> None:
        """Wait until every background dispatch has finished."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def monitoring(self) -> bool:
        return self._monitoring

    @property
    def generation(self) -> int:
        """Session counter, bumped on every disable."""
        return self._generation

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        logger.info("Sampling loop started")
        try:
            while self._monitoring:
                try:
                    await self.step()
                except Exception as e:
                    self._frame_errors += 1
                    logger.error(f"Monitor loop error: {e}")
                    self.status.on_error(str(e), self.clock())
                await asyncio.sleep(self.idle_sleep_seconds)
        except asyncio.CancelledError:
            logger.info("Sampling loop cancelled")
            raise
        logger.info("Sampling loop stopped")

    async def step(self) -> Optional[GraphResult]:
        """
        Process one frame.

        Returns:
            GraphResult for the frame, or None when no sample was produced
        """
        now = self.clock()

        try:
            frame = await asyncio.to_thread(self.source.read)
            detections = await self.detector.detect(frame)
        except DetectionUnavailable as e:
            self._frame_errors += 1
            logger.warning(f"Detection unavailable: {e}")
            self.status.on_no_webcam(now)
            return None
        except Exception as e:
            self._frame_errors += 1
            logger.error(f"Detection error: {e}")
            self.status.on_error(str(e), now)
            return None

        people = tuple(person_detections(detections, self.person_label, self.min_score))
        sample = DetectionSample(
            count=len(people),
            captured_at=frame.timestamp,
            detections=people,
        )

        self._last_frame = frame
        self._last_detections = people
        self._detected_people = sample.count
        self.activity.record(sample.count, sample.captured_at)

        result = self.graph.process(sample, now=now)
        self._tier = result.tier
        self._frames_processed += 1

        if result.alert is not None:
            self.status.on_alert(now)
            self._launch_dispatch(result.alert)
        else:
            self.status.on_tier(result.tier, now)

        return result

    def _launch_dispatch(self, event: AlertEvent) -> None:
        generation = self._generation

        def _on_done(result: DispatchResult) -> None:
            if generation != self._generation:
                self._ignored_results += 1
                logger.info(
                    f"Dispatch result from session {generation} ignored "
                    f"(current session {self._generation})"
                )
                return
            if result.ok:
                self.status.on_sent(self.clock())
            else:
                self.status.on_error(result.error or "Dispatch failed", self.clock())

        task = self.dispatcher.dispatch_in_background(event, on_done=_on_done)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def snapshot(self, now: Optional[float] = None) -> MonitorSnapshot:
        """Current view of the session."""
        if now is None:
            now = self.clock()
        return MonitorSnapshot(
            monitoring=self._monitoring,
            detected_people=self._detected_people,
            tier=self._tier,
            status=self.status.current(now),
            cooldown_remaining=self.graph.gate.remaining(now),
            activity=self.activity.snapshot(),
            last_error=self.status.last_error,
        )

    @property
    def detected_people(self) -> int:
        return self._detected_people

    @property
    def last_frame(self) -> Optional[Frame]:
        return self._last_frame

    @property
    def last_detections(self) -> Tuple[Detection, ...]:
        """Person detections of the latest frame."""
        return self._last_detections

    @property
    def pending_dispatches(self) -> int:
        return len(self._pending)

    def get_metrics(self) -> dict:
        return {
            "monitoring": self._monitoring,
            "session": self._generation,
            "frames_processed": self._frames_processed,
            "frame_errors": self._frame_errors,
            "ignored_results": self._ignored_results,
            "gate": self.graph.gate.get_metrics(),
            "dispatch": self.dispatcher.get_metrics(),
        }


def create_monitor(
    settings: Settings,
    source: Optional[FrameSource] = None,
    detector: Optional[Detector] = None,
    dispatcher: Optional[AlertDispatcher] = None,
    clock: Callable[[], float] = time.monotonic,
) -> CrowdMonitor:
    """
    Build a CrowdMonitor from settings.

    Any component passed explicitly replaces the one settings would build.
    """
    cfg = settings.monitor

    graph = DetectionGraph(
        classifier=DensityClassifier(cfg.warning_threshold, cfg.critical_threshold),
        gate=CooldownGate(cooldown_seconds=cfg.cooldown_seconds, clock=clock),
        clock=clock,
    )

    if source is None:
        source = CameraSource(
            source=settings.camera.source,
            frame_width=settings.camera.frame_width,
            frame_height=settings.camera.frame_height,
        )
    if detector is None:
        detector = create_detector(settings.detector)
    if dispatcher is None:
        dispatcher = AlertDispatcher(
            relay_url=settings.dispatch.relay_url,
            timeout_seconds=settings.dispatch.timeout_seconds,
        )

    return CrowdMonitor(
        source=source,
        detector=detector,
        graph=graph,
        dispatcher=dispatcher,
        status=AlertStatusMachine(display_seconds=cfg.status_display_seconds, clock=clock),
        activity=ActivityLog(capacity=cfg.activity_capacity),
        person_label=settings.detector.person_label,
        min_score=settings.detector.confidence_threshold,
        idle_sleep_seconds=cfg.idle_sleep_seconds,
        clock=clock,
    )
