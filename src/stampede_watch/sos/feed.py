"""
SOS Report Feed
===============

Keeps the operator's list of pending reports current.

Behavior:
    - start() subscribes; the first callback delivers the full snapshot
    - every later callback REPLACES the held list (no delta merging)
    - a subscription error closes the old watch and schedules a fresh
      subscribe after resubscribe_delay_seconds; the fresh subscription
      delivers a fresh snapshot, so nothing is assumed about what changed
      while disconnected
"""

import logging
import threading
from typing import Any, Callable, List, Optional, Tuple

from stampede_watch.models.sos import SOSReport
from stampede_watch.sos.store import ReportStore, Subscription


logger = logging.getLogger(__name__)


Scheduler = Callable[[float, Callable[[], None]], Any]
Listener = Callable[[Tuple[SOSReport, ...]], None]


def _timer_scheduler(delay: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer


class ReportFeed:
    """
    Live pending-report list with automatic resubscription.

    Attributes:
        store: Report store to watch
        resubscribe_delay_seconds: Wait before subscribing again after an error

    Example:
        feed = ReportFeed(store)
        feed.add_listener(lambda reports: print(len(reports), "pending"))
        feed.start()
    """

    def __init__(
        self,
        store: ReportStore,
        resubscribe_delay_seconds: float = 5.0,
        scheduler: Scheduler = _timer_scheduler,
    ) -> None:
        self.store = store
        self.resubscribe_delay_seconds = resubscribe_delay_seconds
        self._scheduler = scheduler

        self._lock = threading.Lock()
        self._reports: Tuple[SOSReport, ...] = ()
        self._subscription: Optional[Subscription] = None
        self._listeners: List[Listener] = []
        self._running: bool = False

        self._snapshots_received: int = 0
        self._resubscribe_count: int = 0
        self._last_error: Optional[str] = None

    def start(self) -> None:
        """Subscribe to the store (no-op if already running)."""
        with self._lock:
            if self._running:
                return
            self._running = True
        self._subscribe()

    def stop(self) -> None:
        """Close the subscription; pending resubscribes are dropped."""
        with self._lock:
            self._running = False
            subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()
        logger.info("SOS feed stopped")

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def pending(self) -> Tuple[SOSReport, ...]:
        """Latest snapshot of pending reports, newest first."""
        return self._reports

    @property
    def running(self) -> bool:
        return self._running

    def _subscribe(self) -> None:
        if not self._running:
            return
        try:
            subscription = self.store.subscribe(self._on_snapshot, self._on_error)
        except Exception as e:
            logger.error(f"SOS feed subscribe failed: {e}")
            self._schedule_resubscribe(str(e))
            return

        with self._lock:
            if not self._running:
                stale = subscription
            else:
                stale, self._subscription = None, subscription
        if stale is not None:
            stale.unsubscribe()
        logger.info("SOS feed subscribed")

    def _on_snapshot(self, reports: List[SOSReport]) -> None:
        with self._lock:
            self._reports = tuple(reports)
            self._snapshots_received += 1
            snapshot = self._reports
        logger.debug(f"SOS snapshot: {len(snapshot)} pending")

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"SOS feed listener failed: {e}")

    def _on_error(self, error: Exception) -> None:
        logger.warning(f"SOS subscription error: {error}")
        with self._lock:
            subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()
        self._schedule_resubscribe(str(error))

    def _schedule_resubscribe(self, reason: str) -> None:
        if not self._running:
            return
        self._last_error = reason
        self._resubscribe_count += 1
        logger.info(f"SOS feed resubscribing in {self.resubscribe_delay_seconds}s")
        self._scheduler(self.resubscribe_delay_seconds, self._subscribe)

    def check(self) -> bool:
        """
        Verify the watch is alive; resubscribe if it died silently.

        Returns:
            True if the subscription was healthy
        """
        subscription = self._subscription
        if not self._running or (subscription is not None and subscription.active):
            return True
        if subscription is not None:
            self._on_error(RuntimeError("subscription no longer active"))
        return False

    def get_metrics(self) -> dict:
        return {
            "running": self._running,
            "pending": len(self._reports),
            "snapshots_received": self._snapshots_received,
            "resubscribes": self._resubscribe_count,
            "last_error": self._last_error,
        }
