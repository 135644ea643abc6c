"""
Alert Dispatcher
================

Sends granted alerts from the monitor to the relay.

This dispatcher:
    - Formats the relay request body from an AlertEvent
    - Performs one POST per alert, off the event loop
    - Reports the outcome as a DispatchResult (never raises to the loop)
    - Never retries; the next alert waits for the next cooldown window
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Union

import requests

from stampede_watch.errors import DispatchFailure
from stampede_watch.models.alert import AlertEvent


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """
    Outcome of one dispatch.

    Attributes:
        ok: True when the relay acknowledged the alert
        status_code: HTTP status (0 when the request never completed)
        message: Relay success message
        error: Failure detail
    """

    ok: bool
    status_code: int = 0
    message: Optional[str] = None
    error: Optional[str] = None


def format_timestamp(epoch_seconds: float) -> str:
    """ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
    moment = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def build_payload(event: AlertEvent) -> dict:
    """Relay request body for an alert."""
    return {
        "message": event.message,
        "crowdDensity": event.people_count,
        "timestamp": format_timestamp(event.occurred_at),
    }


class AlertDispatcher:
    """
    HTTP client for the alert relay.

    Attributes:
        relay_url: Full URL of POST /api/alert/stampede
        timeout_seconds: Per-request timeout

    Example:
        dispatcher = AlertDispatcher("http://localhost:5000/api/alert/stampede")
        result = await dispatcher.dispatch(event)
        if not result.ok:
            print(result.error)
    """

    def __init__(
        self,
        relay_url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.relay_url = relay_url
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

        self._sent_count: int = 0
        self._failure_count: int = 0

        logger.info(f"AlertDispatcher initialized: relay={relay_url}")

    async def dispatch(self, event: AlertEvent) -> DispatchResult:
        """
        Send one alert to the relay.

        Returns:
            DispatchResult; failures are reported, not raised
        """
        try:
            result = await asyncio.to_thread(self._post, build_payload(event))
        except DispatchFailure as e:
            self._failure_count += 1
            logger.error(f"Alert dispatch failed ({event.people_count} people): {e}")
            return DispatchResult(ok=False, error=str(e))

        self._sent_count += 1
        logger.info(f"Alert delivered to relay ({event.people_count} people)")
        return result

    def _post(self, payload: dict) -> DispatchResult:
        """
        Blocking POST to the relay.

        Raises:
            DispatchFailure: On network error, non-2xx status or a negative ack
        """
        try:
            response = self._session.post(
                self.relay_url,
                json=payload,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise DispatchFailure(f"Network error reaching relay: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok or not body.get("success", False):
            detail = body.get("error") or response.reason or "unknown error"
            raise DispatchFailure(f"Relay responded {response.status_code}: {detail}")

        return DispatchResult(
            ok=True,
            status_code=response.status_code,
            message=body.get("message"),
        )

    def dispatch_in_background(
        self,
        event: AlertEvent,
        on_done: Optional[Callable[[DispatchResult], Union[Awaitable[None], None]]] = None,
    ) -> asyncio.Task:
        """
        Schedule a dispatch without waiting for it.

        The frame loop calls this and moves on to the next frame.
        on_done (sync or async) receives the DispatchResult.
        """

        async def _run() -> DispatchResult:
            result = await self.dispatch(event)
            if on_done is not None:
                outcome = on_done(result)
                if asyncio.iscoroutine(outcome):
                    await outcome
            return result

        return asyncio.create_task(_run(), name="alert_dispatch")

    def get_metrics(self) -> dict:
        return {
            "sent": self._sent_count,
            "failed": self._failure_count,
        }
