"""
Alert Dispatcher Tests
======================

The relay is replaced by a fake requests session.
"""

import asyncio

import requests

from stampede_watch.dispatch import AlertDispatcher, build_payload, format_timestamp
from stampede_watch.models.alert import AlertEvent, parse_iso8601
from stampede_watch.models.state import DensityTier


RELAY_URL = "http://relay.test/api/alert/stampede"


class FakeResponse:
    def __init__(self, status_code: int, body=None, reason: str = "") -> None:
        self.status_code = status_code
        self._body = body
        self.reason = reason
        self.ok = 200 <= status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def _event(count: int = 4) -> AlertEvent:
    return AlertEvent(
        severity=DensityTier.CRITICAL,
        people_count=count,
        message=f"Critical stampede risk! {count} people detected.",
        occurred_at=1714564800.125,
    )


class TestPayload:
    """Tests for the relay request body."""

    def test_payload_fields(self):
        """Verify the body carries message, crowdDensity and an ISO timestamp."""
        payload = build_payload(_event(5))

        assert payload["message"] == "Critical stampede risk! 5 people detected."
        assert payload["crowdDensity"] == 5
        assert payload["timestamp"] == "2024-05-01T12:00:00.125Z"

    def test_timestamp_parses_back(self):
        """Verify the timestamp format is accepted by the relay parser."""
        parsed = parse_iso8601(format_timestamp(0.0))
        assert parsed.year == 1970
        assert parsed.utcoffset().total_seconds() == 0


class TestAlertDispatcher:
    """Tests for delivery outcomes."""

    def test_success(self):
        """Verify a 2xx success ack yields ok=True."""
        session = FakeSession(FakeResponse(200, {"success": True, "message": "WhatsApp alert sent!"}))
        dispatcher = AlertDispatcher(RELAY_URL, timeout_seconds=3.0, session=session)

        result = asyncio.run(dispatcher.dispatch(_event()))

        assert result.ok is True
        assert result.status_code == 200
        assert result.message == "WhatsApp alert sent!"
        assert session.calls[0]["url"] == RELAY_URL
        assert session.calls[0]["timeout"] == 3.0
        assert session.calls[0]["json"]["crowdDensity"] == 4
        assert dispatcher.get_metrics() == {"sent": 1, "failed": 0}

    def test_server_error(self):
        """Verify a 500 from the relay is a failed result, not an exception."""
        body = {"success": False, "error": "Failed to send WhatsApp alert", "details": "auth"}
        dispatcher = AlertDispatcher(RELAY_URL, session=FakeSession(FakeResponse(500, body)))

        result = asyncio.run(dispatcher.dispatch(_event()))

        assert result.ok is False
        assert "500" in result.error
        assert "Failed to send WhatsApp alert" in result.error

    def test_network_error(self):
        """Verify a connection error is reported as a failed result."""
        session = FakeSession(error=requests.ConnectionError("refused"))
        dispatcher = AlertDispatcher(RELAY_URL, session=session)

        result = asyncio.run(dispatcher.dispatch(_event()))

        assert result.ok is False
        assert "refused" in result.error
        assert dispatcher.get_metrics()["failed"] == 1

    def test_negative_ack(self):
        """Verify a 200 without success=true counts as a failure."""
        dispatcher = AlertDispatcher(RELAY_URL, session=FakeSession(FakeResponse(200, {"success": False})))

        result = asyncio.run(dispatcher.dispatch(_event()))

        assert result.ok is False

    def test_no_retry(self):
        """Verify a failed dispatch makes exactly one request."""
        session = FakeSession(error=requests.Timeout("slow"))
        dispatcher = AlertDispatcher(RELAY_URL, session=session)

        asyncio.run(dispatcher.dispatch(_event()))

        assert len(session.calls) == 1

    def test_background_dispatch_calls_on_done(self):
        """Verify the background task hands the result to on_done."""
        session = FakeSession(FakeResponse(200, {"success": True, "message": "ok"}))
        dispatcher = AlertDispatcher(RELAY_URL, session=session)
        received = []

        async def run():
            task = dispatcher.dispatch_in_background(_event(), on_done=received.append)
            return await task

        result = asyncio.run(run())

        assert result.ok is True
        assert received == [result]
