"""
Alert Relay Application
=======================

FastAPI service that forwards stampede alerts from the monitor to a
messaging channel.

Endpoints:
    GET  /                    - Plain running message
    GET  /health              - Liveness probe
    POST /api/alert/stampede  - Relay one alert

Each request is isolated: validation errors become 400, provider failures
become 500, and neither affects the next request.
"""

import asyncio
import logging
import time
from typing import Any, Optional

import pydantic
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from stampede_watch import __version__
from stampede_watch.config import Settings
from stampede_watch.errors import DownstreamProviderError, ValidationError
from stampede_watch.models.alert import AlertRequest, AlertResponse, ErrorResponse
from stampede_watch.relay.provider import MessagingProvider, TwilioWhatsAppProvider


logger = logging.getLogger(__name__)


REQUIRED_FIELDS = ("message", "crowdDensity", "timestamp")
MISSING_FIELDS_ERROR = "Missing required fields: " + ", ".join(REQUIRED_FIELDS)
SUCCESS_MESSAGE = "WhatsApp alert sent!"
PROVIDER_FAILURE_ERROR = "Failed to send WhatsApp alert"


def format_alert_message(alert: AlertRequest) -> str:
    """Outbound message text for an alert."""
    return (
        "🚨 STAMPEDE ALERT! 🚨\n"
        f"Crowd Density: {alert.crowdDensity}\n"
        f"Details: {alert.message}"
    )


def parse_alert_request(body: Any) -> AlertRequest:
    """
    Validate a decoded request body.

    A field counts as missing when it is absent, null or an empty string;
    a crowdDensity of 0 is present.

    Raises:
        ValidationError: If a field is missing or has the wrong type
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    missing = [name for name in REQUIRED_FIELDS if body.get(name) in (None, "")]
    if missing:
        raise ValidationError(MISSING_FIELDS_ERROR)

    try:
        return AlertRequest.model_validate(body)
    except pydantic.ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid alert request: {errors}") from e


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)


def create_app(
    settings: Settings,
    provider: Optional[MessagingProvider] = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Loaded settings
        provider: Messaging backend (defaults to Twilio built from settings)

    Raises:
        ConfigurationError: If no provider is given and credentials are missing
    """
    if provider is None:
        provider = TwilioWhatsAppProvider.from_config(settings.messaging)

    app = FastAPI(
        title="StampedeWatch Relay",
        description="Forwards crowd-density alerts to a messaging channel",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    startup_time = time.time()
    counters = {"accepted": 0, "rejected": 0, "failed": 0}

    @app.get("/")
    async def root() -> PlainTextResponse:
        return PlainTextResponse("Stampede Detection Backend API is running!")

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness probe; always 200 while the process serves."""
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - startup_time, 1),
            **counters,
        })

    @app.post("/api/alert/stampede")
    async def stampede_alert(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            counters["rejected"] += 1
            logger.warning("Alert rejected (400): body is not valid JSON")
            return _error(400, "Request body must be valid JSON")

        try:
            alert = parse_alert_request(body)
        except ValidationError as e:
            counters["rejected"] += 1
            logger.warning(f"Alert rejected (400): {e}")
            return _error(400, str(e))

        try:
            await asyncio.to_thread(provider.send, format_alert_message(alert))
        except DownstreamProviderError as e:
            counters["failed"] += 1
            logger.error(f"Alert delivery failed (500): {e}")
            return _error(500, PROVIDER_FAILURE_ERROR, details=str(e))

        counters["accepted"] += 1
        logger.info(f"Alert relayed: crowdDensity={alert.crowdDensity}")
        return JSONResponse(AlertResponse(message=SUCCESS_MESSAGE).model_dump())

    return app
