"""
Relay Module
============

HTTP relay between the monitor and the messaging provider.

    - create_app: FastAPI application factory
    - MessagingProvider / TwilioWhatsAppProvider: Outbound delivery
"""

from stampede_watch.relay.app import (
    create_app,
    format_alert_message,
    parse_alert_request,
)
from stampede_watch.relay.provider import (
    MessagingProvider,
    RecordingProvider,
    TwilioWhatsAppProvider,
)

__all__ = [
    "create_app",
    "format_alert_message",
    "parse_alert_request",
    "MessagingProvider",
    "RecordingProvider",
    "TwilioWhatsAppProvider",
]
