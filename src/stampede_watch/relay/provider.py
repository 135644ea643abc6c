"""
Messaging Provider
==================

Outbound message delivery for the relay and the SOS notifier.

This module provides:
    - MessagingProvider: Protocol for anything that can send a text message
    - TwilioWhatsAppProvider: Twilio Messages REST API (WhatsApp channel)
    - RecordingProvider: In-memory provider for tests and dry runs

The Twilio provider talks to the REST endpoint directly with requests:
    POST {api_base}/Accounts/{account_sid}/Messages.json
    form body: From, To, Body   (HTTP basic auth: account_sid / auth_token)
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import requests

from stampede_watch.config import MessagingConfig
from stampede_watch.errors import DownstreamProviderError


logger = logging.getLogger(__name__)


class MessagingProvider(Protocol):
    """Protocol for message delivery backends."""

    def send(self, body: str, to: Optional[str] = None) -> str:
        """
        Send one message.

        Args:
            body: Message text
            to: Recipient address (defaults to the provider's configured recipient)

        Returns:
            Provider message id

        Raises:
            DownstreamProviderError: If the provider rejected or failed the send
        """
        ...


class TwilioWhatsAppProvider:
    """
    Twilio Messages API client.

    Attributes:
        account_sid: Twilio account identifier
        from_number: Sender address, e.g. 'whatsapp:+14155238886'
        to_number: Default recipient address
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        to_number: Optional[str] = None,
        api_base: str = "https://api.twilio.com/2010-04-01",
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.account_sid = account_sid
        self.from_number = from_number
        self.to_number = to_number
        self.timeout_seconds = timeout_seconds

        self._auth = (account_sid, auth_token)
        self._url = f"{api_base.rstrip('/')}/Accounts/{account_sid}/Messages.json"
        self._session = session or requests.Session()

        self._sent_count: int = 0
        self._error_count: int = 0

    @classmethod
    def from_config(cls, config: MessagingConfig) -> "TwilioWhatsAppProvider":
        """
        Build a provider from messaging settings.

        Raises:
            ConfigurationError: If any credential is missing
        """
        config.require_credentials()
        return cls(
            account_sid=config.account_sid,
            auth_token=config.auth_token,
            from_number=config.from_number,
            to_number=config.to_number,
            api_base=config.api_base,
            timeout_seconds=config.timeout_seconds,
        )

    def send(self, body: str, to: Optional[str] = None) -> str:
        recipient = to or self.to_number
        if not recipient:
            raise DownstreamProviderError("No recipient address configured")

        try:
            response = self._session.post(
                self._url,
                data={"From": self.from_number, "To": recipient, "Body": body},
                auth=self._auth,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            self._error_count += 1
            raise DownstreamProviderError(f"Network error reaching messaging provider: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.ok:
            self._error_count += 1
            detail = payload.get("message") or response.reason or "unknown error"
            raise DownstreamProviderError(
                f"Messaging provider responded {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        self._sent_count += 1
        message_id = payload.get("sid", "")
        logger.info(f"Message sent to {recipient} (sid={message_id or 'n/a'})")
        return message_id

    def get_metrics(self) -> dict:
        return {
            "sent": self._sent_count,
            "errors": self._error_count,
        }


@dataclass
class SentMessage:
    body: str
    to: Optional[str]


@dataclass
class RecordingProvider:
    """
    Provider that keeps messages in memory.

    Set fail_with to make every send raise DownstreamProviderError.
    """

    to_number: Optional[str] = None
    fail_with: Optional[str] = None
    sent: List[SentMessage] = field(default_factory=list)

    def send(self, body: str, to: Optional[str] = None) -> str:
        if self.fail_with:
            raise DownstreamProviderError(self.fail_with)
        self.sent.append(SentMessage(body=body, to=to or self.to_number))
        return f"SM{len(self.sent):032d}"
