"""
SOS Notification Fan-out
========================

Tells nearby users about an approved SOS report.

Who counts as "nearby" is a deployment decision: MessagingNotifier sends to
the recipient list configured under sos.recipients.
"""

import logging
from typing import List, Optional, Protocol, Sequence

from stampede_watch.errors import DownstreamProviderError
from stampede_watch.models.sos import SOSReport
from stampede_watch.relay.provider import MessagingProvider


logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Protocol for the approval fan-out."""

    def notify_nearby(self, report: SOSReport) -> int:
        """
        Notify users near the report.

        Returns:
            Number of notifications delivered

        Raises:
            DownstreamProviderError: If the fan-out failed
        """
        ...


def format_sos_message(report: SOSReport) -> str:
    loc = report.location
    lines = [
        "🚨 SOS ALERT NEAR YOU 🚨",
        f"Location: https://maps.google.com/?q={loc.latitude},{loc.longitude}",
    ]
    if report.message:
        lines.append(f"Details: {report.message}")
    return "\n".join(lines)


class MessagingNotifier:
    """
    Sends one message per configured recipient.

    Every recipient is attempted even if an earlier send failed. If any
    send failed, DownstreamProviderError is raised after the loop with the
    failure count; the successful sends are not undone.
    """

    def __init__(self, provider: MessagingProvider, recipients: Sequence[str]) -> None:
        self.provider = provider
        self.recipients: List[str] = list(recipients)

    def notify_nearby(self, report: SOSReport) -> int:
        if not self.recipients:
            logger.warning(f"No recipients configured; SOS {report.id} not broadcast")
            return 0

        body = format_sos_message(report)
        delivered = 0
        last_error: Optional[DownstreamProviderError] = None

        for recipient in self.recipients:
            try:
                self.provider.send(body, to=recipient)
                delivered += 1
            except DownstreamProviderError as e:
                last_error = e
                logger.error(f"SOS {report.id}: notification to {recipient} failed: {e}")

        if last_error is not None:
            failed = len(self.recipients) - delivered
            raise DownstreamProviderError(
                f"{failed} of {len(self.recipients)} notifications failed "
                f"({delivered} delivered): {last_error}"
            )

        logger.info(f"SOS {report.id}: notified {delivered} recipients")
        return delivered
