"""
SOS Review Workflow
===================

Operator decisions on pending SOS reports.

States:
    pending -> approved   (terminal; triggers the nearby-user fan-out)
    pending -> rejected   (terminal; no fan-out)

Rules:
    - A decision on a report that is already terminal changes nothing and
      notifies nobody, so a repeated approve cannot double-notify
    - The pending check and the write happen atomically in the store, so
      of two concurrent decisions exactly one is persisted and fanned out
    - The status change is persisted BEFORE the fan-out
    - If the fan-out fails after the status change was committed, the
      outcome is partial: the approval stands, the notification may not
      have gone out
"""

import logging
from dataclasses import dataclass
from typing import Optional

from stampede_watch.errors import PartialWorkflowFailure
from stampede_watch.models.sos import ReportStatus
from stampede_watch.sos.notifier import Notifier
from stampede_watch.sos.store import ReportStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    """
    Result of one review decision.

    Attributes:
        report_id: Reviewed report
        status: Report status after the call
        changed: False when the report was already terminal
        notified: Notifications delivered by the fan-out
        partial: Status committed but the fan-out failed
        error: Fan-out failure detail
    """

    report_id: str
    status: ReportStatus
    changed: bool
    notified: int = 0
    partial: bool = False
    error: Optional[str] = None

    def raise_for_partial(self) -> None:
        """Raise PartialWorkflowFailure if the fan-out failed."""
        if self.partial:
            raise PartialWorkflowFailure(
                f"SOS {self.report_id} {self.status.value}, but notification failed: {self.error}"
            )


class ReviewWorkflow:
    """
    Approve / reject operations over a report store.

    Example:
        workflow = ReviewWorkflow(store, notifier)
        outcome = workflow.approve("abc123", notes="Units dispatched")
        if outcome.partial:
            print("Approved, but nearby users were not notified")
    """

    def __init__(self, store: ReportStore, notifier: Notifier) -> None:
        self.store = store
        self.notifier = notifier

    def approve(self, report_id: str, notes: str = "") -> ReviewOutcome:
        """
        Approve a pending report and notify nearby users.

        Raises:
            ReportNotFound: If the report does not exist
        """
        outcome = self._decide(report_id, ReportStatus.APPROVED, notes)
        if not outcome.changed:
            return outcome

        report = self.store.get(report_id)
        try:
            notified = self.notifier.notify_nearby(report)
        except Exception as e:
            logger.error(f"SOS {report_id} approved, notification fan-out failed: {e}")
            return ReviewOutcome(
                report_id=report_id,
                status=ReportStatus.APPROVED,
                changed=True,
                partial=True,
                error=str(e),
            )

        logger.info(f"SOS {report_id} approved, {notified} users notified")
        return ReviewOutcome(
            report_id=report_id,
            status=ReportStatus.APPROVED,
            changed=True,
            notified=notified,
        )

    def reject(self, report_id: str, notes: str = "") -> ReviewOutcome:
        """
        Reject a pending report. No notification is sent.

        Raises:
            ReportNotFound: If the report does not exist
        """
        outcome = self._decide(report_id, ReportStatus.REJECTED, notes)
        if outcome.changed:
            logger.info(f"SOS {report_id} rejected")
        return outcome

    def _decide(self, report_id: str, decision: ReportStatus, notes: str) -> ReviewOutcome:
        if self.store.transition(report_id, decision, notes):
            return ReviewOutcome(report_id=report_id, status=decision, changed=True)

        current = self.store.get(report_id).status
        logger.info(f"SOS {report_id} already {current.value}; {decision.value} ignored")
        return ReviewOutcome(report_id=report_id, status=current, changed=False)
