"""
Error Taxonomy
==============

Exceptions raised across the monitor, relay and SOS workflow.

Each error is raised at the seam that detects it and converted at the
boundary of its pipeline stage:
    - monitor side: into an AlertStatus value (never ends the loop)
    - relay side: into an HTTP response (never ends the process)
"""


class StampedeWatchError(Exception):
    """Base class for all StampedeWatch errors."""
    pass


class ConfigurationError(StampedeWatchError):
    """Required credential or setting missing at startup. Fatal for the relay."""
    pass


class ValidationError(StampedeWatchError):
    """Malformed or incomplete input (alert request, store document)."""
    pass


class DownstreamProviderError(StampedeWatchError):
    """The messaging provider rejected or failed a send."""

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class DetectionUnavailable(StampedeWatchError):
    """Detector not ready or video source not producing frames."""
    pass


class DispatchFailure(StampedeWatchError):
    """Network or HTTP failure reaching the relay from the monitor."""
    pass


class PartialWorkflowFailure(StampedeWatchError):
    """SOS status change committed, notification fan-out failed."""
    pass


class ReportNotFound(StampedeWatchError):
    """No SOS report with the requested id."""
    pass


class TriageError(StampedeWatchError):
    """AI video triage call failed or returned an unusable answer."""
    pass
