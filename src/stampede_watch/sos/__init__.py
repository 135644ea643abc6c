"""
SOS Module
==========

Review workflow for user-submitted SOS reports.

Components:
    - ReportStore: Storage protocol (InMemoryReportStore, FirestoreReportStore)
    - ReportFeed: Live pending list with resubscribe-on-error
    - ReviewWorkflow: approve / reject with notification fan-out
    - MessagingNotifier: Fan-out to configured recipients
    - TriageService: Optional AI video triage
"""

from stampede_watch.sos.feed import ReportFeed
from stampede_watch.sos.notifier import MessagingNotifier, Notifier, format_sos_message
from stampede_watch.sos.review import ReviewOutcome, ReviewWorkflow
from stampede_watch.sos.store import (
    FirestoreReportStore,
    InMemoryReportStore,
    ReportStore,
    Subscription,
)
from stampede_watch.sos.triage import (
    GeminiTriageClient,
    TriageOutcome,
    TriageResult,
    TriageService,
    TriageStats,
    parse_triage_text,
    summarize,
)

__all__ = [
    "ReportFeed",
    "MessagingNotifier",
    "Notifier",
    "format_sos_message",
    "ReviewOutcome",
    "ReviewWorkflow",
    "FirestoreReportStore",
    "InMemoryReportStore",
    "ReportStore",
    "Subscription",
    "GeminiTriageClient",
    "TriageOutcome",
    "TriageResult",
    "TriageService",
    "TriageStats",
    "parse_triage_text",
    "summarize",
]
