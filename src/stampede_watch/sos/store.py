"""
SOS Report Store
================

Access to the document collection holding SOS reports.

This module provides:
    - ReportStore: Protocol used by the feed, the review workflow and triage
    - Subscription: Handle returned by subscribe()
    - InMemoryReportStore: Process-local store (tests, demos)
    - FirestoreReportStore: Cloud Firestore via firebase-admin

Subscription Contract:
    - on_snapshot receives the FULL list of pending reports, newest first,
      once on subscribe and again after every change
    - on_error is called once when the watch breaks; the subscription is
      dead afterwards and the caller must subscribe again
    - Documents that fail to parse are logged and left out of the snapshot
"""

import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from stampede_watch.errors import ReportNotFound, ValidationError
from stampede_watch.models.sos import ReportStatus, SOSReport


logger = logging.getLogger(__name__)


SnapshotCallback = Callable[[List[SOSReport]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription(Protocol):
    """Live watch over the pending reports."""

    @property
    def active(self) -> bool:
        ...

    def unsubscribe(self) -> None:
        ...


class ReportStore(Protocol):
    """Protocol for SOS report storage backends."""

    def get(self, report_id: str) -> SOSReport:
        """
        Fetch one report.

        Raises:
            ReportNotFound: If no document has this id
            ValidationError: If the document is malformed
        """
        ...

    def create(self, data: Mapping[str, Any]) -> str:
        """Add a raw report document; returns its generated id."""
        ...

    def transition(self, report_id: str, status: ReportStatus, notes: str = "") -> bool:
        """
        Persist a review decision (status plus adminReview) if the report
        is still pending. The check and the write are one atomic step.

        Returns:
            True if this call made the change, False if the report was
            already decided

        Raises:
            ReportNotFound: If no document has this id
        """
        ...

    def save_triage(self, report_id: str, analysis: Mapping[str, Any]) -> None:
        """Store a video triage analysis on the report."""
        ...

    def list_pending(self) -> List[SOSReport]:
        """Pending reports, newest first."""
        ...

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Subscription:
        """Watch the pending reports."""
        ...


def parse_documents(items: Any) -> List[SOSReport]:
    """Parse (doc_id, data) pairs, dropping malformed documents."""
    reports = []
    for doc_id, data in items:
        try:
            reports.append(SOSReport.from_document(doc_id, data))
        except ValidationError as e:
            logger.warning(f"Skipping SOS report: {e}")
    return reports


def _newest_first(reports: List[SOSReport]) -> List[SOSReport]:
    oldest = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(reports, key=lambda r: r.submitted_at or oldest, reverse=True)


# =============================================================================
# In-memory backend
# =============================================================================

class _MemorySubscription:
    def __init__(self, store: "InMemoryReportStore", on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> None:
        self._store = store
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._store._detach(self)


class InMemoryReportStore:
    """
    Dict-backed report store with the same snapshot semantics as Firestore.

    Example:
        store = InMemoryReportStore()
        report_id = store.create({"userId": "u1", "location": {...}, "createdAt": 0})
        store.transition(report_id, ReportStatus.APPROVED, "Units sent")
    """

    def __init__(self) -> None:
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._subscriptions: List[_MemorySubscription] = []
        self._ids = itertools.count(1)
        self._lock = threading.RLock()
        self.update_count: int = 0

    def get(self, report_id: str) -> SOSReport:
        with self._lock:
            data = self._docs.get(report_id)
        if data is None:
            raise ReportNotFound(f"SOS report {report_id} not found")
        return SOSReport.from_document(report_id, data)

    def create(self, data: Mapping[str, Any]) -> str:
        with self._lock:
            report_id = f"report-{next(self._ids)}"
            self._docs[report_id] = dict(data)
        self._broadcast()
        return report_id

    def transition(self, report_id: str, status: ReportStatus, notes: str = "") -> bool:
        with self._lock:
            data = self._docs.get(report_id)
            if data is None:
                raise ReportNotFound(f"SOS report {report_id} not found")
            if not _is_pending(data):
                return False
            data.update({
                "status": status.value,
                "adminReview": {
                    "decision": status.value,
                    "adminNotes": notes,
                    "reviewedAt": datetime.now(timezone.utc),
                },
            })
            self.update_count += 1
        self._broadcast()
        return True

    def save_triage(self, report_id: str, analysis: Mapping[str, Any]) -> None:
        with self._lock:
            if report_id not in self._docs:
                raise ReportNotFound(f"SOS report {report_id} not found")
            self._docs[report_id].update(_triage_fields(analysis, datetime.now(timezone.utc)))
        self._broadcast()

    def list_pending(self) -> List[SOSReport]:
        with self._lock:
            items = [
                (doc_id, data) for doc_id, data in self._docs.items()
                if _is_pending(data)
            ]
        return _newest_first(parse_documents(items))

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> _MemorySubscription:
        subscription = _MemorySubscription(self, on_snapshot, on_error)
        with self._lock:
            self._subscriptions.append(subscription)
        on_snapshot(self.list_pending())
        return subscription

    def break_subscriptions(self, error: Exception) -> None:
        """Simulate a dropped connection: every live watch errors and dies."""
        with self._lock:
            broken, self._subscriptions = self._subscriptions, []
        for subscription in broken:
            subscription._active = False
            subscription.on_error(error)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _detach(self, subscription: _MemorySubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _broadcast(self) -> None:
        with self._lock:
            subscribers = list(self._subscriptions)
        if not subscribers:
            return
        snapshot = self.list_pending()
        for subscription in subscribers:
            subscription.on_snapshot(list(snapshot))


# =============================================================================
# Firestore backend
# =============================================================================

class _FirestoreSubscription:
    def __init__(self, watch: Any) -> None:
        self._watch = watch
        self._closed = False

    @property
    def active(self) -> bool:
        return not self._closed and bool(getattr(self._watch, "is_active", True))

    def unsubscribe(self) -> None:
        if not self._closed:
            self._closed = True
            self._watch.unsubscribe()


class FirestoreReportStore:
    """
    Report store backed by Cloud Firestore.

    Attributes:
        collection: Collection name (default 'sosReports')
    """

    def __init__(
        self,
        collection: str = "sosReports",
        credentials_path: Optional[str] = None,
        client: Any = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            collection: Collection holding the report documents
            credentials_path: Service account JSON (None = application default)
            client: Existing Firestore client (skips firebase_admin init)

        Raises:
            ImportError: If firebase-admin is not installed
        """
        self.collection = collection
        self._firestore = self._import_firestore()
        self._client = client if client is not None else self._init_client(credentials_path)
        self._collection = self._client.collection(collection)

        logger.info(f"FirestoreReportStore initialized: collection={collection}")

    @staticmethod
    def _import_firestore() -> Any:
        try:
            from firebase_admin import firestore
        except ImportError:
            raise ImportError(
                "firebase-admin is required for FirestoreReportStore. "
                "Install with: pip install 'stampede-watch[firebase]'"
            )
        return firestore

    def _init_client(self, credentials_path: Optional[str]) -> Any:
        import firebase_admin
        from firebase_admin import credentials

        if not firebase_admin._apps:
            cred = (
                credentials.Certificate(credentials_path)
                if credentials_path
                else credentials.ApplicationDefault()
            )
            firebase_admin.initialize_app(cred)
        return self._firestore.client()

    def get(self, report_id: str) -> SOSReport:
        doc = self._collection.document(report_id).get()
        if not doc.exists:
            raise ReportNotFound(f"SOS report {report_id} not found")
        return SOSReport.from_document(doc.id, doc.to_dict() or {})

    def create(self, data: Mapping[str, Any]) -> str:
        payload = dict(data)
        payload.setdefault("status", ReportStatus.PENDING.value)
        payload.setdefault("createdAt", self._firestore.SERVER_TIMESTAMP)
        _, ref = self._collection.add(payload)
        return ref.id

    def transition(self, report_id: str, status: ReportStatus, notes: str = "") -> bool:
        ref = self._collection.document(report_id)
        update = {
            "status": status.value,
            "adminReview": {
                "decision": status.value,
                "adminNotes": notes,
                "reviewedAt": self._firestore.SERVER_TIMESTAMP,
            },
        }

        @self._firestore.transactional
        def _apply(transaction: Any) -> bool:
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise ReportNotFound(f"SOS report {report_id} not found")
            if not _is_pending(snapshot.to_dict() or {}):
                return False
            transaction.update(ref, update)
            return True

        return _apply(self._client.transaction())

    def save_triage(self, report_id: str, analysis: Mapping[str, Any]) -> None:
        self._collection.document(report_id).update(
            _triage_fields(analysis, self._firestore.SERVER_TIMESTAMP)
        )

    def _pending_query(self) -> Any:
        return (
            self._collection
            .where("status", "==", ReportStatus.PENDING.value)
            .order_by("createdAt", direction=self._firestore.Query.DESCENDING)
        )

    def list_pending(self) -> List[SOSReport]:
        docs = self._pending_query().stream()
        return parse_documents((doc.id, doc.to_dict() or {}) for doc in docs)

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> _FirestoreSubscription:
        def _callback(docs: Any, changes: Any, read_time: Any) -> None:
            try:
                reports = parse_documents((doc.id, doc.to_dict() or {}) for doc in docs)
                on_snapshot(reports)
            except Exception as e:
                logger.error(f"SOS snapshot handling failed: {e}")
                on_error(e)

        watch = self._pending_query().on_snapshot(_callback)
        return _FirestoreSubscription(watch)


def _triage_fields(analysis: Mapping[str, Any], analyzed_at: Any) -> Dict[str, Any]:
    return {
        "geminiAnalysis": {**analysis, "analyzedAt": analyzed_at},
        "isEmergency": analysis.get("is_emergency", False),
        "primaryService": analysis.get("primary_service"),
        "analysisConfidence": analysis.get("confidence"),
    }


def _is_pending(data: Mapping[str, Any]) -> bool:
    return (data.get("status") or ReportStatus.PENDING.value) == ReportStatus.PENDING.value
