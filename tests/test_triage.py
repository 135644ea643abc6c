"""
SOS Video Triage Tests
======================

The video host is a fake requests session and the model is a fake
genai client.
"""

import json

import pytest

from stampede_watch.errors import TriageError
from stampede_watch.models.sos import SOSReport
from stampede_watch.sos import (
    GeminiTriageClient,
    InMemoryReportStore,
    TriageOutcome,
    TriageResult,
    TriageService,
    parse_triage_text,
    summarize,
)


EMERGENCY = {
    "is_emergency": True,
    "reason": "A crowd crush is visible at the gate.",
    "primary_service": "Police",
    "confidence": "High",
}


class FakeResponse:
    def __init__(self, status_code=200, content=b"", headers=None, chunk_size=None) -> None:
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.reason = "OK" if self.ok else "Error"
        self.content = content
        self.headers = headers or {}
        self.chunk_size = chunk_size
        self.chunks_read = 0
        self.closed = False

    def iter_content(self, chunk_size=1):
        step = self.chunk_size or chunk_size
        for start in range(0, len(self.content), step):
            self.chunks_read += 1
            yield self.content[start:start + step]

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, video=None) -> None:
        self.video = video or FakeResponse(content=b"\x00\x01video", headers={"Content-Type": "video/webm"})
        self.gets = []

    def get(self, url, timeout=None, stream=False):
        self.gets.append({"url": url, "stream": stream})
        return self.video


class FakeGenerated:
    def __init__(self, text) -> None:
        self.text = text


class FakeModels:
    def __init__(self, answer=None, error=None) -> None:
        self.answer = answer
        self.error = error
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        return FakeGenerated(self.answer)


class FakeGenaiClient:
    def __init__(self, answer=None, error=None) -> None:
        self.models = FakeModels(answer, error)


class TestParseTriageText:
    """Tests for answer parsing and validation."""

    def test_plain_json(self):
        """Verify a valid emergency answer parses."""
        result = parse_triage_text(json.dumps(EMERGENCY))
        assert result.is_emergency is True
        assert result.primary_service == "Police"
        assert result.confidence == "High"

    def test_json_inside_prose(self):
        """Verify the first {...} block is used when the text is not pure JSON."""
        text = "Here is my assessment:\n" + json.dumps(EMERGENCY) + "\nStay safe."
        assert parse_triage_text(text).primary_service == "Police"

    def test_non_emergency_nulls_fields(self):
        """Verify service and confidence are forced to null."""
        answer = {"is_emergency": False, "reason": "Concert", "primary_service": "Police", "confidence": "Low"}
        result = parse_triage_text(json.dumps(answer))
        assert result.primary_service is None
        assert result.confidence is None

    def test_invalid_service(self):
        """Verify an unknown service is rejected for an emergency."""
        with pytest.raises(TriageError):
            parse_triage_text(json.dumps({**EMERGENCY, "primary_service": "Coast Guard"}))

    def test_missing_confidence(self):
        """Verify an emergency needs a confidence level."""
        with pytest.raises(TriageError):
            parse_triage_text(json.dumps({**EMERGENCY, "confidence": None}))

    def test_is_emergency_must_be_bool(self):
        """Verify a string is not accepted for is_emergency."""
        with pytest.raises(TriageError):
            parse_triage_text(json.dumps({**EMERGENCY, "is_emergency": "yes"}))

    def test_no_json(self):
        """Verify text without any object fails."""
        with pytest.raises(TriageError):
            parse_triage_text("I cannot help with that.")


class TestGeminiTriageClient:
    """Tests for the model client."""

    def test_analyze(self):
        """Verify the request carries the prompt and the inline video."""
        session = FakeSession()
        genai_client = FakeGenaiClient(answer=json.dumps(EMERGENCY))
        client = GeminiTriageClient(api_key="k", session=session, client=genai_client)

        result = client.analyze("https://storage.example.com/v.webm")

        call = genai_client.models.calls[0]
        parts = call["contents"][0]["parts"]
        assert result.primary_service == "Police"
        assert call["model"] == "gemini-1.5-flash"
        assert call["config"]["response_mime_type"] == "application/json"
        assert "emergency assessment" in parts[0]["text"]
        assert parts[1]["inline_data"]["mime_type"] == "video/webm"
        assert parts[1]["inline_data"]["data"] == b"\x00\x01video"
        assert session.gets[0]["stream"] is True
        assert session.video.closed is True

    def test_missing_key(self):
        """Verify triage refuses to run without an API key."""
        genai_client = FakeGenaiClient(answer=json.dumps(EMERGENCY))
        with pytest.raises(TriageError):
            GeminiTriageClient(api_key=None, session=FakeSession(), client=genai_client).analyze("https://x/v.mp4")
        assert genai_client.models.calls == []

    def test_api_error(self):
        """Verify a model API failure raises TriageError."""
        genai_client = FakeGenaiClient(error=RuntimeError("429 RESOURCE_EXHAUSTED"))
        with pytest.raises(TriageError) as exc_info:
            GeminiTriageClient(api_key="k", session=FakeSession(), client=genai_client).analyze("https://x/v.mp4")
        assert "429" in str(exc_info.value)

    def test_video_download_failure(self):
        """Verify an unreachable video raises TriageError."""
        session = FakeSession(video=FakeResponse(status_code=404))
        with pytest.raises(TriageError):
            GeminiTriageClient(api_key="k", session=session, client=FakeGenaiClient()).analyze("https://x/v.mp4")

    def test_empty_answer(self):
        """Verify an answer without text raises TriageError."""
        with pytest.raises(TriageError):
            GeminiTriageClient(
                api_key="k", session=FakeSession(), client=FakeGenaiClient(answer=None),
            ).analyze("https://x/v.mp4")

    def test_declared_size_over_limit(self):
        """Verify a video announced as too large is refused before download."""
        video = FakeResponse(content=b"x" * 64, headers={"Content-Length": "64"})
        genai_client = FakeGenaiClient(answer=json.dumps(EMERGENCY))
        client = GeminiTriageClient(
            api_key="k", max_video_bytes=32, session=FakeSession(video=video), client=genai_client,
        )

        with pytest.raises(TriageError) as exc_info:
            client.analyze("https://x/v.mp4")

        assert "too large" in str(exc_info.value)
        assert video.chunks_read == 0
        assert video.closed is True
        assert genai_client.models.calls == []

    def test_streamed_size_over_limit(self):
        """Verify the download stops once the limit is passed without a Content-Length."""
        video = FakeResponse(content=b"x" * 100, chunk_size=10)
        genai_client = FakeGenaiClient(answer=json.dumps(EMERGENCY))
        client = GeminiTriageClient(
            api_key="k", max_video_bytes=25, session=FakeSession(video=video), client=genai_client,
        )

        with pytest.raises(TriageError):
            client.analyze("https://x/v.mp4")

        assert video.chunks_read == 3
        assert genai_client.models.calls == []

    def test_from_config_converts_limit(self, settings):
        """Verify the configured megabytes become a byte limit."""
        client = GeminiTriageClient.from_config(settings.triage)
        assert client.max_video_bytes == 15 * 1024 * 1024


class StubClient:
    model = "gemini-1.5-flash"

    def __init__(self, results) -> None:
        self.results = list(results)
        self.calls = []

    def analyze(self, video_url):
        self.calls.append(video_url)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class TestTriageService:
    """Tests for storing triage results on reports."""

    def test_success_is_stored(self, sample_report_doc):
        """Verify a successful analysis lands on the report."""
        store = InMemoryReportStore()
        report_id = store.create(sample_report_doc)
        service = TriageService(store, StubClient([TriageResult(**EMERGENCY)]))

        outcome = service.analyze_report(store.get(report_id))

        assert outcome.success is True
        stored = store.get(report_id).triage
        assert stored["primary_service"] == "Police"
        assert stored["videoUrl"] == sample_report_doc["videoUrl"]

    def test_failure_is_stored(self, sample_report_doc):
        """Verify a failed analysis is recorded as a non-emergency with the error."""
        store = InMemoryReportStore()
        report_id = store.create(sample_report_doc)
        service = TriageService(store, StubClient([TriageError("quota exceeded")]))

        outcome = service.analyze_report(store.get(report_id))

        assert outcome.success is False
        stored = store.get(report_id).triage
        assert stored["error"] is True
        assert stored["is_emergency"] is False
        assert "quota exceeded" in stored["reason"]

    def test_analyze_pending_skips(self, sample_report_doc):
        """Verify reports without video or with an analysis are skipped."""
        store = InMemoryReportStore()
        fresh = store.create(sample_report_doc)
        store.create({**sample_report_doc, "videoUrl": None})
        store.create({**sample_report_doc, "geminiAnalysis": {"is_emergency": False}})
        client = StubClient([TriageResult(**EMERGENCY)])
        sleeps = []

        outcomes = TriageService(store, client).analyze_pending(
            store.list_pending(), sleep=sleeps.append,
        )

        assert [o.report_id for o in outcomes] == [fresh]
        assert len(client.calls) == 1
        assert sleeps == []

    def test_analyze_pending_rate_limits(self, sample_report_doc):
        """Verify the service pauses between consecutive API calls."""
        store = InMemoryReportStore()
        store.create(sample_report_doc)
        store.create({**sample_report_doc, "createdAt": 1714564900.0})
        client = StubClient([TriageResult(**EMERGENCY), TriageError("boom")])
        sleeps = []
        progress = []

        outcomes = TriageService(store, client).analyze_pending(
            store.list_pending(),
            delay_seconds=2.0,
            sleep=sleeps.append,
            on_progress=lambda done, total, outcome: progress.append((done, total)),
        )

        assert sleeps == [2.0]
        assert progress == [(1, 2), (2, 2)]
        assert [o.success for o in outcomes] == [True, False]


class TestSummarize:
    """Tests for the batch statistics."""

    def test_stats(self):
        """Verify totals, rate and service breakdown."""
        outcomes = [
            TriageOutcome("a", True, TriageResult(**EMERGENCY)),
            TriageOutcome("b", True, TriageResult(**{**EMERGENCY, "primary_service": "Ambulance"})),
            TriageOutcome("c", True, TriageResult(is_emergency=False, reason="fine")),
            TriageOutcome("d", False, error="boom"),
        ]

        stats = summarize(outcomes)

        assert stats.total_analyzed == 4
        assert stats.emergencies == 2
        assert stats.non_emergencies == 1
        assert stats.failed == 1
        assert stats.emergency_rate == 50.0
        assert stats.service_breakdown == {"Police": 1, "Ambulance": 1, "Fire Brigade": 0}

    def test_empty(self):
        """Verify an empty batch has a zero rate."""
        assert summarize([]).emergency_rate == 0.0
