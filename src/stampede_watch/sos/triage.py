"""
SOS Video Triage
================

Optional AI assessment of the video attached to an SOS report.

The model is asked two questions: is this a real, immediate emergency, and
if so which single service is most needed. Its answer is validated before
anything is stored:
    - is_emergency must be a boolean
    - for an emergency, primary_service must be Police, Ambulance or
      Fire Brigade and confidence must be High, Medium or Low
    - for a non-emergency both are forced to null

Triage never changes a report's review status; it only annotates it for
the operator.
"""

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Tuple

import pydantic
import requests
from pydantic import BaseModel, StrictBool, model_validator

from stampede_watch.config import TriageConfig
from stampede_watch.errors import TriageError
from stampede_watch.models.sos import SOSReport
from stampede_watch.sos.store import ReportStore


logger = logging.getLogger(__name__)


SERVICES = ("Police", "Ambulance", "Fire Brigade")
CONFIDENCE_LEVELS = ("High", "Medium", "Low")

# Inline request limit is 20 MB after base64 encoding.
MAX_INLINE_VIDEO_BYTES = 15 * 1024 * 1024
DOWNLOAD_CHUNK_BYTES = 1024 * 1024

EMERGENCY_ANALYSIS_PROMPT = """Analyze the provided video and perform a two-step emergency assessment.

First, determine if the video shows a real-world, immediate emergency (like a traffic accident, fire, violence, or medical crisis).

Second, IF AND ONLY IF it is an emergency, determine the single most critical emergency service required. Choose one from: ["Police", "Ambulance", "Fire Brigade"].

Respond ONLY with a single valid JSON object following this exact structure. If "is_emergency" is false, the "primary_service" and "confidence" fields MUST be null.

{
  "is_emergency": boolean,
  "reason": "A brief one-sentence explanation for your decision.",
  "primary_service": "Your choice from the list OR null",
  "confidence": "High | Medium | Low OR null"
}"""


class TriageResult(BaseModel):
    """Validated model answer."""

    is_emergency: StrictBool
    reason: str = ""
    primary_service: Optional[Literal["Police", "Ambulance", "Fire Brigade"]] = None
    confidence: Optional[Literal["High", "Medium", "Low"]] = None

    @model_validator(mode="before")
    @classmethod
    def _clear_for_non_emergency(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("is_emergency") is False:
            data = {**data, "primary_service": None, "confidence": None}
        return data

    @model_validator(mode="after")
    def _require_service_for_emergency(self) -> "TriageResult":
        if self.is_emergency:
            if self.primary_service is None:
                raise ValueError(f"primary_service must be one of {', '.join(SERVICES)}")
            if self.confidence is None:
                raise ValueError(f"confidence must be one of {', '.join(CONFIDENCE_LEVELS)}")
        return self


def parse_triage_text(text: str) -> TriageResult:
    """
    Parse the model's text answer.

    Accepts bare JSON, or JSON embedded in surrounding prose (the first
    {...} block is used).

    Raises:
        TriageError: If no valid answer can be extracted
    """
    try:
        data = json.loads(text)
    except ValueError:
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if match is None:
            raise TriageError("Invalid JSON response from triage model")
        try:
            data = json.loads(match.group(0))
        except ValueError as e:
            raise TriageError(f"Invalid JSON response from triage model: {e}") from e

    try:
        return TriageResult.model_validate(data)
    except pydantic.ValidationError as e:
        raise TriageError(f"Invalid analysis result: {e}") from e


class GeminiTriageClient:
    """
    Gemini video triage client (google-genai).

    The video is downloaded and sent inline, alongside the prompt. Videos
    larger than max_video_bytes are refused before any model call.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-1.5-flash",
        timeout_seconds: float = 60.0,
        max_video_bytes: int = MAX_INLINE_VIDEO_BYTES,
        session: Optional[requests.Session] = None,
        client: Any = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_video_bytes = max_video_bytes
        self._session = session or requests.Session()
        self._client = client

    @classmethod
    def from_config(cls, config: TriageConfig) -> "GeminiTriageClient":
        return cls(
            api_key=config.api_key,
            model=config.model,
            timeout_seconds=config.timeout_seconds,
            max_video_bytes=int(config.max_video_mb * 1024 * 1024),
        )

    def analyze(self, video_url: str) -> TriageResult:
        """
        Triage one video.

        Raises:
            TriageError: On missing key, download failure, oversized video,
                API error or an unusable answer
        """
        if not self.api_key:
            raise TriageError("Triage API key not configured (set GEMINI_API_KEY)")

        video, mime_type = self._download(video_url)
        text = self._generate(video, mime_type)
        return parse_triage_text(text)

    def _genai_client(self) -> Any:
        if self._client is None:
            try:
                from google import genai
            except ImportError:
                raise TriageError(
                    "google-genai is required for video triage. "
                    "Install with: pip install 'stampede-watch[triage]'"
                )
            self._client = genai.Client(
                api_key=self.api_key,
                http_options={"timeout": int(self.timeout_seconds * 1000)},
            )
        return self._client

    def _download(self, video_url: str) -> Tuple[bytes, str]:
        try:
            response = self._session.get(video_url, timeout=self.timeout_seconds, stream=True)
        except requests.RequestException as e:
            raise TriageError(f"Failed to fetch video: {e}") from e

        try:
            if not response.ok:
                raise TriageError(f"Failed to fetch video: {response.status_code} {response.reason}")

            declared = response.headers.get("Content-Length")
            if declared and declared.isdigit() and int(declared) > self.max_video_bytes:
                raise TriageError(self._too_large(int(declared)))

            chunks: List[bytes] = []
            size = 0
            try:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                    size += len(chunk)
                    if size > self.max_video_bytes:
                        raise TriageError(self._too_large(size))
                    chunks.append(chunk)
            except requests.RequestException as e:
                raise TriageError(f"Failed to fetch video: {e}") from e
        finally:
            response.close()

        mime_type = response.headers.get("Content-Type", "")
        if not mime_type.startswith("video/"):
            mime_type = "video/mp4"

        logger.info(f"Video fetched for triage ({size / 1024 / 1024:.2f} MB)")
        return b"".join(chunks), mime_type

    def _too_large(self, size: int) -> str:
        return (
            f"Video too large for inline triage: {size / 1024 / 1024:.1f} MB "
            f"(limit {self.max_video_bytes / 1024 / 1024:.1f} MB)"
        )

    def _generate(self, video: bytes, mime_type: str) -> str:
        client = self._genai_client()
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=[{
                    "role": "user",
                    "parts": [
                        {"text": EMERGENCY_ANALYSIS_PROMPT},
                        {"inline_data": {"mime_type": mime_type, "data": video}},
                    ],
                }],
                config={
                    "temperature": 0.1,
                    "top_k": 1,
                    "top_p": 1,
                    "max_output_tokens": 500,
                    "response_mime_type": "application/json",
                },
            )
        except Exception as e:
            raise TriageError(f"Triage API error: {e}") from e

        text = getattr(response, "text", None)
        if not text:
            raise TriageError("No generated content received from triage model")
        return text


@dataclass(frozen=True, slots=True)
class TriageOutcome:
    """Result of triaging one report."""

    report_id: str
    success: bool
    analysis: Optional[TriageResult] = None
    error: Optional[str] = None


@dataclass
class TriageStats:
    """Aggregate over a batch of triage outcomes."""

    total_analyzed: int = 0
    emergencies: int = 0
    non_emergencies: int = 0
    failed: int = 0
    service_breakdown: Dict[str, int] = field(
        default_factory=lambda: {service: 0 for service in SERVICES}
    )

    @property
    def emergency_rate(self) -> float:
        """Percentage of analysed reports judged emergencies."""
        if self.total_analyzed == 0:
            return 0.0
        return round(self.emergencies / self.total_analyzed * 100, 1)


def summarize(outcomes: Iterable[TriageOutcome]) -> TriageStats:
    stats = TriageStats()
    for outcome in outcomes:
        stats.total_analyzed += 1
        if not outcome.success or outcome.analysis is None:
            stats.failed += 1
        elif outcome.analysis.is_emergency:
            stats.emergencies += 1
            if outcome.analysis.primary_service:
                stats.service_breakdown[outcome.analysis.primary_service] += 1
        else:
            stats.non_emergencies += 1
    return stats


class TriageService:
    """
    Runs triage on reports and stores the analysis on each report.

    A failed triage is stored too, as a non-emergency record carrying the
    error, so the operator can see that the attempt was made.
    """

    def __init__(self, store: ReportStore, client: GeminiTriageClient) -> None:
        self.store = store
        self.client = client

    def analyze_report(self, report: SOSReport) -> TriageOutcome:
        if not report.video_ref:
            return TriageOutcome(report_id=report.id, success=False, error="Report has no video")

        try:
            result = self.client.analyze(report.video_ref)
        except TriageError as e:
            logger.error(f"Triage of SOS {report.id} failed: {e}")
            self.store.save_triage(report.id, {
                "is_emergency": False,
                "reason": f"Analysis failed: {e}",
                "primary_service": None,
                "confidence": None,
                "error": True,
                "error_message": str(e),
                "videoUrl": report.video_ref,
                "apiVersion": self.client.model,
            })
            return TriageOutcome(report_id=report.id, success=False, error=str(e))

        self.store.save_triage(report.id, {
            **result.model_dump(),
            "videoUrl": report.video_ref,
            "apiVersion": self.client.model,
        })
        logger.info(
            f"Triage of SOS {report.id}: emergency={result.is_emergency}, "
            f"service={result.primary_service}, confidence={result.confidence}"
        )
        return TriageOutcome(report_id=report.id, success=True, analysis=result)

    def analyze_pending(
        self,
        reports: Iterable[SOSReport],
        delay_seconds: float = 2.0,
        on_progress: Optional[Callable[[int, int, TriageOutcome], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> List[TriageOutcome]:
        """
        Triage every report that has a video and no analysis yet.

        Args:
            reports: Candidate reports
            delay_seconds: Pause between API calls (rate limiting)
            on_progress: Called with (done, total, outcome) after each report
            sleep: Sleep function (injectable for tests)
        """
        candidates = list(reports)
        outcomes: List[TriageOutcome] = []
        done = 0

        for report in candidates:
            if not report.video_ref or report.triage is not None:
                logger.info(
                    f"Skipping SOS {report.id}: "
                    f"{'no video' if not report.video_ref else 'already analysed'}"
                )
                continue

            if done:
                sleep(delay_seconds)

            try:
                outcome = self.analyze_report(report)
            except Exception as e:
                logger.error(f"Triage of SOS {report.id} could not be stored: {e}")
                outcome = TriageOutcome(report_id=report.id, success=False, error=str(e))

            outcomes.append(outcome)
            done += 1
            if on_progress is not None:
                on_progress(done, len(candidates), outcome)

        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(f"Triage batch finished: {succeeded}/{len(outcomes)} successful")
        return outcomes
