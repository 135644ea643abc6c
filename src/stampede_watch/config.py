"""
StampedeWatch Configuration
===========================

This module handles configuration loading for the monitor, the alert relay
and the SOS review workflow.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    STAMPEDE_WARNING_THRESHOLD  -> monitor.warning_threshold
    STAMPEDE_CRITICAL_THRESHOLD -> monitor.critical_threshold
    STAMPEDE_COOLDOWN_SECONDS   -> monitor.cooldown_seconds
    STAMPEDE_DETECTOR_BACKEND   -> detector.backend
    STAMPEDE_CAMERA_SOURCE      -> camera.source
    STAMPEDE_RELAY_URL          -> dispatch.relay_url
    STAMPEDE_LOG_LEVEL          -> logging.level
    TWILIO_ACCOUNT_SID          -> messaging.account_sid
    TWILIO_AUTH_TOKEN           -> messaging.auth_token
    TWILIO_PHONE_NUMBER         -> messaging.from_number
    RECIPIENT_PHONE_NUMBER      -> messaging.to_number
    GOOGLE_APPLICATION_CREDENTIALS -> sos.credentials_path
    GEMINI_API_KEY              -> triage.api_key
    PORT                        -> relay.port

Example:
    from stampede_watch.config import load_config

    settings = load_config("config.yaml")
    print(settings.monitor.critical_threshold)
    print(settings.dispatch.relay_url)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from stampede_watch.errors import ConfigurationError


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class MonitorConfig(BaseModel):
    """Thresholds and timing for the detection-to-alert pipeline."""

    warning_threshold: int = Field(
        default=1,
        ge=0,
        description="People count at which the tier becomes 'warning'",
    )
    critical_threshold: int = Field(
        default=3,
        ge=0,
        description="People count at which the tier becomes 'critical'",
    )
    cooldown_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Minimum interval between two outbound alerts",
    )
    status_display_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How long 'sent' and 'error' stay visible before reverting",
    )
    activity_capacity: int = Field(
        default=10,
        ge=1,
        description="Number of recent count changes kept in the activity log",
    )
    idle_sleep_seconds: float = Field(
        default=0.03,
        ge=0,
        description="Delay between loop iterations (yields to the event loop)",
    )

    @model_validator(mode="after")
    def _check_threshold_order(self) -> "MonitorConfig":
        if self.warning_threshold > self.critical_threshold:
            raise ValueError(
                "warning_threshold must be <= critical_threshold "
                f"(got {self.warning_threshold} > {self.critical_threshold})"
            )
        return self


class MockDetectorConfig(BaseModel):
    """Mock detector backend configuration."""

    fixed_counts: List[int] = Field(
        default_factory=lambda: [0, 1, 2, 3],
        description="People counts returned in rotation, one per frame",
    )


class DetectorConfig(BaseModel):
    """Object detector backend configuration."""

    backend: str = Field(
        default="mock",
        description="Detector backend: 'mock' or 'yolo'",
    )
    model_path: str = Field(
        default="yolov8n.pt",
        description="Pretrained weights for the yolo backend",
    )
    confidence_threshold: float = Field(
        default=0.5,
        ge=0,
        le=1.0,
        description="Minimum score for a detection to count",
    )
    person_label: str = Field(default="person", description="Class label counted as a person")
    mock: MockDetectorConfig = Field(default_factory=MockDetectorConfig)


class CameraConfig(BaseModel):
    """Video source configuration."""

    source: str = Field(
        default="0",
        description="Device index (e.g. '0') or stream URL / file path",
    )
    frame_width: Optional[int] = Field(default=None, ge=1)
    frame_height: Optional[int] = Field(default=None, ge=1)


class DispatchConfig(BaseModel):
    """Monitor -> relay dispatch configuration."""

    relay_url: str = Field(
        default="http://localhost:5000/api/alert/stampede",
        description="Alert relay endpoint",
    )
    timeout_seconds: float = Field(default=10.0, gt=0)


class RelayConfig(BaseModel):
    """Relay HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=5000, ge=1, le=65535, description="Bind port")


class MessagingConfig(BaseModel):
    """
    Messaging provider credentials.

    All four values must be present before the relay may serve. Phone
    numbers carry the provider's channel prefix (e.g. 'whatsapp:+15550001').
    """

    account_sid: Optional[str] = None
    auth_token: Optional[str] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    api_base: str = Field(default="https://api.twilio.com/2010-04-01")
    timeout_seconds: float = Field(default=10.0, gt=0)

    def missing_fields(self) -> List[str]:
        """Names of required credentials that are not set."""
        return [
            name
            for name in ("account_sid", "auth_token", "from_number", "to_number")
            if not getattr(self, name)
        ]

    def require_credentials(self) -> None:
        """Raise ConfigurationError unless every credential is set."""
        missing = self.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing messaging configuration: {', '.join(missing)}"
            )


class SOSConfig(BaseModel):
    """SOS review workflow configuration."""

    collection: str = Field(default="sosReports", description="Document store collection")
    credentials_path: Optional[str] = Field(
        default=None,
        description="Service account JSON for the document store",
    )
    resubscribe_delay_seconds: float = Field(default=5.0, ge=0)
    recipients: List[str] = Field(
        default_factory=list,
        description="Addresses notified when a report is approved",
    )


class TriageConfig(BaseModel):
    """Optional AI video triage configuration."""

    api_key: Optional[str] = None
    model: str = Field(default="gemini-1.5-flash")
    timeout_seconds: float = Field(default=60.0, gt=0)
    max_video_mb: float = Field(
        default=15.0,
        gt=0,
        description="Largest video sent inline (the request limit is 20 MB after encoding)",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for StampedeWatch.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    detector: DetectorConfig = Field(default_factory=DetectorConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    messaging: MessagingConfig = Field(default_factory=MessagingConfig)
    sos: SOSConfig = Field(default_factory=SOSConfig)
    triage: TriageConfig = Field(default_factory=TriageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Monitor thresholds
    if env_warn := os.environ.get("STAMPEDE_WARNING_THRESHOLD"):
        config_data.setdefault("monitor", {})["warning_threshold"] = int(env_warn)
    if env_crit := os.environ.get("STAMPEDE_CRITICAL_THRESHOLD"):
        config_data.setdefault("monitor", {})["critical_threshold"] = int(env_crit)
    if env_cool := os.environ.get("STAMPEDE_COOLDOWN_SECONDS"):
        config_data.setdefault("monitor", {})["cooldown_seconds"] = float(env_cool)

    # Detector / camera
    if env_backend := os.environ.get("STAMPEDE_DETECTOR_BACKEND"):
        config_data.setdefault("detector", {})["backend"] = env_backend
    if env_source := os.environ.get("STAMPEDE_CAMERA_SOURCE"):
        config_data.setdefault("camera", {})["source"] = env_source

    # Dispatch
    if env_relay := os.environ.get("STAMPEDE_RELAY_URL"):
        config_data.setdefault("dispatch", {})["relay_url"] = env_relay

    # Messaging credentials
    messaging_env = {
        "TWILIO_ACCOUNT_SID": "account_sid",
        "TWILIO_AUTH_TOKEN": "auth_token",
        "TWILIO_PHONE_NUMBER": "from_number",
        "RECIPIENT_PHONE_NUMBER": "to_number",
    }
    for env_name, field_name in messaging_env.items():
        if value := os.environ.get(env_name):
            config_data.setdefault("messaging", {})[field_name] = value

    # SOS / triage
    if env_creds := os.environ.get("GOOGLE_APPLICATION_CREDENTIALS"):
        config_data.setdefault("sos", {})["credentials_path"] = env_creds
    if env_gemini := os.environ.get("GEMINI_API_KEY"):
        config_data.setdefault("triage", {})["api_key"] = env_gemini

    # Relay port
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("relay", {})["port"] = int(env_port)

    # Logging
    if env_log := os.environ.get("STAMPEDE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
