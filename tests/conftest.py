"""
Test Configuration
==================

Pytest fixtures and test configuration for StampedeWatch.
"""

import pytest


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    """Provide a FakeClock starting at t=1000."""
    return FakeClock()


@pytest.fixture
def settings():
    """Provide default Settings without reading config files or env."""
    from stampede_watch.config import Settings

    return Settings()


@pytest.fixture
def messaging_env(monkeypatch):
    """Set all four messaging credentials in the environment."""
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC00000000000000000000000000000000")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "secret-token")
    monkeypatch.setenv("TWILIO_PHONE_NUMBER", "whatsapp:+14155238886")
    monkeypatch.setenv("RECIPIENT_PHONE_NUMBER", "whatsapp:+15550001111")


@pytest.fixture
def sample_report_doc():
    """Provide a raw SOS report document as the mobile client writes it."""
    return {
        "userId": "user_123",
        "message": "People pushing near gate 4",
        "location": {"latitude": 28.7041, "longitude": 77.1025, "accuracy": 5.0},
        "videoUrl": "https://storage.example.com/sos/user_123.mp4",
        "createdAt": 1714564800.0,
    }


_CONFIG_ENV = (
    "STAMPEDE_WARNING_THRESHOLD",
    "STAMPEDE_CRITICAL_THRESHOLD",
    "STAMPEDE_COOLDOWN_SECONDS",
    "STAMPEDE_DETECTOR_BACKEND",
    "STAMPEDE_CAMERA_SOURCE",
    "STAMPEDE_RELAY_URL",
    "STAMPEDE_LOG_LEVEL",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_PHONE_NUMBER",
    "RECIPIENT_PHONE_NUMBER",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "GEMINI_API_KEY",
    "PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the host environment out of configuration tests."""
    for name in _CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
