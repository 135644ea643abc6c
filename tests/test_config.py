"""
Configuration Tests
===================
"""

import logging

import pydantic
import pytest

from stampede_watch.config import Settings, load_config, setup_logging
from stampede_watch.errors import ConfigurationError


class TestLoadConfig:
    """Tests for YAML + environment loading."""

    def test_defaults(self, tmp_path):
        """Verify defaults when the file is empty."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        settings = load_config(str(config_file))

        assert settings.monitor.warning_threshold == 1
        assert settings.monitor.critical_threshold == 3
        assert settings.monitor.cooldown_seconds == 10.0
        assert settings.monitor.activity_capacity == 10
        assert settings.relay.port == 5000
        assert settings.dispatch.relay_url == "http://localhost:5000/api/alert/stampede"

    def test_yaml_values(self, tmp_path):
        """Verify file values are applied."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "monitor:\n"
            "  critical_threshold: 6\n"
            "detector:\n"
            "  backend: yolo\n"
            "sos:\n"
            "  recipients: ['whatsapp:+1']\n"
        )

        settings = load_config(str(config_file))

        assert settings.monitor.critical_threshold == 6
        assert settings.detector.backend == "yolo"
        assert settings.sos.recipients == ["whatsapp:+1"]

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        """Verify environment variables win over the file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("monitor:\n  cooldown_seconds: 30\nrelay:\n  port: 6000\n")
        monkeypatch.setenv("STAMPEDE_COOLDOWN_SECONDS", "15")
        monkeypatch.setenv("PORT", "7000")
        monkeypatch.setenv("STAMPEDE_RELAY_URL", "http://relay:7000/api/alert/stampede")

        settings = load_config(str(config_file))

        assert settings.monitor.cooldown_seconds == 15.0
        assert settings.relay.port == 7000
        assert settings.dispatch.relay_url == "http://relay:7000/api/alert/stampede"

    def test_messaging_env(self, tmp_path, messaging_env):
        """Verify the provider credentials are read from their env names."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        settings = load_config(str(config_file))

        assert settings.messaging.account_sid.startswith("AC")
        assert settings.messaging.from_number == "whatsapp:+14155238886"
        assert settings.messaging.to_number == "whatsapp:+15550001111"
        assert settings.messaging.missing_fields() == []

    def test_inverted_thresholds_rejected(self, tmp_path):
        """Verify warning > critical fails at load time."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("monitor:\n  warning_threshold: 5\n  critical_threshold: 2\n")

        with pytest.raises(pydantic.ValidationError):
            load_config(str(config_file))

    def test_negative_threshold_rejected(self, monkeypatch, tmp_path):
        """Verify negative thresholds fail at load time."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        monkeypatch.setenv("STAMPEDE_WARNING_THRESHOLD", "-1")

        with pytest.raises(pydantic.ValidationError):
            load_config(str(config_file))


class TestMessagingConfig:
    """Tests for credential checks."""

    def test_require_credentials(self):
        """Verify every missing credential is named."""
        settings = Settings()
        with pytest.raises(ConfigurationError) as exc_info:
            settings.messaging.require_credentials()
        for name in ("account_sid", "auth_token", "from_number", "to_number"):
            assert name in str(exc_info.value)


class TestSetupLogging:
    """Tests for logging configuration."""

    def test_level_applied(self, monkeypatch):
        """Verify the configured level reaches logging.basicConfig."""
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))
        settings = Settings(logging={"level": "debug", "format": "json"})

        setup_logging(settings)

        assert calls[0]["level"] == logging.DEBUG
        assert calls[0]["format"].startswith('{"time"')
