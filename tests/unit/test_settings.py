"""Unit tests for config.settings and classverify.utils.logging_utils."""

from __future__ import annotations

import logging

import pytest

from config.settings import RATE_LIMITS, GeofenceThresholds, VerificationConfig
from classverify.utils.logging_utils import DEFAULT_LOGGING_YAML, configure_logging, verification_logger


class TestVerificationConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("VISION_BACKEND", raising=False)
        config = VerificationConfig()
        assert config.vision_backend == "anthropic"
        assert config.geofence_thresholds == GeofenceThresholds(200, 500, 2000)
        assert config.date_tolerance_days == 1
        assert config.time_tolerance_hours == 2
        assert config.analysis_rate_limit == RATE_LIMITS["ai_analysis"]
        assert config.analysis_timeout_seconds is None

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-from-env")
        assert VerificationConfig().anthropic_api_key == "sk-from-env"

    def test_backend_from_environment(self, monkeypatch):
        monkeypatch.setenv("VISION_BACKEND", "OLLAMA")
        assert VerificationConfig().vision_backend == "ollama"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            VerificationConfig(vision_backend="openai")

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            VerificationConfig(vision_backend="anthropic", time_tolerance_hours=-1)


class TestLogging:
    def test_class_log_prefix(self, caplog):
        """Every message from the adapter carries the class-log id."""
        log = verification_logger("classverify.pipeline", "log-123")
        with caplog.at_level(logging.INFO, logger="classverify.pipeline"):
            log.info("Analyzing %d photos", 3)
        assert "[log-123] Analyzing 3 photos" in caplog.text

    def test_phase_prefix_and_record_fields(self, caplog):
        """A phase logger adds the phase to the prefix and to the record."""
        log = verification_logger("classverify.pipeline", "log-123", "ai-analysis:user-7")
        with caplog.at_level(logging.WARNING, logger="classverify.pipeline"):
            log.for_phase("Throttle").warning("Rate limit exceeded")
        assert "[log-123|Throttle] Rate limit exceeded" in caplog.text
        record = caplog.records[-1]
        assert record.class_log_id == "log-123"
        assert record.rate_limit_key == "ai-analysis:user-7"
        assert record.phase == "Throttle"

    def test_for_phase_leaves_parent_untouched(self, caplog):
        log = verification_logger("classverify.pipeline", "log-123")
        log.for_phase("Record")
        with caplog.at_level(logging.INFO, logger="classverify.pipeline"):
            log.info("done")
        assert "[log-123] done" in caplog.text
        assert caplog.records[-1].phase is None

    def test_packaged_yaml_ships_with_config(self):
        assert DEFAULT_LOGGING_YAML.name == "logging.yaml"
        assert DEFAULT_LOGGING_YAML.exists()

    def test_configure_logging_overrides_package_level(self, tmp_path):
        """log_level applies to the classverify logger and leaves the root level alone."""
        path = tmp_path / "logging.yaml"
        path.write_text(
            "version: 1\n"
            "disable_existing_loggers: false\n"
            "loggers:\n"
            "  classverify:\n"
            "    level: INFO\n",
            encoding="utf-8",
        )
        package_logger = logging.getLogger("classverify")
        root = logging.getLogger()
        saved = (package_logger.level, root.level)
        try:
            configure_logging(log_level="debug", config_path=path)
            assert package_logger.level == logging.DEBUG
            assert root.level == saved[1]
        finally:
            package_logger.setLevel(saved[0])
            root.setLevel(saved[1])
