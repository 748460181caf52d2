"""
PURPOSE: Tests for configuration settings and structured logging.
"""

import json

import pytest
import structlog
from structlog.testing import capture_logs

from strategy_core.config.settings import Settings
from strategy_core.utils.logger import get_logger, setup_logging


@pytest.fixture
def reset_structlog():
    """
    PURPOSE: Restore structlog's default configuration after a test reconfigures it.
    """
    yield
    structlog.reset_defaults()


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        """Test the compiler tuning defaults."""
        monkeypatch.delenv("VOLUME_CONFIRMATION_MULTIPLIER", raising=False)
        config = Settings(_env_file=None)

        assert config.VOLUME_CONFIRMATION_MULTIPLIER == 1.5
        assert config.ATR_FALLBACK_TICKS == 10
        assert config.LOG_LEVEL == "INFO"

    def test_env_override(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("EMA_TOUCH_LOOKBACK_BARS", "3")
        monkeypatch.setenv("LOG_JSON", "false")

        config = Settings(_env_file=None)

        assert config.EMA_TOUCH_LOOKBACK_BARS == 3
        assert config.LOG_JSON is False


class TestLogging:
    """Test the structlog logger factory."""

    def test_logger_binds_module(self):
        """Test loggers carry their module name."""
        with capture_logs() as logs:
            get_logger("events.store").info("replay_complete", event_count=2)

        assert logs == [
            {"module": "events.store", "event": "replay_complete", "event_count": 2, "log_level": "info"}
        ]

    def test_setup_logging_json(self, capsys, reset_structlog):
        """Test JSON lines with level and timestamp."""
        setup_logging("DEBUG", json_output=True)

        get_logger("compiler").debug("entry_signal", side="long")

        line = json.loads(capsys.readouterr().out.strip())
        assert line["event"] == "entry_signal"
        assert line["module"] == "compiler"
        assert line["level"] == "debug"
        assert "timestamp" in line

    def test_setup_logging_filters_level(self, capsys, reset_structlog):
        """Test records below the configured level are dropped."""
        setup_logging("WARNING", json_output=True)

        get_logger("compiler").info("entry_signal")

        assert capsys.readouterr().out == ""
