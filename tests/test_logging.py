"""Tests for logging configuration."""

from unittest.mock import patch

from podserve.config import Settings
from podserve.logging import setup_logging_from_settings


class TestSetupLoggingFromSettings:
    @patch("podserve.logging.setup_logging")
    def test_development_uses_console(self, mock_setup):
        setup_logging_from_settings(
            Settings(
                base_url="http://localhost:8080",
                environment="development",
                debug=False,
                log_level="WARNING",
                log_json=False,
            )
        )
        mock_setup.assert_called_once_with(log_level="WARNING", json_format=False)

    @patch("podserve.logging.setup_logging")
    def test_production_uses_json(self, mock_setup):
        setup_logging_from_settings(
            Settings(base_url="http://localhost:8080", environment="production", log_json=False)
        )
        assert mock_setup.call_args.kwargs["json_format"] is True

    @patch("podserve.logging.setup_logging")
    def test_debug_forces_debug_level(self, mock_setup):
        setup_logging_from_settings(Settings(base_url="http://localhost:8080", debug=True))
        assert mock_setup.call_args.kwargs["log_level"] == "DEBUG"
