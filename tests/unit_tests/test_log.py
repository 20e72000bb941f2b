"""Tests for logging settings and deprecation events."""

import logging

import pytest

from agentrun import LogSettings, configure_logging, get_log_settings
from agentrun._internal import _deprecation, _log
from agentrun.utils import mask_token


@pytest.fixture
def restore_log_settings():
    """Restore the process-wide log settings after the test."""
    previous = get_log_settings()
    yield
    configure_logging(previous)


class TestLogSettings:
    """Tests for LogSettings.from_env."""

    @pytest.mark.parametrize("value", [None, "", "0", "false", "False", "FALSE"])
    def test_disabling_values(self, value):
        """Test the allow-list of values that keep debug logging off."""
        assert LogSettings.from_env(value).debug is False

    @pytest.mark.parametrize("value", ["1", "true", "yes", "no", "off"])
    def test_any_other_value_enables_debug(self, value):
        """Test that everything outside the allow-list enables debug."""
        assert LogSettings.from_env(value).debug is True

    def test_reads_environment(self, monkeypatch):
        """Test that AGENTRUN_SDK_DEBUG is read when no value is given."""
        monkeypatch.setenv("AGENTRUN_SDK_DEBUG", "1")

        assert LogSettings.from_env().debug is True


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_debug_sets_level(self, restore_log_settings):
        """Test that debug settings put the agentrun logger at DEBUG."""
        configure_logging(LogSettings(debug=True))

        assert logging.getLogger("agentrun").level == logging.DEBUG
        assert get_log_settings().debug is True

    def test_disabled_leaves_level_unset(self, restore_log_settings):
        """Test that disabling debug resets the logger level."""
        configure_logging(LogSettings(debug=True))
        configure_logging(LogSettings(debug=False))

        assert logging.getLogger("agentrun").level == logging.NOTSET
        assert get_log_settings().debug is False

    def test_warns_once_when_enabled(self, restore_log_settings, caplog):
        """Test that enabling debug logs a single warning."""
        configure_logging(LogSettings(debug=False))
        with caplog.at_level(logging.WARNING, logger="agentrun"):
            configure_logging(LogSettings(debug=True))
            configure_logging(LogSettings(debug=True))

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "debug logging is enabled" in warnings[0].getMessage()

    def test_settings_are_read_from_the_logger(self, restore_log_settings):
        """Test that the applied settings are kept on the logger itself."""
        configure_logging(LogSettings(debug=True))

        assert not hasattr(_log, "_settings")
        assert get_log_settings() == LogSettings(debug=True)
        logging.getLogger("agentrun").setLevel(logging.NOTSET)
        assert get_log_settings() == LogSettings(debug=False)


class TestDeprecation:
    """Tests for deprecation events."""

    def test_logs_structured_event_once(self, caplog):
        """Test that a legacy call form is reported once with its replacement."""
        _deprecation._warn_once.cache_clear()
        with caplog.at_level(logging.WARNING, logger="agentrun"):
            _deprecation.warn_deprecated_call("old(a, b)", "new(a=..., b=...)")
            _deprecation.warn_deprecated_call("old(a, b)", "new(a=..., b=...)")

        records = [r for r in caplog.records if hasattr(r, "deprecated_call")]
        assert len(records) == 1
        assert records[0].deprecated_call == "old(a, b)"
        assert records[0].replacement == "new(a=..., b=...)"


class TestMaskToken:
    """Tests for mask_token."""

    def test_short_tokens_fully_masked(self):
        """Test that short tokens reveal nothing."""
        assert mask_token("12345678") == "***"
        assert mask_token("") == "***"
        assert mask_token(None) == "***"

    def test_long_tokens_keep_edges(self):
        """Test that long tokens keep their first and last four characters."""
        assert mask_token("abcdefghijkl") == "abcd...ijkl"
