"""Logging settings for the ``agentrun`` logger hierarchy."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

LOGGER_NAME = "agentrun"
DEBUG_ENV_VAR = "AGENTRUN_SDK_DEBUG"

# Values of AGENTRUN_SDK_DEBUG that keep debug logging off.
_DISABLED_VALUES = frozenset({"", "0", "false", "False", "FALSE"})

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class LogSettings:
    """Process-wide logging settings, built once and passed to configure_logging.

    Attributes:
        debug: Whether verbose (DEBUG) logging is enabled.
    """

    debug: bool = False

    @classmethod
    def from_env(cls, value: Optional[str] = None) -> LogSettings:
        """Build settings from AGENTRUN_SDK_DEBUG (or an explicit value).

        An unset variable or one of "", "0", "false", "False", "FALSE"
        disables debug logging. Any other value enables it.
        """
        if value is None:
            value = os.environ.get(DEBUG_ENV_VAR)
        return cls(debug=value is not None and value not in _DISABLED_VALUES)


def configure_logging(settings: LogSettings) -> LogSettings:
    """Apply ``settings`` to the ``agentrun`` logger.

    The logger's level is the only state kept; ``get_log_settings`` reads it
    back. The one-time warning is logged when debug logging is switched on.
    """
    was_debug = logger.level == logging.DEBUG
    if settings.debug:
        logger.setLevel(logging.DEBUG)
        if not was_debug:
            logger.warning(
                "AgentRun SDK debug logging is enabled. Request URLs and "
                "response bodies will be logged; unset %s to disable.",
                DEBUG_ENV_VAR,
            )
    else:
        logger.setLevel(logging.NOTSET)
    return settings


def get_log_settings() -> LogSettings:
    """Return the settings currently applied to the ``agentrun`` logger."""
    return LogSettings(debug=logger.level == logging.DEBUG)
