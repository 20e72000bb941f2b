"""Deprecation events for legacy call forms."""

import functools
import logging

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=100)
def _warn_once(old: str, new: str) -> None:
    logger.warning(
        "%s is deprecated. Use %s instead.",
        old,
        new,
        extra={"deprecated_call": old, "replacement": new},
    )


def warn_deprecated_call(old: str, new: str) -> None:
    """Log a deprecation event for a legacy call form, once per process."""
    _warn_once(old, new)
