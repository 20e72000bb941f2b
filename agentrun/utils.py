"""Generic utility functions."""

from __future__ import annotations

import dataclasses
import os
import platform
from functools import lru_cache
from typing import Any, Optional


def get_env_var(*names: str, default: Optional[str] = None) -> Optional[str]:
    """Return the first environment variable in ``names`` that is set.

    Args:
        names: Variable names, in priority order.
        default: Value returned when none of the variables is set.

    Returns:
        The value of the first variable present (possibly an empty string),
        otherwise ``default``.
    """
    for name in names:
        value = os.environ.get(name)
        if value is not None:
            return value
    return default


def mask_token(token: Optional[str]) -> str:
    """Mask a token for logging, keeping only its first and last 4 chars."""
    if not token or len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


def update_object_properties(target: Any, source: Any) -> None:
    """Copy public attributes from ``source`` onto ``target`` in place.

    ``source`` may be a dataclass instance, a plain object or a mapping.
    Private (underscore-prefixed) keys and callables are skipped.
    """
    if dataclasses.is_dataclass(source) and not isinstance(source, type):
        items = [
            (f.name, getattr(source, f.name)) for f in dataclasses.fields(source)
        ]
    elif isinstance(source, dict):
        items = list(source.items())
    else:
        items = list(vars(source).items())
    for key, value in items:
        if key.startswith("_") or callable(value):
            continue
        setattr(target, key, value)


@lru_cache(maxsize=1)
def get_user_agent() -> str:
    """Get the user agent sent with data plane requests."""
    # Lazy import to avoid circular imports
    from agentrun import __version__

    return (
        f"AgentRunDataClient-Python/{__version__} "
        f"({platform.python_implementation()} {platform.python_version()})"
    )
