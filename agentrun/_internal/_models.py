"""Data models shared across resource types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResourceType(str, Enum):
    """Kind of resource a data plane access token is scoped to."""

    RUNTIME = "runtime"
    LITELLM = "litellm"
    TOOL = "tool"
    TEMPLATE = "template"
    SANDBOX = "sandbox"


class Status(str, Enum):
    """Lifecycle status of control plane resources (e.g. templates)."""

    CREATING = "CREATING"
    CREATE_FAILED = "CREATE_FAILED"
    READY = "READY"
    UPDATING = "UPDATING"
    UPDATE_FAILED = "UPDATE_FAILED"
    DELETING = "DELETING"
    DELETE_FAILED = "DELETE_FAILED"
    DELETED = "DELETED"

    @classmethod
    def is_final(cls, status: Optional[str]) -> bool:
        """Whether ``status`` is one from which no automatic transition follows."""
        if isinstance(status, Enum):
            status = status.value
        return status in _FINAL_STATUSES


_FINAL_STATUSES = frozenset(
    s.value
    for s in (
        Status.READY,
        Status.CREATE_FAILED,
        Status.UPDATE_FAILED,
        Status.DELETE_FAILED,
        Status.DELETED,
    )
)


@dataclass
class FileDownloadResult:
    """Result of downloading a remote file to local disk.

    Attributes:
        saved_path: Local path the content was written to.
        size: Number of bytes written.
    """

    saved_path: str
    size: int
