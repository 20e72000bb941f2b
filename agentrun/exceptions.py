"""Exceptions raised by the AgentRun client.

Every error extends AgentRunError. HTTP-shaped failures are raised as
ClientError (4xx or local failure) or ServerError (5xx), and can be
reclassified into resource errors with ``HTTPError.to_resource_error``.
"""

from __future__ import annotations

from typing import Any, NoReturn, Optional

_ALREADY_EXISTS_MARKERS = ("already exists", "already exist")


class AgentRunError(Exception):
    """Base exception for all AgentRun client errors."""

    pass


class ConfigurationError(AgentRunError):
    """Raised when a required configuration value is missing or empty."""

    pass


# =============================================================================
# HTTP Errors
# =============================================================================


class HTTPError(AgentRunError):
    """An error returned by (or while talking to) an AgentRun endpoint.

    Attributes:
        status_code: HTTP status code, or 0 for local/transport failures.
        message: Human-readable error message.
        request_id: Request id reported by the service, for support correlation.
        error_code: Machine-readable error code from the service, if any.
        details: Additional context (e.g. the raw status of an unparsable body).
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        request_id: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.request_id = request_id
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation."""
        base = f"HTTP {self.status_code}: {self.message}"
        if self.request_id:
            return f"{base} (request_id: {self.request_id})"
        return base

    def to_resource_error(
        self, resource_type: str, resource_id: Optional[str] = None
    ) -> HTTPError:
        """Reclassify this error in terms of a specific resource.

        Rules, in order: 404 means the resource does not exist, 409 means it
        already exists, and an "already exists" message means it already
        exists whatever the status. Anything else is returned unchanged.

        Args:
            resource_type: Kind of resource, e.g. "Sandbox" or "Template".
            resource_id: Identifier of the resource, if known.

        Returns:
            The reclassified error, or this error itself.
        """
        if self.status_code == 404:
            return ResourceNotExistError(
                resource_type, resource_id, request_id=self.request_id
            )
        if self.status_code == 409:
            return ResourceAlreadyExistError(
                resource_type, resource_id, request_id=self.request_id
            )
        message = (self.message or "").lower()
        if any(marker in message for marker in _ALREADY_EXISTS_MARKERS):
            return ResourceAlreadyExistError(
                resource_type, resource_id, request_id=self.request_id
            )
        return self


class ClientError(HTTPError):
    """Raised for 4xx responses and for local request failures (status 0)."""

    pass


class ServerError(HTTPError):
    """Raised for 5xx responses."""

    pass


def _describe(resource_type: str, resource_id: Optional[str]) -> str:
    if resource_id:
        return f"{resource_type} '{resource_id}'"
    return resource_type


class ResourceNotExistError(ClientError):
    """Raised when a resource does not exist (404).

    Attributes:
        resource_type: Kind of resource, e.g. "Sandbox".
        resource_id: Identifier of the missing resource, if known.
    """

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        *,
        request_id: Optional[str] = None,
    ):
        """Initialize the error."""
        super().__init__(
            404,
            f"{_describe(resource_type, resource_id)} does not exist",
            request_id=request_id,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ResourceAlreadyExistError(ClientError):
    """Raised when creating a resource that already exists (409).

    Attributes:
        resource_type: Kind of resource, e.g. "Template".
        resource_id: Identifier of the conflicting resource, if known.
    """

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        *,
        request_id: Optional[str] = None,
    ):
        """Initialize the error."""
        super().__init__(
            409,
            f"{_describe(resource_type, resource_id)} already exists",
            request_id=request_id,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# =============================================================================
# Polling Errors
# =============================================================================


class ResourceTimeoutError(AgentRunError):
    """Raised when a resource does not reach a terminal state within the budget.

    Attributes:
        timeout_seconds: The polling budget that was exhausted.
        last_state: The last observed state before giving up.
    """

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        last_state: Optional[str] = None,
    ):
        """Initialize the error."""
        super().__init__(message)
        self.timeout_seconds = timeout_seconds
        self.last_state = last_state

    def __str__(self) -> str:
        """Return string representation."""
        base = super().__str__()
        if self.last_state:
            return f"{base} (last_state: {self.last_state})"
        return base


class ResourceFailedError(AgentRunError):
    """Raised when a polled resource enters a failure state.

    Attributes:
        state: The failure state that was observed.
        state_reason: The reason reported by the service.
    """

    def __init__(
        self,
        message: str,
        state: Optional[str] = None,
        state_reason: Optional[str] = None,
    ):
        """Initialize the error."""
        super().__init__(message)
        self.state = state
        self.state_reason = state_reason


def raise_resource_error(
    error: HTTPError, resource_type: str, resource_id: Optional[str] = None
) -> NoReturn:
    """Re-raise ``error`` reclassified for a specific resource.

    Intended for use inside an ``except HTTPError`` block.
    """
    reclassified = error.to_resource_error(resource_type, resource_id)
    if reclassified is error:
        raise error
    raise reclassified from error
