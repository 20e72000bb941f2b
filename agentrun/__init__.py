"""AgentRun Python SDK."""

from typing import TYPE_CHECKING, Any

from agentrun._internal._log import LogSettings, configure_logging, get_log_settings
from agentrun.config import Config
from agentrun.exceptions import (
    AgentRunError,
    ClientError,
    ConfigurationError,
    HTTPError,
    ResourceAlreadyExistError,
    ResourceFailedError,
    ResourceNotExistError,
    ResourceTimeoutError,
    ServerError,
)

if TYPE_CHECKING:
    from agentrun._internal._control_api import ControlAPI
    from agentrun._internal._data_api import DataAPI
    from agentrun._internal._models import ResourceType, Status


def __getattr__(name: str) -> Any:
    if name == "__version__":
        try:
            from importlib import metadata

            return metadata.version("agentrun-sdk")
        except metadata.PackageNotFoundError:
            return ""
    elif name == "ControlAPI":
        from agentrun._internal._control_api import ControlAPI

        return ControlAPI
    elif name == "DataAPI":
        from agentrun._internal._data_api import DataAPI

        return DataAPI
    elif name == "ResourceType":
        from agentrun._internal._models import ResourceType

        return ResourceType
    elif name == "Status":
        from agentrun._internal._models import Status

        return Status

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Config",
    "ControlAPI",
    "DataAPI",
    "ResourceType",
    "Status",
    "LogSettings",
    "configure_logging",
    "get_log_settings",
    "AgentRunError",
    "ConfigurationError",
    "HTTPError",
    "ClientError",
    "ServerError",
    "ResourceNotExistError",
    "ResourceAlreadyExistError",
    "ResourceTimeoutError",
    "ResourceFailedError",
]

configure_logging(LogSettings.from_env())
