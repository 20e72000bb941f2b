"""Data models for sandboxes and templates."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Optional


class TemplateType(str, Enum):
    """Kind of sandbox a template produces."""

    CODE_INTERPRETER = "CodeInterpreter"
    BROWSER = "Browser"
    AIO = "AllInOne"
    CUSTOM = "CustomImage"


class SandboxState(str, Enum):
    """Lifecycle state of a sandbox."""

    CREATING = "Creating"
    RUNNING = "Running"
    READY = "READY"
    STOPPED = "Stopped"
    FAILED = "Failed"
    DELETING = "Deleting"


class TemplateNetworkMode(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    PUBLIC_AND_PRIVATE = "PUBLIC_AND_PRIVATE"


class TemplateOSSPermission(str, Enum):
    READ_WRITE = "READ_WRITE"
    READ_ONLY = "READ_ONLY"


class CodeLanguage(str, Enum):
    """Languages supported by code interpreter contexts."""

    PYTHON = "python"
    JAVASCRIPT = "javascript"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _wire_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, _WireModel):
        return value.to_dict()
    if isinstance(value, list):
        return [_wire_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _wire_value(v) for k, v in value.items()}
    return value


class _WireModel:
    """Serializes dataclass fields to the service's camelCase JSON keys."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to a request payload, omitting unset (None) fields."""
        payload = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            key = _camel(f.name)
            payload[key] = _wire_value(value)
        return payload


# =============================================================================
# Template Inputs
# =============================================================================


@dataclass
class TemplateNetworkConfiguration(_WireModel):
    network_mode: Optional[TemplateNetworkMode] = TemplateNetworkMode.PUBLIC
    security_group_id: Optional[str] = None
    vpc_id: Optional[str] = None
    vswitch_ids: Optional[list[str]] = None


@dataclass
class TemplateOssConfiguration(_WireModel):
    bucket_name: Optional[str] = None
    mount_point: Optional[str] = None
    permission: Optional[TemplateOSSPermission] = None
    prefix: Optional[str] = None
    region: Optional[str] = None


@dataclass
class TemplateContainerConfiguration(_WireModel):
    image: Optional[str] = None
    command: Optional[list[str]] = None
    acr_instance_id: Optional[str] = None
    image_registry_type: Optional[str] = None
    port: Optional[int] = None


@dataclass
class TemplateCreateInput(_WireModel):
    """Input for creating a template.

    Unset resource fields are filled with per-type defaults on creation.
    Nested configurations without a dedicated model (log, credential, ARMS)
    are passed through as dicts using the service's field names.
    """

    template_name: Optional[str] = None
    template_type: Optional[TemplateType] = None
    cpu: Optional[float] = None
    memory: Optional[int] = None
    disk_size: Optional[int] = None
    execution_role_arn: Optional[str] = None
    sandbox_idle_timeout_in_seconds: Optional[int] = None
    sandbox_ttl_in_seconds: Optional[int] = None
    share_concurrency_limit_per_sandbox: Optional[int] = None
    template_configuration: Optional[dict[str, Any]] = None
    description: Optional[str] = None
    environment_variables: Optional[dict[str, str]] = None
    network_configuration: Optional[TemplateNetworkConfiguration] = None
    oss_configuration: Optional[list[TemplateOssConfiguration]] = None
    log_configuration: Optional[dict[str, Any]] = None
    credential_configuration: Optional[dict[str, Any]] = None
    arms_configuration: Optional[dict[str, Any]] = None
    container_configuration: Optional[TemplateContainerConfiguration] = None
    allow_anonymous_manage: Optional[bool] = None


@dataclass
class TemplateUpdateInput(_WireModel):
    cpu: Optional[float] = None
    memory: Optional[int] = None
    disk_size: Optional[int] = None
    execution_role_arn: Optional[str] = None
    sandbox_idle_timeout_in_seconds: Optional[int] = None
    sandbox_ttl_in_seconds: Optional[int] = None
    share_concurrency_limit_per_sandbox: Optional[int] = None
    description: Optional[str] = None
    environment_variables: Optional[dict[str, str]] = None
    network_configuration: Optional[TemplateNetworkConfiguration] = None
    oss_configuration: Optional[list[TemplateOssConfiguration]] = None
    log_configuration: Optional[dict[str, Any]] = None
    credential_configuration: Optional[dict[str, Any]] = None
    arms_configuration: Optional[dict[str, Any]] = None
    container_configuration: Optional[TemplateContainerConfiguration] = None


@dataclass
class TemplateListInput(_WireModel):
    page_number: Optional[int] = None
    page_size: Optional[int] = None
    template_type: Optional[TemplateType] = None


# =============================================================================
# Sandbox Inputs
# =============================================================================


@dataclass
class SandboxCreateInput(_WireModel):
    """Input for creating a sandbox from a template.

    Storage mounts (``nas_config``, ``oss_mount_config``, ``polar_fs_config``)
    are passed through as dicts using the service's field names.
    """

    template_name: str
    sandbox_idle_timeout_seconds: Optional[int] = 600
    sandbox_id: Optional[str] = None
    nas_config: Optional[dict[str, Any]] = None
    oss_mount_config: Optional[dict[str, Any]] = None
    polar_fs_config: Optional[dict[str, Any]] = None


@dataclass
class SandboxListInput(_WireModel):
    max_results: Optional[int] = None
    next_token: Optional[str] = None
    status: Optional[str] = None
    template_name: Optional[str] = None
    template_type: Optional[TemplateType] = None

