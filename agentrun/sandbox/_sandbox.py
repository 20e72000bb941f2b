"""Sandbox resource snapshot and lifecycle entry points."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Optional

from agentrun._internal._control_api import ControlAPI
from agentrun._internal._deprecation import warn_deprecated_call
from agentrun._internal._resource import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    PreCheck,
    ResourceBase,
)
from agentrun.config import Config
from agentrun.exceptions import (
    AgentRunError,
    ClientError,
    HTTPError,
    ResourceTimeoutError,
    raise_resource_error,
)
from agentrun.sandbox._api import SandboxDataAPI
from agentrun.sandbox._models import (
    SandboxCreateInput,
    SandboxListInput,
    SandboxState,
    TemplateType,
)
from agentrun.utils import update_object_properties

logger = logging.getLogger(__name__)

# Specialized sandbox classes by template type, filled in as they are defined.
_SANDBOX_TYPES: dict[TemplateType, type[Sandbox]] = {}

RUNNING_STATES = (SandboxState.RUNNING, SandboxState.READY)
FAILED_STATES = (SandboxState.FAILED,)

HEALTH_CHECK_MAX_RETRIES = 60
HEALTH_CHECK_INTERVAL_SECONDS = 1.0


def _control_api(
    control_api: Optional[ControlAPI], config: Optional[Config]
) -> ControlAPI:
    return control_api or ControlAPI(config)


@dataclass
class Sandbox(ResourceBase):
    """A snapshot of a sandbox's remote state.

    Snapshots are created by ``create``/``get``/``list`` and updated in place
    by ``refresh``, ``stop``, ``delete`` and the ``wait_until*`` methods.
    ``get`` and ``create`` return the specialized subclass (e.g.
    CodeInterpreterSandbox) when a template type is given.

    Attributes:
        sandbox_id: Unique identifier.
        sandbox_name: Display name.
        template_id: Id of the template the sandbox was created from.
        template_name: Name of the template the sandbox was created from.
        state: Lifecycle state, see SandboxState.
        state_reason: Why the sandbox is in its current state.
        created_at: Creation timestamp.
        last_updated_at: Last update timestamp.
        sandbox_idle_timeout_seconds: Idle timeout before automatic release.
        ended_at: Timestamp the sandbox ended, if it has.
        metadata: Free-form metadata.
        sandbox_arn: Globally unique resource name.
        sandbox_idle_ttl_in_seconds: Idle TTL.
        template_type: Kind of sandbox, when known.

    Example:
        sandbox = await Sandbox.create(
            input=SandboxCreateInput(template_name="my-template"),
            template_type=TemplateType.CODE_INTERPRETER,
        )
        await sandbox.wait_until_running()
    """

    sandbox_id: Optional[str] = None
    sandbox_name: Optional[str] = None
    template_id: Optional[str] = None
    template_name: Optional[str] = None
    state: Optional[str] = None
    state_reason: Optional[str] = None
    created_at: Optional[str] = None
    last_updated_at: Optional[str] = None
    sandbox_idle_timeout_seconds: Optional[int] = None
    ended_at: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    sandbox_arn: Optional[str] = None
    sandbox_idle_ttl_in_seconds: Optional[int] = None
    template_type: Optional[TemplateType] = None

    # Internal fields (not from API)
    _config: Optional[Config] = field(default=None, repr=False, compare=False)
    _control_api: Optional[ControlAPI] = field(
        default=None, repr=False, compare=False
    )
    _data_api: Optional[SandboxDataAPI] = field(
        default=None, repr=False, compare=False
    )

    _resource_kind: ClassVar[str] = "Sandbox"
    _state_field: ClassVar[str] = "state"
    _state_reason_field: ClassVar[str] = "state_reason"
    _data_api_cls: ClassVar[type] = SandboxDataAPI

    def __init_subclass__(
        cls, template_type: Optional[TemplateType] = None, **kwargs: Any
    ) -> None:
        """Register specialized sandboxes in the template type lookup table."""
        super().__init_subclass__(**kwargs)
        if template_type is not None:
            _SANDBOX_TYPES[template_type] = cls

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Sandbox:
        """Create a Sandbox from an API response dict.

        Args:
            data: API response dictionary (camelCase keys).
            config: Configuration to reuse for later calls on the snapshot.
            control_api: Control plane client to reuse for later calls.

        Returns:
            Sandbox instance.
        """
        return cls(
            sandbox_id=data.get("sandboxId"),
            sandbox_name=data.get("sandboxName"),
            template_id=data.get("templateId"),
            template_name=data.get("templateName"),
            # The API reports the lifecycle state as "status"
            state=data.get("status") or data.get("state"),
            state_reason=data.get("stateReason"),
            created_at=data.get("createdAt"),
            last_updated_at=data.get("lastUpdatedAt"),
            sandbox_idle_timeout_seconds=data.get("sandboxIdleTimeoutSeconds"),
            ended_at=data.get("endedAt"),
            metadata=data.get("metadata"),
            sandbox_arn=data.get("sandboxArn"),
            sandbox_idle_ttl_in_seconds=data.get("sandboxIdleTTLInSeconds"),
            _config=config,
            _control_api=control_api,
        )

    @classmethod
    def from_sandbox(cls, sandbox: Sandbox) -> Sandbox:
        """Copy a snapshot into this (specialized) class."""
        values = {
            f.name: getattr(sandbox, f.name)
            for f in fields(sandbox)
            if f.init and f.name != "_data_api"
        }
        instance = cls(**values)
        for template_type, sandbox_cls in _SANDBOX_TYPES.items():
            if sandbox_cls is cls:
                instance.template_type = template_type
        return instance

    @staticmethod
    def _specialize(
        sandbox: Sandbox, template_type: Optional[TemplateType]
    ) -> Sandbox:
        if template_type is None:
            return sandbox
        sandbox_cls = _SANDBOX_TYPES.get(TemplateType(template_type))
        if sandbox_cls is None:
            sandbox.template_type = TemplateType(template_type)
            return sandbox
        return sandbox_cls.from_sandbox(sandbox)

    @property
    def data_api(self) -> SandboxDataAPI:
        """Data plane client bound to this sandbox; its token cache is reused."""
        if self._data_api is None:
            if not self.sandbox_id:
                raise ValueError("sandbox_id is required to call the data plane")
            self._data_api = self._data_api_cls(
                sandbox_id=self.sandbox_id,
                config=self._config,
                control_api=self._control_api,
            )
        return self._data_api

    # ========================================================================
    # Lifecycle Entry Points
    # ========================================================================

    @classmethod
    async def create(
        cls,
        *,
        input: SandboxCreateInput,
        template_type: Optional[TemplateType] = None,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Sandbox:
        """Create a sandbox from a template.

        Args:
            input: Creation parameters.
            template_type: Return the specialized class for this type.
            config: Configuration override.
            control_api: Control plane client to use.

        Returns:
            The new sandbox, usually still in the Creating state.

        Raises:
            ResourceAlreadyExistError: If the sandbox already exists.
            ClientError: For other client errors.
            ServerError: For server errors.
        """
        api = _control_api(control_api, config)
        try:
            data = await api.create_sandbox(input.to_dict(), config=config)
        except HTTPError as e:
            raise_resource_error(e, "Sandbox", input.template_name)
        sandbox = Sandbox.from_dict(data, config=config, control_api=api)
        return cls._specialize(sandbox, template_type)

    @classmethod
    async def delete_by_id(
        cls,
        sandbox_id: str,
        *,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Sandbox:
        """Delete a sandbox by id and return its final snapshot."""
        api = _control_api(control_api, config)
        try:
            data = await api.delete_sandbox(sandbox_id, config=config)
        except HTTPError as e:
            raise_resource_error(e, "Sandbox", sandbox_id)
        return Sandbox.from_dict(data, config=config, control_api=api)

    @classmethod
    async def stop_by_id(
        cls,
        sandbox_id: str,
        *,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Sandbox:
        """Stop a sandbox by id and return its snapshot."""
        api = _control_api(control_api, config)
        try:
            data = await api.stop_sandbox(sandbox_id, config=config)
        except HTTPError as e:
            raise_resource_error(e, "Sandbox", sandbox_id)
        return Sandbox.from_dict(data, config=config, control_api=api)

    @classmethod
    async def get(
        cls,
        sandbox_id: str,
        *,
        template_type: Optional[TemplateType] = None,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
        data_api: Optional[SandboxDataAPI] = None,
    ) -> Sandbox:
        """Get a sandbox through the data plane.

        Args:
            sandbox_id: Sandbox id.
            template_type: Return the specialized class for this type.
            config: Configuration override.
            control_api: Control plane client used for token fetches.
            data_api: Data plane client to reuse (and its cached token).

        Returns:
            The sandbox snapshot.

        Raises:
            ResourceNotExistError: If the sandbox does not exist.
            ClientError: If the response envelope reports a failure.
        """
        if data_api is None:
            data_api = SandboxDataAPI(
                sandbox_id=sandbox_id, config=config, control_api=control_api
            )
        try:
            result = await data_api.get_sandbox(sandbox_id=sandbox_id, config=config)
        except HTTPError as e:
            raise_resource_error(e, "Sandbox", sandbox_id)

        if result.get("code") != "SUCCESS":
            raise ClientError(
                0,
                f"Failed to get sandbox: {result.get('message') or 'Unknown error'}",
                request_id=result.get("requestId"),
            )
        sandbox = Sandbox.from_dict(
            result.get("data") or {}, config=config, control_api=control_api
        )
        return cls._specialize(sandbox, template_type)

    @classmethod
    async def list(
        cls,
        *,
        input: Optional[SandboxListInput] = None,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> list[Sandbox]:
        """List sandboxes (one page)."""
        api = _control_api(control_api, config)
        params = input.to_dict() if input is not None else None
        items = await api.list_sandboxes(params, config=config)
        return [
            Sandbox.from_dict(item, config=config, control_api=api) for item in items
        ]

    # Positional call forms kept for backwards compatibility.

    @classmethod
    async def create_legacy(
        cls, input: SandboxCreateInput, config: Optional[Config] = None
    ) -> Sandbox:
        warn_deprecated_call(
            "Sandbox.create_legacy(input, config)", "Sandbox.create(input=...)"
        )
        return await cls.create(input=input, config=config)

    @classmethod
    async def delete_legacy(
        cls, sandbox_id: str, config: Optional[Config] = None
    ) -> Sandbox:
        warn_deprecated_call(
            "Sandbox.delete_legacy(id, config)", "Sandbox.delete_by_id(id)"
        )
        return await cls.delete_by_id(sandbox_id, config=config)

    @classmethod
    async def stop_legacy(
        cls, sandbox_id: str, config: Optional[Config] = None
    ) -> Sandbox:
        warn_deprecated_call(
            "Sandbox.stop_legacy(id, config)", "Sandbox.stop_by_id(id)"
        )
        return await cls.stop_by_id(sandbox_id, config=config)

    @classmethod
    async def get_legacy(
        cls,
        sandbox_id: str,
        template_type: Optional[TemplateType] = None,
        config: Optional[Config] = None,
    ) -> Sandbox:
        warn_deprecated_call(
            "Sandbox.get_legacy(id, template_type, config)",
            "Sandbox.get(id, template_type=...)",
        )
        return await cls.get(sandbox_id, template_type=template_type, config=config)

    @classmethod
    async def list_legacy(
        cls,
        input: Optional[SandboxListInput] = None,
        config: Optional[Config] = None,
    ) -> list[Sandbox]:
        warn_deprecated_call(
            "Sandbox.list_legacy(input, config)", "Sandbox.list(input=...)"
        )
        return await cls.list(input=input, config=config)

    # ========================================================================
    # Instance Operations
    # ========================================================================

    def _require_id(self, action: str) -> str:
        if not self.sandbox_id:
            raise ValueError(f"sandbox_id is required to {action} a Sandbox")
        return self.sandbox_id

    def _merged_config(self, config: Optional[Config]) -> Config:
        return Config.with_configs(self._config, config)

    async def refresh(self, *, config: Optional[Config] = None) -> Sandbox:
        """Re-fetch this sandbox's state in place."""
        sandbox_id = self._require_id("refresh")
        result = await Sandbox.get(
            sandbox_id,
            config=self._merged_config(config),
            control_api=self._control_api,
            data_api=self.data_api,
        )
        template_type = self.template_type
        update_object_properties(self, result)
        self.template_type = template_type
        return self

    async def delete(self, *, config: Optional[Config] = None) -> Sandbox:
        """Delete this sandbox and update the snapshot in place."""
        result = await Sandbox.delete_by_id(
            self._require_id("delete"),
            config=self._merged_config(config),
            control_api=self._control_api,
        )
        template_type = self.template_type
        update_object_properties(self, result)
        self.template_type = template_type
        return self

    async def stop(self, *, config: Optional[Config] = None) -> Sandbox:
        """Stop this sandbox and update the snapshot in place."""
        result = await Sandbox.stop_by_id(
            self._require_id("stop"),
            config=self._merged_config(config),
            control_api=self._control_api,
        )
        template_type = self.template_type
        update_object_properties(self, result)
        self.template_type = template_type
        return self

    async def wait_until_running(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        pre_check: Optional[PreCheck] = None,
        config: Optional[Config] = None,
    ) -> Sandbox:
        """Poll until the sandbox is Running or READY.

        Raises:
            ResourceFailedError: If the sandbox enters the Failed state.
            ResourceTimeoutError: If it is not running within the budget.
        """
        return await self.wait_until(
            RUNNING_STATES,
            FAILED_STATES,
            timeout_seconds=timeout_seconds,
            interval_seconds=interval_seconds,
            pre_check=pre_check,
            config=config,
            description="Sandbox to be running",
        )

    @classmethod
    async def create_from_template(
        cls,
        template_name: str,
        *,
        sandbox_idle_timeout_seconds: Optional[int] = 600,
        nas_config: Optional[dict[str, Any]] = None,
        oss_mount_config: Optional[dict[str, Any]] = None,
        polar_fs_config: Optional[dict[str, Any]] = None,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Sandbox:
        """Create a sandbox from ``template_name`` as an instance of this class."""
        sandbox = await Sandbox.create(
            input=SandboxCreateInput(
                template_name=template_name,
                sandbox_idle_timeout_seconds=sandbox_idle_timeout_seconds,
                nas_config=nas_config,
                oss_mount_config=oss_mount_config,
                polar_fs_config=polar_fs_config,
            ),
            config=config,
            control_api=control_api,
        )
        return cls.from_sandbox(sandbox)

    # ========================================================================
    # Health
    # ========================================================================

    async def check_health(
        self, *, config: Optional[Config] = None
    ) -> dict[str, Any]:
        """Return the runtime health payload, e.g. ``{"status": "ok"}``."""
        return await self.data_api.check_health(
            sandbox_id=self.sandbox_id, config=config
        )

    async def _wait_until_healthy(
        self,
        *,
        max_retries: int,
        retry_interval_seconds: float,
        label: str,
    ) -> None:
        """Call ``check_health`` until it reports ``ok``.

        Failed checks are logged and retried. There is no sleep after the
        last attempt.

        Raises:
            ResourceTimeoutError: If no check succeeds within ``max_retries``.
        """
        logger.debug("Waiting for %s to be ready...", label)
        for attempt in range(1, max_retries + 1):
            try:
                health = await self.check_health()
            except AgentRunError as e:
                logger.warning(
                    "[%d/%d] Health check failed: %s", attempt, max_retries, e
                )
            else:
                if health.get("status") == "ok":
                    logger.debug("%s is ready (attempt %d)", label, attempt)
                    return
                logger.debug(
                    "[%d/%d] Health status: %s %s",
                    attempt,
                    max_retries,
                    health.get("code"),
                    health.get("message"),
                )
            if attempt < max_retries:
                await asyncio.sleep(retry_interval_seconds)

        timeout_seconds = max_retries * retry_interval_seconds
        raise ResourceTimeoutError(
            f"Health check timeout after {timeout_seconds:g} seconds. "
            f"{label} did not become ready in time.",
            timeout_seconds=timeout_seconds,
            last_state=self._current_state,
        )
