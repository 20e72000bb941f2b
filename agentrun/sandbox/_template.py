"""Sandbox template resource."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union

from agentrun._internal._control_api import ControlAPI
from agentrun._internal._models import Status
from agentrun._internal._resource import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    PreCheck,
    ResourceBase,
)
from agentrun.config import Config
from agentrun.exceptions import HTTPError, raise_resource_error
from agentrun.sandbox._models import (
    TemplateCreateInput,
    TemplateListInput,
    TemplateNetworkConfiguration,
    TemplateNetworkMode,
    TemplateType,
    TemplateUpdateInput,
)
from agentrun.utils import update_object_properties

logger = logging.getLogger(__name__)

LIST_ALL_PAGE_SIZE = 50
BROWSER_DISK_SIZE = 10240

_BASE_DEFAULTS: dict[str, Any] = {
    "cpu": 2,
    "memory": 4096,
    "sandbox_idle_timeout_in_seconds": 1800,
    "sandbox_ttl_in_seconds": 21600,
    "share_concurrency_limit_per_sandbox": 200,
    "disk_size": 512,
}
_BROWSER_DEFAULTS: dict[str, Any] = {
    **_BASE_DEFAULTS,
    "cpu": 4,
    "memory": 8192,
    "disk_size": BROWSER_DISK_SIZE,
}


def _to_int(value: Any) -> Optional[int]:
    # Some durations are reported as numeric strings
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric duration %r", value)
        return None


def _to_template_type(value: Any) -> Optional[Union[TemplateType, str]]:
    """Map a reported template type to the enum, keeping unknown values."""
    if not value:
        return None
    try:
        return TemplateType(value)
    except ValueError:
        logger.warning("Unknown template type %r", value)
        return value


def _template_defaults(template_type: Optional[TemplateType]) -> dict[str, Any]:
    if template_type in (TemplateType.BROWSER, TemplateType.AIO):
        return dict(_BROWSER_DEFAULTS)
    return dict(_BASE_DEFAULTS)


def _apply_defaults(input: TemplateCreateInput) -> TemplateCreateInput:
    """Fill unset resource fields with per-type defaults."""
    template_type = (
        TemplateType(input.template_type) if input.template_type else None
    )
    defaults = _template_defaults(template_type)
    overrides = {
        name: value
        for name, value in defaults.items()
        if getattr(input, name) is None
    }
    result = dataclasses.replace(input, **overrides)
    if result.network_configuration is None:
        result.network_configuration = TemplateNetworkConfiguration(
            network_mode=TemplateNetworkMode.PUBLIC
        )
    return result


def _validate(input: TemplateCreateInput) -> None:
    template_type = (
        TemplateType(input.template_type) if input.template_type else None
    )
    if (
        template_type in (TemplateType.BROWSER, TemplateType.AIO)
        and input.disk_size != BROWSER_DISK_SIZE
    ):
        raise ValueError(
            "When template_type is BROWSER or AIO, disk_size must be "
            f"{BROWSER_DISK_SIZE}, got {input.disk_size}"
        )
    network_mode = (
        input.network_configuration.network_mode
        if input.network_configuration
        else None
    )
    if (
        template_type in (TemplateType.CODE_INTERPRETER, TemplateType.AIO)
        and network_mode == TemplateNetworkMode.PRIVATE
    ):
        raise ValueError(
            "When template_type is CODE_INTERPRETER or AIO, network_mode "
            "cannot be PRIVATE"
        )


@dataclass
class Template(ResourceBase):
    """A snapshot of a sandbox template.

    Templates define the image, resources and network settings sandboxes are
    created from. They are managed through the control plane.
    """

    template_id: Optional[str] = None
    template_name: Optional[str] = None
    template_type: Optional[Union[TemplateType, str]] = None
    template_arn: Optional[str] = None
    cpu: Optional[float] = None
    memory: Optional[int] = None
    disk_size: Optional[int] = None
    created_at: Optional[str] = None
    last_updated_at: Optional[str] = None
    description: Optional[str] = None
    execution_role_arn: Optional[str] = None
    resource_name: Optional[str] = None
    sandbox_idle_timeout_in_seconds: Optional[int] = None
    sandbox_ttl_in_seconds: Optional[int] = None
    share_concurrency_limit_per_sandbox: Optional[int] = None
    status: Optional[str] = None
    status_reason: Optional[str] = None
    allow_anonymous_manage: Optional[bool] = None

    # Internal fields (not from API)
    _config: Optional[Config] = field(default=None, repr=False, compare=False)
    _control_api: Optional[ControlAPI] = field(
        default=None, repr=False, compare=False
    )

    _resource_kind: ClassVar[str] = "Template"

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Template:
        """Create a Template from an API response dict."""
        return cls(
            template_id=data.get("templateId"),
            template_name=data.get("templateName"),
            template_type=_to_template_type(data.get("templateType")),
            template_arn=data.get("templateArn"),
            cpu=data.get("cpu"),
            memory=data.get("memory"),
            disk_size=data.get("diskSize"),
            created_at=data.get("createdAt"),
            last_updated_at=data.get("lastUpdatedAt"),
            description=data.get("description"),
            execution_role_arn=data.get("executionRoleArn"),
            resource_name=data.get("resourceName"),
            sandbox_idle_timeout_in_seconds=_to_int(
                data.get("sandboxIdleTimeoutInSeconds")
            ),
            sandbox_ttl_in_seconds=_to_int(
                data.get("sandboxTTLInSeconds", data.get("sandboxTtlInSeconds"))
            ),
            share_concurrency_limit_per_sandbox=data.get(
                "shareConcurrencyLimitPerSandbox"
            ),
            status=data.get("status"),
            status_reason=data.get("statusReason"),
            allow_anonymous_manage=data.get("allowAnonymousManage"),
            _config=config,
            _control_api=control_api,
        )

    @classmethod
    async def create(
        cls,
        *,
        input: TemplateCreateInput,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Template:
        """Create a template, applying per-type defaults.

        Args:
            input: Creation parameters. Unset resource fields are defaulted.
            config: Configuration override.
            control_api: Control plane client to use.

        Returns:
            The new template, usually still CREATING.

        Raises:
            ValueError: If the input is invalid for its template type.
            ResourceAlreadyExistError: If the template already exists.
        """
        final_input = _apply_defaults(input)
        _validate(final_input)

        api = control_api or ControlAPI(config)
        try:
            data = await api.create_template(final_input.to_dict(), config=config)
        except HTTPError as e:
            raise_resource_error(e, "Template", input.template_name)
        return cls.from_dict(data, config=config, control_api=api)

    @classmethod
    async def delete_by_name(
        cls,
        name: str,
        *,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Template:
        api = control_api or ControlAPI(config)
        try:
            data = await api.delete_template(name, config=config)
        except HTTPError as e:
            raise_resource_error(e, "Template", name)
        return cls.from_dict(data, config=config, control_api=api)

    @classmethod
    async def update_by_name(
        cls,
        name: str,
        *,
        input: TemplateUpdateInput,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Template:
        api = control_api or ControlAPI(config)
        try:
            data = await api.update_template(name, input.to_dict(), config=config)
        except HTTPError as e:
            raise_resource_error(e, "Template", name)
        return cls.from_dict(data, config=config, control_api=api)

    @classmethod
    async def get(
        cls,
        name: str,
        *,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> Template:
        """Get a template by name.

        Raises:
            ResourceNotExistError: If the template does not exist.
        """
        api = control_api or ControlAPI(config)
        try:
            data = await api.get_template(name, config=config)
        except HTTPError as e:
            raise_resource_error(e, "Template", name)
        return cls.from_dict(data, config=config, control_api=api)

    @classmethod
    async def list(
        cls,
        *,
        input: Optional[TemplateListInput] = None,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> list[Template]:
        """List one page of templates."""
        api = control_api or ControlAPI(config)
        params = input.to_dict() if input is not None else None
        items = await api.list_templates(params, config=config)
        return [cls.from_dict(item, config=config, control_api=api) for item in items]

    @classmethod
    async def list_all(
        cls,
        *,
        template_type: Optional[TemplateType] = None,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ) -> list[Template]:
        """List every template, page by page, without duplicates.

        Pages of 50 are fetched until a short page is returned. Templates
        without an id, or whose id was already seen, are dropped.
        """
        api = control_api or ControlAPI(config)
        templates: list[Template] = []
        page = 1
        while True:
            batch = await cls.list(
                input=TemplateListInput(
                    page_number=page,
                    page_size=LIST_ALL_PAGE_SIZE,
                    template_type=template_type,
                ),
                config=config,
                control_api=api,
            )
            templates.extend(batch)
            page += 1
            if len(batch) < LIST_ALL_PAGE_SIZE:
                break

        seen: set[str] = set()
        unique = []
        for template in templates:
            if not template.template_id or template.template_id in seen:
                continue
            seen.add(template.template_id)
            unique.append(template)
        return unique

    # ========================================================================
    # Instance Operations
    # ========================================================================

    def _require_name(self, action: str) -> str:
        if not self.template_name:
            raise ValueError(f"template_name is required to {action} a Template")
        return self.template_name

    def _merged_config(self, config: Optional[Config]) -> Config:
        return Config.with_configs(self._config, config)

    async def refresh(self, *, config: Optional[Config] = None) -> Template:
        result = await Template.get(
            self._require_name("refresh"),
            config=self._merged_config(config),
            control_api=self._control_api,
        )
        update_object_properties(self, result)
        return self

    async def delete(self, *, config: Optional[Config] = None) -> Template:
        result = await Template.delete_by_name(
            self._require_name("delete"),
            config=self._merged_config(config),
            control_api=self._control_api,
        )
        update_object_properties(self, result)
        return self

    async def update(
        self, *, input: TemplateUpdateInput, config: Optional[Config] = None
    ) -> Template:
        result = await Template.update_by_name(
            self._require_name("update"),
            input=input,
            config=self._merged_config(config),
            control_api=self._control_api,
        )
        update_object_properties(self, result)
        return self

    async def wait_until_ready(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        pre_check: Optional[PreCheck] = None,
        config: Optional[Config] = None,
    ) -> Template:
        """Poll until the template is READY.

        Raises:
            ResourceFailedError: If the template ends in CREATE_FAILED.
            ResourceTimeoutError: If it is not ready within the budget.
        """
        return await self.wait_until(
            (Status.READY,),
            (Status.CREATE_FAILED,),
            timeout_seconds=timeout_seconds,
            interval_seconds=interval_seconds,
            pre_check=pre_check,
            config=config,
            description="Template to be ready",
        )
