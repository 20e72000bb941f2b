"""SandboxClient: templates and sandboxes over the control plane."""

from __future__ import annotations

from typing import Any, Optional

from agentrun._internal._control_api import ControlAPI
from agentrun.config import Config
from agentrun.exceptions import HTTPError, raise_resource_error
from agentrun.sandbox._browser import BrowserSandbox
from agentrun.sandbox._code_interpreter import CodeInterpreterSandbox
from agentrun.sandbox._models import (
    SandboxCreateInput,
    SandboxListInput,
    TemplateCreateInput,
    TemplateListInput,
    TemplateType,
    TemplateUpdateInput,
)
from agentrun.sandbox._sandbox import Sandbox
from agentrun.sandbox._template import Template


class SandboxClient:
    """Client for managing templates and sandboxes.

    Every method accepts a per-call ``config`` layered over the client's.
    ``HTTPError`` from the control plane is reclassified into
    ``ResourceNotExistError``/``ResourceAlreadyExistError`` where it applies.

    Example:
        client = SandboxClient(Config(account_id="123"), control_api=api)
        template = await client.create_template(
            TemplateCreateInput(
                template_name="my-ci",
                template_type=TemplateType.CODE_INTERPRETER,
            )
        )
        await template.wait_until_ready()
        sandbox = await client.create_code_interpreter_sandbox("my-ci")
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
    ):
        """Initialize the SandboxClient.

        Args:
            config: Base configuration for every call.
            control_api: Control plane client. Defaults to one built from
                ``config``.
        """
        self._config = config
        self._control_api = control_api or ControlAPI(config)

    def _cfg(self, config: Optional[Config]) -> Config:
        return Config.with_configs(self._config, config)

    # ========================================================================
    # Template Operations
    # ========================================================================

    async def create_template(
        self, input: TemplateCreateInput, *, config: Optional[Config] = None
    ) -> Template:
        """Create a template. Unset resource fields get per-type defaults.

        Raises:
            ValueError: If the input is invalid for its template type.
            ResourceAlreadyExistError: If the template already exists.
        """
        return await Template.create(
            input=input, config=self._cfg(config), control_api=self._control_api
        )

    async def delete_template(
        self, name: str, *, config: Optional[Config] = None
    ) -> Template:
        return await Template.delete_by_name(
            name, config=self._cfg(config), control_api=self._control_api
        )

    async def update_template(
        self,
        name: str,
        input: TemplateUpdateInput,
        *,
        config: Optional[Config] = None,
    ) -> Template:
        return await Template.update_by_name(
            name,
            input=input,
            config=self._cfg(config),
            control_api=self._control_api,
        )

    async def get_template(
        self, name: str, *, config: Optional[Config] = None
    ) -> Template:
        return await Template.get(
            name, config=self._cfg(config), control_api=self._control_api
        )

    async def list_templates(
        self,
        input: Optional[TemplateListInput] = None,
        *,
        config: Optional[Config] = None,
    ) -> list[Template]:
        return await Template.list(
            input=input, config=self._cfg(config), control_api=self._control_api
        )

    # ========================================================================
    # Sandbox Operations
    # ========================================================================

    async def create_sandbox(
        self, input: SandboxCreateInput, *, config: Optional[Config] = None
    ) -> Sandbox:
        return await Sandbox.create(
            input=input, config=self._cfg(config), control_api=self._control_api
        )

    async def create_code_interpreter_sandbox(
        self,
        template_name: str,
        *,
        config: Optional[Config] = None,
        **options: Any,
    ) -> CodeInterpreterSandbox:
        """Create a code interpreter sandbox from ``template_name``.

        Args:
            template_name: Template to create the sandbox from.
            config: Per-call configuration override.
            **options: ``sandbox_idle_timeout_seconds``, ``nas_config``,
                ``oss_mount_config`` or ``polar_fs_config``.
        """
        return await CodeInterpreterSandbox.create_from_template(
            template_name,
            config=self._cfg(config),
            control_api=self._control_api,
            **options,
        )

    async def create_browser_sandbox(
        self,
        template_name: str,
        *,
        config: Optional[Config] = None,
        **options: Any,
    ) -> BrowserSandbox:
        """Create a browser sandbox from ``template_name``.

        Takes the same options as ``create_code_interpreter_sandbox``.
        """
        return await BrowserSandbox.create_from_template(
            template_name,
            config=self._cfg(config),
            control_api=self._control_api,
            **options,
        )

    async def delete_sandbox(
        self, sandbox_id: str, *, config: Optional[Config] = None
    ) -> Sandbox:
        return await Sandbox.delete_by_id(
            sandbox_id, config=self._cfg(config), control_api=self._control_api
        )

    async def stop_sandbox(
        self, sandbox_id: str, *, config: Optional[Config] = None
    ) -> Sandbox:
        return await Sandbox.stop_by_id(
            sandbox_id, config=self._cfg(config), control_api=self._control_api
        )

    async def get_sandbox(
        self,
        sandbox_id: str,
        *,
        template_type: Optional[TemplateType] = None,
        config: Optional[Config] = None,
    ) -> Sandbox:
        """Get a sandbox from the control plane.

        Args:
            sandbox_id: Sandbox id.
            template_type: Return the specialized class for this type.
            config: Per-call configuration override.

        Raises:
            ResourceNotExistError: If the sandbox does not exist.
        """
        cfg = self._cfg(config)
        try:
            data = await self._control_api.get_sandbox(sandbox_id, config=cfg)
        except HTTPError as e:
            raise_resource_error(e, "Sandbox", sandbox_id)
        sandbox = Sandbox.from_dict(data, config=cfg, control_api=self._control_api)
        return Sandbox._specialize(sandbox, template_type)

    async def list_sandboxes(
        self,
        input: Optional[SandboxListInput] = None,
        *,
        config: Optional[Config] = None,
    ) -> list[Sandbox]:
        return await Sandbox.list(
            input=input, config=self._cfg(config), control_api=self._control_api
        )
