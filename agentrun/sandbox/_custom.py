"""Sandbox running a custom container image."""

from __future__ import annotations

from dataclasses import dataclass

from agentrun.config import Config
from agentrun.sandbox._models import TemplateType
from agentrun.sandbox._sandbox import Sandbox


@dataclass
class CustomSandbox(Sandbox, template_type=TemplateType.CUSTOM):
    """A sandbox whose runtime is a user-supplied image.

    The image serves its own API under ``get_base_url()``.
    """

    def get_base_url(self) -> str:
        """Return ``{data_endpoint}/sandboxes/{sandbox_id}``."""
        cfg = Config.with_configs(self._config)
        return f"{cfg.data_endpoint}/sandboxes/{self.sandbox_id}"
