"""All-in-one sandbox: a code interpreter with a browser."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from agentrun.sandbox._api import AioDataAPI
from agentrun.sandbox._browser import _RecordingMixin
from agentrun.sandbox._code_interpreter import CodeInterpreterSandbox
from agentrun.sandbox._models import TemplateType


@dataclass
class AioSandbox(
    _RecordingMixin, CodeInterpreterSandbox, template_type=TemplateType.AIO
):
    """A sandbox combining code execution and browser automation."""

    _data_api_cls: ClassVar[type] = AioDataAPI
    _health_label: ClassVar[str] = "All-in-one sandbox"
