"""AgentRun Sandbox Module.

Create and operate code interpreter, browser, all-in-one and custom image
sandboxes, and the templates they are created from.

Example:
    from agentrun.sandbox import SandboxClient, TemplateType

    client = SandboxClient()
    sandbox = await client.create_code_interpreter_sandbox("my-template")
    await sandbox.wait_until_running()
    await sandbox.wait_until_ready()

    result = await sandbox.execute("print(1 + 1)")
    await sandbox.delete()
"""

from agentrun.sandbox._aio import AioSandbox
from agentrun.sandbox._api import (
    AioDataAPI,
    BrowserDataAPI,
    CodeInterpreterDataAPI,
    SandboxDataAPI,
)
from agentrun.sandbox._browser import BrowserSandbox
from agentrun.sandbox._client import SandboxClient
from agentrun.sandbox._code_interpreter import (
    CodeInterpreterSandbox,
    ContextOperations,
    FileOperations,
    FileSystemOperations,
    ProcessOperations,
)
from agentrun.sandbox._custom import CustomSandbox
from agentrun.sandbox._models import (
    CodeLanguage,
    SandboxCreateInput,
    SandboxListInput,
    SandboxState,
    TemplateContainerConfiguration,
    TemplateCreateInput,
    TemplateListInput,
    TemplateNetworkConfiguration,
    TemplateNetworkMode,
    TemplateOSSPermission,
    TemplateOssConfiguration,
    TemplateType,
    TemplateUpdateInput,
)
from agentrun.sandbox._sandbox import Sandbox
from agentrun.sandbox._template import Template

__all__ = [
    # Main classes
    "SandboxClient",
    "Sandbox",
    "Template",
    # Specialized sandboxes
    "CodeInterpreterSandbox",
    "BrowserSandbox",
    "AioSandbox",
    "CustomSandbox",
    # Code interpreter namespaces
    "FileOperations",
    "FileSystemOperations",
    "ProcessOperations",
    "ContextOperations",
    # Data plane clients
    "SandboxDataAPI",
    "CodeInterpreterDataAPI",
    "BrowserDataAPI",
    "AioDataAPI",
    # Models
    "TemplateType",
    "SandboxState",
    "CodeLanguage",
    "TemplateNetworkMode",
    "TemplateOSSPermission",
    "TemplateNetworkConfiguration",
    "TemplateOssConfiguration",
    "TemplateContainerConfiguration",
    "TemplateCreateInput",
    "TemplateUpdateInput",
    "TemplateListInput",
    "SandboxCreateInput",
    "SandboxListInput",
]
