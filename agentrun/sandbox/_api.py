"""Data plane clients for sandboxes.

``SandboxDataAPI`` covers lifecycle calls that go through the data plane.
The subclasses add the runtime surfaces of each sandbox kind: filesystem,
code contexts and processes for code interpreters, and automation/live-view
endpoints and recordings for browsers.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from agentrun._internal._control_api import ControlAPI
from agentrun._internal._data_api import DataAPI
from agentrun._internal._models import FileDownloadResult, ResourceType
from agentrun.config import Config
from agentrun.sandbox._models import CodeLanguage

DEFAULT_IDLE_TIMEOUT_SECONDS = 600
DEFAULT_CONTEXT_CWD = "/home/user"
DEFAULT_EXECUTE_TIMEOUT = 30


def _validate_language(language: Any) -> str:
    try:
        return CodeLanguage(language).value
    except ValueError:
        allowed = ", ".join(lang.value for lang in CodeLanguage)
        raise ValueError(
            f"language must be one of {allowed}, got {language!r}"
        ) from None


class SandboxDataAPI(DataAPI):
    """Data plane client for sandbox lifecycle calls.

    When bound to a sandbox id, requests are sent under ``sandboxes/{id}`` with
    a token scoped to that sandbox. Otherwise requests go to ``sandboxes`` with
    a token scoped to ``template_name``.
    """

    def __init__(
        self,
        *,
        sandbox_id: Optional[str] = None,
        template_name: Optional[str] = None,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the SandboxDataAPI.

        Args:
            sandbox_id: Sandbox to bind to.
            template_name: Template used for token scope when no sandbox id
                is given.
            config: Base configuration for every request.
            control_api: Control plane client used to fetch access tokens.
            http_client: Shared client to send requests with.
        """
        if sandbox_id:
            super().__init__(
                sandbox_id,
                ResourceType.SANDBOX,
                config=config,
                namespace=f"sandboxes/{sandbox_id}",
                control_api=control_api,
                http_client=http_client,
            )
        else:
            super().__init__(
                template_name or "",
                ResourceType.TEMPLATE,
                config=config,
                namespace="sandboxes",
                control_api=control_api,
                http_client=http_client,
            )
        self.sandbox_id = sandbox_id

    def _sandbox_scope(self, sandbox_id: Optional[str]) -> dict[str, Any]:
        sandbox_id = sandbox_id or self.sandbox_id
        if not sandbox_id:
            raise ValueError("sandbox_id is required")
        return {
            "namespace": f"sandboxes/{sandbox_id}",
            "resource_type": ResourceType.SANDBOX,
            "resource_key": sandbox_id,
        }

    async def check_health(
        self, *, sandbox_id: Optional[str] = None, config: Optional[Config] = None
    ) -> dict[str, Any]:
        """Return the sandbox health payload, e.g. ``{"status": "ok"}``."""
        return await self.get(
            "/health", config=config, **self._sandbox_scope(sandbox_id)
        )

    async def create_sandbox(
        self,
        template_name: str,
        *,
        sandbox_idle_timeout_seconds: Optional[int] = DEFAULT_IDLE_TIMEOUT_SECONDS,
        nas_config: Optional[dict[str, Any]] = None,
        oss_mount_config: Optional[dict[str, Any]] = None,
        polar_fs_config: Optional[dict[str, Any]] = None,
        config: Optional[Config] = None,
    ) -> dict[str, Any]:
        """Create a sandbox from a template. Returns the response envelope."""
        data: dict[str, Any] = {
            "templateName": template_name,
            "sandboxIdleTimeoutSeconds": sandbox_idle_timeout_seconds
            or DEFAULT_IDLE_TIMEOUT_SECONDS,
        }
        if nas_config is not None:
            data["nasConfig"] = nas_config
        if oss_mount_config is not None:
            data["ossMountConfig"] = oss_mount_config
        if polar_fs_config is not None:
            data["polarFsConfig"] = polar_fs_config
        return await self.post(
            "/",
            data,
            config=config,
            namespace="sandboxes",
            resource_type=ResourceType.TEMPLATE,
            resource_key=template_name,
        )

    async def delete_sandbox(
        self, *, sandbox_id: Optional[str] = None, config: Optional[Config] = None
    ) -> dict[str, Any]:
        return await self.delete("/", config=config, **self._sandbox_scope(sandbox_id))

    async def stop_sandbox(
        self, *, sandbox_id: Optional[str] = None, config: Optional[Config] = None
    ) -> dict[str, Any]:
        return await self.post(
            "/stop", config=config, **self._sandbox_scope(sandbox_id)
        )

    async def get_sandbox(
        self, *, sandbox_id: Optional[str] = None, config: Optional[Config] = None
    ) -> dict[str, Any]:
        """Get a sandbox. Returns the ``{code, message, data}`` envelope."""
        return await self.get("/", config=config, **self._sandbox_scope(sandbox_id))


class CodeInterpreterDataAPI(SandboxDataAPI):
    """Data plane client for a code interpreter sandbox."""

    def __init__(
        self,
        sandbox_id: str,
        *,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the CodeInterpreterDataAPI for ``sandbox_id``."""
        super().__init__(
            sandbox_id=sandbox_id,
            config=config,
            control_api=control_api,
            http_client=http_client,
        )

    # ========================================================================
    # Filesystem Operations
    # ========================================================================

    async def list_directory(
        self,
        path: Optional[str] = None,
        depth: Optional[int] = None,
        *,
        config: Optional[Config] = None,
    ) -> Any:
        return await self.get(
            "/filesystem", query={"path": path, "depth": depth}, config=config
        )

    async def stat(self, path: str, *, config: Optional[Config] = None) -> Any:
        return await self.get("/filesystem/stat", query={"path": path}, config=config)

    async def mkdir(
        self,
        path: str,
        *,
        parents: bool = True,
        mode: str = "0755",
        config: Optional[Config] = None,
    ) -> Any:
        return await self.post(
            "/filesystem/mkdir",
            {"path": path, "parents": parents, "mode": mode},
            config=config,
        )

    async def move_file(
        self, source: str, destination: str, *, config: Optional[Config] = None
    ) -> Any:
        return await self.post(
            "/filesystem/move",
            {"source": source, "destination": destination},
            config=config,
        )

    async def remove_file(self, path: str, *, config: Optional[Config] = None) -> Any:
        return await self.post("/filesystem/remove", {"path": path}, config=config)

    # ========================================================================
    # Context Operations
    # ========================================================================

    async def list_contexts(self, *, config: Optional[Config] = None) -> Any:
        return await self.get("/contexts", config=config)

    async def create_context(
        self,
        *,
        language: CodeLanguage = CodeLanguage.PYTHON,
        cwd: str = DEFAULT_CONTEXT_CWD,
        config: Optional[Config] = None,
    ) -> Any:
        """Create an execution context.

        Raises:
            ValueError: If ``language`` is not python or javascript.
        """
        data = {"language": _validate_language(language), "cwd": cwd}
        return await self.post("/contexts", data, config=config)

    async def get_context(
        self, context_id: str, *, config: Optional[Config] = None
    ) -> Any:
        return await self.get(f"/contexts/{context_id}", config=config)

    async def execute_code(
        self,
        code: str,
        *,
        language: Optional[CodeLanguage] = None,
        context_id: Optional[str] = None,
        timeout: int = DEFAULT_EXECUTE_TIMEOUT,
        config: Optional[Config] = None,
    ) -> Any:
        """Execute code, in an existing context or a fresh one per language.

        Raises:
            ValueError: If ``language`` is given and not python or javascript.
        """
        data: dict[str, Any] = {"code": code}
        if timeout is not None:
            data["timeout"] = timeout
        if language is not None:
            data["language"] = _validate_language(language)
        if context_id:
            data["contextId"] = context_id
        return await self.post("/contexts/execute", data, config=config)

    async def delete_context(
        self, context_id: str, *, config: Optional[Config] = None
    ) -> Any:
        return await self.delete(f"/contexts/{context_id}", config=config)

    # ========================================================================
    # File Operations
    # ========================================================================

    async def read_file(self, path: str, *, config: Optional[Config] = None) -> Any:
        return await self.get("/files", query={"path": path}, config=config)

    async def write_file(
        self,
        path: str,
        content: str,
        *,
        mode: str = "644",
        encoding: str = "utf-8",
        create_dir: bool = True,
        config: Optional[Config] = None,
    ) -> Any:
        data = {
            "path": path,
            "content": content,
            "mode": mode,
            "encoding": encoding,
            "createDir": create_dir,
        }
        return await self.post("/files", data, config=config)

    async def upload_file(
        self,
        local_file_path: str,
        target_file_path: str,
        *,
        config: Optional[Config] = None,
    ) -> Any:
        return await self.post_file(
            "/filesystem/upload", local_file_path, target_file_path, config=config
        )

    async def download_file(
        self, path: str, save_path: str, *, config: Optional[Config] = None
    ) -> FileDownloadResult:
        return await self.get_file(
            "/filesystem/download", save_path, query={"path": path}, config=config
        )

    # ========================================================================
    # Process Operations
    # ========================================================================

    async def cmd(
        self,
        command: str,
        cwd: str,
        *,
        timeout: Optional[int] = None,
        config: Optional[Config] = None,
    ) -> Any:
        data: dict[str, Any] = {"command": command, "cwd": cwd}
        if timeout is not None:
            data["timeout"] = timeout
        return await self.post("/processes/cmd", data, config=config)

    async def list_processes(self, *, config: Optional[Config] = None) -> Any:
        return await self.get("/processes", config=config)

    async def get_process(self, pid: str, *, config: Optional[Config] = None) -> Any:
        return await self.get(f"/processes/{pid}", config=config)

    async def kill_process(self, pid: str, *, config: Optional[Config] = None) -> Any:
        return await self.delete(f"/processes/{pid}", config=config)


class BrowserDataAPI(SandboxDataAPI):
    """Data plane client for a browser sandbox."""

    def __init__(
        self,
        sandbox_id: str,
        *,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the BrowserDataAPI for ``sandbox_id``."""
        super().__init__(
            sandbox_id=sandbox_id,
            config=config,
            control_api=control_api,
            http_client=http_client,
        )

    def _ws_url(self, path: str, record: bool) -> str:
        query: dict[str, Any] = {"tenantId": self.config.account_id}
        if record:
            query["recording"] = "true"
        url = self.with_path(path, query)
        # https -> wss, http -> ws
        return "ws" + url[len("http"):] if url.startswith("http") else url

    def get_cdp_url(self, record: bool = False) -> str:
        """Return the Chrome DevTools Protocol websocket URL."""
        return self._ws_url("/ws/automation", record)

    def get_vnc_url(self, record: bool = False) -> str:
        """Return the live-view (VNC) websocket URL."""
        return self._ws_url("/ws/liveview", record)

    async def list_recordings(self, *, config: Optional[Config] = None) -> Any:
        return await self.get("/recordings", config=config)

    async def delete_recording(
        self, filename: str, *, config: Optional[Config] = None
    ) -> Any:
        return await self.delete(f"/recordings/{filename}", config=config)

    async def download_recording(
        self, filename: str, save_path: str, *, config: Optional[Config] = None
    ) -> FileDownloadResult:
        return await self.get_video(
            f"/recordings/{filename}", save_path, config=config
        )


class AioDataAPI(CodeInterpreterDataAPI):
    """Data plane client for an all-in-one sandbox (code interpreter + browser)."""

    def __init__(
        self,
        sandbox_id: str,
        *,
        config: Optional[Config] = None,
        control_api: Optional[ControlAPI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the AioDataAPI for ``sandbox_id``."""
        super().__init__(
            sandbox_id,
            config=config,
            control_api=control_api,
            http_client=http_client,
        )
        self._browser = BrowserDataAPI(
            sandbox_id,
            config=config,
            control_api=control_api,
            http_client=http_client,
        )

    def get_cdp_url(self, record: bool = False) -> str:
        return self._browser.get_cdp_url(record)

    def get_vnc_url(self, record: bool = False) -> str:
        return self._browser.get_vnc_url(record)

    async def list_recordings(self, *, config: Optional[Config] = None) -> Any:
        return await self._browser.list_recordings(config=config)

    async def delete_recording(
        self, filename: str, *, config: Optional[Config] = None
    ) -> Any:
        return await self._browser.delete_recording(filename, config=config)

    async def download_recording(
        self, filename: str, save_path: str, *, config: Optional[Config] = None
    ) -> FileDownloadResult:
        return await self._browser.download_recording(
            filename, save_path, config=config
        )
