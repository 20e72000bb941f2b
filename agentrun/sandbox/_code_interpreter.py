"""Code interpreter sandbox and its operation namespaces."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from agentrun._internal._models import FileDownloadResult
from agentrun.exceptions import ServerError
from agentrun.sandbox._api import (
    DEFAULT_CONTEXT_CWD,
    DEFAULT_EXECUTE_TIMEOUT,
    CodeInterpreterDataAPI,
)
from agentrun.sandbox._models import CodeLanguage, TemplateType
from agentrun.sandbox._sandbox import (
    HEALTH_CHECK_INTERVAL_SECONDS,
    HEALTH_CHECK_MAX_RETRIES,
    Sandbox,
)

if TYPE_CHECKING:
    from agentrun.config import Config

logger = logging.getLogger(__name__)


class FileOperations:
    """Read and write text files inside the sandbox."""

    def __init__(self, sandbox: Sandbox):
        self._sandbox = sandbox

    async def read(self, path: str, *, config: Optional[Config] = None) -> Any:
        return await self._sandbox.data_api.read_file(path, config=config)

    async def write(
        self,
        path: str,
        content: str,
        *,
        mode: str = "644",
        encoding: str = "utf-8",
        create_dir: bool = True,
        config: Optional[Config] = None,
    ) -> Any:
        return await self._sandbox.data_api.write_file(
            path,
            content,
            mode=mode,
            encoding=encoding,
            create_dir=create_dir,
            config=config,
        )


class FileSystemOperations:
    """Directory and file management, plus binary upload/download."""

    def __init__(self, sandbox: Sandbox):
        self._sandbox = sandbox

    async def list(
        self,
        path: Optional[str] = None,
        depth: Optional[int] = None,
        *,
        config: Optional[Config] = None,
    ) -> Any:
        return await self._sandbox.data_api.list_directory(path, depth, config=config)

    async def move(
        self, source: str, destination: str, *, config: Optional[Config] = None
    ) -> Any:
        return await self._sandbox.data_api.move_file(
            source, destination, config=config
        )

    async def remove(self, path: str, *, config: Optional[Config] = None) -> Any:
        return await self._sandbox.data_api.remove_file(path, config=config)

    async def stat(self, path: str, *, config: Optional[Config] = None) -> Any:
        return await self._sandbox.data_api.stat(path, config=config)

    async def mkdir(
        self,
        path: str,
        *,
        parents: bool = True,
        mode: str = "0755",
        config: Optional[Config] = None,
    ) -> Any:
        return await self._sandbox.data_api.mkdir(
            path, parents=parents, mode=mode, config=config
        )

    async def upload(
        self,
        local_file_path: str,
        target_file_path: str,
        *,
        config: Optional[Config] = None,
    ) -> Any:
        """Upload a local file to ``target_file_path`` in the sandbox."""
        return await self._sandbox.data_api.upload_file(
            local_file_path, target_file_path, config=config
        )

    async def download(
        self, path: str, save_path: str, *, config: Optional[Config] = None
    ) -> FileDownloadResult:
        """Download ``path`` from the sandbox to local ``save_path``."""
        return await self._sandbox.data_api.download_file(
            path, save_path, config=config
        )


class ProcessOperations:
    """Run commands and manage processes inside the sandbox."""

    def __init__(self, sandbox: Sandbox):
        self._sandbox = sandbox

    async def cmd(
        self,
        command: str,
        cwd: str,
        *,
        timeout: Optional[int] = None,
        config: Optional[Config] = None,
    ) -> Any:
        return await self._sandbox.data_api.cmd(
            command, cwd, timeout=timeout, config=config
        )

    async def list(self, *, config: Optional[Config] = None) -> Any:
        return await self._sandbox.data_api.list_processes(config=config)

    async def get(self, pid: str, *, config: Optional[Config] = None) -> Any:
        return await self._sandbox.data_api.get_process(pid, config=config)

    async def kill(self, pid: str, *, config: Optional[Config] = None) -> Any:
        return await self._sandbox.data_api.kill_process(pid, config=config)


class ContextOperations:
    """Execution contexts, remembering the most recently created or fetched one.

    The remembered context id is the default for ``execute`` and ``delete``.
    """

    def __init__(self, sandbox: Sandbox):
        self._sandbox = sandbox
        self._context_id: Optional[str] = None
        self._language: Optional[str] = None
        self._cwd: Optional[str] = None

    @property
    def context_id(self) -> Optional[str]:
        return self._context_id

    @property
    def language(self) -> Optional[str]:
        return self._language

    @property
    def cwd(self) -> Optional[str]:
        return self._cwd

    def _remember(self, result: Any) -> bool:
        if not isinstance(result, dict):
            return False
        if not (result.get("id") and result.get("cwd") and result.get("language")):
            return False
        self._context_id = result["id"]
        self._language = result["language"]
        self._cwd = result["cwd"]
        return True

    async def list(self, *, config: Optional[Config] = None) -> Any:
        return await self._sandbox.data_api.list_contexts(config=config)

    async def create(
        self,
        *,
        language: Optional[CodeLanguage] = None,
        cwd: Optional[str] = None,
        config: Optional[Config] = None,
    ) -> ContextOperations:
        """Create a context and remember it.

        Args:
            language: Context language. Defaults to python.
            cwd: Working directory. Defaults to /home/user.
            config: Per-call configuration override.

        Returns:
            This namespace, now bound to the new context.

        Raises:
            ServerError: If the response does not describe a context.
        """
        result = await self._sandbox.data_api.create_context(
            language=language or CodeLanguage.PYTHON,
            cwd=cwd or DEFAULT_CONTEXT_CWD,
            config=config,
        )
        if self._remember(result):
            return self
        raise ServerError(500, "Failed to create context")

    async def get(
        self, context_id: Optional[str] = None, *, config: Optional[Config] = None
    ) -> ContextOperations:
        """Fetch a context (the remembered one by default) and remember it.

        Raises:
            ValueError: If no context id is given or remembered.
            ServerError: If the response does not describe a context.
        """
        context_id = context_id or self._context_id
        if not context_id:
            raise ValueError("context id is not set")
        result = await self._sandbox.data_api.get_context(context_id, config=config)
        if self._remember(result):
            return self
        raise ServerError(500, "Failed to get context")

    async def execute(
        self,
        code: str,
        *,
        language: Optional[CodeLanguage] = None,
        context_id: Optional[str] = None,
        timeout: int = DEFAULT_EXECUTE_TIMEOUT,
        config: Optional[Config] = None,
    ) -> Any:
        """Execute ``code``.

        Runs in ``context_id``, else the remembered context. Without either,
        a fresh context of ``language`` is used (python when unset).
        """
        context_id = context_id or self._context_id
        if not context_id and not language:
            logger.debug("context id is not set, use default language: python")
            language = CodeLanguage.PYTHON
        return await self._sandbox.data_api.execute_code(
            code,
            language=language,
            context_id=context_id,
            timeout=timeout,
            config=config,
        )

    async def delete(
        self, context_id: Optional[str] = None, *, config: Optional[Config] = None
    ) -> Any:
        """Delete a context (the remembered one by default) and forget it.

        Raises:
            ValueError: If no context id is given or remembered.
        """
        context_id = context_id or self._context_id
        if not context_id:
            raise ValueError(
                "context_id is required. Either pass it as parameter or "
                "create a context first."
            )
        result = await self._sandbox.data_api.delete_context(
            context_id, config=config
        )
        self._context_id = None
        return result


@dataclass
class CodeInterpreterSandbox(Sandbox, template_type=TemplateType.CODE_INTERPRETER):
    """A sandbox that runs code, commands and file operations.

    Example:
        sandbox = await CodeInterpreterSandbox.create_from_template("my-ci")
        await sandbox.wait_until_running()
        await sandbox.wait_until_ready()
        await sandbox.context.create(language=CodeLanguage.PYTHON)
        result = await sandbox.execute("print(1 + 1)")
    """

    _file: Optional[FileOperations] = field(
        default=None, init=False, repr=False, compare=False
    )
    _file_system: Optional[FileSystemOperations] = field(
        default=None, init=False, repr=False, compare=False
    )
    _process: Optional[ProcessOperations] = field(
        default=None, init=False, repr=False, compare=False
    )
    _context: Optional[ContextOperations] = field(
        default=None, init=False, repr=False, compare=False
    )

    _data_api_cls: ClassVar[type] = CodeInterpreterDataAPI
    _health_label: ClassVar[str] = "Code interpreter"

    @property
    def file(self) -> FileOperations:
        if self._file is None:
            self._file = FileOperations(self)
        return self._file

    @property
    def file_system(self) -> FileSystemOperations:
        if self._file_system is None:
            self._file_system = FileSystemOperations(self)
        return self._file_system

    @property
    def process(self) -> ProcessOperations:
        if self._process is None:
            self._process = ProcessOperations(self)
        return self._process

    @property
    def context(self) -> ContextOperations:
        if self._context is None:
            self._context = ContextOperations(self)
        return self._context

    async def wait_until_ready(
        self,
        *,
        max_retries: int = HEALTH_CHECK_MAX_RETRIES,
        retry_interval_seconds: float = HEALTH_CHECK_INTERVAL_SECONDS,
    ) -> None:
        """Poll the health endpoint until the runtime reports ``ok``.

        Raises:
            ResourceTimeoutError: If the runtime is not healthy in time.
        """
        await self._wait_until_healthy(
            max_retries=max_retries,
            retry_interval_seconds=retry_interval_seconds,
            label=self._health_label,
        )

    async def execute(
        self,
        code: str,
        *,
        language: Optional[CodeLanguage] = None,
        context_id: Optional[str] = None,
        timeout: int = DEFAULT_EXECUTE_TIMEOUT,
        config: Optional[Config] = None,
    ) -> Any:
        """Execute ``code``, see ``ContextOperations.execute``."""
        return await self.context.execute(
            code,
            language=language,
            context_id=context_id,
            timeout=timeout,
            config=config,
        )
