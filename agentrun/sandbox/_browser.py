"""Browser sandbox: automation and live-view endpoints, recordings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from agentrun._internal._models import FileDownloadResult
from agentrun.sandbox._api import BrowserDataAPI
from agentrun.sandbox._models import TemplateType
from agentrun.sandbox._sandbox import (
    HEALTH_CHECK_INTERVAL_SECONDS,
    HEALTH_CHECK_MAX_RETRIES,
    Sandbox,
)

if TYPE_CHECKING:
    from agentrun.config import Config


class _RecordingMixin:
    """Browser endpoints shared by sandboxes whose data API supports them."""

    def get_cdp_url(self, record: bool = False) -> str:
        """Chrome DevTools Protocol websocket URL, for automation clients."""
        return self.data_api.get_cdp_url(record)

    def get_vnc_url(self, record: bool = False) -> str:
        """Live-view websocket URL."""
        return self.data_api.get_vnc_url(record)

    async def list_recordings(self, *, config: Optional[Config] = None) -> Any:
        return await self.data_api.list_recordings(config=config)

    async def download_recording(
        self, filename: str, save_path: str, *, config: Optional[Config] = None
    ) -> FileDownloadResult:
        return await self.data_api.download_recording(
            filename, save_path, config=config
        )

    async def delete_recording(
        self, filename: str, *, config: Optional[Config] = None
    ) -> Any:
        return await self.data_api.delete_recording(filename, config=config)


@dataclass
class BrowserSandbox(_RecordingMixin, Sandbox, template_type=TemplateType.BROWSER):
    """A sandbox running a headless browser.

    Example:
        sandbox = await BrowserSandbox.create_from_template("my-browser")
        await sandbox.wait_until_running()
        await sandbox.wait_until_ready()
        cdp_url = sandbox.get_cdp_url(record=True)
    """

    _data_api_cls: ClassVar[type] = BrowserDataAPI

    async def wait_until_ready(
        self,
        *,
        max_retries: int = HEALTH_CHECK_MAX_RETRIES,
        retry_interval_seconds: float = HEALTH_CHECK_INTERVAL_SECONDS,
    ) -> None:
        """Poll the health endpoint until the browser reports ``ok``."""
        await self._wait_until_healthy(
            max_retries=max_retries,
            retry_interval_seconds=retry_interval_seconds,
            label="Browser",
        )
