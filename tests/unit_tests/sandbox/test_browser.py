"""Tests for browser, all-in-one and custom sandboxes."""

from unittest.mock import AsyncMock, patch

import pytest
from pytest_httpx import HTTPXMock

from agentrun import ResourceTimeoutError
from agentrun.sandbox import (
    AioSandbox,
    BrowserSandbox,
    CustomSandbox,
    Sandbox,
    TemplateType,
)

DATA = "https://123.agentrun-data.cn-hangzhou.aliyuncs.com"
SBX = f"{DATA}/sandboxes/sbx-1"
WSS = "wss://123.agentrun-data.cn-hangzhou.aliyuncs.com/sandboxes/sbx-1"


class TestBrowserSandbox:
    """Tests for BrowserSandbox."""

    def test_websocket_urls(self, config, control_api):
        """Test the automation and live-view URLs."""
        sandbox = BrowserSandbox(
            sandbox_id="sbx-1", _config=config, _control_api=control_api
        )

        assert sandbox.get_cdp_url() == f"{WSS}/ws/automation?tenantId=123"
        assert sandbox.get_vnc_url(record=True) == (
            f"{WSS}/ws/liveview?tenantId=123&recording=true"
        )

    async def test_recordings(
        self, config, control_api, tmp_path, httpx_mock: HTTPXMock
    ):
        """Test listing, downloading and deleting recordings."""
        httpx_mock.add_response(
            method="GET", url=f"{SBX}/recordings", json={"recordings": ["r.mkv"]}
        )
        httpx_mock.add_response(
            method="GET", url=f"{SBX}/recordings/r.mkv", content=b"\x1aE\xdf\xa3"
        )
        httpx_mock.add_response(method="DELETE", url=f"{SBX}/recordings/r.mkv")
        sandbox = BrowserSandbox(
            sandbox_id="sbx-1", _config=config, _control_api=control_api
        )

        listing = await sandbox.list_recordings()
        saved = await sandbox.download_recording("r.mkv", str(tmp_path / "r.mkv"))
        deleted = await sandbox.delete_recording("r.mkv")

        assert listing == {"recordings": ["r.mkv"]}
        assert saved.size == 4
        assert deleted == {}

    async def test_health_timeout_names_browser(
        self, config, control_api, httpx_mock: HTTPXMock
    ):
        """Test that the health wait reports the browser by name."""
        httpx_mock.add_response(
            method="GET", url=f"{SBX}/health", json={"status": "starting"}
        )
        sandbox = BrowserSandbox(
            sandbox_id="sbx-1", _config=config, _control_api=control_api
        )

        with pytest.raises(ResourceTimeoutError, match="Browser did not become"):
            await sandbox.wait_until_ready(max_retries=1)


class TestAioSandbox:
    """Tests for AioSandbox."""

    async def test_runs_code_and_exposes_browser(
        self, config, control_api, httpx_mock: HTTPXMock
    ):
        """Test that one sandbox offers both code execution and the browser."""
        httpx_mock.add_response(
            method="POST", url=f"{SBX}/contexts/execute", json={"results": []}
        )
        sandbox = AioSandbox(
            sandbox_id="sbx-1", _config=config, _control_api=control_api
        )

        await sandbox.execute("print(1)")

        assert sandbox.get_cdp_url().startswith(f"{WSS}/ws/automation")

    async def test_health_ok(self, config, control_api, httpx_mock: HTTPXMock):
        """Test that a healthy sandbox is ready at the first check."""
        httpx_mock.add_response(
            method="GET", url=f"{SBX}/health", json={"status": "ok"}
        )
        sandbox = AioSandbox(
            sandbox_id="sbx-1", _config=config, _control_api=control_api
        )

        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            await sandbox.wait_until_ready()

        sleep.assert_not_called()

    def test_specialized_from_plain_snapshot(self, config):
        """Test that a plain snapshot can be turned into an AIO sandbox."""
        plain = Sandbox(sandbox_id="sbx-1", state="Running", _config=config)

        sandbox = Sandbox._specialize(plain, TemplateType.AIO)

        assert isinstance(sandbox, AioSandbox)
        assert sandbox.template_type == TemplateType.AIO
        assert sandbox.state == "Running"
        assert sandbox.context.context_id is None


class TestCustomSandbox:
    """Tests for CustomSandbox."""

    def test_base_url(self, config):
        """Test that the base URL points at the sandbox on the data plane."""
        sandbox = CustomSandbox(sandbox_id="sbx-1", _config=config)

        assert sandbox.get_base_url() == SBX

    def test_registered_for_custom_images(self):
        """Test that custom image templates dispatch to CustomSandbox."""
        sandbox = Sandbox._specialize(
            Sandbox(sandbox_id="sbx-1"), TemplateType.CUSTOM
        )

        assert isinstance(sandbox, CustomSandbox)
