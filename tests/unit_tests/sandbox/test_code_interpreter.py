"""Tests for the code interpreter sandbox."""

import logging
from unittest.mock import AsyncMock, patch

import orjson
import pytest
from pytest_httpx import HTTPXMock

from agentrun import ClientError, ResourceTimeoutError, ServerError
from agentrun.sandbox import CodeInterpreterSandbox, CodeLanguage

SBX = "https://123.agentrun-data.cn-hangzhou.aliyuncs.com/sandboxes/sbx-1"

CONTEXT = {"id": "ctx-1", "cwd": "/home/user", "language": "python"}


@pytest.fixture
def sandbox(config, control_api) -> CodeInterpreterSandbox:
    """A running code interpreter sandbox."""
    return CodeInterpreterSandbox(
        sandbox_id="sbx-1", state="Running", _config=config, _control_api=control_api
    )


class TestContexts:
    """Tests for ContextOperations."""

    async def test_create_execute_delete(self, sandbox, httpx_mock: HTTPXMock):
        """Test that the created context is the default until deleted."""
        httpx_mock.add_response(method="POST", url=f"{SBX}/contexts", json=CONTEXT)
        httpx_mock.add_response(
            method="POST",
            url=f"{SBX}/contexts/execute",
            json={"results": [{"type": "stdout", "text": "2\n"}]},
        )
        httpx_mock.add_response(method="DELETE", url=f"{SBX}/contexts/ctx-1", json={})

        context = await sandbox.context.create()
        result = await sandbox.execute("print(1 + 1)")
        await sandbox.context.delete()

        assert context is sandbox.context
        assert result["results"][0]["text"] == "2\n"
        execute_body = orjson.loads(httpx_mock.get_requests()[1].content)
        assert execute_body == {
            "code": "print(1 + 1)",
            "timeout": 30,
            "contextId": "ctx-1",
        }
        assert sandbox.context.context_id is None

    async def test_create_remembers_language_and_cwd(
        self, sandbox, httpx_mock: HTTPXMock
    ):
        """Test that the context attributes come from the response."""
        httpx_mock.add_response(
            method="POST",
            url=f"{SBX}/contexts",
            json={"id": "ctx-2", "cwd": "/srv", "language": "javascript"},
        )

        await sandbox.context.create(language=CodeLanguage.JAVASCRIPT, cwd="/srv")

        assert sandbox.context.context_id == "ctx-2"
        assert sandbox.context.language == "javascript"
        assert sandbox.context.cwd == "/srv"

    async def test_create_with_incomplete_response(
        self, sandbox, httpx_mock: HTTPXMock
    ):
        """Test that a response without a context raises ServerError."""
        httpx_mock.add_response(
            method="POST", url=f"{SBX}/contexts", json={"id": "ctx-3"}
        )

        with pytest.raises(ServerError) as exc_info:
            await sandbox.context.create()

        assert exc_info.value.status_code == 500
        assert sandbox.context.context_id is None

    async def test_execute_without_context_uses_python(
        self, sandbox, httpx_mock: HTTPXMock
    ):
        """Test that execution without a context defaults to python."""
        httpx_mock.add_response(method="POST", url=f"{SBX}/contexts/execute", json={})

        await sandbox.context.execute("1 + 1", timeout=5)

        body = orjson.loads(httpx_mock.get_request().content)
        assert body == {"code": "1 + 1", "timeout": 5, "language": "python"}

    async def test_get_remembers_context(self, sandbox, httpx_mock: HTTPXMock):
        """Test that fetching a context binds the namespace to it."""
        httpx_mock.add_response(
            method="GET", url=f"{SBX}/contexts/ctx-1", json=CONTEXT
        )

        await sandbox.context.get("ctx-1")

        assert sandbox.context.context_id == "ctx-1"

    async def test_missing_context_id(self, sandbox):
        """Test that get and delete need a context id."""
        with pytest.raises(ValueError, match="context id is not set"):
            await sandbox.context.get()
        with pytest.raises(ValueError, match="context_id is required"):
            await sandbox.context.delete()


class TestHealth:
    """Tests for CodeInterpreterSandbox.wait_until_ready."""

    async def test_ready_after_failures(
        self, sandbox, httpx_mock: HTTPXMock, caplog
    ):
        """Test that failed checks are logged and retried."""
        httpx_mock.add_response(
            method="GET", url=f"{SBX}/health", status_code=503, json={"message": "x"}
        )
        httpx_mock.add_response(
            method="GET", url=f"{SBX}/health", json={"status": "starting"}
        )
        httpx_mock.add_response(
            method="GET", url=f"{SBX}/health", json={"status": "ok"}
        )

        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            with caplog.at_level(logging.WARNING, logger="agentrun"):
                await sandbox.wait_until_ready(max_retries=5)

        assert sleep.await_count == 2
        assert any("Health check failed" in r.getMessage() for r in caplog.records)

    async def test_timeout(self, sandbox, httpx_mock: HTTPXMock):
        """Test that the wait gives up after max_retries checks."""
        for _ in range(2):
            httpx_mock.add_response(
                method="GET", url=f"{SBX}/health", json={"status": "starting"}
            )

        with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ResourceTimeoutError) as exc_info:
                await sandbox.wait_until_ready(max_retries=2)

        assert sleep.await_count == 1
        assert "Health check timeout after 2 seconds" in str(exc_info.value)
        assert "Code interpreter did not become ready" in str(exc_info.value)

    async def test_timeout_message_uses_interval(
        self, sandbox, httpx_mock: HTTPXMock
    ):
        """Test that the reported budget accounts for the retry interval."""
        for _ in range(3):
            httpx_mock.add_response(
                method="GET", url=f"{SBX}/health", json={"status": "starting"}
            )

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(ResourceTimeoutError) as exc_info:
                await sandbox.wait_until_ready(
                    max_retries=3, retry_interval_seconds=2.5
                )

        assert "Health check timeout after 7.5 seconds" in str(exc_info.value)
        assert exc_info.value.timeout_seconds == 7.5


class TestFileSystem:
    """Tests for file and filesystem operations."""

    async def test_upload_then_download(
        self, sandbox, tmp_path, httpx_mock: HTTPXMock
    ):
        """Test a file round trip through the sandbox filesystem."""
        local = tmp_path / "report.csv"
        local.write_bytes(b"a,b\n1,2\n")
        httpx_mock.add_response(
            method="POST", url=f"{SBX}/filesystem/upload", json={"path": "/data"}
        )
        httpx_mock.add_response(
            method="GET",
            url=f"{SBX}/filesystem/download?path=%2Fdata%2Freport.csv",
            content=b"a,b\n1,2\n",
        )

        await sandbox.file_system.upload(str(local), "/data/report.csv")
        result = await sandbox.file_system.download(
            "/data/report.csv", str(tmp_path / "copy.csv")
        )

        upload = httpx_mock.get_requests()[0].read()
        assert b'name="path"' in upload
        assert b"/data/report.csv" in upload
        assert result.saved_path == str(tmp_path / "copy.csv")
        assert (tmp_path / "copy.csv").read_bytes() == b"a,b\n1,2\n"

    async def test_failed_download_writes_nothing(
        self, sandbox, tmp_path, httpx_mock: HTTPXMock
    ):
        """Test that a failed download leaves no file behind."""
        httpx_mock.add_response(
            method="GET",
            url=f"{SBX}/filesystem/download?path=%2Fmissing",
            status_code=404,
            text="not found",
        )

        with pytest.raises(ClientError) as exc_info:
            await sandbox.file_system.download("/missing", str(tmp_path / "out"))

        assert exc_info.value.status_code == 404
        assert list(tmp_path.iterdir()) == []

    async def test_write_and_read(self, sandbox, httpx_mock: HTTPXMock):
        """Test text file write and read."""
        httpx_mock.add_response(method="POST", url=f"{SBX}/files", json={})
        httpx_mock.add_response(
            method="GET", url=f"{SBX}/files?path=%2Ftmp%2Fa", json={"content": "x"}
        )

        await sandbox.file.write("/tmp/a", "x")
        result = await sandbox.file.read("/tmp/a")

        assert result == {"content": "x"}

    async def test_process_cmd(self, sandbox, httpx_mock: HTTPXMock):
        """Test running a shell command."""
        httpx_mock.add_response(
            method="POST", url=f"{SBX}/processes/cmd", json={"exitCode": 0}
        )

        result = await sandbox.process.cmd("ls", "/home/user")

        assert result == {"exitCode": 0}
        body = orjson.loads(httpx_mock.get_request().content)
        assert body == {"command": "ls", "cwd": "/home/user"}
