"""Tests for the control plane client."""

import httpx
import orjson
import pytest
from pytest_httpx import HTTPXMock

from agentrun import ClientError, ControlAPI, ResourceType, ServerError

BASE = "https://agentrun.cn-hangzhou.aliyuncs.com/2025-09-10"


class _HeaderAuth(httpx.Auth):
    def auth_flow(self, request):
        request.headers["Authorization"] = "signed"
        yield request


@pytest.fixture
def api(config) -> ControlAPI:
    """A control plane client against the default endpoint."""
    return ControlAPI(config)


class TestAccessToken:
    """Tests for ControlAPI.get_access_token."""

    async def test_sandbox_token_by_id(self, api, httpx_mock: HTTPXMock):
        """Test that sandbox tokens are requested by resource id."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE}/accessToken?resourceType=sandbox&resourceId=sbx-1",
            json={"requestId": "r1", "data": {"accessToken": "abc"}},
        )

        token = await api.get_access_token(ResourceType.SANDBOX, resource_id="sbx-1")

        assert token == "abc"

    async def test_template_token_by_name(self, api, httpx_mock: HTTPXMock):
        """Test that other tokens are requested by resource name."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE}/accessToken?resourceType=template&resourceName=tpl",
            json={"data": {"accessToken": "xyz"}},
        )

        token = await api.get_access_token(
            ResourceType.TEMPLATE, resource_name="tpl"
        )

        assert token == "xyz"


class TestResourceCalls:
    """Tests for template and sandbox operations."""

    async def test_create_template_posts_json(self, api, httpx_mock: HTTPXMock):
        """Test that the input is sent as JSON and data is unwrapped."""
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE}/templates",
            json={"requestId": "r", "data": {"templateName": "tpl"}},
        )

        result = await api.create_template({"templateName": "tpl", "cpu": 2})

        assert result == {"templateName": "tpl"}
        request = httpx_mock.get_request()
        assert orjson.loads(request.content) == {"templateName": "tpl", "cpu": 2}
        assert request.headers["Content-Type"] == "application/json"

    async def test_list_sandboxes_unwraps_page(self, api, httpx_mock: HTTPXMock):
        """Test that list_sandboxes returns the sandboxes of the page."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE}/sandboxes?maxResults=10",
            json={"data": {"sandboxes": [{"sandboxId": "a"}], "nextToken": "n"}},
        )

        result = await api.list_sandboxes({"maxResults": 10, "nextToken": None})

        assert result == [{"sandboxId": "a"}]

    async def test_list_templates_unwraps_items(self, api, httpx_mock: HTTPXMock):
        """Test that list_templates returns the items of the page."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE}/templates",
            json={"data": {"items": [{"templateName": "t"}]}},
        )

        assert await api.list_templates() == [{"templateName": "t"}]

    async def test_stop_sandbox(self, api, httpx_mock: HTTPXMock):
        """Test that stop is a POST to the sandbox's stop action."""
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE}/sandboxes/sbx-1/stop",
            json={"data": {"sandboxId": "sbx-1", "status": "Stopped"}},
        )

        result = await api.stop_sandbox("sbx-1")

        assert result["status"] == "Stopped"

    async def test_auth_signs_requests(self, config, httpx_mock: HTTPXMock):
        """Test that the supplied httpx.Auth is applied."""
        api = ControlAPI(config, auth=_HeaderAuth())
        httpx_mock.add_response(url=f"{BASE}/templates/tpl", json={"data": {}})

        await api.get_template("tpl")

        assert httpx_mock.get_request().headers["Authorization"] == "signed"

    async def test_shared_http_client(self, config, httpx_mock: HTTPXMock):
        """Test that a supplied AsyncClient is used for requests."""
        httpx_mock.add_response(url=f"{BASE}/sandboxes/sbx-1", json={"data": {}})

        async with httpx.AsyncClient(headers={"X-Shared": "yes"}) as http:
            api = ControlAPI(config, http_client=http)
            await api.get_sandbox("sbx-1")

        assert httpx_mock.get_request().headers["X-Shared"] == "yes"


class TestErrors:
    """Tests for control plane error mapping."""

    async def test_4xx_becomes_client_error(self, api, httpx_mock: HTTPXMock):
        """Test that 4xx responses carry message, code and request id."""
        httpx_mock.add_response(
            url=f"{BASE}/templates/missing",
            status_code=404,
            json={"code": "NotFound", "message": "missing", "requestId": "r-404"},
        )

        with pytest.raises(ClientError) as exc_info:
            await api.get_template("missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "missing"
        assert exc_info.value.request_id == "r-404"
        assert exc_info.value.error_code == "NotFound"

    async def test_5xx_becomes_server_error(self, api, httpx_mock: HTTPXMock):
        """Test that 5xx responses use the request id header as fallback."""
        httpx_mock.add_response(
            url=f"{BASE}/sandboxes/sbx-1",
            status_code=503,
            text="unavailable",
            headers={"x-acs-request-id": "r-503"},
        )

        with pytest.raises(ServerError) as exc_info:
            await api.get_sandbox("sbx-1")

        assert exc_info.value.message == "unavailable"
        assert exc_info.value.request_id == "r-503"

    async def test_connection_error(self, api, httpx_mock: HTTPXMock):
        """Test that transport errors become ClientError(0)."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with pytest.raises(ClientError) as exc_info:
            await api.delete_sandbox("sbx-1")

        assert exc_info.value.status_code == 0
