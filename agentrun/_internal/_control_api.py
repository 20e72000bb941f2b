"""Async client for the AgentRun control plane.

Request signing is not handled here: callers that talk to the real service
pass an ``httpx.Auth`` implementation that signs each request.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
import orjson

from agentrun._internal._models import ResourceType
from agentrun.config import Config
from agentrun.exceptions import ClientError, ServerError

logger = logging.getLogger(__name__)

API_VERSION = "2025-09-10"


def _raise_for_status(response: httpx.Response) -> None:
    """Raise ClientError/ServerError for a non-2xx control plane response."""
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        body: dict[str, Any] = {}
        try:
            parsed = orjson.loads(e.response.content)
            if isinstance(parsed, dict):
                body = parsed
        except orjson.JSONDecodeError:
            pass
        message = body.get("message") or e.response.text or str(e)
        request_id = body.get("requestId") or e.response.headers.get(
            "x-acs-request-id"
        )
        error_cls = ServerError if status >= 500 else ClientError
        raise error_cls(
            status,
            message,
            request_id=request_id,
            error_code=body.get("code"),
        ) from e


class ControlAPI:
    """Client for resource lifecycle operations on the control plane.

    Every operation takes an optional per-call ``config`` that is layered over
    the instance config.

    Example:
        api = ControlAPI(Config(region_id="cn-hangzhou"), auth=my_signer)
        template = await api.get_template("my-template")
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        auth: Optional[httpx.Auth] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the ControlAPI.

        Args:
            config: Base configuration for every call.
            auth: Request signer applied to every control plane call.
            http_client: Shared client to send requests with. When omitted a
                short-lived client is created per call.
        """
        self._config = config
        self._auth = auth
        self._http = http_client

    def _url(self, path: str, config: Optional[Config]) -> str:
        cfg = Config.with_configs(self._config, config)
        base = cfg.control_endpoint.rstrip("/")
        return f"{base}/{API_VERSION}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        config: Optional[Config] = None,
    ) -> Any:
        cfg = Config.with_configs(self._config, config)
        url = self._url(path, config)
        params = {k: v for k, v in (params or {}).items() if v is not None}
        content = orjson.dumps(json) if json is not None else None
        headers = {"Content-Type": "application/json", **cfg.headers}
        logger.debug("Control API %s %s", method, url)

        try:
            if self._http is not None:
                response = await self._http.request(
                    method,
                    url,
                    content=content,
                    params=params,
                    headers=headers,
                    auth=self._auth or httpx.USE_CLIENT_DEFAULT,
                )
            else:
                async with httpx.AsyncClient(
                    timeout=cfg.timeout_ms / 1000, auth=self._auth
                ) as http:
                    response = await http.request(
                        method, url, content=content, params=params, headers=headers
                    )
        except httpx.HTTPError as e:
            raise ClientError(0, f"Request error: {e}") from e

        _raise_for_status(response)
        if not response.content:
            return {}
        try:
            body = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise ClientError(
                0,
                f"Failed to parse JSON response: {e}",
                details={"status_code": response.status_code},
            ) from e
        logger.debug(
            "Control API %s %s succeeded, request_id=%s",
            method,
            url,
            body.get("requestId") if isinstance(body, dict) else None,
        )
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # ========================================================================
    # Access Tokens
    # ========================================================================

    async def get_access_token(
        self,
        resource_type: ResourceType,
        *,
        resource_id: Optional[str] = None,
        resource_name: Optional[str] = None,
        config: Optional[Config] = None,
    ) -> Optional[str]:
        """Fetch a data plane access token scoped to one resource.

        Sandboxes are addressed by id, every other resource type by name.

        Args:
            resource_type: Kind of resource the token is for.
            resource_id: Resource id (sandboxes).
            resource_name: Resource name (templates and other types).
            config: Per-call configuration override.

        Returns:
            The access token, or None if the service returned none.
        """
        data = await self._request(
            "GET",
            "/accessToken",
            params={
                "resourceType": ResourceType(resource_type).value,
                "resourceId": resource_id,
                "resourceName": resource_name,
            },
            config=config,
        )
        return (data or {}).get("accessToken")

    # ========================================================================
    # Template Operations
    # ========================================================================

    async def create_template(
        self, input: dict[str, Any], *, config: Optional[Config] = None
    ) -> dict[str, Any]:
        return await self._request("POST", "/templates", json=input, config=config)

    async def delete_template(
        self, template_name: str, *, config: Optional[Config] = None
    ) -> dict[str, Any]:
        return await self._request(
            "DELETE", f"/templates/{template_name}", config=config
        )

    async def update_template(
        self,
        template_name: str,
        input: dict[str, Any],
        *,
        config: Optional[Config] = None,
    ) -> dict[str, Any]:
        return await self._request(
            "PUT", f"/templates/{template_name}", json=input, config=config
        )

    async def get_template(
        self, template_name: str, *, config: Optional[Config] = None
    ) -> dict[str, Any]:
        return await self._request(
            "GET", f"/templates/{template_name}", config=config
        )

    async def list_templates(
        self,
        params: Optional[dict[str, Any]] = None,
        *,
        config: Optional[Config] = None,
    ) -> list[dict[str, Any]]:
        """List templates. Returns the ``items`` of one page."""
        data = await self._request("GET", "/templates", params=params, config=config)
        return list((data or {}).get("items") or [])

    # ========================================================================
    # Sandbox Operations
    # ========================================================================

    async def create_sandbox(
        self, input: dict[str, Any], *, config: Optional[Config] = None
    ) -> dict[str, Any]:
        return await self._request("POST", "/sandboxes", json=input, config=config)

    async def delete_sandbox(
        self, sandbox_id: str, *, config: Optional[Config] = None
    ) -> dict[str, Any]:
        return await self._request("DELETE", f"/sandboxes/{sandbox_id}", config=config)

    async def stop_sandbox(
        self, sandbox_id: str, *, config: Optional[Config] = None
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"/sandboxes/{sandbox_id}/stop", config=config
        )

    async def get_sandbox(
        self, sandbox_id: str, *, config: Optional[Config] = None
    ) -> dict[str, Any]:
        return await self._request("GET", f"/sandboxes/{sandbox_id}", config=config)

    async def list_sandboxes(
        self,
        params: Optional[dict[str, Any]] = None,
        *,
        config: Optional[Config] = None,
    ) -> list[dict[str, Any]]:
        """List sandboxes. Returns the ``sandboxes`` of one page."""
        data = await self._request("GET", "/sandboxes", params=params, config=config)
        return list((data or {}).get("sandboxes") or [])
