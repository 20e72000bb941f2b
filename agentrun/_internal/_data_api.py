"""HTTP client for the AgentRun data plane.

``DataAPI`` owns three things for one resource: a cache of resource-scoped
access tokens, the request/response pipeline, and file transfer. Requests are
never retried; every failure surfaces as a ClientError or ServerError.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import uuid
from typing import Any, Optional, Union
from urllib.parse import quote, urlencode

import aiofiles
import aiofiles.os
import httpx
import orjson

from agentrun._internal._control_api import ControlAPI
from agentrun._internal._models import FileDownloadResult, ResourceType
from agentrun.config import Config
from agentrun.exceptions import AgentRunError, ClientError, ServerError
from agentrun.utils import get_user_agent, mask_token

logger = logging.getLogger(__name__)

ACCESS_TOKEN_HEADER = "Agentrun-Access-Token"

_REPEATED_SLASHES = re.compile(r"/+")

RequestBody = Union[dict[str, Any], list[Any], str, bytes, None]


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _encode_query(query: Optional[dict[str, Any]]) -> str:
    """Encode a query map; list values become repeated keys."""
    pairs: list[tuple[str, str]] = []
    for key, value in (query or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _query_value(v)) for v in value)
        else:
            pairs.append((key, _query_value(value)))
    return urlencode(pairs, quote_via=quote)


def _error_from_body(status_code: int, body: Any, text: str) -> AgentRunError:
    """Build the HTTP error for a non-2xx response with a JSON body."""
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or text
        request_id = body.get("requestId") or body.get("request_id")
        error_code = body.get("code")
    else:
        message, request_id, error_code = text, None, None
    error_cls = ServerError if status_code >= 500 else ClientError
    return error_cls(
        status_code,
        str(message or "Unknown error"),
        request_id=request_id,
        error_code=error_code if isinstance(error_code, str) else None,
    )


class DataAPI:
    """Client for the data plane of a single resource.

    The access token for a resource is fetched from the control plane on first
    use and cached on this instance for its whole lifetime. A static
    ``Config.token`` always wins and is never cached.

    Example:
        api = DataAPI("my-agent", ResourceType.RUNTIME)
        result = await api.get("/status", query={"verbose": True})
    """

    def __init__(
        self,
        resource_name: str = "",
        resource_type: Optional[ResourceType] = None,
        *,
        config: Optional[Config] = None,
        namespace: str = "agents",
        control_api: Optional[ControlAPI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the DataAPI.

        Args:
            resource_name: Id (sandboxes) or name (other types) of the resource
                the access token is scoped to.
            resource_type: Kind of the resource.
            config: Base configuration for every request.
            namespace: Path segment between the data endpoint and the
                request path.
            control_api: Control plane client used to fetch access tokens.
            http_client: Shared client to send requests with. When omitted a
                short-lived client is created per request.
        """
        self._resource_name = resource_name
        self._resource_type = resource_type
        self._config = Config.with_configs(config)
        self._namespace = namespace
        self._control_api = control_api
        self._http = http_client
        self._access_tokens: dict[str, str] = {}

    @property
    def config(self) -> Config:
        return self._config

    @property
    def namespace(self) -> str:
        return self._namespace

    def get_base_url(self) -> str:
        """Return the data endpoint requests are sent to."""
        return self._config.data_endpoint

    def with_path(
        self,
        path: str,
        query: Optional[dict[str, Any]] = None,
        *,
        namespace: Optional[str] = None,
    ) -> str:
        """Build the full URL for ``path`` under this client's namespace.

        Repeated slashes are collapsed (the scheme separator is kept) and
        list-valued query parameters are sent as repeated keys.

        Args:
            path: Request path, relative to the namespace.
            query: Query parameters. None values are dropped.
            namespace: Namespace override for this URL.

        Returns:
            The absolute URL.
        """
        ns = self._namespace if namespace is None else namespace
        parts = [self.get_base_url(), ns, path.lstrip("/")]
        url = "/".join(part for part in parts if part)
        url = _REPEATED_SLASHES.sub("/", url).replace(":/", "://", 1)
        encoded = _encode_query(query)
        if encoded:
            url = f"{url}{'&' if '?' in url else '?'}{encoded}"
        return url

    # ========================================================================
    # Access Tokens
    # ========================================================================

    def _get_control_api(self) -> ControlAPI:
        if self._control_api is None:
            self._control_api = ControlAPI(self._config)
        return self._control_api

    async def ensure_token(
        self,
        resource_type: Optional[ResourceType] = None,
        resource_key: Optional[str] = None,
        *,
        config: Optional[Config] = None,
    ) -> Optional[str]:
        """Return the access token for a resource, fetching it if needed.

        Sandboxes are looked up by id and every other resource type by name.
        A failed fetch is logged and yields None, so the request is still sent
        and the service's response decides the outcome.

        Args:
            resource_type: Kind of resource. Defaults to this client's type.
            resource_key: Sandbox id or resource name. Defaults to this
                client's resource name.
            config: Per-call configuration override.

        Returns:
            The token, or None if none could be obtained.
        """
        cfg = Config.with_configs(self._config, config)
        if cfg.token:
            logger.debug("Using provided access token %s", mask_token(cfg.token))
            return cfg.token

        resource_type = resource_type or self._resource_type
        resource_key = resource_key or self._resource_name
        if not resource_type or not resource_key:
            return None

        cached = self._access_tokens.get(resource_key)
        if cached:
            return cached

        if resource_type == ResourceType.SANDBOX:
            lookup = {"resource_id": resource_key}
        else:
            lookup = {"resource_name": resource_key}
        try:
            token = await self._get_control_api().get_access_token(
                resource_type, config=cfg, **lookup
            )
        except AgentRunError as e:
            logger.warning(
                "Failed to get access token for %s(%s): %s",
                ResourceType(resource_type).value,
                resource_key,
                e,
            )
            return None

        if token:
            self._access_tokens[resource_key] = token
            logger.debug(
                "Fetched access token for %s(%s): %s",
                ResourceType(resource_type).value,
                resource_key,
                mask_token(token),
            )
        return token

    # ========================================================================
    # Request Pipeline
    # ========================================================================

    def _prepare_headers(
        self,
        token: Optional[str],
        headers: Optional[dict[str, str]],
        cfg: Config,
    ) -> dict[str, str]:
        req_headers = {
            "Content-Type": "application/json",
            "User-Agent": get_user_agent(),
        }
        req_headers.update(cfg.headers)
        req_headers.update(headers or {})
        if token:
            req_headers[ACCESS_TOKEN_HEADER] = token
        return req_headers

    async def _send_once(
        self, method: str, url: str, timeout: httpx.Timeout, **kwargs: Any
    ) -> httpx.Response:
        if self._http is not None:
            return await self._http.request(method, url, timeout=timeout, **kwargs)
        async with httpx.AsyncClient(timeout=timeout) as http:
            return await http.request(method, url, **kwargs)

    async def _send(
        self, method: str, url: str, cfg: Config, **kwargs: Any
    ) -> httpx.Response:
        # httpx only bounds each phase; wait_for bounds the whole call
        seconds = cfg.timeout_ms / 1000
        timeout = httpx.Timeout(seconds)
        logger.debug("%s %s", method, url)
        try:
            response = await asyncio.wait_for(
                self._send_once(method, url, timeout, **kwargs), seconds
            )
        except asyncio.TimeoutError as e:
            raise ClientError(
                0, "Request timeout", details={"timeout_ms": cfg.timeout_ms}
            ) from e
        except httpx.HTTPError as e:
            raise ClientError(0, f"Request error: {e}") from e
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    def _parse_response(self, response: httpx.Response) -> Any:
        text = response.text
        if not text:
            body: Any = {}
        else:
            try:
                body = orjson.loads(text)
            except orjson.JSONDecodeError as e:
                if response.status_code == 502 and "Bad Gateway" in text:
                    raise ClientError(502, "502 Bad Gateway") from e
                raise ClientError(
                    0,
                    f"Failed to parse JSON response: {e}",
                    details={"status_code": response.status_code},
                ) from e
        logger.debug("Response: %s", text)
        if response.status_code >= 400:
            raise _error_from_body(response.status_code, body, text)
        return body

    async def _request(
        self,
        method: str,
        path: str,
        *,
        data: RequestBody = None,
        query: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        config: Optional[Config] = None,
        namespace: Optional[str] = None,
        resource_type: Optional[ResourceType] = None,
        resource_key: Optional[str] = None,
    ) -> Any:
        cfg = Config.with_configs(self._config, config)
        url = self.with_path(path, query, namespace=namespace)
        token = await self.ensure_token(resource_type, resource_key, config=config)
        req_headers = self._prepare_headers(token, headers, cfg)
        if data is None or isinstance(data, (str, bytes)):
            content = data
        else:
            content = orjson.dumps(data)
        response = await self._send(
            method, url, cfg, content=content, headers=req_headers
        )
        return self._parse_response(response)

    async def get(
        self,
        path: str,
        *,
        query: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        config: Optional[Config] = None,
        **scope: Any,
    ) -> Any:
        return await self._request(
            "GET", path, query=query, headers=headers, config=config, **scope
        )

    async def post(
        self,
        path: str,
        data: RequestBody = None,
        *,
        query: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        config: Optional[Config] = None,
        **scope: Any,
    ) -> Any:
        return await self._request(
            "POST",
            path,
            data=data,
            query=query,
            headers=headers,
            config=config,
            **scope,
        )

    async def put(
        self,
        path: str,
        data: RequestBody = None,
        *,
        query: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        config: Optional[Config] = None,
        **scope: Any,
    ) -> Any:
        return await self._request(
            "PUT",
            path,
            data=data,
            query=query,
            headers=headers,
            config=config,
            **scope,
        )

    async def patch(
        self,
        path: str,
        data: RequestBody = None,
        *,
        query: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        config: Optional[Config] = None,
        **scope: Any,
    ) -> Any:
        return await self._request(
            "PATCH",
            path,
            data=data,
            query=query,
            headers=headers,
            config=config,
            **scope,
        )

    async def delete(
        self,
        path: str,
        *,
        query: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        config: Optional[Config] = None,
        **scope: Any,
    ) -> Any:
        return await self._request(
            "DELETE", path, query=query, headers=headers, config=config, **scope
        )

    # ========================================================================
    # File Transfer
    # ========================================================================

    async def post_file(
        self,
        path: str,
        local_file_path: str,
        target_file_path: str,
        *,
        form_data: Optional[dict[str, str]] = None,
        query: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        config: Optional[Config] = None,
    ) -> Any:
        """Upload a local file as multipart form data.

        The form carries ``form_data``, a ``path`` field set to
        ``target_file_path`` and the file content under ``file``.

        Args:
            path: Upload endpoint path.
            local_file_path: File to read from local disk.
            target_file_path: Destination path on the remote side.
            form_data: Extra string form fields.
            query: Query parameters.
            headers: Per-call header overrides.
            config: Per-call configuration override.

        Returns:
            The parsed JSON response, or {} for an empty body.

        Raises:
            ClientError: If the file cannot be read or the response is not 2xx.
        """
        cfg = Config.with_configs(self._config, config)
        url = self.with_path(path, query)
        token = await self.ensure_token(config=config)
        req_headers = {
            k: v
            for k, v in self._prepare_headers(token, headers, cfg).items()
            if k.lower() != "content-type"
        }

        try:
            async with aiofiles.open(local_file_path, "rb") as f:
                content = await f.read()
        except OSError as e:
            raise ClientError(0, f"File read error: {e}") from e

        form = dict(form_data or {})
        form["path"] = target_file_path
        files = {
            "file": (
                os.path.basename(local_file_path),
                content,
                "application/octet-stream",
            )
        }
        response = await self._send(
            "POST", url, cfg, data=form, files=files, headers=req_headers
        )
        if not response.is_success:
            raise ClientError(response.status_code, response.text or "Unknown error")
        return self._parse_response(response)

    async def get_file(
        self,
        path: str,
        save_path: str,
        *,
        query: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        config: Optional[Config] = None,
    ) -> FileDownloadResult:
        """Download a remote file and write it atomically to ``save_path``.

        Nothing is written to disk unless the response is 2xx.

        Args:
            path: Download endpoint path.
            save_path: Local destination path.
            query: Query parameters, e.g. the remote source path.
            headers: Per-call header overrides.
            config: Per-call configuration override.

        Returns:
            FileDownloadResult with the saved path and byte count.

        Raises:
            ClientError: If the response is not 2xx or the file cannot be
                written.
        """
        cfg = Config.with_configs(self._config, config)
        url = self.with_path(path, query)
        token = await self.ensure_token(config=config)
        req_headers = self._prepare_headers(token, headers, cfg)

        response = await self._send("GET", url, cfg, headers=req_headers)
        if not response.is_success:
            raise ClientError(
                response.status_code, response.text or "Download failed"
            )

        content = response.content
        tmp_path = f"{save_path}.{uuid.uuid4().hex}.part"
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(content)
            await aiofiles.os.replace(tmp_path, save_path)
        except OSError as e:
            if await aiofiles.os.path.exists(tmp_path):
                await aiofiles.os.remove(tmp_path)
            raise ClientError(0, f"File write error: {e}") from e

        return FileDownloadResult(saved_path=save_path, size=len(content))

    async def get_video(
        self,
        path: str,
        save_path: str,
        *,
        query: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        config: Optional[Config] = None,
    ) -> FileDownloadResult:
        """Download a recording. Same contract as ``get_file``."""
        return await self.get_file(
            path, save_path, query=query, headers=headers, config=config
        )
