"""Layered configuration for AgentRun clients.

A ``Config`` only stores values that were set explicitly. Layers are merged
with ``Config.with_configs`` (later layers win per field, unset fields never
erase earlier values), and environment defaults are resolved when a field is
read, so an explicit override always takes precedence over the environment.
"""

from __future__ import annotations

from typing import Any, Optional

from agentrun.exceptions import ConfigurationError
from agentrun.utils import get_env_var, mask_token

DEFAULT_REGION = "cn-hangzhou"
DEFAULT_TIMEOUT_MS = 600_000
DEFAULT_READ_TIMEOUT_MS = 100_000_000

_FIELDS = (
    "access_key_id",
    "access_key_secret",
    "security_token",
    "account_id",
    "token",
    "region_id",
    "timeout_ms",
    "read_timeout_ms",
    "control_endpoint",
    "data_endpoint",
    "devs_endpoint",
    "headers",
)
_SECRET_FIELDS = ("access_key_secret", "security_token", "token")


def _require(value: Optional[str], label: str, env_var: str) -> str:
    if not value:
        raise ConfigurationError(
            f"{label} is not set. Please add {env_var} environment variable "
            "or set it in code."
        )
    return value


class Config:
    """Configuration shared by control plane and data plane clients.

    Example:
        base = Config(region_id="cn-shanghai")
        call = Config(timeout_ms=5000, headers={"X-Trace": "1"})
        cfg = Config.with_configs(base, call)
        cfg.region_id   # "cn-shanghai"
        cfg.timeout_ms  # 5000
    """

    __slots__ = ("_values",)

    def __init__(
        self,
        *,
        access_key_id: Optional[str] = None,
        access_key_secret: Optional[str] = None,
        security_token: Optional[str] = None,
        account_id: Optional[str] = None,
        token: Optional[str] = None,
        region_id: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        read_timeout_ms: Optional[int] = None,
        control_endpoint: Optional[str] = None,
        data_endpoint: Optional[str] = None,
        devs_endpoint: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        """Initialize the config.

        Every argument is optional; a value left as None falls back to the
        next layer when merged, and to the environment when read.

        Args:
            access_key_id: Access key id. Env: AGENTRUN_ACCESS_KEY_ID or
                ALIBABA_CLOUD_ACCESS_KEY_ID.
            access_key_secret: Access key secret. Env: AGENTRUN_ACCESS_KEY_SECRET
                or ALIBABA_CLOUD_ACCESS_KEY_SECRET.
            security_token: STS security token. Env: AGENTRUN_SECURITY_TOKEN or
                ALIBABA_CLOUD_SECURITY_TOKEN.
            account_id: Account id. Env: AGENTRUN_ACCOUNT_ID or FC_ACCOUNT_ID.
            token: Static data plane access token. Bypasses token fetching.
            region_id: Region. Env: AGENTRUN_REGION or FC_REGION.
            timeout_ms: Request timeout in milliseconds.
            read_timeout_ms: Read timeout in milliseconds.
            control_endpoint: Control plane endpoint.
                Env: AGENTRUN_CONTROL_ENDPOINT.
            data_endpoint: Data plane endpoint. Env: AGENTRUN_DATA_ENDPOINT.
            devs_endpoint: DevS endpoint. Env: DEVS_ENDPOINT.
            headers: Extra headers sent with every data plane request.
        """
        values = {
            "access_key_id": access_key_id,
            "access_key_secret": access_key_secret,
            "security_token": security_token,
            "account_id": account_id,
            "token": token,
            "region_id": region_id,
            "timeout_ms": timeout_ms,
            "read_timeout_ms": read_timeout_ms,
            "control_endpoint": control_endpoint,
            "data_endpoint": data_endpoint,
            "devs_endpoint": devs_endpoint,
            "headers": dict(headers) if headers is not None else None,
        }
        self._values: dict[str, Any] = {
            k: v for k, v in values.items() if v is not None
        }

    @classmethod
    def with_configs(cls, *configs: Optional[Config]) -> Config:
        """Merge config layers into a new config; later layers win per field."""
        return cls().update(*configs)

    def update(self, *configs: Optional[Config]) -> Config:
        """Merge config layers into this config in place and return it.

        Fields that are unset in a later layer keep their current value.
        Headers are merged key by key.
        """
        for config in configs:
            if config is None:
                continue
            for key, value in config._values.items():
                if key == "headers":
                    merged = dict(self._values.get("headers") or {})
                    merged.update(value)
                    self._values["headers"] = merged
                else:
                    self._values[key] = value
        return self

    def __repr__(self) -> str:
        """Return string representation with secrets masked."""
        parts = []
        for key in _FIELDS:
            if key not in self._values:
                continue
            value = self._values[key]
            if key in _SECRET_FIELDS:
                value = mask_token(value)
            parts.append(f"{key}={value!r}")
        return f"Config({', '.join(parts)})"

    # ========================================================================
    # Credentials
    # ========================================================================

    @property
    def access_key_id(self) -> str:
        """Access key id; raises ConfigurationError when empty."""
        value = self._values.get("access_key_id")
        if value is None:
            value = get_env_var(
                "AGENTRUN_ACCESS_KEY_ID", "ALIBABA_CLOUD_ACCESS_KEY_ID"
            )
        return _require(value, "Access key id", "AGENTRUN_ACCESS_KEY_ID")

    @property
    def access_key_secret(self) -> str:
        """Access key secret; raises ConfigurationError when empty."""
        value = self._values.get("access_key_secret")
        if value is None:
            value = get_env_var(
                "AGENTRUN_ACCESS_KEY_SECRET", "ALIBABA_CLOUD_ACCESS_KEY_SECRET"
            )
        return _require(value, "Access key secret", "AGENTRUN_ACCESS_KEY_SECRET")

    @property
    def security_token(self) -> str:
        value = self._values.get("security_token")
        if value is None:
            value = get_env_var(
                "AGENTRUN_SECURITY_TOKEN", "ALIBABA_CLOUD_SECURITY_TOKEN"
            )
        return value or ""

    @property
    def account_id(self) -> str:
        """Account id; raises ConfigurationError when empty."""
        value = self._values.get("account_id")
        if value is None:
            value = get_env_var("AGENTRUN_ACCOUNT_ID", "FC_ACCOUNT_ID")
        return _require(value, "Account ID", "AGENTRUN_ACCOUNT_ID")

    @property
    def token(self) -> Optional[str]:
        return self._values.get("token") or None

    # ========================================================================
    # Connection
    # ========================================================================

    @property
    def region_id(self) -> str:
        value = self._values.get("region_id")
        if value is None:
            value = get_env_var("AGENTRUN_REGION", "FC_REGION")
        return value or DEFAULT_REGION

    @property
    def timeout_ms(self) -> int:
        return self._values.get("timeout_ms", DEFAULT_TIMEOUT_MS)

    @property
    def read_timeout_ms(self) -> int:
        return self._values.get("read_timeout_ms", DEFAULT_READ_TIMEOUT_MS)

    @property
    def control_endpoint(self) -> str:
        value = self._values.get("control_endpoint") or get_env_var(
            "AGENTRUN_CONTROL_ENDPOINT"
        )
        return value or f"https://agentrun.{self.region_id}.aliyuncs.com"

    @property
    def data_endpoint(self) -> str:
        """Data plane endpoint, derived from account and region by default."""
        value = self._values.get("data_endpoint") or get_env_var(
            "AGENTRUN_DATA_ENDPOINT"
        )
        if value:
            return value
        return (
            f"https://{self.account_id}.agentrun-data."
            f"{self.region_id}.aliyuncs.com"
        )

    @property
    def devs_endpoint(self) -> str:
        value = self._values.get("devs_endpoint") or get_env_var("DEVS_ENDPOINT")
        return value or f"https://devs.{self.region_id}.aliyuncs.com"

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._values.get("headers") or {})
