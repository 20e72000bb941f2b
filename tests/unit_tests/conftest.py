"""Common fixtures for unit tests."""

from __future__ import annotations

from typing import Any, Optional

import pytest

from agentrun import Config
from agentrun._internal._control_api import ControlAPI
from agentrun._internal._models import ResourceType

DATA_ENDPOINT = "https://123.agentrun-data.cn-hangzhou.aliyuncs.com"
CONTROL_ENDPOINT = "https://agentrun.cn-hangzhou.aliyuncs.com"
CONTROL_BASE = f"{CONTROL_ENDPOINT}/2025-09-10"

_ENV_VARS = (
    "AGENTRUN_ACCESS_KEY_ID",
    "ALIBABA_CLOUD_ACCESS_KEY_ID",
    "AGENTRUN_ACCESS_KEY_SECRET",
    "ALIBABA_CLOUD_ACCESS_KEY_SECRET",
    "AGENTRUN_SECURITY_TOKEN",
    "ALIBABA_CLOUD_SECURITY_TOKEN",
    "AGENTRUN_ACCOUNT_ID",
    "FC_ACCOUNT_ID",
    "AGENTRUN_REGION",
    "FC_REGION",
    "AGENTRUN_CONTROL_ENDPOINT",
    "AGENTRUN_DATA_ENDPOINT",
    "DEVS_ENDPOINT",
    "AGENTRUN_SDK_DEBUG",
)


class FakeControlAPI(ControlAPI):
    """ControlAPI that hands out canned access tokens and records fetches."""

    def __init__(self, token: Optional[str] = "tok-1234567890", **kwargs: Any):
        super().__init__(**kwargs)
        self.token = token
        self.error: Optional[Exception] = None
        self.token_calls: list[tuple[Any, Optional[str], Optional[str]]] = []

    async def get_access_token(
        self,
        resource_type: ResourceType,
        *,
        resource_id: Optional[str] = None,
        resource_name: Optional[str] = None,
        config: Optional[Config] = None,
    ) -> Optional[str]:
        self.token_calls.append((resource_type, resource_id, resource_name))
        if self.error is not None:
            raise self.error
        return self.token


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's AgentRun environment out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> Config:
    """A config with every credential and endpoint the clients need."""
    return Config(
        access_key_id="ak",
        access_key_secret="sk",
        account_id="123",
        region_id="cn-hangzhou",
    )


@pytest.fixture
def control_api(config: Config) -> FakeControlAPI:
    """A control plane client whose token endpoint is faked."""
    return FakeControlAPI(config=config)
