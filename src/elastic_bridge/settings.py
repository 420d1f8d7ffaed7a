"""Connection settings."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_PREFIX = "ELASTIC_BRIDGE_"


class BridgeSettings(BaseModel):
    """Settings for a Connection.

    Example:
        >>> settings = BridgeSettings(url="http://search:9200", request_timeout=5)
        >>> settings = BridgeSettings.from_env()
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = "http://localhost:9200"
    api_key: str | None = None
    basic_auth: tuple[str, str] | None = None
    request_timeout: float | None = None
    default_limit: int = Field(default=10, ge=0)
    concurrency: int = Field(default=4, ge=1)
    client_kwargs: dict[str, Any] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> BridgeSettings:
        """Build settings from ``ELASTIC_BRIDGE_*`` environment variables."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        if url := env.get(f"{ENV_PREFIX}URL"):
            values["url"] = url
        if api_key := env.get(f"{ENV_PREFIX}API_KEY"):
            values["api_key"] = api_key
        username = env.get(f"{ENV_PREFIX}USERNAME")
        if username:
            values["basic_auth"] = (username, env.get(f"{ENV_PREFIX}PASSWORD", ""))
        if timeout := env.get(f"{ENV_PREFIX}TIMEOUT"):
            values["request_timeout"] = timeout
        if default_limit := env.get(f"{ENV_PREFIX}DEFAULT_LIMIT"):
            values["default_limit"] = default_limit
        if concurrency := env.get(f"{ENV_PREFIX}CONCURRENCY"):
            values["concurrency"] = concurrency

        values.update(overrides)
        return cls(**values)

    def client_params(self) -> dict[str, Any]:
        """Keyword arguments for ``AsyncElasticsearch``."""
        params: dict[str, Any] = {"hosts": [self.url], "max_retries": 0, "retry_on_timeout": False}
        if self.api_key is not None:
            params["api_key"] = self.api_key
        if self.basic_auth is not None:
            params["basic_auth"] = self.basic_auth
        if self.request_timeout is not None:
            params["request_timeout"] = self.request_timeout
        params.update(self.client_kwargs)
        return params
