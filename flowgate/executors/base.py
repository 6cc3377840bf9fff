# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared plumbing for the default node handlers.

Handlers are callables with the registry contract::

    await handler(config, inputs, trigger_data, business_context)

They raise on failure; the engine turns the exception into an error result.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Mapping, Optional

import httpx
from openai import AsyncOpenAI

from flowgate.core.config import Config, get_config, get_openai_api_key
from flowgate.core.errors import ConfigurationError, ServiceUnavailableError
from flowgate.core.logging import get_service_logger
from flowgate.workflow.interpolation import interpolate


def require_secret(value: Optional[str], env_var: str, purpose: str) -> str:
    """Return the secret or raise ConfigurationError naming the missing variable"""
    if not value:
        raise ConfigurationError(f"{env_var} is required for {purpose}", config_key=env_var)
    return value


def create_openai_client(api_key: Optional[str] = None, purpose: str = "AI nodes") -> AsyncOpenAI:
    api_key = require_secret(api_key or get_openai_api_key(), "OPENAI_API_KEY", purpose)
    return AsyncOpenAI(api_key=api_key)


def config_value(config: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """
    First non-None value among ``keys``.

    Graphs saved by the editor use camelCase keys (``timeoutMs``), hand-written
    ones usually snake_case; handlers accept both.
    """
    for key in keys:
        value = config.get(key)
        if value is not None:
            return value
    return default


class BaseHandler:
    """
    Base class for handlers that talk to an HTTP API.

    An ``httpx.AsyncClient`` may be injected (shared connection pool, or a
    MockTransport in tests). Without one, each call opens a short-lived
    client with the configured timeout.
    """

    service = "handler"

    def __init__(self, config: Optional[Config] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config or get_config()
        self.http_client = http_client
        self.logger = get_service_logger(f"executors.{self.service}")

    @asynccontextmanager
    async def client(self, timeout: Optional[float] = None) -> AsyncIterator[httpx.AsyncClient]:
        if self.http_client is not None:
            yield self.http_client
            return
        async with httpx.AsyncClient(timeout=httpx.Timeout(timeout or self.config.http_timeout, connect=5.0)) as client:
            yield client

    async def request(
        self,
        method: str,
        url: str,
        timeout: Optional[float] = None,
        **kwargs: Any
    ) -> httpx.Response:
        """
        Send a request and return the response.

        Raises:
            ServiceUnavailableError: On transport errors and 4xx/5xx answers
        """
        async with self.client(timeout) as client:
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                raise ServiceUnavailableError(
                    f"{self.service} request to {url} failed: {e}", service=self.service
                )

        if response.status_code >= 400:
            raise ServiceUnavailableError(
                f"{self.service} returned HTTP {response.status_code}: {response.text[:200]}",
                service=self.service,
                details={"status_code": response.status_code, "url": url},
            )
        return response

    async def request_json(self, method: str, url: str, timeout: Optional[float] = None, **kwargs: Any) -> Any:
        response = await self.request(method, url, timeout=timeout, **kwargs)
        try:
            return response.json()
        except ValueError:
            raise ServiceUnavailableError(
                f"{self.service} returned a non-JSON response", service=self.service
            )

    @staticmethod
    def render(value: Any, trigger_data: Optional[Dict[str, Any]], inputs: Optional[Dict[str, Any]]) -> Any:
        """Interpolate ``{{field}}`` from trigger data, then ``{{nodeId.field}}`` from inputs"""
        return interpolate(value, trigger_data, inputs)
