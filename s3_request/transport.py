from __future__ import annotations

import logging
from typing import Any
from typing import Protocol
from typing import runtime_checkable

import httpx

from s3_request.config import get_config
from s3_request.errors import TransportError


logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Issues one HTTP call and returns the response with its body still unread."""

    async def execute(self, method: str, url: httpx.URL, headers: httpx.Headers, body: bytes) -> httpx.Response: ...


class HttpxTransport:
    """
    Transport backed by an httpx.AsyncClient.

    Connection pooling, TLS and timeouts are left to httpx. Responses are
    opened in streaming mode; whoever consumes them must close them.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: httpx.Timeout | None = None) -> None:
        if client is not None:
            self._client = client
        else:
            self._client = httpx.AsyncClient(
                timeout=timeout or get_config().httpx_timeout,
                follow_redirects=False,
            )

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def execute(self, method: str, url: httpx.URL, headers: httpx.Headers, body: bytes) -> httpx.Response:
        request = self._client.build_request(method, url, headers=headers, content=body)
        try:
            return await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"Transport failure for {method} {url.host}{url.path}: {e}")
            raise TransportError(f"{method} {url.host}{url.path} failed: {e}") from e
