"""HTTP transport implementations for sync and async clients."""

from __future__ import annotations

import abc

import httpx

from ..types import RequestDescriptor


def _build_request(
    client: httpx.Client | httpx.AsyncClient, request: RequestDescriptor
) -> httpx.Request:
    return client.build_request(
        request.method,
        request.url,
        headers=list(request.headers.items()),
        content=request.body,
    )


class BaseTransport(abc.ABC):
    """Abstract base class for HTTP transports."""

    @abc.abstractmethod
    async def send(self, request: RequestDescriptor) -> httpx.Response:
        """Send a signed request and return the fully read response."""
        ...

    @abc.abstractmethod
    def close(self) -> None:
        """Close any underlying resources."""
        ...


class BlockingTransport(BaseTransport):
    """
    Synchronous HTTP transport using httpx.Client.

    ``send`` is declared async but doesn't actually await anything,
    allowing it to be executed via iter_coroutine().
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    async def send(self, request: RequestDescriptor) -> httpx.Response:
        """Send a synchronous HTTP request (wrapped as async for iter_coroutine)."""
        return self._client.send(_build_request(self._client, request))

    def close(self) -> None:
        self._client.close()


class AsyncTransport(BaseTransport):
    """Asynchronous HTTP transport using httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def send(self, request: RequestDescriptor) -> httpx.Response:
        return await self._client.send(_build_request(self._client, request))

    def close(self) -> None:
        """No-op; the async client is released by ``aclose``."""

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "BaseTransport",
    "BlockingTransport",
    "AsyncTransport",
]
