"""Client factory functions for creating pre-configured httpx clients."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from ..utils import debug
from .config import DEFAULT_TIMEOUT, REDACTED, SENSITIVE_HEADERS, SENSITIVE_QUERY_PARAMS


def redact_headers(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    return {
        name: (REDACTED if name.lower() in SENSITIVE_HEADERS else value)
        for name, value in headers
    }


def redact_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (name, REDACTED if name.lower() in SENSITIVE_QUERY_PARAMS else value)
        for name, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


def _log_request(request: httpx.Request) -> None:
    debug(
        f"-> {request.method} {redact_url(str(request.url))}",
        redact_headers(request.headers.items()),
    )


def _log_response(response: httpx.Response) -> None:
    request = response.request
    debug(
        f"<- {response.status_code} {request.method} {redact_url(str(request.url))}",
        dict(response.headers.items()),
    )


def _create_debug_hooks() -> dict[str, list[Callable[..., Any]]]:
    """Event hooks that echo redacted traffic for a blocking client."""
    return {"request": [_log_request], "response": [_log_response]}


def _create_async_debug_hooks() -> dict[str, list[Callable[..., Awaitable[None]]]]:
    """Event hooks that echo redacted traffic for an async client.

    httpx awaits every hook registered on an AsyncClient.
    """

    async def on_request(request: httpx.Request) -> None:
        _log_request(request)

    async def on_response(response: httpx.Response) -> None:
        _log_response(response)

    return {"request": [on_request], "response": [on_response]}


def _prepend_hooks(
    client: httpx.Client | httpx.AsyncClient,
    hooks: dict[str, Sequence[Callable[..., Any]]],
) -> None:
    """Prepend hooks so ours run before any the caller configured."""
    for event, funcs in hooks.items():
        existing = list(client.event_hooks.get(event, []))
        client.event_hooks[event] = list(funcs) + existing


def create_base_client(
    timeout: float | None = None,
    *,
    debug_traffic: bool = False,
    client: httpx.Client | None = None,
) -> httpx.Client:
    """Create or configure a sync httpx client.

    Auth is handled per request by the signer, so no auth hooks are installed.

    Args:
        timeout: Request timeout in seconds. Defaults to DEFAULT_TIMEOUT.
            Ignored if client is provided.
        debug_traffic: Echo redacted request/response lines to stderr.
        client: Optional existing client to configure and reuse.

    Returns:
        An httpx.Client.
    """
    if client is not None:
        if debug_traffic:
            _prepend_hooks(client, _create_debug_hooks())
        return client

    effective_timeout = timeout if timeout is not None else DEFAULT_TIMEOUT
    kwargs: dict[str, Any] = {"timeout": httpx.Timeout(effective_timeout)}
    if debug_traffic:
        kwargs["event_hooks"] = _create_debug_hooks()
    return httpx.Client(**kwargs)


def create_base_async_client(
    timeout: float | None = None,
    *,
    debug_traffic: bool = False,
    client: httpx.AsyncClient | None = None,
) -> httpx.AsyncClient:
    """Create or configure an async httpx client.

    Args:
        timeout: Request timeout in seconds. Defaults to DEFAULT_TIMEOUT.
            Ignored if client is provided.
        debug_traffic: Echo redacted request/response lines to stderr.
        client: Optional existing client to configure and reuse.

    Returns:
        An httpx.AsyncClient.
    """
    if client is not None:
        if debug_traffic:
            _prepend_hooks(client, _create_async_debug_hooks())
        return client

    effective_timeout = timeout if timeout is not None else DEFAULT_TIMEOUT
    kwargs: dict[str, Any] = {"timeout": httpx.Timeout(effective_timeout)}
    if debug_traffic:
        kwargs["event_hooks"] = _create_async_debug_hooks()
    return httpx.AsyncClient(**kwargs)


__all__ = [
    "redact_headers",
    "redact_url",
    "create_base_client",
    "create_base_async_client",
]
