"""Shared HTTP infrastructure for the storage clients."""

from .clients import create_base_async_client, create_base_client
from .config import DEFAULT_ENDPOINT_TEMPLATE, DEFAULT_TIMEOUT, default_endpoint
from .iter_coroutine import iter_coroutine
from .transport import AsyncTransport, BaseTransport, BlockingTransport

__all__ = [
    "DEFAULT_ENDPOINT_TEMPLATE",
    "DEFAULT_TIMEOUT",
    "default_endpoint",
    "iter_coroutine",
    "BaseTransport",
    "BlockingTransport",
    "AsyncTransport",
    "create_base_client",
    "create_base_async_client",
]
