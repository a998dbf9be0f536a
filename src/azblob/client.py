"""Blob storage client classes."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable, Iterator, Mapping
from datetime import datetime
from typing import Any

import httpx

from ._core import BlobRequestClient, _BaseBlobClient
from ._http import (
    AsyncTransport,
    BaseTransport,
    BlockingTransport,
    create_base_async_client,
    create_base_client,
    iter_coroutine,
)
from .config import ClientConfig
from .errors import BlobError
from .multipart import BlockClient, create_staging_runtime
from .signer import Credentials, Signer
from .types import BlobProperties, ListBlobItem, ListBlobResult, UploadResult


def _resolve_config(
    config: ClientConfig | None,
    account_name: str | None,
    access_key: str | None,
    container: str | None,
) -> ClientConfig:
    if config is not None:
        return config
    return ClientConfig(
        account_name=account_name or "",
        access_key=access_key or "",
        container=container or "",
    )


class _ClientState(_BaseBlobClient):
    _closed: bool

    def _init_state(
        self,
        config: ClientConfig,
        transport: BaseTransport,
        clock: Callable[[], datetime] | None,
        staging_runtime: Any,
    ) -> None:
        signer = Signer(
            Credentials.from_base64(config.account_name, config.access_key),
            clock=clock,
            clock_skew=config.sas_clock_skew,
        )
        self._request_client = BlobRequestClient(
            transport=transport, signer=signer, config=config
        )
        self._block_client = BlockClient(self._request_client)
        self._staging_runtime = staging_runtime
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise BlobError("Client is closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def signed_uri(
        self,
        key: str,
        *,
        permissions: str,
        expiry: datetime,
        start: datetime | None = None,
        protocol: str | None = "https",
        ip: str | None = None,
        content_disposition: str | None = None,
        content_type: str | None = None,
    ) -> str:
        """Blob URL carrying a service SAS; no request is sent."""
        return self._signed_uri(
            key,
            permissions=permissions,
            expiry=expiry,
            start=start,
            protocol=protocol,
            ip=ip,
            content_disposition=content_disposition,
            content_type=content_type,
        )


class BlobClient(_ClientState):
    """Synchronous client for one blob container.

    Not safe for concurrent use from several threads; use one client per
    thread or serialize access.
    """

    def __init__(
        self,
        account_name: str | None = None,
        access_key: str | None = None,
        container: str | None = None,
        *,
        config: ClientConfig | None = None,
        client: httpx.Client | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        config = _resolve_config(config, account_name, access_key, container)
        http_client = create_base_client(
            timeout=config.timeout, debug_traffic=config.debug, client=client
        )
        # Staging always runs in index order on the blocking client.
        self._init_state(
            config, BlockingTransport(http_client), clock, create_staging_runtime(1)
        )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._request_client.transport.close()

    def __enter__(self) -> BlobClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def create_block_blob(
        self,
        key: str,
        content: Any,
        *,
        block_size: int | None = None,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> UploadResult:
        """Upload ``content`` in one PUT, or as staged blocks above ``block_size``."""
        self._ensure_open()
        return iter_coroutine(
            self._create_block_blob(
                key,
                content,
                block_size=block_size,
                content_type=content_type,
                content_md5=content_md5,
                content_disposition=content_disposition,
                metadata=metadata,
            )
        )

    def put_blob_single(
        self,
        key: str,
        content: Any,
        *,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        self._ensure_open()
        return iter_coroutine(
            self._put_blob_single(
                key,
                content,
                content_type=content_type,
                content_md5=content_md5,
                content_disposition=content_disposition,
                metadata=metadata,
            )
        )

    def stage_block(
        self, key: str, index: int, content: Any, *, content_md5: str | None = None
    ) -> str:
        self._ensure_open()
        return iter_coroutine(self._stage_block(key, index, content, content_md5=content_md5))

    def commit_block_list(
        self,
        key: str,
        block_ids: Iterable[str],
        *,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        self._ensure_open()
        return iter_coroutine(
            self._commit_block_list(
                key,
                block_ids,
                content_type=content_type,
                content_md5=content_md5,
                content_disposition=content_disposition,
                metadata=metadata,
            )
        )

    def get_blob(self, key: str, *, start: int | None = None, end: int | None = None) -> bytes:
        self._ensure_open()
        return iter_coroutine(self._get_blob(key, start=start, end=end))

    def get_blob_properties(self, key: str) -> BlobProperties:
        self._ensure_open()
        return iter_coroutine(self._get_blob_properties(key))

    def blob_exists(self, key: str) -> bool:
        self._ensure_open()
        return iter_coroutine(self._blob_exists(key))

    def delete_blob(self, key: str, *, delete_snapshots: str | None = "include") -> None:
        self._ensure_open()
        iter_coroutine(self._delete_blob(key, delete_snapshots=delete_snapshots))

    def list_blobs(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
    ) -> ListBlobResult:
        self._ensure_open()
        return iter_coroutine(
            self._list_blobs(prefix=prefix, marker=marker, max_results=max_results)
        )

    def iter_blobs(
        self, *, prefix: str | None = None, max_results: int | None = None
    ) -> Iterator[ListBlobItem]:
        """Yield every blob under ``prefix``, following continuation markers."""
        marker: str | None = None
        while True:
            page = self.list_blobs(prefix=prefix, marker=marker, max_results=max_results)
            yield from page.blobs
            marker = page.next_marker
            if not marker:
                break

    def delete_prefix(self, prefix: str) -> int:
        """Delete every blob under ``prefix``; returns how many were deleted."""
        self._ensure_open()
        return iter_coroutine(self._delete_prefix(prefix))

    def create_append_blob(
        self,
        key: str,
        *,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        self._ensure_open()
        return iter_coroutine(
            self._create_append_blob(
                key,
                content_type=content_type,
                content_md5=content_md5,
                content_disposition=content_disposition,
                metadata=metadata,
            )
        )

    def append_blob_block(
        self, key: str, content: Any, *, content_md5: str | None = None
    ) -> str | None:
        self._ensure_open()
        return iter_coroutine(self._append_blob_block(key, content, content_md5=content_md5))

    def create_container(self) -> None:
        self._ensure_open()
        iter_coroutine(self._create_container())

    def delete_container(self) -> None:
        self._ensure_open()
        iter_coroutine(self._delete_container())

    def container_exists(self) -> bool:
        self._ensure_open()
        return iter_coroutine(self._container_exists())


class AsyncBlobClient(_ClientState):
    """Asynchronous client for one blob container.

    With ``config.max_concurrency`` above 1, chunked uploads stage that many
    blocks at once; the committed block list stays in index order.
    """

    def __init__(
        self,
        account_name: str | None = None,
        access_key: str | None = None,
        container: str | None = None,
        *,
        config: ClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        config = _resolve_config(config, account_name, access_key, container)
        http_client = create_base_async_client(
            timeout=config.timeout, debug_traffic=config.debug, client=client
        )
        self._transport = AsyncTransport(http_client)
        self._init_state(
            config, self._transport, clock, create_staging_runtime(config.max_concurrency)
        )

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._transport.aclose()

    async def __aenter__(self) -> AsyncBlobClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def create_block_blob(
        self,
        key: str,
        content: Any,
        *,
        block_size: int | None = None,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> UploadResult:
        """Upload ``content`` in one PUT, or as staged blocks above ``block_size``."""
        self._ensure_open()
        return await self._create_block_blob(
            key,
            content,
            block_size=block_size,
            content_type=content_type,
            content_md5=content_md5,
            content_disposition=content_disposition,
            metadata=metadata,
        )

    async def put_blob_single(
        self,
        key: str,
        content: Any,
        *,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        self._ensure_open()
        return await self._put_blob_single(
            key,
            content,
            content_type=content_type,
            content_md5=content_md5,
            content_disposition=content_disposition,
            metadata=metadata,
        )

    async def stage_block(
        self, key: str, index: int, content: Any, *, content_md5: str | None = None
    ) -> str:
        self._ensure_open()
        return await self._stage_block(key, index, content, content_md5=content_md5)

    async def commit_block_list(
        self,
        key: str,
        block_ids: Iterable[str],
        *,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        self._ensure_open()
        return await self._commit_block_list(
            key,
            block_ids,
            content_type=content_type,
            content_md5=content_md5,
            content_disposition=content_disposition,
            metadata=metadata,
        )

    async def get_blob(
        self, key: str, *, start: int | None = None, end: int | None = None
    ) -> bytes:
        self._ensure_open()
        return await self._get_blob(key, start=start, end=end)

    async def get_blob_properties(self, key: str) -> BlobProperties:
        self._ensure_open()
        return await self._get_blob_properties(key)

    async def blob_exists(self, key: str) -> bool:
        self._ensure_open()
        return await self._blob_exists(key)

    async def delete_blob(self, key: str, *, delete_snapshots: str | None = "include") -> None:
        self._ensure_open()
        await self._delete_blob(key, delete_snapshots=delete_snapshots)

    async def list_blobs(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
    ) -> ListBlobResult:
        self._ensure_open()
        return await self._list_blobs(prefix=prefix, marker=marker, max_results=max_results)

    async def iter_blobs(
        self, *, prefix: str | None = None, max_results: int | None = None
    ) -> AsyncIterator[ListBlobItem]:
        """Yield every blob under ``prefix``, following continuation markers."""
        marker: str | None = None
        while True:
            page = await self.list_blobs(prefix=prefix, marker=marker, max_results=max_results)
            for item in page.blobs:
                yield item
            marker = page.next_marker
            if not marker:
                break

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every blob under ``prefix``; returns how many were deleted."""
        self._ensure_open()
        return await self._delete_prefix(prefix)

    async def create_append_blob(
        self,
        key: str,
        *,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        self._ensure_open()
        return await self._create_append_blob(
            key,
            content_type=content_type,
            content_md5=content_md5,
            content_disposition=content_disposition,
            metadata=metadata,
        )

    async def append_blob_block(
        self, key: str, content: Any, *, content_md5: str | None = None
    ) -> str | None:
        self._ensure_open()
        return await self._append_blob_block(key, content, content_md5=content_md5)

    async def create_container(self) -> None:
        self._ensure_open()
        await self._create_container()

    async def delete_container(self) -> None:
        self._ensure_open()
        await self._delete_container()

    async def container_exists(self) -> bool:
        self._ensure_open()
        return await self._container_exists()


__all__ = [
    "BlobClient",
    "AsyncBlobClient",
]
