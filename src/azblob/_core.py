"""Core business logic shared by the blocking and async blob clients."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from xml.parsers.expat import ExpatError

import httpx

from ._http import BaseTransport
from .codec import parse_blob_list, parse_error
from .config import ClientConfig
from .errors import (
    BlobResponseError,
    InvalidParameterError,
    NotFoundError,
    UnknownError,
    error_for_status,
)
from .headers import HeaderMap, metadata_from_headers, metadata_headers
from .multipart import BlockBlobUpload, BlockClient, validate_content
from .signer import Signer
from .types import BlobProperties, ListBlobResult, RequestDescriptor, UploadResult
from .utils import debug, http_date, normalize_prefix, parse_http_date, parse_int, to_bytes


def map_blob_error(response: httpx.Response) -> BlobResponseError:
    body = response.content
    code, message = parse_error(body)
    error_cls = error_for_status(response.status_code)
    return error_cls(
        message,
        status_code=response.status_code,
        error_code=response.headers.get("x-ms-error-code") or code,
        body=body,
    )


def build_blob_properties(name: str, headers: httpx.Headers) -> BlobProperties:
    return BlobProperties(
        name=name,
        content_type=headers.get("content-type"),
        content_length=parse_int(headers.get("content-length")),
        last_modified=parse_http_date(headers.get("last-modified")),
        etag=headers.get("etag"),
        blob_type=headers.get("x-ms-blob-type"),
        content_md5=headers.get("content-md5"),
        content_disposition=headers.get("content-disposition"),
        metadata=metadata_from_headers(headers.items()),
    )


def build_range_header(start: int | None, end: int | None) -> str | None:
    if start is None:
        if end is not None:
            raise InvalidParameterError("end requires start")
        return None
    if start < 0 or (end is not None and end < start):
        raise InvalidParameterError(f"Invalid byte range: {start}-{end}")
    return f"bytes={start}-{'' if end is None else end}"


def build_list_params(
    *,
    prefix: str | None = None,
    marker: str | None = None,
    max_results: int | None = None,
) -> dict[str, str]:
    params = {
        "comp": "list",
        "restype": "container",
        "prefix": normalize_prefix(prefix),
        "marker": marker or "",
    }
    if max_results is not None:
        if max_results <= 0:
            raise InvalidParameterError("max_results must be positive")
        params["maxresults"] = str(int(max_results))
    return params


def build_blob_headers(
    *,
    content_type: str | None = None,
    content_md5: str | None = None,
    content_disposition: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> HeaderMap:
    headers = HeaderMap(
        {
            "Content-Type": content_type,
            "Content-MD5": content_md5,
            "x-ms-blob-content-disposition": content_disposition,
        }
    )
    headers.update(metadata_headers(metadata))
    return headers


def build_commit_headers(
    *,
    content_type: str | None = None,
    content_md5: str | None = None,
    content_disposition: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> HeaderMap:
    # Properties of the committed blob; the request body is the XML block list.
    headers = HeaderMap(
        {
            "x-ms-blob-content-type": content_type,
            "x-ms-blob-content-md5": content_md5,
            "x-ms-blob-content-disposition": content_disposition,
        }
    )
    headers.update(metadata_headers(metadata))
    return headers


class BlobRequestClient:
    """Builds, signs and sends requests for one container."""

    def __init__(
        self,
        *,
        transport: BaseTransport,
        signer: Signer,
        config: ClientConfig,
    ) -> None:
        self._transport = transport
        self._signer = signer
        self._config = config

    @property
    def transport(self) -> BaseTransport:
        return self._transport

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def config(self) -> ClientConfig:
        return self._config

    def container_path(self) -> str:
        return f"/{self._config.container}"

    def blob_path(self, key: str) -> str:
        if not key or not key.strip("/"):
            raise InvalidParameterError("key is required")
        return f"/{self._config.container}/{key.lstrip('/')}"

    def build_request(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, str] | None = None,
        headers: Mapping[str, str | None] | None = None,
        body: bytes | None = None,
    ) -> RequestDescriptor:
        request_headers = HeaderMap(
            {
                "x-ms-version": self._config.api_version,
                "x-ms-date": http_date(self._signer.now()),
            }
        )
        request_headers.update(headers or {})
        if body is not None or method in ("PUT", "POST"):
            request_headers["Content-Length"] = str(len(body or b""))
        request = RequestDescriptor(
            method=method,
            base_url=self._config.base_url,
            path=path,
            query=dict(query or {}),
            headers=request_headers,
            body=body,
        )
        request.headers["Authorization"] = self._signer.authorization_header(request)
        return request

    async def request(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, str] | None = None,
        headers: Mapping[str, str | None] | None = None,
        body: bytes | None = None,
    ) -> httpx.Response:
        request = self.build_request(method, path, query=query, headers=headers, body=body)
        try:
            response = await self._transport.send(request)
        except httpx.HTTPError as exc:
            if self._config.debug:
                debug(f"{method} {path} failed", str(exc))
            raise UnknownError(f"Request failed: {exc}") from exc
        if 200 <= response.status_code < 300:
            return response
        raise map_blob_error(response)


class _BaseBlobClient:
    """Base class with the shared async implementation of every operation."""

    _request_client: BlobRequestClient
    _block_client: BlockClient
    _staging_runtime: Any

    @property
    def config(self) -> ClientConfig:
        return self._request_client.config

    @property
    def container(self) -> str:
        return self._request_client.config.container

    def _blob_url(self, key: str) -> str:
        return RequestDescriptor(
            method="GET",
            base_url=self.config.base_url,
            path=self._request_client.blob_path(key),
        ).url

    # -- block blobs ---------------------------------------------------------

    async def _create_block_blob(
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
        validate_content(content)
        upload = BlockBlobUpload(
            self._block_client,
            key,
            block_size=block_size or self.config.block_size,
            runtime=self._staging_runtime,
            single_shot_headers=build_blob_headers(
                content_type=content_type,
                content_md5=content_md5,
                content_disposition=content_disposition,
                metadata=metadata,
            ),
            commit_headers=build_commit_headers(
                content_type=content_type,
                content_md5=content_md5,
                content_disposition=content_disposition,
                metadata=metadata,
            ),
            debug_enabled=self.config.debug,
        )
        return await upload.run(content)

    async def _put_blob_single(
        self,
        key: str,
        content: Any,
        *,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        validate_content(content)
        headers = build_blob_headers(
            content_type=content_type,
            content_md5=content_md5,
            content_disposition=content_disposition,
            metadata=metadata,
        )
        return await self._block_client.put_blob(key, to_bytes(content), headers=headers)

    async def _stage_block(
        self,
        key: str,
        index: int,
        content: Any,
        *,
        content_md5: str | None = None,
    ) -> str:
        validate_content(content)
        return await self._block_client.stage_block(
            key, index, to_bytes(content), content_md5=content_md5
        )

    async def _commit_block_list(
        self,
        key: str,
        block_ids: Iterable[str],
        *,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        headers = build_commit_headers(
            content_type=content_type,
            content_md5=content_md5,
            content_disposition=content_disposition,
            metadata=metadata,
        )
        return await self._block_client.commit_block_list(key, block_ids, headers=headers)

    # -- reads -----------------------------------------------------------------

    async def _get_blob(
        self,
        key: str,
        *,
        start: int | None = None,
        end: int | None = None,
    ) -> bytes:
        response = await self._request_client.request(
            "GET",
            self._request_client.blob_path(key),
            headers={"x-ms-range": build_range_header(start, end)},
        )
        return response.content

    async def _get_blob_properties(self, key: str) -> BlobProperties:
        response = await self._request_client.request(
            "HEAD", self._request_client.blob_path(key)
        )
        return build_blob_properties(key, response.headers)

    async def _blob_exists(self, key: str) -> bool:
        try:
            await self._get_blob_properties(key)
        except NotFoundError:
            return False
        return True

    async def _delete_blob(self, key: str, *, delete_snapshots: str | None = "include") -> None:
        await self._request_client.request(
            "DELETE",
            self._request_client.blob_path(key),
            headers={"x-ms-delete-snapshots": delete_snapshots},
        )

    async def _list_blobs(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
    ) -> ListBlobResult:
        response = await self._request_client.request(
            "GET",
            self._request_client.container_path(),
            query=build_list_params(prefix=prefix, marker=marker, max_results=max_results),
        )
        try:
            return parse_blob_list(response.content)
        except (ExpatError, KeyError, TypeError) as exc:
            raise UnknownError(
                "Unexpected List Blobs response",
                status_code=response.status_code,
                body=response.content,
            ) from exc

    async def _delete_prefix(self, prefix: str) -> int:
        deleted = 0
        marker: str | None = None
        while True:
            page = await self._list_blobs(prefix=prefix, marker=marker)
            for blob in page.blobs:
                await self._delete_blob(blob.name)
                deleted += 1
            marker = page.next_marker
            if not marker:
                return deleted

    # -- append blobs ----------------------------------------------------------

    async def _create_append_blob(
        self,
        key: str,
        *,
        content_type: str | None = None,
        content_md5: str | None = None,
        content_disposition: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        headers = build_blob_headers(
            content_type=content_type,
            content_md5=content_md5,
            content_disposition=content_disposition,
            metadata=metadata,
        )
        headers["x-ms-blob-type"] = "AppendBlob"
        response = await self._request_client.request(
            "PUT", self._request_client.blob_path(key), headers=headers, body=b""
        )
        return response.headers.get("etag")

    async def _append_blob_block(
        self,
        key: str,
        content: Any,
        *,
        content_md5: str | None = None,
    ) -> str | None:
        validate_content(content)
        response = await self._request_client.request(
            "PUT",
            self._request_client.blob_path(key),
            query={"comp": "appendblock"},
            headers={"Content-MD5": content_md5},
            body=to_bytes(content),
        )
        return response.headers.get("etag")

    # -- containers ------------------------------------------------------------

    async def _create_container(self) -> None:
        await self._request_client.request(
            "PUT", self._request_client.container_path(), query={"restype": "container"}
        )

    async def _delete_container(self) -> None:
        await self._request_client.request(
            "DELETE", self._request_client.container_path(), query={"restype": "container"}
        )

    async def _container_exists(self) -> bool:
        try:
            await self._request_client.request(
                "HEAD", self._request_client.container_path(), query={"restype": "container"}
            )
        except NotFoundError:
            return False
        return True

    # -- delegated access ------------------------------------------------------

    def _signed_uri(
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
        path = self._request_client.blob_path(key)
        token = self._request_client.signer.delegated_access_token(
            path.lstrip("/"),
            permissions,
            expiry,
            start=start,
            protocol=protocol,
            ip=ip,
            content_disposition=content_disposition,
            content_type=content_type,
            version=self.config.api_version,
        )
        return f"{self._blob_url(key)}?{token}"


__all__ = [
    "BlobRequestClient",
    "map_blob_error",
    "build_blob_properties",
    "build_range_header",
    "build_list_params",
    "build_blob_headers",
    "build_commit_headers",
]
