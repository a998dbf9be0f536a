from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import quote, urlencode, urlsplit

from .headers import HeaderMap


@dataclass(slots=True)
class RequestDescriptor:
    """One HTTP request against the storage service.

    ``path`` is the unencoded resource path (``/container/key``); ``query``
    holds unencoded values in the order they go on the wire.
    """

    method: str
    base_url: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    headers: HeaderMap = field(default_factory=HeaderMap)
    body: bytes | None = None

    @property
    def resource_path(self) -> str:
        """Percent-encoded path as sent, including any path of the endpoint."""
        base_path = urlsplit(self.base_url).path.rstrip("/")
        return base_path + quote(self.path, safe="/-_.~")

    @property
    def url(self) -> str:
        parts = urlsplit(self.base_url)
        url = f"{parts.scheme}://{parts.netloc}{self.resource_path}"
        if self.query:
            url += "?" + urlencode(self.query, quote_via=quote)
        return url


@dataclass(frozen=True, slots=True)
class Block:
    index: int
    block_id: str
    data: bytes


@dataclass(slots=True)
class BlobProperties:
    name: str
    content_type: str | None
    content_length: int | None
    last_modified: datetime | None
    etag: str | None = None
    blob_type: str | None = None
    content_md5: str | None = None
    content_disposition: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ListBlobItem:
    name: str
    properties: BlobProperties


@dataclass(slots=True)
class ListBlobResult:
    blobs: list[ListBlobItem]
    prefix: str | None
    marker: str | None
    next_marker: str | None

    @property
    def has_more(self) -> bool:
        return bool(self.next_marker)

    @property
    def names(self) -> list[str]:
        return [blob.name for blob in self.blobs]


class UploadState(str, enum.Enum):
    SIZING = "sizing"
    SINGLE_SHOT = "single_shot"
    CHUNKING = "chunking"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class UploadResult:
    key: str
    state: UploadState
    block_ids: list[str]
    etag: str | None = None

    @property
    def chunked(self) -> bool:
        return bool(self.block_ids)


__all__ = [
    "RequestDescriptor",
    "Block",
    "BlobProperties",
    "ListBlobItem",
    "ListBlobResult",
    "UploadState",
    "UploadResult",
]
