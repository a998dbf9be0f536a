"""XML payloads of the Blob service: block lists, listings and error bodies."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from xml.parsers.expat import ExpatError

import xmltodict

from .types import BlobProperties, ListBlobItem, ListBlobResult
from .utils import parse_http_date, parse_int


def serialize_block_list(block_ids: Iterable[str]) -> bytes:
    """Commit payload listing ``block_ids`` in order.

    Every entry is sent as ``Latest``: the service uses the most recently
    staged block with that id.
    """
    document = {"BlockList": {"Latest": list(block_ids)}}
    return xmltodict.unparse(document, encoding="utf-8").encode("utf-8")


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, dict):
        # <Tag attr="...">text</Tag>
        value = value.get("#text")
    return str(value) if value not in (None, "") else None


def _parse_properties(name: str, blob: dict[str, Any]) -> BlobProperties:
    props = blob.get("Properties") or {}
    metadata = blob.get("Metadata") or {}
    return BlobProperties(
        name=name,
        content_type=_text(props.get("Content-Type")),
        content_length=parse_int(_text(props.get("Content-Length"))),
        last_modified=parse_http_date(_text(props.get("Last-Modified"))),
        etag=_text(props.get("Etag")),
        blob_type=_text(props.get("BlobType")),
        content_md5=_text(props.get("Content-MD5")),
        content_disposition=_text(props.get("Content-Disposition")),
        metadata={str(k): _text(v) or "" for k, v in metadata.items()},
    )


def parse_blob_list(body: bytes | str) -> ListBlobResult:
    """Parse a ``List Blobs`` response body.

    Raises:
        ExpatError: ``body`` is not XML.
        KeyError: ``body`` has no ``EnumerationResults`` root.
    """
    result = xmltodict.parse(body, force_list=("Blob",))["EnumerationResults"]
    blobs_node = result.get("Blobs") or {}
    items = []
    for blob in blobs_node.get("Blob") or []:
        name = _text(blob.get("Name")) or ""
        items.append(ListBlobItem(name=name, properties=_parse_properties(name, blob)))
    return ListBlobResult(
        blobs=items,
        prefix=_text(result.get("Prefix")),
        marker=_text(result.get("Marker")),
        next_marker=_text(result.get("NextMarker")),
    )


def parse_error(body: bytes | str | None) -> tuple[str | None, str | None]:
    """Return ``(code, message)`` from an XML error body, if there is one."""
    if not body:
        return None, None
    try:
        document = xmltodict.parse(body)
    except ExpatError:
        return None, None
    error = document.get("Error") if isinstance(document, dict) else None
    if not isinstance(error, dict):
        return None, None
    message = _text(error.get("Message"))
    if message:
        message = message.splitlines()[0]
    return _text(error.get("Code")), message


__all__ = [
    "serialize_block_list",
    "parse_blob_list",
    "parse_error",
]
