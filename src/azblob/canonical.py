"""Canonical strings for Shared Key and service SAS signatures.

Both algorithms serialize a fixed list of fields, one per line, and must
match the verifier on the service side byte for byte.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone

VENDOR_HEADER_PREFIX = "x-ms-"
SIGNATURE_QUERY_PARAM = "sig"

# Standard headers in the order the Shared Key algorithm lists them.
STANDARD_HEADERS = (
    "content-encoding",
    "content-language",
    "content-length",
    "content-md5",
    "content-type",
    "date",
    "if-modified-since",
    "if-match",
    "if-none-match",
    "if-unmodified-since",
    "range",
)

_LINE_BREAK_RE = re.compile(r"\s*[\r\n]+\s*")

QueryValue = str | Sequence[str] | None


def fold_header_value(value: str) -> str:
    """Unfold a header value onto one line and trim it."""
    return _LINE_BREAK_RE.sub(" ", value).strip()


def _lower_headers(
    headers: Mapping[str, str | None] | Iterable[tuple[str, str | None]],
) -> dict[str, str]:
    items = headers.items() if isinstance(headers, Mapping) else headers
    lowered: dict[str, str] = {}
    for name, value in items:
        if value is None:
            continue
        lowered[name.lower()] = str(value)
    return lowered


def _standard_header_lines(headers: dict[str, str]) -> list[str]:
    lines = []
    for name in STANDARD_HEADERS:
        value = fold_header_value(headers.get(name, ""))
        # Content-Length of zero signs as empty (versions 2015-02-21 and later).
        if name == "content-length" and value == "0":
            value = ""
        lines.append(value)
    return lines


def canonicalize_headers(headers: dict[str, str]) -> str:
    vendor = sorted(
        (name, fold_header_value(value))
        for name, value in headers.items()
        if name.startswith(VENDOR_HEADER_PREFIX)
    )
    return "".join(f"{name}:{value}\n" for name, value in vendor)


def _join_query_value(value: QueryValue) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return ",".join(sorted(str(v) for v in value))


def canonicalize_resource(
    account_name: str,
    resource_path: str,
    query_params: Mapping[str, QueryValue] | None = None,
) -> str:
    resource = f"/{account_name}/{resource_path.lstrip('/')}"
    params: dict[str, str] = {}
    for name, value in (query_params or {}).items():
        key = name.lower()
        if key == SIGNATURE_QUERY_PARAM:
            continue
        joined = _join_query_value(value)
        params[key] = f"{params[key]},{joined}" if key in params else joined
    for name in sorted(params):
        resource += f"\n{name}:{params[name]}"
    return resource


def canonicalize_for_shared_key(
    verb: str,
    headers: Mapping[str, str | None] | Iterable[tuple[str, str | None]],
    account_name: str,
    resource_path: str,
    query_params: Mapping[str, QueryValue] | None = None,
) -> str:
    """Build the Shared Key string-to-sign for one request.

    Args:
        verb: HTTP method.
        headers: Request headers; names are matched case-insensitively.
        account_name: Storage account the request targets.
        resource_path: Encoded path of the resource (``container/blob``).
        query_params: Unencoded query parameters.

    Returns:
        The canonical string, without a trailing newline.
    """
    lowered = _lower_headers(headers)
    parts = [verb.upper(), *_standard_header_lines(lowered)]
    return (
        "\n".join(parts)
        + "\n"
        + canonicalize_headers(lowered)
        + canonicalize_resource(account_name, resource_path, query_params)
    )


def format_sas_time(moment: datetime) -> str:
    """Render ``moment`` as ``YYYY-MM-DDTHH:MM:SSZ``; naive values are UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def canonicalize_for_delegated_access(
    resource_path: str,
    permissions: str,
    start: str | None,
    expiry: str,
    version: str,
    *,
    account_name: str,
    resource: str = "b",
    identifier: str | None = None,
    ip: str | None = None,
    protocol: str | None = None,
    snapshot_time: str | None = None,
    encryption_scope: str | None = None,
    cache_control: str | None = None,
    content_disposition: str | None = None,
    content_encoding: str | None = None,
    content_language: str | None = None,
    content_type: str | None = None,
) -> str:
    """Build the service SAS string-to-sign (layout of version 2020-12-06 and later).

    ``start`` and ``expiry`` are already formatted with :func:`format_sas_time`.
    """
    canonical_resource = f"/blob/{account_name}/{resource_path.lstrip('/')}"
    fields = [
        permissions,
        start,
        expiry,
        canonical_resource,
        identifier,
        ip,
        protocol,
        version,
        resource,
        snapshot_time,
        encryption_scope,
        cache_control,
        content_disposition,
        content_encoding,
        content_language,
        content_type,
    ]
    return "\n".join(field or "" for field in fields)


__all__ = [
    "VENDOR_HEADER_PREFIX",
    "SIGNATURE_QUERY_PARAM",
    "STANDARD_HEADERS",
    "fold_header_value",
    "canonicalize_headers",
    "canonicalize_resource",
    "canonicalize_for_shared_key",
    "format_sas_time",
    "canonicalize_for_delegated_access",
]
