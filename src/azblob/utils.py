from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any


def debug(message: str, *args: Any) -> None:
    print(f"azblob: {message}", *args, file=sys.stderr)


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def http_date(moment: datetime) -> str:
    """Render ``moment`` as an RFC 1123 date, e.g. ``Mon, 01 Jan 2024 00:00:00 GMT``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


def parse_http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (ValueError, TypeError):
        return None


def parse_int(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def normalize_prefix(prefix: str | None) -> str:
    return (prefix or "").replace("\\", "/")


def compute_body_length(body: Any) -> int | None:
    """Bytes left in ``body``, or ``None`` for a stream that cannot seek."""
    if body is None:
        return 0
    if isinstance(body, str):
        return len(body.encode("utf-8"))
    if isinstance(body, (bytes, bytearray, memoryview)):
        return len(body)
    # file-like object with seek/tell
    if hasattr(body, "read"):
        try:
            pos = body.tell()
            body.seek(0, 2)
            end = body.tell()
            body.seek(pos)
            return int(end - pos)
        except (AttributeError, OSError, ValueError):
            return None
    return 0


def to_bytes(body: Any) -> bytes:
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    if hasattr(body, "read"):
        data = body.read()
        return data.encode("utf-8") if isinstance(data, str) else bytes(data)
    raise TypeError(f"unsupported body type: {type(body).__name__}")


__all__ = [
    "debug",
    "utcnow",
    "http_date",
    "parse_http_date",
    "parse_int",
    "env_flag",
    "normalize_prefix",
    "compute_body_length",
    "to_bytes",
]
