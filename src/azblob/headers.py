from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from typing import Any

from .errors import InvalidParameterError

METADATA_PREFIX = "x-ms-meta-"

# Metadata names must be valid C# identifiers.
_METADATA_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_METADATA_VALUE_RE = re.compile(r"^[\x20-\x7e]*$")


class HeaderMap(MutableMapping[str, str]):
    """Ordered header mapping with case-insensitive names.

    The casing of the first assignment is kept for the wire. Assigning
    ``None`` or ``""`` removes the header, so absent values are never sent.
    """

    def __init__(
        self,
        headers: Mapping[str, str | None] | Iterable[tuple[str, str | None]] | None = None,
    ) -> None:
        self._items: dict[str, tuple[str, str]] = {}
        if headers is not None:
            self.update(headers)

    def __setitem__(self, name: str, value: str | None) -> None:  # type: ignore[override]
        key = name.lower()
        if value is None or value == "":
            self._items.pop(key, None)
            return
        existing = self._items.get(key)
        self._items[key] = (existing[0] if existing else name, str(value))

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __delitem__(self, name: str) -> None:
        del self._items[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderMap):
            return self.lower_items() == other.lower_items()
        if isinstance(other, Mapping):
            return self.lower_items() == HeaderMap(other).lower_items()
        return NotImplemented

    def __repr__(self) -> str:
        return f"HeaderMap({dict(self.items())!r})"

    def lower_items(self) -> dict[str, str]:
        """Lowercased name to value, in insertion order."""
        return {key: value for key, (_, value) in self._items.items()}

    def copy(self) -> HeaderMap:
        return HeaderMap(self.items())


def metadata_headers(metadata: Mapping[str, Any] | None) -> HeaderMap:
    """Validate ``metadata`` and turn it into ``x-ms-meta-*`` headers, keeping order."""
    headers = HeaderMap()
    for name, value in (metadata or {}).items():
        name = str(name)
        if not _METADATA_NAME_RE.match(name):
            raise InvalidParameterError(f"Invalid metadata name: {name!r}")
        text = str(value)
        if not _METADATA_VALUE_RE.match(text):
            raise InvalidParameterError(
                f"Metadata value for {name!r} must be printable ASCII without line breaks"
            )
        headers[f"{METADATA_PREFIX}{name}"] = text
    return headers


def metadata_from_headers(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    return {
        name[len(METADATA_PREFIX) :]: value
        for name, value in headers
        if name.lower().startswith(METADATA_PREFIX)
    }


__all__ = [
    "METADATA_PREFIX",
    "HeaderMap",
    "metadata_headers",
    "metadata_from_headers",
]
