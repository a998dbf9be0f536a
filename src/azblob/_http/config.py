"""HTTP defaults shared by the storage clients."""

from __future__ import annotations

DEFAULT_TIMEOUT = 60.0
DEFAULT_ENDPOINT_TEMPLATE = "https://{account}.blob.core.windows.net"

# Values of these never reach debug output.
REDACTED = "REDACTED"
SENSITIVE_HEADERS = frozenset({"authorization"})
SENSITIVE_QUERY_PARAMS = frozenset({"sig"})


def default_endpoint(account_name: str) -> str:
    return DEFAULT_ENDPOINT_TEMPLATE.format(account=account_name)


__all__ = [
    "DEFAULT_TIMEOUT",
    "DEFAULT_ENDPOINT_TEMPLATE",
    "REDACTED",
    "SENSITIVE_HEADERS",
    "SENSITIVE_QUERY_PARAMS",
    "default_endpoint",
]
