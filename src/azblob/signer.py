from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from urllib.parse import quote, urlencode

from .canonical import (
    canonicalize_for_delegated_access,
    canonicalize_for_shared_key,
    format_sas_time,
)
from .errors import InvalidParameterError
from .types import RequestDescriptor
from .utils import utcnow

DEFAULT_API_VERSION = "2024-05-04"

# Blob SAS permissions in the order the service expects them.
SAS_PERMISSION_ORDER = "racwdxyltmeopi"
SAS_PROTOCOLS = ("https", "https,http")


@dataclass(frozen=True, slots=True)
class Credentials:
    account_name: str
    key: bytes = field(repr=False)

    @classmethod
    def from_base64(cls, account_name: str, access_key: str) -> Credentials:
        if not account_name:
            raise InvalidParameterError("account_name is required")
        if not access_key:
            raise InvalidParameterError("access_key is required")
        try:
            key = base64.b64decode(access_key, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidParameterError("access_key is not valid base64") from exc
        return cls(account_name=account_name, key=key)


def normalize_permissions(permissions: str) -> str:
    if not permissions:
        raise InvalidParameterError("permissions must not be empty")
    unknown = sorted(set(permissions) - set(SAS_PERMISSION_ORDER))
    if unknown:
        raise InvalidParameterError(f"Unknown SAS permission(s): {''.join(unknown)}")
    return "".join(p for p in SAS_PERMISSION_ORDER if p in permissions)


class Signer:
    """Shared Key signer for one storage account.

    Holds no mutable state after construction and performs no I/O, so one
    instance can be shared between threads and tasks.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        clock: Callable[[], datetime] | None = None,
        clock_skew: timedelta = timedelta(0),
    ) -> None:
        self._credentials = credentials
        self._clock = clock or utcnow
        self._clock_skew = clock_skew

    @property
    def account_name(self) -> str:
        return self._credentials.account_name

    def now(self) -> datetime:
        moment = self._clock()
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment

    def sign(self, string_to_sign: str) -> str:
        digest = hmac.new(
            self._credentials.key, string_to_sign.encode("utf-8"), hashlib.sha256
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    def string_to_sign(self, request: RequestDescriptor) -> str:
        return canonicalize_for_shared_key(
            request.method,
            request.headers,
            self.account_name,
            request.resource_path,
            request.query,
        )

    def authorization_header(self, request: RequestDescriptor) -> str:
        signature = self.sign(self.string_to_sign(request))
        return f"SharedKey {self.account_name}:{signature}"

    def delegated_access_token(
        self,
        resource_path: str,
        permissions: str,
        expiry: datetime,
        *,
        start: datetime | None = None,
        protocol: str | None = "https",
        ip: str | None = None,
        identifier: str | None = None,
        content_disposition: str | None = None,
        content_type: str | None = None,
        version: str = DEFAULT_API_VERSION,
    ) -> str:
        """Return a service SAS query string for the blob at ``resource_path``.

        ``resource_path`` is ``container/blob``. The token is deterministic
        for identical arguments.

        Raises:
            InvalidParameterError: permissions are empty or unknown, expiry
                is already in the past beyond the allowed clock skew, start is
                after expiry, or the protocol is not accepted by the service.
        """
        signed_permissions = normalize_permissions(permissions)
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        if expiry < self.now() - self._clock_skew:
            raise InvalidParameterError("expiry must not be in the past")
        if start is not None:
            if start.tzinfo is None:
                start = start.replace(tzinfo=timezone.utc)
            if start > expiry:
                raise InvalidParameterError("start must not be after expiry")
        if protocol is not None and protocol not in SAS_PROTOCOLS:
            raise InvalidParameterError(f"protocol must be one of {SAS_PROTOCOLS}")

        signed_start = format_sas_time(start) if start is not None else None
        signed_expiry = format_sas_time(expiry)
        string_to_sign = canonicalize_for_delegated_access(
            resource_path,
            signed_permissions,
            signed_start,
            signed_expiry,
            version,
            account_name=self.account_name,
            identifier=identifier,
            ip=ip,
            protocol=protocol,
            content_disposition=content_disposition,
            content_type=content_type,
        )

        params = {
            "sp": signed_permissions,
            "st": signed_start,
            "se": signed_expiry,
            "sip": ip,
            "spr": protocol,
            "sv": version,
            "sr": "b",
            "si": identifier,
            "rscd": content_disposition,
            "rsct": content_type,
            "sig": self.sign(string_to_sign),
        }
        return urlencode({k: v for k, v in params.items() if v}, quote_via=quote)


__all__ = [
    "DEFAULT_API_VERSION",
    "SAS_PERMISSION_ORDER",
    "Credentials",
    "Signer",
    "normalize_permissions",
]
