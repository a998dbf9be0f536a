"""Client configuration, passed explicitly at construction time."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta

from ._http.config import DEFAULT_TIMEOUT, default_endpoint
from .errors import InvalidParameterError
from .signer import DEFAULT_API_VERSION
from .utils import env_flag

DEFAULT_BLOCK_SIZE = 128 * 1024 * 1024  # 128 MiB


@dataclass(frozen=True)
class ClientConfig:
    account_name: str
    access_key: str = field(repr=False)
    container: str
    endpoint: str | None = None
    api_version: str = DEFAULT_API_VERSION
    block_size: int = DEFAULT_BLOCK_SIZE
    max_concurrency: int = 1
    timeout: float = DEFAULT_TIMEOUT
    sas_clock_skew: timedelta = timedelta(0)
    debug: bool = False

    def __post_init__(self) -> None:
        if not self.account_name:
            raise InvalidParameterError("account_name is required")
        if not self.access_key:
            raise InvalidParameterError("access_key is required")
        if not self.container:
            raise InvalidParameterError("container is required")
        if self.block_size <= 0:
            raise InvalidParameterError("block_size must be positive")
        if self.max_concurrency < 1:
            raise InvalidParameterError("max_concurrency must be at least 1")

    @property
    def base_url(self) -> str:
        return (self.endpoint or default_endpoint(self.account_name)).rstrip("/")

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @classmethod
    def from_env(cls, **overrides: object) -> ClientConfig:
        """Read ``AZURE_STORAGE_*`` variables; ``overrides`` win over the environment."""
        values: dict[str, object] = {
            "account_name": os.getenv("AZURE_STORAGE_ACCOUNT_NAME", ""),
            "access_key": os.getenv("AZURE_STORAGE_ACCESS_KEY", ""),
            "container": os.getenv("AZURE_STORAGE_CONTAINER", ""),
            "debug": env_flag("AZURE_BLOB_STORAGE_DEBUG"),
        }
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]


__all__ = ["DEFAULT_BLOCK_SIZE", "ClientConfig"]
