"""Fixtures for live API tests.

These tests require real storage account credentials set via environment variables:
- AZURE_STORAGE_ACCOUNT_NAME: storage account name
- AZURE_STORAGE_ACCESS_KEY: base64 account key
- AZURE_STORAGE_CONTAINER: an existing container the tests may write to
"""

import time
import uuid
from collections.abc import Generator

import pytest

from azblob import BlobClient, BlobError, ClientConfig

from ..conftest import requires_blob_credentials

__all__ = ["requires_blob_credentials"]


@pytest.fixture
def live_config() -> ClientConfig:
    return ClientConfig.from_env()


@pytest.fixture
def unique_blob_prefix() -> str:
    """Generate a unique key prefix for testing.

    Format: azblob-test/{timestamp}-{uuid}/
    """
    timestamp = int(time.time())
    unique_id = uuid.uuid4().hex[:8]
    return f"azblob-test/{timestamp}-{unique_id}/"


class CleanupRegistry:
    """Registry for tracking blob keys that need cleanup after tests."""

    def __init__(self) -> None:
        self._keys: list[str] = []

    def register(self, key: str) -> None:
        self._keys.append(key)

    @property
    def keys(self) -> list[str]:
        return list(self._keys)

    def clear(self) -> None:
        self._keys.clear()


@pytest.fixture
def cleanup_registry(live_config: ClientConfig) -> Generator[CleanupRegistry, None, None]:
    """Fixture providing a cleanup registry; registered keys are deleted after the test."""
    registry = CleanupRegistry()
    yield registry

    with BlobClient(config=live_config) as client:
        for key in registry.keys:
            try:
                client.delete_blob(key)
            except BlobError:
                pass  # Best effort cleanup
    registry.clear()
