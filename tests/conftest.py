"""Shared fixtures for all tests."""

import base64
import os
import time
import uuid
from collections.abc import Callable, Generator
from datetime import datetime, timezone

import pytest

from azblob import ClientConfig, Credentials, Signer

ACCOUNT_NAME = "testaccount"
CONTAINER = "container"
# base64("azblob-test-secret-key")
ACCESS_KEY = "YXpibG9iLXRlc3Qtc2VjcmV0LWtleQ=="
FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
FIXED_HTTP_DATE = "Mon, 01 Jan 2024 00:00:00 GMT"
BLOB_ENDPOINT = f"https://{ACCOUNT_NAME}.blob.core.windows.net"


@pytest.fixture
def mock_env_clear(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear storage-related environment variables for testing.

    This ensures tests don't accidentally use real credentials from the environment.
    """
    env_vars_to_clear = [
        "AZURE_STORAGE_ACCOUNT_NAME",
        "AZURE_STORAGE_ACCESS_KEY",
        "AZURE_STORAGE_CONTAINER",
        "AZURE_BLOB_STORAGE_DEBUG",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def credentials() -> Credentials:
    return Credentials.from_base64(ACCOUNT_NAME, ACCESS_KEY)


@pytest.fixture
def signer(credentials: Credentials, fixed_clock: Callable[[], datetime]) -> Signer:
    return Signer(credentials, clock=fixed_clock)


@pytest.fixture
def secret_key() -> bytes:
    return base64.b64decode(ACCESS_KEY)


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(account_name=ACCOUNT_NAME, access_key=ACCESS_KEY, container=CONTAINER)


@pytest.fixture
def unique_test_name() -> str:
    """Generate a unique test resource name with timestamp."""
    timestamp = int(time.time())
    unique_id = uuid.uuid4().hex[:8]
    return f"azblob-test-{timestamp}-{unique_id}"


def has_blob_credentials() -> bool:
    """Check if storage account credentials are available."""
    return bool(
        os.getenv("AZURE_STORAGE_ACCOUNT_NAME")
        and os.getenv("AZURE_STORAGE_ACCESS_KEY")
        and os.getenv("AZURE_STORAGE_CONTAINER")
    )


requires_blob_credentials = pytest.mark.skipif(
    not has_blob_credentials(),
    reason=(
        "Requires AZURE_STORAGE_ACCOUNT_NAME, AZURE_STORAGE_ACCESS_KEY and "
        "AZURE_STORAGE_CONTAINER environment variables"
    ),
)
