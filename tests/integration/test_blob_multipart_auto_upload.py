"""Integration tests for chunked block blob uploads using respx."""

from __future__ import annotations

import io

import pytest
import xmltodict

from azblob import (
    AsyncBlobClient,
    BlobClient,
    ClientConfig,
    ServerError,
    UnknownError,
    UploadState,
    block_count,
    generate_block_id,
)
from azblob.multipart import content_md5

from ..conftest import ACCESS_KEY, ACCOUNT_NAME, CONTAINER

BLOCK_SIZE = 100
PAYLOAD = bytes(range(256)) * 4  # 1024 bytes, 11 blocks of 100


def _config(**overrides) -> ClientConfig:
    values = {
        "account_name": ACCOUNT_NAME,
        "access_key": ACCESS_KEY,
        "container": CONTAINER,
        "block_size": BLOCK_SIZE,
    }
    values.update(overrides)
    return ClientConfig(**values)


def _committed_ids(fake_service) -> list[str]:
    (commit,) = fake_service.calls_with("PUT", "blocklist")
    latest = xmltodict.parse(commit.content, force_list=("Latest",))["BlockList"]["Latest"]
    return list(latest)


class TestChunkedUpload:
    def test_round_trip_sync(self, fake_service, fixed_clock):
        with BlobClient(config=_config(), clock=fixed_clock) as client:
            result = client.create_block_blob("big.bin", PAYLOAD)
            downloaded = client.get_blob("big.bin")

        expected_ids = [generate_block_id(i) for i in range(block_count(len(PAYLOAD), BLOCK_SIZE))]
        assert downloaded == PAYLOAD
        assert result.state is UploadState.DONE
        assert result.chunked
        assert result.block_ids == expected_ids
        assert result.etag == '"0x8D0BLOCKLIST"'
        assert len(fake_service.calls_with("PUT", "block")) == 11
        assert _committed_ids(fake_service) == expected_ids
        assert fake_service.calls_with("PUT", None) == []

    def test_stages_run_in_order_sync(self, fake_service, fixed_clock):
        with BlobClient(config=_config(max_concurrency=8), clock=fixed_clock) as client:
            client.create_block_blob("big.bin", PAYLOAD)

        staged = [call.url.params["blockid"] for call in fake_service.calls_with("PUT", "block")]
        assert staged == [generate_block_id(i) for i in range(11)]

    @pytest.mark.asyncio
    async def test_round_trip_async(self, fake_service, fixed_clock):
        async with AsyncBlobClient(config=_config(), clock=fixed_clock) as client:
            result = await client.create_block_blob("big.bin", io.BytesIO(PAYLOAD))
            downloaded = await client.get_blob("big.bin")

        assert downloaded == PAYLOAD
        assert len(result.block_ids) == 11

    @pytest.mark.asyncio
    async def test_concurrent_staging_async(self, fake_service, fixed_clock):
        config = _config(max_concurrency=4)
        async with AsyncBlobClient(config=config, clock=fixed_clock) as client:
            result = await client.create_block_blob("big.bin", PAYLOAD)
            downloaded = await client.get_blob("big.bin")

        assert downloaded == PAYLOAD
        assert result.block_ids == [generate_block_id(i) for i in range(11)]
        assert _committed_ids(fake_service) == result.block_ids

    @pytest.mark.asyncio
    async def test_unseekable_stream_is_chunked_async(self, fake_service, fixed_clock):
        class Pipe(io.RawIOBase):
            def __init__(self) -> None:
                super().__init__()
                self._source = io.BytesIO(PAYLOAD)

            def readable(self) -> bool:
                return True

            def read(self, size: int = -1) -> bytes:
                return self._source.read(size)

        config = _config(max_concurrency=3)
        async with AsyncBlobClient(config=config, clock=fixed_clock) as client:
            result = await client.create_block_blob("piped.bin", Pipe())
            downloaded = await client.get_blob("piped.bin")

        assert downloaded == PAYLOAD
        assert result.chunked
        assert len(fake_service.calls_with("PUT", "block")) == 11
        assert fake_service.calls_with("PUT", None) == []

    def test_exact_block_size_is_single_shot(self, fake_service, fixed_clock):
        with BlobClient(config=_config(), clock=fixed_clock) as client:
            result = client.create_block_blob("edge.bin", PAYLOAD[:BLOCK_SIZE])

        assert not result.chunked
        assert len(fake_service.calls) == 1

    def test_per_call_block_size(self, fake_service, fixed_clock):
        with BlobClient(config=_config(), clock=fixed_clock) as client:
            result = client.create_block_blob("big.bin", PAYLOAD, block_size=512)

        assert len(result.block_ids) == 2

    def test_commit_carries_blob_properties(self, fake_service, fixed_clock):
        with BlobClient(config=_config(), clock=fixed_clock) as client:
            client.create_block_blob(
                "big.csv",
                PAYLOAD,
                content_type="text/csv",
                content_md5=content_md5(PAYLOAD),
                metadata={"source": "export"},
            )
            props = client.get_blob_properties("big.csv")

        (commit,) = fake_service.calls_with("PUT", "blocklist")
        assert commit.headers["content-type"] == "application/xml; charset=utf-8"
        assert commit.headers["x-ms-blob-content-type"] == "text/csv"
        assert commit.headers["x-ms-blob-content-md5"] == content_md5(PAYLOAD)
        assert "content-md5" not in commit.headers
        assert props.content_type == "text/csv"
        assert props.metadata == {"source": "export"}


class TestStageFailure:
    def test_failed_stage_skips_commit_sync(self, fake_service, fixed_clock):
        fake_service.fail_stage_index = 3

        with BlobClient(config=_config(), clock=fixed_clock) as client:
            with pytest.raises(ServerError) as exc_info:
                client.create_block_blob("big.bin", PAYLOAD)

        assert exc_info.value.status_code == 500
        assert exc_info.value.error_code == "InternalError"
        assert len(fake_service.calls_with("PUT", "block")) == 4
        assert fake_service.calls_with("PUT", "blocklist") == []
        assert "big.bin" not in fake_service.blobs

    @pytest.mark.asyncio
    async def test_failed_stage_skips_commit_async(self, fake_service, fixed_clock):
        fake_service.fail_stage_index = 5

        async with AsyncBlobClient(config=_config(max_concurrency=3), clock=fixed_clock) as client:
            with pytest.raises(ServerError):
                await client.create_block_blob("big.bin", PAYLOAD)

        assert fake_service.calls_with("PUT", "blocklist") == []
        assert "big.bin" not in fake_service.blobs


class TestManualBlockUpload:
    def test_stage_and_commit_sync(self, fake_service, sync_client):
        first = sync_client.stage_block("manual.txt", 0, b"hello ")
        second = sync_client.stage_block(
            "manual.txt", 1, "world", content_md5=content_md5(b"world")
        )
        sync_client.commit_block_list("manual.txt", [first, second], content_type="text/plain")

        assert (first, second) == ("MDAwMDAw", "MDAwMDAx")
        assert sync_client.get_blob("manual.txt") == b"hello world"

    @pytest.mark.asyncio
    async def test_commit_unknown_block_fails_async(self, fake_service, async_client):
        with pytest.raises(UnknownError) as exc_info:
            await async_client.commit_block_list("manual.txt", [generate_block_id(0)])

        assert exc_info.value.error_code == "InvalidBlockList"


class TestDebugOutput:
    def test_traffic_is_logged_with_redacted_signature(self, fake_service, fixed_clock, capsys):
        with BlobClient(config=_config(debug=True), clock=fixed_clock) as client:
            client.create_block_blob("big.bin", PAYLOAD[:250])

        err = capsys.readouterr().err
        assert "azblob: -> PUT" in err
        assert "azblob: <- 201 PUT" in err
        assert "upload big.bin: sizing -> chunking" in err
        assert "upload big.bin: committing -> done" in err
        assert "REDACTED" in err
        assert "SharedKey" not in err

    def test_quiet_by_default(self, fake_service, fixed_clock, capsys):
        with BlobClient(config=_config(), clock=fixed_clock) as client:
            client.create_block_blob("big.bin", PAYLOAD[:250])

        assert capsys.readouterr().err == ""
