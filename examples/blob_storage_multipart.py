"""
Example demonstrating block blob uploads.

Two ways to upload content larger than one block:
- Automatic: create_block_blob() splits, stages and commits for you
- Manual: stage_block() for each piece, then commit_block_list()

The automatic path stages blocks in order on the sync client and up to
``max_concurrency`` at once on the async client.
"""

import asyncio
import os
from dataclasses import replace

from dotenv import load_dotenv

from azblob import AsyncBlobClient, BlobClient, ClientConfig, iter_blocks

load_dotenv()

assert os.getenv("AZURE_STORAGE_ACCOUNT_NAME"), "Set AZURE_STORAGE_ACCOUNT_NAME"
assert os.getenv("AZURE_STORAGE_ACCESS_KEY"), "Set AZURE_STORAGE_ACCESS_KEY"
assert os.getenv("AZURE_STORAGE_CONTAINER"), "Set AZURE_STORAGE_CONTAINER"

# 4 MiB blocks keep the example quick
config = replace(ClientConfig.from_env(), block_size=4 * 1024 * 1024, max_concurrency=4)

PAYLOAD = b"A" * (5 * 1024 * 1024) + b"B" * (5 * 1024 * 1024) + b"C" * 1024


def sync_example() -> None:
    print("=== Sync automatic upload ===\n")
    with BlobClient(config=config) as client:
        result = client.create_block_blob("examples/large-file.bin", PAYLOAD)
        print(f"state: {result.state.value}, blocks: {len(result.block_ids)}")
        assert client.get_blob("examples/large-file.bin") == PAYLOAD
        client.delete_blob("examples/large-file.bin")


def manual_example() -> None:
    print("\n=== Sync manual staging ===\n")
    with BlobClient(config=config) as client:
        block_ids = []
        for block in iter_blocks(PAYLOAD, config.block_size):
            print(f"staging block {block.index} ({len(block.data)} bytes)")
            block_ids.append(client.stage_block("examples/manual.bin", block.index, block.data))
        client.commit_block_list(
            "examples/manual.bin", block_ids, content_type="application/octet-stream"
        )
        props = client.get_blob_properties("examples/manual.bin")
        print(f"committed {props.content_length} bytes")
        client.delete_blob("examples/manual.bin")


async def async_example() -> None:
    print("\n=== Async concurrent upload ===\n")
    async with AsyncBlobClient(config=config) as client:
        result = await client.create_block_blob("examples/large-file-async.bin", PAYLOAD)
        print(f"state: {result.state.value}, blocks: {len(result.block_ids)}")
        await client.delete_blob("examples/large-file-async.bin")


if __name__ == "__main__":
    sync_example()
    manual_example()
    asyncio.run(async_example())
