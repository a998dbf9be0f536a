import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone

from dotenv import load_dotenv

from azblob import AsyncBlobClient, BlobClient, ClientConfig, NotFoundError

load_dotenv()


async def main() -> None:
    assert os.getenv("AZURE_STORAGE_ACCOUNT_NAME"), "Set AZURE_STORAGE_ACCOUNT_NAME"
    assert os.getenv("AZURE_STORAGE_ACCESS_KEY"), "Set AZURE_STORAGE_ACCESS_KEY"
    assert os.getenv("AZURE_STORAGE_CONTAINER"), "Set AZURE_STORAGE_CONTAINER"

    config = ClientConfig.from_env()
    client = AsyncBlobClient(config=config)
    client_sync = BlobClient(config=config)

    # 1) Upload a text blob with metadata (async client)
    data = b"hello from python\n" * 1024
    uploaded = await client.create_block_blob(
        "examples/assets/hello.txt",
        data,
        content_type="text/plain",
        metadata={"origin": "example"},
    )
    print("uploaded:", uploaded.key, uploaded.etag)

    # 2) List and read properties (async client)
    async for item in client.iter_blobs(prefix="examples/assets/"):
        props = await client.get_blob_properties(item.name)
        print(" -", item.name, props.content_length, props.content_type, props.metadata)

    # 3) Ranged read (async client)
    head = await client.get_blob("examples/assets/hello.txt", start=0, end=16)
    print("first bytes:", head)

    # 4) Upload a local file (sync client)
    with tempfile.NamedTemporaryFile("wb", delete=False) as tmp:
        tmp.write(b"this was uploaded from a file\n")
        tmp_local_path = tmp.name
    with open(tmp_local_path, "rb") as fh:
        client_sync.create_block_blob("examples/assets/from-file.txt", fh)
    os.unlink(tmp_local_path)

    # 5) Append blob used as a log (sync client)
    client_sync.create_append_blob("examples/assets/events.log", content_type="text/plain")
    for n in range(3):
        client_sync.append_blob_block("examples/assets/events.log", f"event {n}\n")
    print(client_sync.get_blob("examples/assets/events.log").decode())

    # 6) Share a read-only link for ten minutes; no request is sent
    uri = client_sync.signed_uri(
        "examples/assets/hello.txt",
        permissions="r",
        expiry=datetime.now(timezone.utc) + timedelta(minutes=10),
    )
    print("signed uri:", uri.split("?", 1)[0], "(token omitted)")

    # 7) Clean up everything under the prefix (sync client)
    deleted = client_sync.delete_prefix("examples/assets/")
    print("deleted:", deleted)
    try:
        client_sync.get_blob_properties("examples/assets/hello.txt")
    except NotFoundError:
        print("hello.txt is gone")

    client_sync.close()
    await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
