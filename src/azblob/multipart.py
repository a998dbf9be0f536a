from __future__ import annotations

import base64
import hashlib
from collections.abc import Awaitable, Callable, Iterable, Iterator
from typing import TYPE_CHECKING, Any

import anyio

from .codec import serialize_block_list
from .config import DEFAULT_BLOCK_SIZE
from .errors import InvalidParameterError
from .headers import HeaderMap
from .types import Block, UploadResult, UploadState
from .utils import compute_body_length, debug, to_bytes

if TYPE_CHECKING:
    from ._core import BlobRequestClient

StageBlockFn = Callable[[Block], Awaitable[str]]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BLOCK_ID_DIGITS = 6
MAX_BLOCK_INDEX = 10**BLOCK_ID_DIGITS - 1

# ---------------------------------------------------------------------------
# Block identifiers and splitting
# ---------------------------------------------------------------------------


def generate_block_id(index: int) -> str:
    """Base64 of ``index`` zero-padded to six digits; index 0 is ``MDAwMDAw``.

    Ids of one blob must all have the same length, hence the fixed width.
    """
    if index < 0 or index > MAX_BLOCK_INDEX:
        raise InvalidParameterError(f"block index must be between 0 and {MAX_BLOCK_INDEX}")
    return base64.b64encode(str(index).zfill(BLOCK_ID_DIGITS).encode("ascii")).decode("ascii")


def block_count(size: int, block_size: int) -> int:
    if block_size <= 0:
        raise InvalidParameterError("block_size must be positive")
    return -(-size // block_size)


def validate_content(content: Any) -> None:
    if isinstance(content, (bytes, bytearray, memoryview, str)) or hasattr(content, "read"):
        return
    raise InvalidParameterError(
        "content must be bytes, str or a readable binary file, "
        f"not {type(content).__name__}"
    )


def _read_up_to(stream: Any, size: int) -> bytes:
    """Read until ``size`` bytes are collected or the stream is exhausted."""
    parts: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        data = chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)
        parts.append(data)
        remaining -= len(data)
    return b"".join(parts)


def _iter_chunks(content: Any, block_size: int, head: bytes = b"") -> Iterator[bytes]:
    # bytes-like
    if isinstance(content, (bytes, bytearray, memoryview, str)):
        data = content.encode("utf-8") if isinstance(content, str) else content
        view = memoryview(data)
        offset = 0
        while offset < len(view):
            end = min(offset + block_size, len(view))
            yield bytes(view[offset:end])
            offset = end
        return
    # file-like object; ``head`` holds bytes already read from it
    buffer = head
    while True:
        if len(buffer) < block_size:
            buffer += _read_up_to(content, block_size - len(buffer))
        if not buffer:
            break
        yield buffer[:block_size]
        buffer = buffer[block_size:]


def _number_blocks(chunks: Iterable[bytes]) -> Iterator[Block]:
    for index, data in enumerate(chunks):
        yield Block(index=index, block_id=generate_block_id(index), data=data)


def iter_blocks(content: Any, block_size: int = DEFAULT_BLOCK_SIZE) -> Iterator[Block]:
    """Split ``content`` into consecutive blocks of ``block_size`` bytes.

    Only the final block may be shorter. File objects are read from their
    current position.
    """
    validate_content(content)
    if block_size <= 0:
        raise InvalidParameterError("block_size must be positive")
    yield from _number_blocks(_iter_chunks(content, block_size))


def content_md5(data: bytes) -> str:
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


# ---------------------------------------------------------------------------
# Staging runtimes
# ---------------------------------------------------------------------------


class _SequentialStagingRuntime:
    """Stages blocks one at a time in index order."""

    async def stage(self, blocks: Iterable[Block], stage_fn: StageBlockFn) -> list[str]:
        return [await stage_fn(block) for block in blocks]


class _ConcurrentStagingRuntime:
    """Stages up to ``max_concurrency`` blocks at once.

    The returned ids are in index order whatever order staging finishes in.
    The first failure cancels the remaining stage calls and is re-raised.
    """

    def __init__(self, max_concurrency: int) -> None:
        self._max_concurrency = max_concurrency

    async def stage(self, blocks: Iterable[Block], stage_fn: StageBlockFn) -> list[str]:
        semaphore = anyio.Semaphore(self._max_concurrency)
        ids_by_index: dict[int, str] = {}
        failures: list[BaseException] = []

        async with anyio.create_task_group() as task_group:

            def fail(exc: Exception) -> None:
                if not failures:
                    failures.append(exc)
                task_group.cancel_scope.cancel()

            async def run_limited(block: Block) -> None:
                try:
                    ids_by_index[block.index] = await stage_fn(block)
                except Exception as exc:
                    fail(exc)
                finally:
                    semaphore.release()

            block_iter = iter(blocks)
            while True:
                # Acquire before reading on so at most max_concurrency blocks are buffered.
                await semaphore.acquire()
                if failures:
                    semaphore.release()
                    break
                try:
                    block = next(block_iter)
                except StopIteration:
                    semaphore.release()
                    break
                except Exception as exc:
                    # reading the source failed, e.g. a file error or an out-of-range index
                    semaphore.release()
                    fail(exc)
                    break
                task_group.start_soon(run_limited, block)

        if failures:
            raise failures[0]
        return [ids_by_index[index] for index in sorted(ids_by_index)]


def create_staging_runtime(max_concurrency: int = 1) -> Any:
    if max_concurrency <= 1:
        return _SequentialStagingRuntime()
    return _ConcurrentStagingRuntime(max_concurrency)


# ---------------------------------------------------------------------------
# Block blob HTTP helpers
# ---------------------------------------------------------------------------


class BlockClient:
    def __init__(self, request_client: BlobRequestClient) -> None:
        self._request_client = request_client

    async def put_blob(
        self,
        key: str,
        data: bytes,
        *,
        headers: HeaderMap | None = None,
    ) -> str | None:
        request_headers = HeaderMap(headers or {})
        request_headers["x-ms-blob-type"] = "BlockBlob"
        response = await self._request_client.request(
            "PUT",
            self._request_client.blob_path(key),
            headers=request_headers,
            body=data,
        )
        return response.headers.get("etag")

    async def stage_block(
        self,
        key: str,
        index: int,
        data: bytes,
        *,
        content_md5: str | None = None,
    ) -> str:
        block_id = generate_block_id(index)
        await self._request_client.request(
            "PUT",
            self._request_client.blob_path(key),
            query={"comp": "block", "blockid": block_id},
            headers=HeaderMap({"Content-MD5": content_md5}),
            body=data,
        )
        return block_id

    async def commit_block_list(
        self,
        key: str,
        block_ids: Iterable[str],
        *,
        headers: HeaderMap | None = None,
    ) -> str | None:
        payload = serialize_block_list(block_ids)
        request_headers = HeaderMap({"Content-Type": "application/xml; charset=utf-8"})
        request_headers.update(headers or {})
        response = await self._request_client.request(
            "PUT",
            self._request_client.blob_path(key),
            query={"comp": "blocklist"},
            headers=request_headers,
            body=payload,
        )
        return response.headers.get("etag")


# ---------------------------------------------------------------------------
# Upload orchestration
# ---------------------------------------------------------------------------


class BlockBlobUpload:
    """One block blob upload: Sizing, then SingleShot or Chunking and Committing.

    Exists for the duration of a single call. ``state`` ends as ``DONE`` or
    ``FAILED``; on failure the first error is re-raised and staged blocks
    are left for the service to discard.
    """

    def __init__(
        self,
        block_client: BlockClient,
        key: str,
        *,
        block_size: int = DEFAULT_BLOCK_SIZE,
        runtime: Any = None,
        single_shot_headers: HeaderMap | None = None,
        commit_headers: HeaderMap | None = None,
        debug_enabled: bool = False,
    ) -> None:
        if block_size <= 0:
            raise InvalidParameterError("block_size must be positive")
        self.key = key
        self.block_size = block_size
        self.state = UploadState.SIZING
        self.block_ids: list[str] = []
        self._block_client = block_client
        self._runtime = runtime or _SequentialStagingRuntime()
        self._single_shot_headers = single_shot_headers or HeaderMap()
        self._commit_headers = commit_headers or HeaderMap()
        self._debug = debug_enabled

    def _transition(self, state: UploadState) -> None:
        if self._debug:
            debug(f"upload {self.key}: {self.state.value} -> {state.value}")
        self.state = state

    async def run(self, content: Any) -> UploadResult:
        validate_content(content)
        try:
            head = b""
            size = compute_body_length(content)
            if size is None:
                # Unknown length: peek one byte past a block to pick the path.
                head = _read_up_to(content, self.block_size + 1)
                size = len(head)
                if size <= self.block_size:
                    content = head
            elif block_count(size, self.block_size) > MAX_BLOCK_INDEX + 1:
                raise InvalidParameterError(
                    f"content needs more than {MAX_BLOCK_INDEX + 1} blocks "
                    f"of {self.block_size} bytes"
                )
            if size <= self.block_size:
                self._transition(UploadState.SINGLE_SHOT)
                etag = await self._single_shot(content)
            else:
                self._transition(UploadState.CHUNKING)
                blocks = _number_blocks(_iter_chunks(content, self.block_size, head))
                self.block_ids = await self._runtime.stage(blocks, self._stage)
                self._transition(UploadState.COMMITTING)
                etag = await self._block_client.commit_block_list(
                    self.key, self.block_ids, headers=self._commit_headers
                )
        except BaseException:
            self._transition(UploadState.FAILED)
            raise
        self._transition(UploadState.DONE)
        return UploadResult(key=self.key, state=self.state, block_ids=self.block_ids, etag=etag)

    async def _single_shot(self, content: Any) -> str | None:
        return await self._block_client.put_blob(
            self.key, to_bytes(content), headers=self._single_shot_headers
        )

    async def _stage(self, block: Block) -> str:
        if self._debug:
            debug(f"upload {self.key}: staging block {block.index} ({len(block.data)} bytes)")
        return await self._block_client.stage_block(self.key, block.index, block.data)


__all__ = [
    "BLOCK_ID_DIGITS",
    "MAX_BLOCK_INDEX",
    "generate_block_id",
    "block_count",
    "iter_blocks",
    "validate_content",
    "content_md5",
    "create_staging_runtime",
    "BlockClient",
    "BlockBlobUpload",
]
