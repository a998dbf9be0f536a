"""Fixtures for integration tests using respx mocking.

``FakeBlobService`` answers the Blob REST calls the clients make, keeps
blobs in memory and rejects any request whose Shared Key signature does not
match the bytes actually put on the wire.
"""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Generator
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, unquote

import httpx
import pytest
import pytest_asyncio
import respx
import xmltodict

from azblob import AsyncBlobClient, BlobClient, ClientConfig, Signer
from azblob.canonical import canonicalize_for_shared_key

from ..conftest import ACCOUNT_NAME, BLOB_ENDPOINT, CONTAINER, FIXED_HTTP_DATE

BLOB_HOST = f"{ACCOUNT_NAME}.blob.core.windows.net"


def _error(status: int, code: str, message: str) -> httpx.Response:
    body = (
        '<?xml version="1.0" encoding="utf-8"?>'
        f"<Error><Code>{code}</Code><Message>{message}</Message></Error>"
    )
    return httpx.Response(status, content=body.encode(), headers={"x-ms-error-code": code})


@dataclass
class StoredBlob:
    data: bytes
    blob_type: str
    headers: dict[str, str] = field(default_factory=dict)


class FakeBlobService:
    def __init__(self, signer: Signer, *, page_size: int = 1000) -> None:
        self.signer = signer
        self.page_size = page_size
        self.blobs: dict[str, StoredBlob] = {}
        self.staged: dict[str, dict[str, bytes]] = {}
        self.calls: list[httpx.Request] = []
        self.containers: set[str] = {CONTAINER}
        self.fail_stage_index: int | None = None

    # -- helpers -------------------------------------------------------------

    def _verify(self, request: httpx.Request) -> bool:
        auth = request.headers.get("authorization", "")
        prefix = f"SharedKey {ACCOUNT_NAME}:"
        if not auth.startswith(prefix):
            return False
        path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        query = dict(parse_qsl(request.url.query.decode("ascii"), keep_blank_values=True))
        expected = self.signer.sign(
            canonicalize_for_shared_key(
                request.method, request.headers.items(), ACCOUNT_NAME, path, query
            )
        )
        return auth[len(prefix) :] == expected

    def calls_with(self, method: str, comp: str | None = None) -> list[httpx.Request]:
        return [
            call
            for call in self.calls
            if call.method == method and call.url.params.get("comp") == comp
        ]

    # -- dispatch ------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if not self._verify(request):
            return _error(403, "AuthenticationFailed", "Signature mismatch.")
        if request.headers.get("x-ms-date") != FIXED_HTTP_DATE:
            return _error(403, "AuthenticationFailed", "Unexpected x-ms-date.")

        segments = unquote(request.url.path).lstrip("/").split("/", 1)
        container = segments[0]
        key = segments[1] if len(segments) > 1 else ""
        params = request.url.params
        if container not in self.containers and params.get("restype") != "container":
            return _error(404, "ContainerNotFound", "The specified container does not exist.")

        if not key:
            return self._container_op(request, container)
        if request.method == "PUT":
            return self._put(request, key)
        if request.method in ("GET", "HEAD"):
            return self._read(request, key)
        if request.method == "DELETE":
            if self.blobs.pop(key, None) is None:
                return _error(404, "BlobNotFound", "The specified blob does not exist.")
            return httpx.Response(202)
        return _error(405, "UnsupportedHttpVerb", "Unsupported verb.")

    def _container_op(self, request: httpx.Request, container: str) -> httpx.Response:
        params = request.url.params
        if params.get("comp") == "list":
            return self._list(params)
        if request.method == "PUT":
            if container in self.containers:
                return _error(409, "ContainerAlreadyExists", "The container already exists.")
            self.containers.add(container)
            return httpx.Response(201)
        if request.method == "DELETE":
            if container not in self.containers:
                return _error(404, "ContainerNotFound", "The container does not exist.")
            self.containers.discard(container)
            return httpx.Response(202)
        if container not in self.containers:
            return httpx.Response(404, headers={"x-ms-error-code": "ContainerNotFound"})
        return httpx.Response(200)

    def _put(self, request: httpx.Request, key: str) -> httpx.Response:
        params = request.url.params
        comp = params.get("comp")
        body = request.content
        md5 = request.headers.get("content-md5")
        if md5 and base64.b64encode(hashlib.md5(body).digest()).decode() != md5:
            return _error(400, "Md5Mismatch", "The MD5 value specified did not match.")

        if comp == "block":
            index = int(base64.b64decode(params["blockid"]).decode())
            if self.fail_stage_index is not None and index == self.fail_stage_index:
                return _error(500, "InternalError", "Server encountered an internal error.")
            self.staged.setdefault(key, {})[params["blockid"]] = body
            return httpx.Response(201)
        if comp == "blocklist":
            ids = xmltodict.parse(body, force_list=("Latest",))["BlockList"] or {}
            staged = self.staged.get(key, {})
            parts = []
            for block_id in ids.get("Latest", []):
                if block_id not in staged:
                    return _error(400, "InvalidBlockList", "The block list is invalid.")
                parts.append(staged[block_id])
            self.blobs[key] = StoredBlob(b"".join(parts), "BlockBlob", dict(request.headers))
            self.staged.pop(key, None)
            return httpx.Response(201, headers={"etag": '"0x8D0BLOCKLIST"'})
        if comp == "appendblock":
            blob = self.blobs.get(key)
            if blob is None:
                return _error(404, "BlobNotFound", "The specified blob does not exist.")
            if blob.blob_type != "AppendBlob":
                return _error(409, "InvalidBlobType", "The blob type is invalid.")
            blob.data += body
            return httpx.Response(201, headers={"etag": '"0x8D0APPEND"'})

        blob_type = request.headers["x-ms-blob-type"]
        self.blobs[key] = StoredBlob(body, blob_type, dict(request.headers))
        return httpx.Response(201, headers={"etag": '"0x8D0PUT"'})

    def _read(self, request: httpx.Request, key: str) -> httpx.Response:
        blob = self.blobs.get(key)
        if blob is None:
            if request.method == "HEAD":
                return httpx.Response(404, headers={"x-ms-error-code": "BlobNotFound"})
            return _error(404, "BlobNotFound", "The specified blob does not exist.")
        headers = {
            "x-ms-blob-type": blob.blob_type,
            "last-modified": FIXED_HTTP_DATE,
            "etag": '"0x8D0BLOB"',
            "content-type": blob.headers.get("x-ms-blob-content-type")
            or blob.headers.get("content-type")
            or "application/octet-stream",
        }
        for name, value in blob.headers.items():
            if name.startswith("x-ms-meta-"):
                headers[name] = value
        if "x-ms-blob-content-disposition" in blob.headers:
            headers["content-disposition"] = blob.headers["x-ms-blob-content-disposition"]
        data = blob.data
        status = 200
        if "x-ms-range" in request.headers:
            spec = request.headers["x-ms-range"].removeprefix("bytes=")
            start_text, end_text = spec.split("-")
            start = int(start_text)
            end = int(end_text) if end_text else len(data) - 1
            data = data[start : end + 1]
            status = 206
        if request.method == "HEAD":
            headers["content-length"] = str(len(blob.data))
            return httpx.Response(status, headers=headers)
        return httpx.Response(status, headers=headers, content=data)

    def _list(self, params: httpx.QueryParams) -> httpx.Response:
        prefix = params.get("prefix", "")
        marker = params.get("marker", "")
        max_results = int(params.get("maxresults") or self.page_size)
        names = sorted(name for name in self.blobs if name.startswith(prefix))
        if marker:
            names = [name for name in names if name >= marker]
        page, rest = names[:max_results], names[max_results:]
        entries = "".join(
            f"<Blob><Name>{name}</Name><Properties>"
            f"<Last-Modified>{FIXED_HTTP_DATE}</Last-Modified>"
            f"<Content-Length>{len(self.blobs[name].data)}</Content-Length>"
            f"<BlobType>{self.blobs[name].blob_type}</BlobType>"
            "</Properties></Blob>"
            for name in page
        )
        next_marker = rest[0] if rest else ""
        body = (
            '<?xml version="1.0" encoding="utf-8"?>'
            f'<EnumerationResults ServiceEndpoint="{BLOB_ENDPOINT}/" ContainerName="{CONTAINER}">'
            f"<Prefix>{prefix}</Prefix><Marker>{marker}</Marker>"
            f"<MaxResults>{max_results}</MaxResults>"
            f"<Blobs>{entries}</Blobs><NextMarker>{next_marker}</NextMarker>"
            "</EnumerationResults>"
        )
        return httpx.Response(
            200, content=body.encode(), headers={"content-type": "application/xml"}
        )


@pytest.fixture
def fake_service(signer: Signer) -> Generator[FakeBlobService, None, None]:
    service = FakeBlobService(signer)
    with respx.mock(assert_all_called=False) as router:
        router.route(host=BLOB_HOST).mock(side_effect=service.handle)
        yield service


@pytest.fixture
def sync_client(client_config: ClientConfig, fixed_clock) -> Generator[BlobClient, None, None]:
    with BlobClient(config=client_config, clock=fixed_clock) as client:
        yield client


@pytest_asyncio.fixture
async def async_client(client_config: ClientConfig, fixed_clock):
    async with AsyncBlobClient(config=client_config, clock=fixed_clock) as client:
        yield client
