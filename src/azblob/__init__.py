"""Client for the Azure Blob Storage REST API."""

from .canonical import (
    canonicalize_for_delegated_access,
    canonicalize_for_shared_key,
    format_sas_time,
)
from .client import AsyncBlobClient, BlobClient
from .config import DEFAULT_BLOCK_SIZE, ClientConfig
from .errors import (
    AuthenticationError,
    BlobError,
    BlobResponseError,
    ConflictError,
    InvalidParameterError,
    NotFoundError,
    ServerError,
    UnknownError,
    error_for_status,
)
from .headers import HeaderMap, metadata_headers
from .multipart import block_count, generate_block_id, iter_blocks
from .signer import DEFAULT_API_VERSION, Credentials, Signer
from .types import (
    BlobProperties,
    Block,
    ListBlobItem,
    ListBlobResult,
    RequestDescriptor,
    UploadResult,
    UploadState,
)

__all__ = [
    # clients
    "BlobClient",
    "AsyncBlobClient",
    "ClientConfig",
    "DEFAULT_BLOCK_SIZE",
    "DEFAULT_API_VERSION",
    # signing
    "Credentials",
    "Signer",
    "canonicalize_for_shared_key",
    "canonicalize_for_delegated_access",
    "format_sas_time",
    # blocks
    "generate_block_id",
    "block_count",
    "iter_blocks",
    # errors
    "BlobError",
    "BlobResponseError",
    "InvalidParameterError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
    "UnknownError",
    "error_for_status",
    # types
    "HeaderMap",
    "metadata_headers",
    "RequestDescriptor",
    "Block",
    "BlobProperties",
    "ListBlobItem",
    "ListBlobResult",
    "UploadResult",
    "UploadState",
]
