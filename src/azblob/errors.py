from __future__ import annotations


class BlobError(Exception):
    def __init__(self, message: str = "") -> None:
        super().__init__(f"azblob: {message}")


class InvalidParameterError(BlobError):
    """Raised by local validation before any request is sent."""


class BlobResponseError(BlobError):
    """Base class for errors derived from a storage service response."""

    default_message = "The storage service rejected the request."

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        body: bytes = b"",
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        self.body = body
        detail = message or self.default_message
        if status_code is not None:
            suffix = f"status {status_code}"
            if error_code:
                suffix += f", {error_code}"
            detail = f"{detail} ({suffix})"
        super().__init__(detail)


class AuthenticationError(BlobResponseError):
    default_message = "Server failed to authenticate the request."


class NotFoundError(BlobResponseError):
    default_message = "The specified container or blob does not exist."


class ConflictError(BlobResponseError):
    default_message = "The request conflicts with the current state of the resource."


class ServerError(BlobResponseError):
    default_message = "The storage service failed to process the request."


class UnknownError(BlobResponseError):
    default_message = "Unknown error, please visit the storage service status page."


def error_for_status(status_code: int) -> type[BlobResponseError]:
    if status_code in (401, 403):
        return AuthenticationError
    if status_code == 404:
        return NotFoundError
    if status_code in (409, 412):
        return ConflictError
    if 500 <= status_code < 600:
        return ServerError
    return UnknownError


__all__ = [
    "BlobError",
    "InvalidParameterError",
    "BlobResponseError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
    "UnknownError",
    "error_for_status",
]
