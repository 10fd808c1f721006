"""Exceptions raised by fluent-http."""

from __future__ import annotations

from typing import Mapping


class FluentHTTPError(Exception):
    """Base exception for all fluent-http failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: object = None,
        headers: Mapping[str, str] | None = None,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.headers = dict(headers) if headers is not None else {}
        self.url = url
        self.cause = cause

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        if self.status_code is None:
            return str(self.args[0])
        return f"{self.status_code}: {self.args[0]}"


class ValidationError(FluentHTTPError):
    """Raised when an option value is rejected before anything is sent."""


class InvalidPayloadError(ValidationError):
    """Raised when the payload cannot be encoded with the selected body format."""


class TransportError(FluentHTTPError):
    """Raised for network and connection failures reported by the transport."""


class RequestTimeoutError(TransportError):
    """Raised when a request exceeds its timeout or maximum duration."""


class HTTPStatusError(FluentHTTPError):
    """Raised for non-2xx responses when the client throws on errors."""


class RedirectionError(HTTPStatusError):
    """Raised for 3xx responses."""


class ClientError(HTTPStatusError):
    """Raised for 4xx responses."""


class ServerError(HTTPStatusError):
    """Raised for 5xx responses."""


class DecodeError(FluentHTTPError):
    """Raised when a response body cannot be decoded as JSON."""


class UnsupportedOperationError(FluentHTTPError):
    """Raised when a response handle lacks the requested capability."""


def error_for_status(
    status_code: int,
    *,
    body: object = None,
    headers: Mapping[str, str] | None = None,
    url: str | None = None,
) -> HTTPStatusError:
    """Build the ``HTTPStatusError`` subclass matching ``status_code``."""
    message = f"HTTP {status_code} returned for {url or 'request'}"
    kwargs = {"status_code": status_code, "body": body, "headers": headers, "url": url}
    if 300 <= status_code < 400:
        return RedirectionError(message, **kwargs)
    if 400 <= status_code < 500:
        return ClientError(message, **kwargs)
    if status_code >= 500:
        return ServerError(message, **kwargs)
    return HTTPStatusError(message, **kwargs)
