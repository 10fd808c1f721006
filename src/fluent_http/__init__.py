"""Fluent HTTP request builder on top of httpx."""

from __future__ import annotations

import logging

from .client import RequestClient
from .config import Config
from .exceptions import (
    ClientError,
    DecodeError,
    FluentHTTPError,
    HTTPStatusError,
    InvalidPayloadError,
    RedirectionError,
    RequestTimeoutError,
    ServerError,
    TransportError,
    UnsupportedOperationError,
    ValidationError,
)
from .payload import PayloadResolver, ResolvedPayload, resolve_payload
from .request_options import BasicAuth, BearerAuth, BodyFormat, FilePart, OptionSet
from .response import ResponseView
from .stream import ChunkState, StreamChunkClassifier, classify
from .transport import Chunk, HttpxTransport, WireOptions

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BasicAuth",
    "BearerAuth",
    "BodyFormat",
    "Chunk",
    "ChunkState",
    "ClientError",
    "Config",
    "DecodeError",
    "FilePart",
    "FluentHTTPError",
    "HTTPStatusError",
    "HttpxTransport",
    "InvalidPayloadError",
    "OptionSet",
    "PayloadResolver",
    "RedirectionError",
    "RequestClient",
    "RequestTimeoutError",
    "ResolvedPayload",
    "ResponseView",
    "ServerError",
    "StreamChunkClassifier",
    "TransportError",
    "UnsupportedOperationError",
    "ValidationError",
    "WireOptions",
    "classify",
    "resolve_payload",
    "__version__",
]
