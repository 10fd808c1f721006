"""Turn a payload and a body format into a wire body."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel

from .exceptions import InvalidPayloadError
from .request_options import CONTENT_TYPE_JSON, BodyFormat, FilePart, OptionSet


# httpx.Request is only used as an encoder, nothing is sent to this URL
_ENCODER_URL = "http://localhost/"


class PayloadKind(str, Enum):
    EMPTY = "empty"
    TEXT = "text"
    SCALAR = "scalar"
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    STREAM = "stream"
    PRODUCER = "producer"
    UNSUPPORTED = "unsupported"


ACCEPTED_KINDS: dict[BodyFormat, frozenset[PayloadKind]] = {
    BodyFormat.JSON: frozenset({PayloadKind.MAPPING, PayloadKind.SEQUENCE}),
    BodyFormat.MULTIPART: frozenset({PayloadKind.MAPPING}),
    BodyFormat.FORM: frozenset({PayloadKind.MAPPING}),
    BodyFormat.RAW: frozenset({PayloadKind.TEXT, PayloadKind.STREAM, PayloadKind.PRODUCER}),
}


@dataclass(frozen=True)
class ResolvedPayload:
    """Body and headers to hand to the transport.

    ``content`` is ``None`` when there is nothing to send. For raw payloads it
    is the caller's value, unchanged.
    """

    body_format: BodyFormat
    content: Any = None
    headers: dict[str, str] = field(default_factory=dict)


def classify_payload(payload: Any) -> PayloadKind:
    if payload is None:
        return PayloadKind.EMPTY
    if isinstance(payload, BaseModel):
        return PayloadKind.MAPPING
    if isinstance(payload, (str, bytes, bytearray)):
        return PayloadKind.TEXT if payload else PayloadKind.EMPTY
    if isinstance(payload, (bool, int, float)):
        return PayloadKind.SCALAR
    if isinstance(payload, Mapping):
        return PayloadKind.MAPPING if payload else PayloadKind.EMPTY
    if isinstance(payload, (list, tuple)):
        return PayloadKind.SEQUENCE if payload else PayloadKind.EMPTY
    if hasattr(payload, "read") or isinstance(payload, Iterator):
        return PayloadKind.STREAM
    if callable(payload):
        return PayloadKind.PRODUCER
    return PayloadKind.UNSUPPORTED


class PayloadResolver:
    """Validate the payload of an ``OptionSet`` and encode it for the wire.

    The source options are left untouched apart from a memo of the last
    result, so resolving the same options twice returns the same body instead
    of encoding it again (and drawing a new multipart boundary).
    """

    def resolve(self, options: OptionSet) -> ResolvedPayload:
        body_format = options.body_format or BodyFormat.JSON
        content_type = options.get_content_type()
        memo = options._resolved
        if (
            memo is not None
            and memo[0] is body_format
            and memo[1] is options.payload
            and memo[2] == content_type
        ):
            return memo[3]

        resolved = self._resolve(body_format, options.payload, content_type)
        options._resolved = (body_format, options.payload, content_type, resolved)
        return resolved

    def _resolve(self, body_format: BodyFormat, payload: Any, content_type: str | None) -> ResolvedPayload:
        kind = classify_payload(payload)
        if kind is PayloadKind.EMPTY:
            return ResolvedPayload(body_format)
        if kind not in ACCEPTED_KINDS[body_format]:
            raise InvalidPayloadError(
                f"A {kind.value} payload cannot be sent with the {body_format.value} body format"
            )

        if body_format is BodyFormat.JSON:
            return self._resolve_json(payload, content_type)
        if body_format is BodyFormat.MULTIPART:
            return self._resolve_multipart(payload)
        if body_format is BodyFormat.FORM:
            return self._resolve_form(payload)
        return ResolvedPayload(body_format, content=payload)

    @staticmethod
    def _resolve_json(payload: Any, content_type: str | None) -> ResolvedPayload:
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json")
        try:
            content = json.dumps(payload).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise InvalidPayloadError(f"Payload is not JSON serializable: {exc}", cause=exc) from exc
        headers = {}
        if not content_type or "json" not in content_type.lower():
            headers["content-type"] = CONTENT_TYPE_JSON
        return ResolvedPayload(BodyFormat.JSON, content=content, headers=headers)

    @staticmethod
    def _resolve_form(payload: Any) -> ResolvedPayload:
        data = _as_dict(payload)
        for key, value in data.items():
            if not isinstance(value, (str, int, float, bool)):
                raise InvalidPayloadError(f"Form field {key!r} must be a flat string value")
        request = httpx.Request("POST", _ENCODER_URL, data=data)
        return ResolvedPayload(
            BodyFormat.FORM,
            content=request.read(),
            headers={"content-type": request.headers["content-type"]},
        )

    @staticmethod
    def _resolve_multipart(payload: Any) -> ResolvedPayload:
        files: list[tuple[str, tuple[str | None, bytes | str, str | None]]] = []
        for name, value in _as_dict(payload).items():
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                files.append((str(name), _multipart_field(str(name), item)))

        # every field goes through ``files`` so httpx always builds multipart,
        # a None filename renders a plain form field
        request = httpx.Request("POST", _ENCODER_URL, files=files)
        return ResolvedPayload(
            BodyFormat.MULTIPART,
            content=request.read(),
            headers={"content-type": request.headers["content-type"]},
        )


def _as_dict(payload: Any) -> dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    return {str(key): value for key, value in payload.items()}


def _multipart_field(name: str, value: Any) -> tuple[str | None, bytes | str, str | None]:
    if isinstance(value, FilePart):
        return value.filename, value.read(), value.content_type
    if isinstance(value, (bytes, bytearray)):
        return None, bytes(value), None
    if isinstance(value, bool):
        return None, "true" if value else "false", None
    if isinstance(value, (str, int, float)):
        return None, str(value), None
    if value is None:
        return None, "", None
    raise InvalidPayloadError(f"Multipart field {name!r} has unsupported type {type(value).__name__}")


_default_resolver = PayloadResolver()


def resolve_payload(options: OptionSet) -> ResolvedPayload:
    return _default_resolver.resolve(options)
