"""Read-only view over a transport response."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import DecodeError, TransportError, UnsupportedOperationError, error_for_status
from .models import ResponseInfo
from .request_options import CONTENT_TYPE_JSON
from .transport import ResponseHandle

ModelT = TypeVar("ModelT", bound=BaseModel)


class ResponseView:
    """Accessors for a response handle.

    Nothing is read from the handle until an accessor needs it; the status,
    headers and body are then fetched once and cached. With ``throw_errors``
    set, reading the status or body of a non-2xx response raises the matching
    ``HTTPStatusError`` and transport failures are re-raised. Without it,
    a failed request reports status ``0``, no headers and an empty body, and
    the failure is available from ``transport_error()``.
    """

    def __init__(self, handle: ResponseHandle, *, throw_errors: bool = False) -> None:
        self._handle = handle
        self._throw_errors = throw_errors
        self._status: int | None = None
        self._headers: dict[str, list[str]] | None = None
        self._body: bytes | None = None
        self._error: TransportError | None = None

    def __repr__(self) -> str:
        return f"<ResponseView [{self._status if self._status is not None else 'pending'}]>"

    @property
    def handle(self) -> ResponseHandle:
        return self._handle

    def status(self) -> int:
        status = self._read_status()
        self._raise_if_needed(status)
        return status

    def is_success(self) -> bool:
        return 200 <= self._read_status() < 300

    def is_ok(self) -> bool:
        return self.is_success()

    def is_redirect(self) -> bool:
        return 300 <= self._read_status() < 400

    def is_client_error(self) -> bool:
        return 400 <= self._read_status() < 500

    def is_server_error(self) -> bool:
        return self._read_status() >= 500

    def headers(self) -> dict[str, str]:
        """Lower-cased header names mapped to their first value."""
        return {key: values[0] for key, values in self._read_headers().items() if values}

    def header(self, name: str) -> str:
        values = self._read_headers().get(name.lower())
        return values[0] if values else ""

    def header_values(self, name: str) -> list[str]:
        return list(self._read_headers().get(name.lower(), []))

    def content_type(self) -> str:
        return self.header("content-type")

    def is_json(self) -> bool:
        media_type = self.content_type().split(";", 1)[0].strip().lower()
        return media_type == CONTENT_TYPE_JSON or media_type.endswith("+json")

    def body(self) -> bytes:
        if self._body is None:
            self._body = self._read_body()
        self._raise_if_needed(self._read_status())
        return self._body

    def text(self, encoding: str | None = None) -> str:
        return self.body().decode(encoding or self._charset(), errors="replace")

    def as_string(self) -> str:
        return self.text()

    def as_map(self) -> Any:
        """Decode the body as JSON into plain dicts and lists."""
        return self._decode_json()

    def as_object(self) -> Any:
        """Decode the body as JSON with objects exposed as attributes."""
        return self._decode_json(object_hook=lambda value: SimpleNamespace(**value))

    def as_collection(self) -> list[Any]:
        """Decode the body as a list; a JSON object yields its values."""
        decoded = self._decode_json()
        if isinstance(decoded, dict):
            return list(decoded.values())
        if isinstance(decoded, list):
            return decoded
        return [decoded]

    def as_model(self, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate_json(self.body())
        except PydanticValidationError as exc:
            raise DecodeError(f"Body does not match {model.__name__}: {exc}", cause=exc) from exc

    def to_stream(self) -> Any:
        to_stream = getattr(self._handle, "to_stream", None)
        if to_stream is None:
            raise UnsupportedOperationError(
                f"{type(self._handle).__name__} cannot provide the body as a stream"
            )
        return to_stream(self._throw_errors)

    def info(self) -> dict[str, Any]:
        return self._handle.info()

    def metadata(self) -> ResponseInfo:
        return ResponseInfo.from_info(self.info())

    def request_url(self) -> str:
        return self.metadata().url

    def execution_time(self) -> float:
        return self.metadata().total_time

    def custom_data(self) -> Any:
        return self.info().get("user_data")

    def transport_error(self) -> TransportError | None:
        self._read_status()
        return self._error

    def _read_status(self) -> int:
        if self._status is None:
            try:
                self._status = self._handle.status_code()
            except TransportError as exc:
                self._error = exc
                self._status = 0
        return self._status

    def _read_headers(self) -> dict[str, list[str]]:
        if self._headers is None:
            if self._read_status() == 0 and self._error is not None:
                self._headers = {}
            else:
                raw = self._handle.headers()
                self._headers = {
                    key.lower(): [values] if isinstance(values, str) else list(values)
                    for key, values in raw.items()
                }
        return self._headers

    def _read_body(self) -> bytes:
        if self._read_status() == 0 and self._error is not None:
            return b""
        try:
            return self._handle.read_body(False)
        except TransportError as exc:
            self._error = exc
            return b""

    def _raise_if_needed(self, status: int) -> None:
        if not self._throw_errors:
            return
        if self._error is not None:
            raise self._error
        if not 200 <= status < 300:
            raise error_for_status(
                status,
                body=self._body,
                headers=self.headers(),
                url=self.request_url(),
            )

    def _decode_json(self, **kwargs: Any) -> Any:
        body = self.body()
        try:
            return json.loads(body, **kwargs)
        except ValueError as exc:
            raise DecodeError(f"Response body is not valid JSON: {exc}", body=body, cause=exc) from exc

    def _charset(self) -> str:
        for param in self.content_type().split(";")[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return "utf-8"
