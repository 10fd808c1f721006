"""In-memory transport and client for tests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

import httpx

from .client import RequestClient
from .config import Config
from .exceptions import RequestTimeoutError, TransportError, error_for_status
from .transport import Chunk, WireOptions


@dataclass(frozen=True)
class RecordedRequest:
    method: str
    url: str
    options: WireOptions


class FakeResponseHandle:
    """Canned response; fails with ``error`` when one is given."""

    def __init__(
        self,
        body: str | bytes | Iterable[str | bytes],
        info: dict[str, Any],
        error: TransportError | None = None,
    ) -> None:
        if isinstance(body, (str, bytes)):
            body = [body]
        self.parts = [part.encode() if isinstance(part, str) else part for part in body]
        self._info = info
        self._error = error

    def status_code(self) -> int:
        if self._error is not None:
            raise self._error
        return int(self._info.get("http_code", 200))

    def headers(self) -> dict[str, list[str]]:
        if self._error is not None:
            raise self._error
        headers = self._info.get("response_headers") or {}
        return {
            key.lower(): list(value) if isinstance(value, (list, tuple)) else [str(value)]
            for key, value in headers.items()
        }

    def read_body(self, throw_on_error: bool = False) -> bytes:
        if self._error is not None:
            raise self._error
        body = b"".join(self.parts)
        status = self.status_code()
        if throw_on_error and not 200 <= status < 300:
            raise error_for_status(status, body=body, url=self._info.get("url"))
        return body

    def info(self) -> dict[str, Any]:
        return dict(self._info)

    def chunks(self) -> Iterator[Chunk]:
        if isinstance(self._error, RequestTimeoutError):
            yield Chunk.timeout()
            return
        if self._error is not None:
            yield Chunk.failure(self._error)
            return
        yield Chunk(first=True)
        for part in self.parts:
            yield Chunk(content=part)
        yield Chunk(last=True)


class FakeTransport:
    """Transport returning a fixed body and info for every request.

    Each call is recorded with the exact wire options it received. Request
    headers are echoed back as response headers, with the canned
    ``response_headers`` taking precedence.
    """

    def __init__(
        self,
        body: str | bytes | Iterable[str | bytes] = "",
        info: Mapping[str, Any] | None = None,
        *,
        error: TransportError | None = None,
    ) -> None:
        self.body = body
        self.info = dict(info or {})
        self.error = error
        self.requests: list[RecordedRequest] = []

    @property
    def last_request(self) -> RecordedRequest:
        return self.requests[-1]

    @property
    def last_options(self) -> WireOptions:
        return self.last_request.options

    def issue(self, method: str, url: str, options: WireOptions) -> FakeResponseHandle:
        if options.query:
            url = str(httpx.URL(url).copy_merge_params(options.query))
        self.requests.append(RecordedRequest(method, url, options))
        info: dict[str, Any] = {"http_code": 200, "total_time": 0.0, **self.info}
        info["url"] = url
        info["user_data"] = options.user_data
        info["response_headers"] = {**options.headers, **(self.info.get("response_headers") or {})}
        return FakeResponseHandle(self.body, info, self.error)

    def stream(
        self, handles: Iterable[FakeResponseHandle], timeout: float | None = None
    ) -> Iterator[tuple[FakeResponseHandle, Chunk]]:
        for handle in handles:
            for chunk in handle.chunks():
                yield handle, chunk

    def close(self) -> None:
        pass


class MockClient(RequestClient):
    """``RequestClient`` answering every request from a ``FakeTransport``."""

    transport: FakeTransport

    def __init__(self, config: Config | None = None) -> None:
        super().__init__(config, transport=FakeTransport())

    def mock_body(self, body: str | bytes | Iterable[str | bytes]) -> "MockClient":
        self.transport.body = body
        return self

    def mock_info(self, info: Mapping[str, Any]) -> "MockClient":
        self.transport.info = dict(info)
        return self

    def mock_error(self, error: TransportError | None) -> "MockClient":
        self.transport.error = error
        return self
