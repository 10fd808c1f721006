"""Transport interface and the httpx-backed implementation."""

from __future__ import annotations

import io
import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Mapping, Protocol, Sequence

import httpx

from .exceptions import (
    FluentHTTPError,
    RequestTimeoutError,
    TransportError,
    UnsupportedOperationError,
    error_for_status,
)
from .request_options import BasicAuth, BearerAuth

logger = logging.getLogger(__name__)

_READ_SIZE = 65536


@dataclass(frozen=True)
class WireOptions:
    """Fully merged and resolved options handed to a transport."""

    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    content: Any = None
    auth: BasicAuth | BearerAuth | None = None
    timeout: float | None = None
    max_duration: float | None = None
    max_redirects: int | None = None
    user_data: Any = None
    verify: bool | None = None
    proxy: str | None = None


@dataclass(frozen=True)
class Chunk:
    """One step of a streamed response.

    Accessors of a chunk carrying an ``error`` raise that error, so the
    failure surfaces wherever the chunk is inspected.
    """

    content: bytes = b""
    first: bool = False
    last: bool = False
    timed_out: bool = False
    error: TransportError | None = None

    @classmethod
    def timeout(cls) -> "Chunk":
        return cls(timed_out=True)

    @classmethod
    def failure(cls, error: TransportError) -> "Chunk":
        return cls(error=error)

    @property
    def terminal(self) -> bool:
        return self.last or self.timed_out or self.error is not None

    def is_first(self) -> bool:
        self._raise_error()
        return self.first

    def is_last(self) -> bool:
        self._raise_error()
        return self.last

    def is_timeout(self) -> bool:
        self._raise_error()
        return self.timed_out

    def get_content(self) -> bytes:
        self._raise_error()
        return self.content

    def _raise_error(self) -> None:
        if self.error is not None:
            raise self.error


class ResponseHandle(Protocol):
    def status_code(self) -> int: ...

    def headers(self) -> Mapping[str, Sequence[str]]: ...

    def read_body(self, throw_on_error: bool = False) -> bytes: ...

    def info(self) -> dict[str, Any]: ...


class Transport(Protocol):
    def issue(self, method: str, url: str, options: WireOptions) -> ResponseHandle: ...

    def stream(
        self, handles: Iterable[ResponseHandle], timeout: float | None = None
    ) -> Iterator[tuple[ResponseHandle, Chunk]]: ...

    def close(self) -> None: ...


class HttpxResponseHandle:
    """In-flight response filled in by a worker thread.

    Reading the status or headers blocks until the headers arrived, reading
    the body blocks until the response completed.
    """

    def __init__(self, method: str, url: str, options: WireOptions) -> None:
        self.method = method
        self.url = url
        self.options = options
        self._lock = threading.Lock()
        self._headers_ready = threading.Event()
        self._done = threading.Event()
        self._status = 0
        self._headers: dict[str, list[str]] = {}
        self._buffer = bytearray()
        self._error: TransportError | None = None
        self._first: Chunk | None = None
        self._terminal: Chunk | None = None
        self._listeners: list[queue.Queue] = []
        self._info: dict[str, Any] = {
            "url": url,
            "http_code": 0,
            "total_time": 0.0,
            "redirect_count": 0,
            "user_data": options.user_data,
            "error": None,
        }

    def status_code(self) -> int:
        self._headers_ready.wait()
        if self._status == 0 and self._error is not None:
            raise self._error
        return self._status

    def headers(self) -> dict[str, list[str]]:
        self._headers_ready.wait()
        if self._status == 0 and self._error is not None:
            raise self._error
        return {key: list(values) for key, values in self._headers.items()}

    def read_body(self, throw_on_error: bool = False) -> bytes:
        self._done.wait()
        if self._error is not None:
            raise self._error
        body = bytes(self._buffer)
        if throw_on_error and not 200 <= self._status < 300:
            raise error_for_status(
                self._status,
                body=body,
                headers={key: values[0] for key, values in self._headers.items()},
                url=self._info["url"],
            )
        return body

    def info(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._info)

    def to_stream(self, throw_on_error: bool = False) -> io.BytesIO:
        return io.BytesIO(self.read_body(throw_on_error))

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def subscribe(self, listener: queue.Queue) -> None:
        """Replay what already arrived to ``listener``, then keep it posted.

        Body data received so far is replayed as one chunk taken from the
        buffer, so data chunks are never stored twice.
        """
        with self._lock:
            if self._first is not None:
                listener.put((self, self._first))
            if self._buffer:
                listener.put((self, Chunk(content=bytes(self._buffer))))
            if self._terminal is not None:
                listener.put((self, self._terminal))
            self._listeners.append(listener)

    def unsubscribe(self, listener: queue.Queue) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit(self, chunk: Chunk) -> None:
        with self._lock:
            if chunk.first:
                self._first = chunk
            elif chunk.terminal:
                self._terminal = chunk
            for listener in self._listeners:
                listener.put((self, chunk))

    def _on_headers(self, response: httpx.Response, redirect_count: int = 0) -> None:
        headers: dict[str, list[str]] = {}
        for key, value in response.headers.multi_items():
            headers.setdefault(key.lower(), []).append(value)
        with self._lock:
            self._status = response.status_code
            self._headers = headers
            self._info["http_code"] = response.status_code
            self._info["url"] = str(response.url)
            self._info["redirect_count"] = redirect_count
            self._info["response_headers"] = {key: values[0] for key, values in headers.items()}
        self._headers_ready.set()
        self._emit(Chunk(first=True))

    def _on_data(self, data: bytes) -> None:
        chunk = Chunk(content=data)
        # buffered and posted under one lock so a new subscriber sees it once
        with self._lock:
            self._buffer.extend(data)
            for listener in self._listeners:
                listener.put((self, chunk))

    def _on_complete(self) -> None:
        self._emit(Chunk(last=True))

    def _on_failure(self, error: TransportError) -> None:
        with self._lock:
            self._error = error
            self._info["error"] = str(error)
        if isinstance(error, RequestTimeoutError):
            self._emit(Chunk.timeout())
        else:
            self._emit(Chunk.failure(error))

    def _finish(self, elapsed: float) -> None:
        with self._lock:
            self._info["total_time"] = elapsed
        self._headers_ready.set()
        self._done.set()


class HttpxTransport:
    """Issue requests through ``httpx`` on a pool of worker threads.

    ``issue`` returns as soon as the request is queued; the returned handle
    blocks on first access. One ``httpx.Client`` is kept per combination of
    TLS verification and proxy.
    """

    def __init__(
        self,
        *,
        httpx_client: httpx.Client | None = None,
        max_workers: int = 10,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._clients: dict[tuple[bool | None, str | None], httpx.Client] = {}
        self._owned_clients: list[httpx.Client] = []
        if httpx_client is not None:
            self._clients[(None, None)] = httpx_client
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="fluent-http"
        )
        self._owns_executor = executor is None
        self._clients_lock = threading.Lock()

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        for client in self._owned_clients:
            client.close()
        self._owned_clients.clear()

    def issue(self, method: str, url: str, options: WireOptions) -> HttpxResponseHandle:
        handle = HttpxResponseHandle(method, url, options)
        client = self._client_for(options)
        kwargs = self._request_kwargs(options)
        self._executor.submit(self._perform, client, handle, kwargs)
        return handle

    def stream(
        self, handles: Iterable[HttpxResponseHandle], timeout: float | None = None
    ) -> Iterator[tuple[HttpxResponseHandle, Chunk]]:
        """Yield chunks of ``handles`` in the order they arrive.

        When no chunk arrives for ``timeout`` seconds, every unfinished handle
        gets a timeout chunk and the stream ends.
        """
        handles = list(handles)
        for handle in handles:
            if not isinstance(handle, HttpxResponseHandle):
                raise UnsupportedOperationError(
                    f"HttpxTransport cannot stream {type(handle).__name__} handles"
                )
        events: queue.Queue = queue.Queue()
        pending = set(handles)
        for handle in handles:
            handle.subscribe(events)
        try:
            while pending:
                try:
                    handle, chunk = events.get(timeout=timeout or None)
                except queue.Empty:
                    for handle in handles:
                        if handle in pending:
                            yield handle, Chunk.timeout()
                    return
                if handle not in pending:
                    continue
                if chunk.terminal:
                    pending.discard(handle)
                yield handle, chunk
        finally:
            for handle in handles:
                handle.unsubscribe(events)

    def _client_for(self, options: WireOptions) -> httpx.Client:
        key = (options.verify, options.proxy)
        with self._clients_lock:
            client = self._clients.get(key)
            if client is None:
                client = httpx.Client(
                    verify=True if options.verify is None else options.verify,
                    proxy=options.proxy,
                    trust_env=False,
                )
                self._clients[key] = client
                self._owned_clients.append(client)
            return client

    @staticmethod
    def _request_kwargs(options: WireOptions) -> dict[str, Any]:
        headers = dict(options.headers)
        auth = None
        if isinstance(options.auth, BasicAuth):
            auth = httpx.BasicAuth(options.auth.username, options.auth.password)
        elif isinstance(options.auth, BearerAuth):
            headers["authorization"] = f"Bearer {options.auth.token}"

        kwargs: dict[str, Any] = {
            "headers": headers,
            "params": options.query or None,
            "content": _content_for_httpx(options.content),
        }
        if auth is not None:
            kwargs["auth"] = auth
        if options.timeout is not None:
            kwargs["timeout"] = httpx.Timeout(options.timeout or None)
        return kwargs

    @staticmethod
    def _perform(client: httpx.Client, handle: HttpxResponseHandle, kwargs: dict[str, Any]) -> None:
        options = handle.options
        started = time.monotonic()
        kwargs = dict(kwargs)
        send_kwargs = {"auth": kwargs.pop("auth")} if "auth" in kwargs else {}
        if options.max_redirects is None:
            max_redirects = client.max_redirects
        else:
            max_redirects = max(options.max_redirects, 0)
        try:
            request = client.build_request(handle.method, handle.url, **kwargs)
            response = client.send(request, stream=True, follow_redirects=False, **send_kwargs)
            redirects = 0
            try:
                # redirects are followed one hop at a time so no more than
                # max_redirects extra requests are ever sent
                while response.next_request is not None and redirects < max_redirects:
                    next_request = response.next_request
                    response.close()
                    redirects += 1
                    response = client.send(next_request, stream=True, follow_redirects=False)
                if max_redirects > 0 and response.next_request is not None:
                    raise TransportError(
                        f"Maximum of {max_redirects} redirects exceeded", url=handle.url
                    )
                handle._on_headers(response, redirects)
                for data in response.iter_bytes():
                    if options.max_duration and time.monotonic() - started > options.max_duration:
                        raise RequestTimeoutError(
                            f"Maximum duration of {options.max_duration}s reached", url=handle.url
                        )
                    handle._on_data(data)
            finally:
                response.close()
            handle._on_complete()
        except FluentHTTPError as exc:
            error = exc if isinstance(exc, TransportError) else TransportError(str(exc), cause=exc)
            logger.debug("Request %s %s failed: %s", handle.method, handle.url, error)
            handle._on_failure(error)
        except httpx.TimeoutException as exc:
            logger.debug("Request %s %s timed out", handle.method, handle.url)
            handle._on_failure(RequestTimeoutError("Request timed out", url=handle.url, cause=exc))
        except httpx.HTTPError as exc:
            logger.debug("Request %s %s failed: %s", handle.method, handle.url, exc)
            handle._on_failure(TransportError(str(exc) or type(exc).__name__, url=handle.url, cause=exc))
        except Exception as exc:
            logger.exception("Unexpected failure while sending %s %s", handle.method, handle.url)
            handle._on_failure(TransportError(str(exc) or type(exc).__name__, url=handle.url, cause=exc))
        finally:
            handle._finish(time.monotonic() - started)


def _content_for_httpx(content: Any) -> Any:
    if content is None or isinstance(content, (bytes, str)):
        return content
    if isinstance(content, bytearray):
        return bytes(content)
    if hasattr(content, "read"):
        return _iter_stream(content)
    if callable(content):
        return _iter_producer(content)
    return content


def _iter_stream(stream: Any) -> Iterator[bytes]:
    while True:
        data = stream.read(_READ_SIZE)
        if not data:
            return
        yield data.encode() if isinstance(data, str) else data


def _iter_producer(producer: Callable[[], bytes | str]) -> Iterator[bytes]:
    """Call ``producer`` until it returns an empty value."""
    while True:
        data = producer()
        if not data:
            return
        yield data.encode() if isinstance(data, str) else data
