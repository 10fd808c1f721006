"""Fluent request client."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

import httpx

from .config import Config, OptionSetters
from .exceptions import ValidationError
from .payload import PayloadResolver
from .request_options import OptionSet
from .response import ResponseView
from .security import sanitize_headers
from .transport import Chunk, HttpxTransport, Transport, WireOptions

logger = logging.getLogger(__name__)


class RequestClient(OptionSetters):
    """Build and send requests on top of a ``Config``.

    Options set on the client itself (``client.set_header(...)``) stay in
    place after a request is sent and apply to every later request as well.
    Pass ``options=`` to a request method for values that should only apply
    to that one call. Precedence is config, then client, then call options,
    merged key by key.
    """

    methods = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"})

    def __init__(
        self,
        config: Config | None = None,
        *,
        transport: Transport | None = None,
        resolver: PayloadResolver | None = None,
    ) -> None:
        self.config = config if config is not None else Config()
        self.options = OptionSet()
        self._throw_errors = self.config.should_throw_errors()
        self._resolver = resolver or PayloadResolver()
        self._owns_transport = transport is None
        self.transport: Transport = transport if transport is not None else HttpxTransport()

    @classmethod
    def create(cls, config: Config | None = None, **kwargs) -> "RequestClient":
        return cls(config, **kwargs)

    def __enter__(self) -> "RequestClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    def get(self, path: str, *, options: OptionSet | None = None) -> ResponseView:
        return self.request("GET", path, options=options)

    def head(self, path: str, *, options: OptionSet | None = None) -> ResponseView:
        return self.request("HEAD", path, options=options)

    def post(self, path: str, *, options: OptionSet | None = None) -> ResponseView:
        return self.request("POST", path, options=options)

    def put(self, path: str, *, options: OptionSet | None = None) -> ResponseView:
        return self.request("PUT", path, options=options)

    def patch(self, path: str, *, options: OptionSet | None = None) -> ResponseView:
        return self.request("PATCH", path, options=options)

    def delete(self, path: str, *, options: OptionSet | None = None) -> ResponseView:
        return self.request("DELETE", path, options=options)

    def request(self, method: str, path: str, *, options: OptionSet | None = None) -> ResponseView:
        method = method.upper()
        if method not in self.methods:
            raise ValidationError(f"Unsupported HTTP method: {method}")
        url = self.absolute_url(path)
        wire_options = self.request_options(options)
        logger.debug(
            "Dispatching %s %s headers=%s",
            method,
            url,
            sanitize_headers(wire_options.headers),
        )
        handle = self.transport.issue(method, url, wire_options)
        return ResponseView(handle, throw_errors=self._throw_errors)

    def request_options(self, options: OptionSet | None = None) -> WireOptions:
        """Merge and resolve the options the next request would be sent with."""
        merged = self.config.options.merged_with(self.options).merged_with(options)
        resolved = self._resolver.resolve(merged)
        headers = dict(merged.headers)
        headers.update(resolved.headers)
        return WireOptions(
            headers=headers,
            query=dict(merged.query),
            content=resolved.content,
            auth=merged.auth,
            timeout=merged.timeout,
            max_duration=merged.max_duration,
            max_redirects=merged.max_redirects,
            user_data=merged.user_data,
            verify=merged.verify,
            proxy=merged.proxy,
        )

    def absolute_url(self, path: str) -> str:
        if "\x00" in path:
            raise ValidationError("Invalid path characters")
        try:
            url = httpx.URL(path)
        except httpx.InvalidURL as exc:
            raise ValidationError(f"Invalid path {path!r}: {exc}") from exc
        base_uri = self.config.get_base_uri()
        if base_uri is not None:
            return str(httpx.URL(base_uri).join(url))
        if not url.is_absolute_url:
            raise ValidationError(f"Relative path {path!r} requires a base_uri")
        return path

    def stream(
        self, responses: ResponseView | Iterable[ResponseView], timeout: float | None = None
    ) -> Iterator[tuple[ResponseView, Chunk]]:
        """Yield ``(response, chunk)`` pairs as the transport receives them."""
        if isinstance(responses, ResponseView):
            responses = [responses]
        views = {id(response.handle): response for response in responses}
        handles = [response.handle for response in views.values()]
        for handle, chunk in self.transport.stream(handles, timeout):
            yield views[id(handle)], chunk
