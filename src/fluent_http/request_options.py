"""Request options shared by configs, clients and individual calls."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Mapping

from .exceptions import ValidationError


CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_PLAIN = "text/plain"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"
CONTENT_TYPE_MULTIPART = "multipart/form-data"


class BodyFormat(str, Enum):
    JSON = "json"
    MULTIPART = "multipart"
    FORM = "form"
    RAW = "raw"


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str = ""


@dataclass(frozen=True)
class BearerAuth:
    token: str


@dataclass(frozen=True)
class FilePart:
    """A file field of a multipart payload.

    ``content`` is a path, raw bytes or a binary stream. When no filename is
    given, the name of a path is used.
    """

    content: str | Path | bytes | BinaryIO
    filename: str | None = None
    content_type: str | None = None

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "FilePart":
        path = Path(path)
        return cls(content=path, filename=path.name, content_type=content_type)

    def read(self) -> bytes:
        if isinstance(self.content, bytes):
            return self.content
        if isinstance(self.content, (str, Path)):
            return Path(self.content).read_bytes()
        data = self.content.read()
        return data.encode() if isinstance(data, str) else data


@dataclass
class OptionSet:
    """Mutable bag of request options.

    Every setter returns the instance itself so calls can be chained. Header
    names are stored lower-cased; setting ``Accept`` and then ``accept`` leaves
    one entry holding the later value. The payload is not checked against the
    body format here; that happens when the request is resolved.
    """

    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    auth: BasicAuth | BearerAuth | None = None
    body_format: BodyFormat | None = None
    payload: Any = None
    timeout: float | None = None
    max_duration: float | None = None
    max_redirects: int | None = None
    user_data: Any = None
    verify: bool | None = None
    proxy: str | None = None
    _resolved: Any = field(default=None, init=False, repr=False, compare=False)

    def set_header(self, key: str, value: str) -> "OptionSet":
        self.headers[str(key).lower()] = str(value)
        return self

    def set_headers(self, headers: Mapping[str, str]) -> "OptionSet":
        for key, value in headers.items():
            self.set_header(key, value)
        return self

    def remove_header(self, key: str) -> "OptionSet":
        self.headers.pop(key.lower(), None)
        return self

    def set_query_param(self, key: str, value: Any) -> "OptionSet":
        self.query[str(key)] = str(value)
        return self

    def set_query_params(self, params: Mapping[str, Any]) -> "OptionSet":
        for key, value in params.items():
            self.set_query_param(key, value)
        return self

    def set_auth_basic(self, username: str, password: str = "") -> "OptionSet":
        self.auth = BasicAuth(username, password)
        return self

    def set_auth_bearer(self, token: str) -> "OptionSet":
        self.auth = BearerAuth(token)
        return self

    def set_body_format(self, body_format: BodyFormat | str) -> "OptionSet":
        self.body_format = BodyFormat(body_format)
        self._resolved = None
        return self

    def set_payload(self, payload: Any) -> "OptionSet":
        self.payload = payload
        self._resolved = None
        return self

    def set_timeout(self, seconds: float) -> "OptionSet":
        """Idle timeout in seconds, ``0`` waits indefinitely."""
        self.timeout = _non_negative("timeout", seconds)
        return self

    def set_max_duration(self, seconds: float) -> "OptionSet":
        """Upper bound for the whole request in seconds, ``0`` means no limit."""
        self.max_duration = _non_negative("max_duration", seconds)
        return self

    def allow_redirects(self, max_redirects: int = 0) -> "OptionSet":
        if max_redirects < -1:
            raise ValidationError("max_redirects must be -1 or greater")
        self.max_redirects = int(max_redirects)
        return self

    def disallow_redirects(self) -> "OptionSet":
        return self.allow_redirects(-1)

    def set_user_data(self, data: Any) -> "OptionSet":
        self.user_data = data
        return self

    def verify_ssl(self, verify: bool = True) -> "OptionSet":
        self.verify = verify
        return self

    def use_proxy(self, proxy: str) -> "OptionSet":
        self.proxy = proxy
        return self

    def content_type(self, value: str) -> "OptionSet":
        return self.set_header("content-type", value)

    def user_agent(self, value: str) -> "OptionSet":
        return self.set_header("user-agent", value)

    def accept(self, value: str) -> "OptionSet":
        return self.set_header("accept", value)

    def as_json(self) -> "OptionSet":
        return self.set_body_format(BodyFormat.JSON).content_type(CONTENT_TYPE_JSON)

    def as_form_params(self) -> "OptionSet":
        return self.set_body_format(BodyFormat.FORM).content_type(CONTENT_TYPE_FORM)

    def as_multipart(self) -> "OptionSet":
        # the boundary is only known once the body is encoded
        return self.set_body_format(BodyFormat.MULTIPART)

    def as_string(self) -> "OptionSet":
        return self.set_body_format(BodyFormat.RAW).content_type(CONTENT_TYPE_PLAIN)

    def get_content_type(self) -> str | None:
        return self.headers.get("content-type")

    def merged_with(self, overrides: "OptionSet | None") -> "OptionSet":
        """Return a new set where every option set in ``overrides`` wins.

        Headers and query parameters merge key by key; other options are
        replaced only when ``overrides`` sets them.
        """
        merged = OptionSet(headers=dict(self.headers), query=dict(self.query))
        for source in (self, overrides):
            if source is None:
                continue
            merged.headers.update(source.headers)
            merged.query.update(source.query)
            for name in _SCALAR_FIELDS:
                value = getattr(source, name)
                if value is not None:
                    setattr(merged, name, value)
        return merged

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for item in fields(self):
            if item.name.startswith("_"):
                continue
            value = getattr(self, item.name)
            if value is None or value == {}:
                continue
            result[item.name] = dict(value) if isinstance(value, dict) else value
        return result


_SCALAR_FIELDS = (
    "auth",
    "body_format",
    "payload",
    "timeout",
    "max_duration",
    "max_redirects",
    "user_data",
    "verify",
    "proxy",
)


def _non_negative(name: str, seconds: float) -> float:
    if seconds < 0:
        raise ValidationError(f"{name} must be non-negative")
    return float(seconds)
