"""Client-wide defaults."""

from __future__ import annotations

import os
from typing import Any, Mapping

from .exceptions import ValidationError
from .request_options import BodyFormat, OptionSet
from .security import validate_base_uri


class OptionSetters:
    """Fluent setters that write through to ``self.options``.

    Shared by ``Config`` and ``RequestClient``; each returns ``self`` so
    chains stay on the config or client rather than the option set.
    """

    options: OptionSet
    _throw_errors: bool = False

    def set_header(self, key: str, value: str):
        self.options.set_header(key, value)
        return self

    def set_headers(self, headers: Mapping[str, str]):
        self.options.set_headers(headers)
        return self

    def set_query_param(self, key: str, value: Any):
        self.options.set_query_param(key, value)
        return self

    def set_query_params(self, params: Mapping[str, Any]):
        self.options.set_query_params(params)
        return self

    def set_auth_basic(self, username: str, password: str = ""):
        self.options.set_auth_basic(username, password)
        return self

    def set_auth_bearer(self, token: str):
        self.options.set_auth_bearer(token)
        return self

    def set_body_format(self, body_format: BodyFormat | str):
        self.options.set_body_format(body_format)
        return self

    def set_payload(self, payload: Any):
        self.options.set_payload(payload)
        return self

    def set_timeout(self, seconds: float):
        self.options.set_timeout(seconds)
        return self

    def set_max_duration(self, seconds: float):
        self.options.set_max_duration(seconds)
        return self

    def allow_redirects(self, max_redirects: int = 0):
        self.options.allow_redirects(max_redirects)
        return self

    def disallow_redirects(self):
        self.options.disallow_redirects()
        return self

    def set_user_data(self, data: Any):
        self.options.set_user_data(data)
        return self

    def verify_ssl(self, verify: bool = True):
        self.options.verify_ssl(verify)
        return self

    def use_proxy(self, proxy: str):
        self.options.use_proxy(proxy)
        return self

    def content_type(self, value: str):
        self.options.content_type(value)
        return self

    def user_agent(self, value: str):
        self.options.user_agent(value)
        return self

    def accept(self, value: str):
        self.options.accept(value)
        return self

    def as_json(self):
        self.options.as_json()
        return self

    def as_form_params(self):
        self.options.as_form_params()
        return self

    def as_multipart(self):
        self.options.as_multipart()
        return self

    def as_string(self):
        self.options.as_string()
        return self

    def throw_errors(self, enabled: bool = True):
        self._throw_errors = enabled
        return self

    def should_throw_errors(self) -> bool:
        return self._throw_errors


class Config(OptionSetters):
    """Defaults applied to every request of a client.

    A new config sends JSON (``content-type: application/json``) until told
    otherwise.
    """

    env_prefix = "FLUENT_HTTP_"

    def __init__(self, base_uri: str | None = None, *, options: OptionSet | None = None) -> None:
        self.options = options if options is not None else OptionSet().as_json()
        self._base_uri: str | None = None
        self._throw_errors = False
        if base_uri is not None:
            self.base_uri(base_uri)

    @classmethod
    def build(cls, base_uri: str | None = None) -> "Config":
        return cls(base_uri)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        """Build a config from ``FLUENT_HTTP_BASE_URI``, ``_TOKEN`` and ``_TIMEOUT``."""
        env = os.environ if environ is None else environ
        config = cls(env.get(f"{cls.env_prefix}BASE_URI") or None)
        token = env.get(f"{cls.env_prefix}TOKEN")
        if token:
            config.set_auth_bearer(token)
        timeout = env.get(f"{cls.env_prefix}TIMEOUT")
        if timeout:
            try:
                config.set_timeout(float(timeout))
            except ValueError as exc:
                raise ValidationError(f"{cls.env_prefix}TIMEOUT must be a number", cause=exc) from exc
        return config

    def base_uri(self, uri: str) -> "Config":
        self._base_uri = validate_base_uri(uri)
        return self

    def get_base_uri(self) -> str | None:
        return self._base_uri

    def to_dict(self) -> dict[str, Any]:
        result = self.options.to_dict()
        if self._base_uri is not None:
            result["base_uri"] = self._base_uri
        return result
