"""Helpers for redacting and validating request data."""

from __future__ import annotations

from typing import Mapping
from urllib.parse import urlparse

from .exceptions import ValidationError


SENSITIVE_HEADERS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "x-api-key",
}


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return headers with sensitive values redacted for logging."""
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = value
    return redacted


def validate_base_uri(uri: str) -> str:
    """Check that ``uri`` can serve as a base for relative request paths."""
    if "\x00" in uri:
        raise ValidationError("Invalid base_uri")
    parsed = urlparse(uri)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError("base_uri must include scheme and host")
    if parsed.scheme not in {"http", "https"}:
        raise ValidationError(f"Unsupported base_uri scheme: {parsed.scheme}")
    return uri
