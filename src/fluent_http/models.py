"""Pydantic models describing response metadata."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FluentModel(BaseModel):
    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)


class ResponseInfo(FluentModel):
    """Metadata a transport reports about a request.

    ``user_data`` is kept out of this model; it is read straight from the raw
    info mapping so the caller gets back the very object it attached.
    """

    url: str = ""
    http_code: int = 0
    total_time: float = 0.0
    redirect_count: int = 0
    error: str | None = None
    response_headers: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_info(cls, info: dict[str, Any]) -> "ResponseInfo":
        clean = {key: value for key, value in info.items() if value is not None and key != "user_data"}
        return cls.model_validate(clean)
