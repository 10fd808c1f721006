from __future__ import annotations

from types import SimpleNamespace

import pytest
from pydantic import BaseModel

from fluent_http.exceptions import (
    DecodeError,
    RequestTimeoutError,
    TransportError,
    UnsupportedOperationError,
)
from fluent_http.response import ResponseView
from fluent_http.testing import FakeResponseHandle


USERS_BODY = '{"id" : 1, "users" : [{"id" : 1}, {"id" : 2}]}'


class CountingHandle(FakeResponseHandle):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.body_reads = 0

    def read_body(self, throw_on_error: bool = False) -> bytes:
        self.body_reads += 1
        return super().read_body(throw_on_error)


class UserList(BaseModel):
    id: int
    users: list[dict[str, int]]


def view(body: str = "", **info) -> ResponseView:
    info.setdefault("http_code", 200)
    return ResponseView(FakeResponseHandle(body, info))


def classification(status: int) -> tuple[bool, bool, bool, bool]:
    response = view(http_code=status)
    return (
        response.is_success(),
        response.is_redirect(),
        response.is_client_error(),
        response.is_server_error(),
    )


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (199, (False, False, False, False)),
        (200, (True, False, False, False)),
        (204, (True, False, False, False)),
        (299, (True, False, False, False)),
        (300, (False, True, False, False)),
        (399, (False, True, False, False)),
        (400, (False, False, True, False)),
        (499, (False, False, True, False)),
        (500, (False, False, False, True)),
        (600, (False, False, False, True)),
        (700, (False, False, False, True)),
    ],
)
def test_status_classification(status: int, expected: tuple[bool, bool, bool, bool]) -> None:
    assert classification(status) == expected


def test_header_lookup_is_case_insensitive() -> None:
    response = view(response_headers={"G-Client": "Yeah"})

    assert response.header("g-client") == "Yeah"
    assert response.header("G-CLIENT") == "Yeah"
    assert response.headers()["g-client"] == "Yeah"


def test_missing_header_is_empty_string() -> None:
    assert view().header("x-missing") == ""


def test_first_header_value_wins() -> None:
    response = view(response_headers={"set-cookie": ["a=1", "b=2"]})

    assert response.header("Set-Cookie") == "a=1"
    assert response.header_values("set-cookie") == ["a=1", "b=2"]


def test_body_as_string() -> None:
    response = view("this is a test")

    assert response.body() == b"this is a test"
    assert response.as_string() == "this is a test"


def test_text_uses_declared_charset() -> None:
    response = ResponseView(
        FakeResponseHandle(
            "café".encode("latin-1"),
            {"http_code": 200, "response_headers": {"content-type": "text/plain; charset=latin-1"}},
        )
    )

    assert response.text() == "café"


def test_body_is_read_once() -> None:
    handle = CountingHandle(USERS_BODY, {"http_code": 200})
    response = ResponseView(handle)

    assert response.body() == response.body()
    response.as_map()
    response.as_object()
    assert handle.body_reads == 1


def test_body_as_object_and_map() -> None:
    response = view(USERS_BODY)

    decoded = response.as_object()
    assert isinstance(decoded, SimpleNamespace)
    assert decoded.users[1].id == 2
    assert response.as_map() == {"id": 1, "users": [{"id": 1}, {"id": 2}]}


def test_body_as_collection() -> None:
    assert view("[1, 2, 3]").as_collection() == [1, 2, 3]
    assert view('{"a": 1, "b": 2}').as_collection() == [1, 2]


def test_body_as_model() -> None:
    model = view(USERS_BODY).as_model(UserList)

    assert model.users == [{"id": 1}, {"id": 2}]


def test_invalid_json_raises_decode_error() -> None:
    with pytest.raises(DecodeError):
        view("not json").as_map()
    with pytest.raises(DecodeError):
        view("").as_object()
    with pytest.raises(DecodeError):
        view('{"id": "x"}').as_model(UserList)


def test_content_type_checks() -> None:
    response = view(USERS_BODY, response_headers={"content-type": "application/json; charset=utf-8"})

    assert response.content_type() == "application/json; charset=utf-8"
    assert response.is_json()
    assert not view("x", response_headers={"content-type": "text/html"}).is_json()


def test_info_accessors() -> None:
    response = view(url="http://localhost.test/users", total_time=0.25, user_data=["item"])

    assert response.request_url() == "http://localhost.test/users"
    assert response.execution_time() == 0.25
    assert response.custom_data() == ["item"]


def test_execution_time_defaults_to_zero() -> None:
    assert view().execution_time() == 0.0
    assert view(total_time=None).execution_time() == 0.0


def test_to_stream_unsupported_by_fake_handle() -> None:
    with pytest.raises(UnsupportedOperationError):
        view("data").to_stream()


def test_transport_failure_without_throw_errors() -> None:
    error = TransportError("connection refused")
    response = ResponseView(FakeResponseHandle("", {"http_code": 0}, error))

    assert response.status() == 0
    assert response.headers() == {}
    assert response.body() == b""
    assert response.transport_error() is error
    assert not response.is_success()


def test_transport_failure_with_throw_errors() -> None:
    error = RequestTimeoutError("too slow")
    response = ResponseView(FakeResponseHandle("", {}, error), throw_errors=True)

    with pytest.raises(RequestTimeoutError):
        response.status()
    with pytest.raises(RequestTimeoutError):
        response.body()
