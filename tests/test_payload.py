from __future__ import annotations

import io
import json

import pytest
from pydantic import BaseModel

from fluent_http.exceptions import InvalidPayloadError
from fluent_http.payload import PayloadKind, PayloadResolver, classify_payload, resolve_payload
from fluent_http.request_options import BodyFormat, FilePart, OptionSet


class Item(BaseModel):
    key: str
    count: int = 1


def test_classify_payload_kinds() -> None:
    assert classify_payload(None) is PayloadKind.EMPTY
    assert classify_payload("") is PayloadKind.EMPTY
    assert classify_payload({}) is PayloadKind.EMPTY
    assert classify_payload("text") is PayloadKind.TEXT
    assert classify_payload(b"bytes") is PayloadKind.TEXT
    assert classify_payload(3) is PayloadKind.SCALAR
    assert classify_payload({"a": 1}) is PayloadKind.MAPPING
    assert classify_payload([1, 2]) is PayloadKind.SEQUENCE
    assert classify_payload(io.BytesIO(b"x")) is PayloadKind.STREAM
    assert classify_payload(lambda: b"") is PayloadKind.PRODUCER
    assert classify_payload(object()) is PayloadKind.UNSUPPORTED


def test_json_payload_is_encoded_with_content_type() -> None:
    options = OptionSet().set_body_format(BodyFormat.JSON).set_payload({"key": "test"})

    resolved = resolve_payload(options)

    assert resolved.content == json.dumps({"key": "test"}).encode()
    assert resolved.headers == {"content-type": "application/json"}


def test_json_keeps_custom_json_content_type() -> None:
    options = OptionSet().as_json().content_type("application/vnd.api+json").set_payload([1, 2])

    resolved = resolve_payload(options)

    assert resolved.content == b"[1, 2]"
    assert resolved.headers == {}


def test_json_accepts_pydantic_models() -> None:
    options = OptionSet().as_json().set_payload(Item(key="test"))

    assert json.loads(resolve_payload(options).content) == {"key": "test", "count": 1}


@pytest.mark.parametrize("payload", ["text", 42, io.BytesIO(b"data")])
def test_json_rejects_scalars_and_streams(payload) -> None:
    options = OptionSet().as_json().set_payload(payload)

    with pytest.raises(InvalidPayloadError, match="json"):
        resolve_payload(options)


def test_json_rejects_unserializable_values() -> None:
    options = OptionSet().as_json().set_payload({"when": object()})

    with pytest.raises(InvalidPayloadError, match="not JSON serializable"):
        resolve_payload(options)


def test_form_payload_is_url_encoded() -> None:
    options = OptionSet().set_body_format(BodyFormat.FORM).set_payload({"filter": "test", "page": "10"})

    resolved = resolve_payload(options)

    assert resolved.content == b"filter=test&page=10"
    assert resolved.headers == {"content-type": "application/x-www-form-urlencoded"}


def test_form_rejects_non_mappings_and_nested_values() -> None:
    with pytest.raises(InvalidPayloadError):
        resolve_payload(OptionSet().as_form_params().set_payload(["a", "b"]))
    with pytest.raises(InvalidPayloadError, match="flat"):
        resolve_payload(OptionSet().as_form_params().set_payload({"filter": {"nested": "x"}}))


def test_multipart_builds_body_and_boundary_header(tmp_path) -> None:
    path = tmp_path / "notes.txt"
    path.write_bytes(b"file contents")
    options = OptionSet().set_header("Content-Type", "application/json").as_multipart()
    options.set_payload({"title": "report", "file": FilePart.from_path(path, content_type="text/plain")})

    resolved = resolve_payload(options)

    content_type = resolved.headers["content-type"]
    assert content_type.startswith("multipart/form-data")
    assert "boundary=" in content_type
    boundary = content_type.split("boundary=", 1)[1]
    assert boundary.encode() in resolved.content
    assert b'name="title"' in resolved.content
    assert b"report" in resolved.content
    assert b'filename="notes.txt"' in resolved.content
    assert b"file contents" in resolved.content


def test_multipart_without_files_is_still_multipart() -> None:
    resolved = resolve_payload(OptionSet().as_multipart().set_payload({"field": "value"}))

    assert resolved.headers["content-type"].startswith("multipart/form-data; boundary=")
    assert b'name="field"' in resolved.content


def test_multipart_rejects_non_mappings() -> None:
    with pytest.raises(InvalidPayloadError, match="multipart"):
        resolve_payload(OptionSet().as_multipart().set_payload("plain text"))


def test_raw_passes_payload_through() -> None:
    stream = io.BytesIO(b"chunked")

    def producer() -> bytes:
        return b""

    assert resolve_payload(OptionSet().as_string().set_payload("hello")).content == "hello"
    assert resolve_payload(OptionSet().as_string().set_payload(stream)).content is stream
    assert resolve_payload(OptionSet().as_string().set_payload(producer)).content is producer


def test_raw_rejects_mapping_payload() -> None:
    options = OptionSet().set_body_format(BodyFormat.RAW).set_payload({"key": "test"})

    with pytest.raises(InvalidPayloadError, match="raw"):
        resolve_payload(options)


@pytest.mark.parametrize("body_format", list(BodyFormat))
@pytest.mark.parametrize("payload", [None, "", {}])
def test_empty_payload_has_no_body(body_format, payload) -> None:
    resolved = resolve_payload(OptionSet().set_body_format(body_format).set_payload(payload))

    assert resolved.content is None
    assert resolved.headers == {}


def test_missing_body_format_defaults_to_json() -> None:
    resolved = resolve_payload(OptionSet().set_payload({"a": 1}))

    assert resolved.body_format is BodyFormat.JSON


def test_resolving_twice_does_not_encode_twice() -> None:
    resolver = PayloadResolver()
    options = OptionSet().as_multipart().set_payload({"field": "value"})

    first = resolver.resolve(options)
    second = resolver.resolve(options)

    assert second is first
    assert second.content == first.content
    assert options.payload == {"field": "value"}


def test_resolved_json_is_not_double_encoded() -> None:
    options = OptionSet().as_json().set_payload({"key": "test"})

    resolve_payload(options)
    resolved = resolve_payload(options)

    assert json.loads(resolved.content) == {"key": "test"}


def test_new_payload_is_resolved_again() -> None:
    options = OptionSet().as_json().set_payload({"key": "first"})
    resolve_payload(options)

    options.set_payload({"key": "second"})

    assert json.loads(resolve_payload(options).content) == {"key": "second"}


def test_content_type_change_is_resolved_again() -> None:
    options = OptionSet().set_body_format(BodyFormat.JSON).set_payload({"key": "test"})
    assert resolve_payload(options).headers == {"content-type": "application/json"}

    options.content_type("application/vnd.api+json")

    assert resolve_payload(options).headers == {}
