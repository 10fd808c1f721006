from __future__ import annotations

import pytest

from fluent_http.config import Config
from fluent_http.exceptions import RequestTimeoutError, TransportError
from fluent_http.response import ResponseView
from fluent_http.stream import ChunkState, StreamChunkClassifier, classify
from fluent_http.testing import FakeResponseHandle, MockClient
from fluent_http.transport import Chunk


class Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def fulfilled(self, response: ResponseView) -> None:
        self.calls.append(("fulfilled", response))

    def timeout(self, response: ResponseView) -> None:
        self.calls.append(("timeout", response))

    def rejected(self, error: TransportError, response: ResponseView) -> None:
        self.calls.append(("rejected", error, response))


def dispatch(chunk: Chunk) -> tuple[StreamChunkClassifier, Recorder]:
    response = ResponseView(FakeResponseHandle("", {"http_code": 200}))
    recorder = Recorder()
    classifier = (
        StreamChunkClassifier(response, chunk)
        .on_fulfilled(recorder.fulfilled)
        .on_timeout(recorder.timeout)
        .on_rejected(recorder.rejected)
    )
    return classifier, recorder


def test_last_chunk_is_fulfilled() -> None:
    classifier, recorder = dispatch(Chunk(last=True))

    assert classifier.state is ChunkState.FULFILLED
    assert [call[0] for call in recorder.calls] == ["fulfilled"]
    assert recorder.calls[0][1] is classifier.response


def test_timeout_chunk_is_timeout() -> None:
    classifier, recorder = dispatch(Chunk.timeout())

    assert classifier.state is ChunkState.TIMEOUT
    assert [call[0] for call in recorder.calls] == ["timeout"]


def test_failed_chunk_is_rejected_with_error() -> None:
    error = TransportError("connection reset")

    classifier, recorder = dispatch(Chunk.failure(error))

    assert classifier.state is ChunkState.REJECTED
    assert classifier.error is error
    assert recorder.calls == [("rejected", error, classifier.response)]


@pytest.mark.parametrize("chunk", [Chunk(first=True), Chunk(content=b"partial")])
def test_intermediate_chunks_stay_pending(chunk: Chunk) -> None:
    classifier, recorder = dispatch(chunk)

    assert classifier.is_pending
    assert recorder.calls == []


def test_failure_wins_over_last_flag() -> None:
    error = TransportError("broken")

    classifier, _ = dispatch(Chunk(last=True, error=error))

    assert classifier.is_rejected


def test_failure_chunk_raises_from_accessors() -> None:
    chunk = Chunk.failure(TransportError("broken"))

    with pytest.raises(TransportError):
        chunk.is_last()
    with pytest.raises(TransportError):
        chunk.get_content()
    assert chunk.terminal


def test_streaming_mock_client_fulfils_every_response() -> None:
    client = MockClient(Config("http://localhost.test")).mock_body(["part one, ", "part two"])
    responses = [client.set_user_data(index).get(f"items/{index}") for index in range(3)]

    settled = list(classify(client.stream(responses)))

    assert [classifier.state for classifier in settled] == [ChunkState.FULFILLED] * 3
    assert sorted(classifier.response.custom_data() for classifier in settled) == [0, 1, 2]
    assert settled[0].response.body() == b"part one, part two"


def test_streaming_mock_client_rejects_and_times_out() -> None:
    client = MockClient(Config("http://localhost.test"))
    rejected = client.mock_error(TransportError("refused")).get("a")
    timed_out = client.mock_error(RequestTimeoutError("slow")).get("b")

    states = {
        classifier.response.request_url(): classifier.state
        for classifier in classify(client.stream([rejected, timed_out]))
    }

    assert states == {
        "http://localhost.test/a": ChunkState.REJECTED,
        "http://localhost.test/b": ChunkState.TIMEOUT,
    }


def test_from_chunk_classifies_like_the_constructor() -> None:
    response = ResponseView(FakeResponseHandle("", {"http_code": 200}))

    classifier = StreamChunkClassifier.from_chunk(response, Chunk.timeout())

    assert isinstance(classifier, StreamChunkClassifier)
    assert classifier.response is response
    assert classifier.is_timeout
