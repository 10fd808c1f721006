"""Classify chunks of concurrently streamed responses."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Iterable, Iterator

from .exceptions import TransportError
from .response import ResponseView
from .transport import Chunk


class ChunkState(str, Enum):
    PENDING = "PENDING"
    FULFILLED = "FULFILLED"
    TIMEOUT = "TIMEOUT"
    REJECTED = "REJECTED"


class StreamChunkClassifier:
    """Settle one ``(response, chunk)`` event into a ``ChunkState``.

    A failure wins over completion, completion over a timeout. Any other chunk
    leaves the classifier ``PENDING`` and none of the callbacks run::

        for response, chunk in client.stream(responses):
            (
                StreamChunkClassifier(response, chunk)
                .on_fulfilled(lambda r: print(r.status()))
                .on_timeout(lambda r: print("timed out", r.request_url()))
                .on_rejected(lambda error, r: print(error))
            )
    """

    def __init__(self, response: ResponseView, chunk: Chunk) -> None:
        self.response = response
        self.chunk = chunk
        self.error: TransportError | None = None
        self.state = self._classify()

    @classmethod
    def from_chunk(cls, response: ResponseView, chunk: Chunk) -> "StreamChunkClassifier":
        return cls(response, chunk)

    def _classify(self) -> ChunkState:
        try:
            if self.chunk.is_last():
                return ChunkState.FULFILLED
            if self.chunk.is_timeout():
                return ChunkState.TIMEOUT
        except TransportError as exc:
            self.error = exc
            return ChunkState.REJECTED
        return ChunkState.PENDING

    @property
    def is_pending(self) -> bool:
        return self.state is ChunkState.PENDING

    @property
    def is_fulfilled(self) -> bool:
        return self.state is ChunkState.FULFILLED

    @property
    def is_timeout(self) -> bool:
        return self.state is ChunkState.TIMEOUT

    @property
    def is_rejected(self) -> bool:
        return self.state is ChunkState.REJECTED

    def on_fulfilled(self, callback: Callable[[ResponseView], object]) -> "StreamChunkClassifier":
        if self.is_fulfilled:
            callback(self.response)
        return self

    def on_timeout(self, callback: Callable[[ResponseView], object]) -> "StreamChunkClassifier":
        if self.is_timeout:
            callback(self.response)
        return self

    def on_rejected(
        self, callback: Callable[[TransportError, ResponseView], object]
    ) -> "StreamChunkClassifier":
        if self.is_rejected:
            callback(self.error, self.response)
        return self


def classify(pairs: Iterable[tuple[ResponseView, Chunk]]) -> Iterator[StreamChunkClassifier]:
    """Yield a classifier for every settled chunk, skipping pending ones."""
    for response, chunk in pairs:
        classifier = StreamChunkClassifier(response, chunk)
        if not classifier.is_pending:
            yield classifier
