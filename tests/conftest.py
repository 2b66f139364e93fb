"""
Shared test configuration and fixtures.

Provides in-memory master/slave queues and a stub endpoint that serves
a fixed tail cursor and segment listing for planner tests.
"""

from __future__ import annotations

import pytest

from queue_rollup.endpoint import QueueEndpoint
from queue_rollup.ids import RecordId, SegmentInfo
from queue_rollup.memory import InMemoryQueue


class StubQueue(QueueEndpoint):
    """Read-only endpoint with a fixed tail and segment listing."""

    def __init__(
        self,
        tail: RecordId,
        segments: list[SegmentInfo] | None = None,
        name: str = "stub",
    ):
        self.tail = tail
        self.segments = segments or []
        self._name = name
        self.list_calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def current_id(self) -> RecordId:
        return self.tail

    async def list_segments(self) -> list[SegmentInfo]:
        self.list_calls += 1
        return list(self.segments)

    async def rotate(self) -> RecordId:
        raise NotImplementedError

    async def fetch_raw(self, record_id: RecordId) -> bytes:
        raise NotImplementedError

    async def insert_raw(self, record_id: RecordId, payload: bytes) -> RecordId:
        raise NotImplementedError


def _seed(queue: InMemoryQueue, *segment_sizes: int) -> InMemoryQueue:
    """Append records so segment ``i`` holds ``segment_sizes[i]`` records
    after its header, rotating between segments."""
    for index, size in enumerate(segment_sizes):
        if index > 0:
            queue.open_segment()
        segment_id = queue.tail.segment_id
        for block in range(1, size + 1):
            queue.append(f"rec-{segment_id}-{block}".encode())
    return queue


@pytest.fixture
def seed():
    """Fill an in-memory queue: ``seed(queue, 3, 0, 2)``."""
    return _seed


@pytest.fixture
def master() -> InMemoryQueue:
    return InMemoryQueue("master")


@pytest.fixture
def slave() -> InMemoryQueue:
    return InMemoryQueue("slave")


@pytest.fixture
def stub():
    """Factory for ``StubQueue`` endpoints."""
    return StubQueue
