"""
In-memory queue endpoint.

Follows the log queue's addressing rules: every segment opens with a
header record at block 0, the tail cursor is the id of the last record,
and a raw insert is accepted only when addressed with the current tail.
"""

from __future__ import annotations

import logging

from .endpoint import QueueEndpoint
from .exceptions import TransportError
from .ids import RecordId, SegmentInfo

logger = logging.getLogger(__name__)


class InMemoryQueue(QueueEndpoint):
    """Queue endpoint held entirely in memory.

    Example:
        >>> master = InMemoryQueue("master")
        >>> master.append(b"hello")
        RecordId(segment_id=0, block_id=1)
    """

    def __init__(self, name: str = "memory", first_segment: int = 0) -> None:
        self._name = name
        self._segments: dict[int, list[bytes]] = {first_segment: [_header(first_segment)]}

    @property
    def name(self) -> str:
        return self._name

    @property
    def tail(self) -> RecordId:
        segment_id = max(self._segments)
        return RecordId(segment_id, len(self._segments[segment_id]) - 1)

    def append(self, payload: bytes) -> RecordId:
        """Write a record at the tail (seeding helper)."""
        segment_id = max(self._segments)
        self._segments[segment_id].append(payload)
        return self.tail

    def records(self, segment_id: int) -> list[bytes]:
        """Payloads of one segment, header first."""
        return list(self._segments.get(segment_id, []))

    async def current_id(self) -> RecordId:
        return self.tail

    async def list_segments(self) -> list[SegmentInfo]:
        return [
            SegmentInfo(
                segment_id=segment_id,
                file_ref=f"/{self._name}-{segment_id}.binlog",
                items_count=len(blocks),
                bytes_count=sum(len(b) for b in blocks),
            )
            for segment_id, blocks in self._segments.items()
        ]

    def open_segment(self) -> RecordId:
        """Close the current segment and start a new one (seeding helper)."""
        segment_id = max(self._segments) + 1
        self._segments[segment_id] = [_header(segment_id)]
        return self.tail

    async def rotate(self) -> RecordId:
        self.open_segment()
        logger.debug(f"{self._name}: rotated to segment {self.tail.segment_id}")
        return self.tail

    async def fetch_raw(self, record_id: RecordId) -> bytes:
        blocks = self._segments.get(record_id.segment_id)
        if blocks is None or record_id.block_id >= len(blocks):
            raise TransportError(
                self._name, "fetch_raw", f"record {record_id} not found", status=404
            )
        return blocks[record_id.block_id]

    async def insert_raw(self, record_id: RecordId, payload: bytes) -> RecordId:
        tail = self.tail
        if record_id != tail:
            raise TransportError(
                self._name,
                "insert_raw",
                f"record id does not match tail: expected {tail}, got {record_id}",
                status=400,
            )
        return self.append(payload)


def _header(segment_id: int) -> bytes:
    return f"segment:{segment_id}".encode()
