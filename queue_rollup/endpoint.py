"""
Abstract queue endpoint interface.

Defines the contract a remote log queue must fulfil to take part in a
rollup, either as the master (read only) or as the slave (rotated and
appended to).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .ids import RecordId, SegmentInfo


class QueueEndpoint(ABC):
    """Remote append-only segmented log queue.

    Every method is a suspension point. Implementations raise
    ``TransportError`` when the endpoint is unreachable or answers
    with a non-success response.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable label used in logs and errors."""
        pass

    @abstractmethod
    async def current_id(self) -> RecordId:
        """Get the tail cursor (id of the last written record)."""
        pass

    @abstractmethod
    async def list_segments(self) -> list[SegmentInfo]:
        """List segment metadata.

        The order of the returned list is not guaranteed.
        """
        pass

    @abstractmethod
    async def rotate(self) -> RecordId:
        """Close the current segment and open a new one.

        Returns:
            The new tail cursor
        """
        pass

    @abstractmethod
    async def fetch_raw(self, record_id: RecordId) -> bytes:
        """Fetch the exact stored payload of one record."""
        pass

    @abstractmethod
    async def insert_raw(self, record_id: RecordId, payload: bytes) -> RecordId:
        """Append a raw payload at the tail.

        Args:
            record_id: Destination addressing; the endpoint may reject the
                write when it does not match its own tail
            payload: Record bytes as returned by ``fetch_raw``

        Returns:
            Id the endpoint assigned to the new record
        """
        pass

    async def close(self) -> None:
        """Release resources held by the endpoint."""
        pass

    async def __aenter__(self) -> QueueEndpoint:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
