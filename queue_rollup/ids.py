"""
Record identifiers and segment metadata.

Ids are unsigned 64-bit counters. The queue service transmits them as
decimal strings so that JSON number precision never truncates them;
``from_dict`` accepts both strings and ints.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .exceptions import ValidationError

U64_MAX = 2**64 - 1


def parse_u64(value: Any, field: str) -> int:
    """Parse an unsigned 64-bit counter.

    Raises:
        ValidationError: If the value is not an integer in ``[0, 2**64 - 1]``
    """
    if isinstance(value, bool):
        raise ValidationError(field, "expected unsigned integer", value)
    if isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise ValidationError(field, "expected decimal digits", value)
        value = int(text)
    if not isinstance(value, int):
        raise ValidationError(field, "expected unsigned integer", value)
    if value < 0 or value > U64_MAX:
        raise ValidationError(field, "out of u64 range", value)
    return value


@dataclass(frozen=True, order=True)
class RecordId:
    """Identifies one record within one segment.

    Ordering is lexicographic on ``(segment_id, block_id)``.

    Attributes:
        segment_id: Segment (log file) number
        block_id: Block number within the segment
    """

    segment_id: int
    block_id: int

    def __post_init__(self) -> None:
        """Reject values outside the u64 range."""
        parse_u64(self.segment_id, "segment_id")
        parse_u64(self.block_id, "block_id")

    def previous(self) -> RecordId:
        """Id of the preceding block in the same segment."""
        if self.block_id == 0:
            raise ValidationError("block_id", "no block precedes block 0", self)
        return RecordId(self.segment_id, self.block_id - 1)

    def next(self) -> RecordId:
        """Id of the following block in the same segment."""
        if self.block_id == U64_MAX:
            raise ValidationError("block_id", "block counter overflow", self)
        return RecordId(self.segment_id, self.block_id + 1)

    def to_dict(self) -> dict[str, str]:
        """Serialize using the wire field names."""
        return {"log_id": str(self.segment_id), "block_id": str(self.block_id)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordId:
        """Deserialize from the wire representation."""
        try:
            return cls(
                segment_id=parse_u64(data["log_id"], "log_id"),
                block_id=parse_u64(data["block_id"], "block_id"),
            )
        except KeyError as e:
            raise ValidationError(str(e.args[0]), "missing field") from e

    def __str__(self) -> str:
        return f"{self.segment_id}/{self.block_id}"


# An endpoint's write position is the id of its last written record.
TailCursor = RecordId


@dataclass(frozen=True)
class SegmentInfo:
    """Metadata for one segment file on an endpoint.

    ``items_count`` includes the header block written when the segment
    was opened, so the last addressable block is ``items_count - 1``.
    It is ``None`` when the listing did not report it.
    """

    segment_id: int
    file_ref: str = ""
    items_count: int | None = None
    bytes_count: int | None = None

    def __post_init__(self) -> None:
        parse_u64(self.segment_id, "segment_id")
        if self.items_count is not None:
            parse_u64(self.items_count, "items_count")
        if self.bytes_count is not None:
            parse_u64(self.bytes_count, "bytes_count")

    @property
    def last_block_id(self) -> int | None:
        """Last addressable block, or None for an empty or unknown segment."""
        if not self.items_count:
            return None
        return self.items_count - 1

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"log_id": str(self.segment_id), "log_file": self.file_ref}
        if self.items_count is not None:
            data["items_count"] = self.items_count
        if self.bytes_count is not None:
            data["bytes_count"] = self.bytes_count
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SegmentInfo:
        if "log_id" not in data:
            raise ValidationError("log_id", "missing field")
        items_count = data.get("items_count")
        bytes_count = data.get("bytes_count")
        return cls(
            segment_id=parse_u64(data["log_id"], "log_id"),
            file_ref=str(data.get("log_file", "")),
            items_count=None if items_count is None else parse_u64(items_count, "items_count"),
            bytes_count=None if bytes_count is None else parse_u64(bytes_count, "bytes_count"),
        )
