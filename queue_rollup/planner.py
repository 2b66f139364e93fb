"""
Rollup planner.

Compares the master's and the slave's tail cursors and the master's
segment listing, and produces the ordered plan that brings the slave's
tail up to the master's:

    master segments 1..3, slave tail in segment 2
      segment 1 - skipped
      segment 2 - pushes for the blocks after the slave's tail
      segment 3 - switch, then pushes for every block

The planner only reads from the endpoints.
"""

from __future__ import annotations

import logging

from .endpoint import QueueEndpoint
from .exceptions import ValidationError
from .ids import RecordId, SegmentInfo
from .plan import Plan, Step, generate_sequence

logger = logging.getLogger(__name__)


class Planner:
    """Builds rollup plans.

    By default the segment listing is assumed to be unique, contiguous and
    to start at the slave's segment, without checking it. With
    ``strict=True`` a listing that breaks any of these is rejected.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    async def build_plan(self, master: QueueEndpoint, slave: QueueEndpoint) -> Plan:
        """Compute the plan that replicates master's delta onto slave.

        Returns:
            The plan; empty when the slave is caught up or ahead

        Raises:
            TransportError: If reading either endpoint fails
            ValidationError: If the master's segment listing is unusable
        """
        master_id = await master.current_id()
        slave_id = await slave.current_id()

        if slave_id >= master_id:
            if slave_id > master_id:
                logger.info(f"Slave {slave.name} at {slave_id} is ahead of master at {master_id}")
            else:
                logger.debug(f"Slave {slave.name} caught up at {slave_id}")
            return Plan(master_id=master_id, slave_id=slave_id)

        segments = await master.list_segments()
        source = sorted(
            (s for s in segments if s.segment_id >= slave_id.segment_id),
            key=lambda s: s.segment_id,
        )

        missing = [s.segment_id for s in source if s.items_count is None]
        if missing:
            raise ValidationError(
                "items_count",
                "source segments do not report items_count",
                ", ".join(str(m) for m in missing),
            )

        if self.strict:
            self._check_contiguous(source, slave_id)

        steps: list[Step] = []
        for index, segment in enumerate(source):
            if index > 0:
                steps.append(Step.switch())
            for record_id in self._segment_records(segment, slave_id):
                steps.append(Step.push(record_id.segment_id, record_id.block_id))

        plan = Plan(
            steps=tuple(steps),
            master_id=master_id,
            slave_id=slave_id,
            source_segments=tuple(s.segment_id for s in source),
        )
        logger.info(
            f"Planned rollup {master.name} -> {slave.name}: "
            f"{plan.push_count} pushes, {plan.switch_count} switches "
            f"({slave_id} -> {master_id})"
        )
        return plan

    @staticmethod
    def _segment_records(segment: SegmentInfo, slave_id: RecordId) -> list[RecordId]:
        """Master records of one segment the slave still lacks."""
        to_block = segment.last_block_id
        if not to_block:
            # empty or header only
            return []

        from_block = 1
        if segment.segment_id == slave_id.segment_id:
            from_block = slave_id.next().block_id

        return generate_sequence(segment.segment_id, from_block, to_block)

    @staticmethod
    def _check_contiguous(source: list[SegmentInfo], slave_id: RecordId) -> None:
        if not source:
            raise ValidationError(
                "segments", "no segment at or after the slave's segment", slave_id.segment_id
            )
        if source[0].segment_id != slave_id.segment_id:
            raise ValidationError(
                "segments",
                f"listing starts at segment {source[0].segment_id}, "
                f"expected {slave_id.segment_id}",
            )
        for prev, cur in zip(source, source[1:]):
            if cur.segment_id == prev.segment_id:
                raise ValidationError("segments", "duplicate segment id", cur.segment_id)
            if cur.segment_id != prev.segment_id + 1:
                raise ValidationError(
                    "segments",
                    f"gap between segments {prev.segment_id} and {cur.segment_id}",
                )


async def plan_rollup(
    master: QueueEndpoint,
    slave: QueueEndpoint,
    strict: bool = False,
) -> Plan:
    """Build a rollup plan with a one-off planner."""
    return await Planner(strict=strict).build_plan(master, slave)
