"""
Rollup plan data model.

A plan is an immutable, ordered sequence of steps. Execution status is
kept apart from the steps in immutable ``StepSnapshot`` values, so a
plan can be displayed or inspected while a run is in progress.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .exceptions import ValidationError
from .ids import RecordId, parse_u64


class StepAction(Enum):
    """Kinds of plan steps."""

    SWITCH = "switch"
    PUSH = "push"


class StepState(Enum):
    """Execution state of a step."""

    INIT = "init"
    RUNNING = "running"
    SUCC = "succ"
    FAIL = "fail"


@dataclass(frozen=True)
class Step:
    """One rollup action.

    ``SWITCH`` rotates the slave to a new segment. ``PUSH`` copies
    master record ``(segment_id, block_id)`` to slave target
    ``(segment_id, block_id - 1)``.
    """

    action: StepAction
    segment_id: int | None = None
    block_id: int | None = None

    @classmethod
    def switch(cls) -> Step:
        return cls(StepAction.SWITCH)

    @classmethod
    def push(cls, segment_id: int, block_id: int) -> Step:
        parse_u64(segment_id, "segment_id")
        if parse_u64(block_id, "block_id") < 1:
            raise ValidationError("block_id", "push source must be block 1 or later", block_id)
        return cls(StepAction.PUSH, segment_id, block_id)

    @property
    def is_switch(self) -> bool:
        return self.action is StepAction.SWITCH

    @property
    def source_id(self) -> RecordId | None:
        """Master record read by a push."""
        if self.action is not StepAction.PUSH:
            return None
        return RecordId(self.segment_id, self.block_id)

    @property
    def target_id(self) -> RecordId | None:
        """Slave position a push writes after.

        One less than the source: the slave accepts a raw insert only
        when addressed with its current tail.
        """
        if self.action is not StepAction.PUSH:
            return None
        return self.source_id.previous()

    def to_dict(self) -> dict[str, Any]:
        if self.action is StepAction.SWITCH:
            return {"action": "switch"}
        return {
            "action": "push",
            "log_id": str(self.segment_id),
            "block_id": str(self.block_id),
        }

    def __str__(self) -> str:
        if self.action is StepAction.SWITCH:
            return "switch"
        return f"push {self.source_id} -> {self.target_id}"


@dataclass(frozen=True)
class StepSnapshot:
    """Execution status of one step at a point in time."""

    step: Step
    state: StepState = StepState.INIT
    trace: tuple[str, ...] = ()

    def with_state(self, state: StepState) -> StepSnapshot:
        return replace(self, state=state)

    def with_trace(self, message: str) -> StepSnapshot:
        return replace(self, trace=(*self.trace, message))

    def to_dict(self) -> dict[str, Any]:
        data = self.step.to_dict()
        data["state"] = self.state.value
        data["trace"] = list(self.trace)
        return data


def generate_sequence(segment_id: int, from_block: int, to_block: int) -> list[RecordId]:
    """Generate ids ``from_block..to_block`` (inclusive) within a segment.

    Returns an empty list when ``from_block > to_block``.
    """
    return [RecordId(segment_id, block_id) for block_id in range(from_block, to_block + 1)]


@dataclass(frozen=True)
class Plan:
    """Ordered sequence of rollup steps.

    An empty plan means the slave has already caught up.

    Attributes:
        steps: Steps in execution order
        master_id: Master tail cursor the plan was computed from
        slave_id: Slave tail cursor the plan was computed from
    """

    steps: tuple[Step, ...] = ()
    master_id: RecordId | None = None
    slave_id: RecordId | None = None
    source_segments: tuple[int, ...] = ()

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __getitem__(self, index: int) -> Step:
        return self.steps[index]

    @property
    def is_empty(self) -> bool:
        return not self.steps

    @property
    def switch_count(self) -> int:
        return sum(1 for step in self.steps if step.action is StepAction.SWITCH)

    @property
    def push_count(self) -> int:
        return sum(1 for step in self.steps if step.action is StepAction.PUSH)

    def initial_snapshots(self) -> tuple[StepSnapshot, ...]:
        """Snapshots for a plan that has not started."""
        return tuple(StepSnapshot(step) for step in self.steps)

    def to_dict(self) -> dict[str, Any]:
        return {
            "master_id": self.master_id.to_dict() if self.master_id else None,
            "slave_id": self.slave_id.to_dict() if self.slave_id else None,
            "source_segments": [str(s) for s in self.source_segments],
            "steps": [step.to_dict() for step in self.steps],
        }
