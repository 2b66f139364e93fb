"""Tests for the plan data model."""

from __future__ import annotations

import pytest

from queue_rollup.exceptions import ValidationError
from queue_rollup.ids import RecordId
from queue_rollup.plan import (
    Plan,
    Step,
    StepAction,
    StepSnapshot,
    StepState,
    generate_sequence,
)


class TestGenerateSequence:
    """Tests for generate_sequence."""

    @pytest.mark.parametrize(
        "from_block,to_block,expected_len",
        [(1, 3, 3), (2, 2, 1), (3, 2, 0), (10, 1, 0), (1, 100, 100)],
    )
    def test_length(self, from_block, to_block, expected_len):
        seq = generate_sequence(5, from_block, to_block)
        assert len(seq) == max(0, to_block - from_block + 1) == expected_len

    def test_strictly_ascending_in_segment(self):
        seq = generate_sequence(7, 4, 9)
        assert [r.block_id for r in seq] == [4, 5, 6, 7, 8, 9]
        assert all(r.segment_id == 7 for r in seq)
        assert all(a < b for a, b in zip(seq, seq[1:]))


class TestStep:
    """Tests for Step."""

    def test_push_addresses(self):
        step = Step.push(3, 5)
        assert step.action is StepAction.PUSH
        assert step.source_id == RecordId(3, 5)
        assert step.target_id == RecordId(3, 4)

    def test_switch_has_no_addresses(self):
        step = Step.switch()
        assert step.is_switch
        assert step.source_id is None
        assert step.target_id is None

    def test_push_from_block_zero_rejected(self):
        with pytest.raises(ValidationError):
            Step.push(0, 0)

    def test_to_dict(self):
        assert Step.switch().to_dict() == {"action": "switch"}
        assert Step.push(0, 2).to_dict() == {"action": "push", "log_id": "0", "block_id": "2"}

    def test_str(self):
        assert str(Step.push(0, 2)) == "push 0/2 -> 0/1"
        assert str(Step.switch()) == "switch"

    def test_steps_are_immutable(self):
        step = Step.push(0, 1)
        with pytest.raises(AttributeError):
            step.block_id = 2


class TestStepSnapshot:
    """Tests for StepSnapshot."""

    def test_updates_return_new_snapshots(self):
        initial = StepSnapshot(Step.push(0, 1))
        running = initial.with_state(StepState.RUNNING)
        traced = running.with_trace("blob fetched")

        assert initial.state is StepState.INIT
        assert initial.trace == ()
        assert running.state is StepState.RUNNING
        assert traced.trace == ("blob fetched",)
        assert running.trace == ()

    def test_to_dict(self):
        snapshot = StepSnapshot(Step.switch(), StepState.SUCC, ("switched",))
        assert snapshot.to_dict() == {"action": "switch", "state": "succ", "trace": ["switched"]}


class TestPlan:
    """Tests for Plan."""

    def test_empty_plan(self):
        plan = Plan()
        assert plan.is_empty
        assert len(plan) == 0
        assert plan.initial_snapshots() == ()

    def test_counts_and_iteration(self):
        steps = (Step.push(0, 6), Step.push(0, 7), Step.switch(), Step.push(1, 1))
        plan = Plan(steps=steps)
        assert len(plan) == 4
        assert list(plan) == list(steps)
        assert plan[2].is_switch
        assert plan.push_count == 3
        assert plan.switch_count == 1

    def test_initial_snapshots(self):
        plan = Plan(steps=(Step.push(0, 1), Step.switch()))
        snapshots = plan.initial_snapshots()
        assert [s.state for s in snapshots] == [StepState.INIT, StepState.INIT]
        assert [s.step for s in snapshots] == list(plan)

    def test_to_dict(self):
        plan = Plan(
            steps=(Step.push(0, 2),),
            master_id=RecordId(0, 2),
            slave_id=RecordId(0, 1),
            source_segments=(0,),
        )
        assert plan.to_dict() == {
            "master_id": {"log_id": "0", "block_id": "2"},
            "slave_id": {"log_id": "0", "block_id": "1"},
            "source_segments": ["0"],
            "steps": [{"action": "push", "log_id": "0", "block_id": "2"}],
        }
