"""Tests for rollup logging."""

from __future__ import annotations

import json
import logging

import pytest

from queue_rollup.exceptions import TransportError
from queue_rollup.logging_utils import (
    RollupLoggerAdapter,
    StructuredJsonFormatter,
    configure_logging,
    step_context,
)
from queue_rollup.plan import Step, StepSnapshot, StepState


def make_record(msg: str = "hello", exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "queue_rollup.executor", logging.WARNING, __file__, 1, msg, None, exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestStepContext:
    """Tests for step_context."""

    def test_push_context(self):
        snapshot = StepSnapshot(Step.push(0, 3), StepState.FAIL)

        assert step_context(2, snapshot) == {
            "step_index": 2,
            "action": "push",
            "state": "fail",
            "source": "0/3",
            "target": "0/2",
        }

    def test_switch_context(self):
        snapshot = StepSnapshot(Step.switch(), StepState.SUCC)

        assert step_context(0, snapshot) == {
            "step_index": 0,
            "action": "switch",
            "state": "succ",
        }


class TestStructuredJsonFormatter:
    """Tests for StructuredJsonFormatter."""

    def test_context_fields(self):
        context = step_context(1, StepSnapshot(Step.push(0, 2), StepState.SUCC))
        record = make_record("Step 2/4 done", master="m", slave="s", **context)

        entry = json.loads(StructuredJsonFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "queue_rollup.executor"
        assert entry["message"] == "Step 2/4 done"
        assert entry["master"] == "m"
        assert entry["step_index"] == 1
        assert entry["action"] == "push"
        assert entry["source"] == "0/2"
        assert "timestamp" in entry

    def test_unrelated_attributes_are_not_emitted(self):
        entry = json.loads(StructuredJsonFormatter().format(make_record(request_body="x")))

        assert "request_body" not in entry
        assert "master" not in entry

    def test_rollup_error_details(self):
        error = TransportError("slave", "insert_raw", "bad id", status=400)
        record = make_record(exc_info=(type(error), error, None))

        entry = json.loads(StructuredJsonFormatter().format(record))

        assert entry["error"] == {
            "endpoint": "slave",
            "operation": "insert_raw",
            "reason": "bad id",
            "status": 400,
        }
        assert "exception" not in entry

    def test_other_exceptions_keep_traceback(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            record = make_record(exc_info=(type(e), e, e.__traceback__))

        entry = json.loads(StructuredJsonFormatter().format(record))

        assert "RuntimeError: boom" in entry["exception"]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_handler(self, restore_root_logger):
        root = configure_logging(logging.DEBUG, json_logs=True)
        configure_logging(logging.DEBUG, json_logs=True)

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredJsonFormatter)
        assert root.level == logging.DEBUG

    def test_text_handler(self, restore_root_logger):
        root = configure_logging(logging.WARNING)

        assert not isinstance(root.handlers[0].formatter, StructuredJsonFormatter)
        assert root.level == logging.WARNING


class TestRollupLoggerAdapter:
    """Tests for RollupLoggerAdapter."""

    def test_adds_endpoint_pair_and_step(self, caplog):
        adapter = RollupLoggerAdapter(logging.getLogger("queue_rollup.test_adapter"), "m", "s")

        with caplog.at_level(logging.INFO, logger="queue_rollup.test_adapter"):
            adapter.info("step done", extra={"step_index": 3})

        record = caplog.records[-1]
        assert record.master == "m"
        assert record.slave == "s"
        assert record.step_index == 3

    def test_caller_extra_is_not_modified(self):
        adapter = RollupLoggerAdapter(logging.getLogger("queue_rollup.test_adapter"), "m", "s")
        extra = {"step_index": 0}

        _, kwargs = adapter.process("msg", {"extra": extra})

        assert extra == {"step_index": 0}
        assert kwargs["extra"] == {"master": "m", "slave": "s", "step_index": 0}
