"""
Rollup logging.

Executor log lines carry the endpoint pair and, for step events, the
step's index, action, state and source record. In JSON mode these are
emitted as top-level fields so a log collector can follow one rollup
step by step:

    {"timestamp": "...", "level": "WARNING", "logger": "queue_rollup.executor",
     "message": "Step 3/7 failed", "master": "master", "slave": "slave",
     "step_index": 2, "action": "push", "state": "fail", "source": "0/3",
     "error": {"endpoint": "slave", "operation": "insert_raw", ...}}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .exceptions import RollupError
from .plan import StepSnapshot

CONTEXT_FIELDS = ("master", "slave", "step_index", "action", "state", "source", "target")

TEXT_FORMAT = "%(levelname)s  %(name)s  %(message)s"


class StructuredJsonFormatter(logging.Formatter):
    """One JSON object per line with the rollup context fields.

    A ``RollupError`` attached via ``exc_info`` contributes its details
    under ``error`` instead of a traceback.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value

        if record.exc_info:
            error = record.exc_info[1]
            if isinstance(error, RollupError):
                entry["error"] = error.details
            else:
                entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def configure_logging(level: int = logging.INFO, json_logs: bool = False) -> logging.Logger:
    """Install a single stdout handler on the root logger.

    Args:
        level: Logging level
        json_logs: Emit ``StructuredJsonFormatter`` lines instead of text
    """
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout if json_logs else sys.stderr)
    handler.setFormatter(StructuredJsonFormatter() if json_logs else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    return root


def step_context(index: int, snapshot: StepSnapshot) -> dict[str, Any]:
    """Log fields describing one step snapshot."""
    step = snapshot.step
    context: dict[str, Any] = {
        "step_index": index,
        "action": step.action.value,
        "state": snapshot.state.value,
    }
    if step.source_id is not None:
        context["source"] = str(step.source_id)
        context["target"] = str(step.target_id)
    return context


class RollupLoggerAdapter(logging.LoggerAdapter):
    """Adds the master/slave pair to every record.

    Per-call ``extra`` (typically ``step_context``) is merged on top
    without modifying the caller's dict.
    """

    def __init__(self, logger: logging.Logger, master: str, slave: str) -> None:
        super().__init__(logger, {"master": master, "slave": slave})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs
