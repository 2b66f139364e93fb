"""
Rollup plan executor.

Runs plan steps strictly in order, one remote call at a time, and stops
at the first failing step. Steps after the failure stay in ``init``; a
halted rollup is resumed by planning again from the endpoints' current
state, not by re-running the stale plan. A stop request takes effect
between steps only.

Progress is published as immutable snapshots through an optional
callback, so observers never share state with the running executor.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .endpoint import QueueEndpoint
from .exceptions import ExecutionError
from .logging_utils import RollupLoggerAdapter, step_context
from .plan import Plan, StepAction, StepSnapshot, StepState

logger = logging.getLogger(__name__)

TRACE_SWITCHED = "switched"
TRACE_FETCHED = "blob fetched"
TRACE_INSERTED = "blob inserted"


@dataclass(frozen=True)
class StepProgress:
    """A step's snapshot changed."""

    index: int
    total: int
    snapshot: StepSnapshot


ProgressCallback = Callable[[StepProgress], Awaitable[None] | None]


@dataclass(frozen=True)
class RunResult:
    """Outcome of one executor run.

    Attributes:
        snapshots: Final snapshot of every plan step, in plan order
        error: The failure that halted the run, if any
        stopped: The run was stopped before its last step
    """

    snapshots: tuple[StepSnapshot, ...]
    error: ExecutionError | None = None
    stopped: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and not self.stopped

    @property
    def failed_index(self) -> int | None:
        return self.error.step_index if self.error else None

    @property
    def succeeded(self) -> int:
        return sum(1 for s in self.snapshots if s.state is StepState.SUCC)

    def raise_for_status(self) -> None:
        """Raise the run's ``ExecutionError`` if a step failed."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "stopped": self.stopped,
            "succeeded": self.succeeded,
            "failed_index": self.failed_index,
            "error": self.error.message if self.error else None,
            "steps": [s.to_dict() for s in self.snapshots],
        }


class Executor:
    """Applies a plan to a master/slave pair.

    ``stop()`` asks the executor to finish the step in progress and not
    start another one. Remote calls already issued are never aborted.

    Example:
        >>> executor = Executor(master, slave, on_progress=print)
        >>> result = await executor.run(plan)
        >>> result.raise_for_status()
    """

    def __init__(
        self,
        master: QueueEndpoint,
        slave: QueueEndpoint,
        on_progress: ProgressCallback | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        self.master = master
        self.slave = slave
        self.on_progress = on_progress
        self._stop = stop_event if stop_event is not None else asyncio.Event()
        self._log = RollupLoggerAdapter(logger, master.name, slave.name)

    def stop(self) -> None:
        """Stop before the next step starts."""
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    async def run(self, plan: Plan) -> RunResult:
        """Execute every step of the plan in order.

        Never raises for a failing step: the failure is recorded on the
        step's snapshot and returned as ``RunResult.error``.
        """
        snapshots = list(plan.initial_snapshots())
        total = len(snapshots)

        for index, step in enumerate(plan.steps):
            if self._stop.is_set():
                self._log.info(f"Rollup stopped before step {index + 1}/{total}")
                return RunResult(snapshots=tuple(snapshots), stopped=True)

            snapshot = snapshots[index].with_state(StepState.RUNNING)
            snapshots[index] = snapshot
            await self._publish(index, total, snapshot)

            if step.action is StepAction.SWITCH:
                try:
                    new_tail = await self.slave.rotate()
                except Exception as e:
                    return await self._halt(snapshots, index, snapshot, e)
                self._log.debug(f"Slave rotated, tail now {new_tail}")
                snapshot = snapshot.with_trace(TRACE_SWITCHED)
            else:
                try:
                    blob = await self.master.fetch_raw(step.source_id)
                except Exception as e:
                    return await self._halt(snapshots, index, snapshot, e)
                snapshot = snapshot.with_trace(TRACE_FETCHED)
                snapshots[index] = snapshot
                await self._publish(index, total, snapshot)

                try:
                    await self.slave.insert_raw(step.target_id, blob)
                except Exception as e:
                    return await self._halt(snapshots, index, snapshot, e)
                snapshot = snapshot.with_trace(TRACE_INSERTED)

            snapshot = snapshot.with_state(StepState.SUCC)
            snapshots[index] = snapshot
            self._log.debug(
                f"Step {index + 1}/{total} done: {step}", extra=step_context(index, snapshot)
            )
            await self._publish(index, total, snapshot)

        self._log.info(f"Rollup completed: {total} steps")
        return RunResult(snapshots=tuple(snapshots))

    async def _halt(
        self,
        snapshots: list[StepSnapshot],
        index: int,
        snapshot: StepSnapshot,
        error: Exception,
    ) -> RunResult:
        snapshot = snapshot.with_trace(str(error)).with_state(StepState.FAIL)
        snapshots[index] = snapshot
        total = len(snapshots)
        self._log.warning(
            f"Step {index + 1}/{total} failed: {error}",
            exc_info=error,
            extra=step_context(index, snapshot),
        )
        await self._publish(index, total, snapshot)
        return RunResult(
            snapshots=tuple(snapshots),
            error=ExecutionError(index, snapshot.step, str(error), cause=error),
        )

    async def _publish(self, index: int, total: int, snapshot: StepSnapshot) -> None:
        """Deliver a snapshot. Observer errors are logged, never fatal to the run."""
        if self.on_progress is None:
            return
        try:
            result = self.on_progress(StepProgress(index=index, total=total, snapshot=snapshot))
            if inspect.isawaitable(result):
                await result
        except Exception:
            self._log.exception(
                f"Progress callback failed for step {index + 1}/{total}",
                extra=step_context(index, snapshot),
            )


async def execute_plan(
    plan: Plan,
    master: QueueEndpoint,
    slave: QueueEndpoint,
    on_progress: ProgressCallback | None = None,
) -> RunResult:
    """Run a plan with a one-off executor."""
    return await Executor(master, slave, on_progress=on_progress).run(plan)
