"""
Rollup orchestration.

Plans and executes a master -> slave rollup, either awaited directly or
started in the background as a ``RollupJob`` whose progress is observed
through step snapshots instead of a blocking return value.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from .endpoint import QueueEndpoint
from .exceptions import RollupInProgressError
from .executor import Executor, ProgressCallback, RunResult, StepProgress
from .plan import Plan, StepSnapshot
from .planner import Planner

logger = logging.getLogger(__name__)

PlanCallback = Callable[[Plan], Awaitable[None] | None]


class RollupState(Enum):
    """Lifecycle of a rollup."""

    IDLE = "idle"
    PLANNING = "planning"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RollupOutcome:
    """Plan and execution result of one rollup."""

    plan: Plan
    result: RunResult

    @property
    def success(self) -> bool:
        return self.result.success

    @property
    def state(self) -> RollupState:
        if self.result.stopped:
            return RollupState.STOPPED
        return RollupState.DONE if self.result.success else RollupState.FAILED


class RollupService:
    """Replicates a master queue onto a slave queue.

    One service runs at most one rollup at a time. Nothing guards against
    a second service (or process) writing to the same slave.

    Example:
        >>> service = RollupService(master, slave)
        >>> outcome = await service.rollup()
        >>> outcome.result.raise_for_status()
    """

    def __init__(
        self,
        master: QueueEndpoint,
        slave: QueueEndpoint,
        planner: Planner | None = None,
    ) -> None:
        self.master = master
        self.slave = slave
        self.planner = planner or Planner()
        self._lock = asyncio.Lock()
        self._state = RollupState.IDLE
        self._job: RollupJob | None = None

    @property
    def state(self) -> RollupState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._lock.locked() or (self._job is not None and not self._job.done)

    async def plan(self) -> Plan:
        """Compute the current plan without executing it."""
        return await self.planner.build_plan(self.master, self.slave)

    async def rollup(
        self,
        on_plan: PlanCallback | None = None,
        on_progress: ProgressCallback | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> RollupOutcome:
        """Plan and execute one rollup.

        Setting ``stop_event`` ends the run before its next step; the step
        in progress always completes.

        Raises:
            RollupInProgressError: If this service is already rolling up
            TransportError: If planning cannot read an endpoint
            ValidationError: If the master's segment listing is unusable
        """
        if self._lock.locked():
            raise RollupInProgressError(self.master.name, self.slave.name)

        async with self._lock:
            self._state = RollupState.PLANNING
            try:
                plan = await self.plan()
            except Exception:
                self._state = RollupState.FAILED
                raise

            if on_plan is not None:
                result = on_plan(plan)
                if inspect.isawaitable(result):
                    await result

            self._state = RollupState.RUNNING
            executor = Executor(
                self.master, self.slave, on_progress=on_progress, stop_event=stop_event
            )
            try:
                run = await executor.run(plan)
            except BaseException:
                self._state = RollupState.FAILED
                raise

            outcome = RollupOutcome(plan=plan, result=run)
            self._state = outcome.state
            return outcome

    def start(self, on_progress: ProgressCallback | None = None) -> RollupJob:
        """Start a rollup in the background.

        Must be called from a running event loop.
        """
        if self.is_running:
            raise RollupInProgressError(self.master.name, self.slave.name)
        job = RollupJob(self, on_progress=on_progress)
        job._start()
        self._job = job
        return job


class RollupJob:
    """A rollup running as a background task.

    The job keeps its own copy of the step snapshots, updated from the
    executor's progress messages, so it can be polled at any time.
    ``cancel()`` is cooperative: the step in progress runs to completion
    and no further step is started.
    """

    def __init__(
        self,
        service: RollupService,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._service = service
        self._on_progress = on_progress
        self._plan: Plan | None = None
        self._snapshots: tuple[StepSnapshot, ...] = ()
        self._outcome: RollupOutcome | None = None
        self._error: BaseException | None = None
        self._task: asyncio.Task[RollupOutcome] | None = None
        self._stop = asyncio.Event()

    @property
    def plan(self) -> Plan | None:
        return self._plan

    @property
    def snapshots(self) -> tuple[StepSnapshot, ...]:
        return self._snapshots

    @property
    def outcome(self) -> RollupOutcome | None:
        return self._outcome

    @property
    def error(self) -> BaseException | None:
        """Planning failure or cancellation that ended the job."""
        return self._error

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def state(self) -> RollupState:
        if self._outcome is not None:
            return self._outcome.state
        if self._error is not None:
            return RollupState.FAILED
        if self._plan is None:
            return RollupState.PLANNING
        return RollupState.RUNNING

    def _start(self) -> None:
        self._task = asyncio.create_task(self._run())
        self._task.add_done_callback(self._finished)

    async def _run(self) -> RollupOutcome:
        outcome = await self._service.rollup(
            on_plan=self._set_plan, on_progress=self._progress, stop_event=self._stop
        )
        self._outcome = outcome
        return outcome

    def _set_plan(self, plan: Plan) -> None:
        self._plan = plan
        self._snapshots = plan.initial_snapshots()

    async def _progress(self, progress: StepProgress) -> None:
        snapshots = list(self._snapshots)
        snapshots[progress.index] = progress.snapshot
        self._snapshots = tuple(snapshots)
        if self._on_progress is not None:
            result = self._on_progress(progress)
            if inspect.isawaitable(result):
                await result

    def _finished(self, task: asyncio.Task[RollupOutcome]) -> None:
        if task.cancelled():
            self._error = asyncio.CancelledError()
            logger.info("Background rollup cancelled")
            return
        error = task.exception()
        if error is not None:
            self._error = error
            logger.error(f"Background rollup failed: {error}")

    async def wait(self) -> RollupOutcome:
        """Wait for the job and return its outcome.

        Raises the planning failure if the job could not build a plan.
        """
        if self._task is None:
            raise RuntimeError("Rollup job not started")
        return await asyncio.shield(self._task)

    @property
    def cancel_requested(self) -> bool:
        return self._stop.is_set()

    def cancel(self) -> None:
        """Stop the job after the step in progress.

        Steps not yet started stay in ``init``; ``wait()`` then returns an
        outcome in the ``STOPPED`` state.
        """
        if not self.done:
            logger.info("Background rollup stop requested")
            self._stop.set()
