"""
Queue Rollup

Replicates an append-only, segmented log queue (the master) onto another
(the slave) through the queue service's remote API.

Provides:
- Planner that derives the ordered catch-up steps from tail cursors and
  segment listings
- Fail-fast executor with per-step state and trace snapshots
- Background rollup jobs observable through progress messages
- aiohttp endpoint for the queue service and an in-memory endpoint

Usage:

    >>> from queue_rollup import QueueClientConfig, QueueHttpClient, RollupService
    >>> async with (
    ...     QueueHttpClient(QueueClientConfig("http://master:8080")) as master,
    ...     QueueHttpClient(QueueClientConfig("http://slave:8080")) as slave,
    ... ):
    ...     outcome = await RollupService(master, slave).rollup()
    ...     outcome.result.raise_for_status()
"""

from .config import QueueClientConfig, RollupConfig
from .endpoint import QueueEndpoint
from .exceptions import (
    ConfigError,
    ExecutionError,
    RollupError,
    RollupInProgressError,
    TransportError,
    ValidationError,
)
from .executor import Executor, RunResult, StepProgress, execute_plan
from .http_client import QueueHttpClient, QueueVersion
from .ids import RecordId, SegmentInfo, TailCursor
from .memory import InMemoryQueue
from .plan import Plan, Step, StepAction, StepSnapshot, StepState, generate_sequence
from .planner import Planner, plan_rollup
from .rollup import RollupJob, RollupOutcome, RollupService, RollupState

__all__ = [
    # Ids
    "RecordId",
    "TailCursor",
    "SegmentInfo",
    # Endpoints
    "QueueEndpoint",
    "QueueHttpClient",
    "QueueVersion",
    "InMemoryQueue",
    # Planning
    "Plan",
    "Step",
    "StepAction",
    "StepState",
    "StepSnapshot",
    "Planner",
    "plan_rollup",
    "generate_sequence",
    # Execution
    "Executor",
    "RunResult",
    "StepProgress",
    "execute_plan",
    "RollupService",
    "RollupJob",
    "RollupOutcome",
    "RollupState",
    # Config
    "QueueClientConfig",
    "RollupConfig",
    # Exceptions
    "RollupError",
    "TransportError",
    "ValidationError",
    "ExecutionError",
    "ConfigError",
    "RollupInProgressError",
]

__version__ = "0.1.0"
