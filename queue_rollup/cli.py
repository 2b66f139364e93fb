"""Command line entry point: ``queue-rollup plan|run``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .config import QueueClientConfig, RollupConfig
from .exceptions import ConfigError, RollupError
from .executor import RunResult, StepProgress
from .http_client import QueueHttpClient
from .logging_utils import configure_logging
from .plan import Plan, StepSnapshot
from .planner import Planner
from .rollup import RollupService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="queue-rollup",
        description="Replicate a master log queue onto a slave log queue",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Show what would be copied
    queue-rollup plan --master http://master:8080 --slave http://slave:8080

    # Copy it
    queue-rollup run --config rollup.yaml

    # URLs from QUEUE_ROLLUP_MASTER_URL / QUEUE_ROLLUP_SLAVE_URL
    queue-rollup run --json-logs
        """,
    )
    parser.add_argument("command", choices=["plan", "run"])
    parser.add_argument("--master", help="Master queue service base URL")
    parser.add_argument("--slave", help="Slave queue service base URL")
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Reject segment listings that are not contiguous",
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    return parser


def load_config(args: argparse.Namespace) -> RollupConfig:
    if args.config:
        config = RollupConfig.from_yaml(args.config)
    elif args.master and args.slave:
        config = RollupConfig(
            master=QueueClientConfig(args.master),
            slave=QueueClientConfig(args.slave),
        )
    else:
        config = RollupConfig.from_environment()
    return config.with_overrides(args.master, args.slave, args.strict)


def format_snapshot(index: int, snapshot: StepSnapshot) -> str:
    line = f"{index + 1:>5}. {snapshot.step!s:<24} {snapshot.state.value}"
    if snapshot.trace:
        line += f"  [{', '.join(snapshot.trace)}]"
    return line


def format_plan(plan: Plan) -> str:
    if plan.is_empty:
        return f"Slave up to date (slave {plan.slave_id}, master {plan.master_id})"
    lines = [
        f"Plan: {len(plan)} steps ({plan.push_count} pushes, {plan.switch_count} switches), "
        f"slave {plan.slave_id} -> master {plan.master_id}"
    ]
    lines.extend(f"{i + 1:>5}. {step}" for i, step in enumerate(plan))
    return "\n".join(lines)


def format_result(result: RunResult) -> str:
    lines = [format_snapshot(i, s) for i, s in enumerate(result.snapshots)]
    if result.success:
        lines.append(f"Done: {result.succeeded} steps applied")
    elif result.stopped:
        lines.append(f"Stopped: {result.succeeded} of {len(result.snapshots)} steps applied")
    else:
        lines.append(f"Failed: {result.error.message}")
    return "\n".join(lines)


async def _run(args: argparse.Namespace, config: RollupConfig) -> int:
    master = QueueHttpClient(config.master, name="master")
    slave = QueueHttpClient(config.slave, name="slave")

    async with master, slave:
        service = RollupService(master, slave, Planner(strict=config.strict_segments))

        if args.command == "plan":
            plan = await service.plan()
            print(json.dumps(plan.to_dict(), indent=2) if args.json else format_plan(plan))
            return 0

        def report(progress: StepProgress) -> None:
            logger.debug(format_snapshot(progress.index, progress.snapshot))

        outcome = await service.rollup(on_progress=report)
        if args.json:
            print(json.dumps({"plan": outcome.plan.to_dict(), **outcome.result.to_dict()}, indent=2))
        else:
            print(format_plan(outcome.plan))
            if not outcome.plan.is_empty:
                print(format_result(outcome.result))
        return 0 if outcome.success else 1


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    level = getattr(logging, (args.log_level or config.log_level).upper(), logging.INFO)
    configure_logging(level, json_logs=args.json_logs or config.json_logs)

    try:
        return asyncio.run(_run(args, config))
    except RollupError as e:
        logger.debug(f"Rollup aborted: {e.message}", exc_info=e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
