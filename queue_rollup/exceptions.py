"""
Custom exceptions for queue rollup.

Planner, executor and endpoint implementations raise these
exceptions so callers can handle failures uniformly.
"""

from __future__ import annotations

from typing import Any


class RollupError(Exception):
    """Base exception for all rollup errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransportError(RollupError):
    """Raised when a remote call to a queue endpoint fails.

    Covers unreachable endpoints as well as non-success responses.
    """

    def __init__(
        self,
        endpoint: str,
        operation: str,
        reason: str | None = None,
        status: int | None = None,
        cause: Exception | None = None,
    ):
        details: dict[str, Any] = {"endpoint": endpoint, "operation": operation}
        if reason:
            details["reason"] = reason
        if status is not None:
            details["status"] = status
        if cause:
            details["cause"] = str(cause)
        message = f"{operation} failed on {endpoint}"
        if status is not None:
            message += f" (HTTP {status})"
        if reason:
            message += f": {reason}"
        elif cause:
            message += f": {cause}"
        super().__init__(message, details)
        self.endpoint = endpoint
        self.operation = operation
        self.reason = reason
        self.status = status
        self.cause = cause


class ValidationError(RollupError):
    """Raised when ids or segment metadata fail validation."""

    def __init__(self, field: str, reason: str, value: Any = None):
        details: dict[str, Any] = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = str(value)
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class ExecutionError(RollupError):
    """Raised (or returned) when a plan step fails during execution."""

    def __init__(
        self,
        step_index: int,
        step: Any,
        reason: str,
        cause: Exception | None = None,
    ):
        details: dict[str, Any] = {
            "step_index": step_index,
            "step": str(step),
            "reason": reason,
        }
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Step {step_index} ({step}) failed: {reason}", details)
        self.step_index = step_index
        self.step = step
        self.reason = reason
        self.cause = cause


class ConfigError(RollupError):
    """Raised when rollup configuration is missing or unusable."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Invalid configuration {key}: {reason}", {"key": key, "reason": reason})
        self.key = key
        self.reason = reason


class RollupInProgressError(RollupError):
    """Raised when a rollup is requested while another one is running."""

    def __init__(self, master: str, slave: str):
        super().__init__(
            f"Rollup already in progress: {master} -> {slave}",
            {"master": master, "slave": slave},
        )
        self.master = master
        self.slave = slave
