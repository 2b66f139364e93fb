"""
Rollup configuration.

Configuration can be provided directly, via environment variables, or
via a YAML file:

```yaml
master:
  base_url: "http://master:8080"
  timeout: 30
slave:
  base_url: "http://slave:8080"
strict_segments: false
log_level: INFO
json_logs: false
```

Environment Variables:
    QUEUE_ROLLUP_MASTER_URL: Base URL of the master queue service
    QUEUE_ROLLUP_SLAVE_URL: Base URL of the slave queue service
    QUEUE_ROLLUP_TIMEOUT: Total request timeout in seconds (default: 30)
    QUEUE_ROLLUP_CONNECT_TIMEOUT: Connect timeout in seconds (default: 10)
    QUEUE_ROLLUP_STRICT: Validate segment listings strictly (default: false)
    QUEUE_ROLLUP_LOG_LEVEL: Logging level (default: INFO)
    QUEUE_ROLLUP_JSON_LOGS: Emit JSON log lines (default: false)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_API_PREFIX = "/queue"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigError(name, f"expected a number, got {value!r}") from e


@dataclass
class QueueClientConfig:
    """Connection settings for one queue service.

    Attributes:
        base_url: Service root, e.g. ``http://localhost:8080``
        timeout: Total request timeout in seconds
        connect_timeout: Connect timeout in seconds
        user_agent: Optional User-Agent header
        api_prefix: Path prefix of the queue API
    """

    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    user_agent: str | None = None
    api_prefix: str = DEFAULT_API_PREFIX

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigError("base_url", "not set")
        self.base_url = self.base_url.rstrip("/")

    @property
    def api_url(self) -> str:
        return f"{self.base_url}{self.api_prefix}"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str, section: str = "queue") -> QueueClientConfig:
        """Create from a config section (a mapping or a bare URL)."""
        if isinstance(data, str):
            return cls(base_url=data)
        if not isinstance(data, dict):
            raise ConfigError(section, "expected a mapping or a URL")
        if not data.get("base_url"):
            raise ConfigError(f"{section}.base_url", "not set")
        try:
            return cls(
                base_url=str(data["base_url"]),
                timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
                connect_timeout=float(data.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT)),
                user_agent=data.get("user_agent"),
                api_prefix=data.get("api_prefix", DEFAULT_API_PREFIX),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(section, str(e)) from e


@dataclass
class RollupConfig:
    """Configuration for a master/slave rollup."""

    master: QueueClientConfig
    slave: QueueClientConfig
    strict_segments: bool = False
    log_level: str = "INFO"
    json_logs: bool = False

    @classmethod
    def from_environment(cls) -> RollupConfig:
        """Create configuration from environment variables."""
        master_url = os.environ.get("QUEUE_ROLLUP_MASTER_URL")
        slave_url = os.environ.get("QUEUE_ROLLUP_SLAVE_URL")
        if not master_url:
            raise ConfigError("QUEUE_ROLLUP_MASTER_URL", "not set")
        if not slave_url:
            raise ConfigError("QUEUE_ROLLUP_SLAVE_URL", "not set")

        timeout = _env_float("QUEUE_ROLLUP_TIMEOUT", DEFAULT_TIMEOUT)
        connect_timeout = _env_float("QUEUE_ROLLUP_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)

        return cls(
            master=QueueClientConfig(master_url, timeout, connect_timeout),
            slave=QueueClientConfig(slave_url, timeout, connect_timeout),
            strict_segments=_env_bool("QUEUE_ROLLUP_STRICT"),
            log_level=os.environ.get("QUEUE_ROLLUP_LOG_LEVEL", "INFO").upper(),
            json_logs=_env_bool("QUEUE_ROLLUP_JSON_LOGS"),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> RollupConfig:
        """Load configuration from a YAML file."""
        try:
            content = path.read_text()
        except OSError as e:
            raise ConfigError(str(path), f"cannot read: {e}") from e

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(str(path), f"invalid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(str(path), "expected a mapping at top level")
        for section in ("master", "slave"):
            if section not in data:
                raise ConfigError(section, "section missing")

        return cls(
            master=QueueClientConfig.from_dict(data["master"], "master"),
            slave=QueueClientConfig.from_dict(data["slave"], "slave"),
            strict_segments=bool(data.get("strict_segments", False)),
            log_level=str(data.get("log_level", "INFO")).upper(),
            json_logs=bool(data.get("json_logs", False)),
        )

    def with_overrides(
        self,
        master_url: str | None = None,
        slave_url: str | None = None,
        strict_segments: bool | None = None,
    ) -> RollupConfig:
        """Copy with command line overrides applied."""
        config = self
        if master_url:
            config = replace(config, master=replace(config.master, base_url=master_url))
        if slave_url:
            config = replace(config, slave=replace(config.slave, base_url=slave_url))
        if strict_segments is not None:
            config = replace(config, strict_segments=strict_segments)
        return config
