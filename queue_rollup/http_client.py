"""
HTTP queue endpoint.

Talks to the queue service's REST API:

    GET  /queue/tail/id                          tail cursor
    GET  /queue/log/files                        segment listing
    POST /queue/tail/switch                      rotate
    GET  /queue/record/{log_id}/{block_id}/raw   raw record bytes
    POST /queue/record/{log_id}/{block_id}/raw   append raw record
    GET  /queue/version                          service version

Ids travel as decimal strings.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

import aiohttp

from .config import QueueClientConfig
from .endpoint import QueueEndpoint
from .exceptions import TransportError, ValidationError
from .ids import RecordId, SegmentInfo, parse_u64

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class QueueVersion:
    """Version information reported by a queue service."""

    debug: bool
    crate_name: str
    crate_ver: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueueVersion:
        return cls(
            debug=bool(data.get("debug", False)),
            crate_name=str(data.get("crate_name", "")),
            crate_ver=str(data.get("crate_ver", "")),
        )


class QueueHttpClient(QueueEndpoint):
    """Queue endpoint backed by the queue service's HTTP API.

    The client owns its ``aiohttp.ClientSession`` unless one is passed in.

    Example:
        >>> config = QueueClientConfig("http://localhost:8080")
        >>> async with QueueHttpClient(config) as master:
        ...     tail = await master.current_id()
    """

    def __init__(
        self,
        config: QueueClientConfig,
        session: aiohttp.ClientSession | None = None,
        name: str | None = None,
    ) -> None:
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._name = name or config.base_url

    @property
    def name(self) -> str:
        return self._name

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {}
            if self.config.user_agent:
                headers["User-Agent"] = self.config.user_agent
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    total=self.config.timeout,
                    connect=self.config.connect_timeout,
                ),
                headers=headers,
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        data: bytes | None = None,
        expect: Literal["json", "bytes"] = "json",
    ) -> Any:
        url = f"{self.config.api_url}{path}"
        headers = {"Content-Type": "application/octet-stream"} if data is not None else None
        session = self._get_session()

        try:
            async with session.request(method, url, data=data, headers=headers) as response:
                if response.status != 200:
                    body = (await response.text(errors="replace")).strip()
                    logger.debug(f"{operation} {url} -> {response.status}: {body}")
                    raise TransportError(
                        self._name,
                        operation,
                        body or response.reason,
                        status=response.status,
                    )
                if expect == "bytes":
                    return await response.read()
                return await response.json(content_type=None)
        except TransportError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug(f"{operation} {url} failed: {e!r}")
            raise TransportError(self._name, operation, cause=e) from e

    def _parse(self, operation: str, parser: Callable[[Any], T], data: Any) -> T:
        try:
            return parser(data)
        except (ValidationError, AttributeError, TypeError, KeyError, ValueError) as e:
            raise TransportError(self._name, operation, f"malformed response: {e}") from e

    async def current_id(self) -> RecordId:
        data = await self._request("current_id", "GET", "/tail/id")
        return self._parse("current_id", RecordId.from_dict, data)

    async def list_segments(self) -> list[SegmentInfo]:
        data = await self._request("list_segments", "GET", "/log/files")
        return self._parse(
            "list_segments",
            lambda d: [SegmentInfo.from_dict(f) for f in d["files"]],
            data,
        )

    async def rotate(self) -> RecordId:
        data = await self._request("rotate", "POST", "/tail/switch")
        segment_id = self._parse("rotate", lambda d: parse_u64(d["log_id"], "log_id"), data)
        logger.info(f"{self._name}: switched to segment {segment_id} ({data.get('log_file')})")
        return RecordId(segment_id, 0)

    async def fetch_raw(self, record_id: RecordId) -> bytes:
        return await self._request(
            "fetch_raw",
            "GET",
            f"/record/{record_id.segment_id}/{record_id.block_id}/raw",
            expect="bytes",
        )

    async def insert_raw(self, record_id: RecordId, payload: bytes) -> RecordId:
        data = await self._request(
            "insert_raw",
            "POST",
            f"/record/{record_id.segment_id}/{record_id.block_id}/raw",
            data=payload,
        )
        return self._parse("insert_raw", RecordId.from_dict, data)

    async def version(self) -> QueueVersion:
        data = await self._request("version", "GET", "/version")
        return self._parse("version", QueueVersion.from_dict, data)
