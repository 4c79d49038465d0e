"""
Upload capacity test.
Uses fixed-size HTTP POST requests spread round-robin over the upload endpoints.
"""
import asyncio
import logging
from typing import Optional, Sequence

import aiohttp

from .constants import DEFAULT_UPLOAD_CHUNK_SIZE, UPLOAD_CONTENT_TYPE
from .errors import ConfigurationError
from .throughput import ThroughputAggregator, ThroughputResult

logger = logging.getLogger(__name__)


class UploadResult(ThroughputResult):
    """Upload test result."""


async def upload_once(session: aiohttp.ClientSession, url: str, payload: bytes) -> int:
    """POST *payload* to *url*; returns its size if the server accepted it, else 0."""
    headers = {
        "Content-Type": UPLOAD_CONTENT_TYPE,
        "Content-Length": str(len(payload)),
    }
    try:
        async with session.post(url, data=payload, headers=headers) as resp:
            await resp.read()
            if 200 <= resp.status < 400:
                return len(payload)
            logger.debug("upload to %s rejected with HTTP %d", url, resp.status)
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
        logger.debug("upload to %s failed: %r", url, exc)
    return 0


class UploadTester:
    """
    Upload speed tester.
    Worker ``i`` always posts to ``endpoints[i % len(endpoints)]``.
    """

    def __init__(self, duration_seconds: float, chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE):
        self.duration_seconds = duration_seconds
        if chunk_size <= 0:
            chunk_size = DEFAULT_UPLOAD_CHUNK_SIZE
        # Zero-filled; the content of the payload is irrelevant
        self._payload = bytes(chunk_size)

    @property
    def chunk_size(self) -> int:
        return len(self._payload)

    async def test(
        self,
        session: aiohttp.ClientSession,
        endpoints: Sequence[str],
        connections: int,
        cancel: Optional[asyncio.Event] = None,
    ) -> UploadResult:
        """Perform upload speed test."""
        if not endpoints:
            raise ConfigurationError("no upload servers configured")

        payload = self._payload

        def target(idx: int) -> str:
            return endpoints[idx % len(endpoints)]

        async def _attempt(sess: aiohttp.ClientSession, idx: int) -> int:
            return await upload_once(sess, target(idx), payload)

        aggregator = ThroughputAggregator(connections, self.duration_seconds)
        throughput = await aggregator.run(session, _attempt, cancel, target=target)

        return UploadResult(
            bytes_total=throughput.bytes_total,
            duration_ms=throughput.duration_ms,
            speed_mbps=throughput.speed_mbps,
            connections=throughput.connections,
        )
