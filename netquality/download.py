"""
Download capacity test.

Parallel GET workers drain the bulk-download endpoint until the phase
deadline.  A loaded-latency sample runs alongside them, starting after a
warm-up delay so the link is already saturated when the probes go out.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from .constants import CHUNK_SIZE, LOADED_LATENCY_DELAY
from .errors import TestCancelled
from .latency import LatencySampler
from .stats import LatencyStats
from .throughput import ThroughputAggregator, ThroughputResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class DownloadResult(ThroughputResult):
    """Download throughput plus the latency measured under that load."""

    loaded_latency: Optional[LatencyStats] = None

    @property
    def loaded_latency_ms(self) -> float:
        return self.loaded_latency.latency_ms if self.loaded_latency else 0.0

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.loaded_latency:
            result["loaded_latency"] = self.loaded_latency.to_dict()
        return result


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------

async def download_once(session: aiohttp.ClientSession, url: str) -> int:
    """
    GET *url* and discard the body.  Returns the number of bytes read.

    A request that fails before the body arrives counts as 0 bytes; a body
    that breaks off midway still counts what was received.
    """
    received = 0
    try:
        async with session.get(url) as resp:
            try:
                while True:
                    chunk = await resp.content.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    received += len(chunk)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                logger.debug("download from %s cut off after %d bytes: %r", url, received, exc)
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
        logger.debug("download from %s failed: %r", url, exc)
    return received


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class DownloadTester:
    """Download throughput with a concurrent loaded-latency sample."""

    def __init__(
        self,
        duration_seconds: float,
        latency_sampler: Optional[LatencySampler] = None,
        loaded_latency_delay: float = LOADED_LATENCY_DELAY,
    ) -> None:
        self.duration_seconds = duration_seconds
        self.latency_sampler = latency_sampler or LatencySampler()
        self.loaded_latency_delay = loaded_latency_delay

    async def test(
        self,
        session: aiohttp.ClientSession,
        download_url: str,
        latency_url: str,
        connections: int,
        cancel: Optional[asyncio.Event] = None,
    ) -> DownloadResult:
        cancel = cancel if cancel is not None else asyncio.Event()
        aggregator = ThroughputAggregator(connections, self.duration_seconds)

        async def _attempt(sess: aiohttp.ClientSession, idx: int) -> int:
            return await download_once(sess, download_url)

        loaded = asyncio.create_task(self._loaded_latency(session, latency_url, cancel))
        try:
            throughput = await aggregator.run(
                session, _attempt, cancel, target=lambda idx: download_url
            )
        except BaseException:
            loaded.cancel()
            await asyncio.gather(loaded, return_exceptions=True)
            raise

        if cancel.is_set():
            loaded.cancel()
            await asyncio.gather(loaded, return_exceptions=True)
            raise TestCancelled()

        loaded_latency = await loaded

        return DownloadResult(
            bytes_total=throughput.bytes_total,
            duration_ms=throughput.duration_ms,
            speed_mbps=throughput.speed_mbps,
            connections=throughput.connections,
            loaded_latency=loaded_latency,
        )

    async def _loaded_latency(
        self,
        session: aiohttp.ClientSession,
        url: str,
        cancel: asyncio.Event,
    ) -> LatencyStats:
        try:
            await asyncio.wait_for(cancel.wait(), timeout=self.loaded_latency_delay)
        except asyncio.TimeoutError:
            pass
        return await self.latency_sampler.sample(session, url, cancel)
