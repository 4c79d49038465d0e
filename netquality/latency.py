"""
HTTP round-trip latency sampling.

A probe is a plain GET; its latency is the time from dispatch until the
response headers arrive.  The body is never read.  The same sampler is
used for idle latency (nothing else running) and loaded latency (while the
download workers saturate the link).
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import aiohttp

from .constants import (
    LATENCY_PROBE_COUNT,
    LATENCY_PROBE_INTERVAL,
    LATENCY_PROBE_TIMEOUT,
)
from .errors import AllSamplesFailed
from .stats import LatencyStats

logger = logging.getLogger(__name__)


class LatencySampler:
    """Issue sequential GET probes against one URL and average the RTTs."""

    def __init__(
        self,
        probe_count: int = LATENCY_PROBE_COUNT,
        timeout: float = LATENCY_PROBE_TIMEOUT,
        interval: float = LATENCY_PROBE_INTERVAL,
    ) -> None:
        self.probe_count = probe_count
        self.timeout = timeout
        self.interval = interval

    # -- Public -------------------------------------------------------------

    async def sample(
        self,
        session: aiohttp.ClientSession,
        url: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> LatencyStats:
        """
        Run ``probe_count`` probes and return their statistics.

        Failed probes are skipped without retry.  Once *cancel* is set the
        remaining probes are skipped too.  Raises ``AllSamplesFailed`` if
        no probe succeeded.
        """
        stats = LatencyStats()

        for _ in range(self.probe_count):
            if cancel is not None and cancel.is_set():
                break

            stats.attempts += 1
            rtt = await self._probe_once(session, url)
            if rtt is None:
                continue

            stats.samples.append(rtt)
            await asyncio.sleep(self.interval)

        if not stats.samples:
            raise AllSamplesFailed(url, stats.attempts)

        stats.calculate()
        logger.debug(
            "latency %s: %d/%d probes ok, mean %.3f ms",
            url, stats.count, stats.attempts, stats.mean,
        )
        return stats

    async def measure(
        self,
        session: aiohttp.ClientSession,
        url: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> float:
        """Mean latency in whole milliseconds."""
        stats = await self.sample(session, url, cancel)
        return stats.latency_ms

    # -- Internals ----------------------------------------------------------

    async def _probe_once(self, session: aiohttp.ClientSession, url: str) -> Optional[float]:
        """Return the RTT of one probe in milliseconds, or None on failure."""
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        start = time.perf_counter()
        try:
            async with session.get(url, timeout=timeout):
                return (time.perf_counter() - start) * 1000
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            logger.debug("latency probe to %s failed: %r", url, exc)
            return None
