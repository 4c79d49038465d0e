"""
Time-bounded concurrent transfer aggregation.

``ThroughputAggregator`` runs a fixed number of workers until a shared
deadline.  Each worker repeats one transfer attempt at a time and adds the
bytes it moved to a ``ByteCounter`` owned by that run.  The bitrate is
computed from the counter and the *actual* elapsed time of the phase, so
requests still in flight at the deadline stretch the denominator.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

import aiohttp

from .stats import ConnectionStats, megabits_per_second

logger = logging.getLogger(__name__)

# (session, worker_index) -> bytes moved by one attempt
Attempt = Callable[[aiohttp.ClientSession, int], Awaitable[int]]


# ---------------------------------------------------------------------------
# Shared counter
# ---------------------------------------------------------------------------

class ByteCounter:
    """Integer accumulator shared by the workers of one phase."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._total = 0

    async def add(self, n: int) -> None:
        async with self._lock:
            self._total += n

    @property
    def total(self) -> int:
        return self._total


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class ThroughputResult:
    """Aggregate outcome of one throughput phase."""

    bytes_total: int = 0
    duration_ms: float = 0.0
    speed_mbps: float = 0.0
    connections: List[ConnectionStats] = field(default_factory=list)

    def calculate(self) -> None:
        """Derive speed from total bytes and wall-clock duration."""
        self.speed_mbps = megabits_per_second(self.bytes_total, self.duration_ms / 1000)

    @property
    def attempts(self) -> int:
        return sum(c.attempts for c in self.connections)

    def to_dict(self) -> dict:
        return {
            "speed_mbps": self.speed_mbps,
            "bytes_total": self.bytes_total,
            "duration_ms": round(self.duration_ms, 2),
            "connections": [c.to_dict() for c in self.connections],
        }


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

class ThroughputAggregator:
    """
    Run ``connections`` workers concurrently until ``duration_seconds``.

    Workers check the deadline and the cancellation token once per
    iteration; an attempt that is already in flight always runs to
    completion (or to its own request timeout).
    """

    def __init__(self, connections: int, duration_seconds: float) -> None:
        self.connections = connections
        self.duration_seconds = duration_seconds

    async def run(
        self,
        session: aiohttp.ClientSession,
        attempt: Attempt,
        cancel: Optional[asyncio.Event] = None,
        target: Callable[[int], str] = lambda idx: "",
    ) -> ThroughputResult:
        cancel = cancel if cancel is not None else asyncio.Event()
        counter = ByteCounter()

        start_time = time.perf_counter()
        deadline = start_time + self.duration_seconds

        async def _worker(idx: int) -> ConnectionStats:
            stats = ConnectionStats(id=idx, target=target(idx))
            t0 = time.perf_counter()

            while time.perf_counter() < deadline and not cancel.is_set():
                n = await attempt(session, idx)
                stats.attempts += 1
                if n > 0:
                    stats.bytes_transferred += n
                    await counter.add(n)
                else:
                    stats.failed_attempts += 1
                # attempts that fail before any I/O never suspend
                await asyncio.sleep(0)

            stats.duration_ms = (time.perf_counter() - t0) * 1000
            stats.calculate()
            return stats

        workers = [asyncio.create_task(_worker(i)) for i in range(self.connections)]
        try:
            conn_stats = await asyncio.gather(*workers)
        except BaseException:
            for t in workers:
                t.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise

        result = ThroughputResult(
            bytes_total=counter.total,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            connections=list(conn_stats),
        )
        result.calculate()

        logger.info(
            "%d workers moved %d bytes in %.0f ms (%.3f Mbps)",
            self.connections, result.bytes_total, result.duration_ms, result.speed_mbps,
        )
        return result
