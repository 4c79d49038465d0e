"""
Network quality test orchestration.

A run goes through fixed stages, strictly in order::

    validate -> idle latency -> download (+ loaded latency) -> upload
             -> classify -> assemble QualityResult

Any failure aborts the remaining stages and is re-raised as a
``StageError`` naming the stage, with the original error chained.  A
``QualityResult`` is only ever produced by a run that completed every
stage.

Usage::

    result = await run_quality_test(TestConfiguration(test_duration=5))
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import aiohttp

from .config import TestConfiguration
from .constants import (
    HIGH_RESPONSIVENESS_BELOW_MS,
    LOADED_LATENCY_DELAY,
    MEDIUM_RESPONSIVENESS_BELOW_MS,
    TRANSFER_TIMEOUT,
)
from .download import DownloadTester
from .errors import StageError, TestCancelled
from .latency import LatencySampler
from .upload import UploadTester

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGE_IDLE_LATENCY = "idle-latency"
STAGE_DOWNLOAD = "download"
STAGE_UPLOAD = "upload"

RESPONSIVENESS_HIGH = "High"
RESPONSIVENESS_MEDIUM = "Medium"
RESPONSIVENESS_LOW = "Low"


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QualityResult:
    """Outcome of a complete run.  Speeds in Mbps, latencies in ms."""

    downlink_mbps: float
    uplink_mbps: float
    idle_latency_ms: float
    loaded_latency_ms: float
    responsiveness: str

    @property
    def responsiveness_ms(self) -> float:
        return self.loaded_latency_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "downlink_mbps": self.downlink_mbps,
            "uplink_mbps": self.uplink_mbps,
            "idle_latency_ms": self.idle_latency_ms,
            "responsiveness_ms": self.loaded_latency_ms,
            "responsiveness": self.responsiveness,
        }

    def format_summary(self) -> str:
        return (
            "=========== SUMMARY ===========\n"
            f"Uplink capacity: {self.uplink_mbps:.3f} Mbps\n"
            f"Downlink capacity: {self.downlink_mbps:.3f} Mbps\n"
            f"Responsiveness: {self.responsiveness} ({self.loaded_latency_ms:.3f} milliseconds)\n"
            f"Idle Latency: {self.idle_latency_ms:.3f} milliseconds\n"
        )


def classify_responsiveness(loaded_latency_ms: float) -> str:
    """Map loaded latency onto High / Medium / Low."""
    if loaded_latency_ms < HIGH_RESPONSIVENESS_BELOW_MS:
        return RESPONSIVENESS_HIGH
    if loaded_latency_ms < MEDIUM_RESPONSIVENESS_BELOW_MS:
        return RESPONSIVENESS_MEDIUM
    return RESPONSIVENESS_LOW


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

SessionFactory = Callable[[TestConfiguration], aiohttp.ClientSession]


def create_session(config: TestConfiguration) -> aiohttp.ClientSession:
    """One pooled session per run: a slot per worker plus one for the latency probe."""
    connector = aiohttp.TCPConnector(
        limit=max(config.connection_count, 1) + 1,
        force_close=False,
        enable_cleanup_closed=True,
    )
    timeout = aiohttp.ClientTimeout(total=TRANSFER_TIMEOUT)
    return aiohttp.ClientSession(connector=connector, timeout=timeout)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class QualityTester:
    """Sequences the measurement stages of one run."""

    def __init__(
        self,
        config: Optional[TestConfiguration] = None,
        latency_sampler: Optional[LatencySampler] = None,
        loaded_latency_delay: float = LOADED_LATENCY_DELAY,
        session_factory: SessionFactory = create_session,
    ) -> None:
        self.config = config if config is not None else TestConfiguration()
        self.latency_sampler = latency_sampler or LatencySampler()
        self.loaded_latency_delay = loaded_latency_delay
        self.session_factory = session_factory
        self.on_stage: Optional[Callable[[str], None]] = None

    async def run(self, cancel: Optional[asyncio.Event] = None) -> QualityResult:
        config = self.config
        config.validate()
        cancel = cancel if cancel is not None else asyncio.Event()

        async with self.session_factory(config) as session:
            idle_latency = await self._stage(
                STAGE_IDLE_LATENCY,
                lambda: self.latency_sampler.measure(session, config.latency_url, cancel),
                cancel,
            )

            downloader = DownloadTester(
                duration_seconds=config.test_duration,
                latency_sampler=self.latency_sampler,
                loaded_latency_delay=self.loaded_latency_delay,
            )
            download = await self._stage(
                STAGE_DOWNLOAD,
                lambda: downloader.test(
                    session,
                    config.download_url,
                    config.latency_url,
                    config.connection_count,
                    cancel,
                ),
                cancel,
            )

            uploader = UploadTester(
                duration_seconds=config.upload_duration,
                chunk_size=config.effective_chunk_size,
            )
            upload = await self._stage(
                STAGE_UPLOAD,
                lambda: uploader.test(
                    session,
                    config.upload_endpoints,
                    config.connection_count,
                    cancel,
                ),
                cancel,
            )

        loaded_latency = download.loaded_latency_ms
        result = QualityResult(
            downlink_mbps=download.speed_mbps,
            uplink_mbps=upload.speed_mbps,
            idle_latency_ms=idle_latency,
            loaded_latency_ms=loaded_latency,
            responsiveness=classify_responsiveness(loaded_latency),
        )
        logger.info(
            "quality test done: down %.3f Mbps, up %.3f Mbps, idle %.0f ms, loaded %.0f ms (%s)",
            result.downlink_mbps, result.uplink_mbps, result.idle_latency_ms,
            result.loaded_latency_ms, result.responsiveness,
        )
        return result

    async def _stage(
        self,
        name: str,
        func: Callable[[], Awaitable[T]],
        cancel: asyncio.Event,
    ) -> T:
        if self.on_stage:
            self.on_stage(name)
        logger.info("stage %s started", name)

        try:
            if cancel.is_set():
                raise TestCancelled()
            value = await func()
        except Exception as exc:
            logger.info("stage %s failed: %s", name, exc)
            if cancel.is_set() and not isinstance(exc, TestCancelled):
                # Probes cut short by cancellation fail as a side effect.
                raise StageError(name, TestCancelled()) from exc
            raise StageError(name, exc) from exc

        if cancel.is_set():
            raise StageError(name, TestCancelled())

        logger.info("stage %s finished", name)
        return value


async def run_quality_test(
    config: Optional[TestConfiguration] = None,
    cancel: Optional[asyncio.Event] = None,
    **options: Any,
) -> QualityResult:
    """
    Run a complete quality test.

    *options* are passed to ``QualityTester`` (``latency_sampler``,
    ``loaded_latency_delay``, ``session_factory``).  Raises
    ``ConfigurationError`` for an unusable configuration and
    ``StageError`` when a measurement stage fails.
    """
    return await QualityTester(config, **options).run(cancel)
