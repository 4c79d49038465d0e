"""
Network measurement statistics.

Pure functions and lightweight dataclasses -- no I/O, no side effects.
Everything here is deterministic and easy to unit-test.
"""
from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import List


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LatencyStats:
    """Latency samples of one probe run and their arithmetic mean."""

    samples: List[float] = field(default_factory=list)
    attempts: int = 0
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    count: int = 0

    def calculate(self) -> None:
        if not self.samples:
            return
        self.count = len(self.samples)
        self.min = min(self.samples)
        self.max = max(self.samples)
        self.mean = statistics.mean(self.samples)

    @property
    def latency_ms(self) -> float:
        """Mean latency at whole-millisecond granularity (truncated)."""
        return float(int(self.mean))

    @property
    def failed(self) -> int:
        return max(self.attempts - self.count, 0)

    def to_dict(self) -> dict:
        return {
            "samples": [round(s, 3) for s in self.samples],
            "attempts": self.attempts,
            "min": round(self.min, 3),
            "max": round(self.max, 3),
            "mean": round(self.mean, 3),
            "latency_ms": self.latency_ms,
            "count": self.count,
        }


@dataclass
class ConnectionStats:
    """Per-worker statistics collected by the throughput aggregator."""

    id: int = 0
    target: str = ""
    bytes_transferred: int = 0
    attempts: int = 0
    failed_attempts: int = 0
    duration_ms: float = 0.0
    speed_mbps: float = 0.0

    def calculate(self) -> None:
        if self.duration_ms > 0:
            self.speed_mbps = megabits_per_second(
                self.bytes_transferred, self.duration_ms / 1000
            )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "target": self.target,
            "bytes": self.bytes_transferred,
            "attempts": self.attempts,
            "failed_attempts": self.failed_attempts,
            "duration_ms": round(self.duration_ms, 2),
            "speed_mbps": round(self.speed_mbps, 3),
        }


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------

def megabits_per_second(total_bytes: int, elapsed_seconds: float) -> float:
    """``total_bytes * 8 / (elapsed_seconds * 1e6)`` rounded to 3 decimals."""
    if total_bytes <= 0 or elapsed_seconds <= 0:
        return 0.0
    return round((total_bytes * 8) / (elapsed_seconds * 1_000_000), 3)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_speed(speed_mbps: float) -> str:
    """Human-readable speed string."""
    if speed_mbps >= 1000:
        return f"{speed_mbps / 1000:.2f} Gbps"
    return f"{speed_mbps:.3f} Mbps"


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.3f} ms"
