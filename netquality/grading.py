"""
Quality grading helpers for presentation.

Turns a ``QualityResult`` into an overall rating and coloured bar charts.
Colours are ``rich`` style names; nothing here prints.
"""
from __future__ import annotations

from typing import List, Tuple

from .quality import QualityResult

BAR_LENGTH = 20
DOWNLOAD_REFERENCE_MBPS = 100.0
UPLOAD_REFERENCE_MBPS = 50.0
LATENCY_REFERENCE_MS = 200.0


# ---------------------------------------------------------------------------
# Overall rating
# ---------------------------------------------------------------------------

# (threshold, points) checked top-down; first match wins
_DOWNLOAD_POINTS = [(50.0, 3), (25.0, 2), (10.0, 1)]
_UPLOAD_POINTS = [(20.0, 3), (10.0, 2), (5.0, 1)]
_LATENCY_POINTS = [(20.0, 3), (50.0, 2), (100.0, 1)]

_RATINGS = [
    (8, "Excellent", "green"),
    (6, "Good", "cyan"),
    (4, "Fair", "yellow"),
    (0, "Poor", "red"),
]


def _points_above(value: float, table: List[Tuple[float, int]]) -> int:
    for threshold, points in table:
        if value > threshold:
            return points
    return 0


def _points_below(value: float, table: List[Tuple[float, int]]) -> int:
    for threshold, points in table:
        if value < threshold:
            return points
    return 0


def quality_score(result: QualityResult) -> int:
    """0..9 score from download, upload and idle latency."""
    return (
        _points_above(result.downlink_mbps, _DOWNLOAD_POINTS)
        + _points_above(result.uplink_mbps, _UPLOAD_POINTS)
        + _points_below(result.idle_latency_ms, _LATENCY_POINTS)
    )


def overall_quality(result: QualityResult) -> Tuple[str, str]:
    """Return (rating, color) for *result*."""
    score = quality_score(result)
    for minimum, label, color in _RATINGS:
        if score >= minimum:
            return (label, color)
    return ("Poor", "red")


# ---------------------------------------------------------------------------
# Bars
# ---------------------------------------------------------------------------

def _bar(filled: int, color: str) -> str:
    filled = max(0, min(filled, BAR_LENGTH))
    return (
        f"[white]\\[[/white][bold {color}]{'█' * filled}[/bold {color}]"
        f"[white]{'░' * (BAR_LENGTH - filled)}][/white]"
    )


def speed_color(value: float, max_value: float) -> str:
    percentage = (value / max_value) * 100 if max_value > 0 else 0.0
    if percentage >= 75:
        return "green"
    if percentage >= 50:
        return "cyan"
    if percentage >= 25:
        return "yellow"
    return "red"


def latency_color(latency_ms: float) -> str:
    if latency_ms < 20:
        return "green"
    if latency_ms < 50:
        return "cyan"
    if latency_ms < 100:
        return "yellow"
    return "red"


def performance_bar(value: float, max_value: float) -> str:
    """Rich markup bar for a speed in Mbps against *max_value*."""
    filled = int((value / max_value) * BAR_LENGTH) if max_value > 0 else 0
    return f"{_bar(filled, speed_color(value, max_value))} [bold]{value:.2f} Mbps[/bold]"


def latency_bar(latency_ms: float) -> str:
    """Inverse bar: full at 0 ms, empty at ``LATENCY_REFERENCE_MS`` or more."""
    filled = int((1 - latency_ms / LATENCY_REFERENCE_MS) * BAR_LENGTH)
    return f"{_bar(filled, latency_color(latency_ms))} [bold]{latency_ms:.2f} ms[/bold]"
