"""
Output formatting -- JSON export and plain text.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from netquality.config import TestConfiguration
from netquality.constants import VERSION
from netquality.grading import overall_quality
from netquality.quality import QualityResult


def create_result_json(
    result: QualityResult,
    config: Optional[TestConfiguration] = None,
    elapsed_seconds: Optional[float] = None,
) -> Dict[str, Any]:
    """Build a JSON-serialisable dict describing one run."""
    rating, _ = overall_quality(result)

    data: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "uplink": {"speed_mbps": result.uplink_mbps},
        "downlink": {"speed_mbps": result.downlink_mbps},
        "latency": {
            "idle_ms": result.idle_latency_ms,
            "loaded_ms": result.loaded_latency_ms,
        },
        "responsiveness": {
            "rating": result.responsiveness,
            "ms": result.responsiveness_ms,
        },
        "overall": rating,
    }

    if config is not None:
        data["configuration"] = config.to_dict()
    if elapsed_seconds is not None:
        data["elapsed_seconds"] = round(elapsed_seconds, 3)

    return data


# ---------------------------------------------------------------------------
# Plain-text helpers
# ---------------------------------------------------------------------------

def format_text_result(result: QualityResult) -> str:
    rating, _ = overall_quality(result)
    return f"{result.format_summary()}Overall: {rating}"
