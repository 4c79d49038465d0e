"""Network quality measurement engine -- throughput, latency, responsiveness."""

from .config import TestConfiguration
from .constants import VERSION
from .download import DownloadResult, DownloadTester, download_once
from .errors import (
    AllSamplesFailed,
    ConfigurationError,
    QualityTestError,
    StageError,
    TestCancelled,
)
from .latency import LatencySampler
from .quality import (
    QualityResult,
    QualityTester,
    classify_responsiveness,
    run_quality_test,
)
from .stats import ConnectionStats, LatencyStats, megabits_per_second
from .throughput import ByteCounter, ThroughputAggregator, ThroughputResult
from .upload import UploadResult, UploadTester, upload_once

__version__ = VERSION

__all__ = [
    "AllSamplesFailed",
    "ByteCounter",
    "ConfigurationError",
    "ConnectionStats",
    "DownloadResult",
    "DownloadTester",
    "LatencySampler",
    "LatencyStats",
    "QualityResult",
    "QualityTestError",
    "QualityTester",
    "StageError",
    "TestCancelled",
    "TestConfiguration",
    "ThroughputAggregator",
    "ThroughputResult",
    "UploadResult",
    "UploadTester",
    "classify_responsiveness",
    "download_once",
    "megabits_per_second",
    "run_quality_test",
    "upload_once",
]
