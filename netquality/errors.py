"""Exception hierarchy raised by the measurement engine."""
from __future__ import annotations

from typing import Optional


class QualityTestError(Exception):
    """Base class for every error surfaced by the engine."""


class ConfigurationError(QualityTestError, ValueError):
    """The test configuration cannot be run (detected before any I/O)."""


class AllSamplesFailed(QualityTestError):
    """Every latency probe against *url* failed."""

    def __init__(self, url: str, attempts: int) -> None:
        super().__init__(f"all {attempts} latency probes to {url} failed")
        self.url = url
        self.attempts = attempts


class TestCancelled(QualityTestError):
    """The caller set the cancellation token before the run finished."""

    __test__ = False

    def __init__(self, message: str = "test cancelled") -> None:
        super().__init__(message)


class StageError(QualityTestError):
    """
    A measurement stage failed.

    ``stage`` is one of ``idle-latency``, ``download`` or ``upload``; the
    originating exception is kept both as ``cause`` and as ``__cause__``.
    """

    def __init__(self, stage: str, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"failed to measure {stage}{detail}")
        self.stage = stage
        self.cause = cause
