"""
Test configuration and user configuration file support.

``TestConfiguration`` is the immutable input handed to the engine.  User
defaults are read from ``~/.networkquality/config.json``.

Supported keys::

    duration = 10.0             # download phase, seconds (upload uses half)
    connections = 4             # concurrent workers per phase
    download_endpoints = [...]  # bulk target first, latency probe second
    upload_endpoints = [...]
    upload_chunk_size = 524288  # bytes per upload request
"""
from __future__ import annotations

import dataclasses
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .constants import (
    DEFAULT_CONNECTIONS,
    DEFAULT_DOWNLOAD_ENDPOINTS,
    DEFAULT_DURATION,
    DEFAULT_UPLOAD_CHUNK_SIZE,
    DEFAULT_UPLOAD_ENDPOINTS,
)
from .errors import ConfigurationError

_CONFIG_DIR = os.path.join(Path.home(), ".networkquality")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Test configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TestConfiguration:
    """Immutable input of a single quality test run."""

    __test__ = False

    test_duration: float = DEFAULT_DURATION
    download_endpoints: Tuple[str, ...] = DEFAULT_DOWNLOAD_ENDPOINTS
    upload_endpoints: Tuple[str, ...] = DEFAULT_UPLOAD_ENDPOINTS
    upload_chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE
    connection_count: int = DEFAULT_CONNECTIONS

    def __post_init__(self) -> None:
        # Accept any iterable of URLs but store tuples so the object stays hashable.
        object.__setattr__(self, "download_endpoints", tuple(self.download_endpoints))
        object.__setattr__(self, "upload_endpoints", tuple(self.upload_endpoints))

    # -- Validation ---------------------------------------------------------

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if the run cannot start."""
        if self.test_duration <= 0:
            raise ConfigurationError("test duration must be positive")
        if not self.download_endpoints:
            raise ConfigurationError("no download test servers configured")

    # -- Derived values -----------------------------------------------------

    @property
    def download_url(self) -> str:
        return self.download_endpoints[0]

    @property
    def latency_url(self) -> str:
        """Second download endpoint if present, otherwise the bulk target."""
        if len(self.download_endpoints) > 1:
            return self.download_endpoints[1]
        return self.download_endpoints[0]

    @property
    def upload_duration(self) -> float:
        return self.test_duration / 2

    @property
    def effective_chunk_size(self) -> int:
        if self.upload_chunk_size > 0:
            return self.upload_chunk_size
        return DEFAULT_UPLOAD_CHUNK_SIZE

    def replace(self, **changes: Any) -> TestConfiguration:
        return dataclasses.replace(self, **changes)

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.test_duration,
            "connections": self.connection_count,
            "download_endpoints": list(self.download_endpoints),
            "upload_endpoints": list(self.upload_endpoints),
            "upload_chunk_size": self.upload_chunk_size,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TestConfiguration:
        return cls(
            test_duration=float(data.get("duration", DEFAULT_DURATION)),
            download_endpoints=_endpoints(data.get("download_endpoints"), DEFAULT_DOWNLOAD_ENDPOINTS),
            upload_endpoints=_endpoints(data.get("upload_endpoints"), DEFAULT_UPLOAD_ENDPOINTS),
            upload_chunk_size=int(data.get("upload_chunk_size", DEFAULT_UPLOAD_CHUNK_SIZE)),
            connection_count=int(data.get("connections", DEFAULT_CONNECTIONS)),
        )


def _endpoints(value: Optional[Iterable[str]], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str):
        return (value,)
    return tuple(value)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = TestConfiguration().to_dict()


# ---------------------------------------------------------------------------
# User config file
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update(user)
    except (json.JSONDecodeError, IOError):
        pass  # corrupt file; use defaults

    return config


def build_configuration(overrides: Optional[Mapping[str, Any]] = None) -> TestConfiguration:
    """
    Merge the user config file with *overrides* into a ``TestConfiguration``.

    Keys in *overrides* whose value is ``None`` are ignored so callers can
    pass unset command-line options straight through.
    """
    merged = load_config()
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    return TestConfiguration.from_dict(merged)
