"""
Shared constants used across all engine modules.

Centralises default endpoints, limits, and timing tunables so they live in
exactly one place.
"""

VERSION = "1.0.1"

# ---------------------------------------------------------------------------
# Default endpoints
# ---------------------------------------------------------------------------

DEFAULT_DOWNLOAD_ENDPOINTS = (
    "https://speed.cloudflare.com/__down?bytes=10000000",  # bulk download
    "https://www.google.com/generate_204",                 # latency probe
)

DEFAULT_UPLOAD_ENDPOINTS = (
    "https://httpbin.org/post",
    "https://speed.cloudflare.com/__up?bytes=10000000",
)

# ---------------------------------------------------------------------------
# Connection limits
# ---------------------------------------------------------------------------

MIN_CONNECTIONS = 1
MAX_CONNECTIONS = 32
DEFAULT_CONNECTIONS = 4

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

DEFAULT_DURATION = 10.0          # seconds for the download phase
QUICK_DURATION = 5.0
MIN_DURATION = 1.0
MAX_DURATION = 300.0

TRANSFER_TIMEOUT = 30.0          # per download / upload request

LATENCY_PROBE_COUNT = 10
LATENCY_PROBE_TIMEOUT = 5.0      # per probe
LATENCY_PROBE_INTERVAL = 0.1     # pause after each successful probe
LOADED_LATENCY_DELAY = 2.0       # let the download load ramp up first

# ---------------------------------------------------------------------------
# Data transfer
# ---------------------------------------------------------------------------

CHUNK_SIZE = 64 * 1024           # read size while draining a download body
DEFAULT_UPLOAD_CHUNK_SIZE = 512 * 1024
UPLOAD_CONTENT_TYPE = "application/octet-stream"

# ---------------------------------------------------------------------------
# Responsiveness classification (loaded latency, ms)
# ---------------------------------------------------------------------------

HIGH_RESPONSIVENESS_BELOW_MS = 200.0
MEDIUM_RESPONSIVENESS_BELOW_MS = 1000.0
