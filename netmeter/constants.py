"""
Shared constants used across all netmeter modules.

Centralises endpoints, payload sizes, timeouts and tunables so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers
# ---------------------------------------------------------------------------

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    # Compressed bodies would make bytes-read differ from bytes-on-the-wire.
    "Accept-Encoding": "identity",
}

UPLOAD_HEADERS = {
    **COMMON_HEADERS,
    "Content-Type": "application/octet-stream",
}

# ---------------------------------------------------------------------------
# Measurement endpoints
# ---------------------------------------------------------------------------

CDN_BASE_URL = "https://speed.cloudflare.com"
CDN_UPLOAD_URL = f"{CDN_BASE_URL}/__up"

PING_HOSTS = ("8.8.8.8", "1.1.1.1", "208.67.222.222")
PING_PORT = 80
HTTP_PING_HOSTS = ("8.8.8.8", "1.1.1.1")

ALTERNATIVE_DOWNLOAD_URLS = (
    "https://www.google.com/images/branding/googlelogo/1x/googlelogo_color_272x92dp.png",
    "https://www.microsoft.com/favicon.ico",
    f"{CDN_BASE_URL}/__down?bytes=1000000",
)

ALTERNATIVE_UPLOAD_URLS = (
    "https://httpbin.org/post",
    "https://postman-echo.com/post",
)

# ---------------------------------------------------------------------------
# Latency
# ---------------------------------------------------------------------------

PING_ATTEMPTS = 5               # per host
PING_TIMEOUT = 2.0              # seconds per attempt
PING_DELAY = 0.1                # pause between attempts
MIN_PING_SAMPLES = 3            # below this jitter is meaningless

# ---------------------------------------------------------------------------
# Throughput
# ---------------------------------------------------------------------------

CHUNK_SIZE = 16 * 1024          # read size while streaming a body
NUM_CONNECTIONS = 4             # multi-connection worker count

SINGLE_DOWNLOAD_SIZE = 25_000_000
SINGLE_DOWNLOAD_TIMEOUT = 30.0
MULTI_DOWNLOAD_SIZE = 10_000_000
MULTI_DOWNLOAD_TIMEOUT = 20.0

SINGLE_UPLOAD_SIZE = 5_000_000
SINGLE_UPLOAD_TIMEOUT = 30.0
MULTI_UPLOAD_SIZE = 2_000_000
MULTI_UPLOAD_TIMEOUT = 20.0

ALTERNATIVE_DOWNLOAD_TIMEOUT = 15.0
ALTERNATIVE_UPLOAD_SIZE = 1_000_000
ALTERNATIVE_UPLOAD_TIMEOUT = 15.0

# Small transfers are dominated by connection setup, so their raw rate
# underestimates the link.
SMALL_TRANSFER_CORRECTION = 1.5

# ---------------------------------------------------------------------------
# Simulated measurement ranges  [low, high)
# ---------------------------------------------------------------------------

SIMULATED_PING_RANGE = (15.0, 25.0)
SIMULATED_JITTER_RANGE = (2.0, 7.0)
SIMULATED_DOWNLOAD_RANGE = (80.0, 120.0)
SIMULATED_UPLOAD_RANGE = (5.0, 20.0)

# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

ANONYMOUS_USER = "anonymous"
NETWORK_METADATA_KEYS = ("ip", "isp", "country", "region")
