"""
Test server descriptors used for multi-connection fan-out.

The set is static configuration: an ordered, immutable sequence that workers
index round-robin (``index % len(servers)``).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TestServer:
    """A remote endpoint usable for throughput testing."""

    __test__ = False  # keep pytest from collecting this as a test class

    name: str
    base_url: str
    location: str = ""

    # -- Constructors -------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict) -> TestServer:
        return cls(
            name=data.get("name", ""),
            base_url=data.get("base_url", data.get("url", "")).rstrip("/"),
            location=data.get("location", ""),
        )

    # -- Derived URLs -------------------------------------------------------

    def download_url(self, size_bytes: int) -> str:
        return f"{self.base_url}/__down?bytes={size_bytes}"

    @property
    def upload_url(self) -> str:
        return f"{self.base_url}/__up"

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "base_url": self.base_url,
            "location": self.location,
        }


TEST_SERVERS: Tuple[TestServer, ...] = (
    TestServer("Cloudflare", "https://speed.cloudflare.com", "Global CDN"),
    TestServer("Turksat", "http://speedtest.turksat.com.tr", "Ankara, Turkey"),
    TestServer("Turk Telekom", "http://speedtest.turktelekom.com.tr", "Istanbul, Turkey"),
    TestServer("Google", "https://www.google.com", "Global CDN"),
    TestServer("Microsoft", "https://www.microsoft.com", "Global CDN"),
)


def pick_server(index: int, servers: Sequence[TestServer] = TEST_SERVERS) -> TestServer:
    """Round-robin selection of the server for worker *index*."""
    if not servers:
        raise ValueError("no test servers configured")
    return servers[index % len(servers)]
