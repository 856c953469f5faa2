"""
=============================================================================
HEALTH / STATUS ENDPOINT
=============================================================================

    GET /_health
    GET /_status

Both return the same fixed JSON document:

    {
        "status": "healthy",
        "service": "downloadserver",
        "version": "2.0.0",
        "timestamp": 1735689600,
        "uptime_seconds": 3600,
        "features": ["range-requests", "directory-listing", ...]
    }

Load balancers and process supervisors poll these routes. They never
touch the filesystem, so they stay fast and keep answering even when the
served directory is slow or gone. They are answered before the
extension allow-list and path checks, but after authentication.

Cache-Control: no-cache keeps intermediaries from serving a stale
"healthy" for a server that has since died.

=============================================================================
"""

import time
from typing import List, Optional

from ..http.response import HTTPResponse, ResponseBuilder


SERVICE_NAME = "downloadserver"

HEALTH_PATHS = frozenset({"/_health", "/_status"})


class HealthHandler:
    """
    Builds the health/status response.

    Usage:
        health = HealthHandler(version="2.0.0", features=["basic-auth"])
        response = health.handle()
    """

    def __init__(self, version: str, features: Optional[List[str]] = None):
        self.version = version
        self.features = list(features or [])
        self._start_time = time.time()

    @property
    def uptime(self) -> float:
        """Seconds since the handler (and server) was created."""
        return time.time() - self._start_time

    def payload(self) -> dict:
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": self.version,
            "timestamp": int(time.time()),
            "uptime_seconds": int(self.uptime),
            "features": self.features,
        }

    def handle(self) -> HTTPResponse:
        return (ResponseBuilder()
            .json(self.payload())
            .no_cache()
            .build())
