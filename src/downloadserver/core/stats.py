"""
=============================================================================
SERVER STATISTICS
=============================================================================

Process-wide counters, updated by every worker:

    total_requests       every connection that reached a worker
    successful_requests  response fully sent (or client left mid-stream)
    failed_requests      handler fault or non-disconnect I/O error
    bytes_served         body bytes written

Each update is its own locked increment. No reader needs the counters to
be consistent with one another, so there is no cross-counter transaction.

StatsReporter logs a one-line summary on a timer, plus a final one at
shutdown.

=============================================================================
"""

import threading
import time
import logging
from typing import Optional


logger = logging.getLogger(__name__)


def format_uptime(seconds: float) -> str:
    """
    Format an uptime for the log.

        >>> format_uptime(3725)
        '1h 2m 5s'
    """
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class ServerStats:
    """Thread-safe request counters."""

    def __init__(self):
        self.start_time = time.time()
        self._lock = threading.Lock()
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._bytes = 0

    def record_request(self) -> None:
        with self._lock:
            self._total += 1

    def record_success(self) -> None:
        with self._lock:
            self._successful += 1

    def record_failure(self) -> None:
        with self._lock:
            self._failed += 1

    def record_bytes(self, count: int) -> None:
        with self._lock:
            self._bytes += count

    @property
    def uptime(self) -> float:
        return time.time() - self.start_time

    def snapshot(self) -> dict:
        """Current counters as a plain dict."""
        with self._lock:
            return {
                "total_requests": self._total,
                "successful_requests": self._successful,
                "failed_requests": self._failed,
                "bytes_served": self._bytes,
                "uptime_seconds": int(self.uptime),
            }

    def summary(self) -> str:
        data = self.snapshot()
        return (
            f"requests={data['total_requests']} "
            f"ok={data['successful_requests']} "
            f"failed={data['failed_requests']} "
            f"bytes={data['bytes_served']} "
            f"uptime={format_uptime(data['uptime_seconds'])}"
        )


class StatsReporter:
    """
    Logs ServerStats.summary() every `interval` seconds.

        reporter = StatsReporter(stats, interval=60)
        reporter.start()
        ...
        reporter.stop()     # logs the final summary
    """

    def __init__(self, stats: ServerStats, interval: float = 60.0):
        self.stats = stats
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.interval <= 0 or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="StatsReporter", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            logger.info(f"Stats: {self.stats.summary()}")

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        logger.info(f"Final stats: {self.stats.summary()}")
