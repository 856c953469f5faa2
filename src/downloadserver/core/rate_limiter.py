"""
=============================================================================
PER-CLIENT ADMISSION CONTROL
=============================================================================

Decides, at accept time, whether a new connection from an address may be
handled at all. A rejected connection is closed immediately, before a
single byte of it is parsed.

=============================================================================
TWO LIMITS PER ADDRESS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   requests per minute       Fixed one-minute window.                 │
    │   ───────────────────       The count resets once more than 60 s     │
    │                             have passed since the window opened.     │
    │                                                                      │
    │   concurrent connections    Live count of open connections.          │
    │   ──────────────────────    +1 on admit(), -1 on release().          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

admit() rejects when EITHER limit is already reached.

=============================================================================
THREAD SAFETY
=============================================================================

The acceptor calls admit() while workers call release(). The
check-then-increment in admit() is one critical section:

    with lock:
        if count < limit:      ← check
            count += 1         ← increment

Split into two steps, two threads could both see count == limit - 1 and
both get in. The lock is never held across I/O.

=============================================================================
MEMORY
=============================================================================

Every address that ever connects gets an entry. sweep() drops entries
that have been idle longer than the retention window (5 minutes by
default) and have no open connections. A background thread calls it
periodically (see start_sweeper()).

=============================================================================
"""

import threading
import time
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional


logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


@dataclass
class ClientRecord:
    """
    Admission state for one address.

    Attributes:
        request_count: Admissions in the current window.
        window_start: When the current window opened.
        active_connections: Currently open connections. Never negative.
        last_seen: Last admit() or release() for this address.
    """
    request_count: int = 0
    window_start: float = 0.0
    active_connections: int = 0
    last_seen: float = 0.0


class RateLimiter:
    """
    Per-address request-rate and concurrency limiter.

    =========================================================================
    USAGE
    =========================================================================

        limiter = RateLimiter(max_requests_per_minute=60, max_concurrent=10)
        limiter.start_sweeper(interval=60)

        if not limiter.admit(ip):
            sock.close()                # rejected, nothing parsed
        else:
            try:
                handle(sock)
            finally:
                limiter.release(ip)

    =========================================================================
    """

    def __init__(
        self,
        max_requests_per_minute: int = 60,
        max_concurrent: int = 10,
        retention: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            max_requests_per_minute: Admissions allowed per address per window.
            max_concurrent: Open connections allowed per address.
            retention: Idle seconds before sweep() forgets an address.
            clock: Time source; injectable for tests.
        """
        self.max_requests_per_minute = max_requests_per_minute
        self.max_concurrent = max_concurrent
        self.retention = retention
        self._clock = clock

        self._clients: Dict[str, ClientRecord] = {}
        self._lock = threading.Lock()

        self._sweeper: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def admit(self, address: str) -> bool:
        """
        Try to admit a new connection from an address.

        Returns:
            True if admitted (both counters were incremented),
            False if either limit is already reached.
        """
        with self._lock:
            now = self._clock()
            record = self._clients.get(address)
            if record is None:
                record = ClientRecord(window_start=now, last_seen=now)
                self._clients[address] = record

            if now - record.window_start > WINDOW_SECONDS:
                record.request_count = 0
                record.window_start = now

            record.last_seen = now

            if record.active_connections >= self.max_concurrent:
                logger.warning(
                    f"Rejecting {address}: {record.active_connections} concurrent connections"
                )
                return False

            if record.request_count >= self.max_requests_per_minute:
                logger.warning(
                    f"Rejecting {address}: {record.request_count} requests this minute"
                )
                return False

            record.request_count += 1
            record.active_connections += 1
            return True

    def release(self, address: str) -> None:
        """Mark one connection from an address as finished."""
        with self._lock:
            record = self._clients.get(address)
            if record is None:
                return
            record.active_connections = max(0, record.active_connections - 1)
            record.last_seen = self._clock()

    def sweep(self) -> int:
        """
        Forget idle addresses.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [
                address for address, record in self._clients.items()
                if record.active_connections == 0
                and now - record.last_seen > self.retention
            ]
            for address in expired:
                del self._clients[address]

        if expired:
            logger.debug(f"Swept {len(expired)} idle rate-limit entries")
        return len(expired)

    def snapshot(self, address: str) -> Optional[ClientRecord]:
        """Copy of one address's record, or None."""
        with self._lock:
            record = self._clients.get(address)
            if record is None:
                return None
            return ClientRecord(**vars(record))

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    # =========================================================================
    # BACKGROUND SWEEPER
    # =========================================================================

    def start_sweeper(self, interval: float = 60.0) -> None:
        """Run sweep() every `interval` seconds on a daemon thread."""
        if self._sweeper is not None:
            return

        self._stop.clear()

        def run():
            while not self._stop.wait(interval):
                self.sweep()

        self._sweeper = threading.Thread(target=run, name="RateLimitSweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=2.0)
            self._sweeper = None
