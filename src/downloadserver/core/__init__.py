"""
Core networking and concurrency: the acceptor, client connections, the
worker pool, admission control and request statistics.
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import WorkerPool, PoolClosedError
from .rate_limiter import RateLimiter
from .stats import ServerStats, StatsReporter

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "WorkerPool",
    "PoolClosedError",
    "RateLimiter",
    "ServerStats",
    "StatsReporter",
]
