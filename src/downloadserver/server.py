"""
=============================================================================
FILE SERVER ORCHESTRATOR
=============================================================================

Ties the components together and owns the per-connection flow.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        FILESERVER ARCHITECTURE                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                          ┌──────────────┐                            │
    │                          │  FileServer  │                            │
    │                          └──────┬───────┘                            │
    │        ┌──────────────┬─────────┼──────────┬──────────────┐          │
    │        ▼              ▼         ▼          ▼              ▼          │
    │  ┌───────────┐ ┌───────────┐ ┌───────┐ ┌────────┐ ┌─────────────┐   │
    │  │SocketServer│ │RateLimiter│ │Worker │ │ Router │ │ServerStats +│   │
    │  │ (accept)  │ │ (admit)   │ │ Pool  │ │ (gate) │ │StatsReporter│   │
    │  └───────────┘ └───────────┘ └───────┘ └────────┘ └─────────────┘   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    1. ACCEPT       SocketServer accepts, RateLimiter.admit(ip)
                    rejected → socket closed, nothing else happens
    2. QUEUE        FileServer._handle_connection → WorkerPool.submit
    3. READ         Connection.read_head()            (worker thread)
    4. PARSE        RequestParser.parse()
    5. ROUTE        Router.route() → handler response
                    any ServerError → error_response()
    6. WRITE        ResponseWriter.write()
    7. CLOSE        Connection.close(), RateLimiter.release(ip)

Steps 3-7 run inside one failure boundary: an unexpected fault is
logged, counted as a failed request, and stays inside this connection.
The limiter slot is always released in a finally block.

=============================================================================
SUCCESS VS FAILURE
=============================================================================

    success   a complete response was written, whatever its status
              (a 404 is the server doing its job), or the client
              disconnected mid-stream
    failure   an unexpected exception (answered with 500), or a socket
              error other than a disconnect

=============================================================================
"""

import logging
import time
from typing import Optional

from . import __version__
from .config import ServerConfig
from .core.connection import Connection
from .core.rate_limiter import RateLimiter
from .core.socket_server import SocketServer
from .core.stats import ServerStats, StatsReporter
from .core.thread_pool import PoolClosedError, WorkerPool
from .handlers.health import HealthHandler
from .http.errors import ServerError, error_response
from .http.request import HTTPRequest, RequestParser
from .http.response import HTTPResponse, ResponseWriter, is_disconnect
from .http.router import Router


logger = logging.getLogger(__name__)


class FileServer:
    """
    Concurrent file download server.

    =========================================================================
    USAGE
    =========================================================================

        config = ServerConfig(root_dir="./files", port=8080)
        server = FileServer(config)
        server.run()            # blocks until SIGINT/SIGTERM

    From another thread (tests, embedding):

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5)
        ...
        server.shutdown()
        thread.join()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Validated here (fail-fast).

        Raises:
            ConfigError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # SHARED STATE
        # ─────────────────────────────────────────────────────────────────

        self.stats = ServerStats()
        self.rate_limiter = RateLimiter(
            max_requests_per_minute=self.config.max_requests_per_minute,
            max_concurrent=self.config.max_concurrent_per_client,
            retention=self.config.rate_limit_retention,
        )

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._socket_server = SocketServer(self.config, admit=self.rate_limiter.admit)
        self._pool = WorkerPool(workers=self.config.workers)
        self._reporter = StatsReporter(self.stats, interval=self.config.stats_interval)

        # ─────────────────────────────────────────────────────────────────
        # HTTP COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._parser = RequestParser()
        self._writer = ResponseWriter(self.config.server_name)
        self._router = Router(
            self.config,
            HealthHandler(version=__version__, features=self._features()),
        )

        self._running = False

    def _features(self) -> list:
        features = ["range-requests", "directory-listing", "rate-limiting", "extension-filter"]
        if self.config.auth_enabled:
            features.append("basic-auth")
        return features

    @property
    def address(self):
        """Bound (host, port); the real port once listening with port=0."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Returns after shutdown() (or a signal) once every in-flight
        connection has been served and every worker has exited.
        """
        self._setup_logging()
        self._running = True

        self._pool.start()
        self.rate_limiter.start_sweeper(self.config.rate_limit_sweep_interval)
        self._reporter.start()

        logger.info(
            f"Serving {self.config.root_dir} on {self.config.host}:{self.config.port} "
            f"(allowed: {', '.join(self.config.allowed_extensions)}; "
            f"workers: {self.config.workers})"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask the server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.WARNING)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("downloadserver").setLevel(level)

    def _shutdown(self):
        """
        Graceful shutdown.

        1. The accept loop has already stopped (no new connections)
        2. Drain queued and in-flight connections, join the workers
        3. Stop the background threads and log final stats
        """
        logger.info("Shutting down server...")
        self._socket_server.shutdown()
        self._pool.shutdown()
        self.rate_limiter.stop_sweeper()
        self._reporter.stop()
        self._running = False
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue an admitted connection for a worker (acceptor thread)."""
        try:
            self._pool.submit(lambda: self._process_connection(conn))
        except PoolClosedError:
            logger.warning(f"[{conn.id}] Pool closed, dropping connection from {conn.client_ip}")
            conn.close()
            self.rate_limiter.release(conn.client_ip)

    def _process_connection(self, conn: Connection):
        """
        Serve one connection (worker thread). This is the failure
        boundary: nothing raised in here escapes to the worker.
        """
        self.stats.record_request()
        succeeded = False

        try:
            with conn:
                succeeded = self._serve(conn)
        except Exception as e:
            logger.exception(f"[{conn.id}] Connection error: {e}")
        finally:
            self.rate_limiter.release(conn.client_ip)
            if succeeded:
                self.stats.record_success()
            else:
                self.stats.record_failure()

    def _serve(self, conn: Connection) -> bool:
        """
        Read, route and answer one request.

        Returns:
            True if the request counts as a success.
        """
        started = time.time()
        request: Optional[HTTPRequest] = None
        fault = False

        try:
            head = conn.read_head()
            request = self._parser.parse(head, conn.address)
            response = self._router.route(request)
        except ServerError as e:
            logger.debug(f"[{conn.id}] {int(e.status_code)}: {e}")
            response = error_response(e)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            response = error_response(e)
            fault = True

        delivered = self._send(conn, response)
        self._log_access(conn, request, response, started)
        return delivered and not fault

    def _send(self, conn: Connection, response: HTTPResponse) -> bool:
        try:
            written = self._writer.write(conn, response)
        except OSError as e:
            if is_disconnect(e):
                logger.debug(f"[{conn.id}] Client disconnected during response: {e}")
                return True
            logger.error(f"[{conn.id}] Failed to write response: {e}")
            return False
        finally:
            response.close()

        self.stats.record_bytes(written)
        return True

    def _log_access(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        started: float,
    ):
        elapsed_ms = (time.time() - started) * 1000
        line = f"{request.method} {request.path}" if request else "-"
        logger.info(
            f'[{conn.id}] {conn.client_ip} "{line}" {int(response.status)} '
            f"{response.content_length}B {elapsed_ms:.1f}ms"
        )
