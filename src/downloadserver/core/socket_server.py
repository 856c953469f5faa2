"""
=============================================================================
TCP SOCKET SERVER (ACCEPTOR)
=============================================================================

Owns the listening socket and the accept loop.

=============================================================================
THE POLLING ACCEPT LOOP
=============================================================================

The listening socket is non-blocking. accept() either returns a client
right away or raises BlockingIOError, in which case the loop sleeps for
poll_interval and checks the running flag again:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   while running:                                                     │
    │       try:                                                           │
    │           sock, addr = accept()       ← returns immediately          │
    │       except BlockingIOError:                                        │
    │           sleep(poll_interval)        ← nothing pending              │
    │           continue                                                   │
    │                                                                      │
    │       if not admit(addr[0]):          ← admission control            │
    │           sock.close()                ← rejected, nothing parsed     │
    │           continue                                                   │
    │                                                                      │
    │       handler(Connection(sock, ...))  ← hand off to the worker pool  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A shutdown request (signal or shutdown() from another thread) is noticed
within one poll interval. No wake-up pipe, no select(). A request made
before start() is remembered, and start() then returns without listening.

Any other accept() error (ECONNABORTED, EMFILE when descriptors run out)
is logged and the loop carries on after one poll interval. Only a
shutdown request ends it.

=============================================================================
SIGNALS
=============================================================================

    SIGTERM (docker stop, systemd, kill)  ┐
    SIGINT  (Ctrl+C)                      ┴──► shutdown()

Handlers can only be installed from the main thread. When start() runs
anywhere else (tests run the server on a background thread), signal
setup is skipped and shutdown() must be called directly.

=============================================================================
"""

import socket
import signal
import time
import logging
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


AdmitHook = Callable[[str], bool]


class SocketServer:
    """
    Low-level TCP socket server.

        start()
          ├──► _create_socket()   SO_REUSEADDR, TCP_NODELAY, non-blocking
          ├──► bind() + listen()
          ├──► _setup_signals()
          └──► _accept_loop()     blocks until shutdown()

        shutdown()                records the request; the loop exits
        _cleanup()                restores signals, closes the socket

    Usage:
        server = SocketServer(config, admit=limiter.admit)
        server.start(handle_connection)   # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig, admit: Optional[AdmitHook] = None):
        """
        Args:
            config: Server configuration.
            admit: Called with the client IP for every accepted socket.
                   Returning False closes the socket without a response.
        """
        self.config = config
        self._admit = admit

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._shutdown_requested = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port). With port 0 this is the port the OS picked."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening."""
        return self._ready.wait(timeout)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restart without waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Small header writes go out immediately
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.setblocking(False)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until shutdown() is called. If shutdown() was
        already called it returns at once without binding.

        Args:
            connection_handler: Called with each admitted Connection.

        Raises:
            OSError: If the address cannot be bound.
        """
        if self._shutdown_requested.is_set():
            logger.info("Shutdown requested before start, not listening")
            return

        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while not self._shutdown_requested.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except (BlockingIOError, InterruptedError):
                time.sleep(self.config.poll_interval)
                continue
            except OSError as e:
                if self._shutdown_requested.is_set():
                    break
                logger.error(f"Accept error: {e}")
                time.sleep(self.config.poll_interval)
                continue

            client_ip = client_address[0]

            if self._admit is not None and not self._admit(client_ip):
                self._close_quietly(client_socket)
                continue

            logger.debug(f"Accepted connection from {client_ip}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                max_head_size=self.config.buffer_size,
                read_timeout=self.config.read_timeout,
            )
            connection_handler(conn)

    @staticmethod
    def _close_quietly(sock: socket.socket):
        try:
            sock.close()
        except OSError:
            pass

    def shutdown(self):
        """
        Stop accepting connections. Safe to call more than once and from
        any thread or a signal handler.
        """
        if self._running and not self._shutdown_requested.is_set():
            logger.info("Shutting down socket server...")
        self._shutdown_requested.set()
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready.clear()
        logger.info("Socket server stopped")
