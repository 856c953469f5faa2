"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket. A connection is owned by exactly one
worker thread from the moment it is dequeued until it is closed.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

    Client sends:   "GET /a.txt HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n"

    Server might receive:
        recv() → "GET /a.t"
        recv() → "xt HTTP/1.1\\r\\nHo"
        recv() → "st: x\\r\\n\\r\\n"

So we buffer until the end-of-head marker shows up. Two markers are
accepted: the proper "\\r\\n\\r\\n" and the bare "\\n\\n" that hand-typed
requests (netcat, telnet) tend to send.

=============================================================================
BOUNDS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  max_head_size (8 KiB)   A head that does not end within this many  │
    │                          bytes is rejected. Stops a client from      │
    │                          feeding us an endless header block.         │
    │                                                                      │
    │  read_timeout (30 s)     A client that connects and then goes quiet  │
    │                          gets a 400 instead of pinning a worker.     │
    └─────────────────────────────────────────────────────────────────────┘

Both failures raise ServerError(BAD_REQUEST).

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
     │         │                                      ▲
     └─────────┴──────────────────────────────────────┘

There is no keep-alive state: every response ends the connection.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.errors import ErrorKind, ServerError


logger = logging.getLogger(__name__)

HEAD_TERMINATORS = (b"\r\n\r\n", b"\n\n")


def find_head_end(buffer: bytes) -> Optional[int]:
    """
    Locate the end of the request head.

    Returns:
        Index just past the earliest terminator, or None if not found.
    """
    best = None
    for marker in HEAD_TERMINATORS:
        index = buffer.find(marker)
        if index != -1:
            end = index + len(marker)
            if best is None or end < best:
                best = end
    return best


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique id used as the [id] prefix in log lines.
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    max_head_size: int = 8192
    read_timeout: float = 30.0
    recv_size: int = 4096
    drain_timeout: float = 0.5

    def __post_init__(self):
        # The listening socket is non-blocking; accepted sockets may inherit
        # that on some platforms. Force blocking with a timeout.
        self.socket.setblocking(True)
        self.socket.settimeout(self.read_timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_head(self) -> bytes:
        """
        Read the request head (request line + headers).

        ┌─────────────────────────────────────────────────────────────────┐
        │   while no terminator in buffer:                                 │
        │       buffer full?      → 400                                    │
        │       recv() timed out? → 400                                    │
        │       recv() == b""?    → 400 (peer closed before a full head)   │
        │       buffer += chunk                                            │
        │   return buffer[:end_of_head]                                    │
        └─────────────────────────────────────────────────────────────────┘

        Returns:
            Head bytes including the terminator.

        Raises:
            ServerError: BAD_REQUEST on overflow, timeout or early close.
        """
        self.state = ConnectionState.READING
        buffer = b""

        while True:
            end = find_head_end(buffer)
            if end is not None:
                self.state = ConnectionState.PROCESSING
                return buffer[:end]

            if len(buffer) >= self.max_head_size:
                raise ServerError(
                    ErrorKind.BAD_REQUEST,
                    f"Request head exceeds {self.max_head_size} bytes",
                )

            try:
                chunk = self.socket.recv(min(self.recv_size, self.max_head_size - len(buffer)))
            except socket.timeout:
                raise ServerError(ErrorKind.BAD_REQUEST, "Timed out reading request head")
            except (ConnectionResetError, BrokenPipeError):
                chunk = b""

            if not chunk:
                raise ServerError(ErrorKind.BAD_REQUEST, "Connection closed before request head")

            buffer += chunk

    # =========================================================================
    # WRITING
    # =========================================================================

    def sendall(self, data: bytes) -> None:
        """
        Send bytes to the client.

        Errors propagate: the response writer's caller decides whether a
        failure is a routine disconnect or something worth logging.
        """
        self.state = ConnectionState.WRITING
        self.socket.sendall(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN so the client sees end-of-response
        2. drain for at most drain_timeout seconds in total: unread request
           bytes left in the kernel buffer would otherwise turn the close
           into an RST and truncate the response on the client side. A
           client that keeps sending cannot stretch the drain.
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        deadline = time.monotonic() + self.drain_timeout
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                if not self.socket.recv(1024):
                    break
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
