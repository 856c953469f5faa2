"""
=============================================================================
HTTP RESPONSE MODEL AND WRITER
=============================================================================

A response here is a status, an ORDERED list of headers, and one of two
kinds of body:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        RESPONSE BODIES                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   In-memory bytes     Listings, error pages, health JSON, assets     │
    │   ───────────────     Sent with one sendall()                        │
    │                                                                      │
    │   FileStream          Downloads                                      │
    │   ──────────          (open file, offset, length, chunk_size)        │
    │                       Read and sent chunk by chunk, never loaded     │
    │                       into memory as a whole                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SERIALIZATION FORMAT
=============================================================================

    HTTP/1.1 206 Partial Content\r\n          ← Status line
    Content-Type: application/octet-stream\r\n
    Content-Range: bytes 2-4/5\r\n
    Server: downloadserver/2.0.0\r\n          ← Always added
    Connection: close\r\n                     ← Always added
    Content-Length: 3\r\n                     ← Always added
    \r\n
    llo                                       ← Body

Headers are a list of (name, value) pairs rather than a dict, so their
order on the wire is the order they were added and the same name may
appear twice.

=============================================================================
DISCONNECTS
=============================================================================

A download client that goes away mid-transfer is routine (the user hit
cancel, the browser paused a download). The writer lets those errors
propagate; is_disconnect() tells the caller which ones are routine so
they can be logged quietly instead of as failures.

=============================================================================
"""

import json
from dataclasses import dataclass, field
from typing import Any, BinaryIO, List, Optional, Tuple, Union

from .status_codes import HTTPStatus


DISCONNECT_ERRORS = (
    BrokenPipeError,
    ConnectionResetError,
    ConnectionAbortedError,
    BlockingIOError,
)


def is_disconnect(error: BaseException) -> bool:
    """True if the error means the peer went away."""
    return isinstance(error, DISCONNECT_ERRORS)


@dataclass
class FileStream:
    """
    A streamed file body.

    Attributes:
        file: Open binary file handle. Closed by HTTPResponse.close().
        length: Number of bytes to send (the Content-Length).
        chunk_size: Maximum bytes per read/send.
        offset: File position to start reading from.
    """
    file: BinaryIO
    length: int
    chunk_size: int = 1024
    offset: int = 0


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use ResponseBuilder for a more convenient way to construct responses.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    stream: Optional[FileStream] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        """Declared body length: the stream length or len(body)."""
        if self.stream is not None:
            return self.stream.length
        return len(self.body)

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Append a header. Existing headers with the same name are kept.

        Returns:
            Self for method chaining
        """
        self.headers.append((name, value))
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a header (case-insensitive), or default."""
        wanted = name.lower()
        for header_name, value in self.headers:
            if header_name.lower() == wanted:
                return value
        return default

    def head_bytes(self, server_name: str) -> bytes:
        """
        Serialize the status line and headers.

        Server, Connection: close and Content-Length are appended here so
        that no handler can forget them.

        Args:
            server_name: Value for the Server header.

        Returns:
            Header block ending with the blank line.
        """
        lines = [self.status_line]
        for name, value in self.headers:
            lines.append(f"{name}: {value}")
        lines.append(f"Server: {server_name}")
        lines.append("Connection: close")
        lines.append(f"Content-Length: {self.content_length}")
        lines.append("")
        return ("\r\n".join(lines) + "\r\n").encode("utf-8")

    def close(self) -> None:
        """Release the streamed file, if any."""
        if self.stream is not None:
            self.stream.file.close()


class ResponseWriter:
    """
    Writes HTTPResponse objects to a socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       write() Flow                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   sendall(head_bytes)                                                │
    │        │                                                             │
    │        ├── in-memory body? ──► sendall(body)                         │
    │        │                                                             │
    │        └── FileStream?  ──► seek(offset)                             │
    │                             while remaining > 0:                     │
    │                                 read(min(chunk, remaining))          │
    │                                 EOF? stop (short file is not an      │
    │                                      error)                          │
    │                                 sendall(chunk)                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, server_name: str):
        self.server_name = server_name

    def write(self, sock, response: HTTPResponse) -> int:
        """
        Send a full response.

        Args:
            sock: Anything with sendall(bytes).
            response: The response to send.

        Returns:
            Number of body bytes written.

        Raises:
            OSError: On socket errors. Check is_disconnect() to tell a
                     client that went away from a real failure.
        """
        sock.sendall(response.head_bytes(self.server_name))

        if response.stream is None:
            if response.body:
                sock.sendall(response.body)
            return len(response.body)

        return self._write_stream(sock, response.stream)

    def _write_stream(self, sock, stream: FileStream) -> int:
        stream.file.seek(stream.offset)
        remaining = stream.length
        written = 0

        while remaining > 0:
            chunk = stream.file.read(min(stream.chunk_size, remaining))
            if not chunk:
                break
            sock.sendall(chunk)
            written += len(chunk)
            remaining -= len(chunk)

        return written


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .html(page)
            .no_cache()
            .build())
    """

    def __init__(self):
        self._response = HTTPResponse()

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._response.status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._response.add_header(name, value)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._response.body = body
        return self

    def html(self, html: str) -> "ResponseBuilder":
        """Set an HTML body with the matching Content-Type."""
        return self.content_type("text/html; charset=utf-8").body(html)

    def json(self, data: Any) -> "ResponseBuilder":
        """Set a JSON body with the matching Content-Type."""
        return self.content_type("application/json").body(json.dumps(data))

    def stream(
        self,
        file: BinaryIO,
        length: int,
        chunk_size: int = 1024,
        offset: int = 0,
    ) -> "ResponseBuilder":
        """Send the body from an open file instead of from memory."""
        self._response.stream = FileStream(
            file=file, length=length, chunk_size=chunk_size, offset=offset
        )
        return self

    def no_cache(self) -> "ResponseBuilder":
        return self.header("Cache-Control", "no-cache")

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        return self.header("Cache-Control", f"public, max-age={max_age}")

    def build(self) -> HTTPResponse:
        return self._response
