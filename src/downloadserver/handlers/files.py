"""
=============================================================================
FILE DOWNLOADS AND BYTE RANGES
=============================================================================

Streams one file to the client, whole or as a single byte range.

=============================================================================
RANGE REQUESTS
=============================================================================

Range requests are what make downloads resumable: a client that already
has the first 700 MB of a file asks only for the rest.

    Range: bytes=2-4     → bytes 2, 3, 4           (206)
    Range: bytes=2-      → byte 2 through the end  (206)
    (no Range header)    → whole file              (200)

    ┌─────────────────────────────────────────────────────────────────────┐
    │  file "hello" (size 5)                                               │
    │                                                                      │
    │   offset:   0   1   2   3   4                                        │
    │   byte:     h   e   l   l   o                                        │
    │                     └───────┘                                        │
    │                   bytes=2-4 → "llo"                                  │
    │                   Content-Range: bytes 2-4/5                         │
    └─────────────────────────────────────────────────────────────────────┘

Outcomes:

    header not "bytes=<digits>-[<digits>]"   → 400 Bad Request
    start > end  or  end >= size             → 416, no body
    otherwise                                → 206 with exactly
                                               end - start + 1 bytes

Suffix ranges ("bytes=-500") and multi-range requests ("bytes=0-1,5-6")
are not supported and count as malformed.

=============================================================================
RESPONSE HEADERS (every download)
=============================================================================

    Content-Type: application/octet-stream
    Content-Disposition: attachment; filename="<name>"
    Accept-Ranges: bytes

=============================================================================
"""

import os
import re
import logging
from dataclasses import dataclass
from typing import Optional

from ..http.errors import ErrorKind, ServerError
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

_RANGE_PATTERN = re.compile(r"^bytes=(\d+)-(\d*)$")


@dataclass(frozen=True)
class ByteRange:
    """
    An inclusive byte range inside a file.

    Invariant: 0 <= start <= end < size. Only parse_range() builds these.
    """
    start: int
    end: int
    size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.size}"


def parse_range(header: Optional[str], size: int) -> Optional[ByteRange]:
    """
    Parse a Range header against a file size.

    Args:
        header: Raw Range header value, or None.
        size: File size in bytes.

    Returns:
        ByteRange, or None when no Range header was sent.

    Raises:
        ServerError: BAD_REQUEST if malformed,
                     RANGE_NOT_SATISFIABLE if outside the file.
    """
    if header is None:
        return None

    match = _RANGE_PATTERN.match(header.strip())
    if not match:
        raise ServerError(ErrorKind.BAD_REQUEST, f"Malformed Range header: {header!r}")

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else size - 1

    if start > end or end >= size:
        raise ServerError(
            ErrorKind.RANGE_NOT_SATISFIABLE,
            f"Range {start}-{end} not satisfiable for size {size}",
        )

    return ByteRange(start=start, end=end, size=size)


def content_disposition(filename: str) -> str:
    """attachment header value with quotes and backslashes escaped."""
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'attachment; filename="{escaped}"'


class FileResponder:
    """
    Builds streamed download responses.

    The file is opened here and handed to the response as a FileStream;
    the ResponseWriter reads it chunk by chunk and the server closes it
    once the response is written.
    """

    def __init__(self, chunk_size: int = 1024):
        self.chunk_size = chunk_size

    def respond(self, path: str, request: HTTPRequest) -> HTTPResponse:
        """
        Build the response for a resolved, allowed file.

        Args:
            path: Canonical path of the file.
            request: The parsed request (for the Range header).

        Returns:
            A 200 or 206 response with a FileStream body.

        Raises:
            ServerError: For bad/unsatisfiable ranges or unreadable files.
        """
        try:
            file = open(path, "rb")
        except FileNotFoundError:
            raise ServerError(ErrorKind.NOT_FOUND, f"{path} disappeared")
        except PermissionError:
            raise ServerError(ErrorKind.FORBIDDEN, f"Permission denied: {path}")

        try:
            size = os.fstat(file.fileno()).st_size
            byte_range = parse_range(request.range, size)
        except BaseException:
            file.close()
            raise

        builder = (ResponseBuilder()
            .content_type("application/octet-stream")
            .header("Content-Disposition", content_disposition(os.path.basename(path)))
            .header("Accept-Ranges", "bytes"))

        if byte_range is None:
            logger.debug(f"Serving {path} ({size} bytes)")
            return (builder
                .status(HTTPStatus.OK)
                .stream(file, length=size, chunk_size=self.chunk_size)
                .build())

        logger.debug(f"Serving {path} range {byte_range.content_range}")
        return (builder
            .status(HTTPStatus.PARTIAL_CONTENT)
            .header("Content-Range", byte_range.content_range)
            .stream(
                file,
                length=byte_range.length,
                chunk_size=self.chunk_size,
                offset=byte_range.start,
            )
            .build())
