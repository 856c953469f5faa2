"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw request head read off a socket into an HTTPRequest.

=============================================================================
WHAT WE ACCEPT
=============================================================================

    GET /sub/file%20name.zip HTTP/1.1\r\n     ← request line
    Host: localhost:8080\r\n                   ← headers
    Range: bytes=0-1023\r\n
    Authorization: Basic dXNlcjpwYXNz\r\n
    \r\n                                       ← end of head

Only the head is parsed. This server answers GET requests, which carry
no body, so nothing after the blank line is consumed.

=============================================================================
PARSING RULES
=============================================================================

REQUEST LINE
    Exactly three whitespace-separated tokens: METHOD PATH VERSION.
    VERSION must start with "HTTP/1.". Anything else → 400.
    The method is kept as sent. The router decides what to do with it.

PATH
    The query string (after "?") is split off and kept separately.
    %xx escapes are decoded. Broken escapes ("%zz", a trailing "%4")
    stay in the path literally instead of failing the request.

HEADERS
    "Name: value", split on the FIRST colon, both sides trimmed.
    Names are lower-cased. A repeated name is joined with ", ".
    A line with no colon is logged and skipped (lenient parsing).
    An empty line ends the headers.

=============================================================================
INTERVIEW INSIGHT
=============================================================================

Q: "Why not reject a request with a bad percent escape?"
A: "Browsers and download managers send plenty of sloppy URLs. Passing the
   bytes through keeps them working, and the router's containment check
   still decides what is safe to serve. Decoding is about naming the
   file, not about security."

=============================================================================
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from .errors import ErrorKind, ServerError


logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_LINE_SPLIT = re.compile(r"\r?\n")


def percent_decode(value: str) -> str:
    """
    Decode %xx escapes, passing invalid escapes through unchanged.

    Decoded bytes are read as UTF-8; invalid sequences become U+FFFD.

        >>> percent_decode("/file%20name.txt")
        '/file name.txt'
        >>> percent_decode("/100%")
        '/100%'
        >>> percent_decode("/%zz")
        '/%zz'
    """
    data = value.encode("utf-8")
    decoded = bytearray()
    i = 0

    while i < len(data):
        byte = data[i]
        if byte == 0x25:  # "%"
            pair = data[i + 1:i + 3]
            if len(pair) == 2 and pair[0] in _HEX_DIGITS and pair[1] in _HEX_DIGITS:
                decoded.append(int(pair, 16))
                i += 3
                continue
        decoded.append(byte)
        i += 1

    return decoded.decode("utf-8", errors="replace")


@dataclass
class HTTPRequest:
    """
    A parsed request head.

    Attributes:
        method:         Method exactly as sent ("GET", "POST", ...).
        path:           Percent-decoded path without the query string.
        version:        "HTTP/1.0" or "HTTP/1.1" (any "HTTP/1.x").
        headers:        Lower-cased name → value.
        query:          Raw query string ("" if none).
        client_address: (ip, port) of the peer.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query: str = ""
    client_address: tuple[str, int] = ("", 0)

    @property
    def client_ip(self) -> str:
        return self.client_address[0]

    @property
    def authorization(self) -> Optional[str]:
        return self.headers.get("authorization")

    @property
    def range(self) -> Optional[str]:
        return self.headers.get("range")

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value (case-insensitive lookup)."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses a raw request head into an HTTPRequest.

        Raw head bytes
              │
              ▼
        ┌────────────────────────────────────────────────────┐
        │  1. Decode (UTF-8, replace errors)                  │
        │  2. Split lines on \\r\\n or \\n                        │
        │  3. Request line → method, path, query, version    │
        │  4. Header lines → dict                             │
        └────────────────────────────────────────────────────┘
              │
              ▼
        HTTPRequest  (or ServerError(BAD_REQUEST))
    """

    def parse(
        self,
        head: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse a request head.

        Args:
            head: Bytes up to and including the blank line.
            client_address: Client's (ip, port) tuple.

        Returns:
            Parsed HTTPRequest.

        Raises:
            ServerError: BAD_REQUEST if the request line is malformed.
        """
        text = head.decode("utf-8", errors="replace")
        lines = _LINE_SPLIT.split(text)

        if not lines or not lines[0].strip():
            raise ServerError(ErrorKind.BAD_REQUEST, "Empty request line")

        method, path, query, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query=query,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str, str]:
        """
        Split "METHOD PATH VERSION" and decode the path.

        Returns:
            Tuple of (method, decoded_path, query, version)
        """
        parts = line.split()
        if len(parts) != 3:
            raise ServerError(ErrorKind.BAD_REQUEST, f"Invalid request line: {line!r}")

        method, raw_path, version = parts
        if not version.startswith("HTTP/1."):
            raise ServerError(ErrorKind.BAD_REQUEST, f"Unsupported HTTP version: {version}")

        raw_path, _, query = raw_path.partition("?")
        raw_path = raw_path.split("#", 1)[0]

        return method, percent_decode(raw_path) or "/", query, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lower-cased names.

        Repeated headers are combined:

            Accept: text/html
            Accept: */*          →  {"accept": "text/html, */*"}
        """
        headers: Dict[str, str] = {}

        for line in lines:
            if not line:
                break

            name, sep, value = line.partition(":")
            if not sep:
                logger.warning(f"Skipping malformed header line: {line!r}")
                continue

            name = name.strip().lower()
            value = value.strip()

            if name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value

        return headers


def parse_request(head: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
    """Convenience wrapper around RequestParser().parse()."""
    return RequestParser().parse(head, client_address)
