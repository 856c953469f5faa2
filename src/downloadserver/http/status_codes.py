"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The closed set of status codes this server can emit, with reason phrases.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK               - Listing, health, whole file       │
    │        │ 206 Partial Content  - Satisfiable Range request         │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request      - Malformed head or Range header    │
    │        │ 401 Unauthorized     - Missing or wrong credentials      │
    │        │ 403 Forbidden        - Traversal or disallowed extension │
    │        │ 404 Not Found        - Path does not exist               │
    │        │ 405 Method Not Allowed - Anything but GET                │
    │        │ 416 Requested Range Not Satisfiable                      │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Server Error - Unexpected fault             │
    └────────┴───────────────────────────────────────────────────────────┘

Q: "What's the difference between 401 and 403 here?"
A: "401 asks the client to authenticate and carries WWW-Authenticate.
   403 means the path is understood but will never be served, for
   example a file whose name matches none of the allowed patterns."

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

        >>> HTTPStatus.PARTIAL_CONTENT == 206
        True
        >>> HTTPStatus.RANGE_NOT_SATISFIABLE.phrase
        'Requested Range Not Satisfiable'
    """

    OK = 200
    PARTIAL_CONTENT = 206

    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    RANGE_NOT_SATISFIABLE = 416

    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line:

            HTTP/1.1 206 Partial Content
                     ─── ───────────────
                      │         └── phrase
                      └──────────── code
        """
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Requested Range Not Satisfiable",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
