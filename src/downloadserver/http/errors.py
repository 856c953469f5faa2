"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure a request can end in is one ErrorKind. Handlers raise
ServerError(kind, detail); exactly one place (FileServer) turns the
exception into a response via error_response().

    ┌─────────────────────────┬────────┬──────────────────────────────────┐
    │ ErrorKind               │ Status │ Raised by                        │
    ├─────────────────────────┼────────┼──────────────────────────────────┤
    │ BAD_REQUEST             │  400   │ Connection, RequestParser, Range │
    │ UNAUTHORIZED            │  401   │ Router (Basic auth)              │
    │ FORBIDDEN               │  403   │ Router (traversal, allow-list)   │
    │ NOT_FOUND               │  404   │ Router, static assets            │
    │ METHOD_NOT_ALLOWED      │  405   │ Router                           │
    │ RANGE_NOT_SATISFIABLE   │  416   │ FileResponder                    │
    │ INTERNAL                │  500   │ anything unexpected              │
    └─────────────────────────┴────────┴──────────────────────────────────┘

The status code lives in the table below and nowhere else, so no handler
ever writes a bare 403 or 404 literal.

=============================================================================
"""

from enum import Enum

from .status_codes import HTTPStatus
from .response import HTTPResponse, ResponseBuilder
from ..templates import render_error_page


class ErrorKind(Enum):
    """Closed set of request failure categories."""

    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    RANGE_NOT_SATISFIABLE = "range_not_satisfiable"
    INTERNAL = "internal"


_ERROR_TABLE = {
    ErrorKind.BAD_REQUEST: (
        HTTPStatus.BAD_REQUEST,
        "The request could not be understood due to malformed syntax.",
    ),
    ErrorKind.UNAUTHORIZED: (
        HTTPStatus.UNAUTHORIZED,
        "Authentication is required to access this resource.",
    ),
    ErrorKind.FORBIDDEN: (
        HTTPStatus.FORBIDDEN,
        "Access to this resource is forbidden.",
    ),
    ErrorKind.NOT_FOUND: (
        HTTPStatus.NOT_FOUND,
        "The requested file or directory could not be found.",
    ),
    ErrorKind.METHOD_NOT_ALLOWED: (
        HTTPStatus.METHOD_NOT_ALLOWED,
        "The request method is not allowed for this resource.",
    ),
    ErrorKind.RANGE_NOT_SATISFIABLE: (
        HTTPStatus.RANGE_NOT_SATISFIABLE,
        "The requested byte range lies outside the file.",
    ),
    ErrorKind.INTERNAL: (
        HTTPStatus.INTERNAL_SERVER_ERROR,
        "An internal server error occurred while processing your request.",
    ),
}

AUTH_CHALLENGE = 'Basic realm="Restricted"'


class ServerError(Exception):
    """
    A request failure with a known category.

    Like the parse errors of a classic HTTP server, the exception carries
    its own metadata so the caller never has to guess a status code:

        raise ServerError(ErrorKind.NOT_FOUND, f"{path} does not exist")

    Args:
        kind: The failure category.
        detail: Human-readable detail for the log (never sent to clients).
    """

    def __init__(self, kind: ErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail

    @property
    def status_code(self) -> HTTPStatus:
        return status_for(self.kind)


def status_for(kind) -> HTTPStatus:
    """Map an error kind to its status. Unknown kinds map to 500."""
    entry = _ERROR_TABLE.get(kind)
    return entry[0] if entry else HTTPStatus.INTERNAL_SERVER_ERROR


def describe(kind) -> str:
    """Long description shown on the error page."""
    entry = _ERROR_TABLE.get(kind, _ERROR_TABLE[ErrorKind.INTERNAL])
    return entry[1]


def error_response(error: BaseException) -> HTTPResponse:
    """
    Build the response for any exception raised while handling a request.

    ServerError keeps its kind; everything else becomes INTERNAL. The body
    is the HTML error page, except for 416 which carries no body.

    Args:
        error: The exception that ended request handling.

    Returns:
        The response to send.
    """
    kind = error.kind if isinstance(error, ServerError) else ErrorKind.INTERNAL
    status = status_for(kind)

    builder = ResponseBuilder().status(status)

    if kind is ErrorKind.UNAUTHORIZED:
        builder.header("WWW-Authenticate", AUTH_CHALLENGE)

    if status == HTTPStatus.RANGE_NOT_SATISFIABLE:
        return builder.build()

    page = render_error_page(int(status), status.phrase, describe(kind))
    return builder.html(page).no_cache().build()
