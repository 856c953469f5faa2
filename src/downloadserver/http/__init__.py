"""
HTTP protocol layer: request parsing, response writing, error mapping and
routing.
"""

from .status_codes import HTTPStatus
from .response import HTTPResponse, ResponseBuilder, ResponseWriter, FileStream, is_disconnect
from .errors import ErrorKind, ServerError, error_response
from .request import HTTPRequest, RequestParser, percent_decode, parse_request

__all__ = [
    "HTTPStatus",
    "HTTPResponse",
    "ResponseBuilder",
    "ResponseWriter",
    "FileStream",
    "is_disconnect",
    "ErrorKind",
    "ServerError",
    "error_response",
    "HTTPRequest",
    "RequestParser",
    "percent_decode",
    "parse_request",
]
