"""
Unit tests for error kinds and error responses.
"""

import pytest

from downloadserver.http.errors import (
    AUTH_CHALLENGE,
    ErrorKind,
    ServerError,
    describe,
    error_response,
    status_for,
)
from downloadserver.http.status_codes import HTTPStatus


class TestStatusMapping:
    """Every kind maps to exactly one status."""

    @pytest.mark.parametrize("kind,status", [
        (ErrorKind.BAD_REQUEST, 400),
        (ErrorKind.UNAUTHORIZED, 401),
        (ErrorKind.FORBIDDEN, 403),
        (ErrorKind.NOT_FOUND, 404),
        (ErrorKind.METHOD_NOT_ALLOWED, 405),
        (ErrorKind.RANGE_NOT_SATISFIABLE, 416),
        (ErrorKind.INTERNAL, 500),
    ])
    def test_status_for(self, kind, status):
        assert status_for(kind) == status
        assert ServerError(kind).status_code == status

    def test_unknown_kind_is_internal(self):
        assert status_for("something-else") == HTTPStatus.INTERNAL_SERVER_ERROR
        assert describe("something-else") == describe(ErrorKind.INTERNAL)


class TestErrorResponse:
    """Tests for error_response()."""

    def test_html_page(self):
        response = error_response(ServerError(ErrorKind.NOT_FOUND, "/x missing"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.get_header("Content-Type") == "text/html; charset=utf-8"
        assert response.get_header("Cache-Control") == "no-cache"
        assert b"404" in response.body
        assert b"Not Found" in response.body

    def test_detail_is_not_leaked(self):
        response = error_response(ServerError(ErrorKind.FORBIDDEN, "/srv/secret/path"))
        assert b"/srv/secret/path" not in response.body

    def test_unauthorized_has_challenge(self):
        response = error_response(ServerError(ErrorKind.UNAUTHORIZED))

        assert response.status == HTTPStatus.UNAUTHORIZED
        assert response.get_header("WWW-Authenticate") == AUTH_CHALLENGE

    def test_range_not_satisfiable_has_no_body(self):
        response = error_response(ServerError(ErrorKind.RANGE_NOT_SATISFIABLE))

        assert response.status == HTTPStatus.RANGE_NOT_SATISFIABLE
        assert response.body == b""
        assert response.get_header("Content-Range") is None
        assert response.content_length == 0

    def test_unexpected_exception_is_internal(self):
        response = error_response(RuntimeError("boom"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert b"boom" not in response.body
