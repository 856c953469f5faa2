"""
Unit tests for the router and its security gate.
"""

import base64
import json
import os

import pytest

from downloadserver.config import ServerConfig
from downloadserver.handlers.health import HealthHandler
from downloadserver.http.errors import ErrorKind, ServerError
from downloadserver.http.request import HTTPRequest
from downloadserver.http.router import (
    Router,
    TargetKind,
    check_basic_auth,
    match_pattern,
    normalize_path,
    resolve_target,
)
from downloadserver.http.status_codes import HTTPStatus


def make_request(method: str, path: str, headers: dict = None) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path, headers=headers or {},
                       client_address=("127.0.0.1", 5000))


def basic(user: str, password: str) -> str:
    return "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()


@pytest.fixture
def router(config: ServerConfig) -> Router:
    config.validate()
    return Router(config, HealthHandler(version="test"))


def refused(router: Router, request: HTTPRequest) -> ErrorKind:
    with pytest.raises(ServerError) as exc_info:
        router.route(request)
    return exc_info.value.kind


class TestNormalizePath:
    """Tests for string-level path normalization."""

    @pytest.mark.parametrize("path,expected", [
        ("/", []),
        ("/a.txt", ["a.txt"]),
        ("/a/./b//c/../d", ["a", "b", "d"]),
        ("/sub/../a.txt", ["a.txt"]),
        ("//sub///n.txt", ["sub", "n.txt"]),
    ])
    def test_normalizes(self, path, expected):
        assert normalize_path(path) == expected

    @pytest.mark.parametrize("path", ["/..", "/../etc/passwd", "/sub/../../a.txt"])
    def test_escape_is_forbidden(self, path):
        with pytest.raises(ServerError) as exc_info:
            normalize_path(path)
        assert exc_info.value.kind is ErrorKind.FORBIDDEN

    def test_nul_byte_is_bad_request(self):
        with pytest.raises(ServerError) as exc_info:
            normalize_path("/a\x00.txt")
        assert exc_info.value.kind is ErrorKind.BAD_REQUEST


class TestMatchPattern:
    """Tests for allow-list matching."""

    def test_first_match_wins(self):
        assert match_pattern("a.zip", ["*.txt", "*.zip"]) == "*.zip"

    def test_no_match(self):
        assert match_pattern("a.exe", ["*.txt", "*.zip"]) is None

    def test_case_sensitive(self):
        assert match_pattern("A.ZIP", ["*.zip"]) is None

    def test_whole_name_must_match(self):
        assert match_pattern("a.zip.exe", ["*.zip"]) is None
        assert match_pattern("data.tar.gz", ["*.tar.gz"]) == "*.tar.gz"


class TestResolveTarget:
    """Tests for canonicalization and containment."""

    def test_file(self, config: ServerConfig):
        config.validate()
        target = resolve_target(config.root_dir, "/a.txt", config.allowed_extensions)

        assert target.kind is TargetKind.FILE
        assert target.path == os.path.join(config.root_dir, "a.txt")
        assert target.pattern == "*.txt"

    def test_directory(self, config: ServerConfig):
        config.validate()
        target = resolve_target(config.root_dir, "/sub/", config.allowed_extensions)

        assert target.kind is TargetKind.DIRECTORY

    def test_missing(self, config: ServerConfig):
        config.validate()
        with pytest.raises(ServerError) as exc_info:
            resolve_target(config.root_dir, "/nope.txt", config.allowed_extensions)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_disallowed_extension(self, config: ServerConfig):
        config.validate()
        with pytest.raises(ServerError) as exc_info:
            resolve_target(config.root_dir, "/c.exe", config.allowed_extensions)
        assert exc_info.value.kind is ErrorKind.FORBIDDEN

    def test_symlink_escape(self, config: ServerConfig, served_root):
        """A symlink pointing outside the root is refused."""
        os.symlink(served_root.parent / "outside", served_root / "escape")
        config.validate()

        with pytest.raises(ServerError) as exc_info:
            resolve_target(config.root_dir, "/escape/secret.txt", config.allowed_extensions)
        assert exc_info.value.kind is ErrorKind.FORBIDDEN

    def test_symlink_inside_root(self, config: ServerConfig, served_root):
        os.symlink(served_root / "a.txt", served_root / "link.txt")
        config.validate()

        target = resolve_target(config.root_dir, "/link.txt", config.allowed_extensions)
        assert target.path == os.path.join(config.root_dir, "a.txt")


class TestBasicAuth:
    """Tests for credential checking."""

    def test_valid(self):
        assert check_basic_auth(basic("alice", "s3cret"), "alice", "s3cret")

    def test_scheme_is_case_insensitive(self):
        header = basic("alice", "s3cret").replace("Basic", "basic")
        assert check_basic_auth(header, "alice", "s3cret")

    @pytest.mark.parametrize("header", [
        None,
        "",
        "Bearer abc",
        "Basic",
        "Basic !!!notbase64",
        "Basic " + base64.b64encode(b"no-colon").decode(),
    ])
    def test_malformed(self, header):
        assert not check_basic_auth(header, "alice", "s3cret")

    def test_wrong_credentials(self):
        assert not check_basic_auth(basic("alice", "wrong"), "alice", "s3cret")
        assert not check_basic_auth(basic("bob", "s3cret"), "alice", "s3cret")

    def test_password_with_colon(self):
        assert check_basic_auth(basic("alice", "a:b"), "alice", "a:b")


class TestRouter:
    """Tests for Router dispatch order."""

    def test_file_download(self, router: Router):
        response = router.route(make_request("GET", "/a.txt"))
        try:
            assert response.status == HTTPStatus.OK
            assert response.content_length == 5
            assert response.get_header("Content-Type") == "application/octet-stream"
        finally:
            response.close()

    def test_directory_listing(self, router: Router):
        response = router.route(make_request("GET", "/"))

        assert response.status == HTTPStatus.OK
        assert b"a.txt" in response.body
        assert b"sub/" in response.body

    def test_health(self, router: Router):
        response = router.route(make_request("GET", "/_health"))

        assert json.loads(response.body)["status"] == "healthy"

    def test_static_asset(self, router: Router):
        response = router.route(make_request("GET", "/_static/directory.css"))
        assert response.get_header("Content-Type") == "text/css; charset=utf-8"

    def test_unknown_static_asset(self, router: Router):
        assert refused(router, make_request("GET", "/_static/nope.css")) is ErrorKind.NOT_FOUND

    def test_non_get_is_refused(self, router: Router):
        assert refused(router, make_request("POST", "/a.txt")) is ErrorKind.METHOD_NOT_ALLOWED
        assert refused(router, make_request("HEAD", "/_health")) is ErrorKind.METHOD_NOT_ALLOWED

    def test_method_checked_before_path(self, router: Router):
        """A POST to a missing file is 405, not 404."""
        assert refused(router, make_request("POST", "/nope.txt")) is ErrorKind.METHOD_NOT_ALLOWED

    def test_traversal(self, router: Router):
        assert refused(router, make_request("GET", "/../etc/passwd")) is ErrorKind.FORBIDDEN

    def test_auth_required(self, config: ServerConfig):
        config.username = "alice"
        config.password = "s3cret"
        config.validate()
        router = Router(config, HealthHandler(version="test"))

        assert refused(router, make_request("GET", "/a.txt")) is ErrorKind.UNAUTHORIZED
        assert refused(router, make_request("GET", "/_health")) is ErrorKind.UNAUTHORIZED

        response = router.route(make_request(
            "GET", "/_health", {"authorization": basic("alice", "s3cret")}
        ))
        assert response.status == HTTPStatus.OK

    def test_auth_checked_before_method(self, config: ServerConfig):
        config.username = "alice"
        config.password = "s3cret"
        config.validate()
        router = Router(config, HealthHandler(version="test"))

        assert refused(router, make_request("POST", "/a.txt")) is ErrorKind.UNAUTHORIZED
