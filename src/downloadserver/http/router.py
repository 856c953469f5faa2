"""
=============================================================================
ROUTER AND SECURITY GATE
=============================================================================

Decides what a request gets. The checks run in a fixed order, and the
first one that fails ends the request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         route(request)                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. AUTH          credentials configured?                            │
    │                   Authorization: Basic b64(user:pass) must match     │
    │                   ──✗──► 401 + WWW-Authenticate                      │
    │                                                                      │
    │  2. HEALTH        /_health, /_status ──► JSON status                 │
    │                                                                      │
    │  3. ASSETS        /_static/<name> ──► embedded CSS/JS (or 404)       │
    │                                                                      │
    │  4. METHOD        anything but GET ──► 405                           │
    │                                                                      │
    │  5. NORMALIZE     split on "/", drop "" and ".", ".." pops           │
    │                   ".." with nothing to pop ──► 403                   │
    │                                                                      │
    │  6. CANONICALIZE  realpath(root + parts) must stay under root        │
    │                   ──✗──► 403  (symlink escapes land here)            │
    │                   does not exist ──► 404                             │
    │                                                                      │
    │  7. DISPATCH      directory ──► listing                              │
    │                   file matching an allowed pattern ──► download      │
    │                   any other file ──► 403                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY TWO PATH CHECKS?
=============================================================================

Step 5 is pure string work and catches "GET /../../etc/passwd" without
touching the disk. Step 6 catches what strings cannot see: a symlink
inside the root that points outside it. Either one alone leaves a hole.

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why compare credentials with hmac.compare_digest?"
A: "A plain == returns as soon as a byte differs, so response time leaks
   how much of a guess was right. compare_digest takes the same time
   regardless of where the mismatch is."

Q: "Why 403 and not 404 for a file with a disallowed extension?"
A: "The file exists; it is just not servable. 403 keeps 'not allowed'
   distinct from 'not there'."

=============================================================================
"""

import base64
import binascii
import hmac
import logging
import os
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from typing import List, Optional, Sequence

from .errors import ErrorKind, ServerError
from .request import HTTPRequest
from .response import HTTPResponse
from ..config import ServerConfig
from ..handlers.assets import STATIC_PREFIX, get_asset
from ..handlers.directory import DirectoryResponder
from ..handlers.files import FileResponder
from ..handlers.health import HEALTH_PATHS, HealthHandler


logger = logging.getLogger(__name__)


class TargetKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Where a request path landed on disk.

    Attributes:
        path: Canonical absolute path, always inside the root.
        kind: FILE or DIRECTORY.
        pattern: The allow-list pattern a FILE matched.
    """
    path: str
    kind: TargetKind
    pattern: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────
# AUTHENTICATION
# ─────────────────────────────────────────────────────────────────────────

def check_basic_auth(header: Optional[str], username: str, password: str) -> bool:
    """
    Verify an Authorization header against the configured credentials.

    Args:
        header: Raw Authorization value, e.g. "Basic dXNlcjpwYXNz".
        username: Expected user.
        password: Expected password.

    Returns:
        True only for a well-formed Basic header with matching credentials.
    """
    if not header:
        return False

    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        return False

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return False

    if ":" not in decoded:
        return False

    expected = f"{username}:{password}".encode("utf-8")
    return hmac.compare_digest(decoded.encode("utf-8"), expected)


# ─────────────────────────────────────────────────────────────────────────
# PATH RESOLUTION
# ─────────────────────────────────────────────────────────────────────────

def normalize_path(request_path: str) -> List[str]:
    """
    Reduce a URL path to clean segments without touching the disk.

        "/a/./b//c/../d"   → ["a", "b", "d"]
        "/sub/../a.txt"    → ["a.txt"]
        "/../etc/passwd"   → ServerError(FORBIDDEN)

    Raises:
        ServerError: FORBIDDEN if ".." would climb above the root,
                     BAD_REQUEST if a segment contains a NUL byte.
    """
    parts: List[str] = []

    for segment in request_path.split("/"):
        if segment in ("", "."):
            continue
        if "\x00" in segment:
            raise ServerError(ErrorKind.BAD_REQUEST, "NUL byte in path")
        if segment == "..":
            if not parts:
                raise ServerError(ErrorKind.FORBIDDEN, f"Path escapes root: {request_path!r}")
            parts.pop()
        else:
            parts.append(segment)

    return parts


def match_pattern(name: str, patterns: Sequence[str]) -> Optional[str]:
    """
    First allow-list pattern matching a file name, or None.

        >>> match_pattern("a.zip", ["*.txt", "*.zip"])
        '*.zip'
    """
    for pattern in patterns:
        if fnmatchcase(name, pattern):
            return pattern
    return None


def is_within(root: str, path: str) -> bool:
    """True if path is root or lies below it. Both must be canonical."""
    return os.path.commonpath([root, path]) == root


def resolve_target(root: str, request_path: str, patterns: Sequence[str]) -> ResolvedTarget:
    """
    Map a decoded URL path to a servable target under root.

    Args:
        root: Canonical served root (ServerConfig.root_dir after validate()).
        request_path: Decoded URL path.
        patterns: Allowed file-name patterns.

    Returns:
        The resolved target.

    Raises:
        ServerError: FORBIDDEN, NOT_FOUND or BAD_REQUEST.
    """
    parts = normalize_path(request_path)
    candidate = os.path.join(root, *parts)
    canonical = os.path.realpath(candidate)

    if not is_within(root, canonical):
        raise ServerError(ErrorKind.FORBIDDEN, f"{request_path!r} resolves outside root")

    if not os.path.exists(canonical):
        raise ServerError(ErrorKind.NOT_FOUND, f"{request_path!r} does not exist")

    if os.path.isdir(canonical):
        return ResolvedTarget(path=canonical, kind=TargetKind.DIRECTORY)

    if not os.path.isfile(canonical):
        raise ServerError(ErrorKind.FORBIDDEN, f"{request_path!r} is not a regular file")

    pattern = match_pattern(os.path.basename(canonical), patterns)
    if pattern is None:
        raise ServerError(ErrorKind.FORBIDDEN, f"{request_path!r} matches no allowed pattern")

    return ResolvedTarget(path=canonical, kind=TargetKind.FILE, pattern=pattern)


# ─────────────────────────────────────────────────────────────────────────
# ROUTER
# ─────────────────────────────────────────────────────────────────────────

class Router:
    """
    Routes a parsed request to a handler and returns its response.

    Every refusal is raised as ServerError; the server turns it into the
    error response.

    Usage:
        router = Router(config, HealthHandler(version="2.0.0"))
        response = router.route(request)
    """

    def __init__(
        self,
        config: ServerConfig,
        health: HealthHandler,
        files: Optional[FileResponder] = None,
        directories: Optional[DirectoryResponder] = None,
    ):
        self.config = config
        self.health = health
        self.files = files or FileResponder(chunk_size=config.chunk_size)
        self.directories = directories or DirectoryResponder()

    def route(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run the gate and dispatch.

        Raises:
            ServerError: Whenever the request is refused.
        """
        self._check_auth(request)

        path = request.path

        if path in HEALTH_PATHS:
            self._require_get(request)
            return self.health.handle()

        if path.startswith(STATIC_PREFIX):
            self._require_get(request)
            asset = get_asset(path[len(STATIC_PREFIX):])
            if asset is None:
                raise ServerError(ErrorKind.NOT_FOUND, f"No static asset {path!r}")
            return asset

        self._require_get(request)

        target = resolve_target(self.config.root_dir, path, self.config.allowed_extensions)

        if target.kind is TargetKind.DIRECTORY:
            return self.directories.respond(target.path, path)

        return self.files.respond(target.path, request)

    def _check_auth(self, request: HTTPRequest):
        if not self.config.auth_enabled:
            return
        if not check_basic_auth(request.authorization, self.config.username, self.config.password):
            raise ServerError(ErrorKind.UNAUTHORIZED, f"Bad or missing credentials from {request.client_ip}")

    @staticmethod
    def _require_get(request: HTTPRequest):
        if request.method != "GET":
            raise ServerError(ErrorKind.METHOD_NOT_ALLOWED, f"Method {request.method} not allowed")
