"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

One immutable-by-convention object that every worker reads from.

The configuration is built once (from the CLI, the environment, or code),
validated once at startup, and then shared read-only by every worker
thread. Because nothing mutates it after validate(), no lock is needed.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m downloadserver -d ./files --port 3000            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── DL_ROOT=./files DL_PORT=3000 python -m downloadserver      │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
VALIDATION
=============================================================================

validate() fails fast with ConfigError when:

- the root directory does not exist or is not a directory
- the port, worker count or chunk size is out of range
- only one of username / password is set
- the allowed-extension list ends up empty

It also canonicalizes root_dir (os.path.realpath) so that every later
containment check compares against the same absolute, symlink-free path.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


DEFAULT_ALLOWED_EXTENSIONS = "*.zip,*.txt"


class ConfigError(ValueError):
    """Raised when the server configuration is invalid."""


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def parse_extension_patterns(value: str) -> List[str]:
    """
    Split a comma-separated pattern string into a clean list.

    Empty items and surrounding whitespace are dropped:

        "*.zip, *.txt,,"  →  ["*.zip", "*.txt"]
    """
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class ServerConfig:
    """
    Configuration for the download server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK      host, port, backlog, poll_interval
    HTTP         buffer_size, read_timeout, server_name
    FILES        root_dir, allowed_extensions, chunk_size
    THREADING    workers
    ADMISSION    max_requests_per_minute, max_concurrent_per_client,
                 rate_limit_retention, rate_limit_sweep_interval
    AUTH         username, password
    STATS        stats_interval
    LOGGING      log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """
    Directory tree to serve. Canonicalized by validate().
    Nothing outside of it is ever read.
    """

    allowed_extensions: List[str] = field(
        default_factory=lambda: parse_extension_patterns(DEFAULT_ALLOWED_EXTENSIONS)
    )
    """
    Glob patterns a file name must match to be downloadable, e.g. "*.zip".
    Matched case-sensitively against the file name only.
    """

    chunk_size: int = 1024
    """
    Bytes per read/send when streaming a file body.
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 8080

    backlog: int = 128
    """
    Listen queue length handed to listen().
    """

    poll_interval: float = 0.05
    """
    Seconds the accept loop sleeps when no connection is pending.
    Upper bound on how long a shutdown request goes unnoticed.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 8192
    """
    Maximum size of the request head (request line + headers).
    A head that does not terminate within this many bytes is a 400.
    """

    read_timeout: float = 30.0
    """
    Seconds to wait for the request head before answering 400.
    """

    server_name: str = "downloadserver/2.0.0"

    # ─────────────────────────────────────────────────────────────────────
    # THREADING
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 8
    """
    Number of persistent worker threads. Each connection is owned by one
    worker for its whole lifetime.
    """

    # ─────────────────────────────────────────────────────────────────────
    # ADMISSION CONTROL
    # ─────────────────────────────────────────────────────────────────────

    max_requests_per_minute: int = 60
    max_concurrent_per_client: int = 10

    rate_limit_retention: float = 300.0
    """
    Idle seconds after which a client's limiter entry is swept away.
    """

    rate_limit_sweep_interval: float = 60.0

    # ─────────────────────────────────────────────────────────────────────
    # AUTHENTICATION
    # ─────────────────────────────────────────────────────────────────────

    username: Optional[str] = None
    password: Optional[str] = None

    # ─────────────────────────────────────────────────────────────────────
    # STATS + LOGGING
    # ─────────────────────────────────────────────────────────────────────

    stats_interval: float = 60.0
    """
    Seconds between periodic stats log lines. 0 disables the reporter.
    """

    log_level: str = "WARNING"

    @property
    def auth_enabled(self) -> bool:
        """True when both credentials are configured."""
        return self.username is not None and self.password is not None

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        DL_ROOT                 Directory to serve (default: .)
        DL_HOST                 Bind host (default: 127.0.0.1)
        DL_PORT                 Bind port (default: 8080)
        DL_ALLOWED_EXTENSIONS   Comma-separated patterns (default: *.zip,*.txt)
        DL_WORKERS              Worker threads (default: 8)
        DL_CHUNK_SIZE           Streaming chunk size (default: 1024)
        DL_USERNAME             Basic auth user (default: unset)
        DL_PASSWORD             Basic auth password (default: unset)
        DL_LOG_LEVEL            Logging level (default: WARNING)

        The CLI uses these as its defaults, so a flag still wins.

        Raises:
            ConfigError: If a numeric variable is not an integer.

        =====================================================================
        """
        return cls(
            root_dir=os.getenv("DL_ROOT", "."),
            host=os.getenv("DL_HOST", "127.0.0.1"),
            port=_env_int("DL_PORT", 8080),
            allowed_extensions=parse_extension_patterns(
                os.getenv("DL_ALLOWED_EXTENSIONS", DEFAULT_ALLOWED_EXTENSIONS)
            ),
            workers=_env_int("DL_WORKERS", 8),
            chunk_size=_env_int("DL_CHUNK_SIZE", 1024),
            username=os.getenv("DL_USERNAME") or None,
            password=os.getenv("DL_PASSWORD") or None,
            log_level=os.getenv("DL_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> None:
        """
        Validate configuration values and canonicalize the root.

        Raises:
            ConfigError: On the first invalid value found.
        """
        root = os.path.realpath(self.root_dir)
        if not os.path.exists(root):
            raise ConfigError(f"Root directory does not exist: {self.root_dir}")
        if not os.path.isdir(root):
            raise ConfigError(f"Root path is not a directory: {self.root_dir}")
        self.root_dir = root

        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ConfigError("workers must be >= 1")

        if self.chunk_size < 1:
            raise ConfigError("chunk_size must be >= 1")

        if self.buffer_size < 64:
            raise ConfigError("buffer_size must be >= 64")

        if self.read_timeout <= 0:
            raise ConfigError("read_timeout must be > 0")

        if self.max_requests_per_minute < 1 or self.max_concurrent_per_client < 1:
            raise ConfigError("rate limits must be >= 1")

        if not self.allowed_extensions:
            raise ConfigError("allowed_extensions must contain at least one pattern")

        if (self.username is None) != (self.password is None):
            raise ConfigError("username and password must be given together")
