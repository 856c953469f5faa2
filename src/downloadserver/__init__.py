"""
=============================================================================
DOWNLOAD SERVER - A CONCURRENT FILE SERVER BUILT FROM RAW SOCKETS
=============================================================================

This package serves a single directory tree over a small subset of
HTTP/1.1. It is built directly on top of Python's socket module: there is
no framework underneath, so the protocol parsing, the concurrency model
and the security checks all live in this codebase.

=============================================================================
WHAT A CLIENT CAN DO
=============================================================================

    GET /                     → HTML listing of the served root
    GET /sub/                 → HTML listing of a subdirectory
    GET /a.zip                → the file, streamed as an attachment
    GET /a.zip + Range        → 206 Partial Content (resumable downloads)
    GET /_health, /_status    → JSON status document
    GET /_static/...          → CSS/JS used by the listing and error pages

Every response closes the connection. There is no keep-alive.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      DOWNLOAD SERVER PIPELINE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer (accept loop)                                         │
    │        │                                                             │
    │        ├──► RateLimiter.admit(ip) ── rejected? ──► close socket     │
    │        │                                                             │
    │        ▼                                                             │
    │   WorkerPool.submit(job)                                             │
    │        │                                                             │
    │        ▼  (worker thread)                                            │
    │   Connection.read_head() ──► RequestParser.parse()                   │
    │        │                                                             │
    │        ▼                                                             │
    │   Router.route() ── auth ── reserved routes ── path security         │
    │        │                                                             │
    │        ├──► FileResponder       (200 / 206 / 416, streamed)         │
    │        ├──► DirectoryResponder  (200 text/html)                     │
    │        └──► ServerError         (error page)                        │
    │        │                                                             │
    │        ▼                                                             │
    │   ResponseWriter.write() ──► close ──► RateLimiter.release(ip)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE LAYOUT
=============================================================================

    downloadserver/
    ├── config.py          ServerConfig dataclass, env loading, validation
    ├── server.py          FileServer orchestrator (lifecycle, per-request flow)
    ├── templates.py       HTML for listings and error pages
    ├── core/
    │   ├── socket_server.py   Listening socket + polling accept loop
    │   ├── connection.py      Client socket wrapper (bounded head read)
    │   ├── thread_pool.py     Fixed-size worker pool
    │   ├── rate_limiter.py    Per-address admission control
    │   └── stats.py           Request counters + periodic reporter
    ├── http/
    │   ├── request.py         Request head parsing, percent-decoding
    │   ├── response.py        Response model + wire writer
    │   ├── errors.py          Closed error taxonomy → status mapping
    │   ├── router.py          Auth, reserved routes, traversal-safe resolve
    │   ├── status_codes.py    Status enum with reason phrases
    │   └── mime_types.py      Extension → Content-Type table
    └── handlers/
        ├── files.py           Range parsing + file streaming
        ├── directory.py       Directory listing entries
        ├── health.py          /_health and /_status payload
        └── assets.py          Embedded /_static/ assets

=============================================================================
"""

__version__ = "2.0.0"

from .config import ServerConfig, ConfigError
from .server import FileServer

__all__ = ["FileServer", "ServerConfig", "ConfigError", "__version__"]
