"""
=============================================================================
DOWNLOAD SERVER CLI ENTRY POINT
=============================================================================

    # Serve ./files with the default allow-list (*.zip,*.txt)
    python -m downloadserver -d ./files

    # All interfaces, port 3000, more patterns
    python -m downloadserver -d ./files -l 0.0.0.0 -p 3000 -a "*.zip,*.tar.gz,*.iso"

    # Require credentials
    python -m downloadserver -d ./files --username alice --password s3cret

    # See every request
    python -m downloadserver -d ./files -v

Every flag falls back to its DL_* environment variable (see
ServerConfig.from_env), then to the built-in default:

    DL_ROOT=./files DL_PORT=3000 python -m downloadserver

Flow: argparse reads the flags, they become a ServerConfig, FileServer
validates it and run() blocks until SIGINT/SIGTERM. An invalid
configuration is reported on stderr with exit status 1.

=============================================================================
"""

import argparse
import os
import sys

from . import __version__
from .config import ConfigError, DEFAULT_ALLOWED_EXTENSIONS, ServerConfig, parse_extension_patterns
from .server import FileServer


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser. Defaults come from the DL_* environment.

    Raises:
        ConfigError: If a numeric DL_* variable is not an integer.
    """
    env = ServerConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="downloadserver",
        description="Concurrent file download server with range requests and directory listings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m downloadserver -d ./files                       # Serve ./files
  python -m downloadserver -d ./files -p 3000 -l 0.0.0.0    # All interfaces
  python -m downloadserver -d ./files -a "*.zip,*.iso"      # Custom allow-list
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-d", "--directory",
        required="DL_ROOT" not in os.environ,
        default=env.root_dir,
        help="Directory to serve (env: DL_ROOT)"
    )

    parser.add_argument(
        "-a", "--allowed-extensions",
        default=",".join(env.allowed_extensions),
        help=f"Comma-separated file name patterns (default: {DEFAULT_ALLOWED_EXTENSIONS})"
    )

    parser.add_argument(
        "-c", "--chunk-size",
        type=int,
        default=env.chunk_size,
        help="Bytes per streamed chunk (default: 1024)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-l", "--listen",
        default=env.host,
        help="Address to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=env.port,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "-t", "--threads",
        type=int,
        default=env.workers,
        help="Worker threads (default: 8)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # AUTHENTICATION
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--username", default=env.username, help="Basic auth user (requires --password)")
    parser.add_argument("--password", default=env.password, help="Basic auth password (requires --username)")

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=env.log_level,
        help="Logging level (default: WARNING)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every request (same as --log-level DEBUG)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"downloadserver {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed CLI arguments to a ServerConfig."""
    return ServerConfig(
        root_dir=args.directory,
        allowed_extensions=parse_extension_patterns(args.allowed_extensions),
        chunk_size=args.chunk_size,
        host=args.listen,
        port=args.port,
        workers=args.threads,
        username=args.username,
        password=args.password,
        log_level="DEBUG" if args.verbose else args.log_level,
    )


def main(argv=None):
    """Main CLI entry point."""
    try:
        args = build_parser().parse_args(argv)
        server = FileServer(config_from_args(args))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    server.run()


if __name__ == "__main__":
    main()
