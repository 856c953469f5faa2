"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Callable, Dict, Generator
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from downloadserver import FileServer, ServerConfig


@pytest.fixture
def served_root(tmp_path: Path) -> Path:
    """
    A small served tree:

        root/
            a.txt        "hello"
            b.zip        bytes 0..255
            c.exe        not on the default allow-list
            sub/n.txt    "nested"
        outside/
            secret.txt   next to root, never servable
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "a.txt").write_bytes(b"hello")
    (root / "b.zip").write_bytes(bytes(range(256)))
    (root / "c.exe").write_bytes(b"MZ")
    (root / "sub").mkdir()
    (root / "sub" / "n.txt").write_bytes(b"nested")

    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_bytes(b"secret")
    return root


@pytest.fixture
def config(served_root: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        root_dir=str(served_root),
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        workers=2,
        read_timeout=5.0,
        stats_interval=0,
        log_level="WARNING",
    )


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> "RawResponse":
        return send_raw(self.port, raw)

    def get(self, path: str, headers: Dict[str, str] = None) -> "RawResponse":
        lines = [f"GET {path} HTTP/1.1", "Host: localhost"]
        for name, value in (headers or {}).items():
            lines.append(f"{name}: {value}")
        return self.request(("\r\n".join(lines) + "\r\n\r\n").encode())


class RawResponse:
    """A response read off the wire until the server closed the socket."""

    def __init__(self, data: bytes):
        self.raw = data
        head, _, self.body = data.partition(b"\r\n\r\n")
        lines = head.decode("latin-1").split("\r\n")
        self.status_line = lines[0]
        self.status = int(lines[0].split()[1]) if lines[0] else 0
        self.header_list = []
        for line in lines[1:]:
            name, _, value = line.partition(":")
            self.header_list.append((name.strip(), value.strip()))
        self.headers = {name.lower(): value for name, value in self.header_list}


def send_raw(port: int, raw: bytes, timeout: float = 5.0) -> RawResponse:
    """Send raw bytes and read until EOF. A reset counts as EOF."""
    chunks = []
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        try:
            sock.sendall(raw)
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        except (ConnectionResetError, BrokenPipeError):
            pass
    return RawResponse(b"".join(chunks))


@pytest.fixture
def server_factory() -> Generator[Callable[[ServerConfig], TestServer], None, None]:
    """Start servers with custom configs; all are stopped at teardown."""
    started = []

    def start(config: ServerConfig) -> TestServer:
        test_srv = TestServer(FileServer(config))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(config: ServerConfig, server_factory) -> TestServer:
    """A running server on the served_root tree."""
    return server_factory(config)


@pytest.fixture
def auth_server(config: ServerConfig, server_factory) -> TestServer:
    """A running server requiring alice:s3cret."""
    config.username = "alice"
    config.password = "s3cret"
    return server_factory(config)
