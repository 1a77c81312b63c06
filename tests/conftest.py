"""
pytest configuration and fixtures.
"""

import socket
import time
from typing import Callable, Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httptestserver import TestServer, ServerConfig


def read_to_end(sock: socket.socket) -> str:
    """Read until the server closes the connection."""
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks).decode()


def read_until(sock: socket.socket, marker: str, timeout: float = 5.0) -> str:
    """Read until `marker` has been received, return everything read."""
    sock.settimeout(timeout)
    data = b""
    while marker.encode() not in data:
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
    return data.decode()


def poll_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll predicate every 10ms until it's true or timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class RawClient:
    """
    Minimal HTTP client over plain sockets.

    The server sends no Content-Length, so a response ends when the server
    closes the connection: read everything until EOF.
    """

    read_to_end = staticmethod(read_to_end)
    read_until = staticmethod(read_until)

    def __init__(self, port: int, host: str = "127.0.0.1"):
        self.host = host
        self.port = port

    def open_stream(
        self,
        uri: str,
        method: str = "GET",
        headers: Optional[dict] = None,
    ) -> socket.socket:
        """Send a request and return the socket without reading anything."""
        sock = socket.create_connection((self.host, self.port), timeout=5.0)
        head = "".join(f"{name}: {value}\r\n" for name, value in (headers or {}).items())
        sock.sendall(f"{method} {uri} HTTP/1.1\r\n{head}\r\n".encode())
        return sock

    def request(
        self,
        uri: str,
        method: str = "GET",
        headers: Optional[dict] = None,
    ) -> str:
        """Send a request and read the whole response."""
        with self.open_stream(uri, method, headers) as sock:
            return read_to_end(sock)


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration with short timeouts."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        peek_timeout=0.5,
        accept_poll_interval=0.2,
        drain_timeout=0.2,
    )


@pytest.fixture
def server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running test server, closed after the test."""
    test_server = TestServer(config=config)

    yield test_server

    test_server.close()


@pytest.fixture
def client(server: TestServer) -> RawClient:
    """Raw socket client pointed at the test server."""
    return RawClient(server.port)


@pytest.fixture
def make_client() -> Callable[[int], RawClient]:
    """Client factory for tests that run more than one server."""
    return RawClient


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Polling helper: wait_until(lambda: condition, timeout=5.0)."""
    return poll_until


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]
