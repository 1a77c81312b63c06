"""
Unit tests for Connection, over a socket pair.
"""

import socket
from typing import Generator, Tuple

import pytest

from httptestserver.core.connection import Connection, ConnectionState


@pytest.fixture
def pair() -> Generator[Tuple[Connection, socket.socket], None, None]:
    server_side, client_side = socket.socketpair()
    conn = Connection(socket=server_side, address=("test", 0), timeout=2.0, drain_timeout=0.1)

    yield conn, client_side

    conn.close()
    client_side.close()


class TestConnectionReading:
    """Tests for line and header reading."""

    def test_read_line(self, pair):
        """Test reading CRLF-terminated lines."""
        conn, client = pair
        client.sendall(b"GET / HTTP/1.1\r\nHost: x\r\n")

        assert conn.read_line() == "GET / HTTP/1.1"
        assert conn.read_line() == "Host: x"

    def test_read_line_bare_newline(self, pair):
        """Test a line ending in LF only."""
        conn, client = pair
        client.sendall(b"GET / HTTP/1.1\n")

        assert conn.read_line() == "GET / HTTP/1.1"

    def test_read_line_split_across_packets(self, pair):
        """Test a line arriving in pieces."""
        conn, client = pair
        client.sendall(b"GET /us")
        client.sendall(b"ers HTTP/1.1\r\n")

        assert conn.read_line() == "GET /users HTTP/1.1"

    def test_read_line_utf8(self, pair):
        """Test that a raw UTF-8 target decodes to the same text."""
        conn, client = pair
        client.sendall("GET /café/zoë HTTP/1.1\r\n".encode("utf-8"))

        assert conn.read_line() == "GET /café/zoë HTTP/1.1"

    def test_read_line_invalid_utf8(self, pair):
        """Test that undecodable bytes are replaced, not fatal."""
        conn, client = pair
        client.sendall(b"GET /\xff HTTP/1.1\r\n")

        assert conn.read_line() == "GET /� HTTP/1.1"

    def test_read_line_eof(self, pair):
        """Test a client closing mid-line."""
        conn, client = pair
        client.sendall(b"GET /")
        client.shutdown(socket.SHUT_WR)

        assert conn.read_line() is None

    def test_read_headers(self, pair):
        """Test reading headers up to the blank line."""
        conn, client = pair
        client.sendall(
            b"Content-Type: text\r\n"
            b"X-Id: 1\r\n"
            b"X-Id: 2\r\n"
            b"\r\n"
            b"body"
        )

        assert conn.read_headers() == {"Content-Type": "text", "X-Id": "2"}

    def test_read_headers_eof(self, pair):
        """Test headers cut short by the client closing."""
        conn, client = pair
        client.sendall(b"Accept: */*\r\n")
        client.shutdown(socket.SHUT_WR)

        assert conn.read_headers() == {"Accept": "*/*"}


class TestConnectionWriting:
    """Tests for send and close."""

    def test_send(self, pair):
        """Test writing to the client."""
        conn, client = pair

        assert conn.send(b"HTTP/1.1 200 Ok\r\n\r\n")
        assert client.recv(1024) == b"HTTP/1.1 200 Ok\r\n\r\n"

    def test_close_gives_eof(self, pair):
        """Test that the client sees EOF after close."""
        conn, client = pair
        conn.send(b"done")
        conn.close()

        assert conn.state is ConnectionState.CLOSED
        assert client.recv(1024) == b"done"
        assert client.recv(1024) == b""

    def test_send_after_peer_closed(self, pair):
        """Test that writing to a closed peer reports failure."""
        conn, client = pair
        client.close()

        # The first write may still be buffered, a later one fails
        results = [conn.send(b"x" * 65536) for _ in range(10)]
        assert results[-1] is False

    def test_context_manager(self):
        """Test that leaving the block closes the connection."""
        server_side, client_side = socket.socketpair()

        with Connection(socket=server_side, address=("test", 0), drain_timeout=0.1) as conn:
            assert conn.state is ConnectionState.ACCEPTED

        assert conn.state is ConnectionState.CLOSED
        client_side.close()
