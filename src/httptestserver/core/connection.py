"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with buffered line reading, response
writing and a clean close.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() returns whatever the kernel has, not "one line" or "one request":

    Client sends:   "GET /users HTTP/1.1\r\nHost: x\r\n\r\n"

    recv() → "GET /us"
    recv() → "ers HTTP/1.1\r\nHo"
    recv() → "st: x\r\n\r\n"

So reads go through self._buffer: keep receiving until a line terminator is
in the buffer, hand out one line, keep the rest for the next call.

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    ACCEPTED ──► HEADER_PARSED ──► ROUTED ──► DELAYED ──► RESPONSE_SENT
                                      │                        │
                                      └─────── (no delay) ─────┤
                                                               │
                                           ┌───────────────────┤
                                           ▼                   ▼
                                       STREAMING ─────────► CLOSED

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..http.request import parse_header_line


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its lifecycle. Used for logging and tests."""

    ACCEPTED = "accepted"            # Handed off by the accept loop
    HEADER_PARSED = "header_parsed"  # Request line (and maybe headers) read
    ROUTED = "routed"                # Resource or 404/405 decided
    DELAYED = "delayed"              # Sleeping before the response
    RESPONSE_SENT = "response_sent"  # Initial response written
    STREAMING = "streaming"          # Relaying broadcast data
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used as a log prefix.
        state: Current lifecycle state.
        created_at: When the connection was accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.ACCEPTED
    created_at: float = field(default_factory=time.time)

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    drain_timeout: float = 0.5

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> Optional[str]:
        """
        Read one line, without its terminator.

        Accepts "\\r\\n" and bare "\\n". Bytes are decoded as UTF-8; invalid
        sequences become U+FFFD instead of failing the request.

        Returns:
            The line, or None if the client closed before sending a full line.

        Raises:
            socket.timeout: If the client stops sending mid-line.
        """
        while b"\n" not in self._buffer:
            chunk = self._recv()
            if not chunk:
                return None
            self._buffer += chunk

        line, _, self._buffer = self._buffer.partition(b"\n")
        return line.rstrip(b"\r").decode("utf-8", errors="replace")

    def read_headers(self) -> Dict[str, str]:
        """
        Read header lines up to the blank line that ends them.

            Content-Type: text\\r\\n       → {"Content-Type": "text",
            X-Id: 1\\r\\n                      "X-Id": "2"}
            X-Id: 2\\r\\n                   (last occurrence wins)
            \\r\\n

        Stops early, with what it has, if the client closes.
        """
        headers: Dict[str, str] = {}
        while True:
            line = self.read_line()
            if not line:
                break
            parsed = parse_header_line(line)
            if parsed is not None:
                name, value = parsed
                headers[name] = value
        return headers

    def _recv(self) -> bytes:
        """recv() that maps an abrupt disconnect to end-of-stream."""
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Write all of data to the client.

        Returns:
            True if sent, False if the connection is gone.
        """
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            # Includes ConnectionResetError, BrokenPipeError, socket.timeout
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): the client sees EOF right after the body
        2. drain: read (and discard) anything the client sent that we never
           read, so close() doesn't turn into a connection reset
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Client already gone

        try:
            self.socket.settimeout(self.drain_timeout)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
