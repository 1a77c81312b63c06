"""
=============================================================================
SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop. Every accepted connection
gets its own thread, where it is wrapped in a Connection and handed to a
callback; the callback decides what to do with it.

=============================================================================
LIFECYCLE
=============================================================================

    __init__()   store config
        │
        ▼
    bind()       socket() → setsockopt() → bind() → listen()
        │        raises BindError synchronously, port known from here on
        ▼
    start()      run _accept_loop() in a background thread
        │
        ▼
    shutdown()   stop flag + CLOSE sentinel to wake accept()
        │
        ▼
    _cleanup()   close listening socket, set the stopped event

=============================================================================
THE CLOSE SENTINEL
=============================================================================

A new connection whose first bytes are "CLOSE" is not an HTTP request: it
tells the server to stop. The connection thread looks at those bytes with
MSG_PEEK, which leaves them in the kernel buffer, so ordinary requests are
parsed from their first byte as usual.

    client ──► "CLOSE"          conn thread: peek → "CLOSE" → shutdown()
    client ──► "GET / HTTP..."  conn thread: peek → not CLOSE → handler

shutdown() clears the running flag, then connects once more to wake the
blocking accept(); the loop sees the flag and exits. If that connection
can't be made, the loop still stops within accept_poll_interval.

=============================================================================
"""

import socket
import logging
import threading
import time
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from ..errors import BindError
from .connection import Connection


logger = logging.getLogger(__name__)


CLOSE_SIGNAL = b"CLOSE"


class SocketServer:
    """
    Low-level TCP listener with a background accept loop.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.bind()
        server.start(handle_connection)   # returns immediately
        ...
        server.shutdown()
        server.wait_for_shutdown(timeout=5)
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._address: Tuple[str, int] = (config.host, config.port)
        self._thread: Optional[threading.Thread] = None

        self._running = False

        # Set once the listening socket is closed
        self._stopped = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port). The port is the real one once bound."""
        return self._address

    @property
    def port(self) -> int:
        return self._address[1]

    def _create_socket(self) -> socket.socket:
        """
        Create and configure the listening socket.

        SO_REUSEADDR: restarting a test server on a fixed port doesn't fail
        while old connections sit in TIME_WAIT. SO_REUSEPORT is NOT set:
        two servers must never share a port.

        The accept timeout lets the loop re-check the stop flag.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.settimeout(self.config.accept_poll_interval)
        return sock

    def bind(self):
        """
        Bind and listen.

        Raises:
            BindError: If the address can't be bound (port in use, no
                permission, bad host).
        """
        sock = self._create_socket()

        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise BindError(self.config.host, self.config.port, e) from e

        self._socket = sock
        self._address = sock.getsockname()[:2]
        logger.info(f"Server listening on {self._address[0]}:{self._address[1]}")

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Start accepting connections in a background thread.

        Binds first if bind() wasn't called yet.
        """
        if self._socket is None:
            self.bind()

        self._running = True
        self._stopped.clear()

        self._thread = threading.Thread(
            target=self._serve,
            args=(connection_handler,),
            name=f"httptestserver-accept-{self.port}",
            daemon=True,
        )
        self._thread.start()

    def _serve(self, connection_handler: Callable[[Connection], None]):
        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until stopped.

            while running:
                accept()                (times out every poll interval)
                new thread → _serve_connection()

        The accept thread never reads from a client, so a client that
        connects and stays silent can't hold up the next accept().
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Listening socket closed under us
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            if not self._running:
                # Woken up by shutdown()
                client_socket.close()
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            thread = threading.Thread(
                target=self._serve_connection,
                args=(client_socket, client_address, connection_handler),
                name=f"httptestserver-conn-{client_address[1]}",
                daemon=True,
            )
            thread.start()

        self._running = False

    def _serve_connection(
        self,
        client_socket: socket.socket,
        client_address: tuple,
        connection_handler: Callable[[Connection], None],
    ):
        """
        Runs in the connection's own thread.

            peek first bytes        CLOSE? → shutdown()
            Connection(...)
            connection_handler(conn)
        """
        if self._is_close_signal(client_socket):
            logger.debug("Received CLOSE signal")
            client_socket.close()
            self.shutdown()
            return

        conn = Connection(
            socket=client_socket,
            address=client_address,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            drain_timeout=self.config.drain_timeout,
        )
        connection_handler(conn)

    def _is_close_signal(self, client_socket: socket.socket) -> bool:
        """
        Peek at a fresh connection's first bytes without consuming them.

        Waits up to peek_timeout for enough bytes to tell "CLOSE" apart from
        anything else. A client that sends nothing in that window is not a
        close signal.
        """
        deadline = time.monotonic() + self.config.peek_timeout
        client_socket.settimeout(self.config.peek_timeout)

        try:
            while True:
                data = client_socket.recv(len(CLOSE_SIGNAL), socket.MSG_PEEK)
                if data.startswith(CLOSE_SIGNAL):
                    return True
                if not data or not CLOSE_SIGNAL.startswith(data):
                    return False
                # Partial prefix such as b"CL": wait for the rest
                if time.monotonic() >= deadline:
                    return False
                time.sleep(0.005)
        except OSError:
            # socket.timeout included: nothing sent yet
            return False

    def shutdown(self):
        """
        Ask the accept loop to stop.

        Safe to call more than once and from any thread.
        """
        if not self._running:
            return

        logger.info("Shutting down socket server...")
        self._running = False
        send_close_signal(self._address)

    def _cleanup(self):
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._stopped.set()
        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the listening socket is closed.

        Returns:
            True if it closed, False on timeout.
        """
        return self._stopped.wait(timeout)


def send_close_signal(address: Tuple[str, int], timeout: float = 1.0) -> bool:
    """
    Connect to a running server and send the CLOSE sentinel.

    Returns:
        False if nothing was listening.
    """
    host, port = address
    if host in ("", "0.0.0.0"):
        host = "127.0.0.1"

    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            sock.sendall(CLOSE_SIGNAL)
        return True
    except OSError:
        return False
