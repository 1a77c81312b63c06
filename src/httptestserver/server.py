"""
=============================================================================
TEST SERVER
=============================================================================

The entry point test code talks to: bind a port, create resources, inspect
what happened.

    server = TestServer()
    resource = server.create_resource("/user/{id}")
    resource.status(Status.OK).body("id={path.id}")

    requests = server.requests()

    # ... code under test calls http://127.0.0.1:{server.port}/user/42 ...

    assert resource.request_count() == 1
    assert requests.get(timeout=1).url == "/user/42"

    server.close()

=============================================================================
REQUEST FLOW
=============================================================================

    SocketServer accept loop (1 thread)
        │
        └──► new thread per connection
                  │
                  ├── first bytes "CLOSE"?         stop the server instead
                  ▼
             _process_connection(conn)
                  │
                  ├── read request line            "GET /user/42 HTTP/1.1"
                  ├── read headers                 only if requests() listener
                  ├── registry.resolve()           resource | 404 | 405
                  ├── sleep(delay)                 if configured
                  ├── write response
                  ├── push Request to listener     routed requests only
                  │
                  └── stream?  subscribe + relay until closed
                               │
                               └── close connection

=============================================================================
"""

import dataclasses
import logging
import queue
import threading
import time
from typing import List, Optional

from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer
from .http.request import HTTPParseError, Request, parse_request_line
from .registry import ResourceRegistry
from .resource import Resource


logger = logging.getLogger(__name__)


class TestServer:
    """
    In-process mock HTTP server.

    The listening socket is bound in the constructor, so `port` is valid as
    soon as the object exists. Connections are accepted in a background
    thread and each one is handled in its own thread.

    Use as a context manager to close it automatically:

        with TestServer() as server:
            server.create_resource("/ping")
            ...

    Raises:
        ConfigurationError: If the configuration is invalid.
        BindError: If the port can't be bound.
    """

    # Not a pytest test class, despite the name
    __test__ = False

    def __init__(self, port: Optional[int] = None, config: Optional[ServerConfig] = None):
        """
        Args:
            port: Port to bind. None or 0 = pick a free one. Overrides
                config.port when given.
            config: Server configuration. Defaults to ServerConfig().
        """
        config = config or ServerConfig()
        if port is not None:
            config = dataclasses.replace(config, port=port)
        config.validate()
        self.config = config

        self._registry = ResourceRegistry()

        # At most one metadata listener per server
        self._requests: Optional["queue.Queue[Request]"] = None
        self._requests_lock = threading.Lock()

        self._socket_server = SocketServer(self.config)
        self._socket_server.bind()
        self._socket_server.start(self._process_connection)

    def __repr__(self) -> str:
        return f"TestServer(port={self.port}, resources={len(self._registry)})"

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    @property
    def port(self) -> int:
        """The port the server is bound to."""
        return self._socket_server.port

    @property
    def url(self) -> str:
        """Base URL, e.g. "http://127.0.0.1:54321"."""
        host, port = self._socket_server.address
        return f"http://{host}:{port}"

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    @property
    def resources(self) -> List[Resource]:
        """Resources created so far, in creation order."""
        return self._registry.resources

    def create_resource(self, uri: str) -> Resource:
        """
        Create a resource. It answers GET with "200 Ok" until configured
        otherwise.

        Raises:
            ConfigurationError: If the URI pattern is malformed.
        """
        resource = self._registry.create(uri)
        logger.debug(f"Created resource {uri}")
        return resource

    def requests(self) -> "queue.Queue[Request]":
        """
        Start capturing request metadata.

        Returns a queue that receives one Request per routed request, after
        its response was written. Calling it again replaces the previous
        queue, which stops receiving.
        """
        requests: "queue.Queue[Request]" = queue.Queue()
        with self._requests_lock:
            self._requests = requests
        return requests

    def close(self):
        """
        Stop accepting connections and close the listening socket.

        Connections already open (including streams) are not touched.
        Does nothing if the server is already closed.
        """
        self._socket_server.shutdown()

        timeout = self.config.accept_poll_interval + self.config.peek_timeout + 1.0
        if not self._socket_server.wait_for_shutdown(timeout):
            logger.warning(f"Server on port {self.port} did not stop within {timeout:.1f}s")

    def __enter__(self) -> "TestServer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _requests_listener(self) -> Optional["queue.Queue[Request]"]:
        with self._requests_lock:
            return self._requests

    def _process_connection(self, conn: Connection):
        """Serve one request, then stream or close (runs in its own thread)."""
        with conn:
            try:
                line = conn.read_line()
                if not line:
                    logger.debug(f"[{conn.id}] Closed before sending a request")
                    return

                method, target = parse_request_line(line)

                # Headers are only worth reading if someone wants them
                listener = self._requests_listener()
                headers = conn.read_headers() if listener is not None else {}
                conn.state = ConnectionState.HEADER_PARSED

                match = self._registry.resolve(method, target)
                conn.state = ConnectionState.ROUTED
                resource = match.resource

                if resource is not None:
                    delay = resource.get_delay()
                    if delay:
                        conn.state = ConnectionState.DELAYED
                        time.sleep(delay)

                response = match.render(target)
                if not conn.send(response.encode("utf-8")):
                    return
                conn.state = ConnectionState.RESPONSE_SENT

                logger.debug(
                    f"[{conn.id}] {method} {target} -> "
                    f"{'routed' if match.routed else match.status.description}"
                )

                if match.routed and listener is not None:
                    listener.put(Request(url=target, method=method, headers=headers))

                if resource is not None and resource.is_stream():
                    self._relay_stream(conn, resource)

            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] {e}")

            except OSError as e:
                # Timeouts, resets: this connection only
                logger.debug(f"[{conn.id}] Transport error: {e}")

            except Exception as e:
                # e.g. a body_fn that raised
                logger.exception(f"[{conn.id}] Connection error: {e}")

    def _relay_stream(self, conn: Connection, resource: Resource):
        """
        Relay broadcast data until the resource closes the stream or the
        client goes away.
        """
        subscriber = resource.subscribe()
        conn.state = ConnectionState.STREAMING
        logger.debug(f"[{conn.id}] Streaming {resource.uri}")

        for chunk in subscriber:
            if not conn.send(chunk.encode("utf-8")):
                # Client gone: the next send() on the resource prunes us
                subscriber.close()
                break

        logger.debug(f"[{conn.id}] Stream ended")
