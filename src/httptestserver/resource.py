"""
=============================================================================
RESOURCE
=============================================================================

A resource is one configured endpoint: a URI pattern, the method it listens
to, and everything needed to build its response.

    resource = server.create_resource("/user/{userId}?filter=*")

    resource
        .status(Status.OK)
        .header("Content-Type", "application/json")
        .body('{ "id": "{path.userId}", "filter": "{query.filter}" }')

    # GET /user/abc123?filter=all
    #
    # HTTP/1.1 200 Ok\r\n
    # Content-Type: application/json\r\n
    # \r\n
    # { "id": "abc123", "filter": "all" }

=============================================================================
SHARED, LIVE CONFIGURATION
=============================================================================

The object returned by create_resource() is the SAME object the connection
threads read from. A test may reconfigure it at any time, also while requests
are in flight:

    ┌──────────────┐   status(), body(), ...   ┌──────────────────────┐
    │  test thread │ ────────────────────────► │                      │
    └──────────────┘                           │   Resource           │
                                               │   (one Lock guards   │
    ┌──────────────┐   render(), counters      │    every field)      │
    │  connection  │ ◄──────────────────────── │                      │
    │  threads     │                           └──────────────────────┘
    └──────────────┘

Every read and write goes through self._lock. The lock is never held while
calling user code (body_fn) or while sleeping.

=============================================================================
RESPONSE FORMAT
=============================================================================

    HTTP/1.1 <code> <reason>\r\n        status line
    <Name>: <Value>\r\n                 zero or more headers, any order
    \r\n                                end of headers
    <body>                              no Content-Length, no terminator

The client knows the body ended when the server closes the connection (or,
for streams, never: more data keeps coming).

=============================================================================
"""

import re
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Dict, Optional, Union

from .core.broadcaster import StreamBroadcaster, Subscriber
from .errors import ConfigurationError
from .http.status_codes import Method, Status
from .http.uri import URIPattern, parse_query, satisfies_constraints, split_target


# {path.userId} / {query.filter} placeholders in a literal body
TEMPLATE_PATTERN = re.compile(r"\{(path|query)\.([^{}]+)\}")


@dataclass(frozen=True)
class Parameters:
    """
    Values extracted from a live request, handed to body templates and
    body_fn callbacks.

    Example:
        Resource:  /user/{userId}?filter=*
        Request:   /user/42?filter=all&page=2

        Parameters(path={"userId": "42"},
                   query={"filter": "all", "page": "2"})
    """

    path: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, str] = field(default_factory=dict)


BodyFn = Callable[[Parameters], str]


def status_response(status: Status) -> str:
    """A response with only a status line: used for 404 and 405."""
    return f"HTTP/1.1 {status.description}\r\n\r\n"


class Resource:
    """
    A configurable endpoint.

    Defaults: GET, 200 Ok, no headers, empty body, no delay, not a stream.

    Configuration methods return the resource itself so calls can be
    chained. Getters that would clash with a setter name are prefixed with
    get_/is_.
    """

    def __init__(self, uri: str):
        # Raises ConfigurationError for malformed patterns
        self._pattern = URIPattern(uri)

        self._lock = threading.Lock()

        self._status = Status.OK
        self._custom_status: Optional[str] = None
        self._headers: Dict[str, str] = {}
        self._body: Optional[str] = None
        self._body_fn: Optional[BodyFn] = None
        self._method = Method.GET
        self._delay: Optional[float] = None
        self._stream = False
        self._query: Dict[str, str] = {}
        self._request_count = 0

        self._broadcaster = StreamBroadcaster()

    def __repr__(self) -> str:
        return f"Resource({self._pattern.uri!r}, method={self.get_method().value})"

    @property
    def uri(self) -> str:
        """The URI declaration this resource was created with."""
        return self._pattern.uri

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def status(self, status: Status) -> "Resource":
        """
        Set the response status.

        Also discards any custom status set before, so the last call wins:

            resource.custom_status(666, "The Number Of The Beast")
            resource.status(Status.FORBIDDEN)    # → 403 Forbidden
        """
        try:
            status = Status(status)
        except ValueError as e:
            raise ConfigurationError(f"Unknown status: {status!r}") from e

        with self._lock:
            self._status = status
            self._custom_status = None
        return self

    def custom_status(self, code: int, reason: str) -> "Resource":
        """Answer with a status that isn't part of Status, e.g. 666."""
        with self._lock:
            self._custom_status = f"{code} {reason}"
        return self

    def header(self, name: str, value: str) -> "Resource":
        """Add a response header. Setting the same name again replaces it."""
        with self._lock:
            self._headers[name] = value
        return self

    def body(self, content: str) -> "Resource":
        """
        Set a literal body.

        {path.<name>} and {query.<name>} are replaced with values from the
        request. Placeholders with no matching value are left as they are.

        Raises:
            ConfigurationError: If a body_fn is already configured.
        """
        with self._lock:
            if self._body_fn is not None:
                raise ConfigurationError("Resource already has a body_fn, can't set a body too")
            self._body = content
        return self

    def body_fn(self, fn: BodyFn) -> "Resource":
        """
        Generate the body with a callback.

            resource.body_fn(lambda params: f"hello {params.path['name']}")

        The callback receives the request's Parameters; its return value is
        used as the body without any template substitution.

        Raises:
            ConfigurationError: If a literal body is already configured.
        """
        with self._lock:
            if self._body is not None:
                raise ConfigurationError("Resource already has a body, can't set a body_fn too")
            self._body_fn = fn
        return self

    def method(self, method: Union[Method, str]) -> "Resource":
        """Set the method this resource answers to (default GET)."""
        try:
            method = Method(method)
        except ValueError as e:
            raise ConfigurationError(f"Unknown method: {method!r}") from e

        with self._lock:
            self._method = method
        return self

    def delay(self, delay: Union[float, timedelta]) -> "Resource":
        """Wait this long (seconds or timedelta) before writing the response."""
        if isinstance(delay, timedelta):
            delay = delay.total_seconds()
        if delay < 0:
            raise ConfigurationError(f"Delay must be >= 0, got {delay}")

        with self._lock:
            self._delay = float(delay)
        return self

    def query(self, name: str, value: str) -> "Resource":
        """
        Require a query parameter, on top of those in the URI declaration.

        "*" accepts any non-empty value.
        """
        with self._lock:
            self._query[name] = value
        return self

    def stream(self) -> "Resource":
        """Keep connections open after the response and relay send() data."""
        with self._lock:
            self._stream = True
        return self

    # =========================================================================
    # STREAMING
    # =========================================================================

    def send(self, data: str) -> "Resource":
        """Write data to every open streamed connection."""
        self._broadcaster.send(data)
        return self

    def send_line(self, data: str) -> "Resource":
        """send() with a trailing newline."""
        self._broadcaster.send_line(data)
        return self

    def close_open_connections(self) -> "Resource":
        """Close every open streamed connection."""
        self._broadcaster.close_open_connections()
        return self

    def open_connections_count(self) -> int:
        """Number of streamed connections currently open."""
        return self._broadcaster.open_connections_count()

    def subscribe(self) -> Subscriber:
        """Register a streamed connection. Called by the dispatcher."""
        return self._broadcaster.subscribe()

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def request_count(self) -> int:
        """Number of requests routed to this resource so far."""
        with self._lock:
            return self._request_count

    def increment_request_count(self):
        with self._lock:
            self._request_count += 1

    def get_method(self) -> Method:
        with self._lock:
            return self._method

    def get_delay(self) -> Optional[float]:
        with self._lock:
            return self._delay

    def is_stream(self) -> bool:
        with self._lock:
            return self._stream

    # =========================================================================
    # MATCHING
    # =========================================================================

    def matches_uri(self, target: str) -> bool:
        """
        True if the path matches and every query constraint is satisfied.
        The method is not considered.
        """
        path, query = split_target(target)
        if not self._pattern.matches(path):
            return False

        query_params = parse_query(query)
        if not self._pattern.matches_query(query_params):
            return False

        with self._lock:
            extra = dict(self._query)
        return satisfies_constraints(extra, query_params)

    def matches_request(self, method: str, target: str) -> bool:
        """matches_uri() and the method token equals the configured method."""
        return self.get_method().equal(method) and self.matches_uri(target)

    # =========================================================================
    # RENDERING
    # =========================================================================

    def parameters(self, target: str) -> Parameters:
        """Extract path and query values from a request target."""
        path, query = split_target(target)
        return Parameters(
            path=self._pattern.extract_path_params(path),
            query=parse_query(query),
        )

    def render(self, target: str) -> str:
        """
        Build the full response for a request target.

        Steps:
            1. Snapshot configuration under the lock
            2. Extract path/query parameters from the target
            3. Build the body (body_fn, or template substitution)
            4. Assemble status line + headers + blank line + body
        """
        with self._lock:
            status_line = self._custom_status or self._status.description
            headers = dict(self._headers)
            body = self._body or ""
            body_fn = self._body_fn

        params = self.parameters(target)

        if body_fn is not None:
            content = body_fn(params)
        else:
            content = fill_template(body, params)

        head = "".join(f"{name}: {value}\r\n" for name, value in headers.items())
        return f"HTTP/1.1 {status_line}\r\n{head}\r\n{content}"


def fill_template(template: str, params: Parameters) -> str:
    """
    Substitute {path.<name>} and {query.<name>} in a body.

        fill_template("id={path.id} q={query.q} x={path.nope}",
                      Parameters(path={"id": "42"}, query={"q": "a"}))
        → "id=42 q=a x={path.nope}"
    """

    def replace(match: re.Match) -> str:
        source, name = match.groups()
        values = params.path if source == "path" else params.query
        return values.get(name, match.group(0))

    return TEMPLATE_PATTERN.sub(replace, template)
