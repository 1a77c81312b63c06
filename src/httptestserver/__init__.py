"""
=============================================================================
HTTPTESTSERVER - Programmable Mock HTTP Server for Test Suites
=============================================================================

Create endpoints that listen on a real TCP port and answer with pre-defined
responses, then check what the code under test did.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           FEATURES                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   - Several resources and simultaneous client connections          │
    │   - Path placeholders, regex URIs and query constraints            │
    │   - Templated bodies or bodies generated by a callback             │
    │   - Delayed responses                                              │
    │   - Streaming: keep connections open and push data to them         │
    │   - Request counts, open stream counts, request metadata           │
    │   - Free port picked automatically                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    from httptestserver import TestServer, Status, Method

    with TestServer() as server:
        resource = server.create_resource("/some-endpoint/new")

        resource \\
            .status(Status.CREATED) \\
            .method(Method.POST) \\
            .header("Content-Type", "application/json") \\
            .body('{ "message": "this is a message" }')

        # POST /some-endpoint/new
        #
        # HTTP/1.1 201 Created\\r\\n
        # Content-Type: application/json\\r\\n
        # \\r\\n
        # { "message": "this is a message" }

=============================================================================
DEFAULT BEHAVIOURS
=============================================================================

This is not a full featured server. Few validations are implemented, on
purpose: smart behaviours are confusing in tests. The ones that are:

    - 404 Not Found           no resource matches the path/query
    - 405 Method Not Allowed  resources match the path, none the method
    - 200 Ok                  a new resource answers GET with an empty body

=============================================================================
"""

from .config import ServerConfig
from .errors import BindError, ConfigurationError, HTTPTestServerError
from .http import HTTPParseError, Method, Request, Status
from .resource import Parameters, Resource
from .server import TestServer

__version__ = "1.0.0"

__all__ = [
    "TestServer",
    "Resource",
    "Parameters",
    "Request",
    "Status",
    "Method",
    "ServerConfig",
    "HTTPTestServerError",
    "ConfigurationError",
    "BindError",
    "HTTPParseError",
]
