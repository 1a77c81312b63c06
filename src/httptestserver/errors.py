"""
=============================================================================
ERRORS
=============================================================================

Exceptions raised by the test server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ERROR TAXONOMY                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPTestServerError                                               │
    │       ├── ConfigurationError   bad resource/server configuration    │
    │       ├── BindError            listening port could not be bound    │
    │       └── HTTPParseError       request line could not be parsed     │
    │                                (defined in http.request)            │
    │                                                                      │
    │   404 / 405 are NOT exceptions: they are ordinary responses.        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

ConfigurationError and BindError are raised synchronously to whoever is
configuring the server. Transport errors never leave the connection thread
that hit them.

=============================================================================
"""


class HTTPTestServerError(Exception):
    """Base class for every error raised by httptestserver."""


class ConfigurationError(HTTPTestServerError, ValueError):
    """
    A resource or the server was configured in an invalid way.

    Examples:
        - body() called on a resource that already has a body_fn()
        - malformed URI pattern: "/users/[0-9"
        - ServerConfig(port=70000)
    """


class BindError(HTTPTestServerError, OSError):
    """The listening socket could not be bound to the requested address."""

    def __init__(self, host: str, port: int, reason: OSError):
        super().__init__(f"Failed to bind to {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason
