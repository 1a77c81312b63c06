"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the test server.

Most test suites never touch it: TestServer() binds to an ephemeral port on
localhost with the defaults below. It exists for the cases where a fixed
port, a different interface or tighter timeouts are needed.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Code                                                           │
    │      └── TestServer(config=ServerConfig(port=8080))                 │
    │                                                                      │
    │   2. Command line (python -m httptestserver)                        │
    │      └── --host, --port, --log-level                                │
    │                                                                      │
    │   3. Environment variables                                          │
    │      └── HTTP_TEST_SERVER_PORT=8080                                 │
    │                                                                      │
    │   4. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError


ENV_PREFIX = "HTTP_TEST_SERVER_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for a TestServer.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size

    TIMEOUTS
    - timeout, peek_timeout, accept_poll_interval, drain_timeout

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Interface to bind to. Tests almost always want localhost."""

    port: int = 0
    """
    Port to listen on.
    0 = let the OS pick a free port (read it back from TestServer.port).
    """

    backlog: int = 128
    """Maximum number of queued, not yet accepted, connections."""

    buffer_size: int = 8192
    """Bytes read per recv() call."""

    # ─────────────────────────────────────────────────────────────────────
    # TIMEOUTS (seconds)
    # ─────────────────────────────────────────────────────────────────────

    timeout: Optional[float] = 30.0
    """
    Socket timeout for accepted connections.
    None = block forever.
    """

    peek_timeout: float = 1.0
    """
    How long the accept loop waits for the first bytes of a new connection
    when checking for the CLOSE sentinel. A client that sends nothing within
    this time is treated as an ordinary connection.
    """

    accept_poll_interval: float = 1.0
    """
    Timeout on accept() so the loop can notice a shutdown request even when
    no connection arrives.
    """

    drain_timeout: float = 0.5
    """How long to drain unread client data when closing a connection."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "WARNING"
    """
    Level used by the command-line entry point.
    The library itself never configures logging handlers.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_TEST_SERVER_HOST       Bind address (default: 127.0.0.1)
        HTTP_TEST_SERVER_PORT       Port, 0 = ephemeral (default: 0)
        HTTP_TEST_SERVER_TIMEOUT    Connection timeout (default: 30)
        HTTP_TEST_SERVER_LOG_LEVEL  Logging level (default: WARNING)

        =====================================================================
        """
        try:
            return cls(
                host=os.getenv(f"{ENV_PREFIX}HOST", "127.0.0.1"),
                port=int(os.getenv(f"{ENV_PREFIX}PORT", "0")),
                timeout=float(os.getenv(f"{ENV_PREFIX}TIMEOUT", "30")),
                log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "WARNING"),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e

    @property
    def logging_level(self) -> int:
        """log_level as a logging module constant."""
        return getattr(logging, self.log_level.upper())

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by TestServer before binding, so a bad value fails at
        construction instead of surfacing as a confusing socket error.

        Raises:
            ConfigurationError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ConfigurationError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ConfigurationError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be > 0")

        for name in ("peek_timeout", "accept_poll_interval", "drain_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log_level: {self.log_level}. Must be one of {', '.join(LOG_LEVELS)}."
            )
