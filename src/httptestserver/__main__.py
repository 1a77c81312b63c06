"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

Run a test server from a shell, e.g. to poke at a client by hand.

    # Free port, one resource
    python -m httptestserver --resource /health

    # Fixed port, several resources, log every request
    python -m httptestserver --port 8080 \\
        --resource /users --resource "/user/{id}" --log-level INFO

Every --resource answers GET with "200 Ok" and an empty body. Captured
requests are logged at INFO until Ctrl+C. Option defaults come from the
HTTP_TEST_SERVER_* environment variables.

=============================================================================
"""

import argparse
import logging
import queue
import sys
from typing import Optional

from .config import ServerConfig, LOG_LEVELS
from .errors import HTTPTestServerError
from .server import TestServer


logger = logging.getLogger("httptestserver")


def build_parser(defaults: Optional[ServerConfig] = None) -> argparse.ArgumentParser:
    """
    Build the argument parser. Option defaults come from `defaults`, read
    from the environment when not given.

    Raises:
        ConfigurationError: If an HTTP_TEST_SERVER_* variable is invalid.
    """
    defaults = defaults or ServerConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="python -m httptestserver",
        description="Programmable mock HTTP server",
    )
    parser.add_argument(
        "--host",
        default=defaults.host,
        help=f"Address to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help="Port to listen on, 0 = any free port (default: %(default)s)",
    )
    parser.add_argument(
        "--resource", "-r",
        action="append",
        default=[],
        metavar="URI",
        help="Create a resource answering GET with 200 Ok (repeatable)",
    )
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        choices=LOG_LEVELS,
        type=str.upper,
        help="Logging level (default: %(default)s)",
    )
    return parser


def setup_logging(config: ServerConfig):
    """Configure the root logger for command-line use."""
    logging.basicConfig(
        level=config.logging_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main(argv=None) -> int:
    try:
        config = ServerConfig.from_env()
        args = build_parser(config).parse_args(argv)

        config.host = args.host
        config.port = args.port
        config.log_level = args.log_level
        config.validate()
    except HTTPTestServerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config)

    try:
        server = TestServer(config=config)
    except HTTPTestServerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        for uri in args.resource:
            server.create_resource(uri)
    except HTTPTestServerError as e:
        print(f"Error: {e}", file=sys.stderr)
        server.close()
        return 1

    requests = server.requests()
    print(f"Listening on {server.url} ({len(args.resource)} resources). Press Ctrl+C to stop.")

    try:
        while server.is_running:
            try:
                request = requests.get(timeout=0.5)
            except queue.Empty:
                continue
            logger.info(f"{request.method} {request.url} {request.headers}")
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    finally:
        server.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
