"""
=============================================================================
REQUEST PARSING AND METADATA
=============================================================================

The test server reads as little of a request as it can get away with:

    GET /user/42?filter=all HTTP/1.1\r\n     ← request line: ALWAYS read
    Content-Type: text\r\n                   ← headers: only read when a
    Accept: */*\r\n                             requests() listener is
    \r\n                                        attached
    <body>                                   ← never read

The request line gives the method and the target, which is all routing needs.
Headers are parsed only to build the Request record handed to the metadata
listener.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..errors import HTTPTestServerError


class HTTPParseError(HTTPTestServerError):
    """
    Raised when the request line cannot be split into method and target.

    The server doesn't answer such requests: the connection is logged and
    closed.
    """


@dataclass
class Request:
    """
    Metadata captured for a request that was routed to a resource.

    Attributes:
        url: The request target exactly as sent, query string included.
        method: The method token as sent ("GET", "POST", ...).
        headers: Header name → value. Names keep the client's casing; a
            repeated header keeps its last value.

    Example:
        requests = server.requests()
        ...
        request = requests.get(timeout=1)
        assert request.url == "/user/42?filter=all"
        assert request.headers["Content-Type"] == "text"
    """

    url: str
    method: str
    headers: Dict[str, str] = field(default_factory=dict)


def parse_request_line(line: str) -> Tuple[str, str]:
    """
    Extract (method, target) from a request line.

        "GET /users?page=1 HTTP/1.1"  →  ("GET", "/users?page=1")
         ─┬─ ──────┬─────
          │        └── target, query string included
          └─────────── method

    The version is ignored. Anything after the target is ignored too.

    Raises:
        HTTPParseError: If the line has fewer than two tokens.
    """
    parts = line.split()
    if len(parts) < 2:
        raise HTTPParseError(f"Invalid request line: {line!r}")
    return parts[0], parts[1]


def parse_header_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Split "Name: value" into ("Name", "value").

    Only the value is trimmed. Lines without a colon are not headers and
    yield None.
    """
    if ":" not in line:
        return None
    name, value = line.split(":", 1)
    return name, value.strip()
