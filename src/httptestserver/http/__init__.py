"""
HTTP vocabulary and parsing for the test server.

This package contains:
- status_codes: Status and Method enums
- uri: URI pattern compiler (path placeholders, regex, query constraints)
- request: request-line/header parsing and the Request metadata record
"""

from .status_codes import Status, Method
from .uri import URIPattern, URIParameters, WILDCARD, parse_query, split_target
from .request import Request, HTTPParseError, parse_request_line, parse_header_line

__all__ = [
    # Vocabulary
    "Status",
    "Method",
    # URI patterns
    "URIPattern",
    "URIParameters",
    "WILDCARD",
    "parse_query",
    "split_target",
    # Requests
    "Request",
    "HTTPParseError",
    "parse_request_line",
    "parse_header_line",
]
