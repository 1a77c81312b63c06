"""
=============================================================================
HTTP STATUS CODES AND METHODS
=============================================================================

The closed vocabulary a resource can be configured with: every status code a
test may want to answer with, plus the request methods a resource can listen
to.

=============================================================================
STATUS LINE
=============================================================================

Every response written by the server starts with a status line:

    HTTP/1.1 404 Not Found\r\n
             ─── ─────────
              │      │
              │      └── Reason phrase  (Status.phrase)
              └───────── Status code    (int(Status))

    Status.description  →  "404 Not Found"  (code + phrase, no version)

Reason phrases are fixed strings. Test suites compare whole response lines
byte by byte, so "200 Ok" stays "200 Ok" (not "200 OK").

=============================================================================
"""

from enum import Enum, IntEnum


class Status(IntEnum):
    """
    HTTP status codes a resource can answer with.

    IntEnum, so members compare equal to plain integers:

        >>> Status.NOT_FOUND == 404
        True
        >>> Status.NOT_FOUND.description
        '404 Not Found'
    """

    # =========================================================================
    # 1xx INFORMATIONAL
    # =========================================================================
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102

    # =========================================================================
    # 2xx SUCCESS
    # =========================================================================
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206
    MULTI_STATUS = 207

    # =========================================================================
    # 3xx REDIRECTION
    # =========================================================================
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    USE_PROXY = 305
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # =========================================================================
    # 4xx CLIENT ERRORS
    # =========================================================================
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PROXY_AUTHENTICATION_REQUIRED = 407
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    IM_A_TEAPOT = 418
    UNPROCESSABLE_ENTITY = 422
    LOCKED = 423
    FAILED_DEPENDENCY = 424
    UPGRADE_REQUIRED = 426
    PRECONDITION_REQUIRED = 428
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    # =========================================================================
    # 5xx SERVER ERRORS
    # =========================================================================
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505
    INSUFFICIENT_STORAGE = 507
    NETWORK_AUTHENTICATION_REQUIRED = 511

    @property
    def phrase(self) -> str:
        """Reason phrase, e.g. "Not Found"."""
        return _STATUS_PHRASES[self]

    @property
    def description(self) -> str:
        """
        Code and reason phrase as they appear in the status line.

            Status.OK.description  →  "200 Ok"
        """
        return f"{self.value} {self.phrase}"


class Method(str, Enum):
    """
    Request methods a resource can listen to.

    A request matches a resource only when its method token is exactly the
    member's value (case-sensitive, "get" is not GET).
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    def equal(self, value: str) -> bool:
        """Compare against a raw method token from a request line."""
        return self.value == value


# =============================================================================
# REASON PHRASES
# =============================================================================

_STATUS_PHRASES = {
    Status.CONTINUE: "Continue",
    Status.SWITCHING_PROTOCOLS: "Switching Protocols",
    Status.PROCESSING: "Processing",
    Status.OK: "Ok",
    Status.CREATED: "Created",
    Status.ACCEPTED: "Accepted",
    Status.NON_AUTHORITATIVE_INFORMATION: "Non Authoritative Information",
    Status.NO_CONTENT: "No Content",
    Status.RESET_CONTENT: "Reset Content",
    Status.PARTIAL_CONTENT: "Partial Content",
    Status.MULTI_STATUS: "Multi Status",
    Status.MULTIPLE_CHOICES: "Multiple Choices",
    Status.MOVED_PERMANENTLY: "Moved Permanently",
    Status.FOUND: "Found",
    Status.SEE_OTHER: "See Other",
    Status.NOT_MODIFIED: "Not Modified",
    Status.USE_PROXY: "Use Proxy",
    Status.TEMPORARY_REDIRECT: "Temporary Redirect",
    Status.PERMANENT_REDIRECT: "Permanent Redirect",
    Status.BAD_REQUEST: "Bad Request",
    Status.UNAUTHORIZED: "Unauthorized",
    Status.PAYMENT_REQUIRED: "Payment Required",
    Status.FORBIDDEN: "Forbidden",
    Status.NOT_FOUND: "Not Found",
    Status.METHOD_NOT_ALLOWED: "Method Not Allowed",
    Status.NOT_ACCEPTABLE: "Not Acceptable",
    Status.PROXY_AUTHENTICATION_REQUIRED: "Proxy Authentication Required",
    Status.REQUEST_TIMEOUT: "Request Timeout",
    Status.CONFLICT: "Conflict",
    Status.GONE: "Gone",
    Status.LENGTH_REQUIRED: "Length Required",
    Status.PRECONDITION_FAILED: "Precondition Failed",
    Status.PAYLOAD_TOO_LARGE: "Payload Too Large",
    Status.URI_TOO_LONG: "URI Too Long",
    Status.UNSUPPORTED_MEDIA_TYPE: "Unsupported Media Type",
    Status.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",
    Status.EXPECTATION_FAILED: "Expectation Failed",
    Status.IM_A_TEAPOT: "I'm A Teapot",
    Status.UNPROCESSABLE_ENTITY: "Unprocessable Entity",
    Status.LOCKED: "Locked",
    Status.FAILED_DEPENDENCY: "Failed Dependency",
    Status.UPGRADE_REQUIRED: "Upgrade Required",
    Status.PRECONDITION_REQUIRED: "Precondition Required",
    Status.TOO_MANY_REQUESTS: "Too Many Requests",
    Status.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    Status.INTERNAL_SERVER_ERROR: "Internal Server Error",
    Status.NOT_IMPLEMENTED: "Not Implemented",
    Status.BAD_GATEWAY: "Bad Gateway",
    Status.SERVICE_UNAVAILABLE: "Service Unavailable",
    Status.GATEWAY_TIMEOUT: "Gateway Timeout",
    Status.HTTP_VERSION_NOT_SUPPORTED: "Http Version Not Supported",
    Status.INSUFFICIENT_STORAGE: "Insufficient Storage",
    Status.NETWORK_AUTHENTICATION_REQUIRED: "Network Authentication Required",
}
