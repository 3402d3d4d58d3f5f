"""
HTTP status codes produced by pagegate.

    200  rendered file or raw send()
    302  redirect()
    400  malformed request              (parser)
    404  nothing to render
    405  unknown method                 (parser)
    408  request read timed out
    413  request too large              (parser)
    429  client banned by the rate limiter
    500  handler raised or wrote nothing
    503  worker pool saturated
    505  unsupported HTTP version       (parser)

Handlers may pass any integer status; reason_phrase() falls back to
the standard library's table for codes not listed here.
"""

import http
from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes with their reason phrases.

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    FOUND = 302
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    TOO_MANY_REQUESTS = 429
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        return _STATUS_PHRASES[self]

    @property
    def is_error(self) -> bool:
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.TOO_MANY_REQUESTS: "Too Many Requests",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def reason_phrase(status: int) -> str:
    """Reason phrase for any integer status code."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        pass
    try:
        return http.HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"
