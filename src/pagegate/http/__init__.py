"""
=============================================================================
HTTP LAYER
=============================================================================

Translates between raw HTTP/1.1 bytes and the objects route handlers
work with.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       RequestParser: bytes → HTTPRequest                 │
    │                  client_ip, params, post_data(), get_cookie()       │
    ├─────────────────────────────────────────────────────────────────────┤
    │ response.py      ResponseWriter: render / send / redirect /         │
    │                  set_cookie, HTTPResponse.to_bytes()                │
    ├─────────────────────────────────────────────────────────────────────┤
    │ router.py        GET/POST tables, static fallback, 404 cascade      │
    ├─────────────────────────────────────────────────────────────────────┤
    │ cookies.py       Cookie header lookup, Set-Cookie builder           │
    │ mime_types.py    extension → Content-Type                           │
    │ status_codes.py  HTTPStatus with reason phrases                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .cookies import build_set_cookie, get_cookie, parse_cookies
from .mime_types import get_content_type, get_mime_type
from .request import HTTPParseError, HTTPRequest, RequestParser, first_scalar, flatten
from .response import HTTPResponse, ResponseBuilder, ResponseWriter
from .router import Handler, Route, Router, normalize_path
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    # Request
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "first_scalar",
    "flatten",
    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "ResponseWriter",
    # Routing
    "Router",
    "Route",
    "Handler",
    "normalize_path",
    # Utilities
    "HTTPStatus",
    "reason_phrase",
    "get_mime_type",
    "get_content_type",
    "build_set_cookie",
    "get_cookie",
    "parse_cookies",
]
