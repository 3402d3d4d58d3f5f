"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read from a connection into an HTTPRequest that
handlers query for path, parameters, form data and cookies.

=============================================================================
WHAT A HANDLER SEES
=============================================================================

    POST /submit?tag=a&tag=b HTTP/1.1
    Host: localhost
    Cookie: sid=42
    Content-Type: application/x-www-form-urlencoded
    Content-Length: 13

    name=Ann&x=1

        │
        ▼

    request.client_ip      "127.0.0.1"
    request.path           "/submit"
    request.query_string   "tag=a&tag=b"
    request.query_params   {"tag": ["a", "b"]}
    request.params         {"tag": "a"}            (flatten_data=True)
    request.post_data()    {"name": "Ann", "x": "1"}
    request.get_cookie("sid")  "42"

=============================================================================
FLATTENING
=============================================================================

Query strings and form bodies can repeat a key. With flatten_data on,
each value collapses to its first scalar:

    {"tag": ["a", "b"]}  →  {"tag": "a"}

With flatten_data off the lists are kept as parse_qs returns them.

=============================================================================
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

from .cookies import get_cookie, parse_cookies


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code to answer with:

        400 Bad Request                 malformed syntax
        405 Method Not Allowed          unknown method
        413 Payload Too Large           request exceeds size limit
        505 HTTP Version Not Supported  unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def first_scalar(value: Any) -> Any:
    """Descend into list values and return the first non-list element."""
    while isinstance(value, list):
        if not value:
            return None
        value = value[0]
    return value


def flatten(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply first_scalar() to every value of a mapping."""
    return {key: first_scalar(value) for key, value in data.items()}


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lowercase. ``query_params`` always holds
    lists; ``params`` is the view handlers normally use and honours
    ``flatten_data``.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_string: str = ""
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    client_address: Tuple[str, int] = ("", 0)
    raw: bytes = b""

    flatten_data: bool = True

    _post_data: Optional[Dict[str, Any]] = field(default=None, repr=False)
    _body_json: Optional[Any] = field(default=None, repr=False)

    # =========================================================================
    # CLIENT AND URL
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.client_address[0]

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent it (decoded path)."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def params(self) -> Dict[str, Any]:
        """Query parameters, flattened when flatten_data is on."""
        if self.flatten_data:
            return flatten(self.query_params)
        return dict(self.query_params)

    # =========================================================================
    # HEADERS
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters, lowercase."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection open unless told to close;
        HTTP/1.0 closes it unless told to keep it.
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    # =========================================================================
    # QUERY, FORM AND JSON DATA
    # =========================================================================

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> List[str]:
        return self.query_params.get(name, [])

    def post_data(self) -> Dict[str, Any]:
        """
        The body parsed as URL-encoded form data.

        Flattened when flatten_data is on. Parsed once and cached.
        """
        if self._post_data is None:
            text = self.body.decode("utf-8", errors="replace")
            self._post_data = parse_qs(text, keep_blank_values=True)

        if self.flatten_data:
            return flatten(self._post_data)
        return dict(self._post_data)

    @property
    def json(self) -> Any:
        """
        The body parsed as JSON (cached).

        Raises:
            HTTPParseError: Body is not valid JSON.
        """
        if self._body_json is None and self.body:
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    # =========================================================================
    # COOKIES
    # =========================================================================

    def get_cookie(self, name: str) -> Optional[str]:
        """Raw value of cookie ``name``, or None if it or the header is absent."""
        return get_cookie(self.headers.get("cookie"), name)

    @property
    def cookies(self) -> Dict[str, str]:
        return parse_cookies(self.headers.get("cookie"))


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    STEPS
    ==========================================================================

        1. Size check                   → 413 if over max_request_size
        2. Split at \\r\\n\\r\\n            → 400 if missing
        3. Request line                 → 400 / 405 / 505
           METHOD SP URI SP VERSION
        4. Headers                      lowercase names, repeats joined
        5. Body                         exactly Content-Length bytes

    ==========================================================================
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024, flatten_data: bool = True):
        self.max_request_size = max_request_size
        self.flatten_data = flatten_data

    def parse(self, data: bytes, client_address: Tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_string, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )
        body = body[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_string=query_string,
            query_params=parse_qs(query_string, keep_blank_values=True),
            body=body,
            client_address=client_address,
            raw=data,
            flatten_data=self.flatten_data,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str, str]:
        """
        Split "GET /users?page=1 HTTP/1.1" into method, decoded path,
        raw query string and version.
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlsplit(uri)
        path = unquote(parsed.path) or "/"

        # Traversal is also stopped by the template cache; this rejects
        # it before any handler sees the path.
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..", status_code=400)

        return method, path, parsed.query, version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Repeated headers are joined with ", " (Cookie with "; ").
        Lines starting with whitespace continue the previous header.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                separator = "; " if name == "cookie" else ", "
                headers[name] += separator + value
            else:
                headers[name] = value

        return headers
