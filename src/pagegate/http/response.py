"""
=============================================================================
HTTP RESPONSES
=============================================================================

Three layers, from the wire up:

    HTTPResponse      status + headers + body, serialized by to_bytes()
    ResponseBuilder   fluent construction, used by the server for its
                      own answers (429, 500, 503, parse errors)
    ResponseWriter    what route handlers receive: render(), send(),
                      redirect(), set_cookie()

=============================================================================
RESPONSE WRITER
=============================================================================

A handler writes exactly one response:

    @router.get("/")
    def index(request, response):
        response.set_cookie("seen", "1", max_age=3600)
        response.render("index.html", {"name": "Ann"})

    ┌──────────────┐  render("index.html", data)   ┌───────────────┐
    │ResponseWriter│ ─────────────────────────────► │ TemplateCache │
    └──────┬───────┘ ◄───────────── bytes ───────── └───────────────┘
           │                 or TemplateNotFound
           ▼
    HTTPResponse(200, {"Content-Type": "text/html; charset=utf-8",
                       "Set-Cookie": "seen=1; Max-Age=3600; HttpOnly"},
                 b"<h1>Hello Ann</h1>")

A second write raises RuntimeError. A failed render() writes nothing,
so the caller may still fall back to another response.

=============================================================================
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from .cookies import Expires, build_set_cookie, format_http_date
from .mime_types import get_content_type
from .status_codes import HTTPStatus, reason_phrase


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

        HTTP/1.1 200 OK\\r\\n
        Content-Type: text/html; charset=utf-8\\r\\n
        Content-Length: 27\\r\\n        ← added by to_bytes()
        Date: Wed, 01 Jan 2026 ...\\r\\n ← added by to_bytes()
        Server: pagegate/1.0\\r\\n      ← added by to_bytes()
        \\r\\n
        <h1>Hello Ann</h1>
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "pagegate/1.0") -> bytes:
        """Serialize to bytes for socket.sendall()."""
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.TOO_MANY_REQUESTS)
            .header("Retry-After", "300")
            .build())
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str) -> "ResponseBuilder":
        return self.text(html, "text/html; charset=utf-8")

    def json(self, data: Any) -> "ResponseBuilder":
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def redirect(self, location: str) -> "ResponseBuilder":
        """302 Found with a Location header."""
        self._status = HTTPStatus.FOUND
        self._headers["Location"] = location
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


class ResponseWriter:
    """
    Response facade handed to route handlers.

    Args:
        templates: The TemplateCache that render() delegates to.
    """

    def __init__(self, templates=None):
        self.templates = templates
        self._cookie: Optional[str] = None
        self._response: Optional[HTTPResponse] = None

    @property
    def written(self) -> bool:
        return self._response is not None

    # =========================================================================
    # WRITING
    # =========================================================================

    def render(
        self,
        path: str,
        data: Optional[Mapping[str, Any]] = None,
        status: int = HTTPStatus.OK,
        static: bool = False,
        no_escape: bool = False,
    ) -> None:
        """
        Render a file from the content root (or the static root).

        Raises:
            TemplateNotFound: Nothing to render at ``path``. The response
                stays unwritten.
            TemplateRenderError: A placeholder has no value in ``data``.
        """
        if self.templates is None:
            raise RuntimeError("No template cache attached to this response")

        body = self.templates.render(path, data, static=static, no_escape=no_escape)
        self._write(status, get_content_type(path), body)

    def send(
        self,
        body: Union[str, bytes],
        content_type: str = "text/plain",
        status: int = HTTPStatus.OK,
    ) -> None:
        """Write a raw body with ``Content-Type: <content_type>; charset=utf-8``."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._write(status, f"{content_type}; charset=utf-8", body)

    def redirect(self, location: str) -> None:
        """302 Found to ``location`` with an empty body."""
        self._write(HTTPStatus.FOUND, None, b"", {"Location": location})

    def send_status(self, status: int) -> None:
        """A bare status with an empty body and no Content-Type."""
        self._write(status, None, b"")

    def set_cookie(
        self,
        name: str,
        value: str,
        expires: Optional[Expires] = None,
        path: Optional[str] = None,
        secure: bool = False,
        http_only: bool = True,
        domain: Optional[str] = None,
        max_age: Optional[int] = None,
        same_site: Optional[str] = None,
    ) -> None:
        """
        Set the Set-Cookie header of this response.

        One Set-Cookie header per response: a later call replaces an
        earlier one. Must be called before the response is written.
        """
        if self.written:
            raise RuntimeError("Cannot set a cookie after the response is written")
        self._cookie = build_set_cookie(
            name, value,
            expires=expires, path=path, secure=secure, http_only=http_only,
            domain=domain, max_age=max_age, same_site=same_site,
        )

    def _write(
        self,
        status: int,
        content_type: Optional[str],
        body: bytes,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> None:
        if self.written:
            raise RuntimeError("Response already written")

        builder = ResponseBuilder().status(status).body(body)
        if content_type is not None:
            builder.content_type(content_type)
        for name, value in (extra_headers or {}).items():
            builder.header(name, value)
        if self._cookie is not None:
            builder.header("Set-Cookie", self._cookie)

        self._response = builder.build()

    def build(self) -> Optional[HTTPResponse]:
        """The written response, or None if nothing was written yet."""
        return self._response
