"""
=============================================================================
ACCESS LOG
=============================================================================

One line per answered request on the ``pagegate.access`` logger, so it
can be routed or silenced separately from the server's own logs.

    text (default):
        127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /about" 200 512 1.37ms [3f2a9c01]

    json:
        {"request_id": "3f2a9c01", "method": "GET", "path": "/about", ...}

The request id is also sent back as the X-Request-ID response header.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Optional

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger("pagegate.access")

LOG_FORMATS = ("text", "json")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass
class AccessLogEntry:
    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms [{self.request_id}]'
        )


class AccessLogger:
    """
    Builds and emits AccessLogEntry records.

    Args:
        log_format: "text" (Apache-like) or "json".
        level: Level the entries are logged at.
    """

    def __init__(self, log_format: str = "text", level: int = logging.INFO):
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")
        self.log_format = log_format
        self.level = level

    def entry(
        self,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        client_ip: str,
        started_at: float,
        request_id: str,
    ) -> AccessLogEntry:
        """
        Build the entry for ``response``. ``request`` is None when the
        request never got parsed (rate limited, malformed).
        """
        return AccessLogEntry(
            request_id=request_id,
            method=request.method if request else "-",
            path=request.path if request else "-",
            query=request.query_string if request else "",
            client_ip=client_ip,
            user_agent=(request.user_agent if request else None) or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=(time.monotonic() - started_at) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def log(self, entry: AccessLogEntry) -> None:
        if not logger.isEnabledFor(self.level):
            return
        if self.log_format == "json":
            logger.log(self.level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.level, entry.to_text())
