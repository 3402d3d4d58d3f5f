"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Dict, Generator, Optional
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pagegate import HTTPServer, ServerConfig
from pagegate.http import ResponseWriter
from pagegate.templating import TemplateCache


PUBLIC_FILES: Dict[str, str] = {
    "index.html": "<h1>Hello {{ name }}</h1>",
    "greeting.txt": "Hi {{name}}, you are {{ age }}.",
    "broken.html": "<p>{{ oops</p>",
    "static/index.html": "<h1>Static index</h1>",
    "static/about.html": "<h1>About</h1>",
    "static/docs/index.html": "<h1>Docs</h1>",
    "static/css/site.css": "body { color: red; }",
    "static/data.json": '{"ok": true}',
    "static/404.html": "<h1>Custom not found</h1>",
}

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR{{ name }}"


def write_public_tree(root: Path, files: Optional[Dict[str, str]] = None) -> Path:
    """Create a public/ tree under ``root`` and return its path."""
    public = root / "public"
    for rel, text in (files if files is not None else PUBLIC_FILES).items():
        target = public / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    (public / "static").mkdir(parents=True, exist_ok=True)
    (public / "static" / "logo.png").write_bytes(PNG_BYTES)
    return public


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    """A temporary public/ tree with templates, static pages and a 404 page."""
    return write_public_tree(tmp_path)


@pytest.fixture
def cache(public_dir: Path) -> TemplateCache:
    """Lazy template cache over the public tree."""
    return TemplateCache(str(public_dir))


@pytest.fixture
def writer(cache: TemplateCache) -> ResponseWriter:
    return ResponseWriter(cache)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /search?q=python&tag=a&tag=b HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Cookie: session=abc=def; theme=dark\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a form body."""
    body = b"name=Ann&tag=x&tag=y"
    head = (
        "POST /submit HTTP/1.1\r\n"
        "Host: localhost:8080\r\n"
        "Content-Type: application/x-www-form-urlencoded\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n"
        "\r\n"
    ).encode()
    return head + body


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer, port: int):
        self.server = server
        self.port = port
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"port": self.port},
            daemon=True
        )
        self._thread.start()

        if not self.server._socket_server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw request bytes and read until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as s:
            s.sendall(raw)
            chunks = []
            while True:
                chunk = s.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def get(self, path: str, headers: str = "") -> bytes:
        return self.request(
            f"GET {path} HTTP/1.1\r\nHost: localhost\r\n{headers}Connection: close\r\n\r\n".encode()
        )

    def post(self, path: str, body: str) -> bytes:
        data = body.encode()
        head = (
            f"POST {path} HTTP/1.1\r\nHost: localhost\r\n"
            f"Content-Type: application/x-www-form-urlencoded\r\n"
            f"Content-Length: {len(data)}\r\nConnection: close\r\n\r\n"
        )
        return self.request(head.encode() + data)

    def stop(self):
        """Stop the server."""
        if self.server._running:
            self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def server_config(public_dir: Path, free_port: int) -> ServerConfig:
    return ServerConfig(
        host="127.0.0.1",
        port=free_port,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        public_dir=str(public_dir),
        log_level="WARNING",
    )


@pytest.fixture
def test_server(server_config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server with a few routes over the temporary public tree."""
    server = HTTPServer(server_config)

    @server.get("/hello")
    def hello(request, response):
        response.render("index.html", {"name": request.params.get("name", "World")})

    @server.post("/submit")
    def submit(request, response):
        response.set_cookie("name", request.post_data().get("name", ""), path="/")
        response.render("index.html", request.post_data())

    @server.get("/go")
    def go(request, response):
        response.redirect("/hello")

    @server.get("/boom")
    def boom(request, response):
        raise RuntimeError("handler exploded")

    @server.get("/silent")
    def silent(request, response):
        pass

    test_srv = TestServer(server, server_config.port)
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def limited_server(server_config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server that bans after 3 requests per second for 1 minute."""
    server_config.max_requests_per_second = 3
    server_config.ddos_timeout_minutes = 1
    test_srv = TestServer(HTTPServer(server_config), server_config.port)
    test_srv.start()

    yield test_srv

    test_srv.stop()
