"""
=============================================================================
PAGEGATE SERVER
=============================================================================

Wires the pieces together:

    ServerConfig ──► HTTPServer
                        ├── SocketServer     accept loop
                        ├── ThreadPool       one task per connection
                        ├── RateLimiter      per-client gate
                        ├── RequestParser    bytes → HTTPRequest
                        ├── Router           GET/POST tables + fallback
                        ├── TemplateCache    public_dir, compiled files
                        └── AccessLogger     pagegate.access

=============================================================================
REQUEST FLOW
=============================================================================

    conn.read_request()
        │
        ├── limiter.admit(client ip)? ──no──► 429 + Retry-After, close
        │
        ├── parser.parse() ──HTTPParseError──► 4xx/505, close
        │
        ├── router.dispatch(request, ResponseWriter(cache))
        │       handler raised        → 500 {"error": ...}
        │       handler wrote nothing → 500
        │
        ├── Connection / Keep-Alive / X-Request-ID headers
        ├── send, access log line
        │
        └── keep-alive? ──yes──► next request on the same connection

=============================================================================
"""

import logging
import time
from typing import Callable, Optional

from .access_log import AccessLogger, new_request_id
from .config import ServerConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    ResponseBuilder,
    ResponseWriter,
    Router,
)
from .http.router import Handler
from .protection import RateLimiter
from .templating import TemplateCache


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server for a public directory plus custom routes.

    Usage:
        server = HTTPServer(ServerConfig(port=8080, public_dir="public"))

        @server.get("/")
        def index(request, response):
            response.render("index.html", {"name": "LiveOverflow"})

        @server.post("/submit")
        def submit(request, response):
            response.render("index.html", request.post_data())

        server.run()

    Anything without a route is served from public_dir/static, with the
    404 cascade when nothing matches.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(
            max_request_size=self.config.max_request_size,
            flatten_data=self.config.flatten_data,
        )
        self._router = Router()
        self.templates = TemplateCache(
            self.config.public_dir,
            static_subdir=self.config.static_subdir,
            escape=self.config.escape_render,
            whitelist=self.config.whitelist_paths,
        )
        self.limiter = RateLimiter(
            max_requests_per_second=self.config.max_requests_per_second,
            ban_minutes=self.config.ddos_timeout_minutes,
            idle_ttl_seconds=self.config.rate_limit_idle_ttl,
        )
        self._access_log = AccessLogger(self.config.log_format)
        self._running = False

        if self.config.whitelist_paths:
            self.templates.preload()

    # =========================================================================
    # ROUTES
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    def route(self, path: str, method: str = "GET") -> Callable[[Handler], Handler]:
        return self._router.route(path, method)

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self._router.get(path)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self._router.post(path)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start serving (blocking) until shutdown or Ctrl+C.

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._running = True
        self._setup_logging()
        self._thread_pool.start()

        logger.info(f"Starting HTTP server on {self.config.host}:{self.config.port}")
        self._print_startup_banner()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Ask a running server to stop; run() returns shortly after."""
        self._running = False
        self._socket_server.shutdown()

    def _print_startup_banner(self):
        mode = "whitelist" if self.config.whitelist_paths else "lazy"
        print()
        print(f"  {self.config.server_name} on http://{self.config.host}:{self.config.port}")
        print(f"  public dir : {self.templates.root} ({mode}, {len(self.templates)} files cached)")
        print(f"  rate limit : {self.config.max_requests_per_second} req/s, "
              f"{self.config.ddos_timeout_minutes} min ban")
        print(f"  workers    : {self.config.min_workers}-{self.config.max_workers} threads")
        print("  Press Ctrl+C to stop")
        print()
        self._router.print_routes()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("pagegate").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route one parsed request and return the response to send.

        Never raises for handler failures: an exception or a handler that
        writes nothing becomes a 500. HEAD is answered like GET but with
        the body stripped and Content-Length kept.
        """
        response = self._run_handler(request)
        if request.method == "HEAD":
            response.headers.setdefault("Content-Length", str(len(response.body)))
            response.body = b""
        return response

    def _run_handler(self, request: HTTPRequest) -> HTTPResponse:
        writer = ResponseWriter(self.templates)
        try:
            self._router.dispatch(request, writer)
        except Exception as e:
            logger.exception(f"Handler error on {request.method} {request.path}: {e}")
            return (ResponseBuilder()
                .status(HTTPStatus.INTERNAL_SERVER_ERROR)
                .json({"error": "Internal Server Error"})
                .build())

        response = writer.build()
        if response is None:
            logger.warning(f"Handler for {request.method} {request.path} wrote no response")
            return (ResponseBuilder()
                .status(HTTPStatus.INTERNAL_SERVER_ERROR)
                .json({"error": "Handler produced no response"})
                .build())
        return response

    def _rate_limited_response(self) -> HTTPResponse:
        return (ResponseBuilder()
            .status(HTTPStatus.TOO_MANY_REQUESTS)
            .header("Retry-After", str(self.limiter.retry_after_seconds))
            .text("Too Many Requests")
            .close_connection()
            .build())

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand ``conn`` to the pool; answer 503 if the pool is full."""
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            timeout=self.config.timeout,
        )
        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs on a worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    started_at = time.monotonic()
                    request_id = new_request_id()

                    if not self.limiter.admit(conn.client_ip):
                        response = self._rate_limited_response()
                        self._send(conn, None, response, started_at, request_id)
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        self._send_error(conn, e.status_code, str(e))
                        break

                    conn.state = conn.state.PROCESSING
                    response = self.dispatch(request)

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}",
                        )
                    else:
                        response.headers["Connection"] = "close"

                    if not self._send(conn, request, response, started_at, request_id):
                        break
                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _send(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        started_at: float,
        request_id: str,
    ) -> bool:
        response.headers["X-Request-ID"] = request_id
        sent = conn.send_response(response.to_bytes(self.config.server_name))
        self._access_log.log(
            self._access_log.entry(request, response, conn.client_ip, started_at, request_id)
        )
        return sent

    def _send_error(self, conn: Connection, status: int, message: str):
        """Error answer for failures before a handler runs."""
        response = (ResponseBuilder()
            .status(status)
            .json({"error": message})
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Build a server instance.

    Example:
        app = create_app(ServerConfig(port=3000, public_dir="site"))

        @app.get("/")
        def index(request, response):
            response.render("index.html", {"name": "Ann"})

        app.run()
    """
    return HTTPServer(config)
