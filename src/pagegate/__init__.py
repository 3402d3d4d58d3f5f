"""
=============================================================================
PAGEGATE
=============================================================================

A small threaded HTTP/1.1 server for a public directory of pages with
``{{ name }}`` placeholders, a handful of GET/POST routes, and a
per-client rate limiter in front of everything.

=============================================================================
QUICK START
=============================================================================

    from pagegate import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=8080, public_dir="public"))

    @server.get("/")
    def index(request, response):
        response.render("index.html", {"name": "LiveOverflow"})

    @server.post("/submit")
    def submit(request, response):
        response.set_cookie("name", request.post_data().get("name", ""))
        response.render("index.html", request.post_data())

    server.run()

Everything else under public/static is served as-is:

    GET /            → static/index.html   (when "/" has no route)
    GET /about       → static/about.html
    GET /css/app.css → static/css/app.css
    GET /missing     → err404 route, else static/404.html (404), else bare 404

=============================================================================
PACKAGE LAYOUT
=============================================================================

    pagegate/
    ├── server.py          HTTPServer, create_app()
    ├── config.py          ServerConfig
    ├── access_log.py      pagegate.access log lines
    ├── core/              socket server, connections, thread pool
    ├── http/              request, response, router, cookies, MIME
    ├── protection/        per-client rate limiter
    └── templating/        template cache, compiler, escaping

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .http import HTTPRequest, ResponseWriter, Router
from .protection import RateLimiter
from .server import HTTPServer, create_app
from .templating import TemplateCache, TemplateNotFound, TemplateRenderError

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "create_app",
    "HTTPRequest",
    "ResponseWriter",
    "Router",
    "RateLimiter",
    "TemplateCache",
    "TemplateNotFound",
    "TemplateRenderError",
    "__version__",
]
