"""
=============================================================================
ROUTER AND DISPATCHER
=============================================================================

Exact-path routing for GET and POST, with a static-file fallback and a
404 cascade.

=============================================================================
ROUTE TABLES
=============================================================================

    GET table                         POST table
    ┌──────────────┬────────────┐     ┌──────────────┬────────────┐
    │ "/"          │ index      │     │ "/submit"    │ submit     │
    │ "/api/time"  │ time_now   │     │ DEFAULT      │ catch_all  │
    │ NOT_FOUND    │ custom_404 │     └──────────────┴────────────┘
    └──────────────┴────────────┘

Paths match exactly: "/users" does not match "/users/" or "/users/1".
DEFAULT catches every path of that method without its own entry.
NOT_FOUND runs when the static fallback finds nothing. Registering the
same (method, path) twice keeps the last handler.

POST requests use the POST table. GET and every other method (HEAD,
PUT, DELETE, ...) use the GET table.

=============================================================================
DISPATCH
=============================================================================

    dispatch(request, response)
        │
        ├── handler for path, else DEFAULT? ──yes──► handler(request, response)
        │
        ▼ no
    normalize:  "/"        → "/index.html"
                "/docs/"   → "/docs/index.html"
                "/about"   → "/about.html"
                "/app.js"  → "/app.js"
        │
        ├── render from the static root ──ok──► 200 + MIME type
        │
        ▼ not found
        ├── NOT_FOUND handler? ──yes──► handler(request, response)
        │
        ├── render static "404.html" ──ok──► 404 + page
        │
        ▼
    bare 404, empty body

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..templating.errors import TemplateNotFound, TemplateRenderError
from .request import HTTPRequest
from .response import ResponseWriter
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest, ResponseWriter], None]


@dataclass
class Route:
    """A registered (method, path) → handler binding."""

    method: str
    path: str
    handler: Handler


def normalize_path(path: str) -> str:
    """
    Map a request path to the file the static fallback should render.

        >>> normalize_path("/")
        '/index.html'
        >>> normalize_path("/about")
        '/about.html'
        >>> normalize_path("/css/site.css")
        '/css/site.css'
        >>> normalize_path("/docs/")
        '/docs/index.html'
        >>> normalize_path("/v1.2/notes")
        '/v1.2/notes.html'

    Intentionally wider than mapping only "/" to index.html: every path
    ending in "/" gets its index.html, and only the last segment is
    checked for an extension.
    """
    if path.endswith("/"):
        return path + "index.html"
    if "." not in path.rsplit("/", 1)[-1]:
        return path + ".html"
    return path


class Router:
    """
    GET/POST route tables plus the fallback dispatcher.

    Usage:
        router = Router()

        @router.get("/")
        def index(request, response):
            response.render("index.html", {"name": "Ann"})

        @router.get(Router.NOT_FOUND)
        def missing(request, response):
            response.send("nothing here", status=404)

        router.dispatch(request, ResponseWriter(cache))
    """

    # Reserved keys; real paths always start with "/".
    DEFAULT = "default"
    NOT_FOUND = "err404"

    METHODS = ("GET", "POST")

    FALLBACK_404_PAGE = "404.html"

    def __init__(self):
        self._tables: Dict[str, Dict[str, Route]] = {method: {} for method in self.METHODS}

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_route(self, method: str, path: str, handler: Handler) -> Route:
        """
        Register ``handler`` for an exact (method, path).

        Raises:
            ValueError: Method other than GET/POST, or a path that is
                neither reserved nor absolute.
        """
        method = method.upper()
        if method not in self.METHODS:
            raise ValueError(f"Only {', '.join(self.METHODS)} routes are supported, got {method}")
        if path not in (self.DEFAULT, self.NOT_FOUND) and not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")

        route = Route(method=method, path=path, handler=handler)
        if path in self._tables[method]:
            logger.debug(f"Replacing handler for {method} {path}")
        self._tables[method][path] = route
        return route

    def route(self, path: str, method: str = "GET") -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, path, handler)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "GET")

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "POST")

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def table_for(self, method: str) -> Dict[str, Route]:
        """POST gets the POST table, everything else the GET table."""
        if method.upper() == "POST":
            return self._tables["POST"]
        return self._tables["GET"]

    def resolve(self, method: str, path: str) -> Optional[Handler]:
        """Exact handler for ``path``, else the table's DEFAULT, else None."""
        table = self.table_for(method)
        route = table.get(path) or table.get(self.DEFAULT)
        return route.handler if route else None

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(
        self,
        request: HTTPRequest,
        response: ResponseWriter,
        path: Optional[str] = None,
    ) -> None:
        """
        Route ``request`` and write into ``response``.

        Args:
            request: The parsed request. Never modified.
            response: Writer the handler or the fallback writes into.
            path: Dispatch as if the request had this path (internal
                forward). Defaults to request.path.
        """
        path = path or request.path
        table = self.table_for(request.method)

        handler = self.resolve(request.method, path)
        if handler is not None:
            handler(request, response)
            return

        file_path = normalize_path(path)
        if self._render_static(response, file_path):
            return

        logger.debug(f"No file for {request.method} {path} (tried {file_path})")

        not_found = table.get(self.NOT_FOUND)
        if not_found is not None:
            not_found.handler(request, response)
            return

        if self._render_static(response, self.FALLBACK_404_PAGE, HTTPStatus.NOT_FOUND):
            return

        response.send_status(HTTPStatus.NOT_FOUND)

    def _render_static(
        self,
        response: ResponseWriter,
        file_path: str,
        status: int = HTTPStatus.OK,
    ) -> bool:
        try:
            response.render(file_path, status=status, static=True)
        except (TemplateNotFound, TemplateRenderError) as e:
            logger.debug(f"Static render of {file_path} failed: {e}")
            return False
        return True

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """Every registered route, GET first, in registration order."""
        return [route for method in self.METHODS for route in self._tables[method].values()]

    def print_routes(self) -> None:
        """Print the route tables (startup banner)."""
        routes = self.routes()
        if not routes:
            print("  (no routes registered, serving static files only)")
            return

        print("Registered routes:")
        for route in routes:
            name = getattr(route.handler, "__name__", repr(route.handler))
            print(f"  {route.method:<6} {route.path:<30} → {name}")

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())
