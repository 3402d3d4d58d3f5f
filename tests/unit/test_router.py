"""
Unit tests for the router and the fallback dispatcher.
"""

from pathlib import Path

import pytest

from pagegate.http.request import HTTPRequest
from pagegate.http.response import ResponseWriter
from pagegate.http.router import Router, normalize_path
from pagegate.templating import TemplateCache


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def text_handler(text: str):
    """Build a handler that sends ``text``."""
    def handler(request: HTTPRequest, response: ResponseWriter) -> None:
        response.send(text)
    return handler


def dispatch(router: Router, cache: TemplateCache, method: str, path: str):
    writer = ResponseWriter(cache)
    router.dispatch(make_request(method, path), writer)
    return writer.build()


class TestNormalizePath:
    """Tests for normalize_path()."""

    @pytest.mark.parametrize("path,expected", [
        ("/", "/index.html"),
        ("/docs/", "/docs/index.html"),
        ("/about", "/about.html"),
        ("/css/site.css", "/css/site.css"),
        ("/v1.2/notes", "/v1.2/notes.html"),
    ])
    def test_normalize(self, path: str, expected: str):
        assert normalize_path(path) == expected


class TestRegistration:
    """Tests for route registration."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        router.add_route("GET", "/users", text_handler("users"))

        routes = router.routes()
        assert len(routes) == 1
        assert routes[0].path == "/users"
        assert routes[0].method == "GET"

    def test_decorators(self):
        router = Router()

        @router.get("/a")
        def a(request, response):
            pass

        @router.post("/b")
        def b(request, response):
            pass

        assert router.resolve("GET", "/a") is a
        assert router.resolve("POST", "/b") is b
        assert len(router) == 2

    def test_method_is_case_insensitive(self):
        router = Router()
        handler = text_handler("x")
        router.add_route("post", "/x", handler)

        assert router.resolve("POST", "/x") is handler

    def test_reregistering_replaces(self):
        """Test that the last registration for a path wins."""
        router = Router()
        first, second = text_handler("1"), text_handler("2")
        router.add_route("GET", "/x", first)
        router.add_route("GET", "/x", second)

        assert router.resolve("GET", "/x") is second
        assert len(router) == 1

    @pytest.mark.parametrize("method", ["PUT", "DELETE", "PATCH"])
    def test_other_methods_rejected(self, method: str):
        with pytest.raises(ValueError):
            Router().add_route(method, "/x", text_handler("x"))

    def test_relative_path_rejected(self):
        with pytest.raises(ValueError):
            Router().add_route("GET", "users", text_handler("x"))

    def test_reserved_keys_accepted(self):
        router = Router()
        router.add_route("GET", Router.DEFAULT, text_handler("d"))
        router.add_route("GET", Router.NOT_FOUND, text_handler("n"))

        assert len(router) == 2


class TestResolve:
    """Tests for handler lookup."""

    def test_exact_match_only(self):
        """Test that paths match exactly."""
        router = Router()
        handler = text_handler("users")
        router.add_route("GET", "/users", handler)

        assert router.resolve("GET", "/users") is handler
        assert router.resolve("GET", "/users/") is None
        assert router.resolve("GET", "/users/1") is None

    def test_methods_use_separate_tables(self):
        router = Router()
        router.add_route("GET", "/x", text_handler("get"))

        assert router.resolve("POST", "/x") is None

    def test_default_catches_unmatched(self):
        router = Router()
        exact, fallback = text_handler("exact"), text_handler("default")
        router.add_route("GET", "/x", exact)
        router.add_route("GET", Router.DEFAULT, fallback)

        assert router.resolve("GET", "/x") is exact
        assert router.resolve("GET", "/anything") is fallback

    @pytest.mark.parametrize("method", ["HEAD", "PUT", "DELETE", "OPTIONS"])
    def test_other_methods_use_get_table(self, method: str):
        router = Router()
        handler = text_handler("x")
        router.add_route("GET", "/x", handler)

        assert router.resolve(method, "/x") is handler


class TestDispatch:
    """Tests for Router.dispatch() and the 404 cascade."""

    def test_handler_runs(self, cache: TemplateCache):
        router = Router()
        router.add_route("GET", "/hello", text_handler("hi"))

        response = dispatch(router, cache, "GET", "/hello")

        assert response.status == 200
        assert response.body == b"hi"

    def test_root_renders_static_index(self, cache: TemplateCache):
        """Test that GET / without a route renders static/index.html."""
        response = dispatch(Router(), cache, "GET", "/")

        assert response.status == 200
        assert response.body == b"<h1>Static index</h1>"
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"

    def test_extensionless_path_gets_html(self, cache: TemplateCache):
        """Test that GET /about renders about.html."""
        response = dispatch(Router(), cache, "GET", "/about")

        assert response.body == b"<h1>About</h1>"

    def test_directory_path_gets_index(self, cache: TemplateCache):
        response = dispatch(Router(), cache, "GET", "/docs/")

        assert response.body == b"<h1>Docs</h1>"

    def test_static_mime_types(self, cache: TemplateCache):
        css = dispatch(Router(), cache, "GET", "/css/site.css")
        png = dispatch(Router(), cache, "GET", "/logo.png")

        assert css.headers["Content-Type"] == "text/css; charset=utf-8"
        assert png.headers["Content-Type"] == "image/png"

    def test_fallback_never_serves_outside_static(self, cache: TemplateCache):
        """Test that templates outside static/ are not reachable by URL."""
        response = dispatch(Router(), cache, "GET", "/greeting.txt")

        assert response.status == 404

    def test_post_without_route_falls_back(self, cache: TemplateCache):
        """Test that an unrouted POST also gets the static fallback."""
        response = dispatch(Router(), cache, "POST", "/about")

        assert response.status == 200
        assert response.body == b"<h1>About</h1>"

    def test_not_found_handler(self, cache: TemplateCache):
        """Test that the NOT_FOUND handler runs when no file matches."""
        router = Router()

        @router.get(Router.NOT_FOUND)
        def missing(request, response):
            response.send(f"no {request.path}", status=404)

        response = dispatch(router, cache, "GET", "/nope")

        assert response.status == 404
        assert response.body == b"no /nope"

    def test_not_found_handler_is_per_method(self, cache: TemplateCache):
        router = Router()
        router.add_route("POST", Router.NOT_FOUND, text_handler("post 404"))

        response = dispatch(router, cache, "GET", "/nope")

        assert response.body == b"<h1>Custom not found</h1>"

    def test_static_404_page(self, cache: TemplateCache):
        """Test that static/404.html is served with status 404."""
        response = dispatch(Router(), cache, "GET", "/nope")

        assert response.status == 404
        assert response.body == b"<h1>Custom not found</h1>"
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"

    def test_bare_404(self, tmp_path: Path):
        """Test the final 404 with an empty body."""
        (tmp_path / "static").mkdir()
        cache = TemplateCache(str(tmp_path))

        response = dispatch(Router(), cache, "GET", "/nope")

        assert response.status == 404
        assert response.body == b""

    def test_404_page_with_placeholder_is_skipped(self, tmp_path: Path):
        """Test that a 404 page that cannot render gives a bare 404."""
        (tmp_path / "static").mkdir()
        (tmp_path / "static" / "404.html").write_text("Missing {{ path }}")
        cache = TemplateCache(str(tmp_path))

        response = dispatch(Router(), cache, "GET", "/nope")

        assert response.status == 404
        assert response.body == b""

    def test_default_beats_static(self, cache: TemplateCache):
        """Test that DEFAULT is consulted before the static fallback."""
        router = Router()
        router.add_route("GET", Router.DEFAULT, text_handler("default"))

        response = dispatch(router, cache, "GET", "/about")

        assert response.body == b"default"

    def test_path_override(self, cache: TemplateCache):
        """Test dispatching a request as if it had another path."""
        request = make_request("GET", "/original")
        writer = ResponseWriter(cache)

        Router().dispatch(request, writer, path="/about")

        assert writer.build().body == b"<h1>About</h1>"
        assert request.path == "/original"

    def test_traversal_is_not_served(self, cache: TemplateCache):
        response = dispatch(Router(), cache, "GET", "/../index.html")

        assert response.status == 404
        assert response.body == b"<h1>Custom not found</h1>"
