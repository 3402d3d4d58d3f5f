"""
Unit tests for HTTP request parsing and the request facade.
"""

import pytest

from pagegate.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    first_scalar,
    flatten,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/search"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)
        assert request.client_ip == "127.0.0.1"

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed with lowercase names."""
        request = RequestParser().parse(sample_get_request)

        assert request.host == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.get_header("User-Agent") == "pytest"
        assert request.is_keep_alive is True

    def test_parse_query_string(self, sample_get_request: bytes):
        """Test the raw query string and parsed parameters."""
        request = RequestParser().parse(sample_get_request)

        assert request.query_string == "q=python&tag=a&tag=b"
        assert request.url == "/search?q=python&tag=a&tag=b"
        assert request.get_query("q") == "python"
        assert request.get_query("missing", "default") == "default"
        assert request.get_query_list("tag") == ["a", "b"]

    def test_params_flattened(self, sample_get_request: bytes):
        """Test that params keeps the first value of repeated keys."""
        request = RequestParser().parse(sample_get_request)

        assert request.params == {"q": "python", "tag": "a"}

    def test_params_not_flattened(self, sample_get_request: bytes):
        """Test that flatten_data=False keeps value lists."""
        request = RequestParser(flatten_data=False).parse(sample_get_request)

        assert request.params == {"q": ["python"], "tag": ["a", "b"]}

    def test_parse_post_form_body(self, sample_post_request: bytes):
        """Test parsing a POST request with a form body."""
        request = RequestParser().parse(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/submit"
        assert request.content_type == "application/x-www-form-urlencoded"
        assert request.body == b"name=Ann&tag=x&tag=y"
        assert request.post_data() == {"name": "Ann", "tag": "x"}
        assert request.is_keep_alive is False

    def test_post_data_not_flattened(self, sample_post_request: bytes):
        """Test post_data() with flatten_data off."""
        request = RequestParser(flatten_data=False).parse(sample_post_request)

        assert request.post_data() == {"name": ["Ann"], "tag": ["x", "y"]}

    def test_post_data_keeps_blank_values(self):
        """Test that empty form fields are kept."""
        body = b"name=&city=Graz"
        raw = (
            b"POST /submit HTTP/1.1\r\n"
            + f"Content-Length: {len(body)}\r\n\r\n".encode()
            + body
        )
        request = RequestParser().parse(raw)

        assert request.post_data() == {"name": "", "city": "Graz"}

    def test_post_data_is_cached(self, sample_post_request: bytes):
        """Test that the body is parsed only once."""
        request = RequestParser().parse(sample_post_request)
        request.post_data()
        request.body = b"name=Changed"

        assert request.post_data()["name"] == "Ann"

    def test_parse_percent_encoded_path(self):
        """Test that the path is URL-decoded."""
        request = RequestParser().parse(b"GET /hello%20world.html HTTP/1.1\r\n\r\n")

        assert request.path == "/hello world.html"

    def test_body_truncated_to_content_length(self):
        """Test that bytes after Content-Length are not part of the body."""
        raw = b"POST /x HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef"
        request = RequestParser().parse(raw)

        assert request.body == b"abc"

    def test_repeated_cookie_headers_joined(self):
        """Test that repeated Cookie headers are joined with '; '."""
        raw = b"GET / HTTP/1.1\r\nCookie: a=1\r\nCookie: b=2\r\n\r\n"
        request = RequestParser().parse(raw)

        assert request.headers["cookie"] == "a=1; b=2"
        assert request.get_cookie("b") == "2"

    def test_http10_keep_alive(self):
        """Test HTTP/1.0 keep-alive detection."""
        closed = RequestParser().parse(b"GET / HTTP/1.0\r\n\r\n")
        kept = RequestParser().parse(b"GET / HTTP/1.0\r\nConnection: keep-alive\r\n\r\n")

        assert closed.is_keep_alive is False
        assert kept.is_keep_alive is True


class TestParseErrors:
    """Tests for malformed requests."""

    def test_invalid_request_line(self):
        """Test that a garbage request line is a 400."""
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(b"INVALID\r\n\r\n")

        assert exc_info.value.status_code == 400

    def test_missing_terminator(self):
        """Test that a request without a blank line is a 400."""
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(b"GET / HTTP/1.1\r\nHost: x\r\n")

        assert exc_info.value.status_code == 400

    def test_unknown_method(self):
        """Test that an unknown method is a 405."""
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(b"BREW /pot HTTP/1.1\r\n\r\n")

        assert exc_info.value.status_code == 405

    def test_unsupported_version(self):
        """Test that HTTP/2.0 in a request line is a 505."""
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(b"GET / HTTP/2.0\r\n\r\n")

        assert exc_info.value.status_code == 505

    def test_request_too_large(self):
        """Test the size limit."""
        parser = RequestParser(max_request_size=32)

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(b"GET / HTTP/1.1\r\nX-Pad: " + b"a" * 64 + b"\r\n\r\n")

        assert exc_info.value.status_code == 413

    @pytest.mark.parametrize("length", [b"abc", b"-1"])
    def test_invalid_content_length(self, length: bytes):
        """Test that a non-numeric or negative Content-Length is a 400."""
        with pytest.raises(HTTPParseError):
            RequestParser().parse(b"POST / HTTP/1.1\r\nContent-Length: " + length + b"\r\n\r\n")

    def test_incomplete_body(self):
        """Test that a body shorter than Content-Length is a 400."""
        with pytest.raises(HTTPParseError):
            RequestParser().parse(b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc")

    @pytest.mark.parametrize("path", [b"/../etc/passwd", b"/static/../../secret", b"/%2e%2e/x"])
    def test_dot_dot_segments_rejected(self, path: bytes):
        """Test that '..' segments never reach the router."""
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(b"GET " + path + b" HTTP/1.1\r\n\r\n")

        assert exc_info.value.status_code == 400

    def test_dots_inside_names_allowed(self):
        """Test that '..' inside a file name is not a traversal."""
        request = RequestParser().parse(b"GET /notes..txt HTTP/1.1\r\n\r\n")

        assert request.path == "/notes..txt"


class TestHTTPRequest:
    """Tests for the HTTPRequest facade."""

    def test_get_cookie(self):
        """Test raw cookie lookup."""
        request = HTTPRequest(
            method="GET",
            path="/",
            headers={"cookie": "session=abc=def; theme=dark"},
        )

        assert request.get_cookie("session") == "abc=def"
        assert request.get_cookie("theme") == "dark"
        assert request.get_cookie("missing") is None

    def test_get_cookie_without_header(self):
        """Test that a missing Cookie header gives None."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_cookie("session") is None
        assert request.cookies == {}

    def test_cookie_name_is_not_a_prefix_match(self):
        """Test that 'id' does not match 'session_id'."""
        request = HTTPRequest(method="GET", path="/", headers={"cookie": "session_id=1; id=2"})

        assert request.get_cookie("id") == "2"

    def test_json_body(self):
        """Test JSON body parsing."""
        request = HTTPRequest(method="POST", path="/", body=b'{"name": "Ann"}')

        assert request.json == {"name": "Ann"}

    def test_invalid_json_body(self):
        """Test that invalid JSON raises HTTPParseError."""
        request = HTTPRequest(method="POST", path="/", body=b"{nope")

        with pytest.raises(HTTPParseError):
            request.json


class TestFlatten:
    """Tests for first_scalar() and flatten()."""

    def test_first_scalar(self):
        assert first_scalar(["a", "b"]) == "a"
        assert first_scalar([["x"], "y"]) == "x"
        assert first_scalar("plain") == "plain"
        assert first_scalar([]) is None

    def test_flatten(self):
        assert flatten({"a": ["1", "2"], "b": "3", "c": []}) == {"a": "1", "b": "3", "c": None}
