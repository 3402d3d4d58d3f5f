"""
=============================================================================
EXAMPLE: GREETING SITE
=============================================================================

Two routes on top of the static fallback:

    GET  /         render public/index.html with name=LiveOverflow
    POST /submit   render public/index.html with the submitted name,
                   remember it in a cookie
    GET  /whoami   read the cookie back

Everything else (/about, /css/site.css, unknown paths) is answered from
public/static by the dispatcher.

Run:
    python examples/demo_app.py
    curl http://127.0.0.1:8080/
    curl -d "name=<b>Ann</b>" http://127.0.0.1:8080/submit

The submitted name comes back escaped (&#60;b&#62;Ann...).

=============================================================================
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from pagegate import HTTPServer, ServerConfig


PUBLIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "public")


def create_server() -> HTTPServer:
    config = ServerConfig(
        host="127.0.0.1",
        port=8080,
        public_dir=PUBLIC_DIR,
        log_level="DEBUG",
    )
    server = HTTPServer(config)

    @server.get("/")
    def index(request, response):
        response.render("index.html", {"name": "LiveOverflow"})

    @server.post("/submit")
    def submit(request, response):
        name = request.post_data().get("name") or "stranger"
        cookie_value = "".join(c for c in name if c not in ";\r\n")
        response.set_cookie("name", cookie_value, max_age=3600, path="/", same_site="Lax")
        response.render("index.html", {"name": name})

    @server.get("/whoami")
    def whoami(request, response):
        name = request.get_cookie("name")
        if name is None:
            response.redirect("/")
            return
        response.send(f"You are {name}")

    return server


if __name__ == "__main__":
    create_server().run()
