"""
=============================================================================
PAGEGATE CLI
=============================================================================

Serve a public directory with nothing but the fallback dispatcher:

    python -m pagegate                          # ./public on port 80
    python -m pagegate --port 8080 --public site
    python -m pagegate --no-whitelist           # pick up new files live
    python -m pagegate --max-rps 50 --ban-minutes 1
    python -m pagegate --log-format json

Settings start from PAGEGATE_* environment variables (see
ServerConfig.from_env); flags given on the command line win.

=============================================================================
"""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagegate",
        description="Serve a public directory of templated pages with per-client rate limiting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pagegate --port 8080                  # serve ./public on :8080
  pagegate --public ./site --no-escape  # render values unescaped
  pagegate --no-whitelist               # compile files on first request
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 80)")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Minimum worker threads; up to twice as many under load (default: 4)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--public", "-d", help="Content root directory (default: public)")
    parser.add_argument(
        "--no-whitelist",
        action="store_true",
        help="Compile files lazily on first request instead of at startup",
    )
    parser.add_argument(
        "--no-escape",
        action="store_true",
        help="Insert placeholder values without HTML escaping",
    )
    parser.add_argument(
        "--no-flatten",
        action="store_true",
        help="Keep repeated query/form values as lists",
    )

    # ─────────────────────────────────────────────────────────────────────
    # RATE LIMITING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--max-rps", type=int, help="Requests per second per client (default: 20)")
    parser.add_argument("--ban-minutes", type=float, help="Ban length after a burst (default: 5)")

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-format", choices=["text", "json"], help="Access log format")
    parser.add_argument("--version", "-v", action="version", version=f"pagegate {__version__}")

    return parser


def config_from_args(args: argparse.Namespace, base: Optional[ServerConfig] = None) -> ServerConfig:
    """Overlay the flags that were actually given onto ``base``."""
    config = base or ServerConfig.from_env()
    overrides = {}

    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.workers is not None:
        overrides["min_workers"] = args.workers
        overrides["max_workers"] = args.workers * 2
    if args.public is not None:
        overrides["public_dir"] = args.public
    if args.no_whitelist:
        overrides["whitelist_paths"] = False
    if args.no_escape:
        overrides["escape_render"] = False
    if args.no_flatten:
        overrides["flatten_data"] = False
    if args.max_rps is not None:
        overrides["max_requests_per_second"] = args.max_rps
    if args.ban_minutes is not None:
        overrides["ddos_timeout_minutes"] = args.ban_minutes
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.log_format is not None:
        overrides["log_format"] = args.log_format

    return replace(config, **overrides)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        server = HTTPServer(config_from_args(args))
        server.run()
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
