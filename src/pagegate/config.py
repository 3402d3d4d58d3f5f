"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the pagegate server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m pagegate --port 3000 --no-whitelist             │
    │                                                                      │
    │   2. Option dictionaries (camelCase keys)                           │
    │      └── ServerConfig.from_options({"escapeRender": False})        │
    │                                                                      │
    │   3. Environment variables                                          │
    │      └── PAGEGATE_PORT=3000 python -m pagegate                      │
    │                                                                      │
    │   4. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SERVING OPTIONS
=============================================================================

    flatten_data            Collapse list-valued query/form fields to
                            their first scalar (?a=1&a=2 → {"a": "1"}).
    escape_render           HTML-escape string values before they are
                            substituted into templates.
    whitelist_paths         Compile every file under public_dir at startup
                            and refuse anything else.
    max_requests_per_second Requests allowed per client per 1s window.
    ddos_timeout_minutes    Ban length once a client exceeds the threshold.

=============================================================================
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional


# Option names accepted by from_options(), mapped to dataclass fields.
OPTION_ALIASES: Dict[str, str] = {
    "flattenData": "flatten_data",
    "escapeRender": "escape_render",
    "whitelistPaths": "whitelist_paths",
    "maxRequestsPerSecond": "max_requests_per_second",
    "DDOStimeoutMinutes": "ddos_timeout_minutes",
    "publicDir": "public_dir",
    "staticDir": "static_subdir",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass
class ServerConfig:
    """
    Configuration for the pagegate server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING SETTINGS
    - min_workers, max_workers

    CONTENT
    - public_dir, static_subdir, whitelist_paths, escape_render

    REQUEST DATA
    - flatten_data

    ABUSE PROTECTION
    - max_requests_per_second, ddos_timeout_minutes, rate_limit_idle_ttl

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    port: int = 80
    """
    The port number to listen on. 80 needs elevated privileges on most
    Unix systems; pass --port for local development.
    """

    backlog: int = 128
    buffer_size: int = 8192

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds. None blocks forever."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024  # 10 MB

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    public_dir: str = "public"
    """
    Content root. Handlers may render anything below it; the fallback
    dispatcher only renders below public_dir/static_subdir.
    """

    static_subdir: str = "static"

    whitelist_paths: bool = True
    """
    Preload and compile every file under public_dir at startup. Files
    that appear later are never served.
    """

    escape_render: bool = True

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST DATA
    # ─────────────────────────────────────────────────────────────────────

    flatten_data: bool = True

    # ─────────────────────────────────────────────────────────────────────
    # ABUSE PROTECTION
    # ─────────────────────────────────────────────────────────────────────

    max_requests_per_second: int = 20
    ddos_timeout_minutes: float = 5

    rate_limit_idle_ttl: Optional[float] = 600.0
    """
    Seconds of silence after which an unbanned client's window is
    dropped. None keeps every window for the life of the process.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    server_name: str = "pagegate/1.0"

    @property
    def static_dir(self) -> str:
        """Directory the fallback dispatcher renders from."""
        return os.path.join(self.public_dir, self.static_subdir)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        PAGEGATE_HOST            Server host (default: 0.0.0.0)
        PAGEGATE_PORT            Server port (default: 80)
        PAGEGATE_WORKERS         Max worker threads (default: 16)
        PAGEGATE_TIMEOUT         Socket timeout in seconds (default: 30)
        PAGEGATE_PUBLIC_DIR      Content root (default: public)
        PAGEGATE_FLATTEN_DATA    true/false (default: true)
        PAGEGATE_ESCAPE_RENDER   true/false (default: true)
        PAGEGATE_WHITELIST_PATHS true/false (default: true)
        PAGEGATE_MAX_RPS         Requests per second per client (default: 20)
        PAGEGATE_BAN_MINUTES     Ban length in minutes (default: 5)
        PAGEGATE_LOG_LEVEL       Logging level (default: INFO)
        PAGEGATE_LOG_FORMAT      text or json (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("PAGEGATE_HOST", "0.0.0.0"),
            port=int(os.getenv("PAGEGATE_PORT", "80")),
            max_workers=int(os.getenv("PAGEGATE_WORKERS", "16")),
            timeout=float(os.getenv("PAGEGATE_TIMEOUT", "30")),
            public_dir=os.getenv("PAGEGATE_PUBLIC_DIR", "public"),
            flatten_data=_env_bool("PAGEGATE_FLATTEN_DATA", True),
            escape_render=_env_bool("PAGEGATE_ESCAPE_RENDER", True),
            whitelist_paths=_env_bool("PAGEGATE_WHITELIST_PATHS", True),
            max_requests_per_second=int(os.getenv("PAGEGATE_MAX_RPS", "20")),
            ddos_timeout_minutes=float(os.getenv("PAGEGATE_BAN_MINUTES", "5")),
            log_level=os.getenv("PAGEGATE_LOG_LEVEL", "INFO"),
            log_format=os.getenv("PAGEGATE_LOG_FORMAT", "text"),
        )

    @classmethod
    def from_options(
        cls,
        options: Optional[Dict[str, Any]] = None,
        base: Optional["ServerConfig"] = None,
    ) -> "ServerConfig":
        """
        Merge an option dictionary over a base configuration.

        Keys may be either the camelCase option names (flattenData,
        escapeRender, whitelistPaths, maxRequestsPerSecond,
        DDOStimeoutMinutes) or the dataclass field names. Unknown keys
        raise ValueError so typos fail at startup.

        Example:
            config = ServerConfig.from_options({"whitelistPaths": False})
        """
        base = base or cls()
        known = {f.name for f in fields(cls)}
        values = {f.name: getattr(base, f.name) for f in fields(cls)}

        for key, value in (options or {}).items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown option: {key}")
            values[name] = value

        return cls(**values)

    def validate(self) -> None:
        """
        Validate configuration values.

        Runs at server construction so a bad value fails immediately
        instead of on the first request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_requests_per_second < 1:
            raise ValueError("max_requests_per_second must be >= 1")

        if self.ddos_timeout_minutes < 0:
            raise ValueError("ddos_timeout_minutes must be >= 0")

        if self.rate_limit_idle_ttl is not None and self.rate_limit_idle_ttl <= 0:
            raise ValueError("rate_limit_idle_ttl must be > 0 or None")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        if not self.public_dir:
            raise ValueError("public_dir must not be empty")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with dataclass
# 2. Environment variables (PAGEGATE_*) and camelCase option dicts
# 3. Validation at startup (fail-fast)
#
# Defaults match a public deployment: port 80, whitelist on, escaping on,
# 20 requests per second per client, 5 minute bans.
# =============================================================================
