"""
=============================================================================
COOKIES
=============================================================================

Reading the Cookie request header and building Set-Cookie values.

=============================================================================
REQUEST SIDE
=============================================================================

    Cookie: session=abc=def; theme=dark
            └──────┬──────┘  └───┬────┘
               session         theme

    get_cookie(header, "session") → "abc=def"   (everything after the
                                                  first "=")
    get_cookie(header, "missing") → None

Values are returned raw: no URL-decoding, no quote stripping.

=============================================================================
RESPONSE SIDE
=============================================================================

    build_set_cookie("sid", "42", max_age=3600, path="/", same_site="Lax")
        → "sid=42; Max-Age=3600; Path=/; HttpOnly; SameSite=Lax"

Attribute order is fixed:

    Expires, Max-Age, Domain, Path, Secure, HttpOnly, SameSite

Each appears only when supplied. HttpOnly is on unless http_only=False.

=============================================================================
"""

from datetime import datetime, timezone
from typing import Dict, Optional, Union

SAME_SITE_VALUES = ("Strict", "Lax", "None")

Expires = Union[datetime, int, float]


def parse_cookies(header: Optional[str]) -> Dict[str, str]:
    """
    Parse a Cookie header into a dict.

    The first occurrence of a name wins, matching get_cookie().
    """
    cookies: Dict[str, str] = {}
    if not header:
        return cookies

    for pair in header.split(";"):
        name, sep, value = pair.strip().partition("=")
        if sep and name and name not in cookies:
            cookies[name] = value
    return cookies


def get_cookie(header: Optional[str], name: str) -> Optional[str]:
    """Return the raw value of cookie ``name``, or None."""
    if not header:
        return None

    prefix = name + "="
    for pair in header.split(";"):
        pair = pair.strip()
        if pair.startswith(prefix):
            return pair[len(prefix):]
    return None


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an HTTP-date (RFC 7231).

    Example: Wed, 01 Jan 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def format_expires(expires: Expires) -> str:
    """
    Format an Expires attribute value.

    Accepts a datetime (naive values are taken as UTC) or a unix
    timestamp in seconds.
    """
    if isinstance(expires, datetime):
        moment = expires if expires.tzinfo else expires.replace(tzinfo=timezone.utc)
    else:
        moment = datetime.fromtimestamp(expires, tz=timezone.utc)
    return format_http_date(moment.astimezone(timezone.utc))


def build_set_cookie(
    name: str,
    value: str,
    expires: Optional[Expires] = None,
    path: Optional[str] = None,
    secure: bool = False,
    http_only: bool = True,
    domain: Optional[str] = None,
    max_age: Optional[int] = None,
    same_site: Optional[str] = None,
) -> str:
    """
    Build a Set-Cookie header value.

    Raises:
        ValueError: Unknown same_site value, or a name/value that would
            break the header (";", CR, LF).
    """
    for label, text in (("name", name), ("value", value)):
        if any(c in text for c in ";\r\n"):
            raise ValueError(f"Cookie {label} contains a forbidden character: {text!r}")

    parts = [f"{name}={value}"]

    if expires is not None:
        parts.append(f"Expires={format_expires(expires)}")
    if max_age is not None:
        parts.append(f"Max-Age={int(max_age)}")
    if domain is not None:
        parts.append(f"Domain={domain}")
    if path is not None:
        parts.append(f"Path={path}")
    if secure:
        parts.append("Secure")
    if http_only:
        parts.append("HttpOnly")
    if same_site is not None:
        normalized = same_site.capitalize()
        if normalized not in SAME_SITE_VALUES:
            raise ValueError(f"same_site must be one of {SAME_SITE_VALUES}, got {same_site!r}")
        parts.append(f"SameSite={normalized}")

    return "; ".join(parts)
