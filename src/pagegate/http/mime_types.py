"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type sent with rendered files.

    ┌────────────────────────────────────────────────────────────────────┐
    │  LOOKUP                                                            │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  "/css/site.CSS"  → suffix ".css" → "text/css; charset=utf-8"      │
    │  "/img/logo.png"  → suffix ".png" → "image/png"                    │
    │  "/notes.weird"   → not in table  → "text/plain; charset=utf-8"    │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

Unknown extensions fall back to text/plain: every file the dispatcher
serves came out of the template cache, and most of those are text.

The same table also decides whether the template cache treats a file as
text (compiled, placeholders substituted) or binary (served verbatim).
Extensions missing from the table are classified by sniffing the bytes.

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Optional, Union


MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT TYPES
    # -------------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # -------------------------------------------------------------------------
    # IMAGE TYPES
    # -------------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # -------------------------------------------------------------------------
    # FONT TYPES
    # -------------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".eot": "application/vnd.ms-fontobject",
    ".otf": "font/otf",
    ".ttf": "font/ttf",

    # -------------------------------------------------------------------------
    # MEDIA TYPES
    # -------------------------------------------------------------------------
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",

    # -------------------------------------------------------------------------
    # DOCUMENTS AND ARCHIVES
    # -------------------------------------------------------------------------
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".rar": "application/vnd.rar",
    ".7z": "application/x-7z-compressed",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".bz2": "application/x-bzip2",
    ".xz": "application/x-xz",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "text/plain"

# application/* and image/* types that are still text on the wire.
_TEXTUAL_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def get_mime_type(path: Union[str, PurePosixPath], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("/a/b/unknown.xyz")
        'text/plain'
    """
    suffix = PurePosixPath(str(path)).suffix.lower()
    return MIME_TYPES.get(suffix, default or DEFAULT_MIME_TYPE)


def is_known_type(path: Union[str, PurePosixPath]) -> bool:
    """True if the extension of ``path`` is in the table."""
    return PurePosixPath(str(path)).suffix.lower() in MIME_TYPES


def is_text_type(mime_type: str) -> bool:
    """
    Check if a MIME type represents text content.

        >>> is_text_type("application/json")
        True
        >>> is_text_type("image/png")
        False
    """
    return mime_type.startswith("text/") or mime_type in _TEXTUAL_TYPES


def get_content_type(path: Union[str, PurePosixPath], charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for a file.

    Text types carry a charset parameter, binary types do not.

        >>> get_content_type("page.html")
        'text/html; charset=utf-8'
        >>> get_content_type("image.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
