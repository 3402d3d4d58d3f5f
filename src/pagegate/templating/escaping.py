"""
HTML escaping for template data.

Everything outside ``[0-9A-Za-z ]`` becomes a decimal character
reference, punctuation included:

    >>> escape_html("A&B <3")
    'A&#38;B &#60;3'

This is stricter than html.escape() on purpose: the output is safe in
element bodies, quoted and unquoted attribute values alike.
"""

import re
from typing import Any, Dict, Mapping

_UNSAFE = re.compile(r"[^0-9A-Za-z ]")


def _reference(match: "re.Match[str]") -> str:
    return f"&#{ord(match.group())};"


def escape_html(text: str) -> str:
    """Replace every non-alphanumeric, non-space character with ``&#N;``."""
    return _UNSAFE.sub(_reference, text)


def escape_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of ``data`` with every string value escaped.

    Non-string values are left as they are; the compiler formats them
    with str() at render time.
    """
    return {
        key: escape_html(value) if isinstance(value, str) else value
        for key, value in data.items()
    }
