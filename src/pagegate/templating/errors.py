"""
Template exceptions.

    TemplateError
    ├── TemplateNotFound      missing file, path outside the root,
    │                         whitelist miss, or a file that failed to compile
    ├── TemplateSyntaxError   malformed {{ }} markers (never leaves the cache;
    │                         it is re-raised as TemplateNotFound)
    └── TemplateRenderError   a placeholder has no value in the data mapping
"""

from typing import Optional


class TemplateError(Exception):
    """Base class for template failures."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class TemplateNotFound(TemplateError):
    """The requested template cannot be served."""

    def __init__(self, path: str, reason: str = "not found"):
        super().__init__(f"Requested file: {path} {reason}", path)
        self.reason = reason


class TemplateSyntaxError(TemplateError):
    """Raised by the compiler for malformed placeholder markers."""

    def __init__(self, message: str, path: Optional[str] = None, offset: int = -1):
        super().__init__(message, path)
        self.offset = offset


class TemplateRenderError(TemplateError):
    """A placeholder referenced a name missing from the data mapping."""

    def __init__(self, name: str, path: Optional[str] = None):
        super().__init__(f"No value for placeholder '{name}'", path)
        self.name = name
