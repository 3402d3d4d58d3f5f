"""
Templating package.

Compiles ``{{ name }}`` templates from the content root and caches
the compiled renderers.

Components:
- TemplateCache: lazy or whitelisted compile-once cache
- compile_text / compile_binary: the restricted compiler
- escape_html / escape_data: conservative HTML escaping
"""

from .cache import TemplateCache, looks_like_text
from .compiler import CompiledTemplate, Field, compile_binary, compile_text, tokenize
from .errors import (
    TemplateError,
    TemplateNotFound,
    TemplateRenderError,
    TemplateSyntaxError,
)
from .escaping import escape_data, escape_html

__all__ = [
    "TemplateCache",
    "looks_like_text",
    "CompiledTemplate",
    "Field",
    "compile_binary",
    "compile_text",
    "tokenize",
    "TemplateError",
    "TemplateNotFound",
    "TemplateRenderError",
    "TemplateSyntaxError",
    "escape_data",
    "escape_html",
]
