"""
=============================================================================
TEMPLATE COMPILER
=============================================================================

Turns the text of a file into a reusable renderer.

=============================================================================
SYNTAX
=============================================================================

    <h1>Hello {{ name }}!</h1>
              └───┬────┘
                  placeholder: replaced by data["name"]

    - Whitespace inside the braces is ignored: {{name}} == {{  name  }}
    - The name must be an identifier ([A-Za-z_][A-Za-z0-9_]*)
    - Everything else is literal text. Backslashes, backticks, "$",
      a lone "}}" and any other characters are copied unchanged.
    - An opening "{{" without a closing "}}" is a syntax error.

=============================================================================
COMPILATION
=============================================================================

Compilation happens once per file. The text is split into a tuple of
segments and closed over by the renderer:

    "Hi {{ name }}, you are {{ age }}"
        │
        ▼
    ("Hi ", Field("name"), ", you are ", Field("age"))
        │
        ▼
    render({"name": "Ann", "age": 30}) → b"Hi Ann, you are 30"

Rendering is a join over the segments. Nothing in the file is ever
evaluated as code.

Binary files are not compiled; their renderer returns the raw bytes.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Tuple, Union

from .errors import TemplateRenderError, TemplateSyntaxError


OPEN = "{{"
CLOSE = "}}"

Renderer = Callable[[Mapping[str, Any]], bytes]


@dataclass(frozen=True)
class Field:
    """A placeholder segment."""

    name: str


Segment = Union[str, Field]


def tokenize(text: str, path: str = "<string>") -> Tuple[Segment, ...]:
    """
    Split template text into literal strings and Field segments.

    Raises:
        TemplateSyntaxError: Unclosed marker or a non-identifier name.
    """
    segments: List[Segment] = []
    pos = 0

    while True:
        start = text.find(OPEN, pos)
        if start == -1:
            break

        end = text.find(CLOSE, start + len(OPEN))
        if end == -1:
            raise TemplateSyntaxError(
                f"Unclosed '{OPEN}' at offset {start}", path, start
            )

        name = text[start + len(OPEN):end].strip()
        if not name.isidentifier():
            raise TemplateSyntaxError(
                f"Invalid placeholder {text[start:end + len(CLOSE)]!r} at offset {start}",
                path,
                start,
            )

        if start > pos:
            segments.append(text[pos:start])
        segments.append(Field(name))
        pos = end + len(CLOSE)

    if pos < len(text):
        segments.append(text[pos:])

    return tuple(segments)


@dataclass(frozen=True)
class CompiledTemplate:
    """
    A compiled file, ready to render.

    Instances are immutable and safe to share between worker threads.
    """

    path: str
    is_binary: bool
    placeholders: Tuple[str, ...] = ()
    _renderer: Renderer = field(default=lambda data: b"", repr=False, compare=False)

    def render(self, data: Mapping[str, Any]) -> bytes:
        return self._renderer(data)


def _make_text_renderer(segments: Tuple[Segment, ...], path: str) -> Renderer:
    def render(data: Mapping[str, Any]) -> bytes:
        parts = []
        for segment in segments:
            if isinstance(segment, Field):
                try:
                    value = data[segment.name]
                except KeyError:
                    raise TemplateRenderError(segment.name, path) from None
                parts.append(value if isinstance(value, str) else str(value))
            else:
                parts.append(segment)
        return "".join(parts).encode("utf-8")

    return render


def compile_text(text: str, path: str = "<string>") -> CompiledTemplate:
    """Compile template text. Raises TemplateSyntaxError on bad markers."""
    segments = tokenize(text, path)
    names = tuple(dict.fromkeys(s.name for s in segments if isinstance(s, Field)))
    return CompiledTemplate(
        path=path,
        is_binary=False,
        placeholders=names,
        _renderer=_make_text_renderer(segments, path),
    )


def compile_binary(content: bytes, path: str = "<bytes>") -> CompiledTemplate:
    """Wrap raw bytes in a renderer that ignores its data."""
    return CompiledTemplate(
        path=path,
        is_binary=True,
        _renderer=lambda data: content,
    )
