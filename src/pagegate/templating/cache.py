"""
=============================================================================
TEMPLATE CACHE
=============================================================================

Compiles files below the content root on first use and keeps the
compiled renderer for the rest of the process lifetime.

=============================================================================
ROOTS
=============================================================================

    public/                 ← root         render("index.html", data)
    ├── index.html
    ├── mail/welcome.txt
    └── static/             ← static root  render("about.html", static=True)
        ├── about.html
        ├── 404.html
        └── logo.png

Handlers may render anything below ``public/``. The fallback dispatcher
renders only below ``public/static/``. Files are cached by absolute
path, so ``static/about.html`` and ``about.html`` with ``static=True``
share one entry.

=============================================================================
RESOLUTION
=============================================================================

    "/../../etc/passwd"
         │
         ▼  strip leading "/" and join onto the selected root
    "<root>/../../etc/passwd"
         │
         ▼  normpath (lexical, no filesystem access)
    "/etc/passwd"
         │
         ▼  not below <root>
    TemplateNotFound

A second check runs on the real path when a file is compiled, so a
symlink inside the root cannot point outside it.

=============================================================================
MODES
=============================================================================

    Lazy (whitelist=False)
        A cache miss reads and compiles the file. Concurrent first
        requests for one file may compile it twice; the store is a
        single dict assignment under a lock, so the last writer wins
        and readers never see a partial entry.

    Whitelist (whitelist=True)
        preload() compiles every file under the root at startup. After
        that a miss is a TemplateNotFound without touching the disk.

=============================================================================
"""

import logging
import os
import threading
from typing import Any, Dict, List, Mapping, Optional

from ..http.mime_types import get_mime_type, is_known_type, is_text_type
from .compiler import CompiledTemplate, compile_binary, compile_text
from .errors import TemplateError, TemplateNotFound, TemplateRenderError, TemplateSyntaxError
from .escaping import escape_data


logger = logging.getLogger(__name__)

# Bytes inspected when a file's extension is not in the MIME table.
SNIFF_SIZE = 8192


def looks_like_text(content: bytes) -> bool:
    """True if ``content`` has no NUL byte up front and decodes as UTF-8."""
    if b"\x00" in content[:SNIFF_SIZE]:
        return False
    try:
        content.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root + os.sep)


class TemplateCache:
    """
    Process-wide cache of compiled templates.

    Usage:
        cache = TemplateCache("public", whitelist=True)
        cache.preload()

        body = cache.render("index.html", {"name": "Ann"})
        page = cache.render("about.html", static=True)
    """

    def __init__(
        self,
        root_dir: str,
        static_subdir: str = "static",
        escape: bool = True,
        whitelist: bool = False,
    ):
        self.root = os.path.realpath(root_dir)
        self.static_root = os.path.normpath(os.path.join(self.root, static_subdir))
        self.escape = escape
        self.whitelist = whitelist

        self._templates: Dict[str, CompiledTemplate] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def resolve_path(self, relative_path: str, static: bool = False) -> str:
        """
        Map a request-relative path to an absolute path below the root.

        Purely lexical: the filesystem is not consulted.

        Raises:
            TemplateNotFound: The path escapes the selected root.
        """
        root = self.static_root if static else self.root

        if "\x00" in relative_path:
            raise TemplateNotFound(relative_path, "has an invalid name")

        candidate = os.path.normpath(os.path.join(root, relative_path.lstrip("/")))
        if not candidate.startswith(root + os.sep):
            logger.warning(f"Blocked path outside content root: {relative_path!r}")
            raise TemplateNotFound(relative_path, "is outside the content root")

        return candidate

    def resolve(self, relative_path: str, static: bool = False) -> CompiledTemplate:
        """
        Return the compiled template for ``relative_path``.

        Raises:
            TemplateNotFound: Outside the root, not whitelisted, missing,
                unreadable or malformed.
        """
        path = self.resolve_path(relative_path, static)

        template = self._templates.get(path)
        if template is not None:
            return template

        if self.whitelist:
            raise TemplateNotFound(relative_path, "is not whitelisted")

        root = self.static_root if static else self.root
        try:
            template = self._compile_file(path, root)
        except (OSError, TemplateSyntaxError) as e:
            logger.debug(f"Cannot compile {path}: {e}")
            raise TemplateNotFound(relative_path) from e

        with self._lock:
            self._templates[path] = template
        return template

    # =========================================================================
    # RENDERING
    # =========================================================================

    def render(
        self,
        relative_path: str,
        data: Optional[Mapping[str, Any]] = None,
        static: bool = False,
        no_escape: bool = False,
    ) -> bytes:
        """
        Render a file with ``data`` substituted into its placeholders.

        String values are HTML-escaped when escaping is enabled, unless
        ``no_escape`` is set or the data carries ``noEscape`` set to the
        boolean True. Any ``noEscape`` key is removed before substitution,
        so a form field of that name never switches escaping off.

        Raises:
            TemplateNotFound: See resolve().
            TemplateRenderError: A placeholder has no value in ``data``.
        """
        template = self.resolve(relative_path, static)

        values: Dict[str, Any] = dict(data or {})
        if values.pop("noEscape", None) is True:
            no_escape = True
        if self.escape and not no_escape:
            values = escape_data(values)

        try:
            return template.render(values)
        except TemplateRenderError as e:
            e.path = relative_path
            raise

    # =========================================================================
    # COMPILATION
    # =========================================================================

    def _compile_file(self, path: str, root: str) -> CompiledTemplate:
        real = os.path.realpath(path)
        if not _is_within(real, root):
            raise TemplateNotFound(path, "links outside the content root")

        with open(path, "rb") as fh:
            content = fh.read()

        if is_known_type(path):
            is_text = is_text_type(get_mime_type(path))
        else:
            is_text = looks_like_text(content)

        if not is_text:
            return compile_binary(content, path)
        return compile_text(content.decode("utf-8", errors="replace"), path)

    def preload(self) -> int:
        """
        Compile every file below the root.

        Files that fail to compile are logged and skipped; in whitelist
        mode they will answer as not found.

        Returns:
            Number of files now cached.
        """
        if not os.path.isdir(self.root):
            logger.warning(f"Content root {self.root} does not exist, nothing to preload")
            return 0

        compiled: Dict[str, CompiledTemplate] = {}
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            for name in sorted(filenames):
                path = os.path.join(dirpath, name)
                try:
                    compiled[path] = self._compile_file(path, self.root)
                except (OSError, TemplateError) as e:
                    logger.warning(f"Skipping {path}: {e}")

        with self._lock:
            self._templates.update(compiled)

        logger.info(f"Preloaded {len(compiled)} templates from {self.root}")
        return len(compiled)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def cached_paths(self) -> List[str]:
        """Absolute paths of every cached template, sorted."""
        with self._lock:
            return sorted(self._templates)

    def __contains__(self, path: str) -> bool:
        return os.path.normpath(path) in self._templates

    def __len__(self) -> int:
        return len(self._templates)
