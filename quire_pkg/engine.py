"""
Layout resolution and strict ``{{token}}`` substitution.

Page layouts are plain HTML files with ``{{key}}`` placeholders. Every
placeholder must be present in the render context; a missing key is an
error rather than an empty string. Dotted keys such as ``{{user.name}}``
are looked up as a single flattened key.
"""

import logging
import re
import time
from typing import Callable, Dict, Mapping, NamedTuple, Optional

from jinja2 import FileSystemLoader, TemplateNotFound

from .errors import RenderError, ValidationError

DEFAULT_LAYOUT = 'index.html'

LAYOUT_FALLBACKS = {
    'contact': 'contact.html',
    'index': 'index.html',
    'page': 'page.html',
    'post': 'post.html',
}

DEFAULT_CACHE_TTL = 60.0

TOKEN = re.compile(r'\{\{\s*([^{}\s]+)\s*\}\}')


class CachedTemplate(NamedTuple):
    source: str
    filename: str
    uptodate: Optional[Callable[[], bool]]
    loaded_at: float


def render_string(template: str, context: Mapping[str, str]) -> str:
    """
    Substitute every ``{{key}}`` in ``template`` from ``context``.

    Substituted values are inserted verbatim and never scanned for tokens.

    Raises:
        RenderError: The template is empty or references a key missing from the context
    """
    if not template.strip():
        raise RenderError("template is empty")
    missing = sorted({key for key in TOKEN.findall(template) if key not in context})
    if missing:
        raise RenderError(f"Missing template variable(s): {', '.join(missing)}")
    return TOKEN.sub(lambda match: str(context[match.group(1)]), template)


class TemplateEngine:
    """Resolve layouts under a template directory and render them with a context."""

    def __init__(self, template_dir, cache_ttl=DEFAULT_CACHE_TTL, clock=time.monotonic):
        self.template_dir = template_dir
        self.cache_ttl = cache_ttl
        self.clock = clock
        self.loader = FileSystemLoader(template_dir)
        self.logger = logging.getLogger('TemplateEngine')
        self._cache: Dict[str, CachedTemplate] = {}

    def _exists(self, name):
        try:
            self.loader.get_source(None, name)
        except TemplateNotFound:
            return False
        return True

    def _is_fresh(self, name):
        entry = self._cache.get(name)
        return entry is not None and self.clock() - entry.loaded_at < self.cache_ttl

    def resolve_layout(self, layout_name) -> str:
        """
        Return the template file name used for ``layout_name``.

        Tries ``{layout_name}.html``, then the fixed fallback table, then ``index.html``.
        """
        layout_name = (layout_name or '').strip()
        if any(part in layout_name for part in ('/', '\\', '\0')) or '..' in layout_name:
            raise ValidationError(f"Invalid layout name: {layout_name!r}")

        candidates = []
        if layout_name:
            candidates.append(f"{layout_name}.html")
        if layout_name in LAYOUT_FALLBACKS:
            candidates.append(LAYOUT_FALLBACKS[layout_name])
        candidates.append(DEFAULT_LAYOUT)

        for candidate in candidates:
            if self._is_fresh(candidate):
                return candidate
            if self._exists(candidate):
                return candidate
            self._cache.pop(candidate, None)
        raise RenderError(f"No template found for layout {layout_name!r} in {self.template_dir}")

    def get_source(self, name) -> str:
        """Return a template body, re-checking the file once the cached copy expires."""
        now = self.clock()
        entry = self._cache.get(name)
        if entry is not None:
            if now - entry.loaded_at < self.cache_ttl:
                return entry.source
            if entry.uptodate is not None and entry.uptodate():
                self._cache[name] = entry._replace(loaded_at=now)
                return entry.source
            self.logger.debug(f"Template changed on disk: {entry.filename}")

        try:
            source, filename, uptodate = self.loader.get_source(None, name)
        except TemplateNotFound as e:
            self._cache.pop(name, None)
            raise RenderError(f"Template not found: {name}") from e
        self._cache[name] = CachedTemplate(source, filename, uptodate, now)
        return source

    def render(self, context: Mapping[str, str], layout_name) -> str:
        """
        Render the layout selected by ``layout_name`` with ``context``.

        Raises:
            RenderError: Missing template, empty template, or missing context key
            ValidationError: The layout name would escape the template directory
        """
        name = self.resolve_layout(layout_name)
        source = self.get_source(name)
        try:
            return render_string(source, context)
        except RenderError as e:
            raise RenderError(f"{name}: {e}") from e

    def clear_cache(self):
        self._cache.clear()
