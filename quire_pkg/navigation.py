"""
Site navigation menu built from the list of content files.
"""

import html
import os
from typing import Iterable, NamedTuple, Optional
from urllib.parse import quote

from .tags import title_case

SUPPORTED_EXTENSIONS = {'.md'}

EXCLUDED_PAGES = {'index', '404', 'privacy', 'terms', 'offline'}


class NavigationEntry(NamedTuple):
    name: str
    url: str


def navigation_entry(filename: str, slug: Optional[str] = None) -> Optional[NavigationEntry]:
    """
    Return the menu entry for a content file, or None when it is not listed.

    Args:
        filename: Content file name or path
        slug: Output directory of the page; defaults to the file stem
    """
    stem, extension = os.path.splitext(os.path.basename(filename))
    if extension.lower() not in SUPPORTED_EXTENSIONS or stem in EXCLUDED_PAGES:
        return None
    return NavigationEntry(stem, '/' + quote((slug or stem).strip('/'), safe='/') + '/')


def display_name(name: str) -> str:
    return title_case(name.replace('-', ' '))


def generate_navigation(entries: Iterable[NavigationEntry]) -> str:
    """Render the navigation ``<ul>``; entries are sorted by name."""
    entries = sorted({entry.url: entry for entry in entries if entry is not None}.values())
    if not entries:
        return ''
    links = []
    for entry in entries:
        name = html.escape(entry.name, quote=True)
        links.append(
            f'<li class="nav-item"><a aria-label="{name}" href="{html.escape(entry.url, quote=True)}" '
            f'title="Navigation link for the {html.escape(display_name(entry.name), quote=True)} page" '
            f'class="text-uppercase p-2">{name}</a></li>'
        )
    return '<ul class="navbar-nav ms-auto mb-2 mb-lg-0">\n' + ''.join(links) + '</ul>'
