"""
Cross-document tag index.

A ``TagIndex`` belongs to a single compilation run. Documents are recorded
while it is accumulating; ``finalize`` emits the HTML fragment once and
locks the index.
"""

import html
import logging
import os
from enum import Enum
from typing import Dict, List, NamedTuple

from jinja2 import Environment, FileSystemLoader

from .errors import AggregatorStateError
from .generators import page_url

CONTENT_PLACEHOLDER = '[[content]]'

PACKAGE_TEMPLATES = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')


class PageSummary(NamedTuple):
    title: str
    description: str
    permalink: str
    date: str


class TagIndexState(Enum):
    ACCUMULATING = 'accumulating'
    FINALIZED = 'finalized'


def split_tags(value: str) -> List[str]:
    return [tag.strip() for tag in (value or '').split(',') if tag.strip()]


def title_case(text: str) -> str:
    return ' '.join(word[:1].upper() + word[1:] for word in text.split(' '))


def summary_from_metadata(metadata: Dict[str, str], base_url: str = '') -> PageSummary:
    permalink = metadata.get('permalink') or page_url(base_url, metadata.get('slug', ''))
    return PageSummary(
        title=metadata.get('title', ''),
        description=metadata.get('description', ''),
        permalink=permalink,
        date=metadata.get('date', ''),
    )


class TagIndex:
    """Tag name to page summaries, in the order documents were recorded."""

    def __init__(self):
        self.state = TagIndexState.ACCUMULATING
        self._pages: Dict[str, List[PageSummary]] = {}
        self.logger = logging.getLogger('TagIndex')

    def _check_accumulating(self, operation):
        if self.state is TagIndexState.FINALIZED:
            raise AggregatorStateError(f"Cannot {operation} a finalized tag index")

    def record(self, tag: str, summary: PageSummary):
        self._check_accumulating('record into')
        self._pages.setdefault(tag, []).append(summary)

    def record_document(self, metadata: Dict[str, str], base_url: str = '') -> List[str]:
        """Record a document under every tag in its ``tags`` field."""
        self._check_accumulating('record into')
        tags = split_tags(metadata.get('tags', ''))
        if tags:
            summary = summary_from_metadata(metadata, base_url)
            for tag in tags:
                self.record(tag, summary)
        return tags

    @property
    def tags(self) -> List[str]:
        return sorted(self._pages)

    def pages(self, tag: str) -> List[PageSummary]:
        return list(self._pages.get(tag, []))

    def __len__(self):
        return len(self._pages)

    def finalize(self) -> str:
        """
        Lock the index and return its HTML fragment.

        Tags are sorted by name; pages keep their recording order.
        """
        self._check_accumulating('finalize')
        self.state = TagIndexState.FINALIZED

        total = sum(len(pages) for pages in self._pages.values())
        parts = [f'<h2 class="featured-tags" id="h2-featured-tags" tabindex="0">Featured Tags ({total})</h2>']
        for tag in sorted(self._pages):
            pages = self._pages[tag]
            anchor = html.escape(tag.replace(' ', '-'), quote=True)
            parts.append(
                f'<h3 class="{anchor}" id="h3-{anchor}" tabindex="0">'
                f'{html.escape(title_case(tag))} ({len(pages)} Posts)</h3>\n<ul>'
            )
            for page in pages:
                parts.append(
                    f'<li>{html.escape(page.date)}: '
                    f'<a href="{html.escape(page.permalink, quote=True)}">{html.escape(page.title)}</a>'
                    f' - <strong>{html.escape(page.description)}</strong></li>\n'
                )
            parts.append('</ul>\n')
        self.logger.debug(f"Finalized tag index with {len(self._pages)} tags")
        return ''.join(parts)


def render_page(fragment: str, site_name: str = '', language: str = 'en') -> str:
    """Render the standalone tags page from the packaged template."""
    env = Environment(loader=FileSystemLoader(PACKAGE_TEMPLATES), autoescape=True)
    template = env.get_template('tags.html')
    return template.render(content=fragment, site_name=site_name, language=language)


def insert_fragment(page_html: str, fragment: str) -> str:
    """Place the fragment into an existing page at its ``[[content]]`` marker."""
    return page_html.replace(CONTENT_PLACEHOLDER, fragment)
