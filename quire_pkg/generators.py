"""
Pure artifact generators.

Each function turns document metadata (or a list of paths) into the text of
one published file. None of them touch the filesystem or share state, so
they can be called in any order.
"""

import json
import re
from datetime import datetime, timezone
from email.utils import formatdate, parsedate_to_datetime
from enum import Enum
from typing import Dict, Iterable
from urllib.parse import quote
from xml.sax.saxutils import escape, quoteattr

SITEMAP_NAMESPACE = 'http://www.sitemaps.org/schemas/sitemap/0.9'
ATOM_NAMESPACE = 'http://www.w3.org/2005/Atom'
NEWS_NAMESPACE = 'http://www.google.com/schemas/sitemap-news/0.9'
IMAGE_NAMESPACE = 'http://www.google.com/schemas/sitemap-image/1.1'

MANIFEST_NAME_LIMIT = 45
MANIFEST_SHORT_NAME_LIMIT = 12
MANIFEST_DESCRIPTION_LIMIT = 120
DEFAULT_COLOR = '#ffffff'

SECURITY_CONTACT_SCHEMES = ('https://', 'http://', 'mailto:', 'tel:')

CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
HEX_COLOR = re.compile(r'^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')
RGB_TRIPLE = re.compile(r'^(?:rgb\()?\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)?$')
DOMAIN_LABEL = re.compile(r'^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$')
ISO_DAY = re.compile(r'^\d{4}-\d{2}-\d{2}$')

# (RSS element, metadata field) in channel order.
CHANNEL_ELEMENTS = (
    ('title', 'title'),
    ('link', 'link'),
    ('description', 'description'),
    ('language', 'language'),
    ('copyright', 'copyright'),
    ('managingEditor', 'managing_editor'),
    ('webMaster', 'webmaster'),
    ('pubDate', 'pub_date'),
    ('lastBuildDate', 'last_build_date'),
    ('category', 'category'),
    ('generator', 'generator'),
    ('docs', 'docs'),
    ('ttl', 'ttl'),
)


class DisplayMode(Enum):
    FULLSCREEN = 'fullscreen'
    STANDALONE = 'standalone'
    MINIMAL_UI = 'minimal-ui'
    BROWSER = 'browser'

    @classmethod
    def parse(cls, value):
        try:
            return cls((value or '').strip().lower())
        except ValueError:
            return cls.STANDALONE


def strip_control_chars(text: str) -> str:
    return CONTROL_CHARS.sub('', text or '')


def _element(name, value):
    return f"<{name}>{escape(strip_control_chars(value))}</{name}>"


def page_url(base_url: str, slug: str = '') -> str:
    """Absolute URL of a page directory under ``base_url``."""
    base = (base_url or '').rstrip('/')
    slug = quote((slug or '').strip('/'), safe='/')
    return f"{base}/{slug}/" if slug else f"{base}/"


def rfc822_date(value: str) -> str:
    """Format a ``YYYY-MM-DD`` date for RSS; other values pass through unchanged."""
    if value and ISO_DAY.match(value):
        try:
            day = datetime.strptime(value, '%Y-%m-%d').replace(tzinfo=timezone.utc)
        except ValueError:
            return value
        return formatdate(day.timestamp(), usegmt=True)
    return value


# RSS

def rss_item(metadata: Dict[str, str], base_url: str = '') -> str:
    """
    Build one RSS ``<item>`` for a document.

    ``item_*`` fields override the document's own title, link, description
    and date. Empty fields are left out entirely.
    """
    link = (metadata.get('item_link') or metadata.get('permalink')
            or (page_url(base_url, metadata.get('slug', '')) if base_url else ''))
    fields = (
        ('title', metadata.get('item_title') or metadata.get('title', '')),
        ('link', link),
        ('description', metadata.get('item_description') or metadata.get('description', '')),
        ('author', metadata.get('author', '')),
        ('category', metadata.get('category', '')),
        ('pubDate', rfc822_date(metadata.get('item_pub_date') or metadata.get('date', ''))),
        ('guid', metadata.get('item_guid') or link),
    )
    elements = ''.join(_element(name, value) for name, value in fields if value)
    return f'<item>{elements}</item>'


def channel_from_metadata(metadata: Dict[str, str], base_url: str = '', site_name: str = '') -> Dict[str, str]:
    """Collect the RSS channel fields of a document's feed."""
    channel = {field: metadata.get(field, '') for _, field in CHANNEL_ELEMENTS}
    channel['title'] = metadata.get('title') or site_name
    channel['link'] = (metadata.get('permalink')
                       or (page_url(base_url, metadata.get('slug', '')) if base_url else ''))
    channel['pub_date'] = rfc822_date(metadata.get('pub_date') or metadata.get('date', ''))
    channel['last_build_date'] = rfc822_date(metadata.get('last_build_date', ''))
    channel['atom_link'] = metadata.get('atom_link', '')
    channel['image'] = metadata.get('image', '')
    return channel


def rss_channel(channel: Dict[str, str], items: Iterable[str]) -> str:
    """Wrap channel fields and pre-rendered items in an RSS 2.0 document."""
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<rss version="2.0" xmlns:atom="{ATOM_NAMESPACE}">',
        '<channel>',
    ]
    for element, field in CHANNEL_ELEMENTS:
        value = channel.get(field, '')
        if value:
            lines.append(_element(element, value))
    if channel.get('image'):
        lines.append('<image>')
        lines.append(_element('url', channel['image']))
        if channel.get('title'):
            lines.append(_element('title', channel['title']))
        if channel.get('link'):
            lines.append(_element('link', channel['link']))
        lines.append('</image>')
    if channel.get('atom_link'):
        lines.append(f'<atom:link href={quoteattr(channel["atom_link"])} rel="self" type="application/rss+xml"/>')
    lines.extend(items)
    lines.append('</channel>')
    lines.append('</rss>')
    return '\n'.join(lines) + '\n'


# Sitemap

def sitemap_entry(url: str, lastmod: str, changefreq: str = '') -> str:
    lines = ['<url>', _element('loc', url)]
    if lastmod:
        lines.append(_element('lastmod', lastmod))
    if changefreq:
        lines.append(_element('changefreq', changefreq))
    lines.append('</url>')
    return '\n'.join(lines)


def sitemap(base_url: str, paths: Iterable[str], lastmod: str = '', changefreq: str = 'weekly') -> str:
    """
    Build a sitemap URL set from relative ``index.html`` paths.

    Args:
        base_url: Site base URL
        paths: POSIX paths of ``index.html`` files relative to the site root
        lastmod: ``YYYY-MM-DD`` date applied to every entry
        changefreq: Change frequency applied to every entry

    Returns:
        Sitemap XML text
    """
    entries = []
    for path in sorted(paths):
        directory = path.rsplit('/', 1)[0] if '/' in path else ''
        entries.append(sitemap_entry(page_url(base_url, directory), lastmod, changefreq))
    body = '\n'.join(entries)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<urlset xmlns="{SITEMAP_NAMESPACE}">\n'
        + (body + '\n' if body else '')
        + '</urlset>\n'
    )


def news_sitemap(metadata: Dict[str, str], base_url: str = '', site_name: str = '', language: str = '') -> str:
    """
    Build a one-entry news sitemap for a document.

    Only documents that set at least one ``news_*`` field get one. Missing
    news fields fall back to the document's permalink, title and date and
    to the site name and language.
    """
    if not any(key.startswith('news_') and (value or '').strip() for key, value in metadata.items()):
        return ''
    loc = metadata.get('news_loc') or metadata.get('permalink') or page_url(base_url, metadata.get('slug', ''))
    lines = [
        '<url>',
        _element('loc', loc),
        '<news:news>',
        '<news:publication>',
        _element('news:name', metadata.get('news_publication_name') or site_name),
        _element('news:language', metadata.get('news_language') or language.split('-')[0]),
        '</news:publication>',
    ]
    for name, value in (
        ('news:genres', metadata.get('news_genres', '')),
        ('news:publication_date', metadata.get('news_publication_date') or metadata.get('date', '')),
        ('news:title', metadata.get('news_title') or metadata.get('title', '')),
        ('news:keywords', metadata.get('news_keywords', '')),
    ):
        if value:
            lines.append(_element(name, value))
    lines.append('</news:news>')
    image = metadata.get('news_image_loc', '')
    if image:
        lines.extend(['<image:image>', _element('image:loc', image), '</image:image>'])
    lines.append('</url>')
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<urlset xmlns="{SITEMAP_NAMESPACE}" xmlns:news="{NEWS_NAMESPACE}" xmlns:image="{IMAGE_NAMESPACE}">\n'
        + '\n'.join(lines)
        + '\n</urlset>\n'
    )


# Web app manifest

def truncate(text: str, limit: int) -> str:
    return strip_control_chars(text).strip()[:limit].rstrip()


def sanitize_color(value: str, default: str = DEFAULT_COLOR) -> str:
    """Return a ``#rgb``/``#rrggbb`` or ``rgb(r, g, b)`` colour, else ``default``."""
    value = (value or '').strip()
    if HEX_COLOR.match(value):
        return value
    match = RGB_TRIPLE.match(value)
    if match and all(int(part) <= 255 for part in match.groups()):
        return 'rgb({}, {}, {})'.format(*match.groups())
    return default


def manifest(metadata: Dict[str, str], site_name: str = '') -> str:
    """Build ``manifest.json`` for a web app."""
    name = truncate(metadata.get('name') or site_name or metadata.get('title', ''), MANIFEST_NAME_LIMIT)
    short_name = truncate(metadata.get('short_name') or name, MANIFEST_SHORT_NAME_LIMIT)
    data = {
        'name': name,
        'short_name': short_name,
        'description': truncate(metadata.get('description', ''), MANIFEST_DESCRIPTION_LIMIT),
        'start_url': metadata.get('start_url') or '.',
        'display': DisplayMode.parse(metadata.get('display')).value,
        'background_color': sanitize_color(metadata.get('background_color')),
        'theme_color': sanitize_color(metadata.get('theme-color') or metadata.get('theme_color')),
        'orientation': metadata.get('orientation') or 'portrait-primary',
        'scope': metadata.get('scope') or '/',
        'icons': [],
    }
    icon = metadata.get('icon', '').strip()
    if icon:
        data['icons'].append({
            'src': icon,
            'sizes': '512x512',
            'type': 'image/svg+xml',
            'purpose': 'any maskable',
        })
    return json.dumps(data, indent=2, ensure_ascii=False)


# Plain text files

def robots(base_url: str, mode: str = 'public') -> str:
    """Build ``robots.txt``; ``private`` disallows every crawler."""
    if mode == 'public':
        return "User-agent: *\nAllow: /\n\nSitemap: {}/sitemap.xml\n".format((base_url or '').rstrip('/'))
    return "User-agent: *\nDisallow: /\n"


def sanitize_security_contact(contact: str) -> str:
    contact = contact.strip()
    if not contact or any(c in contact for c in '<>"\' \t'):
        return ''
    if contact.startswith(SECURITY_CONTACT_SCHEMES):
        return contact
    if '@' in contact and ':' not in contact:
        return f"mailto:{contact}"
    return ''


def normalize_expiry(value: str) -> str:
    """
    Normalize an RFC 3339 or RFC 2822 timestamp to RFC 3339 UTC.

    Returns an empty string when the value is in neither format.
    """
    value = (value or '').strip()
    if not value:
        return ''
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        try:
            moment = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            return ''
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def security(metadata: Dict[str, str]) -> str:
    """
    Build ``security.txt`` (RFC 9116).

    Needs at least one valid ``security_contact`` and a ``security_expires``
    timestamp; without both the result is empty.
    """
    contacts = [sanitize_security_contact(c) for c in metadata.get('security_contact', '').split(',')]
    contacts = [c for c in contacts if c]
    expires = normalize_expiry(metadata.get('security_expires', ''))
    if not contacts or not expires:
        return ''

    lines = [f"Contact: {contact}" for contact in contacts]
    lines.append(f"Expires: {expires}")
    optional = (
        ('Encryption', 'security_encryption'),
        ('Acknowledgments', 'security_acknowledgments'),
        ('Preferred-Languages', 'security_languages'),
        ('Canonical', 'security_canonical'),
        ('Policy', 'security_policy'),
        ('Hiring', 'security_hiring'),
    )
    for label, field in optional:
        value = strip_control_chars(metadata.get(field, '')).strip()
        if value:
            lines.append(f"{label}: {value}")
    return '\n'.join(lines) + '\n'


def humans(metadata: Dict[str, str]) -> str:
    """Build ``humans.txt``; sections with no values are omitted."""
    sections = (
        ('TEAM', (
            ('Name', 'author'),
            ('Website', 'author_website'),
            ('Twitter', 'author_twitter'),
            ('Location', 'author_location'),
        )),
        ('THANKS', (
            ('Thanks', 'thanks'),
        )),
        ('SITE', (
            ('Last update', 'site_last_updated'),
            ('Standards', 'site_standards'),
            ('Components', 'site_components'),
            ('Software', 'site_software'),
        )),
    )
    blocks = []
    for heading, fields in sections:
        lines = []
        for label, field in fields:
            value = strip_control_chars(metadata.get(field, '')).strip()
            if value:
                lines.append(f"    {label}: {value}")
        if lines:
            blocks.append(f"/* {heading} */\n" + '\n'.join(lines))
    return '\n\n'.join(blocks) + '\n' if blocks else ''


def sanitize_domain(value: str) -> str:
    """Return a lowercase host name, or an empty string when it is not valid."""
    domain = ''.join(c for c in (value or '').strip().lower() if c.isascii() and (c.isalnum() or c in '-.'))
    domain = domain.rstrip('.')
    if domain.startswith('www.'):
        domain = domain[4:]
    if '.' not in domain or '..' in domain or len(domain) > 253:
        return ''
    if not all(DOMAIN_LABEL.match(label) for label in domain.split('.')):
        return ''
    return domain


def cname(metadata: Dict[str, str]) -> str:
    """Build a ``CNAME`` file listing the apex and ``www`` host of ``cname``."""
    domain = sanitize_domain(metadata.get('cname', ''))
    if not domain:
        return ''
    return f"{domain}\nwww.{domain}\n"


# Plain text

# (label, metadata field) for the header of the plain-text rendition.
PLAIN_TEXT_FIELDS = (
    ('Title', 'title'),
    ('Description', 'description'),
    ('Author', 'author'),
    ('Creator', 'creator'),
    ('Keywords', 'keywords'),
)

# Block-level Markdown tokens; their text is separated from what follows.
BLOCK_TOKENS = {
    'paragraph', 'heading', 'block_text', 'block_code', 'block_quote', 'list', 'list_item',
    'task_list_item', 'table', 'table_head', 'table_body', 'table_row', 'table_cell',
}
SKIPPED_TOKENS = {'block_html', 'inline_html', 'blank_line', 'thematic_break'}
LINK_REFERENCE = re.compile(r'\[[^\]]*\]\[\d+\]')


def tokens_to_text(tokens) -> str:
    """Flatten a Markdown token tree into single-spaced text."""
    parts = []

    def walk(nodes):
        for token in nodes:
            kind = token.get('type')
            if kind in SKIPPED_TOKENS:
                continue
            if kind in ('softbreak', 'linebreak'):
                parts.append(' ')
            elif 'children' in token:
                walk(token['children'])
            else:
                parts.append(token.get('raw', ''))
            if kind in BLOCK_TOKENS:
                parts.append(' ')

    walk(tokens)
    text = LINK_REFERENCE.sub('', ''.join(parts))
    return ' '.join(text.split())


def plain_text(metadata: Dict[str, str], text: str) -> str:
    """Build the plain-text rendition of a document: header lines, a blank line, then the text."""
    lines = []
    for label, field in PLAIN_TEXT_FIELDS:
        value = strip_control_chars(metadata.get(field, '')).strip()
        if value:
            lines.append(f"{label}: {value}")
    body = text.strip()
    if body:
        if lines:
            lines.append('')
        lines.append(body)
    return '\n'.join(lines) + '\n' if lines else ''
