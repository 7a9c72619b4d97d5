"""
Metadata normalization: dates, required fields, slugs, keywords and meta tags.
"""

import html
import re
from datetime import date, time
from typing import Dict, List, NamedTuple

from .errors import DateParseError, MissingFieldError

REQUIRED_FIELDS = ('title', 'date')

MIN_DATE_LENGTH = 8

ISO_DATE = re.compile(
    r'^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})'
    r'(?:[Tt ](?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:\.\d+)?'
    r'(?:[Zz]|[+-]\d{2}:\d{2})?)?$'
)

# (meta name, metadata field) per group; empty fields produce no tag.
APPLE_TAGS = (
    ('apple-mobile-web-app-capable', 'apple-mobile-web-app-capable'),
    ('apple-mobile-web-app-status-bar-inset', 'apple-mobile-web-app-status-bar-inset'),
    ('apple-mobile-web-app-status-bar-style', 'apple-mobile-web-app-status-bar-style'),
    ('apple-mobile-web-app-title', 'apple-mobile-web-app-title'),
    ('apple-touch-fullscreen', 'apple-touch-fullscreen'),
)

PRIMARY_TAGS = (
    ('author', 'author'),
    ('description', 'description'),
    ('format-detection', 'format-detection'),
    ('generator', 'generator'),
    ('keywords', 'keywords'),
    ('language', 'language'),
    ('permalink', 'permalink'),
    ('rating', 'rating'),
    ('referrer', 'referrer'),
    ('revisit-after', 'revisit-after'),
    ('robots', 'robots'),
    ('theme-color', 'theme-color'),
    ('title', 'title'),
    ('viewport', 'viewport'),
)

OPENGRAPH_TAGS = (
    ('og:description', 'description'),
    ('og:image', 'image'),
    ('og:image:alt', 'image_alt'),
    ('og:image:height', 'image_height'),
    ('og:image:width', 'image_width'),
    ('og:locale', 'locale'),
    ('og:site_name', 'site_name'),
    ('og:title', 'title'),
    ('og:type', 'type'),
    ('og:url', 'permalink'),
)

MICROSOFT_TAGS = (
    ('msapplication-navbutton-color', 'msapplication-navbutton-color'),
    ('msapplication-TileColor', 'msapplication-TileColor'),
    ('msapplication-TileImage', 'msapplication-TileImage'),
)

TWITTER_TAGS = (
    ('twitter:card', 'twitter_card'),
    ('twitter:creator', 'twitter_creator'),
    ('twitter:description', 'description'),
    ('twitter:image', 'image'),
    ('twitter:image:alt', 'image_alt'),
    ('twitter:image:height', 'image_height'),
    ('twitter:image:width', 'image_width'),
    ('twitter:site', 'url'),
    ('twitter:title', 'title'),
    ('twitter:url', 'url'),
)


class MetaTagGroups(NamedTuple):
    apple: str
    primary: str
    og: str
    ms: str
    twitter: str


def standardize_date(value: str) -> str:
    """
    Normalize a date to ``YYYY-MM-DD``.

    Accepts RFC 3339 style timestamps, bare ``YYYY-MM-DD`` dates and
    ``DD/MM/YYYY`` dates. The calendar date is validated.

    Raises:
        DateParseError: The value is empty, too short, malformed or not a real date
    """
    text = value.strip()
    if not text:
        raise DateParseError(value, "date is empty")
    if len(text) < MIN_DATE_LENGTH:
        raise DateParseError(value, "date is too short")

    if '/' in text:
        parts = text.split('/')
        if len(parts) != 3 or [len(p) for p in parts] != [2, 2, 4] or not all(p.isdigit() for p in parts):
            raise DateParseError(value, "expected DD/MM/YYYY")
        day, month, year = parts
        text = f"{year}-{month}-{day}"

    match = ISO_DATE.match(text)
    if not match:
        raise DateParseError(value)
    try:
        parsed = date(int(match['year']), int(match['month']), int(match['day']))
        if match['hour'] is not None:
            time(int(match['hour']), int(match['minute']), int(match['second']))
    except ValueError as e:
        raise DateParseError(value, str(e)) from e
    return parsed.isoformat()


def slugify(title: str) -> str:
    """Lowercase a title and replace each whitespace character with a hyphen."""
    return re.sub(r'\s', '-', title.lower())


def normalize(metadata: Dict[str, str]) -> Dict[str, str]:
    """
    Standardize the date, check required fields and derive the slug.

    The input mapping is left untouched and a new mapping is returned, so a
    failure never leaves a partially normalized result behind.

    Raises:
        DateParseError: ``date`` is present but cannot be standardized
        MissingFieldError: ``title`` or ``date`` is missing or blank
    """
    result = dict(metadata)
    if 'date' in result:
        result['date'] = standardize_date(result['date'])
    for field in REQUIRED_FIELDS:
        if not result.get(field, '').strip():
            raise MissingFieldError(field)
    if 'slug' not in result:
        result['slug'] = slugify(result['title'])
    return result


def extract_keywords(metadata: Dict[str, str]) -> List[str]:
    """Split the comma-separated ``keywords`` field."""
    raw = metadata.get('keywords', '')
    return [keyword.strip() for keyword in raw.split(',') if keyword.strip()]


def format_meta_tag(name: str, content: str) -> str:
    return f'<meta name="{html.escape(name)}" content="{html.escape(content, quote=True)}">'


def build_meta_tags(table, metadata: Dict[str, str]) -> str:
    tags = []
    for name, field in table:
        value = metadata.get(field, '')
        if value:
            tags.append(format_meta_tag(name, value))
    return '\n'.join(tags)


def generate_metatags(metadata: Dict[str, str]) -> MetaTagGroups:
    """Build every meta tag group for a document."""
    return MetaTagGroups(
        apple=build_meta_tags(APPLE_TAGS, metadata),
        primary=build_meta_tags(PRIMARY_TAGS, metadata),
        og=build_meta_tags(OPENGRAPH_TAGS, metadata),
        ms=build_meta_tags(MICROSOFT_TAGS, metadata),
        twitter=build_meta_tags(TWITTER_TAGS, metadata),
    )
