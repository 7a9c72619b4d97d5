"""
Metadata block detection and extraction.

A document starts (after optional whitespace) with a metadata block in one
of three dialects, tried in this order:

* YAML between two ``---`` lines
* TOML between two ``+++`` lines
* JSON starting with ``{`` and ending at the matching top-level ``}``

The first dialect whose delimiters match and whose body parses into an
object wins. Everything after the block is the document body.
"""

import logging
import re
from typing import Dict, NamedTuple, Optional, Tuple

from .errors import ExtractionError, ParseError
from .values import Dialect, Object, StructuredValue, parse, scalar_text

logger = logging.getLogger('Frontmatter')

YAML_BLOCK = re.compile(r'\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)', re.S | re.M)
TOML_BLOCK = re.compile(r'\A\+\+\+[ \t]*\r?\n(.*?)^\+\+\+[ \t]*(?:\r?\n|\Z)', re.S | re.M)


class FrontMatter(NamedTuple):
    dialect: Dialect
    raw: str
    value: Object
    body: str


def _match_delimited(pattern, text) -> Optional[Tuple[str, str]]:
    match = pattern.match(text)
    if not match:
        return None
    return match.group(1), text[match.end():]


def find_json_block(text: str) -> Optional[int]:
    """
    Return the index one past the ``}`` closing the leading JSON object.

    Braces inside string literals are ignored. Returns None when ``text``
    does not start with ``{`` or the object is never closed.
    """
    if not text.startswith('{'):
        return None
    depth = 0
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def _match_json(text) -> Optional[Tuple[str, str]]:
    end = find_json_block(text)
    if end is None:
        return None
    return text[:end], text[end:].lstrip('\r\n')


def _candidates(text):
    yield Dialect.YAML, _match_delimited(YAML_BLOCK, text)
    yield Dialect.TOML, _match_delimited(TOML_BLOCK, text)
    yield Dialect.JSON, _match_json(text)


def split(text: str) -> FrontMatter:
    """
    Locate and parse the metadata block at the start of ``text``.

    Raises:
        ExtractionError: No block was found, or no matching block parsed into an object
    """
    stripped = text.lstrip()
    failures = []
    for dialect, found in _candidates(stripped):
        if found is None:
            continue
        raw, body = found
        try:
            value = parse(raw, dialect)
        except ParseError as e:
            logger.debug(f"Skipping {dialect.value} metadata candidate: {e}")
            failures.append(str(e))
            continue
        if not isinstance(value, Object):
            failures.append(f"{dialect.value} metadata block is not a mapping")
            continue
        logger.debug(f"Found {dialect.value} metadata block")
        return FrontMatter(dialect, raw, value, body)

    if failures:
        raise ExtractionError("Unreadable metadata block: " + "; ".join(failures))
    if stripped.startswith('{'):
        raise ExtractionError("Unterminated JSON metadata block")
    raise ExtractionError("No metadata block found at the start of the document")


def flatten(value: StructuredValue) -> Dict[str, str]:
    """Keep the scalar members of a top-level object as strings."""
    if not isinstance(value, Object):
        return {}
    flat = {}
    for key, member in value.members.items():
        text = scalar_text(member)
        if text is not None:
            flat[key] = text
    return flat


def extract(text: str) -> Dict[str, str]:
    """Return the flattened metadata of a document."""
    return flatten(split(text).value)


def parse_document(text: str) -> Tuple[Dict[str, str], str]:
    """Return ``(metadata, body)`` for a document."""
    front = split(text)
    return flatten(front.value), front.body
