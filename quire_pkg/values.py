"""
Structured values shared by every metadata dialect.

A ``StructuredValue`` is one of seven variants: ``Null``, ``String``,
``Number``, ``Boolean``, ``Array``, ``Object`` and ``Tagged``. The dialect
adapters in this module convert YAML, TOML and JSON text into that model
and back again.

Dialects that have no native representation for a variant degrade it:

* TOML and JSON have no tags, so ``Tagged(name, value)`` is written as an
  object under the reserved ``__tagged__`` key and restored on parse.
* TOML has no null, so ``Null`` object members are omitted on write and an
  absent member reads back as absent.
"""

import json
import math
import tomllib
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

import tomli_w
import yaml

from .errors import ConversionError, ParseError, SerializeError

TAGGED_KEY = '__tagged__'

# Largest magnitude at which every integer is exactly representable as a float.
MAX_EXACT_INT = 2 ** 53


class Dialect(Enum):
    YAML = 'yaml'
    TOML = 'toml'
    JSON = 'json'


class StructuredValue:
    """Base class for the seven value variants."""

    __slots__ = ()


@dataclass(frozen=True)
class Null(StructuredValue):
    pass


@dataclass(frozen=True)
class String(StructuredValue):
    value: str


@dataclass(frozen=True)
class Number(StructuredValue):
    value: float

    def __post_init__(self):
        object.__setattr__(self, 'value', float(self.value))


@dataclass(frozen=True)
class Boolean(StructuredValue):
    value: bool


@dataclass(frozen=True)
class Array(StructuredValue):
    items: Tuple[StructuredValue, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'items', tuple(self.items))


@dataclass(frozen=True)
class Object(StructuredValue):
    members: Dict[str, StructuredValue] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'members', dict(self.members))

    def get(self, key, default=None):
        return self.members.get(key, default)


@dataclass(frozen=True)
class Tagged(StructuredValue):
    tag: str
    value: StructuredValue


class _YamlTagged:
    """Carrier for a locally tagged YAML node while it passes through PyYAML."""

    def __init__(self, tag, value):
        self.tag = tag
        self.value = value


# YAML adapter

class _TaggedLoader(yaml.SafeLoader):
    pass


class _TaggedDumper(yaml.SafeDumper):
    pass


def _construct_tagged(loader, tag_suffix, node):
    if isinstance(node, yaml.ScalarNode):
        plain = node.style is None
        resolved = loader.resolve(yaml.ScalarNode, node.value, (plain, not plain))
        inner = yaml.ScalarNode(resolved, node.value, node.start_mark, node.end_mark, node.style)
        value = loader.construct_object(inner)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)
    return _YamlTagged(tag_suffix, value)


def _represent_tagged(dumper, data):
    tag = '!' + data.tag
    if isinstance(data.value, _YamlTagged):
        # A YAML node carries one tag, so a nested tag keeps its wrapper object.
        inner = data.value
        return dumper.represent_mapping(tag, {TAGGED_KEY: {'tag': inner.tag, 'value': inner.value}})
    if isinstance(data.value, dict):
        return dumper.represent_mapping(tag, data.value)
    if isinstance(data.value, list):
        return dumper.represent_sequence(tag, data.value)
    node = dumper.represent_data(data.value)
    style = node.style
    if isinstance(data.value, str):
        # A plain scalar that resolves to another type must be quoted to stay a string.
        if dumper.resolve(yaml.ScalarNode, node.value, (True, False)) != 'tag:yaml.org,2002:str':
            style = "'"
    return yaml.ScalarNode(tag, node.value, style=style)


_TaggedLoader.add_multi_constructor('!', _construct_tagged)
_TaggedDumper.add_representer(_YamlTagged, _represent_tagged)


# Conversion between the value model and plain Python objects

def from_python(obj: Any, restore_tagged: bool = False) -> StructuredValue:
    """
    Convert a decoded Python object into a ``StructuredValue``.

    Args:
        obj: Object produced by one of the dialect decoders
        restore_tagged: Rebuild ``Tagged`` values from their ``__tagged__`` wrapper

    Returns:
        The equivalent structured value
    """
    if obj is None:
        return Null()
    if isinstance(obj, StructuredValue):
        return obj
    if isinstance(obj, bool):
        return Boolean(obj)
    if isinstance(obj, (int, float)):
        return Number(float(obj))
    if isinstance(obj, str):
        return String(obj)
    if isinstance(obj, (datetime, date, time)):
        return String(obj.isoformat())
    if isinstance(obj, _YamlTagged):
        return Tagged(obj.tag, from_python(obj.value, restore_tagged))
    if isinstance(obj, (list, tuple)):
        return Array(tuple(from_python(item, restore_tagged) for item in obj))
    if isinstance(obj, (set, frozenset)):
        return Array(tuple(from_python(item, restore_tagged) for item in sorted(obj, key=str)))
    if isinstance(obj, dict):
        if restore_tagged:
            tagged = _unwrap_tagged(obj)
            if tagged is not None:
                tag, inner = tagged
                return Tagged(tag, from_python(inner, restore_tagged))
        return Object({str(key): from_python(value, restore_tagged) for key, value in obj.items()})
    raise ValueError(f"Unsupported value type: {type(obj).__name__}")


def _unwrap_tagged(obj: dict) -> Optional[Tuple[str, Any]]:
    if set(obj) != {TAGGED_KEY}:
        return None
    wrapper = obj[TAGGED_KEY]
    if not isinstance(wrapper, dict) or not isinstance(wrapper.get('tag'), str):
        return None
    if not set(wrapper) <= {'tag', 'value'}:
        return None
    return wrapper['tag'], wrapper.get('value')


def _number_to_python(number: float) -> Union[int, float]:
    if math.isfinite(number) and number.is_integer() and abs(number) <= MAX_EXACT_INT:
        return int(number)
    return number


def to_python(value: StructuredValue, degrade_tagged: bool = False, omit_null: bool = False) -> Any:
    """
    Convert a ``StructuredValue`` into plain Python objects for an encoder.

    Args:
        value: Value to convert
        degrade_tagged: Wrap ``Tagged`` values in a ``__tagged__`` object
        omit_null: Drop ``Null`` object members; a ``Null`` anywhere else is an error

    Returns:
        Plain Python representation
    """
    if isinstance(value, Null):
        if omit_null:
            raise SerializeError("Null values cannot be represented outside an object member")
        return None
    if isinstance(value, String):
        return value.value
    if isinstance(value, Boolean):
        return value.value
    if isinstance(value, Number):
        return _number_to_python(value.value)
    if isinstance(value, Array):
        return [to_python(item, degrade_tagged, omit_null) for item in value.items]
    if isinstance(value, Object):
        result = {}
        for key, member in value.members.items():
            if omit_null and isinstance(member, Null):
                continue
            result[key] = to_python(member, degrade_tagged, omit_null)
        return result
    if isinstance(value, Tagged):
        if not degrade_tagged:
            return _YamlTagged(value.tag, to_python(value.value, degrade_tagged, omit_null))
        wrapper = {'tag': value.tag}
        if not (omit_null and isinstance(value.value, Null)):
            wrapper['value'] = to_python(value.value, degrade_tagged, omit_null)
        return {TAGGED_KEY: wrapper}
    raise SerializeError(f"Not a structured value: {value!r}")


def scalar_text(value: StructuredValue) -> Optional[str]:
    """
    Render a scalar leaf as plain text.

    Returns None for ``Null``, ``Array``, ``Object`` and ``Tagged`` values.
    """
    if isinstance(value, String):
        return value.value
    if isinstance(value, Boolean):
        return 'true' if value.value else 'false'
    if isinstance(value, Number):
        number = _number_to_python(value.value)
        return str(number) if isinstance(number, int) else repr(number)
    return None


# Public API

def coerce_dialect(dialect: Union[Dialect, str]) -> Dialect:
    """Return the ``Dialect`` named by ``dialect`` or raise ConversionError."""
    if isinstance(dialect, Dialect):
        return dialect
    if isinstance(dialect, str):
        try:
            return Dialect(dialect.lower())
        except ValueError:
            pass
    raise ConversionError(dialect)


def parse(raw: str, dialect: Union[Dialect, str]) -> StructuredValue:
    """
    Parse ``raw`` text written in ``dialect`` into a structured value.

    Raises:
        ConversionError: The dialect is not supported
        ParseError: The text is not valid for the dialect
    """
    dialect = coerce_dialect(dialect)
    try:
        if dialect is Dialect.YAML:
            return from_python(yaml.load(raw, Loader=_TaggedLoader), restore_tagged=True)
        if dialect is Dialect.TOML:
            return from_python(tomllib.loads(raw), restore_tagged=True)
        return from_python(json.loads(raw), restore_tagged=True)
    except yaml.YAMLError as e:
        raise ParseError(dialect.value, str(e)) from e
    except tomllib.TOMLDecodeError as e:
        raise ParseError(dialect.value, str(e)) from e
    except json.JSONDecodeError as e:
        raise ParseError(dialect.value, str(e)) from e
    except (ValueError, OverflowError, RecursionError) as e:
        raise ParseError(dialect.value, str(e)) from e


def serialize(value: StructuredValue, dialect: Union[Dialect, str]) -> str:
    """
    Serialize a structured value as ``dialect`` text.

    Raises:
        ConversionError: The dialect is not supported
        SerializeError: The value cannot be represented in the dialect
    """
    dialect = coerce_dialect(dialect)
    if dialect is Dialect.YAML:
        return yaml.dump(to_python(value), Dumper=_TaggedDumper, sort_keys=False,
                         allow_unicode=True, default_flow_style=False)
    if dialect is Dialect.TOML:
        if not isinstance(value, Object):
            raise SerializeError("TOML documents must be an object at the top level")
        try:
            return tomli_w.dumps(to_python(value, degrade_tagged=True, omit_null=True))
        except (TypeError, ValueError) as e:
            raise SerializeError(f"Cannot write TOML: {e}") from e
    try:
        return json.dumps(to_python(value, degrade_tagged=True), indent=2,
                          ensure_ascii=False, allow_nan=False)
    except ValueError as e:
        raise SerializeError(f"Cannot write JSON: {e}") from e
