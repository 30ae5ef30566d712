"""properties.py - Decode annotation values, JSON property blocks and tags.

Values and properties follow strict JSON (``json.loads``) with two
relaxations handled elsewhere: a ``tags=[...]`` shorthand outside the braces
and trailing text after the closing brace, which the tokenizer drops.
Numbers must be finite and structures may nest at most :data:`MAX_DEPTH`
levels, so every decoded value can be written back out as JSON.

Every parser here returns ``(result, problems)``; problems are plain
messages the engine turns into diagnostics, so one bad annotation never
stops the rest of the file from being read.
"""

from __future__ import annotations

import json
import math
from typing import Any

from bangtag.model import JsonScalar, JsonValue
from bangtag.tokenizer import scan_string

TAGS_KEY = "tags"

# Deepest array/object nesting accepted in a value or property block.
MAX_DEPTH = 64

# Characters a bare (unquoted) tag token may not contain.
_BARE_TAG_FORBIDDEN = set('"[]{},') | {" ", "\t"}


class NestingError(ValueError):
    """Raised when JSON text nests arrays or objects deeper than :data:`MAX_DEPTH`."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _parse_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number {text} is out of range")
    return value


def _check_depth(raw: str) -> None:
    """Raise :class:`NestingError` if *raw* nests deeper than :data:`MAX_DEPTH`.

    Brackets inside JSON strings do not count.
    """
    depth = 0
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == '"':
            end = scan_string(raw, i)
            if end < 0:
                return
            i = end
            continue
        if ch in "[{":
            depth += 1
            if depth > MAX_DEPTH:
                raise NestingError(f"arrays and objects nest deeper than {MAX_DEPTH} levels")
        elif ch in "]}":
            depth -= 1
        i += 1


def _loads(raw: str, **kwargs: Any) -> Any:
    _check_depth(raw)
    return json.loads(
        raw,
        parse_constant=_reject_constant,
        parse_float=_parse_float,
        **kwargs,
    )


def parse_value(raw: str | None) -> tuple[JsonScalar, list[str]]:
    """Decode the value token after the key.

    Accepts a JSON string, a finite JSON number, or ``true``/``false``/``null``.
    Anything else is a problem and yields ``None``.
    """
    if raw is None:
        return None, []
    try:
        value = _loads(raw)
    except NestingError as e:
        return None, [f"Value is not a scalar: {e}"]
    except (ValueError, RecursionError):
        return None, [f"Value {raw!r} is not a quoted string, finite number, boolean or null"]
    if isinstance(value, (list, dict)):
        return None, [f"Value {raw!r} must be a scalar; use the property block for structures"]
    return value, []


def parse_properties(raw: str | None) -> tuple[dict[str, JsonValue], list[str]]:
    """Parse a ``{ ... }`` span as a strict JSON object.

    Key order is preserved.  Any failure returns an empty mapping and one
    problem describing it.
    """
    if raw is None:
        return {}, []
    try:
        parsed = _loads(raw, object_pairs_hook=dict)
    except json.JSONDecodeError as e:
        return {}, [f"Property block is not valid JSON: {e.msg} (column {e.colno})"]
    except ValueError as e:
        return {}, [f"Property block is not valid JSON: {e}"]
    except RecursionError:
        return {}, ["Property block is not valid JSON: nested too deeply"]
    if not isinstance(parsed, dict):
        return {}, [f"Property block must be a JSON object, got {type(parsed).__name__}"]
    return parsed, []


def _split_tag_tokens(raw: str) -> list[str]:
    """Split shorthand content on commas that are outside double quotes."""
    tokens: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == '"':
            end = scan_string(raw, i)
            if end < 0:
                current.append(raw[i:])
                break
            current.append(raw[i:end])
            i = end
            continue
        if ch == ",":
            tokens.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    tokens.append("".join(current))
    return tokens


def parse_tag_shorthand(raw: str | None) -> tuple[list[str], list[str]]:
    """Parse the inside of ``tags=[a, b, "c d"]``.

    Tokens are trimmed; quotes are optional.  Empty tokens, unterminated
    quotes and bare tokens with spaces or JSON punctuation are problems and
    are dropped, the rest are kept in order.
    """
    if raw is None:
        return [], []
    tags: list[str] = []
    problems: list[str] = []
    if not raw.strip():
        return tags, problems
    for token in _split_tag_tokens(raw):
        token = token.strip()
        if not token:
            problems.append("Empty tag token in tags=[...] shorthand")
            continue
        if token.startswith('"'):
            try:
                tag = _loads(token)
            except (ValueError, RecursionError):
                problems.append(f"Tag token {token!r} is not a valid quoted string")
                continue
            if not isinstance(tag, str):
                problems.append(f"Tag token {token!r} is not a string")
                continue
            if not tag.strip():
                problems.append("Empty tag token in tags=[...] shorthand")
                continue
            tags.append(tag)
            continue
        if any(ch in _BARE_TAG_FORBIDDEN for ch in token):
            problems.append(f"Tag token {token!r} must be quoted")
            continue
        tags.append(token)
    return tags, problems


def _tags_from_property(value: JsonValue) -> tuple[list[str], list[str]]:
    if not isinstance(value, list):
        return [], [f"'tags' property must be an array of strings, got {json.dumps(value)}"]
    tags: list[str] = []
    problems: list[str] = []
    for item in value:
        if not isinstance(item, str):
            problems.append(f"Tag {json.dumps(item)} in 'tags' property is not a string")
        elif not item.strip():
            problems.append("Empty string in 'tags' property")
        else:
            tags.append(item)
    return tags, problems


def normalize_tags(
    properties: dict[str, JsonValue],
    shorthand: list[str] | None = None,
) -> tuple[dict[str, JsonValue], frozenset[str], list[str]]:
    """Merge the ``tags`` property with shorthand tags.

    Returns the property mapping with ``tags`` rewritten as the sorted array
    of the merged set (removed when the set is empty), the set itself, and
    any problems met while reading the property.  The input mapping is not
    modified.
    """
    problems: list[str] = []
    merged: set[str] = set(shorthand or ())
    if TAGS_KEY in properties:
        from_prop, problems = _tags_from_property(properties[TAGS_KEY])
        merged.update(from_prop)

    tags = frozenset(merged)
    out = dict(properties)
    if tags:
        out[TAGS_KEY] = sorted(tags)
    else:
        out.pop(TAGS_KEY, None)
    return out, tags, problems
