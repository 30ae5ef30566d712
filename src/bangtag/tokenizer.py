"""tokenizer.py - Recognize ``@!`` markers in comment content.

Operates on text the scanner already isolated from a comment, so string
literals in host code are never seen here.  Three marker forms share one
layout::

    @!<key> [<value>] [tags=[...]] [{ <json-props> }] [tags=[...]]
    @!begin <key> [<value>] [tags=[...]] [{ <json-props> }] [tags=[...]]
    @!end <key>

The tokenizer only slices the line into raw pieces; decoding the value,
the JSON properties and the tag shorthand is :mod:`bangtag.properties`'s job.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

MARKER_PREFIX = "@!"

# Key followed by whitespace, an opening brace or end of content.
_KEY_AT_RE = re.compile(r"(?P<key>[A-Za-z_][A-Za-z0-9_-]*)(?=\s|\{|$)")
_TAGS_RE = re.compile(r"tags\s*=\s*\[")

BEGIN_WORD = "begin"
END_WORD = "end"


class MarkerKind(str, Enum):
    INLINE = "Inline"
    BEGIN = "BlockBegin"
    END = "BlockEnd"


@dataclass(frozen=True)
class RawAnnotation:
    """Undecoded pieces of one marker line.

    ``raw_props`` includes the outer braces (or runs to end of line when the
    opening brace is never matched); ``raw_tags`` is the text between the
    brackets of a ``tags=[...]`` shorthand, with the contents of a second
    shorthand after the property block joined on by a comma.
    """

    marker: MarkerKind
    key: str
    raw_value: str | None = None
    raw_props: str | None = None
    raw_tags: str | None = None


def looks_like_annotation(content: str | None) -> bool:
    """True if comment *content* starts with the ``@!`` marker."""
    return content is not None and content.lstrip().startswith(MARKER_PREFIX)


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def scan_string(text: str, pos: int) -> int:
    """Return the index just past the double-quoted string starting at *pos*.

    Backslash escapes are honoured.  Returns ``-1`` if the string is not
    terminated.
    """
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i + 1
        i += 1
    return -1


def match_brace(text: str, pos: int) -> int:
    """Return the index just past the ``}`` matching the ``{`` at *pos*.

    Nested braces and braces inside double-quoted strings are accounted for,
    so ``{"a": "}"}`` is one span.  Returns ``-1`` when unbalanced.
    """
    depth = 0
    i = pos
    while i < len(text):
        ch = text[i]
        if ch == '"':
            end = scan_string(text, i)
            if end < 0:
                return -1
            i = end
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return -1


def match_bracket(text: str, pos: int) -> int:
    """Return the index just past the ``]`` closing the ``[`` at *pos* (quote-aware)."""
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == '"':
            end = scan_string(text, i)
            if end < 0:
                return -1
            i = end
            continue
        if ch == "]":
            return i + 1
        i += 1
    return -1


def _read_tags(text: str, pos: int) -> tuple[str | None, int]:
    """Read a ``tags=[...]`` modifier at *pos*; returns (inner text, new position)."""
    m = _TAGS_RE.match(text, pos)
    if not m:
        return None, pos
    open_idx = m.end() - 1
    close = match_bracket(text, open_idx)
    if close < 0:
        # Unterminated: keep everything after "[" so bad tokens get reported.
        return text[open_idx + 1 :], len(text)
    return text[open_idx + 1 : close - 1], close


def _read_value(text: str, pos: int) -> tuple[str | None, int]:
    if pos >= len(text) or text[pos] == "{" or _TAGS_RE.match(text, pos):
        return None, pos
    if text[pos] == '"':
        end = scan_string(text, pos)
        if end < 0:
            return text[pos:], len(text)
        return text[pos:end], end
    end = pos
    while end < len(text) and not text[end].isspace() and text[end] != "{":
        end += 1
    return text[pos:end], end


def tokenize(content: str | None) -> RawAnnotation | None:
    """Slice one comment's content into a :class:`RawAnnotation`.

    Returns ``None`` when the content is not an annotation: it does not
    start with ``@!``, or the token after the marker is not a valid key.
    """
    if not looks_like_annotation(content):
        return None
    text = content.strip()
    pos = len(MARKER_PREFIX)

    m = _KEY_AT_RE.match(text, pos)
    if not m:
        return None
    word = m.group("key")
    marker = MarkerKind.INLINE
    key = word
    pos = m.end()

    if word in (BEGIN_WORD, END_WORD):
        marker = MarkerKind.BEGIN if word == BEGIN_WORD else MarkerKind.END
        key_pos = _skip_ws(text, pos)
        if key_pos == pos:
            return None
        km = _KEY_AT_RE.match(text, key_pos)
        if not km:
            return None
        key = km.group("key")
        pos = km.end()
        if marker is MarkerKind.END:
            return RawAnnotation(marker=marker, key=key)

    pos = _skip_ws(text, pos)
    raw_value, pos = _read_value(text, pos)
    pos = _skip_ws(text, pos)

    raw_tags, pos = _read_tags(text, pos)
    pos = _skip_ws(text, pos)

    raw_props = None
    if pos < len(text) and text[pos] == "{":
        end = match_brace(text, pos)
        if end < 0:
            raw_props = text[pos:]
            pos = len(text)
        else:
            raw_props = text[pos:end]
            pos = _skip_ws(text, end)

    more_tags, _ = _read_tags(text, pos)
    if raw_tags is None:
        raw_tags = more_tags
    elif more_tags is not None:
        raw_tags = ",".join(t for t in (raw_tags, more_tags) if t.strip())
    # Anything left is a trailing remark and is ignored.

    return RawAnnotation(
        marker=marker,
        key=key,
        raw_value=raw_value,
        raw_props=raw_props,
        raw_tags=raw_tags,
    )
