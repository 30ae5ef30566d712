"""scanner.py - Split text into numbered lines and isolate comment content.

Every physical line is yielded, comment or not, because scope resolution
needs absolute line numbers.  For each line the scanner reports the text
that sits inside a comment (prefix/suffix and surrounding whitespace
removed) or ``None`` when the line carries no comment content.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import NamedTuple

from bangtag.profiles import CommentProfile


# Only CR, LF and CRLF end a line; form feeds and Unicode separators stay in it.
_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> list[str]:
    """Split *text* into physical lines without their line terminators.

    Unlike :meth:`str.splitlines`, characters such as ``\\f``, ``\\v``,
    ``\\x85`` and ``\\u2028`` do not end a line, so line numbers agree with
    editors and compilers.
    """
    lines = _NEWLINE_RE.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


class ScannedLine(NamedTuple):
    """One physical line: 1-based number, comment content, original text.

    ``has_code`` is true when non-whitespace text sits outside any comment.
    """

    number: int
    stripped: str | None
    raw: str
    has_code: bool = False


def _find_opener(line: str, start: int, profile: CommentProfile) -> tuple[int, str, str | None]:
    """Locate the earliest comment opener in *line* at or after *start*.

    Returns ``(index, opener, closer)``; *closer* is ``None`` for line
    comments and ``index`` is ``-1`` when nothing was found.  When two
    delimiters start at the same column the longer one wins, so ``<!--``
    beats ``<`` and ``/*`` beats ``/``.
    """
    best = (-1, "", None)
    candidates: list[tuple[str, str | None]] = [(p, None) for p in profile.line_prefixes]
    candidates += [(o, c) for o, c in profile.block_delimiters]
    for opener, closer in candidates:
        if not opener:
            continue
        idx = line.find(opener, start)
        if idx < 0:
            continue
        best_idx, best_open, _ = best
        if best_idx < 0 or idx < best_idx or (idx == best_idx and len(opener) > len(best_open)):
            best = (idx, opener, closer)
    return best


def _strip_continuation(content: str, opener: str) -> str:
    """Drop a leading ``*`` continuation marker inside ``/* ... */`` style blocks."""
    content = content.strip()
    if opener.endswith("*") and content.startswith("*") and not content.startswith("*/"):
        content = content[1:]
    return content.strip()


def _code_between(line: str, start: int, profile: CommentProfile) -> bool:
    """True if *line* holds non-comment text between *start* and the next opener."""
    idx, _, _ = _find_opener(line, start, profile)
    segment = line[start:] if idx < 0 else line[start:idx]
    return bool(segment.strip())


def scan_lines(text: str, profile: CommentProfile) -> Iterator[ScannedLine]:
    """Yield a :class:`ScannedLine` for every line of *text*.

    Trailing comments are recognized: the first comment opener on a line
    starts comment content even when code precedes it.  Block comments may
    span several lines; the content of interior lines is reported with a
    leading ``*`` continuation removed when the opener ends in ``*``.
    """
    open_block: tuple[str, str] | None = None

    for number, raw in enumerate(split_lines(text), 1):
        if open_block is not None:
            opener, closer = open_block
            end = raw.find(closer)
            if end < 0:
                yield ScannedLine(number, _strip_continuation(raw, opener), raw)
                continue
            content = _strip_continuation(raw[:end], opener)
            after = end + len(closer)
            open_block = _unclosed_after(raw, after, profile)
            yield ScannedLine(number, content, raw, _code_between(raw, after, profile))
            continue

        idx, opener, closer = _find_opener(raw, 0, profile)
        if idx < 0:
            yield ScannedLine(number, None, raw, bool(raw.strip()))
            continue

        code = bool(raw[:idx].strip())
        body_start = idx + len(opener)
        if closer is None:
            yield ScannedLine(number, raw[body_start:].strip(), raw, code)
            continue

        end = raw.find(closer, body_start)
        if end < 0:
            open_block = (opener, closer)
            yield ScannedLine(number, _strip_continuation(raw[body_start:], opener), raw, code)
            continue

        content = _strip_continuation(raw[body_start:end], opener)
        after = end + len(closer)
        open_block = _unclosed_after(raw, after, profile)
        code = code or _code_between(raw, after, profile)
        yield ScannedLine(number, content, raw, code)


def _unclosed_after(line: str, start: int, profile: CommentProfile) -> tuple[str, str] | None:
    """Return the block comment left open at end of *line*, scanning from *start*.

    Only the first comment of a line contributes content; later comments on
    the same line matter only if one of them is still open at end of line.
    A line comment ends the walk since it runs to end of line.
    """
    pos = start
    while pos < len(line):
        idx, opener, closer = _find_opener(line, pos, profile)
        if idx < 0 or closer is None:
            return None
        end = line.find(closer, idx + len(opener))
        if end < 0:
            return (opener, closer)
        pos = end + len(closer)
    return None
