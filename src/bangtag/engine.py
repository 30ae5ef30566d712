"""engine.py - Run the full extraction pipeline and assemble scan results.

Pipeline per file: scanner -> tokenizer -> property parser -> scope
resolver -> model builder.  Each file is independent, so :func:`scan_many`
fans files out over a thread pool and reassembles the results in input
order.

Usage::

    from bangtag.engine import scan_text

    result = scan_text(source, file="app.py", language="python")
    for ann in result.by_tag("backend"):
        print(ann.key, ann.scope.start)
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from bangtag.model import (
    Annotation,
    Diagnostic,
    DiagnosticKind,
    FileError,
    Location,
    ScanReport,
    ScanResult,
)
from bangtag.profiles import CommentProfile, language_for_path, profile_for
from bangtag.properties import normalize_tags, parse_properties, parse_tag_shorthand, parse_value
from bangtag.scanner import scan_lines
from bangtag.scope import Marker, Resolved, ScopeResolver
from bangtag.tokenizer import RawAnnotation, looks_like_annotation, tokenize


class ScanError(Exception):
    """Input could not be scanned at all: unreadable, binary or undecodable."""

    def __init__(self, file: str, message: str) -> None:
        super().__init__(f"{file}: {message}")
        self.file = file
        self.message = message


@dataclass(frozen=True)
class SourceInput:
    """One unit of work for :func:`scan_many`.

    Supply either ``text`` or ``data``; when both are missing the file is
    read from ``path`` (or ``file``) on disk.  ``file`` is the identifier
    recorded in results.
    """

    file: str
    language: str | None = None
    text: str | None = None
    data: bytes | None = None
    path: Path | None = None


def _decode_marker(
    raw: RawAnnotation, line: int, file: str
) -> tuple[Marker, list[Diagnostic]]:
    """Decode value, properties and tags of *raw*, collecting diagnostics."""
    diags: list[Diagnostic] = []
    loc = Location(file, line, line)

    value, problems = parse_value(raw.raw_value)
    diags += [Diagnostic(DiagnosticKind.MALFORMED_VALUE, loc, p) for p in problems]

    props, problems = parse_properties(raw.raw_props)
    diags += [Diagnostic(DiagnosticKind.MALFORMED_PROPERTIES, loc, p) for p in problems]

    shorthand, problems = parse_tag_shorthand(raw.raw_tags)
    diags += [Diagnostic(DiagnosticKind.MALFORMED_TAG_TOKEN, loc, p) for p in problems]

    props, tags, problems = normalize_tags(props, shorthand)
    diags += [Diagnostic(DiagnosticKind.MALFORMED_TAG_TOKEN, loc, p) for p in problems]

    marker = Marker(
        line=line,
        kind=raw.marker,
        key=raw.key,
        value=value,
        properties=props,
        tags=tags,
    )
    return marker, diags


def _build(resolved: Resolved, file: str) -> Annotation:
    marker = resolved.marker
    return Annotation(
        key=marker.key,
        form=resolved.form,
        location=Location(file, resolved.start, resolved.end),
        scope=resolved.scope,
        value=marker.value,
        properties=marker.properties,
        tags=marker.tags,
        salvaged=resolved.salvaged,
    )


def scan_text(
    text: str,
    file: str = "<string>",
    language: str | None = None,
    profile: CommentProfile | None = None,
    report_unrecognized: bool = False,
    extra_profiles: dict[str, CommentProfile] | None = None,
) -> ScanResult:
    """Extract annotations and diagnostics from *text*.

    Args:
        text: Full file contents.
        file: Identifier recorded in every location.
        language: Host language hint used to pick the comment profile.
        profile: Explicit comment profile; overrides *language*.
        report_unrecognized: Emit ``UnrecognizedKeyCharset`` diagnostics for
            ``@!`` lines whose key is invalid (normally silent, since such
            text may be unrelated prose).
        extra_profiles: Additional profiles consulted before the built-ins.
    """
    if profile is None:
        profile = profile_for(language, extra_profiles)

    resolver = ScopeResolver(file)
    diagnostics: list[Diagnostic] = []
    last_line = 0

    for line in scan_lines(text, profile):
        last_line = line.number
        raw = tokenize(line.stripped)
        if raw is not None:
            marker, diags = _decode_marker(raw, line.number, file)
            diagnostics += diags
            resolver.feed_marker(marker)
        elif looks_like_annotation(line.stripped):
            if report_unrecognized:
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.UNRECOGNIZED_KEY_CHARSET,
                        Location(file, line.number, line.number),
                        f"Ignoring {line.stripped.strip()!r}: no valid key after @!",
                    )
                )
            resolver.feed_annotation_line()
        else:
            resolver.feed_line(line)

    resolver.finish(last_line)
    diagnostics += resolver.diagnostics

    ordered = sorted(resolver.resolved, key=lambda r: (r.anchor, r.start))
    annotations = tuple(_build(r, file) for r in ordered)
    diagnostics.sort(key=lambda d: d.line)
    return ScanResult(file=file, annotations=annotations, diagnostics=tuple(diagnostics))


def decode_text(data: bytes, file: str = "<bytes>") -> str:
    """Decode *data* as UTF-8 text, raising :class:`ScanError` for binary input."""
    if b"\x00" in data:
        raise ScanError(file, "binary content (NUL byte found)")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ScanError(file, f"not valid UTF-8 text ({e.reason} at byte {e.start})") from e


def scan_bytes(
    data: bytes,
    file: str = "<bytes>",
    language: str | None = None,
    **kwargs,
) -> ScanResult:
    """Decode *data* and scan it; see :func:`scan_text` for keyword arguments."""
    return scan_text(decode_text(data, file), file=file, language=language, **kwargs)


def scan_path(
    path: Path | str,
    language: str | None = None,
    file: str | None = None,
    language_overrides: dict[str, str] | None = None,
    **kwargs,
) -> ScanResult:
    """Read and scan the file at *path*.

    The language is inferred from the file name when no hint is given.
    *file* sets the identifier recorded in results (defaults to the path).
    """
    path = Path(path)
    ident = file if file is not None else str(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ScanError(ident, f"cannot read file: {e.strerror or e}") from e
    if language is None:
        language = language_for_path(path, language_overrides)
    return scan_bytes(data, file=ident, language=language, **kwargs)


def _scan_source(
    source: SourceInput, overrides: dict[str, str] | None, kwargs: dict
) -> ScanResult:
    if source.text is not None:
        return scan_text(source.text, file=source.file, language=source.language, **kwargs)
    if source.data is not None:
        return scan_bytes(source.data, file=source.file, language=source.language, **kwargs)
    return scan_path(
        source.path or source.file,
        language=source.language,
        file=source.file,
        language_overrides=overrides,
        **kwargs,
    )


def scan_many(
    sources: Iterable[SourceInput],
    jobs: int = 4,
    language_overrides: dict[str, str] | None = None,
    **kwargs,
) -> ScanReport:
    """Scan many inputs concurrently, returning results in input order.

    A :class:`ScanError` or :class:`RecursionError` on one input is recorded
    as a :class:`FileError` and does not affect the others.  Keyword arguments are forwarded to the
    per-file scan functions; *language_overrides* only applies to inputs
    read from disk.
    """
    items = list(sources)
    slots: list[ScanResult | FileError | None] = [None] * len(items)

    def _run(idx: int) -> None:
        try:
            slots[idx] = _scan_source(items[idx], language_overrides, kwargs)
        except ScanError as e:
            slots[idx] = FileError(e.file, e.message)
        except RecursionError:
            slots[idx] = FileError(items[idx].file, "input nests too deeply to scan")

    if jobs <= 1 or len(items) <= 1:
        for idx in range(len(items)):
            _run(idx)
    else:
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            futures = [executor.submit(_run, idx) for idx in range(len(items))]
            for fut in futures:
                fut.result()

    report = ScanReport()
    for slot in slots:
        if isinstance(slot, FileError):
            report.errors.append(slot)
        elif slot is not None:
            report.results.append(slot)
    return report
