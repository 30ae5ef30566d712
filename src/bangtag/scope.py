"""scope.py - Bind markers to the declaration or region they annotate.

The only stateful step of a scan.  A :class:`ScopeResolver` lives for one
file: it stacks open ``@!begin`` frames, closes them on ``@!end`` with the
same key, and buffers inline markers until the next line that is neither
blank nor itself an annotation line.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from bangtag.model import (
    AnnotationForm,
    Diagnostic,
    DiagnosticKind,
    JsonScalar,
    JsonValue,
    Location,
    Scope,
    ScopeKind,
)
from bangtag.scanner import ScannedLine
from bangtag.tokenizer import MarkerKind


@dataclass(frozen=True)
class Marker:
    """A tokenized marker with its decoded value, properties and tags."""

    line: int
    kind: MarkerKind
    key: str
    value: JsonScalar = None
    properties: dict[str, JsonValue] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Resolved:
    """A marker paired with its final form, line span and scope."""

    marker: Marker
    form: AnnotationForm
    start: int
    end: int
    scope: Scope
    salvaged: bool = False

    @property
    def anchor(self) -> int:
        """Line used to order annotations: begin line or inline target line."""
        if self.form is AnnotationForm.INLINE and self.scope.kind is ScopeKind.DECLARATION:
            return self.scope.start
        return self.start


class ScopeResolver:
    """Per-file state machine turning markers into :class:`Resolved` entries.

    Feed every line in order: :meth:`feed_marker` for recognized markers,
    :meth:`feed_annotation_line` for ``@!`` lines that were not valid
    annotations, and :meth:`feed_line` for everything else.  Call
    :meth:`finish` once at end of input.
    """

    def __init__(self, file: str = "<string>") -> None:
        self.file = file
        self.stack: list[Marker] = []
        self.pending: list[Marker] = []
        self.resolved: list[Resolved] = []
        self.diagnostics: list[Diagnostic] = []
        self._seen_content = False
        self._pending_first = False
        self._finished = False

    def _report(self, kind: DiagnosticKind, line: int, message: str) -> None:
        self.diagnostics.append(Diagnostic(kind, Location(self.file, line, line), message))

    # -- feeding --

    def feed_marker(self, marker: Marker) -> None:
        """Handle one inline, begin or end marker."""
        if marker.kind is MarkerKind.INLINE:
            if not self.pending:
                self._pending_first = not self._seen_content
            self.pending.append(marker)
        elif marker.kind is MarkerKind.BEGIN:
            self.stack.append(marker)
        else:
            self._close(marker)
        self._seen_content = True

    def feed_annotation_line(self) -> None:
        """Note an ``@!`` line that did not tokenize; it is never a target."""
        self._seen_content = True

    def feed_line(self, line: ScannedLine) -> None:
        """Handle a line that carries no marker.

        Blank lines and lines holding nothing but empty comment delimiters
        (a lone ``*/``, a bare ``#``) are skipped; any other line, including
        an ordinary comment, becomes the target of buffered inline markers.
        """
        if not line.has_code and not line.stripped:
            return
        self._seen_content = True
        if not self.pending:
            return
        scope = Scope(ScopeKind.DECLARATION, line.number, line.number, line.raw)
        for marker in self.pending:
            self.resolved.append(
                Resolved(marker, AnnotationForm.INLINE, marker.line, marker.line, scope)
            )
        self.pending = []

    def _close(self, end: Marker) -> None:
        # Nearest open frame with the same key wins; frames above it stay open.
        for idx in range(len(self.stack) - 1, -1, -1):
            begin = self.stack[idx]
            if begin.key == end.key:
                del self.stack[idx]
                self.resolved.append(
                    Resolved(
                        begin,
                        AnnotationForm.BLOCK,
                        begin.line,
                        end.line,
                        Scope(ScopeKind.REGION, begin.line, end.line),
                    )
                )
                return
        if self.stack:
            open_keys = ", ".join(m.key for m in reversed(self.stack))
            msg = f"@!end {end.key} does not match any open block (open: {open_keys})"
        else:
            msg = f"@!end {end.key} without a matching @!begin {end.key}"
        self._report(DiagnosticKind.UNMATCHED_END, end.line, msg)

    # -- end of input --

    def finish(self, last_line: int) -> None:
        """Flush buffered inline markers and salvage unclosed blocks."""
        if self._finished:
            return
        self._finished = True
        last_line = max(last_line, 1)

        for marker in self.pending:
            if self._pending_first:
                scope = Scope(ScopeKind.FILE_LEVEL, 1, last_line)
            else:
                scope = Scope(ScopeKind.TRAILING, last_line, last_line)
                self._report(
                    DiagnosticKind.DANGLING_ANNOTATION,
                    marker.line,
                    f"@!{marker.key} has no following line to annotate",
                )
            self.resolved.append(
                Resolved(marker, AnnotationForm.INLINE, marker.line, marker.line, scope)
            )
        self.pending = []

        for begin in self.stack:
            self._report(
                DiagnosticKind.UNCLOSED_BLOCK,
                begin.line,
                f"@!begin {begin.key} is never closed; region runs to end of file",
            )
            self.resolved.append(
                Resolved(
                    begin,
                    AnnotationForm.BLOCK,
                    begin.line,
                    last_line,
                    Scope(ScopeKind.REGION, begin.line, last_line),
                    salvaged=True,
                )
            )
        self.stack = []
