"""Tests for the scope resolver state machine."""

from bangtag.model import AnnotationForm, DiagnosticKind, ScopeKind
from bangtag.scanner import ScannedLine
from bangtag.scope import Marker, ScopeResolver
from bangtag.tokenizer import MarkerKind


def _inline(line: int, key: str = "k") -> Marker:
    return Marker(line=line, kind=MarkerKind.INLINE, key=key)


def _begin(line: int, key: str) -> Marker:
    return Marker(line=line, kind=MarkerKind.BEGIN, key=key)


def _end(line: int, key: str) -> Marker:
    return Marker(line=line, kind=MarkerKind.END, key=key)


def _code(number: int, text: str = "code()") -> ScannedLine:
    return ScannedLine(number, None, text, True)


def _blank(number: int) -> ScannedLine:
    return ScannedLine(number, None, "")


class TestInline:
    def test_attaches_to_next_code_line(self) -> None:
        r = ScopeResolver("f.py")
        r.feed_line(_code(1, "import os"))
        r.feed_marker(_inline(2, "a"))
        r.feed_marker(_inline(3, "b"))
        r.feed_line(_blank(4))
        r.feed_line(_code(5, "def f(): pass"))
        r.finish(5)
        assert [res.marker.key for res in r.resolved] == ["a", "b"]
        for res in r.resolved:
            assert res.form is AnnotationForm.INLINE
            assert res.scope.kind is ScopeKind.DECLARATION
            assert (res.scope.start, res.scope.end) == (5, 5)
            assert res.scope.text == "def f(): pass"
            assert res.anchor == 5
        assert r.diagnostics == []

    def test_comment_line_is_a_target(self) -> None:
        r = ScopeResolver()
        r.feed_marker(_inline(1))
        r.feed_line(ScannedLine(2, "just a remark", "# just a remark"))
        r.finish(2)
        assert r.resolved[0].scope.start == 2

    def test_empty_delimiter_line_is_skipped(self) -> None:
        r = ScopeResolver()
        r.feed_line(_code(1))
        r.feed_marker(_inline(2))
        r.feed_line(ScannedLine(3, "", " */"))
        r.feed_line(_code(4, "int x;"))
        r.finish(4)
        assert r.resolved[0].scope.start == 4

    def test_skipped_annotation_line_is_not_a_target(self) -> None:
        r = ScopeResolver()
        r.feed_line(_code(1))
        r.feed_marker(_inline(2))
        r.feed_annotation_line()
        r.feed_line(_code(4))
        r.finish(4)
        assert r.resolved[0].scope.start == 4

    def test_file_level_when_first_content(self) -> None:
        r = ScopeResolver("f.md")
        r.feed_line(_blank(1))
        r.feed_marker(_inline(2, "doc"))
        r.feed_line(_blank(3))
        r.finish(3)
        (res,) = r.resolved
        assert res.scope.kind is ScopeKind.FILE_LEVEL
        assert (res.scope.start, res.scope.end) == (1, 3)
        assert res.anchor == 2
        assert r.diagnostics == []

    def test_trailing_when_content_preceded(self) -> None:
        r = ScopeResolver("f.py")
        r.feed_line(_code(1))
        r.feed_marker(_inline(2, "a"))
        r.feed_marker(_inline(3, "b"))
        r.finish(3)
        assert [res.scope.kind for res in r.resolved] == [ScopeKind.TRAILING] * 2
        assert [d.kind for d in r.diagnostics] == [DiagnosticKind.DANGLING_ANNOTATION] * 2
        assert [d.line for d in r.diagnostics] == [2, 3]

    def test_block_marker_before_run_counts_as_content(self) -> None:
        r = ScopeResolver()
        r.feed_marker(_begin(1, "r"))
        r.feed_marker(_end(2, "r"))
        r.feed_marker(_inline(3))
        r.finish(3)
        inline = [res for res in r.resolved if res.form is AnnotationForm.INLINE]
        assert inline[0].scope.kind is ScopeKind.TRAILING

    def test_finish_is_idempotent(self) -> None:
        r = ScopeResolver()
        r.feed_line(_code(1))
        r.feed_marker(_inline(2))
        r.finish(2)
        r.finish(2)
        assert len(r.resolved) == 1
        assert len(r.diagnostics) == 1


class TestBlocks:
    def test_region_is_inclusive(self) -> None:
        r = ScopeResolver()
        r.feed_marker(_begin(2, "region"))
        r.feed_line(_code(3))
        r.feed_marker(_end(4, "region"))
        r.finish(4)
        (res,) = r.resolved
        assert res.form is AnnotationForm.BLOCK
        assert res.scope.kind is ScopeKind.REGION
        assert (res.start, res.end) == (2, 4)
        assert (res.scope.start, res.scope.end) == (2, 4)
        assert not res.salvaged

    def test_nested_blocks(self) -> None:
        r = ScopeResolver()
        r.feed_marker(_begin(1, "outer"))
        r.feed_marker(_begin(2, "inner"))
        r.feed_marker(_end(3, "inner"))
        r.feed_marker(_end(4, "outer"))
        r.finish(4)
        spans = {res.marker.key: (res.start, res.end) for res in r.resolved}
        assert spans == {"inner": (2, 3), "outer": (1, 4)}
        assert r.stack == []

    def test_end_closes_nearest_same_key(self) -> None:
        r = ScopeResolver()
        r.feed_marker(_begin(1, "a"))
        r.feed_marker(_begin(2, "a"))
        r.feed_marker(_end(3, "a"))
        r.feed_marker(_end(4, "a"))
        r.finish(4)
        assert [(res.start, res.end) for res in r.resolved] == [(2, 3), (1, 4)]

    def test_end_matches_deeper_frame(self) -> None:
        r = ScopeResolver()
        r.feed_marker(_begin(1, "a"))
        r.feed_marker(_begin(2, "b"))
        r.feed_marker(_end(3, "a"))
        assert [m.key for m in r.stack] == ["b"]
        r.feed_marker(_end(4, "b"))
        r.finish(4)
        assert r.diagnostics == []

    def test_unmatched_end_on_empty_stack(self) -> None:
        r = ScopeResolver("x.c")
        r.feed_marker(_end(7, "ghost"))
        r.finish(7)
        assert r.resolved == []
        (diag,) = r.diagnostics
        assert diag.kind is DiagnosticKind.UNMATCHED_END
        assert diag.location.file == "x.c"
        assert diag.line == 7
        assert "without a matching @!begin ghost" in diag.message

    def test_unmatched_end_leaves_stack_untouched(self) -> None:
        r = ScopeResolver()
        r.feed_marker(_begin(1, "a"))
        r.feed_marker(_end(2, "b"))
        assert [m.key for m in r.stack] == ["a"]
        assert "open: a" in r.diagnostics[0].message
        r.feed_marker(_end(3, "a"))
        r.finish(3)
        assert len(r.resolved) == 1
        assert len(r.diagnostics) == 1

    def test_unclosed_block_salvaged(self) -> None:
        r = ScopeResolver()
        r.feed_marker(_begin(2, "r"))
        r.feed_line(_code(3))
        r.finish(9)
        (res,) = r.resolved
        assert res.salvaged
        assert (res.scope.start, res.scope.end) == (2, 9)
        (diag,) = r.diagnostics
        assert diag.kind is DiagnosticKind.UNCLOSED_BLOCK
        assert diag.line == 2

    def test_inline_inside_region(self) -> None:
        r = ScopeResolver()
        r.feed_marker(_begin(1, "r"))
        r.feed_marker(_inline(2, "hot"))
        r.feed_line(_code(3))
        r.feed_marker(_end(4, "r"))
        r.finish(4)
        kinds = {res.marker.key: res.scope.kind for res in r.resolved}
        assert kinds == {"hot": ScopeKind.DECLARATION, "r": ScopeKind.REGION}
