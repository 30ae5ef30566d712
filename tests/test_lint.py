"""Tests for the bangtag lint command."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from bangtag.engine import scan_text
from bangtag.lint import DIAGNOSTIC_CODES, READ_ERROR_CODE, app, lint_file_error, lint_result
from bangtag.model import DiagnosticKind, FileError

runner = CliRunner()

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


CLEAN = """\
# @!owner "core"
def f(): pass

# @!begin generated
x = 1
# @!end generated
"""

UNCLOSED = """\
# @!begin generated
x = 1
"""

BAD_VALUE = """\
# @!owner core
def f(): pass
"""


# ---------------------------------------------------------------------------
# lint_result()
# ---------------------------------------------------------------------------


class TestLintResult:
    def test_clean_file_passes(self) -> None:
        result = lint_result(scan_text(CLEAN, file="a.py", language="python"), set())
        assert result.passed
        assert result.errors == []
        assert result.warnings == []
        assert result.annotation_count == 2

    def test_fail_on_kinds_are_errors(self) -> None:
        scanned = scan_text(UNCLOSED, file="a.py", language="python")
        result = lint_result(scanned, {DiagnosticKind.UNCLOSED_BLOCK})
        assert not result.passed
        ((line, code, msg),) = result.errors
        assert line == 1
        assert code == "BT001"
        assert msg.startswith("UnclosedBlock: ")

    def test_other_kinds_are_warnings(self) -> None:
        scanned = scan_text(UNCLOSED, file="a.py", language="python")
        result = lint_result(scanned, {DiagnosticKind.UNMATCHED_END})
        assert result.passed
        assert [c for _, c, _ in result.warnings] == ["BT001"]

    def test_file_error(self) -> None:
        result = lint_file_error(FileError("x.bin", "binary content (NUL byte found)"))
        assert not result.passed
        msg = "Cannot scan file: binary content (NUL byte found)"
        assert result.errors == [(0, READ_ERROR_CODE, msg)]

    def test_to_dict(self) -> None:
        scanned = scan_text(BAD_VALUE, file="a.py", language="python")
        data = lint_result(scanned, set()).to_dict()
        assert data["file"] == "a.py"
        assert data["passed"] is True
        assert data["warnings"][0]["code"] == "BT004"
        assert data["warnings"][0]["line"] == 1

    def test_every_kind_has_a_code(self) -> None:
        assert set(DIAGNOSTIC_CODES) == set(DiagnosticKind)
        assert len(set(DIAGNOSTIC_CODES.values())) == len(DiagnosticKind)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestLintCommand:
    def test_clean_tree_exits_zero(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / "src" / "a.py", CLEAN)
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "Checked 1 files: 1 passed, 0 errors, 0 warnings" in result.output

    def test_unclosed_block_fails(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / "a.py", UNCLOSED)
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["a.py"])
        assert result.exit_code == 1
        assert "a.py:1:" in result.output
        assert "BT001" in result.output

    def test_warning_does_not_fail(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / "a.py", BAD_VALUE)
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["a.py"])
        assert result.exit_code == 0
        assert "BT004" in result.output

    def test_quiet_hides_warnings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / "a.py", BAD_VALUE)
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["a.py", "--quiet"])
        assert result.exit_code == 0
        assert "BT004" not in result.output

    def test_fail_on_option(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / "a.py", BAD_VALUE)
        _write(tmp_path / "b.py", UNCLOSED)
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["--fail-on", "MalformedValue", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["fail_on"] == ["MalformedValue"]
        assert data["errors"] == 1
        assert data["warnings"] == 1

    def test_unknown_fail_on_is_usage_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["--fail-on", "Nope", "--json"])
        assert result.exit_code == 2
        assert "Unknown diagnostic kind" in json.loads(result.stdout)["error"]

    def test_config_fail_on(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / "bangtag.toml", 'fail_on = ["MalformedValue"]\n')
        _write(tmp_path / "a.py", BAD_VALUE)
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["a.py"])
        assert result.exit_code == 1

    def test_bad_config_is_usage_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write(tmp_path / "bangtag.toml", "jobs = -1\n")
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, [])
        assert result.exit_code == 2

    def test_json_output(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / "ok.py", CLEAN)
        _write(tmp_path / "bad.py", UNCLOSED)
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["total"] == 2
        assert data["passed"] == 1
        assert data["errors"] == 1
        assert data["fail_on"] == ["MalformedProperties", "UnclosedBlock", "UnmatchedEnd"]
        (entry,) = data["files"]
        assert entry["file"] == "bad.py"
        assert entry["errors"][0]["code"] == "BT001"

    def test_unreadable_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "blob.bin").write_bytes(b"\x00\x01\x02")
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["blob.bin", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["files"][0]["errors"][0]["code"] == READ_ERROR_CODE

    def test_report_unrecognized(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / "a.py", "# @!9lives\nx = 1\n")
        monkeypatch.chdir(tmp_path)
        silent = runner.invoke(app, ["a.py", "--json"])
        assert json.loads(silent.stdout)["warnings"] == 0
        loud = runner.invoke(app, ["a.py", "--json", "--report-unrecognized"])
        assert json.loads(loud.stdout)["warnings"] == 1

    def test_summary_table(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path / "a.py", CLEAN)
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["--summary"])
        assert result.exit_code == 0
        assert "Summary" in result.output
        assert "owner" in result.output
