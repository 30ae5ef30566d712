"""lint.py - Report annotation diagnostics and gate CI on them.

Scans files with the bangtag engine and prints every diagnostic as
``file:line: CODE: message``.  Diagnostic kinds listed in ``fail_on``
(config or ``--fail-on``) are errors and make the command exit non-zero;
all other kinds are warnings.
"""

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from bangtag.cli import USAGE_ERROR, build_inputs, error_exit, get_config, iter_sources, json_print
from bangtag.engine import scan_many
from bangtag.model import DiagnosticKind, FileError, ScanResult

out_console = Console()

# Stable codes shown next to each diagnostic.
DIAGNOSTIC_CODES: dict[DiagnosticKind, str] = {
    DiagnosticKind.UNCLOSED_BLOCK: "BT001",
    DiagnosticKind.UNMATCHED_END: "BT002",
    DiagnosticKind.MALFORMED_PROPERTIES: "BT003",
    DiagnosticKind.MALFORMED_VALUE: "BT004",
    DiagnosticKind.MALFORMED_TAG_TOKEN: "BT005",
    DiagnosticKind.DANGLING_ANNOTATION: "BT006",
    DiagnosticKind.UNRECOGNIZED_KEY_CHARSET: "BT007",
}
READ_ERROR_CODE = "BT000"


@dataclass
class LintResult:
    """Errors and warnings for a single file, split by the ``fail_on`` policy."""

    file: str
    errors: list[tuple[int, str, str]] = field(default_factory=list)
    warnings: list[tuple[int, str, str]] = field(default_factory=list)
    annotation_count: int = 0

    def error(self, line: int, code: str, msg: str) -> None:
        self.errors.append((line, code, msg))

    def warning(self, line: int, code: str, msg: str) -> None:
        self.warnings.append((line, code, msg))

    @property
    def passed(self) -> bool:
        """True if no errors were recorded."""
        return len(self.errors) == 0

    def display(self, quiet: bool = False) -> None:
        """Print errors (and optionally warnings) to the console."""
        rel = escape(self.file)
        for line, code, msg in self.errors:
            out_console.print(f"  [bold]{rel}[/bold]:{line}: [red]{code}[/red]: {escape(msg)}")
        if not quiet:
            for line, code, msg in self.warnings:
                out_console.print(
                    f"  [bold]{rel}[/bold]:{line}: [yellow]{code}[/yellow]: {escape(msg)}"
                )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "file": self.file,
            "annotations": self.annotation_count,
            "errors": [{"line": ln, "code": c, "message": m} for ln, c, m in self.errors],
            "warnings": [{"line": ln, "code": c, "message": m} for ln, c, m in self.warnings],
            "passed": self.passed,
        }


def lint_result(result: ScanResult, fail_on: set[DiagnosticKind]) -> LintResult:
    """Classify the diagnostics of one scanned file."""
    lint = LintResult(result.file, annotation_count=len(result.annotations))
    for diag in result.diagnostics:
        code = DIAGNOSTIC_CODES[diag.kind]
        msg = f"{diag.kind.value}: {diag.message}"
        if diag.kind in fail_on:
            lint.error(diag.line, code, msg)
        else:
            lint.warning(diag.line, code, msg)
    return lint


def lint_file_error(err: FileError) -> LintResult:
    """A file that could not be scanned is always an error."""
    lint = LintResult(err.file)
    lint.error(0, READ_ERROR_CODE, f"Cannot scan file: {err.message}")
    return lint


def _print_summary(results: list[ScanResult]) -> None:
    """Print a breakdown table of diagnostics by kind and annotations by key."""
    kind_counts: Counter[str] = Counter()
    key_counts: Counter[str] = Counter()
    for r in results:
        kind_counts.update(d.kind.value for d in r.diagnostics)
        key_counts.update(a.key for a in r.annotations)

    out_console.print()
    table = Table(title="Summary", show_lines=False, pad_edge=False)
    table.add_column("Category", style="bold")
    table.add_column("Value")
    table.add_column("Count", justify="right")
    for kind, count in sorted(kind_counts.items(), key=lambda x: -x[1]):
        table.add_row("DIAGNOSTIC", kind, str(count))
    for key, count in sorted(key_counts.items(), key=lambda x: -x[1]):
        table.add_row("KEY", key, str(count))
    out_console.print(table)


app = typer.Typer(
    help="Check @! annotations for structural problems.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

bangtag lint                                 Lint every file under the current directory

bangtag lint src/                            Lint one directory

bangtag lint --fail-on UnclosedBlock         Only unclosed blocks fail the run

bangtag lint --quiet                         Errors only, suppress warnings

bangtag lint --json                          Machine-readable JSON output

[bold]Diagnostic codes:[/bold]

BT000   File could not be read or is not text

BT001   UnclosedBlock: @!begin without @!end

BT002   UnmatchedEnd: @!end without an open @!begin of that key

BT003   MalformedProperties: property block is not a JSON object

BT004   MalformedValue: value is not a string, number, boolean or null

BT005   MalformedTagToken: a tag was dropped

BT006   DanglingAnnotation: inline annotation with nothing after it

BT007   UnrecognizedKeyCharset: @! line without a valid key (opt-in)

[dim]Kinds listed in fail_on (default: UnclosedBlock, UnmatchedEnd,
MalformedProperties) are errors; the rest are warnings.[/dim]""",
)


@app.command()
def main(
    paths: list[Path] | None = typer.Argument(None, help="Files or directories to lint"),
    fail_on: list[str] | None = typer.Option(
        None, "--fail-on", help="Diagnostic kind that fails the run (repeatable)"
    ),
    language: str | None = typer.Option(
        None, "--language", "-l", help="Force a language for every file."
    ),
    quiet: bool = typer.Option(False, help="Only show errors, suppress warnings"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
    summary: bool = typer.Option(False, "--summary", help="Print diagnostic/key breakdown"),
    jobs: int | None = typer.Option(None, "--jobs", "-j", help="Parallel workers"),
    report_unrecognized: bool | None = typer.Option(
        None,
        "--report-unrecognized/--no-report-unrecognized",
        help="Report @! lines without a valid key",
    ),
) -> None:
    """Lint annotations and exit non-zero when failing diagnostics are found."""
    cfg = get_config(json_mode=json_output)

    if fail_on:
        try:
            policy = {DiagnosticKind.parse(name) for name in fail_on}
        except ValueError as e:
            error_exit(str(e), json_mode=json_output, code=USAGE_ERROR)
    else:
        policy = set(cfg.fail_on)

    files = iter_sources(paths, cfg)
    report = scan_many(
        build_inputs(files, cfg, language=language, base_dir=Path.cwd()),
        jobs=jobs or cfg.jobs,
        report_unrecognized=(
            cfg.report_unrecognized if report_unrecognized is None else report_unrecognized
        ),
        extra_profiles=cfg.profiles,
    )

    all_results = [lint_result(r, policy) for r in report.results]
    all_results += [lint_file_error(e) for e in report.errors]

    total = len(all_results)
    passed = sum(1 for r in all_results if r.passed)
    error_count = sum(len(r.errors) for r in all_results)
    warning_count = sum(len(r.warnings) for r in all_results)

    if json_output:
        json_print(
            {
                "total": total,
                "passed": passed,
                "errors": error_count,
                "warnings": warning_count,
                "fail_on": sorted(k.value for k in policy),
                "files": [r.to_dict() for r in all_results if not r.passed or r.warnings],
            }
        )
    else:
        for result in all_results:
            if not result.passed or (not quiet and result.warnings):
                result.display(quiet=quiet)
        pass_style = "green" if error_count == 0 else "red"
        err_style = "red" if error_count > 0 else ""
        result_text = Text()
        result_text.append(f"\nChecked {total} files: ")
        result_text.append(f"{passed} passed", style=pass_style)
        result_text.append(", ")
        result_text.append(f"{error_count} errors", style=err_style)
        result_text.append(f", {warning_count} warnings")
        out_console.print(result_text)

        if summary:
            _print_summary(report.results)

    if error_count > 0:
        raise typer.Exit(code=1)


def main_entry() -> None:
    """Package entry point for ``bangtag-lint``."""
    app()


if __name__ == "__main__":
    main_entry()
