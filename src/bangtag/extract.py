"""extract.py - Print or export the annotations found in a set of files.

Scans files with the bangtag engine and shows every annotation with its
scope, either as a rich table or as JSON suitable for downstream tools
(linters, CI gates, prompt assemblers).
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from bangtag.cli import build_inputs, err_console, error_exit, get_config, iter_sources, json_print
from bangtag.engine import scan_many
from bangtag.model import Annotation, ScanReport, ScanResult, ScopeKind
from bangtag.utils import atomic_write_text

out_console = Console()


def select_annotations(
    result: ScanResult,
    keys: list[str] | None = None,
    tags: list[str] | None = None,
    agent: str | None = None,
) -> list[Annotation]:
    """Apply the ``--key`` / ``--tag`` / ``--agent`` filters to one file's annotations.

    Filters of different kinds combine with AND; repeated ``--key`` or
    ``--tag`` values combine with OR.
    """
    selected = list(result.annotations)
    if keys:
        selected = [a for a in selected if a.key in keys]
    if tags:
        selected = [a for a in selected if a.tags.intersection(tags)]
    if agent is not None:
        selected = [a for a in selected if a.is_for_agent(agent)]
    return selected


def report_to_dict(
    report: ScanReport,
    keys: list[str] | None = None,
    tags: list[str] | None = None,
    agent: str | None = None,
) -> dict:
    """Serialize *report* with annotation filters applied; diagnostics are kept whole."""
    files = []
    for result in report:
        entry = result.to_dict()
        entry["annotations"] = [
            a.to_dict() for a in select_annotations(result, keys, tags, agent)
        ]
        files.append(entry)
    return {"files": files, "errors": [e.to_dict() for e in report.errors]}


def _format_value(ann: Annotation) -> Text:
    if ann.value is None:
        return Text("")
    return Text(json.dumps(ann.value, ensure_ascii=False))


def _format_scope(ann: Annotation) -> Text:
    scope = ann.scope
    if scope.kind is ScopeKind.DECLARATION:
        return Text(f"L{scope.start}: {scope.text.strip()}")
    if scope.kind is ScopeKind.REGION:
        text = Text(f"L{scope.start}-{scope.end}")
        if ann.salvaged:
            text.append(" (unclosed)", style="yellow")
        return text
    if scope.kind is ScopeKind.FILE_LEVEL:
        return Text("file")
    return Text("end of file", style="yellow")


def _print_table(rows: list[tuple[str, Annotation]]) -> None:
    table = Table(show_lines=False, pad_edge=False)
    table.add_column("Location", style="bold")
    table.add_column("Key", style="cyan")
    table.add_column("Form")
    table.add_column("Value")
    table.add_column("Tags")
    table.add_column("Scope", overflow="fold")
    for file, ann in rows:
        table.add_row(
            Text(f"{file}:{ann.line}"),
            ann.key,
            ann.form.value,
            _format_value(ann),
            Text(", ".join(sorted(ann.tags))),
            _format_scope(ann),
        )
    out_console.print(table)


app = typer.Typer(
    help="Extract @! annotations from source files.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

bangtag extract                              Scan the current directory

bangtag extract src/ docs/                   Scan specific directories

bangtag extract --key readonly --json        Only readonly annotations, as JSON

bangtag extract --tag backend                Annotations tagged backend

bangtag extract -o annotations.json          Write the full JSON report to a file

[dim]Annotation forms: @!key \\[value] \\[{json}], @!begin key ... @!end key.
Settings are read from bangtag.toml or \\[tool.bangtag] in pyproject.toml.[/dim]""",
)


@app.command()
def main(
    paths: list[Path] | None = typer.Argument(None, help="Files or directories to scan"),
    language: str | None = typer.Option(
        None, "--language", "-l", help="Force a language for every file (e.g. python, c)."
    ),
    key: list[str] | None = typer.Option(None, "--key", "-k", help="Only show this key."),
    tag: list[str] | None = typer.Option(None, "--tag", help="Only show this tag."),
    agent: str | None = typer.Option(None, "--agent", help="Only annotations for this agent."),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON report here"),
    jobs: int | None = typer.Option(None, "--jobs", "-j", help="Parallel workers"),
    report_unrecognized: bool | None = typer.Option(
        None,
        "--report-unrecognized/--no-report-unrecognized",
        help="Report @! lines without a valid key",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show progress on stderr"),
) -> None:
    """Extract annotations and print them as a table or JSON."""
    cfg = get_config(json_mode=json_output)
    if jobs is not None and jobs < 1:
        error_exit("--jobs must be at least 1", json_mode=json_output, code=2)

    files = iter_sources(paths, cfg)
    inputs = build_inputs(files, cfg, language=language, base_dir=Path.cwd())
    n_jobs = jobs or cfg.jobs
    if verbose:
        err_console.print(f"Scanning {len(inputs)} files with {n_jobs} workers")

    report = scan_many(
        inputs,
        jobs=n_jobs,
        report_unrecognized=(
            cfg.report_unrecognized if report_unrecognized is None else report_unrecognized
        ),
        extra_profiles=cfg.profiles,
    )
    data = report_to_dict(report, key, tag, agent)

    if output is not None:
        atomic_write_text(output, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        if verbose:
            err_console.print(f"Wrote {output}")

    if json_output:
        json_print(data)
    elif output is None:
        rows = [
            (result.file, ann)
            for result in report
            for ann in select_annotations(result, key, tag, agent)
        ]
        if rows:
            _print_table(rows)
        n_diags = len(report.diagnostics())
        summary = Text()
        summary.append(f"\nFound {len(rows)} annotations in {len(report.results)} files")
        if n_diags:
            summary.append(f", {n_diags} diagnostics", style="yellow")
            summary.append(" (run 'bangtag lint' for details)", style="dim")
        out_console.print(summary)

    if not json_output:
        for err in report.errors:
            msg = f"{escape(err.file)}: {escape(err.message)}"
            err_console.print(f"[red bold]error:[/red bold] {msg}")
    if report.errors:
        raise typer.Exit(code=1)


def main_entry() -> None:
    """Package entry point for ``bangtag-extract``."""
    app()


if __name__ == "__main__":
    main_entry()
