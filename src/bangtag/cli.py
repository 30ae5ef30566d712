"""Shared CLI utilities for bangtag commands.

Provides the config-loading helper, standardised output / error helpers and
file discovery so that every command reports errors, prints JSON and walks
directories the same way.

Usage in a command::

    import typer
    from bangtag.cli import error_exit, get_config, iter_sources, json_print

    app = typer.Typer()

    @app.command()
    def main(paths: list[Path] = typer.Argument(None)) -> None:
        cfg = get_config()
        files = iter_sources(paths, cfg)
        ...
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console

from bangtag.config import ConfigError, ProjectConfig, load_config
from bangtag.engine import SourceInput
from bangtag.profiles import language_for_path
from bangtag.utils import is_probably_binary

# Exit code for bad invocation or configuration
USAGE_ERROR = 2

err_console = Console(stderr=True)


def get_config(root: Path | None = None, *, json_mode: bool = False) -> ProjectConfig:
    """Load the project config, exiting with a readable error if it is malformed."""
    try:
        return load_config(root)
    except ConfigError as e:
        error_exit(str(e), json_mode=json_mode, code=USAGE_ERROR)


# ---------------------------------------------------------------------------
# Standardised output helpers
# ---------------------------------------------------------------------------


def error_exit(msg: str, *, json_mode: bool = False, code: int = 1) -> NoReturn:
    """Print *msg* as an error and ``raise typer.Exit(code)``."""
    if json_mode:
        print(json.dumps({"error": msg}, indent=2))
    else:
        err_console.print(f"[red bold]error:[/red bold] {msg}")
    raise typer.Exit(code=code)


def json_print(data: dict[str, Any] | list[Any]) -> None:
    """Print *data* as pretty-printed JSON to stdout."""
    print(json.dumps(data, indent=2, ensure_ascii=False))


def rel_display_path(filepath: Path, base_dir: Path | None = None) -> str:
    """Return a display-friendly path for *filepath*.

    Relative to *base_dir* when the file lives under it, otherwise the path
    as given.  Always uses forward slashes so output is stable across
    platforms.
    """
    if base_dir is not None:
        try:
            return filepath.resolve().relative_to(base_dir.resolve()).as_posix()
        except ValueError:
            pass
    return filepath.as_posix()


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------


def _is_excluded(relative: Path, exclude: list[str]) -> bool:
    return any(part in exclude for part in relative.parts[:-1]) or relative.name in exclude


def iter_sources(paths: list[Path] | None, cfg: ProjectConfig) -> list[Path]:
    """Return the files to scan, sorted and de-duplicated.

    Explicit file paths are always kept.  Directories are expanded with the
    config's ``include`` globs; anything under an ``exclude`` directory name
    and files that look binary are skipped.  With no *paths* the current
    directory is scanned.
    """
    if not paths:
        paths = [Path.cwd()]

    found: dict[Path, None] = {}
    for path in paths:
        if path.is_file():
            found[path] = None
            continue
        if not path.is_dir():
            continue
        for pattern in cfg.include:
            for candidate in sorted(path.glob(pattern)):
                if not candidate.is_file():
                    continue
                if _is_excluded(candidate.relative_to(path), cfg.exclude):
                    continue
                if is_probably_binary(candidate):
                    continue
                found[candidate] = None
    return sorted(found)


def build_inputs(
    files: list[Path],
    cfg: ProjectConfig,
    language: str | None = None,
    base_dir: Path | None = None,
) -> list[SourceInput]:
    """Turn discovered files into scan inputs with display names and language hints."""
    inputs = []
    for f in files:
        hint = language or language_for_path(f, cfg.languages)
        inputs.append(SourceInput(file=rel_display_path(f, base_dir), language=hint, path=f))
    return inputs
