"""main.py - Umbrella CLI entry point for bangtag.

Lazily imports and registers all subcommand typer apps so that a broken
optional module doesn't prevent the entire CLI from loading.  Each module
exposes a single ``main`` command that is registered flat via
``app.command()``.
"""

import importlib
import sys
from collections.abc import Callable

import typer

from bangtag import __version__

app = typer.Typer(
    help="Extract and check @! annotations embedded in source comments.",
    rich_markup_mode="rich",
    no_args_is_help=True,
    epilog="""\
[bold]Typical workflow:[/bold]
  bangtag extract              List every annotation under the current directory
  bangtag extract --json       Export annotations for downstream tools
  bangtag lint                 Fail on unclosed blocks and malformed properties

[dim]Commands read settings from bangtag.toml or \\[tool.bangtag] in pyproject.toml.
Run 'bangtag <cmd> --help' for details.[/dim]""",
)

# Single-command modules, registered as flat commands via app.command().
_SINGLE_COMMANDS: list[tuple[str, str, str]] = [
    ("extract", "bangtag.extract", "Extract annotations as a table or JSON."),
    ("lint", "bangtag.lint", "Report annotation diagnostics; non-zero exit on failures."),
]


def _make_stub_cmd(mod_name: str, err: ImportError) -> Callable[[], None]:
    """Create a stub command function that reports a missing dependency."""

    def _stub() -> None:
        print(f"Error: could not load '{mod_name}': {err}", file=sys.stderr)
        raise typer.Exit(code=1)

    return _stub


for _name, _module, _help in _SINGLE_COMMANDS:
    try:
        _mod = importlib.import_module(_module)
        _epilog = getattr(_mod.app.info, "epilog", None)
        if not isinstance(_epilog, str):
            _epilog = None
        app.command(name=_name, help=_help, epilog=_epilog)(_mod.main)
    except ImportError as _exc:
        app.command(name=_name, help=f"[unavailable] {_help}")(_make_stub_cmd(_module, _exc))


def _version_callback(value: bool) -> None:
    if value:
        print(f"bangtag {__version__}")
        raise typer.Exit()


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Extract and check @! annotations embedded in source comments."""


def main() -> None:
    app()


if __name__ == "__main__":
    main()
