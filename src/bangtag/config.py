"""Project configuration loader for bangtag.

Reads ``bangtag.toml`` (or the ``[tool.bangtag]`` table of
``pyproject.toml``) from the project root and exposes every setting as a
plain attribute.  The root is found by walking up from the current
directory, the same way ``git`` locates ``.git/``.  A project without any
config file gets the defaults below.

Example ``bangtag.toml``::

    include = ["src/**/*", "docs/**/*.md"]
    exclude = [".git", "node_modules"]
    jobs = 8
    fail_on = ["UnclosedBlock", "UnmatchedEnd"]

    [languages]
    ".inc" = "c"

    [profiles.jinja]
    line = []
    block = [["{#", "#}"]]

Usage::

    from bangtag.config import load_config
    cfg = load_config()
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import,no-redef]

from bangtag.model import DiagnosticKind
from bangtag.profiles import CommentProfile

CONFIG_NAME = "bangtag.toml"
PYPROJECT_NAME = "pyproject.toml"

DEFAULT_EXCLUDE = [
    ".git",
    ".hg",
    ".svn",
    "__pycache__",
    "node_modules",
    ".venv",
    "venv",
    ".tox",
    "build",
    "dist",
]

DEFAULT_FAIL_ON = [
    DiagnosticKind.UNCLOSED_BLOCK,
    DiagnosticKind.UNMATCHED_END,
    DiagnosticKind.MALFORMED_PROPERTIES,
]


class ConfigError(ValueError):
    """The config file exists but its content is invalid."""


@dataclass
class ProjectConfig:
    """Parsed project configuration."""

    # Directory the config was found in (cwd when there is none)
    root: Path

    # File the settings came from, None for defaults
    source: Path | None = None

    include: list[str] = field(default_factory=lambda: ["**/*"])
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    jobs: int = 4
    fail_on: list[DiagnosticKind] = field(default_factory=lambda: list(DEFAULT_FAIL_ON))
    report_unrecognized: bool = False

    # Extension -> language overrides, e.g. {".inc": "c"}
    languages: dict[str, str] = field(default_factory=dict)

    # Extra or replacement comment profiles keyed by language name
    profiles: dict[str, CommentProfile] = field(default_factory=dict)


def _find_root(start: Path | None = None) -> tuple[Path, Path | None, dict[str, Any]]:
    """Walk up from *start* (or cwd) to the first directory holding settings.

    Returns ``(root, config_file, raw_settings)``.  A ``pyproject.toml``
    only counts when it has a ``[tool.bangtag]`` table.
    """
    candidate = (start or Path.cwd()).resolve()
    while True:
        own = candidate / CONFIG_NAME
        if own.is_file():
            return candidate, own, _read_toml(own)
        pyproject = candidate / PYPROJECT_NAME
        if pyproject.is_file():
            raw = _read_toml(pyproject).get("tool", {}).get("bangtag")
            if raw is not None:
                return candidate, pyproject, raw
        if candidate == candidate.parent:
            break
        candidate = candidate.parent
    return (start or Path.cwd()).resolve(), None, {}


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: invalid TOML: {e}") from e


def _string_list(raw: dict[str, Any], key: str, default: list[str]) -> list[str]:
    value = raw.get(key, default)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(value)


def _parse_profiles(raw: Any) -> dict[str, CommentProfile]:
    if not isinstance(raw, dict):
        raise ConfigError("'profiles' must be a table of [profiles.<language>] entries")
    profiles: dict[str, CommentProfile] = {}
    for name, row in raw.items():
        if not isinstance(row, dict):
            raise ConfigError(f"profiles.{name} must be a table")
        line = row.get("line", [])
        block = row.get("block", [])
        if not isinstance(line, list) or not all(isinstance(p, str) and p for p in line):
            raise ConfigError(f"profiles.{name}.line must be a list of non-empty strings")
        pairs: list[tuple[str, str]] = []
        for pair in block:
            if (
                not isinstance(pair, list)
                or len(pair) != 2
                or not all(isinstance(p, str) and p for p in pair)
            ):
                raise ConfigError(f"profiles.{name}.block entries must be [open, close] pairs")
            pairs.append((pair[0], pair[1]))
        key = name.lower()
        profiles[key] = CommentProfile(key, tuple(line), tuple(pairs))
    return profiles


def config_from_dict(raw: dict[str, Any], root: Path, source: Path | None = None) -> ProjectConfig:
    """Build a :class:`ProjectConfig` from an already-parsed settings table."""
    cfg = ProjectConfig(root=root, source=source)
    cfg.include = _string_list(raw, "include", cfg.include)
    cfg.exclude = _string_list(raw, "exclude", cfg.exclude)

    jobs = raw.get("jobs", cfg.jobs)
    if not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 1:
        raise ConfigError(f"'jobs' must be a positive integer, got {jobs!r}")
    cfg.jobs = jobs

    report = raw.get("report_unrecognized", cfg.report_unrecognized)
    if not isinstance(report, bool):
        raise ConfigError("'report_unrecognized' must be true or false")
    cfg.report_unrecognized = report

    if "fail_on" in raw:
        names = _string_list(raw, "fail_on", [])
        try:
            cfg.fail_on = [DiagnosticKind.parse(n) for n in names]
        except ValueError as e:
            raise ConfigError(f"fail_on: {e}") from e

    languages = raw.get("languages", {})
    if not isinstance(languages, dict) or not all(
        isinstance(v, str) for v in languages.values()
    ):
        raise ConfigError("'languages' must map file extensions to language names")
    cfg.languages = dict(languages)

    if "profiles" in raw:
        cfg.profiles = _parse_profiles(raw["profiles"])
    return cfg


def load_config(root: Path | None = None) -> ProjectConfig:
    """Load bangtag settings.

    Args:
        root: Directory to start the search from.  Auto-detected from the
              current directory if ``None``.

    Raises:
        ConfigError: The settings file exists but is malformed.
    """
    found_root, source, raw = _find_root(root)
    return config_from_dict(raw, found_root, source)
