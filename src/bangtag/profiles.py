"""profiles.py - Comment delimiter table for the languages bangtag understands.

The scanner never parses host syntax; it only needs to know how comments
start and end.  Each language is one row in ``_PROFILES`` and unknown
languages fall back to :data:`DEFAULT_PROFILE`, which accepts the most
common delimiters so that unrecognized files still scan usefully.

Usage::

    from bangtag.profiles import profile_for, language_for_path

    profile = profile_for(language_for_path(Path("app/main.rs")))
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CommentProfile:
    """Line-comment prefixes and block-comment delimiters of one host syntax."""

    name: str
    line_prefixes: tuple[str, ...] = ()
    block_delimiters: tuple[tuple[str, str], ...] = ()


DEFAULT_PROFILE = CommentProfile(
    name="default",
    line_prefixes=("#", "//"),
    block_delimiters=(("/*", "*/"), ("<!--", "-->")),
)

# ---------------------------------------------------------------------------
# Language presets
# ---------------------------------------------------------------------------

_HASH = ("#",)
_C_LINE = ("//",)
_C_BLOCK = (("/*", "*/"),)
_XML_BLOCK = (("<!--", "-->"),)

_PROFILES: dict[str, CommentProfile] = {
    "python": CommentProfile("python", _HASH),
    "shell": CommentProfile("shell", _HASH),
    "ruby": CommentProfile("ruby", _HASH, (("=begin", "=end"),)),
    "perl": CommentProfile("perl", _HASH),
    "r": CommentProfile("r", _HASH),
    "yaml": CommentProfile("yaml", _HASH),
    "toml": CommentProfile("toml", _HASH),
    "make": CommentProfile("make", _HASH),
    "dockerfile": CommentProfile("dockerfile", _HASH),
    "cmake": CommentProfile("cmake", _HASH, (("#[[", "]]"),)),
    "powershell": CommentProfile("powershell", _HASH, (("<#", "#>"),)),
    "ini": CommentProfile("ini", (";", "#")),
    "c": CommentProfile("c", _C_LINE, _C_BLOCK),
    "cpp": CommentProfile("cpp", _C_LINE, _C_BLOCK),
    "csharp": CommentProfile("csharp", _C_LINE, _C_BLOCK),
    "java": CommentProfile("java", _C_LINE, _C_BLOCK),
    "kotlin": CommentProfile("kotlin", _C_LINE, _C_BLOCK),
    "scala": CommentProfile("scala", _C_LINE, _C_BLOCK),
    "swift": CommentProfile("swift", _C_LINE, _C_BLOCK),
    "go": CommentProfile("go", _C_LINE, _C_BLOCK),
    "rust": CommentProfile("rust", _C_LINE, _C_BLOCK),
    "javascript": CommentProfile("javascript", _C_LINE, _C_BLOCK),
    "typescript": CommentProfile("typescript", _C_LINE, _C_BLOCK),
    "dart": CommentProfile("dart", _C_LINE, _C_BLOCK),
    "php": CommentProfile("php", ("//", "#"), _C_BLOCK),
    "css": CommentProfile("css", (), _C_BLOCK),
    "scss": CommentProfile("scss", _C_LINE, _C_BLOCK),
    "sql": CommentProfile("sql", ("--",), _C_BLOCK),
    "lua": CommentProfile("lua", ("--",), (("--[[", "]]"),)),
    "haskell": CommentProfile("haskell", ("--",), (("{-", "-}"),)),
    "elm": CommentProfile("elm", ("--",), (("{-", "-}"),)),
    "html": CommentProfile("html", (), _XML_BLOCK),
    "xml": CommentProfile("xml", (), _XML_BLOCK),
    "markdown": CommentProfile("markdown", (), _XML_BLOCK),
    "vue": CommentProfile("vue", _C_LINE, _C_BLOCK + _XML_BLOCK),
    "lisp": CommentProfile("lisp", (";",), (("#|", "|#"),)),
    "clojure": CommentProfile("clojure", (";",)),
    "erlang": CommentProfile("erlang", ("%",)),
    "latex": CommentProfile("latex", ("%",)),
    "matlab": CommentProfile("matlab", ("%",), (("%{", "%}"),)),
    "fortran": CommentProfile("fortran", ("!",)),
    "vb": CommentProfile("vb", ("'",)),
    "batch": CommentProfile("batch", ("::", "REM ", "rem ")),
    "ocaml": CommentProfile("ocaml", (), (("(*", "*)"),)),
}

# Alternative spellings accepted as language hints.
_ALIASES = {
    "py": "python",
    "sh": "shell",
    "bash": "shell",
    "zsh": "shell",
    "rb": "ruby",
    "pl": "perl",
    "yml": "yaml",
    "makefile": "make",
    "ps1": "powershell",
    "cfg": "ini",
    "h": "c",
    "c++": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "hpp": "cpp",
    "cs": "csharp",
    "c#": "csharp",
    "kt": "kotlin",
    "rs": "rust",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "htm": "html",
    "md": "markdown",
    "hs": "haskell",
    "el": "lisp",
    "clj": "clojure",
    "erl": "erlang",
    "tex": "latex",
    "f90": "fortran",
    "vbs": "vb",
    "bat": "batch",
    "cmd": "batch",
    "ml": "ocaml",
}

# File extension (lowercase, with dot) -> language name.
_EXTENSIONS: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".sh": "shell",
    ".bash": "shell",
    ".zsh": "shell",
    ".rb": "ruby",
    ".pl": "perl",
    ".pm": "perl",
    ".r": "r",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".mk": "make",
    ".cmake": "cmake",
    ".ps1": "powershell",
    ".ini": "ini",
    ".cfg": "ini",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".hh": "cpp",
    ".cs": "csharp",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".scala": "scala",
    ".swift": "swift",
    ".go": "go",
    ".rs": "rust",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".dart": "dart",
    ".php": "php",
    ".css": "css",
    ".scss": "scss",
    ".less": "scss",
    ".sql": "sql",
    ".lua": "lua",
    ".hs": "haskell",
    ".elm": "elm",
    ".html": "html",
    ".htm": "html",
    ".xml": "xml",
    ".svg": "xml",
    ".md": "markdown",
    ".markdown": "markdown",
    ".vue": "vue",
    ".lisp": "lisp",
    ".el": "lisp",
    ".clj": "clojure",
    ".erl": "erlang",
    ".tex": "latex",
    ".m": "matlab",
    ".f90": "fortran",
    ".vb": "vb",
    ".bat": "batch",
    ".cmd": "batch",
    ".ml": "ocaml",
}

_FILENAMES = {
    "makefile": "make",
    "gnumakefile": "make",
    "dockerfile": "dockerfile",
    "cmakelists.txt": "cmake",
    "rakefile": "ruby",
    "gemfile": "ruby",
}


def _normalize_hint(hint: str) -> str:
    name = hint.strip().lower().lstrip(".")
    return _ALIASES.get(name, name)


def profile_for(
    language_hint: str | None,
    extra: dict[str, CommentProfile] | None = None,
) -> CommentProfile:
    """Return the comment profile for *language_hint*.

    Accepts language names, common aliases and file extensions (``"py"``,
    ``".rs"``).  Profiles in *extra* (usually from the project config) take
    precedence over the built-in table.  Unknown or missing hints return
    :data:`DEFAULT_PROFILE`; absence of a match is not an error.
    """
    if not language_hint:
        return DEFAULT_PROFILE
    raw = language_hint.strip().lower()
    name = _normalize_hint(raw)
    if extra:
        for candidate in (raw, name):
            if candidate in extra:
                return extra[candidate]
    if name in _PROFILES:
        return _PROFILES[name]
    by_ext = _EXTENSIONS.get("." + raw.lstrip("."))
    if by_ext:
        return _PROFILES[by_ext]
    return DEFAULT_PROFILE


def language_for_path(path: Path | str, overrides: dict[str, str] | None = None) -> str | None:
    """Guess the language of *path* from its extension or well-known filename.

    Args:
        path: File path (only the name is inspected).
        overrides: Extension -> language mapping that wins over the built-in
                   table, e.g. ``{".inc": "c"}``.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if overrides:
        lowered = {"." + k.lower().lstrip("."): v for k, v in overrides.items()}
        if suffix in lowered:
            return lowered[suffix]
    name = p.name.lower()
    if name in _FILENAMES:
        return _FILENAMES[name]
    return _EXTENSIONS.get(suffix)


def known_languages() -> list[str]:
    """Return the sorted names of all built-in profiles."""
    return sorted(_PROFILES)
