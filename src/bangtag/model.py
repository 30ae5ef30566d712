"""model.py - Immutable records produced by a bangtag scan.

An :class:`Annotation` is the unit of extracted metadata; a
:class:`Diagnostic` reports a recoverable anomaly met while scanning.
:class:`ScanResult` bundles both for one file and :class:`ScanReport`
collects results across many files.  Query helpers such as
:meth:`ScanResult.by_key` are read-only views over the same tuples.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Union

# Closed variant of values a property may hold.
JsonScalar = Union[str, int, float, bool, None]
JsonValue = Union[JsonScalar, list["JsonValue"], dict[str, "JsonValue"]]


def _freeze(value: Any) -> Any:
    """Return a read-only copy of a JSON value: arrays become tuples, objects mapping proxies."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Inverse of :func:`_freeze`, giving plain lists and dicts for serialization."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class AnnotationForm(str, Enum):
    """Structural form of an annotation once begin/end markers are collapsed."""

    INLINE = "Inline"
    BLOCK = "Block"


class ScopeKind(str, Enum):
    """What part of the text an annotation applies to."""

    FILE_LEVEL = "FileLevel"
    DECLARATION = "Declaration"
    REGION = "Region"
    TRAILING = "Trailing"


class DiagnosticKind(str, Enum):
    """Categories of recoverable anomalies reported during a scan."""

    MALFORMED_PROPERTIES = "MalformedProperties"
    MALFORMED_VALUE = "MalformedValue"
    MALFORMED_TAG_TOKEN = "MalformedTagToken"
    UNMATCHED_END = "UnmatchedEnd"
    UNCLOSED_BLOCK = "UnclosedBlock"
    DANGLING_ANNOTATION = "DanglingAnnotation"
    UNRECOGNIZED_KEY_CHARSET = "UnrecognizedKeyCharset"

    @classmethod
    def parse(cls, name: str) -> DiagnosticKind:
        """Look up a kind by value (``"UnclosedBlock"``) or member name (``"UNCLOSED_BLOCK"``).

        Matching ignores case, dashes and underscores.
        """
        wanted = name.replace("_", "").replace("-", "").lower()
        for kind in cls:
            if wanted in (kind.value.lower(), kind.name.replace("_", "").lower()):
                return kind
        raise ValueError(f"Unknown diagnostic kind: {name!r}")


@dataclass(frozen=True)
class Location:
    """File identifier plus an inclusive, 1-based line range."""

    file: str
    start: int
    end: int

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "start": self.start, "end": self.end}


@dataclass(frozen=True)
class Scope:
    """Resolved binding of an annotation.

    For ``DECLARATION`` scopes ``start == end`` is the target line and
    ``text`` holds its raw content.  ``REGION`` covers the begin/end marker
    lines inclusively.  ``FILE_LEVEL`` spans the whole file and
    ``TRAILING`` is the empty scope at end of file.
    """

    kind: ScopeKind
    start: int
    end: int
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "start": self.start, "end": self.end, "text": self.text}


@dataclass(frozen=True)
class Annotation:
    """A parsed ``@!`` directive with its resolved scope.

    ``properties`` is frozen all the way down: JSON arrays read back as
    tuples and objects as read-only mappings.  :meth:`to_dict` returns plain
    lists and dicts again.
    """

    key: str
    form: AnnotationForm
    location: Location
    scope: Scope
    value: JsonScalar = None
    properties: Mapping[str, JsonValue] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    salvaged: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", _freeze(self.properties))
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(self.tags))

    @property
    def line(self) -> int:
        """Line of the (begin) marker."""
        return self.location.start

    def is_for_agent(self, agent: str) -> bool:
        """True for ``@!agent "<agent>"`` or an ``agent`` property naming *agent*."""
        if self.key == "agent" and self.value == agent:
            return True
        prop = self.properties.get("agent")
        if isinstance(prop, tuple):
            return agent in prop
        return prop == agent

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible types."""
        return {
            "key": self.key,
            "form": self.form.value,
            "value": self.value,
            "properties": _thaw(self.properties),
            "tags": sorted(self.tags),
            "location": self.location.to_dict(),
            "scope": self.scope.to_dict(),
            "salvaged": self.salvaged,
        }


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal anomaly: its kind, best-effort location and a message."""

    kind: DiagnosticKind
    location: Location
    message: str

    @property
    def line(self) -> int:
        return self.location.start

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "location": self.location.to_dict(),
            "message": self.message,
        }


@dataclass(frozen=True)
class ScanResult:
    """Annotations and diagnostics extracted from one file."""

    file: str
    annotations: tuple[Annotation, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self.annotations)

    def __len__(self) -> int:
        return len(self.annotations)

    def by_key(self, key: str) -> tuple[Annotation, ...]:
        """Annotations whose key equals *key* (case-sensitive)."""
        return tuple(a for a in self.annotations if a.key == key)

    def by_tag(self, tag: str) -> tuple[Annotation, ...]:
        """Annotations carrying *tag*."""
        return tuple(a for a in self.annotations if tag in a.tags)

    def by_agent(self, agent: str) -> tuple[Annotation, ...]:
        """Annotations addressed to *agent*.

        Matches ``@!agent "<name>"`` as well as an ``"agent"`` property equal
        to (or, for arrays, containing) *agent*.
        """
        return tuple(a for a in self.annotations if a.is_for_agent(agent))

    def keys(self) -> list[str]:
        """Distinct keys in first-seen order."""
        return list(dict.fromkeys(a.key for a in self.annotations))

    def diagnostics_of(self, *kinds: DiagnosticKind) -> tuple[Diagnostic, ...]:
        """Diagnostics restricted to *kinds* (all when none given)."""
        if not kinds:
            return self.diagnostics
        return tuple(d for d in self.diagnostics if d.kind in kinds)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "annotations": [a.to_dict() for a in self.annotations],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass(frozen=True)
class FileError:
    """A file that could not be scanned at all (unreadable or not text)."""

    file: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"file": self.file, "error": self.message}


@dataclass
class ScanReport:
    """Ordered per-file results of a multi-file scan."""

    results: list[ScanResult] = field(default_factory=list)
    errors: list[FileError] = field(default_factory=list)

    def __iter__(self) -> Iterator[ScanResult]:
        return iter(self.results)

    def annotations(self) -> list[Annotation]:
        return [a for r in self.results for a in r.annotations]

    def diagnostics(self, kinds: Iterable[DiagnosticKind] | None = None) -> list[Diagnostic]:
        wanted = set(kinds) if kinds is not None else None
        return [
            d for r in self.results for d in r.diagnostics if wanted is None or d.kind in wanted
        ]

    def by_key(self, key: str) -> list[Annotation]:
        return [a for r in self.results for a in r.by_key(key)]

    def by_tag(self, tag: str) -> list[Annotation]:
        return [a for r in self.results for a in r.by_tag(tag)]

    def by_agent(self, agent: str) -> list[Annotation]:
        return [a for r in self.results for a in r.by_agent(agent)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": [r.to_dict() for r in self.results],
            "errors": [e.to_dict() for e in self.errors],
        }
