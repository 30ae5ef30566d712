"""bangtag: annotation extraction for ``@!`` directives in comments.

Scans text in any host language through its comment channel, recovers
inline and begin/end block annotations with their JSON properties and tags,
and resolves the declaration or region each one applies to.
"""

from bangtag.engine import ScanError, scan_bytes, scan_many, scan_path, scan_text
from bangtag.model import (
    Annotation,
    AnnotationForm,
    Diagnostic,
    DiagnosticKind,
    Location,
    ScanReport,
    ScanResult,
    Scope,
    ScopeKind,
)

__version__ = "0.1.0"

__all__ = [
    "Annotation",
    "AnnotationForm",
    "Diagnostic",
    "DiagnosticKind",
    "Location",
    "ScanError",
    "ScanReport",
    "ScanResult",
    "Scope",
    "ScopeKind",
    "scan_bytes",
    "scan_many",
    "scan_path",
    "scan_text",
]
