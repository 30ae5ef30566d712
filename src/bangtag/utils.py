"""Shared utilities for bangtag."""

import contextlib
import os
from pathlib import Path


def atomic_write_text(filepath: Path, text: str, encoding: str = "utf-8") -> None:
    """Write *text* next to *filepath* first, then move it into place.

    Readers never observe a half-written report; missing parent
    directories are created.
    """
    filepath.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = filepath.with_name(f".{filepath.name}.tmp")
    try:
        tmp_path.write_text(text, encoding=encoding)
        os.replace(tmp_path, filepath)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise


def is_probably_binary(filepath: Path, sniff: int = 8192) -> bool:
    """True if the first *sniff* bytes of *filepath* contain a NUL byte."""
    try:
        with open(filepath, "rb") as f:
            return b"\x00" in f.read(sniff)
    except OSError:
        return False
