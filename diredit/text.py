"""Text loading and terminal-safety helpers shared by adapters and the CLI."""

from __future__ import annotations

import re
from pathlib import Path

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def read_text(path: Path) -> str:
    """Read text using tolerant encoding fallback order.

    Attempts UTF-8, UTF-8 with BOM, then latin-1; as a final fallback decodes
    raw bytes with UTF-8 replacement semantics.
    """
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_bytes().decode("utf-8", errors="replace")


def split_lines(text: str) -> list[str]:
    """Split file text into buffer lines; an empty file is one empty line."""
    lines = text.splitlines()
    return lines if lines else [""]


def join_lines(lines: list[str]) -> str:
    """Inverse of :func:`split_lines` with a trailing newline."""
    if lines == [""]:
        return ""
    return "\n".join(lines) + "\n"


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes so entry names cannot move the cursor."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(ch)
            continue
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


__all__ = ["join_lines", "read_text", "sanitize_terminal_text", "split_lines"]
