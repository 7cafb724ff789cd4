"""Column grammar for directory buffer lines.

A rendered line reads ``/<id> <column> <column> ... <name>``. The id prefix is
concealed by the host; each column renders to one or more whitespace-free
tokens so parsing can peel them off left to right. Cells are right-aligned, so
alignment padding always sits in front of a cell and exactly one space
separates the last cell from the name. Names with leading spaces survive a
render/parse round trip.
"""

from __future__ import annotations

import re
import stat as stat_module
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass

from .entries import DIRECTORY, LINK, SOCKET, CachedEntry

ColumnSpec = str | tuple[str, Mapping[str, object]]

ID_WIDTH = 3
MTIME_FORMAT = "%Y-%m-%d %H:%M"
EMPTY_CELL = "-"

_TYPE_LETTERS = {DIRECTORY: "d", LINK: "l", SOCKET: "s"}


@dataclass(frozen=True)
class ColumnDefinition:
    """One renderable/parseable column.

    ``pattern`` matches the rendered cell; ``render`` returns the cell text for
    an entry given the column options from config.
    """

    name: str
    pattern: str
    render: Callable[[CachedEntry, Mapping[str, object]], str]

    def parse(self, line: str) -> tuple[str, str] | None:
        """Split ``line`` into ``(cell, remainder)`` or ``None`` on mismatch."""
        match = re.match(rf"^ *({self.pattern}) (.*)$", line, re.DOTALL)
        if match is None:
            return None
        return match.group(1), match.group(2)


def normalize_column_spec(spec: ColumnSpec) -> tuple[str, Mapping[str, object]]:
    if isinstance(spec, str):
        return spec, {}
    name, conf = spec
    return name, dict(conf or {})


def get_supported_columns(adapter, specs: Iterable[ColumnSpec]) -> list[tuple[ColumnDefinition, Mapping[str, object]]]:
    """Resolve configured column specs against what ``adapter`` provides."""
    supported: list[tuple[ColumnDefinition, Mapping[str, object]]] = []
    for spec in specs:
        name, conf = normalize_column_spec(spec)
        column = adapter.get_column(name)
        if column is not None:
            supported.append((column, conf))
    return supported


def format_id(entry_id: int) -> str:
    return f"/{entry_id:0{ID_WIDTH}d}"


def format_name(entry: CachedEntry) -> str:
    """Render the name cell, marking directories and link targets."""
    if entry.type == DIRECTORY:
        return entry.name + "/"
    if entry.type == LINK and entry.meta and entry.meta.get("link"):
        return f"{entry.name} -> {entry.meta['link']}"
    return entry.name


def render_lines(
    entries: Sequence[CachedEntry],
    column_defs: Sequence[tuple[ColumnDefinition, Mapping[str, object]]],
) -> list[str]:
    """Render entries as aligned buffer lines."""
    cells = [[column.render(entry, conf) or EMPTY_CELL for column, conf in column_defs] for entry in entries]
    widths = [max((len(row[idx]) for row in cells), default=0) for idx in range(len(column_defs))]
    lines: list[str] = []
    for entry, row in zip(entries, cells):
        parts = [format_id(entry.id)]
        parts.extend(cell.rjust(width) for cell, width in zip(row, widths))
        parts.append(format_name(entry))
        lines.append(" ".join(parts))
    return lines


def _stat_value(entry: CachedEntry, key: str):
    if not entry.meta:
        return None
    stat = entry.meta.get("stat")
    if not isinstance(stat, Mapping):
        return None
    return stat.get(key)


def format_size(size: int) -> str:
    """Human-readable size with one decimal for K/M/G/T."""
    value = float(size)
    for suffix in ("", "K", "M", "G", "T"):
        if value < 1024 or suffix == "T":
            if not suffix:
                return str(int(value))
            return f"{value:.1f}{suffix}"
        value /= 1024
    return str(size)


def _render_type(entry: CachedEntry, _conf: Mapping[str, object]) -> str:
    return _TYPE_LETTERS.get(entry.type, "-")


def _render_size(entry: CachedEntry, _conf: Mapping[str, object]) -> str:
    size = _stat_value(entry, "size")
    if entry.type == DIRECTORY or not isinstance(size, int):
        return EMPTY_CELL
    return format_size(size)


def _render_permissions(entry: CachedEntry, _conf: Mapping[str, object]) -> str:
    mode = _stat_value(entry, "mode")
    if not isinstance(mode, int):
        return EMPTY_CELL
    return stat_module.filemode(mode)


def _render_mtime(entry: CachedEntry, conf: Mapping[str, object]) -> str:
    mtime = _stat_value(entry, "mtime")
    if not isinstance(mtime, (int, float)):
        return EMPTY_CELL
    return time.strftime(MTIME_FORMAT, time.localtime(mtime))


TYPE_COLUMN = ColumnDefinition("type", r"[-dls]", _render_type)
SIZE_COLUMN = ColumnDefinition("size", r"\S+", _render_size)
PERMISSIONS_COLUMN = ColumnDefinition("permissions", r"\S+", _render_permissions)
MTIME_COLUMN = ColumnDefinition("mtime", r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}|-", _render_mtime)

STAT_COLUMNS: dict[str, ColumnDefinition] = {
    column.name: column for column in (TYPE_COLUMN, SIZE_COLUMN, PERMISSIONS_COLUMN, MTIME_COLUMN)
}


__all__ = [
    "ColumnSpec",
    "ColumnDefinition",
    "STAT_COLUMNS",
    "format_id",
    "format_name",
    "format_size",
    "get_supported_columns",
    "normalize_column_spec",
    "render_lines",
]
