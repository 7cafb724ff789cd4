"""Parse directory buffer lines back into entries.

Parsing is two-tier. A line carrying the hidden ``/<id>`` prefix is parsed
against the column grammar and, when the id is still cached, resolves to the
authoritative backend record. Anything else is text the user typed: the
trimmed line is the name, and a trailing ``/`` makes it a directory.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from .cache import EntryCache
from .columns import ColumnDefinition
from .entries import DIRECTORY, FILE, LINK, CachedEntry, Entry, EntryType

_LINE_ID_RE = re.compile(r"^/(\d+) (.*)$", re.DOTALL)


@dataclass(frozen=True)
class ParsedLine:
    """Structured view of one ``/<id>`` line."""

    id: int
    name: str
    type: EntryType
    columns: Mapping[str, str] = field(default_factory=dict)
    link_target: str | None = None


def classify_name(text: str) -> tuple[str, EntryType]:
    """Strip a trailing separator and report the implied entry type."""
    if text.endswith("/"):
        return text[:-1], DIRECTORY
    return text, FILE


def parse_line(
    line: str,
    column_defs: Sequence[tuple[ColumnDefinition, Mapping[str, object]]],
    cache: EntryCache,
) -> tuple[ParsedLine | None, CachedEntry | None]:
    """Parse a ``/<id>`` line; returns ``(None, None)`` for free text.

    The second element is the cached record for the id, or ``None`` when the
    id is unknown to the cache.
    """
    match = _LINE_ID_RE.match(line)
    if match is None:
        return None, None
    entry_id = int(match.group(1))
    rest = match.group(2)
    cells: dict[str, str] = {}
    for column, _conf in column_defs:
        parsed = column.parse(rest)
        if parsed is None:
            return None, None
        cells[column.name], rest = parsed

    entry = cache.get_entry_by_id(entry_id)
    link_target = None
    if entry is not None and entry.type == LINK and " -> " in rest:
        name, link_target = rest.split(" -> ", 1)
        entry_type: EntryType = LINK
    else:
        name, entry_type = classify_name(rest)
    if not name:
        return None, None
    parsed_line = ParsedLine(
        id=entry_id,
        name=name,
        type=entry_type,
        columns=cells,
        link_target=link_target,
    )
    return parsed_line, entry


def parse_new_entry(line: str) -> Entry | None:
    """Classify free text as a not-yet-persisted entry; blank -> ``None``."""
    name, entry_type = classify_name(line.strip())
    if not name:
        return None
    return Entry(name=name, type=entry_type)


def parse_entry(
    line: str,
    column_defs: Sequence[tuple[ColumnDefinition, Mapping[str, object]]],
    cache: EntryCache,
) -> Entry | None:
    """Resolve one buffer line to an :class:`Entry`.

    A structured line whose id has dropped out of the cache is classified by
    its parsed name only, so it reads as an uncommitted entry with no id.
    """
    parsed, cached = parse_line(line, column_defs, cache)
    if parsed is not None:
        if cached is not None:
            return cached.export()
        return Entry(name=parsed.name, type=parsed.type)
    return parse_new_entry(line)


__all__ = [
    "ParsedLine",
    "classify_name",
    "parse_entry",
    "parse_line",
    "parse_new_entry",
]
