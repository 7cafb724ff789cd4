"""Domain datatypes for directory entries.

``ListedEntry`` is what an adapter reports for one child, ``CachedEntry`` is
the same record after the entry cache assigned it an id, and ``Entry`` is the
exported, read-only view handed to navigation and callers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

FILE = "file"
DIRECTORY = "directory"
SOCKET = "socket"
LINK = "link"

ENTRY_TYPES = frozenset({FILE, DIRECTORY, SOCKET, LINK})

EntryType = Literal["file", "directory", "socket", "link"]


@dataclass(frozen=True)
class Entry:
    """One child of a directory; ``id`` is ``None`` until it is persisted."""

    name: str
    type: EntryType
    id: int | None = None
    meta: Mapping[str, object] | None = None

    @property
    def is_directory_like(self) -> bool:
        """Directories, plus links whose target is a directory."""
        if self.type == DIRECTORY:
            return True
        if self.type != LINK or not self.meta:
            return False
        link_stat = self.meta.get("link_stat")
        return isinstance(link_stat, Mapping) and link_stat.get("type") == DIRECTORY


@dataclass(frozen=True)
class ListedEntry:
    """Adapter-reported child prior to id assignment."""

    name: str
    type: EntryType
    meta: Mapping[str, object] | None = None


@dataclass(frozen=True)
class CachedEntry:
    """Backend record known to the entry cache."""

    id: int
    name: str
    type: EntryType
    meta: Mapping[str, object] | None = None

    def export(self) -> Entry:
        return Entry(name=self.name, type=self.type, id=self.id, meta=self.meta)


__all__ = [
    "FILE",
    "DIRECTORY",
    "SOCKET",
    "LINK",
    "ENTRY_TYPES",
    "EntryType",
    "Entry",
    "ListedEntry",
    "CachedEntry",
]
