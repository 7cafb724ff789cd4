"""In-memory entry cache keyed by directory URL and entry id.

Ids stay stable across re-listings of the same directory so that a rendered
line keeps pointing at the same backend record after a refresh.
"""

from __future__ import annotations

from collections.abc import Iterable

from .entries import CachedEntry, EntryType, ListedEntry
from .url import addslash


class EntryCache:
    """Id allocator plus ``url -> {name: CachedEntry}`` listing store."""

    def __init__(self) -> None:
        self._next_id = 1
        self._by_id: dict[int, CachedEntry] = {}
        self._parent_by_id: dict[int, str] = {}
        self._by_url: dict[str, dict[str, CachedEntry]] = {}

    def create_entry(
        self,
        parent_url: str,
        name: str,
        entry_type: EntryType,
        meta=None,
    ) -> CachedEntry:
        """Return the cached record for ``name`` under ``parent_url``.

        An existing record of the same type keeps its id and takes the new
        metadata; anything else gets a freshly allocated id.
        """
        parent_url = addslash(parent_url)
        children = self._by_url.setdefault(parent_url, {})
        existing = children.get(name)
        if existing is not None and existing.type == entry_type:
            entry = CachedEntry(id=existing.id, name=name, type=entry_type, meta=meta)
        else:
            if existing is not None:
                self._forget_id(existing.id)
            entry = CachedEntry(id=self._next_id, name=name, type=entry_type, meta=meta)
            self._next_id += 1
        self.store_entry(parent_url, entry)
        return entry

    def store_entry(self, parent_url: str, entry: CachedEntry) -> None:
        parent_url = addslash(parent_url)
        self._by_url.setdefault(parent_url, {})[entry.name] = entry
        self._by_id[entry.id] = entry
        self._parent_by_id[entry.id] = parent_url

    def replace_listing(self, parent_url: str, listed: Iterable[ListedEntry]) -> list[CachedEntry]:
        """Store a fresh listing, dropping children that disappeared."""
        parent_url = addslash(parent_url)
        entries = [self.create_entry(parent_url, item.name, item.type, item.meta) for item in listed]
        keep = {entry.name for entry in entries}
        children = self._by_url.get(parent_url, {})
        for name in [name for name in children if name not in keep]:
            self._forget_id(children.pop(name).id)
        return entries

    def get_entry_by_id(self, entry_id: int) -> CachedEntry | None:
        return self._by_id.get(entry_id)

    def get_parent_url(self, entry_id: int) -> str | None:
        return self._parent_by_id.get(entry_id)

    def list_url(self, url: str) -> dict[str, CachedEntry]:
        """Return a copy of the cached children of ``url``."""
        return dict(self._by_url.get(addslash(url), {}))

    def remove_entry(self, entry_id: int) -> None:
        parent_url = self._parent_by_id.get(entry_id)
        entry = self._by_id.get(entry_id)
        if parent_url is not None and entry is not None:
            self._by_url.get(parent_url, {}).pop(entry.name, None)
        self._forget_id(entry_id)

    def clear(self) -> None:
        self._by_id.clear()
        self._parent_by_id.clear()
        self._by_url.clear()

    def _forget_id(self, entry_id: int) -> None:
        self._by_id.pop(entry_id, None)
        self._parent_by_id.pop(entry_id, None)


__all__ = ["EntryCache"]
