"""Adapter contract for storage backends.

An adapter serves one URL scheme. Required operations report results through
callbacks, which may fire on a later scheduler drain; failures are passed as a
message string in the callback's ``err`` slot, never raised. Optional
capabilities are class attributes left as ``None`` when unsupported, queried
with :meth:`Adapter.supports`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..columns import ColumnDefinition
from ..entries import EntryType, ListedEntry

ListCallback = Callable[[str | None, list[ListedEntry] | None], None]
ActionCallback = Callable[[str | None], None]

CREATE = "create"
DELETE = "delete"
MOVE = "move"
COPY = "copy"

OPTIONAL_CAPABILITIES = ("get_parent", "render_action", "perform_action")


@dataclass(frozen=True)
class Action:
    """One filesystem mutation computed from edited directory text.

    ``url`` is the target for create/delete; move/copy use ``src_url`` and
    ``dest_url``.
    """

    type: str
    entry_type: EntryType
    url: str | None = None
    src_url: str | None = None
    dest_url: str | None = None

    def urls(self) -> tuple[str, ...]:
        return tuple(url for url in (self.url, self.src_url, self.dest_url) if url is not None)


class Adapter:
    """Base class for scheme backends."""

    name = ""
    get_parent: Callable[[str], str] | None = None
    render_action: Callable[[Action], str] | None = None
    perform_action: Callable[[Action, ActionCallback], None] | None = None

    def supports(self, capability: str) -> bool:
        """Return whether an optional capability is implemented."""
        if capability not in OPTIONAL_CAPABILITIES:
            raise ValueError(f"Unknown adapter capability: {capability}")
        return getattr(self, capability, None) is not None

    def list(self, url: str, callback: ListCallback) -> None:
        raise NotImplementedError

    def is_modifiable(self, bufnr: int) -> bool:
        raise NotImplementedError

    def get_column(self, name: str) -> ColumnDefinition | None:
        return None

    def normalize_url(self, url: str, callback: Callable[[str], None]) -> None:
        raise NotImplementedError

    def read_file(self, bufnr: int) -> None:
        raise NotImplementedError

    def write_file(self, bufnr: int) -> None:
        raise NotImplementedError


__all__ = [
    "Action",
    "ActionCallback",
    "Adapter",
    "COPY",
    "CREATE",
    "DELETE",
    "ListCallback",
    "MOVE",
    "OPTIONAL_CAPABILITIES",
]
