"""Turn edited directory buffers into filesystem actions and apply them.

Each modified engine buffer is compared against the entry cache:

- a line with no cached id is a create;
- a cached id rendered under a different name, or in another buffer, is a
  move, and extra occurrences of the same id are copies;
- a cached id missing from every modified buffer is a delete.

Actions run one at a time through their adapter's ``perform_action``. The
first failure stops the chain and leaves every buffer modified.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .adapters import AdapterRegistry
from .adapters.base import COPY, CREATE, DELETE, MOVE, Action
from .cache import EntryCache
from .config import Config
from .entries import DIRECTORY
from .host import Editor
from .parser import parse_line, parse_new_entry
from .url import addslash, parse_url
from .view import View

logger = logging.getLogger(__name__)

WRITE_CANCELED = "Write canceled"
MUTATION_IN_PROGRESS = "Mutation already in progress"

WriteCallback = Callable[[str | None], None]

_ACTION_ORDER = {COPY: 0, DELETE: 1, MOVE: 2, CREATE: 3}


def _child_url(dir_url: str, name: str, entry_type: str) -> str:
    url = addslash(dir_url) + name
    return addslash(url) if entry_type == DIRECTORY else url


def is_simple_edit(actions: list[Action]) -> bool:
    """Creates and file moves/copies need no confirmation when configured so."""
    for action in actions:
        if action.type == DELETE:
            return False
        if action.type in (MOVE, COPY) and action.entry_type == DIRECTORY:
            return False
    return True


class Mutator:
    def __init__(
        self,
        editor: Editor,
        config: Config,
        registry: AdapterRegistry,
        cache: EntryCache,
        view: View,
    ) -> None:
        self.editor = editor
        self.config = config
        self.registry = registry
        self.cache = cache
        self.view = view
        self._in_progress = False

    def modified_buffers(self) -> list[int]:
        return [bufnr for bufnr in self.view.get_all_buffers() if self.editor.buffer(bufnr).modified]

    def create_actions_from_diffs(self, buffers: list[int] | None = None) -> list[Action]:
        if buffers is None:
            buffers = self.modified_buffers()
        actions: list[Action] = []
        # id -> list of (dir_url, name) where the id is rendered
        placements: dict[int, list[tuple[str, str]]] = {}
        diffed_urls: set[str] = set()
        for bufnr in buffers:
            url = self.editor.buffer(bufnr).name
            adapter = self.registry.get_adapter_by_scheme(url)
            if adapter is None:
                continue
            diffed_urls.add(url)
            column_defs = self.view.column_defs(adapter)
            seen_names: set[str] = set()
            for line in self.editor.buf_get_lines(bufnr):
                parsed, cached = parse_line(line, column_defs, self.cache)
                if parsed is not None and cached is not None:
                    placements.setdefault(cached.id, []).append((url, parsed.name))
                    seen_names.add(parsed.name)
                    continue
                if parsed is not None:
                    name, entry_type = parsed.name, parsed.type
                else:
                    entry = parse_new_entry(line)
                    if entry is None:
                        continue
                    name, entry_type = entry.name, entry.type
                if name in seen_names:
                    continue
                seen_names.add(name)
                actions.append(Action(CREATE, entry_type, url=_child_url(url, name, entry_type)))

        for url in diffed_urls:
            for name, cached in self.cache.list_url(url).items():
                spots = placements.get(cached.id, [])
                origin = (url, name)
                if not spots:
                    actions.append(Action(DELETE, cached.type, url=_child_url(url, name, cached.type)))
                    continue
                src_url = _child_url(url, name, cached.type)
                others = [spot for spot in spots if spot != origin]
                if origin in spots:
                    moves, copies = [], others
                else:
                    moves, copies = others[:1], others[1:]
                for dest_dir, dest_name in moves:
                    actions.append(
                        Action(MOVE, cached.type, src_url=src_url, dest_url=_child_url(dest_dir, dest_name, cached.type))
                    )
                for dest_dir, dest_name in copies:
                    actions.append(
                        Action(COPY, cached.type, src_url=src_url, dest_url=_child_url(dest_dir, dest_name, cached.type))
                    )

        for entry_id, spots in placements.items():
            parent_url = self.cache.get_parent_url(entry_id)
            cached = self.cache.get_entry_by_id(entry_id)
            if parent_url is None or cached is None or parent_url in diffed_urls:
                continue
            # rendered in an edited buffer but owned by an unedited one
            src_url = _child_url(parent_url, cached.name, cached.type)
            for dest_dir, dest_name in spots:
                actions.append(
                    Action(COPY, cached.type, src_url=src_url, dest_url=_child_url(dest_dir, dest_name, cached.type))
                )

        actions.sort(key=lambda action: _ACTION_ORDER[action.type])
        return actions

    def render_action(self, action: Action) -> str:
        adapter = self.registry.get_adapter_by_scheme(action.urls()[0])
        if adapter is not None and adapter.supports("render_action"):
            return adapter.render_action(action)
        if action.url is not None:
            return f"{action.type.upper()} {action.url}"
        return f"{action.type.upper()} {action.src_url} -> {action.dest_url}"

    def try_write_changes(self, confirm: bool | None = None, callback: WriteCallback | None = None) -> None:
        """Diff and apply all modified engine buffers.

        ``confirm``: ``True`` always asks, ``False`` never asks, ``None`` asks
        unless the edit is simple and ``skip_confirm_for_simple_edits`` is set.
        ``callback`` receives ``None`` after every action succeeded and the
        written buffers were marked unmodified, or an error message. A call
        made while an earlier write is still applying its actions is refused
        with ``MUTATION_IN_PROGRESS``.
        """
        if self._in_progress:
            if callback is not None:
                callback(MUTATION_IN_PROGRESS)
            return

        def finish(err: str | None) -> None:
            self._in_progress = False
            if callback is not None:
                callback(err)

        buffers = self.modified_buffers()
        actions = self.create_actions_from_diffs(buffers)
        if confirm is None:
            confirm = bool(actions) and not (self.config.skip_confirm_for_simple_edits and is_simple_edit(actions))
        if confirm and actions:
            message = "\n".join(self.render_action(action) for action in actions)
            if not self.editor.confirm(message):
                finish(WRITE_CANCELED)
                return

        self._in_progress = True
        remaining = list(actions)

        def run_next(err: str | None = None) -> None:
            if err is not None:
                logger.debug("Action failed: %s", err)
                finish(err)
                return
            if not remaining:
                self._on_applied(buffers, finish)
                return
            action = remaining.pop(0)
            adapter = self.registry.get_adapter_by_scheme(action.urls()[0])
            schemes = {self.registry.canonical_scheme(parse_url(url)[0]) for url in action.urls()}
            if adapter is None or not adapter.supports("perform_action"):
                finish(f"No adapter can perform {self.render_action(action)}")
                return
            if len(schemes) > 1:
                finish(f"Cannot {action.type} across schemes: {self.render_action(action)}")
                return
            adapter.perform_action(action, run_next)

        run_next()

    def _on_applied(self, buffers: list[int], finish: WriteCallback) -> None:
        for bufnr in buffers:
            if self.editor.buf_is_valid(bufnr):
                self.editor.buffer(bufnr).modified = False
        for bufnr in self.view.get_all_buffers():
            self.view.render_buffer_async(bufnr, {})
        finish(None)


__all__ = ["MUTATION_IN_PROGRESS", "Mutator", "WRITE_CANCELED", "is_simple_edit"]
