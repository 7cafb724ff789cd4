"""Directory buffer rendering and window-option bookkeeping.

``render_buffer_async`` lists a directory through its adapter and replaces the
buffer text once the listing arrives. A newer render of the same buffer, or
the buffer being wiped, turns an in-flight listing into a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from .adapters import AdapterRegistry
from .cache import EntryCache
from .columns import ColumnSpec, get_supported_columns, render_lines
from .config import FILETYPE, Config, save_columns
from .entries import DIRECTORY, CachedEntry, ListedEntry
from .host import ERROR, Editor
from .parser import parse_entry
from .state import SessionState

logger = logging.getLogger(__name__)

LOADING_VAR = "diredit_loading"

RenderCallback = Callable[[str | None], None]


def sort_key(entry: CachedEntry) -> tuple[bool, str, str]:
    """Directories first, then case-insensitive name."""
    return (entry.type != DIRECTORY, entry.name.lower(), entry.name)


class View:
    """Renders engine buffers and tracks which buffers belong to the engine."""

    def __init__(
        self,
        editor: Editor,
        config: Config,
        registry: AdapterRegistry,
        cache: EntryCache,
        state: SessionState,
    ) -> None:
        self.editor = editor
        self.config = config
        self.registry = registry
        self.cache = cache
        self.state = state

    def is_engine_buffer(self, bufnr: int) -> bool:
        return self.editor.buf_is_valid(bufnr) and self.editor.buffer(bufnr).filetype == FILETYPE

    def get_all_buffers(self) -> list[int]:
        return [bufnr for bufnr in self.editor.list_bufs() if self.is_engine_buffer(bufnr)]

    def column_defs(self, adapter):
        return get_supported_columns(adapter, self.config.columns)

    def set_loading(self, bufnr: int, loading: bool) -> None:
        if self.editor.buf_is_valid(bufnr):
            self.editor.buffer(bufnr).vars[LOADING_VAR] = loading

    def is_loading(self, bufnr: int) -> bool:
        return self.editor.buf_is_valid(bufnr) and bool(self.editor.buffer(bufnr).vars.get(LOADING_VAR))

    def initialize(self, bufnr: int) -> None:
        """Turn a resolved directory buffer into an engine view and render it."""
        buffer = self.editor.buffer(bufnr)
        buffer.buftype = "acwrite"
        buffer.bufhidden = "hide"
        buffer.filetype = FILETYPE

        def on_rendered(err: str | None) -> None:
            if err is not None:
                self.editor.notify(f"Error rendering {buffer.name}: {err}", ERROR)
                return
            if self.editor.win_is_valid(self.editor.current_win) and self.editor.current_buf() == bufnr:
                self.maybe_set_cursor()

        self.render_buffer_async(bufnr, {}, on_rendered)

    def render_buffer_async(
        self,
        bufnr: int,
        opts: Mapping[str, object],
        callback: RenderCallback | None = None,
    ) -> None:
        """List the buffer's URL and replace its lines with the rendered entries.

        ``opts["refetch"] = False`` re-renders from the cache without listing.
        """
        def finish(err: str | None) -> None:
            if callback is not None:
                callback(err)

        url = self.editor.buffer(bufnr).name
        adapter = self.registry.get_adapter_by_scheme(url)
        if adapter is None:
            finish(f"No adapter for {url}")
            return
        generation = self.state.bump_render_generation(bufnr)
        self.set_loading(bufnr, True)

        def on_list(err: str | None, listed: list[ListedEntry] | None) -> None:
            if not self.editor.buf_is_valid(bufnr) or not self.state.is_current_render(bufnr, generation):
                logger.debug("Dropping stale listing for buffer %d (%s)", bufnr, url)
                return
            self.set_loading(bufnr, False)
            if err is not None:
                finish(err)
                return
            entries = self.cache.replace_listing(url, listed or [])
            self._apply_entries(bufnr, entries, adapter)
            finish(None)

        if opts.get("refetch", True) is False:
            cached = list(self.cache.list_url(url).values())
            self.editor.scheduler.call_soon(
                lambda: on_list(None, [ListedEntry(entry.name, entry.type, entry.meta) for entry in cached])
            )
            return
        adapter.list(url, on_list)

    def _apply_entries(self, bufnr: int, entries: list[CachedEntry], adapter) -> None:
        lines = render_lines(sorted(entries, key=sort_key), self.column_defs(adapter))
        self.editor.buf_set_lines(bufnr, lines, modified=False)
        buffer = self.editor.buffer(bufnr)
        buffer.modifiable = adapter.is_modifiable(bufnr)
        logger.debug("Rendered %d entries into buffer %d", len(entries), bufnr)

    def set_last_cursor(self, url: str, name: str | None, lnum: int | None = None) -> None:
        self.state.set_last_cursor(url, name, lnum)

    def maybe_set_cursor(self) -> None:
        """Move the cursor onto the remembered child of the current view."""
        bufnr = self.editor.current_buf()
        url = self.editor.buffer(bufnr).name
        target = self.state.last_cursor.get(url)
        if target is None or self.is_loading(bufnr):
            return
        adapter = self.registry.get_adapter_by_scheme(url)
        if adapter is None:
            return
        column_defs = self.column_defs(adapter)
        lines = self.editor.buf_get_lines(bufnr)
        for lnum, line in enumerate(lines, start=1):
            entry = parse_entry(line, column_defs, self.cache)
            if entry is not None and entry.name == target.name:
                col = max(0, line.rfind(target.name))
                self.editor.win_set_cursor(None, (lnum, col))
                self.state.set_last_cursor(url, None)
                return
        if target.lnum is not None:
            self.editor.win_set_cursor(None, (target.lnum, 0))
        self.state.set_last_cursor(url, None)

    def set_win_options(self, winid: int | None = None) -> None:
        """Apply engine window options, saving originals for later restore."""
        window = self.editor.window(winid)
        record = self.state.ensure_window_record(window.winid)
        for key, value in self.config.win_options.items():
            if self.config.restore_win_options and key not in record.saved_options:
                record.saved_options[key] = window.options.get(key)
            window.options[key] = value

    def restore_win_options(self, winid: int | None = None) -> None:
        window = self.editor.window(winid)
        record = self.state.window_record(window.winid)
        if record is None:
            return
        for key, value in record.saved_options.items():
            window.options[key] = value
        record.saved_options.clear()

    def set_columns(self, columns: list[ColumnSpec], persist: bool = False) -> None:
        """Change displayed columns and re-render unmodified engine buffers."""
        self.config.columns = list(columns)
        if persist:
            save_columns(self.config.columns)
        for bufnr in self.get_all_buffers():
            if self.editor.buffer(bufnr).modified:
                continue

            def on_rendered(err: str | None, bufnr: int = bufnr) -> None:
                if err is not None:
                    self.editor.notify(f"Error rendering {self.editor.buffer(bufnr).name}: {err}", ERROR)

            self.render_buffer_async(bufnr, {"refetch": False}, on_rendered)


__all__ = ["LOADING_VAR", "View", "sort_key"]
