"""Cursor-driven navigation: resolve entries under the cursor and open them."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .adapters import AdapterRegistry
from .cache import EntryCache
from .config import FILES_ADAPTER
from .entries import Entry
from .host import ERROR, WARN, Editor
from .parser import parse_entry
from .state import SessionState
from .url import addslash, basename, from_host_path, parent, parse_url, to_host_path
from .view import View

logger = logging.getLogger(__name__)

ENTRY_ID_VAR = "diredit_entry_id"
TERMINAL_SCHEME = "term://"


@dataclass
class SelectOptions:
    """How ``select`` presents the chosen entries.

    ``vertical=None`` means "not specified"; it defaults to vertical for
    previews and for every entry after the first.
    """

    vertical: bool | None = None
    horizontal: bool = False
    split: str | None = None
    preview: bool = False


class Navigator:
    def __init__(
        self,
        editor: Editor,
        registry: AdapterRegistry,
        cache: EntryCache,
        view: View,
        state: SessionState,
    ) -> None:
        self.editor = editor
        self.registry = registry
        self.cache = cache
        self.view = view
        self.state = state

    def _files_scheme(self) -> str:
        scheme = self.registry.scheme_for_adapter(FILES_ADAPTER)
        if scheme is None:
            raise LookupError("No scheme is configured for the files adapter")
        return scheme

    def get_entry_on_line(self, bufnr: int, lnum: int) -> Entry | None:
        """Entry rendered on line ``lnum`` (1-indexed) of an engine buffer."""
        if not self.view.is_engine_buffer(bufnr):
            return None
        adapter = self.registry.get_adapter_by_scheme(self.editor.buffer(bufnr).name)
        if adapter is None:
            return None
        lines = self.editor.buf_get_lines(bufnr)
        if not 1 <= lnum <= len(lines):
            return None
        return parse_entry(lines[lnum - 1], self.view.column_defs(adapter), self.cache)

    def get_cursor_entry(self) -> Entry | None:
        lnum, _col = self.editor.win_get_cursor()
        return self.get_entry_on_line(self.editor.current_buf(), lnum)

    def get_current_dir(self) -> str | None:
        """Host path of the current buffer when the files adapter serves it."""
        scheme, path = parse_url(self.editor.buffer(self.editor.current_buf()).name)
        canonical = self.registry.canonical_scheme(scheme)
        if canonical is None or path is None or self.registry.schemes[canonical] != FILES_ADAPTER:
            return None
        return to_host_path(path)

    def get_url_for_path(self, directory: str | None = None) -> tuple[str, str | None]:
        """URL to open for ``directory``, plus the child to put the cursor on.

        With no directory, the parent of the current buffer is used.
        """
        if directory is not None:
            abspath = self.editor.full_path(directory)
            url = self._files_scheme() + from_host_path(abspath)
            if os.path.isdir(abspath):
                url = addslash(url)
            return url, None
        return self.get_buffer_parent_url(self.editor.buffer(self.editor.current_buf()).name)

    def get_buffer_parent_url(self, bufname: str) -> tuple[str, str | None]:
        scheme, path = parse_url(bufname)
        if scheme is None or path is None:
            files_scheme = self._files_scheme()
            if not bufname:
                return addslash(files_scheme + from_host_path(str(self.editor.cwd))), None
            abspath = self.editor.full_path(bufname)
            parent_dir = from_host_path(os.path.dirname(abspath))
            return addslash(files_scheme + parent_dir), os.path.basename(abspath)

        if scheme == TERMINAL_SCHEME:
            # term://{cwd}//{pid}:{cmd}
            cwd = path.split("//", 1)[0]
            return addslash(self._files_scheme() + from_host_path(self.editor.full_path(cwd))), None

        adapter = self.registry.get_adapter_by_scheme(scheme)
        if adapter is not None and adapter.supports("get_parent"):
            adapter_scheme = self.registry.scheme_for_adapter(adapter.name) or scheme
            parent_url = adapter.get_parent(adapter_scheme + path)
        else:
            parent_url = scheme + addslash(parent(path))
        if parent_url == bufname:
            return parent_url, None
        return addslash(parent_url), basename(path)

    def open(self, directory: str | None = None) -> None:
        """Open the engine on ``directory`` in the current window."""
        url, child = self.get_url_for_path(directory)
        if child:
            self.view.set_last_cursor(url, child)
        logger.debug("Opening %s", url)
        self.editor.edit(url, keepalt=True)

    def close(self) -> None:
        """Leave the engine, returning to the buffer the window came from."""
        winid = self.editor.current_win
        if self.editor.is_floating_win(winid):
            self.editor.close_win(winid, force=True)
            return
        record = self.state.window_record(winid)
        if record is not None and self.editor.buf_is_valid(record.original_buffer):
            assert record.original_buffer is not None
            self.editor.win_set_buf(winid, record.original_buffer)
            return
        self.editor.delete_buf(self.editor.current_buf(), force=True)

    def _selected_entries(self) -> list[Entry]:
        bufnr = self.editor.current_buf()
        selection = self.editor.visual_range()
        if selection is None:
            entry = self.get_cursor_entry()
            return [entry] if entry is not None else []
        start, end = selection
        entries = []
        for lnum in range(start, end + 1):
            entry = self.get_entry_on_line(bufnr, lnum)
            if entry is not None:
                entries.append(entry)
        return entries

    def _close_preview_windows(self) -> None:
        for winid in self.editor.tabpage_list_wins():
            if self.editor.win_is_valid(winid) and self.editor.window(winid).options.get("previewwindow"):
                self.editor.close_win(winid, force=True)

    def select(self, opts: SelectOptions | None = None) -> None:
        """Open the entry under the cursor, or every entry in a visual selection."""
        opts = SelectOptions() if opts is None else SelectOptions(**vars(opts))
        if opts.horizontal or opts.vertical or opts.preview:
            opts.split = opts.split or "belowright"
        if opts.preview and not opts.horizontal and opts.vertical is None:
            opts.vertical = True
        if opts.preview and self.editor.is_floating_win():
            self.editor.notify("diredit preview doesn't work in a floating window", ERROR)
            return
        bufnr = self.editor.current_buf()
        bufname = self.editor.buffer(bufnr).name
        scheme, directory = parse_url(bufname)
        if scheme is None or directory is None or self.registry.get_adapter_by_scheme(scheme) is None:
            return

        entries = self._selected_entries()
        if not entries:
            self.editor.notify("Could not find entry under cursor", ERROR)
            return
        if len(entries) > 1 and opts.preview:
            self.editor.notify("Cannot preview multiple entries", WARN)
            entries = entries[:1]

        cached_children = self.cache.list_url(bufname)
        for entry in entries:
            # A new directory sharing a cached name would show the old directory's contents.
            if entry.is_directory_like and entry.id is None and entry.name in cached_children:
                self.editor.notify("Please save changes before entering new directory", ERROR)
                return

        self.editor.stop_visual()
        self._close_preview_windows()
        prev_win = self.editor.current_win
        for entry in entries:
            child = addslash(directory) + entry.name
            if entry.is_directory_like:
                child = addslash(child)
            elif self.editor.is_floating_win():
                self.editor.close_win(self.editor.current_win)
            url = scheme + child
            logger.debug("Selecting %s", url)
            if opts.split:
                self.editor.split(url, vertical=bool(opts.vertical), modifier=opts.split)
            else:
                self.editor.edit(url)
            if opts.preview:
                window = self.editor.window()
                window.options["previewwindow"] = True
                window.vars[ENTRY_ID_VAR] = entry.id
                if self.editor.win_is_valid(prev_win):
                    self.editor.set_current_win(prev_win)
            # Every entry after the first opens in its own split.
            opts.split = opts.split or "belowright"
            if not opts.horizontal and opts.vertical is None:
                opts.vertical = True


__all__ = ["ENTRY_ID_VAR", "Navigator", "SelectOptions"]
