"""Buffer lifecycle controller: reacts to host events and drives buffers.

Per-buffer phases::

    unbound -> resolving -> loaded-directory | loaded-file
    loaded-* -> modified -> loaded-*   (saved or discarded)
    any      -> closed                 (buffer wiped)

``modified`` is derived from the host's modified flag rather than stored.

Adapter calls are the only suspension points. Each load bumps the buffer's
generation, and a callback whose generation is no longer current, or whose
buffer has been wiped, does nothing.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

from .adapters import AdapterRegistry
from .config import FILES_ADAPTER, FILETYPE, Config
from .host import ERROR, WARN, Editor, EventParams
from .mutator import WRITE_CANCELED, Mutator
from .state import (
    CLOSED,
    LOADED_DIRECTORY,
    LOADED_FILE,
    LOADED_PHASES,
    MODIFIED,
    RESOLVING,
    UNBOUND,
    SessionState,
    WindowRecord,
)
from .url import addslash, from_host_path, parse_url
from .view import View

logger = logging.getLogger(__name__)

WriteCallback = Callable[[str | None], None]


class BufferLifecycle:
    def __init__(
        self,
        editor: Editor,
        config: Config,
        registry: AdapterRegistry,
        state: SessionState,
        view: View,
        mutator: Mutator,
    ) -> None:
        self.editor = editor
        self.config = config
        self.registry = registry
        self.state = state
        self.view = view
        self.mutator = mutator

    def phase(self, bufnr: int) -> str:
        if not self.editor.buf_is_valid(bufnr):
            return CLOSED
        phase = self.state.phases.get(bufnr, UNBOUND)
        if phase in LOADED_PHASES and self.editor.buffer(bufnr).modified:
            return MODIFIED
        return phase

    def _is_directory_name(self, name: str) -> bool:
        return bool(name) and os.path.isdir(self.editor.full_path(name))

    def maybe_hijack_directory_buffer(self, bufnr: int) -> bool:
        """Rebind a plain buffer naming an existing directory to a URL.

        Returns whether the buffer was renamed.
        """
        if not self.editor.buf_is_valid(bufnr):
            return False
        name = self.editor.buffer(bufnr).name
        if not name:
            return False
        scheme, _path = parse_url(name)
        if scheme is not None or not self._is_directory_name(name):
            return False
        files_scheme = self.registry.scheme_for_adapter(FILES_ADAPTER)
        if files_scheme is None:
            return False
        url = addslash(files_scheme + from_host_path(self.editor.full_path(name)))
        logger.debug("Hijacking directory buffer %d: %s -> %s", bufnr, name, url)
        self.editor.rename_buffer(bufnr, url)
        return True

    def load_buffer(self, bufnr: int) -> None:
        """Resolve a buffer's URL through its adapter and populate it."""
        bufname = self.editor.buffer(bufnr).name
        canonical = self.registry.resolve_alias(bufname)
        if canonical != bufname:
            if self.editor.rename_buffer(bufnr, canonical):
                self.state.forget_buffer(bufnr)
                return
            bufname = canonical

        adapter = self.registry.get_adapter_by_scheme(bufname)
        if adapter is None:
            self.editor.notify(f"No adapter for {bufname}", ERROR)
            return

        generation = self.state.bump_load_generation(bufnr)
        self.state.phases[bufnr] = RESOLVING
        if bufname.endswith("/"):
            # Filetype goes on early so slow adapters show a directory view immediately.
            self.editor.buffer(bufnr).filetype = FILETYPE
        self.view.set_loading(bufnr, True)
        logger.debug("Resolving buffer %d (%s), generation %d", bufnr, bufname, generation)

        def finish(new_url: str) -> None:
            nonlocal bufname
            if not self.editor.buf_is_valid(bufnr) or not self.state.is_current_load(bufnr, generation):
                logger.debug("Dropping stale normalize result for buffer %d", bufnr)
                return
            if new_url != bufname:
                if self.editor.rename_buffer(bufnr, new_url):
                    # The buffer already open at new_url replaces this one.
                    self.state.forget_buffer(bufnr)
                    return
                bufname = new_url
            if bufname.endswith("/"):
                self.state.phases[bufnr] = LOADED_DIRECTORY
                self.view.initialize(bufnr)
            else:
                self.state.phases[bufnr] = LOADED_FILE
                self.view.set_loading(bufnr, False)
                buffer = self.editor.buffer(bufnr)
                buffer.buftype = "acwrite"
                if buffer.filetype == FILETYPE:
                    buffer.filetype = ""
                adapter.read_file(bufnr)
            self.restore_alt_buf()

        adapter.normalize_url(bufname, finish)

    def write_buffer(self, bufnr: int, callback: WriteCallback | None = None) -> None:
        """Handle a write request for an engine buffer."""
        bufname = self.editor.buffer(bufnr).name
        if not bufname.endswith("/"):
            adapter = self.registry.get_adapter_by_scheme(bufname)
            if adapter is None:
                self.editor.notify(f"No adapter for {bufname}", ERROR)
                return
            adapter.write_file(bufnr)
            if callback is not None:
                # Adapters report their own failures and leave the buffer modified.
                failed = self.editor.buf_is_valid(bufnr) and self.editor.buffer(bufnr).modified
                callback(f"Failed to write {bufname}" if failed else None)
            return
        self.save(callback=callback)

    def save(self, confirm: bool | None = None, callback: WriteCallback | None = None) -> None:
        """Hand every modified directory buffer to the mutator."""

        def on_written(err: str | None) -> None:
            if err == WRITE_CANCELED:
                self.editor.notify(err, WARN)
            elif err is not None:
                self.editor.notify(f"Error applying changes: {err}", ERROR)
            if callback is not None:
                callback(err)

        self.mutator.try_write_changes(confirm, on_written)

    def discard_all_changes(self) -> None:
        """Re-render every modified engine buffer from the backend."""
        for bufnr in self.view.get_all_buffers():
            if not self.editor.buffer(bufnr).modified:
                continue
            name = self.editor.buffer(bufnr).name

            def on_rendered(err: str | None, name: str = name) -> None:
                if err is not None:
                    self.editor.notify(f"Error rendering diredit buffer {name}: {err}", ERROR)

            self.view.render_buffer_async(bufnr, {}, on_rendered)

    def restore_alt_buf(self, winid: int | None = None) -> None:
        """Apply or unwind engine window state for what ``winid`` now shows."""
        if winid is None:
            winid = self.editor.current_win
        if not self.editor.win_is_valid(winid):
            return
        bufnr = self.editor.window(winid).bufnr
        if self.view.is_engine_buffer(bufnr):
            self.view.set_win_options(winid)
            self.state.ensure_window_record(winid).did_enter = True
            return
        record = self.state.window_record(winid)
        if record is None or not record.did_enter:
            return
        # Entering a plain buffer after having been in the engine.
        record.did_enter = False
        original = record.original_buffer
        if self.editor.buf_is_valid(original):
            if bufnr != original:
                self.editor.alternate = original
            elif self.editor.buf_is_valid(record.original_alternate):
                self.editor.alternate = record.original_alternate
        if self.config.restore_win_options:
            self.view.restore_win_options(winid)

    # -- host event handlers ---------------------------------------------

    def on_buf_add(self, params: EventParams) -> None:
        self.maybe_hijack_directory_buffer(params.buf)

    def on_buf_read(self, params: EventParams) -> None:
        self.load_buffer(params.buf)

    def on_buf_write(self, params: EventParams) -> None:
        self.write_buffer(params.buf)

    def on_buf_win_leave(self, params: EventParams) -> None:
        """Remember the plain buffer a window showed before the engine."""
        if self.view.is_engine_buffer(params.buf):
            return
        scheme, _path = parse_url(params.file)
        if self.registry.is_registered(scheme):
            # An alias or unresolved engine buffer on its way to becoming a view.
            return
        record = self.state.ensure_window_record(params.win)
        record.original_buffer = params.buf
        record.original_alternate = self.editor.alternate

    def on_buf_win_enter(self, params: EventParams) -> None:
        scheme, _path = parse_url(params.file)
        if self.registry.is_canonical(scheme):
            if self.view.is_engine_buffer(params.buf) and not self.view.is_loading(params.buf):
                # Re-displaying a hidden view; no load will run to do this.
                self.restore_alt_buf(params.win)
            if params.win == self.editor.current_win:
                self.view.maybe_set_cursor()
        elif not self._is_directory_name(params.file):
            # Engine buffers run this once their load finishes.
            self.restore_alt_buf(params.win)

    def on_win_new(self, params: EventParams) -> None:
        """Copy the parent window's record into a window split off the engine."""
        if not self.view.is_engine_buffer(params.buf):
            return
        record = self.state.window_record(params.win)
        if record is not None and record.did_enter:
            return
        # The window split from comes first; the tab-then-global scan is the fallback.
        parent_win = None
        origin = self.editor.previous_win(params.win)
        candidates = [*self.editor.tabpage_list_wins(), *self.editor.list_wins()]
        if origin is not None:
            candidates.insert(0, origin)
        for winid in candidates:
            parent_record = self.state.window_record(winid)
            if winid != params.win and parent_record is not None and parent_record.did_enter:
                parent_win = winid
                break
        if parent_win is None:
            self.editor.notify("Split could not find a parent diredit window; window state not copied", WARN)
            return
        parent_record = self.state.windows[parent_win]
        inherited = WindowRecord(did_enter=True, saved_options=dict(parent_record.saved_options))
        if self.editor.buf_is_valid(parent_record.original_buffer):
            inherited.original_buffer = parent_record.original_buffer
        if self.editor.buf_is_valid(parent_record.original_alternate):
            inherited.original_alternate = parent_record.original_alternate
        self.state.windows[params.win] = inherited
        if self.editor.win_is_valid(params.win):
            options = self.editor.window(params.win).options
            for key, value in self.config.win_options.items():
                options[key] = value

    def on_session_load_post(self, params: EventParams) -> None:
        """Load engine buffers a session restored without content."""
        for bufnr in self.editor.list_bufs():
            scheme, _path = parse_url(self.editor.buffer(bufnr).name)
            if self.registry.is_canonical(scheme) and self.editor.line_count(bufnr) == 1:
                self.load_buffer(bufnr)


__all__ = ["BufferLifecycle"]
