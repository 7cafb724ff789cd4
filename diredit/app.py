"""Session bootstrap: build the engine's collaborators and register its hooks.

``setup`` validates configuration (raising ``ConfigError`` on malformed
scheme tables), wires adapters, view, mutator, lifecycle controller,
navigator, and float manager around one ``SessionState``, then subscribes the
controller to the host's lifecycle events for every registered scheme.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from .adapters import AdapterRegistry
from .adapters.base import Adapter
from .adapters.files import FilesAdapter
from .cache import EntryCache
from .columns import ColumnSpec
from .config import Config, build_config
from .entries import Entry
from .floating import FloatingWindowManager
from .host import (
    BUF_ADD,
    BUF_NEW,
    BUF_READ_CMD,
    BUF_WIN_ENTER,
    BUF_WIN_LEAVE,
    BUF_WRITE_CMD,
    SESSION_LOAD_POST,
    WARN,
    WIN_NEW,
    Editor,
    EventParams,
)
from .lifecycle import BufferLifecycle, WriteCallback
from .mutator import Mutator
from .navigation import Navigator, SelectOptions
from .state import SessionState
from .view import View

logger = logging.getLogger(__name__)

COMMAND_NAME = "Diredit"
SCP_SCHEME_PATTERN = "scp://*"
SCP_WARNING = (
    "If you are trying to browse using diredit, use an adapter scheme instead of scp://\n"
    "Set silence_scp_warning = true to disable this message."
)


class Diredit:
    """Handle returned by :func:`setup`; the public API of one session."""

    def __init__(
        self,
        editor: Editor,
        config: Config,
        registry: AdapterRegistry,
        cache: EntryCache,
        state: SessionState,
        view: View,
        mutator: Mutator,
        lifecycle: BufferLifecycle,
        navigator: Navigator,
        floats: FloatingWindowManager,
    ) -> None:
        self.editor = editor
        self.config = config
        self.registry = registry
        self.cache = cache
        self.state = state
        self.view = view
        self.mutator = mutator
        self.lifecycle = lifecycle
        self.navigator = navigator
        self.floats = floats
        self.handler_ids: list[int] = []

    def open(self, directory: str | None = None) -> None:
        self.navigator.open(directory)

    def open_float(self, directory: str | None = None) -> int:
        return self.floats.open_float(directory)

    def close(self) -> None:
        self.navigator.close()

    def select(self, opts: SelectOptions | None = None, **kwargs: object) -> None:
        if opts is None:
            opts = SelectOptions(**kwargs)
        self.navigator.select(opts)

    def save(self, confirm: bool | None = None, callback: WriteCallback | None = None) -> None:
        self.lifecycle.save(confirm, callback)

    def discard_all_changes(self) -> None:
        self.lifecycle.discard_all_changes()

    def get_entry_on_line(self, bufnr: int, lnum: int) -> Entry | None:
        return self.navigator.get_entry_on_line(bufnr, lnum)

    def get_cursor_entry(self) -> Entry | None:
        return self.navigator.get_cursor_entry()

    def get_current_dir(self) -> str | None:
        return self.navigator.get_current_dir()

    def set_columns(self, columns: list[ColumnSpec], persist: bool = False) -> None:
        self.view.set_columns(columns, persist=persist)

    def run_command(self, fargs: list[str]) -> None:
        """``:Diredit [--float] [dir]``"""
        args = list(fargs)
        use_float = "--float" in args
        args = [arg for arg in args if arg != "--float"]
        directory = args[0] if args else None
        if use_float:
            self.open_float(directory)
        else:
            self.open(directory)

    def _register_handlers(self) -> None:
        events = self.editor.events
        patterns = self.registry.patterns()
        lifecycle = self.lifecycle
        self.handler_ids.extend(
            [
                events.on(BUF_READ_CMD, lifecycle.on_buf_read, pattern=patterns, desc="diredit: load buffer"),
                events.on(BUF_WRITE_CMD, lifecycle.on_buf_write, pattern=patterns, desc="diredit: save buffer"),
                events.on(BUF_ADD, lifecycle.on_buf_add, desc="diredit: hijack directory buffers"),
                events.on(BUF_WIN_LEAVE, lifecycle.on_buf_win_leave, desc="diredit: remember original buffer"),
                events.on(BUF_WIN_ENTER, lifecycle.on_buf_win_enter, desc="diredit: restore alternate buffer"),
                events.on(WIN_NEW, lifecycle.on_win_new, desc="diredit: copy window state to splits"),
                events.on(SESSION_LOAD_POST, lifecycle.on_session_load_post, desc="diredit: load session buffers"),
            ]
        )
        if not self.config.silence_scp_warning:
            self.handler_ids.append(
                events.on(BUF_NEW, self._warn_scp, pattern=SCP_SCHEME_PATTERN, once=True, desc="diredit: scp warning")
            )

    def _warn_scp(self, _params: EventParams) -> None:
        self.editor.notify(SCP_WARNING, WARN)

    def teardown(self) -> None:
        """Remove every event handler this session registered."""
        for handler_id in self.handler_ids:
            self.editor.events.off(handler_id)
        self.handler_ids.clear()


def setup(
    editor: Editor,
    opts: Mapping[str, object] | None = None,
    adapters: Iterable[Adapter] = (),
    *,
    use_persisted: bool = True,
) -> Diredit:
    """Wire the engine into ``editor`` and hijack the current buffer if needed."""
    config = build_config(opts, use_persisted=use_persisted)
    registry = AdapterRegistry(config.adapters, config.adapter_aliases, [FilesAdapter(editor)])
    for adapter in adapters:
        registry.register(adapter)
    registry.check_complete()

    state = SessionState()
    cache = EntryCache()
    view = View(editor, config, registry, cache, state)
    mutator = Mutator(editor, config, registry, cache, view)
    lifecycle = BufferLifecycle(editor, config, registry, state, view, mutator)
    navigator = Navigator(editor, registry, cache, view, state)
    floats = FloatingWindowManager(editor, config, navigator, view)
    session = Diredit(editor, config, registry, cache, state, view, mutator, lifecycle, navigator, floats)

    editor.create_user_command(COMMAND_NAME, session.run_command)
    session._register_handlers()
    logger.debug("diredit set up with schemes %s", ", ".join(sorted(registry.schemes)))

    bufnr = editor.current_buf()
    if lifecycle.maybe_hijack_directory_buffer(bufnr) and editor.buf_is_valid(bufnr):
        # The host already loaded this buffer as a plain file; load it as a view.
        lifecycle.load_buffer(bufnr)
    return session


__all__ = ["COMMAND_NAME", "Diredit", "setup"]
