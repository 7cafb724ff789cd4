"""In-memory editor host: buffers, windows, tab pages, and lifecycle events.

This is the platform API the directory engine drives. It keeps just enough of
a modal editor's bookkeeping (alternate buffer, window-local options and
variables, floating windows, visual selection) for the engine's semantics to
be observable, and fires the same lifecycle events a real host would, in the
same order:

- ``edit``: ``BufAdd`` for a new buffer, ``BufWinLeave`` for the buffer being
  replaced, ``BufReadCmd`` (or a disk read) for an unloaded buffer, then
  ``BufWinEnter``.
- ``split``: ``WinLeave`` on the origin window, ``WinNew`` in the new window
  (still showing the origin's buffer), then the ``edit`` sequence.
- ``write``: ``BufWriteCmd`` when a handler claims the buffer name.

Notifications are recorded on ``notifications`` and logged on this module's
logger at the matching level.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import HostError
from ..text import join_lines, read_text, split_lines
from .events import (
    BUF_ADD,
    BUF_NEW,
    BUF_READ_CMD,
    BUF_WIN_ENTER,
    BUF_WIN_LEAVE,
    BUF_WRITE_CMD,
    SESSION_LOAD_POST,
    WIN_ENTER,
    WIN_LEAVE,
    WIN_NEW,
    EventBus,
    EventParams,
)
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

INFO = logging.INFO
WARN = logging.WARNING
ERROR = logging.ERROR

SPLIT_MODIFIERS = ("aboveleft", "belowright", "topleft", "botright")

DEFAULT_WIN_OPTIONS: dict[str, object] = {
    "concealcursor": "",
    "conceallevel": 0,
    "cursorcolumn": False,
    "cursorline": False,
    "foldcolumn": "0",
    "list": False,
    "number": False,
    "previewwindow": False,
    "signcolumn": "auto",
    "spell": False,
    "winblend": 0,
    "wrap": True,
}


@dataclass(eq=False)
class Buffer:
    bufnr: int
    name: str
    lines: list[str] = field(default_factory=lambda: [""])
    filetype: str = ""
    buftype: str = ""
    bufhidden: str = ""
    listed: bool = True
    loaded: bool = False
    modified: bool = False
    modifiable: bool = True
    valid: bool = True
    last_cursor: tuple[int, int] = (1, 0)
    vars: dict[str, object] = field(default_factory=dict)


@dataclass(eq=False)
class Window:
    winid: int
    tabpage: int
    bufnr: int
    cursor: tuple[int, int] = (1, 0)
    options: dict[str, object] = field(default_factory=lambda: dict(DEFAULT_WIN_OPTIONS))
    vars: dict[str, object] = field(default_factory=dict)
    floating: bool = False
    float_config: dict[str, object] | None = None
    layout: str | None = None
    title: str | None = None
    valid: bool = True


@dataclass(frozen=True)
class Notification:
    message: str
    level: int


class Editor:
    """Single-threaded editor model with one scheduler and one event bus."""

    def __init__(
        self,
        *,
        columns: int = 120,
        lines: int = 40,
        cmdheight: int = 1,
        cwd: str | os.PathLike[str] | None = None,
    ) -> None:
        self.columns = columns
        self.lines = lines
        self.cmdheight = cmdheight
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.scheduler = Scheduler()
        self.events = EventBus()
        self.buffers: dict[int, Buffer] = {}
        self.windows: dict[int, Window] = {}
        self.tabpages: list[list[int]] = [[]]
        self.current_tab = 0
        self.alternate: int | None = None
        self.mode = "n"
        self.visual_start: int | None = None
        self.notifications: list[Notification] = []
        self.commands: dict[str, Callable[..., object]] = {}
        self.confirm_answer = True
        self.confirm_handler: Callable[[str], bool] | None = None
        self._next_bufnr = 1
        self._next_winid = 1000
        self._win_history: list[int] = []
        self._superseded: dict[int, int] = {}

        first = self._new_buffer("", listed=True)
        first.loaded = True
        window = self._new_window(first.bufnr, tabpage=0)
        self.current_win = window.winid
        self._win_history.append(window.winid)

    # -- buffers ---------------------------------------------------------

    def _new_buffer(self, name: str, listed: bool) -> Buffer:
        buffer = Buffer(bufnr=self._next_bufnr, name=name, listed=listed)
        self._next_bufnr += 1
        self.buffers[buffer.bufnr] = buffer
        return buffer

    def buffer(self, bufnr: int) -> Buffer:
        buffer = self.buffers.get(bufnr)
        if buffer is None or not buffer.valid:
            raise HostError(f"Invalid buffer id: {bufnr}")
        return buffer

    def buf_is_valid(self, bufnr: int | None) -> bool:
        if bufnr is None:
            return False
        buffer = self.buffers.get(bufnr)
        return buffer is not None and buffer.valid

    def list_bufs(self) -> list[int]:
        return [bufnr for bufnr, buffer in self.buffers.items() if buffer.valid]

    def find_buf(self, name: str) -> int | None:
        for bufnr, buffer in self.buffers.items():
            if buffer.valid and buffer.name == name and name:
                return bufnr
        return None

    def current_buf(self) -> int:
        return self.window(self.current_win).bufnr

    def create_buf(self, name: str = "", *, listed: bool = True, scratch: bool = False) -> int:
        """Create a buffer; listed buffers fire ``BufNew`` then ``BufAdd``."""
        buffer = self._new_buffer(name, listed)
        if scratch:
            buffer.buftype = "nofile"
            buffer.loaded = True
        if listed:
            self._emit(BUF_NEW, buffer.bufnr, self.current_win)
            if self.buf_is_valid(buffer.bufnr):
                self._emit(BUF_ADD, buffer.bufnr, self.current_win)
        return buffer.bufnr

    def buf_get_lines(self, bufnr: int) -> list[str]:
        return list(self.buffer(bufnr).lines)

    def buf_set_lines(self, bufnr: int, lines: Iterable[str], *, modified: bool = True) -> None:
        buffer = self.buffer(bufnr)
        buffer.lines = list(lines) or [""]
        buffer.modified = modified
        for window in self._windows_showing(bufnr):
            window.cursor = self._clamp_cursor(buffer, window.cursor)

    def line_count(self, bufnr: int) -> int:
        return len(self.buffer(bufnr).lines)

    def rename_buffer(self, bufnr: int, new_name: str) -> bool:
        """Rename ``bufnr``; return ``True`` when it was superseded.

        When another buffer already owns ``new_name`` the windows showing
        ``bufnr`` switch to that buffer and ``bufnr`` is wiped.
        """
        buffer = self.buffer(bufnr)
        if buffer.name == new_name:
            return False
        existing = self.find_buf(new_name)
        if existing is None or existing == bufnr:
            logger.debug("Renaming buffer %d: %s -> %s", bufnr, buffer.name, new_name)
            buffer.name = new_name
            return False
        logger.debug("Buffer %d superseded by %d (%s)", bufnr, existing, new_name)
        self._superseded[bufnr] = existing
        for window in self._windows_showing(bufnr):
            self.win_set_buf(window.winid, existing, keepalt=True)
        self._wipe(bufnr)
        return True

    def delete_buf(self, bufnr: int, *, force: bool = False) -> None:
        buffer = self.buffer(bufnr)
        if buffer.modified and not force:
            raise HostError(f"Buffer {bufnr} has unsaved changes")
        for window in self._windows_showing(bufnr):
            window.bufnr = self._replacement_buffer(bufnr)
            window.cursor = (1, 0)
        self._wipe(bufnr)

    def _replacement_buffer(self, bufnr: int) -> int:
        if self.alternate != bufnr and self.buf_is_valid(self.alternate):
            assert self.alternate is not None
            return self.alternate
        for candidate, buffer in self.buffers.items():
            if candidate != bufnr and buffer.valid and buffer.listed:
                return candidate
        replacement = self._new_buffer("", listed=True)
        replacement.loaded = True
        return replacement.bufnr

    def _wipe(self, bufnr: int) -> None:
        buffer = self.buffers.pop(bufnr, None)
        if buffer is not None:
            buffer.valid = False
        if self.alternate == bufnr:
            self.alternate = None

    def full_path(self, name: str) -> str:
        """Absolute host path for a plain buffer name."""
        return os.path.abspath(os.path.join(self.cwd, os.path.expanduser(name)))

    def _load(self, bufnr: int) -> None:
        buffer = self.buffer(bufnr)
        buffer.loaded = True
        if self.events.has_handler(BUF_READ_CMD, buffer.name):
            self._emit(BUF_READ_CMD, bufnr, self.current_win)
            return
        if not buffer.name or buffer.buftype:
            return
        path = Path(self.full_path(buffer.name))
        if path.is_file():
            try:
                buffer.lines = split_lines(read_text(path))
            except OSError as exc:
                self.notify(f"Cannot read {path}: {exc}", ERROR)
        buffer.modified = False

    def write(self, bufnr: int | None = None) -> None:
        """Write a buffer, deferring to a ``BufWriteCmd`` handler when present."""
        if bufnr is None:
            bufnr = self.current_buf()
        buffer = self.buffer(bufnr)
        if self.events.has_handler(BUF_WRITE_CMD, buffer.name):
            self._emit(BUF_WRITE_CMD, bufnr, self.current_win)
            return
        if not buffer.name:
            raise HostError("No file name")
        path = Path(self.full_path(buffer.name))
        try:
            path.write_text(join_lines(buffer.lines), encoding="utf-8")
        except OSError as exc:
            self.notify(f"Cannot write {path}: {exc}", ERROR)
            return
        buffer.modified = False

    # -- windows ---------------------------------------------------------

    def _new_window(self, bufnr: int, tabpage: int, template: Window | None = None) -> Window:
        window = Window(winid=self._next_winid, tabpage=tabpage, bufnr=bufnr)
        self._next_winid += 1
        if template is not None:
            window.options = dict(template.options)
            window.cursor = template.cursor
        self.windows[window.winid] = window
        self.tabpages[tabpage].append(window.winid)
        return window

    def window(self, winid: int | None = None) -> Window:
        if winid is None:
            winid = self.current_win
        window = self.windows.get(winid)
        if window is None or not window.valid:
            raise HostError(f"Invalid window id: {winid}")
        return window

    def win_is_valid(self, winid: int | None) -> bool:
        if winid is None:
            return False
        window = self.windows.get(winid)
        return window is not None and window.valid

    def list_wins(self) -> list[int]:
        return [winid for tab in self.tabpages for winid in tab if self.win_is_valid(winid)]

    def tabpage_list_wins(self, tabpage: int | None = None) -> list[int]:
        if tabpage is None:
            tabpage = self.current_tab
        return [winid for winid in self.tabpages[tabpage] if self.win_is_valid(winid)]

    def _windows_showing(self, bufnr: int) -> list[Window]:
        return [window for window in self.windows.values() if window.valid and window.bufnr == bufnr]

    def is_floating_win(self, winid: int | None = None) -> bool:
        if winid is None:
            winid = self.current_win
        return self.win_is_valid(winid) and self.window(winid).floating

    def set_current_win(self, winid: int) -> None:
        target = self.window(winid)
        if winid == self.current_win:
            return
        if self.win_is_valid(self.current_win):
            self._emit(WIN_LEAVE, self.window().bufnr, self.current_win)
        self.current_win = winid
        self.current_tab = target.tabpage
        self._win_history.append(winid)
        self._emit(WIN_ENTER, target.bufnr, winid)

    def win_get_cursor(self, winid: int | None = None) -> tuple[int, int]:
        return self.window(winid).cursor

    def win_set_cursor(self, winid: int | None, cursor: tuple[int, int]) -> None:
        window = self.window(winid)
        window.cursor = self._clamp_cursor(self.buffer(window.bufnr), cursor)

    @staticmethod
    def _clamp_cursor(buffer: Buffer, cursor: tuple[int, int]) -> tuple[int, int]:
        lnum = max(1, min(cursor[0], len(buffer.lines)))
        col = max(0, min(cursor[1], max(0, len(buffer.lines[lnum - 1]) - 1)))
        return lnum, col

    def win_set_buf(self, winid: int, bufnr: int, *, keepalt: bool = False) -> None:
        """Display ``bufnr`` in ``winid``, loading it on first display."""
        window = self.window(winid)
        buffer = self.buffer(bufnr)
        old_bufnr = window.bufnr
        if old_bufnr != bufnr:
            if self.buf_is_valid(old_bufnr):
                self.buffer(old_bufnr).last_cursor = window.cursor
                self._emit(BUF_WIN_LEAVE, old_bufnr, winid)
            if not window.valid or not buffer.valid:
                return
            if not keepalt and self.buf_is_valid(old_bufnr):
                self.alternate = old_bufnr
            window.bufnr = bufnr
            window.cursor = self._clamp_cursor(buffer, buffer.last_cursor)
            old_buffer = self.buffers.get(old_bufnr)
            if old_buffer is not None and old_buffer.bufhidden == "wipe" and not self._windows_showing(old_bufnr):
                self._wipe(old_bufnr)
        if not buffer.loaded:
            self._load(bufnr)
        if window.valid and self.buf_is_valid(window.bufnr):
            self._emit(BUF_WIN_ENTER, window.bufnr, winid)

    def edit(self, name: str, *, keepalt: bool = False) -> int:
        """Show the buffer named ``name`` in the current window."""
        bufnr = self.find_buf(name)
        if bufnr is None:
            bufnr = self.create_buf(name)
        while not self.buf_is_valid(bufnr) and bufnr in self._superseded:
            bufnr = self._superseded[bufnr]
        if not self.buf_is_valid(bufnr):
            bufnr = self.find_buf(name)
            if bufnr is None:
                raise HostError(f"Buffer for {name!r} disappeared while opening")
        self.win_set_buf(self.current_win, bufnr, keepalt=keepalt)
        return self.current_buf() if self.win_is_valid(self.current_win) else bufnr

    def split(
        self,
        name: str | None = None,
        *,
        vertical: bool = False,
        modifier: str = "belowright",
    ) -> int:
        """Split the current window and optionally edit ``name`` in the new one."""
        if modifier not in SPLIT_MODIFIERS:
            raise HostError(f"Unknown split modifier: {modifier}")
        origin = self.window()
        if origin.floating:
            tabpage = self.current_tab
        else:
            tabpage = origin.tabpage
        window = self._new_window(origin.bufnr, tabpage, template=origin)
        tab = self.tabpages[tabpage]
        tab.remove(window.winid)
        origin_idx = tab.index(origin.winid) if origin.winid in tab else len(tab) - 1
        if modifier == "topleft":
            tab.insert(0, window.winid)
        elif modifier == "botright":
            tab.append(window.winid)
        elif modifier == "aboveleft":
            tab.insert(max(0, origin_idx), window.winid)
        else:
            tab.insert(origin_idx + 1, window.winid)
        window.layout = f"{modifier} {'vsplit' if vertical else 'split'}"
        self.set_current_win(window.winid)
        self._emit(WIN_NEW, window.bufnr, window.winid)
        if name is not None and self.win_is_valid(window.winid):
            self.edit(name)
        return window.winid

    def open_win(self, bufnr: int, *, enter: bool = True, **float_config: object) -> int:
        """Open a floating window over the current tab page."""
        self.buffer(bufnr)
        window = self._new_window(bufnr, self.current_tab)
        window.floating = True
        window.float_config = dict(float_config)
        self._emit(WIN_NEW, bufnr, window.winid)
        if enter and self.win_is_valid(window.winid):
            self.set_current_win(window.winid)
        return window.winid

    def close_win(self, winid: int, *, force: bool = False) -> None:
        window = self.window(winid)
        others = [other for other in self.list_wins() if other != winid and not self.window(other).floating]
        if not others and not window.floating:
            raise HostError("Cannot close last window")
        buffer = self.buffers.get(window.bufnr)
        if buffer is not None and buffer.modified and not force and len(self._windows_showing(buffer.bufnr)) == 1:
            if buffer.bufhidden != "hide":
                raise HostError(f"Buffer {buffer.bufnr} has unsaved changes")
        was_current = winid == self.current_win
        if was_current:
            self._emit(WIN_LEAVE, window.bufnr, winid)
        if not window.valid:
            return
        window.valid = False
        self.tabpages[window.tabpage].remove(winid)
        if buffer is not None and buffer.valid and not self._windows_showing(buffer.bufnr):
            buffer.last_cursor = window.cursor
            if buffer.bufhidden == "wipe":
                self._wipe(buffer.bufnr)
        if was_current:
            self.current_win = self._previous_window()
            self.current_tab = self.window(self.current_win).tabpage
            self._win_history.append(self.current_win)
            self._emit(WIN_ENTER, self.window().bufnr, self.current_win)

    def previous_win(self, winid: int | None = None) -> int | None:
        """Most recently entered valid window other than ``winid``.

        Inside a WinNew handler this is the window the new one was opened from.
        """
        if winid is None:
            winid = self.current_win
        for candidate in reversed(self._win_history):
            if candidate != winid and self.win_is_valid(candidate):
                return candidate
        return None

    def _previous_window(self) -> int:
        for winid in reversed(self._win_history):
            if self.win_is_valid(winid):
                return winid
        return self.list_wins()[0]

    def new_tab(self, name: str | None = None) -> int:
        """Open a tab page with one window; returns the tab index."""
        origin = self.window()
        self.tabpages.append([])
        tabpage = len(self.tabpages) - 1
        window = self._new_window(origin.bufnr, tabpage, template=origin)
        self.set_current_win(window.winid)
        self._emit(WIN_NEW, window.bufnr, window.winid)
        if name is not None:
            self.edit(name)
        return tabpage

    def get_editor_height(self) -> int:
        return max(1, self.lines - self.cmdheight)

    # -- modes -----------------------------------------------------------

    def start_visual(self, lnum: int | None = None) -> None:
        """Enter linewise visual mode anchored at ``lnum`` (default: cursor)."""
        self.mode = "V"
        self.visual_start = lnum if lnum is not None else self.win_get_cursor()[0]

    def stop_visual(self) -> None:
        self.mode = "n"
        self.visual_start = None

    def visual_range(self) -> tuple[int, int] | None:
        """Return the selected line range in ascending order."""
        if not self.mode.startswith(("v", "V")) or self.visual_start is None:
            return None
        start = self.visual_start
        end = self.win_get_cursor()[0]
        if start > end:
            start, end = end, start
        return start, end

    # -- user interaction ------------------------------------------------

    def notify(self, message: str, level: int = INFO) -> None:
        self.notifications.append(Notification(message, level))
        logger.log(level, message)

    def confirm(self, message: str) -> bool:
        if self.confirm_handler is not None:
            return self.confirm_handler(message)
        return self.confirm_answer

    def create_user_command(self, name: str, callback: Callable[..., object]) -> None:
        self.commands[name] = callback

    def run_command(self, name: str, *fargs: str) -> object:
        command = self.commands.get(name)
        if command is None:
            raise HostError(f"Not an editor command: {name}")
        return command(list(fargs))

    def restore_session(self, names: Iterable[str]) -> list[int]:
        """Recreate named buffers as a session file would, then fire ``SessionLoadPost``.

        Restored buffers are marked loaded but hold only an empty line, which
        is what a host produces for buffers it cannot read itself.
        """
        restored: list[int] = []
        for name in names:
            buffer = self._new_buffer(name, listed=True)
            buffer.loaded = True
            restored.append(buffer.bufnr)
        if restored:
            window = self.window()
            window.bufnr = restored[0]
        self._emit(SESSION_LOAD_POST, self.current_buf(), self.current_win)
        return restored

    def run_pending(self) -> int:
        return self.scheduler.run_pending()

    def _emit(self, event: str, bufnr: int, winid: int) -> bool:
        name = self.buffers[bufnr].name if bufnr in self.buffers else ""
        return self.events.emit(event, EventParams(event=event, buf=bufnr, win=winid, file=name))


__all__ = [
    "Buffer",
    "DEFAULT_WIN_OPTIONS",
    "Editor",
    "ERROR",
    "INFO",
    "Notification",
    "SPLIT_MODIFIERS",
    "WARN",
    "Window",
]
