"""Session-wide view state: last-cursor memory, window records, buffer phases.

One ``SessionState`` is created per ``setup`` and shared by the lifecycle
controller, view, and navigator. Nothing here touches the editor; records for
closed windows and buffers simply stop being consulted.
"""

from __future__ import annotations

from dataclasses import dataclass, field

UNBOUND = "unbound"
RESOLVING = "resolving"
LOADED_DIRECTORY = "loaded-directory"
LOADED_FILE = "loaded-file"
MODIFIED = "modified"
CLOSED = "closed"

LOADED_PHASES = frozenset({LOADED_DIRECTORY, LOADED_FILE})


@dataclass(frozen=True)
class LastCursor:
    """Child to put the cursor on the next time a directory view loads."""

    name: str
    lnum: int | None = None


@dataclass
class WindowRecord:
    """Per-window memory of where the user came from before the engine."""

    did_enter: bool = False
    original_buffer: int | None = None
    original_alternate: int | None = None
    saved_options: dict[str, object] = field(default_factory=dict)

    def copy(self) -> WindowRecord:
        return WindowRecord(
            did_enter=self.did_enter,
            original_buffer=self.original_buffer,
            original_alternate=self.original_alternate,
            saved_options=dict(self.saved_options),
        )


@dataclass
class SessionState:
    last_cursor: dict[str, LastCursor] = field(default_factory=dict)
    windows: dict[int, WindowRecord] = field(default_factory=dict)
    phases: dict[int, str] = field(default_factory=dict)
    load_generations: dict[int, int] = field(default_factory=dict)
    render_generations: dict[int, int] = field(default_factory=dict)

    def window_record(self, winid: int) -> WindowRecord | None:
        return self.windows.get(winid)

    def ensure_window_record(self, winid: int) -> WindowRecord:
        record = self.windows.get(winid)
        if record is None:
            record = WindowRecord()
            self.windows[winid] = record
        return record

    def set_last_cursor(self, url: str, name: str | None, lnum: int | None = None) -> None:
        """Remember ``name`` for ``url``; ``None`` forgets it."""
        if name is None:
            self.last_cursor.pop(url, None)
            return
        self.last_cursor[url] = LastCursor(name=name, lnum=lnum)

    def bump_load_generation(self, bufnr: int) -> int:
        generation = self.load_generations.get(bufnr, 0) + 1
        self.load_generations[bufnr] = generation
        return generation

    def is_current_load(self, bufnr: int, generation: int) -> bool:
        return self.load_generations.get(bufnr) == generation

    def bump_render_generation(self, bufnr: int) -> int:
        generation = self.render_generations.get(bufnr, 0) + 1
        self.render_generations[bufnr] = generation
        return generation

    def is_current_render(self, bufnr: int, generation: int) -> bool:
        return self.render_generations.get(bufnr) == generation

    def forget_buffer(self, bufnr: int) -> None:
        self.phases.pop(bufnr, None)
        self.load_generations.pop(bufnr, None)
        self.render_generations.pop(bufnr, None)


__all__ = [
    "CLOSED",
    "LOADED_DIRECTORY",
    "LOADED_FILE",
    "LOADED_PHASES",
    "LastCursor",
    "MODIFIED",
    "RESOLVING",
    "SessionState",
    "UNBOUND",
    "WindowRecord",
]
