"""Host lifecycle event names and a pattern-filtered handler registry."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from fnmatch import fnmatchcase

BUF_ADD = "BufAdd"
BUF_NEW = "BufNew"
BUF_READ_CMD = "BufReadCmd"
BUF_WRITE_CMD = "BufWriteCmd"
BUF_WIN_ENTER = "BufWinEnter"
BUF_WIN_LEAVE = "BufWinLeave"
WIN_NEW = "WinNew"
WIN_ENTER = "WinEnter"
WIN_LEAVE = "WinLeave"
SESSION_LOAD_POST = "SessionLoadPost"


@dataclass(frozen=True)
class EventParams:
    """Payload delivered to handlers."""

    event: str
    buf: int
    win: int
    file: str = ""


@dataclass
class _Handler:
    handler_id: int
    event: str
    callback: Callable[[EventParams], object]
    patterns: tuple[str, ...] = ("*",)
    once: bool = False
    desc: str = ""
    active: bool = field(default=True)

    def matches(self, name: str) -> bool:
        return any(pattern == "*" or fnmatchcase(name, pattern) for pattern in self.patterns)


class EventBus:
    """Ordered handler lists per event name.

    Handlers registered or removed while an event is being emitted take effect
    for the next emission.
    """

    def __init__(self) -> None:
        self._next_id = 1
        self._handlers: dict[str, list[_Handler]] = {}

    def on(
        self,
        event: str,
        callback: Callable[[EventParams], object],
        *,
        pattern: str | Sequence[str] = "*",
        once: bool = False,
        desc: str = "",
    ) -> int:
        patterns = (pattern,) if isinstance(pattern, str) else tuple(pattern)
        handler = _Handler(self._next_id, event, callback, patterns, once, desc)
        self._next_id += 1
        self._handlers.setdefault(event, []).append(handler)
        return handler.handler_id

    def off(self, handler_id: int) -> bool:
        """Remove a handler; removing an unknown id is a no-op."""
        for handlers in self._handlers.values():
            for handler in handlers:
                if handler.handler_id == handler_id:
                    handler.active = False
                    handlers.remove(handler)
                    return True
        return False

    def has_handler(self, event: str, name: str) -> bool:
        return any(handler.matches(name) for handler in self._handlers.get(event, ()))

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    def emit(self, event: str, params: EventParams) -> bool:
        """Run matching handlers; return whether any handler ran."""
        ran = False
        for handler in list(self._handlers.get(event, ())):
            if not handler.active or not handler.matches(params.file):
                continue
            if handler.once:
                self.off(handler.handler_id)
            handler.callback(params)
            ran = True
        return ran


__all__ = [
    "BUF_ADD",
    "BUF_NEW",
    "BUF_READ_CMD",
    "BUF_WRITE_CMD",
    "BUF_WIN_ENTER",
    "BUF_WIN_LEAVE",
    "WIN_NEW",
    "WIN_ENTER",
    "WIN_LEAVE",
    "SESSION_LOAD_POST",
    "EventBus",
    "EventParams",
]
