"""Editor host model used by the directory engine.

The engine only talks to the host through ``Editor``; the in-memory
implementation here backs the CLI and the test suite.
"""

from __future__ import annotations

from .editor import DEFAULT_WIN_OPTIONS, ERROR, INFO, WARN, Buffer, Editor, Notification, Window
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

__all__ = [
    "Buffer",
    "DEFAULT_WIN_OPTIONS",
    "Editor",
    "ERROR",
    "INFO",
    "Notification",
    "WARN",
    "Window",
    "BUF_ADD",
    "BUF_NEW",
    "BUF_READ_CMD",
    "BUF_WIN_ENTER",
    "BUF_WIN_LEAVE",
    "BUF_WRITE_CMD",
    "SESSION_LOAD_POST",
    "WIN_ENTER",
    "WIN_LEAVE",
    "WIN_NEW",
    "EventBus",
    "EventParams",
    "Scheduler",
]
