"""Floating presentation of the engine: geometry and one-shot teardown."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import Config, FloatConfig
from .host import WIN_LEAVE, Editor, EventParams
from .navigation import Navigator
from .url import parse_url, to_host_path
from .view import View

logger = logging.getLogger(__name__)

FLOAT_ZINDEX = 45


@dataclass(frozen=True)
class FloatGeometry:
    width: int
    height: int
    row: int
    col: int


def compute_float_geometry(total_width: int, total_height: int, config: FloatConfig) -> FloatGeometry:
    """Center a float inside the editor area, leaving ``padding`` on each side."""
    width = total_width - 2 * config.padding
    if config.border != "none":
        # The border takes one column on each side.
        width -= 2
    if config.max_width > 0:
        width = min(width, config.max_width)
    height = total_height - 2 * config.padding
    if config.max_height > 0:
        height = min(height, config.max_height)
    width = max(0, width)
    height = max(0, height)
    row = max(0, (total_height - height) // 2)
    col = max(0, (total_width - width) // 2 - 1)
    return FloatGeometry(width=width, height=height, row=row, col=col)


def window_title(url: str) -> str:
    scheme, path = parse_url(url)
    if path is None:
        return url
    return to_host_path(path) if scheme is not None else url


class FloatingWindowManager:
    def __init__(self, editor: Editor, config: Config, navigator: Navigator, view: View) -> None:
        self.editor = editor
        self.config = config
        self.navigator = navigator
        self.view = view

    def open_float(self, directory: str | None = None) -> int:
        """Open the engine for ``directory`` in a centered floating window."""
        url, child = self.navigator.get_url_for_path(directory)
        if child:
            self.view.set_last_cursor(url, child)

        bufnr = self.editor.create_buf(listed=False, scratch=True)
        self.editor.buffer(bufnr).bufhidden = "wipe"
        float_config = self.config.float
        geometry = compute_float_geometry(self.editor.columns, self.editor.get_editor_height(), float_config)
        winid = self.editor.open_win(
            bufnr,
            enter=True,
            relative="editor",
            width=geometry.width,
            height=geometry.height,
            row=geometry.row,
            col=geometry.col,
            style="minimal",
            border=float_config.border,
            zindex=FLOAT_ZINDEX,
        )
        logger.debug("Opened float %d at %s", winid, geometry)

        handler_id = 0

        def teardown(_params: EventParams) -> None:
            if self.editor.is_floating_win():
                return
            if self.editor.win_is_valid(winid):
                self.editor.close_win(winid, force=True)
            self.editor.events.off(handler_id)

        handler_id = self.editor.events.on(
            WIN_LEAVE,
            self.editor.scheduler.schedule_wrap(teardown),
            desc="Close floating diredit window",
        )

        window = self.editor.window(winid)
        for key, value in float_config.win_options.items():
            window.options[key] = value
        self.editor.edit(url, keepalt=True)
        if self.editor.win_is_valid(winid):
            window.title = window_title(self.editor.buffer(window.bufnr).name)
        return winid


__all__ = ["FLOAT_ZINDEX", "FloatGeometry", "FloatingWindowManager", "compute_float_geometry", "window_title"]
