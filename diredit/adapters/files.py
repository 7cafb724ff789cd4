"""Local filesystem adapter.

Listing, normalization, and actions run on the editor's scheduler so callers
see the same deferred-callback behavior they get from slow remote adapters.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat as stat_module
from collections.abc import Callable
from pathlib import Path

from ..columns import STAT_COLUMNS, ColumnDefinition
from ..entries import DIRECTORY, FILE, LINK, SOCKET, EntryType, ListedEntry
from ..host import ERROR, Editor
from ..text import join_lines, read_text, split_lines
from ..url import addslash, from_host_path, parse_url, to_host_path
from .base import COPY, CREATE, DELETE, MOVE, Action, ActionCallback, Adapter, ListCallback

logger = logging.getLogger(__name__)


def _entry_type_for_mode(mode: int) -> EntryType:
    if stat_module.S_ISDIR(mode):
        return DIRECTORY
    if stat_module.S_ISLNK(mode):
        return LINK
    if stat_module.S_ISSOCK(mode):
        return SOCKET
    return FILE


def _stat_meta(stat_result: os.stat_result) -> dict[str, object]:
    return {
        "size": int(stat_result.st_size),
        "mode": int(stat_result.st_mode),
        "mtime": float(stat_result.st_mtime),
    }


def scan_directory(directory: str) -> list[ListedEntry]:
    """List children of ``directory`` with stat metadata.

    Raises ``OSError`` when the directory itself cannot be scanned; children
    that vanish mid-scan are skipped.
    """
    entries: list[ListedEntry] = []
    with os.scandir(directory) as children:
        for child in children:
            try:
                child_stat = child.stat(follow_symlinks=False)
            except OSError:
                continue
            entry_type = _entry_type_for_mode(child_stat.st_mode)
            meta: dict[str, object] = {"stat": _stat_meta(child_stat)}
            if entry_type == LINK:
                try:
                    meta["link"] = os.readlink(child.path)
                except OSError:
                    meta["link"] = ""
                try:
                    target_stat = os.stat(child.path)
                except OSError:
                    meta["link_stat"] = None
                else:
                    meta["link_stat"] = {
                        "type": _entry_type_for_mode(target_stat.st_mode),
                        **_stat_meta(target_stat),
                    }
            entries.append(ListedEntry(name=child.name, type=entry_type, meta=meta))
    return entries


class FilesAdapter(Adapter):
    """Adapter for ``diredit://`` URLs backed by the local disk."""

    name = "files"

    def __init__(self, editor: Editor) -> None:
        self.editor = editor
        self.scheduler = editor.scheduler

    @staticmethod
    def _host_path(url: str) -> str:
        _scheme, path = parse_url(url)
        if path is None:
            path = url
        host_path = to_host_path(path)
        if len(host_path) > 1 and host_path.endswith(os.sep):
            host_path = host_path.rstrip(os.sep) or os.sep
        return host_path

    def list(self, url: str, callback: ListCallback) -> None:
        directory = self._host_path(url)

        def run() -> None:
            try:
                entries = scan_directory(directory)
            except OSError as exc:
                callback(f"Cannot list {directory}: {exc.strerror or exc}", None)
                return
            callback(None, entries)

        self.scheduler.call_soon(run)

    def is_modifiable(self, bufnr: int) -> bool:
        directory = self._host_path(self.editor.buffer(bufnr).name)
        return os.access(directory, os.W_OK)

    def get_column(self, name: str) -> ColumnDefinition | None:
        return STAT_COLUMNS.get(name)

    def normalize_url(self, url: str, callback: Callable[[str], None]) -> None:
        scheme, path = parse_url(url)
        if scheme is None or path is None:
            scheme, path = "", url

        def run() -> None:
            host_path = os.path.realpath(self.editor.full_path(to_host_path(path)))
            normalized = from_host_path(host_path)
            if os.path.isdir(host_path):
                normalized = addslash(normalized)
            callback(scheme + normalized)

        self.scheduler.call_soon(run)

    def read_file(self, bufnr: int) -> None:
        path = Path(self._host_path(self.editor.buffer(bufnr).name))

        def run() -> None:
            if not self.editor.buf_is_valid(bufnr):
                return
            if not path.exists():
                self.editor.buf_set_lines(bufnr, [""], modified=False)
                return
            try:
                lines = split_lines(read_text(path))
            except OSError as exc:
                self.editor.notify(f"Cannot read {path}: {exc.strerror or exc}", ERROR)
                return
            self.editor.buf_set_lines(bufnr, lines, modified=False)

        self.scheduler.call_soon(run)

    def write_file(self, bufnr: int) -> None:
        buffer = self.editor.buffer(bufnr)
        path = Path(self._host_path(buffer.name))
        try:
            path.write_text(join_lines(buffer.lines), encoding="utf-8")
        except OSError as exc:
            self.editor.notify(f"Cannot write {path}: {exc.strerror or exc}", ERROR)
            return
        buffer.modified = False

    def render_action(self, action: Action) -> str:
        if action.type in (CREATE, DELETE):
            assert action.url is not None
            return f"{action.type.upper()} {self._host_path(action.url)}"
        assert action.src_url is not None and action.dest_url is not None
        return f"{action.type.upper()} {self._host_path(action.src_url)} -> {self._host_path(action.dest_url)}"

    def perform_action(self, action: Action, callback: ActionCallback) -> None:
        def run() -> None:
            try:
                self._perform(action)
            except OSError as exc:
                callback(f"{self.render_action(action)}: {exc.strerror or exc}")
                return
            logger.debug("Performed %s", self.render_action(action))
            callback(None)

        self.scheduler.call_soon(run)

    def _perform(self, action: Action) -> None:
        if action.type == CREATE:
            assert action.url is not None
            target = Path(self._host_path(action.url))
            if action.entry_type == DIRECTORY:
                target.mkdir(parents=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.touch(exist_ok=False)
        elif action.type == DELETE:
            assert action.url is not None
            target = Path(self._host_path(action.url))
            if action.entry_type == DIRECTORY and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        elif action.type in (MOVE, COPY):
            assert action.src_url is not None and action.dest_url is not None
            src = Path(self._host_path(action.src_url))
            dest = Path(self._host_path(action.dest_url))
            if dest.exists() or dest.is_symlink():
                raise FileExistsError(17, "Destination already exists", str(dest))
            dest.parent.mkdir(parents=True, exist_ok=True)
            if action.type == MOVE:
                os.rename(src, dest)
            elif action.entry_type == DIRECTORY:
                shutil.copytree(src, dest, symlinks=True)
            else:
                shutil.copy2(src, dest, follow_symlinks=False)
        else:
            raise ValueError(f"Unknown action type: {action.type}")


__all__ = ["FilesAdapter", "scan_directory"]
