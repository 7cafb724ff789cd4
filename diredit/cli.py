"""Command-line front door for diredit.

Lists a directory the way an engine buffer renders it and, with ``--edit``,
round-trips the listing through ``$EDITOR`` and applies the edits through the
mutator. Runs the engine against the in-memory editor host.
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
import tempfile
from pathlib import Path

from .app import Diredit, setup
from .errors import ConfigError
from .external_editor import launch_editor
from .highlight import DEFAULT_STYLE, colorize_actions, colorize_listing
from .host import ERROR, Editor
from .text import join_lines, read_text, split_lines

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _parse_columns(value: str) -> list[str]:
    """argparse type for a comma separated column list."""
    columns = [part.strip() for part in value.split(",") if part.strip()]
    if not columns:
        raise argparse.ArgumentTypeError("expected at least one column name")
    return columns


def _terminal_width() -> int:
    return max(1, shutil.get_terminal_size((80, 24)).columns)


def _first_error(editor: Editor, start: int = 0) -> str | None:
    for notification in editor.notifications[start:]:
        if notification.level >= ERROR:
            return notification.message
    return None


def _render(session: Diredit, bufnr: int, style: str, no_color: bool) -> str:
    adapter = session.registry.get_adapter_by_scheme(session.editor.buffer(bufnr).name)
    assert adapter is not None
    return colorize_listing(
        session.editor.buf_get_lines(bufnr),
        session.view.column_defs(adapter),
        session.cache,
        style=style,
        no_color=no_color,
    )


def _prompt_confirm(message: str, style: str, no_color: bool) -> bool:
    sys.stdout.write(colorize_actions(message.splitlines(), style=style, no_color=no_color))
    sys.stdout.flush()
    try:
        answer = input("Apply changes? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def edit_listing(session: Diredit, bufnr: int, *, assume_yes: bool, style: str, no_color: bool) -> str | None:
    """Edit the listing in ``$EDITOR`` and apply it; return an error message."""
    editor = session.editor
    original = editor.buf_get_lines(bufnr)
    with tempfile.TemporaryDirectory(prefix="diredit-") as tmp:
        target = Path(tmp) / "listing.diredit"
        target.write_text(join_lines(original), encoding="utf-8")
        error = launch_editor(target)
        if error is not None:
            return error
        edited = split_lines(read_text(target))
    if edited == original:
        sys.stdout.write("No changes.\n")
        return None

    editor.buf_set_lines(bufnr, edited)
    editor.confirm_handler = lambda message: _prompt_confirm(message, style, no_color)
    result: list[str | None] = []
    session.save(confirm=not assume_yes, callback=result.append)
    editor.run_pending()
    if not result:
        return "Write did not finish"
    return result[0]


def main(default_path: Path | None = None) -> None:
    """Parse CLI arguments and print (or edit) a directory listing.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used.
    """
    parser = argparse.ArgumentParser(description="Browse and edit a directory as text.")
    parser.add_argument("path", nargs="?", default=None, help="Directory to list. Defaults to current directory.")
    parser.add_argument("--edit", action="store_true", help="Edit the listing in $EDITOR and apply the changes.")
    parser.add_argument("--columns", type=_parse_columns, default=None, help="Comma separated columns to show.")
    parser.add_argument("--style", default=DEFAULT_STYLE, help="Pygments style name for colored output.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument("--yes", action="store_true", help="Apply edits without asking for confirmation.")
    parser.add_argument("--verbose", action="store_true", help="Log engine activity to stderr.")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)

    if default_path is None:
        default_path = Path.cwd()
    path = Path(args.path or default_path)
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")
    if not path.is_dir():
        raise SystemExit(f"Not a directory: {path}")

    editor = Editor(columns=_terminal_width(), cwd=Path.cwd())
    opts: dict[str, object] = {}
    if args.columns is not None:
        opts["columns"] = args.columns
    try:
        session = setup(editor, opts)
    except ConfigError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    session.open(str(path.resolve()))
    editor.run_pending()
    error = _first_error(editor)
    if error is not None:
        raise SystemExit(error)
    bufnr = editor.current_buf()
    no_color = args.no_color or not sys.stdout.isatty()

    if args.edit:
        mark = len(editor.notifications)
        error = edit_listing(session, bufnr, assume_yes=args.yes, style=args.style, no_color=no_color)
        if error is not None:
            raise SystemExit(error)
        error = _first_error(editor, mark)
        if error is not None:
            raise SystemExit(error)
        editor.run_pending()

    sys.stdout.write(_render(session, bufnr, args.style, no_color))


if __name__ == "__main__":
    main()
