"""Highlight groups for directory listings, rendered through Pygments.

Each highlight group maps onto a Pygments token type so any Pygments style
can color a listing. Entry ids are concealed: only the columns and the name
are emitted.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from pygments import format as pygments_format
from pygments.formatters import Terminal256Formatter
from pygments.styles import get_style_by_name
from pygments.token import Token, _TokenType
from pygments.util import ClassNotFound

from .adapters.base import COPY, CREATE, DELETE, MOVE
from .cache import EntryCache
from .columns import ColumnDefinition
from .entries import DIRECTORY, FILE, LINK, SOCKET
from .parser import parse_line, parse_new_entry
from .text import sanitize_terminal_text

DEFAULT_STYLE = "monokai"

HIGHLIGHT_GROUPS: dict[str, _TokenType] = {
    "DireditDir": Token.Name.Namespace,
    "DireditSocket": Token.Keyword,
    "DireditLink": Token.Name.Tag,
    "DireditFile": Token.Text,
    "DireditCreate": Token.Generic.Inserted,
    "DireditDelete": Token.Generic.Deleted,
    "DireditMove": Token.Generic.Heading,
    "DireditCopy": Token.Generic.Subheading,
    "DireditChange": Token.Generic.Emph,
}

_TYPE_GROUPS = {
    DIRECTORY: "DireditDir",
    SOCKET: "DireditSocket",
    LINK: "DireditLink",
    FILE: "DireditFile",
}

_ACTION_GROUPS = {
    CREATE: "DireditCreate",
    DELETE: "DireditDelete",
    MOVE: "DireditMove",
    COPY: "DireditCopy",
}

_COLUMN_TOKEN = Token.Comment
_ACTION_RE = re.compile(r"^(CREATE|DELETE|MOVE|COPY|CHANGE)(\s.*)?$", re.DOTALL)

_VALID_STYLES: set[str] = set()
_FORMATTERS: dict[str, Terminal256Formatter] = {}


def resolve_style(style: str) -> str:
    """Return ``style`` if Pygments knows it, otherwise the default style."""
    if style in _VALID_STYLES:
        return style
    try:
        get_style_by_name(style)
    except ClassNotFound:
        return DEFAULT_STYLE
    _VALID_STYLES.add(style)
    return style


def _formatter_for_style(style: str) -> Terminal256Formatter:
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        formatter = Terminal256Formatter(style=style)
        _FORMATTERS[style] = formatter
    return formatter


def tokenize_listing_line(
    line: str,
    column_defs: Sequence[tuple[ColumnDefinition, Mapping[str, object]]],
    cache: EntryCache,
) -> list[tuple[_TokenType, str]]:
    """Split one buffer line into ``(token, text)`` pairs without its id."""
    parsed, cached = parse_line(line, column_defs, cache)
    if parsed is None:
        if parse_new_entry(line) is None:
            return [(Token.Text, line)]
        return [(HIGHLIGHT_GROUPS["DireditCreate"], line.strip())]

    body = line.split(" ", 1)[1]
    if parsed.link_target is not None:
        name_text = f"{parsed.name} -> {parsed.link_target}"
    elif parsed.type == DIRECTORY:
        name_text = parsed.name + "/"
    else:
        name_text = parsed.name
    columns_text = body[: len(body) - len(name_text)]

    if cached is None:
        group = "DireditCreate"
    elif cached.name != parsed.name:
        group = "DireditChange"
    else:
        group = _TYPE_GROUPS.get(cached.type, "DireditFile")
    tokens: list[tuple[_TokenType, str]] = []
    if columns_text:
        tokens.append((_COLUMN_TOKEN, columns_text))
    tokens.append((HIGHLIGHT_GROUPS[group], name_text))
    return tokens


def tokenize_action_line(line: str) -> list[tuple[_TokenType, str]]:
    """Tokens for a rendered action such as ``MOVE a -> b``."""
    match = _ACTION_RE.match(line)
    if match is None:
        return [(Token.Text, line)]
    verb, rest = match.group(1), match.group(2) or ""
    group = _ACTION_GROUPS.get(verb.lower(), "DireditChange")
    return [(HIGHLIGHT_GROUPS[group], verb), (Token.Text, rest)]


def format_tokens(lines: Sequence[list[tuple[_TokenType, str]]], style: str = DEFAULT_STYLE, no_color: bool = False) -> str:
    """Render tokenized lines to a string, colored unless ``no_color``.

    Control bytes in entry names are escaped before they reach the terminal.
    """
    lines = [[(token, sanitize_terminal_text(text)) for token, text in tokens] for tokens in lines]
    if no_color:
        return "".join("".join(text for _token, text in tokens) + "\n" for tokens in lines)
    formatter = _formatter_for_style(resolve_style(style))
    out: list[str] = []
    for tokens in lines:
        out.append(pygments_format([*tokens, (Token.Text, "\n")], formatter))
    return "".join(out)


def colorize_listing(
    lines: Sequence[str],
    column_defs: Sequence[tuple[ColumnDefinition, Mapping[str, object]]],
    cache: EntryCache,
    style: str = DEFAULT_STYLE,
    no_color: bool = False,
) -> str:
    return format_tokens([tokenize_listing_line(line, column_defs, cache) for line in lines], style, no_color)


def colorize_actions(lines: Sequence[str], style: str = DEFAULT_STYLE, no_color: bool = False) -> str:
    return format_tokens([tokenize_action_line(line) for line in lines], style, no_color)


__all__ = [
    "DEFAULT_STYLE",
    "HIGHLIGHT_GROUPS",
    "colorize_actions",
    "colorize_listing",
    "format_tokens",
    "resolve_style",
    "tokenize_action_line",
    "tokenize_listing_line",
]
