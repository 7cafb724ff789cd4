"""Address model: ``scheme + path`` URLs and path conversions.

Paths inside URLs are always slash separated. Directory URLs end with ``/``
and file URLs never do. Everything here is pure string manipulation; nothing
touches the filesystem.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

SCHEME_SEPARATOR = "://"

_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*://)(.*)$", re.DOTALL)
_DRIVE_RE = re.compile(r"^([A-Za-z]):[\\/]?(.*)$", re.DOTALL)
_POSIX_DRIVE_RE = re.compile(r"^/([A-Za-z])(?:/(.*))?$", re.DOTALL)


@dataclass(frozen=True)
class Url:
    """Immutable scheme-qualified address."""

    scheme: str
    path: str

    def __str__(self) -> str:
        return self.scheme + self.path

    @classmethod
    def parse(cls, raw: str) -> Url | None:
        """Return the URL for ``raw`` or ``None`` when it carries no scheme."""
        scheme, path = parse_url(raw)
        if scheme is None or path is None:
            return None
        return cls(scheme, path)

    @property
    def is_directory(self) -> bool:
        return self.path.endswith("/")

    def addslash(self) -> Url:
        return Url(self.scheme, addslash(self.path))

    def child(self, name: str, is_directory: bool = False) -> Url:
        """Return the URL of ``name`` inside this directory URL."""
        path = addslash(self.path) + name
        return Url(self.scheme, addslash(path) if is_directory else path)


def parse_url(raw: str) -> tuple[str | None, str | None]:
    """Split ``raw`` into ``(scheme, path)`` or ``(None, None)``.

    The scheme keeps its ``://`` suffix so ``scheme + path`` round-trips.
    """
    match = _SCHEME_RE.match(raw)
    if match is None:
        return None, None
    return match.group(1), match.group(2)


def addslash(path: str) -> str:
    """Ensure ``path`` ends with exactly one trailing separator."""
    if path.endswith("/"):
        return path
    return path + "/"


def join(dir_url: str, name: str) -> str:
    return addslash(dir_url) + name


def parent(path: str) -> str:
    """Return the parent of a slash path, keeping ``/`` as its own parent."""
    if path == "/":
        return "/"
    if path == "":
        return ""
    if path.endswith("/"):
        return parent(path[:-1])
    head, sep, _tail = path.rpartition("/")
    if not sep:
        return ""
    return head if head else "/"


def basename(path: str) -> str | None:
    """Return the final component of a slash path, ignoring a trailing slash."""
    if path in ("/", ""):
        return None
    stripped = path[:-1] if path.endswith("/") else path
    name = stripped.rpartition("/")[2]
    return name or None


def from_host_path(path: str, is_windows: bool | None = None) -> str:
    """Convert a platform path into the normalized slash form used in URLs.

    Windows drive paths such as ``C:\\Users`` become ``/C/Users``.
    """
    if is_windows is None:
        is_windows = os.name == "nt"
    if not is_windows:
        return path
    match = _DRIVE_RE.match(path)
    if match is None:
        return path.replace("\\", "/")
    drive, rest = match.groups()
    rest = rest.replace("\\", "/")
    return f"/{drive}/{rest}" if rest else f"/{drive}/"


def to_host_path(path: str, is_windows: bool | None = None) -> str:
    """Inverse of :func:`from_host_path`."""
    if is_windows is None:
        is_windows = os.name == "nt"
    if not is_windows:
        return path
    match = _POSIX_DRIVE_RE.match(path)
    if match is None:
        return path.replace("/", "\\")
    drive, rest = match.groups()
    rest = (rest or "").replace("/", "\\")
    return f"{drive}:\\{rest}"


__all__ = [
    "SCHEME_SEPARATOR",
    "Url",
    "addslash",
    "basename",
    "from_host_path",
    "join",
    "parent",
    "parse_url",
    "to_host_path",
]
