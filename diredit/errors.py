"""Exception types raised at diredit's configuration and host boundaries.

Adapter and mutator failures never travel as exceptions; they are passed to
callbacks as message strings and surfaced through ``Editor.notify``.
"""

from __future__ import annotations


class DireditError(Exception):
    """Base class for diredit exceptions."""


class ConfigError(DireditError):
    """Invalid setup options, such as an unknown scheme or a cyclic alias."""


class HostError(DireditError):
    """Operation on a closed buffer/window or an impossible window layout."""
