"""Public package surface for diredit.

Exports ``main`` for programmatic CLI invocation and ``setup`` for wiring the
directory-buffer engine into an editor session.
Most implementation lives in submodules under ``diredit``.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


def setup(*args, **kwargs):
    """Lazily import session bootstrap to avoid loading adapters on import."""
    from .app import setup as _setup

    return _setup(*args, **kwargs)


__all__ = ["main", "setup"]
