"""Setup options plus persistent JSON config helpers.

Persisted options live in the platform config directory and are loaded
defensively: a missing or malformed file falls back to defaults. Options passed
to ``setup`` override persisted ones. Scheme tables are validated strictly
because a bad scheme or alias cycle would break every later lookup.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir

from .columns import ColumnSpec
from .errors import ConfigError
from .url import SCHEME_SEPARATOR

APP_NAME = "diredit"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

FILETYPE = "diredit"
FILES_ADAPTER = "files"
DEFAULT_SCHEME = "diredit://"

DEFAULT_WIN_OPTIONS: dict[str, object] = {
    "wrap": False,
    "signcolumn": "no",
    "cursorcolumn": False,
    "foldcolumn": "0",
    "spell": False,
    "list": False,
    "conceallevel": 3,
    "concealcursor": "n",
}


@dataclass(frozen=True)
class FloatConfig:
    """Floating window layout; ``0`` for a max dimension means no cap."""

    padding: int = 2
    max_width: int = 0
    max_height: int = 0
    border: str = "rounded"
    win_options: dict[str, object] = field(default_factory=lambda: {"winblend": 10})


@dataclass
class Config:
    columns: list[ColumnSpec] = field(default_factory=list)
    adapters: dict[str, str] = field(default_factory=lambda: {DEFAULT_SCHEME: FILES_ADAPTER})
    adapter_aliases: dict[str, str] = field(default_factory=dict)
    win_options: dict[str, object] = field(default_factory=lambda: dict(DEFAULT_WIN_OPTIONS))
    restore_win_options: bool = True
    skip_confirm_for_simple_edits: bool = False
    silence_scp_warning: bool = False
    float: FloatConfig = field(default_factory=FloatConfig)

    @property
    def adapter_to_scheme(self) -> dict[str, str]:
        """Reverse ``adapters``; the first scheme registered for a name wins."""
        out: dict[str, str] = {}
        for scheme, name in self.adapters.items():
            out.setdefault(name, scheme)
        return out


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are ignored so an unwritable config never breaks a
    session.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        pass


def save_columns(columns: list[ColumnSpec]) -> None:
    """Persist the column layout chosen via ``set_columns``."""
    config = load_config()
    config["columns"] = [spec if isinstance(spec, str) else [spec[0], dict(spec[1])] for spec in columns]
    save_config(config)


def _coerce_bool(value: object, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _coerce_nonnegative_int(value: object, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return max(0, value)


def _coerce_options(value: object, default: Mapping[str, object]) -> dict[str, object]:
    if not isinstance(value, Mapping):
        return dict(default)
    return {str(key): option for key, option in value.items()}


def _coerce_columns(value: object) -> list[ColumnSpec]:
    if not isinstance(value, (list, tuple)):
        return []
    columns: list[ColumnSpec] = []
    for spec in value:
        if isinstance(spec, str) and spec:
            columns.append(spec)
        elif (
            isinstance(spec, (list, tuple))
            and len(spec) == 2
            and isinstance(spec[0], str)
            and isinstance(spec[1], Mapping)
        ):
            columns.append((spec[0], dict(spec[1])))
    return columns


def _coerce_float(value: object) -> FloatConfig:
    if not isinstance(value, Mapping):
        return FloatConfig()
    defaults = FloatConfig()
    border = value.get("border", defaults.border)
    return FloatConfig(
        padding=_coerce_nonnegative_int(value.get("padding"), defaults.padding),
        max_width=_coerce_nonnegative_int(value.get("max_width"), defaults.max_width),
        max_height=_coerce_nonnegative_int(value.get("max_height"), defaults.max_height),
        border=border if isinstance(border, str) else defaults.border,
        win_options=_coerce_options(value.get("win_options"), defaults.win_options),
    )


def _validate_scheme(scheme: object, table: str) -> str:
    if not isinstance(scheme, str) or not scheme.endswith(SCHEME_SEPARATOR) or len(scheme) <= len(SCHEME_SEPARATOR):
        raise ConfigError(f"{table}: scheme {scheme!r} must look like 'name://'")
    return scheme


def validate_scheme_tables(adapters: object, aliases: object) -> tuple[dict[str, str], dict[str, str]]:
    """Validate scheme tables and collapse alias chains.

    Every alias maps directly to a canonical adapter scheme in the result, so
    runtime alias rewriting is a single lookup. Raises ``ConfigError`` for
    malformed tables, aliases to unknown schemes, and alias cycles.
    """
    if not isinstance(adapters, Mapping) or not adapters:
        raise ConfigError("adapters: expected a non-empty mapping of scheme to adapter name")
    if not isinstance(aliases, Mapping):
        raise ConfigError("adapter_aliases: expected a mapping of scheme to scheme")

    canonical: dict[str, str] = {}
    for scheme, name in adapters.items():
        _validate_scheme(scheme, "adapters")
        if not isinstance(name, str) or not name:
            raise ConfigError(f"adapters: scheme {scheme!r} needs an adapter name")
        canonical[scheme] = name

    raw_aliases: dict[str, str] = {}
    for alias, target in aliases.items():
        _validate_scheme(alias, "adapter_aliases")
        _validate_scheme(target, "adapter_aliases")
        if alias in canonical:
            raise ConfigError(f"adapter_aliases: {alias!r} is already an adapter scheme")
        raw_aliases[alias] = target

    resolved: dict[str, str] = {}
    for alias in raw_aliases:
        seen = [alias]
        target = raw_aliases[alias]
        while target in raw_aliases:
            if target in seen:
                cycle = " -> ".join([*seen, target])
                raise ConfigError(f"adapter_aliases: alias cycle {cycle}")
            seen.append(target)
            target = raw_aliases[target]
        if target not in canonical:
            raise ConfigError(f"adapter_aliases: {alias!r} points at unknown scheme {target!r}")
        resolved[alias] = target
    return canonical, resolved


def build_config(opts: Mapping[str, object] | None = None, *, use_persisted: bool = True) -> Config:
    """Merge defaults, persisted config, and ``opts`` into a :class:`Config`."""
    merged: dict[str, object] = {}
    if use_persisted:
        merged.update(load_config())
    if opts:
        merged.update(opts)

    defaults = Config()
    adapters, aliases = validate_scheme_tables(
        merged.get("adapters", defaults.adapters),
        merged.get("adapter_aliases", defaults.adapter_aliases),
    )
    return Config(
        columns=_coerce_columns(merged.get("columns", defaults.columns)),
        adapters=adapters,
        adapter_aliases=aliases,
        win_options=_coerce_options(merged.get("win_options"), defaults.win_options),
        restore_win_options=_coerce_bool(merged.get("restore_win_options"), defaults.restore_win_options),
        skip_confirm_for_simple_edits=_coerce_bool(
            merged.get("skip_confirm_for_simple_edits"),
            defaults.skip_confirm_for_simple_edits,
        ),
        silence_scp_warning=_coerce_bool(merged.get("silence_scp_warning"), defaults.silence_scp_warning),
        float=_coerce_float(merged.get("float")),
    )


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "DEFAULT_SCHEME",
    "FILES_ADAPTER",
    "FILETYPE",
    "Config",
    "FloatConfig",
    "build_config",
    "load_config",
    "save_columns",
    "save_config",
    "validate_scheme_tables",
]
