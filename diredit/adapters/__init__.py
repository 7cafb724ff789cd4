"""Scheme -> adapter registry with alias rewriting.

The registry is built once from validated config. Looking up an alias scheme
yields the canonical scheme's adapter, and ``resolve_alias`` rewrites a URL to
its canonical scheme in a single step.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from ..config import validate_scheme_tables
from ..errors import ConfigError
from ..url import SCHEME_SEPARATOR, parse_url
from .base import Action, Adapter


class AdapterRegistry:
    """Lookup table from schemes to long-lived adapter instances."""

    def __init__(
        self,
        schemes: Mapping[str, str],
        aliases: Mapping[str, str] | None = None,
        adapters: Iterable[Adapter] = (),
    ) -> None:
        self.schemes, self.aliases = validate_scheme_tables(schemes, aliases or {})
        self._adapters: dict[str, Adapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: Adapter) -> None:
        if not adapter.name:
            raise ConfigError(f"{type(adapter).__name__} has no adapter name")
        self._adapters[adapter.name] = adapter

    def check_complete(self) -> None:
        """Raise ``ConfigError`` if a configured scheme has no adapter."""
        for scheme, name in self.schemes.items():
            if name not in self._adapters:
                raise ConfigError(f"adapters: scheme {scheme!r} uses unknown adapter {name!r}")

    @staticmethod
    def _scheme_of(scheme_or_url: str) -> str | None:
        if scheme_or_url.endswith(SCHEME_SEPARATOR) and scheme_or_url.count(SCHEME_SEPARATOR) == 1:
            return scheme_or_url
        scheme, _path = parse_url(scheme_or_url)
        return scheme

    def canonical_scheme(self, scheme_or_url: str | None) -> str | None:
        """Return the canonical scheme, or ``None`` for unregistered ones."""
        if not scheme_or_url:
            return None
        scheme = self._scheme_of(scheme_or_url)
        if scheme is None:
            return None
        if scheme in self.schemes:
            return scheme
        return self.aliases.get(scheme)

    def is_registered(self, scheme: str | None) -> bool:
        return scheme is not None and (scheme in self.schemes or scheme in self.aliases)

    def is_canonical(self, scheme: str | None) -> bool:
        return scheme is not None and scheme in self.schemes

    def get_adapter_by_scheme(self, scheme_or_url: str | None) -> Adapter | None:
        """Return the adapter serving a scheme or URL; ``None`` is a normal miss."""
        scheme = self.canonical_scheme(scheme_or_url)
        if scheme is None:
            return None
        return self._adapters.get(self.schemes[scheme])

    def resolve_alias(self, url: str) -> str:
        """Rewrite an alias-scheme URL to its canonical scheme."""
        scheme, path = parse_url(url)
        if scheme is None or path is None or scheme not in self.aliases:
            return url
        return self.aliases[scheme] + path

    def scheme_for_adapter(self, name: str) -> str | None:
        for scheme, adapter_name in self.schemes.items():
            if adapter_name == name:
                return scheme
        return None

    def patterns(self) -> list[str]:
        """Buffer-name patterns for every canonical and alias scheme."""
        return [scheme + "*" for scheme in [*self.schemes, *self.aliases]]


__all__ = ["Action", "Adapter", "AdapterRegistry"]
