"""Capability registry — the fixed whitelist of names executed code may import.

The table is assembled once (``build_registry``) and is read-only from then
on. Executed code never sees the registry itself, only a ``Resolver``
bound to it.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from flowlab.domain.errors import UnresolvedDependency

if TYPE_CHECKING:
    from flowlab.config.models import CapabilitiesConfig

logger = logging.getLogger(__name__)

_MISSING = object()


class CapabilityRegistry(Mapping[str, Any]):
    """Read-only mapping of capability name to host-provided value."""

    def __init__(self, capabilities: Mapping[str, Any] | None = None) -> None:
        self._table: Mapping[str, Any] = MappingProxyType(dict(capabilities or {}))

    def __getitem__(self, name: str) -> Any:
        return self._table[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"CapabilityRegistry({sorted(self._table)!r})"

    def resolve(self, name: str) -> Any:
        """Return the value bound to *name*.

        Raises:
            UnresolvedDependency: *name* is not a recognized capability.
        """
        try:
            return self._table[name]
        except KeyError:
            raise UnresolvedDependency(name) from None

    def names(self) -> list[str]:
        return sorted(self._table)


def member(value: Any, name: str) -> Any:
    """Look up *name* on a capability: mapping key first, then attribute."""
    if isinstance(value, Mapping):
        return value.get(name, _MISSING)
    return getattr(value, name, _MISSING)


class Resolver:
    """The ``resolve`` callable injected into executed code.

    ``resolve(name)`` returns the whole capability, ``resolve.default(name)``
    its default member and ``resolve.named(name, *members)`` a tuple of
    members in the order asked for.
    """

    def __init__(self, registry: CapabilityRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    def __call__(self, name: str) -> Any:
        return self._registry.resolve(name)

    def default(self, name: str) -> Any:
        """The capability's ``default`` member, or the capability itself."""
        value = self._registry.resolve(name)
        found = member(value, "default")
        return value if found is _MISSING else found

    def named(self, name: str, *members: str) -> tuple[Any, ...]:
        value = self._registry.resolve(name)
        values = []
        for wanted in members:
            found = member(value, wanted)
            if found is _MISSING:
                raise UnresolvedDependency(name, wanted)
            values.append(found)
        return tuple(values)


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def builtin_capabilities() -> dict[str, Any]:
    """Capabilities shipped with flowlab, keyed by import name."""
    import networkx

    from flowlab.runtime import flow, layout, ui

    return {"ui": ui, "flow": flow, "layout": layout, "networkx": networkx}


def build_registry(
    config: CapabilitiesConfig | None = None,
    extra: Mapping[str, Any] | None = None,
) -> CapabilityRegistry:
    """Assemble the registry: built-ins, configured modules, then *extra*.

    Earlier sources win: a name that is already bound is never replaced.
    Configured import paths that fail to import are skipped with a warning.
    """
    table: dict[str, Any] = {}
    if config is None or config.builtins:
        table.update(builtin_capabilities())

    for name, path in (config.modules if config else {}).items():
        if name in table:
            logger.warning("Capability %r already bound, ignoring configured module %s", name, path)
            continue
        try:
            table[name] = importlib.import_module(path)
        except ImportError as exc:
            logger.warning("Capability %r skipped: cannot import %s (%s)", name, path, exc)

    for name, value in (extra or {}).items():
        if name in table:
            logger.warning("Capability %r already bound, ignoring plugin value", name)
            continue
        table[name] = value

    logger.debug("Capability registry: %s", ", ".join(sorted(table)))
    return CapabilityRegistry(table)
