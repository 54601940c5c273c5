"""Plugin discovery and loading.

Entry points are loaded through pluggy's setuptools support; local
plugins are plain ``*.py`` files whose classes carry ``@hookimpl`` methods.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from typing import Any

import pluggy

from flowlab.plugins.hookspecs import PROJECT_NAME, FlowlabHookSpec

ENTRY_POINT_GROUP = "flowlab.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Discovers plugins and collects what they contribute."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(FlowlabHookSpec)

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then single-file plugins from *local_dir*.

        Returns the names of all registered plugins.
        """
        try:
            self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        except Exception:
            logger.warning("Entry-point plugin loading failed", exc_info=True)
        self._instantiate_classes()
        if local_dir is not None:
            self._discover_local(local_dir)
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def collect_capabilities(self) -> tuple[dict[str, Any], list[str]]:
        """Merge every plugin's ``register_capabilities`` result.

        Returns ``(capabilities, warnings)``. The first plugin to claim a
        name keeps it; a failing or malformed plugin only adds a warning.
        """
        merged: dict[str, Any] = {}
        warnings: list[str] = []
        for plugin in self._pm.get_plugins():
            name = self._pm.get_name(plugin) or plugin.__class__.__name__
            hook = getattr(plugin, "register_capabilities", None)
            if hook is None:
                continue
            try:
                provided = hook()
            except Exception:
                logger.warning("Plugin %s failed to register capabilities", name, exc_info=True)
                warnings.append(f"Plugin {name} failed to register capabilities")
                continue
            if provided is None:
                continue
            if not isinstance(provided, dict):
                logger.warning("Plugin %s returned non-dict capabilities", name)
                warnings.append(f"Plugin {name} returned non-dict capabilities")
                continue
            for cap_name, value in provided.items():
                if cap_name in merged:
                    warnings.append(f"Capability {cap_name!r} from plugin {name} ignored: already provided")
                    continue
                merged[cap_name] = value
        return merged, warnings

    # ------------------------------------------------------------------
    # Discovery helpers
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Load each ``*.py`` in *local_dir* (``_``-prefixed files skipped).

        A broken file is logged and skipped, never raised.
        """
        if not local_dir.is_dir():
            return

        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"flowlab_local_plugin_{py_file.stem}"
            try:
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                if spec is None or spec.loader is None:
                    logger.warning("Could not create module spec for %s", py_file)
                    continue
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)
            except Exception:
                logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
                sys.modules.pop(module_name, None)
                continue

            for _attr, obj in inspect.getmembers(module, inspect.isclass):
                if obj.__module__ != module_name or not _has_hook_impls(obj):
                    continue
                try:
                    self.register_plugin(obj(), name=f"{module_name}.{obj.__name__}")
                except Exception:
                    logger.warning("Failed to instantiate plugin %s from %s", obj.__name__, py_file, exc_info=True)

    def _instantiate_classes(self) -> None:
        """Entry points may register a class; hooks need an instance."""
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin) or not _has_hook_impls(plugin):
                continue
            name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                self._pm.register(plugin(), name=name)
            except Exception:
                logger.warning("Failed to instantiate entry-point plugin %s", name, exc_info=True)


def _has_hook_impls(cls: type) -> bool:
    """True when *cls* has a method marked with ``@hookimpl``."""
    marker = f"{PROJECT_NAME}_impl"
    return any(
        callable(getattr(cls, name, None)) and getattr(getattr(cls, name), marker, None)
        for name in dir(cls)
        if not name.startswith("_")
    )
