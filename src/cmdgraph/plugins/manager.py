"""Plugin registry for graph execution observers.

Plugins come from two places: installed distributions advertising the
``cmdgraph.plugins`` entry point group, and objects registered by the
embedding application. Either way they end up as instances on a single pluggy
manager whose hook relay the executor dispatches through.
"""

from __future__ import annotations

import inspect
import logging

import pluggy

from cmdgraph.plugins.hookspecs import PROJECT_NAME, CmdGraphHookSpec

DEFAULT_ENTRY_POINT_GROUP = "cmdgraph.plugins"

# Attribute pluggy's HookimplMarker("cmdgraph") sets on decorated functions.
_IMPL_ATTR = f"{PROJECT_NAME}_impl"

logger = logging.getLogger(__name__)


def _declares_hooks(candidate: type) -> bool:
    """True if a public attribute of *candidate* is marked with ``@hookimpl``."""
    return any(
        getattr(getattr(candidate, attr, None), _IMPL_ATTR, None)
        for attr in dir(candidate)
        if not attr.startswith("_")
    )


class PluginManager:
    """pluggy manager bound to the cmdgraph hook specifications."""

    def __init__(self) -> None:
        self._pluggy = pluggy.PluginManager(PROJECT_NAME)
        self._pluggy.add_hookspecs(CmdGraphHookSpec)
        self._discovered = False

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pluggy.hook

    @property
    def is_loaded(self) -> bool:
        """Whether entry point discovery has run."""
        return self._discovered

    def discover_and_load(self, group: str = DEFAULT_ENTRY_POINT_GROUP) -> list[str]:
        """Register every plugin advertised under *group*; return all plugin names."""
        count = self._pluggy.load_setuptools_entrypoints(group)
        logger.debug("Loaded %d plugin(s) from entry point group %s", count, group)
        self._instantiate_registered_classes()
        self._discovered = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        plugin_name = name or type(plugin).__name__
        self._pluggy.register(plugin, name=plugin_name)
        logger.debug("Registered plugin: %s", plugin_name)

    def unregister(self, plugin: object) -> None:
        self._pluggy.unregister(plugin)

    def get_plugins(self) -> list[object]:
        return list(self._pluggy.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [
            self._pluggy.get_name(plugin) or type(plugin).__name__
            for plugin in self._pluggy.get_plugins()
        ]

    def _instantiate_registered_classes(self) -> None:
        """Swap plugin classes loaded from entry points for instances of them.

        Hook implementations looked up on a bare class would be called without
        ``self``. A class that cannot be instantiated is dropped with a warning.
        """
        classes = [
            plugin
            for plugin in self._pluggy.get_plugins()
            if inspect.isclass(plugin) and _declares_hooks(plugin)
        ]
        for plugin_cls in classes:
            plugin_name = self._pluggy.get_name(plugin_cls) or plugin_cls.__name__
            self._pluggy.unregister(plugin_cls)
            try:
                instance = plugin_cls()
            except Exception:
                logger.warning(
                    "Dropping entry-point plugin %s: instantiation failed",
                    plugin_name,
                    exc_info=True,
                )
                continue
            self._pluggy.register(instance, name=plugin_name)
