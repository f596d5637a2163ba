"""
Plugin registry keyed by file extension.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional

from asset_forge.build.config.exceptions import ConfigurationError, PluginNotFoundError
from .interface import Plugin

logger = logging.getLogger(__name__)


def normalize_extension(extension: str) -> str:
    extension = extension.strip().lower()
    if not extension.startswith('.'):
        extension = '.' + extension
    return extension


class PluginRegistry:
    """Maps extensions to plugins.

    Registration only happens at startup; the orchestrator freezes the
    registry before it starts building, so a registration conflict can never
    surface mid-watch.
    """

    def __init__(self):
        self._plugins: Dict[str, Plugin] = {}
        self._frozen = False

    def register(self, extension: str, plugin: Plugin) -> None:
        """
        Register a plugin for an extension.

        Registering the same plugin twice is a no-op.

        Raises:
            ConfigurationError: If another plugin already claims the extension,
                or the registry is frozen
        """
        extension = normalize_extension(extension)
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register {plugin.name} for '{extension}': plugins are fixed once building starts"
            )
        existing = self._plugins.get(extension)
        if existing is plugin:
            return
        if existing is not None:
            raise ConfigurationError(
                f"Extension '{extension}' is claimed by both '{existing.name}' and '{plugin.name}'"
            )
        self._plugins[extension] = plugin
        logger.debug(f"Registered {plugin.name} for {extension}")

    def register_plugin(self, plugin: Plugin) -> None:
        """Register a plugin for every extension it claims."""
        for extension in plugin.extensions:
            self.register(extension, plugin)

    def lookup(self, extension: str) -> Plugin:
        """
        Raises:
            PluginNotFoundError: If no plugin claims the extension
        """
        plugin = self._plugins.get(normalize_extension(extension))
        if plugin is None:
            raise PluginNotFoundError(normalize_extension(extension))
        return plugin

    def find(self, extension: str) -> Optional[Plugin]:
        """Like lookup, but returns None instead of raising."""
        return self._plugins.get(normalize_extension(extension)) if extension else None

    def covers(self, path: Path) -> bool:
        return self.find(Path(path).suffix) is not None

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def plugins(self) -> List[Plugin]:
        """Distinct registered plugins, in registration order."""
        seen = []
        for plugin in self._plugins.values():
            if not any(plugin is p for p in seen):
                seen.append(plugin)
        return seen

    def ignored_paths(self) -> List[Path]:
        paths = []
        for plugin in self.plugins():
            paths.extend(plugin.ignored_paths())
        return paths
