"""Plugin factory with configuration-driven selection.

Turns the 'plugins:' block of the pipeline config into plugin instances and
a populated PluginRegistry. Called once at startup.
"""

import importlib
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

import yaml

from asset_forge.build.config.exceptions import ConfigurationError
from asset_forge.build.config.models import PipelineConfig
from .interface import Plugin
from .registry import PluginRegistry

logger = logging.getLogger(__name__)

_plugins_map: Optional[Dict[str, Any]] = None


def _load_plugins_map() -> Dict[str, Any]:
    """Load the name -> class map from plugins.yaml."""
    global _plugins_map
    if _plugins_map is not None:
        return _plugins_map

    plugins_file = Path(__file__).parent / "plugins.yaml"
    try:
        with open(plugins_file, 'r') as f:
            _plugins_map = yaml.safe_load(f) or {}
        logger.debug(f"Loaded plugins map from {plugins_file}")
        return _plugins_map
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load plugins map from {plugins_file}: {e}")
        raise ConfigurationError(f"Could not load plugin definitions: {e}", path=str(plugins_file)) from e


def _import_class(class_path: str) -> Type[Plugin]:
    """Import a plugin class from a full dotted path."""
    module_path, _, class_name = class_path.rpartition('.')
    if not module_path:
        raise ConfigurationError(f"'{class_path}' is not a full class path")
    try:
        module = importlib.import_module(module_path)
        plugin_class = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Could not import plugin class '{class_path}': {e}") from e

    if not isinstance(plugin_class, type) or not issubclass(plugin_class, Plugin):
        raise ConfigurationError(f"'{class_path}' is not a Plugin subclass")
    return plugin_class


def get_plugin_class(name: str) -> Type[Plugin]:
    """Resolve a configured plugin name to its class."""
    if '.' in name:
        return _import_class(name)

    plugins = _load_plugins_map().get('plugins', {})
    if name not in plugins:
        raise ConfigurationError(
            f"Unknown plugin '{name}'. Available: {', '.join(sorted(plugins))}"
        )
    return _import_class(plugins[name]['class'])


def create_plugin(name: str, options: Dict[str, Any], root: Path) -> Plugin:
    plugin_class = get_plugin_class(name)
    try:
        return plugin_class(options, root=root, name=name)
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid options for plugin '{name}': {e}") from e


def create_plugins(config: PipelineConfig) -> List[Plugin]:
    """Instantiate every plugin named in the config, in config order."""
    return [create_plugin(name, options, config.root) for name, options in config.plugins.items()]


def build_registry(config: PipelineConfig) -> PluginRegistry:
    """
    Build the plugin registry for a pipeline.

    Configured plugins are registered first; default plugins (raw
    passthrough for .js and .css) then fill in any extension left unclaimed.

    Raises:
        ConfigurationError: On unknown plugins, bad options, or two plugins
            claiming one extension
    """
    registry = PluginRegistry()
    for plugin in create_plugins(config):
        registry.register_plugin(plugin)

    for name in _load_plugins_map().get('defaults', []):
        if name in config.plugins:
            continue
        plugin = create_plugin(name, {}, config.root)
        for extension in plugin.extensions:
            if registry.find(extension) is None:
                registry.register(extension, plugin)

    logger.info(f"Plugins: {', '.join(f'{p.name}{list(p.extensions)}' for p in registry.plugins())}")
    return registry
