"""
Transform plugins and the extension registry.
"""
from .interface import Plugin
from .registry import PluginRegistry
from .factory import build_registry, create_plugin, get_plugin_class

__all__ = [
    'Plugin',
    'PluginRegistry',
    'build_registry',
    'create_plugin',
    'get_plugin_class',
]
