"""
Pipeline configuration: models, loading, and the error taxonomy.
"""
from .exceptions import (
    AssetForgeError,
    ConfigurationError,
    PluginNotFoundError,
    PluginExecutionError,
    DependencyCycleError,
    BundleBuildError,
)
from .models import PipelineConfig, FileGroupConfig, PathsConfig
from .loading import load_config, parse_config, find_config_file

__all__ = [
    'AssetForgeError',
    'ConfigurationError',
    'PluginNotFoundError',
    'PluginExecutionError',
    'DependencyCycleError',
    'BundleBuildError',
    'PipelineConfig',
    'FileGroupConfig',
    'PathsConfig',
    'load_config',
    'parse_config',
    'find_config_file',
]
