"""
Configuration loading for the asset pipeline.

Reads the YAML pipeline file once at startup and turns it into a validated
PipelineConfig. Nothing here is cached globally; callers hold the returned
object and pass it into the orchestrator.
"""
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import PipelineConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAMES = ('asset-forge.yaml', 'asset-forge.yml')
CONFIG_ENV_VAR = 'ASSET_FORGE_CONFIG'


def find_config_file(config_path: Optional[Union[str, Path]] = None) -> Path:
    """
    Locate the pipeline configuration file.

    Resolution order:
    1. Explicit path argument
    2. ASSET_FORGE_CONFIG environment variable
    3. asset-forge.yaml / asset-forge.yml in the current working directory

    Raises:
        ConfigurationError: If no configuration file can be found
    """
    if config_path:
        candidate = Path(config_path)
        if not candidate.is_file():
            raise ConfigurationError(f"Config file not found: {candidate}", path=str(candidate))
        return candidate

    if env_path := os.getenv(CONFIG_ENV_VAR):
        candidate = Path(env_path)
        if not candidate.is_file():
            raise ConfigurationError(
                f"Config file from {CONFIG_ENV_VAR} not found: {candidate}", path=str(candidate)
            )
        return candidate

    for name in DEFAULT_CONFIG_NAMES:
        candidate = Path.cwd() / name
        if candidate.is_file():
            return candidate

    raise ConfigurationError(
        f"No pipeline config found (looked for {', '.join(DEFAULT_CONFIG_NAMES)} in {Path.cwd()})"
    )


def _unwrap(data: Dict[str, Any]) -> Dict[str, Any]:
    # Configs ported from brunch keep everything under a top-level 'config' key
    if set(data.keys()) == {'config'} and isinstance(data['config'], dict):
        return data['config']
    return data


def parse_config(data: Any, root: Optional[Path] = None, source: str = '<dict>') -> PipelineConfig:
    """
    Validate raw configuration data.

    Args:
        data: Parsed YAML document
        root: Directory relative paths are resolved against
        source: Where the data came from, used in error messages

    Returns:
        Validated PipelineConfig

    Raises:
        ConfigurationError: If the data is not a mapping or fails validation
    """
    if data is None:
        raise ConfigurationError(f"Config file is empty: {source}", path=source)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config must be a mapping, got {type(data).__name__}", path=source)

    try:
        config = PipelineConfig.from_dict(_unwrap(data), root=root)
    except ValidationError as e:
        problems = '; '.join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}", path=source) from e

    if not config.files:
        raise ConfigurationError("Config defines no bundles under 'files:'", path=source)

    logger.debug(f"Parsed config from {source}: {len(config.files)} file groups, plugins={list(config.plugins)}")
    return config


def load_config(config_path: Optional[Union[str, Path]] = None) -> PipelineConfig:
    """
    Load and validate the pipeline configuration.

    Relative paths inside the file are resolved against the directory
    containing it.

    Raises:
        ConfigurationError: If the file is missing, unreadable, or invalid
    """
    path = find_config_file(config_path)
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse YAML: {e}", path=str(path)) from e
    except OSError as e:
        raise ConfigurationError(f"Could not read config file: {e}", path=str(path)) from e

    logger.info(f"Loaded pipeline config from {path}")
    return parse_config(data, root=path.resolve().parent, source=str(path))
