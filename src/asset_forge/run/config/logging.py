#!/usr/bin/env python3
"""
Centralized logging configuration.

This module provides a bootstrap_logging function that every entry point calls
to configure logging consistently, using Python's native INI format.
"""

import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Optional

VALID_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

_bootstrapped = False


def _find_logging_config() -> Optional[Path]:
    """
    Find the logging configuration file.

    Looks for logging.ini in the current working directory, then falls back to
    the default shipped with the package.

    Returns:
        Path to logging configuration file, or None if not found.
    """
    current_dir_config = Path('logging.ini')
    if current_dir_config.exists():
        return current_dir_config

    packaged_config = Path(__file__).parent / 'logging.ini'
    if packaged_config.exists():
        return packaged_config

    return None


def _setup_environment_variables():
    """
    Set up environment variables for logging configuration.

    Sets LOG_LEVEL to INFO if not already set, ensuring the INI file has a valid value.
    """
    if 'LOG_LEVEL' not in os.environ:
        os.environ['LOG_LEVEL'] = 'INFO'

    log_level = os.environ['LOG_LEVEL'].strip().upper()
    if log_level not in VALID_LEVELS:
        print(f"Warning: Invalid LOG_LEVEL '{log_level}', using INFO", file=sys.stderr)
        os.environ['LOG_LEVEL'] = 'INFO'


def bootstrap_logging(name: Optional[str] = None, level: Optional[str] = None, force: bool = False) -> None:
    """
    Bootstrap logging configuration for the application using Python's native INI format.

    This function:
    1. Sets up environment variables for INI file substitution
    2. Loads logging configuration from logging.ini using logging.config.fileConfig()
    3. Applies an explicit level, or the LOG_LEVEL environment variable, after loading

    Repeated calls are no-ops unless ``force`` is set.

    Args:
        name: Optional name for the logger (defaults to root logger)
        level: Level overriding LOG_LEVEL, e.g. 'DEBUG' for --verbose
        force: Reconfigure even if logging was already bootstrapped
    """
    global _bootstrapped
    if _bootstrapped and not force:
        return

    _setup_environment_variables()
    config_path = _find_logging_config()

    if config_path is None:
        logging.basicConfig(
            level=logging.INFO,
            format='%(levelname)s: %(name)s: %(message)s',
            stream=sys.stderr
        )
    else:
        try:
            logging.config.fileConfig(
                str(config_path),
                defaults={'log_level': os.environ['LOG_LEVEL'].strip().upper()},
                disable_existing_loggers=False
            )
        except (OSError, ValueError, KeyError) as e:
            print(f"Warning: Failed to load logging config from {config_path}: {e}", file=sys.stderr)
            print("Using basic logging configuration", file=sys.stderr)
            logging.basicConfig(
                level=logging.INFO,
                format='%(levelname)s: %(name)s: %(message)s',
                stream=sys.stderr
            )

    env_level = (level or os.environ.get('LOG_LEVEL', '')).strip().upper()
    if env_level in VALID_LEVELS:
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, env_level))
        for handler in root_logger.handlers:
            if isinstance(handler, logging.StreamHandler):
                handler.setLevel(getattr(logging, env_level))
        logging.getLogger('asset_forge').setLevel(getattr(logging, env_level))

    _bootstrapped = True
    if name:
        logging.getLogger(name).debug(f"Logging configured for {name} from {config_path or 'defaults'}")

