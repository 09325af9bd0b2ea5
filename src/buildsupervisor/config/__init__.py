"""
Configuration management for the buildsupervisor package.

This module provides a clean interface for loading, validating, and accessing
configuration data from a TOML file with singleton pattern management.
"""

from .manager import (
    build_config,
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    set_config_path,
)

from .loader import load_main_config, load_toml_file
from .validators import validate_scanner_config, validate_supervisor_config

__all__ = [
    # Main interface
    "get_config",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    "build_config",
    # Advanced interface
    "load_toml_file",
    "load_main_config",
    "validate_supervisor_config",
    "validate_scanner_config",
]
