"""
Configuration management and singleton pattern.

This module provides the main configuration loading interface, caching the
validated configuration so it is only loaded once per process.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.config import AppConfig
from ..validation import ErrorSeverity, ValidationError, handle_config_error
from .loader import load_main_config
from .validators import validate_scanner_config, validate_supervisor_config

logger = logging.getLogger(__name__)

# --- Global Singleton for Configuration ---

_CONFIG: Optional[AppConfig] = None

# Default location of the main configuration file: <repo>/conf/config.toml.
_DEFAULT_CONFIG_FILE_PATH = Path(__file__).parent.parent.parent.parent / "conf" / "config.toml"
_CONFIG_FILE_PATH = _DEFAULT_CONFIG_FILE_PATH


def set_config_path(config_path: Path) -> None:
    """
    Set a custom configuration file path.

    Clears any cached configuration so the next get_config() call reloads
    from the new location.
    """
    global _CONFIG_FILE_PATH, _CONFIG
    _CONFIG_FILE_PATH = Path(config_path)
    _CONFIG = None
    logger.info(f"Configuration path set to: {config_path}")


def clear_config_cache() -> None:
    """Clear the cached configuration, forcing a reload on next access."""
    global _CONFIG
    _CONFIG = None
    logger.debug("Configuration cache cleared")


def build_config(config_data: Dict[str, Any]) -> AppConfig:
    """
    Validate raw configuration data into an AppConfig.

    Args:
        config_data: Parsed TOML document (may be empty)

    Raises:
        ValidationError: If any section is invalid
    """
    supervisor_data = config_data.get("supervisor", {})
    scanner_data = config_data.get("scanner", {})
    if not isinstance(supervisor_data, dict) or not isinstance(scanner_data, dict):
        raise ValidationError("[supervisor] and [scanner] must be tables")

    return AppConfig(
        supervisor=validate_supervisor_config(supervisor_data),
        scanner=validate_scanner_config(scanner_data),
    )


def _load_config(config_path: Path) -> AppConfig:
    """
    Load and validate the application configuration from a TOML file.

    A missing file at the default location falls back to built-in defaults;
    a missing file that was explicitly configured is an error.

    Raises:
        FileNotFoundError: If an explicitly configured file is missing
        ValidationError: If configuration validation fails
        tomllib.TOMLDecodeError: If the TOML file is malformed
    """
    if not config_path.exists() and config_path == _DEFAULT_CONFIG_FILE_PATH:
        logger.info(f"No configuration file at {config_path}, using built-in defaults")
        return build_config({})

    try:
        app_config = build_config(load_main_config(config_path))
        logger.info(f"Successfully loaded configuration from {config_path}")
        return app_config
    except FileNotFoundError as e:
        handle_config_error(
            error=e,
            context="loading configuration file",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise
    except Exception as e:
        handle_config_error(
            error=e,
            context="processing configuration",
            severity=ErrorSeverity.ERROR,
            reraise=True,
            logger=logger
        )
        raise


def get_config() -> AppConfig:
    """
    Get the global application configuration, loading it if necessary.

    Returns:
        The cached AppConfig instance

    Raises:
        FileNotFoundError: If an explicitly configured file is missing
        ValidationError: If configuration validation fails
        tomllib.TOMLDecodeError: If the TOML file is malformed
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _load_config(_CONFIG_FILE_PATH)
    return _CONFIG


def is_config_loaded() -> bool:
    """Check if configuration has been loaded and cached."""
    return _CONFIG is not None


def get_config_info() -> dict:
    """
    Get information about the current configuration state.

    Returns:
        Dictionary with configuration metadata
    """
    return {
        "config_loaded": is_config_loaded(),
        "config_path": str(_CONFIG_FILE_PATH),
        "config_exists": _CONFIG_FILE_PATH.exists(),
        "scanner_patterns": len(_CONFIG.scanner.name_patterns) if _CONFIG else 0,
    }
