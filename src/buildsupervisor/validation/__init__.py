"""
Validation and error handling for the buildsupervisor package.

This module provides the supervisor's exception taxonomy, input validation
and consistent error reporting across the application.
"""

from .exceptions import (
    ErrorSeverity,
    ParseAnomaly,
    SpawnError,
    StreamReadError,
    SupervisorError,
    TerminationError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
)

from .validators import (
    validate_boolean,
    validate_build_session,
    validate_command,
    validate_name_patterns,
    validate_path_exists,
    validate_positive_float,
    validate_positive_integer,
)

__all__ = [
    # Errors
    "ErrorSeverity",
    "ParseAnomaly",
    "SpawnError",
    "StreamReadError",
    "SupervisorError",
    "TerminationError",
    "ValidationError",
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    # Validators
    "validate_boolean",
    "validate_build_session",
    "validate_command",
    "validate_name_patterns",
    "validate_path_exists",
    "validate_positive_float",
    "validate_positive_integer",
]
