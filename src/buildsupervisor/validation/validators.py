"""
Validation functions for configuration values and build sessions.
"""

import os
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from .exceptions import ValidationError


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is an integer within the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a number within the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated float value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_boolean(value: Any, field_name: str = "value") -> bool:
    """Validate that a value is a real boolean (TOML true/false)."""
    if not isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a boolean, got {value!r}",
            field_name=field_name,
            value=value
        )
    return value


def validate_path_exists(path: Union[str, Path], field_name: str = "path") -> str:
    """
    Validate that a path exists and is a directory.

    Args:
        path: Path to validate
        field_name: Name of the field being validated

    Returns:
        Validated path string

    Raises:
        ValidationError: If the path doesn't exist or is not a directory
    """
    path_str = str(path)
    if not path_str or not os.path.exists(path_str):
        raise ValidationError(
            f"{field_name} does not exist: {path_str}",
            field_name=field_name,
            value=path_str
        )
    if not os.path.isdir(path_str):
        raise ValidationError(
            f"{field_name} is not a directory: {path_str}",
            field_name=field_name,
            value=path_str
        )
    return path_str


def validate_command(command: Iterable[str], field_name: str = "command") -> List[str]:
    """
    Validate a resolved argument vector.

    The first element must be a non-empty executable name or path; the
    supervisor never infers the build tool on the caller's behalf.

    Raises:
        ValidationError: If the command is empty or contains non-string parts
    """
    if isinstance(command, str):
        raise ValidationError(
            f"{field_name} must be an argument list, not a shell string",
            field_name=field_name,
            value=command
        )
    argv = list(command)
    if not argv:
        raise ValidationError(f"{field_name} must not be empty", field_name=field_name, value=argv)
    for part in argv:
        if not isinstance(part, str):
            raise ValidationError(
                f"{field_name} arguments must be strings, got {part!r}",
                field_name=field_name,
                value=argv
            )
    if not argv[0].strip():
        raise ValidationError(
            f"{field_name} executable must not be blank",
            field_name=field_name,
            value=argv
        )
    return argv


def validate_name_patterns(patterns: Any, field_name: str = "name_patterns") -> List[str]:
    """Validate a list of non-empty process name glob patterns."""
    if isinstance(patterns, str) or not isinstance(patterns, (list, tuple, set, frozenset)):
        raise ValidationError(
            f"{field_name} must be a list of strings",
            field_name=field_name,
            value=patterns
        )
    result = []
    for pattern in patterns:
        if not isinstance(pattern, str) or not pattern.strip():
            raise ValidationError(
                f"{field_name} entries must be non-empty strings, got {pattern!r}",
                field_name=field_name,
                value=patterns
            )
        result.append(pattern.strip())
    if not result:
        raise ValidationError(f"{field_name} must not be empty", field_name=field_name, value=patterns)
    return result


def validate_build_session(session: Any) -> Any:
    """
    Validate a BuildSession before handing it to a supervisor.

    Checks that the working directory exists, the command is a non-empty
    argument vector and the hang timeout is positive.

    Returns:
        The same session, for chaining

    Raises:
        ValidationError: If any field is invalid
    """
    validate_path_exists(session.working_directory, field_name="working_directory")
    validate_command(session.command, field_name="command")
    validate_positive_integer(session.timeout_seconds, min_value=1, field_name="timeout_seconds")
    validate_boolean(session.hang_detection_enabled, field_name="hang_detection_enabled")
    validate_boolean(session.resource_monitoring_enabled, field_name="resource_monitoring_enabled")
    return session
