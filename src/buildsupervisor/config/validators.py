"""
Configuration validation utilities.

This module turns raw TOML tables into validated SupervisorConfig and
ScannerConfig instances, applying defaults for missing keys.
"""

import logging
from typing import Any, Dict

from ..models.config import DEFAULT_COMPILER_PATTERNS, ScannerConfig, SupervisorConfig
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_name_patterns,
    validate_positive_float,
    validate_positive_integer,
)

logger = logging.getLogger(__name__)


def _section(data: Dict[str, Any], name: str, prefix: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValidationError(f"{prefix}.{name} must be a table", field_name=f"{prefix}.{name}", value=section)
    return section


def validate_supervisor_config(supervisor_data: Dict[str, Any]) -> SupervisorConfig:
    """
    Validate and create a SupervisorConfig from raw configuration data.

    Args:
        supervisor_data: Raw `[supervisor]` table from TOML

    Returns:
        Validated SupervisorConfig instance

    Raises:
        ValidationError: If validation fails
    """
    hang = _section(supervisor_data, "hang", "supervisor")
    termination = _section(supervisor_data, "termination", "supervisor")
    resources = _section(supervisor_data, "resources", "supervisor")
    reporting = _section(supervisor_data, "reporting", "supervisor")

    hang_detection_enabled = validate_boolean(
        hang.get("enabled", True),
        field_name="supervisor.hang.enabled",
    )

    timeout_seconds = validate_positive_integer(
        hang.get("timeout_seconds", 30),
        min_value=1,
        max_value=86400,  # one day
        field_name="supervisor.hang.timeout_seconds",
    )

    check_interval_seconds = validate_positive_float(
        hang.get("check_interval_seconds", 2.0),
        min_value=0.01,
        max_value=60.0,
        field_name="supervisor.hang.check_interval_seconds",
    )

    escalation_grace_seconds = validate_positive_float(
        hang.get("escalation_grace_seconds", 60.0),
        min_value=0.01,
        max_value=86400.0,
        field_name="supervisor.hang.escalation_grace_seconds",
    )

    termination_grace_seconds = validate_positive_float(
        termination.get("grace_seconds", 5.0),
        min_value=0.0,
        max_value=300.0,
        field_name="supervisor.termination.grace_seconds",
    )

    kill_wait_seconds = validate_positive_float(
        termination.get("kill_wait_seconds", 2.0),
        min_value=0.1,
        max_value=60.0,
        field_name="supervisor.termination.kill_wait_seconds",
    )

    resource_monitoring_enabled = validate_boolean(
        resources.get("enabled", False),
        field_name="supervisor.resources.enabled",
    )

    cpu_threshold_percent = validate_positive_float(
        resources.get("cpu_threshold_percent", 80.0),
        min_value=0.1,
        field_name="supervisor.resources.cpu_threshold_percent",
    )

    memory_threshold_gb = validate_positive_float(
        resources.get("memory_threshold_gb", 2.0),
        min_value=0.001,
        field_name="supervisor.resources.memory_threshold_gb",
    )

    bar_width = validate_positive_integer(
        reporting.get("bar_width", 20),
        min_value=1,
        max_value=200,
        field_name="supervisor.reporting.bar_width",
    )

    output_tail_lines = validate_positive_integer(
        reporting.get("output_tail_lines", 50),
        min_value=0,
        max_value=100000,
        field_name="supervisor.reporting.output_tail_lines",
    )

    return SupervisorConfig(
        hang_detection_enabled=hang_detection_enabled,
        timeout_seconds=timeout_seconds,
        check_interval_seconds=check_interval_seconds,
        escalation_grace_seconds=escalation_grace_seconds,
        termination_grace_seconds=termination_grace_seconds,
        kill_wait_seconds=kill_wait_seconds,
        resource_monitoring_enabled=resource_monitoring_enabled,
        cpu_threshold_percent=cpu_threshold_percent,
        memory_threshold_gb=memory_threshold_gb,
        bar_width=bar_width,
        output_tail_lines=output_tail_lines,
    )


def validate_scanner_config(scanner_data: Dict[str, Any]) -> ScannerConfig:
    """
    Validate and create a ScannerConfig from the raw `[scanner]` table.

    Raises:
        ValidationError: If validation fails
    """
    cpu_threshold_percent = validate_positive_float(
        scanner_data.get("cpu_threshold_percent", 95.0),
        min_value=0.1,
        field_name="scanner.cpu_threshold_percent",
    )

    runtime_threshold_minutes = validate_positive_float(
        scanner_data.get("runtime_threshold_minutes", 2.0),
        min_value=0.01,
        field_name="scanner.runtime_threshold_minutes",
    )

    name_patterns = validate_name_patterns(
        scanner_data.get("name_patterns", DEFAULT_COMPILER_PATTERNS),
        field_name="scanner.name_patterns",
    )

    return ScannerConfig(
        cpu_threshold_percent=cpu_threshold_percent,
        runtime_threshold_minutes=runtime_threshold_minutes,
        name_patterns=name_patterns,
    )
