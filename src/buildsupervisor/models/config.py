"""
Configuration data models.

This module contains the configuration structures for the build supervisor
and the emergency scanner, loaded from `config.toml`.
"""

from dataclasses import dataclass, field
from typing import List

DEFAULT_COMPILER_PATTERNS = [
    "swift-frontend",
    "swiftc",
    "swift-build",
    "swift-driver",
    "xcodebuild",
    "clang",
    "clang++",
    "ld",
    "ld64",
]


@dataclass
class SupervisorConfig:
    """
    Settings for supervising a single build, loaded from `[supervisor]`.
    """

    # [supervisor.hang]
    hang_detection_enabled: bool = True
    timeout_seconds: int = 30
    check_interval_seconds: float = 2.0
    # Time after an alert before the build is terminated.
    escalation_grace_seconds: float = 60.0

    # [supervisor.termination]
    # Time between SIGTERM and SIGKILL when terminating the build.
    termination_grace_seconds: float = 5.0
    # Upper bound for reaping the process after SIGKILL.
    kill_wait_seconds: float = 2.0

    # [supervisor.resources]
    resource_monitoring_enabled: bool = False
    cpu_threshold_percent: float = 80.0
    memory_threshold_gb: float = 2.0

    # [supervisor.reporting]
    bar_width: int = 20
    # Number of trailing output lines kept for diagnostics.
    output_tail_lines: int = 50


@dataclass
class ScannerConfig:
    """
    Thresholds for the emergency compiler sweep, loaded from `[scanner]`.
    """

    cpu_threshold_percent: float = 95.0
    runtime_threshold_minutes: float = 2.0
    name_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_COMPILER_PATTERNS))


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    supervisor: SupervisorConfig
    scanner: ScannerConfig
