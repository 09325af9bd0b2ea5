"""
Data models for the build supervisor.

Configuration Models:
- Supervisor settings (hang detection, termination, resources, reporting)
- Emergency scanner thresholds and process name patterns

Session Models:
- The caller-supplied build session and ordered build phases
- Shared progress snapshots, hang alerts and the terminal session status

Process Models:
- Process table records and per-process termination results
- Resource usage snapshots of a build's process tree
"""

from .config import AppConfig, DEFAULT_COMPILER_PATTERNS, ScannerConfig, SupervisorConfig
from .processes import ProcessRecord, TerminatedProcess, TerminationOutcome
from .resources import ResourceSnapshot
from .session import (
    TERMINATED_EXIT_CODE,
    BuildPhase,
    BuildSession,
    HangAlert,
    ProgressState,
    SessionOutcome,
    SessionStatus,
)

__all__ = [
    # Configuration
    "AppConfig",
    "DEFAULT_COMPILER_PATTERNS",
    "ScannerConfig",
    "SupervisorConfig",
    # Processes
    "ProcessRecord",
    "ResourceSnapshot",
    "TerminatedProcess",
    "TerminationOutcome",
    # Session
    "TERMINATED_EXIT_CODE",
    "BuildPhase",
    "BuildSession",
    "HangAlert",
    "ProgressState",
    "SessionOutcome",
    "SessionStatus",
]
