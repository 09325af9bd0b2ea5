"""
buildsupervisor: Build process supervision and stuck-compiler recovery.

This package launches a long-running build command, infers progress phases
from its output, detects when the build stops producing output, and can
reclaim resources by killing stuck compiler processes system-wide.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Exception taxonomy, input validation and error handling
- executor: Build process spawning, output streaming and termination
- monitoring: Phase detection, hang watchdog, resource sampling, progress bars
- system: Command execution, process table parsing and the emergency scanner
- orchestration: The BuildSupervisor and signal handling
- cli: Command-line interface

Usage:
    From command line:
        buildsupervisor monitor --cwd path/to/project -- swift build
        buildsupervisor scan --dry-run

    Programmatically:
        from buildsupervisor import BuildSession, BuildSupervisor
        session = BuildSession(Path("project"), ("swift", "build"))
        status = BuildSupervisor(session, on_progress=print).start()
"""

# Main interfaces
from .config import clear_config_cache, get_config, set_config_path
from .executor import ProcessRunner
from .orchestration import BuildSupervisor
from .cli import main_cli

# Model classes for external use
from .models import (
    TERMINATED_EXIT_CODE,
    AppConfig,
    BuildPhase,
    BuildSession,
    HangAlert,
    ProcessRecord,
    ProgressState,
    ResourceSnapshot,
    ScannerConfig,
    SessionOutcome,
    SessionStatus,
    SupervisorConfig,
    TerminatedProcess,
    TerminationOutcome,
)

# Monitoring components
from .monitoring import HangMonitor, HangState, PhaseDetector, ProgressReporter, render_progress

# Emergency scanner
from .system import EmergencyScanner, scan

# Validation utilities
from .validation import (
    ParseAnomaly,
    SpawnError,
    StreamReadError,
    SupervisorError,
    TerminationError,
    ValidationError,
    validate_build_session,
)

__version__ = "1.1.0"

__all__ = [
    # Main interfaces
    "BuildSupervisor",
    "ProcessRunner",
    "get_config",
    "set_config_path",
    "clear_config_cache",
    "main_cli",
    # Models
    "TERMINATED_EXIT_CODE",
    "AppConfig",
    "BuildPhase",
    "BuildSession",
    "HangAlert",
    "ProcessRecord",
    "ProgressState",
    "ResourceSnapshot",
    "ScannerConfig",
    "SessionOutcome",
    "SessionStatus",
    "SupervisorConfig",
    "TerminatedProcess",
    "TerminationOutcome",
    # Monitoring
    "HangMonitor",
    "HangState",
    "PhaseDetector",
    "ProgressReporter",
    "render_progress",
    # Scanner
    "EmergencyScanner",
    "scan",
    # Errors
    "ParseAnomaly",
    "SpawnError",
    "StreamReadError",
    "SupervisorError",
    "TerminationError",
    "ValidationError",
    "validate_build_session",
]
