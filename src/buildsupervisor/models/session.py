"""
Session data models.

This module contains the data structures describing a single supervised
build: the caller-supplied session, the inferred build phase, the shared
progress snapshot, hang alerts and the terminal session status.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import List, Optional, Tuple

from .resources import ResourceSnapshot

# Exit status reported for a child that had to be killed unconditionally.
TERMINATED_EXIT_CODE = -1


class BuildPhase(IntEnum):
    """
    Coarse stage of the build lifecycle, ordered by progress.

    COMPLETED and FAILED are terminal and only reached from the exit code.
    """

    STARTING = 0
    RESOLVING_DEPENDENCIES = 1
    PLANNING = 2
    COMPILING = 3
    LINKING = 4
    COMPLETED = 5
    FAILED = 6

    @property
    def is_terminal(self) -> bool:
        return self in (BuildPhase.COMPLETED, BuildPhase.FAILED)

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]


_PHASE_LABELS = {
    BuildPhase.STARTING: "Starting",
    BuildPhase.RESOLVING_DEPENDENCIES: "Resolving dependencies",
    BuildPhase.PLANNING: "Planning",
    BuildPhase.COMPILING: "Compiling",
    BuildPhase.LINKING: "Linking",
    BuildPhase.COMPLETED: "Completed",
    BuildPhase.FAILED: "Failed",
}


@dataclass(frozen=True)
class BuildSession:
    """
    Immutable description of one build to supervise.

    Created and validated by the caller, then owned by exactly one
    BuildSupervisor. A finished or terminated session cannot be restarted;
    create a new one instead.
    """

    # Directory the build command runs in.
    working_directory: Path
    # Fully resolved argument vector; the first element is the executable.
    command: Tuple[str, ...]
    hang_detection_enabled: bool = True
    # Seconds without output before a hang alert is raised.
    timeout_seconds: int = 30
    # Sample CPU and memory of the build's process tree while it runs.
    resource_monitoring_enabled: bool = False

    def __post_init__(self):
        # Normalise caller-friendly inputs without making the object mutable.
        object.__setattr__(self, "working_directory", Path(self.working_directory))
        object.__setattr__(self, "command", tuple(self.command))

    @property
    def command_line(self) -> str:
        return " ".join(self.command)


@dataclass(frozen=True)
class ProgressState:
    """Snapshot of the shared progress of a running build."""

    phase: BuildPhase
    percentage: int
    # Monotonic clock reading of the most recent output line.
    last_output_timestamp: float
    lines_seen: int = 0


@dataclass(frozen=True)
class HangAlert:
    """
    Emitted once per stall episode when the build stops producing output.
    """

    suspected_phase: BuildPhase
    percentage: int
    elapsed_since_output: float
    recommendation: str
    resources: Optional[ResourceSnapshot] = None

    def describe(self) -> str:
        return (
            f"No output for {self.elapsed_since_output:.1f}s during "
            f"{self.suspected_phase.label} ({self.percentage}%). {self.recommendation}"
        )


class SessionOutcome(Enum):
    """Terminal outcome kinds of a supervised build."""
    COMPLETED = "completed"
    TERMINATED = "terminated"
    FAILED = "failed"


@dataclass
class SessionStatus:
    """
    Terminal outcome of a BuildSupervisor run.

    Exactly one of ``exit_code`` (COMPLETED), ``reason`` (TERMINATED) or
    ``cause`` (FAILED) describes the outcome; the remaining fields carry
    diagnostics for a human reading the result.
    """

    outcome: SessionOutcome
    exit_code: Optional[int] = None
    reason: Optional[str] = None
    cause: Optional[str] = None
    last_phase: BuildPhase = BuildPhase.STARTING
    percentage: int = 0
    stall_seconds: Optional[float] = None
    duration_seconds: float = 0.0
    warnings: List[str] = field(default_factory=list)
    output_tail: List[str] = field(default_factory=list)

    @classmethod
    def completed(cls, exit_code: int, **diagnostics) -> "SessionStatus":
        return cls(outcome=SessionOutcome.COMPLETED, exit_code=exit_code, **diagnostics)

    @classmethod
    def terminated(cls, reason: str, **diagnostics) -> "SessionStatus":
        return cls(outcome=SessionOutcome.TERMINATED, reason=reason, **diagnostics)

    @classmethod
    def failed(cls, cause: str, **diagnostics) -> "SessionStatus":
        return cls(outcome=SessionOutcome.FAILED, cause=cause, **diagnostics)

    @property
    def succeeded(self) -> bool:
        return self.outcome is SessionOutcome.COMPLETED and self.exit_code == 0

    def summary(self) -> str:
        """One-line human readable description of the outcome."""
        if self.outcome is SessionOutcome.COMPLETED:
            text = f"Build completed with exit code {self.exit_code} ({self.last_phase.label})"
        elif self.outcome is SessionOutcome.TERMINATED:
            text = f"Build terminated: {self.reason} during {self.last_phase.label} at {self.percentage}%"
            if self.stall_seconds is not None:
                text += f" after {self.stall_seconds:.1f}s without output"
        else:
            text = f"Build failed: {self.cause} during {self.last_phase.label}"
        return f"{text} [{self.duration_seconds:.1f}s]"
