"""
Process table data models used by the emergency scanner.

Records are ephemeral: they are built fresh from each process table snapshot
and never reused across scans.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ProcessRecord:
    """One parsed row of the system process table."""

    pid: int
    command_name: str
    cpu_percentage: float
    elapsed_runtime_minutes: float


class TerminationOutcome(Enum):
    """Result of signalling a single process."""
    KILLED = "killed"
    PERMISSION_DENIED = "permission-denied"
    ALREADY_EXITED = "already-exited"
    FAILED = "failed"
    DRY_RUN = "dry-run"


@dataclass(frozen=True)
class TerminatedProcess:
    """A process the scanner acted upon and what happened to it."""

    record: ProcessRecord
    outcome: TerminationOutcome
    error: Optional[str] = None

    @property
    def pid(self) -> int:
        return self.record.pid

    @property
    def succeeded(self) -> bool:
        return self.outcome in (
            TerminationOutcome.KILLED,
            TerminationOutcome.ALREADY_EXITED,
            TerminationOutcome.DRY_RUN,
        )

    def describe(self) -> str:
        text = (
            f"PID {self.record.pid} {self.record.command_name} "
            f"(cpu {self.record.cpu_percentage:.1f}%, "
            f"runtime {self.record.elapsed_runtime_minutes:.1f}min): {self.outcome.value}"
        )
        if self.error:
            text += f" ({self.error})"
        return text
