"""
Emergency sweep for stuck compiler processes.

The scanner takes one snapshot of the system process table, selects the
processes whose command name matches a compiler pattern and which exceed both
a CPU and a runtime threshold, and sends each of them SIGKILL. It holds no
state between scans and may run while a build session is active.
"""

import fnmatch
import logging
import os
from typing import Callable, List, Optional, Sequence

import psutil

from ..models.config import DEFAULT_COMPILER_PATTERNS
from ..models.processes import ProcessRecord, TerminatedProcess, TerminationOutcome
from ..validation import TerminationError
from .process_table import ProcessTableSource, PsProcessTableSource, parse_process_table

logger = logging.getLogger(__name__)

Killer = Callable[[ProcessRecord], None]


def same_process_name(actual: str, expected: str) -> bool:
    """
    Compare a live process name with a name taken from the process table.

    ``ps`` may report a full path or a truncated command name, so basenames
    are compared and a prefix of the other counts as a match.
    """
    actual = os.path.basename(actual.strip())
    expected = os.path.basename(expected.strip())
    if not actual or not expected:
        return False
    return actual == expected or actual.startswith(expected) or expected.startswith(actual)


def kill_process(record: ProcessRecord) -> None:
    """
    Send SIGKILL to the process a table row describes.

    Raises:
        psutil.NoSuchProcess: If the pid is gone or now belongs to a different program
    """
    proc = psutil.Process(record.pid)
    name = proc.name()
    if not same_process_name(name, record.command_name):
        logger.warning(f"PID {record.pid} is now '{name}', not '{record.command_name}'; not killing it")
        raise psutil.NoSuchProcess(record.pid, name=record.command_name, msg="pid reused by another process")
    proc.kill()


def matches_patterns(command_name: str, patterns: Sequence[str]) -> bool:
    """
    Check a command name against glob patterns.

    Only the basename is matched, so ``/usr/bin/swift-frontend`` matches the
    pattern ``swift-frontend``. Matching is case-sensitive.
    """
    basename = os.path.basename(command_name.strip())
    return any(fnmatch.fnmatchcase(basename, pattern) for pattern in patterns)


class EmergencyScanner:
    """
    Finds and kills runaway compiler processes.

    Args:
        source: Process table source, ``ps`` by default
        killer: Callable delivering SIGKILL to a selected record; psutil by default
    """

    def __init__(self, source: Optional[ProcessTableSource] = None,
                 killer: Optional[Killer] = None):
        self.source = source or PsProcessTableSource()
        self.killer = killer or kill_process

    def find_candidates(
        self,
        cpu_threshold: float,
        runtime_threshold_minutes: float,
        name_patterns: Sequence[str] = DEFAULT_COMPILER_PATTERNS,
    ) -> List[ProcessRecord]:
        """Return the processes of one snapshot that meet every selection criterion."""
        records, _ = parse_process_table(self.source.snapshot())
        own_pid = os.getpid()

        selected = []
        for record in records:
            if record.pid == own_pid:
                continue
            if not matches_patterns(record.command_name, name_patterns):
                continue
            if record.cpu_percentage < cpu_threshold:
                continue
            if record.elapsed_runtime_minutes < runtime_threshold_minutes:
                continue
            selected.append(record)

        logger.debug(
            f"Scanned {len(records)} processes, {len(selected)} exceed cpu>={cpu_threshold}% "
            f"and runtime>={runtime_threshold_minutes}min"
        )
        return selected

    def scan(
        self,
        cpu_threshold: float,
        runtime_threshold_minutes: float,
        name_patterns: Sequence[str] = DEFAULT_COMPILER_PATTERNS,
        dry_run: bool = False,
    ) -> List[TerminatedProcess]:
        """
        Sweep the process table and kill every selected process.

        Args:
            cpu_threshold: Minimum CPU percentage for selection
            runtime_threshold_minutes: Minimum runtime for selection
            name_patterns: Glob patterns matched against the command basename
            dry_run: Report the selection without signalling anything

        Returns:
            One TerminatedProcess per selected process, in table order
        """
        candidates = self.find_candidates(cpu_threshold, runtime_threshold_minutes, name_patterns)
        if not candidates:
            logger.info("Emergency scan found no stuck compiler processes")
            return []

        logger.warning(f"Emergency scan selected {len(candidates)} processes"
                       f"{' (dry run)' if dry_run else ''}")

        results = []
        for record in candidates:
            if dry_run:
                result = TerminatedProcess(record, TerminationOutcome.DRY_RUN)
            else:
                result = self._kill(record)
            logger.info(result.describe())
            results.append(result)
        return results

    def _kill(self, record: ProcessRecord) -> TerminatedProcess:
        try:
            self.killer(record)
        except (psutil.NoSuchProcess, ProcessLookupError):
            return TerminatedProcess(record, TerminationOutcome.ALREADY_EXITED)
        except (psutil.AccessDenied, PermissionError) as e:
            error = TerminationError(f"Permission denied killing PID {record.pid}: {e}", pid=record.pid)
            logger.warning(str(error))
            return TerminatedProcess(record, TerminationOutcome.PERMISSION_DENIED, error=str(error))
        except Exception as e:
            logger.error(f"Failed to kill PID {record.pid} ({record.command_name}): "
                         f"{type(e).__name__}: {e}", exc_info=True)
            return TerminatedProcess(record, TerminationOutcome.FAILED, error=f"{type(e).__name__}: {e}")
        return TerminatedProcess(record, TerminationOutcome.KILLED)


def scan(
    cpu_threshold: float,
    runtime_threshold_minutes: float,
    name_patterns: Sequence[str] = DEFAULT_COMPILER_PATTERNS,
    dry_run: bool = False,
    source: Optional[ProcessTableSource] = None,
) -> List[TerminatedProcess]:
    """Run a single emergency sweep with the default killer."""
    return EmergencyScanner(source=source).scan(
        cpu_threshold, runtime_threshold_minutes, name_patterns, dry_run=dry_run
    )
