"""
Process table snapshots and parsing.

The emergency scanner reads the system process table as one opaque block of
text through a ProcessTableSource. Parsing that text into ProcessRecords is
kept separate so it can be tested against synthetic tables.

Expected row layout (whitespace separated, no header)::

    <pid> <cpu%> <elapsed> <command name>

where elapsed is ``[[DD-]HH:]MM:SS`` as printed by ``ps -o etime``.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..models.processes import ProcessRecord
from ..monitoring.shared_state import TimeoutConstants
from ..validation import ParseAnomaly, SupervisorError
from .commands import run_command

logger = logging.getLogger(__name__)

PS_COMMAND = ["ps", "-axo", "pid=,pcpu=,etime=,comm="]


class ProcessTableSource(ABC):
    """Capability that returns one snapshot of the system process table."""

    @abstractmethod
    def snapshot(self) -> str:
        """Return the process table as text, one process per line."""


class PsProcessTableSource(ProcessTableSource):
    """Reads the process table with ``ps``."""

    def __init__(self, command: Optional[List[str]] = None,
                 timeout: float = TimeoutConstants.PROCESS_TABLE_TIMEOUT):
        self.command = list(command or PS_COMMAND)
        self.timeout = timeout

    def snapshot(self) -> str:
        """
        Raises:
            SupervisorError: If the process table could not be read
        """
        return_code, stdout, stderr = run_command(self.command, timeout=self.timeout)
        if return_code != 0:
            raise SupervisorError(
                f"Process table snapshot failed (exit {return_code}): {stderr.strip()}"
            )
        return stdout


class StaticProcessTableSource(ProcessTableSource):
    """Serves a fixed table text, e.g. a captured or synthetic snapshot."""

    def __init__(self, text: str):
        self.text = text

    def snapshot(self) -> str:
        return self.text


def parse_elapsed_minutes(value: str) -> float:
    """Parse a process elapsed-time field into minutes.

    Accepts ``MM:SS``, ``HH:MM:SS`` and ``DD-HH:MM:SS``. A bare value with
    no colon and any malformed field count as zero runtime; this never raises.

    Examples:
        >>> parse_elapsed_minutes("1:30:00")
        90.0
        >>> parse_elapsed_minutes("5:30")
        5.5
        >>> parse_elapsed_minutes("45")
        0.0
        >>> parse_elapsed_minutes("abc")
        0.0
    """
    text = (value or "").strip()
    if ":" not in text:
        if text:
            logger.debug(f"Elapsed field without colon treated as zero runtime: '{text}'")
        return 0.0

    try:
        days = 0
        if "-" in text:
            day_part, text = text.split("-", 1)
            days = int(day_part)

        parts = [int(part) for part in text.split(":")]
        if len(parts) == 2:
            hours, (minutes, seconds) = 0, parts
        elif len(parts) == 3:
            hours, minutes, seconds = parts
        else:
            logger.debug(f"Unrecognised elapsed field treated as zero runtime: '{value}'")
            return 0.0
    except ValueError:
        logger.debug(f"Malformed elapsed field treated as zero runtime: '{value}'")
        return 0.0

    if min(days, hours, minutes, seconds) < 0:
        logger.debug(f"Negative elapsed field treated as zero runtime: '{value}'")
        return 0.0
    return days * 1440.0 + hours * 60.0 + minutes + seconds / 60.0


def parse_process_row(line: str) -> ProcessRecord:
    """
    Parse one process table row.

    Raises:
        ParseAnomaly: If the row does not have a numeric pid and cpu field
    """
    fields = line.split(None, 3)
    if len(fields) < 4:
        raise ParseAnomaly(f"Expected 4 fields, got {len(fields)}", row=line)

    pid_field, cpu_field, elapsed_field, command_name = fields
    try:
        pid = int(pid_field)
    except ValueError:
        raise ParseAnomaly(f"Invalid pid '{pid_field}'", row=line)
    try:
        cpu = float(cpu_field)
    except ValueError:
        raise ParseAnomaly(f"Invalid cpu percentage '{cpu_field}'", row=line)

    return ProcessRecord(
        pid=pid,
        command_name=command_name.strip(),
        cpu_percentage=cpu,
        elapsed_runtime_minutes=parse_elapsed_minutes(elapsed_field),
    )


def parse_process_table(text: str) -> Tuple[List[ProcessRecord], List[ParseAnomaly]]:
    """
    Parse a whole process table snapshot.

    Malformed rows are collected as anomalies and skipped; a single bad row
    never aborts the parse.

    Returns:
        Tuple of (records, anomalies)
    """
    records: List[ProcessRecord] = []
    anomalies: List[ParseAnomaly] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        if line.split(None, 1)[0].upper() == "PID":
            continue  # header row
        try:
            records.append(parse_process_row(line))
        except ParseAnomaly as e:
            logger.debug(f"Skipping process table row: {e}: '{line.strip()}'")
            anomalies.append(e)

    if anomalies:
        logger.info(f"Ignored {len(anomalies)} malformed process table rows")
    return records, anomalies
