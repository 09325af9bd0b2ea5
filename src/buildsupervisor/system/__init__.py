"""
System-level helpers for the build supervisor.

This module provides command execution, process table snapshots and the
emergency scanner that reclaims stuck compiler processes.
"""

from .commands import run_command
from .emergency_scanner import EmergencyScanner, kill_process, matches_patterns, same_process_name, scan
from .process_table import (
    PS_COMMAND,
    ProcessTableSource,
    PsProcessTableSource,
    StaticProcessTableSource,
    parse_elapsed_minutes,
    parse_process_row,
    parse_process_table,
)

__all__ = [
    "run_command",
    "EmergencyScanner",
    "kill_process",
    "matches_patterns",
    "same_process_name",
    "scan",
    "PS_COMMAND",
    "ProcessTableSource",
    "PsProcessTableSource",
    "StaticProcessTableSource",
    "parse_elapsed_minutes",
    "parse_process_row",
    "parse_process_table",
]
