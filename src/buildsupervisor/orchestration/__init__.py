"""
Orchestration module for build supervision.

Components:
- BuildSupervisor: Composes process runner, phase detection, hang watchdog
  and progress reporting into one supervised session
- SignalHandler: Routes SIGINT/SIGTERM to active supervisors
"""

from .signal_handler import SignalHandler, active_supervisor_count
from .supervisor import HANG_REASON, INTERRUPT_REASON, BuildSupervisor

__all__ = [
    "BuildSupervisor",
    "HANG_REASON",
    "INTERRUPT_REASON",
    "SignalHandler",
    "active_supervisor_count",
]
