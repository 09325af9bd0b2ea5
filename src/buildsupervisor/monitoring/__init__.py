"""
Build observation for the buildsupervisor package.

This module provides phase detection from output lines, the hang watchdog,
process tree resource sampling, progress rendering and the shared progress
state connecting them.
"""

from .hang_monitor import IDLE_CPU_PERCENT, HangMonitor, HangState, build_recommendation
from .phase_detector import DEFAULT_PHASE_MARKERS, PhaseDetector, PhaseMarker
from .progress_reporter import ProgressReporter, render_progress
from .resources import ResourceSampler
from .shared_state import SharedProgress, TimeoutConstants

__all__ = [
    "IDLE_CPU_PERCENT",
    "HangMonitor",
    "HangState",
    "build_recommendation",
    "DEFAULT_PHASE_MARKERS",
    "PhaseDetector",
    "PhaseMarker",
    "ProgressReporter",
    "render_progress",
    "ResourceSampler",
    "SharedProgress",
    "TimeoutConstants",
]
