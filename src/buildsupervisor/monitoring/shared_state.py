"""
Shared state for a supervised build.

This module defines the lock-guarded progress state shared between the
output-consuming path and the hang-check path, and the timeout constants
used across the supervisor.
"""

import threading
import time
from typing import Callable, Optional

from ..models.session import BuildPhase, ProgressState


class TimeoutConstants:
    """
    Centralized timeout configuration.
    """
    # Hang watchdog
    HANG_CHECK_INTERVAL = 2.0
    HANG_MONITOR_JOIN_TIMEOUT = 5.0

    # Process termination
    TERMINATION_GRACEFUL_TIMEOUT = 5.0
    TERMINATION_FORCE_TIMEOUT = 2.0

    # Process table snapshot
    PROCESS_TABLE_TIMEOUT = 10.0


class SharedProgress:
    """
    Single-writer, multi-reader progress state of one build session.

    The consuming path is the only writer; the hang monitor and reporters
    read immutable ProgressState snapshots. Every update happens under one
    lock, so a liveness update is visible to the next reader.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._phase = BuildPhase.STARTING
        self._percentage = 0
        self._last_output = clock()
        self._lines_seen = 0

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def record_output(self, phase: BuildPhase, percentage: int,
                      timestamp: Optional[float] = None) -> ProgressState:
        """
        Record one line of output and the phase it implied.

        Phase and percentage never move backwards here, even if a caller
        passes an older value.
        """
        now = self._clock() if timestamp is None else timestamp
        with self._lock:
            if phase > self._phase:
                self._phase = phase
            if percentage > self._percentage:
                self._percentage = min(percentage, 100)
            self._last_output = max(self._last_output, now)
            self._lines_seen += 1
            return self._snapshot_locked()

    def finish(self, phase: BuildPhase, percentage: int) -> ProgressState:
        """Record the terminal phase derived from the exit code."""
        with self._lock:
            self._phase = phase
            self._percentage = max(self._percentage, min(percentage, 100))
            return self._snapshot_locked()

    def snapshot(self) -> ProgressState:
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> ProgressState:
        return ProgressState(
            phase=self._phase,
            percentage=self._percentage,
            last_output_timestamp=self._last_output,
            lines_seen=self._lines_seen,
        )
