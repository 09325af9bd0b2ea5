"""
Build phase inference from output lines.

The detector maps substring markers in the build tool's output to an ordered
build phase and a percentage estimate. It only remembers the highest phase
seen so far, so compilers re-emitting "Compiling" per file never move the
phase backwards.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from ..models.session import BuildPhase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseMarker:
    """A substring that, when present in an output line, implies a phase."""

    marker: str
    phase: BuildPhase
    percentage: int


DEFAULT_PHASE_MARKERS: Tuple[PhaseMarker, ...] = (
    PhaseMarker("Resolve Package Graph", BuildPhase.RESOLVING_DEPENDENCIES, 30),
    PhaseMarker("Planning build", BuildPhase.PLANNING, 40),
    PhaseMarker("Compiling", BuildPhase.COMPILING, 60),
    PhaseMarker("Linking", BuildPhase.LINKING, 80),
)

STARTING_PERCENTAGE = 0
TERMINAL_PERCENTAGE = 100


class PhaseDetector:
    """
    Tracks the highest build phase implied by the output seen so far.

    Usage:
        detector = PhaseDetector()
        for line in lines:
            detector.observe(line)
        detector.finish(exit_code)
    """

    def __init__(self, markers: Optional[Sequence[PhaseMarker]] = None):
        self.markers: Tuple[PhaseMarker, ...] = tuple(markers or DEFAULT_PHASE_MARKERS)
        for marker in self.markers:
            if marker.phase.is_terminal:
                raise ValueError(f"Marker '{marker.marker}' cannot map to terminal phase {marker.phase.name}")
            if not 0 <= marker.percentage <= 100:
                raise ValueError(f"Marker '{marker.marker}' percentage out of range: {marker.percentage}")
        self._phase = BuildPhase.STARTING
        self._percentage = STARTING_PERCENTAGE

    @property
    def phase(self) -> BuildPhase:
        return self._phase

    @property
    def percentage(self) -> int:
        return self._percentage

    def match(self, line: str) -> Optional[PhaseMarker]:
        """
        Return the highest-phase marker contained in ``line``, if any.

        Does not change the tracked state.
        """
        best: Optional[PhaseMarker] = None
        for marker in self.markers:
            if marker.marker in line and (best is None or marker.phase > best.phase):
                best = marker
        return best

    def observe(self, line: str) -> bool:
        """
        Feed one output line to the detector.

        Returns:
            True if the line advanced the tracked phase, False otherwise
        """
        if self._phase.is_terminal:
            return False

        marker = self.match(line)
        if marker is None or marker.phase <= self._phase:
            return False

        logger.debug(f"Phase advanced {self._phase.name} -> {marker.phase.name} on line: {line[:120]}")
        self._phase = marker.phase
        self._percentage = max(self._percentage, marker.percentage)
        return True

    def observe_all(self, lines: Iterable[str]) -> BuildPhase:
        for line in lines:
            self.observe(line)
        return self._phase

    def finish(self, exit_code: int) -> BuildPhase:
        """
        Resolve the terminal phase from the process exit code.
        """
        self._phase = BuildPhase.COMPLETED if exit_code == 0 else BuildPhase.FAILED
        self._percentage = TERMINAL_PERCENTAGE
        logger.debug(f"Build finished with exit code {exit_code}: {self._phase.name}")
        return self._phase
