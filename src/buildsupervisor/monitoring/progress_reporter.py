"""
Progress line rendering.

Rendering is a pure function of (phase, percentage): no state is kept and
nothing is emitted here; the caller decides where the line goes.
"""

from ..models.session import BuildPhase

FILLED_CHAR = "█"
EMPTY_CHAR = "░"
DEFAULT_BAR_WIDTH = 20


def render_progress(phase: BuildPhase, percentage: int, width: int = DEFAULT_BAR_WIDTH) -> str:
    """Render a progress bar line.

    Args:
        phase: Current build phase
        percentage: Completion estimate, clamped to 0..100
        width: Number of bar units

    Returns:
        A line such as ``[████████████░░░░░░░░]  60% Compiling``

    Examples:
        >>> render_progress(BuildPhase.PLANNING, 40, width=10)
        '[████░░░░░░]  40% Planning'
    """
    if width < 1:
        raise ValueError(f"width must be >= 1, got {width}")
    clamped = max(0, min(100, int(percentage)))
    filled = clamped * width // 100
    bar = FILLED_CHAR * filled + EMPTY_CHAR * (width - filled)
    return f"[{bar}] {clamped:3d}% {phase.label}"


class ProgressReporter:
    """Fixed-width renderer; a thin holder for the configured bar width."""

    def __init__(self, width: int = DEFAULT_BAR_WIDTH):
        if width < 1:
            raise ValueError(f"width must be >= 1, got {width}")
        self.width = width

    def render(self, phase: BuildPhase, percentage: int) -> str:
        return render_progress(phase, percentage, self.width)
