"""
Hang detection for a supervised build.

The HangMonitor is a fixed-cadence watchdog implemented as an explicit state
machine:

    IDLE -> ARMED -> ALERTED -> RESOLVED -> ARMED
                             -> ESCALATED

A stall first raises a single HangAlert. If output resumes the episode is
resolved and the monitor re-arms; if the stall outlasts the escalation grace
window the escalation callback runs once (the supervisor terminates the
build). This bounds the worst-case hang at timeout + escalation grace.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from ..models.resources import ResourceSnapshot
from ..models.session import BuildPhase, HangAlert, ProgressState
from .shared_state import SharedProgress, TimeoutConstants
from .resources import ResourceSampler

logger = logging.getLogger(__name__)

# Below this tree-wide CPU usage a silent build is considered idle.
IDLE_CPU_PERCENT = 5.0


class HangState(Enum):
    """States of the hang watchdog."""
    IDLE = "idle"
    ARMED = "armed"
    ALERTED = "alerted"
    RESOLVED = "resolved"
    ESCALATED = "escalated"
    STOPPED = "stopped"


_ALLOWED_TRANSITIONS = {
    HangState.IDLE: {HangState.ARMED, HangState.STOPPED},
    HangState.ARMED: {HangState.ALERTED, HangState.STOPPED},
    HangState.ALERTED: {HangState.RESOLVED, HangState.ESCALATED, HangState.STOPPED},
    HangState.RESOLVED: {HangState.ARMED, HangState.STOPPED},
    HangState.ESCALATED: {HangState.STOPPED},
    HangState.STOPPED: set(),
}


def build_recommendation(phase: BuildPhase, resources: Optional[ResourceSnapshot] = None) -> str:
    """
    Suggest a next step for a human looking at a stalled build.

    Args:
        phase: Phase the build was in when it went silent
        resources: Latest resource sample of the build, if monitored
    """
    if phase == BuildPhase.RESOLVING_DEPENDENCIES:
        text = "Dependency resolution stalled; check network access and package registry availability."
    elif phase == BuildPhase.PLANNING:
        text = "Build planning stalled; a corrupted build cache or manifest cycle is likely. Try a clean build."
    elif phase == BuildPhase.COMPILING:
        text = ("A compiler process may be stuck type-checking a complex expression; "
                "run an emergency scan to reclaim stuck compiler processes.")
    elif phase == BuildPhase.LINKING:
        text = "Linking stalled; check free disk space and available memory."
    else:
        text = "The build tool produced no output since starting; verify the command and working directory."

    if resources is not None:
        if resources.cpu_percent < IDLE_CPU_PERCENT:
            text += f" The build is idle ({resources.describe()}); it is likely waiting on a lock or deadlocked."
        else:
            text += f" The build is still busy ({resources.describe()}); consider raising the hang timeout."
    return text


class HangMonitor:
    """
    Watchdog comparing time since last output against a timeout.

    ``tick()`` performs one check and is safe to call directly, which makes
    the state machine testable with a fake clock. ``start()`` runs ticks on
    a daemon thread every ``check_interval`` seconds.
    """

    def __init__(
        self,
        progress: SharedProgress,
        timeout_seconds: float,
        escalation_grace_seconds: float,
        on_alert: Optional[Callable[[HangAlert], None]] = None,
        on_escalate: Optional[Callable[[HangAlert], None]] = None,
        on_resolved: Optional[Callable[[float], None]] = None,
        check_interval: float = TimeoutConstants.HANG_CHECK_INTERVAL,
        enabled: bool = True,
        resource_sampler: Optional[ResourceSampler] = None,
    ):
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {timeout_seconds}")
        if escalation_grace_seconds <= 0:
            raise ValueError(f"escalation_grace_seconds must be > 0, got {escalation_grace_seconds}")
        if check_interval <= 0:
            raise ValueError(f"check_interval must be > 0, got {check_interval}")

        self.progress = progress
        self.timeout_seconds = timeout_seconds
        self.escalation_grace_seconds = escalation_grace_seconds
        self.check_interval = check_interval
        self.enabled = enabled
        self.resource_sampler = resource_sampler
        self._on_alert = on_alert
        self._on_escalate = on_escalate
        self._on_resolved = on_resolved

        self._state = HangState.IDLE
        self._state_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Stall episode bookkeeping; only touched under _tick_lock.
        self._alerted_at: Optional[float] = None
        self._stall_output_timestamp: Optional[float] = None
        self._current_alert: Optional[HangAlert] = None
        self.alerts_raised = 0
        self.escalations = 0

        if enabled:
            self._transition(HangState.ARMED)

    @property
    def state(self) -> HangState:
        with self._state_lock:
            return self._state

    @property
    def current_alert(self) -> Optional[HangAlert]:
        return self._current_alert

    @property
    def escalated(self) -> bool:
        return self.escalations > 0

    def _transition(self, new_state: HangState) -> None:
        with self._state_lock:
            if new_state not in _ALLOWED_TRANSITIONS[self._state]:
                raise RuntimeError(f"Illegal hang monitor transition {self._state.name} -> {new_state.name}")
            logger.debug(f"Hang monitor {self._state.name} -> {new_state.name}")
            self._state = new_state

    def start(self) -> None:
        """
        Start the periodic check thread.

        Raises:
            RuntimeError: If already started or stopped
        """
        if self._thread is not None:
            raise RuntimeError("Hang monitor already started")
        if self.state == HangState.STOPPED:
            raise RuntimeError("Hang monitor has been stopped and cannot be restarted")

        self._thread = threading.Thread(target=self._run, name="HangMonitor", daemon=True)
        self._thread.start()
        logger.info(
            f"Hang monitor started (enabled={self.enabled}, timeout={self.timeout_seconds}s, "
            f"escalation grace={self.escalation_grace_seconds}s, interval={self.check_interval}s)"
        )

    def stop(self, timeout: float = TimeoutConstants.HANG_MONITOR_JOIN_TIMEOUT) -> None:
        """Stop checking and join the check thread. Idempotent."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Hang monitor thread did not stop within timeout")
        with self._tick_lock:
            if self.state != HangState.STOPPED:
                self._transition(HangState.STOPPED)

    def _run(self) -> None:
        while not self._stop_event.wait(self.check_interval):
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Hang monitor tick failed: {e}", exc_info=True)
            if self.state in (HangState.ESCALATED, HangState.STOPPED):
                break

    def tick(self, now: Optional[float] = None) -> HangState:
        """
        Perform one hang check.

        State changes happen under the tick lock; the resulting callback runs
        after the lock is released, so a slow alert sink or a termination in
        ``on_escalate`` never blocks ``stop()``.

        Args:
            now: Clock reading to use; defaults to the progress clock

        Returns:
            The state after the check
        """
        callback: Optional[Callable] = None
        argument = None
        with self._tick_lock:
            if self.resource_sampler is not None and self.state != HangState.STOPPED:
                self.resource_sampler.sample()

            state = self.state
            if state in (HangState.IDLE, HangState.ESCALATED, HangState.STOPPED):
                return state

            snapshot = self.progress.snapshot()
            now = self.progress.clock() if now is None else now

            if state == HangState.ARMED:
                elapsed = now - snapshot.last_output_timestamp
                if elapsed >= self.timeout_seconds:
                    callback, argument = self._on_alert, self._raise_alert(snapshot, elapsed, now)
            elif state == HangState.ALERTED:
                if snapshot.last_output_timestamp > self._stall_output_timestamp:
                    callback, argument = self._on_resolved, self._resolve(now)
                elif now - self._alerted_at >= self.escalation_grace_seconds:
                    callback, argument = self._on_escalate, self._escalate(snapshot, now)
            new_state = self.state

        if callback is not None:
            callback(argument)
        return new_state

    def _raise_alert(self, snapshot: ProgressState, elapsed: float, now: float) -> HangAlert:
        resources = self.resource_sampler.latest if self.resource_sampler is not None else None
        alert = HangAlert(
            suspected_phase=snapshot.phase,
            percentage=snapshot.percentage,
            elapsed_since_output=elapsed,
            recommendation=build_recommendation(snapshot.phase, resources),
            resources=resources,
        )
        self._transition(HangState.ALERTED)
        self._alerted_at = now
        self._stall_output_timestamp = snapshot.last_output_timestamp
        self._current_alert = alert
        self.alerts_raised += 1
        logger.warning(f"Possible hang detected: {alert.describe()}")
        return alert

    def _resolve(self, now: float) -> float:
        stalled_for = now - self._alerted_at
        self._transition(HangState.RESOLVED)
        logger.info(f"Build output resumed {stalled_for:.1f}s after hang alert; re-arming")
        self._alerted_at = None
        self._stall_output_timestamp = None
        self._current_alert = None
        self._transition(HangState.ARMED)
        return stalled_for

    def _escalate(self, snapshot: ProgressState, now: float) -> Optional[HangAlert]:
        elapsed = now - snapshot.last_output_timestamp
        self._transition(HangState.ESCALATED)
        self.escalations += 1
        alert = self._current_alert
        if alert is not None:
            # Carry the full stall duration for the final status.
            alert = HangAlert(
                suspected_phase=alert.suspected_phase,
                percentage=alert.percentage,
                elapsed_since_output=elapsed,
                recommendation=alert.recommendation,
                resources=alert.resources,
            )
            self._current_alert = alert
        logger.error(
            f"No output for {elapsed:.1f}s during {snapshot.phase.label}; "
            f"escalating after {self.escalation_grace_seconds}s grace"
        )
        return alert
