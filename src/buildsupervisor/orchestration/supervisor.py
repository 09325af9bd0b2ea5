"""
BuildSupervisor: composes the runner, detector, watchdog and reporter.

This module contains the external API for supervising one build. The
supervisor spawns the build, consumes its output on the caller's thread,
feeds the shared progress state watched by the hang monitor, and turns the
way the build ended into a single SessionStatus.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, List, Optional

from ..config import get_config
from ..executor import ProcessRunner
from ..models.config import SupervisorConfig
from ..models.session import BuildSession, HangAlert, ProgressState, SessionStatus
from ..monitoring import (
    HangMonitor,
    HangState,
    PhaseDetector,
    ProgressReporter,
    ResourceSampler,
    SharedProgress,
    TimeoutConstants,
)
from ..validation import ErrorSeverity, StreamReadError, TerminationError, handle_error
from .signal_handler import SignalHandler

logger = logging.getLogger(__name__)

HANG_REASON = "hang detected"
INTERRUPT_REASON = "interrupted"


class BuildSupervisor:
    """
    Supervises a single build session from spawn to terminal status.

    A supervisor is single-use, like the session it owns. ``start()`` blocks
    until the build has ended and always stops the hang monitor before it
    returns.

    Args:
        session: The build to run
        config: Supervisor settings; the global configuration by default
        on_progress: Called with the rendered progress line for every output line
        on_alert: Called with each HangAlert, from the hang monitor thread
        on_output: Called with every raw output line
        install_signal_handlers: Route SIGINT/SIGTERM to ``request_shutdown``
        clock: Monotonic clock used for liveness timestamps
    """

    def __init__(
        self,
        session: BuildSession,
        config: Optional[SupervisorConfig] = None,
        on_progress: Optional[Callable[[str], None]] = None,
        on_alert: Optional[Callable[[HangAlert], None]] = None,
        on_output: Optional[Callable[[str], None]] = None,
        install_signal_handlers: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.config = config or get_config().supervisor
        self.on_progress = on_progress
        self.on_alert = on_alert
        self.on_output = on_output
        self.install_signal_handlers = install_signal_handlers
        self._clock = clock

        self._runner = ProcessRunner(
            session,
            termination_grace=self.config.termination_grace_seconds,
            kill_wait=self.config.kill_wait_seconds,
        )
        self._detector = PhaseDetector()
        self._reporter = ProgressReporter(self.config.bar_width)
        self._progress = SharedProgress(clock)
        self._hang_monitor: Optional[HangMonitor] = None
        self._sampler: Optional[ResourceSampler] = None
        self._signal_handler = SignalHandler()

        # RLock: a signal handler may call request_shutdown on the thread
        # that already holds it.
        self._lock = threading.RLock()
        self._started = False
        self._shutdown_reason: Optional[str] = None
        self._shutdown_thread: Optional[threading.Thread] = None
        self._alerts: List[HangAlert] = []
        self._warnings: List[str] = []
        self._tail: deque = deque(maxlen=self.config.output_tail_lines)

    # --- Accessors ---

    @property
    def alerts(self) -> List[HangAlert]:
        with self._lock:
            return list(self._alerts)

    @property
    def progress(self) -> ProgressState:
        return self._progress.snapshot()

    @property
    def hang_state(self) -> Optional[HangState]:
        return self._hang_monitor.state if self._hang_monitor else None

    @property
    def pid(self) -> Optional[int]:
        return self._runner.pid

    # --- Lifecycle ---

    def start(self) -> SessionStatus:
        """
        Run the build to completion and report how it ended.

        Returns:
            The terminal SessionStatus

        Raises:
            RuntimeError: If this supervisor was already started
            SpawnError: If the build could not be started
        """
        with self._lock:
            if self._started:
                raise RuntimeError("BuildSupervisor can only be started once")
            self._started = True

        supervisor_id = id(self)
        if self.install_signal_handlers:
            self._signal_handler.register_supervisor(supervisor_id, self)
            self._signal_handler.setup_signal_handlers()
        try:
            self._runner.start()
            # Liveness is measured from the moment the build exists.
            self._progress = SharedProgress(self._clock)
            with self._lock:
                # request_shutdown may already have seen the pid and begun termination.
                if self._shutdown_reason is not None and self._shutdown_thread is None:
                    self._begin_shutdown_locked()
            return self._supervise()
        finally:
            if self.install_signal_handlers:
                self._signal_handler.cleanup_signal_handlers()
                self._signal_handler.unregister_supervisor(supervisor_id)

    def request_shutdown(self, reason: str = INTERRUPT_REASON) -> None:
        """
        Ask the supervisor to terminate the build.

        Safe to call from another thread or a signal handler. Termination
        runs on a helper thread; ``start()`` then returns TERMINATED.
        """
        with self._lock:
            if self._shutdown_reason is not None:
                logger.warning("Shutdown already in progress")
                return
            self._shutdown_reason = reason
            logger.warning(f"Shutdown requested: {reason}")
            if self._runner.pid is not None:
                self._begin_shutdown_locked()

    def _begin_shutdown_locked(self) -> None:
        self._shutdown_thread = threading.Thread(
            target=self._terminate_runner,
            args=(self._shutdown_reason,),
            name="BuildShutdown",
            daemon=True,
        )
        self._shutdown_thread.start()

    # --- Session flow ---

    def _supervise(self) -> SessionStatus:
        monitor = self._create_hang_monitor()
        self._hang_monitor = monitor
        if monitor.enabled or self._sampler is not None:
            monitor.start()

        read_error: Optional[StreamReadError] = None
        try:
            try:
                for line in self._runner.output_lines():
                    self._consume(line)
            except StreamReadError as e:
                read_error = e
                handle_error(e, "reading build output", ErrorSeverity.ERROR, reraise=False, logger=logger)
                self._terminate_runner("output stream failure")
            # The build may close its output and keep running; the hang
            # monitor stays armed until the process itself has exited.
            exit_code = self._runner.exit_code()
        except BaseException:
            # Never leave an orphaned build behind a failing caller callback.
            self._terminate_runner("supervisor error")
            raise
        finally:
            self._teardown(monitor)

        return self._build_status(exit_code, read_error)

    def _create_hang_monitor(self) -> HangMonitor:
        if self.session.resource_monitoring_enabled:
            self._sampler = ResourceSampler(
                self._runner.pid,
                cpu_threshold_percent=self.config.cpu_threshold_percent,
                memory_threshold_gb=self.config.memory_threshold_gb,
            )
        return HangMonitor(
            self._progress,
            timeout_seconds=self.session.timeout_seconds,
            escalation_grace_seconds=self.config.escalation_grace_seconds,
            on_alert=self._handle_alert,
            on_escalate=self._handle_escalation,
            on_resolved=self._handle_resolved,
            check_interval=self.config.check_interval_seconds,
            enabled=self.session.hang_detection_enabled,
            resource_sampler=self._sampler,
        )

    def _consume(self, line: str) -> None:
        self._detector.observe(line)
        state = self._progress.record_output(self._detector.phase, self._detector.percentage)
        if self.on_output is not None:
            self.on_output(line)
        self._tail.append(line)
        if self.on_progress is not None:
            self.on_progress(self._reporter.render(state.phase, state.percentage))

    def _teardown(self, monitor: HangMonitor) -> None:
        shutdown_thread = self._shutdown_thread
        if shutdown_thread is not None:
            shutdown_thread.join()
        # An escalation may still be terminating the build on the monitor thread.
        monitor.stop(timeout=(
            self.config.termination_grace_seconds
            + self.config.kill_wait_seconds
            + TimeoutConstants.HANG_MONITOR_JOIN_TIMEOUT
        ))

    def _build_status(self, exit_code: int, read_error: Optional[StreamReadError]) -> SessionStatus:
        # Phase reached before the terminal phase is derived from the exit code.
        before_finish = self._progress.snapshot()
        final_phase = self._detector.finish(exit_code)
        finished = self._progress.finish(final_phase, self._detector.percentage)

        warnings = list(self._warnings)
        if self._sampler is not None:
            warnings.extend(self._sampler.warnings)
        diagnostics = dict(
            duration_seconds=self._runner.duration_seconds,
            warnings=warnings,
            output_tail=list(self._tail),
        )

        monitor = self._hang_monitor
        if monitor is not None and monitor.escalated:
            alert = monitor.current_alert
            status = SessionStatus.terminated(
                HANG_REASON,
                last_phase=before_finish.phase,
                percentage=before_finish.percentage,
                stall_seconds=alert.elapsed_since_output if alert else None,
                **diagnostics,
            )
        elif self._shutdown_reason is not None:
            status = SessionStatus.terminated(
                self._shutdown_reason,
                last_phase=before_finish.phase,
                percentage=before_finish.percentage,
                **diagnostics,
            )
        elif read_error is not None:
            status = SessionStatus.failed(
                str(read_error),
                last_phase=before_finish.phase,
                percentage=before_finish.percentage,
                **diagnostics,
            )
        else:
            status = SessionStatus.completed(
                exit_code,
                last_phase=finished.phase,
                percentage=finished.percentage,
                **diagnostics,
            )

        logger.info(status.summary())
        return status

    # --- Callbacks from the hang monitor thread ---

    def _handle_alert(self, alert: HangAlert) -> None:
        with self._lock:
            self._alerts.append(alert)
        if self.on_alert is not None:
            self.on_alert(alert)

    def _handle_resolved(self, stalled_for: float) -> None:
        logger.info(f"Build recovered from a {stalled_for:.1f}s stall alert")

    def _handle_escalation(self, alert: Optional[HangAlert]) -> None:
        self._terminate_runner(HANG_REASON)

    def _terminate_runner(self, reason: str) -> None:
        """Terminate the build; delivery failures become session warnings."""
        try:
            if self._runner.terminate():
                logger.info(f"Build process terminated ({reason})")
        except TerminationError as e:
            message = f"Failed to terminate build after {reason}: {e}"
            logger.warning(message)
            with self._lock:
                self._warnings.append(message)
