"""
Build process execution and lifecycle management.

This module provides the ProcessRunner, which spawns a single build command,
exposes its combined stdout/stderr as a lazy line stream, and terminates the
build's whole process tree with escalation from SIGTERM to SIGKILL.
"""

import logging
import os
import signal
import subprocess
import threading
import time
from typing import Iterator, List, Optional

import psutil

from ..models.session import TERMINATED_EXIT_CODE, BuildSession
from ..monitoring.shared_state import TimeoutConstants
from ..validation import SpawnError, StreamReadError, TerminationError

logger = logging.getLogger(__name__)


class ProcessRunner:
    """
    Owns the lifetime of one build child process.

    A runner is single-use: it can be started once, its output stream can be
    consumed once, and a terminated runner cannot be restarted.
    """

    def __init__(
        self,
        session: BuildSession,
        termination_grace: float = TimeoutConstants.TERMINATION_GRACEFUL_TIMEOUT,
        kill_wait: float = TimeoutConstants.TERMINATION_FORCE_TIMEOUT,
    ):
        """
        Initialize the runner.

        Args:
            session: The build session describing command and directory
            termination_grace: Seconds to wait after SIGTERM before SIGKILL
            kill_wait: Seconds to wait for the process to be reaped after SIGKILL
        """
        self.session = session
        self.termination_grace = termination_grace
        self.kill_wait = kill_wait

        self.process: Optional[subprocess.Popen] = None
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        self._lock = threading.Lock()
        self._stream_taken = False
        self._terminate_requested = False
        self._force_killed = False

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def terminate_requested(self) -> bool:
        return self._terminate_requested

    @property
    def force_killed(self) -> bool:
        return self._force_killed

    @property
    def duration_seconds(self) -> float:
        if self.start_time is None:
            return 0.0
        end_time = self.end_time or time.monotonic()
        return end_time - self.start_time

    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def start(self) -> "ProcessRunner":
        """
        Spawn the build process.

        Returns:
            This runner, acting as the handle for the running process

        Raises:
            RuntimeError: If the runner was already started
            SpawnError: If the directory is invalid or the executable cannot run
        """
        with self._lock:
            if self.process is not None:
                raise RuntimeError("Build process already started")

            cwd = self.session.working_directory
            command = list(self.session.command)
            if not command:
                raise SpawnError("Build command is empty")
            if not cwd.is_dir():
                raise SpawnError(f"Working directory does not exist or is not a directory: {cwd}",
                                 command=self.session.command_line)

            logger.info(f"Starting build process: {self.session.command_line} (cwd: {cwd})")
            try:
                self.process = subprocess.Popen(
                    command,
                    cwd=cwd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    bufsize=1,  # Line buffered
                    start_new_session=hasattr(os, "setsid"),  # New process group
                )
            except FileNotFoundError as e:
                raise SpawnError(f"Executable not found: {command[0]}",
                                 command=self.session.command_line) from e
            except PermissionError as e:
                raise SpawnError(f"Executable is not runnable: {command[0]}: {e}",
                                 command=self.session.command_line) from e
            except OSError as e:
                raise SpawnError(f"Failed to start '{self.session.command_line}': {e}",
                                 command=self.session.command_line) from e

            self.start_time = time.monotonic()
            logger.info(f"Build process started with PID: {self.process.pid}")
            return self

    def output_lines(self) -> Iterator[str]:
        """
        Lazily yield output lines until the stream ends.

        The stream is finite and can only be consumed once.

        Raises:
            RuntimeError: If not started or the stream was already taken
            StreamReadError: If reading fails while the process is not being terminated
        """
        with self._lock:
            if self.process is None:
                raise RuntimeError("Build process not started")
            if self._stream_taken:
                raise RuntimeError("Output stream already consumed")
            self._stream_taken = True
        return self._read_lines(self.process)

    def _read_lines(self, process: subprocess.Popen) -> Iterator[str]:
        stream = process.stdout
        try:
            while True:
                try:
                    line = stream.readline()
                except (OSError, ValueError) as e:
                    if self._terminate_requested:
                        logger.debug(f"Output stream closed during termination: {e}")
                        return
                    raise StreamReadError(f"Failed reading build output: {e}") from e
                if not line:
                    return
                yield line.rstrip("\r\n")
        finally:
            try:
                stream.close()
            except (OSError, ValueError) as e:
                logger.debug(f"Error closing build output stream: {e}")

    def terminate(self, sig: int = signal.SIGTERM, grace_seconds: Optional[float] = None) -> bool:
        """
        Terminate the build process and its descendants.

        The build runs in its own process group, so descendants are found
        both through the process tree and through the group. A group that
        outlives its leader (a backgrounded child still holding the output
        pipe) is terminated as well.

        Idempotent: terminating a build whose processes are all gone is a
        no-op. Survivors of ``sig`` are killed after the grace period, so this
        never blocks longer than grace + kill wait.

        Returns:
            True if a signal was delivered, False if nothing was left running

        Raises:
            TerminationError: If the signal could not be delivered
        """
        process = self.process
        if process is None:
            return False

        self._terminate_requested = True
        grace = self.termination_grace if grace_seconds is None else grace_seconds

        if process.poll() is not None:
            return self._terminate_orphans(process, sig, grace)

        logger.info(f"Terminating build process {process.pid} with {signal.Signals(sig).name}")

        try:
            parent = psutil.Process(process.pid)
            targets = [parent] + self._get_children(parent)
        except psutil.NoSuchProcess:
            logger.info(f"Build process {process.pid} already terminated")
            return self._terminate_orphans(process, sig, grace)
        except psutil.AccessDenied as e:
            raise TerminationError(f"Access denied to build process {process.pid}", pid=process.pid) from e

        known = {proc.pid for proc in targets}
        targets.extend(proc for proc in self._get_group_members(process.pid) if proc.pid not in known)

        signalled = self._send_signal(targets, sig)
        if not signalled:
            return False

        if sig == signal.SIGKILL:
            self._force_killed = True

        # The direct child is reaped through Popen so its exit status is kept;
        # psutil only waits on descendants.
        deadline = time.monotonic() + grace
        parent_alive = not self._wait_child(process, grace)
        descendants = [p for p in signalled if p.pid != process.pid]
        _, alive = psutil.wait_procs(descendants, timeout=max(0.0, deadline - time.monotonic()))
        alive = [p for p in alive if self._is_alive(p)]

        if (parent_alive or alive) and sig != signal.SIGKILL:
            survivors = alive + ([parent] if parent_alive else [])
            logger.warning(f"{len(survivors)} build processes survived {signal.Signals(sig).name}, sending SIGKILL")
            self._send_signal(survivors, signal.SIGKILL)
            if parent_alive:
                self._force_killed = True
            parent_alive = not self._wait_child(process, self.kill_wait)
            _, alive = psutil.wait_procs(alive, timeout=self.kill_wait)

        if parent_alive or alive:
            stubborn = [p.pid for p in alive] + ([process.pid] if parent_alive else [])
            logger.error(f"Failed to terminate {len(stubborn)} stubborn build processes: {stubborn}")
        else:
            logger.info(f"Build process {process.pid} terminated")
        return True

    def _terminate_orphans(self, process: subprocess.Popen, sig: int, grace: float) -> bool:
        """Terminate group members left behind after the build process exited."""
        orphans = self._get_group_members(process.pid)
        if not orphans:
            logger.debug(f"Build process {process.pid} already exited, nothing to terminate")
            return False

        logger.info(
            f"Build process {process.pid} exited but {len(orphans)} of its processes remain, "
            f"sending {signal.Signals(sig).name}"
        )
        signalled = self._send_signal(orphans, sig)
        if not signalled:
            return False

        _, alive = psutil.wait_procs(signalled, timeout=grace)
        alive = [p for p in alive if self._is_alive(p)]
        if alive and sig != signal.SIGKILL:
            logger.warning(f"{len(alive)} orphaned build processes survived {signal.Signals(sig).name}, sending SIGKILL")
            self._send_signal(alive, signal.SIGKILL)
            _, alive = psutil.wait_procs(alive, timeout=self.kill_wait)
            alive = [p for p in alive if self._is_alive(p)]

        if alive:
            logger.error(f"Failed to terminate orphaned build processes: {[p.pid for p in alive]}")
        return True

    def _get_group_members(self, pgid: int) -> List[psutil.Process]:
        """Live processes in the build's process group."""
        if not hasattr(os, "getpgid"):
            return []
        members = []
        for proc in psutil.process_iter():
            try:
                if os.getpgid(proc.pid) == pgid and self._is_alive(proc):
                    members.append(proc)
            except (OSError, psutil.Error):
                continue
        return members

    @staticmethod
    def _wait_child(process: subprocess.Popen, timeout: float) -> bool:
        """Wait for the direct child; True if it exited within ``timeout``."""
        try:
            process.wait(timeout=timeout)
            return True
        except subprocess.TimeoutExpired:
            return False

    def _get_children(self, parent: psutil.Process) -> List[psutil.Process]:
        try:
            return parent.children(recursive=True)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return []

    def _send_signal(self, processes: List[psutil.Process], sig: int) -> List[psutil.Process]:
        """Signal each process and return those that received it."""
        signalled = []
        denied = []
        for proc in processes:
            try:
                proc.send_signal(sig)
                signalled.append(proc)
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                denied.append(proc.pid)

        if denied and self.process is not None and self.process.pid in denied:
            raise TerminationError(
                f"Permission denied sending {signal.Signals(sig).name} to build process {self.process.pid}",
                pid=self.process.pid,
            )
        if denied:
            logger.warning(f"Permission denied signalling build child processes {denied}")
        return signalled

    @staticmethod
    def _is_alive(process: psutil.Process) -> bool:
        try:
            return process.is_running() and process.status() != psutil.STATUS_ZOMBIE
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False

    def exit_code(self) -> int:
        """
        Block until the process exits and return its status.

        Returns:
            The OS exit status, or TERMINATED_EXIT_CODE if the process had to
            be killed unconditionally
        """
        if self.process is None:
            raise RuntimeError("Build process not started")
        return_code = self.process.wait()
        if self.end_time is None:
            self.end_time = time.monotonic()
        if self._force_killed:
            return TERMINATED_EXIT_CODE
        return return_code
