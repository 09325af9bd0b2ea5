"""
Unit tests for build process execution and termination.

Most tests run real short-lived Python children so spawning, streaming and
process-tree termination are exercised against the operating system.
"""

import signal
import sys
from unittest.mock import Mock

import psutil
import pytest

from buildsupervisor.executor.process_runner import ProcessRunner
from buildsupervisor.models.session import TERMINATED_EXIT_CODE, BuildSession
from buildsupervisor.validation import SpawnError, StreamReadError

SLEEPER = "import time; print('ready'); time.sleep(60)"
SIGTERM_IGNORER = (
    "import signal, time; signal.signal(signal.SIGTERM, signal.SIG_IGN); "
    "print('ready'); time.sleep(60)"
)
PARENT_OF_SLEEPER = (
    "import subprocess, sys, time; "
    "p = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)']); "
    "print(p.pid); time.sleep(60)"
)
# Exits at once, leaving a background child that inherited the output pipe.
EXITING_PARENT_OF_SLEEPER = (
    "import subprocess, sys; "
    "p = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)']); "
    "print(p.pid)"
)


def make_runner(temp_dir, command, **kwargs):
    return ProcessRunner(BuildSession(temp_dir, tuple(command)), **kwargs)


def gone(pid):
    try:
        return psutil.Process(pid).status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True


@pytest.mark.unit
class TestProcessRunnerExecution:
    """Test cases for spawning and streaming."""

    def test_stream_lines_and_exit_code(self, temp_dir, python_cmd):
        """Test output lines are streamed without newlines and the exit code is kept."""
        runner = make_runner(temp_dir, python_cmd("print('Compiling a'); print('Linking'); raise SystemExit(3)"))
        runner.start()

        lines = list(runner.output_lines())

        assert lines == ["Compiling a", "Linking"]
        assert runner.exit_code() == 3
        assert runner.is_running() is False
        assert runner.duration_seconds > 0

    def test_stderr_is_merged(self, temp_dir, python_cmd):
        """Test stderr lines appear in the same stream."""
        runner = make_runner(temp_dir, python_cmd("import sys; print('err', file=sys.stderr)")).start()

        assert list(runner.output_lines()) == ["err"]
        assert runner.exit_code() == 0

    def test_runs_in_working_directory(self, temp_dir, python_cmd):
        """Test the child runs in the session's working directory."""
        runner = make_runner(temp_dir, python_cmd("import os; print(os.getcwd())")).start()

        output = list(runner.output_lines())
        runner.exit_code()

        assert output == [str(temp_dir.resolve())] or output == [str(temp_dir)]

    def test_invalid_utf8_is_replaced(self, temp_dir, python_cmd):
        """Test undecodable bytes do not break the stream."""
        runner = make_runner(
            temp_dir, python_cmd("import sys; sys.stdout.buffer.write(b'bad \\xff byte\\n')")
        ).start()

        lines = list(runner.output_lines())
        runner.exit_code()

        assert lines == ["bad \ufffd byte"]

    def test_start_twice(self, temp_dir, python_cmd):
        """Test a runner cannot be started twice."""
        runner = make_runner(temp_dir, python_cmd("pass")).start()
        try:
            with pytest.raises(RuntimeError):
                runner.start()
        finally:
            runner.exit_code()

    def test_stream_is_single_use(self, temp_dir, python_cmd):
        """Test the output stream cannot be taken twice."""
        runner = make_runner(temp_dir, python_cmd("print('x')")).start()
        list(runner.output_lines())

        with pytest.raises(RuntimeError):
            runner.output_lines()
        runner.exit_code()

    def test_stream_before_start(self, temp_dir):
        """Test streaming requires a started process."""
        runner = make_runner(temp_dir, [sys.executable])
        with pytest.raises(RuntimeError):
            runner.output_lines()
        with pytest.raises(RuntimeError):
            runner.exit_code()


@pytest.mark.unit
class TestSpawnErrors:
    """Test cases for failures to start the build."""

    def test_missing_working_directory(self, temp_dir, python_cmd):
        """Test a nonexistent directory is a spawn error."""
        runner = make_runner(temp_dir / "missing", python_cmd("pass"))
        with pytest.raises(SpawnError):
            runner.start()

    def test_missing_executable(self, temp_dir):
        """Test an unknown executable is a spawn error."""
        runner = make_runner(temp_dir, ["definitely-not-a-real-build-tool"])
        with pytest.raises(SpawnError) as exc_info:
            runner.start()
        assert "not found" in str(exc_info.value)

    def test_not_executable(self, temp_dir):
        """Test a file without execute permission is a spawn error."""
        script = temp_dir / "build.sh"
        script.write_text("#!/bin/sh\necho hi\n")
        script.chmod(0o644)

        runner = make_runner(temp_dir, [str(script)])
        with pytest.raises(SpawnError):
            runner.start()

    def test_empty_command(self, temp_dir):
        """Test an empty command is a spawn error."""
        with pytest.raises(SpawnError):
            make_runner(temp_dir, []).start()


@pytest.mark.unit
class TestStreamErrors:
    """Test cases for read failures on the output stream."""

    def test_read_error_raises(self, temp_dir):
        """Test an I/O error mid-read surfaces as StreamReadError."""
        runner = make_runner(temp_dir, [sys.executable])
        runner.process = Mock()
        runner.process.stdout.readline.side_effect = OSError("Input/output error")

        with pytest.raises(StreamReadError):
            list(runner.output_lines())

    def test_read_error_during_termination_ends_stream(self, temp_dir):
        """Test a closed stream after a termination request is end-of-stream."""
        runner = make_runner(temp_dir, [sys.executable])
        runner.process = Mock()
        runner.process.stdout.readline.side_effect = ValueError("I/O operation on closed file")
        runner._terminate_requested = True

        assert list(runner.output_lines()) == []


@pytest.mark.unit
@pytest.mark.slow
class TestTermination:
    """Test cases for terminating the build process tree."""

    def test_terminate_running_process(self, temp_dir, python_cmd):
        """Test SIGTERM stops a cooperative child and the stream ends."""
        runner = make_runner(temp_dir, python_cmd(SLEEPER), termination_grace=2.0).start()
        lines = runner.output_lines()
        assert next(lines) == "ready"

        assert runner.terminate() is True
        assert list(lines) == []
        assert runner.exit_code() == -signal.SIGTERM
        assert runner.force_killed is False

    def test_terminate_twice(self, temp_dir, python_cmd):
        """Test a second terminate is a no-op without error."""
        runner = make_runner(temp_dir, python_cmd(SLEEPER), termination_grace=2.0).start()
        assert next(runner.output_lines()) == "ready"

        assert runner.terminate() is True
        assert runner.terminate() is False
        runner.exit_code()

    def test_terminate_before_start_and_after_exit(self, temp_dir, python_cmd):
        """Test terminating a process that is not running does nothing."""
        runner = make_runner(temp_dir, python_cmd("pass"))
        assert runner.terminate() is False

        runner.start()
        list(runner.output_lines())
        runner.exit_code()
        assert runner.terminate() is False

    def test_stubborn_child_is_killed(self, temp_dir, python_cmd):
        """Test a child ignoring SIGTERM is killed after the grace period."""
        runner = make_runner(temp_dir, python_cmd(SIGTERM_IGNORER), termination_grace=0.5).start()
        assert next(runner.output_lines()) == "ready"

        assert runner.terminate() is True
        assert runner.force_killed is True
        assert runner.exit_code() == TERMINATED_EXIT_CODE

    def test_descendants_are_terminated(self, temp_dir, python_cmd):
        """Test the whole process tree is signalled, not just the direct child."""
        runner = make_runner(temp_dir, python_cmd(PARENT_OF_SLEEPER), termination_grace=2.0).start()
        grandchild_pid = int(next(runner.output_lines()))

        runner.terminate()
        runner.exit_code()

        assert gone(grandchild_pid)

    def test_background_child_holding_pipe_is_terminated(self, temp_dir, python_cmd):
        """Test a child outliving the build process is terminated and the stream ends."""
        runner = make_runner(temp_dir, python_cmd(EXITING_PARENT_OF_SLEEPER), termination_grace=2.0).start()
        lines = runner.output_lines()
        grandchild_pid = int(next(lines))
        runner.process.wait(timeout=10)

        assert runner.terminate() is True
        assert list(lines) == []
        assert runner.exit_code() == 0
        assert gone(grandchild_pid)
        assert runner.terminate() is False
