"""
Unit tests for session and process data models.
"""

import pytest

from buildsupervisor.models.processes import ProcessRecord, TerminatedProcess, TerminationOutcome
from buildsupervisor.models.resources import ResourceSnapshot
from buildsupervisor.models.session import BuildPhase, HangAlert, SessionOutcome, SessionStatus


@pytest.mark.unit
class TestBuildPhase:
    """Test cases for BuildPhase ordering and labels."""

    def test_phases_are_ordered(self):
        """Test running phases sort in build order."""
        assert (
            BuildPhase.STARTING
            < BuildPhase.RESOLVING_DEPENDENCIES
            < BuildPhase.PLANNING
            < BuildPhase.COMPILING
            < BuildPhase.LINKING
            < BuildPhase.COMPLETED
        )

    def test_terminal_phases(self):
        """Test only COMPLETED and FAILED are terminal."""
        assert [p for p in BuildPhase if p.is_terminal] == [BuildPhase.COMPLETED, BuildPhase.FAILED]

    def test_every_phase_has_label(self):
        """Test labels exist for all phases."""
        assert all(phase.label for phase in BuildPhase)


@pytest.mark.unit
class TestSessionStatus:
    """Test cases for SessionStatus construction and summaries."""

    def test_completed(self):
        """Test a successful completion."""
        status = SessionStatus.completed(0, last_phase=BuildPhase.COMPLETED, percentage=100)

        assert status.outcome is SessionOutcome.COMPLETED
        assert status.succeeded is True
        assert "exit code 0" in status.summary()

    def test_completed_with_failure_exit_code(self):
        """Test a non-zero exit is completed but not succeeded."""
        status = SessionStatus.completed(1, last_phase=BuildPhase.FAILED)

        assert status.succeeded is False
        assert status.exit_code == 1

    def test_terminated_summary_mentions_stall(self):
        """Test a hang termination reports phase, percentage and stall."""
        status = SessionStatus.terminated(
            "hang detected", last_phase=BuildPhase.COMPILING, percentage=60, stall_seconds=90.0
        )
        summary = status.summary()

        assert status.reason == "hang detected"
        assert "Compiling" in summary
        assert "60%" in summary
        assert "90.0s without output" in summary

    def test_failed(self):
        """Test a failed session carries its cause."""
        status = SessionStatus.failed("stream closed")

        assert status.outcome is SessionOutcome.FAILED
        assert status.cause == "stream closed"
        assert status.exit_code is None
        assert status.warnings == []


@pytest.mark.unit
class TestDescriptions:
    """Test cases for human-readable descriptions."""

    def test_hang_alert_describe(self):
        """Test an alert description includes elapsed time and advice."""
        alert = HangAlert(BuildPhase.LINKING, 80, 31.5, "Check disk space.")
        assert alert.describe() == "No output for 31.5s during Linking (80%). Check disk space."

    def test_resource_snapshot(self):
        """Test RSS conversion and description."""
        snapshot = ResourceSnapshot(cpu_percent=12.5, rss_bytes=3 * 1024 ** 3, process_count=4)

        assert snapshot.rss_gb == pytest.approx(3.0)
        assert snapshot.describe() == "cpu=12.5% rss=3.00GB processes=4"

    def test_terminated_process(self):
        """Test per-process result helpers."""
        record = ProcessRecord(100, "swift-frontend", 98.0, 5.5)
        result = TerminatedProcess(record, TerminationOutcome.KILLED)

        assert result.pid == 100
        assert result.succeeded is True
        assert result.describe() == "PID 100 swift-frontend (cpu 98.0%, runtime 5.5min): killed"
