"""
Pytest configuration and shared fixtures for the buildsupervisor test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the buildsupervisor project.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from typing import List

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from buildsupervisor.config import clear_config_cache, set_config_path  # noqa: E402
from buildsupervisor.config.manager import _DEFAULT_CONFIG_FILE_PATH  # noqa: E402
from buildsupervisor.models.config import SupervisorConfig  # noqa: E402


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config():
    """Make every test start from the default, uncached configuration."""
    clear_config_cache()
    yield
    set_config_path(_DEFAULT_CONFIG_FILE_PATH)
    clear_config_cache()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def fake_clock():
    """A clock that only moves when the test advances it."""
    return FakeClock()


@pytest.fixture
def fast_supervisor_config():
    """Supervisor settings with short timings for real-process tests."""
    return SupervisorConfig(
        hang_detection_enabled=True,
        timeout_seconds=1,
        check_interval_seconds=0.1,
        escalation_grace_seconds=0.5,
        termination_grace_seconds=1.0,
        kill_wait_seconds=1.0,
        output_tail_lines=5,
    )


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "supervisor": {
            "hang": {
                "enabled": True,
                "timeout_seconds": 45,
                "check_interval_seconds": 1.5,
                "escalation_grace_seconds": 30.0,
            },
            "termination": {"grace_seconds": 3.0, "kill_wait_seconds": 1.0},
            "resources": {
                "enabled": True,
                "cpu_threshold_percent": 90.0,
                "memory_threshold_gb": 4.0,
            },
            "reporting": {"bar_width": 30, "output_tail_lines": 20},
        },
        "scanner": {
            "cpu_threshold_percent": 99.0,
            "runtime_threshold_minutes": 5.0,
            "name_patterns": ["swift-frontend", "clang*"],
        },
    }


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def config_files(temp_dir, sample_config_data):
    """Create temporary configuration files for testing."""
    import toml

    config_file = temp_dir / "config.toml"
    with open(config_file, "w") as f:
        toml.dump(sample_config_data, f)

    return {"config": config_file, "dir": temp_dir}


# ============================================================================
# Test Utilities
# ============================================================================


def python_command(script: str) -> List[str]:
    """Argument vector running ``script`` in an unbuffered child interpreter."""
    return [sys.executable, "-u", "-c", script]


@pytest.fixture
def python_cmd():
    return python_command
