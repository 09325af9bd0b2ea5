"""
Unit tests for configuration validation functionality.

Tests the validation of supervisor and scanner configuration tables,
including defaults for missing keys and range errors.
"""

import pytest

from buildsupervisor.config.validators import validate_scanner_config, validate_supervisor_config
from buildsupervisor.models.config import DEFAULT_COMPILER_PATTERNS
from buildsupervisor.validation import ValidationError


@pytest.mark.unit
class TestSupervisorConfigValidation:
    """Test cases for supervisor configuration validation."""

    def test_validate_supervisor_config_success(self, sample_config_data):
        """Test successful validation of a complete supervisor table."""
        config = validate_supervisor_config(sample_config_data["supervisor"])

        assert config.hang_detection_enabled is True
        assert config.timeout_seconds == 45
        assert config.check_interval_seconds == 1.5
        assert config.escalation_grace_seconds == 30.0
        assert config.termination_grace_seconds == 3.0
        assert config.kill_wait_seconds == 1.0
        assert config.resource_monitoring_enabled is True
        assert config.cpu_threshold_percent == 90.0
        assert config.memory_threshold_gb == 4.0
        assert config.bar_width == 30
        assert config.output_tail_lines == 20

    def test_validate_supervisor_config_defaults(self):
        """Test an empty table yields the built-in defaults."""
        config = validate_supervisor_config({})

        assert config.hang_detection_enabled is True
        assert config.timeout_seconds == 30
        assert config.check_interval_seconds == 2.0
        assert config.escalation_grace_seconds == 60.0
        assert config.resource_monitoring_enabled is False
        assert config.bar_width == 20

    def test_validate_supervisor_config_invalid_timeout(self, sample_config_data):
        """Test validation failure with a zero hang timeout."""
        sample_config_data["supervisor"]["hang"]["timeout_seconds"] = 0

        with pytest.raises(ValidationError) as exc_info:
            validate_supervisor_config(sample_config_data["supervisor"])

        assert "timeout_seconds" in str(exc_info.value)
        assert exc_info.value.field_name == "supervisor.hang.timeout_seconds"

    def test_validate_supervisor_config_non_boolean_flag(self, sample_config_data):
        """Test flags must be real booleans."""
        sample_config_data["supervisor"]["hang"]["enabled"] = "yes"

        with pytest.raises(ValidationError) as exc_info:
            validate_supervisor_config(sample_config_data["supervisor"])

        assert "supervisor.hang.enabled" in str(exc_info.value)

    def test_validate_supervisor_config_section_not_table(self):
        """Test a scalar where a sub-table is expected is rejected."""
        with pytest.raises(ValidationError):
            validate_supervisor_config({"hang": 30})

    def test_validate_supervisor_config_bar_width_range(self, sample_config_data):
        """Test the progress bar width upper bound."""
        sample_config_data["supervisor"]["reporting"]["bar_width"] = 500

        with pytest.raises(ValidationError) as exc_info:
            validate_supervisor_config(sample_config_data["supervisor"])

        assert "bar_width" in str(exc_info.value)


@pytest.mark.unit
class TestScannerConfigValidation:
    """Test cases for scanner configuration validation."""

    def test_validate_scanner_config_success(self, sample_config_data):
        """Test successful validation of the scanner table."""
        config = validate_scanner_config(sample_config_data["scanner"])

        assert config.cpu_threshold_percent == 99.0
        assert config.runtime_threshold_minutes == 5.0
        assert config.name_patterns == ["swift-frontend", "clang*"]

    def test_validate_scanner_config_defaults(self):
        """Test an empty table yields the default thresholds and patterns."""
        config = validate_scanner_config({})

        assert config.cpu_threshold_percent == 95.0
        assert config.runtime_threshold_minutes == 2.0
        assert config.name_patterns == DEFAULT_COMPILER_PATTERNS
        assert config.name_patterns is not DEFAULT_COMPILER_PATTERNS

    @pytest.mark.parametrize("patterns", ["clang", [], ["clang", ""], [42]])
    def test_validate_scanner_config_invalid_patterns(self, patterns):
        """Test pattern lists must be non-empty lists of strings."""
        with pytest.raises(ValidationError) as exc_info:
            validate_scanner_config({"name_patterns": patterns})

        assert "name_patterns" in str(exc_info.value)

    def test_validate_scanner_config_negative_threshold(self):
        """Test negative thresholds are rejected."""
        with pytest.raises(ValidationError):
            validate_scanner_config({"cpu_threshold_percent": -1})
