"""
Unit tests for configuration loading and validation.
"""

import os
import tempfile

import pytest
import yaml

from ccmonitor.config.loader import MonitorConfig, load_default_config, load_monitor_config


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config = load_monitor_config(self._write_config({
            "cost_limit": 50,
            "watch_interval": 30,
            "claude_dir": "/tmp/claude",
            "full_span_hours": 12,
        }))
        assert config.cost_limit == 50.0
        assert config.watch_interval == 30
        assert config.claude_dir == "/tmp/claude"
        assert config.full_span_hours == 12
        assert config.data_dir is None

    def test_empty_config_uses_defaults(self):
        """Test that an empty file yields the defaults."""
        assert load_monitor_config(self._write_config(None)) == MonitorConfig()

    def test_unknown_keys_rejected(self):
        """Test that unknown keys are errors, not silently ignored."""
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_monitor_config(self._write_config({"cost_limt": 5}))

    @pytest.mark.parametrize("data", [
        {"cost_limit": 0},
        {"cost_limit": 10001},
        {"cost_limit": "ten"},
        {"watch_interval": 4},
        {"full_span_hours": 0},
        {"claude_dir": 5},
    ])
    def test_invalid_values_rejected(self, data):
        """Test value validation."""
        with pytest.raises(ValueError):
            load_monitor_config(self._write_config(data))

    def test_non_mapping_rejected(self):
        """Test that a top-level list is rejected."""
        with pytest.raises(ValueError, match="mapping"):
            load_monitor_config(self._write_config([1, 2]))

    def test_missing_explicit_file(self):
        """Test that a named config file must exist."""
        with pytest.raises(FileNotFoundError):
            load_monitor_config(os.path.join(self.temp_dir, "missing.yaml"))

    def test_invalid_yaml(self):
        """Test that malformed YAML raises a YAML error."""
        path = os.path.join(self.temp_dir, "config.yaml")
        with open(path, 'w', encoding='utf-8') as f:
            f.write("cost_limit: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_monitor_config(path)

    def test_default_location_optional(self):
        """Test that a missing default config is not an error."""
        assert load_default_config(self.temp_dir) == MonitorConfig()
        self._write_config({"cost_limit": 25})
        assert load_default_config(self.temp_dir).cost_limit == 25.0
