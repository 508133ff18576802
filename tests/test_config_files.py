#!/usr/bin/env python3
"""
Tests for loading flag values from configuration files.

This module tests JSON and YAML config file loading, nested key flattening, and
command-line override functionality.
"""

import json
import textwrap
from dataclasses import dataclass, field
from datetime import timedelta
from io import StringIO
from unittest.mock import patch

import pytest

from structflag import ConfigError, FlagSet, load_to


@dataclass
class Inner:
    foo: str = field(default="", metadata={"flag": "foo"})
    level: int = field(default=0, metadata={"flag": "level"})


@dataclass
class SampleConfig:
    """Sample configuration for testing."""

    name: str = field(default="default_name", metadata={"flag": "name", "usage": "The name"})
    count: int = field(default=5, metadata={"flag": "count", "usage": "Number of items"})
    threshold: float = field(default=0.5, metadata={"flag": "threshold"})
    enabled: bool = field(default=True, metadata={"flag": "enabled"})
    timeout: timedelta = field(default=timedelta(seconds=30), metadata={"flag": "timeout"})
    embed: Inner = field(default_factory=Inner, metadata={"flag": "embed"})


def bound(config: SampleConfig) -> FlagSet:
    flag_set = FlagSet("test", exit_on_error=False, config_flag="config")
    load_to(flag_set, "", config)
    return flag_set


class TestConfigFiles:
    """Test suite for config file functionality."""

    def test_json_config(self, tmp_path):
        """Test loading from JSON config file."""
        config_data = {"name": "json_test", "count": 10, "threshold": 0.8, "enabled": False}
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps(config_data))

        config = SampleConfig()
        bound(config).parse(["-config", str(config_path)])

        assert config.name == "json_test"
        assert config.count == 10
        assert config.threshold == 0.8
        assert config.enabled is False
        assert config.timeout == timedelta(seconds=30)  # default value

    def test_yaml_config_with_nested_keys(self, tmp_path):
        """Test loading from YAML config file."""
        config_content = textwrap.dedent("""
            name: yaml_test
            timeout: 5m
            embed:
              foo: from_yaml
              level: 3
            """).strip()
        config_path = tmp_path / "config.yaml"
        config_path.write_text(config_content)

        config = SampleConfig()
        bound(config).parse([f"-config={config_path}"])

        assert config.name == "yaml_test"
        assert config.timeout == timedelta(minutes=5)
        assert config.embed == Inner(foo="from_yaml", level=3)
        assert config.count == 5  # default value

    def test_flat_dashed_keys(self, tmp_path):
        config_path = tmp_path / "config.yml"
        config_path.write_text("embed-foo: flat\n")

        config = SampleConfig()
        bound(config).parse(["--config", str(config_path)])
        assert config.embed.foo == "flat"

    def test_config_override(self, tmp_path):
        """Test that command-line args override config file values."""
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"name": "config_name", "count": 99}))

        config = SampleConfig()
        flag_set = bound(config)
        flag_set.parse(
            ["-name", "cmdline_name", "-config", str(config_path), "-threshold=0.9"]
        )

        assert config.name == "cmdline_name"  # overridden by cmdline
        assert config.count == 99  # from config file
        assert config.threshold == 0.9  # from cmdline
        assert [f.name for f in flag_set.changed_flags()] == ["count", "name", "threshold"]

    def test_load_config_directly(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"embed": {"level": 7}}))

        config = SampleConfig()
        flag_set = bound(config)
        flag_set.load_config(str(config_path))
        assert config.embed.level == 7

    def test_empty_yaml_is_ignored(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("")

        config = SampleConfig()
        bound(config).parse(["-config", str(config_path)])
        assert config == SampleConfig()


class TestConfigErrors:
    """Test suite for invalid configuration files."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            bound(SampleConfig()).parse(["-config", str(tmp_path / "absent.json")])

    def test_unsupported_extension(self, tmp_path):
        config_path = tmp_path / "config.toml"
        config_path.write_text("name = 'x'")
        with pytest.raises(ConfigError, match="Unsupported file format"):
            bound(SampleConfig()).load_config(str(config_path))

    def test_invalid_json(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON file"):
            bound(SampleConfig()).load_config(str(config_path))

    def test_invalid_yaml(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("name: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML file"):
            bound(SampleConfig()).load_config(str(config_path))

    def test_not_a_mapping(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            bound(SampleConfig()).load_config(str(config_path))

    def test_unknown_key(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"embed": {"bar": 1}}))
        with pytest.raises(ConfigError, match="'embed-bar' does not match any flag"):
            bound(SampleConfig()).load_config(str(config_path))

    @pytest.mark.parametrize(
        "data",
        [{"count": "many"}, {"count": [1, 2]}, {"count": None}, {"timeout": 5}],
        ids=["bad int", "list", "null", "duration without unit"],
    )
    def test_bad_values(self, tmp_path, data):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps(data))
        with pytest.raises(ConfigError, match="invalid value"):
            bound(SampleConfig()).load_config(str(config_path))

    def test_bad_value_leaves_fields_untouched(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"name": "from_file", "count": "many"}))

        config = SampleConfig()
        with pytest.raises(ConfigError, match="invalid value .many. for flag -count"):
            bound(config).parse(["-config", str(config_path)])
        assert config == SampleConfig()

    def test_bad_config_discards_command_line_values(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"count": "many"}))

        config = SampleConfig()
        flag_set = bound(config)
        with pytest.raises(ConfigError):
            flag_set.parse(["-name=cli", "-config", str(config_path)])
        assert config.name == "default_name"
        assert flag_set.changed_flags() == []

    def test_unknown_key_leaves_fields_untouched(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"count": 10, "missing": 1}))

        config = SampleConfig()
        flag_set = bound(config)
        with pytest.raises(ConfigError):
            flag_set.load_config(str(config_path))
        assert config.count == 5
        assert flag_set.changed_flags() == []

    def test_exit_on_error_exits_on_bad_config(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text("{not json")

        flag_set = FlagSet("test", config_flag="config")
        load_to(flag_set, "", SampleConfig())
        with patch("sys.stderr", new_callable=StringIO) as mock_stderr:
            with pytest.raises(SystemExit) as exc:
                flag_set.parse(["-config", str(config_path)])
        assert exc.value.code == 2
        assert "Invalid JSON file" in mock_stderr.getvalue()

    def test_exit_on_error_exits_on_missing_config(self, tmp_path):
        flag_set = FlagSet("test", config_flag="config")
        with patch("sys.stderr", new_callable=StringIO) as mock_stderr:
            with pytest.raises(SystemExit) as exc:
                flag_set.parse(["-config", str(tmp_path / "absent.yaml")])
        assert exc.value.code == 2
        assert "Configuration file not found" in mock_stderr.getvalue()

    def test_safe_parse_reports_missing_file(self, tmp_path):
        result = bound(SampleConfig()).safe_parse(["-config", str(tmp_path / "absent.json")])
        assert result.is_err()
        assert "Configuration file not found" in result.unwrap_err()

    def test_config_flag_name_is_reserved(self):
        @dataclass
        class Clashing:
            config: str = ""

        with pytest.raises(ValueError, match="Flag name conflict: config"):
            bound(Clashing())  # type: ignore[arg-type]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
