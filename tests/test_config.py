# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for configuration loading and validation."""

import tempfile
from pathlib import Path

import pytest
import yaml

from streamlab.config import (
    Config,
    ConfigurationError,
    get_default_config,
    set_default_config,
)


def test_default_config_when_file_missing():
    """Test that defaults are used when config file is missing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "nonexistent.yml"
        config = Config(config_path=config_path)

        assert config.parallelism == 4
        assert config.split_factor == 4
        assert config.min_chunk_size == 1
        assert config.log_pipeline_stages is False


def test_valid_config_loading():
    """Test loading a valid configuration file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "parallelism": 8,
            "split_factor": 2,
            "log_pipeline_stages": True,
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.parallelism == 8
        assert config.split_factor == 2
        assert config.log_pipeline_stages is True
        # Defaults for unspecified values
        assert config.min_chunk_size == 1


def test_invalid_parameter_values():
    """Test that invalid parameter values are rejected and defaults used."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "parallelism": 0,  # Invalid: must be > 0
            "split_factor": -2,  # Invalid: must be > 0
            "min_chunk_size": 0,  # Invalid: must be > 0
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.parallelism == 4
        assert config.split_factor == 4
        assert config.min_chunk_size == 1


def test_invalid_parameter_types():
    """Test that invalid parameter types are rejected and defaults used."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "parallelism": "many",
            "split_factor": True,  # bool is not accepted for ints
            "log_pipeline_stages": "yes please",
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.parallelism == 4
        assert config.split_factor == 4
        assert config.log_pipeline_stages is False


def test_unknown_parameters_ignored():
    """Test that unknown parameters are ignored."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "parallelism": 2,
            "unknown_parameter": "some_value",
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.parallelism == 2
        assert "unknown_parameter" not in config.to_dict()


def test_empty_config_file():
    """Test that an empty config file uses all defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_path.write_text("", encoding="utf-8")

        config = Config(config_path=config_path)

        assert config.to_dict() == Config.DEFAULTS


def test_non_mapping_config_file():
    """Test that a YAML list instead of a mapping falls back to defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_path.write_text("- parallelism\n- 8\n", encoding="utf-8")

        config = Config(config_path=config_path)

        assert config.parallelism == 4


def test_invalid_yaml_syntax():
    """Test that invalid YAML syntax falls back to defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_path.write_text("invalid: yaml: syntax: here:", encoding="utf-8")

        config = Config(config_path=config_path)

        assert config.parallelism == 4
        assert config.split_factor == 4


def test_default_path_is_current_directory(tmp_path, monkeypatch):
    """Test that the default config file is read from the working directory."""
    (tmp_path / ".streamlab.yml").write_text("parallelism: 3\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    config = Config()

    assert config.config_path == tmp_path / ".streamlab.yml"
    assert config.parallelism == 3


class TestFromDict:
    """Test in-memory configuration."""

    def test_lenient_falls_back_to_defaults(self) -> None:
        config = Config.from_dict({"parallelism": -1, "min_chunk_size": 5})

        assert config.parallelism == 4
        assert config.min_chunk_size == 5

    def test_strict_rejects_invalid_value(self) -> None:
        with pytest.raises(ConfigurationError, match="parallelism"):
            Config.from_dict({"parallelism": -1}, strict=True)

    def test_strict_rejects_unknown_key(self) -> None:
        with pytest.raises(ConfigurationError, match="workers"):
            Config.from_dict({"workers": 2}, strict=True)


class TestDefaultConfig:
    """Test the process-wide default configuration."""

    def test_set_and_get(self) -> None:
        config = Config.from_dict({"parallelism": 2})
        set_default_config(config)

        assert get_default_config() is config

    def test_reset_reloads_from_working_directory(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        set_default_config(None)

        config = get_default_config()

        assert config.to_dict() == Config.DEFAULTS
        assert get_default_config() is config
