# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for parallel stream execution."""

import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".streamlab.yml"


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for parallel pipeline evaluation.

    Loads configuration from .streamlab.yml with validation and defaults.
    """

    DEFAULTS = {
        "parallelism": 4,  # worker threads
        "split_factor": 4,  # target chunks per worker
        "min_chunk_size": 1,
        "log_pipeline_stages": False,
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
        """
        if config_path is None:
            config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    @classmethod
    def from_dict(cls, values: Dict[str, Any], strict: bool = False) -> "Config":
        """Build a configuration from in-memory values, validated like a file.

        Args:
            values: Parameter overrides.
            strict: Raise instead of falling back to defaults.

        Raises:
            ConfigurationError: In strict mode, on an unknown or invalid parameter.
        """
        config = cls.__new__(cls)
        config.config_path = None
        config._config = cls.DEFAULTS.copy()
        if strict:
            for key, value in values.items():
                if key not in cls.DEFAULTS:
                    raise ConfigurationError(f"Unknown configuration parameter '{key}'")
                if not config._validate_parameter(key, value):
                    raise ConfigurationError(f"Invalid value for '{key}': {value}")
        config._validate_and_merge(values)
        return config

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self.DEFAULTS.copy()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = self.DEFAULTS.copy()
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = self.DEFAULTS.copy()
                return

            self._config = self.DEFAULTS.copy()
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self.DEFAULTS.copy()
        except OSError as e:
            logger.warning(
                f"Unable to read configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self.DEFAULTS.copy()

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = type(self.DEFAULTS[key])
        # bool is a subclass of int; reject True/False for numeric keys
        if expected_type is int and isinstance(value, bool):
            return False
        if not isinstance(value, expected_type):
            return False

        if key in ("parallelism", "split_factor", "min_chunk_size"):
            return value > 0

        return True

    @property
    def parallelism(self) -> int:
        """Number of worker threads used by parallel streams."""
        value = self._config["parallelism"]
        assert isinstance(value, int)
        return value

    @property
    def split_factor(self) -> int:
        """Target number of chunks per worker thread."""
        value = self._config["split_factor"]
        assert isinstance(value, int)
        return value

    @property
    def min_chunk_size(self) -> int:
        """Lower bound on elements per chunk."""
        value = self._config["min_chunk_size"]
        assert isinstance(value, int)
        return value

    @property
    def log_pipeline_stages(self) -> bool:
        """Whether each stage is logged at DEBUG when a pipeline runs."""
        value = self._config["log_pipeline_stages"]
        assert isinstance(value, bool)
        return value

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._config)


_default_config: Optional[Config] = None
_default_config_lock = Lock()


def get_default_config() -> Config:
    """Return the process-wide configuration, loading it on first use."""
    global _default_config
    with _default_config_lock:
        if _default_config is None:
            _default_config = Config()
        return _default_config


def set_default_config(config: Optional[Config]) -> None:
    """Replace the process-wide configuration. None reloads on next use."""
    global _default_config
    with _default_config_lock:
        _default_config = config
