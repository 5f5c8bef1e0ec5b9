"""Configuration loading and validation."""

import logging
import os
import shlex
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field, fields

from pipepool.domain.exceptions import ConfigurationError
from pipepool.shared.logging import get_logger

logger = get_logger(__name__)


def _default_max_procs() -> int:
    return os.cpu_count() or 1


@dataclass
class PoolConfig:
    """Configuration for a process pool."""

    # Concurrency
    max_procs: int = field(default_factory=_default_max_procs)

    # Command run for every payload (CLI only; the API takes it per call)
    command: List[str] = field(default_factory=list)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        if isinstance(self.max_procs, bool) or not isinstance(self.max_procs, int):
            raise ConfigurationError(f"max_procs must be an integer, got: {self.max_procs!r}")

        if self.max_procs < 1:
            raise ConfigurationError(f"max_procs must be at least 1, got: {self.max_procs}")

        if isinstance(self.command, str):
            self.command = shlex.split(self.command)
        if not all(isinstance(part, str) for part in self.command):
            raise ConfigurationError(f"command must be a list of strings, got: {self.command!r}")

        self.log_level = str(self.log_level).upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")

        if self.log_file is not None:
            self.log_file = Path(self.log_file)


class ConfigLoader:
    """Loads and validates configuration from YAML files and environment variables."""

    ENV_PREFIX = "PIPEPOOL_"

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_path: Optional path to YAML config file
        """
        self.config_path = Path(config_path) if config_path else Path("pipepool.yaml")
        self._logger = get_logger(__name__)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> PoolConfig:
        """
        Load configuration from file and environment.

        Precedence, lowest first: YAML file, environment, overrides.
        None-valued overrides are ignored.

        Returns:
            PoolConfig instance

        Raises:
            ConfigurationError: If the file cannot be parsed or a value is invalid
        """
        config_dict: Dict[str, Any] = {}

        if self.config_path.exists():
            self._logger.info(f"Loading config from {self.config_path}")
            config_dict.update(self._load_yaml())
        else:
            self._logger.warning(f"Config file not found: {self.config_path}")

        config_dict.update(self._load_from_env())

        if overrides:
            for k, v in overrides.items():
                if v is None:
                    continue
                config_dict[k] = v

        valid_fields = {f.name for f in fields(PoolConfig)}
        unknown = sorted(set(config_dict) - valid_fields)
        if unknown:
            self._logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        filtered_config = {k: v for k, v in config_dict.items() if k in valid_fields}

        try:
            return PoolConfig(**filtered_config)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_yaml(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"{self.config_path} must contain a mapping, got {type(data).__name__}")
        return data

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config: Dict[str, Any] = {}
        prefix = self.ENV_PREFIX

        if max_procs := os.getenv(f"{prefix}MAX_PROCS"):
            try:
                env_config["max_procs"] = int(max_procs)
            except ValueError:
                self._logger.warning(f"Invalid {prefix}MAX_PROCS value: {max_procs}")

        if command := os.getenv(f"{prefix}COMMAND"):
            env_config["command"] = shlex.split(command)

        if log_level := os.getenv(f"{prefix}LOG_LEVEL"):
            env_config["log_level"] = log_level

        if log_file := os.getenv(f"{prefix}LOG_FILE"):
            env_config["log_file"] = Path(log_file)

        return env_config
