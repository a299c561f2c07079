"""Configuration management for drivestress.

Provides centralized configuration with TOML support and validation, loaded
hierarchically from defaults → config file → environment → CLI.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import toml

from drivestress.models import Config, StressConfig
from drivestress.utils.exceptions import ConfigurationError
from drivestress.utils.logging_config import setup_logging

CONFIG_FILE_NAME = "drivestress.toml"

# Mapping of environment variables to config paths
ENV_MAPPINGS: dict[str, str] = {
    # Stress loop
    "DRIVESTRESS_FILE_SIZE_MB": "stress.file_size_mb",
    "DRIVESTRESS_FILE_SIZE_BYTES": "stress.file_size_bytes",
    "DRIVESTRESS_CHUNK_SIZE_KIB": "stress.chunk_size_kib",
    "DRIVESTRESS_NUM_FILES": "stress.num_files",
    "DRIVESTRESS_FILE_NAME": "stress.file_name",
    "DRIVESTRESS_FILE_PREFIX": "stress.file_prefix",
    "DRIVESTRESS_TARGET_DIR": "stress.target_dir",
    "DRIVESTRESS_FAILURE_DELAY": "stress.failure_delay",
    "DRIVESTRESS_ITERATION_DELAY": "stress.iteration_delay",
    "DRIVESTRESS_MAX_ITERATIONS": "stress.max_iterations",
    # Observability
    "DRIVESTRESS_LOG_LEVEL": "observability.log_level",
    "DRIVESTRESS_LOG_FILE": "observability.log_file",
    "DRIVESTRESS_STRUCTURED_LOGGING": "observability.structured_logging",
    "DRIVESTRESS_COLORED_OUTPUT": "observability.colored_output",
}

# String-typed settings that must not be coerced to numbers or booleans
_STRING_PATHS = frozenset(
    {
        "stress.file_name",
        "stress.file_prefix",
        "stress.target_dir",
        "observability.log_file",
        "observability.log_level",
    }
)

# Global configuration instance
_config_manager: ConfigManager | None = None


def _parse_env_value(raw: str) -> bool | int | float | str:
    low = raw.lower()
    if low in {"true", "yes", "on"}:
        return True
    if low in {"false", "no", "off"}:
        return False
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(
        self,
        config_file: str | Path | None = None,
        configure_logging: bool = True,
    ):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for drivestress.toml
            configure_logging: Apply the observability settings to the logging module

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()
        if configure_logging:
            self._setup_logging()

    def _find_config_file(
        self,
        config_file: str | Path | None,
    ) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            path = Path(config_file)
            if not path.exists():
                msg = f"Config file not found: {path}"
                raise ConfigurationError(msg)
            return path

        # Search in current directory, then home directory
        search_paths = [
            Path.cwd() / CONFIG_FILE_NAME,
            Path.home() / ".config" / "drivestress" / CONFIG_FILE_NAME,
            Path.home() / f".{CONFIG_FILE_NAME}",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file and self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except (OSError, toml.TomlDecodeError) as e:
                msg = f"Failed to load config file {self.config_file}: {e}"
                raise ConfigurationError(msg) from e

        config_data = self._merge_config(config_data, self._get_env_config())

        try:
            return Config(**config_data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}

        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            value = raw if cfg_path in _STRING_PATHS else _parse_env_value(raw)
            _set_nested(env_config, cfg_path, value)

        return env_config

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def apply_overrides(self, overrides: dict[str, Any]) -> Config:
        """Apply CLI overrides (``section.key`` → value) and revalidate.

        ``None`` values are ignored so unset CLI options keep the file and
        environment settings.
        """
        data = self.config.model_dump(mode="json")
        for path, value in overrides.items():
            if value is None:
                continue
            _set_nested(data, path, value)
        try:
            self.config = Config(**data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e
        return self.config

    def export(self, fmt: str = "toml") -> str:
        """Export current configuration as a string in the given format.

        Args:
            fmt: one of "toml" or "json"

        """
        data = self.config.model_dump(mode="json", exclude_none=True)
        fmt = (fmt or "toml").lower()
        if fmt == "toml":
            return toml.dumps(data)
        if fmt == "json":
            return json.dumps(data, indent=2)
        msg = f"Unsupported export format: {fmt}"
        raise ConfigurationError(msg)

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        setup_logging(self.config.observability)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(configure_logging=False)
    return _config_manager.config


def init_config(
    config_file: str | Path | None = None,
    configure_logging: bool = True,
) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file, configure_logging=configure_logging)
    return _config_manager


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime and reconfigure logging."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(configure_logging=False)
    _config_manager.config = new_config
    _config_manager._setup_logging()


def reset_config() -> None:
    """Drop the global configuration (for testing)."""
    global _config_manager
    _config_manager = None
    logging.getLogger(__name__).debug("Configuration reset")


def get_stress_config() -> StressConfig:
    """Get stress loop configuration."""
    return get_config().stress
