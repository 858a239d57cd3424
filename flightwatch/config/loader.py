"""
Configuration loader for the YAML console configuration.

This module loads and validates configuration from a single YAML file. All
configuration is validated using Pydantic models to catch configuration
errors at startup rather than on the first poll.

Configuration file expected:
    - config/console.yaml: All console settings (every section optional)

Environment variables override:
    - CONFIG_PATH: Path of the YAML file (overrides the directory lookup)
    - BACKEND_URL: Backend base URL
    - LOG_LEVEL: Application log level
    - DASHBOARD_HOST: Operator service bind address
    - DASHBOARD_PORT: Operator service bind port

Example:
    >>> from flightwatch.config.loader import load_config
    >>> config = load_config("config")
    >>> print(config.backend.base_url)
    http://localhost:8000
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog
import yaml
from pydantic import ValidationError

from flightwatch.config.models import AppConfig, LogLevel

logger = structlog.get_logger(__name__)


CONFIG_FILENAME = "console.yaml"


class ConfigLoadError(Exception):
    """
    Raised when configuration loading fails.

    Attributes:
        message: Error message describing what went wrong.
        file_path: Path to the file that caused the error, if applicable.
        cause: Original exception that caused the error, if any.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        """
        Initialize ConfigLoadError.

        Args:
            message: Error message.
            file_path: Path to the problematic file.
            cause: Original exception.
        """
        self.message = message
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


class ConfigLoader:
    """
    Loads and validates console configuration from a YAML file.

    The file is looked up as ``<config_dir>/console.yaml`` unless the
    ``CONFIG_PATH`` environment variable names a file explicitly. A missing
    file is not an error: the defaults apply.

    Example:
        >>> loader = ConfigLoader("config")
        >>> config = loader.load()
        >>> print(config.realtime.poll_interval_seconds)
        5.0
    """

    def __init__(
        self,
        config_dir: Path | str = "config",
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize config loader.

        Args:
            config_dir: Path to configuration directory (default: 'config').
            environ: Environment mapping (default: ``os.environ``).

        Raises:
            ConfigLoadError: If the config path exists but is not a directory.
        """
        self.config_dir = Path(config_dir)
        self.environ = os.environ if environ is None else environ

        if self.config_dir.exists() and not self.config_dir.is_dir():
            raise ConfigLoadError(
                f"Configuration path is not a directory: {self.config_dir}",
                file_path=self.config_dir,
            )

    @property
    def config_path(self) -> Path:
        """Path of the YAML file to load."""
        explicit = self.environ.get("CONFIG_PATH")
        if explicit:
            return Path(explicit)
        return self.config_dir / CONFIG_FILENAME

    def _load_yaml(self, file_path: Path) -> Dict[str, Any]:
        """
        Load the YAML file.

        Args:
            file_path: File to read.

        Returns:
            Dict containing parsed YAML content, empty if the file is
            missing or empty.

        Raises:
            ConfigLoadError: If the file is unreadable, invalid YAML, or not
                a mapping.
        """
        if not file_path.exists():
            logger.info("config_file_missing_using_defaults", path=str(file_path))
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(
                f"Invalid YAML syntax in {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Error reading {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Configuration root must be a mapping in {file_path}",
                file_path=file_path,
            )
        return data

    def _apply_env_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Overlay environment variables on the raw configuration.

        Args:
            data: Parsed YAML content.

        Returns:
            Dict: New raw configuration with overrides applied.
        """
        merged = {key: dict(value) if isinstance(value, dict) else value for key, value in data.items()}

        def section(name: str) -> Dict[str, Any]:
            current = merged.get(name)
            if not isinstance(current, dict):
                current = {}
                merged[name] = current
            return current

        backend_url = self.environ.get("BACKEND_URL")
        if backend_url:
            section("backend")["base_url"] = backend_url

        log_level = self._get_log_level()
        if log_level is not None:
            section("logging")["level"] = log_level.value

        host = self.environ.get("DASHBOARD_HOST")
        if host:
            section("dashboard")["host"] = host

        port = self.environ.get("DASHBOARD_PORT")
        if port:
            section("dashboard")["port"] = port

        return merged

    def _get_log_level(self) -> Optional[LogLevel]:
        """
        Get log level from environment.

        Environment variables:
            - LOG_LEVEL: Log level

        Returns:
            Optional[LogLevel]: Level, or None if unset or unrecognized.
        """
        level_str = self.environ.get("LOG_LEVEL")
        if not level_str:
            return None
        try:
            return LogLevel(level_str.upper())
        except ValueError:
            logger.warning("config_log_level_invalid", value=level_str)
            return None

    def load(self) -> AppConfig:
        """
        Load and validate the configuration.

        This is the main entry point for loading configuration. It loads
        the YAML file, merges environment variables, and returns a fully
        validated AppConfig object.

        Returns:
            AppConfig: Validated console configuration.

        Raises:
            ConfigLoadError: If the configuration is invalid.
        """
        file_path = self.config_path
        data = self._load_yaml(file_path)

        try:
            config = AppConfig(**self._apply_env_overrides(data))
        except ValidationError as e:
            raise ConfigLoadError(
                f"Configuration validation failed: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except TypeError as e:
            raise ConfigLoadError(
                f"Unexpected configuration structure: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        logger.info(
            "config_loaded",
            path=str(file_path),
            backend_url=config.backend.base_url,
            alert_sink=config.alerts.sink.value,
        )
        return config


def load_config(config_dir: Path | str = "config") -> AppConfig:
    """
    Convenience function to load console configuration.

    This is the recommended way to load configuration in application code.

    Args:
        config_dir: Path to configuration directory (default: 'config').

    Returns:
        AppConfig: Validated console configuration.

    Raises:
        ConfigLoadError: If configuration loading fails.

    Example:
        >>> from flightwatch.config import load_config
        >>> config = load_config()
        >>> print(config.alerts.cooldown_seconds)
        10.0
    """
    loader = ConfigLoader(config_dir)
    return loader.load()
