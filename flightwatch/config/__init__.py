"""
Console configuration.

Example:
    >>> from flightwatch.config import load_config
    >>> config = load_config("config")
"""

from flightwatch.config.loader import CONFIG_FILENAME, ConfigLoadError, ConfigLoader, load_config
from flightwatch.config.models import (
    AlertsConfig,
    AppConfig,
    BackendConfig,
    ClassificationConfig,
    DashboardConfig,
    DisplayConfig,
    FeedbackConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    RealtimeConfig,
    VersionBoundaryConfig,
)

__all__ = [
    # Loader
    "CONFIG_FILENAME",
    "ConfigLoadError",
    "ConfigLoader",
    "load_config",
    # Models
    "AlertsConfig",
    "AppConfig",
    "BackendConfig",
    "ClassificationConfig",
    "DashboardConfig",
    "DisplayConfig",
    "FeedbackConfig",
    "LogFormat",
    "LoggingConfig",
    "LogLevel",
    "RealtimeConfig",
    "VersionBoundaryConfig",
]
