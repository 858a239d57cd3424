"""
Pydantic models for console configuration.

This module defines all configuration models that are validated when loading
the YAML configuration file. The models ensure type safety and provide
sensible defaults, so an absent file or an absent section is valid.

Configuration file:
    - config/console.yaml: Backend, realtime, alert, feedback, classification,
      display, dashboard and logging settings

Example:
    >>> from flightwatch.config.models import AppConfig
    >>> config = AppConfig()
    >>> config.realtime.poll_interval_seconds
    5.0
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from flightwatch.alerting.sound import AlertSink
from flightwatch.filtering.classify import (
    DEFAULT_VERSION_BOUNDARIES,
    OLDEST_VERSION,
    VersionTable,
    version_table_from_pairs,
)


# =============================================================================
# ENUMS
# =============================================================================


class LogFormat(str, Enum):
    """Logging format options."""

    JSON = "json"
    TEXT = "text"


class LogLevel(str, Enum):
    """Logging level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# =============================================================================
# BACKEND CONFIGURATION
# =============================================================================


class BackendConfig(BaseModel):
    """Connection settings for the analysis backend."""

    model_config = {"frozen": True, "extra": "forbid"}

    base_url: str = Field(
        default="http://localhost:8000",
        description="Backend base URL",
    )
    api_prefix: str = Field(
        default="/api",
        description="Path prefix of every backend endpoint",
    )
    timeout_seconds: float = Field(
        default=30.0,
        description="Total timeout of one backend request",
        gt=0,
        le=600,
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so endpoint paths join cleanly."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Backend URL must be http(s): {v}")
        return v


# =============================================================================
# REALTIME & ALERT CONFIGURATION
# =============================================================================


class RealtimeConfig(BaseModel):
    """Realtime monitoring settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    poll_interval_seconds: float = Field(
        default=5.0,
        description="Seconds between incremental polls",
        gt=0,
        le=3600,
    )
    initial_window_seconds: int = Field(
        default=3600,
        description="Look-back of the initial realtime fetch",
        ge=1,
        le=86400,
    )


class AlertsConfig(BaseModel):
    """Audible alert settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(
        default=True,
        description="Whether new realtime anomalies sound an alert",
    )
    cooldown_seconds: float = Field(
        default=10.0,
        description="Minimum seconds between two alerts",
        ge=0,
    )
    sink: AlertSink = Field(
        default=AlertSink.BELL,
        description="Alert sink implementation",
    )
    tone_frequency_hz: float = Field(
        default=880.0,
        description="Tone pitch (tone sink only)",
        gt=20,
        lt=20000,
    )
    tone_duration_ms: int = Field(
        default=350,
        description="Tone length (tone sink only)",
        ge=10,
        le=5000,
    )
    device: Optional[int] = Field(
        default=None,
        description="Audio output device index (tone sink only)",
    )


# =============================================================================
# FEEDBACK & CLASSIFICATION CONFIGURATION
# =============================================================================


class FeedbackConfig(BaseModel):
    """Feedback history settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    history_limit: int = Field(
        default=100,
        description="Maximum feedback records fetched",
        ge=1,
        le=10000,
    )
    include_normal: bool = Field(
        default=True,
        description="Fetch records the operator labelled normal",
    )


class VersionBoundaryConfig(BaseModel):
    """Start of one detection release."""

    model_config = {"frozen": True, "extra": "forbid"}

    label: str = Field(
        ...,
        description="Version bucket label",
        min_length=1,
    )
    starts_at: datetime = Field(
        ...,
        description="First instant of the release (naive values are UTC)",
    )

    @field_validator("starts_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Treat naive boundary instants as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def timestamp(self) -> int:
        """Boundary in epoch seconds."""
        return int(self.starts_at.timestamp())


def _default_boundaries() -> List[VersionBoundaryConfig]:
    return [
        VersionBoundaryConfig(
            label=label,
            starts_at=datetime.fromtimestamp(ts, tz=timezone.utc),
        )
        for ts, label in DEFAULT_VERSION_BOUNDARIES
    ]


class ClassificationConfig(BaseModel):
    """Version bucket classification settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    oldest_label: str = Field(
        default=OLDEST_VERSION,
        description="Bucket of records before the first boundary",
        min_length=1,
    )
    versions: List[VersionBoundaryConfig] = Field(
        default_factory=_default_boundaries,
        description="Release boundaries, strictly ascending",
    )

    @model_validator(mode="after")
    def validate_ascending(self) -> "ClassificationConfig":
        """Validate that boundaries are strictly ascending with unique labels."""
        self.build_table()
        return self

    def boundary_pairs(self) -> List[Tuple[int, str]]:
        """
        Get the boundaries as ``(timestamp, label)`` pairs.

        Returns:
            List[Tuple[int, str]]: Pairs in configured order.
        """
        return [(boundary.timestamp, boundary.label) for boundary in self.versions]

    def build_table(self) -> VersionTable:
        """
        Build the version table.

        An empty ``versions`` list means the default release boundaries.

        Returns:
            VersionTable: Table for the configured boundaries.

        Raises:
            ValueError: If boundaries are not strictly ascending.
        """
        return version_table_from_pairs(self.boundary_pairs(), oldest_label=self.oldest_label)


# =============================================================================
# DISPLAY & SERVICE CONFIGURATION
# =============================================================================


class DisplayConfig(BaseModel):
    """Presentation settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    timezone: Optional[str] = Field(
        default=None,
        description="IANA zone of calendar days, None for the host zone",
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the zone is known to the tz database."""
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    def tzinfo(self) -> Optional[ZoneInfo]:
        """
        Get the configured zone.

        Returns:
            Optional[ZoneInfo]: Zone, or None to use the host's local time.
        """
        return ZoneInfo(self.timezone) if self.timezone else None


class DashboardConfig(BaseModel):
    """Operator HTTP service configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    host: str = Field(
        default="127.0.0.1",
        description="Bind address",
    )
    port: int = Field(
        default=8050,
        description="Bind port",
        ge=1,
        le=65535,
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    format: LogFormat = Field(
        default=LogFormat.JSON,
        description="Log output format",
    )
    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Default log level",
    )


# =============================================================================
# ROOT CONFIGURATION
# =============================================================================


class AppConfig(BaseModel):
    """
    Root console configuration.

    Aggregates all configuration sections into a single validated object.
    Every section has defaults, so ``AppConfig()`` is a working
    configuration against a backend on localhost.

    Example:
        >>> config = AppConfig(backend={"base_url": "http://analysis:8000"})
        >>> config.backend.base_url
        'http://analysis:8000'
    """

    model_config = {"frozen": True, "extra": "forbid"}

    backend: BackendConfig = Field(
        default_factory=BackendConfig,
        description="Backend connection",
    )
    realtime: RealtimeConfig = Field(
        default_factory=RealtimeConfig,
        description="Realtime monitoring",
    )
    alerts: AlertsConfig = Field(
        default_factory=AlertsConfig,
        description="Audible alerts",
    )
    feedback: FeedbackConfig = Field(
        default_factory=FeedbackConfig,
        description="Feedback history",
    )
    classification: ClassificationConfig = Field(
        default_factory=ClassificationConfig,
        description="Version classification",
    )
    display: DisplayConfig = Field(
        default_factory=DisplayConfig,
        description="Presentation",
    )
    dashboard: DashboardConfig = Field(
        default_factory=DashboardConfig,
        description="Operator HTTP service",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging",
    )
