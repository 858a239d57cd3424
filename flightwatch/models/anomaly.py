"""
Anomaly record models for the triage console.

This module defines the records the backend reports for each flagged flight,
the data-source modes the console can be synchronized against, and the rule
catalog entries shown in rule-detail mode.

Models:
    UserLabel: Operator feedback label (normal / anomaly)
    Mode: Active data source of the console
    AnomalyRecord: One anomaly detection event
    RuleSummary: One entry of the backend rule catalog
"""

from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from flightwatch.models.report import ReportView


class UserLabel(IntEnum):
    """
    Operator feedback label attached to a record in feedback history.

    Attributes:
        NORMAL: Operator confirmed the flight as normal.
        ANOMALY: Operator confirmed the flight as anomalous.
    """

    NORMAL = 0
    ANOMALY = 1


class Mode(str, Enum):
    """
    Data source the console is synchronized against.

    Exactly one mode is active at a time. Switching modes discards the
    current working set.
    """

    HISTORICAL = "historical"
    REALTIME = "realtime"
    RESEARCH = "research"
    RULE_DETAIL = "rule-detail"
    FEEDBACK_HISTORY = "feedback-history"
    EXTERNAL = "externally-supplied"

    @property
    def is_date_scoped(self) -> bool:
        """Check if changing the selected date re-fetches this mode."""
        return self in (Mode.HISTORICAL, Mode.RESEARCH)

    @property
    def is_feedback(self) -> bool:
        """Check if feedback label visibility applies to this mode."""
        return self == Mode.FEEDBACK_HISTORY


class AnomalyRecord(BaseModel):
    """
    One anomaly detection event reported by the backend.

    Records are immutable. A re-fetch replaces a record, it never patches it.
    The ``flight_id`` is not unique across time: the same flight can be
    reported again at a different timestamp.

    Attributes:
        flight_id: Stable flight identifier.
        timestamp: Event time in epoch seconds.
        callsign: Optional ATC callsign.
        is_anomaly: Backend verdict for the flight.
        severity_cnn: CNN model severity score.
        severity_dense: Dense model severity score.
        full_report: Opaque backend report, read only through ``report``.
        user_label: Operator label (feedback history only).
        feedback_id: Feedback entry identifier (feedback history only).
        feedback_comments: Operator comments (feedback history only).
        feedback_rule_ids: Rules the operator attributed the anomaly to.
        feedback_rule_names: Names of those rules.
        feedback_other_details: Free-text reason when no rule applies.

    Example:
        >>> record = AnomalyRecord(flight_id="3b1f2a", timestamp=1752000000)
        >>> record.key
        ('3b1f2a', 1752000000)
    """

    model_config = {"frozen": True, "extra": "ignore"}

    flight_id: str = Field(
        ...,
        description="Stable flight identifier",
        min_length=1,
    )
    timestamp: int = Field(
        ...,
        description="Event time in epoch seconds",
    )
    callsign: Optional[str] = Field(
        default=None,
        description="ATC callsign, if known",
    )
    is_anomaly: bool = Field(
        default=False,
        description="Backend anomaly verdict",
    )
    severity_cnn: float = Field(
        default=0.0,
        description="CNN model severity score",
    )
    severity_dense: float = Field(
        default=0.0,
        description="Dense model severity score",
    )
    full_report: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Opaque backend report",
    )
    user_label: Optional[UserLabel] = Field(
        default=None,
        description="Operator feedback label",
    )
    feedback_id: Optional[int] = Field(default=None)
    feedback_comments: Optional[str] = Field(default=None)
    feedback_rule_ids: List[int] = Field(default_factory=list)
    feedback_rule_names: List[str] = Field(default_factory=list)
    feedback_other_details: Optional[str] = Field(default=None)

    _report: ReportView = PrivateAttr(default_factory=ReportView)

    @field_validator("flight_id", mode="before")
    @classmethod
    def coerce_flight_id(cls, v: Any) -> Any:
        """Accept numeric flight identifiers."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Any:
        """Truncate fractional and string timestamps to whole seconds."""
        if isinstance(v, float):
            return int(v)
        if isinstance(v, str):
            return int(float(v))
        return v

    @field_validator("severity_cnn", "severity_dense", mode="before")
    @classmethod
    def default_missing_severity(cls, v: Any) -> Any:
        """Treat null severities as zero."""
        return 0.0 if v is None else v

    @field_validator("is_anomaly", mode="before")
    @classmethod
    def default_missing_flag(cls, v: Any) -> Any:
        """Treat a null anomaly flag as False."""
        return False if v is None else v

    @field_validator("feedback_rule_ids", "feedback_rule_names", mode="before")
    @classmethod
    def default_missing_list(cls, v: Any) -> Any:
        """Treat null lists as empty."""
        return [] if v is None else v

    def model_post_init(self, __context: Any) -> None:
        self._report = ReportView.from_report(self.full_report)

    @property
    def key(self) -> Tuple[str, int]:
        """Merge key: the same flight at the same time is the same event."""
        return (self.flight_id, self.timestamp)

    @property
    def report(self) -> ReportView:
        """Typed view of the fields of ``full_report`` the console reads, parsed once."""
        return self._report

    @property
    def display_title(self) -> str:
        """Callsign when known, otherwise the flight identifier."""
        return self.callsign or self.flight_id


class RuleSummary(BaseModel):
    """
    One entry of the backend rule catalog.

    Attributes:
        id: Rule identifier.
        name: Human-readable rule name.
        description: What the rule detects.
    """

    model_config = {"frozen": True, "extra": "ignore"}

    id: int
    name: str
    description: str = ""
