"""
Shared Pydantic data models for the triage console.

Modules:
    anomaly: Anomaly records, modes, user labels and rule summaries
    report: Typed accessor for the opaque backend report
    criteria: Filter criteria value object
    fetch: Tri-state fetch outcome

Example:
    >>> from flightwatch.models import AnomalyRecord, Mode, FilterCriteria
"""

from flightwatch.models.anomaly import (
    AnomalyRecord,
    Mode,
    RuleSummary,
    UserLabel,
)
from flightwatch.models.criteria import (
    ALL_LAYERS,
    ALL_VERSIONS,
    ANY_COMBINATION,
    TRIGGER_LAYERS,
    FilterCriteria,
)
from flightwatch.models.fetch import FetchOutcome, FetchStatus
from flightwatch.models.report import ReportView

__all__ = [
    # Anomaly
    "AnomalyRecord",
    "Mode",
    "RuleSummary",
    "UserLabel",
    # Report
    "ReportView",
    # Criteria
    "FilterCriteria",
    "ALL_LAYERS",
    "ALL_VERSIONS",
    "ANY_COMBINATION",
    "TRIGGER_LAYERS",
    # Fetch
    "FetchOutcome",
    "FetchStatus",
]
