"""
Abstract interfaces for the triage console.

Components:
    anomaly_source: AnomalySource base class and the errors it raises
"""

from flightwatch.interfaces.anomaly_source import (
    AnomalySource,
    BackendError,
    MalformedResponseError,
)

__all__ = [
    "AnomalySource",
    "BackendError",
    "MalformedResponseError",
]
