"""
Abstract base class for anomaly sources.

This module defines the AnomalySource interface the feed controller fetches
through. The production implementation talks HTTP to the analysis backend;
tests substitute in-memory sources with controllable timing.

The interface allows the controller to:
- Stay independent of the backend's transport and URL layout
- Receive already-normalized AnomalyRecord lists
- Treat every failure as one of two exception types

Example:
    >>> class StaticSource(AnomalySource):
    ...     async def get_live_anomalies(self, start_ts, end_ts):
    ...         return [r for r in self.records if start_ts <= r.timestamp <= end_ts]
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from flightwatch.models.anomaly import AnomalyRecord, RuleSummary


class BackendError(ConnectionError):
    """
    Raised when the backend cannot be reached or answers with an error.

    Attributes:
        status: HTTP status code, if the backend answered.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class MalformedResponseError(ValueError):
    """Raised when a backend response does not have the expected shape."""

    pass


class AnomalySource(ABC):
    """
    Abstract source of anomaly records.

    All methods return normalized models. Implementations raise
    BackendError for transport or HTTP failures and MalformedResponseError
    for payloads that cannot be interpreted. Individual records missing
    required fields are dropped rather than failing the whole response.

    Time ranges are epoch seconds, inclusive on both ends as the backend
    interprets them.
    """

    @abstractmethod
    async def get_live_anomalies(self, start_ts: int, end_ts: int) -> List[AnomalyRecord]:
        """
        Fetch anomalies detected by the live pipeline in a time range.

        Args:
            start_ts: Range start (epoch seconds).
            end_ts: Range end (epoch seconds).

        Returns:
            List[AnomalyRecord]: Records in backend order.

        Raises:
            BackendError: If the request fails.
            MalformedResponseError: If the payload is not a record list.
        """
        pass

    @abstractmethod
    async def get_research_anomalies(self, start_ts: int, end_ts: int) -> List[AnomalyRecord]:
        """
        Fetch anomalies from the research pipeline in a time range.

        Args:
            start_ts: Range start (epoch seconds).
            end_ts: Range end (epoch seconds).

        Returns:
            List[AnomalyRecord]: Records in backend order.
        """
        pass

    @abstractmethod
    async def get_rules(self) -> List[RuleSummary]:
        """
        Fetch the rule catalog.

        Returns:
            List[RuleSummary]: All rules known to the backend.
        """
        pass

    @abstractmethod
    async def get_flights_by_rule(self, rule_id: int) -> List[AnomalyRecord]:
        """
        Fetch the flights matched by one rule.

        Args:
            rule_id: Rule identifier from the catalog.

        Returns:
            List[AnomalyRecord]: Matching records.
        """
        pass

    @abstractmethod
    async def get_tagged_feedback_history(
        self,
        start_ts: int = 0,
        end_ts: Optional[int] = None,
        limit: int = 100,
        include_normal: bool = True,
    ) -> List[AnomalyRecord]:
        """
        Fetch operator-labelled flights from the curated feedback store.

        Args:
            start_ts: Range start (epoch seconds).
            end_ts: Range end, None for "until now".
            limit: Maximum number of records.
            include_normal: Whether to include flights labelled normal.

        Returns:
            List[AnomalyRecord]: Records carrying ``user_label``.
        """
        pass

    @abstractmethod
    async def get_feedback_history(
        self,
        start_ts: int = 0,
        end_ts: Optional[int] = None,
        limit: int = 100,
    ) -> List[AnomalyRecord]:
        """
        Fetch feedback history from the legacy store.

        Args:
            start_ts: Range start (epoch seconds).
            end_ts: Range end, None for "until now".
            limit: Maximum number of records.

        Returns:
            List[AnomalyRecord]: Records from the legacy store.
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the source."""
        return None
