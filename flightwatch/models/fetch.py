"""
Fetch outcome model.

Every fetch issued by the feed controller resolves to exactly one of three
outcomes. A stale or cancelled search is an ordinary branch of the result,
not an exception the caller has to filter.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class FetchStatus(str, Enum):
    """
    Status of a completed fetch.

    Attributes:
        OK: Data arrived and the search is still current.
        FAILED: Transport, backend or parsing failure.
        CANCELLED: The search was superseded before its result could be used.
    """

    OK = "ok"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FetchOutcome(BaseModel):
    """
    Result of one search.

    Attributes:
        status: Outcome status.
        data: Fetched data (records or rule catalog), empty unless OK.
        reason: Failure description, set only when FAILED.

    Example:
        >>> outcome = FetchOutcome.ok([record])
        >>> outcome.is_ok
        True
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    status: FetchStatus
    data: List[Any] = Field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def ok(cls, data: List[Any]) -> "FetchOutcome":
        """Build a successful outcome."""
        return cls(status=FetchStatus.OK, data=list(data))

    @classmethod
    def failed(cls, reason: str) -> "FetchOutcome":
        """Build a failed outcome."""
        return cls(status=FetchStatus.FAILED, reason=reason)

    @classmethod
    def cancelled(cls) -> "FetchOutcome":
        """Build a cancelled outcome."""
        return cls(status=FetchStatus.CANCELLED)

    @property
    def is_ok(self) -> bool:
        """Check if the fetch succeeded."""
        return self.status == FetchStatus.OK

    @property
    def is_failed(self) -> bool:
        """Check if the fetch failed."""
        return self.status == FetchStatus.FAILED

    @property
    def is_cancelled(self) -> bool:
        """Check if the fetch was superseded."""
        return self.status == FetchStatus.CANCELLED
