"""
Deduplicating merge of newly fetched anomaly records.

Realtime polling windows overlap, so the same event is often fetched twice.
Events are identified by ``(flight_id, timestamp)``: a flight reported again
at a different time is a distinct event and is kept.

Both functions here are pure. They never read the clock and never mutate
their inputs.
"""

from typing import Iterable, List, Sequence, Set, Tuple

from pydantic import BaseModel, Field

from flightwatch.models.anomaly import AnomalyRecord


class MergeResult(BaseModel):
    """
    Result of merging incoming records into an existing collection.

    Attributes:
        merged: Genuinely new records followed by the existing ones.
        new_records: The genuinely new records, in incoming order.
        had_new: True iff at least one incoming record was new.
    """

    model_config = {"frozen": True}

    merged: List[AnomalyRecord] = Field(default_factory=list)
    new_records: List[AnomalyRecord] = Field(default_factory=list)

    @property
    def had_new(self) -> bool:
        """Check if any incoming record was genuinely new."""
        return bool(self.new_records)

    @property
    def new_count(self) -> int:
        """Number of genuinely new records."""
        return len(self.new_records)


def merge_records(
    existing: Sequence[AnomalyRecord],
    incoming: Iterable[AnomalyRecord],
) -> MergeResult:
    """
    Merge incoming records into an existing collection.

    Args:
        existing: Current collection.
        incoming: Newly fetched records.

    Returns:
        MergeResult: ``new ++ existing`` plus the new subset.

    Example:
        >>> result = merge_records([a_100], [a_100, b_150])
        >>> [r.flight_id for r in result.new_records]
        ['B']
    """
    seen: Set[Tuple[str, int]] = {record.key for record in existing}
    new_records: List[AnomalyRecord] = []

    for record in incoming:
        if record.key in seen:
            continue
        seen.add(record.key)
        new_records.append(record)

    return MergeResult(
        merged=[*new_records, *existing],
        new_records=new_records,
    )


def sort_newest_first(records: Iterable[AnomalyRecord]) -> List[AnomalyRecord]:
    """
    Sort records by timestamp, newest first.

    The sort is stable, so records sharing a timestamp keep their order.

    Args:
        records: Records to sort.

    Returns:
        List[AnomalyRecord]: New sorted list.
    """
    return sorted(records, key=lambda r: r.timestamp, reverse=True)
