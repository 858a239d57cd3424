"""
Version bucket classification.

Detection releases are identified by when they went live. A strictly
ascending table of ``(boundary_timestamp, label)`` pairs partitions history
into buckets; a record belongs to the newest bucket whose boundary it is at
or past. Records older than the first boundary belong to the oldest bucket.

Default Table:
    v1            before 2025-07-08T20:00:00Z
    v2            from   2025-07-08T20:00:00Z
    v3            from   2025-07-21T00:00:00Z
    experimental  from   2025-12-01T00:00:00Z
"""

from bisect import bisect_right
from datetime import datetime, timezone
from typing import Iterable, List, Sequence, Tuple

from flightwatch.models.anomaly import AnomalyRecord


OLDEST_VERSION = "v1"

DEFAULT_VERSION_BOUNDARIES: Tuple[Tuple[int, str], ...] = (
    (int(datetime(2025, 7, 8, 20, 0, 0, tzinfo=timezone.utc).timestamp()), "v2"),
    (int(datetime(2025, 7, 21, 0, 0, 0, tzinfo=timezone.utc).timestamp()), "v3"),
    (int(datetime(2025, 12, 1, 0, 0, 0, tzinfo=timezone.utc).timestamp()), "experimental"),
)


class VersionTable:
    """
    Ordered table of version cutover boundaries.

    Attributes:
        oldest_label: Bucket of records before the first boundary.
        boundaries: ``(timestamp, label)`` pairs, strictly ascending.

    Example:
        >>> table = VersionTable([(100, "v2"), (200, "v3")])
        >>> table.classify(99), table.classify(100), table.classify(250)
        ('v1', 'v2', 'v3')
    """

    def __init__(
        self,
        boundaries: Iterable[Tuple[int, str]],
        oldest_label: str = OLDEST_VERSION,
    ) -> None:
        """
        Initialize the table.

        Args:
            boundaries: ``(timestamp, label)`` pairs.
            oldest_label: Bucket of records before the first boundary.

        Raises:
            ValueError: If boundaries are not strictly ascending or labels
                repeat.
        """
        pairs = [(int(ts), str(label)) for ts, label in boundaries]

        for (prev_ts, _), (ts, label) in zip(pairs, pairs[1:]):
            if ts <= prev_ts:
                raise ValueError(
                    f"Version boundaries must be strictly ascending: {label} at {ts} "
                    f"does not follow {prev_ts}"
                )

        labels = [oldest_label, *(label for _, label in pairs)]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Version labels must be unique: {labels}")

        self.oldest_label = oldest_label
        self.boundaries: Tuple[Tuple[int, str], ...] = tuple(pairs)
        self._starts: List[int] = [ts for ts, _ in pairs]

    @property
    def labels(self) -> Tuple[str, ...]:
        """All bucket labels, oldest first."""
        return (self.oldest_label, *(label for _, label in self.boundaries))

    def classify(self, timestamp: int) -> str:
        """
        Bucket of a timestamp.

        Args:
            timestamp: Epoch seconds.

        Returns:
            str: Bucket label. A timestamp exactly on a boundary belongs to
            the newer bucket.
        """
        index = bisect_right(self._starts, timestamp)
        if index == 0:
            return self.oldest_label
        return self.boundaries[index - 1][1]

    def __repr__(self) -> str:
        """Return string representation."""
        return f"VersionTable(labels={list(self.labels)})"


DEFAULT_VERSION_TABLE = VersionTable(DEFAULT_VERSION_BOUNDARIES)


def classify(timestamp: int, table: VersionTable = DEFAULT_VERSION_TABLE) -> str:
    """Bucket label of a timestamp."""
    return table.classify(timestamp)


def classify_record(record: AnomalyRecord, table: VersionTable = DEFAULT_VERSION_TABLE) -> str:
    """Bucket label of a record's event time."""
    return table.classify(record.timestamp)


def version_table_from_pairs(
    pairs: Sequence[Tuple[int, str]],
    oldest_label: str = OLDEST_VERSION,
) -> VersionTable:
    """
    Build a table, falling back to the default boundaries when empty.

    Args:
        pairs: Configured ``(timestamp, label)`` pairs.
        oldest_label: Bucket of records before the first boundary.

    Returns:
        VersionTable: The table.
    """
    if not pairs:
        return VersionTable(DEFAULT_VERSION_BOUNDARIES, oldest_label=oldest_label)
    return VersionTable(pairs, oldest_label=oldest_label)
