"""
In-memory record store for the active mode.

The store holds the working set of the currently active mode. It only
supports wholesale replacement and clearing: records are never patched in
place, and callers only ever receive tuples, so nothing outside the
controller can mutate the contents.
"""

from typing import Iterable, Tuple

from flightwatch.models.anomaly import AnomalyRecord


class RecordStore:
    """
    Working set of anomaly records.

    Attributes:
        generation: Incremented on every replace or clear, so observers can
            cheaply detect changes.

    Example:
        >>> store = RecordStore()
        >>> store.replace(records)
        >>> len(store)
        3
        >>> store.clear()
        >>> store.is_empty
        True
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._records: Tuple[AnomalyRecord, ...] = ()
        self.generation = 0

    @property
    def records(self) -> Tuple[AnomalyRecord, ...]:
        """Current records, in display order."""
        return self._records

    @property
    def is_empty(self) -> bool:
        """Check if the store holds no records."""
        return not self._records

    def replace(self, records: Iterable[AnomalyRecord]) -> None:
        """
        Replace the whole working set.

        Args:
            records: New contents, in display order.
        """
        self._records = tuple(records)
        self.generation += 1

    def clear(self) -> None:
        """Empty the store."""
        self._records = ()
        self.generation += 1

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"RecordStore(records={len(self._records)}, generation={self.generation})"
