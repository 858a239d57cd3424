"""
Filter engine for the displayed anomaly list.

The working set held by the record store is never modified here. Every call
derives the displayed subset from the current records and a FilterCriteria.

Pipeline (in order):
    a. Collapse repeated flight ids, first occurrence wins
    b. Free-text query over flight id, callsign and trigger names
    c. Minimum confidence score
    d. Trigger layer (single layer or combination)
    e. Version bucket
    f. Feedback visibility of records labelled normal
"""

from typing import Iterable, List, NamedTuple, Sequence

from flightwatch.filtering.classify import DEFAULT_VERSION_TABLE, VersionTable
from flightwatch.models.anomaly import AnomalyRecord, UserLabel
from flightwatch.models.criteria import ALL_LAYERS, ALL_VERSIONS, FilterCriteria


class FilterResult(NamedTuple):
    """
    Result of a filter pass.

    Attributes:
        records: Records to display, in working-set order.
        hidden_count: Records labelled normal that feedback visibility hid
            (zero when they are revealed).
    """

    records: List[AnomalyRecord]
    hidden_count: int


# =============================================================================
# SCORING
# =============================================================================

def confidence_score(record: AnomalyRecord) -> float:
    """
    Confidence score of a record.

    Uses the report's score when the report carries a summary. Without one,
    the backend verdict stands in: 100 for anomalies, 0 otherwise.

    Args:
        record: Record to score.

    Returns:
        float: Score in the 0-100 range reported by the backend.
    """
    view = record.report
    if view.has_summary:
        return view.confidence_score
    return 100.0 if record.is_anomaly else 0.0


def score_tier(score: float) -> str:
    """
    Severity tier of a confidence score.

    Args:
        score: Confidence score.

    Returns:
        str: "critical" (>85), "high" (>70), "medium" (>20) or "low".
    """
    if score > 85:
        return "critical"
    if score > 70:
        return "high"
    if score > 20:
        return "medium"
    return "low"


# =============================================================================
# PREDICATES
# =============================================================================

def dedupe_by_flight(records: Iterable[AnomalyRecord]) -> List[AnomalyRecord]:
    """Keep the first record of every flight id."""
    seen = set()
    unique: List[AnomalyRecord] = []
    for record in records:
        if record.flight_id in seen:
            continue
        seen.add(record.flight_id)
        unique.append(record)
    return unique


def matches_query(record: AnomalyRecord, query: str) -> bool:
    """
    Case-insensitive substring match.

    The query is matched against the flight id, the callsign and the
    trigger layer names joined by spaces. An empty query matches everything.
    """
    if not query:
        return True

    needle = query.lower()
    haystacks = (
        record.flight_id,
        record.callsign or "",
        " ".join(record.report.triggers),
    )
    return any(needle in text.lower() for text in haystacks)


def matches_trigger(
    triggers: Sequence[str],
    criteria: FilterCriteria,
) -> bool:
    """
    Check a record's trigger layers against the selected layer.

    A single layer matches by exact membership. In combination mode, the
    chosen layers must all be present; with no layers chosen, any record
    fired by at least two distinct layers matches.

    Args:
        triggers: Layers that fired for the record.
        criteria: Current filter selection.

    Returns:
        bool: True if the record passes.
    """
    if criteria.trigger_layer == ALL_LAYERS:
        return True

    present = set(triggers)
    if criteria.is_combination:
        if not criteria.required_layers:
            return len(present) >= 2
        return criteria.required_layers <= present

    return criteria.trigger_layer in present


def is_hidden_normal(record: AnomalyRecord) -> bool:
    """Check if a feedback record was labelled normal by the operator."""
    return record.user_label == UserLabel.NORMAL


# =============================================================================
# PIPELINE
# =============================================================================

def filter_records(
    records: Iterable[AnomalyRecord],
    criteria: FilterCriteria,
    feedback_mode: bool = False,
    version_table: VersionTable = DEFAULT_VERSION_TABLE,
) -> FilterResult:
    """
    Derive the displayed subset of the working set.

    Args:
        records: Working set, in display order.
        criteria: Operator filter selection.
        feedback_mode: Whether feedback label visibility applies.
        version_table: Version cutover table.

    Returns:
        FilterResult: Displayed records and the hidden-normal count.

    Example:
        >>> result = filter_records(store.records, FilterCriteria(min_score=70))
        >>> len(result.records)
    """
    shown: List[AnomalyRecord] = []
    hidden = 0

    for record in dedupe_by_flight(records):
        if not matches_query(record, criteria.query):
            continue
        if confidence_score(record) < criteria.min_score:
            continue
        if not matches_trigger(record.report.triggers, criteria):
            continue
        if criteria.version != ALL_VERSIONS and version_table.classify(record.timestamp) != criteria.version:
            continue

        if feedback_mode and not criteria.show_normal and is_hidden_normal(record):
            hidden += 1
            continue

        shown.append(record)

    return FilterResult(records=shown, hidden_count=hidden)
