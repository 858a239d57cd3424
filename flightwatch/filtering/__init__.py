"""
Classification and filtering of the working set.

Components:
    classify: Version bucket classification by detection release date
    filters: Display filter pipeline, confidence scoring and score tiers

Example:
    >>> from flightwatch.filtering import filter_records, classify
    >>> from flightwatch.models import FilterCriteria
    >>> result = filter_records(records, FilterCriteria(version="v3"))
"""

from flightwatch.filtering.classify import (
    DEFAULT_VERSION_BOUNDARIES,
    DEFAULT_VERSION_TABLE,
    OLDEST_VERSION,
    VersionTable,
    classify,
    classify_record,
    version_table_from_pairs,
)
from flightwatch.filtering.filters import (
    FilterResult,
    confidence_score,
    dedupe_by_flight,
    filter_records,
    matches_query,
    matches_trigger,
    score_tier,
)

__all__ = [
    # Classification
    "DEFAULT_VERSION_BOUNDARIES",
    "DEFAULT_VERSION_TABLE",
    "OLDEST_VERSION",
    "VersionTable",
    "classify",
    "classify_record",
    "version_table_from_pairs",
    # Filters
    "FilterResult",
    "confidence_score",
    "dedupe_by_flight",
    "filter_records",
    "matches_query",
    "matches_trigger",
    "score_tier",
]
