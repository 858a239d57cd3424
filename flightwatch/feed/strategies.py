"""
Fetch strategies bound to each mode.

Each strategy is a coroutine that returns the records a mode starts with.
The controller runs them under a SearchToken; they never touch the store.
"""

from datetime import date, datetime, time, tzinfo
from typing import List, Optional, Tuple

import structlog

from flightwatch.interfaces.anomaly_source import AnomalySource
from flightwatch.models.anomaly import AnomalyRecord, Mode

logger = structlog.get_logger(__name__)


# Last second of the selected day
END_OF_DAY = time(23, 59, 59)


def day_window(day: date, tz: Optional[tzinfo] = None) -> Tuple[int, int]:
    """
    Epoch-second bounds of a calendar day.

    Args:
        day: The selected day.
        tz: Timezone the day is interpreted in. None means the host's
            local time.

    Returns:
        Tuple[int, int]: ``(day 00:00:00, day 23:59:59)`` as epoch seconds.

    Example:
        >>> day_window(date(2025, 7, 8), ZoneInfo("UTC"))
        (1751932800, 1752019199)
    """
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, END_OF_DAY)

    if tz is not None:
        start = start.replace(tzinfo=tz)
        end = end.replace(tzinfo=tz)

    return int(start.timestamp()), int(end.timestamp())


async def fetch_day(
    source: AnomalySource,
    mode: Mode,
    day: date,
    tz: Optional[tzinfo] = None,
) -> List[AnomalyRecord]:
    """
    Fetch one day of anomalies for a date-scoped mode.

    Args:
        source: Anomaly source.
        mode: HISTORICAL or RESEARCH.
        day: Selected day.
        tz: Timezone of the day boundaries.

    Returns:
        List[AnomalyRecord]: Records of that day.

    Raises:
        ValueError: If the mode is not date-scoped.
    """
    start_ts, end_ts = day_window(day, tz)

    if mode == Mode.HISTORICAL:
        return await source.get_live_anomalies(start_ts, end_ts)
    if mode == Mode.RESEARCH:
        return await source.get_research_anomalies(start_ts, end_ts)

    raise ValueError(f"Mode {mode.value} is not date-scoped")


async def fetch_feedback_history(
    source: AnomalySource,
    limit: int = 100,
    include_normal: bool = True,
) -> List[AnomalyRecord]:
    """
    Fetch feedback history, falling back to the legacy store.

    The curated store is authoritative. The legacy store is consulted only
    when the curated one returns nothing, and the two are never combined.

    Args:
        source: Anomaly source.
        limit: Maximum number of records.
        include_normal: Whether to include flights labelled normal.

    Returns:
        List[AnomalyRecord]: Records from exactly one of the two stores.
    """
    records = await source.get_tagged_feedback_history(
        limit=limit,
        include_normal=include_normal,
    )
    if records:
        return records

    logger.info("feedback_history_fallback", reason="tagged_history_empty")
    return await source.get_feedback_history(limit=limit)
