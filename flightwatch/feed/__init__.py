"""
Anomaly feed synchronization.

Components:
    controller: FeedController driving mode transitions and the view
    lifecycle: Search tokens and stale-result detection
    merge: Deduplicating merge of incoming records
    poller: Realtime incremental polling
    store: Working set of the active mode
    strategies: Fetch strategy per mode

Example:
    >>> from flightwatch.feed import create_feed_controller
    >>> controller = create_feed_controller(config)
    >>> controller.start()
"""

from flightwatch.feed.controller import (
    DEFAULT_INITIAL_WINDOW_SECONDS,
    FeedController,
    FeedView,
    create_feed_controller,
)
from flightwatch.feed.lifecycle import RequestLifecycleManager, SearchToken
from flightwatch.feed.merge import MergeResult, merge_records, sort_newest_first
from flightwatch.feed.poller import DEFAULT_POLL_INTERVAL_SECONDS, RealtimePoller
from flightwatch.feed.store import RecordStore
from flightwatch.feed.strategies import day_window, fetch_day, fetch_feedback_history

__all__ = [
    # Controller
    "DEFAULT_INITIAL_WINDOW_SECONDS",
    "FeedController",
    "FeedView",
    "create_feed_controller",
    # Lifecycle
    "RequestLifecycleManager",
    "SearchToken",
    # Merge
    "MergeResult",
    "merge_records",
    "sort_newest_first",
    # Poller
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "RealtimePoller",
    # Store
    "RecordStore",
    # Strategies
    "day_window",
    "fetch_day",
    "fetch_feedback_history",
]
