"""
Mode controller for the anomaly feed.

The controller decides which data source the console is synchronized
against, issues and cancels fetches as the operator switches context, owns
the record store, the realtime poller and the alert sink, and derives the
displayed list through the filter engine.

Transitions:
    Every change of mode, of the selected date while a date-scoped mode is
    active, or of the selected rule runs synchronously:

        1. stop the realtime poller
        2. cancel the live search token
        3. clear the record store
        4. dispatch the new strategy as an asyncio task

    Because steps 1-3 run before control returns to the event loop, no
    stale fetch completion can be processed in between.

Strategies:
    historical / research   one fetch over the selected calendar day
    rule-detail             rule catalog, then flights of the chosen rule
    feedback-history        tagged history, legacy history when empty
    externally-supplied     no fetch, mirrors set_external_records()
    realtime                trailing window fetch, then the poller

All methods that dispatch a fetch must be called with a running event loop.

Example:
    >>> async with FeedController(source, throttle) as controller:
    ...     controller.set_mode(Mode.REALTIME)
    ...     view = controller.view(FilterCriteria(min_score=70))
"""

import asyncio
import time
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, List, Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from flightwatch.alerting.sound import SilentSound, create_alert_sound
from flightwatch.alerting.throttle import AlertThrottle
from flightwatch.backend.rest import BackendRestClient
from flightwatch.config.models import AppConfig
from flightwatch.feed.lifecycle import FetchCall, RequestLifecycleManager, SearchToken
from flightwatch.feed.merge import sort_newest_first
from flightwatch.feed.poller import DEFAULT_POLL_INTERVAL_SECONDS, RealtimePoller
from flightwatch.feed.store import RecordStore
from flightwatch.feed.strategies import fetch_day, fetch_feedback_history
from flightwatch.filtering.classify import DEFAULT_VERSION_TABLE, VersionTable
from flightwatch.filtering.filters import filter_records
from flightwatch.interfaces.anomaly_source import AnomalySource
from flightwatch.models.anomaly import AnomalyRecord, Mode, RuleSummary
from flightwatch.models.criteria import FilterCriteria

logger = structlog.get_logger(__name__)


# Look-back of the initial realtime fetch
DEFAULT_INITIAL_WINDOW_SECONDS = 3600

SelectionCallback = Callable[[AnomalyRecord], None]


class FeedView(BaseModel):
    """
    Snapshot of what the presentation layer shows.

    Attributes:
        records: Filtered records to display.
        hidden_count: Records hidden by the feedback label filter.
        total_count: Size of the unfiltered working set.
        mode: Active mode.
        selected_date: Selected calendar day.
        selected_rule: Selected rule in rule-detail mode.
        rules: Rule catalog (rule-detail mode).
        is_loading: True while the live search is in flight.
        last_error: Failure of the last search, if it failed.
    """

    model_config = {"frozen": True}

    records: List[AnomalyRecord] = Field(default_factory=list)
    hidden_count: int = 0
    total_count: int = 0
    mode: Mode
    selected_date: date
    selected_rule: Optional[int] = None
    rules: List[RuleSummary] = Field(default_factory=list)
    is_loading: bool = False
    last_error: Optional[str] = None

    @property
    def shows_catalog(self) -> bool:
        """Check if the rule catalog is shown instead of records."""
        return self.mode == Mode.RULE_DETAIL and self.selected_rule is None


class FeedController:
    """
    Synchronizes the record store with the active mode.

    Attributes:
        mode: Active mode.
        selected_date: Selected calendar day for date-scoped modes.
        selected_rule: Selected rule in rule-detail mode, None for the catalog.
        rules: Last fetched rule catalog.
        criteria: Current filter selection.
        selected_record: Record last picked for the detail view.
        last_error: Failure of the last search, cleared on every transition.
        store: Working set of the active mode.
        lifecycle: Search token manager.
        throttle: Alert throttle driven by the realtime poller.
    """

    def __init__(
        self,
        source: AnomalySource,
        throttle: Optional[AlertThrottle] = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        initial_window_seconds: int = DEFAULT_INITIAL_WINDOW_SECONDS,
        feedback_limit: int = 100,
        feedback_include_normal: bool = True,
        version_table: VersionTable = DEFAULT_VERSION_TABLE,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], float] = time.time,
        initial_mode: Mode = Mode.HISTORICAL,
        initial_date: Optional[date] = None,
        owns_source: bool = False,
    ) -> None:
        """
        Initialize the controller. No fetch is issued until start().

        Args:
            source: Anomaly source.
            throttle: Alert throttle (default: disabled, silent).
            poll_interval_seconds: Seconds between realtime polls.
            initial_window_seconds: Look-back of the initial realtime fetch.
            feedback_limit: Maximum feedback history records.
            feedback_include_normal: Fetch records labelled normal.
            version_table: Version cutover table for filtering.
            tz: Timezone of calendar days, None for host local time.
            clock: Wall-clock source returning epoch seconds.
            initial_mode: Mode entered by start().
            initial_date: Selected day (default: today in ``tz``).
            owns_source: Close the source in close().
        """
        self._source = source
        self.throttle = throttle or AlertThrottle(SilentSound(), enabled=False)
        self.poll_interval_seconds = poll_interval_seconds
        self.initial_window_seconds = initial_window_seconds
        self.feedback_limit = feedback_limit
        self.feedback_include_normal = feedback_include_normal
        self.version_table = version_table
        self.tz = tz
        self._clock = clock
        self._owns_source = owns_source

        self.store = RecordStore()
        self.lifecycle = RequestLifecycleManager()

        self.mode = initial_mode
        self.selected_date = initial_date or datetime.fromtimestamp(clock(), tz).date()
        self.selected_rule: Optional[int] = None
        self.rules: List[RuleSummary] = []
        self.criteria = FilterCriteria()
        self.selected_record: Optional[AnomalyRecord] = None
        self.last_error: Optional[str] = None

        self._external: tuple = ()
        self._poller: Optional[RealtimePoller] = None
        self._task: Optional[asyncio.Task] = None
        self._callbacks: List[SelectionCallback] = []
        self._started = False
        self._closed = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_loading(self) -> bool:
        """Check if the live search is still in flight."""
        return self.lifecycle.is_busy

    @property
    def poller(self) -> Optional[RealtimePoller]:
        """The running realtime poller, if any."""
        return self._poller

    @property
    def pending(self) -> Optional[asyncio.Task]:
        """Task of the last dispatched strategy."""
        return self._task

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def start(self) -> Optional[asyncio.Task]:
        """
        Enter the initial mode.

        Returns:
            Optional[asyncio.Task]: Task running the mode's strategy.
        """
        if self._started:
            return self._task
        logger.info("feed_controller_started", mode=self.mode.value, date=str(self.selected_date))
        return self._dispatch()

    def set_mode(self, mode: Mode) -> Optional[asyncio.Task]:
        """
        Switch the active mode.

        Setting the active mode again is a no-op, except in rule-detail mode
        where it returns to the rule catalog.

        Args:
            mode: Mode to enter.

        Returns:
            Optional[asyncio.Task]: Task running the new strategy, if any.
        """
        mode = Mode(mode)

        if self._started and mode == self.mode:
            if mode == Mode.RULE_DETAIL and self.selected_rule is not None:
                return self.clear_rule()
            return None

        previous = self.mode
        self.mode = mode
        self.selected_rule = None

        logger.info(
            "mode_switched",
            previous=previous.value,
            mode=mode.value,
            date=str(self.selected_date),
        )
        return self._dispatch()

    def set_date(self, day: date) -> Optional[asyncio.Task]:
        """
        Change the selected day.

        Date-scoped modes re-fetch; other modes only remember the day.

        Args:
            day: New selected day.

        Returns:
            Optional[asyncio.Task]: Task running the re-fetch, if any.
        """
        if day == self.selected_date:
            return None

        self.selected_date = day
        logger.info("date_selected", mode=self.mode.value, date=str(day))

        if self._started and self.mode.is_date_scoped:
            return self._dispatch()
        return None

    def shift_date(self, days: int) -> Optional[asyncio.Task]:
        """Move the selected day by ``days`` (negative moves back)."""
        return self.set_date(self.selected_date + timedelta(days=days))

    def select_rule(self, rule_id: int) -> Optional[asyncio.Task]:
        """
        Show the flights of one rule.

        Re-selecting the same rule is a no-op.

        Args:
            rule_id: Rule identifier from the catalog.

        Returns:
            Optional[asyncio.Task]: Task running the rule fetch.

        Raises:
            ValueError: If rule-detail mode is not active.
        """
        if self.mode != Mode.RULE_DETAIL:
            raise ValueError(f"Rule selection requires rule-detail mode, not {self.mode.value}")

        if self._started and rule_id == self.selected_rule:
            return None

        self.selected_rule = rule_id
        logger.info("rule_selected", rule_id=rule_id)
        return self._dispatch()

    def clear_rule(self) -> Optional[asyncio.Task]:
        """
        Return from a rule's flights to the rule catalog.

        Returns:
            Optional[asyncio.Task]: Task re-fetching the catalog when none
            was loaded yet.
        """
        if self.mode != Mode.RULE_DETAIL:
            return None

        self.selected_rule = None
        logger.info("rule_cleared")

        if self.rules:
            self._reset()
            return None
        return self._dispatch()

    def refresh(self) -> Optional[asyncio.Task]:
        """
        Re-run the active mode's strategy from scratch.

        Returns:
            Optional[asyncio.Task]: Task running the strategy.
        """
        logger.info("feed_refreshed", mode=self.mode.value)
        return self._dispatch()

    def set_external_records(self, records: Sequence[AnomalyRecord]) -> None:
        """
        Supply the collection mirrored in externally-supplied mode.

        The collection is remembered in every mode; the store only mirrors it
        while externally-supplied mode is active.

        Args:
            records: Records found by an external caller.
        """
        self._external = tuple(records)

        if self.mode == Mode.EXTERNAL and self._started:
            self.store.replace(self._external)
            logger.info("external_records_mirrored", count=len(self._external))

    def set_criteria(self, criteria: FilterCriteria) -> None:
        """Replace the current filter selection."""
        self.criteria = criteria

    def _reset(self) -> None:
        """Stop polling, cancel the live search and clear the store."""
        self._stop_poller()
        self.lifecycle.cancel()
        self.store.clear()
        self.last_error = None

    def _dispatch(self) -> Optional[asyncio.Task]:
        """Reset and launch the active mode's strategy."""
        self._started = True
        self._reset()

        if self.mode == Mode.EXTERNAL:
            self.store.replace(self._external)
            self._task = None
            return None

        label = self._search_label()
        token = self.lifecycle.start_search(label)
        task = asyncio.create_task(self._run_strategy(token))
        self.lifecycle.attach(token, task)
        self._task = task
        return task

    def _search_label(self) -> str:
        if self.mode == Mode.RULE_DETAIL:
            if self.selected_rule is None:
                return "rule-catalog"
            return f"rule-{self.selected_rule}"
        if self.mode.is_date_scoped:
            return f"{self.mode.value}-{self.selected_date}"
        return self.mode.value

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    async def _run_strategy(self, token: SearchToken) -> None:
        """Run the strategy bound to the active mode under ``token``."""
        mode = self.mode

        if mode.is_date_scoped:
            day = self.selected_date
            await self._load_records(token, lambda: fetch_day(self._source, mode, day, self.tz))
        elif mode == Mode.RULE_DETAIL:
            rule_id = self.selected_rule
            if rule_id is None:
                await self._load_catalog(token)
            else:
                await self._load_records(token, lambda: self._source.get_flights_by_rule(rule_id))
        elif mode == Mode.FEEDBACK_HISTORY:
            await self._load_records(
                token,
                lambda: fetch_feedback_history(
                    self._source,
                    limit=self.feedback_limit,
                    include_normal=self.feedback_include_normal,
                ),
            )
        elif mode == Mode.REALTIME:
            await self._load_realtime(token)

    async def _load_records(self, token: SearchToken, fetch: FetchCall) -> None:
        """Replace the store with the result of a one-shot fetch."""
        outcome = await self.lifecycle.execute(token, fetch)

        if outcome.is_cancelled:
            return

        self.lifecycle.finish_search(token)

        if outcome.is_failed:
            self._fail(token, outcome.reason)
            return

        self.store.replace(outcome.data)
        logger.info("records_loaded", search=token.label, count=len(outcome.data))

    async def _load_catalog(self, token: SearchToken) -> None:
        """Fetch the rule catalog. The store stays empty."""
        outcome = await self.lifecycle.execute(token, self._source.get_rules)

        if outcome.is_cancelled:
            return

        self.lifecycle.finish_search(token)

        if outcome.is_failed:
            self.rules = []
            self._fail(token, outcome.reason)
            return

        self.rules = list(outcome.data)
        logger.info("rule_catalog_loaded", count=len(self.rules))

    async def _load_realtime(self, token: SearchToken) -> None:
        """Fetch the trailing window, then hand over to the poller."""
        now = int(self._clock())
        start = now - self.initial_window_seconds

        outcome = await self.lifecycle.execute(
            token,
            lambda: self._source.get_live_anomalies(start, now),
        )

        if outcome.is_cancelled:
            return

        self.lifecycle.finish_search(token)

        if outcome.is_failed:
            self._fail(token, outcome.reason)
        else:
            self.store.replace(sort_newest_first(outcome.data))
            logger.info("realtime_initial_loaded", count=len(outcome.data), watermark=now)

        if self.lifecycle.is_cancelled(token):
            return

        # the next tick is the retry path after a failed initial fetch
        self._poller = RealtimePoller(
            source=self._source,
            lifecycle=self.lifecycle,
            token=token,
            store=self.store,
            throttle=self.throttle,
            watermark=now,
            interval_seconds=self.poll_interval_seconds,
            clock=self._clock,
        )
        self._poller.start()

    def _fail(self, token: SearchToken, reason: Optional[str]) -> None:
        self.store.clear()
        self.last_error = reason or "unknown error"
        logger.warning(
            "feed_fetch_failed",
            mode=self.mode.value,
            search=token.label,
            error=self.last_error,
        )

    def _stop_poller(self) -> None:
        if self._poller is not None:
            self._poller.stop()
            self._poller = None

    # =========================================================================
    # PRESENTATION
    # =========================================================================

    def view(self, criteria: Optional[FilterCriteria] = None) -> FeedView:
        """
        Build the displayed snapshot.

        Args:
            criteria: Filter selection (default: the current one).

        Returns:
            FeedView: Filtered records and controller state.
        """
        criteria = criteria or self.criteria
        result = filter_records(
            self.store.records,
            criteria,
            feedback_mode=self.mode.is_feedback,
            version_table=self.version_table,
        )

        return FeedView(
            records=result.records,
            hidden_count=result.hidden_count,
            total_count=len(self.store),
            mode=self.mode,
            selected_date=self.selected_date,
            selected_rule=self.selected_rule,
            rules=self.rules,
            is_loading=self.is_loading,
            last_error=self.last_error,
        )

    def on_select(self, callback: SelectionCallback) -> None:
        """Register a callback invoked when the operator picks a record."""
        self._callbacks.append(callback)

    def select_record(self, record: AnomalyRecord) -> None:
        """
        Pick a record for the detail view.

        Callback failures are logged and do not stop the other callbacks.

        Args:
            record: The picked record.
        """
        self.selected_record = record
        logger.debug("record_selected", flight_id=record.flight_id, timestamp=record.timestamp)

        for callback in list(self._callbacks):
            try:
                callback(record)
            except Exception as e:
                logger.error(
                    "selection_callback_failed",
                    flight_id=record.flight_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def close(self) -> None:
        """Stop polling, cancel the live search and release the alert sink."""
        if self._closed:
            return
        self._closed = True

        poller = self._poller
        task = self._task
        self._stop_poller()
        self.lifecycle.cancel()

        if poller is not None:
            await poller.join()
        if task is not None and not task.done() and task is not asyncio.current_task():
            await asyncio.gather(task, return_exceptions=True)

        self.throttle.close()
        if self._owns_source:
            await self._source.close()

        logger.info("feed_controller_closed", mode=self.mode.value)

    async def __aenter__(self) -> "FeedController":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def create_feed_controller(
    config: AppConfig,
    source: Optional[AnomalySource] = None,
    clock: Callable[[], float] = time.time,
) -> FeedController:
    """
    Factory function to create a controller from configuration.

    Args:
        config: Console configuration.
        source: Anomaly source (default: REST client for ``config.backend``,
            owned and closed by the controller).
        clock: Wall-clock source returning epoch seconds.

    Returns:
        FeedController: Configured controller, not yet started.

    Example:
        >>> controller = create_feed_controller(load_config())
        >>> controller.start()
    """
    owns_source = source is None
    if source is None:
        source = BackendRestClient(
            base_url=config.backend.base_url,
            api_prefix=config.backend.api_prefix,
            timeout_seconds=config.backend.timeout_seconds,
        )

    alerts = config.alerts
    throttle = AlertThrottle(
        sound=create_alert_sound(
            alerts.sink,
            frequency_hz=alerts.tone_frequency_hz,
            duration_ms=alerts.tone_duration_ms,
            device=alerts.device,
        ),
        cooldown_seconds=alerts.cooldown_seconds,
        enabled=alerts.enabled,
    )

    return FeedController(
        source=source,
        throttle=throttle,
        poll_interval_seconds=config.realtime.poll_interval_seconds,
        initial_window_seconds=config.realtime.initial_window_seconds,
        feedback_limit=config.feedback.history_limit,
        feedback_include_normal=config.feedback.include_normal,
        version_table=config.classification.build_table(),
        tz=config.display.tzinfo(),
        clock=clock,
        owns_source=owns_source,
    )
