"""
Realtime poller for live monitoring.

While the console is in realtime mode, the poller fetches the anomalies
detected since its watermark on a fixed interval, merges them into the
record store and signals the alert throttle when something genuinely new
arrived.

Window Semantics:
    Each tick covers ``[watermark, now)``. Records at or past ``now`` are
    left for the next tick. The watermark advances to ``now`` after every
    tick that reached the backend, failed ones included; failures are not
    retried within the tick. Overlap between windows is absorbed by the
    merge key.

Example:
    >>> poller = RealtimePoller(source, lifecycle, token, store, throttle, watermark=now)
    >>> poller.start()
    >>> ...
    >>> poller.stop()
"""

import asyncio
import time
from typing import Callable, Optional

import structlog

from flightwatch.alerting.throttle import AlertThrottle
from flightwatch.feed.lifecycle import RequestLifecycleManager, SearchToken
from flightwatch.feed.merge import MergeResult, merge_records, sort_newest_first
from flightwatch.feed.store import RecordStore
from flightwatch.interfaces.anomaly_source import AnomalySource

logger = structlog.get_logger(__name__)


# Default seconds between realtime polls
DEFAULT_POLL_INTERVAL_SECONDS = 5.0


class RealtimePoller:
    """
    Recurring incremental fetch-and-merge against a watermark.

    The poller runs under the realtime mode's SearchToken. Once that token
    is cancelled, no tick can mutate the store, even one whose fetch was
    already in flight.

    Attributes:
        watermark: Exclusive lower bound of the next poll window.
        interval_seconds: Seconds between ticks.
        ticks: Number of ticks that queried the backend.
    """

    def __init__(
        self,
        source: AnomalySource,
        lifecycle: RequestLifecycleManager,
        token: SearchToken,
        store: RecordStore,
        throttle: AlertThrottle,
        watermark: int,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the poller.

        Args:
            source: Anomaly source to poll.
            lifecycle: Lifecycle manager the token belongs to.
            token: Realtime search token.
            store: Record store to merge into.
            throttle: Alert throttle notified of new records.
            watermark: End of the initial realtime window.
            interval_seconds: Seconds between ticks.
            clock: Wall-clock source returning epoch seconds.
        """
        self._source = source
        self._lifecycle = lifecycle
        self._token = token
        self._store = store
        self._throttle = throttle
        self._clock = clock

        self.watermark = watermark
        self.interval_seconds = interval_seconds
        self.ticks = 0

        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def is_running(self) -> bool:
        """Check if the polling task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the polling task. Must be called from a running event loop."""
        if self.is_running:
            return

        self._stopped = False
        self._task = asyncio.create_task(self._run())

        logger.info(
            "realtime_poller_started",
            watermark=self.watermark,
            interval_seconds=self.interval_seconds,
        )

    def stop(self) -> None:
        """Stop polling. Safe to call more than once."""
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("realtime_poller_stopped", ticks=self.ticks, watermark=self.watermark)

    async def join(self) -> None:
        """Wait for a stopped polling task to finish unwinding."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        """Polling loop."""
        try:
            while not self._stopped:
                await asyncio.sleep(self.interval_seconds)

                if self._stopped or self._lifecycle.is_cancelled(self._token):
                    break

                try:
                    await self.tick()
                except Exception as e:
                    logger.error(
                        "realtime_poll_tick_error",
                        error_type=type(e).__name__,
                        error=str(e),
                    )

        except asyncio.CancelledError:
            logger.debug("realtime_poller_cancelled")

    async def tick(self) -> Optional[MergeResult]:
        """
        Run one poll.

        Returns:
            Optional[MergeResult]: The merge result, or None when the tick
            was skipped, failed or went stale.
        """
        window_start = self.watermark
        window_end = int(self._clock())

        if window_end <= window_start:
            logger.debug(
                "realtime_poll_skipped",
                window_start=window_start,
                window_end=window_end,
            )
            return None

        self.ticks += 1
        outcome = await self._lifecycle.execute(
            self._token,
            lambda: self._source.get_live_anomalies(window_start, window_end),
        )

        if outcome.is_cancelled:
            return None

        self.watermark = window_end

        if outcome.is_failed:
            logger.warning(
                "realtime_poll_failed",
                window_start=window_start,
                window_end=window_end,
                error=outcome.reason,
            )
            return None

        incoming = [record for record in outcome.data if record.timestamp < window_end]
        result = merge_records(self._store.records, incoming)
        self._store.replace(sort_newest_first(result.merged))

        if result.had_new:
            logger.info(
                "realtime_new_anomalies",
                new_count=result.new_count,
                total=len(self._store),
                window_start=window_start,
                window_end=window_end,
            )
            self._throttle.on_new_records(result.new_count)

        return result
