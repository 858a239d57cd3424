"""
Request lifecycle management for feed searches.

Operators switch mode, date and rule faster than the backend answers. Every
fetch is therefore issued under a SearchToken, and only the result of the
most recently issued token may reach the record store. Starting a search
cancels the previous token irrevocably; its result is discarded however late
it arrives.

Cancellation is cooperative: the staleness check after the await is what
guarantees correctness. The asyncio task running a stale fetch is also
cancelled so the HTTP request does not keep running, but nothing depends on
that interruption succeeding.

Example:
    >>> manager = RequestLifecycleManager()
    >>> token = manager.start_search("historical")
    >>> outcome = await manager.execute(token, lambda: source.get_live_anomalies(s, e))
    >>> if outcome.is_ok:
    ...     store.replace(outcome.data)
    >>> manager.finish_search(token)
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from flightwatch.interfaces.anomaly_source import BackendError, MalformedResponseError
from flightwatch.models.fetch import FetchOutcome

logger = structlog.get_logger(__name__)


FetchCall = Callable[[], Awaitable[List[Any]]]


class SearchToken:
    """
    Generation marker for one search.

    Attributes:
        generation: Monotonically increasing search number.
        label: What the search is for (used in logs only).
    """

    __slots__ = ("generation", "label", "_cancelled")

    def __init__(self, generation: int, label: str = "") -> None:
        self.generation = generation
        self.label = label
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """Check if the token was cancelled."""
        return self._cancelled

    def cancel(self) -> None:
        """Cancel the token. Cannot be undone."""
        self._cancelled = True

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"SearchToken(generation={self.generation}, label={self.label!r}, "
            f"cancelled={self._cancelled})"
        )


def _running_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class RequestLifecycleManager:
    """
    Owns at most one live search at a time.

    Attributes:
        current_token: The live token, or None when nothing is searching.
        is_busy: True between start_search() and finish_search() of the
            live token.
    """

    def __init__(self) -> None:
        """Initialize with no live search."""
        self._current: Optional[SearchToken] = None
        self._generation = 0
        self._busy = False
        self._tasks: Dict[int, asyncio.Task] = {}

    @property
    def current_token(self) -> Optional[SearchToken]:
        """The live token, if any."""
        return self._current

    @property
    def is_busy(self) -> bool:
        """Check if the live search has not finished yet."""
        return self._busy

    def start_search(self, label: str = "") -> SearchToken:
        """
        Issue a new token, cancelling the previous one.

        Args:
            label: Description of the search for logging.

        Returns:
            SearchToken: The new live token.
        """
        self.cancel()

        self._generation += 1
        token = SearchToken(self._generation, label)
        self._current = token
        self._busy = True

        logger.debug("search_started", generation=token.generation, label=label)

        return token

    def cancel(self) -> None:
        """Cancel the live token, if any, without issuing a new one."""
        token = self._current
        if token is None:
            return

        token.cancel()
        self._current = None
        self._busy = False

        task = self._tasks.pop(token.generation, None)
        if task is not None and not task.done() and task is not _running_task():
            task.cancel()

        logger.debug("search_cancelled", generation=token.generation, label=token.label)

    def attach(self, token: SearchToken, task: asyncio.Task) -> None:
        """
        Bind the task running a search to its token.

        When the token is superseded, the task is cancelled as well.

        Args:
            token: Token the task searches under.
            task: Task running the search.
        """
        if self.is_cancelled(token):
            task.cancel()
            return

        self._tasks[token.generation] = task
        task.add_done_callback(lambda _t: self._tasks.pop(token.generation, None))

    def finish_search(self, token: SearchToken) -> bool:
        """
        Mark the controller idle if ``token`` is still the live one.

        Finishing a stale token is a no-op.

        Args:
            token: Token of the search that completed.

        Returns:
            bool: True if the live search was finished.
        """
        if token is not self._current or token.cancelled:
            return False

        self._busy = False
        return True

    def is_cancelled(self, token: SearchToken) -> bool:
        """
        Check if a token's result must be discarded.

        Args:
            token: Token to check.

        Returns:
            bool: True if the token was cancelled or superseded.
        """
        return token.cancelled or token is not self._current

    async def execute(self, token: SearchToken, fetch: FetchCall) -> FetchOutcome:
        """
        Run a fetch under a token and classify its result.

        Args:
            token: Token the fetch runs under.
            fetch: Zero-argument coroutine factory performing the fetch.

        Returns:
            FetchOutcome: CANCELLED if the token went stale (before, during
            or after the fetch), FAILED on error, OK otherwise.
        """
        if self.is_cancelled(token):
            return FetchOutcome.cancelled()

        try:
            data = await fetch()
        except asyncio.CancelledError:
            if self.is_cancelled(token):
                return FetchOutcome.cancelled()
            raise
        except (BackendError, MalformedResponseError) as e:
            if self.is_cancelled(token):
                return FetchOutcome.cancelled()
            logger.warning(
                "search_failed",
                generation=token.generation,
                label=token.label,
                error=str(e),
            )
            return FetchOutcome.failed(str(e))
        except Exception as e:
            if self.is_cancelled(token):
                return FetchOutcome.cancelled()
            logger.error(
                "search_failed_unexpectedly",
                generation=token.generation,
                label=token.label,
                error_type=type(e).__name__,
                error=str(e),
            )
            return FetchOutcome.failed(f"{type(e).__name__}: {e}")

        if self.is_cancelled(token):
            logger.debug(
                "stale_result_discarded",
                generation=token.generation,
                label=token.label,
            )
            return FetchOutcome.cancelled()

        if not isinstance(data, (list, tuple)):
            logger.error(
                "search_result_not_a_list",
                generation=token.generation,
                label=token.label,
                result_type=type(data).__name__,
            )
            return FetchOutcome.failed(f"Expected a list of records, got {type(data).__name__}")

        return FetchOutcome.ok(data)
