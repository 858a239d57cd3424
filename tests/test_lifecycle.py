"""Unit tests for the request lifecycle manager."""

import asyncio

import pytest

from flightwatch.feed import RecordStore, RequestLifecycleManager
from flightwatch.interfaces import BackendError, MalformedResponseError
from flightwatch.models import FetchStatus

from tests.helpers import make_record, settle


class TestSearchTokens:
    """Tests for token issuing and cancellation."""

    def test_new_search_cancels_previous(self) -> None:
        """Should cancel the previous token when a new search starts."""
        manager = RequestLifecycleManager()

        first = manager.start_search("first")
        second = manager.start_search("second")

        assert manager.is_cancelled(first)
        assert first.cancelled
        assert not manager.is_cancelled(second)
        assert manager.current_token is second

    def test_finish_stale_token_is_noop(self) -> None:
        """Should not mark idle when a stale token finishes."""
        manager = RequestLifecycleManager()
        first = manager.start_search()
        manager.start_search()

        assert manager.finish_search(first) is False
        assert manager.is_busy is True

    def test_finish_current_token(self) -> None:
        """Should mark idle when the live token finishes."""
        manager = RequestLifecycleManager()
        token = manager.start_search()

        assert manager.finish_search(token) is True
        assert manager.is_busy is False
        assert not manager.is_cancelled(token)

    def test_cancel_without_new_search(self) -> None:
        """Should cancel the live token and leave no current token."""
        manager = RequestLifecycleManager()
        token = manager.start_search()

        manager.cancel()

        assert manager.is_cancelled(token)
        assert manager.current_token is None
        assert manager.is_busy is False


class TestExecute:
    """Tests for RequestLifecycleManager.execute."""

    @pytest.mark.asyncio
    async def test_ok_outcome(self) -> None:
        """Should return OK with data when the token stays live."""
        manager = RequestLifecycleManager()
        token = manager.start_search()
        record = make_record("A", 100)

        async def fetch():
            return [record]

        outcome = await manager.execute(token, fetch)

        assert outcome.status == FetchStatus.OK
        assert outcome.data == [record]

    @pytest.mark.asyncio
    async def test_backend_error_is_failed(self) -> None:
        """Should map backend errors to FAILED."""
        manager = RequestLifecycleManager()
        token = manager.start_search()

        async def fetch():
            raise BackendError("boom", status=500)

        outcome = await manager.execute(token, fetch)

        assert outcome.is_failed
        assert "boom" in outcome.reason

    @pytest.mark.asyncio
    async def test_malformed_response_is_failed(self) -> None:
        """Should treat malformed responses as ordinary failures."""
        manager = RequestLifecycleManager()
        token = manager.start_search()

        async def fetch():
            raise MalformedResponseError("not a list")

        outcome = await manager.execute(token, fetch)

        assert outcome.is_failed

    @pytest.mark.asyncio
    async def test_unexpected_error_is_failed(self) -> None:
        """Should contain unexpected exceptions as FAILED."""
        manager = RequestLifecycleManager()
        token = manager.start_search()

        async def fetch():
            raise KeyError("summary")

        outcome = await manager.execute(token, fetch)

        assert outcome.is_failed
        assert outcome.reason.startswith("KeyError")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [None, {"flights": []}, "records"])
    async def test_non_list_result_is_failed(self, result) -> None:
        """Should classify a result that is not a list as FAILED."""
        manager = RequestLifecycleManager()
        token = manager.start_search()

        async def fetch():
            return result

        outcome = await manager.execute(token, fetch)

        assert outcome.is_failed
        assert type(result).__name__ in outcome.reason

    @pytest.mark.asyncio
    async def test_error_after_supersede_is_cancelled(self) -> None:
        """Should report a stale search's error as CANCELLED, not FAILED."""
        manager = RequestLifecycleManager()
        token = manager.start_search()
        gate = asyncio.get_running_loop().create_future()

        async def fetch():
            await gate
            raise BackendError("late failure")

        pending = asyncio.create_task(manager.execute(token, fetch))
        await settle()
        manager.start_search()
        gate.set_result(None)

        outcome = await pending

        assert outcome.is_cancelled

    @pytest.mark.asyncio
    async def test_cancelled_task_is_cancelled_outcome(self) -> None:
        """Should swallow task cancellation once the token is stale."""
        manager = RequestLifecycleManager()
        token = manager.start_search()
        never = asyncio.get_running_loop().create_future()

        async def fetch():
            return await never

        task = asyncio.create_task(manager.execute(token, fetch))
        manager.attach(token, task)
        await settle()

        manager.start_search()
        outcome = await task

        assert outcome.is_cancelled
        assert never.cancelled()

    @pytest.mark.asyncio
    async def test_already_stale_token_skips_fetch(self) -> None:
        """Should not call the fetch at all for a stale token."""
        manager = RequestLifecycleManager()
        token = manager.start_search()
        manager.start_search()
        called = []

        async def fetch():
            called.append(True)
            return []

        outcome = await manager.execute(token, fetch)

        assert outcome.is_cancelled
        assert called == []


class TestStalenessSafety:
    """Only the newest search may reach the store, in any resolution order."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("resolve_order", [(0, 1, 2), (2, 1, 0), (1, 2, 0), (2, 0, 1)])
    async def test_only_latest_result_is_applied(self, resolve_order) -> None:
        """Should apply only the last issued search's result to the store."""
        manager = RequestLifecycleManager()
        store = RecordStore()
        loop = asyncio.get_running_loop()
        futures = [loop.create_future() for _ in range(3)]

        async def run(index, token):
            outcome = await manager.execute(token, lambda: futures[index])
            if outcome.is_ok:
                store.replace(outcome.data)

        tasks = []
        for index in range(3):
            token = manager.start_search(f"search-{index}")
            tasks.append(asyncio.create_task(run(index, token)))
            await settle()

        for index in resolve_order:
            futures[index].set_result([make_record(f"F{index}", 100 + index)])
            await settle()

        await asyncio.gather(*tasks)

        assert [r.flight_id for r in store.records] == ["F2"]
