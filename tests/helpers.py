"""Test doubles and helpers shared by the test modules."""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from flightwatch.interfaces import AnomalySource
from flightwatch.models import AnomalyRecord


@dataclass
class PendingCall:
    """A gated source call waiting for the test to resolve it."""

    name: str
    args: Tuple[Any, ...]
    future: asyncio.Future

    def resolve(self, value: Any) -> None:
        """Complete the call with a result, unless it was cancelled."""
        if not self.future.done():
            self.future.set_result(value)

    def fail(self, error: BaseException) -> None:
        """Complete the call with an error, unless it was cancelled."""
        if not self.future.done():
            self.future.set_exception(error)


class FakeAnomalySource(AnomalySource):
    """
    In-memory anomaly source.

    Ungated methods answer immediately from ``results`` (a list, an
    exception to raise, or a callable receiving the call arguments). Gated
    methods park a future in ``pending`` that the test resolves, so results
    can be made to arrive in any order.
    """

    def __init__(self) -> None:
        self.results: Dict[str, Any] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.pending: List[PendingCall] = []
        self.gated: Set[str] = set()
        self.closed = False

    def gate(self, *names: str) -> None:
        self.gated.update(names)

    def pending_for(self, name: str) -> List[PendingCall]:
        return [call for call in self.pending if call.name == name]

    def calls_to(self, name: str) -> List[Tuple[Any, ...]]:
        return [args for called, args in self.calls if called == name]

    async def _call(self, name: str, *args: Any) -> Any:
        self.calls.append((name, args))

        if name in self.gated:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(PendingCall(name, args, future))
            return await future

        result = self.results.get(name, [])
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            return result(*args)
        return list(result)

    async def get_live_anomalies(self, start_ts, end_ts):
        return await self._call("live", start_ts, end_ts)

    async def get_research_anomalies(self, start_ts, end_ts):
        return await self._call("research", start_ts, end_ts)

    async def get_rules(self):
        return await self._call("rules")

    async def get_flights_by_rule(self, rule_id):
        return await self._call("rule_flights", rule_id)

    async def get_tagged_feedback_history(self, start_ts=0, end_ts=None, limit=100, include_normal=True):
        return await self._call("feedback_tagged", limit, include_normal)

    async def get_feedback_history(self, start_ts=0, end_ts=None, limit=100):
        return await self._call("feedback_legacy", limit)

    async def close(self):
        self.closed = True


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_record(
    flight_id: str,
    timestamp: int,
    callsign: Optional[str] = None,
    score: Optional[float] = None,
    triggers: Optional[List[str]] = None,
    **fields: Any,
) -> AnomalyRecord:
    """Build a record with an optional report summary."""
    full_report = None
    if score is not None or triggers is not None:
        full_report = {
            "summary": {
                "confidence_score": score if score is not None else 0,
                "triggers": triggers or [],
                "is_anomaly": True,
            }
        }
    return AnomalyRecord(
        flight_id=flight_id,
        timestamp=timestamp,
        callsign=callsign,
        full_report=full_report,
        **fields,
    )


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


