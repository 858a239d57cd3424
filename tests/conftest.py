"""Pytest configuration and shared fixtures."""

from typing import List

import pytest

from flightwatch.alerting import AlertThrottle, SilentSound
from flightwatch.models import RuleSummary

from tests.helpers import FakeAnomalySource, FakeClock


@pytest.fixture
def source() -> FakeAnomalySource:
    """Create a fake anomaly source.

    Returns:
        Fresh FakeAnomalySource.
    """
    return FakeAnomalySource()


@pytest.fixture
def clock() -> FakeClock:
    """Create a wall clock set to 2025-07-21T12:00:00Z.

    Returns:
        FakeClock in epoch seconds.
    """
    return FakeClock(1753099200.0)


@pytest.fixture
def sound() -> SilentSound:
    """Create a counting silent alert sink."""
    return SilentSound()


@pytest.fixture
def throttle_clock() -> FakeClock:
    """Create a monotonic clock for the alert throttle."""
    return FakeClock(1000.0)


@pytest.fixture
def throttle(sound: SilentSound, throttle_clock: FakeClock) -> AlertThrottle:
    """Create an alert throttle with a 10 s cooldown."""
    return AlertThrottle(sound, cooldown_seconds=10, clock=throttle_clock)


@pytest.fixture
def rules() -> List[RuleSummary]:
    """Create a small rule catalog."""
    return [
        RuleSummary(id=4, name="Emergency squawk"),
        RuleSummary(id=7, name="Proximity", description="Two aircraft too close"),
    ]
