"""Global pytest configuration and fixtures for the test suite."""

from unittest.mock import MagicMock

import pytest

from common.timer_events import TimerObserver
from engine.alerts import AlertDispatcher
from engine.tick_scheduler import ManualTickScheduler
from engine.timer_engine import TimerEngine
from storage.base import InMemoryTimerStore

START_MS = 1_700_000_000_000


class FakeClock:
    """Wall clock in milliseconds that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float):
        self.now += int(seconds * 1000)


@pytest.fixture
def clock():
    """Deterministic wall clock."""
    return FakeClock()


@pytest.fixture
def store():
    """Fresh in-memory timer store."""
    return InMemoryTimerStore()


@pytest.fixture
def alerts():
    """Mock alert dispatcher recording play/cancel commands."""
    return MagicMock(spec=AlertDispatcher)


@pytest.fixture
def scheduler():
    """Scheduler whose ticks are driven by the test."""
    return ManualTickScheduler()


@pytest.fixture
def observer():
    """Mock observer recording lifecycle notifications."""
    return MagicMock(spec=TimerObserver)


@pytest.fixture
def make_engine(store, alerts, scheduler, clock):
    """Factory building engines over the shared store, as after a restart."""

    def _make_engine(**overrides):
        options = {
            "store": store,
            "alert_dispatcher": alerts,
            "scheduler": scheduler,
            "clock": clock,
        }
        options.update(overrides)
        return TimerEngine(**options)

    return _make_engine


@pytest.fixture
def engine(make_engine, observer):
    """Engine with the mock observer subscribed."""
    timer_engine = make_engine()
    timer_engine.subscribe(observer)
    return timer_engine
