"""Timer engine: projection, tick scheduling, alert dispatching and lifecycle."""

from engine.alerts import (
    AlertDispatcher,
    NullAlertDispatcher,
    RepeatingAlertDispatcher,
    build_utterance,
)
from engine.projection import project_timer, wall_clock_ms
from engine.tick_scheduler import AsyncioTickScheduler, ManualTickScheduler, TickScheduler
from engine.timer_engine import TimerEngine

__all__ = [
    "AlertDispatcher",
    "AsyncioTickScheduler",
    "ManualTickScheduler",
    "NullAlertDispatcher",
    "RepeatingAlertDispatcher",
    "TickScheduler",
    "TimerEngine",
    "build_utterance",
    "project_timer",
    "wall_clock_ms",
]
