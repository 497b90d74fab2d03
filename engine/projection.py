"""Live value projection for running timers.

A running timer is stored as the value it had when it started plus the
wall-clock start timestamp. Its current value is derived on read, so the
result is exact no matter how long the process was suspended or closed.
"""

import time
from typing import Optional

from common.timer_models import CountdownTimer, CountupTimer, TimerRuntime, TimerState


def wall_clock_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def elapsed_whole_seconds(started_at: int, now: int) -> int:
    """Whole seconds between two millisecond timestamps, never negative."""
    return max(0, (now - started_at) // 1000)


def project_timer(
    timer: TimerState, runtime: Optional[TimerRuntime], now: int
) -> TimerState:
    """Compute the current value of a timer.

    Args:
        timer: Stored timer
        runtime: Runtime record of the timer, if it is running
        now: Current wall-clock time in milliseconds

    Returns:
        The timer with remaining/elapsed seconds brought up to ``now``. The
        stored timer is returned unchanged when there is no active runtime.
    """
    if runtime is None or not runtime.is_active:
        return timer

    elapsed = elapsed_whole_seconds(runtime.started_at, now)

    if isinstance(timer, CountdownTimer):
        base = runtime.base_remaining_seconds
        if base is None:
            base = timer.remaining_seconds
        return timer.model_copy(update={"remaining_seconds": max(0, base - elapsed)})

    if isinstance(timer, CountupTimer):
        base = runtime.base_elapsed_seconds
        if base is None:
            base = timer.elapsed_seconds
        return timer.model_copy(update={"elapsed_seconds": base + elapsed})

    return timer
