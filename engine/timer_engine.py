"""Timer engine.

Owns the canonical timer collection and every lifecycle transition: create,
start, pause, reset, acknowledge and delete. Running timers are stored as a
base value plus a start timestamp and projected on read, so their values stay
exact across ticks that were missed, suspended processes and restarts.

Every mutation follows the same order: bring the timer up to date, apply the
change, persist the whole collection, then notify observers. Observers thus
always see state that has already been written to the store.
"""

import logging
from typing import Callable, Optional

from common.exceptions import (
    InvalidTimerArgumentError,
    TimerNotFoundError,
    WrongTimerTypeError,
)
from common.timer_events import TimerEventBus, TimerEventType, TimerObserver
from common.timer_models import (
    COUNTDOWN,
    COUNTUP,
    DEFAULT_ALERT_CONFIG,
    AlertConfig,
    CountdownTimer,
    CountupTimer,
    TimerRuntime,
    TimerState,
)
from engine.alerts import AlertDispatcher
from engine.projection import project_timer, wall_clock_ms
from engine.tick_scheduler import AsyncioTickScheduler, TickScheduler
from storage.base import TimerStore

logger = logging.getLogger(__name__)


class TimerEngine:
    """Central timer management with timestamp-based time tracking.

    Finished countdown timers fire their alert exactly once per run. The
    ``_fired`` set records timers whose finish was already handled; it is only
    cleared when the timer goes back to its initial value through a reset or
    an acknowledged restart.
    """

    def __init__(
        self,
        store: TimerStore,
        alert_dispatcher: AlertDispatcher,
        scheduler: Optional[TickScheduler] = None,
        clock: Callable[[], int] = wall_clock_ms,
        default_alert_config: AlertConfig = DEFAULT_ALERT_CONFIG,
        event_bus: Optional[TimerEventBus] = None,
        resume: bool = True,
    ):
        """Initialize the engine and resume the timers found in the store.

        Args:
            store: Persistent store for timers and runtime records
            alert_dispatcher: Receives play/cancel alert commands
            scheduler: Tick scheduler for running timers
            clock: Returns the current wall-clock time in milliseconds
            default_alert_config: Alert config for countdown timers created
                without one
            event_bus: Bus observers subscribe to
            resume: Tick running timers and complete the countdowns that ran
                out while no engine was running. When False, running timers
                are loaded as they are and completion, with its alert, is left
                to the next engine that resumes
        """
        self.store = store
        self.alerts = alert_dispatcher
        self.scheduler = scheduler or AsyncioTickScheduler()
        self.clock = clock
        self.default_alert_config = default_alert_config
        self.events = event_bus or TimerEventBus()
        self.resume = resume

        self._timers: dict[int, TimerState] = {}
        self._runtimes: dict[int, TimerRuntime] = {}
        self._fired: set[int] = set()
        self._next_id = 1

        self._load_timers()
        if resume:
            self._resume_running_timers()

    # Observers

    def subscribe(self, observer: TimerObserver):
        self.events.subscribe(observer)

    def unsubscribe(self, observer: TimerObserver):
        self.events.unsubscribe(observer)

    # Queries

    def get_timer(self, timer_id: int) -> Optional[TimerState]:
        """Return the live state of a timer, or None if it does not exist."""
        timer = self._timers.get(timer_id)
        if timer is None:
            return None
        return self._project(timer)

    def get_all_timers(self) -> list[TimerState]:
        """Return the live state of every timer, in creation order."""
        return [self._project(self._timers[timer_id]) for timer_id in sorted(self._timers)]

    def get_runtime(self, timer_id: int) -> Optional[TimerRuntime]:
        """Return the runtime record of a running timer."""
        return self._runtimes.get(timer_id)

    # Creation

    def create_countdown_timer(
        self,
        label: str,
        total_seconds: int,
        alert_config: Optional[AlertConfig] = None,
    ) -> CountdownTimer:
        """Create a stopped countdown timer.

        Args:
            label: Display name, also used in the alert utterance
            total_seconds: Duration to count down from
            alert_config: Alert settings; the engine default when omitted

        Returns:
            The new timer

        Raises:
            InvalidTimerArgumentError: If total_seconds is not a positive integer
        """
        if (
            isinstance(total_seconds, bool)
            or not isinstance(total_seconds, int)
            or total_seconds <= 0
        ):
            raise InvalidTimerArgumentError(
                f"Total time must be a positive number of seconds, got {total_seconds!r}"
            )

        timer = CountdownTimer(
            id=self._allocate_id(),
            label=label,
            total_seconds=total_seconds,
            remaining_seconds=total_seconds,
            alert_config=alert_config or self.default_alert_config,
        )
        self._timers[timer.id] = timer
        self._persist_timers()

        logger.info(f"Created countdown timer {timer.id} '{label}' for {total_seconds}s")
        self.events.publish(TimerEventType.TIMER_CREATED, timer)
        return timer

    def create_countup_timer(self, label: str) -> CountupTimer:
        """Create a stopped count-up timer at zero.

        Args:
            label: Display name

        Returns:
            The new timer
        """
        timer = CountupTimer(id=self._allocate_id(), label=label)
        self._timers[timer.id] = timer
        self._persist_timers()

        logger.info(f"Created count-up timer {timer.id} '{label}'")
        self.events.publish(TimerEventType.TIMER_CREATED, timer)
        return timer

    # Lifecycle

    def start_timer(self, timer_id: int) -> TimerState:
        """Start or resume a timer.

        A finished countdown timer cannot start until it was acknowledged;
        starting an acknowledged one restarts it from its full duration.

        Args:
            timer_id: Timer identifier

        Returns:
            The timer state after the call

        Raises:
            TimerNotFoundError: If the timer does not exist
        """
        timer = self._require(timer_id)

        if isinstance(timer, CountdownTimer) and timer.is_finished:
            if not timer.is_acknowledged:
                logger.info(
                    f"Timer {timer_id} finished but not acknowledged, not starting"
                )
                return timer
            timer = timer.model_copy(
                update={
                    "remaining_seconds": timer.total_seconds,
                    "is_finished": False,
                    "is_acknowledged": False,
                }
            )
        else:
            timer = self._project(timer)

        now = self.clock()
        if isinstance(timer, CountdownTimer):
            runtime = TimerRuntime(
                timer_id=timer_id,
                started_at=now,
                base_remaining_seconds=timer.remaining_seconds,
            )
        else:
            runtime = TimerRuntime(
                timer_id=timer_id,
                started_at=now,
                base_elapsed_seconds=timer.elapsed_seconds,
            )

        # Schedule before touching any state so a scheduler failure changes nothing
        if self.resume:
            self.scheduler.schedule(timer_id, self.tick)

        self._fired.discard(timer_id)
        timer = timer.model_copy(update={"is_running": True})
        self._timers[timer_id] = timer
        self._set_runtime(runtime)
        self._persist_timers()

        logger.info(f"Started timer {timer_id}")
        self.events.publish(TimerEventType.TIMER_UPDATED, timer)
        return timer

    def pause_timer(self, timer_id: int) -> TimerState:
        """Pause a timer, freezing its current value.

        A countdown timer whose time already ran out completes instead; an
        engine that does not resume leaves it running for the next one that does.

        Args:
            timer_id: Timer identifier

        Returns:
            The timer state after the call

        Raises:
            TimerNotFoundError: If the timer does not exist
        """
        timer = self._require(timer_id)

        projected = self._project(timer)
        if (
            isinstance(projected, CountdownTimer)
            and projected.is_running
            and projected.remaining_seconds <= 0
            and timer_id not in self._fired
        ):
            if not self.resume:
                logger.info(
                    f"Timer {timer_id} already ran out, leaving completion to a resuming engine"
                )
                return projected
            return self._finish_timer(timer_id)

        self.scheduler.cancel(timer_id)

        timer = projected.model_copy(update={"is_running": False})
        self._timers[timer_id] = timer
        self._clear_runtime(timer_id)
        self._persist_timers()

        logger.info(f"Paused timer {timer_id}")
        self.events.publish(TimerEventType.TIMER_UPDATED, timer)
        return timer

    def reset_countdown_timer(self, timer_id: int) -> CountdownTimer:
        """Stop a countdown timer and restore its full duration.

        Raises:
            TimerNotFoundError: If no countdown timer has this id
        """
        timer = self._require(timer_id, COUNTDOWN)
        self.scheduler.cancel(timer_id)
        self._clear_runtime(timer_id)

        if timer.is_finished and not timer.is_acknowledged:
            self._cancel_alert()

        timer = timer.model_copy(
            update={
                "remaining_seconds": timer.total_seconds,
                "is_running": False,
                "is_finished": False,
                "is_acknowledged": False,
            }
        )
        self._timers[timer_id] = timer
        self._fired.discard(timer_id)
        self._persist_timers()

        logger.info(f"Reset countdown timer {timer_id}")
        self.events.publish(TimerEventType.TIMER_UPDATED, timer)
        return timer

    def reset_countup_timer(self, timer_id: int) -> CountupTimer:
        """Stop a count-up timer and set it back to zero.

        Raises:
            TimerNotFoundError: If no count-up timer has this id
        """
        timer = self._require(timer_id, COUNTUP)
        self.scheduler.cancel(timer_id)
        self._clear_runtime(timer_id)

        timer = timer.model_copy(update={"elapsed_seconds": 0, "is_running": False})
        self._timers[timer_id] = timer
        self._persist_timers()

        logger.info(f"Reset count-up timer {timer_id}")
        self.events.publish(TimerEventType.TIMER_UPDATED, timer)
        return timer

    def acknowledge_timer(self, timer_id: int) -> CountdownTimer:
        """Acknowledge a finished countdown timer, silencing its alert.

        Raises:
            TimerNotFoundError: If no finished countdown timer has this id
        """
        return self._acknowledge(timer_id, "Acknowledged")

    def stop_alert(self, timer_id: int) -> CountdownTimer:
        """Stop the alert of a finished countdown timer.

        Same effect as acknowledge_timer.

        Raises:
            TimerNotFoundError: If no finished countdown timer has this id
        """
        return self._acknowledge(timer_id, "Stopped alert of")

    def _acknowledge(self, timer_id: int, action: str) -> CountdownTimer:
        timer = self._require(timer_id, COUNTDOWN)
        if not timer.is_finished:
            raise TimerNotFoundError(timer_id, "finished countdown")

        # Silence first so no observer sees an acknowledged timer still alerting
        self._cancel_alert()

        timer = timer.model_copy(update={"is_acknowledged": True})
        self._timers[timer_id] = timer
        self._persist_timers()

        logger.info(f"{action} timer {timer_id}")
        self.events.publish(TimerEventType.TIMER_UPDATED, timer)
        return timer

    def delete_timer(self, timer_id: int):
        """Delete a timer. Unknown ids are ignored.

        Args:
            timer_id: Timer identifier
        """
        if timer_id not in self._timers:
            logger.debug(f"Timer {timer_id} already absent, nothing to delete")
            return

        self.scheduler.cancel(timer_id)
        self._cancel_alert()

        del self._timers[timer_id]
        self._fired.discard(timer_id)
        self._clear_runtime(timer_id)
        self._persist_timers()

        logger.info(f"Deleted timer {timer_id}")
        self.events.publish(TimerEventType.TIMER_DELETED, timer_id)

    def close(self):
        """Stop every tick schedule and any playing alert.

        Stored state is left as is, so running timers resume in the next engine.
        """
        self.scheduler.cancel_all()
        self._cancel_alert()
        logger.info("Timer engine closed")

    # Ticking and completion

    def tick(self, timer_id: int):
        """Re-derive a running timer, completing it when its time ran out.

        Called by the scheduler once per interval. Unknown or stopped timers
        lose their schedule.
        """
        timer = self._timers.get(timer_id)
        if timer is None or not timer.is_running:
            self.scheduler.cancel(timer_id)
            return

        current = self._project(timer)
        if isinstance(current, CountdownTimer) and current.remaining_seconds <= 0:
            self._finish_timer(timer_id)
            return

        logger.debug(f"Tick for timer {timer_id}: {current}")
        self.events.publish(TimerEventType.TIMER_UPDATED, current)

    def _finish_timer(self, timer_id: int) -> TimerState:
        timer = self._timers[timer_id]
        if timer_id in self._fired:
            return self._project(timer)
        self._fired.add(timer_id)

        self.scheduler.cancel(timer_id)
        self._clear_runtime(timer_id)

        timer = timer.model_copy(
            update={"remaining_seconds": 0, "is_running": False, "is_finished": True}
        )
        self._timers[timer_id] = timer
        self._persist_timers()

        logger.info(f"Timer {timer_id} '{timer.label}' finished")
        if not timer.is_acknowledged:
            self._play_alert(timer)

        self.events.publish(TimerEventType.TIMER_UPDATED, timer)
        return timer

    # Loading

    def _load_timers(self):
        for timer in self.store.load_all():
            runtime = self.store.get_runtime(timer.id)
            finished = isinstance(timer, CountdownTimer) and timer.is_finished

            if runtime is not None and runtime.is_active and not finished:
                self._runtimes[timer.id] = runtime
                timer = timer.model_copy(update={"is_running": True})
            else:
                if runtime is not None:
                    self.store.delete_runtime(timer.id)
                timer = timer.model_copy(update={"is_running": False})

            if finished:
                self._fired.add(timer.id)
            self._timers[timer.id] = timer

        highest = max(self._timers, default=0)
        self._next_id = max(self.store.load_next_id() or 1, highest + 1)
        logger.info(f"Loaded {len(self._timers)} timers, next id {self._next_id}")

    def _resume_running_timers(self):
        running = [
            timer_id for timer_id, timer in self._timers.items() if timer.is_running
        ]
        for timer_id in running:
            self.scheduler.schedule(timer_id, self.tick)

            # A countdown may have run out while no engine was running
            current = self._project(self._timers[timer_id])
            if isinstance(current, CountdownTimer) and current.remaining_seconds <= 0:
                self._finish_timer(timer_id)

        if running:
            logger.info(f"Resumed {len(running)} running timers")
        self._persist_timers()

    # Helpers

    def _require(self, timer_id: int, expected_type: Optional[str] = None) -> TimerState:
        timer = self._timers.get(timer_id)
        if timer is None:
            raise TimerNotFoundError(timer_id, expected_type)
        if expected_type is not None and timer.type != expected_type:
            raise WrongTimerTypeError(timer_id, expected_type, timer.type)
        return timer

    def _project(self, timer: TimerState) -> TimerState:
        return project_timer(timer, self._runtimes.get(timer.id), self.clock())

    def _allocate_id(self) -> int:
        timer_id = self._next_id
        self._next_id += 1
        self.store.save_next_id(self._next_id)
        return timer_id

    def _set_runtime(self, runtime: TimerRuntime):
        self._runtimes[runtime.timer_id] = runtime
        self.store.save_runtime(runtime)

    def _clear_runtime(self, timer_id: int):
        self._runtimes.pop(timer_id, None)
        self.store.delete_runtime(timer_id)

    def _persist_timers(self):
        self.store.save_all(self._timers[timer_id] for timer_id in sorted(self._timers))

    def _play_alert(self, timer: CountdownTimer):
        try:
            self.alerts.play_alert(timer.label, timer.alert_config)
        except Exception as e:
            logger.error(f"Failed to play alert for timer {timer.id}: {e}")

    def _cancel_alert(self):
        try:
            self.alerts.cancel_alert()
        except Exception as e:
            logger.error(f"Failed to cancel alert: {e}")
