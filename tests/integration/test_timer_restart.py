"""Integration tests for timers surviving engine restarts.

An engine is discarded and a new one built over the same store, the way a
process restart would. Runs against both the in-memory and JSON file stores.
"""

import pytest

from common.timer_models import TimerRuntime
from engine.tick_scheduler import ManualTickScheduler
from engine.timer_engine import TimerEngine
from storage.base import InMemoryTimerStore
from storage.json_store import JsonFileTimerStore


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryTimerStore()
    return JsonFileTimerStore(str(tmp_path / "state.json"))


@pytest.fixture
def restart(store, alerts, clock):
    """Build a fresh engine with its own scheduler over the shared store."""

    def _restart():
        scheduler = ManualTickScheduler()
        return TimerEngine(store, alerts, scheduler=scheduler, clock=clock), scheduler

    return _restart


class TestTimerRestart:
    @pytest.mark.parametrize("downtime", [0, 1, 4, 9])
    def test_running_countdown_resumes(self, restart, clock, downtime):
        """Test the value after restart matches an engine that never stopped."""
        engine, _ = restart()
        timer = engine.create_countdown_timer("bake", 10)
        engine.start_timer(timer.id)
        engine.close()

        clock.advance(downtime)
        resumed, scheduler = restart()

        current = resumed.get_timer(timer.id)
        assert current.remaining_seconds == 10 - downtime
        assert current.remaining_seconds == engine.get_timer(timer.id).remaining_seconds
        assert current.is_running is True
        assert scheduler.is_scheduled(timer.id)

    def test_running_countup_resumes(self, restart, clock):
        engine, _ = restart()
        timer = engine.create_countup_timer("run")
        engine.start_timer(timer.id)
        clock.advance(5)
        engine.pause_timer(timer.id)
        engine.start_timer(timer.id)
        engine.close()

        clock.advance(20)
        resumed, _ = restart()

        assert resumed.get_timer(timer.id).elapsed_seconds == 25

    def test_paused_timer_stays_paused(self, restart, clock, store):
        engine, _ = restart()
        timer = engine.create_countdown_timer("bake", 10)
        engine.start_timer(timer.id)
        clock.advance(3)
        engine.pause_timer(timer.id)
        engine.close()

        clock.advance(60)
        resumed, scheduler = restart()

        current = resumed.get_timer(timer.id)
        assert current.remaining_seconds == 7
        assert current.is_running is False
        assert not scheduler.is_scheduled(timer.id)
        assert store.get_runtime(timer.id) is None

    def test_countdown_expired_while_down_fires_once(self, restart, clock, alerts, store):
        """Test a countdown that ran out while no engine ran finishes on load."""
        engine, _ = restart()
        timer = engine.create_countdown_timer("bake", 5)
        engine.start_timer(timer.id)
        engine.close()

        clock.advance(30)
        resumed, scheduler = restart()

        current = resumed.get_timer(timer.id)
        assert current.is_finished is True
        assert current.remaining_seconds == 0
        assert current.is_running is False
        assert store.get_runtime(timer.id) is None
        assert not scheduler.is_scheduled(timer.id)
        alerts.play_alert.assert_called_once_with("bake", timer.alert_config)

        resumed.tick(timer.id)
        resumed.close()
        restart()

        alerts.play_alert.assert_called_once()

    def test_acknowledged_state_survives(self, restart, clock):
        engine, scheduler = restart()
        timer = engine.create_countdown_timer("bake", 2)
        engine.start_timer(timer.id)
        clock.advance(2)
        scheduler.tick(timer.id)
        engine.acknowledge_timer(timer.id)
        engine.close()

        resumed, _ = restart()

        current = resumed.get_timer(timer.id)
        assert current.is_finished is True
        assert current.is_acknowledged is True
        assert resumed.start_timer(timer.id).remaining_seconds == 2

    def test_ids_not_reused_after_restart(self, restart):
        engine, _ = restart()
        engine.create_countup_timer("a")
        second = engine.create_countup_timer("b")
        engine.delete_timer(second.id)
        engine.close()

        resumed, _ = restart()

        assert resumed.create_countup_timer("c").id == 3

    def test_ids_continue_after_highest_stored(self, store, restart):
        """Test stores without an id counter continue after the highest id."""
        engine, _ = restart()
        for label in ["a", "b", "c"]:
            engine.create_countup_timer(label)
        engine.close()
        store.save_next_id(1)

        resumed, _ = restart()

        assert resumed.create_countup_timer("d").id == 4

    def test_stale_runtime_of_finished_timer_is_removed(self, restart, store, clock):
        engine, _ = restart()
        timer = engine.create_countdown_timer("bake", 10)
        engine.close()
        store.save_runtime(
            TimerRuntime(timer_id=timer.id, started_at=clock.now, base_remaining_seconds=10)
        )
        store.save_all(
            [
                t.model_copy(update={"is_finished": True, "remaining_seconds": 0})
                for t in store.load_all()
            ]
        )

        resumed, scheduler = restart()

        assert store.get_runtime(timer.id) is None
        assert resumed.get_timer(timer.id).is_running is False
        assert not scheduler.is_scheduled(timer.id)

    def test_paused_runtime_record_is_removed(self, restart, store):
        """Test a runtime record with no start time does not resume the timer."""
        engine, _ = restart()
        timer = engine.create_countup_timer("run")
        engine.close()
        store.save_runtime(TimerRuntime(timer_id=timer.id, started_at=0))

        resumed, _ = restart()

        assert resumed.get_timer(timer.id).is_running is False
        assert store.get_runtime(timer.id) is None
