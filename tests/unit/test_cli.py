"""Unit tests for the multi-timer CLI.

Each test points the CLI at a JSON store in a temporary directory, so state
carries over between invocations the same way it does for a user.
"""

from unittest.mock import patch

import pytest
import yaml

import cli
from common.timer_models import CountdownTimer, CountupTimer, TimerRuntime
from storage.json_store import JsonFileTimerStore


@pytest.fixture(autouse=True)
def skip_logging_setup():
    with patch("cli.configure_logging"):
        yield


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
def config_path(tmp_path, state_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "storage": {"backend": "json", "path": str(state_path)},
                "engine": {"tick_interval": 0.05},
                "default_alert": {"repeat_count": 1},
            }
        )
    )
    return str(path)


@pytest.fixture
def run(config_path, capsys):
    def _run(*argv):
        code = cli.main(["--config", config_path, *argv])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


class TestDescribeTimer:
    def test_countdown(self):
        timer = CountdownTimer(id=1, label="bake", total_seconds=300, remaining_seconds=90)

        line = cli.describe_timer(timer)

        assert "bake" in line
        assert "1m30s / 5m" in line
        assert line.endswith("paused")

    def test_finished_countdown_alerting(self):
        timer = CountdownTimer(
            id=1, label="bake", total_seconds=5, remaining_seconds=0, is_finished=True
        )

        assert cli.describe_timer(timer).endswith("finished (alerting)")

    def test_running_countup(self):
        timer = CountupTimer(id=2, label="run", elapsed_seconds=3725, is_running=True)

        line = cli.describe_timer(timer)

        assert "1h2m5s" in line
        assert line.endswith("running")


class TestCommands:
    def test_create_and_list(self, run):
        code, out, _ = run("create-countdown", "bake", "5m")
        assert code == 0
        assert "5m / 5m" in out

        code, out, _ = run("create-countup", "run")
        assert code == 0

        code, out, _ = run("list")
        lines = out.strip().splitlines()
        assert code == 0
        assert "bake" in lines[0]
        assert "run" in lines[1]

    def test_list_empty(self, run):
        code, out, _ = run("list")

        assert code == 0
        assert "No timers" in out

    def test_start_persists_runtime(self, run, state_path):
        run("create-countdown", "bake", "90")

        code, out, _ = run("start", "1")

        assert code == 0
        assert "running" in out
        runtime = JsonFileTimerStore(str(state_path)).get_runtime(1)
        assert runtime.is_active
        assert runtime.base_remaining_seconds == 90

    def test_pause(self, run, state_path):
        run("create-countup", "run")
        run("start", "1")

        code, out, _ = run("pause", "1")

        assert code == 0
        assert "paused" in out
        assert JsonFileTimerStore(str(state_path)).get_runtime(1) is None

    def test_reset_picks_timer_variant(self, run):
        run("create-countdown", "bake", "1:00")
        run("create-countup", "run")
        run("start", "1")
        run("start", "2")

        assert run("reset", "1")[0] == 0
        code, out, _ = run("reset", "2")

        assert code == 0
        assert "0s" in out

    def test_alert_options(self, run, state_path):
        code, _, _ = run(
            "create-countdown", "tea", "3m",
            "--repeat", "3", "--wait", "2", "--template", "Your {timer name} is ready",
        )

        timer = JsonFileTimerStore(str(state_path)).load_all()[0]
        assert code == 0
        assert timer.alert_config.repeat_count == 3
        assert timer.alert_config.wait_between_repeat == 2
        assert timer.alert_config.utterance_template == "Your {timer name} is ready"

    def test_no_alert_option(self, run, state_path):
        run("create-countdown", "tea", "3m", "--no-alert")

        timer = JsonFileTimerStore(str(state_path)).load_all()[0]
        assert timer.alert_config.enabled is False

    def test_delete(self, run):
        run("create-countup", "run")

        code, out, _ = run("delete", "1")

        assert code == 0
        assert "Deleted timer 1" in out
        assert "No timers" in run("list")[1]

    def test_ids_continue_across_invocations(self, run):
        run("create-countup", "a")
        run("create-countup", "b")
        run("delete", "2")

        _, out, _ = run("create-countup", "c")

        assert out.split()[0] == "3"


class TestCommandErrors:
    def test_invalid_duration(self, run):
        code, _, err = run("create-countdown", "bake", "soon")

        assert code == 1
        assert "Invalid duration format" in err

    def test_invalid_repeat(self, run):
        code, _, _ = run("create-countdown", "bake", "5m", "--repeat", "often")

        assert code == 1

    def test_unknown_timer(self, run):
        code, _, err = run("start", "99")

        assert code == 1
        assert "Timer with id 99 not found" in err

    def test_reset_unknown_timer(self, run):
        code, _, err = run("reset", "99")

        assert code == 1
        assert "Timer with id 99 not found" in err

    def test_engine_closed_after_error(self, run):
        with patch.object(cli.TimerEngine, "close") as close:
            code, _, _ = run("start", "99")

        assert code == 1
        close.assert_called_once()

    def test_ack_unfinished(self, run):
        run("create-countdown", "bake", "5m")

        code, _, err = run("ack", "1")

        assert code == 1
        assert "Finished countdown timer with id 1 not found" in err

    def test_invalid_config(self, tmp_path, capsys):
        path = tmp_path / "broken.yaml"
        path.write_text("storage:\n  backend: floppy\n")

        code = cli.main(["--config", str(path), "list"])

        assert code == 1
        assert "Configuration validation error" in capsys.readouterr().err


class TestWatch:
    def test_watch_finishes_and_alerts(self, run, state_path):
        run("create-countdown", "bake", "1")
        run("start", "1")

        code, out, _ = run("watch", "--for", "1.5")

        timer = JsonFileTimerStore(str(state_path)).load_all()[0]
        assert code == 0
        assert "🔔 bake has completed" in out
        assert timer.is_finished is True
        assert timer.remaining_seconds == 0

    def test_watch_without_timers(self, run):
        code, _, _ = run("watch", "--for", "0.05")

        assert code == 0

    def test_countdown_expired_between_commands_alerts_once(self, run, state_path):
        """Test one-shot commands leave an expired countdown for watch to complete."""
        run("create-countdown", "bake", "5")
        run("start", "1")
        store = JsonFileTimerStore(str(state_path))
        started_at = store.get_runtime(1).started_at
        store.save_runtime(
            TimerRuntime(timer_id=1, started_at=started_at - 60000, base_remaining_seconds=5)
        )

        code, _, _ = run("list")

        assert code == 0
        assert store.load_all()[0].is_finished is False
        assert store.get_runtime(1) is not None

        code, out, _ = run("watch", "--for", "0.3")

        timer = store.load_all()[0]
        assert code == 0
        assert out.count("🔔 bake has completed") == 1
        assert timer.is_finished is True
        assert store.get_runtime(1) is None
