#!/usr/bin/env python3
"""Multi-timer CLI.

Command-line interface for managing countdown and count-up timers. State is
kept in the configured store, so timers keep running between invocations and
``watch`` picks them up where they are.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from common.exceptions import TimerError, TimerNotFoundError
from common.time_format import format_duration, parse_duration
from common.timer_events import TimerObserver
from common.timer_models import AlertConfig, CountdownTimer, TimerState
from config.config_manager import ConfigManager, ConfigValidationError
from config.logging_config import configure_logging
from config.multitimer_config import MultiTimerConfig
from engine.alerts import NullAlertDispatcher, RepeatingAlertDispatcher
from engine.tick_scheduler import AsyncioTickScheduler, ManualTickScheduler
from engine.timer_engine import TimerEngine
from storage import create_timer_store

logger = logging.getLogger("cli")


def describe_timer(timer: TimerState) -> str:
    """One-line summary of a timer for terminal output."""
    if isinstance(timer, CountdownTimer):
        value = f"{format_duration(timer.remaining_seconds)} / {format_duration(timer.total_seconds)}"
        if timer.is_finished:
            status = "finished" if timer.is_acknowledged else "finished (alerting)"
        else:
            status = "running" if timer.is_running else "paused"
    else:
        value = format_duration(timer.elapsed_seconds)
        status = "running" if timer.is_running else "paused"
    return f"{timer.id:>4}  {timer.type:<9}  {timer.label:<24}  {value:<16}  {status}"


class ConsoleTimerObserver(TimerObserver):
    """Prints every timer event to stdout."""

    def on_timer_created(self, timer: TimerState) -> None:
        print(f"+ {describe_timer(timer)}")

    def on_timer_updated(self, timer: TimerState) -> None:
        print(f"  {describe_timer(timer)}")

    def on_timer_deleted(self, timer_id: int) -> None:
        print(f"- timer {timer_id} deleted")


def build_engine(
    config: MultiTimerConfig, scheduler=None, alerts=None, resume: bool = True
) -> TimerEngine:
    """Create an engine over the configured store.

    One-shot commands pass ``resume=False``: nothing ticks and a countdown
    that ran out is not completed, so its alert plays in the next ``watch``.
    """
    return TimerEngine(
        store=create_timer_store(config.storage),
        alert_dispatcher=alerts or NullAlertDispatcher(),
        scheduler=scheduler or ManualTickScheduler(),
        default_alert_config=config.default_alert,
        resume=resume,
    )


def _alert_config_from_args(args, default: AlertConfig) -> AlertConfig:
    updates = {}
    if args.no_alert:
        updates["enabled"] = False
    if args.repeat is not None:
        updates["repeat_count"] = (
            "infinite" if args.repeat == "infinite" else int(args.repeat)
        )
    if args.wait is not None:
        updates["wait_between_repeat"] = args.wait
    if args.template is not None:
        updates["utterance_template"] = args.template
    return AlertConfig(**{**default.model_dump(), **updates})


def run_command(args, config: MultiTimerConfig) -> int:
    """Execute a one-shot command against the stored timers."""
    engine = build_engine(config, resume=False)
    try:
        _dispatch_command(engine, args, config)
    finally:
        engine.close()
    return 0


def _dispatch_command(engine: TimerEngine, args, config: MultiTimerConfig):
    if args.command == "create-countdown":
        timer = engine.create_countdown_timer(
            args.label,
            parse_duration(args.duration),
            _alert_config_from_args(args, config.default_alert),
        )
        print(describe_timer(timer))
    elif args.command == "create-countup":
        print(describe_timer(engine.create_countup_timer(args.label)))
    elif args.command == "start":
        print(describe_timer(engine.start_timer(args.timer_id)))
    elif args.command == "pause":
        print(describe_timer(engine.pause_timer(args.timer_id)))
    elif args.command == "reset":
        timer = engine.get_timer(args.timer_id)
        if timer is None:
            raise TimerNotFoundError(args.timer_id)
        if isinstance(timer, CountdownTimer):
            timer = engine.reset_countdown_timer(args.timer_id)
        else:
            timer = engine.reset_countup_timer(args.timer_id)
        print(describe_timer(timer))
    elif args.command == "ack":
        print(describe_timer(engine.acknowledge_timer(args.timer_id)))
    elif args.command == "delete":
        engine.delete_timer(args.timer_id)
        print(f"Deleted timer {args.timer_id}")
    elif args.command == "list":
        timers = engine.get_all_timers()
        if not timers:
            print("No timers")
        for timer in timers:
            print(describe_timer(timer))


async def watch_timers(config: MultiTimerConfig, duration: Optional[float] = None):
    """Run the engine on the event loop, printing ticks and alerts.

    Args:
        config: Loaded configuration
        duration: Seconds to watch for; until cancelled when None
    """
    loop = asyncio.get_running_loop()
    engine = build_engine(
        config,
        scheduler=AsyncioTickScheduler(config.engine.tick_interval, loop),
        alerts=RepeatingAlertDispatcher(
            announce=lambda message: print(f"🔔 {message}"), loop=loop
        ),
    )
    engine.subscribe(ConsoleTimerObserver())

    for timer in engine.get_all_timers():
        print(describe_timer(timer))

    try:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        engine.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Multi-timer CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  multitimer create-countdown bake 25m     # Create a 25 minute countdown
  multitimer start 1                       # Start timer 1
  multitimer list                          # Show every timer
  multitimer watch                         # Tick running timers and alert
        """,
    )
    parser.add_argument(
        "--config",
        "-c",
        default="config.yaml",
        help="Configuration file path (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    countdown = commands.add_parser("create-countdown", help="Create a countdown timer")
    countdown.add_argument("label")
    countdown.add_argument("duration", help="e.g. 90, 5m, 1h30m or 1:30:00")
    countdown.add_argument("--no-alert", action="store_true", help="Disable the alert")
    countdown.add_argument("--repeat", help="Alert repetitions, a number or 'infinite'")
    countdown.add_argument("--wait", type=float, help="Seconds between alert repeats")
    countdown.add_argument("--template", help="Alert text, '{timer name}' is replaced")

    countup = commands.add_parser("create-countup", help="Create a count-up timer")
    countup.add_argument("label")

    for name, help_text in [
        ("start", "Start or resume a timer"),
        ("pause", "Pause a timer"),
        ("reset", "Reset a timer to its initial value"),
        ("ack", "Acknowledge a finished countdown timer"),
        ("delete", "Delete a timer"),
    ]:
        command = commands.add_parser(name, help=help_text)
        command.add_argument("timer_id", type=int)

    commands.add_parser("list", help="List every timer")

    watch = commands.add_parser("watch", help="Tick running timers until interrupted")
    watch.add_argument(
        "--for", dest="duration", type=float, help="Stop after this many seconds"
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = ConfigManager(args.config).load_config()
    except ConfigValidationError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    if args.verbose:
        config.logging.log_level = "DEBUG"
    configure_logging(config.logging)
    logger.debug(f"Running command '{args.command}'")

    try:
        if args.command == "watch":
            asyncio.run(watch_timers(config, args.duration))
            return 0
        return run_command(args, config)
    except (TimerError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
