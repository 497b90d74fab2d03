"""Persistent store contract for timers and their runtime records.

Stores are best effort: every public method catches and logs failures, so a
broken backend costs durability across restarts but never breaks the engine.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from common.timer_models import (
    TimerRuntime,
    TimerState,
    timer_to_dict,
    timers_from_dicts,
)

logger = logging.getLogger(__name__)

TIMERS_KEY = "timers"
NEXT_ID_KEY = "next_id"
RUNTIME_KEY_PREFIX = "runtime:"


def runtime_key(timer_id: int) -> str:
    return f"{RUNTIME_KEY_PREFIX}{timer_id}"


class TimerStore(ABC):
    """Keyed persistence for the timer collection and per-timer runtimes.

    Backends implement the three raw primitives; values handed to them are
    JSON-compatible structures. The timer collection is always written as a
    single value so each save fully replaces the previous one.
    """

    @abstractmethod
    def _read(self, key: str) -> Optional[Any]:
        """Return the value stored under key, or None if absent."""

    @abstractmethod
    def _write(self, key: str, value: Any) -> None:
        """Replace the value stored under key."""

    @abstractmethod
    def _delete(self, key: str) -> None:
        """Remove key if present."""

    def save_all(self, timers: Iterable[TimerState]):
        """Persist the complete timer collection.

        Args:
            timers: Every timer known to the engine
        """
        try:
            self._write(TIMERS_KEY, [timer_to_dict(timer) for timer in timers])
        except Exception as e:
            logger.error(f"Failed to save timers: {e}")

    def load_all(self) -> list[TimerState]:
        """Load the persisted timer collection.

        Returns:
            Stored timers, or an empty list if nothing valid is stored
        """
        try:
            records = self._read(TIMERS_KEY)
        except Exception as e:
            logger.error(f"Failed to load timers: {e}")
            return []
        if not records:
            return []
        if not isinstance(records, list):
            logger.error(f"Ignoring malformed timer collection: {records!r}")
            return []
        return timers_from_dicts(records)

    def save_runtime(self, runtime: TimerRuntime):
        """Persist the runtime record of one timer.

        Args:
            runtime: Start timestamp and base value of the timer
        """
        try:
            self._write(runtime_key(runtime.timer_id), runtime.model_dump(mode="json"))
        except Exception as e:
            logger.error(f"Failed to save runtime for timer {runtime.timer_id}: {e}")

    def get_runtime(self, timer_id: int) -> Optional[TimerRuntime]:
        """Load the runtime record of a timer.

        Args:
            timer_id: Timer identifier

        Returns:
            The runtime record, or None if absent or unreadable
        """
        try:
            data = self._read(runtime_key(timer_id))
            return TimerRuntime.model_validate(data) if data else None
        except Exception as e:
            logger.error(f"Failed to load runtime for timer {timer_id}: {e}")
            return None

    def delete_runtime(self, timer_id: int):
        """Remove the runtime record of a timer, if any."""
        try:
            self._delete(runtime_key(timer_id))
        except Exception as e:
            logger.error(f"Failed to delete runtime for timer {timer_id}: {e}")

    def save_next_id(self, next_id: int):
        """Persist the next identifier the engine will hand out."""
        try:
            self._write(NEXT_ID_KEY, int(next_id))
        except Exception as e:
            logger.error(f"Failed to save next timer id: {e}")

    def load_next_id(self) -> Optional[int]:
        """Load the persisted id counter, or None if it was never saved."""
        try:
            value = self._read(NEXT_ID_KEY)
            return int(value) if value is not None else None
        except Exception as e:
            logger.error(f"Failed to load next timer id: {e}")
            return None


class InMemoryTimerStore(TimerStore):
    """Process-local store.

    Values are kept as JSON text so stored state never aliases engine objects.
    """

    def __init__(self):
        self._values: dict[str, str] = {}

    def _read(self, key: str) -> Optional[Any]:
        raw = self._values.get(key)
        return json.loads(raw) if raw is not None else None

    def _write(self, key: str, value: Any) -> None:
        self._values[key] = json.dumps(value)

    def _delete(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._values)
