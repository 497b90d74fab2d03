"""Timer domain models.

Timers are immutable pydantic values. Every state change in the engine builds a
new instance with ``model_copy(update=...)`` so no caller ever holds a reference
to engine-owned state.
"""

import logging
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

logger = logging.getLogger(__name__)

COUNTDOWN = "countdown"
COUNTUP = "countup"

TIMER_NAME_PLACEHOLDER = "{timer name}"


class AlertConfig(BaseModel):
    """How a finished countdown timer announces itself."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    repeat_count: Union[Literal["infinite"], Annotated[int, Field(gt=0)]] = "infinite"
    wait_between_repeat: float = Field(default=10, ge=0)
    utterance_template: str = f"{TIMER_NAME_PLACEHOLDER} has completed"


DEFAULT_ALERT_CONFIG = AlertConfig()


class CountdownTimer(BaseModel):
    """Counts down from ``total_seconds`` to zero, then finishes."""

    model_config = ConfigDict(frozen=True)

    id: int
    label: str
    type: Literal["countdown"] = COUNTDOWN
    total_seconds: int = Field(gt=0)
    remaining_seconds: int = Field(ge=0)
    is_running: bool = False
    is_finished: bool = False
    is_acknowledged: bool = False
    alert_config: AlertConfig = Field(default_factory=lambda: DEFAULT_ALERT_CONFIG)

    @model_validator(mode="after")
    def _check_remaining(self) -> "CountdownTimer":
        if self.remaining_seconds > self.total_seconds:
            raise ValueError("remaining_seconds cannot exceed total_seconds")
        if self.is_finished and self.remaining_seconds != 0:
            raise ValueError("a finished countdown timer must have no time remaining")
        return self


class CountupTimer(BaseModel):
    """Counts up from zero indefinitely. Never finishes."""

    model_config = ConfigDict(frozen=True)

    id: int
    label: str
    type: Literal["countup"] = COUNTUP
    elapsed_seconds: int = Field(default=0, ge=0)
    is_running: bool = False
    is_finished: bool = False


TimerState = Annotated[Union[CountdownTimer, CountupTimer], Field(discriminator="type")]

_timer_adapter: TypeAdapter = TypeAdapter(TimerState)


class TimerRuntime(BaseModel):
    """Start timestamp and base value of a running timer.

    ``started_at`` is wall-clock milliseconds. A value of 0 means the timer is
    paused and its stored value is authoritative.
    """

    model_config = ConfigDict(frozen=True)

    timer_id: int
    started_at: int = 0
    base_remaining_seconds: Optional[int] = None
    base_elapsed_seconds: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.started_at > 0


def timer_to_dict(timer: TimerState) -> dict[str, Any]:
    """Serialize a timer into a JSON-compatible dictionary."""
    return timer.model_dump(mode="json")


def timer_from_dict(data: dict[str, Any]) -> TimerState:
    """Build a timer from a stored dictionary.

    Countdown records written before alert configuration existed get the
    default configuration and an unacknowledged state.

    Raises:
        ValidationError: If the record does not describe a valid timer
    """
    if data.get("type") == COUNTDOWN and not data.get("alert_config"):
        data = {**data, "alert_config": DEFAULT_ALERT_CONFIG.model_dump()}
        data.setdefault("is_acknowledged", False)
    return _timer_adapter.validate_python(data)


def timers_from_dicts(records: list[dict[str, Any]]) -> list[TimerState]:
    """Build timers from stored records, skipping the ones that do not validate."""
    timers = []
    for record in records:
        if not isinstance(record, dict):
            logger.error(f"Skipping malformed stored timer {record!r}")
            continue
        try:
            timers.append(timer_from_dict(record))
        except (ValidationError, TypeError) as e:
            logger.error(f"Skipping invalid stored timer {record!r}: {e}")
    return timers
