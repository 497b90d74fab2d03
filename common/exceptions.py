"""Exception types raised by the timer engine.

Only caller mistakes surface as exceptions. Storage, observer and alert
failures are logged where they happen and never reach the caller.
"""

from typing import Optional


class TimerError(Exception):
    """Base class for all timer engine errors."""


class TimerNotFoundError(TimerError, LookupError):
    """Raised when an operation references a timer that does not exist.

    Also raised when the timer exists but is not in the shape the operation
    expects, e.g. acknowledging a countdown timer that has not finished.
    """

    def __init__(self, timer_id: int, expected: Optional[str] = None):
        self.timer_id = timer_id
        self.expected = expected
        if expected:
            message = f"{expected[:1].upper()}{expected[1:]} timer with id {timer_id} not found"
        else:
            message = f"Timer with id {timer_id} not found"
        super().__init__(message)


class WrongTimerTypeError(TimerNotFoundError):
    """Raised when a timer exists but is of the other variant."""

    def __init__(self, timer_id: int, expected: str, actual: str):
        self.actual = actual
        super().__init__(timer_id, expected)


class InvalidTimerArgumentError(TimerError, ValueError):
    """Raised for invalid creation arguments such as a non-positive duration."""
