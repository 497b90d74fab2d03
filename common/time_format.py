"""Duration formatting and parsing helpers."""

import re

from common.exceptions import InvalidTimerArgumentError

_UNIT_SECONDS = {"d": 86400, "h": 3600, "m": 60, "s": 1}
_DIGITS_RE = re.compile(r"\d+", re.ASCII)
_UNIT_DURATION_RE = re.compile(r"^(?:\d+[dhms])+$", re.ASCII)
_UNIT_PART_RE = re.compile(r"(\d+)([dhms])", re.ASCII)
_CLOCK_RE = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{1,2})$", re.ASCII)


def format_duration(seconds: int) -> str:
    """Format seconds as a compact string such as ``1d2h3m4s``.

    Zero parts are omitted; zero seconds formats as ``0s``.
    """
    seconds = max(0, int(seconds))
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return "".join(parts)


def total_seconds(hours: int = 0, minutes: int = 0, seconds: int = 0) -> int:
    """Combine hour, minute and second fields into a duration in seconds."""
    if min(hours, minutes, seconds) < 0:
        raise InvalidTimerArgumentError("Duration fields cannot be negative")
    return hours * 3600 + minutes * 60 + seconds


def parse_duration(text: str) -> int:
    """Parse a duration into seconds.

    Accepts plain seconds ("90"), unit forms ("1h30m", "5m", "2d") and clock
    forms ("1:30:00", "05:00").

    Raises:
        InvalidTimerArgumentError: If the text is not a positive duration
    """
    value = (text or "").strip().lower().replace(" ", "")

    if _DIGITS_RE.fullmatch(value):
        seconds = int(value)
    elif _UNIT_DURATION_RE.match(value):
        seconds = sum(
            int(amount) * _UNIT_SECONDS[unit]
            for amount, unit in _UNIT_PART_RE.findall(value)
        )
    else:
        match = _CLOCK_RE.match(value)
        if not match:
            raise InvalidTimerArgumentError(
                f"Invalid duration format '{text}'. Use formats like '5m', '1h30m', '90' or '1:30:00'"
            )
        hours, minutes, secs = match.groups()
        seconds = total_seconds(int(hours or 0), int(minutes), int(secs))

    if seconds <= 0:
        raise InvalidTimerArgumentError(f"Duration must be positive, got '{text}'")
    return seconds
