"""Unit tests for duration formatting and parsing."""

import pytest

from common.exceptions import InvalidTimerArgumentError
from common.time_format import format_duration, parse_duration, total_seconds


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "0s"),
            (59, "59s"),
            (60, "1m"),
            (3600, "1h"),
            (3661, "1h1m1s"),
            (93784, "1d2h3m4s"),
            (86400 * 2 + 5, "2d5s"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected

    def test_negative_formats_as_zero(self):
        assert format_duration(-5) == "0s"


class TestTotalSeconds:
    def test_combines_fields(self):
        assert total_seconds(hours=1, minutes=2, seconds=3) == 3723

    def test_defaults_to_zero(self):
        assert total_seconds() == 0

    def test_negative_field_rejected(self):
        with pytest.raises(InvalidTimerArgumentError):
            total_seconds(minutes=-1)


class TestParseDuration:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("90", 90),
            ("5m", 300),
            ("1h30m", 5400),
            ("1h 30m", 5400),
            ("2d", 172800),
            ("1D2H3M4S", 93784),
            ("05:00", 300),
            ("1:30:00", 5400),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "5x", "m5", "1:2:3:4", "-5"])
    def test_invalid_format(self, text):
        with pytest.raises(InvalidTimerArgumentError, match="Invalid duration format"):
            parse_duration(text)

    @pytest.mark.parametrize("text", ["²", "٣", "١m", "1:٣0"])
    def test_non_ascii_digits_rejected(self, text):
        """Test digits outside ASCII are reported as an invalid format."""
        with pytest.raises(InvalidTimerArgumentError, match="Invalid duration format"):
            parse_duration(text)

    @pytest.mark.parametrize("text", ["0", "0s", "00:00"])
    def test_zero_rejected(self, text):
        with pytest.raises(InvalidTimerArgumentError, match="must be positive"):
            parse_duration(text)
