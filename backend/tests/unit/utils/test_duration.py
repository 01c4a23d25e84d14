"""
Unit Tests for Duration Formatting
"""
import pytest

from app.core.exceptions import ValidationError
from app.utils.duration import (
    DurationFormat,
    format_clock,
    format_duration,
    format_hms,
    format_hours_minutes,
    parse_hms,
)


class TestFormatHMS:
    """Test HH:MM:SS formatting"""

    @pytest.mark.parametrize('seconds, expected', [
        (0, '00:00:00'),
        (59, '00:00:59'),
        (600, '00:10:00'),
        (7800, '02:10:00'),
        (3661, '01:01:01'),
    ])
    def test_values(self, seconds, expected):
        assert format_hms(seconds) == expected

    def test_hours_are_not_capped(self):
        """More than a day stays in hours"""
        assert format_hms(100 * 3600 + 5) == '100:00:05'

    def test_negative_clamps_to_zero(self):
        assert format_hms(-30) == '00:00:00'

    def test_fractional_seconds_truncate(self):
        assert format_hms(59.9) == '00:00:59'


class TestFormatHoursMinutes:
    """Test localized hours/minutes formatting"""

    def test_english(self):
        assert format_hours_minutes(5 * 3600 + 30 * 60) == '05h 30m'

    def test_japanese(self):
        assert format_hours_minutes(5 * 3600 + 30 * 60, 'ja') == '05時間30分'

    def test_unknown_locale_falls_back_to_english(self):
        assert format_hours_minutes(90 * 60, 'fr') == '01h 30m'

    def test_seconds_are_dropped(self):
        assert format_hours_minutes(59) == '00h 00m'


class TestFormatClock:
    """Test H:MM formatting used in CSV exports"""

    def test_values(self):
        assert format_clock(0) == '0:00'
        assert format_clock(600) == '0:10'
        assert format_clock(36000 + 300) == '10:05'


class TestFormatDuration:
    """Test the format dispatcher"""

    def test_default_is_hms(self):
        assert format_duration(7800) == '02:10:00'

    def test_dispatch(self):
        assert format_duration(7800, DurationFormat.HOURS_MINUTES) == '02h 10m'
        assert format_duration(7800, DurationFormat.HOURS_MINUTES, 'ja') == '02時間10分'
        assert format_duration(7800, DurationFormat.CLOCK) == '2:10'

    def test_accepts_string_values(self):
        assert format_duration(7800, DurationFormat('clock')) == '2:10'


class TestParseHMS:
    """Test parsing HH:MM:SS back into seconds"""

    def test_round_trip(self):
        for seconds in (0, 59, 3661, 100 * 3600 + 5):
            assert parse_hms(format_hms(seconds)) == seconds

    @pytest.mark.parametrize('text', ['', '10:00', 'aa:bb:cc', '01:60:00', '01:00:60', '-1:00:00'])
    def test_invalid(self, text):
        with pytest.raises(ValidationError) as exc_info:
            parse_hms(text)

        assert exc_info.value.details['field'] == 'duration'
