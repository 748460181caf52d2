"""
PURPOSE: Tests for time utility functions.

Tests session handling:
- HH:MM normalization and parsing
- Session windows and classification
- Window membership across midnight
- Timezone conversion
"""

from datetime import datetime, timezone

import pytest

from strategy_core.config.constants import SessionName
from strategy_core.utils.time_utils import (
    classify_session,
    get_utc_now,
    is_valid_timezone,
    is_within_window,
    minutes_of_day,
    minutes_since,
    normalize_hhmm,
    parse_hhmm,
    session_window,
)


class TestGetUtcNow:
    """Test UTC time retrieval."""

    def test_get_utc_now_is_aware(self):
        """Test get_utc_now returns a UTC-aware datetime."""
        now = get_utc_now()
        assert now.tzinfo == timezone.utc


class TestNormalizeHhmm:
    """Test clock string normalization."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("9:30", "09:30"),
            ("09:30", "09:30"),
            ("16", "16:00"),
            ("9:30 am", "09:30"),
            ("2:00 PM", "14:00"),
            ("12:15 am", "00:15"),
            ("12 pm", "12:00"),
        ],
    )
    def test_valid(self, value, expected):
        """Test loose clock strings become zero-padded HH:MM."""
        assert normalize_hhmm(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "9:75", "noon", "", None])
    def test_invalid(self, value):
        """Test non-clock values normalize to None."""
        assert normalize_hhmm(value) is None

    def test_parse_hhmm(self):
        """Test minutes from midnight."""
        assert parse_hhmm("09:30") == 570
        assert parse_hhmm("4:00") == 240

    def test_parse_hhmm_invalid(self):
        """Test parse_hhmm raises on garbage."""
        with pytest.raises(ValueError):
            parse_hhmm("later")


class TestSessions:
    """Test session windows and classification."""

    def test_named_windows(self):
        """Test the Eastern Time session bounds."""
        assert session_window(SessionName.NY) == (570, 960)
        assert session_window(SessionName.LONDON) == (180, 690)
        assert session_window(SessionName.ASIA) == (1200, 240)

    def test_custom_window(self):
        """Test custom bounds are parsed."""
        assert session_window(SessionName.CUSTOM, "10:00", "11:15") == (600, 675)

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            ("09:30", "16:00", SessionName.NY),
            ("03:00", "11:30", SessionName.LONDON),
            ("20:00", "04:00", SessionName.ASIA),
            ("09:30", "12:00", SessionName.CUSTOM),
        ],
    )
    def test_classify_session(self, start, end, expected):
        """Test exact windows map onto named sessions."""
        assert classify_session(start, end) == expected


class TestWindowMembership:
    """Test inclusive window checks."""

    def test_regular_window(self):
        """Test a same-day window is inclusive on both ends."""
        assert is_within_window(570, 570, 960)
        assert is_within_window(960, 570, 960)
        assert not is_within_window(569, 570, 960)

    def test_window_wrapping_midnight(self):
        """Test a window that crosses midnight."""
        assert is_within_window(1380, 1200, 240)
        assert is_within_window(60, 1200, 240)
        assert not is_within_window(600, 1200, 240)

    def test_minutes_since_wraps(self):
        """Test elapsed minutes across midnight."""
        assert minutes_since(570, 600) == 30
        assert minutes_since(1200, 30) == 270


class TestTimezones:
    """Test timezone handling."""

    def test_is_valid_timezone(self):
        """Test IANA zone validation."""
        assert is_valid_timezone("America/New_York")
        assert is_valid_timezone("Europe/London")
        assert not is_valid_timezone("Eastern")

    def test_aware_converted(self):
        """Test aware datetimes are converted into the zone."""
        # 14:30 UTC in January is 09:30 in New York
        assert minutes_of_day(datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc), "America/New_York") == 570
        # 13:30 UTC in July is 09:30 in New York (daylight saving)
        assert minutes_of_day(datetime(2024, 7, 2, 13, 30, tzinfo=timezone.utc), "America/New_York") == 570

    def test_naive_is_wall_clock(self):
        """Test naive datetimes are taken as wall-clock time."""
        assert minutes_of_day(datetime(2024, 1, 2, 9, 30), "America/New_York") == 570
