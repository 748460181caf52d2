"""
PURPOSE: Time utilities for session windows and HH:MM handling.
Session times are wall-clock minutes from midnight in the strategy's timezone;
windows whose start is after their end (Asia) wrap past midnight.
"""

import re
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from strategy_core.config.constants import SESSION_WINDOWS, SessionName

MINUTES_PER_DAY = 24 * 60

_HHMM_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\s*$", re.IGNORECASE)


def get_utc_now() -> datetime:
    """
    PURPOSE: Return the current UTC time as a timezone-aware datetime object.

    Returns:
        datetime: Current UTC time with timezone info.
    """
    return datetime.now(timezone.utc)


def normalize_hhmm(value: Optional[str]) -> Optional[str]:
    """
    PURPOSE: Normalize loose clock strings ("9:30", "9:30 am", "16") into zero-padded "HH:MM".

    Args:
        value: Raw time string from a filter fragment.

    Returns:
        Optional[str]: "HH:MM" string, or None if the value cannot be read as a clock time.
    """
    if value is None:
        return None
    matched = _HHMM_PATTERN.match(str(value))
    if not matched:
        return None

    hours = int(matched.group(1))
    minutes = int(matched.group(2) or 0)
    meridiem = (matched.group(3) or "").lower()

    if meridiem == "pm" and hours < 12:
        hours += 12
    elif meridiem == "am" and hours == 12:
        hours = 0

    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def parse_hhmm(value: str) -> int:
    """
    PURPOSE: Convert an "HH:MM" string into minutes from midnight.

    Args:
        value: Time string in "HH:MM" format.

    Returns:
        int: Minutes from midnight.

    Raises:
        ValueError: If the value is not a valid clock time.
    """
    normalized = normalize_hhmm(value)
    if normalized is None:
        raise ValueError(f"Invalid HH:MM time: {value!r}")
    hours, minutes = normalized.split(":")
    return int(hours) * 60 + int(minutes)


def is_valid_timezone(name: str) -> bool:
    """Return True when `name` is a known IANA timezone."""
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def session_window(
    session: SessionName,
    custom_start: Optional[str] = None,
    custom_end: Optional[str] = None,
) -> tuple[int, int]:
    """
    PURPOSE: Resolve a session name into (start, end) minutes from midnight.

    Args:
        session: Named session or CUSTOM.
        custom_start: "HH:MM" start for CUSTOM sessions.
        custom_end: "HH:MM" end for CUSTOM sessions.

    Returns:
        tuple[int, int]: Start and end minutes. End may be smaller than start
            when the window wraps midnight.
    """
    if session == SessionName.CUSTOM:
        start, end = SESSION_WINDOWS[SessionName.NY]
        return parse_hhmm(custom_start or start), parse_hhmm(custom_end or end)
    start, end = SESSION_WINDOWS[SessionName(session)]
    return parse_hhmm(start), parse_hhmm(end)


def classify_session(start: str, end: str) -> SessionName:
    """
    PURPOSE: Map a start/end pair onto a named session, or CUSTOM.

    Args:
        start: Normalized "HH:MM" start.
        end: Normalized "HH:MM" end.

    Returns:
        SessionName: NY, LONDON, ASIA on an exact match, CUSTOM otherwise.
    """
    for name, window in SESSION_WINDOWS.items():
        if (start, end) == window:
            return name
    return SessionName.CUSTOM


def minutes_of_day(dt: datetime, tz_name: Optional[str] = None) -> int:
    """
    PURPOSE: Wall-clock minutes from midnight for `dt`.

    Aware datetimes are converted into `tz_name` first; naive datetimes are
    taken to already be in that timezone.
    """
    if tz_name and dt.tzinfo is not None:
        dt = dt.astimezone(ZoneInfo(tz_name))
    return dt.hour * 60 + dt.minute


def is_within_window(minute: int, start: int, end: int) -> bool:
    """
    PURPOSE: Check whether a minute-of-day falls inside a session window (inclusive).

    Args:
        minute: Minutes from midnight.
        start: Window start in minutes.
        end: Window end in minutes; smaller than start for windows spanning midnight.

    Returns:
        bool: True if inside the window.
    """
    minute %= MINUTES_PER_DAY
    if start <= end:
        return start <= minute <= end
    return minute >= start or minute <= end


def minutes_since(start: int, minute: int) -> int:
    """Minutes elapsed from `start` to `minute`, wrapping past midnight."""
    return (minute - start) % MINUTES_PER_DAY
