"""Clock-string and weekday helpers.

Times are 12-hour strings such as ``"9:00 AM"`` and are handled as minutes
since midnight internally.
"""
from __future__ import annotations

import re
from datetime import date

from .errors import MalformedTimeError

# Fixed English names, independent of the process locale.
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_HOURS = re.compile(r"\d{1,2}", re.ASCII)
_MINUTES = re.compile(r"\d{2}", re.ASCII)


def parse_clock_time(text: str) -> int:
    """Convert ``"H:MM AM|PM"`` to minutes since midnight."""
    parts = text.split(" ")
    if len(parts) != 2:
        raise MalformedTimeError(f"Malformed time: {text!r}")
    clock, meridiem = parts

    pieces = clock.split(":")
    if len(pieces) != 2:
        raise MalformedTimeError(f"Malformed time: {text!r}")
    # ASCII digits only, minutes always two digits.
    if not (_HOURS.fullmatch(pieces[0]) and _MINUTES.fullmatch(pieces[1])):
        raise MalformedTimeError(f"Malformed time: {text!r}")
    hours, minutes = int(pieces[0]), int(pieces[1])

    if meridiem == "PM" and hours < 12:
        hours += 12
    if meridiem == "AM" and hours == 12:
        hours = 0
    return hours * 60 + minutes


def format_clock_time(minutes: int) -> str:
    """Render minutes since midnight as ``"H:MM AM|PM"``.

    There is no day rollover: 1440 renders as ``"12:00 PM"``.
    """
    hours, mins = divmod(minutes, 60)
    period = "PM" if hours >= 12 else "AM"
    display_hour = hours % 12 or 12
    return f"{display_hour}:{mins:02d} {period}"


def weekday_name(day: date | str) -> str:
    """Full English weekday name for a date or a bare ``YYYY-MM-DD`` string."""
    if isinstance(day, str):
        day = date.fromisoformat(day)
    return WEEKDAYS[day.weekday()]
