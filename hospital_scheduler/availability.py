"""Doctor availability: declared weekdays and clock-time windows."""
from __future__ import annotations

from typing import Iterable, Sequence

from .errors import MalformedTimeError
from .timeutils import parse_clock_time

WINDOW_SEPARATOR = " - "


def parse_window(window: str) -> tuple[int, int]:
    """Split ``"09:00 AM - 01:00 PM"`` into (start, end) minutes."""
    parts = window.split(WINDOW_SEPARATOR)
    if len(parts) != 2:
        raise MalformedTimeError(f"Malformed availability window: {window!r}")
    return parse_clock_time(parts[0]), parse_clock_time(parts[1])


def is_within_availability(windows: Sequence[str], start: int, granularity: int) -> bool:
    """True if a slot of ``granularity`` minutes starting at ``start`` fits a window.

    A slot must end on or before the window end; a valid start alone is not
    enough.
    """
    for window in windows:
        window_start, window_end = parse_window(window)
        if window_start <= start and start + granularity <= window_end:
            return True
    return False


def is_day_available(available_days: Iterable[str], weekday: str) -> bool:
    return weekday in set(available_days)
