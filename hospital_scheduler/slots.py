"""
Slot allocation: validate a requested start time or find the first free one.

Availability windows are sliced into fixed-size slots so "already booked" is a
set-membership test on formatted time strings. Windows are walked in the order
the doctor declared them, never re-sorted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import AbstractSet, Iterator, List, Optional, Sequence

from .availability import is_day_available, is_within_availability, parse_window
from .config import SLOT_GRANULARITY_MINUTES
from .errors import (
    DoctorUnavailableError,
    InvalidSlotError,
    NoAvailabilityConfiguredError,
    SlotsExhaustedError,
    SlotTakenError,
)
from .timeutils import format_clock_time, parse_clock_time, weekday_name


@dataclass
class SlotAllocator:
    granularity: int = SLOT_GRANULARITY_MINUTES

    def _candidates(self, windows: Sequence[str]) -> Iterator[str]:
        for window in windows:
            start, end = parse_window(window)
            while start + self.granularity <= end:
                yield format_clock_time(start)
                start += self.granularity

    def check_day(
        self, available_days: Sequence[str], windows: Sequence[str], day: date | str
    ) -> None:
        weekday = weekday_name(day)
        if not is_day_available(available_days, weekday):
            raise DoctorUnavailableError(weekday, available_days)
        if not windows:
            raise NoAvailabilityConfiguredError()

    def allocate(
        self,
        available_days: Sequence[str],
        windows: Sequence[str],
        day: date | str,
        booked: AbstractSet[str],
        requested: Optional[str] = None,
    ) -> str:
        self.check_day(available_days, windows, day)

        if requested:
            # Explicit times are checked at their exact minute, not snapped to the grid.
            if not is_within_availability(windows, parse_clock_time(requested), self.granularity):
                raise InvalidSlotError()
            if requested in booked:
                raise SlotTakenError()
            return requested

        for candidate in self._candidates(windows):
            if candidate not in booked:
                return candidate
        raise SlotsExhaustedError()

    def open_slots(self, windows: Sequence[str], booked: AbstractSet[str]) -> List[str]:
        """All free slots in allocation order; the first is what ``allocate`` would pick."""
        free: List[str] = []
        seen = set()
        for candidate in self._candidates(windows):
            if candidate in booked or candidate in seen:
                continue
            seen.add(candidate)
            free.append(candidate)
        return free
