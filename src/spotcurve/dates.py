"""
Calendar service for business-day arithmetic.

Provides:
- Calendar: named set of non-working weekdays and holidays
- Business-day counting, offsets and adjustments (numpy busday routines)
- A registry resolving calendar names carried by terms and spot rates

Built-in calendars:
- actual: every day is a business day (actual day counts)
- weekends: Saturday and Sunday are non-business days
"""

from dataclasses import dataclass
from datetime import date
import logging
from typing import Dict, Iterable, List, Union

import numpy as np

from .exceptions import InvalidArgument

logger = logging.getLogger(__name__)

DateLike = Union[date, np.datetime64, str]


def _to_datetime64(d) -> np.ndarray:
    """Convert a date or a sequence of dates to datetime64[D]."""
    return np.asarray(d, dtype="datetime64[D]")


def _to_date(d: np.ndarray):
    """Convert datetime64[D] back to datetime.date (scalar or list)."""
    return np.asarray(d, dtype="datetime64[D]").tolist()


@dataclass(frozen=True)
class Calendar:
    """
    Business-day calendar.

    Attributes:
        name: Calendar name used by Term and SpotRate objects
        holidays: Non-business dates
        weekmask: Seven characters, Monday first, "1" marks a working weekday
    """
    name: str
    holidays: tuple = ()
    weekmask: str = "1111111"

    def __post_init__(self):
        if len(self.weekmask) != 7 or set(self.weekmask) - {"0", "1"}:
            raise InvalidArgument(f"Invalid weekmask: {self.weekmask!r}")
        if "1" not in self.weekmask:
            raise InvalidArgument("Calendar must have at least one working weekday")
        object.__setattr__(self, "holidays", tuple(sorted(set(self.holidays))))

    @property
    def _holidays64(self) -> np.ndarray:
        return _to_datetime64(list(self.holidays))

    def is_bizday(self, d: DateLike):
        """Check if a date (or each date) is a business day."""
        result = np.is_busday(
            _to_datetime64(d), weekmask=self.weekmask, holidays=self._holidays64
        )
        return bool(result) if np.ndim(result) == 0 else result

    def bizdays(self, start: DateLike, end: DateLike):
        """
        Count business days between dates.

        Counts business days in [start, end); the count is negative
        when end precedes start. Accepts scalars or sequences.
        """
        result = np.busday_count(
            _to_datetime64(start),
            _to_datetime64(end),
            weekmask=self.weekmask,
            holidays=self._holidays64,
        )
        return int(result) if np.ndim(result) == 0 else result.astype(np.int64)

    def add_bizdays(self, d: DateLike, n):
        """
        Move a date by n business days.

        Dates falling on non-business days are first rolled forward
        (n >= 0) or backward (n < 0).
        """
        dates, offsets = np.broadcast_arrays(
            _to_datetime64(d), np.asarray(n, dtype=np.int64)
        )
        result = np.empty(dates.shape, dtype="datetime64[D]")
        fwd = offsets >= 0
        result[fwd] = np.busday_offset(
            dates[fwd], offsets[fwd], roll="forward",
            weekmask=self.weekmask, holidays=self._holidays64,
        )
        result[~fwd] = np.busday_offset(
            dates[~fwd], offsets[~fwd], roll="backward",
            weekmask=self.weekmask, holidays=self._holidays64,
        )
        return _to_date(result)

    def adjust_next(self, d: DateLike):
        """Following business day adjustment."""
        return _to_date(np.busday_offset(
            _to_datetime64(d), 0, roll="forward",
            weekmask=self.weekmask, holidays=self._holidays64,
        ))

    def adjust_previous(self, d: DateLike):
        """Preceding business day adjustment."""
        return _to_date(np.busday_offset(
            _to_datetime64(d), 0, roll="backward",
            weekmask=self.weekmask, holidays=self._holidays64,
        ))

    def __repr__(self) -> str:
        return f"Calendar(name={self.name!r}, holidays={len(self.holidays)}, weekmask={self.weekmask})"


_CALENDARS: Dict[str, Calendar] = {}


def register_calendar(cal: Calendar, overwrite: bool = False) -> Calendar:
    """
    Register a calendar under its name.

    Args:
        cal: Calendar to register
        overwrite: Replace an existing calendar with the same name

    Returns:
        The registered calendar
    """
    if cal.name in _CALENDARS and not overwrite:
        raise InvalidArgument(f"Calendar already registered: {cal.name}")
    _CALENDARS[cal.name] = cal
    logger.debug("Registered calendar %s with %d holidays", cal.name, len(cal.holidays))
    return cal


def get_calendar(name: Union[str, Calendar]) -> Calendar:
    """Resolve a calendar by name."""
    if isinstance(name, Calendar):
        return name
    try:
        return _CALENDARS[name]
    except KeyError:
        raise InvalidArgument(f"Unknown calendar: {name}") from None


def calendars() -> List[str]:
    """Names of the registered calendars."""
    return sorted(_CALENDARS)


def create_calendar(
    name: str,
    holidays: Iterable[date] = (),
    weekdays: Iterable[str] = ("saturday", "sunday"),
) -> Calendar:
    """
    Build and register a calendar from holidays and non-working weekdays.

    Args:
        name: Calendar name
        holidays: Non-business dates
        weekdays: Non-working weekday names (e.g. "saturday", "sunday")
    """
    names = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
    off = {w.lower() for w in weekdays}
    unknown = off - set(names)
    if unknown:
        raise InvalidArgument(f"Unknown weekdays: {sorted(unknown)}")
    weekmask = "".join("0" if n in off else "1" for n in names)
    return register_calendar(Calendar(name, tuple(holidays), weekmask))


def add_months(start: date, months: int) -> date:
    """
    Add calendar months to a date.

    The day of month is preserved where possible and clipped to the
    last day of the target month otherwise.
    """
    year = start.year + (start.month + months - 1) // 12
    month = (start.month + months - 1) % 12 + 1
    day = min(start.day, _days_in_month(year, month))
    return date(year, month, day)


def _days_in_month(year: int, month: int) -> int:
    """Return number of days in a month."""
    if month in (1, 3, 5, 7, 8, 10, 12):
        return 31
    elif month in (4, 6, 9, 11):
        return 30
    elif month == 2:
        if (year % 4 == 0 and year % 100 != 0) or (year % 400 == 0):
            return 29
        return 28
    raise ValueError(f"Invalid month: {month}")


register_calendar(Calendar("actual"))
register_calendar(Calendar("weekends", weekmask="1111100"))


__all__ = [
    "Calendar",
    "register_calendar",
    "get_calendar",
    "calendars",
    "create_calendar",
    "add_months",
]
