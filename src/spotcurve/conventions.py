"""
Compounding regimes and day count conventions for spot rates.

Compounding:
- simple: factor = 1 + r * t
- discrete: factor = (1 + r) ^ t
- continuous: factor = exp(r * t)

Day counts (rule/days in base):
- business/252: business days / 252 (Brazilian market convention)
- actual/360: actual days / 360 (money markets)
- actual/365: actual days / 365
- 30/360: 30 days per month / 360

Periods handed to the compounding functions are always expressed in
years: day terms divide by the days in base, month terms by 12.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
import re
from typing import Callable, Optional, Union

import numpy as np

from .dates import get_calendar
from .exceptions import InvalidArgument
from .term import DateRangeTerm, Term, as_term, normalize_units


def _scalar_or_array(x):
    """Return a float for 0-d results, an array otherwise."""
    x = np.asarray(x, dtype=np.float64)
    return float(x) if x.ndim == 0 else x


class Compounding(Enum):
    """Compounding regime enumeration."""
    SIMPLE = "simple"
    DISCRETE = "discrete"
    CONTINUOUS = "continuous"

    @classmethod
    def from_string(cls, s: Union[str, "Compounding"]) -> "Compounding":
        """Parse a compounding regime from its name."""
        if isinstance(s, cls):
            return s
        if isinstance(s, str):
            key = s.strip().lower()
            for member in cls:
                if member.value == key:
                    return member
        raise InvalidArgument(f"Unknown compounding: {s}")

    def compound(self, periods, rate):
        """
        Compounding factor for a rate over a number of periods.

        Args:
            periods: Number of compounding periods (years)
            rate: Annual rate (decimal)

        Returns:
            Compounding factor (float or array, following numpy broadcasting)
        """
        t = np.asarray(periods, dtype=np.float64)
        r = np.asarray(rate, dtype=np.float64)
        if self is Compounding.SIMPLE:
            factor = 1.0 + r * t
        elif self is Compounding.DISCRETE:
            factor = (1.0 + r) ** t
        else:
            factor = np.exp(r * t)
        return _scalar_or_array(factor)

    def implied_rate(self, periods, factor):
        """
        Rate that produces the given compounding factor over periods.

        Inverse of compound().
        """
        t = np.asarray(periods, dtype=np.float64)
        f = np.asarray(factor, dtype=np.float64)
        if self is Compounding.SIMPLE:
            rate = (f - 1.0) / t
        elif self is Compounding.DISCRETE:
            rate = f ** (1.0 / t) - 1.0
        else:
            rate = np.log(f) / t
        return _scalar_or_array(rate)

    def __str__(self) -> str:
        return self.value


def compound(compounding: Union[str, Compounding], periods, rate):
    """Compounding factor under a named or given compounding regime."""
    return Compounding.from_string(compounding).compound(periods, rate)


def implied_rate(compounding: Union[str, Compounding], periods, factor):
    """Implied rate under a named or given compounding regime."""
    return Compounding.from_string(compounding).implied_rate(periods, factor)


_DAYCOUNT_PATTERN = re.compile(r"^(business|actual|30)/(252|360|365)$", re.IGNORECASE)

_VALID_DAYCOUNTS = ("business/252", "actual/360", "actual/365", "30/360")


@dataclass(frozen=True)
class Daycount:
    """
    Day count convention.

    Attributes:
        rule: How days are counted ("business", "actual" or "30")
        dib: Days in base (252, 360 or 365)
    """
    rule: str
    dib: int

    def __post_init__(self):
        if f"{self.rule}/{self.dib}" not in _VALID_DAYCOUNTS:
            raise InvalidArgument(f"Unknown daycount: {self.rule}/{self.dib}")

    @classmethod
    def from_string(cls, s: Union[str, "Daycount"]) -> "Daycount":
        """Parse a day count from its name, e.g. "business/252"."""
        if isinstance(s, cls):
            return s
        match = _DAYCOUNT_PATTERN.match(s.strip()) if isinstance(s, str) else None
        if not match:
            raise InvalidArgument(f"Unknown daycount: {s}")
        return cls(rule=match.group(1).lower(), dib=int(match.group(2)))

    def days_between(self, start, end, calendar: Optional[str] = None) -> np.ndarray:
        """
        Count days between dates according to the rule.

        business: business days of the calendar in [start, end)
        actual: calendar days
        30: 30/360 US day count
        """
        if self.rule == "business":
            if calendar is None:
                raise InvalidArgument("business day counts need a calendar")
            return np.asarray(get_calendar(calendar).bizdays(start, end), dtype=np.float64)
        if self.rule == "actual":
            delta = np.asarray(end, dtype="datetime64[D]") - np.asarray(start, dtype="datetime64[D]")
            return delta.astype(np.float64)
        starts = np.atleast_1d(np.asarray(start, dtype="datetime64[D]")).tolist()
        ends = np.atleast_1d(np.asarray(end, dtype="datetime64[D]")).tolist()
        days = np.array([_thirty_360_days(s, e) for s, e in zip(starts, ends)], dtype=np.float64)
        return days if np.ndim(start) or np.ndim(end) else days[0]

    def time_factor(self, term, calendar: Optional[str] = None) -> np.ndarray:
        """
        Convert a term into years under this convention.

        Args:
            term: Term (numbers are read as days)
            calendar: Calendar used to recount DateRangeTerm days; defaults
                to the term's own calendar

        Returns:
            Array of year fractions, one per term element
        """
        term = as_term(term)
        if isinstance(term, DateRangeTerm):
            cal = calendar or term.calendar
            days = self.days_between(term.start_dates, term.end_dates, cal)
            return np.atleast_1d(days) / self.dib
        values = term.values
        if term.units == "day":
            return values / self.dib
        if term.units == "month":
            return values / 12.0
        return values.copy()

    def year_map(self, term, calendar: Optional[str] = None) -> Callable[[np.ndarray], np.ndarray]:
        """
        Function converting numbers in the units of term into years.

        Plain terms convert exactly as time_factor does. A DateRangeTerm
        holds business day counts, which the rule may recount (actual
        days, 30/360); its values are then mapped piecewise linearly
        through the recounted year fractions of its elements, starting
        at (0, 0). The map is exact at the term elements and continued
        with the last segment slope beyond them.

        Args:
            term: Reference term, sorted ascending for DateRangeTerm
            calendar: Calendar used to recount DateRangeTerm days
        """
        term = as_term(term)
        if not isinstance(term, DateRangeTerm):
            units = term.units
            return lambda x: self.time_factor(Term(x, units))

        x = np.array(term.values, dtype=np.float64)
        y = np.array(self.time_factor(term, calendar), dtype=np.float64)
        if len(x) == 0 or x[0] > 0:
            x = np.concatenate([[0.0], x])
            y = np.concatenate([[0.0], y])
        if len(x) < 2:
            return lambda v: self.time_factor(Term(v, "day"))

        def to_years(values) -> np.ndarray:
            v = np.array(values, dtype=np.float64, ndmin=1).ravel()
            out = np.interp(v, x, y)
            left = v < x[0]
            right = v > x[-1]
            out[left] = y[0] + (v[left] - x[0]) * (y[1] - y[0]) / (x[1] - x[0])
            out[right] = y[-1] + (v[right] - x[-1]) * (y[-1] - y[-2]) / (x[-1] - x[-2])
            return out

        return to_years

    def term_from_years(self, years, units: str = "day") -> np.ndarray:
        """Express year fractions as numbers of the given units."""
        years = np.asarray(years, dtype=np.float64)
        units = normalize_units(units)
        if units == "day":
            return years * self.dib
        if units == "month":
            return years * 12.0
        return years

    def __str__(self) -> str:
        return f"{self.rule}/{self.dib}"


def _thirty_360_days(start: date, end: date) -> int:
    """30/360 US day count between two dates."""
    d1 = min(start.day, 30)
    d2 = end.day if start.day < 30 else min(end.day, 30)
    if end.day == 31 and d1 == 30:
        d2 = 30
    return 360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)


__all__ = [
    "Compounding",
    "Daycount",
    "compound",
    "implied_rate",
]
