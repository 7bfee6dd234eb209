"""
Terms: time spans used to compound and discount spot rates.

A Term is a vector of numeric values sharing a single unit (day, month
or year). A DateRangeTerm is built from start and end dates and holds the
number of business days between them under a calendar.

String representation: "NUMBER UNITS", e.g. "6 months", "1 year",
"21 days". Units are pluralised when the value exceeds 1 in magnitude.

Arithmetic between two Terms is not supported since mixed units make it
ambiguous; a Term can be shifted by plain numbers.
"""

from datetime import date
import operator
import re
from typing import Iterable, List, Sequence, Union

import numpy as np

from .config import DEFAULT_CALENDAR, DEFAULT_UNITS
from .dates import get_calendar
from .exceptions import InvalidArgument, InvalidOperation

UNITS = ("day", "month", "year")

TERM_PATTERN = re.compile(r"^(-?\d+(?:\.\d+)?)\s+(days?|months?|years?)$", re.IGNORECASE)


def normalize_units(units: str) -> str:
    """Map "days"/"Day"/"day" to the canonical singular unit."""
    if not isinstance(units, str):
        raise InvalidArgument(f"Invalid term units: {units!r}")
    key = units.strip().lower()
    if key.endswith("s"):
        key = key[:-1]
    if key not in UNITS:
        raise InvalidArgument(f"Invalid term units: {units!r}. Expected one of {UNITS}")
    return key


def _format_value(value: float) -> str:
    return np.format_float_positional(value, trim="-")


class Term:
    """
    Time span vector with a single unit.

    Attributes:
        values: Read-only float array with the numeric part
        units: One of "day", "month", "year"
    """

    __hash__ = None
    __array_ufunc__ = None

    def __init__(self, values, units: Union[str, Sequence[str]] = DEFAULT_UNITS):
        values = np.array(values, dtype=np.float64, ndmin=1).ravel()
        if isinstance(units, str):
            unit_set = {normalize_units(units)}
        else:
            units = list(units)
            if len(units) != len(values) and len(units) > 1:
                raise InvalidArgument("units and data are different sizes")
            unit_set = {normalize_units(u) for u in units}
        if len(unit_set) != 1:
            raise InvalidArgument(f"Term elements must share one unit, got {sorted(unit_set)}")
        values.flags.writeable = False
        self._values = values
        self._units = unit_set.pop()

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def units(self) -> str:
        return self._units

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self):
        return (float(v) for v in self._values)

    def __array__(self, dtype=None, copy=None):
        return np.array(self._values, dtype=dtype)

    def _take(self, idx: np.ndarray) -> "Term":
        return Term(self._values[idx], self._units)

    def __getitem__(self, key) -> "Term":
        """Positional selection by integer, slice, integer list or boolean mask."""
        idx = np.atleast_1d(np.arange(len(self))[key])
        return self._take(idx)

    def shift(self, k: int = 1, fill: float = np.nan) -> "Term":
        """
        Shift values by k positions.

        Positive k lags the values (fill enters at the start), negative k
        leads them (fill enters at the end).
        """
        n = len(self)
        shifted = np.full(n, fill, dtype=np.float64)
        if abs(k) < n:
            if k > 0:
                shifted[k:] = self._values[:n - k]
            elif k < 0:
                shifted[:n + k] = self._values[-k:]
            else:
                shifted[:] = self._values
        return Term(shifted, self._units)

    def diff(self, lag: int = 1, fill=None) -> "Term":
        """
        Lagged differences.

        Args:
            lag: Lag between compared elements
            fill: When given, prepended lag times so the result keeps
                the original length
        """
        if lag < 1:
            raise InvalidArgument("lag must be >= 1")
        d = self._values[lag:] - self._values[:-lag]
        if fill is not None:
            d = np.concatenate([np.full(min(lag, len(self)), float(fill)), d])
        return Term(d, self._units)

    def concat(self, *others) -> "Term":
        """Concatenate Terms of the same unit or plain numbers."""
        parts = [self._values]
        for other in others:
            if isinstance(other, Term):
                if other.units != self._units:
                    raise InvalidArgument(
                        f"Cannot concatenate terms in {other.units} to terms in {self._units}"
                    )
                parts.append(other.values)
            else:
                parts.append(np.array(other, dtype=np.float64, ndmin=1).ravel())
        return Term(np.concatenate(parts), self._units)

    def identical(self, other) -> bool:
        """Same unit and same values."""
        return (
            isinstance(other, Term)
            and other.units == self._units
            and np.array_equal(other.values, self._values, equal_nan=True)
        )

    def format(self) -> List[str]:
        """Canonical string for each element."""
        out = []
        for v in self._values:
            unit = self._units + "s" if abs(v) > 1 else self._units
            out.append(f"{_format_value(v)} {unit}")
        return out

    # Arithmetic: Term with numbers only

    def _arith(self, other, op, reflected=False) -> "Term":
        if isinstance(other, Term):
            raise InvalidOperation("Arithmetic between Term objects is not supported")
        other = np.asarray(other, dtype=np.float64)
        result = op(other, self._values) if reflected else op(self._values, other)
        return Term(result, self._units)

    def __add__(self, other):
        return self._arith(other, operator.add)

    def __radd__(self, other):
        return self._arith(other, operator.add, reflected=True)

    def __sub__(self, other):
        return self._arith(other, operator.sub)

    def __rsub__(self, other):
        return self._arith(other, operator.sub, reflected=True)

    def __mul__(self, other):
        return self._arith(other, operator.mul)

    def __rmul__(self, other):
        return self._arith(other, operator.mul, reflected=True)

    def __truediv__(self, other):
        return self._arith(other, operator.truediv)

    def __neg__(self):
        return Term(-self._values, self._units)

    # Comparison: Term with numbers only

    def _compare(self, other, op) -> np.ndarray:
        if isinstance(other, Term):
            raise InvalidOperation("Comparison between Term objects is not supported")
        return op(self._values, np.asarray(other, dtype=np.float64))

    def __eq__(self, other):
        return self._compare(other, operator.eq)

    def __ne__(self, other):
        return self._compare(other, operator.ne)

    def __lt__(self, other):
        return self._compare(other, operator.lt)

    def __le__(self, other):
        return self._compare(other, operator.le)

    def __gt__(self, other):
        return self._compare(other, operator.gt)

    def __ge__(self, other):
        return self._compare(other, operator.ge)

    def __str__(self) -> str:
        return ", ".join(self.format())

    def __repr__(self) -> str:
        return f"Term({self.format()})"


class DateRangeTerm(Term):
    """
    Term between pairs of dates, in business days of a calendar.

    Attributes:
        start_dates: Period start dates
        end_dates: Period end dates
        calendar: Name of the calendar used to count the days
    """

    def __init__(self, start_dates, end_dates, calendar: str = DEFAULT_CALENDAR):
        starts = np.array(start_dates, dtype="datetime64[D]", ndmin=1).ravel()
        ends = np.array(end_dates, dtype="datetime64[D]", ndmin=1).ravel()
        try:
            starts, ends = np.broadcast_arrays(starts, ends)
        except ValueError:
            raise InvalidArgument("start and end dates have different sizes") from None
        cal = get_calendar(calendar)
        super().__init__(cal.bizdays(starts, ends), "day")
        self._start_dates = starts.copy()
        self._end_dates = ends.copy()
        self._calendar = cal.name

    @property
    def start_dates(self) -> List[date]:
        return self._start_dates.tolist()

    @property
    def end_dates(self) -> List[date]:
        return self._end_dates.tolist()

    @property
    def calendar(self) -> str:
        return self._calendar

    def _take(self, idx: np.ndarray) -> "DateRangeTerm":
        return DateRangeTerm(self._start_dates[idx], self._end_dates[idx], self._calendar)

    def __repr__(self) -> str:
        return (f"DateRangeTerm({self.format()}, start={self.start_dates[:1]}, "
                f"end={self.end_dates[-1:]}, calendar={self._calendar!r})")


def parse_term(x: Union[str, Iterable[str]]) -> Term:
    """
    Parse the canonical string representation of terms.

    Args:
        x: A string like "6 months" or a sequence of such strings

    Returns:
        Term with all parsed values

    Raises:
        InvalidArgument: Malformed strings or mixed units
    """
    items = [x] if isinstance(x, str) else list(x)
    if not items:
        raise InvalidArgument("No terms to parse")
    values, units = [], []
    for item in items:
        match = TERM_PATTERN.match(item.strip()) if isinstance(item, str) else None
        if not match:
            raise InvalidArgument(f"Invalid term: {item!r}. Expected format like '6 months'")
        values.append(float(match.group(1)))
        units.append(match.group(2))
    return Term(values, units)


def _is_date_input(x) -> bool:
    if isinstance(x, (date, np.datetime64)):
        return True
    if isinstance(x, (list, tuple, np.ndarray)) and len(x) > 0:
        first = x[0]
        return isinstance(first, (date, np.datetime64))
    return isinstance(x, np.ndarray) and np.issubdtype(x.dtype, np.datetime64)


def term(x, units_or_end=None, calendar: str = None) -> Term:
    """
    Create a Term.

    Examples:
        term(6, "months")
        term([1, 21, 42])                    # days
        term("6 months")
        term(date(2022, 2, 2), date(2022, 2, 23), "weekends")
    """
    if isinstance(x, Term):
        return x
    if isinstance(x, str):
        return parse_term(x)
    if _is_date_input(x):
        if units_or_end is None:
            raise InvalidArgument("A date range term needs an end date")
        return DateRangeTerm(x, units_or_end, calendar or DEFAULT_CALENDAR)
    return Term(x, units_or_end or DEFAULT_UNITS)


def as_term(x, units: str = DEFAULT_UNITS) -> Term:
    """Coerce Terms, canonical strings or numbers (in units) to a Term."""
    if isinstance(x, Term):
        return x
    if isinstance(x, str) or (isinstance(x, (list, tuple)) and x and isinstance(x[0], str)):
        return parse_term(x)
    return Term(x, units)


__all__ = [
    "Term",
    "DateRangeTerm",
    "term",
    "as_term",
    "parse_term",
    "normalize_units",
    "UNITS",
]
