"""
Spot rates tagged with their conventions.

A SpotRate is a vector of annual rates that share a compounding regime,
a day count convention and a calendar. Together these three fields say
how a rate turns into a compounding factor over a Term.

Operations between two SpotRate objects require identical conventions:
- Arithmetic (+, -, *, /, **), ordering (<, >, <=, >=) and concatenation
  raise SlotMismatch otherwise.
- Equality degrades instead of raising: == is False and != is True
  whenever the conventions differ, whatever the numbers.

Operations with plain numbers act on the numeric part only.

String representation: "RATE COMPOUNDING DAYCOUNT CALENDAR", e.g.
"0.06 simple actual/365 actual".
"""

import operator
from typing import List, Optional, Sequence, Union

import numpy as np

from .config import DEFAULT_CALENDAR
from .conventions import Compounding, Daycount
from .dates import Calendar
from .exceptions import InvalidArgument, SlotMismatch
from .term import as_term


def _format_rate(value: float) -> str:
    return np.format_float_positional(value, trim="-")


class SpotRate:
    """
    Vector of annual spot rates with compounding, daycount and calendar.

    Attributes:
        values: Rate values (decimal), read-only view
        compounding: Compounding regime
        daycount: Day count convention
        calendar: Calendar name
    """

    __hash__ = None
    # Keep numpy from unwrapping SpotRate operands into plain arrays.
    __array_ufunc__ = None

    def __init__(
        self,
        values,
        compounding: Union[str, Compounding],
        daycount: Union[str, Daycount],
        calendar: Union[str, Calendar] = DEFAULT_CALENDAR,
    ):
        if isinstance(calendar, Calendar):
            calendar = calendar.name
        if not isinstance(calendar, str) or not calendar.strip():
            raise InvalidArgument(f"Invalid calendar: {calendar!r}")
        self._values = np.array(values, dtype=np.float64, ndmin=1).ravel()
        self._compounding = Compounding.from_string(compounding)
        self._daycount = Daycount.from_string(daycount)
        self._calendar = calendar.strip()

    @property
    def values(self) -> np.ndarray:
        view = self._values.view()
        view.flags.writeable = False
        return view

    @property
    def compounding(self) -> Compounding:
        return self._compounding

    @property
    def daycount(self) -> Daycount:
        return self._daycount

    @property
    def calendar(self) -> str:
        return self._calendar

    def with_values(self, values) -> "SpotRate":
        """New SpotRate with other values and the same conventions."""
        return SpotRate(values, self._compounding, self._daycount, self._calendar)

    def copy(self) -> "SpotRate":
        return self.with_values(self._values.copy())

    def same_convention(self, other: "SpotRate") -> bool:
        """True when compounding, daycount and calendar all match."""
        return (
            self._compounding == other.compounding
            and self._daycount == other.daycount
            and self._calendar == other.calendar
        )

    def _check_convention(self, other: "SpotRate") -> None:
        if not self.same_convention(other):
            raise SlotMismatch(
                f"SpotRate objects have different slots: "
                f"({self._convention_str()}) vs ({other._convention_str()})"
            )

    def _convention_str(self) -> str:
        return f"{self._compounding} {self._daycount} {self._calendar}"

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self):
        return (float(v) for v in self._values)

    def __array__(self, dtype=None, copy=None):
        return np.array(self._values, dtype=dtype)

    def __getitem__(self, key) -> "SpotRate":
        idx = np.atleast_1d(np.arange(len(self))[key])
        return self.with_values(self._values[idx])

    def __setitem__(self, key, value) -> None:
        """Assign numeric values in place; conventions are preserved."""
        if isinstance(value, SpotRate):
            self._check_convention(value)
            value = value.values
        self._values[key] = np.asarray(value, dtype=np.float64)

    def concat(self, *others) -> "SpotRate":
        """
        Concatenate spot rates.

        SpotRate operands must share this object's conventions; plain
        numbers are taken as rates under the same conventions.
        """
        parts = [self._values]
        for other in others:
            if isinstance(other, SpotRate):
                self._check_convention(other)
                parts.append(other.values)
            else:
                parts.append(np.array(other, dtype=np.float64, ndmin=1).ravel())
        return self.with_values(np.concatenate(parts))

    # Arithmetic

    def _arith(self, other, op, reflected=False) -> "SpotRate":
        if isinstance(other, SpotRate):
            self._check_convention(other)
            other = other.values
        other = np.asarray(other, dtype=np.float64)
        result = op(other, self._values) if reflected else op(self._values, other)
        return self.with_values(result)

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

    def __rtruediv__(self, other):
        return self._arith(other, operator.truediv, reflected=True)

    def __pow__(self, other):
        return self._arith(other, operator.pow)

    def __neg__(self):
        return self.with_values(-self._values)

    # Comparison

    def _order(self, other, op) -> np.ndarray:
        if isinstance(other, SpotRate):
            self._check_convention(other)
            other = other.values
        return op(self._values, np.asarray(other, dtype=np.float64))

    def __lt__(self, other):
        return self._order(other, operator.lt)

    def __le__(self, other):
        return self._order(other, operator.le)

    def __gt__(self, other):
        return self._order(other, operator.gt)

    def __ge__(self, other):
        return self._order(other, operator.ge)

    def __eq__(self, other):
        if isinstance(other, SpotRate):
            return np.equal(self._values, other.values) & self.same_convention(other)
        return np.equal(self._values, np.asarray(other, dtype=np.float64))

    def __ne__(self, other):
        if isinstance(other, SpotRate):
            return np.not_equal(self._values, other.values) | (not self.same_convention(other))
        return np.not_equal(self._values, np.asarray(other, dtype=np.float64))

    # Compounding over terms

    def compound(self, term) -> np.ndarray:
        """
        Compounding factors over a term.

        Args:
            term: Term, canonical term string or number of days
        """
        t = self._daycount.time_factor(as_term(term), self._calendar)
        return np.asarray(self._compounding.compound(t, self._values))

    def discount(self, term) -> np.ndarray:
        """Discount factors over a term (inverse of compound)."""
        return 1.0 / self.compound(term)

    @classmethod
    def from_factor(
        cls,
        factor,
        term,
        compounding: Union[str, Compounding],
        daycount: Union[str, Daycount],
        calendar: str = DEFAULT_CALENDAR,
    ) -> "SpotRate":
        """
        Spot rate implied by compounding factors over a term.

        Args:
            factor: Compounding factor(s)
            term: Horizon of the factors
        """
        compounding = Compounding.from_string(compounding)
        daycount = Daycount.from_string(daycount)
        t = daycount.time_factor(as_term(term), calendar)
        rates = compounding.implied_rate(t, factor)
        return cls(rates, compounding, daycount, calendar)

    def convert(
        self,
        term,
        compounding: Optional[Union[str, Compounding]] = None,
        daycount: Optional[Union[str, Daycount]] = None,
        calendar: Optional[str] = None,
    ) -> "SpotRate":
        """
        Equivalent rate under other conventions.

        The rate is converted so that both conventions produce the same
        compounding factor over the given term. Converting between day
        count rules is exact for DateRangeTerm objects, which carry the
        dates to recount the days.
        """
        factor = self.compound(term)
        return SpotRate.from_factor(
            factor,
            term,
            compounding if compounding is not None else self._compounding,
            daycount if daycount is not None else self._daycount,
            calendar if calendar is not None else self._calendar,
        )

    def format(self) -> List[str]:
        conv = self._convention_str()
        return [f"{_format_rate(v)} {conv}" for v in self._values]

    def __str__(self) -> str:
        return "\n".join(self.format())

    def __repr__(self) -> str:
        values = ", ".join(_format_rate(v) for v in self._values[:6])
        more = ", ..." if len(self) > 6 else ""
        return f"SpotRate([{values}{more}], {self._convention_str()})"


def spotrate(
    x=None,
    compounding=None,
    daycount=None,
    calendar=None,
    copy_from: Optional[SpotRate] = None,
) -> SpotRate:
    """
    Create a SpotRate.

    Fields left as None are copied from copy_from when given.

    Examples:
        spotrate(0.06, "continuous", "actual/365", "actual")
        spotrate([0.06, 0.07], copy_from=other)
    """
    if copy_from is not None:
        x = copy_from.values.copy() if x is None else x
        compounding = copy_from.compounding if compounding is None else compounding
        daycount = copy_from.daycount if daycount is None else daycount
        calendar = copy_from.calendar if calendar is None else calendar
    if x is None or compounding is None or daycount is None:
        raise InvalidArgument("spotrate needs values, compounding and daycount")
    return SpotRate(x, compounding, daycount, calendar or DEFAULT_CALENDAR)


def _parse_one(spec: str) -> tuple:
    parts = spec.split() if isinstance(spec, str) else []
    if len(parts) != 4:
        raise InvalidArgument(f"Invalid spotrate specification: {spec!r}")
    try:
        value = float(parts[0])
    except ValueError:
        raise InvalidArgument(f"Invalid spotrate value: {parts[0]!r}") from None
    return value, parts[1], parts[2], parts[3]


def parse_spotrate(
    x: Union[str, Sequence[str]], simplify: bool = True
) -> Union[SpotRate, List[SpotRate]]:
    """
    Parse "RATE COMPOUNDING DAYCOUNT CALENDAR" strings.

    Args:
        x: One string or a sequence of strings
        simplify: Return a single SpotRate when all entries share their
            conventions

    Returns:
        A SpotRate, or a list with one SpotRate per entry when the
        conventions differ (or simplify is False)
    """
    items = [x] if isinstance(x, str) else list(x)
    if not items:
        raise InvalidArgument("No spot rates to parse")
    parsed = [_parse_one(item) for item in items]
    specs = {p[1:] for p in parsed}
    if simplify and len(specs) == 1:
        comp, dc, cal = specs.pop()
        return SpotRate([p[0] for p in parsed], comp, dc, cal)
    return [SpotRate(value, comp, dc, cal) for value, comp, dc, cal in parsed]


__all__ = [
    "SpotRate",
    "spotrate",
    "parse_spotrate",
]
