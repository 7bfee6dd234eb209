"""
Spot rate curves.

A SpotRateCurve is an ordered set of (term, spot rate) points sharing one
set of rate conventions, plus an optional interpolation method.

Setting an interpolation prepares it against the current points (the
curve is then bound). Operations that change points return new curves;
those that keep the interpolation prepare it again on the new points, so
a bound curve never evaluates an interpolation fitted to other data.

Indexing:
- curve[i], curve[i:j], curve[[i, j]], curve[mask]: positional selection,
  returns an unbound curve
- curve[term] / curve.lookup(terms): term-based query; stored rates for
  exact matches, interpolated rates otherwise, NaN when unbound
"""

from datetime import date
import logging
from typing import Optional, Union

import numpy as np
import pandas as pd

from ..config import FitConfig
from ..conventions import Compounding, Daycount
from ..dates import add_months, get_calendar
from ..exceptions import (
    InsufficientData,
    InvalidArgument,
    InvalidOperation,
    UnboundInterpolationError,
)
from ..spotrate import SpotRate
from ..term import DateRangeTerm, Term, as_term
from .interpolation import Interpolation, PreparedInterpolation, create_interpolation

logger = logging.getLogger(__name__)

MISSING = np.nan


class SpotRateCurve:
    """
    Term structure of spot rates.

    Attributes:
        terms: Sorted, unique terms
        rates: Spot rates, one per term
        refdate: Reference date (term zero)
        interpolation: Interpolation method set on the curve, if any
    """

    def __init__(
        self,
        rates,
        terms,
        compounding: Optional[Union[str, Compounding]] = None,
        daycount: Optional[Union[str, Daycount]] = None,
        calendar: Optional[str] = None,
        refdate: Optional[date] = None,
        interpolation: Optional[Union[Interpolation, str]] = None,
    ):
        if isinstance(rates, SpotRate):
            rates = SpotRate(
                rates.values,
                compounding if compounding is not None else rates.compounding,
                daycount if daycount is not None else rates.daycount,
                calendar if calendar is not None else rates.calendar,
            )
        else:
            if compounding is None or daycount is None:
                raise InvalidArgument("compounding and daycount are required for numeric rates")
            rates = SpotRate(rates, compounding, daycount, calendar or "actual")
        terms = as_term(terms)

        if len(terms) != len(rates):
            raise InvalidArgument(
                f"terms and rates have different sizes: {len(terms)} != {len(rates)}"
            )
        if len(terms) == 0:
            raise InvalidArgument("A curve needs at least one point")
        if np.any(np.isnan(terms.values)):
            raise InvalidArgument("Curve terms cannot be missing")

        order = np.argsort(terms.values, kind="stable")
        sorted_terms = terms.values[order]
        if np.any(np.diff(sorted_terms) == 0):
            dup = np.unique(sorted_terms[:-1][np.diff(sorted_terms) == 0])
            raise InvalidArgument(f"Duplicated curve terms: {dup.tolist()}")

        self._terms = terms[order]
        self._rates = rates[order]
        self._refdate = refdate if refdate is not None else date.today()
        self._interpolation: Optional[Interpolation] = None
        self._prepared: Optional[PreparedInterpolation] = None
        if interpolation is not None:
            self.set_interpolation(interpolation)

    # Accessors

    @property
    def terms(self) -> Term:
        return self._terms

    @property
    def rates(self) -> SpotRate:
        """Copy of the curve rates; edits go through replace() or with_rate()."""
        return self._rates.copy()

    @property
    def refdate(self) -> date:
        return self._refdate

    @property
    def units(self) -> str:
        return self._terms.units

    @property
    def compounding(self) -> Compounding:
        return self._rates.compounding

    @property
    def daycount(self) -> Daycount:
        return self._rates.daycount

    @property
    def calendar(self) -> str:
        return self._rates.calendar

    @property
    def prepared(self) -> Optional[PreparedInterpolation]:
        """Bound interpolation state, None when unbound."""
        return self._prepared

    @property
    def is_bound(self) -> bool:
        return self._prepared is not None

    @property
    def interpolation(self) -> Optional[Interpolation]:
        return self._interpolation

    @interpolation.setter
    def interpolation(self, value: Optional[Union[Interpolation, str]]) -> None:
        self.set_interpolation(value)

    def set_interpolation(self, interpolation: Optional[Union[Interpolation, str]]) -> None:
        """
        Bind an interpolation method to the curve, or unbind with None.

        The method is prepared against the current points; the curve is
        left untouched when preparation fails.
        """
        if interpolation is None:
            if self._interpolation is not None:
                logger.debug("Unbinding %s interpolation", self._interpolation.name)
            self._interpolation = None
            self._prepared = None
            return
        if isinstance(interpolation, str):
            interpolation = create_interpolation(interpolation)
        if not isinstance(interpolation, Interpolation):
            raise InvalidArgument(f"Not an interpolation: {interpolation!r}")
        if len(self) == 0:
            raise InsufficientData(interpolation.name, max(1, interpolation.required_points()), 0)
        prepared = interpolation.prepare(self._terms, self._rates)
        self._interpolation = interpolation
        self._prepared = prepared
        logger.debug("Bound %s interpolation to curve with %d points", interpolation.name, len(self))

    # Construction helpers

    def _new(self, terms, rates, interpolation: Optional[Interpolation] = None) -> "SpotRateCurve":
        if not isinstance(rates, SpotRate):
            rates = self._rates.with_values(rates)
        if len(terms) == 0:
            return self._empty(terms, rates)
        return SpotRateCurve(
            rates, terms, refdate=self._refdate, interpolation=interpolation
        )

    def _empty(self, terms: Term, rates: SpotRate) -> "SpotRateCurve":
        """Unbound curve without points, the result of slices matching no rows."""
        curve = object.__new__(SpotRateCurve)
        curve._terms = terms
        curve._rates = rates
        curve._refdate = self._refdate
        curve._interpolation = None
        curve._prepared = None
        return curve

    def copy(self) -> "SpotRateCurve":
        """Copy of the curve, bound to the same interpolation method."""
        return self._new(self._terms, self._rates.copy(), self._interpolation)

    def _curve_term(self, x) -> Term:
        """Coerce a query to a Term in the curve units; numbers are curve units."""
        t = as_term(x, self.units)
        if t.units == self.units:
            return t
        years = self.daycount.time_factor(t, self.calendar)
        return Term(self.daycount.term_from_years(years, self.units), self.units)

    def _years(self, values) -> np.ndarray:
        return self.daycount.year_map(self._terms, self.calendar)(values)

    def __len__(self) -> int:
        return len(self._terms)

    # Positional operations

    def _positions(self, key) -> np.ndarray:
        return np.atleast_1d(np.arange(len(self))[key])

    def __getitem__(self, key) -> "SpotRateCurve":
        """
        Positional selection, or term-based lookup for Term/string keys.

        Positional results are unbound: the interpolation was prepared
        against a different set of points.
        """
        if isinstance(key, (Term, str)):
            return self.lookup(key)
        idx = self._positions(key)
        return self._new(self._terms[idx], self._rates[idx])

    def drop(self, positions) -> "SpotRateCurve":
        """Remove rows by position; the result is unbound."""
        mask = np.ones(len(self), dtype=bool)
        mask[self._positions(positions)] = False
        return self._new(self._terms[mask], self._rates[mask])

    def replace(self, positions, values) -> "SpotRateCurve":
        """
        New curve with the rates at positions replaced.

        The interpolation, if any, is prepared again on the new rates.
        """
        rates = self._rates.copy()
        rates[self._positions(positions)] = values
        return self._new(self._terms, rates, self._interpolation)

    # Term-based operations

    def lookup(self, terms) -> "SpotRateCurve":
        """
        Rates at the given terms.

        Exact matches return the stored rates. Other terms are
        interpolated when the curve is bound and are NaN otherwise.

        Args:
            terms: Term, canonical string(s) or numbers in curve units

        Returns:
            Unbound curve with the (sorted, unique) queried terms
        """
        query = np.unique(self._curve_term(terms).values)
        known = self._terms.values
        if len(known) == 0:
            return self._new(Term(query, self.units), np.full(len(query), MISSING))
        pos = np.clip(np.searchsorted(known, query), 0, len(known) - 1)
        exact = known[pos] == query
        values = np.full(len(query), MISSING)
        values[exact] = self._rates.values[pos[exact]]
        if self.is_bound and np.any(~exact):
            values[~exact] = self._prepared(query[~exact])
        return self._new(Term(query, self.units), values)

    def with_rate(self, terms, values) -> "SpotRateCurve":
        """
        New curve with rates set at terms.

        Existing terms get the new rates, new terms are inserted in
        order. The interpolation, if any, is prepared again.
        """
        query = self._curve_term(terms).values
        if isinstance(values, SpotRate):
            self._rates._check_convention(values)
            values = values.values
        new_values = np.broadcast_to(np.asarray(values, dtype=np.float64), query.shape)
        if len(np.unique(query)) != len(query):
            raise InvalidArgument("Duplicated terms in update")

        known = self._terms.values
        rates = np.array(self._rates.values)
        keep = ~np.isin(known, query)
        all_terms = np.concatenate([known[keep], query])
        all_rates = np.concatenate([rates[keep], new_values])
        return self._new(Term(all_terms, self.units), all_rates, self._interpolation)

    def drop_terms(self, terms) -> "SpotRateCurve":
        """
        New curve without the given terms.

        Raises:
            InvalidOperation: The curve is bound; removing points would
                invalidate the interpolation fitted to them
        """
        if self.is_bound:
            raise InvalidOperation(
                f"Cannot remove terms from a curve bound to {self._interpolation.name} "
                f"interpolation; unset the interpolation first"
            )
        query = self._curve_term(terms).values
        mask = ~np.isin(self._terms.values, query)
        return self._new(self._terms[mask], self._rates[mask])

    def _limit(self, limit) -> float:
        t = self._curve_term(limit)
        if len(t) != 1:
            raise InvalidArgument("Expected a single term")
        return float(t.values[0])

    def first(self, limit) -> "SpotRateCurve":
        """Points with terms up to limit (inclusive), measured from the reference date."""
        bound = self._limit(limit)
        return self[self._terms.values <= bound]

    def last(self, limit) -> "SpotRateCurve":
        """Points with terms within limit (inclusive) of the last term."""
        if len(self) == 0:
            return self.copy()
        bound = self._terms.values[-1] - self._limit(limit)
        return self[self._terms.values >= bound]

    def closest(self, term) -> "SpotRateCurve":
        """Single point closest to term; ties go to the lower term."""
        if len(self) == 0:
            raise InvalidArgument("An empty curve has no closest point")
        target = self._limit(term)
        distance = np.abs(self._terms.values - target)
        return self[int(np.argmin(distance))]

    # Rates, factors and forwards

    def interpolate(self, terms) -> SpotRate:
        """
        Interpolated rates at terms, ignoring exact matches.

        Raises:
            UnboundInterpolationError: No interpolation set on the curve
        """
        if self._prepared is None:
            raise UnboundInterpolationError("Curve has no interpolation")
        return self._rates.with_values(self._prepared(self._curve_term(terms)))

    def compound(self) -> np.ndarray:
        """Compounding factors of the curve points."""
        return self._rates.compound(self._terms)

    def discount(self) -> np.ndarray:
        """Discount factors of the curve points."""
        return 1.0 / self.compound()

    def forward_rate(self, t1, t2) -> SpotRate:
        """
        Forward rate between two terms.

        Rates at t1 and t2 come from lookup(), so they are interpolated
        when the curve is bound.
        """
        start, end = self._limit(t1), self._limit(t2)
        if end <= start:
            raise InvalidArgument("t2 must be greater than t1")
        rates = self.lookup([start, end]).rates.values
        years = self._years([start, end])
        factors = self.compounding.compound(years, rates)
        fwd = self.compounding.implied_rate(years[1] - years[0], factors[1] / factors[0])
        return self._rates.with_values(fwd)

    def forwardrate(self, daily: bool = False) -> "ForwardRateCurve":
        """
        Forward rates between consecutive terms.

        The first forward runs from the reference date to the first term
        and equals the first spot rate.

        Args:
            daily: Use every day between the first and last terms,
                interpolating the missing ones (needs a bound curve with
                terms in days)
        """
        if daily:
            if not self.is_bound:
                raise InvalidOperation("Daily forward rates need a bound interpolation")
            if self.units != "day":
                raise InvalidArgument(f"Daily forward rates need terms in days, not {self.units}")
            known = self._terms.values
            grid = np.union1d(np.arange(np.ceil(known[0]), np.floor(known[-1]) + 1), known)
            end_terms = grid
            rates = self.lookup(grid).rates.values
        else:
            end_terms = self._terms.values
            rates = self._rates.values

        start_terms = np.concatenate([[0.0], end_terms[:-1]])
        years_end = self._years(end_terms)
        years_start = self._years(start_terms)
        factors = np.asarray(self.compounding.compound(years_end, rates))
        prev = np.concatenate([[1.0], factors[:-1]])
        fwd = self.compounding.implied_rate(years_end - years_start, factors / prev)
        return ForwardRateCurve(
            self._rates.with_values(fwd),
            Term(start_terms, self.units),
            Term(end_terms, self.units),
            self._refdate,
        )

    def maturities(self) -> list:
        """Maturity dates of the curve terms, counted from the reference date."""
        if isinstance(self._terms, DateRangeTerm):
            return self._terms.end_dates
        values = self._terms.values
        if self.units == "day":
            return get_calendar(self.calendar).add_bizdays(self._refdate, values.astype(np.int64))
        months = values if self.units == "month" else values * 12
        if np.any(months != np.round(months)):
            raise InvalidArgument("Maturities need whole months")
        return [add_months(self._refdate, int(m)) for m in months]

    def to_frame(self) -> pd.DataFrame:
        """Curve points as a DataFrame with term and rate columns."""
        return pd.DataFrame({
            "term": self._terms.values,
            "rate": self._rates.values,
        })

    def __str__(self) -> str:
        header = (f"SpotRateCurve {self.compounding} {self.daycount} {self.calendar} "
                  f"refdate={self._refdate} units={self.units}")
        if self._interpolation is not None:
            header += f" interpolation={self._interpolation.name}"
        return header + "\n" + self.to_frame().to_string(index=False)

    def __repr__(self) -> str:
        interp = self._interpolation.name if self._interpolation is not None else None
        return (f"SpotRateCurve(refdate={self._refdate}, points={len(self)}, units={self.units}, "
                f"conventions='{self.compounding} {self.daycount} {self.calendar}', "
                f"interpolation={interp})")


class ForwardRateCurve:
    """
    Forward rates between consecutive terms of a spot rate curve.

    Attributes:
        rates: Forward rates, with the spot curve conventions
        start_terms: Start of each forward period
        end_terms: End of each forward period
        refdate: Reference date of the spot curve
    """

    def __init__(self, rates: SpotRate, start_terms: Term, end_terms: Term, refdate: date):
        if not (len(rates) == len(start_terms) == len(end_terms)):
            raise InvalidArgument("rates, start and end terms have different sizes")
        self.rates = rates
        self.start_terms = start_terms
        self.end_terms = end_terms
        self.refdate = refdate

    @property
    def periods(self) -> Term:
        """Length of each forward period."""
        return Term(self.end_terms.values - self.start_terms.values, self.end_terms.units)

    def __len__(self) -> int:
        return len(self.rates)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "start": self.start_terms.values,
            "end": self.end_terms.values,
            "rate": self.rates.values,
        })

    def __repr__(self) -> str:
        return (f"ForwardRateCurve(refdate={self.refdate}, periods={len(self)}, "
                f"units={self.end_terms.units})")


def set_interpolation(
    curve: SpotRateCurve, interpolation: Optional[Union[Interpolation, str]]
) -> SpotRateCurve:
    """Bind (or unbind with None) an interpolation on a curve; returns the curve."""
    curve.set_interpolation(interpolation)
    return curve


def fit_interpolation(
    interpolation: Interpolation,
    curve: SpotRateCurve,
    config: Optional[FitConfig] = None,
) -> Interpolation:
    """
    Fit a parametric interpolation to the curve points.

    Args:
        interpolation: NelsonSiegel or NelsonSiegelSvensson; its parameters,
            when given, are the initial guess
        curve: Curve whose points are fitted
        config: Optimizer settings

    Returns:
        New interpolation carrying the fitted parameters

    Raises:
        FitError: The optimizer did not converge
    """
    if not hasattr(interpolation, "fit"):
        raise InvalidArgument(f"{interpolation.name} interpolation has no parameters to fit")
    return interpolation.fit(curve.terms, curve.rates, config)


__all__ = [
    "SpotRateCurve",
    "ForwardRateCurve",
    "set_interpolation",
    "fit_interpolation",
    "MISSING",
]
