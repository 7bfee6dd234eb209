"""
Unit tests for spot rate curves.
"""

from datetime import date
import numpy as np
import pandas as pd
import pytest

from spotcurve.curves import (
    FlatForward,
    ForwardRateCurve,
    Linear,
    NaturalSpline,
    NelsonSiegel,
    SpotRateCurve,
    fit_interpolation,
    set_interpolation,
)
from spotcurve.exceptions import (
    InsufficientData,
    InvalidArgument,
    InvalidOperation,
    SlotMismatch,
    UnboundInterpolationError,
)
from spotcurve.spotrate import SpotRate
from spotcurve.term import DateRangeTerm, Term

TERMS = [1, 21, 42, 63, 126, 252]
RATES = [0.10, 0.11, 0.115, 0.12, 0.125, 0.13]


@pytest.fixture
def curve():
    """Unbound curve, terms in business days."""
    return SpotRateCurve(RATES, TERMS, "discrete", "business/252", "actual", refdate=date(2024, 1, 15))


@pytest.fixture
def bound_curve(curve):
    curve.set_interpolation(FlatForward())
    return curve


class TestConstruction:
    """Tests for building curves."""

    def test_basic(self, curve):
        assert len(curve) == 6
        assert curve.units == "day"
        assert curve.refdate == date(2024, 1, 15)
        assert not curve.is_bound
        assert curve.interpolation is None

    def test_sorted_by_term(self):
        c = SpotRateCurve(RATES[::-1], TERMS[::-1], "discrete", "business/252")
        assert list(c.terms.values) == TERMS
        assert list(c.rates.values) == RATES

    def test_from_spotrate(self):
        rates = SpotRate(RATES, "continuous", "actual/365", "weekends")
        c = SpotRateCurve(rates, Term(TERMS, "day"))
        assert c.rates.same_convention(rates)
        assert c.calendar == "weekends"

    def test_string_terms(self):
        c = SpotRateCurve([0.1, 0.11], ["6 months", "1 month"], "simple", "actual/360")
        assert c.units == "month"
        assert list(c.terms.values) == [1.0, 6.0]

    def test_duplicate_terms(self):
        with pytest.raises(InvalidArgument):
            SpotRateCurve([0.1, 0.11], [21, 21], "discrete", "business/252")

    def test_size_mismatch(self):
        with pytest.raises(InvalidArgument):
            SpotRateCurve([0.1, 0.11], [21, 42, 63], "discrete", "business/252")

    def test_needs_conventions(self):
        with pytest.raises(InvalidArgument):
            SpotRateCurve([0.1, 0.11], [21, 42])

    def test_bound_at_construction(self):
        c = SpotRateCurve(RATES, TERMS, "discrete", "business/252", interpolation="flat_forward")
        assert c.is_bound
        assert isinstance(c.interpolation, FlatForward)


class TestInterpolationBinding:
    """Tests for setting and unsetting curve interpolation."""

    def test_set_and_unset(self, curve):
        set_interpolation(curve, Linear())
        assert curve.is_bound
        assert curve.prepared.name == "linear"
        curve.interpolation = None
        assert not curve.is_bound

    def test_failed_binding_leaves_curve_unbound(self, curve):
        short = curve[:2]
        with pytest.raises(InsufficientData):
            short.set_interpolation(NaturalSpline())
        assert not short.is_bound
        assert short.interpolation is None

    def test_interpolate_unbound(self, curve):
        with pytest.raises(UnboundInterpolationError):
            curve.interpolate(13)

    def test_interpolate_bound(self, bound_curve):
        r = bound_curve.interpolate([13, 30])
        assert isinstance(r, SpotRate)
        assert r.same_convention(bound_curve.rates)
        assert 0.10 < r.values[0] < 0.11

    def test_fit_interpolation(self, curve):
        fitted = fit_interpolation(NelsonSiegel(), curve)
        assert fitted.has_parameters
        curve.set_interpolation(fitted)
        assert curve.prepared.interpolation is fitted

    def test_fit_interpolation_non_parametric(self, curve):
        with pytest.raises(InvalidArgument):
            fit_interpolation(Linear(), curve)


class TestPositionalAccess:
    """Positional selection returns unbound curves."""

    def test_index(self, curve):
        sub = curve[1:3]
        assert list(sub.terms.values) == [21.0, 42.0]
        assert list(curve[-1].terms.values) == [252.0]
        assert len(curve[0]) == 1

    def test_slice_unbinds(self, bound_curve):
        sub = bound_curve[1:4]
        assert not sub.is_bound
        assert bound_curve.is_bound

    def test_mask(self, curve):
        sub = curve[curve.terms.values > 50]
        assert list(sub.terms.values) == [63.0, 126.0, 252.0]

    def test_drop(self, curve):
        dropped = curve.drop(0)
        assert list(dropped.terms.values) == TERMS[1:]
        assert len(curve) == 6

    def test_replace_keeps_interpolation(self, bound_curve):
        updated = bound_curve.replace(0, 0.2)
        assert updated.rates.values[0] == 0.2
        assert bound_curve.rates.values[0] == 0.10
        assert updated.is_bound
        assert abs(updated.lookup(1).rates.values[0] - 0.2) < 1e-12

    def test_replace_mismatched_rate(self, curve):
        with pytest.raises(SlotMismatch):
            curve.replace(0, SpotRate(0.2, "simple", "actual/360"))

    def test_rates_are_a_copy(self, bound_curve):
        """Editing the returned rates leaves the curve and its interpolation alone."""
        before = bound_curve.interpolate(30).values[0]
        rates = bound_curve.rates
        rates[1] = 0.5
        assert bound_curve.rates.values[1] == 0.11
        assert bound_curve.lookup(21).rates.values[0] == 0.11
        assert bound_curve.interpolate(30).values[0] == before


class TestTermAccess:
    """Term-based lookup, insertion and removal."""

    def test_lookup_exact(self, curve):
        found = curve.lookup([1, 21, 42])
        assert list(found.rates.values) == RATES[:3]
        assert not np.any(np.isnan(found.rates.values))

    def test_lookup_sorts_queries(self, curve):
        found = curve.lookup([21, 1])
        assert list(found.terms.values) == [1.0, 21.0]
        assert list(found.rates.values) == [0.10, 0.11]

    def test_lookup_by_string(self, curve):
        assert curve["21 days"].rates.values[0] == 0.11
        assert curve.lookup("1 year").rates.values[0] == 0.13

    def test_lookup_unbound_missing(self, curve):
        assert np.isnan(curve.lookup(13).rates.values[0])

    def test_lookup_bound_interpolates(self, bound_curve):
        found = bound_curve.lookup([13, 21])
        assert 0.10 < found.rates.values[0] < 0.11
        assert found.rates.values[1] == 0.11
        assert not found.is_bound

    def test_with_rate_inserts(self, bound_curve):
        updated = bound_curve.with_rate(30, 0.112)
        assert list(updated.terms.values) == [1.0, 21.0, 30.0, 42.0, 63.0, 126.0, 252.0]
        assert updated.rates.values[2] == 0.112
        assert updated.is_bound
        assert len(bound_curve) == 6

    def test_with_rate_replaces(self, curve):
        updated = curve.with_rate("21 days", 0.2)
        assert len(updated) == 6
        assert updated.lookup(21).rates.values[0] == 0.2

    def test_drop_terms_bound(self, bound_curve):
        """Removing points from a bound curve is not allowed."""
        with pytest.raises(InvalidOperation):
            bound_curve.drop_terms(21)

    def test_drop_terms_unbound(self, curve):
        dropped = curve.drop_terms([21, 42])
        assert list(dropped.terms.values) == [1.0, 63.0, 126.0, 252.0]

    def test_rebinding_refits_parametric(self, curve):
        curve.set_interpolation(NelsonSiegel())
        before = curve.prepared.interpolation.parameters()
        updated = curve.replace(-1, 0.135)
        after = updated.prepared.interpolation.parameters()
        assert before != after
        assert not updated.interpolation.has_parameters


class TestSubsets:
    """Tests for first, last and closest."""

    def test_first(self, curve):
        assert list(curve.first("50 days").terms.values) == [1.0, 21.0, 42.0]

    def test_first_inclusive(self, curve):
        assert list(curve.first(42).terms.values) == [1.0, 21.0, 42.0]

    def test_last(self, curve):
        assert list(curve.last("6 months").terms.values) == [126.0, 252.0]

    def test_closest(self, curve):
        assert list(curve.closest(40).terms.values) == [42.0]
        assert list(curve.closest("1 year").terms.values) == [252.0]

    def test_closest_tie_goes_to_lower_term(self, curve):
        assert list(curve.closest(31.5).terms.values) == [21.0]

    def test_first_before_first_term_is_empty(self, curve):
        empty = curve.first("0 days")
        assert len(empty) == 0
        assert not empty.is_bound
        assert empty.refdate == curve.refdate
        assert empty.rates.same_convention(curve.rates)

    def test_empty_mask_and_drop(self, curve):
        assert len(curve[curve.terms.values > 1000]) == 0
        assert len(curve.drop(list(range(6)))) == 0

    def test_empty_curve_operations(self, curve):
        empty = curve.first(0)
        assert len(empty.last(10)) == 0
        assert np.isnan(empty.lookup(21).rates.values[0])
        with pytest.raises(InvalidArgument):
            empty.closest(21)
        with pytest.raises(InsufficientData):
            empty.set_interpolation(Linear())


class TestForwardRates:
    """Tests for forward rate computation."""

    def test_forwardrate(self, curve):
        fwd = curve.forwardrate()
        assert isinstance(fwd, ForwardRateCurve)
        assert len(fwd) == 6
        assert abs(fwd.rates.values[0] - 0.10) < 1e-12
        f1 = 1.10 ** (1 / 252)
        f21 = 1.11 ** (21 / 252)
        expected = (f21 / f1) ** (252 / 20) - 1
        assert abs(fwd.rates.values[1] - expected) < 1e-12
        assert list(fwd.start_terms.values) == [0.0] + TERMS[:-1]
        assert list(fwd.periods.values) == [1.0, 20.0, 21.0, 21.0, 63.0, 126.0]

    def test_forwards_compound_to_spot(self, curve):
        """Chaining forward factors reproduces the spot factor."""
        fwd = curve.forwardrate()
        years = fwd.periods.values / 252
        chained = np.prod((1 + fwd.rates.values) ** years)
        assert abs(chained - 1.13) < 1e-12

    def test_date_range_forwards_match_compound(self):
        """Forwards over date ranges chain back to the spot factors."""
        terms = DateRangeTerm(date(2024, 1, 1), [date(2024, 2, 1), date(2024, 7, 1)], "weekends")
        c = SpotRateCurve(SpotRate([0.10, 0.12], "discrete", "actual/365"), terms,
                          refdate=date(2024, 1, 1))
        factors = c.compound()
        fwd = c.forwardrate()
        assert abs(fwd.rates.values[0] - 0.10) < 1e-12
        expected = (factors[1] / factors[0]) ** (365 / (182 - 31)) - 1
        assert abs(fwd.rates.values[1] - expected) < 1e-12
        chained = (1 + fwd.rates.values[0]) ** (31 / 365) * (1 + fwd.rates.values[1]) ** (151 / 365)
        assert abs(chained - factors[1]) < 1e-12

    def test_date_range_forward_rate_between_terms(self):
        terms = DateRangeTerm(date(2024, 1, 1), [date(2024, 2, 1), date(2024, 7, 1)], "weekends")
        c = SpotRateCurve(SpotRate([0.10, 0.12], "discrete", "actual/365"), terms,
                          refdate=date(2024, 1, 1))
        factors = c.compound()
        fwd = c.forward_rate(terms.values[0], terms.values[1])
        assert abs(fwd.values[0] - ((factors[1] / factors[0]) ** (365 / 151) - 1)) < 1e-12

    def test_forward_rate_between_terms(self, curve):
        fwd = curve.forward_rate(21, 42)
        f21 = 1.11 ** (21 / 252)
        f42 = 1.115 ** (42 / 252)
        assert abs(fwd.values[0] - ((f42 / f21) ** (252 / 21) - 1)) < 1e-12

    def test_forward_rate_order(self, curve):
        with pytest.raises(InvalidArgument):
            curve.forward_rate(42, 21)

    def test_daily_needs_bound_curve(self, curve):
        with pytest.raises(InvalidOperation):
            curve.forwardrate(daily=True)

    def test_daily(self, bound_curve):
        fwd = bound_curve.forwardrate(daily=True)
        assert len(fwd) == 252
        assert fwd.end_terms.values[0] == 1.0
        assert fwd.end_terms.values[-1] == 252.0
        # Flat forward: constant forwards between knots
        np.testing.assert_allclose(fwd.rates.values[1:21], fwd.rates.values[1], rtol=1e-9)


class TestFactorsAndOutput:
    """Tests for compounding factors, maturities and frames."""

    def test_compound_and_discount(self, curve):
        years = np.array(TERMS) / 252
        expected = (1 + np.array(RATES)) ** years
        np.testing.assert_allclose(curve.compound(), expected)
        np.testing.assert_allclose(curve.discount(), 1 / expected)

    def test_maturities_business_days(self):
        c = SpotRateCurve([0.1, 0.11], [1, 5], "discrete", "business/252", "weekends",
                          refdate=date(2024, 1, 19))
        assert c.maturities() == [date(2024, 1, 22), date(2024, 1, 26)]

    def test_maturities_months(self):
        c = SpotRateCurve([0.1, 0.11], [1, 6], "simple", "actual/360", refdate=date(2024, 1, 31))
        c_months = SpotRateCurve(c.rates, Term([1, 6], "month"), refdate=date(2024, 1, 31))
        assert c_months.maturities() == [date(2024, 2, 29), date(2024, 7, 31)]

    def test_to_frame(self, curve):
        frame = curve.to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["term", "rate"]
        assert list(frame["term"]) == TERMS

    def test_copy(self, bound_curve):
        c = bound_curve.copy()
        assert c.is_bound
        assert c.interpolation == bound_curve.interpolation
        assert c.rates is not bound_curve.rates

    def test_repr(self, bound_curve):
        text = repr(bound_curve)
        assert "points=6" in text
        assert "flatforward" in text
        assert "discrete business/252 actual" in str(bound_curve)
