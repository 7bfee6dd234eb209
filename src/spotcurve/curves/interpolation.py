"""
Interpolation methods for spot rate curves.

Provides:
- FlatForward: piecewise constant forward rates (linear log compounding factors)
- Linear: linear interpolation of rates
- LogLinear: linear interpolation of log rates
- NaturalSpline: cubic spline with zero second derivative at the ends
- HermiteSpline: cubic Hermite spline with Catmull-Rom tangents
- MonotoneSpline: cubic Hermite spline with Fritsch-Carlson tangents
- NelsonSiegel / NelsonSiegelSvensson: parametric models

An Interpolation object only describes a method. prepare() binds it to
sample (term, rate) points and returns a PreparedInterpolation, which is
the callable mapping terms to rates. Queries are numbers in the units of
the sample terms, or Term objects.

Outside the sample range each method extrapolates with its natural
boundary behaviour; with propagate=True the boundary rates are held flat.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from typing import Callable, Dict, List, Optional, Type

import numpy as np
from scipy.interpolate import CubicHermiteSpline, CubicSpline

from ..config import FitConfig
from ..conventions import Daycount
from ..exceptions import InsufficientData, InvalidArgument, UnboundInterpolationError
from ..spotrate import SpotRate
from ..term import Term, as_term
from .nss import (
    default_initial_guess,
    fit_parameters,
    model_parameters,
    nelson_siegel,
    nelson_siegel_svensson,
)

logger = logging.getLogger(__name__)

RateFunction = Callable[[np.ndarray], np.ndarray]

_REGISTRY: Dict[str, Type["Interpolation"]] = {}


def register_interpolation(cls: Type["Interpolation"]) -> Type["Interpolation"]:
    """Class decorator adding an interpolation method to the registry."""
    if not cls.name:
        raise InvalidArgument(f"{cls.__name__} has no name")
    _REGISTRY[cls.name] = cls
    return cls


def available_interpolations() -> List[str]:
    """Names of the registered interpolation methods."""
    return sorted(_REGISTRY)


@dataclass(frozen=True, eq=False)
class Samples:
    """Sample points an interpolation is prepared against."""
    terms: np.ndarray
    rates: np.ndarray
    units: str
    spotrate: Optional[SpotRate] = None
    to_years: Optional[Callable[[np.ndarray], np.ndarray]] = field(default=None, repr=False)

    @property
    def daycount(self) -> Optional[Daycount]:
        return None if self.spotrate is None else self.spotrate.daycount

    def years(self, x: np.ndarray) -> np.ndarray:
        """Convert values in sample units to years (identity without a daycount)."""
        if self.to_years is None:
            return np.asarray(x, dtype=np.float64)
        return self.to_years(x)

    def __len__(self) -> int:
        return len(self.terms)


def _samples(terms, rates) -> Samples:
    terms = as_term(terms)
    spr = rates if isinstance(rates, SpotRate) else None
    x = np.array(terms.values, dtype=np.float64)
    y = np.array(rates, dtype=np.float64, ndmin=1).ravel()
    if len(x) != len(y):
        raise InvalidArgument(f"terms and rates have different sizes: {len(x)} != {len(y)}")
    if np.any(np.isnan(x)) or np.any(np.isnan(y)):
        raise InvalidArgument("Cannot interpolate missing terms or rates")
    if np.any(np.diff(x) <= 0):
        raise InvalidArgument("Terms must be strictly increasing")
    to_years = None if spr is None else spr.daycount.year_map(terms, spr.calendar)
    return Samples(terms=x, rates=y, units=terms.units, spotrate=spr, to_years=to_years)


def _hold_flat(q: np.ndarray, samples: Samples, values: np.ndarray) -> np.ndarray:
    """Replace values outside the sample range by the boundary rates."""
    out = np.array(values, dtype=np.float64)
    out[q < samples.terms[0]] = samples.rates[0]
    out[q > samples.terms[-1]] = samples.rates[-1]
    return out


def _linear_extrapolate(q: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Linear interpolation, extended beyond the ends with the boundary slopes."""
    out = np.interp(q, x, y)
    left = q < x[0]
    right = q > x[-1]
    if np.any(left):
        slope = (y[1] - y[0]) / (x[1] - x[0])
        out[left] = y[0] + slope * (q[left] - x[0])
    if np.any(right):
        slope = (y[-1] - y[-2]) / (x[-1] - x[-2])
        out[right] = y[-1] + slope * (q[right] - x[-1])
    return out


class Interpolation(ABC):
    """
    Abstract interpolation method.

    Instances are immutable descriptions; prepare() produces the bound
    state for given sample points.

    Attributes:
        name: Method name used by the registry
        propagate: Hold boundary rates flat outside the sample range
    """

    name: str = ""
    min_points: int = 2

    def __init__(self, propagate: bool = False):
        self._propagate = bool(propagate)

    @property
    def propagate(self) -> bool:
        return self._propagate

    def required_points(self) -> int:
        """Minimum number of sample points prepare() accepts."""
        return self.min_points

    def prepare(self, terms, rates) -> "PreparedInterpolation":
        """
        Bind the method to sample points.

        Args:
            terms: Sample terms (Term, or numbers in days), strictly increasing
            rates: Sample rates; a SpotRate is required by methods working
                with compounding factors (FlatForward)

        Returns:
            PreparedInterpolation evaluating the interpolated rates

        Raises:
            InsufficientData: Fewer sample points than the method needs
        """
        samples = _samples(terms, rates)
        required = self.required_points()
        if len(samples) < required:
            raise InsufficientData(self.name, required, len(samples))
        func = self._build(samples)
        logger.debug("Prepared %s interpolation on %d points", self.name, len(samples))
        return PreparedInterpolation(interpolation=self, samples=samples, func=func)

    @abstractmethod
    def _build(self, samples: Samples) -> RateFunction:
        """Create the function mapping query terms (sample units) to rates."""

    def evaluate(self, x) -> np.ndarray:
        """Unprepared interpolations cannot be evaluated."""
        raise UnboundInterpolationError(
            f"{self.name} interpolation is not bound to any data; "
            f"call prepare() or set it on a curve first"
        )

    __call__ = evaluate

    def _state(self) -> tuple:
        return (self._propagate,)

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self._state() == other._state()

    def __hash__(self) -> int:
        return hash((type(self), self._state()))

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        extra = ", propagate=True" if self._propagate else ""
        return f"<Interpolation: {self.name}{extra}>"


@dataclass(frozen=True, eq=False)
class PreparedInterpolation:
    """
    Interpolation bound to sample points.

    Attributes:
        interpolation: The method (fitted parameters included for parametric models)
        samples: Points the method was prepared against
        func: Rate function over sample units
    """
    interpolation: Interpolation
    samples: Samples
    func: RateFunction = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.interpolation.name

    @property
    def units(self) -> str:
        return self.samples.units

    def _query(self, x) -> np.ndarray:
        if isinstance(x, (Term, str)) or (isinstance(x, (list, tuple)) and x and isinstance(x[0], str)):
            t = as_term(x)
            if t.units == self.units:
                return np.array(t.values, dtype=np.float64)
            daycount = self.samples.daycount
            if daycount is None:
                raise InvalidArgument(
                    f"Cannot query {t.units} terms on {self.units} samples without a daycount"
                )
            return daycount.term_from_years(daycount.time_factor(t), self.units)
        return np.array(x, dtype=np.float64, ndmin=1).ravel()

    def __call__(self, x) -> np.ndarray:
        """Interpolated rates at x (numbers in sample units, or Terms)."""
        q = self._query(x)
        return np.asarray(self.func(q), dtype=np.float64)

    evaluate = __call__


def prepare(interpolation: Interpolation, terms, rates) -> PreparedInterpolation:
    """Bind an interpolation method to sample points."""
    return interpolation.prepare(terms, rates)


def evaluate(prepared: PreparedInterpolation, x) -> np.ndarray:
    """
    Evaluate a prepared interpolation.

    Raises:
        UnboundInterpolationError: An unprepared Interpolation was given
    """
    if isinstance(prepared, Interpolation):
        return prepared.evaluate(x)
    return prepared(x)


@register_interpolation
class FlatForward(Interpolation):
    """
    Flat forward interpolation.

    Log compounding factors are interpolated linearly in time, so the
    forward rate between consecutive samples is constant; rates are then
    implied back with the curve's compounding and daycount. Before the
    first sample the forward from time zero is used, after the last
    sample the last forward rate is extended.
    """

    name = "flatforward"

    def _build(self, samples: Samples) -> RateFunction:
        spr = samples.spotrate
        if spr is None:
            raise InvalidArgument("flatforward interpolation needs SpotRate samples")
        comp = spr.compounding
        tx = samples.years(samples.terms)
        log_f = np.log(comp.compound(tx, samples.rates))
        last_fwd = (log_f[-1] - log_f[-2]) / (tx[-1] - tx[-2])

        def func(q: np.ndarray) -> np.ndarray:
            tq = samples.years(q)
            lf = np.interp(tq, tx, log_f)
            left = tq < tx[0]
            right = tq > tx[-1]
            if tx[0] > 0:
                lf[left] = log_f[0] * tq[left] / tx[0]
            lf[right] = log_f[-1] + last_fwd * (tq[right] - tx[-1])
            with np.errstate(divide="ignore", invalid="ignore"):
                rates = np.asarray(comp.implied_rate(tq, np.exp(lf)), dtype=np.float64)
            rates = np.where(tq > 0, rates, samples.rates[0])
            if self.propagate:
                rates = _hold_flat(q, samples, rates)
            return rates

        return func


@register_interpolation
class Linear(Interpolation):
    """Linear interpolation of rates, extrapolated with the boundary slopes."""

    name = "linear"

    def _build(self, samples: Samples) -> RateFunction:
        x, y = samples.terms, samples.rates

        def func(q: np.ndarray) -> np.ndarray:
            rates = _linear_extrapolate(q, x, y)
            return _hold_flat(q, samples, rates) if self.propagate else rates

        return func


@register_interpolation
class LogLinear(Interpolation):
    """Linear interpolation of log rates; rates must be positive."""

    name = "loglinear"

    def _build(self, samples: Samples) -> RateFunction:
        if np.any(samples.rates <= 0):
            raise InvalidArgument("loglinear interpolation needs positive rates")
        x, log_y = samples.terms, np.log(samples.rates)

        def func(q: np.ndarray) -> np.ndarray:
            rates = np.exp(_linear_extrapolate(q, x, log_y))
            return _hold_flat(q, samples, rates) if self.propagate else rates

        return func


class _Spline(Interpolation):
    """
    Base for cubic splines.

    Beyond the sample range the spline is continued linearly with its
    boundary derivative.
    """

    min_points = 3

    @abstractmethod
    def _spline(self, x: np.ndarray, y: np.ndarray):
        """Return a scipy piecewise polynomial through (x, y)."""

    def _build(self, samples: Samples) -> RateFunction:
        x, y = samples.terms, samples.rates
        spline = self._spline(x, y)
        slope = spline.derivative()
        d0, dn = float(slope(x[0])), float(slope(x[-1]))

        def func(q: np.ndarray) -> np.ndarray:
            rates = spline(np.clip(q, x[0], x[-1]))
            left = q < x[0]
            right = q > x[-1]
            rates[left] = y[0] + d0 * (q[left] - x[0])
            rates[right] = y[-1] + dn * (q[right] - x[-1])
            return _hold_flat(q, samples, rates) if self.propagate else rates

        return func


@register_interpolation
class NaturalSpline(_Spline):
    """Cubic spline with zero second derivatives at both ends."""

    name = "naturalspline"

    def _spline(self, x, y):
        return CubicSpline(x, y, bc_type="natural")


def catmull_rom_tangents(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Central secants at interior points, one-sided secants at the ends."""
    m = np.empty_like(y)
    m[1:-1] = (y[2:] - y[:-2]) / (x[2:] - x[:-2])
    m[0] = (y[1] - y[0]) / (x[1] - x[0])
    m[-1] = (y[-1] - y[-2]) / (x[-1] - x[-2])
    return m


def fritsch_carlson_tangents(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Monotonicity preserving tangents (Fritsch and Carlson, 1980).

    Interior tangents start as the mean of adjacent secants, zeroed at
    local extrema, then are scaled so that alpha² + beta² <= 9 on every
    interval.
    """
    h = np.diff(x)
    delta = np.diff(y) / h
    n = len(x)
    m = np.empty(n)
    m[0] = delta[0]
    m[-1] = delta[-1]
    for k in range(1, n - 1):
        if delta[k - 1] * delta[k] <= 0:
            m[k] = 0.0
        else:
            m[k] = (delta[k - 1] + delta[k]) / 2.0
    for k in range(n - 1):
        if delta[k] == 0:
            m[k] = 0.0
            m[k + 1] = 0.0
            continue
        alpha = m[k] / delta[k]
        beta = m[k + 1] / delta[k]
        s = alpha ** 2 + beta ** 2
        if s > 9.0:
            tau = 3.0 / np.sqrt(s)
            m[k] = tau * alpha * delta[k]
            m[k + 1] = tau * beta * delta[k]
    return m


@register_interpolation
class HermiteSpline(_Spline):
    """Cubic Hermite spline with Catmull-Rom style tangents."""

    name = "hermitespline"

    def _spline(self, x, y):
        return CubicHermiteSpline(x, y, catmull_rom_tangents(x, y))


@register_interpolation
class MonotoneSpline(_Spline):
    """Cubic Hermite spline that preserves monotonicity of the samples."""

    name = "monotonespline"

    def _spline(self, x, y):
        return CubicHermiteSpline(x, y, fritsch_carlson_tangents(x, y))


class _Parametric(Interpolation):
    """
    Base for parametric models evaluated in years.

    With all parameters given, prepare() only binds the formula. Without
    them, prepare() first fits the model to the sample points.
    """

    formula: Callable = None

    def __init__(self, propagate: bool = False, **params):
        super().__init__(propagate)
        names = model_parameters(self.name)
        unknown = set(params) - set(names)
        if unknown:
            raise InvalidArgument(f"Unknown {self.name} parameters: {sorted(unknown)}")
        given = {k: v for k, v in params.items() if v is not None}
        if given and len(given) != len(names):
            missing = [n for n in names if n not in given]
            raise InvalidArgument(f"Missing {self.name} parameters: {missing}")
        for name in names:
            if name.startswith("lambda") and name in given and given[name] <= 0:
                raise InvalidArgument(f"{name} must be > 0")
        self._params = {name: float(given[name]) for name in names} if given else None

    @property
    def has_parameters(self) -> bool:
        return self._params is not None

    def parameters(self) -> Optional[Dict[str, float]]:
        """Model parameters in formula order, None when not yet fitted."""
        return None if self._params is None else dict(self._params)

    def with_parameters(self, **params) -> "_Parametric":
        """Same model and propagate flag with other parameters."""
        return type(self)(propagate=self.propagate, **params)

    def required_points(self) -> int:
        return 0 if self.has_parameters else len(model_parameters(self.name))

    def fit(self, terms, rates, config: Optional[FitConfig] = None) -> "_Parametric":
        """
        Fit the model to sample points by least squares.

        The current parameters, when present, are the initial guess.

        Returns:
            New instance carrying the fitted parameters

        Raises:
            InsufficientData: Fewer points than parameters
            FitError: The optimizer did not converge
        """
        samples = _samples(terms, rates)
        required = len(model_parameters(self.name))
        if len(samples) < required:
            raise InsufficientData(self.name, required, len(samples))
        initial = self._params or default_initial_guess(self.name, samples.rates)
        result = fit_parameters(
            self.name, samples.years(samples.terms), samples.rates, initial, config
        )
        return self.with_parameters(**result.parameters)

    def prepare(self, terms, rates) -> PreparedInterpolation:
        if not self.has_parameters:
            return self.fit(terms, rates).prepare(terms, rates)
        return super().prepare(terms, rates)

    def _build(self, samples: Samples) -> RateFunction:
        formula = type(self).formula
        params = self._params

        def func(q: np.ndarray) -> np.ndarray:
            rates = np.asarray(formula(samples.years(q), **params), dtype=np.float64)
            if self.propagate:
                edges = formula(samples.years(samples.terms[[0, -1]]), **params)
                rates = np.where(q < samples.terms[0], edges[0], rates)
                rates = np.where(q > samples.terms[-1], edges[1], rates)
            return rates

        return func

    def _state(self) -> tuple:
        params = None if self._params is None else tuple(self._params.items())
        return (self.propagate, params)

    def __repr__(self) -> str:
        if self._params is None:
            return f"<Interpolation: {self.name} (not fitted)>"
        params = ", ".join(f"{k}={v:.4g}" for k, v in self._params.items())
        return f"<Interpolation: {self.name} {params}>"


@register_interpolation
class NelsonSiegel(_Parametric):
    """Nelson-Siegel model (beta1, beta2, beta3, lambda1)."""

    name = "nelsonsiegel"
    formula = staticmethod(nelson_siegel)

    def __init__(
        self,
        beta1: Optional[float] = None,
        beta2: Optional[float] = None,
        beta3: Optional[float] = None,
        lambda1: Optional[float] = None,
        propagate: bool = False,
    ):
        super().__init__(propagate, beta1=beta1, beta2=beta2, beta3=beta3, lambda1=lambda1)


@register_interpolation
class NelsonSiegelSvensson(_Parametric):
    """Svensson extension of the Nelson-Siegel model."""

    name = "nelsonsiegelsvensson"
    formula = staticmethod(nelson_siegel_svensson)

    def __init__(
        self,
        beta1: Optional[float] = None,
        beta2: Optional[float] = None,
        beta3: Optional[float] = None,
        beta4: Optional[float] = None,
        lambda1: Optional[float] = None,
        lambda2: Optional[float] = None,
        propagate: bool = False,
    ):
        super().__init__(
            propagate,
            beta1=beta1, beta2=beta2, beta3=beta3, beta4=beta4,
            lambda1=lambda1, lambda2=lambda2,
        )


_ALIASES = {
    "flat_forward": "flatforward",
    "log_linear": "loglinear",
    "natural_spline": "naturalspline",
    "spline": "naturalspline",
    "cubic_spline": "naturalspline",
    "hermite_spline": "hermitespline",
    "monotone_spline": "monotonespline",
    "nelson_siegel": "nelsonsiegel",
    "ns": "nelsonsiegel",
    "nelson_siegel_svensson": "nelsonsiegelsvensson",
    "nss": "nelsonsiegelsvensson",
}


def create_interpolation(method: str, **kwargs) -> Interpolation:
    """
    Factory function to create an interpolation by name.

    Args:
        method: Registered name or alias, e.g. "flatforward", "natural_spline"
        **kwargs: Constructor arguments (propagate, model parameters)

    Returns:
        Unbound Interpolation instance
    """
    key = method.strip().lower().replace("-", "_").replace(" ", "_")
    key = _ALIASES.get(key, key)
    try:
        cls = _REGISTRY[key]
    except KeyError:
        raise InvalidArgument(f"Unknown interpolation method: {method}") from None
    return cls(**kwargs)


__all__ = [
    "Interpolation",
    "PreparedInterpolation",
    "Samples",
    "FlatForward",
    "Linear",
    "LogLinear",
    "NaturalSpline",
    "HermiteSpline",
    "MonotoneSpline",
    "NelsonSiegel",
    "NelsonSiegelSvensson",
    "register_interpolation",
    "available_interpolations",
    "create_interpolation",
    "prepare",
    "evaluate",
    "catmull_rom_tangents",
    "fritsch_carlson_tangents",
]
