"""
SpotCurve: Spot Rates, Terms & Term Structure Library

A modular library for:
- Spot rates tagged with compounding, day count and calendar conventions
- Terms in days, months or years, or counted between dates
- Compounding and discount factors, conversion between conventions
- Spot rate curves with pluggable interpolation (flat forward, splines,
  Nelson-Siegel family) and forward rates

Scope: rates and curves only; no instrument pricing and no plotting.
"""

__version__ = "0.1.0"

# Core modules
from .config import DEFAULT_CALENDAR, DEFAULT_UNITS, FitConfig
from .exceptions import (
    SpotCurveError,
    InvalidArgument,
    SlotMismatch,
    TypeMismatch,
    InsufficientData,
    FitError,
    InvalidOperation,
    UnboundInterpolationError,
)
from .dates import Calendar, add_months, calendars, create_calendar, get_calendar, register_calendar
from .conventions import Compounding, Daycount, compound, implied_rate
from .term import Term, DateRangeTerm, term, as_term, parse_term
from .spotrate import SpotRate, spotrate, parse_spotrate

# Curves
from .curves import (
    SpotRateCurve,
    ForwardRateCurve,
    set_interpolation,
    fit_interpolation,
    Interpolation,
    FlatForward,
    Linear,
    LogLinear,
    NaturalSpline,
    HermiteSpline,
    MonotoneSpline,
    NelsonSiegel,
    NelsonSiegelSvensson,
    create_interpolation,
    prepare,
    evaluate,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "DEFAULT_CALENDAR",
    "DEFAULT_UNITS",
    "FitConfig",
    # Errors
    "SpotCurveError",
    "InvalidArgument",
    "SlotMismatch",
    "TypeMismatch",
    "InsufficientData",
    "FitError",
    "InvalidOperation",
    "UnboundInterpolationError",
    # Dates
    "Calendar",
    "add_months",
    "calendars",
    "create_calendar",
    "get_calendar",
    "register_calendar",
    # Conventions
    "Compounding",
    "Daycount",
    "compound",
    "implied_rate",
    # Terms
    "Term",
    "DateRangeTerm",
    "term",
    "as_term",
    "parse_term",
    # Spot rates
    "SpotRate",
    "spotrate",
    "parse_spotrate",
    # Curves
    "SpotRateCurve",
    "ForwardRateCurve",
    "set_interpolation",
    "fit_interpolation",
    "Interpolation",
    "FlatForward",
    "Linear",
    "LogLinear",
    "NaturalSpline",
    "HermiteSpline",
    "MonotoneSpline",
    "NelsonSiegel",
    "NelsonSiegelSvensson",
    "create_interpolation",
    "prepare",
    "evaluate",
]
