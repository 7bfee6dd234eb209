"""
Curves package - spot rate curves and their interpolation.

Provides:
- SpotRateCurve: Term structure of spot rates with optional interpolation
- ForwardRateCurve: Forward rates between consecutive curve terms
- Interpolation methods: flat forward, linear, log-linear, splines
- NelsonSiegel / NelsonSiegelSvensson: Parametric models fitted by least squares
"""

from .curve import SpotRateCurve, ForwardRateCurve, set_interpolation, fit_interpolation
from .interpolation import (
    Interpolation,
    PreparedInterpolation,
    FlatForward,
    Linear,
    LogLinear,
    NaturalSpline,
    HermiteSpline,
    MonotoneSpline,
    NelsonSiegel,
    NelsonSiegelSvensson,
    available_interpolations,
    create_interpolation,
    register_interpolation,
    prepare,
    evaluate,
)
from .nss import FitResult, fit_parameters, nelson_siegel, nelson_siegel_svensson

__all__ = [
    "SpotRateCurve",
    "ForwardRateCurve",
    "set_interpolation",
    "fit_interpolation",
    "Interpolation",
    "PreparedInterpolation",
    "FlatForward",
    "Linear",
    "LogLinear",
    "NaturalSpline",
    "HermiteSpline",
    "MonotoneSpline",
    "NelsonSiegel",
    "NelsonSiegelSvensson",
    "available_interpolations",
    "create_interpolation",
    "register_interpolation",
    "prepare",
    "evaluate",
    "FitResult",
    "fit_parameters",
    "nelson_siegel",
    "nelson_siegel_svensson",
]
