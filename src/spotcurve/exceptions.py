"""
Exception types raised by spotcurve.

Every error derives from SpotCurveError and from the closest builtin,
so callers may catch either the library type or e.g. ValueError.
"""

from typing import Optional, Sequence


class SpotCurveError(Exception):
    """Base exception for the library."""


class InvalidArgument(SpotCurveError, ValueError):
    """Bad constructor input: unknown names, malformed strings, length mismatches."""


class SlotMismatch(SpotCurveError, TypeError):
    """Operation between values carrying different rate conventions."""

    def __init__(self, message: str = "SpotRate objects have different slots"):
        super().__init__(message)


TypeMismatch = SlotMismatch


class InsufficientData(SpotCurveError, ValueError):
    """Too few points to prepare an interpolation."""

    def __init__(self, method: str, required: int, given: int):
        self.method = method
        self.required = required
        self.given = given
        super().__init__(
            f"{method} interpolation needs at least {required} points, got {given}"
        )


class FitError(SpotCurveError, RuntimeError):
    """Parametric fit did not converge, or was rejected by FitConfig.max_cost."""

    def __init__(
        self,
        method: str,
        message: str,
        last_params: Optional[Sequence[float]] = None,
    ):
        self.method = method
        self.last_params = None if last_params is None else list(last_params)
        super().__init__(f"{method} fit failed: {message}")


class InvalidOperation(SpotCurveError, TypeError):
    """Operation not supported on purpose (Term arithmetic, removing bound points)."""


class UnboundInterpolationError(SpotCurveError, RuntimeError):
    """Interpolation evaluated before being prepared against curve data."""


__all__ = [
    "SpotCurveError",
    "InvalidArgument",
    "SlotMismatch",
    "TypeMismatch",
    "InsufficientData",
    "FitError",
    "InvalidOperation",
    "UnboundInterpolationError",
]
