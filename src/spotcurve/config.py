"""
Library defaults and numerical configuration.
"""

from dataclasses import dataclass
from typing import Optional

from .exceptions import InvalidArgument

DEFAULT_CALENDAR = "actual"
DEFAULT_UNITS = "day"


@dataclass(frozen=True)
class FitConfig:
    """
    Settings for the parametric (Nelson-Siegel family) least-squares fit.

    Attributes:
        tolerance: xtol/ftol/gtol handed to scipy.optimize.least_squares
        max_iter: Maximum number of function evaluations
        method: Trust-region algorithm ("trf" or "dogbox"; both honour bounds)
        max_cost: Largest accepted half sum of squared residuals (None: any
            converged fit is accepted)
    """
    tolerance: float = 1e-10
    max_iter: int = 5000
    method: str = "trf"
    max_cost: Optional[float] = None

    def __post_init__(self) -> None:
        if self.tolerance <= 0:
            raise InvalidArgument("tolerance must be > 0")
        if self.max_iter <= 0:
            raise InvalidArgument("max_iter must be > 0")
        if self.method not in ("trf", "dogbox"):
            raise InvalidArgument(f"Unsupported fit method: {self.method}")
        if self.max_cost is not None and self.max_cost <= 0:
            raise InvalidArgument("max_cost must be > 0")


__all__ = [
    "DEFAULT_CALENDAR",
    "DEFAULT_UNITS",
    "FitConfig",
]
