"""
Nelson-Siegel and Nelson-Siegel-Svensson term structure models.

Nelson-Siegel (4 parameters):

    y(t) = β₁ + β₂ * [(1-e^(-t/λ₁))/(t/λ₁)]
              + β₃ * [(1-e^(-t/λ₁))/(t/λ₁) - e^(-t/λ₁)]

Svensson adds a second hump (6 parameters):

              + β₄ * [(1-e^(-t/λ₂))/(t/λ₂) - e^(-t/λ₂)]

Parameters:
    β₁: Long-term level (asymptotic rate)
    β₂: Short-term component (slope)
    β₃: Medium-term hump
    β₄: Second hump (Svensson extension)
    λ₁: Decay for slope and first hump
    λ₂: Decay for second hump

t is measured in years. Parameters are fitted by nonlinear least squares
(scipy.optimize.least_squares) with positive decays.
"""

from dataclasses import dataclass
import logging
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares

from ..config import FitConfig
from ..exceptions import FitError, InvalidArgument

logger = logging.getLogger(__name__)

NS_PARAMETERS = ("beta1", "beta2", "beta3", "lambda1")
NSS_PARAMETERS = ("beta1", "beta2", "beta3", "beta4", "lambda1", "lambda2")

MIN_LAMBDA = 1e-6


def _loadings(t: np.ndarray, lam: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Slope and hump loadings for one decay.

    Returns (1-e^(-x))/x and (1-e^(-x))/x - e^(-x) with x = t/λ; at t = 0
    the limits 1 and 0 are used.
    """
    x = np.asarray(t, dtype=np.float64) / lam
    safe = np.where(x > 0, x, 1.0)
    e = np.exp(-safe)
    slope = np.where(x > 0, (1.0 - e) / safe, 1.0)
    hump = np.where(x > 0, slope - e, 0.0)
    return slope, hump


def nelson_siegel(t, beta1: float, beta2: float, beta3: float, lambda1: float) -> np.ndarray:
    """Nelson-Siegel rate at times t (years)."""
    slope, hump = _loadings(t, lambda1)
    return beta1 + beta2 * slope + beta3 * hump


def nelson_siegel_svensson(
    t,
    beta1: float,
    beta2: float,
    beta3: float,
    beta4: float,
    lambda1: float,
    lambda2: float,
) -> np.ndarray:
    """Nelson-Siegel-Svensson rate at times t (years)."""
    slope, hump1 = _loadings(t, lambda1)
    _, hump2 = _loadings(t, lambda2)
    return beta1 + beta2 * slope + beta3 * hump1 + beta4 * hump2


_MODELS = {
    "nelsonsiegel": (nelson_siegel, NS_PARAMETERS),
    "nelsonsiegelsvensson": (nelson_siegel_svensson, NSS_PARAMETERS),
}


def model_parameters(model: str) -> Tuple[str, ...]:
    """Parameter names of a model, in formula order."""
    try:
        return _MODELS[model][1]
    except KeyError:
        raise InvalidArgument(f"Unknown parametric model: {model}") from None


def default_initial_guess(model: str, rates: Sequence[float]) -> Dict[str, float]:
    """
    Data-driven starting point for the fit.

    Level from the longest rate, slope from the short-long spread,
    no curvature.
    """
    rates = np.asarray(rates, dtype=np.float64)
    guess = {
        "beta1": float(rates[-1]),
        "beta2": float(rates[0] - rates[-1]),
        "beta3": 0.0,
        "lambda1": 1.5,
    }
    if model == "nelsonsiegelsvensson":
        guess["beta4"] = 0.0
        guess["lambda2"] = 3.0
    return {name: guess[name] for name in model_parameters(model)}


@dataclass(frozen=True)
class FitResult:
    """Outcome of a parametric fit."""
    model: str
    parameters: Dict[str, float]
    cost: float
    residuals: np.ndarray
    nfev: int


def fit_parameters(
    model: str,
    times: Sequence[float],
    rates: Sequence[float],
    initial_guess: Optional[Dict[str, float]] = None,
    config: Optional[FitConfig] = None,
) -> FitResult:
    """
    Fit a parametric model to observed rates.

    Args:
        model: "nelsonsiegel" or "nelsonsiegelsvensson"
        times: Maturities in years
        rates: Observed rates (decimal)
        initial_guess: Starting parameters (default: default_initial_guess)
        config: Optimizer settings

    Returns:
        FitResult with the fitted parameters

    Raises:
        FitError: Optimizer did not converge, or the fit is worse than
            config.max_cost when one is set
    """
    func, names = _MODELS[model]
    config = config or FitConfig()
    t = np.asarray(times, dtype=np.float64)
    y_obs = np.asarray(rates, dtype=np.float64)

    if initial_guess is None:
        initial_guess = default_initial_guess(model, y_obs)
    x0 = np.array([initial_guess[name] for name in names], dtype=np.float64)

    # Decays must stay positive; betas are free
    lower = np.array([MIN_LAMBDA if n.startswith("lambda") else -np.inf for n in names])
    upper = np.full(len(names), np.inf)
    x0 = np.clip(x0, lower, upper)

    def residuals(params: np.ndarray) -> np.ndarray:
        return func(t, *params) - y_obs

    try:
        result = least_squares(
            residuals,
            x0,
            bounds=(lower, upper),
            method=config.method,
            xtol=config.tolerance,
            ftol=config.tolerance,
            gtol=config.tolerance,
            max_nfev=config.max_iter,
        )
    except (ValueError, np.linalg.LinAlgError) as exc:
        logger.error("%s fit raised: %s", model, exc)
        raise FitError(model, str(exc), x0) from exc

    if not result.success or not np.isfinite(result.cost):
        logger.error("%s fit did not converge after %s evaluations: %s", model, result.nfev, result.message)
        raise FitError(model, result.message, result.x)
    if config.max_cost is not None and result.cost > config.max_cost:
        reason = f"cost {result.cost:.3g} above max_cost {config.max_cost:.3g}"
        logger.error("%s fit converged but was rejected: %s", model, reason)
        raise FitError(model, reason, result.x)

    logger.debug("%s fit converged: cost=%.3g nfev=%s params=%s", model, result.cost, result.nfev, result.x)
    return FitResult(
        model=model,
        parameters={name: float(v) for name, v in zip(names, result.x)},
        cost=float(result.cost),
        residuals=result.fun,
        nfev=int(result.nfev),
    )


__all__ = [
    "nelson_siegel",
    "nelson_siegel_svensson",
    "model_parameters",
    "default_initial_guess",
    "fit_parameters",
    "FitResult",
    "NS_PARAMETERS",
    "NSS_PARAMETERS",
]
