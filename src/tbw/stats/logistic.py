"""Binomial logistic regression (logit link) with prediction.

The fit mirrors MATLAB's `glmfit(x, y, 'binomial', 'link', 'logit')`: an
intercept + slope maximum-likelihood fit by IRLS, here via statsmodels' GLM.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import statsmodels.api as sm
from scipy.special import expit
from statsmodels.tools.sm_exceptions import PerfectSeparationError

from ..errors import InsufficientDataError


@dataclass(frozen=True)
class LogisticFit:
    """Fitted `p(x) = sigmoid(coef[0] + coef[1] * x)`."""

    coef: np.ndarray  # (2,) intercept, slope
    n_obs: int
    converged: bool

    @property
    def intercept(self) -> float:
        return float(self.coef[0])

    @property
    def slope(self) -> float:
        return float(self.coef[1])

    def predict(self, x: np.ndarray) -> np.ndarray:
        return sigmoid(self.intercept + self.slope * np.asarray(x, dtype=float))


def sigmoid(z: np.ndarray) -> np.ndarray:
    """Numerically stable logistic function (no overflow for large |z|)."""

    return expit(np.asarray(z, dtype=float))


def _validate_binary_response(x: np.ndarray, y: np.ndarray) -> None:
    if x.shape != y.shape:
        raise ValueError(f"x and y must have the same shape. Got {x.shape!r} vs {y.shape!r}")
    n = int(x.size)
    if n < 2:
        raise InsufficientDataError(f"Logistic fit needs at least 2 observations. Got {n}.")
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise InsufficientDataError("Logistic fit input contains non-finite values.")
    if not np.all((y == 0) | (y == 1)):
        bad = sorted({float(v) for v in y[(y != 0) & (y != 1)]})
        raise InsufficientDataError(f"Responses must be 0/1. Got other values: {bad[:5]!r}")
    if np.all(y == y[0]):
        raise InsufficientDataError(
            f"Responses have no variation (all {int(y[0])}); logistic fit is not identified."
        )
    if np.all(x == x[0]):
        raise InsufficientDataError(f"All offsets are identical ({float(x[0])!r}); slope is not identified.")


def fit_logistic(x: np.ndarray, y: np.ndarray) -> LogisticFit:
    """Fit `y ~ x` with a binomial GLM (logit link).

    Parameters
    ----------
    x:
        (n,) stimulus offsets in ms.
    y:
        (n,) binary simultaneity judgments (0/1).

    Returns
    -------
    LogisticFit

    Raises
    ------
    InsufficientDataError
        Fewer than 2 observations, no response variation, constant offsets, or
        the optimizer returned non-finite coefficients.

    Notes
    -----
    Perfectly separated data are not rejected: as with `glmfit`, the estimate is
    returned (coefficients grow large, statsmodels emits a warning). Only the point
    estimates are used downstream.
    """

    x_arr = np.asarray(x, dtype=float).ravel()
    y_arr = np.asarray(y, dtype=float).ravel()
    _validate_binary_response(x_arr, y_arr)

    exog = sm.add_constant(x_arr, has_constant="add")
    model = sm.GLM(y_arr, exog, family=sm.families.Binomial())
    try:
        res = model.fit()
    except (np.linalg.LinAlgError, PerfectSeparationError) as exc:
        raise InsufficientDataError(f"Logistic fit failed on {x_arr.size} observations: {exc}") from exc

    coef = np.asarray(res.params, dtype=float).reshape(2)
    if not np.all(np.isfinite(coef)):
        raise InsufficientDataError(f"Logistic fit returned non-finite coefficients: {coef!r}")

    return LogisticFit(
        coef=coef,
        n_obs=int(x_arr.size),
        converged=bool(getattr(res, "converged", True)),
    )
