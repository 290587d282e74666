"""Group-level test statistics with explicit failure on undefined inputs."""

from __future__ import annotations

import numpy as np
from scipy import stats as sp_stats

from ..errors import UnderpoweredGroupError


def pearson_correlation(x: np.ndarray, y: np.ndarray) -> tuple[float, float]:
    """Pearson r and two-sided p-value.

    Raises
    ------
    UnderpoweredGroupError
        Fewer than 2 paired values, or either vector is constant (r undefined).
    """

    x_arr = np.asarray(x, dtype=float).ravel()
    y_arr = np.asarray(y, dtype=float).ravel()
    if x_arr.size != y_arr.size:
        raise ValueError(f"Correlation inputs must have same length. Got {x_arr.size} vs {y_arr.size}")
    n = int(x_arr.size)
    if n < 2:
        raise UnderpoweredGroupError(f"Correlation needs at least 2 subjects. Got {n}.")
    if np.all(x_arr == x_arr[0]) or np.all(y_arr == y_arr[0]):
        raise UnderpoweredGroupError(
            f"Correlation undefined: zero variance across {n} subjects "
            f"(x constant={bool(np.all(x_arr == x_arr[0]))}, y constant={bool(np.all(y_arr == y_arr[0]))})."
        )

    res = sp_stats.pearsonr(x_arr, y_arr)
    return float(res[0]), float(res[1])


def one_sided_ttest(values: np.ndarray, popmean: float = 0.0) -> tuple[float, float]:
    """Right-tailed one-sample t-test of `mean(values) > popmean`.

    Equivalent to MATLAB `ttest(values, popmean, 0.05, 'right')`; only the
    statistic and p-value are returned (the 0.05 decision is left to the caller).
    """

    arr = np.asarray(values, dtype=float).ravel()
    n = int(arr.size)
    if n < 2:
        raise UnderpoweredGroupError(f"t-test needs at least 2 subjects. Got {n}.")

    res = sp_stats.ttest_1samp(arr, popmean=float(popmean), alternative="greater")
    t_stat, p_value = float(res[0]), float(res[1])
    if np.isnan(t_stat) or np.isnan(p_value):
        raise UnderpoweredGroupError(
            f"t-test undefined for {n} subjects (mean={float(np.mean(arr))!r}, zero variance)."
        )
    return t_stat, p_value
