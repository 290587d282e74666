import warnings

import numpy as np
import pytest

from tbw.errors import InsufficientDataError
from tbw.stats.logistic import fit_logistic, sigmoid


def test_sigmoid_stays_in_unit_interval_for_large_inputs():
    z = np.array([-1e4, -50.0, -1.0, 0.0, 1.0, 50.0, 1e4])
    y = sigmoid(z)
    assert np.all(y >= 0.0) and np.all(y <= 1.0)
    assert y[3] == pytest.approx(0.5)
    assert np.all(np.isfinite(y))
    mid = sigmoid(np.linspace(-20, 20, 41))
    assert np.all((mid > 0.0) & (mid < 1.0))


def test_fit_recovers_rising_curve():
    x = np.repeat(np.arange(-300.0, 1.0, 50.0), 10)
    y = np.zeros_like(x)
    # 0, 1, 3, 5, 7, 9, 10 yes responses per SOA
    for offset, n_yes in zip(np.arange(-300.0, 1.0, 50.0), [0, 1, 3, 5, 7, 9, 10]):
        idx = np.flatnonzero(x == offset)[:n_yes]
        y[idx] = 1

    fit = fit_logistic(x, y)
    assert fit.n_obs == x.size
    assert fit.slope > 0
    grid = np.linspace(-400, 100, 501)
    p = fit.predict(grid)
    assert np.all(np.diff(p) > 0)
    # 5/10 yes at -150 ms
    assert grid[np.argmin(np.abs(p - 0.5))] == pytest.approx(-150.0, abs=25.0)


def test_fit_falling_curve_has_negative_slope():
    x = np.repeat([0.0, 100.0, 200.0, 300.0], 4)
    y = np.array([1, 1, 1, 1, 1, 1, 1, 0, 1, 0, 0, 0, 0, 0, 0, 0], dtype=float)
    fit = fit_logistic(x, y)
    assert fit.slope < 0
    p = fit.predict(np.array([0.0, 300.0]))
    assert p[0] > p[1]


def test_perfect_separation_still_returns_finite_estimate():
    x = np.array([-500.0, -400.0, -300.0, -200.0, -50.0, -20.0])
    y = np.array([0, 0, 0, 0, 1, 1], dtype=float)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        fit = fit_logistic(x, y)
    assert np.all(np.isfinite(fit.coef))
    assert fit.slope > 0


@pytest.mark.parametrize(
    "x, y",
    [
        ([], []),
        ([10.0], [1]),
        ([-100.0, -50.0, 0.0], [0, 0, 0]),
        ([-100.0, -50.0, 0.0], [1, 1, 1]),
        ([5.0, 5.0, 5.0], [0, 1, 1]),
        ([1.0, 2.0, np.nan], [0, 1, 1]),
        ([1.0, 2.0, 3.0], [0, 2, 1]),
    ],
)
def test_fit_rejects_unidentifiable_input(x, y):
    with pytest.raises(InsufficientDataError):
        fit_logistic(np.array(x, dtype=float), np.array(y, dtype=float))
