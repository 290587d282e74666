"""1D regional-minimum detection (MATLAB `imregionalmin` semantics)."""

from __future__ import annotations

import numpy as np


def regional_minima(values: np.ndarray) -> np.ndarray:
    """Boolean mask of regional minima of a 1D signal.

    A regional minimum is a maximal run of equal values whose neighbouring
    samples (where they exist) are all strictly greater. Consequences:

    - plateaus are reported as a whole (every index of the run is True)
    - the array edges only need a greater neighbour on their inner side
    - a fully constant array is a single regional minimum
    - NaN samples are never minima, and a NaN neighbour disqualifies a run

    Parameters
    ----------
    values:
        (N,) array.

    Returns
    -------
    np.ndarray
        (N,) bool mask.
    """

    arr = np.asarray(values, dtype=float)
    if arr.ndim != 1:
        raise ValueError(f"regional_minima expects a 1D array. Got shape={arr.shape!r}")
    n = int(arr.size)
    if n == 0:
        return np.zeros(0, dtype=bool)

    # run boundaries; NaN != NaN so every NaN is its own run
    change = np.flatnonzero(arr[1:] != arr[:-1]) + 1
    starts = np.concatenate(([0], change))
    lengths = np.diff(np.concatenate((starts, [n])))
    run_vals = arr[starts]

    left = np.concatenate(([np.inf], run_vals[:-1]))
    right = np.concatenate((run_vals[1:], [np.inf]))
    is_min = (left > run_vals) & (right > run_vals)

    return np.repeat(is_min, lengths)


def regional_minima_indices(values: np.ndarray) -> np.ndarray:
    return np.flatnonzero(regional_minima(values))
