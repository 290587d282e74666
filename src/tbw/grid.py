"""Shared SOA sampling grid and nearest-point search."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal

import numpy as np

from .errors import InsufficientDataError


@dataclass(frozen=True)
class XGrid:
    """Symmetric offset grid `[-x_bound, +x_bound]` (ms) with step `dx`.

    The same instance (or an equal one) must be used for every subject of a run,
    otherwise binding curves cannot be stacked for group averaging.
    """

    x_bound: float = 750.0
    dx: float = 0.1

    def __post_init__(self) -> None:
        if not np.isfinite(self.x_bound) or self.x_bound < 0:
            raise ValueError(f"x_bound must be a finite value >= 0. Got {self.x_bound!r}")
        if not np.isfinite(self.dx) or self.dx <= 0:
            raise ValueError(f"dx (sampling rate) must be > 0. Got {self.dx!r}")

    @property
    def decimals(self) -> int:
        """Decimal places needed to write x_bound and dx exactly (e.g. 1 for dx=0.1)."""

        exponents = [Decimal(repr(float(v))).normalize().as_tuple().exponent for v in (self.x_bound, self.dx)]
        return max(0, *(-int(e) for e in exponents))

    @property
    def n_points(self) -> int:
        # small tolerance so that e.g. 1500 / 0.1 does not lose the last point
        return int(math.floor(2.0 * float(self.x_bound) / float(self.dx) + 1e-9)) + 1

    def values(self) -> np.ndarray:
        """Return the grid as a (N,) float array, both bounds included.

        Raises
        ------
        InsufficientDataError
            If the grid degenerates to a single point (`x_bound == 0` or
            `dx > 2 * x_bound`). A one-point search cannot locate a binding point.
        """

        n = self.n_points
        if n < 2:
            raise InsufficientDataError(
                f"x-grid has {n} point(s) (x_bound={self.x_bound!r}, dx={self.dx!r}); need at least 2."
            )
        values = -float(self.x_bound) + float(self.dx) * np.arange(n)
        # drop float noise below the precision of x_bound/dx; "+ 0.0" turns -0.0 into 0.0
        return np.round(values, self.decimals) + 0.0


def nearest_index(values: np.ndarray, target: float) -> int:
    """Index of the element closest to `target` (first occurrence on ties)."""

    arr = np.asarray(values, dtype=float)
    if arr.ndim != 1 or arr.size == 0:
        raise ValueError(f"nearest_index expects a non-empty 1D array. Got shape={arr.shape!r}")
    dist = np.abs(arr - float(target))
    if not np.any(np.isfinite(dist)):
        raise ValueError("nearest_index: no finite values to search.")
    # np.nanargmin returns the first minimum, like MATLAB's min()
    return int(np.nanargmin(dist))
