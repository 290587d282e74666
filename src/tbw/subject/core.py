from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import polars as pl

from ..config import TBWConfig
from ..errors import DegenerateCurveError, InsufficientDataError, TBWError
from ..grid import XGrid, nearest_index
from ..stats.logistic import fit_logistic
from ..trials import normalize_trials, subject_ids


@dataclass(frozen=True)
class CategoryFit:
    """AV/VA logistic fits and the derived TBW for one subject x category.

    Notes
    -----
    - `b_AV` / `b_VA` are (intercept, slope) of the logit fits on the lower and
      upper half of the offset-sorted trials.
    - `temporal_binding_window = bind_VA - bind_AV` (width of the window when
      bind_AV <= 0 <= bind_VA; passed through unchanged otherwise).
    - `temporal_binding_curve` is y_AV up to and including `cut_index`, y_VA
      afterwards, on the shared x-grid. It is not rescaled to reach 1.
    """

    category: int
    is_all: bool
    n_trials: int
    b_AV: np.ndarray  # (2,)
    b_VA: np.ndarray  # (2,)
    bind_AV: float
    bind_VA: float
    temporal_binding_window: float
    temporal_binding_curve: np.ndarray  # (N,)
    cut_index: int

    @property
    def label(self) -> str:
        return "all" if self.is_all else f"cat_{self.category}"


@dataclass(frozen=True)
class SubjectResult:
    subject: int
    grid: XGrid
    x_grid: np.ndarray  # (N,)
    all_category: int
    categories: Dict[int, CategoryFit] = field(default_factory=dict)
    failures: Dict[int, TBWError] = field(default_factory=dict)

    @property
    def category_ids(self) -> List[int]:
        return sorted(set(self.categories) | set(self.failures))

    @property
    def ok(self) -> bool:
        return not self.failures

    def min_tbw(self) -> Optional[float]:
        """Smallest TBW over the fitted categories (None if nothing was fitted)."""

        if not self.categories:
            return None
        return float(min(fit.temporal_binding_window for fit in self.categories.values()))


def split_av_va(
    offsets: np.ndarray,
    simultaneity: np.ndarray,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Sort trials by offset and split them by count into AV and VA halves.

    The first `ceil(n/2)` trials after sorting form the AV condition, the rest the
    VA condition. The split is positional, not by the sign of the offset.

    Returns
    -------
    x_AV, y_AV, x_VA, y_VA
    """

    x = np.asarray(offsets, dtype=float).ravel()
    y = np.asarray(simultaneity, dtype=float).ravel()
    if x.shape != y.shape:
        raise ValueError(f"offsets and simultaneity must have the same length. Got {x.size} vs {y.size}")

    order = np.argsort(x, kind="stable")
    x = x[order]
    y = y[order]

    split = int(math.ceil(x.size / 2))
    return x[:split], y[:split], x[split:], y[split:]


def binding_point(x_grid: np.ndarray, y: np.ndarray, hoi: float) -> float:
    """Grid x where the curve is closest to `hoi` (first occurrence on ties)."""

    return float(np.asarray(x_grid, dtype=float)[nearest_index(y, hoi)])


def splice_binding_curve(y_AV: np.ndarray, y_VA: np.ndarray) -> tuple[np.ndarray, int]:
    """Join the rising AV curve and the falling VA curve where AV first exceeds VA.

    Returns
    -------
    curve, cut_index
        `curve[:cut_index + 1] == y_AV[:cut_index + 1]` and
        `curve[cut_index + 1:] == y_VA[cut_index + 1:]`.

    Raises
    ------
    DegenerateCurveError
        y_AV never exceeds y_VA on the grid (the two sigmoids do not cross).
    """

    a = np.asarray(y_AV, dtype=float)
    b = np.asarray(y_VA, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"y_AV and y_VA must have the same shape. Got {a.shape!r} vs {b.shape!r}")

    above = np.flatnonzero(a > b)
    if above.size == 0:
        raise DegenerateCurveError("AV and VA curves do not cross on the grid (y_AV never exceeds y_VA).")
    cut = int(above[0])

    curve = np.concatenate((a[: cut + 1], b[cut + 1 :]))
    return curve, cut


def fit_category(
    offsets: np.ndarray,
    simultaneity: np.ndarray,
    x_grid: np.ndarray,
    hoi: float = 0.5,
    *,
    category: int,
    is_all: bool = False,
) -> CategoryFit:
    """Fit one category of one subject.

    Parameters
    ----------
    offsets, simultaneity:
        (n,) trials of this category (any order).
    x_grid:
        Shared grid the sigmoids are evaluated on (see `XGrid.values`).
    hoi:
        Height of interest for the binding points.
    category:
        Category id stored on the result.
    is_all:
        True for the synthetic all-trials category.

    Raises
    ------
    InsufficientDataError
        Either half cannot be fitted.
    DegenerateCurveError
        The fitted curves do not cross on the grid.
    """

    x_AV, y_AV_obs, x_VA, y_VA_obs = split_av_va(offsets, simultaneity)

    try:
        fit_AV = fit_logistic(x_AV, y_AV_obs)
    except InsufficientDataError as exc:
        raise InsufficientDataError(f"AV condition ({x_AV.size} trials): {exc.message}") from exc
    try:
        fit_VA = fit_logistic(x_VA, y_VA_obs)
    except InsufficientDataError as exc:
        raise InsufficientDataError(f"VA condition ({x_VA.size} trials): {exc.message}") from exc

    x_line = np.asarray(x_grid, dtype=float)
    y_AV = fit_AV.predict(x_line)
    y_VA = fit_VA.predict(x_line)

    bind_AV = binding_point(x_line, y_AV, hoi)
    bind_VA = binding_point(x_line, y_VA, hoi)
    temporal_binding_window = -1.0 * bind_AV + bind_VA

    curve, cut = splice_binding_curve(y_AV, y_VA)

    return CategoryFit(
        category=int(category),
        is_all=bool(is_all),
        n_trials=int(x_AV.size + x_VA.size),
        b_AV=fit_AV.coef,
        b_VA=fit_VA.coef,
        bind_AV=bind_AV,
        bind_VA=bind_VA,
        temporal_binding_window=float(temporal_binding_window),
        temporal_binding_curve=curve,
        cut_index=cut,
    )


def estimate_subject(
    trials: pl.DataFrame,
    subject: int,
    config: TBWConfig = TBWConfig(),
    *,
    x_grid: Optional[np.ndarray] = None,
) -> SubjectResult:
    """Fit every observed category of `subject` plus the synthetic all category.

    The synthetic category id is `max(observed) + 1` and contains every trial of the
    subject. Per-category failures (`TBWError`) are collected in
    `SubjectResult.failures`; the remaining categories are still computed.

    Parameters
    ----------
    trials:
        Canonical trial table (see `tbw.trials`); may contain other subjects.
    subject:
        Subject id to process.
    config:
        Run parameters (`hoi` and the grid are used here).
    x_grid:
        Precomputed `config.grid.values()` (avoids rebuilding it per subject).
    """

    df = normalize_trials(trials).filter(pl.col("subject") == int(subject))
    if df.height == 0:
        raise InsufficientDataError(f"No trials for subject {subject}.", subject=int(subject))

    grid = config.grid
    x_line = grid.values() if x_grid is None else np.asarray(x_grid, dtype=float)

    offsets = df.get_column("offset_ms").to_numpy()
    responses = df.get_column("simultaneity").to_numpy()
    categ = df.get_column("category").to_numpy()

    observed = sorted(int(c) for c in np.unique(categ))
    all_category = observed[-1] + 1

    fits: Dict[int, CategoryFit] = {}
    failures: Dict[int, TBWError] = {}
    for c in [*observed, all_category]:
        is_all = c == all_category
        selector = np.ones(categ.size, dtype=bool) if is_all else categ == c
        try:
            fits[c] = fit_category(
                offsets[selector],
                responses[selector],
                x_line,
                config.hoi,
                category=c,
                is_all=is_all,
            )
        except TBWError as exc:
            failures[c] = exc.tagged(subject=int(subject), category=c)

    return SubjectResult(
        subject=int(subject),
        grid=grid,
        x_grid=x_line,
        all_category=all_category,
        categories=fits,
        failures=failures,
    )


def print_subject_status(result: SubjectResult) -> None:
    """Print `[SKIP]` lines for failed categories and one `[OK]` line with the fitted TBWs."""

    for c, err in sorted(result.failures.items()):
        label = "all" if c == result.all_category else f"cat_{c}"
        print(f"[SKIP] subject {result.subject} {label}: {err.kind}: {err.message}")
    tbw_txt = ", ".join(f"{f.label}={f.temporal_binding_window:g}" for _, f in sorted(result.categories.items()))
    print(f"[OK] subject {result.subject}: {tbw_txt if tbw_txt else 'no fitted categories'}")


def estimate_subjects(
    trials: pl.DataFrame,
    config: TBWConfig = TBWConfig(),
    *,
    verbose: bool = False,
) -> Dict[int, SubjectResult]:
    """Run `estimate_subject` for every subject (ascending id) on one shared grid.

    With `verbose`, each subject is reported as it finishes (see `print_subject_status`).
    """

    df = normalize_trials(trials)
    x_line = config.grid.values()
    results: Dict[int, SubjectResult] = {}
    for s in subject_ids(df):
        results[s] = estimate_subject(df, s, config, x_grid=x_line)
        if verbose:
            print_subject_status(results[s])
    return results
