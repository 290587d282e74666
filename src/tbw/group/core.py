from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from ..errors import DegenerateCurveError, ShapeMismatchError, TBWError, UnderpoweredGroupError
from ..grid import XGrid
from ..stats.inference import one_sided_ttest, pearson_correlation
from ..stats.minima import regional_minima_indices
from ..subject.core import CategoryFit, SubjectResult


@dataclass(frozen=True)
class GroupSummary:
    """Cross-subject statistics for one category.

    Correlation fields are None when the correlation is undefined because one of
    the binding-point vectors is constant; `correlation_error` then says why.
    """

    category: int
    is_all: bool
    n_subjects_used: int
    subjects: tuple[int, ...]

    # scatter: left (-bind_AV) vs right (bind_VA) binding points
    neg_bind_AV: np.ndarray  # (S,)
    bind_VA: np.ndarray  # (S,)
    correlation_r: Optional[float]
    correlation_p: Optional[float]
    line_slope: Optional[float]
    line_intercept: Optional[float]
    correlation_error: Optional[UnderpoweredGroupError]

    # mean TBW, right-tailed t-test against 0
    tbw_values: np.ndarray  # (S,)
    mean_tbw: float
    tbw_tstat: float
    tbw_pvalue: float

    # mean binding curve and its read-off
    mean_curve: np.ndarray  # (N,)
    std_curve: np.ndarray  # (N,)
    left_boundary_ms: float
    right_boundary_ms: float

    @property
    def label(self) -> str:
        return "all" if self.is_all else str(self.category)


@dataclass(frozen=True)
class GroupResult:
    grid: XGrid
    x_grid: np.ndarray
    threshold: float
    hoi: float
    included_subjects: tuple[int, ...]
    excluded_subjects: Dict[int, str] = field(default_factory=dict)
    summaries: Dict[int, GroupSummary] = field(default_factory=dict)
    failures: Dict[int, TBWError] = field(default_factory=dict)

    @property
    def n_subjects_used(self) -> int:
        return len(self.included_subjects)


def check_subject_shapes(subjects: Sequence[SubjectResult]) -> tuple[XGrid, np.ndarray, List[int]]:
    """Validate that subject results can be stacked.

    Returns
    -------
    grid, x_grid, category_ids
        Shared grid and the common category id list (synthetic all id last).

    Raises
    ------
    ShapeMismatchError
        Empty input, differing grids, differing category sets, or a subject whose
        synthetic all category is missing or not last.
    """

    if not subjects:
        raise ShapeMismatchError("No subject results to aggregate.")

    ref = subjects[0]
    ref_ids = ref.category_ids
    for res in subjects:
        ids = res.category_ids
        if res.all_category not in ids:
            raise ShapeMismatchError(
                f"Subject {res.subject} has no synthetic all category ({res.all_category}).",
                subject=res.subject,
            )
        if ids[-1] != res.all_category:
            raise ShapeMismatchError(
                f"Subject {res.subject}: all category {res.all_category} is not the last id {ids!r}.",
                subject=res.subject,
            )
        if res.grid != ref.grid:
            raise ShapeMismatchError(
                f"Subject {res.subject} uses grid {res.grid!r}; subject {ref.subject} uses {ref.grid!r}.",
                subject=res.subject,
            )
        if res.x_grid.shape != ref.x_grid.shape or not np.array_equal(res.x_grid, ref.x_grid):
            raise ShapeMismatchError(
                f"Subject {res.subject}: x_grid samples differ from subject {ref.subject}.",
                subject=res.subject,
            )
        if ids != ref_ids:
            raise ShapeMismatchError(
                f"Subject {res.subject} has categories {ids!r}; subject {ref.subject} has {ref_ids!r}.",
                subject=res.subject,
            )

    return ref.grid, ref.x_grid, ref_ids


def select_subjects(
    subjects: Sequence[SubjectResult],
    threshold: float = 0.0,
) -> tuple[List[int], Dict[int, str]]:
    """All-or-nothing inclusion filter.

    A subject is included only if every category (synthetic all included) was
    fitted and its smallest TBW is strictly greater than `threshold`.

    Returns
    -------
    included, excluded
        Included subject ids (input order) and `{subject: reason}` for the rest.
    """

    included: List[int] = []
    excluded: Dict[int, str] = {}
    for res in subjects:
        if res.failures:
            failed = ", ".join(f"{c}: {err.kind}" for c, err in sorted(res.failures.items()))
            excluded[res.subject] = f"failed categories ({failed})"
            continue
        min_tbw = res.min_tbw()
        if min_tbw is None:
            excluded[res.subject] = "no fitted categories"
        elif min_tbw > float(threshold):
            included.append(res.subject)
        else:
            excluded[res.subject] = f"min TBW {min_tbw:g} <= threshold {float(threshold):g}"
    return included, excluded


def tbw_boundaries(mean_curve: np.ndarray, x_grid: np.ndarray, hoi: float) -> tuple[float, float]:
    """Read the TBW edges off a mean curve.

    `diff = |mean_curve - hoi|`; the left edge is the x of the first regional
    minimum of `diff`, the right edge the x of the last one.

    Raises
    ------
    DegenerateCurveError
        `diff` has no regional minimum.
    """

    x_line = np.asarray(x_grid, dtype=float)
    tbw_diff = np.abs(np.asarray(mean_curve, dtype=float) - float(hoi))
    minima_id = regional_minima_indices(tbw_diff)
    if minima_id.size == 0:
        raise DegenerateCurveError("Mean binding curve has no regional minimum around hoi.")
    return float(x_line[minima_id[0]]), float(x_line[minima_id[-1]])


def summarize_category(
    category: int,
    fits: Mapping[int, CategoryFit],
    x_grid: np.ndarray,
    hoi: float = 0.5,
) -> GroupSummary:
    """Group statistics for one category.

    Parameters
    ----------
    category:
        Category id.
    fits:
        `{subject: CategoryFit}` of the included subjects for this category.
    x_grid:
        Shared grid of the binding curves.
    hoi:
        Height of interest used upstream.

    Raises
    ------
    UnderpoweredGroupError
        Fewer than 2 subjects, or the t statistic is undefined.
    DegenerateCurveError
        No boundary can be read off the mean curve.
    """

    subjects = tuple(fits)
    n = len(subjects)
    if n < 2:
        raise UnderpoweredGroupError(
            f"Category {category}: {n} subject(s) passed the inclusion threshold; need at least 2.",
            category=int(category),
        )

    rows = [fits[s] for s in subjects]
    x = -1.0 * np.array([f.bind_AV for f in rows], dtype=float)
    y = np.array([f.bind_VA for f in rows], dtype=float)
    tbw = np.array([f.temporal_binding_window for f in rows], dtype=float)
    curves = np.vstack([f.temporal_binding_curve for f in rows])  # (S, N)

    r: Optional[float] = None
    p: Optional[float] = None
    slope: Optional[float] = None
    intercept: Optional[float] = None
    corr_error: Optional[UnderpoweredGroupError] = None
    try:
        r, p = pearson_correlation(x, y)
        slope, intercept = (float(v) for v in np.polyfit(x, y, 1))
    except UnderpoweredGroupError as exc:
        corr_error = exc.tagged(category=int(category))

    try:
        t_stat, p_test = one_sided_ttest(tbw, 0.0)
    except UnderpoweredGroupError as exc:
        raise exc.tagged(category=int(category))

    mean_curve = np.mean(curves, axis=0)
    std_curve = np.std(curves, axis=0, ddof=1)
    try:
        left, right = tbw_boundaries(mean_curve, x_grid, hoi)
    except DegenerateCurveError as exc:
        raise exc.tagged(category=int(category))

    return GroupSummary(
        category=int(category),
        is_all=rows[0].is_all,
        n_subjects_used=n,
        subjects=subjects,
        neg_bind_AV=x,
        bind_VA=y,
        correlation_r=r,
        correlation_p=p,
        line_slope=slope,
        line_intercept=intercept,
        correlation_error=corr_error,
        tbw_values=tbw,
        mean_tbw=float(np.mean(tbw)),
        tbw_tstat=t_stat,
        tbw_pvalue=p_test,
        mean_curve=mean_curve,
        std_curve=std_curve,
        left_boundary_ms=left,
        right_boundary_ms=right,
    )


def aggregate_group(
    subjects: Mapping[int, SubjectResult] | Sequence[SubjectResult],
    threshold: float = 0.0,
    hoi: float = 0.5,
) -> GroupResult:
    """Apply the inclusion threshold and summarize every category.

    Per-category failures (`UnderpoweredGroupError`, `DegenerateCurveError`) are
    collected in `GroupResult.failures`; only `ShapeMismatchError` is raised.
    """

    results = list(subjects.values()) if isinstance(subjects, Mapping) else list(subjects)
    grid, x_line, category_ids = check_subject_shapes(results)
    included, excluded = select_subjects(results, threshold)
    by_subject = {res.subject: res for res in results}

    summaries: Dict[int, GroupSummary] = {}
    failures: Dict[int, TBWError] = {}
    for c in category_ids:
        fits = {s: by_subject[s].categories[c] for s in included}
        try:
            summaries[c] = summarize_category(c, fits, x_line, hoi)
        except (UnderpoweredGroupError, DegenerateCurveError) as exc:
            failures[c] = exc.tagged(category=c)

    return GroupResult(
        grid=grid,
        x_grid=x_line,
        threshold=float(threshold),
        hoi=float(hoi),
        included_subjects=tuple(included),
        excluded_subjects=excluded,
        summaries=summaries,
        failures=failures,
    )
