"""Figures for subject fits and group summaries (matplotlib, file output only)."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from .group.core import GroupSummary
from .subject.core import SubjectResult

XLABEL_SOA = "Stimulus Onset Asynchrony [ms]\n(from AV to VA)"
YLABEL_SYNC = "%-Perceived Synchronous"
HOI_COLOR = (0.5, 0.5, 0.5)

_NAME_PATTERNS = {
    "subject": "result_sub{:02d}.png",
    "tbw": "result_TBW_categ{:02d}.png",
    "tbc": "result_TBC_categ{:02d}.png",
}


def figure_name(kind: str, index: int) -> str:
    """File name for a figure kind: `subject`, `tbw` (scatter) or `tbc` (mean curve)."""

    try:
        pattern = _NAME_PATTERNS[kind]
    except KeyError as exc:
        raise ValueError(f"Unknown figure kind: {kind!r}. Expected one of {sorted(_NAME_PATTERNS)}") from exc
    return pattern.format(int(index))


def _row_text(prefix: str, values: list[float]) -> str:
    return prefix + "".join(f"{int(round(v)):5d}" for v in values)


def plot_subject(result: SubjectResult, hoi: float, out_path: str | Path, *, dpi: int = 150) -> Path:
    """All binding curves of one subject, hoi line and a binding-point table."""

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fits = [result.categories[c] for c in sorted(result.categories)]
    fig, ax = plt.subplots(figsize=(7.2, 6.0))
    for fit in fits:
        ax.plot(result.x_grid, fit.temporal_binding_curve, label=fit.label)
    ax.set_title(f"Subject: {result.subject}")
    ax.set_xlabel(XLABEL_SOA)
    ax.set_ylabel(YLABEL_SYNC)
    ax.set_ylim(0.0, 1.0)
    if fits:
        ax.legend(loc="upper right")

    xlimits = ax.get_xlim()
    ax.plot(xlimits, [hoi, hoi], "--", color=HOI_COLOR)
    ax.set_xlim(xlimits)

    lines = [
        "      " + " ".join(f.label for f in fits),
        _row_text("AV: ", [f.bind_AV for f in fits]),
        _row_text("VA: ", [f.bind_VA for f in fits]),
        _row_text("TBW:", [f.temporal_binding_window for f in fits]),
    ]
    for i, line in enumerate(lines):
        ax.text(xlimits[0] * 0.9, 0.95 - 0.05 * i, line, ha="left", family="monospace", fontsize=8)

    ax.set_box_aspect(1 / 1.2)
    fig.savefig(out_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return out_path


def plot_tbw_scatter(summary: GroupSummary, out_path: str | Path, *, dpi: int = 150) -> Path:
    """Left (-bind_AV) vs right (bind_VA) binding points with least-squares line."""

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(7.2, 6.0))
    ax.plot(summary.neg_bind_AV, summary.bind_VA, "x")
    ax.set_title(f"Temporal Binding Window for Category: {summary.label}")
    ax.set_xlabel("Left\nTemporal Binding Window [ms]")
    ax.set_ylabel("Right\nTemporal Binding Window [ms]")

    if summary.line_slope is not None and summary.line_intercept is not None:
        xs = np.array([np.min(summary.neg_bind_AV), np.max(summary.neg_bind_AV)], dtype=float)
        ax.plot(xs, summary.line_slope * xs + summary.line_intercept, "-", color="k", linewidth=1)

    r_txt = "n/a" if summary.correlation_r is None else f"{summary.correlation_r:.4g}"
    p_txt = "n/a" if summary.correlation_p is None else f"{summary.correlation_p:.4g}"
    text = (
        f"r = {r_txt}\np = {p_txt}\nn = {summary.n_subjects_used}\n\n"
        f"Mean TBW: {summary.mean_tbw:.4g}\np-value:  {summary.tbw_pvalue:.4g}"
    )
    ax.text(0.02, 0.98, text, transform=ax.transAxes, ha="left", va="top", family="monospace", fontsize=9)

    ax.set_box_aspect(1 / 1.2)
    fig.savefig(out_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return out_path


def plot_mean_curve(
    summary: GroupSummary,
    x_grid: np.ndarray,
    hoi: float,
    out_path: str | Path,
    *,
    dpi: int = 150,
) -> Path:
    """Mean binding curve with a mean +- SD band and the two TBW boundaries."""

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    x_line = np.asarray(x_grid, dtype=float)

    fig, ax = plt.subplots(figsize=(7.2, 6.0))
    ax.fill_between(
        x_line,
        summary.mean_curve - summary.std_curve,
        summary.mean_curve + summary.std_curve,
        color="k",
        alpha=0.15,
        linewidth=0,
    )
    ax.plot(x_line, summary.mean_curve, "-k", linewidth=2)
    ax.set_title(f"Mean Temporal Binding Window for Category: {summary.label}")
    ax.set_xlabel(XLABEL_SOA)
    ax.set_ylabel(YLABEL_SYNC)
    ax.set_ylim(0.0, 1.0)

    xlimits = ax.get_xlim()
    ax.plot(xlimits, [hoi, hoi], "--", color=HOI_COLOR)
    ax.set_xlim(xlimits)

    left, right = summary.left_boundary_ms, summary.right_boundary_ms
    ax.plot([left, left], [0.0, hoi], "-", color="k")
    ax.plot([right, right], [0.0, hoi], "-", color="k")
    ax.text(left * 0.9, 0.25, f"{left:g}", ha="left")
    ax.text(right * 0.9, 0.25, f"{right:g}", ha="right")

    ax.set_box_aspect(1 / 1.2)
    fig.savefig(out_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return out_path
