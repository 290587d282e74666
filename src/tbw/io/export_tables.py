"""Summary tables for subject fits and group statistics.

Tables are built with polars and written to Excel through pandas/openpyxl,
one sheet per table (`subjects`, `group`, `failures`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

import pandas as pd
import polars as pl

from ..group.core import GroupResult
from ..subject.core import SubjectResult

SUBJECT_SCHEMA = {
    "subject": pl.Int64,
    "category": pl.Int64,
    "label": pl.Utf8,
    "n_trials": pl.Int64,
    "b_AV_intercept": pl.Float64,
    "b_AV_slope": pl.Float64,
    "b_VA_intercept": pl.Float64,
    "b_VA_slope": pl.Float64,
    "bind_AV": pl.Float64,
    "bind_VA": pl.Float64,
    "temporal_binding_window": pl.Float64,
}


def _category_label(category: int, all_category: int) -> str:
    return "all" if int(category) == int(all_category) else f"cat_{int(category)}"


def subject_summary_frame(subjects: Mapping[int, SubjectResult]) -> pl.DataFrame:
    """One row per fitted subject x category."""

    rows: list[dict] = []
    for subject, res in sorted(subjects.items()):
        for c in sorted(res.categories):
            fit = res.categories[c]
            rows.append(
                {
                    "subject": int(subject),
                    "category": int(c),
                    "label": fit.label,
                    "n_trials": int(fit.n_trials),
                    "b_AV_intercept": float(fit.b_AV[0]),
                    "b_AV_slope": float(fit.b_AV[1]),
                    "b_VA_intercept": float(fit.b_VA[0]),
                    "b_VA_slope": float(fit.b_VA[1]),
                    "bind_AV": float(fit.bind_AV),
                    "bind_VA": float(fit.bind_VA),
                    "temporal_binding_window": float(fit.temporal_binding_window),
                }
            )
    if not rows:
        return pl.DataFrame(schema=SUBJECT_SCHEMA)
    return pl.DataFrame(rows, schema=SUBJECT_SCHEMA)


def group_summary_frame(group: GroupResult) -> pl.DataFrame:
    """One row per summarized category."""

    rows: list[dict] = []
    for c, summary in sorted(group.summaries.items()):
        rows.append(
            {
                "category": int(c),
                "label": summary.label,
                "n_subjects_used": int(summary.n_subjects_used),
                "correlation_r": summary.correlation_r,
                "correlation_p": summary.correlation_p,
                "mean_tbw": float(summary.mean_tbw),
                "tbw_tstat": float(summary.tbw_tstat),
                "tbw_pvalue": float(summary.tbw_pvalue),
                "left_boundary_ms": float(summary.left_boundary_ms),
                "right_boundary_ms": float(summary.right_boundary_ms),
                "correlation_note": None if summary.correlation_error is None else summary.correlation_error.message,
            }
        )
    schema_overrides = {
        "correlation_r": pl.Float64,
        "correlation_p": pl.Float64,
        "correlation_note": pl.Utf8,
    }
    return pl.DataFrame(rows, schema_overrides=schema_overrides) if rows else pl.DataFrame()


def failures_frame(
    subjects: Mapping[int, SubjectResult],
    group: Optional[GroupResult] = None,
) -> pl.DataFrame:
    """Every per-subject/per-category failure plus group exclusions."""

    rows: list[dict] = []
    for subject, res in sorted(subjects.items()):
        for c, err in sorted(res.failures.items()):
            rows.append(
                {
                    "stage": "subject",
                    "subject": int(subject),
                    "category": _category_label(c, res.all_category),
                    "kind": err.kind,
                    "message": err.message,
                }
            )
    if group is not None:
        for subject, reason in sorted(group.excluded_subjects.items()):
            rows.append(
                {"stage": "group", "subject": int(subject), "category": None, "kind": "Excluded", "message": reason}
            )
        group_ids = set(group.summaries) | set(group.failures)
        for c, err in sorted(group.failures.items()):
            rows.append(
                {
                    "stage": "group",
                    "subject": None,
                    "category": _category_label(c, max(group_ids)),
                    "kind": err.kind,
                    "message": err.message,
                }
            )

    schema = {"stage": pl.Utf8, "subject": pl.Int64, "category": pl.Utf8, "kind": pl.Utf8, "message": pl.Utf8}
    if not rows:
        return pl.DataFrame(schema=schema)
    return pl.DataFrame(rows, schema=schema)


def write_summary_xlsx(
    out_xlsx: str | Path,
    subjects: Mapping[int, SubjectResult],
    group: Optional[GroupResult] = None,
) -> Path:
    out_xlsx = Path(out_xlsx)
    out_xlsx.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(out_xlsx, engine="openpyxl") as writer:
        subject_summary_frame(subjects).to_pandas().to_excel(writer, sheet_name="subjects", index=False)
        if group is not None:
            group_summary_frame(group).to_pandas().to_excel(writer, sheet_name="group", index=False)
        failures_frame(subjects, group).to_pandas().to_excel(writer, sheet_name="failures", index=False)
    return out_xlsx
