"""Canonical trial table shared by loaders and the estimator.

One row per trial: `subject`, `category`, `offset_ms`, `simultaneity` (0/1).
Negative offsets are audio-leading (AV), positive offsets visual-leading (VA).
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd
import polars as pl

TRIAL_COLUMNS = ["subject", "category", "offset_ms", "simultaneity"]

TRIAL_SCHEMA: dict[str, Any] = {
    "subject": pl.Int64,
    "category": pl.Int64,
    "offset_ms": pl.Float64,
    "simultaneity": pl.Int64,
}


def normalize_trials(df: Any) -> pl.DataFrame:
    """Coerce a polars/pandas DataFrame to the canonical trial schema.

    Extra columns are dropped; row order is preserved.

    Raises
    ------
    KeyError
        A canonical column is missing.
    ValueError
        Missing values, or simultaneity outside {0, 1}.
    """

    if isinstance(df, pd.DataFrame):
        df = pl.from_pandas(df)
    elif not isinstance(df, pl.DataFrame):
        raise TypeError(f"Unsupported trials type: {type(df)!r}")

    missing = [c for c in TRIAL_COLUMNS if c not in df.columns]
    if missing:
        raise KeyError(f"Trial table is missing columns: {missing!r} (got {list(df.columns)!r})")

    raw = df.select([pl.col(c).cast(pl.Float64, strict=True).alias(c) for c in TRIAL_COLUMNS])

    null_counts = {c: int(raw.get_column(c).null_count()) for c in TRIAL_COLUMNS}
    if any(null_counts.values()):
        raise ValueError(f"Trial table contains missing values: {null_counts!r}")
    for c in TRIAL_COLUMNS:
        if not np.all(np.isfinite(raw.get_column(c).to_numpy())):
            raise ValueError(f"Trial table contains non-finite values in column {c!r}.")

    bad = raw.filter(~pl.col("simultaneity").is_in([0.0, 1.0]))
    if bad.height > 0:
        values = sorted(set(bad.get_column("simultaneity").to_list()))
        raise ValueError(f"simultaneity must be 0/1. Got other values: {values[:5]!r}")

    return raw.select([pl.col(c).cast(dtype).alias(c) for c, dtype in TRIAL_SCHEMA.items()])


def trials_from_records(records: list[tuple[int, int, float, int]]) -> pl.DataFrame:
    """Build a canonical trial table from `(subject, category, offset_ms, simultaneity)` tuples."""

    if not records:
        return pl.DataFrame(schema=TRIAL_SCHEMA)
    columns = list(zip(*records))
    if len(columns) != len(TRIAL_COLUMNS):
        raise ValueError(f"Trial records must have {len(TRIAL_COLUMNS)} fields. Got {len(columns)}.")
    df = pl.DataFrame({name: [float(v) for v in values] for name, values in zip(TRIAL_COLUMNS, columns)})
    return normalize_trials(df)


def subject_ids(trials: pl.DataFrame) -> list[int]:
    return sorted(int(s) for s in trials.get_column("subject").unique().to_list())
