from __future__ import annotations

from pathlib import Path

import pandas as pd
import polars as pl

from ..trials import TRIAL_COLUMNS, normalize_trials

EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xls")


def _numeric_block(df: pl.DataFrame, source: Path) -> pl.DataFrame:
    """Take the first four columns positionally and keep fully numeric rows."""

    if df.width < len(TRIAL_COLUMNS):
        raise ValueError(
            f"Expected at least {len(TRIAL_COLUMNS)} columns (subject, category, offset, simultaneity) "
            f"in {source}. Got {df.width}."
        )
    block = df.select(
        [pl.col(name).cast(pl.Float64, strict=False).alias(col) for name, col in zip(df.columns, TRIAL_COLUMNS)]
    )
    # header lines / blank rows become nulls above
    return block.drop_nulls()


def load_trials(path: str | Path, sheet_name: str | int = 0) -> pl.DataFrame:
    """Read a trial table from a spreadsheet or CSV file.

    Column layout (positional, header optional):
    `subject | category | offset_ms | simultaneity`

    Rows that are not fully numeric (header lines, notes, blanks) are skipped,
    as MATLAB's `xlsread` does for the numeric block.

    Parameters
    ----------
    path:
        `.xlsx/.xlsm/.xls` (first sheet by default) or `.csv`.
    sheet_name:
        Sheet for Excel inputs.

    Returns
    -------
    pl.DataFrame
        Canonical trial table (see `tbw.trials.normalize_trials`).
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Trial file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        raw_pd = pd.read_excel(path, sheet_name=sheet_name, header=None)
        raw_pd = raw_pd.apply(pd.to_numeric, errors="coerce")
        raw_pd.columns = [f"column_{i}" for i in range(raw_pd.shape[1])]
        raw = pl.from_pandas(raw_pd)
    elif suffix == ".csv":
        raw = pl.read_csv(path, has_header=False, infer_schema_length=0, encoding="utf8-lossy")
    else:
        raise ValueError(f"Unsupported trial file type: {path.suffix!r} ({path})")

    block = _numeric_block(raw, path)
    if block.height == 0:
        raise ValueError(f"No numeric trial rows found in {path}")
    return normalize_trials(block)
