"""Temporal binding window (TBW) estimation for simultaneity-judgment data."""

from .config import TBWConfig, load_config
from .errors import (
    DegenerateCurveError,
    InsufficientDataError,
    ShapeMismatchError,
    TBWError,
    UnderpoweredGroupError,
)
from .grid import XGrid
from .group import GroupResult, GroupSummary, aggregate_group
from .subject import CategoryFit, SubjectResult, estimate_subject, estimate_subjects
from .trials import TRIAL_COLUMNS, normalize_trials, trials_from_records

__all__ = [
    "TBWConfig",
    "load_config",
    "TBWError",
    "InsufficientDataError",
    "DegenerateCurveError",
    "UnderpoweredGroupError",
    "ShapeMismatchError",
    "XGrid",
    "CategoryFit",
    "SubjectResult",
    "estimate_subject",
    "estimate_subjects",
    "GroupResult",
    "GroupSummary",
    "aggregate_group",
    "TRIAL_COLUMNS",
    "normalize_trials",
    "trials_from_records",
]
