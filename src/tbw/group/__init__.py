"""Group-level TBW statistics across subjects."""

from .core import (
    GroupResult,
    GroupSummary,
    aggregate_group,
    check_subject_shapes,
    select_subjects,
    summarize_category,
    tbw_boundaries,
)

__all__ = [
    "GroupResult",
    "GroupSummary",
    "aggregate_group",
    "check_subject_shapes",
    "select_subjects",
    "summarize_category",
    "tbw_boundaries",
]
