"""Subject-level TBW estimation (AV/VA logistic fits per category)."""

from .core import (
    CategoryFit,
    SubjectResult,
    binding_point,
    estimate_subject,
    estimate_subjects,
    fit_category,
    print_subject_status,
    split_av_va,
    splice_binding_curve,
)

__all__ = [
    "CategoryFit",
    "SubjectResult",
    "binding_point",
    "estimate_subject",
    "estimate_subjects",
    "fit_category",
    "print_subject_status",
    "split_av_va",
    "splice_binding_curve",
]
