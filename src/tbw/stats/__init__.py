"""Numeric primitives: logistic fit, regional minima, group tests."""

from .inference import one_sided_ttest, pearson_correlation
from .logistic import LogisticFit, fit_logistic, sigmoid
from .minima import regional_minima, regional_minima_indices

__all__ = [
    "LogisticFit",
    "fit_logistic",
    "one_sided_ttest",
    "pearson_correlation",
    "regional_minima",
    "regional_minima_indices",
    "sigmoid",
]
