"""Error kinds raised by the TBW estimator and aggregator.

All errors derive from `TBWError` (itself a `ValueError`) so callers can isolate
per-subject / per-category failures with a single `except TBWError` while still
letting programming errors propagate.
"""

from __future__ import annotations

from typing import Optional


class TBWError(ValueError):
    """Base class; optionally tagged with the subject/category it belongs to."""

    def __init__(
        self,
        message: str,
        *,
        subject: Optional[int] = None,
        category: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = str(message)
        self.subject = subject
        self.category = category

    @property
    def kind(self) -> str:
        return type(self).__name__

    def tagged(self, *, subject: Optional[int] = None, category: Optional[int] = None) -> "TBWError":
        """Fill in missing subject/category tags and return self."""

        if self.subject is None and subject is not None:
            self.subject = int(subject)
        if self.category is None and category is not None:
            self.category = int(category)
        return self


class InsufficientDataError(TBWError):
    """Too few observations (or no response variation) to fit a logistic model."""


class DegenerateCurveError(TBWError):
    """AV/VA curves never cross, or the mean curve has no regional minimum."""


class UnderpoweredGroupError(TBWError):
    """Group statistic undefined (fewer than 2 subjects, zero variance, ...)."""


class ShapeMismatchError(TBWError):
    """Subjects disagree on x-grid or category layout; aggregation cannot proceed."""


__all__ = [
    "TBWError",
    "InsufficientDataError",
    "DegenerateCurveError",
    "UnderpoweredGroupError",
    "ShapeMismatchError",
]
