from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from tbw.trials import trials_from_records

OFFSETS_MS = np.arange(-400.0, 401.0, 50.0)  # 17 SOAs
REPS = 10


def bump_probability(offset_ms: float, width_ms: float, peak: float = 0.95) -> float:
    return float(peak * np.exp(-((offset_ms / width_ms) ** 2)))


def make_subject_records(subject: int, category: int, width_ms: float) -> list[tuple[int, int, float, int]]:
    """Deterministic simultaneity judgments following a Gaussian-shaped bump.

    At each SOA, `round(REPS * p)` of the `REPS` trials are judged simultaneous.
    """

    records = []
    for x in OFFSETS_MS:
        n_yes = int(round(REPS * bump_probability(x, width_ms)))
        for k in range(REPS):
            records.append((subject, category, float(x), 1 if k < n_yes else 0))
    return records


@pytest.fixture
def make_trials():
    def _make(widths: dict[int, dict[int, float]]):
        """`widths = {subject: {category: width_ms}}` -> canonical trial table."""

        records = []
        for subject, cats in widths.items():
            for category, width in cats.items():
                records.extend(make_subject_records(subject, category, width))
        return trials_from_records(records)

    return _make
