import warnings

import numpy as np
import pytest

from tbw.config import TBWConfig
from tbw.errors import DegenerateCurveError, InsufficientDataError
from tbw.subject.core import (
    estimate_subject,
    estimate_subjects,
    fit_category,
    splice_binding_curve,
    split_av_va,
)
from tbw.trials import trials_from_records

from conftest import make_subject_records

COARSE = TBWConfig(x_bound=750.0, dx=1.0)


def test_split_is_positional_after_sorting():
    offsets = np.array([30.0, -10.0, 20.0, -40.0, 0.0])
    labels = np.array([1, 0, 1, 0, 1])
    x_av, y_av, x_va, y_va = split_av_va(offsets, labels)
    # ceil(5 / 2) == 3 trials go to AV
    assert x_av.tolist() == [-40.0, -10.0, 0.0]
    assert y_av.tolist() == [0, 0, 1]
    assert x_va.tolist() == [20.0, 30.0]
    assert y_va.tolist() == [1, 1]


def test_split_of_single_trial_leaves_va_empty():
    x_av, _, x_va, _ = split_av_va(np.array([5.0]), np.array([1]))
    assert x_av.size == 1
    assert x_va.size == 0


def test_splice_takes_av_through_cut_and_va_after():
    y_av = np.array([0.1, 0.2, 0.6, 0.9, 0.95])
    y_va = np.array([0.9, 0.8, 0.5, 0.3, 0.1])
    curve, cut = splice_binding_curve(y_av, y_va)
    assert cut == 2
    assert curve.shape == y_av.shape
    assert curve[: cut + 1].tolist() == y_av[: cut + 1].tolist()
    assert curve[cut + 1 :].tolist() == y_va[cut + 1 :].tolist()
    assert curve[cut] == y_av[cut]
    assert curve[cut + 1] == y_va[cut + 1]


def test_splice_requires_curves_to_cross():
    y_av = np.array([0.1, 0.2, 0.3])
    y_va = np.array([0.9, 0.8, 0.7])
    with pytest.raises(DegenerateCurveError):
        splice_binding_curve(y_av, y_va)
    # equal curves never satisfy the strict comparison
    with pytest.raises(DegenerateCurveError):
        splice_binding_curve(y_av, y_av.copy())


def test_fit_category_on_bump_data():
    records = make_subject_records(1, 1, width_ms=200.0)
    offsets = np.array([r[2] for r in records])
    labels = np.array([r[3] for r in records])
    x_line = COARSE.grid.values()

    fit = fit_category(offsets, labels, x_line, 0.5, category=1)
    assert fit.b_AV[1] > 0
    assert fit.b_VA[1] < 0
    assert -300.0 < fit.bind_AV < -50.0
    assert 50.0 < fit.bind_VA < 300.0
    assert fit.temporal_binding_window == pytest.approx(fit.bind_VA - fit.bind_AV)
    assert fit.temporal_binding_curve.shape == x_line.shape
    assert fit.n_trials == len(records)
    assert fit.label == "cat_1"


def test_twenty_trial_subject_has_positive_window():
    offsets = np.linspace(-500.0, 500.0, 20)
    records = [(7, 1, float(x), 1 if abs(x) < 100 else 0) for x in offsets]
    trials = trials_from_records(records)

    with warnings.catch_warnings():
        # both halves are perfectly separated
        warnings.simplefilter("ignore")
        res = estimate_subject(trials, 7, TBWConfig())

    assert not res.failures
    assert sorted(res.categories) == [1, 2]
    fit = res.categories[1]
    assert fit.bind_AV <= 0.0 <= fit.bind_VA
    assert fit.temporal_binding_window > 0
    x = res.x_grid
    centre = np.argmin(np.abs(x))
    assert fit.temporal_binding_curve[centre] > 0.5


def test_constant_category_fails_without_blocking_others(make_trials):
    records = make_subject_records(3, 1, width_ms=200.0)
    records += [(3, 2, float(x), 0) for x in np.arange(-400.0, 401.0, 50.0)]
    trials = trials_from_records(records)

    res = estimate_subject(trials, 3, COARSE)

    assert res.all_category == 3
    assert 1 in res.categories
    assert isinstance(res.failures[2], InsufficientDataError)
    assert res.failures[2].subject == 3
    assert res.failures[2].category == 2
    assert res.category_ids == [1, 2, 3]
    assert not res.ok


def test_all_category_is_last_and_uses_every_trial(make_trials):
    trials = make_trials({4: {1: 180.0, 2: 220.0}})
    res = estimate_subject(trials, 4, COARSE)
    assert res.all_category == 3
    assert res.category_ids == [1, 2, 3]
    assert res.categories[3].is_all
    assert res.categories[3].label == "all"
    assert res.categories[3].n_trials == res.categories[1].n_trials + res.categories[2].n_trials


def test_estimation_is_deterministic(make_trials):
    trials = make_trials({1: {1: 200.0, 2: 160.0}})
    first = estimate_subject(trials, 1, COARSE)
    second = estimate_subject(trials, 1, COARSE)
    for c, fit in first.categories.items():
        other = second.categories[c]
        assert np.array_equal(fit.b_AV, other.b_AV)
        assert np.array_equal(fit.b_VA, other.b_VA)
        assert fit.bind_AV == other.bind_AV
        assert fit.bind_VA == other.bind_VA
        assert np.array_equal(fit.temporal_binding_curve, other.temporal_binding_curve)


def test_estimate_subjects_shares_one_grid(make_trials):
    trials = make_trials({2: {1: 200.0}, 1: {1: 150.0}})
    results = estimate_subjects(trials, COARSE)
    assert list(results) == [1, 2]
    assert results[1].grid == results[2].grid
    assert np.array_equal(results[1].x_grid, results[2].x_grid)
    # wider bump -> wider window
    assert results[2].categories[1].temporal_binding_window > results[1].categories[1].temporal_binding_window


def test_unknown_subject_raises(make_trials):
    trials = make_trials({1: {1: 200.0}})
    with pytest.raises(InsufficientDataError):
        estimate_subject(trials, 99, COARSE)


def test_zero_bound_grid_fails_subject_estimation(make_trials):
    trials = make_trials({1: {1: 200.0}})
    cfg = TBWConfig(x_bound=0.0)
    with pytest.raises(InsufficientDataError):
        estimate_subject(trials, 1, cfg)
    with pytest.raises(InsufficientDataError):
        estimate_subjects(trials, cfg)


def test_verbose_estimation_reports_each_subject(make_trials, capsys):
    records = make_subject_records(1, 1, width_ms=200.0)
    records += [(2, 1, float(x), 0) for x in np.arange(-400.0, 401.0, 50.0)]
    results = estimate_subjects(trials_from_records(records), COARSE, verbose=True)

    out = capsys.readouterr().out.splitlines()
    assert sorted(results) == [1, 2]
    assert any(line.startswith("[OK] subject 1: cat_1=") for line in out)
    assert "[SKIP] subject 2 cat_1: InsufficientDataError: " in "\n".join(out)
    assert any(line.startswith("[SKIP] subject 2 all: InsufficientDataError") for line in out)
    assert "[OK] subject 2: no fitted categories" in out


def test_estimation_is_silent_by_default(make_trials, capsys):
    estimate_subjects(make_trials({1: {1: 200.0}}), COARSE)
    assert capsys.readouterr().out == ""
