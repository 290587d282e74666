from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

# Allow running package imports without installation.
_REPO_ROOT = Path(__file__).resolve().parent
_SRC_ROOT = _REPO_ROOT / "src"
if str(_SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(_SRC_ROOT))

import matplotlib

matplotlib.use("Agg")

from tbw.config import TBWConfig, load_config
from tbw.errors import TBWError
from tbw.group import aggregate_group
from tbw.io.export_tables import write_summary_xlsx
from tbw.io.trials_excel import load_trials
from tbw.plotting import figure_name, plot_mean_curve, plot_subject, plot_tbw_scatter
from tbw.subject import estimate_subject, print_subject_status
from tbw.trials import subject_ids

DEFAULT_CONFIG = _REPO_ROOT / "config.yaml"


def _make_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Estimate temporal binding windows per subject/category and run the group analysis."
    )
    p.add_argument("--trials", required=True, help="xlsx/csv with subject, category, offset, simultaneity columns")
    p.add_argument("--sheet", default=0, help="Sheet name or index for Excel inputs")
    p.add_argument("--out_dir", default=str(_REPO_ROOT / "output"))
    p.add_argument("--config", default=str(DEFAULT_CONFIG), help="YAML config path (reads tbw.*)")
    p.add_argument("--hoi", type=float, default=None, help="Height of interest (overrides config)")
    p.add_argument("--x_bound", type=float, default=None, help="Grid half-width in ms (overrides config)")
    p.add_argument("--sampling_rate", type=float, default=None, help="Grid step in ms (overrides config)")
    p.add_argument("--threshold", type=float, default=None, help="Group inclusion threshold (overrides config)")
    p.add_argument("--dpi", type=int, default=150)
    p.add_argument("--plots", action=argparse.BooleanOptionalAction, default=True, help="Write figures")
    p.add_argument("--on_error", choices=["continue", "abort"], default="continue")
    return p


def _resolve_config(args: argparse.Namespace) -> TBWConfig:
    config_path = Path(args.config)
    if config_path.exists():
        config = load_config(config_path)
    else:
        print(f"[WARN] config not found, using defaults: {config_path}")
        config = TBWConfig()
    return config.with_overrides(
        hoi=args.hoi,
        x_bound=args.x_bound,
        dx=args.sampling_rate,
        threshold=args.threshold,
    )


def _sheet_arg(value: str | int) -> str | int:
    text = str(value)
    return int(text) if text.isdigit() else text


def main(argv: Optional[list[str]] = None) -> None:
    args = _make_parser().parse_args(argv)

    trials_path = Path(args.trials)
    out_dir = Path(args.out_dir)
    if not trials_path.exists():
        raise FileNotFoundError(f"trial file not found: {trials_path}")
    out_dir.mkdir(parents=True, exist_ok=True)

    config = _resolve_config(args)
    print(
        f"[CONFIG] hoi={config.hoi:g}, x_bound={config.x_bound:g}, "
        f"sampling_rate={config.dx:g}, threshold={config.threshold:g}"
    )

    trials = load_trials(trials_path, sheet_name=_sheet_arg(args.sheet))
    try:
        x_line = config.grid.values()
    except TBWError as exc:
        print(f"[WARN] invalid x-grid, nothing to estimate: {exc.kind}: {exc.message}")
        return
    print(f"[RUN] {trials_path.name}: {trials.height} trials")

    # 1) Subject level
    subjects = {}
    failed_categories = 0
    for s in subject_ids(trials):
        res = estimate_subject(trials, s, config, x_grid=x_line)
        subjects[s] = res
        print_subject_status(res)
        failed_categories += len(res.failures)
        if res.failures and args.on_error == "abort":
            c, err = min(res.failures.items())
            raise RuntimeError(f"Abort on subject {s}, category {c}") from err
        if args.plots and res.categories:
            plot_subject(res, config.hoi, out_dir / figure_name("subject", s), dpi=args.dpi)

    # 2) Group level
    group = None
    try:
        group = aggregate_group(subjects, threshold=config.threshold, hoi=config.hoi)
    except TBWError as exc:
        print(f"[WARN] group analysis skipped: {exc.kind}: {exc.message}")
        if args.on_error == "abort":
            raise

    if group is not None:
        for s, reason in sorted(group.excluded_subjects.items()):
            print(f"[SKIP] subject {s} excluded from group: {reason}")
        for c, err in sorted(group.failures.items()):
            print(f"[SKIP] group category {c}: {err.kind}: {err.message}")
            if args.on_error == "abort":
                raise RuntimeError(f"Abort on group category {c}") from err
        for c, summary in sorted(group.summaries.items()):
            r_txt = "n/a" if summary.correlation_r is None else f"{summary.correlation_r:.3f}"
            print(
                f"[OK] group category {summary.label}: n={summary.n_subjects_used}, r={r_txt}, "
                f"mean TBW={summary.mean_tbw:.1f} (p={summary.tbw_pvalue:.3g}), "
                f"window=[{summary.left_boundary_ms:g}, {summary.right_boundary_ms:g}]"
            )
            if args.plots:
                plot_tbw_scatter(summary, out_dir / figure_name("tbw", c), dpi=args.dpi)
                plot_mean_curve(summary, group.x_grid, config.hoi, out_dir / figure_name("tbc", c), dpi=args.dpi)

    out_xlsx = write_summary_xlsx(out_dir / "tbw_summary.xlsx", subjects, group)
    print(f"[OK] Saved: {out_xlsx}")

    n_used = 0 if group is None else group.n_subjects_used
    print(
        f"[SUMMARY] subjects={len(subjects)}, failed_categories={failed_categories}, "
        f"group_subjects_used={n_used}"
    )


if __name__ == "__main__":
    main()
