"""
Command-line interface for outbreak_incidence package.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

from .aggregate import IncidenceTable, aggregate
from .errors import EmptyInputError, IncidenceError
from .fitting import DEFAULT_CONF_LEVEL, FittedModel, fit
from .split import DEFAULT_MIN_WINDOW_BINS, find_split
from .utils import from_ordinal, normalize_columns, to_ordinal


def load_line_list(
    csv_path: str | Path,
    date_col: str = "date",
    group_col: str | None = None,
) -> tuple[np.ndarray, np.ndarray | None]:
    """
    Load event dates (and optional group labels) from a CSV line list.

    Parameters
    ----------
    csv_path : str | Path
        CSV file with one row per event
    date_col : str
        Column holding the event date (after column normalization)
    group_col : str | None
        Optional column holding the group label

    Returns
    -------
    tuple[np.ndarray, np.ndarray | None]
        Day ordinals (NaN where the date failed to parse) and group labels
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Input file not found: {csv_path}")

    df = normalize_columns(pd.read_csv(csv_path))

    required = {date_col} | ({group_col} if group_col else set())
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    dates = to_ordinal(df[date_col])
    if len(dates) and np.isnan(dates).all():
        raise ValueError(f"All {date_col} values failed to parse.")

    labels = None
    if group_col:
        labels = df[group_col].where(df[group_col].notna(), None).to_numpy(dtype=object)
    return dates, labels


def _date_bounds(dates: np.ndarray, start: str | None, end: str | None) -> tuple[int, int] | None:
    if start is None and end is None:
        return None
    finite = dates[np.isfinite(dates)]
    if (start is None or end is None) and finite.size == 0:
        raise EmptyInputError("Cannot derive the missing date bound from an empty line list")
    lo = to_ordinal([start])[0] if start is not None else finite.min()
    hi = to_ordinal([end])[0] if end is not None else finite.max()
    if np.isnan(lo) or np.isnan(hi):
        raise ValueError(f"Could not parse date bounds start={start!r}, end={end!r}")
    return int(lo), int(hi)


def summarize_fit(model: FittedModel, label: str, split_date=None) -> dict:
    """One row describing a fitted model, with dates rather than ordinals."""
    first, last = from_ordinal([model.bin_starts[0], model.bin_starts[-1]])
    return {
        "group": model.group,
        "model": label,
        "split_date": split_date,
        "window_start": first,
        "window_end": last,
        "rate": model.rate,
        "rate_per_day": model.rate_per_day,
        "ci_lower": model.rate_ci[0],
        "ci_upper": model.rate_ci[1],
        "r_squared": model.r_squared,
        "doubling_time_days": model.doubling_time_days,
        "halving_time_days": model.halving_time_days,
    }


def fit_table(
    table: IncidenceTable,
    split: bool = False,
    min_window_bins: int = DEFAULT_MIN_WINDOW_BINS,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> tuple[list[FittedModel], pd.DataFrame]:
    """
    Fit every group of ``table``, one model per group or a before/after pair when ``split``.

    Groups that cannot be fitted are reported and skipped.
    """
    models = []
    rows = []
    for g in table.groups:
        try:
            if split:
                res = find_split(table, g, min_window_bins=min_window_bins, conf_level=conf_level)
                split_date = from_ordinal([res.split_date])[0]
                models.extend(res.fits)
                rows.append(summarize_fit(res.before, "before", split_date))
                rows.append(summarize_fit(res.after, "after", split_date))
            else:
                model = fit(table, g, conf_level=conf_level)
                models.append(model)
                rows.append(summarize_fit(model, "full"))
        except IncidenceError as e:
            print(f"Warning: group {g!r}: {e}")
    return models, pd.DataFrame(rows)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="outbreak-incidence",
        description="Compute incidence from a line list and fit log-linear growth/decay models",
    )
    parser.add_argument("input_csv", type=Path, help="CSV line list, one row per event")
    parser.add_argument("--date-col", default="date", help="Column with event dates")
    parser.add_argument("--group-col", default=None, help="Optional column with group labels")
    parser.add_argument("--interval", type=int, default=1, help="Days per bin")
    parser.add_argument("--start", default=None, help="First date to include")
    parser.add_argument("--end", default=None, help="Last date to include")
    parser.add_argument("--sort-groups", action="store_true", help="Order groups by label")
    parser.add_argument("--fit", action="store_true", help="Fit one log-linear model per group")
    parser.add_argument("--split", action="store_true", help="Fit growth and decay phases around the best split")
    parser.add_argument("--min-window-bins", type=int, default=DEFAULT_MIN_WINDOW_BINS,
                        help="Minimum bins on each side of a split")
    parser.add_argument("--conf-level", type=float, default=DEFAULT_CONF_LEVEL,
                        help="Confidence level of rate intervals")
    parser.add_argument("--output", type=Path, default=None, help="Excel file for results")
    parser.add_argument("--plot", type=Path, default=None, help="Image file for the incidence chart")
    return parser


def run(args: argparse.Namespace) -> dict[str, pd.DataFrame]:
    """Execute the CLI pipeline and return the result tables."""
    dates, labels = load_line_list(args.input_csv, args.date_col, args.group_col)
    table = aggregate(
        dates,
        group_labels=labels,
        interval_width=args.interval,
        date_bounds=_date_bounds(dates, args.start, args.end),
        sort_groups=args.sort_groups,
    )

    print(f"\n{table.total} events in {table.n_bins} bins of {table.interval_width} day(s), "
          f"{table.n_groups} group(s)")
    if table.n_excluded:
        print(f"Warning: {table.n_excluded} events were outside the date range or had no date/group")

    incidence = table.to_frame()
    incidence["bin_start"] = from_ordinal(incidence["bin_start"])
    results = {"incidence": incidence}

    models = []
    if args.fit or args.split:
        models, fits = fit_table(table, split=args.split, min_window_bins=args.min_window_bins,
                                 conf_level=args.conf_level)
        results["fits"] = fits
        for _, row in fits.iterrows():
            dt = row["doubling_time_days"]
            ht = row["halving_time_days"]
            extra = (f", doubling {dt:.1f} days" if pd.notna(dt) else
                     f", halving {ht:.1f} days" if pd.notna(ht) else "")
            print(f"  {row['group']} ({row['model']}): rate/day {row['rate_per_day']:.4f}, "
                  f"R2 {row['r_squared']:.3f}{extra}")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            for sheet_name, df in results.items():
                if not df.empty:
                    df.to_excel(writer, index=False, sheet_name=sheet_name)
        print(f"\nResults saved to: {output_path}")

    if args.plot:
        import matplotlib.pyplot as plt

        from .plotting import plot_incidence

        plot_path = Path(args.plot)
        plot_path.parent.mkdir(parents=True, exist_ok=True)
        ax = plot_incidence(table, fits=models)
        ax.figure.savefig(plot_path, dpi=300, bbox_inches="tight")
        plt.close(ax.figure)
        print(f"Chart saved to: {plot_path}")

    return results


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
