"""
Log-linear model fitting for incidence series.

Fits ``log(count + offset) ~ bin index`` by ordinary least squares over a
contiguous window of one group's series and derives growth rates, confidence
intervals and doubling/halving times.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from scipy import stats

from .aggregate import IncidenceTable
from .errors import InsufficientDataError

DEFAULT_CONF_LEVEL = 0.95
DEFAULT_OFFSET = 1.0

LOG2 = float(np.log(2.0))


def t_critical(conf_level: float, dof: int) -> float:
    """Two-sided Student-t quantile; infinite when there are no residual degrees of freedom."""
    if not 0.0 < conf_level < 1.0:
        raise ValueError(f"conf_level must be between 0 and 1, got {conf_level}")
    if dof < 1:
        return float("inf")
    return float(stats.t.ppf((1.0 + conf_level) / 2.0, dof))


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Result of a single log-linear fit.

    ``rate`` is the change of ``log(count + offset)`` per bin. Doubling and
    halving times are expressed in bins and are ``None`` when the confidence
    interval of the rate contains zero.
    """

    group: Any
    window: tuple[int, int]
    rate: float
    rate_se: float
    rate_ci: tuple[float, float]
    intercept: float
    r_squared: float
    conf_level: float
    offset: float
    interval_width: int
    residual_se: float
    bin_starts: np.ndarray = field(repr=False)

    @property
    def n_bins(self) -> int:
        return self.window[1] - self.window[0] + 1

    @property
    def is_significant(self) -> bool:
        """True when the confidence interval of the rate excludes zero."""
        lower, upper = self.rate_ci
        return lower > 0 or upper < 0

    @property
    def doubling_time(self) -> float | None:
        if self.is_significant and self.rate > 0:
            return LOG2 / self.rate
        return None

    @property
    def halving_time(self) -> float | None:
        if self.is_significant and self.rate < 0:
            return LOG2 / -self.rate
        return None

    @property
    def rate_per_day(self) -> float:
        return self.rate / self.interval_width

    @property
    def doubling_time_days(self) -> float | None:
        dt = self.doubling_time
        return None if dt is None else dt * self.interval_width

    @property
    def halving_time_days(self) -> float | None:
        ht = self.halving_time
        return None if ht is None else ht * self.interval_width

    def predict(self, conf_level: float | None = None) -> pd.DataFrame:
        """
        Fitted counts over the window, with a confidence band for the mean.

        Parameters
        ----------
        conf_level : float | None
            Band level; defaults to the level used for the fit

        Returns
        -------
        pd.DataFrame
            Columns: bin_index, bin_start, bin_midpoint, fitted, lower, upper
        """
        level = self.conf_level if conf_level is None else conf_level
        start, end = self.window
        x = np.arange(start, end + 1, dtype=float)
        log_fit = self.intercept + self.rate * x

        dof = self.n_bins - 2
        crit = t_critical(level, dof)
        if dof < 1:
            lower = np.zeros_like(x)
            upper = np.full_like(x, np.inf)
        else:
            xc = x - x.mean()
            se_mean = self.residual_se * np.sqrt(1.0 / self.n_bins + xc ** 2 / (xc ** 2).sum())
            lower = np.exp(log_fit - crit * se_mean) - self.offset
            upper = np.exp(log_fit + crit * se_mean) - self.offset

        starts = np.asarray(self.bin_starts)
        return pd.DataFrame({
            "bin_index": np.arange(start, end + 1),
            "bin_start": starts,
            "bin_midpoint": starts + self.interval_width / 2.0,
            "fitted": np.clip(np.exp(log_fit) - self.offset, 0, None),
            "lower": np.clip(lower, 0, None),
            "upper": np.clip(upper, 0, None),
        })


def resolve_group(table: IncidenceTable, group: Any | None) -> Any:
    """Return the group to fit, defaulting to the only group of the table."""
    if group is None:
        if table.n_groups != 1:
            raise ValueError(
                f"Table has {table.n_groups} groups {list(table.groups)}; pass group= explicitly"
            )
        return table.groups[0]
    table.group_index(group)
    return group


def resolve_window(table: IncidenceTable, window: tuple[int, int] | None) -> tuple[int, int]:
    """Validate an inclusive ``(start, end)`` bin window, defaulting to the whole table."""
    if window is None:
        return 0, table.n_bins - 1
    start, end = (int(w) for w in window)
    if start < 0 or end >= table.n_bins or start > end:
        raise ValueError(f"Window {window} is not within bins 0..{table.n_bins - 1}")
    return start, end


def fit(
    table: IncidenceTable,
    group: Any | None = None,
    window: tuple[int, int] | None = None,
    conf_level: float = DEFAULT_CONF_LEVEL,
    offset: float = DEFAULT_OFFSET,
) -> FittedModel:
    """
    Fit a log-linear model to one group's counts.

    Parameters
    ----------
    table : IncidenceTable
        Incidence to fit; not modified
    group : Any | None
        Group label; may be omitted for single-group tables
    window : tuple[int, int] | None
        Inclusive bin indices to fit. Default: all bins
    conf_level : float
        Confidence level of the rate interval
    offset : float
        Added to counts before taking logs so zero counts can be fitted

    Returns
    -------
    FittedModel
    """
    if offset <= 0:
        raise ValueError(f"offset must be positive, got {offset}")
    group = resolve_group(table, group)
    start, end = resolve_window(table, window)

    n = end - start + 1
    if n < 2:
        raise InsufficientDataError(f"Need at least 2 bins to fit, window {start}..{end} has {max(n, 0)}")
    counts = table.counts_for(group)[start:end + 1]
    if not counts.any():
        raise InsufficientDataError(f"All counts are zero for group {group!r} in bins {start}..{end}")

    x = np.arange(start, end + 1, dtype=float)
    y = np.log(counts + offset)
    xc = x - x.mean()
    sxx = float((xc ** 2).sum())
    dof = n - 2

    if np.ptp(y) == 0:
        # constant series: exact zero slope, nothing explained
        rate, intercept, r_squared, ss_res = 0.0, float(y[0]), 0.0, 0.0
    else:
        yc = y - y.mean()
        rate = float((xc * yc).sum() / sxx)
        intercept = float(y.mean() - rate * x.mean())
        ss_res = float(((y - (intercept + rate * x)) ** 2).sum())
        r_squared = float(np.clip(1.0 - ss_res / float((yc ** 2).sum()), 0.0, 1.0))

    crit = t_critical(conf_level, dof)
    if dof < 1:
        residual_se = rate_se = float("nan")
        rate_ci = (float("-inf"), float("inf"))
    else:
        residual_se = float(np.sqrt(ss_res / dof))
        rate_se = residual_se / np.sqrt(sxx)
        rate_ci = (rate - crit * rate_se, rate + crit * rate_se)

    return FittedModel(
        group=group,
        window=(start, end),
        rate=rate,
        rate_se=float(rate_se),
        rate_ci=(float(rate_ci[0]), float(rate_ci[1])),
        intercept=intercept,
        r_squared=r_squared,
        conf_level=conf_level,
        offset=offset,
        interval_width=table.interval_width,
        residual_se=residual_se,
        bin_starts=np.array(table.bin_starts[start:end + 1]),
    )


def fit_groups(
    table: IncidenceTable,
    window: tuple[int, int] | None = None,
    conf_level: float = DEFAULT_CONF_LEVEL,
    offset: float = DEFAULT_OFFSET,
) -> list[FittedModel]:
    """Fit every group of the table over the same window, in group order."""
    return [
        fit(table, group=g, window=window, conf_level=conf_level, offset=offset)
        for g in table.groups
    ]
