"""
Aggregation of event dates into incidence tables.

Converts a vector of ordinal event dates (optionally stratified by a group
label) into counts per fixed-width bin and group.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import pandas as pd

from .errors import EmptyInputError, LengthMismatchError
from .grid import build_grid, check_interval

ALL_GROUP = "all"


def _as_day(value) -> int | float:
    value = float(value)
    return int(value) if value.is_integer() else value


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class IncidenceTable:
    """
    Counts of events per bin and group.

    ``counts[i, j]`` is the number of events of ``groups[j]`` whose date falls
    in ``[bin_starts[i], bin_starts[i] + interval_width)``. Arrays are stored
    read-only; derived tables are always new objects.
    """

    bin_starts: np.ndarray
    counts: np.ndarray
    interval_width: int
    groups: tuple
    n_excluded: int = 0

    def __post_init__(self):
        width = check_interval(self.interval_width)
        starts = np.array(self.bin_starts, copy=True)
        counts = np.array(self.counts, dtype=np.int64, copy=True)
        if counts.ndim == 1:
            counts = counts.reshape(-1, 1)
        groups = tuple(self.groups)

        if starts.ndim != 1:
            raise ValueError("bin_starts must be one-dimensional")
        if counts.shape != (len(starts), len(groups)):
            raise ValueError(
                f"counts shape {counts.shape} does not match "
                f"{len(starts)} bins x {len(groups)} groups"
            )
        if len(set(groups)) != len(groups):
            raise ValueError(f"Group labels must be distinct: {groups}")
        if len(starts) > 1 and not np.all(np.diff(starts) == width):
            raise ValueError(f"bin_starts must be spaced exactly {width} days apart")
        if (counts < 0).any():
            raise ValueError("counts must be non-negative")

        object.__setattr__(self, "bin_starts", _readonly(starts))
        object.__setattr__(self, "counts", _readonly(counts))
        object.__setattr__(self, "interval_width", width)
        object.__setattr__(self, "groups", groups)
        object.__setattr__(self, "n_excluded", int(self.n_excluded))

    def __eq__(self, other):
        if not isinstance(other, IncidenceTable):
            return NotImplemented
        return (
            self.interval_width == other.interval_width
            and self.groups == other.groups
            and self.n_excluded == other.n_excluded
            and np.array_equal(self.bin_starts, other.bin_starts)
            and np.array_equal(self.counts, other.counts)
        )

    __hash__ = None

    @property
    def n_bins(self) -> int:
        return len(self.bin_starts)

    @property
    def n_groups(self) -> int:
        return len(self.groups)

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    @property
    def bin_ends(self) -> np.ndarray:
        """Exclusive end of each bin."""
        return self.bin_starts + self.interval_width

    @property
    def bin_midpoints(self) -> np.ndarray:
        return self.bin_starts + self.interval_width / 2.0

    def group_index(self, group: Any) -> int:
        try:
            return self.groups.index(group)
        except ValueError:
            raise KeyError(f"Unknown group {group!r}; available groups: {list(self.groups)}") from None

    def counts_for(self, group: Any) -> np.ndarray:
        """Counts of one group, one value per bin."""
        return self.counts[:, self.group_index(group)]

    def count(self, bin_index: int, group: Any = ALL_GROUP) -> int:
        return int(self.counts[bin_index, self.group_index(group)])

    def peak_bin(self, group: Any | None = None) -> int:
        """Index of the first bin holding the maximum count (all groups summed when ``group`` is None)."""
        if self.n_bins == 0:
            raise EmptyInputError("Table has no bins")
        series = self.counts.sum(axis=1) if group is None else self.counts_for(group)
        return int(np.argmax(series))

    def to_frame(self, long: bool = False) -> pd.DataFrame:
        """
        Tabulate counts as a DataFrame.

        Parameters
        ----------
        long : bool
            If False, one column per group next to ``bin_start``; if True,
            one row per (bin, group) with columns ``bin_start, group, count``.
            In the wide layout a group labelled ``"bin_start"`` is written to
            a ``"bin_start_count"`` column.

        Returns
        -------
        pd.DataFrame
        """
        starts = np.array(self.bin_starts)
        if long:
            return pd.DataFrame({
                "bin_start": np.tile(starts, self.n_groups),
                "group": [g for g in self.groups for _ in range(self.n_bins)],
                "count": np.array(self.counts).T.ravel(),
            })
        columns = [f"{g}_count" if g == "bin_start" else g for g in self.groups]
        wide = pd.DataFrame(np.array(self.counts), columns=columns)
        wide.insert(0, "bin_start", starts)
        return wide

    def pool(self) -> "IncidenceTable":
        """Collapse all groups into a single ``"all"`` group."""
        return IncidenceTable(
            bin_starts=self.bin_starts,
            counts=self.counts.sum(axis=1, keepdims=True),
            interval_width=self.interval_width,
            groups=(ALL_GROUP,),
            n_excluded=self.n_excluded,
        )

    def subset(self, start_date=None, end_date=None) -> "IncidenceTable":
        """
        Keep the bins whose start lies in ``[start_date, end_date]``.

        Events of dropped bins are added to ``n_excluded`` so the table still
        accounts for every input event.
        """
        mask = np.ones(self.n_bins, dtype=bool)
        if start_date is not None:
            mask &= self.bin_starts >= start_date
        if end_date is not None:
            mask &= self.bin_starts <= end_date
        if not mask.any():
            raise EmptyInputError(f"No bins start between {start_date} and {end_date}")

        kept = self.counts[mask]
        dropped = self.total - int(kept.sum())
        return IncidenceTable(
            bin_starts=self.bin_starts[mask],
            counts=kept,
            interval_width=self.interval_width,
            groups=self.groups,
            n_excluded=self.n_excluded + dropped,
        )


def aggregate(
    event_dates: Sequence,
    group_labels: Sequence | None = None,
    interval_width: int = 1,
    date_bounds: tuple | None = None,
    sort_groups: bool = False,
    clip_to_bounds: bool = False,
) -> IncidenceTable:
    """
    Bin event dates into an incidence table.

    Parameters
    ----------
    event_dates : Sequence
        Ordinal event dates (days). Missing values (None/NaN) are excluded.
    group_labels : Sequence | None
        Optional label per event; events with a missing label are excluded
    interval_width : int
        Days per bin
    date_bounds : tuple | None
        Inclusive ``(min_date, max_date)``. Default: range of the data
    sort_groups : bool
        Order groups by label instead of first appearance
    clip_to_bounds : bool
        Put out-of-bound events in the first/last bin instead of excluding them

    Returns
    -------
    IncidenceTable
        Counts with ``n_excluded`` set to the number of dropped events
    """
    width = check_interval(interval_width)
    dates = np.asarray(event_dates, dtype=float).ravel()

    if group_labels is None:
        codes = np.zeros(len(dates), dtype=np.intp)
        groups = (ALL_GROUP,)
    else:
        labels = np.asarray(group_labels, dtype=object).ravel()
        if len(labels) != len(dates):
            raise LengthMismatchError(
                f"group_labels has {len(labels)} entries but event_dates has {len(dates)}"
            )
        codes, uniques = pd.factorize(labels, sort=sort_groups)
        groups = tuple(uniques.tolist())

    observed = np.isfinite(dates)
    if date_bounds is None:
        if not observed.any():
            raise EmptyInputError("No event dates given and no date_bounds to build bins from")
        min_date, max_date = _as_day(dates[observed].min()), _as_day(dates[observed].max())
    else:
        min_date, max_date = date_bounds

    starts = build_grid(min_date, max_date, width)

    valid = observed & (codes >= 0)
    if clip_to_bounds:
        dates = np.clip(dates, min_date, max_date)
    else:
        valid &= (dates >= min_date) & (dates <= max_date)

    bins = np.floor((dates[valid] - min_date) / width).astype(np.intp)
    counts = np.zeros((len(starts), len(groups)), dtype=np.int64)
    np.add.at(counts, (bins, codes[valid]), 1)

    return IncidenceTable(
        bin_starts=starts,
        counts=counts,
        interval_width=width,
        groups=groups,
        n_excluded=int(len(dates) - valid.sum()),
    )
