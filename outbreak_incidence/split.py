"""
Changepoint search splitting a series into a growth and a decay phase.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from .aggregate import IncidenceTable
from .errors import InsufficientDataError, NoValidSplitError
from .fitting import DEFAULT_CONF_LEVEL, DEFAULT_OFFSET, FittedModel, fit, resolve_group

logger = logging.getLogger(__name__)

DEFAULT_MIN_WINDOW_BINS = 2
SCORE_TOLERANCE = 1e-9


@dataclass(frozen=True, eq=False)
class SplitFit:
    """Best split of one group's series: ``before`` ends and ``after`` starts on the split bin."""

    group: Any
    split_bin_index: int
    split_date: Any
    before: FittedModel
    after: FittedModel
    score: float
    candidates: pd.DataFrame = field(repr=False)

    @property
    def fits(self) -> tuple[FittedModel, FittedModel]:
        return (self.before, self.after)


def find_split(
    table: IncidenceTable,
    group: Any | None = None,
    candidate_range: tuple[int, int] | None = None,
    min_window_bins: int = DEFAULT_MIN_WINDOW_BINS,
    conf_level: float = DEFAULT_CONF_LEVEL,
    offset: float = DEFAULT_OFFSET,
) -> SplitFit:
    """
    Find the bin that best separates a rising and a falling log-linear phase.

    Every candidate ``s`` is scored by ``r_squared`` of the fit over bins
    ``[0, s]`` plus that of the fit over ``[s, n - 1]``. The highest score
    wins; near-equal scores go to the candidate closest to the peak count,
    then to the lowest index.

    Parameters
    ----------
    table : IncidenceTable
        Incidence to search
    group : Any | None
        Group label; may be omitted for single-group tables
    candidate_range : tuple[int, int] | None
        Inclusive range of split bins to try. Default: every bin except the
        first and last ``min_window_bins`` bins
    min_window_bins : int
        Bins kept out of the candidates at each edge; each fitted segment
        holds at least ``min_window_bins + 1`` bins
    conf_level, offset
        Passed to :func:`fit`

    Returns
    -------
    SplitFit
    """
    if min_window_bins < 2:
        raise ValueError(f"min_window_bins must be >= 2, got {min_window_bins}")
    group = resolve_group(table, group)

    last = table.n_bins - 1
    lo, hi = min_window_bins, last - min_window_bins
    if candidate_range is not None:
        lo, hi = max(lo, int(candidate_range[0])), min(hi, int(candidate_range[1]))

    peak = table.peak_bin(group) if table.n_bins else 0
    rows = []
    best = []
    for s in range(lo, hi + 1):
        try:
            before = fit(table, group, window=(0, s), conf_level=conf_level, offset=offset)
            after = fit(table, group, window=(s, last), conf_level=conf_level, offset=offset)
        except InsufficientDataError as e:
            logger.debug("Skipping split at bin %d: %s", s, e)
            continue
        score = before.r_squared + after.r_squared
        rows.append({
            "split_bin_index": s,
            "split_date": table.bin_starts[s],
            "r_squared_before": before.r_squared,
            "r_squared_after": after.r_squared,
            "score": score,
        })
        best.append((score, s, before, after))

    if not best:
        raise NoValidSplitError(
            f"No split of group {group!r} gives two valid fits "
            f"({table.n_bins} bins, min_window_bins={min_window_bins})"
        )

    top = max(score for score, *_ in best)
    tied = [b for b in best if b[0] >= top - SCORE_TOLERANCE]
    score, s, before, after = min(tied, key=lambda b: (abs(b[1] - peak), b[1]))
    logger.debug("Best split for %r at bin %d (score %.4f, %d candidates)", group, s, score, len(best))

    return SplitFit(
        group=group,
        split_bin_index=s,
        split_date=table.bin_starts[s].item(),
        before=before,
        after=after,
        score=score,
        candidates=pd.DataFrame(rows),
    )
