"""
Interval grid construction.

Bins are left-closed and ``interval_width`` days wide. The last bin keeps its
full width even when it runs past the maximum date.
"""

from __future__ import annotations

import numbers

import numpy as np

from .errors import InvalidIntervalError, InvalidRangeError


def check_interval(interval_width) -> int:
    """Return ``interval_width`` as an int, or raise InvalidIntervalError."""
    if isinstance(interval_width, bool) or not isinstance(interval_width, numbers.Real):
        raise InvalidIntervalError(f"interval_width must be an integer, got {interval_width!r}")
    if interval_width != int(interval_width):
        raise InvalidIntervalError(f"interval_width must be an integer, got {interval_width!r}")
    if interval_width <= 0:
        raise InvalidIntervalError(f"interval_width must be >= 1, got {interval_width!r}")
    return int(interval_width)


def build_grid(min_date: int, max_date: int, interval_width: int) -> np.ndarray:
    """
    Build the ordered bin start dates covering ``[min_date, max_date]``.
    
    Parameters
    ----------
    min_date : int
        Ordinal day of the first bin start
    max_date : int
        Ordinal day that the last bin must cover
    interval_width : int
        Days per bin
    
    Returns
    -------
    np.ndarray
        Strictly increasing bin starts, ``interval_width`` apart
    """
    width = check_interval(interval_width)
    if max_date < min_date:
        raise InvalidRangeError(f"max_date ({max_date}) is before min_date ({min_date})")

    n_bins = int((max_date - min_date) // width) + 1
    return min_date + width * np.arange(n_bins)
