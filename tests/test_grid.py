import numpy as np
import pytest

from outbreak_incidence.errors import InvalidIntervalError, InvalidRangeError
from outbreak_incidence.grid import build_grid


def test_daily_grid_covers_range():
    starts = build_grid(1, 5, 1)
    assert starts.tolist() == [1, 2, 3, 4, 5]


@pytest.mark.parametrize("width", [1, 2, 3, 7, 10])
def test_bins_are_exactly_width_apart(width):
    starts = build_grid(100, 137, width)
    assert starts[0] == 100
    assert np.all(np.diff(starts) == width)
    # last bin covers max_date, no bin starts past it
    assert starts[-1] <= 137 < starts[-1] + width


def test_last_bin_kept_at_full_width():
    starts = build_grid(0, 10, 7)
    assert starts.tolist() == [0, 7]


def test_exact_multiple_span():
    assert build_grid(0, 13, 7).tolist() == [0, 7]
    assert build_grid(0, 14, 7).tolist() == [0, 7, 14]


def test_single_day_range():
    assert build_grid(42, 42, 7).tolist() == [42]


@pytest.mark.parametrize("width", [0, -1, 1.5, True, "7"])
def test_invalid_interval(width):
    with pytest.raises(InvalidIntervalError):
        build_grid(0, 10, width)


def test_invalid_range():
    with pytest.raises(InvalidRangeError):
        build_grid(10, 9, 1)
