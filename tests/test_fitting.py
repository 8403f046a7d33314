import numpy as np
import pytest
from scipy import stats

from outbreak_incidence import InsufficientDataError, aggregate, fit, fit_groups


def test_flat_series_is_inconclusive():
    table = aggregate([1, 1, 2, 2, 3, 3, 4, 4, 5, 5], interval_width=1)
    model = fit(table)
    assert model.rate == pytest.approx(0.0, abs=1e-12)
    assert model.r_squared == pytest.approx(0.0, abs=1e-12)
    assert not model.is_significant
    assert model.doubling_time is None
    assert model.halving_time is None
    assert model.window == (0, 4)


def test_doubling_series_recovers_doubling_time(make_table):
    counts = 1000 * 2 ** np.arange(10)
    model = fit(make_table(counts))
    lower, upper = model.rate_ci
    assert lower > 0
    assert model.rate == pytest.approx(np.log(2), rel=1e-3)
    assert model.doubling_time == pytest.approx(1.0, rel=1e-3)
    assert model.halving_time is None
    assert model.r_squared > 0.999


def test_halving_series_in_days(make_table):
    counts = 2 ** 20 // 2 ** np.arange(10)
    model = fit(make_table(counts, interval_width=7))
    assert model.rate_ci[1] < 0
    assert model.doubling_time is None
    assert model.halving_time == pytest.approx(1.0, rel=1e-3)
    assert model.halving_time_days == pytest.approx(7.0, rel=1e-3)
    assert model.rate_per_day == pytest.approx(-np.log(2) / 7, rel=1e-3)


def test_standard_error_matches_linregress(make_table):
    counts = np.array([3, 5, 4, 9, 12, 10, 18, 25, 22, 40])
    model = fit(make_table(counts))
    x = np.arange(10)
    ref = stats.linregress(x, np.log(counts + 1.0))
    assert model.rate == pytest.approx(ref.slope)
    assert model.intercept == pytest.approx(ref.intercept)
    assert model.rate_se == pytest.approx(ref.stderr)
    assert model.r_squared == pytest.approx(ref.rvalue ** 2)

    crit = stats.t.ppf(0.975, 8)
    assert model.rate_ci[0] == pytest.approx(ref.slope - crit * ref.stderr)
    assert model.rate_ci[1] == pytest.approx(ref.slope + crit * ref.stderr)


def test_conf_level_widens_interval(make_table):
    counts = np.array([3, 5, 4, 9, 12, 10, 18, 25, 22, 40])
    narrow = fit(make_table(counts), conf_level=0.8)
    wide = fit(make_table(counts), conf_level=0.99)
    assert wide.rate_ci[0] < narrow.rate_ci[0]
    assert wide.rate_ci[1] > narrow.rate_ci[1]
    with pytest.raises(ValueError):
        fit(make_table(counts), conf_level=1.5)


def test_window_uses_absolute_bin_index(make_table):
    counts = np.array([50, 40, 1, 2, 4, 8, 16])
    model = fit(make_table(counts), window=(2, 6))
    assert model.window == (2, 6)
    assert model.n_bins == 5
    assert model.rate > 0
    assert model.bin_starts.tolist() == [2, 3, 4, 5, 6]


def test_two_bin_window_has_no_degrees_of_freedom(make_table):
    model = fit(make_table([1, 8, 3]), window=(0, 1))
    assert model.r_squared == pytest.approx(1.0)
    assert model.rate_ci == (float("-inf"), float("inf"))
    assert model.doubling_time is None


def test_insufficient_data(make_table):
    table = make_table([0, 0, 0, 5, 6])
    with pytest.raises(InsufficientDataError):
        fit(table, window=(3, 3))
    with pytest.raises(InsufficientDataError):
        fit(table, window=(0, 2))
    with pytest.raises(InsufficientDataError):
        fit(make_table([4]))


def test_invalid_window(make_table):
    table = make_table([1, 2, 3, 4])
    with pytest.raises(ValueError):
        fit(table, window=(2, 1))
    with pytest.raises(ValueError):
        fit(table, window=(0, 4))


def test_group_selection():
    table = aggregate([1, 2, 2, 3, 3, 3], group_labels=["a", "a", "b", "a", "b", "b"])
    with pytest.raises(ValueError):
        fit(table)
    with pytest.raises(KeyError):
        fit(table, "z")
    model = fit(table, "b")
    assert model.group == "b"

    models = fit_groups(table)
    assert [m.group for m in models] == ["a", "b"]


def test_fit_does_not_touch_table(make_table):
    table = make_table([1, 3, 9, 27])
    before = table.counts.copy()
    fit(table)
    assert np.array_equal(table.counts, before)


def test_predict_follows_data(make_table):
    counts = 1000 * 2 ** np.arange(6)
    model = fit(make_table(counts, interval_width=7))
    pred = model.predict()
    assert list(pred.columns) == ["bin_index", "bin_start", "bin_midpoint", "fitted", "lower", "upper"]
    assert pred["bin_midpoint"].tolist() == [3.5, 10.5, 17.5, 24.5, 31.5, 38.5]
    assert np.allclose(pred["fitted"], counts, rtol=1e-2)
    assert (pred["lower"] <= pred["fitted"]).all()
    assert (pred["upper"] >= pred["fitted"]).all()


def test_invalid_offset(make_table):
    with pytest.raises(ValueError):
        fit(make_table([1, 2, 3]), offset=0)
