import numpy as np
import pytest

from outbreak_incidence import ALL_GROUP, IncidenceTable


def table_from_counts(counts, interval_width=1, start=0, groups=(ALL_GROUP,)):
    counts = np.asarray(counts)
    return IncidenceTable(
        bin_starts=start + interval_width * np.arange(counts.shape[0]),
        counts=counts,
        interval_width=interval_width,
        groups=groups,
    )


@pytest.fixture
def make_table():
    return table_from_counts
