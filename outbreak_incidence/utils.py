"""
Utility functions for data preparation and labelling.
"""

from __future__ import annotations

from datetime import date

import numpy as np
import pandas as pd


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case and snake_case column names."""
    out = df.copy()
    out.columns = (
        out.columns.str.strip()
        .str.lower()
        .str.replace(" ", "_", regex=False)
        .str.replace("-", "_", regex=False)
    )
    return out


def to_ordinal(dates) -> np.ndarray:
    """
    Convert dates to proleptic Gregorian day ordinals (``date.toordinal``).

    Anything ``pd.to_datetime`` understands is accepted; unparseable or
    missing values become NaN.
    """
    parsed = pd.Series(pd.to_datetime(pd.Series(dates), errors="coerce"))
    out = np.full(len(parsed), np.nan)
    ok = parsed.notna().to_numpy()
    out[ok] = [ts.toordinal() for ts in parsed[ok]]
    return out


def from_ordinal(ordinals) -> list[date]:
    """Convert day ordinals back to ``datetime.date`` objects."""
    return [date.fromordinal(int(o)) for o in np.asarray(ordinals).ravel()]


def incidence_label(interval_width: int) -> str:
    """Axis label describing the time step of an incidence table."""
    if interval_width == 1:
        return "Daily incidence"
    if interval_width == 7:
        return "Weekly incidence"
    if interval_width == 14:
        return "Biweekly incidence"
    return f"Incidence by period of {interval_width} days"
