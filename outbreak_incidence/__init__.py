"""
Outbreak Incidence Package

A Python package for computing binned incidence from event dates and fitting
log-linear growth/decay models, including a search for the peak changepoint.
"""

__version__ = "0.1.0"

from .aggregate import ALL_GROUP, IncidenceTable, aggregate
from .errors import (
    EmptyInputError,
    IncidenceError,
    InsufficientDataError,
    InvalidIntervalError,
    InvalidRangeError,
    LengthMismatchError,
    NoValidSplitError,
)
from .fitting import FittedModel, fit, fit_groups
from .grid import build_grid
from .split import SplitFit, find_split
from . import utils

__all__ = [
    "ALL_GROUP",
    "IncidenceTable",
    "aggregate",
    "build_grid",
    "FittedModel",
    "fit",
    "fit_groups",
    "SplitFit",
    "find_split",
    "IncidenceError",
    "InvalidIntervalError",
    "InvalidRangeError",
    "EmptyInputError",
    "LengthMismatchError",
    "InsufficientDataError",
    "NoValidSplitError",
    "utils",
]
