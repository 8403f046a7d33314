"""
Exceptions raised by the incidence core.

All of them are validation failures detected locally; none are transient.
"""


class IncidenceError(ValueError):
    """Base class for incidence errors."""


class InvalidIntervalError(IncidenceError):
    """Interval width is not a positive integer."""


class InvalidRangeError(IncidenceError):
    """Maximum date lies before the minimum date."""


class EmptyInputError(IncidenceError):
    """No dates to derive bins from and no explicit bounds given."""


class LengthMismatchError(IncidenceError):
    """Group labels and event dates differ in length."""


class InsufficientDataError(IncidenceError):
    """Window too short or all-zero, so no slope can be estimated."""


class NoValidSplitError(IncidenceError):
    """No candidate split produced two valid fits."""
