"""
errors.py
=========
Exception and warning types raised by the report pipeline.

File-level failures (missing or unreadable input) are left to the built-in
``OSError`` family and are not redefined here.
"""

from __future__ import annotations


class DistrictFinanceError(Exception):
    """Base class for fatal pipeline errors."""


class ParseError(DistrictFinanceError):
    """The input file could not be tokenised as delimited text."""


class SchemaError(DistrictFinanceError):
    """One or more expected source columns are absent from the input."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            "Expected column(s) not found in input: " + ", ".join(self.missing)
        )


class EmptyResultError(DistrictFinanceError):
    """An analysis step left one or more metrics with nothing to report."""

    def __init__(self, what: str, missing: list[str]):
        self.what = what
        self.missing = list(missing)
        super().__init__(
            f"No {what} result for metric(s): " + ", ".join(self.missing)
        )


class ValueParseWarning(UserWarning):
    """A metric cell could not be parsed as a number and was set to NaN."""
