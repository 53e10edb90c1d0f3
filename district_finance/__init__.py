"""
district-finance-report · district_finance
==========================================
Public re-exports so notebooks can do:
    from district_finance import load_raw, clean, analyze_changes, analyze_equity, plots
"""

from .data_cleaning import load_raw, clean, normalize_state
from .change_analysis import analyze_changes
from .equity_analysis import analyze_equity, EXCLUDED_STATES
from .errors import EmptyResultError, ParseError, SchemaError, ValueParseWarning
from . import plotting as plots
from .report import run

__all__ = [
    "load_raw",
    "clean",
    "normalize_state",
    "analyze_changes",
    "analyze_equity",
    "EXCLUDED_STATES",
    "EmptyResultError",
    "ParseError",
    "SchemaError",
    "ValueParseWarning",
    "plots",
    "run",
]
