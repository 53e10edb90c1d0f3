"""
change_analysis.py
==================
Year-over-year change in per-pupil revenue, support-services and benefit
spending, summarised per state and nationally.

Usage
-----
    from district_finance.change_analysis import analyze_changes

    summary, extrema = analyze_changes(clean_df)
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .data_cleaning import METRICS

logger = logging.getLogger(__name__)

EXTREMA_COLUMNS = ["highest_state", "highest_pct", "lowest_state", "lowest_pct", "national_med"]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def district_changes(df: pd.DataFrame, metrics: dict = METRICS) -> pd.DataFrame:
    """Add absolute and percent change columns for every metric family.

    New columns added
    -----------------
    ``<metric>_diff``
        second-year value minus first-year value.
    ``<metric>_pct``
        ``(year2 / year1 - 1) * 100``; ``NaN`` where the first-year value is
        exactly zero, so the district drops out of the state median.

    Parameters
    ----------
    df:
        Cleaned DataFrame from :func:`district_finance.data_cleaning.clean`.

    Returns
    -------
    pd.DataFrame with ``state``, ``school_name``, the metric columns and the
    new change columns.
    """
    year_cols = [col for pair in metrics.values() for col in pair]
    df = df[["state", "school_name", *year_cols]].copy()

    for metric, (y1, y2) in metrics.items():
        base = df[y1].replace(0, np.nan)
        df[f"{metric}_diff"] = df[y2] - df[y1]
        df[f"{metric}_pct"] = (df[y2] / base - 1) * 100

    n_zero = int((df[[y1 for y1, _ in metrics.values()]] == 0).sum().sum())
    logger.info("Step A — district changes computed (%d zero-base values excluded)", n_zero)
    return df


def state_change_summary(changes: pd.DataFrame, metrics: dict = METRICS) -> pd.DataFrame:
    """Median percent change per state, one column per metric.

    Undefined percent changes are skipped. A state whose districts all have
    undefined changes for a metric gets ``NaN`` for that metric.
    """
    pct_cols = [f"{metric}_pct" for metric in metrics]
    summary = changes.groupby("state", sort=True)[pct_cols].median()
    logger.info("Step B — per-state medians for %d states", len(summary))
    return summary


def national_medians(summary: pd.DataFrame) -> pd.Series:
    """Median across states of each state's own median (median of medians)."""
    national = summary.median()
    national.index = [col.removesuffix("_pct") for col in national.index]
    return national


def change_extrema(summary: pd.DataFrame) -> pd.DataFrame:
    """Highest and lowest state per metric, alongside the national median.

    Ties resolve to the state that comes first in ``summary``'s index,
    which is alphabetical for the output of :func:`state_change_summary`.

    Returns
    -------
    pd.DataFrame indexed by metric with columns ``highest_state``,
    ``highest_pct``, ``lowest_state``, ``lowest_pct``, ``national_med``.
    """
    national = national_medians(summary)
    rows = {}
    for col in summary.columns:
        metric = col.removesuffix("_pct")
        values = summary[col].dropna()
        if values.empty:
            logger.warning("No defined percent changes for %s; skipping", metric)
            continue
        hi, lo = values.idxmax(), values.idxmin()
        rows[metric] = {
            "highest_state": hi,
            "highest_pct": float(values[hi]),
            "lowest_state": lo,
            "lowest_pct": float(values[lo]),
            "national_med": float(national[metric]),
        }

    result = pd.DataFrame.from_dict(rows, orient="index").reindex(columns=EXTREMA_COLUMNS)
    result.index.name = "metric"
    logger.info("Step D — extrema found for %d metrics", len(result))
    return result


def analyze_changes(df: pd.DataFrame, metrics: dict = METRICS) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Run steps A–D and return ``(state_summary, extrema)``."""
    summary = state_change_summary(district_changes(df, metrics), metrics)
    return summary, change_extrema(summary)
