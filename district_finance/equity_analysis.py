"""
equity_analysis.py
==================
Within-state funding dispersion: the ratio of the 90th to the 10th
percentile of per-pupil amounts across a state's districts.

Usage
-----
    from district_finance.equity_analysis import analyze_equity

    ratios, extrema = analyze_equity(clean_df)
"""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
import pandas as pd

from .data_cleaning import METRICS, normalize_state

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
EQUITY_YEAR = "21_22"

# Known outliers left out of the cross-state comparison
EXCLUDED_STATES = ("Alaska",)

LOW_QUANTILE = 0.10
HIGH_QUANTILE = 0.90

EXTREMA_COLUMNS = [
    "lowest_state", "lowest_value", "median_state", "median_value",
    "highest_state", "highest_value", "cross_state_median",
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def year_columns(year: str = EQUITY_YEAR, metrics: dict = METRICS) -> dict[str, str]:
    """Map each metric family to its column for ``year``, e.g. ``rev_21_22``."""
    cols = {}
    for metric, pair in metrics.items():
        matches = [c for c in pair if c.endswith(f"_{year}")]
        if not matches:
            raise KeyError(f"No {metric} column for year {year!r}")
        cols[metric] = matches[0]
    return cols


def state_equity_ratios(
    df: pd.DataFrame,
    year: str = EQUITY_YEAR,
    excluded_states: Iterable[str] = EXCLUDED_STATES,
    metrics: dict = METRICS,
) -> pd.DataFrame:
    """90/10 ratio of per-pupil values for each state and metric.

    Percentiles use pandas' linear interpolation. A state/metric pair is
    left out when its 10th percentile is not positive, since the ratio is
    then undefined.

    Parameters
    ----------
    df:
        Cleaned DataFrame from :func:`district_finance.data_cleaning.clean`.
    year:
        Column suffix of the school year to analyse.
    excluded_states:
        States removed before any percentile is computed.

    Returns
    -------
    pd.DataFrame with columns ``state``, ``metric``, ``p10``, ``p90``,
    ``ratio``; one row per retained state/metric pair, ordered by metric
    then state.
    """
    excluded = {normalize_state(s) for s in excluded_states}
    subset = df[~df["state"].isin(excluded)]
    logger.info(
        "Step A — %d districts after excluding %s",
        len(subset),
        ", ".join(sorted(excluded)) or "no states",
    )

    frames = []
    for metric, col in year_columns(year, metrics).items():
        grouped = subset.groupby("state", sort=True)[col]
        out = pd.DataFrame(
            {
                "p10": grouped.quantile(LOW_QUANTILE),
                "p90": grouped.quantile(HIGH_QUANTILE),
            }
        ).astype(float)
        out["ratio"] = out["p90"] / out["p10"].where(out["p10"] > 0)
        dropped = int((~np.isfinite(out["ratio"])).sum())
        if dropped:
            logger.info("%s: %d state(s) without a finite ratio", metric, dropped)
        out = out[np.isfinite(out["ratio"])]
        out.insert(0, "metric", metric)
        frames.append(out.reset_index())

    return pd.concat(frames, ignore_index=True)[["state", "metric", "p10", "p90", "ratio"]]


def equity_extrema(ratios: pd.DataFrame) -> pd.DataFrame:
    """Lowest, nearest-to-median and highest ratio state for each metric.

    ``median_state`` is the state whose ratio is closest to the cross-state
    median, and ``median_value`` is that state's own ratio; the median itself
    is reported as ``cross_state_median``. All ties resolve to the first
    state in ``ratios`` order.

    Returns
    -------
    pd.DataFrame indexed by metric.
    """
    rows = {}
    for metric, group in ratios.groupby("metric", sort=False):
        values = group.set_index("state")["ratio"]
        median = float(values.median())
        lo, hi = values.idxmin(), values.idxmax()
        nearest = (values - median).abs().idxmin()
        rows[metric] = {
            "lowest_state": lo,
            "lowest_value": float(values[lo]),
            "median_state": nearest,
            "median_value": float(values[nearest]),
            "highest_state": hi,
            "highest_value": float(values[hi]),
            "cross_state_median": median,
        }

    result = pd.DataFrame.from_dict(rows, orient="index").reindex(columns=EXTREMA_COLUMNS)
    result.index.name = "metric"
    logger.info("Step B — equity extrema found for %d metrics", len(result))
    return result


def analyze_equity(
    df: pd.DataFrame,
    year: str = EQUITY_YEAR,
    excluded_states: Iterable[str] = EXCLUDED_STATES,
    metrics: dict = METRICS,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Run steps A–B and return ``(ratios, extrema)``."""
    ratios = state_equity_ratios(df, year, excluded_states, metrics)
    return ratios, equity_extrema(ratios)
