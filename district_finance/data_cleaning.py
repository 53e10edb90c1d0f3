"""
data_cleaning.py
================
Functions for loading and cleaning the ELSI district finance export.

Usage
-----
    from district_finance.data_cleaning import load_raw, clean

    raw = load_raw()
    df  = clean(raw)
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path

import pandas as pd

from .errors import ParseError, SchemaError, ValueParseWarning

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parents[1]
RAW_PATH = ROOT / "data" / "raw" / "district_finance.csv"
PROCESSED_PATH = ROOT / "data" / "processed" / "district_finance_clean.csv"

# ELSI table exports carry a title block above the header and source notes
# below the last district.
HEADER_ROWS = 5
FOOTER_ROWS = 4

# ---------------------------------------------------------------------------
# Column groups (handy references for downstream modules)
# ---------------------------------------------------------------------------
COLUMN_MAP = {
    "Agency Name": "school_name",
    "State Name [District] Latest available year": "state",
    "Total Revenue (TOTALREV) per Pupil (V33) [District Finance] 2020-21": "rev_20_21",
    "Total Revenue (TOTALREV) per Pupil (V33) [District Finance] 2021-22": "rev_21_22",
    "Total Current Expenditures - Support Services (TCURSSVC) per Pupil (V33) [District Finance] 2020-21": "supp_20_21",
    "Total Current Expenditures - Support Services (TCURSSVC) per Pupil (V33) [District Finance] 2021-22": "supp_21_22",
    "Total Current Expenditures - Benefits (Z34) per Pupil (V33) [District Finance] 2020-21": "ben_20_21",
    "Total Current Expenditures - Benefits (Z34) per Pupil (V33) [District Finance] 2021-22": "ben_21_22",
}

ID_COLS = ["state", "school_name"]

# metric family -> (first school year, second school year)
METRICS = {
    "revenue": ("rev_20_21", "rev_21_22"),
    "support": ("supp_20_21", "supp_21_22"),
    "benefit": ("ben_20_21", "ben_21_22"),
}

METRIC_LABELS = {
    "revenue": "Total Revenue",
    "support": "Support Services",
    "benefit": "Employee Benefits",
}

METRIC_COLS = [col for pair in METRICS.values() for col in pair]

# Placeholders ELSI writes for not-applicable / missing / suppressed cells
MISSING_MARKERS = {"", "†", "‡", "–", "-"}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_raw(
    path: str | Path = RAW_PATH,
    skip_header: int = HEADER_ROWS,
    skip_footer: int = FOOTER_ROWS,
    sep: str = ",",
) -> pd.DataFrame:
    """Read the raw export and return a DataFrame of untyped string columns.

    Parameters
    ----------
    path:
        Override the default path to the ELSI export.
    skip_header:
        Number of metadata rows above the column header.
    skip_footer:
        Number of note rows after the last data row.
    sep:
        Field delimiter.

    Returns
    -------
    pd.DataFrame

    Raises
    ------
    OSError
        The file is missing or cannot be opened.
    ParseError
        The contents cannot be tokenised as delimited text.
    """
    path = Path(path)
    logger.info("Loading raw data from %s", path)
    with open(path, encoding="utf-8", newline="") as fh:
        try:
            df = pd.read_csv(
                fh,
                sep=sep,
                dtype=str,
                keep_default_na=False,
                skiprows=skip_header,
                skipfooter=skip_footer,
                engine="python",
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
            raise ParseError(f"Could not parse {path}: {exc}") from exc
    logger.info("Loaded %d rows × %d columns", *df.shape)
    return df


def normalize_state(name: str) -> str:
    """Canonical state spelling: ``"NEW YORK"`` -> ``"New York"``."""
    return name.strip().lower().title()


def parse_dollars(series: pd.Series) -> pd.Series:
    """Coerce a column of dollar strings to floats.

    Currency symbols, thousands separators and ELSI placeholders are
    tolerated. Any other unparseable cell becomes ``NaN`` and is reported
    with a single :class:`ValueParseWarning` for the column.
    """
    text = series.fillna("").astype(str).str.strip()
    placeholder = text.isin(MISSING_MARKERS)
    stripped = text.str.replace(r"[$,\s]", "", regex=True)
    values = pd.to_numeric(stripped.mask(placeholder), errors="coerce").astype(float)

    n_bad = int((values.isna() & ~placeholder).sum())
    if n_bad:
        warnings.warn(
            f"{n_bad} value(s) in column {series.name!r} could not be parsed and were set to NaN",
            ValueParseWarning,
            stacklevel=2,
        )
    return values


def clean(df: pd.DataFrame, save: bool = False) -> pd.DataFrame:
    """Apply the full cleaning pipeline to the raw DataFrame.

    Steps
    -----
    1. Strip header whitespace, check for schema drift, rename to semantic
       column names and keep only those columns.
    2. Normalise state names (``"NEW YORK"`` and ``"New York"`` collapse).
    3. Parse the six metric columns to floats.
    4. Drop any district missing one or more metrics or its state name.
    5. Sort by state (stable) and reset the index.
    6. Optionally persist the cleaned file to ``data/processed/``.

    Parameters
    ----------
    df:
        Raw DataFrame returned by :func:`load_raw`.
    save:
        If ``True``, write the result to ``PROCESSED_PATH``.

    Returns
    -------
    pd.DataFrame

    Raises
    ------
    SchemaError
        An expected source column is absent.
    """
    df = df.copy()

    # 1. Rename
    df.columns = df.columns.str.strip()
    missing = [c for c in COLUMN_MAP if c not in df.columns]
    if missing:
        raise SchemaError(missing)
    df = df.rename(columns=COLUMN_MAP)[ID_COLS + METRIC_COLS].copy()
    logger.info("Step 1 — columns renamed")

    # 2. State names
    df["state"] = df["state"].fillna("").astype(str).map(normalize_state)
    df["school_name"] = df["school_name"].fillna("").astype(str).str.strip()
    logger.info("Step 2 — %d distinct state names", df["state"].nunique())

    # 3. Coerce numerics
    for col in METRIC_COLS:
        df[col] = parse_dollars(df[col])
    logger.info("Step 3 — numeric coercion done (%d cols)", len(METRIC_COLS))
    logger.debug("Missing values before filter:\n%s", missing_summary(df))

    # 4. Completeness filter
    before = len(df)
    df = df.dropna(subset=METRIC_COLS, how="any")
    logger.info(
        "Step 4 — dropped %d of %d districts with incomplete metrics",
        before - len(df),
        before,
    )
    no_state = df["state"] == ""
    if no_state.any():
        logger.info("Step 4 — dropped %d districts with no state name", int(no_state.sum()))
        df = df[~no_state]

    # 5. Sort & reset index
    df = df.sort_values("state", kind="mergesort").reset_index(drop=True)

    logger.info("Cleaning complete — %d rows × %d columns", *df.shape)

    # 6. Optionally save
    if save:
        PROCESSED_PATH.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(PROCESSED_PATH, index=False)
        logger.info("Saved cleaned data to %s", PROCESSED_PATH)

    return df


def missing_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Return a DataFrame summarising missing values per column.

    Columns returned: ``missing_count``, ``missing_pct``, ``dtype``.
    """
    missing = df.isnull().sum()
    result = pd.DataFrame(
        {
            "missing_count": missing,
            "missing_pct": (missing / max(len(df), 1) * 100).round(2),
            "dtype": df.dtypes,
        }
    )
    return result[result["missing_count"] > 0].sort_values("missing_pct", ascending=False)


def filter_counts(raw: pd.DataFrame, cleaned: pd.DataFrame) -> dict[str, int]:
    """Row counts before and after the completeness filter, for reporting."""
    return {
        "raw": len(raw),
        "kept": len(cleaned),
        "dropped": len(raw) - len(cleaned),
        "states": int(cleaned["state"].nunique()) if len(cleaned) else 0,
    }
