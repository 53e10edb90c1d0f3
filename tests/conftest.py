"""
tests/conftest.py — Shared pytest fixtures.

Provides:
  write_elsi_csv()  — writes rows in the ELSI export layout (title block,
                      header, data, footer notes)
  sample_csv        — a small export covering casing, formatting,
                      placeholders and zero bases
  sample_records    — the cleaned DataFrame for sample_csv
"""

from __future__ import annotations

import csv
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from district_finance.data_cleaning import COLUMN_MAP, clean, load_raw

HEADERS = list(COLUMN_MAP)

TITLE_BLOCK = [
    "ELSI Export",
    "ELSI Table Generator",
    "Table Name: District Finance",
    "Data Source: U.S. Department of Education National Center for Education Statistics",
    "Note: per-pupil amounts are in dollars",
]

FOOTER = [
    "Data Source: U.S. Department of Education National Center for Education Statistics",
    "† indicates that the data are not applicable.",
    "– indicates that the data are missing.",
    "‡ indicates that the data do not meet NCES data quality standards.",
]

# Agency Name, State, rev 20-21, rev 21-22, supp 20-21, supp 21-22, ben 20-21, ben 21-22
SAMPLE_ROWS = [
    ["Albany City SD", "NEW YORK", "20000", "22000", "8000", "8400", "5000", "5500"],
    ["Buffalo City SD", "New York", "$18,000", "$19,800", "7,000", "7,700", "4000", "4400"],
    ["Yonkers City SD", "new york", "25000", "26250", "9000", "9900", "6000", "6000"],
    ["Akron City SD", "OHIO", "15000", "16500", "6000", "5400", "3000", "3300"],
    ["Dayton City SD", "OHIO", "16000", "16000", "6500", "6500", "0", "500"],
    ["Toledo City SD", "OHIO", "14000", "14700", "5000", "5500", "2500", "2750"],
    ["Anchorage SD", "ALASKA", "20000", "21000", "9000", "9450", "6000", "6300"],
    ["Juneau SD", "ALASKA", "22000", "22000", "9500", "9500", "6500", "6500"],
    ["Peoria SD 150", "ILLINOIS", "†", "17000", "6000", "6300", "4000", "4200"],
    ["Rockford SD 205", "ILLINOIS", "16000", "17600", "6000", "6000", "4000", "3600"],
    ["Springfield SD 186", "ILLINOIS", "15000", "15000", "5500", "6050", "3500", "3500"],
]


def write_elsi_csv(path: Path, rows: list[list[str]], headers: list[str] = HEADERS) -> Path:
    with open(path, "w", encoding="utf-8", newline="") as fh:
        for line in TITLE_BLOCK:
            fh.write(line + "\n")
        writer = csv.writer(fh)
        writer.writerow(headers)
        writer.writerows(rows)
        for line in FOOTER:
            fh.write(line + "\n")
    return path


@pytest.fixture
def sample_csv(tmp_path: Path) -> Path:
    return write_elsi_csv(tmp_path / "district_finance.csv", SAMPLE_ROWS)


@pytest.fixture
def sample_records(sample_csv: Path) -> pd.DataFrame:
    return clean(load_raw(sample_csv))


def make_records(rows: list[tuple]) -> pd.DataFrame:
    """Build a cleaned-shape DataFrame from ``(state, name, *six metrics)`` tuples."""
    return pd.DataFrame(
        rows,
        columns=[
            "state", "school_name",
            "rev_20_21", "rev_21_22", "supp_20_21", "supp_21_22", "ben_20_21", "ben_21_22",
        ],
    ).astype({c: float for c in ["rev_20_21", "rev_21_22", "supp_20_21", "supp_21_22", "ben_20_21", "ben_21_22"]})


@pytest.fixture
def records_factory():
    return make_records
