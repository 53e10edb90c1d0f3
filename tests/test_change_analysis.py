"""
tests/test_change_analysis.py — Tests for year-over-year change summaries.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from district_finance.change_analysis import (
    EXTREMA_COLUMNS,
    analyze_changes,
    change_extrema,
    district_changes,
    national_medians,
    state_change_summary,
)


def _summary(values: dict[str, dict[str, float]]) -> pd.DataFrame:
    """State summary frame from ``{state: {metric: pct}}``."""
    df = pd.DataFrame.from_dict(values, orient="index")
    df.columns = [f"{c}_pct" for c in df.columns]
    df.index.name = "state"
    return df.sort_index()


class TestDistrictChanges:

    def test_percent_and_absolute_change(self, records_factory):
        df = records_factory([("Ohio", "A", 100, 150, 200, 100, 50, 50)])
        out = district_changes(df)
        assert out.loc[0, "revenue_pct"] == pytest.approx(50.0)
        assert out.loc[0, "revenue_diff"] == 50.0
        assert out.loc[0, "support_pct"] == pytest.approx(-50.0)
        assert out.loc[0, "support_diff"] == -100.0
        assert out.loc[0, "benefit_pct"] == 0.0

    def test_zero_base_is_undefined(self, records_factory):
        df = records_factory([("Ohio", "A", 0, 150, 1, 1, 0, 0)])
        out = district_changes(df)
        assert np.isnan(out.loc[0, "revenue_pct"])
        assert np.isnan(out.loc[0, "benefit_pct"])
        assert out.loc[0, "revenue_diff"] == 150.0

    def test_input_not_mutated(self, records_factory):
        df = records_factory([("Ohio", "A", 100, 150, 200, 100, 50, 50)])
        district_changes(df)
        assert "revenue_pct" not in df.columns


class TestStateChangeSummary:

    def test_median_per_state(self, records_factory):
        df = records_factory([
            ("Ohio", "A", 100, 110, 100, 100, 100, 100),
            ("Ohio", "B", 100, 120, 100, 100, 100, 100),
            ("Ohio", "C", 100, 190, 100, 100, 100, 100),
            ("Utah", "D", 100, 95, 100, 100, 100, 100),
        ])
        summary = state_change_summary(district_changes(df))
        assert summary.loc["Ohio", "revenue_pct"] == pytest.approx(20.0)
        assert summary.loc["Utah", "revenue_pct"] == pytest.approx(-5.0)
        assert list(summary.columns) == ["revenue_pct", "support_pct", "benefit_pct"]

    def test_zero_base_excluded_from_median(self, records_factory):
        df = records_factory([
            ("Ohio", "A", 100, 110, 1, 1, 1, 1),
            ("Ohio", "B", 100, 130, 1, 1, 1, 1),
            ("Ohio", "C", 0, 500, 1, 1, 1, 1),
        ])
        summary = state_change_summary(district_changes(df))
        # median of {10, 30}; a zero or infinite entry would shift it
        assert summary.loc["Ohio", "revenue_pct"] == pytest.approx(20.0)
        assert np.isfinite(summary.to_numpy()).all()

    def test_states_in_alphabetical_order(self, sample_records):
        summary = state_change_summary(district_changes(sample_records))
        assert summary.index.tolist() == ["Alaska", "Illinois", "New York", "Ohio"]


class TestNationalMedians:

    def test_median_of_state_medians(self):
        summary = _summary({
            "A": {"revenue": 2.0, "support": 1.0, "benefit": 0.0},
            "B": {"revenue": 4.0, "support": 1.0, "benefit": 0.0},
            "C": {"revenue": 6.0, "support": 10.0, "benefit": 0.0},
        })
        national = national_medians(summary)
        assert national["revenue"] == 4.0
        assert national["support"] == 1.0

    def test_not_a_pooled_median(self, records_factory):
        # Ohio has three districts at +10%, Utah and Iowa one each
        df = records_factory([
            ("Ohio", "A", 100, 110, 1, 1, 1, 1),
            ("Ohio", "B", 100, 110, 1, 1, 1, 1),
            ("Ohio", "C", 100, 110, 1, 1, 1, 1),
            ("Utah", "D", 100, 130, 1, 1, 1, 1),
            ("Iowa", "E", 100, 150, 1, 1, 1, 1),
        ])
        national = national_medians(state_change_summary(district_changes(df)))
        assert national["revenue"] == pytest.approx(30.0)


class TestChangeExtrema:

    def test_highest_and_lowest_benefit(self):
        summary = _summary({
            "IL": {"revenue": 0.0, "support": 0.0, "benefit": -20.0},
            "IN": {"revenue": 0.0, "support": 0.0, "benefit": 60.0},
            "OH": {"revenue": 0.0, "support": 0.0, "benefit": 10.0},
        })
        row = change_extrema(summary).loc["benefit"]
        assert row["highest_state"] == "IN"
        assert row["highest_pct"] == 60.0
        assert row["lowest_state"] == "IL"
        assert row["lowest_pct"] == -20.0
        assert row["national_med"] == 10.0

    def test_output_columns_and_index(self):
        summary = _summary({"A": {"revenue": 1.0, "support": 2.0, "benefit": 3.0}})
        extrema = change_extrema(summary)
        assert extrema.index.tolist() == ["revenue", "support", "benefit"]
        assert list(extrema.columns) == [
            "highest_state", "highest_pct", "lowest_state", "lowest_pct", "national_med",
        ]

    def test_ties_go_to_first_state(self):
        summary = _summary({
            "Iowa": {"revenue": 5.0, "support": 1.0, "benefit": 1.0},
            "Ohio": {"revenue": 5.0, "support": 1.0, "benefit": 1.0},
            "Utah": {"revenue": -1.0, "support": 1.0, "benefit": 1.0},
        })
        extrema = change_extrema(summary)
        assert extrema.loc["revenue", "highest_state"] == "Iowa"
        assert extrema.loc["support", "highest_state"] == "Iowa"
        assert extrema.loc["support", "lowest_state"] == "Iowa"

    def test_undefined_state_medians_skipped(self):
        summary = _summary({
            "Iowa": {"revenue": np.nan, "support": 1.0, "benefit": 1.0},
            "Ohio": {"revenue": 3.0, "support": 1.0, "benefit": 1.0},
            "Utah": {"revenue": 7.0, "support": 1.0, "benefit": 1.0},
        })
        row = change_extrema(summary).loc["revenue"]
        assert row["lowest_state"] == "Ohio"
        assert row["national_med"] == 5.0

    def test_metric_without_defined_change_is_absent(self):
        summary = _summary({
            "Iowa": {"revenue": np.nan, "support": 1.0, "benefit": 1.0},
            "Ohio": {"revenue": np.nan, "support": 2.0, "benefit": 1.0},
        })
        extrema = change_extrema(summary)
        assert extrema.index.tolist() == ["support", "benefit"]

    def test_empty_summary_keeps_columns(self, records_factory):
        summary = state_change_summary(district_changes(records_factory([])))
        extrema = change_extrema(summary)
        assert extrema.empty
        assert list(extrema.columns) == EXTREMA_COLUMNS


class TestAnalyzeChanges:

    def test_sample_export(self, sample_records):
        summary, extrema = analyze_changes(sample_records)
        assert summary.loc["New York", "revenue_pct"] == pytest.approx(10.0)
        assert summary.loc["Alaska", "revenue_pct"] == pytest.approx(2.5)
        rev = extrema.loc["revenue"]
        assert rev["highest_state"] == "New York"
        assert rev["lowest_state"] == "Alaska"
        assert rev["national_med"] == pytest.approx(5.0)

    def test_deterministic(self, sample_records):
        first = analyze_changes(sample_records)
        second = analyze_changes(sample_records.copy())
        pd.testing.assert_frame_equal(first[0], second[0])
        pd.testing.assert_frame_equal(first[1], second[1])
