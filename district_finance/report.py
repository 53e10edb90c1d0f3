"""
report.py
=========
Runs the whole pipeline (load → clean → analyze → render) and composes the
PDF report: two charts, their summary tables and the narrative text.

Usage
-----
    python -m district_finance

    from district_finance.report import run
    result = run()
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, NamedTuple

import matplotlib
import matplotlib.pyplot as plt
import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from . import plotting as plots
from .change_analysis import analyze_changes
from .data_cleaning import METRIC_LABELS, METRICS, RAW_PATH, ROOT, clean, filter_counts, load_raw, normalize_state
from .equity_analysis import EXCLUDED_STATES, analyze_equity
from .errors import DistrictFinanceError, EmptyResultError

logger = logging.getLogger(__name__)

REPORT_PATH = ROOT / "outputs" / "district_finance_report.pdf"
FIGURES_DIR = plots.FIGURES_DIR

CHANGE_CHART = "change_extrema.png"
EQUITY_CHART = "equity_extrema.png"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------
styles = getSampleStyleSheet()
style_title_main = ParagraphStyle("title_main", parent=styles["Heading1"], fontSize=16, leading=20, spaceAfter=4)
style_title_sub = ParagraphStyle("title_sub", parent=styles["Heading2"], fontSize=12, leading=15, spaceAfter=6)
style_body = ParagraphStyle("body", parent=styles["Normal"], fontSize=10, leading=14)
style_note = ParagraphStyle("note", parent=style_body, fontSize=8, leading=10, textColor=colors.HexColor("#555555"))

TABLE_STYLE = TableStyle([
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 8),
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F0F0F0")),
    ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.black),
    ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
])


class ReportResult(NamedTuple):
    records: pd.DataFrame
    state_changes: pd.DataFrame
    change_extrema: pd.DataFrame
    equity_ratios: pd.DataFrame
    equity_extrema: pd.DataFrame
    counts: dict
    report_path: Path


# ---------------------------------------------------------------------------
# Narrative
# ---------------------------------------------------------------------------

def _label(metric: str) -> str:
    return METRIC_LABELS.get(metric, metric.title())


def change_narrative(extrema: pd.DataFrame) -> List[str]:
    """Paragraphs describing the year-over-year change chart."""
    blocks = [
        "Each bar group compares one per-pupil measure between the 2020-21 and "
        "2021-22 school years. For every state we take the median percent change "
        "across its districts; the middle bar is the median of those state "
        "medians, and the outer bars are the states with the smallest and "
        "largest median change."
    ]
    for metric, row in extrema.iterrows():
        blocks.append(
            f"<b>{_label(metric)}:</b> the typical state moved "
            f"{plots.format_pct(row['national_med'])}. {row['highest_state']} saw the "
            f"largest change ({plots.format_pct(row['highest_pct'])}) and "
            f"{row['lowest_state']} the smallest ({plots.format_pct(row['lowest_pct'])})."
        )
    return blocks


def equity_narrative(extrema: pd.DataFrame, excluded_states=EXCLUDED_STATES) -> List[str]:
    """Paragraphs describing the 90/10 ratio chart."""
    blocks = [
        "The 90/10 ratio divides the per-pupil amount of a state's 90th "
        "percentile district by that of its 10th percentile district. A ratio of "
        "1.0 means districts are funded alike; higher values mean wider gaps "
        "within the state. The middle bar shows the state whose ratio sits "
        "closest to the median across states."
    ]
    for metric, row in extrema.iterrows():
        blocks.append(
            f"<b>{_label(metric)}:</b> {row['lowest_state']} is the most even "
            f"({row['lowest_value']:.2f}×), {row['highest_state']} the least even "
            f"({row['highest_value']:.2f}×); {row['median_state']} is typical at "
            f"{row['median_value']:.2f}× (cross-state median {row['cross_state_median']:.2f}×)."
        )
    names = [normalize_state(s) for s in excluded_states]
    if names:
        verb = "is" if len(names) == 1 else "are"
        blocks.append(
            f"{', '.join(names)} {verb} excluded from this comparison as an outlier."
        )
    return blocks


def methodology_note(counts: dict) -> str:
    return (
        f"Source rows: {counts['raw']:,}. Districts missing any of the six per-pupil "
        f"figures were dropped ({counts['dropped']:,}), leaving {counts['kept']:,} "
        f"districts in {counts['states']} states. Percent changes from a zero base are "
        "undefined and left out of the medians. When two states tie for highest, "
        "lowest or closest-to-median, the alphabetically first is shown."
    )


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def _table(data: List[List[str]]) -> Table:
    t = Table(data, hAlign="LEFT")
    t.setStyle(TABLE_STYLE)
    return t


def change_table(extrema: pd.DataFrame) -> Table:
    data = [["Measure", "Lowest state", "", "National median", "Highest state", ""]]
    for metric, row in extrema.iterrows():
        data.append([
            _label(metric),
            row["lowest_state"], plots.format_pct(row["lowest_pct"]),
            plots.format_pct(row["national_med"]),
            row["highest_state"], plots.format_pct(row["highest_pct"]),
        ])
    return _table(data)


def equity_table(extrema: pd.DataFrame) -> Table:
    data = [["Measure", "Lowest", "", "Median state", "", "Highest", ""]]
    for metric, row in extrema.iterrows():
        data.append([
            _label(metric),
            row["lowest_state"], f"{row['lowest_value']:.2f}",
            row["median_state"], f"{row['median_value']:.2f}",
            row["highest_state"], f"{row['highest_value']:.2f}",
        ])
    return _table(data)


def _image(path: Path, width: float) -> Image:
    im = Image(str(path))
    ratio = im.imageHeight / float(im.imageWidth)
    im.drawWidth = width
    im.drawHeight = width * ratio
    return im


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

def require_metrics(extrema: pd.DataFrame, what: str, metrics: dict = METRICS) -> None:
    missing = [m for m in metrics if m not in extrema.index]
    if missing:
        raise EmptyResultError(what, missing)


def build_report(
    change_extrema: pd.DataFrame,
    equity_extrema: pd.DataFrame,
    counts: dict,
    out_path: Path = REPORT_PATH,
    figures_dir: Path = FIGURES_DIR,
    excluded_states=EXCLUDED_STATES,
) -> Path:
    """Render both charts and write the PDF report to ``out_path``.

    Both extrema tables must hold a row for every metric; otherwise
    :class:`EmptyResultError` is raised before any file is written.
    """
    require_metrics(change_extrema, "change")
    require_metrics(equity_extrema, "equity")

    figures_dir = Path(figures_dir)
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fig = plots.change_extrema_chart(change_extrema, save_as=CHANGE_CHART, figures_dir=figures_dir)
    plt.close(fig)
    fig = plots.equity_extrema_chart(equity_extrema, save_as=EQUITY_CHART, figures_dir=figures_dir)
    plt.close(fig)
    logger.info("Charts written to %s", figures_dir)

    doc = SimpleDocTemplate(str(out_path), pagesize=letter,
        leftMargin=0.6*inch, rightMargin=0.6*inch, topMargin=0.6*inch, bottomMargin=0.6*inch)

    story: List = [
        Paragraph("U.S. School District Finance, 2020-21 to 2021-22", style_title_main),
        Paragraph("Per-pupil revenue, support services and employee benefits", style_body),
        Spacer(0, 12),
        Paragraph("How much did per-pupil funding change?", style_title_sub),
    ]
    story.append(_image(figures_dir / CHANGE_CHART, doc.width))
    story.append(Spacer(0, 6))
    story.append(change_table(change_extrema))
    story.append(Spacer(0, 8))
    for block in change_narrative(change_extrema):
        story.append(Paragraph(block, style_body))
        story.append(Spacer(0, 4))

    story.append(Spacer(0, 12))
    story.append(Paragraph("How evenly is funding shared within each state?", style_title_sub))
    story.append(_image(figures_dir / EQUITY_CHART, doc.width))
    story.append(Spacer(0, 6))
    story.append(equity_table(equity_extrema))
    story.append(Spacer(0, 8))
    for block in equity_narrative(equity_extrema, excluded_states):
        story.append(Paragraph(block, style_body))
        story.append(Spacer(0, 4))

    story.append(Spacer(0, 12))
    story.append(Paragraph(methodology_note(counts), style_note))

    doc.build(story)
    logger.info("Report written to %s", out_path)
    return out_path


def run(
    path: str | Path = RAW_PATH,
    out_path: Path = REPORT_PATH,
    figures_dir: Path = FIGURES_DIR,
    excluded_states=EXCLUDED_STATES,
) -> ReportResult:
    """Load, clean, analyze and render. Any stage failure aborts the run."""
    raw = load_raw(path)
    records = clean(raw)
    counts = filter_counts(raw, records)

    state_changes, change_ext = analyze_changes(records)
    ratios, equity_ext = analyze_equity(records, excluded_states=excluded_states)
    require_metrics(change_ext, "change")
    require_metrics(equity_ext, "equity")

    report_path = build_report(change_ext, equity_ext, counts, out_path, figures_dir, excluded_states)
    return ReportResult(records, state_changes, change_ext, ratios, equity_ext, counts, report_path)


def main() -> int:
    matplotlib.use("Agg")
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    try:
        result = run()
    except (OSError, DistrictFinanceError) as exc:
        logger.error("Report generation failed: %s", exc)
        return 1
    logger.info("Done: %s", result.report_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
