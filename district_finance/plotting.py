"""
plotting.py
===========
Grouped bar charts for the district finance report. Every function returns
the ``matplotlib`` ``Figure`` object so callers can further customise or
save it.

Usage
-----
    from district_finance import plots

    fig = plots.change_extrema_chart(change_extrema)
    fig = plots.equity_extrema_chart(equity_extrema, save_as="equity.png")
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import pandas as pd
import seaborn as sns

from .data_cleaning import METRIC_LABELS

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
FIGURES_DIR = Path(__file__).resolve().parents[1] / "outputs" / "figures"

PALETTE = "tab10"
STYLE = "whitegrid"
FIGSIZE_WIDE = (14, 6)

GROUP_COLORS = ["#C44E52", "#8C8C8C", "#4C72B0"]


def _apply_style() -> None:
    sns.set_theme(style=STYLE, palette=PALETTE)
    plt.rcParams.update(
        {
            "figure.dpi": 120,
            "axes.titlesize": 14,
            "axes.labelsize": 12,
            "legend.fontsize": 10,
        }
    )


def _save(fig: plt.Figure, filename: Optional[str], directory: Path = FIGURES_DIR) -> Optional[Path]:
    if filename:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        fig.savefig(path, bbox_inches="tight")
        return path
    return None


def format_pct(value: float) -> str:
    return f"{value:+.1f}%"


def _grouped_bars(
    heights: pd.DataFrame,
    labels: pd.DataFrame,
    ax: plt.Axes,
) -> None:
    """Draw one bar group per row of ``heights`` and label each bar.

    ``labels`` must share the index and columns of ``heights``.
    """
    heights.plot(kind="bar", ax=ax, color=GROUP_COLORS, width=0.8, rot=0)
    for container, col in zip(ax.containers, heights.columns):
        ax.bar_label(container, labels=list(labels[col]), padding=3, fontsize=9)
    ax.margins(y=0.15)
    ax.set_xticklabels([METRIC_LABELS.get(m, m.title()) for m in heights.index])
    ax.legend(loc="best")


# ---------------------------------------------------------------------------
# 1. Year-over-year change extrema
# ---------------------------------------------------------------------------

def change_extrema_chart(
    extrema: pd.DataFrame,
    title: str | None = None,
    save_as: str | None = None,
    figures_dir: Path = FIGURES_DIR,
) -> plt.Figure:
    """Lowest state, national median and highest state percent change per metric.

    Parameters
    ----------
    extrema:
        Output of :func:`district_finance.change_analysis.change_extrema`.
    title:
        Optional override for the chart title.
    save_as:
        Filename (e.g. ``"change_extrema.png"``) to save under
        ``figures_dir``.  ``None`` skips saving.
    """
    _apply_style()
    heights = pd.DataFrame(
        {
            "Lowest state": extrema["lowest_pct"],
            "National median": extrema["national_med"],
            "Highest state": extrema["highest_pct"],
        }
    )
    labels = pd.DataFrame(
        {
            "Lowest state": extrema["lowest_state"],
            "National median": extrema["national_med"].map(format_pct),
            "Highest state": extrema["highest_state"],
        }
    )

    fig, ax = plt.subplots(figsize=FIGSIZE_WIDE)
    _grouped_bars(heights, labels, ax)
    ax.axhline(0, color="black", linewidth=0.8)

    ax.yaxis.set_major_formatter(mticker.PercentFormatter())
    ax.set_xlabel("")
    ax.set_ylabel("Median % change per pupil, 2020-21 to 2021-22")
    ax.set_title(title or "Per-Pupil Change by State: Extremes vs. National Median")

    fig.tight_layout()
    _save(fig, save_as, figures_dir)
    return fig


# ---------------------------------------------------------------------------
# 2. Within-state 90/10 ratio extrema
# ---------------------------------------------------------------------------

def equity_extrema_chart(
    extrema: pd.DataFrame,
    title: str | None = None,
    save_as: str | None = None,
    figures_dir: Path = FIGURES_DIR,
) -> plt.Figure:
    """Lowest, median and highest within-state 90/10 ratio per metric.

    Every bar is labelled with the state it belongs to.
    """
    _apply_style()
    heights = pd.DataFrame(
        {
            "Lowest ratio": extrema["lowest_value"],
            "Median state": extrema["median_value"],
            "Highest ratio": extrema["highest_value"],
        }
    )
    labels = pd.DataFrame(
        {
            "Lowest ratio": extrema["lowest_state"],
            "Median state": extrema["median_state"],
            "Highest ratio": extrema["highest_state"],
        }
    )

    fig, ax = plt.subplots(figsize=FIGSIZE_WIDE)
    _grouped_bars(heights, labels, ax)
    ax.axhline(1, color="black", linewidth=0.8, linestyle="--")

    ax.yaxis.set_major_formatter(mticker.FuncFormatter(lambda x, _: f"{x:.1f}×"))
    ax.set_xlabel("")
    ax.set_ylabel("90th / 10th percentile district, 2021-22")
    ax.set_title(title or "Within-State Per-Pupil Inequality (90/10 Ratio)")

    fig.tight_layout()
    _save(fig, save_as, figures_dir)
    return fig
