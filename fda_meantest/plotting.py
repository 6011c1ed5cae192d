"""
Coverage Plotting Functions
===========================

Calibration figures built from the coverage and QQ tables. Nothing here
runs a simulation.
"""

from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from fda_meantest.scenarios import ScenarioResult, coverage_table, qq_table

# Matplotlib import with fallback
try:
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False


COLORS = {
    "interpolating/zero": "#2E86AB",
    "interpolating/sinusoidal": "#7FB7D5",
    "kernel-smoothing/zero": "#E8505B",
    "kernel-smoothing/sinusoidal": "#F4A259",
}

FIGURE_SIZES = {
    "single": (6, 6),
    "panel": (12, 10),
}

# Figures written by save_study_figures, relative to the output directory
STUDY_FIGURES = ["figure_coverage.pdf", "figure_qq_baseline.pdf"]


def _check_matplotlib():
    """Check if matplotlib is available."""
    if not HAS_MATPLOTLIB:
        raise ImportError(
            "matplotlib is required for plotting. "
            "Install it with: pip install matplotlib"
        )


def set_publication_style() -> None:
    """Apply serif fonts and light grids to all subsequent figures."""
    _check_matplotlib()
    plt.rcParams.update({
        'font.family': 'serif',
        'font.serif': ['Times New Roman', 'DejaVu Serif', 'serif'],
        'font.size': 11,
        'mathtext.fontset': 'stix',
        'axes.labelsize': 12,
        'axes.titlesize': 13,
        'axes.titleweight': 'bold',
        'legend.fontsize': 9,
        'xtick.direction': 'in',
        'ytick.direction': 'in',
        'grid.alpha': 0.3,
        'grid.linestyle': '--',
        'savefig.dpi': 300,
        'savefig.bbox': 'tight',
    })


def plot_coverage(
    coverage_df: pd.DataFrame,
    scenario: Optional[str] = None,
    ax: Optional[Any] = None,
    show_band: bool = True,
    figsize: Tuple[float, float] = FIGURE_SIZES["single"],
) -> Any:
    """
    Plot empirical coverage against nominal probability.

    A calibrated test lies on the 45° line. The shaded band is ±2
    binomial Monte Carlo standard errors around it.

    Parameters
    ----------
    coverage_df : pd.DataFrame
        Long coverage table (``ScenarioResult.coverage`` or the output of
        ``run_scenario_grid``).
    scenario : str, optional
        Scenario to plot; required if the table holds several.
    ax : matplotlib Axes, optional
        Axes to plot on. If None, creates new figure.
    show_band : bool, default True
        Whether to shade the Monte Carlo error band.
    figsize : tuple, default (6, 6)
        Figure size if creating new figure.

    Returns
    -------
    matplotlib Axes
    """
    _check_matplotlib()

    df = coverage_df
    if scenario is not None:
        df = df[df["scenario"] == scenario]
    scenarios = df["scenario"].unique()
    if len(scenarios) != 1:
        raise ValueError(
            f"Expected one scenario, found {len(scenarios)}; pass scenario=..."
        )

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    p = np.linspace(0, 1, 101)
    ax.plot(p, p, color='gray', linestyle='--', linewidth=0.8, label='Nominal')

    if show_band:
        n = int(df["n_valid"].max())
        if n > 0:
            band = 2 * np.sqrt(p * (1 - p) / n)
            ax.fill_between(p, p - band, p + band, color='gray', alpha=0.15,
                            label=f'±2 MC SE (R={n})')

    for combination, sub in df.groupby("combination", sort=False):
        sub = sub.sort_values("probability")
        label = combination
        n_failed = int(sub["n_failed"].iloc[0])
        if n_failed:
            label += f" ({n_failed} excluded)"
        ax.plot(sub["probability"], sub["coverage"], linewidth=1.5,
                color=COLORS.get(combination), label=label)

    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1)
    ax.set_xlabel('Nominal probability p')
    ax.set_ylabel('Empirical coverage P(Tₙ ≤ q(p))')
    ax.set_title(f'Coverage: {scenarios[0]}')
    ax.legend(loc='upper left')
    ax.grid(True)
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)

    return ax


def plot_qq(
    qq_df: pd.DataFrame,
    ax: Optional[Any] = None,
    figsize: Tuple[float, float] = FIGURE_SIZES["single"],
) -> Any:
    """
    QQ plot of empirical statistic quantiles against null quantiles.

    Parameters
    ----------
    qq_df : pd.DataFrame
        Output of ``fda_meantest.scenarios.qq_table``.
    ax : matplotlib Axes, optional
        Axes to plot on.
    figsize : tuple, default (6, 6)
        Figure size if creating new figure.

    Returns
    -------
    matplotlib Axes
    """
    _check_matplotlib()

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    # Drop the extreme levels, which are just the sample min and max
    df = qq_df[(qq_df["probability"] > 0) & (qq_df["probability"] < 1)]

    for combination, sub in df.groupby("combination", sort=False):
        ax.scatter(sub["null_quantile"], sub["empirical_quantile"], s=12,
                   color=COLORS.get(combination), label=combination)

    upper = np.nanmax(df[["null_quantile", "empirical_quantile"]].to_numpy())
    ax.plot([0, upper], [0, upper], color='gray', linestyle='--', linewidth=0.8)

    ax.set_xlabel('Null quantile of Σ λⱼ χ²₁')
    ax.set_ylabel('Empirical quantile of Tₙ')
    scenarios = qq_df["scenario"].unique()
    if len(scenarios) == 1:
        ax.set_title(f'QQ plot: {scenarios[0]}')
    ax.legend(loc='upper left')
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)

    return ax


def plot_coverage_grid(
    coverage_df: pd.DataFrame,
    scenarios: Optional[Sequence[str]] = None,
    ncols: int = 2,
) -> Any:
    """One ``plot_coverage`` panel per scenario; returns the figure."""
    _check_matplotlib()

    if scenarios is None:
        scenarios = list(dict.fromkeys(coverage_df["scenario"]))
    nrows = int(np.ceil(len(scenarios) / ncols))
    fig, axes = plt.subplots(nrows, ncols, figsize=(5 * ncols, 5 * nrows), squeeze=False)

    for ax, scenario in zip(axes.flat, scenarios):
        plot_coverage(coverage_df, scenario=scenario, ax=ax)
    for ax in list(axes.flat)[len(scenarios):]:
        ax.set_visible(False)

    fig.tight_layout()
    return fig


def save_figure(
    fig: Any,
    path: Union[str, Path],
    formats: Sequence[str] = ("pdf", "png"),
) -> None:
    """Save ``fig`` under ``path`` once per format."""
    _check_matplotlib()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    for fmt in formats:
        fig.savefig(path.with_suffix(f".{fmt}"), format=fmt)


def save_study_figures(
    results: List[ScenarioResult],
    output_dir: Union[str, Path],
) -> List[Path]:
    """
    Coverage panels for every scenario and a QQ plot of the first one.

    Returns the paths in ``STUDY_FIGURES``.
    """
    _check_matplotlib()
    output_dir = Path(output_dir)

    fig = plot_coverage_grid(coverage_table(results))
    save_figure(fig, output_dir / "figure_coverage", formats=("pdf",))
    plt.close(fig)

    fig, ax = plt.subplots(figsize=FIGURE_SIZES["single"])
    plot_qq(qq_table(results[0]), ax=ax)
    save_figure(fig, output_dir / "figure_qq_baseline", formats=("pdf",))
    plt.close(fig)

    return [output_dir / name for name in STUDY_FIGURES]


__all__ = [
    "STUDY_FIGURES",
    "save_study_figures",
    "plot_coverage",
    "plot_qq",
    "plot_coverage_grid",
    "set_publication_style",
    "save_figure",
    "COLORS",
    "FIGURE_SIZES",
]
