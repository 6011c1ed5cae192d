"""
Coverage Reporting Functions
============================

Functions for creating summary tables and LaTeX output from scenario
results.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from fda_meantest.scenarios import ScenarioResult, compute_summary_statistics, coverage_table, qq_table


# Tables written by write_study_tables, relative to the output directory
STUDY_TABLES = [
    "coverage_table.csv",
    "coverage_summary.csv",
    "qq_table.csv",
    "coverage_summary.tex",
]


def summary_table(
    results: List[ScenarioResult],
    levels: Sequence[float] = (0.90, 0.95, 0.99),
    include_failures: bool = True,
) -> pd.DataFrame:
    """
    Create a summary table comparing scenarios and combinations.

    Parameters
    ----------
    results : list of ScenarioResult
        Results from ``run_scenario``/``run_scenarios``.
    levels : sequence of float, default (0.90, 0.95, 0.99)
        Nominal levels to report coverage at.
    include_failures : bool, default True
        Whether to include the excluded-replication column.

    Returns
    -------
    pd.DataFrame
        One row per (scenario, combination).

    Examples
    --------
    >>> from fda_meantest import run_scenarios, summary_table
    >>> results = run_scenarios(n_replications=100, verbose=False)
    >>> print(summary_table(results))
    """
    summary = compute_summary_statistics(coverage_table(results), levels=levels)

    rename = {f"coverage_{int(round(p * 100))}": f"Cov({p:.2f})" for p in levels}
    rename.update({
        "scenario": "Scenario",
        "combination": "Combination",
        "rejection_rate": "Rejection (5%)",
        "max_abs_deviation": "max|Cov−p|",
        "n_valid": "R (valid)",
        "n_failed": "Excluded",
    })
    cols = ["scenario", "combination"] + [c for c in rename if c.startswith("coverage_")]
    cols += ["rejection_rate", "max_abs_deviation", "n_valid"]
    if include_failures:
        cols.append("n_failed")

    return summary[cols].rename(columns=rename)


def to_latex(
    df: pd.DataFrame,
    caption: Optional[str] = None,
    label: Optional[str] = None,
    float_format: str = "%.3f",
) -> str:
    """
    Export a DataFrame to LaTeX table format.

    Parameters
    ----------
    df : pd.DataFrame
        Table to export.
    caption : str, optional
        Table caption.
    label : str, optional
        LaTeX label for referencing.
    float_format : str, default '%.3f'
        Format string for floating point numbers.

    Returns
    -------
    str
        LaTeX table code.
    """
    latex = df.to_latex(
        index=False,
        float_format=float_format,
        escape=False,
    )

    if caption or label:
        lines = latex.split('\n')

        insert_point = len(lines)
        for i, line in enumerate(lines):
            if '\\end{tabular}' in line:
                insert_point = i + 1
                break

        additions = []
        if caption:
            additions.append(f'\\caption{{{caption}}}')
        if label:
            additions.append(f'\\label{{{label}}}')

        for j, add in enumerate(additions):
            lines.insert(insert_point + j, add)

        latex = '\n'.join(lines)

    return latex


def format_coverage(
    coverage: float,
    nominal: float,
    mc_se: float,
    digits: int = 3,
) -> str:
    """
    Format a coverage estimate for text reporting.

    Returns a string like "0.947 (0.010) [nominal 0.95]".
    """
    if np.isnan(coverage):
        return f"n/a [nominal {nominal:.2f}]"
    return f"{coverage:.{digits}f} ({mc_se:.{digits}f}) [nominal {nominal:.2f}]"


def print_summary(results: List[ScenarioResult], nominal: float = 0.95) -> None:
    """
    Print a formatted summary of scenario results to the console.

    Parameters
    ----------
    results : list of ScenarioResult
        Results to summarise.
    nominal : float, default 0.95
        Probability level to report.
    """
    print("\n" + "=" * 70)
    print("FUNCTIONAL MEAN TEST CALIBRATION SUMMARY")
    print("=" * 70)

    for i, r in enumerate(results):
        if i > 0:
            print("-" * 70)

        cfg = r.config
        print(f"\nScenario: {r.scenario_id}")
        if cfg.description:
            print(f"  {cfg.description}")
        print(f"  R = {cfg.n_replications}  |  N = {cfg.n_samples}  |  "
              f"K = {cfg.n_design_points} ({cfg.design.value})  |  "
              f"σ = {cfg.noise_sigma:g} ({cfg.noise.value})")

        df = r.coverage
        at_level = df[np.isclose(df["probability"], nominal)]
        for _, row in at_level.iterrows():
            print(f"  {row['combination']:<30s} "
                  f"{format_coverage(row['coverage'], nominal, row['mc_se'])}"
                  + (f"  [{int(row['n_failed'])} excluded]" if row["n_failed"] else ""))

        print(f"  {r.status()}")

    print("\n" + "=" * 70 + "\n")


def write_study_tables(
    results: List[ScenarioResult],
    output_dir: Union[str, Path],
) -> List[Path]:
    """
    Write the coverage, summary and QQ tables of a study.

    Parameters
    ----------
    results : list of ScenarioResult
        Results from ``run_scenarios``.
    output_dir : str or Path
        Directory for the files in ``STUDY_TABLES``; created if missing.

    Returns
    -------
    list of Path
        The files written.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    df_coverage = coverage_table(results)
    df_summary = compute_summary_statistics(df_coverage)
    df_qq = pd.concat([qq_table(r) for r in results], ignore_index=True)

    paths = [output_dir / name for name in STUDY_TABLES]
    df_coverage.to_csv(paths[0], index=False)
    df_summary.to_csv(paths[1], index=False)
    df_qq.to_csv(paths[2], index=False)
    paths[3].write_text(to_latex(
        summary_table(results),
        caption="Empirical coverage of the null quantiles of $\\sum_j \\lambda_j \\chi^2_1$.",
        label="tab:coverage",
    ))
    return paths


__all__ = [
    "STUDY_TABLES",
    "write_study_tables",
    "summary_table",
    "to_latex",
    "format_coverage",
    "print_summary",
]
