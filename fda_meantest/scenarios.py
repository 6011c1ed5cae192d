"""
Scenario Runner
===============

Runs each named scenario for every (estimator × reference mean)
combination and assembles the output tables consumed by plotting and
reporting:

- ``ScenarioResult.coverage``: long table with one row per
  (combination, probability level) and columns ``probability``,
  ``coverage``, ``scenario``, ``combination`` plus diagnostics.
- ``compute_summary_statistics``: one row per (scenario, combination).
- ``qq_table``: empirical vs. null quantiles for QQ comparison.

The basis and the null quantile table are computed once per scenario,
before the replications fan out, and are only read afterwards.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from tqdm import tqdm

from fda_meantest.basis import BrownianBasis
from fda_meantest.config import SCENARIO_CONFIGS, ScenarioConfig
from fda_meantest.replication import compute_coverage, null_rng, run_replications
from fda_meantest.statistics import NullQuantileTable, null_quantiles


ConfigLike = Union[ScenarioConfig, Dict]

COVERAGE_COLUMNS = [
    "scenario", "combination", "estimator", "mean_type", "probability",
    "coverage", "null_quantile", "n_valid", "n_failed", "mc_se",
]


# =============================================================================
# RESULT CONTAINER
# =============================================================================

@dataclass
class ScenarioResult:
    """
    Output of one scenario.

    Attributes
    ----------
    config : ScenarioConfig
        The scenario parameters.
    null_table : NullQuantileTable
        Null quantiles shared by all replications.
    replications : pd.DataFrame
        Raw statistics, one row per (replication, combination).
    coverage : pd.DataFrame
        Long coverage table (see ``COVERAGE_COLUMNS``).
    """
    config: ScenarioConfig
    null_table: NullQuantileTable
    replications: pd.DataFrame
    coverage: pd.DataFrame

    @property
    def scenario_id(self) -> str:
        return self.config.scenario_id

    @property
    def combinations(self) -> List[str]:
        return list(dict.fromkeys(self.coverage["combination"]))

    @property
    def n_failed(self) -> Dict[str, int]:
        """Excluded replications per combination."""
        failed = self.replications["statistic"].isna()
        return failed.groupby(self.replications["combination"], sort=False).sum().astype(int).to_dict()

    @property
    def completed(self) -> bool:
        """True if no replication was excluded."""
        return not any(self.n_failed.values())

    def statistics(self, combination: str) -> np.ndarray:
        """Valid test statistics of one combination."""
        df = self.replications
        values = df.loc[df["combination"] == combination, "statistic"].to_numpy(dtype=float)
        return values[~np.isnan(values)]

    def coverage_for(self, combination: str) -> Dict[float, float]:
        """Mapping probability level -> coverage for one combination."""
        df = self.coverage[self.coverage["combination"] == combination]
        if df.empty:
            raise KeyError(f"Unknown combination: '{combination}'")
        return dict(zip(df["probability"], df["coverage"]))

    def status(self) -> str:
        """Human-readable completion line, explicit about exclusions."""
        R = self.config.n_replications
        failed = {k: v for k, v in self.n_failed.items() if v}
        if not failed:
            return f"Scenario {self.scenario_id}: completed, {R} replications"
        parts = ", ".join(f"{k}: {v}/{R}" for k, v in failed.items())
        return (f"Scenario {self.scenario_id}: completed with failed "
                f"replications excluded ({parts})")

    def __repr__(self) -> str:
        return f"ScenarioResult({self.status()})"


# =============================================================================
# RUNNING SCENARIOS
# =============================================================================

def _as_config(config: ConfigLike, **overrides) -> ScenarioConfig:
    if isinstance(config, ScenarioConfig):
        return config.replace(**overrides) if overrides else config
    return ScenarioConfig.from_dict(config, **overrides)


def build_null_table(
    config: ScenarioConfig,
    basis: Optional[BrownianBasis] = None,
) -> NullQuantileTable:
    """Null quantile table from the leading J_trunc eigenvalues."""
    if basis is None:
        basis = BrownianBasis(config.basis_size)
    truncated = basis.truncate(config.truncated_basis_size)
    return null_quantiles(
        config.mc_samples,
        truncated.eigenvalues,
        config.probability_levels,
        null_rng(config),
    )


def run_scenario(
    config: ConfigLike,
    n_jobs: int = 1,
    verbose: bool = False,
    fail_fast: bool = False,
) -> ScenarioResult:
    """
    Run all combinations of one scenario.

    Parameters
    ----------
    config : ScenarioConfig or dict
        Scenario parameters; dicts follow ``SCENARIO_CONFIGS``.
    n_jobs : int, default 1
        joblib worker count for the replications.
    verbose : bool, default False
        Print progress.
    fail_fast : bool, default False
        Abort on the first replication failure.

    Returns
    -------
    ScenarioResult
    """
    config = _as_config(config)

    basis = BrownianBasis(config.basis_size)
    null_table = build_null_table(config, basis)

    replications = run_replications(
        config, basis=basis, n_jobs=n_jobs,
        verbose=10 if verbose else 0, fail_fast=fail_fast,
    )

    tables = []
    for (est, mean_type), df in replications.groupby(
        ["estimator", "mean_type"], sort=False
    ):
        cov = compute_coverage(df["statistic"].to_numpy(dtype=float), null_table)
        cov.insert(0, "scenario", config.scenario_id)
        cov.insert(1, "combination", df["combination"].iloc[0])
        cov.insert(2, "estimator", est)
        cov.insert(3, "mean_type", mean_type)
        tables.append(cov)

    coverage = pd.concat(tables, ignore_index=True)[COVERAGE_COLUMNS]
    result = ScenarioResult(config, null_table, replications, coverage)

    for combination, n_failed in result.n_failed.items():
        if n_failed:
            warnings.warn(
                f"Scenario {config.scenario_id}, {combination}: {n_failed} of "
                f"{config.n_replications} replications failed and were excluded"
            )

    if verbose:
        print(f"    {result.status()}")

    return result


def run_scenarios(
    configs: Iterable[ConfigLike] = tuple(SCENARIO_CONFIGS),
    n_jobs: int = 1,
    verbose: bool = True,
    fail_fast: bool = False,
    **overrides,
) -> List[ScenarioResult]:
    """
    Run a list of scenarios.

    Keyword overrides (e.g. ``n_replications=200``) are applied to every
    scenario. All configurations are validated before the first one runs.
    """
    configs = [_as_config(c, **overrides) for c in configs]
    n_scenarios = len(configs)

    results = []
    for idx, config in enumerate(tqdm(configs, desc="Scenarios", disable=not verbose)):
        if verbose:
            tqdm.write(
                f"[{idx + 1}/{n_scenarios}] Scenario {config.scenario_id}: "
                f"K={config.n_design_points} ({config.design.value}), "
                f"σ={config.noise_sigma:g} ({config.noise.value}), "
                f"R={config.n_replications}, N={config.n_samples}"
            )
            if config.description:
                tqdm.write(f"    {config.description}")
        results.append(run_scenario(config, n_jobs=n_jobs, verbose=False, fail_fast=fail_fast))
        if verbose:
            tqdm.write(f"    {results[-1].status()}")

    return results


def run_scenario_grid(
    configs: Iterable[ConfigLike] = tuple(SCENARIO_CONFIGS),
    n_jobs: int = 1,
    verbose: bool = True,
    fail_fast: bool = False,
    **overrides,
) -> pd.DataFrame:
    """
    Run scenarios and return their concatenated long coverage table.

    Columns: scenario, combination, estimator, mean_type, probability,
    coverage, null_quantile, n_valid, n_failed, mc_se.
    """
    results = run_scenarios(configs, n_jobs=n_jobs, verbose=verbose,
                            fail_fast=fail_fast, **overrides)
    return coverage_table(results)


def coverage_table(results: Sequence[ScenarioResult]) -> pd.DataFrame:
    """Concatenate the coverage tables of several scenarios."""
    return pd.concat([r.coverage for r in results], ignore_index=True)


# =============================================================================
# SUMMARIES
# =============================================================================

def _coverage_at(df: pd.DataFrame, p: float) -> float:
    """Coverage at level p exactly; NaN if p was not among the computed levels."""
    match = np.isclose(df["probability"].to_numpy(dtype=float), p, rtol=0.0, atol=1e-9)
    if not match.any():
        return np.nan
    return float(df["coverage"].to_numpy(dtype=float)[np.argmax(match)])


def compute_summary_statistics(
    coverage_df: pd.DataFrame,
    levels: Sequence[float] = (0.90, 0.95, 0.99),
    alpha: float = 0.05,
) -> pd.DataFrame:
    """
    Summarise calibration by scenario and combination.

    Returns one row with coverage at ``levels``, the rejection rate at
    level ``alpha`` (1 − coverage(1 − alpha)), the largest absolute
    deviation |coverage(p) − p|, and the failure counts.
    A level missing from the scenario's probability levels is reported
    as NaN rather than read off a neighbouring level.
    """
    rows = []
    for (scenario, combination), df in coverage_df.groupby(
        ["scenario", "combination"], sort=False
    ):
        df = df.sort_values("probability")
        row = {
            "scenario": scenario,
            "combination": combination,
            "estimator": df["estimator"].iloc[0],
            "mean_type": df["mean_type"].iloc[0],
        }
        for p in levels:
            row[f"coverage_{int(round(p * 100))}"] = _coverage_at(df, p)
        row["rejection_rate"] = 1.0 - _coverage_at(df, 1.0 - alpha)
        row["max_abs_deviation"] = float(np.nanmax(np.abs(df["coverage"] - df["probability"])))
        row["n_valid"] = int(df["n_valid"].iloc[0])
        row["n_failed"] = int(df["n_failed"].iloc[0])
        rows.append(row)

    return pd.DataFrame(rows)


def qq_table(result: ScenarioResult) -> pd.DataFrame:
    """
    Empirical quantiles of the statistic against null quantiles.

    One row per (combination, probability level), using the same linear
    interpolation rule as the null table.
    """
    levels = result.null_table.probability_levels
    tables = []
    for combination in result.combinations:
        stats = result.statistics(combination)
        if stats.size:
            empirical = np.quantile(stats, levels, method="linear")
        else:
            empirical = np.full(levels.shape, np.nan)
        tables.append(pd.DataFrame({
            "scenario": result.scenario_id,
            "combination": combination,
            "probability": levels,
            "null_quantile": result.null_table.quantiles,
            "empirical_quantile": empirical,
        }))
    return pd.concat(tables, ignore_index=True)


__all__ = [
    "ScenarioResult",
    "build_null_table",
    "run_scenario",
    "run_scenarios",
    "run_scenario_grid",
    "coverage_table",
    "compute_summary_statistics",
    "qq_table",
    "COVERAGE_COLUMNS",
]
