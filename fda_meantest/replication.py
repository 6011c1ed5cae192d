"""
Monte Carlo Replication Driver
==============================

One replication simulates N noisy curves, reconstructs them with every
configured estimator, and computes the test statistic against every
configured reference mean. The R replications of a scenario are
independent and are mapped over a joblib worker pool.

Random streams
--------------
Each replication owns a generator seeded from

    SeedSequence([base_seed, hash(scenario_id), REPLICATION_STREAM],
                 spawn_key=(rep,)),

so results do not depend on worker count or execution order, and no two
replications (or the null-distribution draws) share a stream.

Failure policy
--------------
``EmptyDesignError`` and ``SingularSmoothingError`` invalidate only the
affected (replication, combination) cells. They are recorded in the
``error`` column with a NaN statistic and excluded from coverage, and the
number of exclusions is reported next to every coverage value. Failed
replications are not retried. ``fail_fast=True`` re-raises instead.
"""

from __future__ import annotations

import hashlib
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from numpy.typing import NDArray

from fda_meantest.basis import BrownianBasis
from fda_meantest.config import EstimatorType, MeanType, ScenarioConfig
from fda_meantest.curves import synthesize_sample
from fda_meantest.design import sample_designs, sample_eval_times
from fda_meantest.errors import ReplicationError
from fda_meantest.estimators import get_estimator
from fda_meantest.scores import sample_scores
from fda_meantest.statistics import NullQuantileTable, empirical_mean, test_statistic


# =============================================================================
# CONSTANTS
# =============================================================================

REPLICATION_STREAM: int = 0   # Entropy tag of per-replication generators
NULL_STREAM: int = 1          # Entropy tag of the null-distribution generator


# =============================================================================
# SEEDING
# =============================================================================

def stable_hash_int(tag: str) -> int:
    """64-bit hash of a string, stable across processes and sessions."""
    digest = hashlib.sha256(tag.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "little", signed=False)


def scenario_seed_sequence(
    config: ScenarioConfig,
    stream: int,
    rep: Optional[int] = None,
) -> np.random.SeedSequence:
    """Seed sequence for one stream of a scenario."""
    entropy = [config.base_seed, stable_hash_int(config.scenario_id), stream]
    spawn_key = () if rep is None else (rep,)
    return np.random.SeedSequence(entropy=entropy, spawn_key=spawn_key)


def replication_rng(config: ScenarioConfig, rep: int) -> np.random.Generator:
    """Independent generator for replication ``rep``."""
    return np.random.default_rng(scenario_seed_sequence(config, REPLICATION_STREAM, rep))


def null_rng(config: ScenarioConfig) -> np.random.Generator:
    """Generator for the scenario's null-distribution draws."""
    return np.random.default_rng(scenario_seed_sequence(config, NULL_STREAM))


def combination_name(estimator: EstimatorType, mean_type: MeanType) -> str:
    """Label such as 'kernel-smoothing/zero'."""
    return f"{EstimatorType(estimator).value}/{MeanType(mean_type).value}"


# =============================================================================
# SINGLE REPLICATION
# =============================================================================

def run_single_replication(
    config: ScenarioConfig,
    rep: int,
    basis: Optional[BrownianBasis] = None,
    fail_fast: bool = False,
) -> List[Dict]:
    """
    Run one Monte Carlo replication.

    Scores, designs and evaluation nodes are drawn once and shared by all
    combinations; observation noise is drawn separately for each reference
    mean; both estimators see the same observations.

    Parameters
    ----------
    config : ScenarioConfig
        Scenario parameters.
    rep : int
        Replication index (selects the random stream).
    basis : BrownianBasis, optional
        Simulation basis; built from ``config.basis_size`` if omitted.
    fail_fast : bool, default False
        Re-raise ``ReplicationError`` instead of recording it.

    Returns
    -------
    list of dict
        One row per (estimator, reference mean) with the statistic and
        an ``error`` entry (None on success).
    """
    if basis is None:
        basis = BrownianBasis(config.basis_size)

    rng = replication_rng(config, rep)
    N = config.n_samples

    scores = sample_scores(N, basis.eigenvalues, rng)
    designs = sample_designs(N, config.n_design_points, config.design, rng)
    eval_times = sample_eval_times(config.n_eval_times, config.eval_times, rng)
    design_sizes = np.array([len(d) for d in designs])

    estimators = {
        e: get_estimator(e, bandwidth=config.bandwidth, kernel=config.kernel)
        for e in config.estimators
    }

    rows = []
    for mean_type in config.mean_types:
        reference = config.mean_for(mean_type)
        observations = synthesize_sample(
            config, basis, config.generating_mean_for(mean_type), rng,
            scores=scores, designs=designs,
        )

        for est_type, estimator in estimators.items():
            statistic = np.nan
            error = None
            try:
                functions = [estimator.fit(obs) for obs in observations]
                statistic = test_statistic(N, eval_times, empirical_mean(functions), reference)
            except ReplicationError as exc:
                if fail_fast:
                    raise
                error = f"{type(exc).__name__}: {exc}"

            rows.append({
                "scenario": config.scenario_id,
                "replication": rep,
                "combination": combination_name(est_type, mean_type),
                "estimator": est_type.value,
                "mean_type": mean_type.value,
                "statistic": statistic,
                "error": error,
                "min_design_size": int(design_sizes.min()),
                "mean_design_size": float(design_sizes.mean()),
            })

    return rows


# =============================================================================
# ALL REPLICATIONS
# =============================================================================

def run_replications(
    config: ScenarioConfig,
    basis: Optional[BrownianBasis] = None,
    n_jobs: int = 1,
    verbose: int = 0,
    fail_fast: bool = False,
) -> pd.DataFrame:
    """
    Run the R replications of a scenario on a joblib worker pool.

    Parameters
    ----------
    config : ScenarioConfig
        Scenario parameters.
    basis : BrownianBasis, optional
        Shared, read-only simulation basis.
    n_jobs : int, default 1
        joblib worker count (-1 for all cores).
    verbose : int, default 0
        joblib verbosity.
    fail_fast : bool, default False
        Abort the scenario on the first replication failure.

    Returns
    -------
    pd.DataFrame
        One row per (replication, combination), ordered by replication.
    """
    if basis is None:
        basis = BrownianBasis(config.basis_size)

    results = Parallel(n_jobs=n_jobs, verbose=verbose)(
        delayed(run_single_replication)(config, rep, basis, fail_fast)
        for rep in range(config.n_replications)
    )

    rows = [row for rep_rows in results for row in rep_rows]
    df = pd.DataFrame(rows)
    return df.sort_values(["replication", "combination"], kind="stable").reset_index(drop=True)


# =============================================================================
# COVERAGE
# =============================================================================

def mc_standard_error(coverage: NDArray, n: int) -> NDArray:
    """Binomial Monte Carlo SE √(p(1 − p)/n) of a coverage estimate."""
    coverage = np.asarray(coverage, dtype=float)
    if n <= 0:
        return np.full_like(coverage, np.nan)
    return np.sqrt(coverage * (1.0 - coverage) / n)


def compute_coverage(
    statistics: NDArray,
    null_table: NullQuantileTable,
) -> pd.DataFrame:
    """
    Empirical coverage P(Tₙ <= q(p)) at every probability level.

    NaN statistics (failed replications) are excluded and counted.

    Returns
    -------
    pd.DataFrame
        Columns: probability, null_quantile, coverage, n_valid, n_failed,
        mc_se.
    """
    statistics = np.asarray(statistics, dtype=float)
    valid = statistics[~np.isnan(statistics)]
    n_valid = valid.size
    n_failed = statistics.size - n_valid

    q = null_table.quantiles
    if n_valid > 0:
        coverage = (valid[None, :] <= q[:, None]).mean(axis=1)
    else:
        coverage = np.full(q.shape, np.nan)

    return pd.DataFrame({
        "probability": null_table.probability_levels,
        "null_quantile": q,
        "coverage": coverage,
        "n_valid": n_valid,
        "n_failed": n_failed,
        "mc_se": mc_standard_error(coverage, n_valid),
    })


__all__ = [
    "run_single_replication",
    "run_replications",
    "compute_coverage",
    "mc_standard_error",
    "combination_name",
    "replication_rng",
    "null_rng",
    "scenario_seed_sequence",
    "stable_hash_int",
]
