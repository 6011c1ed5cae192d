"""
fda_meantest: Monte Carlo Calibration of a Functional Mean Test
================================================================

This package simulates noisy, irregularly observed Brownian-motion curves,
reconstructs each curve by interpolation or kernel smoothing, and checks
how well the L² statistic

    Tₙ = N · ∫₀¹ (ê(t) − μ₀(t))² dt

matches its limiting null distribution Σ_j λ_j χ²₁.

Quick Start
-----------
>>> from fda_meantest import ScenarioConfig, run_scenario
>>>
>>> config = ScenarioConfig(scenario_id="demo", n_replications=200)
>>> result = run_scenario(config, n_jobs=-1)
>>> print(result.status())
>>> result.coverage_for("interpolating/zero")[0.95]

Pipeline
--------
- basis:       Brownian-motion KL eigenvalues λ_k = 1/(π²(k−½)²) and
               eigenfunctions √2 sin(π(k−½)t)
- design:      fixed-count or Poisson-count uniform design points
- scores:      independent N(0, λ_j) KL coefficients
- curves:      latent curves and noisy observations
- estimators:  linear interpolation and Nadaraya-Watson smoothing
- statistics:  empirical mean, test statistic, null quantiles
- replication: R independent replications on a joblib worker pool
- scenarios:   (estimator × reference mean) combinations per scenario

Failure policy: replications that hit an empty design or a singular
kernel smoother are excluded from coverage and counted in ``n_failed``.
"""

from fda_meantest.errors import (
    FunctionalMeanTestError,
    ConfigurationError,
    ReplicationError,
    EmptyDesignError,
    SingularSmoothingError,
)
from fda_meantest.means import ReferenceMean
from fda_meantest.config import (
    ScenarioConfig,
    DesignDistribution,
    NoiseFamily,
    EstimatorType,
    MeanType,
    EvalTimesPolicy,
    SCENARIO_CONFIGS,
    PROBABILITY_LEVELS,
)
from fda_meantest.basis import (
    BrownianBasis,
    EigenPair,
    eigenvalues,
    eigenfunctions,
)
from fda_meantest.design import sample_design_points, sample_eval_times
from fda_meantest.scores import sample_scores
from fda_meantest.curves import (
    LatentCurve,
    NoiseModel,
    NoisyObservation,
    ObservationFunction,
    observe,
    synthesize_sample,
)
from fda_meantest.estimators import (
    InterpolatingEstimator,
    KernelSmoothingEstimator,
    ReconstructedFunction,
    get_estimator,
)
from fda_meantest.statistics import (
    NullQuantileTable,
    empirical_mean,
    monte_carlo_norm,
    test_statistic,
    null_realization,
    null_quantiles,
)
from fda_meantest.replication import (
    run_single_replication,
    run_replications,
    compute_coverage,
)
from fda_meantest.scenarios import (
    ScenarioResult,
    run_scenario,
    run_scenarios,
    run_scenario_grid,
    compute_summary_statistics,
    qq_table,
)
from fda_meantest.reporting import (
    summary_table,
    to_latex,
    print_summary,
)

__version__ = "1.0.0"

__all__ = [
    # Errors
    "FunctionalMeanTestError",
    "ConfigurationError",
    "ReplicationError",
    "EmptyDesignError",
    "SingularSmoothingError",
    # Configuration
    "ScenarioConfig",
    "ReferenceMean",
    "DesignDistribution",
    "NoiseFamily",
    "EstimatorType",
    "MeanType",
    "EvalTimesPolicy",
    "SCENARIO_CONFIGS",
    "PROBABILITY_LEVELS",
    # Simulation
    "BrownianBasis",
    "EigenPair",
    "eigenvalues",
    "eigenfunctions",
    "sample_design_points",
    "sample_eval_times",
    "sample_scores",
    "LatentCurve",
    "NoiseModel",
    "NoisyObservation",
    "ObservationFunction",
    "observe",
    "synthesize_sample",
    # Estimation
    "InterpolatingEstimator",
    "KernelSmoothingEstimator",
    "ReconstructedFunction",
    "get_estimator",
    # Statistics
    "NullQuantileTable",
    "empirical_mean",
    "monte_carlo_norm",
    "test_statistic",
    "null_realization",
    "null_quantiles",
    # Monte Carlo
    "run_single_replication",
    "run_replications",
    "compute_coverage",
    "ScenarioResult",
    "run_scenario",
    "run_scenarios",
    "run_scenario_grid",
    "compute_summary_statistics",
    "qq_table",
    # Reporting
    "summary_table",
    "to_latex",
    "print_summary",
]
