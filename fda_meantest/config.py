"""
Scenario Configuration
======================

Immutable scenario parameters for the Monte Carlo calibration study.

A ``ScenarioConfig`` is validated eagerly when it is constructed, so that an
invalid combination (J_trunc > J, a non-positive replication count, an
unknown estimator name, ...) raises ``ConfigurationError`` before any
random number is drawn. The same frozen value is handed to every
replication, including replications running in other worker processes.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from fda_meantest.errors import ConfigurationError
from fda_meantest.estimators import KERNELS
from fda_meantest.means import ReferenceMean


# =============================================================================
# CONSTANTS
# =============================================================================

N_REPLICATIONS: int = 500        # Monte Carlo replications R per scenario
N_SAMPLES: int = 100             # Curves N per replication
N_DESIGN_POINTS: int = 20        # Design points K per curve (mean count for Poisson)
BASIS_SIZE: int = 100            # KL terms J used to simulate curves
TRUNCATED_BASIS_SIZE: int = 100  # KL terms used for the null distribution
MC_SAMPLES: int = 10000          # Draws of Σ λ_j χ²₁ for the null quantiles
NOISE_SIGMA: float = 0.1         # Observation noise scale σ
STUDENT_T_DF: int = 8            # Degrees of freedom of the heavy-tailed noise
BANDWIDTH: float = 0.1           # Nadaraya-Watson bandwidth h
N_EVAL_TIMES: int = 100          # Integration nodes for the L2 norm
BASE_SEED: int = 2024            # Base random seed

# Probability levels 0.00, 0.01, ..., 1.00
PROBABILITY_LEVELS: Tuple[float, ...] = tuple(
    float(p) for p in np.round(np.linspace(0.0, 1.0, 101), 2)
)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class DesignDistribution(str, Enum):
    """How many design points each curve receives."""
    FIXED = "fixed"
    POISSON = "poisson"


class NoiseFamily(str, Enum):
    """Distribution family of the additive measurement error."""
    NORMAL = "normal"
    STUDENT_T = "student-t"


class EstimatorType(str, Enum):
    """Per-curve function reconstruction method."""
    INTERPOLATING = "interpolating"
    KERNEL_SMOOTHING = "kernel-smoothing"


class MeanType(str, Enum):
    """Reference mean against which the statistic is computed."""
    ZERO = "zero"
    SINUSOIDAL = "sinusoidal"


class EvalTimesPolicy(str, Enum):
    """Integration nodes used by the Monte Carlo L2 norm."""
    GRID = "grid"
    UNIFORM = "uniform"


NOISE_SCALES = ("raw", "unit-variance")


def _coerce(enum_cls: type, value: Any, name: str) -> Enum:
    """Convert a string (or enum member) to ``enum_cls``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(
            f"Unknown {name}: '{value}'. Choose from: {choices}"
        ) from None


def _require_positive_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")


def _require_positive_float(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ConfigurationError(f"{name} must be a real number, got {value!r}")
    if not np.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive real, got {value}")


# =============================================================================
# SCENARIO CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class ScenarioConfig:
    """
    Parameters of one simulation scenario.

    Every scenario is run for each combination of ``estimators`` and
    ``mean_types``. For a mean type the curves are generated around that
    reference mean (plus ``departure``, if given) and the statistic is
    computed against the reference mean, so with ``departure=None`` every
    combination is a null scenario and ``departure`` turns it into an
    alternative.

    Parameters
    ----------
    scenario_id : str
        Name used in the output tables.
    n_replications : int
        Number of replications R.
    n_samples : int
        Number of curves N per replication.
    n_design_points : int
        Design points K per curve (Poisson mean when ``design='poisson'``).
    basis_size : int
        Number of KL terms J used to simulate the curves.
    truncated_basis_size : int
        Number of eigenvalues (J_trunc <= J) in the null distribution.
    mc_samples : int
        Number of null draws used to estimate the quantile table.
    noise_sigma : float
        Scale σ of the measurement error.
    design : {'fixed', 'poisson'}
        Design-point count policy.
    noise : {'normal', 'student-t'}
        Measurement error family.
    noise_df : int
        Degrees of freedom of the Student-t noise.
    noise_scale : {'raw', 'unit-variance'}
        'raw' draws σ·T; 'unit-variance' rescales T to unit variance first.
    reference_mean : ReferenceMean
        The nonzero reference mean used by the 'sinusoidal' mean type.
    departure : ReferenceMean, optional
        Added to the generating mean only (alternative hypothesis).
    estimators : tuple of str
        Estimator variants to run.
    mean_types : tuple of str
        Reference mean variants to run.
    bandwidth : float
        Kernel smoothing bandwidth h.
    kernel : str
        Kernel name, see ``fda_meantest.estimators.KERNELS``.
    n_eval_times : int
        Number of integration nodes.
    eval_times : {'grid', 'uniform'}
        Equispaced grid or fresh uniform draws per replication.
    probability_levels : tuple of float
        Levels at which coverage is reported.
    base_seed : int
        Scenario seed; replication streams are derived from it.
    description : str
        Free text carried into the output tables.
    """
    scenario_id: str = "baseline"
    n_replications: int = N_REPLICATIONS
    n_samples: int = N_SAMPLES
    n_design_points: int = N_DESIGN_POINTS
    basis_size: int = BASIS_SIZE
    truncated_basis_size: int = TRUNCATED_BASIS_SIZE
    mc_samples: int = MC_SAMPLES
    noise_sigma: float = NOISE_SIGMA
    design: DesignDistribution = DesignDistribution.FIXED
    noise: NoiseFamily = NoiseFamily.NORMAL
    noise_df: int = STUDENT_T_DF
    noise_scale: str = "raw"
    reference_mean: ReferenceMean = field(
        default_factory=lambda: ReferenceMean.sinusoidal(1.0, 1.0, 0.0)
    )
    departure: Optional[ReferenceMean] = None
    estimators: Tuple[EstimatorType, ...] = (
        EstimatorType.INTERPOLATING,
        EstimatorType.KERNEL_SMOOTHING,
    )
    mean_types: Tuple[MeanType, ...] = (MeanType.ZERO, MeanType.SINUSOIDAL)
    bandwidth: float = BANDWIDTH
    kernel: str = "gaussian"
    n_eval_times: int = N_EVAL_TIMES
    eval_times: EvalTimesPolicy = EvalTimesPolicy.GRID
    probability_levels: Tuple[float, ...] = PROBABILITY_LEVELS
    base_seed: int = BASE_SEED
    description: str = ""

    def __post_init__(self) -> None:
        # Frozen dataclass: normalise strings to enums in place
        object.__setattr__(self, "design",
                           _coerce(DesignDistribution, self.design, "design distribution"))
        object.__setattr__(self, "noise",
                           _coerce(NoiseFamily, self.noise, "noise family"))
        object.__setattr__(self, "eval_times",
                           _coerce(EvalTimesPolicy, self.eval_times, "eval times policy"))
        object.__setattr__(self, "estimators", tuple(
            _coerce(EstimatorType, e, "estimator") for e in _as_tuple(self.estimators)
        ))
        object.__setattr__(self, "mean_types", tuple(
            _coerce(MeanType, m, "reference mean") for m in _as_tuple(self.mean_types)
        ))
        object.__setattr__(self, "probability_levels",
                           tuple(float(p) for p in _as_tuple(self.probability_levels)))
        object.__setattr__(self, "kernel", str(self.kernel).lower())
        self.validate()

    def validate(self) -> None:
        """Raise ``ConfigurationError`` for any invalid parameter."""
        if not self.scenario_id:
            raise ConfigurationError("scenario_id must be a non-empty string")

        for name in ("n_replications", "n_samples", "n_design_points",
                     "basis_size", "truncated_basis_size", "mc_samples",
                     "n_eval_times", "noise_df"):
            _require_positive_int(getattr(self, name), name)

        if self.truncated_basis_size > self.basis_size:
            raise ConfigurationError(
                f"truncated_basis_size ({self.truncated_basis_size}) must not "
                f"exceed basis_size ({self.basis_size})"
            )

        _require_positive_float(self.noise_sigma, "noise_sigma")
        _require_positive_float(self.bandwidth, "bandwidth")

        if self.noise_scale not in NOISE_SCALES:
            raise ConfigurationError(
                f"Unknown noise_scale: '{self.noise_scale}'. "
                f"Choose from: {', '.join(NOISE_SCALES)}"
            )
        if (self.noise is NoiseFamily.STUDENT_T
                and self.noise_scale == "unit-variance" and self.noise_df <= 2):
            raise ConfigurationError(
                "unit-variance Student-t noise requires noise_df > 2"
            )

        if self.kernel not in KERNELS:
            raise ConfigurationError(
                f"Unknown kernel: '{self.kernel}'. "
                f"Choose from: {', '.join(sorted(KERNELS))}"
            )

        if not self.estimators:
            raise ConfigurationError("At least one estimator is required")
        if not self.mean_types:
            raise ConfigurationError("At least one reference mean type is required")
        if len(set(self.estimators)) != len(self.estimators):
            raise ConfigurationError("Duplicate estimator in configuration")
        if len(set(self.mean_types)) != len(self.mean_types):
            raise ConfigurationError("Duplicate reference mean type in configuration")

        if not isinstance(self.reference_mean, ReferenceMean):
            raise ConfigurationError("reference_mean must be a ReferenceMean")
        if self.departure is not None and not isinstance(self.departure, ReferenceMean):
            raise ConfigurationError("departure must be a ReferenceMean or None")

        levels = np.asarray(self.probability_levels, dtype=float)
        if levels.size == 0:
            raise ConfigurationError("probability_levels must not be empty")
        if np.any((levels < 0) | (levels > 1)) or np.any(np.isnan(levels)):
            raise ConfigurationError("probability_levels must lie in [0, 1]")
        if np.any(np.diff(levels) < 0):
            raise ConfigurationError("probability_levels must be nondecreasing")

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def combinations(self) -> List[Tuple[EstimatorType, MeanType]]:
        """All (estimator, reference mean) pairs, in reporting order."""
        return [(e, m) for e in self.estimators for m in self.mean_types]

    def mean_for(self, mean_type: MeanType) -> ReferenceMean:
        """Reference mean function for a mean type."""
        mean_type = _coerce(MeanType, mean_type, "reference mean")
        if mean_type is MeanType.ZERO:
            return ReferenceMean.zero()
        return self.reference_mean

    def generating_mean_for(self, mean_type: MeanType) -> ReferenceMean:
        """Mean used to simulate curves: reference mean plus any departure."""
        mean = self.mean_for(mean_type)
        if self.departure is None:
            return mean
        return mean + self.departure

    def replace(self, **changes: Any) -> "ScenarioConfig":
        """Return a validated copy with some fields changed."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Flat, table-friendly representation."""
        d = asdict(self)
        d["design"] = self.design.value
        d["noise"] = self.noise.value
        d["eval_times"] = self.eval_times.value
        d["estimators"] = ",".join(e.value for e in self.estimators)
        d["mean_types"] = ",".join(m.value for m in self.mean_types)
        d["reference_mean"] = self.reference_mean.label
        d["departure"] = None if self.departure is None else self.departure.label
        d.pop("probability_levels")
        return d

    @classmethod
    def from_dict(cls, config: Dict[str, Any], **overrides: Any) -> "ScenarioConfig":
        """
        Build a config from a ``SCENARIO_CONFIGS``-style dict.

        ``reference_mean`` and ``departure`` may be given as dicts with
        ``amplitude``, ``frequency`` and ``phase`` keys.
        """
        params = {**config, **overrides}
        for key in ("reference_mean", "departure"):
            value = params.get(key)
            if isinstance(value, dict):
                params[key] = ReferenceMean.sinusoidal(**value)
        unknown = set(params) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(
                f"Unknown scenario option(s): {', '.join(sorted(unknown))}"
            )
        return cls(**params)


def _as_tuple(value: Any) -> tuple:
    if isinstance(value, (str, Enum)):
        return (value,)
    return tuple(value)


# =============================================================================
# PRE-DEFINED SCENARIOS
# =============================================================================

# Scenario grid for the coverage study. Each entry varies one knob relative
# to the baseline (fixed design, K = 20, σ = 0.1, Gaussian noise).
SCENARIO_CONFIGS: List[Dict] = [
    {"scenario_id": "baseline", "n_design_points": 20, "noise_sigma": 0.1,
     "description": "Fixed design, K=20, Gaussian noise σ=0.1"},
    {"scenario_id": "sparse", "n_design_points": 5, "noise_sigma": 0.1,
     "description": "Sparse fixed design, K=5"},
    {"scenario_id": "dense", "n_design_points": 100, "noise_sigma": 0.1,
     "description": "Dense fixed design, K=100"},
    {"scenario_id": "high_noise", "n_design_points": 20, "noise_sigma": 0.5,
     "description": "Fixed design, K=20, Gaussian noise σ=0.5"},
    {"scenario_id": "poisson", "n_design_points": 20, "design": "poisson",
     "description": "Poisson(20) design-point counts"},
    {"scenario_id": "poisson_sparse", "n_design_points": 10, "design": "poisson",
     "description": "Poisson(10) counts; occasional empty designs"},
    {"scenario_id": "heavy_tails", "n_design_points": 20, "noise": "student-t",
     "description": "Fixed design, K=20, scaled Student-t(8) noise"},
    {"scenario_id": "alternative", "n_design_points": 20,
     "departure": {"amplitude": 0.2, "frequency": 0.5, "phase": 0.0},
     "description": "Curves shifted by 0.2·sin(πt) away from the reference mean"},
]


__all__ = [
    "ScenarioConfig",
    "DesignDistribution",
    "NoiseFamily",
    "EstimatorType",
    "MeanType",
    "EvalTimesPolicy",
    "SCENARIO_CONFIGS",
    "PROBABILITY_LEVELS",
    "N_REPLICATIONS",
    "N_SAMPLES",
    "N_DESIGN_POINTS",
    "BASIS_SIZE",
    "TRUNCATED_BASIS_SIZE",
    "MC_SAMPLES",
    "NOISE_SIGMA",
    "STUDENT_T_DF",
    "BANDWIDTH",
    "N_EVAL_TIMES",
    "BASE_SEED",
]
